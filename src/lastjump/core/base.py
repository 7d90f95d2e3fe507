""" Registries shared across the data model: stats, skills, templates. """

import logging
from collections.abc import Mapping, Iterable, Iterator
from typing import Any, Optional

from lastjump import util

logger = logging.getLogger(__name__)

class StatDefinition:
    def __init__(self, stat_id:str, name:str, default:float=0, min_value:Optional[float]=None, max_value:Optional[float]=None, display:bool=True) -> None:
        self.stat_id = stat_id
        self.name = name
        self.default = default
        self.min_value = min_value
        self.max_value = max_value
        self.display = display

    def clamp(self, value:float) -> float:
        return util.clip(value, self.min_value, self.max_value)

    def __repr__(self) -> str:
        return f'StatDefinition({self.stat_id}, [{self.min_value}, {self.max_value}])'

class StatRegistry:
    """ Definitions for character stats, in display order.

    stats without a definition are allowed and are simply unbounded.
    """

    def __init__(self, definitions:Iterable[StatDefinition]=()) -> None:
        self.definitions:dict[str, StatDefinition] = {d.stat_id: d for d in definitions}

    def __contains__(self, stat_id:str) -> bool:
        return stat_id in self.definitions

    def __iter__(self) -> Iterator[StatDefinition]:
        return iter(self.definitions.values())

    def get(self, stat_id:str) -> Optional[StatDefinition]:
        return self.definitions.get(stat_id)

    def clamp(self, stat_id:str, value:float) -> float:
        definition = self.definitions.get(stat_id)
        if definition is None:
            return value
        return definition.clamp(value)

    def defaults(self) -> dict[str, float]:
        return {d.stat_id: d.default for d in self.definitions.values()}

class SkillDefinition:
    GENERAL = "general"
    SPECIFIC = "specific"

    def __init__(self, skill_id:str, kind:str, name:str, parent:Optional[str]=None, category:str="", description:str="", requirements:Optional[Mapping[str, Any]]=None) -> None:
        self.skill_id = skill_id
        self.kind = kind
        self.name = name
        self.parent = parent
        self.category = category
        self.description = description
        # a condition record for learning this skill, if any
        self.requirements = requirements

    @property
    def is_specific(self) -> bool:
        return self.kind == SkillDefinition.SPECIFIC

class SkillRegistry:
    def __init__(self, definitions:Iterable[SkillDefinition]=()) -> None:
        self.definitions:dict[str, SkillDefinition] = {d.skill_id: d for d in definitions}

    def __contains__(self, skill_id:str) -> bool:
        return skill_id in self.definitions

    def get(self, skill_id:str) -> Optional[SkillDefinition]:
        return self.definitions.get(skill_id)

    def general_skills(self) -> list[SkillDefinition]:
        return [d for d in self.definitions.values() if not d.is_specific]

    def specific_skills(self, parent:Optional[str]=None) -> list[SkillDefinition]:
        return [d for d in self.definitions.values() if d.is_specific and (parent is None or d.parent == parent)]

class Template:
    """ A character or object template, possibly extending another. """

    def __init__(self, template_id:str, extends:Optional[str]=None, name:Optional[str]=None, stats:Optional[Mapping[str, float]]=None, state:Optional[Mapping[str, Any]]=None, traits:Optional[Iterable[str]]=None, gender:Optional[str]=None, fields:Optional[Mapping[str, Any]]=None) -> None:
        self.template_id = template_id
        self.extends = extends
        self.name = name
        self.stats:dict[str, float] = dict(stats or {})
        self.state:dict[str, Any] = dict(state or {})
        self.traits:list[str] = list(traits or [])
        self.gender = gender
        # anything else the template declares, carried as is
        self.fields:dict[str, Any] = dict(fields or {})

def resolve_template(templates:Mapping[str, Template], template_id:str) -> Template:
    """ Flattens template_id and its extends chain into a single template.

    parent values are overridden by child values, stats and state are merged
    key by key and traits accumulate. an unknown template resolves to an empty
    one so callers can create entities from templates they don't know about.
    """

    chain:list[Template] = []
    seen:set[str] = set()
    current:Optional[str] = template_id
    while current is not None:
        if current in seen:
            logger.warning(f'template cycle at {current} resolving {template_id}')
            break
        seen.add(current)
        template = templates.get(current)
        if template is None:
            if current == template_id:
                logger.debug(f'unknown template {template_id}')
            else:
                logger.warning(f'template {template_id} extends unknown template {current}')
            break
        chain.append(template)
        current = template.extends

    resolved = Template(template_id)
    for template in reversed(chain):
        resolved.stats.update(template.stats)
        resolved.state.update(template.state)
        resolved.traits.extend(t for t in template.traits if t not in resolved.traits)
        resolved.fields.update(template.fields)
        if template.name is not None:
            resolved.name = template.name
        if template.gender is not None:
            resolved.gender = template.gender
    return resolved

class ContentError(ValueError):
    """ content that cannot be loaded, names the offending record """
    def __init__(self, record_id:str, message:str) -> None:
        super().__init__(f'{record_id}: {message}')
        self.record_id = record_id
