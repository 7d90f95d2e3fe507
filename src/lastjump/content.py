""" All the declarative content the engine runs: loaded, compiled, validated.

Content ships as toml files in lastjump.data. Loading compiles condition
records and checks cross references, raising ContentError on anything that
would otherwise only surface as a silent misbehavior at play time.
"""

import logging
from collections.abc import Mapping
from typing import Any, Optional

from lastjump import config, core
from lastjump import actions, creation, events, pursuits, stories
from lastjump.ability_checks import AbilityChecker, load_check, validate_check
from lastjump.actions import load_action
from lastjump.creation import load_creation_choice
from lastjump.events import load_event
from lastjump.pursuits import load_pursuit
from lastjump.stories import load_story
from lastjump.handlers import HandlerRegistry, default_registry

logger = logging.getLogger(__name__)

CONTENT_FILES = {
    "stats": "stats.toml",
    "skills": "skills.toml",
    "templates": "templates.toml",
    "ability_checks": "ability_checks.toml",
    "events": "events.toml",
    "stories": "stories.toml",
    "pursuits": "pursuits.toml",
    "actions": "actions.toml",
    "creation": "creation.toml",
}

def load_stats(d:Mapping[str, Any]) -> core.StatRegistry:
    definitions = []
    for stat_id, s in d.items():
        definitions.append(core.StatDefinition(
            stat_id,
            s.get("name", stat_id),
            default=s.get("default", 0),
            min_value=s.get("min"),
            max_value=s.get("max"),
            display=s.get("display", True),
        ))
    return core.StatRegistry(definitions)

def load_skills(d:Mapping[str, Any]) -> core.SkillRegistry:
    """ general skills, each with its specific skills nested under it """
    definitions = []
    for skill_id, s in d.items():
        definitions.append(core.SkillDefinition(
            skill_id, core.SkillDefinition.GENERAL, s.get("name", skill_id),
            category=s.get("category", ""), description=s.get("description", ""),
        ))
        for specific_id, specific in s.get("specific", {}).items():
            if isinstance(specific, str):
                specific = {"name": specific}
            definitions.append(core.SkillDefinition(
                specific_id, core.SkillDefinition.SPECIFIC, specific.get("name", specific_id),
                parent=skill_id, category=s.get("category", ""),
                description=specific.get("description", ""),
                requirements=specific.get("requirements"),
            ))
    return core.SkillRegistry(definitions)

def load_templates(d:Mapping[str, Any]) -> dict[str, core.Template]:
    templates = {}
    known = ("extends", "name", "stats", "state", "traits", "gender")
    for template_id, t in d.items():
        templates[template_id] = core.Template(
            template_id,
            extends=t.get("extends"),
            name=t.get("name"),
            stats=t.get("stats"),
            state=t.get("state"),
            traits=t.get("traits"),
            gender=t.get("gender"),
            fields={k: v for k, v in t.items() if k not in known},
        )
    for template in templates.values():
        if template.extends is not None and template.extends not in templates:
            raise core.ContentError(template.template_id, f'extends unknown template {template.extends}')
    return templates

class Content:
    def __init__(self) -> None:
        self.stats = core.StatRegistry()
        self.skills = core.SkillRegistry()
        self.character_templates:dict[str, core.Template] = {}
        self.object_templates:dict[str, core.Template] = {}
        self.genders:list[str] = list(config.Settings.game.genders)
        self.ability_checks:dict[str, dict[str, Any]] = {}
        self.events:dict[str, events.EventDefinition] = {}
        self.stories:dict[str, stories.StoryDefinition] = {}
        self.pursuits:dict[str, pursuits.PursuitDefinition] = {}
        self.actions:dict[str, actions.ActionDefinition] = {}
        self.creation_choices:dict[str, creation.CreationChoice] = {}
        self.creation_sets:dict[str, list[str]] = {}

    @classmethod
    def load(cls, handlers:Optional[HandlerRegistry]=None) -> "Content":
        """ loads the content bundled with the game """
        data = {key: config.read_data_file(filename) for key, filename in CONTENT_FILES.items()}
        return cls.from_dicts(handlers=handlers, **data)

    @classmethod
    def from_dicts(
            cls,
            handlers:Optional[HandlerRegistry]=None,
            stats:Optional[Mapping[str, Any]]=None,
            skills:Optional[Mapping[str, Any]]=None,
            templates:Optional[Mapping[str, Any]]=None,
            ability_checks:Optional[Mapping[str, Any]]=None,
            events:Optional[Mapping[str, Any]]=None,
            stories:Optional[Mapping[str, Any]]=None,
            pursuits:Optional[Mapping[str, Any]]=None,
            actions:Optional[Mapping[str, Any]]=None,
            creation:Optional[Mapping[str, Any]]=None) -> "Content":
        if handlers is None:
            handlers = default_registry()

        content = cls()
        content.stats = load_stats(stats or {})
        content.skills = load_skills(skills or {})
        templates = templates or {}
        content.character_templates = load_templates(templates.get("characters", {}))
        content.object_templates = load_templates(templates.get("objects", {}))
        if "genders" in templates:
            content.genders = list(templates["genders"])
        for check_id, d in (ability_checks or {}).items():
            content.ability_checks[check_id] = load_check(check_id, d)
        for event_id, d in (events or {}).items():
            content.events[event_id] = load_event(event_id, d)
        for story_id, d in (stories or {}).items():
            content.stories[story_id] = load_story(story_id, d)
        for pursuit_id, d in (pursuits or {}).items():
            content.pursuits[pursuit_id] = load_pursuit(pursuit_id, d)
        for action_id, d in (actions or {}).items():
            content.actions[action_id] = load_action(action_id, d)
        creation = creation or {}
        for choice_id, d in creation.get("choices", {}).items():
            content.creation_choices[choice_id] = load_creation_choice(choice_id, d)
        for set_id, choice_ids in creation.get("sets", {}).items():
            content.creation_sets[set_id] = list(choice_ids)

        content.validate(handlers)
        logger.info(f'loaded {len(content.actions)} actions, {len(content.events)} events, {len(content.stories)} stories, {len(content.pursuits)} pursuits')
        return content

    def validate(self, handlers:HandlerRegistry) -> None:
        """ checks cross references, raising ContentError on the first problem """
        checker = AbilityChecker(self.ability_checks)
        for event_id, event in self.events.items():
            handlers.validate(event_id, [event.handler])
        for action_id, action in self.actions.items():
            handlers.validate(action_id, [action.handler])
            if isinstance(action.ability_check, str) and action.ability_check not in self.ability_checks:
                raise core.ContentError(action_id, f'references unknown ability check {action.ability_check}')
            if isinstance(action.ability_check, Mapping) and "ref" in action.ability_check and action.ability_check["ref"] not in self.ability_checks:
                raise core.ContentError(action_id, f'references unknown ability check {action.ability_check["ref"]}')
            if isinstance(action.ability_check, Mapping):
                # inline checks resolve at run time, a bad one fails with errors
                errors = validate_check(checker.resolve_check(action.ability_check) or {})
                if errors:
                    logger.warning(f'{action_id} has an invalid ability check: {", ".join(errors)}')
        for story_id, story in self.stories.items():
            for chapter_id, chapter in story.chapters.items():
                handlers.validate(f'{story_id}:{chapter_id}', [chapter.success_handler, chapter.failure_handler])
        for set_id, choice_ids in self.creation_sets.items():
            for choice_id in choice_ids:
                if choice_id not in self.creation_choices:
                    raise core.ContentError(set_id, f'references unknown creation choice {choice_id}')
        for check_id, check in self.ability_checks.items():
            if check["skill"] not in self.skills:
                logger.warning(f'{check_id} checks unknown skill {check["skill"]}')
