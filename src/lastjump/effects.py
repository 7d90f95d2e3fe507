""" Declarative effects that mutate the gamestate.

An effect list is applied in order. Each record may carry several effect
keys, which are applied in the fixed order of EFFECTS below. show_text
effects queue text which is returned joined by blank lines.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Callable, Mapping, Sequence
from typing import Any, Optional

from lastjump import core, util
from lastjump import pursuits

logger = logging.getLogger(__name__)

@dataclasses.dataclass
class EffectContext:
    """ collaborators effects may use while executing """
    interpolate:Optional[Callable[[str], str]] = None

def parse_args(key:str, value:Any, names:Sequence[str], defaults:Optional[Mapping[str, Any]]=None) -> Optional[tuple[Any, ...]]:
    """ effect arguments come as a positional list or a table of named args

    trailing arguments with a default may be omitted.
    """
    defaults = defaults or {}
    if isinstance(value, Mapping):
        args = []
        for n in names:
            if n in value:
                args.append(value[n])
            elif n in defaults:
                args.append(defaults[n])
            else:
                logger.warning(f'{key} effect missing {n}: {value}')
                return None
        return tuple(args)

    args = util.as_list(value)
    for n in names[len(args):]:
        if n not in defaults:
            logger.warning(f'{key} effect expects {", ".join(names)}: {value}')
            return None
        args.append(defaults[n])
    return tuple(args[:len(names)])

def _set_flag(gamestate:core.Gamestate, value:Any, context:EffectContext) -> Optional[str]:
    for flag in util.as_list(value):
        gamestate.set_flag(flag, True)
    return None

def _clear_flag(gamestate:core.Gamestate, value:Any, context:EffectContext) -> Optional[str]:
    for flag in util.as_list(value):
        gamestate.clear_flag(flag)
    return None

def _modify_stat(gamestate:core.Gamestate, value:Any, context:EffectContext) -> Optional[str]:
    args = parse_args("modify_stat", value, ("stat", "delta"))
    if args is not None:
        stat_id, delta = args
        gamestate.modify_stat(core.PLAYER, stat_id, util.to_number(delta))
    return None

def _set_stat(gamestate:core.Gamestate, value:Any, context:EffectContext) -> Optional[str]:
    args = parse_args("set_stat", value, ("stat", "value"))
    if args is not None:
        stat_id, stat_value = args
        gamestate.set_stat(core.PLAYER, stat_id, util.to_number(stat_value))
    return None

def _modify_char_stat(gamestate:core.Gamestate, value:Any, context:EffectContext) -> Optional[str]:
    args = parse_args("modify_char_stat", value, ("character", "stat", "delta"))
    if args is not None:
        character_ref, stat_id, delta = args
        gamestate.modify_stat(character_ref, stat_id, util.to_number(delta))
    return None

def _set_char_stat(gamestate:core.Gamestate, value:Any, context:EffectContext) -> Optional[str]:
    args = parse_args("set_char_stat", value, ("character", "stat", "value"))
    if args is not None:
        character_ref, stat_id, stat_value = args
        gamestate.set_stat(character_ref, stat_id, util.to_number(stat_value))
    return None

def _set_char_flag(gamestate:core.Gamestate, value:Any, context:EffectContext) -> Optional[str]:
    args = parse_args("set_char_flag", value, ("character", "flag", "value"), {"value": True})
    if args is not None:
        character_ref, flag, flag_value = args
        gamestate.set_character_flag(character_ref, flag, flag_value)
    return None

def _give_object(gamestate:core.Gamestate, value:Any, context:EffectContext) -> Optional[str]:
    if isinstance(value, str):
        value = {"template": value}
    if "template" not in value:
        logger.warning(f'give_object effect missing template: {value}')
        return None
    gamestate.create_object(value["template"], value.get("name"), value.get("state"), owner_ref=core.PLAYER)
    return None

def _remove_object_of_type(gamestate:core.Gamestate, value:Any, context:EffectContext) -> Optional[str]:
    objs = gamestate.get_character_objects(core.PLAYER, value)
    if objs:
        gamestate.remove_object(objs[0].object_id)
    return None

def _advance_chapter(gamestate:core.Gamestate, value:Any, context:EffectContext) -> Optional[str]:
    args = parse_args("advance_chapter", value, ("story", "chapter"))
    if args is not None:
        gamestate.advance_chapter(*args)
    return None

def _enter_story(gamestate:core.Gamestate, value:Any, context:EffectContext) -> Optional[str]:
    for story_id in util.as_list(value):
        gamestate.enter_story(story_id)
    return None

def _modify_objective_progress(gamestate:core.Gamestate, value:Any, context:EffectContext) -> Optional[str]:
    args = parse_args("modify_objective_progress", value, ("story", "delta"))
    if args is not None:
        story_id, delta = args
        gamestate.modify_objective_progress(story_id, util.to_number(delta))
    return None

def _set_objective_progress(gamestate:core.Gamestate, value:Any, context:EffectContext) -> Optional[str]:
    args = parse_args("set_objective_progress", value, ("story", "value"))
    if args is not None:
        story_id, progress = args
        gamestate.set_objective_progress(story_id, util.to_number(progress))
    return None

def _modify_skill(gamestate:core.Gamestate, value:Any, context:EffectContext) -> Optional[str]:
    args = parse_args("modify_skill", value, ("skill", "delta"))
    if args is not None:
        skill_id, delta = args
        gamestate.modify_skill(core.PLAYER, skill_id, util.to_number(delta))
    return None

def _set_skill(gamestate:core.Gamestate, value:Any, context:EffectContext) -> Optional[str]:
    args = parse_args("set_skill", value, ("skill", "value"))
    if args is not None:
        skill_id, skill_value = args
        gamestate.set_skill(core.PLAYER, skill_id, util.to_number(skill_value))
    return None

def _grant_deep_skill(gamestate:core.Gamestate, value:Any, context:EffectContext) -> Optional[str]:
    for skill_id in util.as_list(value):
        gamestate.grant_deep_skill(core.PLAYER, skill_id)
    return None

def _start_pursuit(gamestate:core.Gamestate, value:Any, context:EffectContext) -> Optional[str]:
    for pursuit_id in util.as_list(value):
        pursuits.activate(gamestate, pursuit_id)
    return None

def _end_pursuit(gamestate:core.Gamestate, value:Any, context:EffectContext) -> Optional[str]:
    texts = []
    for pursuit_id in util.as_list(value):
        text = pursuits.deactivate(gamestate, pursuit_id)
        if text:
            texts.append(text)
    return "\n\n".join(texts) if texts else None

def _ensure_possession(gamestate:core.Gamestate, value:Any, context:EffectContext) -> Optional[str]:
    """ creates the possession, or updates the state of the existing one """
    args = parse_args("ensure_possession", value, ("type", "state"), {"state": None})
    if args is None:
        return None
    template_type, state = args
    objs = gamestate.get_character_objects(core.PLAYER, template_type)
    if objs:
        objs[0].state.update(state or {})
    else:
        gamestate.create_object(template_type, template_type, state, owner_ref=core.PLAYER)
    return None

def _show_text(gamestate:core.Gamestate, value:Any, context:EffectContext) -> Optional[str]:
    text = str(value)
    if context.interpolate is not None:
        text = context.interpolate(text)
    return text

EffectFn = Callable[[core.Gamestate, Any, EffectContext], Optional[str]]

# application order for keys within one effect record
EFFECTS:dict[str, EffectFn] = {
    "set_flag": _set_flag,
    "clear_flag": _clear_flag,
    "modify_stat": _modify_stat,
    "set_stat": _set_stat,
    "modify_char_stat": _modify_char_stat,
    "set_char_stat": _set_char_stat,
    "set_char_flag": _set_char_flag,
    "give_object": _give_object,
    "remove_object_of_type": _remove_object_of_type,
    "advance_chapter": _advance_chapter,
    "enter_story": _enter_story,
    "modify_objective_progress": _modify_objective_progress,
    "set_objective_progress": _set_objective_progress,
    "modify_skill": _modify_skill,
    "set_skill": _set_skill,
    "grant_deep_skill": _grant_deep_skill,
    "start_pursuit": _start_pursuit,
    "end_pursuit": _end_pursuit,
    "ensure_possession": _ensure_possession,
    "show_text": _show_text,
}

def normalize(effects:Optional[Sequence[Mapping[str, Any]]]) -> list[dict[str, Any]]:
    """ snake cases effect keys, leaves unknown keys in place """
    normalized = []
    for effect in effects or []:
        normalized.append({util.camel_to_snake(k): v for k, v in effect.items()})
    return normalized

def execute(effects:Optional[Sequence[Mapping[str, Any]]], gamestate:core.Gamestate, context:Optional[EffectContext]=None) -> Optional[str]:
    """ applies effects in order and returns any queued text """
    if not effects:
        return None
    if context is None:
        context = EffectContext()

    text_parts:list[str] = []
    for effect in normalize(effects):
        for key in effect:
            if key not in EFFECTS and key not in ("max",):
                logger.debug(f'ignoring unknown effect {key}')
        for key, fn in EFFECTS.items():
            if key not in effect or effect[key] is None:
                continue
            text = fn(gamestate, effect[key], context)
            if text is not None:
                text_parts.append(text)

    return "\n\n".join(text_parts) if text_parts else None

def execute_with_probability(effects:Optional[Sequence[Mapping[str, Any]]], gamestate:core.Gamestate, probability:float=1., context:Optional[EffectContext]=None) -> Optional[str]:
    """ all or nothing, one draw decides whether any of the effects apply """
    if probability < 1 and gamestate.draw() > probability:
        return None
    return execute(effects, gamestate, context)
