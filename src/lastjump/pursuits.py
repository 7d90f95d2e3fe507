""" Pursuits: ongoing weekly activities that spend the player's time.

Every pursuit costs hours each week. The first free_hours are free, every
hours_per_action beyond that costs an action point. The fractional part of
the remaining action budget is the chance of a bonus action this week.

Pursuit modes:
 * action: started and ended by content effects only (a job, a course)
 * toggle: switched on or off when the week starts
 * select: one of several options chosen when the week starts
 * number: a value entered when the week starts
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping, Sequence
from typing import Any, NamedTuple, Optional

from lastjump import config, core, util
from lastjump import conditions, effects

logger = logging.getLogger(__name__)

ACTION = "action"
TOGGLE = "toggle"
SELECT = "select"
NUMBER = "number"
MODES = (ACTION, TOGGLE, SELECT, NUMBER)

class PursuitOption:
    def __init__(self, option_id:str, name:str, hours_cost:float=0, weekly_effects:Optional[Sequence[Mapping[str, Any]]]=None, requirements:Optional[Mapping[str, Any]]=None) -> None:
        self.option_id = option_id
        self.name = name
        self.hours_cost = hours_cost
        self.weekly_effects = effects.normalize(weekly_effects)
        self.requirements = conditions.load_criteria(requirements) if requirements else None

class PursuitDefinition:
    def __init__(self, pursuit_id:str, name:str, mode:str, description:str="", hours_cost:float=0, default:Any=None) -> None:
        self.pursuit_id = pursuit_id
        self.name = name
        self.mode = mode
        self.description = description
        self.hours_cost_per_week = hours_cost
        self.default = default
        self.weekly_effects:list[dict[str, Any]] = []
        self.exit_conditions:Optional[conditions.Condition] = None
        self.exit_effects:list[dict[str, Any]] = []
        self.tags:list[str] = []
        self.exclusive:list[str] = []
        self.options:dict[str, PursuitOption] = {}

        # number mode bounds
        self.min_value:float = 0
        self.max_value:Optional[float] = None
        self.step:float = 1
        # a player stat that bounds the value, e.g. savings can't exceed money
        self.max_stat:Optional[str] = None

    def hours_cost(self, state:Optional[core.PursuitState]) -> float:
        """ hours this pursuit takes this week given its configuration """
        if state is None or not state.active:
            return 0
        if self.mode == ACTION:
            return self.hours_cost_per_week
        elif self.mode == TOGGLE:
            return self.hours_cost_per_week if state.enabled else 0
        elif self.mode == SELECT:
            option = self.options.get(state.option) if state.option is not None else None
            return option.hours_cost if option is not None else 0
        elif self.mode == NUMBER:
            return self.hours_cost_per_week if (state.value or 0) > 0 else 0
        else:
            return 0

    def active_weekly_effects(self, state:core.PursuitState) -> list[dict[str, Any]]:
        if not state.active:
            return []
        if self.mode == ACTION:
            return self.weekly_effects
        elif self.mode == TOGGLE:
            return self.weekly_effects if state.enabled else []
        elif self.mode == SELECT:
            option = self.options.get(state.option) if state.option is not None else None
            return option.weekly_effects if option is not None else []
        elif self.mode == NUMBER:
            return self.weekly_effects if (state.value or 0) > 0 else []
        else:
            return []

def load_pursuit(pursuit_id:str, d:Mapping[str, Any]) -> PursuitDefinition:
    mode = d.get("mode", ACTION)
    if mode not in MODES:
        raise core.ContentError(pursuit_id, f'unknown pursuit mode {mode}')

    pursuit = PursuitDefinition(
        pursuit_id,
        d.get("name", pursuit_id),
        mode,
        description=d.get("description", ""),
        hours_cost=d.get("hours_cost", 0),
        default=d.get("default"),
    )
    pursuit.weekly_effects = effects.normalize(d.get("weekly_effects"))
    if "exit_conditions" in d:
        pursuit.exit_conditions = conditions.load_criteria(d["exit_conditions"])
    pursuit.exit_effects = effects.normalize(d.get("exit_effects"))
    pursuit.tags = list(d.get("tags", []))
    pursuit.exclusive = list(d.get("exclusive", []))
    for option_id, o in d.get("options", {}).items():
        pursuit.options[option_id] = PursuitOption(
            option_id,
            o.get("name", option_id),
            hours_cost=o.get("hours_cost", 0),
            weekly_effects=o.get("weekly_effects"),
            requirements=o.get("requirements"),
        )
    if mode == SELECT and not pursuit.options:
        raise core.ContentError(pursuit_id, "select pursuit has no options")
    if mode == SELECT and pursuit.default is not None and pursuit.default not in pursuit.options:
        raise core.ContentError(pursuit_id, f'default option {pursuit.default} is not an option')

    pursuit.min_value = d.get("min", 0)
    pursuit.max_value = d.get("max")
    pursuit.step = d.get("step", 1)
    pursuit.max_stat = d.get("max_stat")
    return pursuit

class EffectiveActions(NamedTuple):
    guaranteed:int
    bonus_chance:float

def effective_actions(base_actions:float, pursuit_hours:float, free_hours:Optional[float]=None, hours_per_action:Optional[float]=None) -> EffectiveActions:
    """ converts a week's pursuit hours into an action budget """
    if free_hours is None:
        free_hours = config.Settings.pursuits.free_hours
    if hours_per_action is None:
        hours_per_action = config.Settings.pursuits.hours_per_action

    excess_hours = max(0., pursuit_hours - free_hours)
    actions = max(0., base_actions - excess_hours / hours_per_action)
    guaranteed = math.floor(actions)
    return EffectiveActions(guaranteed, actions - guaranteed)

def _definition(gamestate:core.Gamestate, pursuit_id:str) -> Optional[PursuitDefinition]:
    pursuit = gamestate.content.pursuits.get(pursuit_id)
    if pursuit is None:
        logger.warning(f'unknown pursuit {pursuit_id}')
    return pursuit

def init_defaults(gamestate:core.Gamestate) -> None:
    """ starts every pursuit the player configures weekly """
    gamestate.pursuits = {}
    for pursuit_id, pursuit in gamestate.content.pursuits.items():
        if pursuit.mode != ACTION:
            activate(gamestate, pursuit_id)

def activate(gamestate:core.Gamestate, pursuit_id:str) -> Optional[core.PursuitState]:
    pursuit = _definition(gamestate, pursuit_id)
    if pursuit is None:
        return None

    conflicts = get_conflicting_pursuits(gamestate, pursuit_id)
    if conflicts:
        logger.info(f'{pursuit_id} conflicts with active pursuits {conflicts}')

    state = core.PursuitState(pursuit_id, gamestate.week)
    if pursuit.mode == TOGGLE:
        state.enabled = bool(pursuit.default) if pursuit.default is not None else False
    elif pursuit.mode == SELECT:
        state.option = pursuit.default if pursuit.default is not None else next(iter(pursuit.options))
    elif pursuit.mode == NUMBER:
        state.value = pursuit.default if pursuit.default is not None else 0

    gamestate.pursuits[pursuit_id] = state
    logger.debug(f'activated pursuit {pursuit_id}')
    return state

def deactivate(gamestate:core.Gamestate, pursuit_id:str) -> Optional[str]:
    """ ends an active pursuit, returns any text its exit effects produce """
    state = gamestate.pursuits.get(pursuit_id)
    if state is None or not state.active:
        return None
    state.active = False
    logger.debug(f'deactivated pursuit {pursuit_id}')
    pursuit = gamestate.content.pursuits.get(pursuit_id)
    if pursuit is not None and pursuit.exit_effects:
        return effects.execute(pursuit.exit_effects, gamestate)
    return None

def total_hours(gamestate:core.Gamestate) -> float:
    hours = 0.
    for pursuit_id, state in gamestate.pursuits.items():
        pursuit = gamestate.content.pursuits.get(pursuit_id)
        if pursuit is None:
            continue
        hours += pursuit.hours_cost(state)
    return hours

def calculate_effective_actions(gamestate:core.Gamestate) -> EffectiveActions:
    return effective_actions(config.Settings.game.actions_per_week, total_hours(gamestate))

def check_exit_conditions(gamestate:core.Gamestate) -> dict[str, Optional[str]]:
    """ ends action pursuits whose exit conditions hold

    returns the ended pursuit ids with the text their exit effects produced.
    """
    ended:dict[str, Optional[str]] = {}
    for pursuit_id, state in list(gamestate.pursuits.items()):
        if not state.active:
            continue
        pursuit = gamestate.content.pursuits.get(pursuit_id)
        if pursuit is None or pursuit.mode != ACTION or pursuit.exit_conditions is None:
            continue
        if pursuit.exit_conditions.evaluate(gamestate):
            ended[pursuit_id] = deactivate(gamestate, pursuit_id)
    return ended

def _substitute_input(delta:Any, value:float) -> float:
    if isinstance(delta, str):
        s = delta.strip()
        if s in ("$input", "+$input"):
            return value
        elif s == "-$input":
            return -value
        return util.to_number(s)
    return util.to_number(delta)

def prepare_weekly_effects(gamestate:core.Gamestate, pursuit:PursuitDefinition, state:core.PursuitState) -> list[dict[str, Any]]:
    """ resolves $input deltas and max caps against the current gamestate """
    prepared = []
    for effect in pursuit.active_weekly_effects(state):
        effect = dict(effect)
        if "modify_stat" in effect:
            args = effects.parse_args("modify_stat", effect["modify_stat"], ("stat", "delta"))
            if args is None:
                continue
            stat_id, delta = args
            if pursuit.mode == NUMBER:
                delta = _substitute_input(delta, state.value or 0)
            else:
                delta = util.to_number(delta)

            cap = effect.pop("max", None)
            if cap is not None:
                current = gamestate.get_stat(core.PLAYER, stat_id)
                if current >= cap:
                    continue
                delta = min(delta, cap - current)
            effect["modify_stat"] = [stat_id, delta]
        prepared.append(effect)
    return prepared

def apply_weekly_effects(gamestate:core.Gamestate) -> Optional[str]:
    texts = []
    for pursuit_id, state in list(gamestate.pursuits.items()):
        if not state.active:
            continue
        pursuit = gamestate.content.pursuits.get(pursuit_id)
        if pursuit is None:
            continue
        prepared = prepare_weekly_effects(gamestate, pursuit, state)
        if prepared:
            text = effects.execute(prepared, gamestate)
            if text:
                texts.append(text)
    return "\n\n".join(texts) if texts else None

def get_conflicting_pursuits(gamestate:core.Gamestate, pursuit_id:str) -> list[str]:
    """ active pursuits that exclude pursuit_id or that pursuit_id excludes """
    pursuit = gamestate.content.pursuits.get(pursuit_id)
    if pursuit is None:
        return []

    conflicts = []
    for other_id, state in gamestate.pursuits.items():
        if other_id == pursuit_id or not state.active:
            continue
        other = gamestate.content.pursuits.get(other_id)
        if other is None:
            continue
        if any(tag in other.tags for tag in pursuit.exclusive):
            conflicts.append(other_id)
        elif any(tag in pursuit.tags for tag in other.exclusive):
            conflicts.append(other_id)
    return conflicts

def is_option_available(gamestate:core.Gamestate, pursuit_id:str, option_id:str) -> bool:
    pursuit = gamestate.content.pursuits.get(pursuit_id)
    if pursuit is None or option_id not in pursuit.options:
        return False
    option = pursuit.options[option_id]
    return option.requirements is None or option.requirements.evaluate(gamestate)

def available_options(gamestate:core.Gamestate, pursuit_id:str) -> list[PursuitOption]:
    pursuit = gamestate.content.pursuits.get(pursuit_id)
    if pursuit is None:
        return []
    return [o for o in pursuit.options.values() if is_option_available(gamestate, pursuit_id, o.option_id)]

def number_bounds(gamestate:core.Gamestate, pursuit:PursuitDefinition) -> tuple[float, Optional[float]]:
    upper = pursuit.max_value
    if pursuit.max_stat is not None:
        stat_max = gamestate.get_stat(core.PLAYER, pursuit.max_stat)
        upper = stat_max if upper is None else min(upper, stat_max)
    return pursuit.min_value, upper

def configurable_pursuits(gamestate:core.Gamestate) -> list[PursuitDefinition]:
    """ what the week start configuration shows: settable pursuits and active action pursuits """
    shown = []
    for pursuit_id, pursuit in gamestate.content.pursuits.items():
        state = gamestate.pursuits.get(pursuit_id)
        if pursuit.mode == ACTION and (state is None or not state.active):
            continue
        shown.append(pursuit)
    return shown

def _configurable_state(gamestate:core.Gamestate, pursuit_id:str, mode:str) -> Optional[core.PursuitState]:
    pursuit = _definition(gamestate, pursuit_id)
    if pursuit is None:
        return None
    if pursuit.mode != mode:
        raise ValueError(f'{pursuit_id} is a {pursuit.mode} pursuit, not {mode}')
    state = gamestate.pursuits.get(pursuit_id)
    if state is None or not state.active:
        state = activate(gamestate, pursuit_id)
    return state

def set_enabled(gamestate:core.Gamestate, pursuit_id:str, enabled:bool) -> None:
    state = _configurable_state(gamestate, pursuit_id, TOGGLE)
    if state is not None:
        state.enabled = enabled

def set_option(gamestate:core.Gamestate, pursuit_id:str, option_id:str) -> bool:
    state = _configurable_state(gamestate, pursuit_id, SELECT)
    if state is None:
        return False
    if not is_option_available(gamestate, pursuit_id, option_id):
        logger.info(f'option {option_id} of {pursuit_id} is not available')
        return False
    state.option = option_id
    return True

def set_value(gamestate:core.Gamestate, pursuit_id:str, value:float) -> float:
    """ sets a number pursuit, clamped to its bounds, returns the value set """
    state = _configurable_state(gamestate, pursuit_id, NUMBER)
    if state is None:
        return 0
    lower, upper = number_bounds(gamestate, gamestate.content.pursuits[pursuit_id])
    state.value = util.clip(value, lower, upper)
    return state.value
