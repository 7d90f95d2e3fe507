""" Ability checks: skill plus dice against a difficulty.

A check names a skill, dice in NdM notation and a difficulty. The player's
effective skill is their skill value, plus a deep memory bonus when they
reach for it, plus stat bonuses. Modifiers whose conditions hold raise (or
lower) the difficulty. The total of effective skill and the roll against the
effective difficulty decides the outcome tier.

Checks can be referenced by id from the content's check library, referenced
with overrides ({ref = "pick_lock", difficulty = 60}) or written inline.
"""

import dataclasses
import enum
import logging
import math
import re
from collections.abc import Mapping
from typing import Any, NamedTuple, Optional

from lastjump import config, core, conditions, util

logger = logging.getLogger(__name__)

class Outcome(enum.Enum):
    CRUSHING_FAILURE = "crushing_failure"
    FAILURE = "failure"
    SUCCESS = "success"
    CRUSHING_SUCCESS = "crushing_success"

    @property
    def succeeded(self) -> bool:
        return self in (Outcome.SUCCESS, Outcome.CRUSHING_SUCCESS)

class Odds(enum.Enum):
    VERY_LIKELY = "very likely"
    LIKELY = "likely"
    POSSIBLE = "possible"
    UNLIKELY = "unlikely"
    VERY_UNLIKELY = "very unlikely"
    UNKNOWN = "unknown"

@dataclasses.dataclass
class CheckResult:
    outcome:Outcome
    player_roll:float = 0
    effective_difficulty:float = 0
    roll:int = 0
    skill_value:float = 0
    margin:float = 0
    # non-empty when the check could not be resolved
    errors:list[str] = dataclasses.field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors

class Dice(NamedTuple):
    count:int
    sides:int

RE_DICE = re.compile(r'(\d+)d(\d+)')
RE_DIFFICULTY = re.compile(r'^([a-z_][a-z0-9_.]*)\s*([+-])\s*(\d+)$', re.IGNORECASE)

def parse_dice(notation:str) -> Dice:
    match = RE_DICE.search(notation or "")
    if not match or int(match.group(1)) < 1 or int(match.group(2)) < 1:
        default = RE_DICE.search(config.Settings.checks.default_dice)
        if not default:
            raise ValueError(f'checks.default_dice is not dice notation: {config.Settings.checks.default_dice!r}')
        logger.warning(f'bad dice notation {notation!r}, using {default.group(0)}')
        return Dice(int(default.group(1)), int(default.group(2)))
    return Dice(int(match.group(1)), int(match.group(2)))

def roll_dice(notation:str, gamestate:core.Gamestate) -> int:
    """ sums count draws of floor(draw * sides) + 1 """
    dice = parse_dice(notation)
    total = 0
    for _ in range(dice.count):
        total += math.floor(gamestate.draw() * dice.sides) + 1
    return total

def average_roll(notation:str) -> float:
    dice = parse_dice(notation)
    return dice.count * (dice.sides + 1) / 2

def determine_outcome(total:float, difficulty:float, crush_margin:Optional[float]=None) -> Outcome:
    if crush_margin and total < difficulty - crush_margin:
        return Outcome.CRUSHING_FAILURE
    elif total < difficulty:
        return Outcome.FAILURE
    elif crush_margin and total >= difficulty + crush_margin:
        return Outcome.CRUSHING_SUCCESS
    else:
        return Outcome.SUCCESS

def odds_for_margin(margin:float) -> Odds:
    wide = config.Settings.checks.odds_wide
    narrow = config.Settings.checks.odds_narrow
    if margin >= wide:
        return Odds.VERY_LIKELY
    elif margin >= narrow:
        return Odds.LIKELY
    elif margin >= -narrow:
        return Odds.POSSIBLE
    elif margin >= -wide:
        return Odds.UNLIKELY
    else:
        return Odds.VERY_UNLIKELY

def load_check(check_id:str, d:Mapping[str, Any]) -> dict[str, Any]:
    check = {util.camel_to_snake(k): v for k, v in d.items()}
    errors = validate_check(check)
    if errors:
        raise core.ContentError(check_id, ", ".join(errors))
    return check

def validate_check(check:Mapping[str, Any]) -> list[str]:
    errors = []
    if not check.get("skill"):
        errors.append("missing required field: skill")
    if not check.get("dice"):
        errors.append("missing required field: dice")
    if check.get("difficulty") is None:
        errors.append("missing required field: difficulty")
    for i, bonus in enumerate(util.as_list(check.get("bonuses"))):
        if not isinstance(bonus, Mapping) or not bonus.get("stat"):
            errors.append(f'bonus {i} needs a stat')
        elif not _is_number(bonus.get("scale", 1)):
            errors.append(f'bonus {i} scale must be a number')
    for i, modifier in enumerate(util.as_list(check.get("modifiers"))):
        if not isinstance(modifier, Mapping) or not _is_number(modifier.get("add")):
            errors.append(f'modifier {i} needs a numeric add')
    return errors

def _is_number(x:Any) -> bool:
    return isinstance(x, (int, float)) and not isinstance(x, bool)

class AbilityChecker:
    def __init__(self, checks:Mapping[str, Mapping[str, Any]]) -> None:
        self.logger = logging.getLogger(util.fullname(self))
        self.checks = checks

    def resolve_check(self, check:Any) -> Optional[dict[str, Any]]:
        """ the full check for an id, an id with overrides or an inline check

        overrides replace whole fields, lists included.
        """
        if isinstance(check, str):
            base = self.checks.get(check)
            if base is None:
                self.logger.error(f'unknown check reference {check}')
                return None
            return dict(base)
        if not isinstance(check, Mapping):
            self.logger.error(f'check must be an id or a record: {check!r}')
            return None

        check = {util.camel_to_snake(k): v for k, v in check.items()}
        if "ref" in check:
            base = self.checks.get(check["ref"])
            if base is None:
                self.logger.error(f'unknown check reference {check["ref"]}')
                return None
            merged = dict(base)
            merged.update({k: v for k, v in check.items() if k != "ref"})
            return merged
        return check

    def resolve_entity_path(self, path:str, gamestate:core.Gamestate) -> float:
        """ numeric value at entity.path, e.g. player.skills.hacking, else 0 """
        parts = path.split(".")
        if len(parts) < 2:
            return 0
        character = gamestate.get_character(parts[0])
        if character is None:
            return 0

        prop_path = parts[1:]
        if prop_path[0] == "skills" and len(prop_path) == 2:
            return gamestate.get_skill(character.character_id, prop_path[1])

        value:Any = character.to_dict()
        for prop in prop_path:
            if not isinstance(value, Mapping):
                return 0
            value = value.get(prop)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return 0
        return value

    def resolve_difficulty(self, difficulty:Any, gamestate:core.Gamestate) -> float:
        if isinstance(difficulty, (int, float)) and not isinstance(difficulty, bool):
            return difficulty
        if not isinstance(difficulty, str):
            self.logger.error(f'difficulty must be a number or an expression: {difficulty!r}')
            return 0

        match = RE_DIFFICULTY.match(difficulty.strip())
        if match:
            path, op, amount = match.groups()
            base = self.resolve_entity_path(path, gamestate)
            return base + int(amount) if op == "+" else base - int(amount)
        return self.resolve_entity_path(difficulty.strip(), gamestate)

    def effective_skill(self, check:Mapping[str, Any], gamestate:core.Gamestate, use_deep_memory:bool=False) -> float:
        skill_id = check["skill"]
        value = gamestate.get_skill(core.PLAYER, skill_id)
        if use_deep_memory:
            if gamestate.has_deep_skill(core.PLAYER, skill_id):
                value += config.Settings.checks.deep_skill_bonus
            else:
                value += config.Settings.checks.deep_memory_bonus
        for bonus in util.as_list(check.get("bonuses")):
            stat_value = gamestate.get_stat(core.PLAYER, bonus["stat"])
            value += math.floor(stat_value * bonus.get("scale", 1))
        return value

    def effective_difficulty(self, check:Mapping[str, Any], gamestate:core.Gamestate) -> float:
        difficulty = self.resolve_difficulty(check["difficulty"], gamestate)
        for modifier in util.as_list(check.get("modifiers")):
            if conditions.check(modifier.get("condition"), gamestate):
                difficulty += modifier.get("add", 0)
        return difficulty

    def check(self, check_spec:Any, gamestate:core.Gamestate, use_deep_memory:bool=False) -> CheckResult:
        """ resolves a check, invalid checks fail with errors rather than raise """
        check = self.resolve_check(check_spec)
        if check is None:
            gamestate.counters[core.Counters.CHECKS_INVALID] += 1
            return CheckResult(Outcome.FAILURE, errors=["invalid check reference"])
        errors = validate_check(check)
        if errors:
            self.logger.error(f'invalid check {", ".join(errors)}: {check}')
            gamestate.counters[core.Counters.CHECKS_INVALID] += 1
            return CheckResult(Outcome.FAILURE, errors=errors)

        # draws happen only in the dice roll
        skill_value = self.effective_skill(check, gamestate, use_deep_memory)
        roll = roll_dice(check["dice"], gamestate)
        player_roll = skill_value + roll
        difficulty = self.effective_difficulty(check, gamestate)
        outcome = determine_outcome(player_roll, difficulty, check.get("crush_margin"))

        gamestate.counters[core.Counters.CHECKS_RESOLVED] += 1
        self.logger.debug(f'{check["skill"]} check {skill_value}+{roll} vs {difficulty}: {outcome.value}')
        return CheckResult(
            outcome,
            player_roll=player_roll,
            effective_difficulty=difficulty,
            roll=roll,
            skill_value=skill_value,
            margin=player_roll - difficulty,
        )

    def estimate_odds(self, check_spec:Any, gamestate:core.Gamestate, use_deep_memory:bool=False) -> Odds:
        check = self.resolve_check(check_spec)
        if check is None or validate_check(check):
            return Odds.UNKNOWN
        expected = self.effective_skill(check, gamestate, use_deep_memory) + average_roll(check["dice"])
        return odds_for_margin(expected - self.effective_difficulty(check, gamestate))
