""" Condition records compiled into criteria over a Gamestate.

A condition record is a mapping of clause keys to arguments. Every clause
present must hold (implicit AND) and "all", "any" and "not" nest further
records. Records compile once into a tree of predicates.Criteria so they can
be evaluated repeatedly without reinterpreting content.

Evaluation never mutates the gamestate.
"""

import logging
import operator
from collections.abc import Callable, Mapping, Sequence
from typing import Any, Optional

from lastjump import core, predicates, util

logger = logging.getLogger(__name__)

Condition = predicates.Criteria[core.Gamestate]

OPERATORS:dict[str, Callable[[Any, Any], bool]] = {
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
    "==": operator.eq,
    "=": operator.eq,
    "!=": operator.ne,
    "<>": operator.ne,
}

def compare(current:float, op:str, target:float) -> bool:
    """ unknown operators compare false """
    fn = OPERATORS.get(op)
    if fn is None:
        return False
    return fn(current, target)

class HasFlag(Condition):
    def __init__(self, flags:Sequence[str]) -> None:
        self.flags = list(flags)

    def evaluate(self, gamestate:core.Gamestate) -> bool:
        return all(gamestate.has_flag(f) for f in self.flags)

class NotFlag(Condition):
    def __init__(self, flags:Sequence[str]) -> None:
        self.flags = list(flags)

    def evaluate(self, gamestate:core.Gamestate) -> bool:
        return not any(gamestate.has_flag(f) for f in self.flags)

class InChapter(Condition):
    def __init__(self, chapters:Mapping[str, str]) -> None:
        self.chapters = dict(chapters)

    def evaluate(self, gamestate:core.Gamestate) -> bool:
        for story_id, chapter in self.chapters.items():
            storyline = gamestate.storyline(story_id)
            if storyline is None or storyline.chapter != chapter:
                return False
        return True

class StatComparison(Condition):
    def __init__(self, character_ref:str, stat_id:str, op:str, value:float) -> None:
        self.character_ref = character_ref
        self.stat_id = stat_id
        self.op = op
        self.value = value

    def evaluate(self, gamestate:core.Gamestate) -> bool:
        return compare(gamestate.get_stat(self.character_ref, self.stat_id), self.op, self.value)

class SkillComparison(Condition):
    def __init__(self, character_ref:str, skill_id:str, op:str, value:float) -> None:
        self.character_ref = character_ref
        self.skill_id = skill_id
        self.op = op
        self.value = value

    def evaluate(self, gamestate:core.Gamestate) -> bool:
        return compare(gamestate.get_skill(self.character_ref, self.skill_id), self.op, self.value)

class DeepSkill(Condition):
    def __init__(self, skills:Sequence[str]) -> None:
        self.skills = list(skills)

    def evaluate(self, gamestate:core.Gamestate) -> bool:
        return all(gamestate.has_deep_skill(core.PLAYER, s) for s in self.skills)

class HasObjectOfType(Condition):
    def __init__(self, template_type:str) -> None:
        self.template_type = template_type

    def evaluate(self, gamestate:core.Gamestate) -> bool:
        return gamestate.has_object_of_type(core.PLAYER, self.template_type)

class WeekDivisibleBy(Condition):
    def __init__(self, divisor:int) -> None:
        self.divisor = divisor

    def evaluate(self, gamestate:core.Gamestate) -> bool:
        if self.divisor <= 0:
            return False
        return gamestate.week % self.divisor == 0

class MinWeek(Condition):
    def __init__(self, week:int) -> None:
        self.week = week

    def evaluate(self, gamestate:core.Gamestate) -> bool:
        return gamestate.week >= self.week

class MaxWeek(Condition):
    def __init__(self, week:int) -> None:
        self.week = week

    def evaluate(self, gamestate:core.Gamestate) -> bool:
        return gamestate.week <= self.week

class ObjectiveProgress(Condition):
    def __init__(self, story_id:str, op:str, value:float) -> None:
        self.story_id = story_id
        self.op = op
        self.value = value

    def evaluate(self, gamestate:core.Gamestate) -> bool:
        storyline = gamestate.storyline(self.story_id)
        progress = storyline.progress if storyline is not None and storyline.progress is not None else 0
        return compare(progress, self.op, self.value)

class ObjectiveComplete(Condition):
    """ storyline completed, optionally with a specific result """

    def __init__(self, story_id:str, result:Optional[str]=None) -> None:
        self.story_id = story_id
        self.result = result

    def evaluate(self, gamestate:core.Gamestate) -> bool:
        storyline = gamestate.storyline(self.story_id)
        if storyline is None or not storyline.completed:
            return False
        return self.result is None or storyline.result == self.result

class ObjectiveActive(Condition):
    def __init__(self, stories:Sequence[str]) -> None:
        self.stories = list(stories)

    def evaluate(self, gamestate:core.Gamestate) -> bool:
        for story_id in self.stories:
            storyline = gamestate.storyline(story_id)
            if storyline is None or storyline.completed:
                return False
        return True

class PursuitActive(Condition):
    """ pursuit is active, and for toggles, switched on """

    def __init__(self, pursuits:Sequence[str]) -> None:
        self.pursuits = list(pursuits)

    def evaluate(self, gamestate:core.Gamestate) -> bool:
        for pursuit_id in self.pursuits:
            state = gamestate.pursuits.get(pursuit_id)
            if state is None or not state.active:
                return False
            definition = gamestate.content.pursuits.get(pursuit_id)
            if definition is not None and definition.mode == "toggle" and not state.enabled:
                return False
        return True

class PursuitOption(Condition):
    def __init__(self, options:Mapping[str, str]) -> None:
        self.options = dict(options)

    def evaluate(self, gamestate:core.Gamestate) -> bool:
        for pursuit_id, option in self.options.items():
            state = gamestate.pursuits.get(pursuit_id)
            if state is None or not state.active or state.option != option:
                return False
        return True

class PursuitHours(Condition):
    def __init__(self, op:str, value:float) -> None:
        self.op = op
        self.value = value

    def evaluate(self, gamestate:core.Gamestate) -> bool:
        hours = sum(
            definition.hours_cost(gamestate.pursuits.get(pursuit_id))
            for pursuit_id, definition in gamestate.content.pursuits.items()
        )
        return compare(hours, self.op, self.value)

class JumpCount(Condition):
    def __init__(self, op:str, value:int) -> None:
        self.op = op
        self.value = value

    def evaluate(self, gamestate:core.Gamestate) -> bool:
        return compare(gamestate.jump_count, self.op, self.value)

def _comparison_args(key:str, value:Any, names:Sequence[str]) -> Optional[tuple[Any, ...]]:
    """ comparison clauses take a positional list or a table of named args """
    if isinstance(value, Mapping):
        try:
            args = tuple(value[n] for n in names)
        except KeyError as e:
            logger.warning(f'{key} clause missing {e.args[0]}: {value}')
            return None
    else:
        args = tuple(util.as_list(value))
        if len(args) != len(names):
            logger.warning(f'{key} clause expects {", ".join(names)}: {value}')
            return None
    op = args[names.index("op")]
    if op not in OPERATORS:
        logger.warning(f'{key} clause has unknown operator {op}, it will always be false')
    return args

def _load_stat(value:Any) -> Condition:
    args = _comparison_args("stat", value, ("stat", "op", "value"))
    if args is None:
        return predicates.Literal(False)
    return StatComparison(core.PLAYER, *args)

def _load_char_stat(value:Any) -> Condition:
    args = _comparison_args("char_stat", value, ("character", "stat", "op", "value"))
    if args is None:
        return predicates.Literal(False)
    return StatComparison(*args)

def _load_skill(value:Any) -> Condition:
    args = _comparison_args("skill", value, ("skill", "op", "value"))
    if args is None:
        return predicates.Literal(False)
    return SkillComparison(core.PLAYER, *args)

def _load_char_skill(value:Any) -> Condition:
    args = _comparison_args("char_skill", value, ("character", "skill", "op", "value"))
    if args is None:
        return predicates.Literal(False)
    return SkillComparison(*args)

def _load_objective_progress(value:Any) -> Condition:
    args = _comparison_args("objective_progress", value, ("story", "op", "value"))
    if args is None:
        return predicates.Literal(False)
    return ObjectiveProgress(*args)

def _load_objective_complete(value:Any) -> Condition:
    if isinstance(value, str):
        return ObjectiveComplete(value)
    terms:list[Condition] = []
    for story_id, result in value.items():
        terms.append(ObjectiveComplete(story_id, None if result is True else result))
    return predicates.Conjunction(terms)

def _load_jump_count(value:Any) -> Condition:
    args = _comparison_args("jump_count", value, ("op", "value"))
    if args is None:
        return predicates.Literal(False)
    return JumpCount(*args)

def _load_pursuit_hours(value:Any) -> Condition:
    args = _comparison_args("pursuit_hours", value, ("op", "value"))
    if args is None:
        return predicates.Literal(False)
    return PursuitHours(*args)

# clause keys in evaluation order
CLAUSE_LOADERS:dict[str, Callable[[Any], Condition]] = {
    "in_chapter": lambda v: InChapter(v),
    "has_flag": lambda v: HasFlag(util.as_list(v)),
    "not_flag": lambda v: NotFlag(util.as_list(v)),
    "flags": lambda v: HasFlag(util.as_list(v)),
    "stat": _load_stat,
    "char_stat": _load_char_stat,
    "skill": _load_skill,
    "char_skill": _load_char_skill,
    "deep_skill": lambda v: DeepSkill(util.as_list(v)),
    "week_divisible_by": lambda v: WeekDivisibleBy(int(v)),
    "min_week": lambda v: MinWeek(int(v)),
    "max_week": lambda v: MaxWeek(int(v)),
    "has_object_of_type": lambda v: HasObjectOfType(v),
    "player_has_object_of_type": lambda v: HasObjectOfType(v),
    "objective_progress": _load_objective_progress,
    "objective_complete": _load_objective_complete,
    "objective_active": lambda v: ObjectiveActive(util.as_list(v)),
    "pursuit_active": lambda v: PursuitActive(util.as_list(v)),
    "pursuit_option": lambda v: PursuitOption(v),
    "pursuit_hours": _load_pursuit_hours,
    "jump_count": _load_jump_count,
    "all": lambda v: predicates.Conjunction([load_criteria(x) for x in util.as_list(v)]),
    "any": lambda v: predicates.Disjunction([load_criteria(x) for x in util.as_list(v)]),
    "not": lambda v: predicates.Negation(load_criteria(v)),
}

def load_criteria(record:Any) -> Condition:
    """ compiles a condition record, an absent record is always true """
    if record is None:
        return predicates.Literal(True)
    if isinstance(record, predicates.Criteria):
        return record
    if not isinstance(record, Mapping):
        logger.warning(f'condition is not a record, treating as true: {record!r}')
        return predicates.Literal(True)

    clauses = {util.camel_to_snake(k): v for k, v in record.items()}
    for key in clauses:
        if key not in CLAUSE_LOADERS:
            logger.debug(f'ignoring unknown condition clause {key}')

    terms = [loader(clauses[key]) for key, loader in CLAUSE_LOADERS.items() if key in clauses]
    if len(terms) == 1:
        return terms[0]
    return predicates.Conjunction(terms)

def check(predicate:Any, gamestate:core.Gamestate) -> bool:
    """ evaluates a compiled criteria or a raw condition record """
    return load_criteria(predicate).evaluate(gamestate)
