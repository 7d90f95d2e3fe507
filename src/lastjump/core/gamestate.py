""" The world: everything content reads and mutates, passed explicitly. """

import enum
import itertools
import logging
from collections.abc import Callable, Mapping
from typing import Any, Optional, TYPE_CHECKING

import numpy as np

from lastjump import util
from .base import resolve_template
from .character import Character, Possession
from .progress import Storyline, PursuitState, ScheduleEntry

if TYPE_CHECKING:
    from lastjump.content import Content

# content may refer to the player character by this alias
PLAYER = "player"

class Counters(enum.IntEnum):
    def _generate_next_value_(name, start, count, last_values): # type: ignore
        """generate consecutive automatic numbers starting from zero"""
        return count
    EVENTS_EVALUATED = enum.auto()
    EVENTS_FIRED = enum.auto()
    EVENTS_SUPERSEDED = enum.auto()
    EVENTS_RETIRED = enum.auto()
    EVENTS_ROLL_FAILED = enum.auto()
    EVENTS_MISSED = enum.auto()
    CHECKS_RESOLVED = enum.auto()
    CHECKS_INVALID = enum.auto()
    STORY_TRANSITIONS = enum.auto()
    STORY_COMPLETIONS = enum.auto()
    BONUS_ACTIONS = enum.auto()

class Gamestate:
    """ Global state plus every character, object, storyline and pursuit.

    Accessors fail soft: reads against missing characters or objects yield
    zero, None or empty and writes against them do nothing.
    """

    def __init__(self, content:"Content", seed:Optional[int]=None) -> None:
        self.logger = logging.getLogger(util.fullname(self))
        self.content = content

        self.random = np.random.default_rng(seed)
        # tests substitute a scripted source here
        self.random_source:Optional[Callable[[], float]] = None

        self.week = 1
        self.actions_remaining = 0
        self.week_start_actions = 0
        self.jump_count = 0
        self.player_id:Optional[str] = None
        self.next_id = 1

        self.flags:dict[str, bool] = {}
        # event ids that never fire again
        self.completed_events:set[str] = set()
        self.characters:dict[str, Character] = {}
        self.objects:dict[str, Possession] = {}
        self.storylines:dict[str, Storyline] = {}
        self.pursuits:dict[str, PursuitState] = {}
        self.event_schedule:dict[str, ScheduleEntry] = {}

        self.counters = [0.] * len(Counters)

    def draw(self) -> float:
        """ one uniform draw in [0, 1), the only randomness content sees """
        if self.random_source is not None:
            return self.random_source()
        return float(self.random.random())

    def generate_id(self, prefix:str) -> str:
        entity_id = f'{prefix}_{self.next_id}'
        self.next_id += 1
        return entity_id

    # characters

    def resolve_character_id(self, character_ref:Optional[str]) -> Optional[str]:
        if character_ref == PLAYER:
            return self.player_id
        return character_ref

    def get_character(self, character_ref:Optional[str]) -> Optional[Character]:
        character_id = self.resolve_character_id(character_ref)
        if character_id is None:
            return None
        return self.characters.get(character_id)

    @property
    def player(self) -> Optional[Character]:
        return self.get_character(PLAYER)

    def create_character(self, template_type:str, name:Optional[str]=None, gender:Optional[str]=None, stats:Optional[Mapping[str, float]]=None) -> Character:
        """ creates a character with registry defaults overridden by template """
        template = resolve_template(self.content.character_templates, template_type)
        character = Character(
            self.generate_id("char"),
            template_type,
            name if name is not None else (template.name or template_type),
            gender if gender is not None else template.gender,
        )
        character.stats = self.content.stats.defaults()
        for stat_id, value in template.stats.items():
            character.stats[stat_id] = self.content.stats.clamp(stat_id, value)
        if stats:
            for stat_id, value in stats.items():
                character.stats[stat_id] = self.content.stats.clamp(stat_id, value)
        character.traits = list(template.traits)
        self.characters[character.character_id] = character
        self.logger.debug(f'created character {character}')
        return character

    def set_gender(self, character_ref:str, gender:Optional[str]) -> bool:
        character = self.get_character(character_ref)
        if character is None:
            return False
        if gender is not None and gender not in self.content.genders:
            self.logger.warning(f'unknown gender {gender} for {character}')
            return False
        character.gender = gender
        return True

    # objects

    def create_object(self, template_type:str, name:Optional[str]=None, state:Optional[Mapping[str, Any]]=None, owner_ref:Optional[str]=None) -> Possession:
        template = resolve_template(self.content.object_templates, template_type)
        obj_state = dict(template.state)
        if state:
            obj_state.update(state)
        obj = Possession(
            self.generate_id("obj"),
            template_type,
            name if name is not None else (template.name or template_type),
            obj_state,
        )
        self.objects[obj.object_id] = obj
        if owner_ref is not None:
            self.give_object(obj.object_id, owner_ref)
        return obj

    def give_object(self, object_id:str, character_ref:str) -> bool:
        """ moves object to character, removing it from any previous owner """
        obj = self.objects.get(object_id)
        character = self.get_character(character_ref)
        if obj is None or character is None:
            return False
        self.remove_object(object_id)
        obj.owner_id = character.character_id
        character.inventory.append(object_id)
        return True

    def remove_object(self, object_id:str) -> bool:
        """ takes object away from its owner, the object itself persists """
        obj = self.objects.get(object_id)
        if obj is None:
            return False
        if obj.owner_id is not None:
            owner = self.characters.get(obj.owner_id)
            if owner is not None and object_id in owner.inventory:
                owner.inventory.remove(object_id)
            obj.owner_id = None
        return True

    def get_character_objects(self, character_ref:str, template_type:Optional[str]=None) -> list[Possession]:
        character = self.get_character(character_ref)
        if character is None:
            return []
        objs = [self.objects[x] for x in character.inventory if x in self.objects]
        if template_type is not None:
            objs = [x for x in objs if x.template_type == template_type]
        return objs

    def has_object_of_type(self, character_ref:str, template_type:str) -> bool:
        return len(self.get_character_objects(character_ref, template_type)) > 0

    # stats

    def get_stat(self, character_ref:str, stat_id:str) -> float:
        character = self.get_character(character_ref)
        if character is None:
            return 0
        return character.stats.get(stat_id, 0)

    def set_stat(self, character_ref:str, stat_id:str, value:float) -> None:
        character = self.get_character(character_ref)
        if character is None:
            return
        character.stats[stat_id] = self.content.stats.clamp(stat_id, value)

    def modify_stat(self, character_ref:str, stat_id:str, delta:float) -> None:
        self.set_stat(character_ref, stat_id, self.get_stat(character_ref, stat_id) + delta)

    # skills

    def get_skill(self, character_ref:str, skill_id:str) -> float:
        """ effective skill value, specific skills stack on their parent """
        character = self.get_character(character_ref)
        if character is None:
            return 0
        definition = self.content.skills.get(skill_id)
        if definition is None:
            self.logger.debug(f'unknown skill {skill_id}')
            return character.general_skills.get(skill_id, character.specific_skills.get(skill_id, 0))
        if definition.is_specific:
            base = character.general_skills.get(definition.parent, 0) if definition.parent else 0
            return base + character.specific_skills.get(skill_id, 0)
        return character.general_skills.get(skill_id, 0)

    def _skill_table(self, character:Character, skill_id:str) -> dict[str, float]:
        definition = self.content.skills.get(skill_id)
        if definition is not None and definition.is_specific:
            return character.specific_skills
        return character.general_skills

    def set_skill(self, character_ref:str, skill_id:str, value:float) -> None:
        character = self.get_character(character_ref)
        if character is None:
            return
        if skill_id not in self.content.skills:
            self.logger.warning(f'setting unknown skill {skill_id}')
        self._skill_table(character, skill_id)[skill_id] = max(0, value)

    def modify_skill(self, character_ref:str, skill_id:str, delta:float) -> None:
        character = self.get_character(character_ref)
        if character is None:
            return
        table = self._skill_table(character, skill_id)
        self.set_skill(character_ref, skill_id, table.get(skill_id, 0) + delta)

    def has_deep_skill(self, character_ref:str, skill_id:str) -> bool:
        character = self.get_character(character_ref)
        return character is not None and skill_id in character.deep_skills

    def grant_deep_skill(self, character_ref:str, skill_id:str) -> None:
        character = self.get_character(character_ref)
        if character is None:
            return
        character.deep_skills.add(skill_id)

    # flags

    def set_flag(self, flag:str, value:bool=True) -> None:
        self.flags[flag] = bool(value)

    def clear_flag(self, flag:str) -> None:
        self.flags[flag] = False

    def has_flag(self, flag:str) -> bool:
        return self.flags.get(flag, False)

    def set_character_flag(self, character_ref:str, flag:str, value:bool=True) -> None:
        character = self.get_character(character_ref)
        if character is None:
            return
        character.flags[flag] = bool(value)

    def has_character_flag(self, character_ref:str, flag:str) -> bool:
        character = self.get_character(character_ref)
        return character is not None and character.flags.get(flag, False)

    # storylines

    def storyline(self, story_id:str) -> Optional[Storyline]:
        return self.storylines.get(story_id)

    def enter_story(self, story_id:str, chapter:Optional[str]=None) -> Optional[Storyline]:
        """ starts a storyline at its initial chapter, no-op if already started """
        if story_id in self.storylines:
            return self.storylines[story_id]
        story = self.content.stories.get(story_id)
        if story is None:
            self.logger.warning(f'cannot enter unknown story {story_id}')
            return None
        storyline = Storyline(story_id, chapter or story.initial_chapter)
        self.storylines[story_id] = storyline
        self.logger.info(f'entered story {storyline}')
        return storyline

    def advance_chapter(self, story_id:str, chapter:str) -> bool:
        storyline = self.storylines.get(story_id)
        if storyline is None:
            self.logger.warning(f'cannot advance {story_id}, not started')
            return False
        if storyline.completed:
            return False
        storyline.chapter = chapter
        storyline.entered_chapter = True
        self.counters[Counters.STORY_TRANSITIONS] += 1
        self.logger.debug(f'advanced to {storyline}')
        return True

    def set_objective_progress(self, story_id:str, value:float) -> None:
        storyline = self.storylines.get(story_id)
        if storyline is None:
            return
        storyline.progress = value

    def modify_objective_progress(self, story_id:str, delta:float) -> None:
        storyline = self.storylines.get(story_id)
        if storyline is None:
            return
        storyline.progress = (storyline.progress or 0) + delta

    # actions within the week

    @property
    def actions_used(self) -> int:
        return self.week_start_actions - self.actions_remaining

    def week_progress(self) -> float:
        """ fraction of the week elapsed, never reaches 1 before week end """
        return util.clip(self.actions_used / (self.week_start_actions + 1), 0., 1.)

    # persistence

    def to_dict(self) -> dict[str, Any]:
        return {
            "week": self.week,
            "actions_remaining": self.actions_remaining,
            "week_start_actions": self.week_start_actions,
            "jump_count": self.jump_count,
            "player_id": self.player_id,
            "next_id": self.next_id,
            "flags": dict(self.flags),
            "completed_events": sorted(self.completed_events),
            "characters": [x.to_dict() for x in self.characters.values()],
            "objects": [x.to_dict() for x in self.objects.values()],
            "storylines": [x.to_dict() for x in self.storylines.values()],
            "pursuits": [x.to_dict() for x in self.pursuits.values()],
            "event_schedule": {k: v.to_dict() for k, v in self.event_schedule.items()},
        }

    @classmethod
    def from_dict(cls, content:"Content", d:Mapping[str, Any]) -> "Gamestate":
        """ rebuilds a gamestate, anything missing takes its empty default """
        gamestate = cls(content)
        gamestate.week = d.get("week", 1)
        gamestate.actions_remaining = d.get("actions_remaining", 0)
        gamestate.week_start_actions = d.get("week_start_actions", gamestate.actions_remaining)
        gamestate.jump_count = d.get("jump_count", 0)
        gamestate.player_id = d.get("player_id")
        gamestate.next_id = d.get("next_id", 1)
        gamestate.flags = dict(d.get("flags", {}))
        gamestate.completed_events = set(d.get("completed_events", []))
        for x in d.get("characters", []):
            character = Character.from_dict(x)
            gamestate.characters[character.character_id] = character
        for x in d.get("objects", []):
            obj = Possession.from_dict(x)
            gamestate.objects[obj.object_id] = obj
        for x in d.get("storylines", []):
            storyline = Storyline.from_dict(x)
            gamestate.storylines[storyline.story_id] = storyline
        for x in d.get("pursuits", []):
            state = PursuitState.from_dict(x)
            gamestate.pursuits[state.pursuit_id] = state
        for event_id, x in d.get("event_schedule", {}).items():
            gamestate.event_schedule[event_id] = ScheduleEntry.from_dict(x)
        # never hand out an id that is already taken
        for entity_id in itertools.chain(gamestate.characters, gamestate.objects):
            n = entity_id.rpartition("_")[2]
            if n.isdigit():
                gamestate.next_id = max(gamestate.next_id, int(n)+1)
        return gamestate
