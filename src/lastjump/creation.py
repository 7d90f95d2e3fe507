""" Character creation: a sequence of choices whose impacts shape a character.

A CreationSession walks a choice set for one target character. Selected
options queue impacts, which are resolved together when the session
finishes. Gender impacts apply immediately so later choice text can refer to
it. Finishing resumes the caller through its continuation.
"""

import logging
from collections.abc import Mapping, Sequence
from typing import Any, Optional

from lastjump import core, conditions, util
from lastjump.handlers import Continuation

logger = logging.getLogger(__name__)

class CreationOption:
    def __init__(self, text:str, impacts:Optional[Sequence[Mapping[str, Any]]]=None, condition:Optional[Mapping[str, Any]]=None) -> None:
        self.text = text
        self.impacts = [dict(x) for x in (impacts or [])]
        self.condition = conditions.load_criteria(condition) if condition else None

class CreationChoice:
    def __init__(self, choice_id:str, text:str, options:Sequence[CreationOption], condition:Optional[Mapping[str, Any]]=None) -> None:
        self.choice_id = choice_id
        self.text = text
        self.options = list(options)
        self.condition = conditions.load_criteria(condition) if condition else None

    def text_for(self, character:Optional[core.Character]) -> str:
        """ choice text may mention the target's {name} and {gender} """
        if character is None:
            return self.text
        return self.text.format_map({
            "name": character.name,
            "gender": character.gender or "nonbinary",
        })

def load_creation_choice(choice_id:str, d:Mapping[str, Any]) -> CreationChoice:
    options = []
    for o in d.get("options", []):
        options.append(CreationOption(o["text"], o.get("impacts"), o.get("condition")))
    if not options:
        raise core.ContentError(choice_id, "creation choice has no options")
    return CreationChoice(choice_id, d.get("text", choice_id), options, d.get("condition"))

class CreationSession:
    def __init__(self, gamestate:core.Gamestate, target_id:str, choices:Sequence[CreationChoice], on_complete:Optional[Continuation]=None, acquaintance_owner:Optional[str]=None, reverse_acquaintance:bool=False) -> None:
        self.logger = logging.getLogger(util.fullname(self))
        self.gamestate = gamestate
        self.target_id = target_id
        self.choices = list(choices)
        self.on_complete = on_complete
        self.acquaintance_owner = acquaintance_owner
        self.reverse_acquaintance = reverse_acquaintance

        self.index = 0
        self.pending_impacts:list[dict[str, Any]] = []
        self.completed = False
        self._skip_unavailable()

    @property
    def target(self) -> Optional[core.Character]:
        return self.gamestate.get_character(self.target_id)

    def _skip_unavailable(self) -> None:
        while self.index < len(self.choices):
            choice = self.choices[self.index]
            if choice.condition is None or choice.condition.evaluate(self.gamestate):
                break
            self.index += 1

    @property
    def current(self) -> Optional[CreationChoice]:
        if self.completed or self.index >= len(self.choices):
            return None
        return self.choices[self.index]

    def available_options(self) -> list[CreationOption]:
        choice = self.current
        if choice is None:
            return []
        return [o for o in choice.options if o.condition is None or o.condition.evaluate(self.gamestate)]

    def choose(self, option_index:int) -> None:
        """ selects one of available_options(), finishing after the last choice """
        options = self.available_options()
        if not 0 <= option_index < len(options):
            raise ValueError(f'no option {option_index} for {self.current}')

        for impact in options[option_index].impacts:
            if "gender" in impact:
                self.gamestate.set_gender(self.target_id, impact["gender"])
            else:
                self.pending_impacts.append(impact)

        self.index += 1
        self._skip_unavailable()
        if self.current is None:
            self.finish()

    def finish(self) -> None:
        if self.completed:
            raise RuntimeError(f'creation for {self.target_id} already finished')
        self.completed = True

        acquaintance_type = None
        for impact in self.pending_impacts:
            probability = impact.get("probability")
            if probability is not None and self.gamestate.draw() > probability:
                continue
            if "stat" in impact:
                self.gamestate.modify_stat(self.target_id, impact["stat"], impact.get("delta", 0))
            if "flag" in impact:
                self.gamestate.set_character_flag(self.target_id, impact["flag"], impact.get("flag_value", True))
            if "give_object" in impact:
                give = impact["give_object"]
                self.gamestate.create_object(give["template"], give.get("name"), give.get("state"), owner_ref=self.target_id)
            if "acquaintance_type" in impact:
                acquaintance_type = impact["acquaintance_type"]
        self.pending_impacts = []

        if self.acquaintance_owner is not None:
            self._create_acquaintances(acquaintance_type)

        self.logger.info(f'finished creating {self.target}')
        if self.on_complete is not None:
            self.on_complete()

    def _create_acquaintances(self, acquaintance_type:Optional[str]) -> None:
        assert self.acquaintance_owner is not None
        target = self.target
        owner = self.gamestate.get_character(self.acquaintance_owner)
        if target is None or owner is None:
            self.logger.warning(f'cannot link {self.acquaintance_owner} and {self.target_id}')
            return
        self.gamestate.create_object(
            "acquaintance", target.name,
            {"target_char_id": target.character_id, "relationship_type": acquaintance_type},
            owner_ref=owner.character_id,
        )
        if self.reverse_acquaintance:
            self.gamestate.create_object(
                "acquaintance", owner.name,
                {"target_char_id": owner.character_id, "relationship_type": acquaintance_type},
                owner_ref=target.character_id,
            )

class CreationManager:
    """ Starts creation sessions from the content's choice sets. """

    def __init__(self, choices:Mapping[str, CreationChoice], choice_sets:Mapping[str, Sequence[str]]) -> None:
        self.logger = logging.getLogger(util.fullname(self))
        self.choices = choices
        self.choice_sets = choice_sets
        self.active:Optional[CreationSession] = None

    def start(self, gamestate:core.Gamestate, target_id:str, choice_set:str, on_complete:Optional[Continuation]=None, acquaintance_owner:Optional[str]=None, reverse_acquaintance:bool=False) -> CreationSession:
        choice_ids = self.choice_sets.get(choice_set)
        if choice_ids is None:
            self.logger.warning(f'unknown creation choice set {choice_set}')
            choice_ids = []
        session = CreationSession(
            gamestate, target_id, [self.choices[x] for x in choice_ids],
            on_complete, acquaintance_owner, reverse_acquaintance,
        )
        self.active = session
        # nothing to ask, we're done right away
        if session.current is None:
            session.finish()
        return session
