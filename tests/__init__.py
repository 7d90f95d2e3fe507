""" Helpers shared by the tests. """

import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import Any, Optional

from lastjump import core, util
from lastjump.content import Content
from lastjump.creation import CreationSession
from lastjump.handlers import Choice, Continuation, HandlerRegistry
from lastjump.interface import AbstractPresenter

class ScriptedRandom:
    """ A random source that plays back fixed draws in order.

    Running out of draws fails the test, which catches code consuming more
    randomness than expected.
    """

    def __init__(self, values:Iterable[float]) -> None:
        self.values = list(values)
        self.consumed = 0

    def __call__(self) -> float:
        if self.consumed >= len(self.values):
            raise AssertionError(f'random source exhausted after {self.consumed} draws')
        value = self.values[self.consumed]
        self.consumed += 1
        return value

    @property
    def remaining(self) -> int:
        return len(self.values) - self.consumed

def script_random(gamestate:core.Gamestate, values:Iterable[float]) -> ScriptedRandom:
    source = ScriptedRandom(values)
    gamestate.random_source = source
    return source

class RecordingPresenter(AbstractPresenter):
    """ Keeps everything the game asked to present.

    resume_weeks makes week_ended start the next week right away.
    """

    def __init__(self, resume_weeks:bool=True) -> None:
        self.logger = logging.getLogger(util.fullname(self))
        self.resume_weeks = resume_weeks
        self.stories:list[str] = []
        self.choices:list[Choice] = []
        self.weeks_ended:list[int] = []
        self.week_continuation:Optional[Continuation] = None
        self.creation_prompts:list[str] = []

    def render_story(self, text:str) -> None:
        self.stories.append(text)

    def render_choices(self, choices:Sequence[Choice], actions_remaining:int) -> None:
        self.choices = list(choices)

    def week_ended(self, gamestate:core.Gamestate, continuation:Continuation) -> None:
        self.weeks_ended.append(gamestate.week)
        if self.resume_weeks:
            continuation()
        else:
            self.week_continuation = continuation

    def present_creation(self, session:CreationSession) -> None:
        choice = session.current
        if choice is not None:
            self.creation_prompts.append(choice.text_for(session.target))

    def choice(self, text:str) -> Choice:
        for choice in self.choices:
            if choice.text == text:
                return choice
        raise AssertionError(f'no choice {text!r} in {[x.text for x in self.choices]}')

    @property
    def story_text(self) -> str:
        return "\n\n".join(x for x in self.stories if x)

STATS = {
    "health": {"name": "Health", "default": 50, "min": 0, "max": 200},
    "money": {"name": "Money", "default": 50, "min": 0},
}

SKILLS = {
    "stealth": {"name": "Stealth", "specific": {"lockpicking": "Lockpicking", "shadowing": "Shadowing"}},
    "persuasion": {"name": "Persuasion", "specific": {"contract_negotiation": "Contract Negotiation"}},
}

TEMPLATES = {
    "genders": ["male", "female", "nonbinary"],
    "characters": {
        "human": {},
        "player": {"extends": "human", "name": "Tester"},
    },
    "objects": {
        "location": {"portable": False},
        "home": {"extends": "location", "name": "Apartment", "state": {"rent": 200}},
        "acquaintance": {"state": {"strength": 50}},
    },
}

def make_content(handlers:Optional[HandlerRegistry]=None, **records:Mapping[str, Any]) -> Content:
    """ a small content set, records override or add to the basics """
    d:dict[str, Any] = {"stats": STATS, "skills": SKILLS, "templates": TEMPLATES}
    d.update(records)
    return Content.from_dicts(handlers=handlers, **d)

def make_gamestate(content:Content, seed:Optional[int]=0) -> core.Gamestate:
    gamestate = core.Gamestate(content, seed)
    player = gamestate.create_character("player")
    gamestate.player_id = player.character_id
    return gamestate
