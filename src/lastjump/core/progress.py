""" Per-playthrough progress records: storylines, pursuits, event schedule. """

import dataclasses
from collections.abc import Mapping
from typing import Any, Optional

class Storyline:
    SUCCESS = "success"
    FAILURE = "failure"

    def __init__(self, story_id:str, chapter:str) -> None:
        self.story_id = story_id
        self.chapter = chapter
        # set on every transition, cleared once the chapter text is shown
        self.entered_chapter = True
        self.progress:Optional[float] = None
        self.completed = False
        self.result:Optional[str] = None

    def __str__(self) -> str:
        return f'{self.story_id}:{self.chapter}'

    def to_dict(self) -> dict[str, Any]:
        return {
            "story": self.story_id,
            "chapter": self.chapter,
            "entered_chapter": self.entered_chapter,
            "progress": self.progress,
            "completed": self.completed,
            "result": self.result,
        }

    @classmethod
    def from_dict(cls, d:Mapping[str, Any]) -> "Storyline":
        storyline = cls(d["story"], d["chapter"])
        storyline.entered_chapter = d.get("entered_chapter", False)
        storyline.progress = d.get("progress")
        storyline.completed = d.get("completed", False)
        storyline.result = d.get("result")
        return storyline

class PursuitState:
    def __init__(self, pursuit_id:str, started_week:int) -> None:
        self.pursuit_id = pursuit_id
        self.active = True
        self.started_week = started_week
        # mode payload, only the one matching the pursuit's mode is used
        self.enabled:Optional[bool] = None
        self.option:Optional[str] = None
        self.value:Optional[float] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "pursuit": self.pursuit_id,
            "active": self.active,
            "started_week": self.started_week,
            "enabled": self.enabled,
            "option": self.option,
            "value": self.value,
        }

    @classmethod
    def from_dict(cls, d:Mapping[str, Any]) -> "PursuitState":
        state = cls(d["pursuit"], d.get("started_week", 1))
        state.active = d.get("active", True)
        state.enabled = d.get("enabled")
        state.option = d.get("option")
        state.value = d.get("value")
        return state

@dataclasses.dataclass
class ScheduleEntry:
    """ This week's fate for one probabilistic event. """
    passed:bool
    trigger_at:float = 1.
    fired:bool = False
    missed:bool = False

    def to_dict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)

    @classmethod
    def from_dict(cls, d:Mapping[str, Any]) -> "ScheduleEntry":
        return cls(
            passed=d.get("passed", False),
            trigger_at=d.get("trigger_at", 1.),
            fired=d.get("fired", False),
            missed=d.get("missed", False),
        )
