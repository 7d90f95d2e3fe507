""" Characters and the objects they possess. """

from collections.abc import Mapping
from typing import Any, Optional

class Character:
    def __init__(self, character_id:str, template_type:str, name:str, gender:Optional[str]=None) -> None:
        self.character_id = character_id
        self.template_type = template_type
        self.name = name
        self.gender = gender
        self.stats:dict[str, float] = {}
        self.general_skills:dict[str, float] = {}
        self.specific_skills:dict[str, float] = {}
        # specialties that give the full deep memory bonus
        self.deep_skills:set[str] = set()
        self.flags:dict[str, bool] = {}
        # object ids, in acquisition order
        self.inventory:list[str] = []
        self.traits:list[str] = []

    def __str__(self) -> str:
        return f'{self.character_id}:{self.name}'

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.character_id,
            "type": self.template_type,
            "name": self.name,
            "gender": self.gender,
            "stats": dict(self.stats),
            "general_skills": dict(self.general_skills),
            "specific_skills": dict(self.specific_skills),
            "deep_skills": sorted(self.deep_skills),
            "flags": dict(self.flags),
            "inventory": list(self.inventory),
            "traits": list(self.traits),
        }

    @classmethod
    def from_dict(cls, d:Mapping[str, Any]) -> "Character":
        character = cls(d["id"], d.get("type", "human"), d.get("name", ""), d.get("gender"))
        character.stats = dict(d.get("stats", {}))
        character.general_skills = dict(d.get("general_skills", {}))
        character.specific_skills = dict(d.get("specific_skills", {}))
        character.deep_skills = set(d.get("deep_skills", []))
        character.flags = dict(d.get("flags", {}))
        character.inventory = list(d.get("inventory", []))
        character.traits = list(d.get("traits", []))
        return character

class Possession:
    """ An object instance: a home, an item, an acquaintance. """

    def __init__(self, object_id:str, template_type:str, name:str, state:Optional[Mapping[str, Any]]=None, owner_id:Optional[str]=None) -> None:
        self.object_id = object_id
        self.template_type = template_type
        self.name = name
        self.state:dict[str, Any] = dict(state or {})
        self.owner_id = owner_id

    def __str__(self) -> str:
        return f'{self.object_id}:{self.template_type}'

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.object_id,
            "type": self.template_type,
            "name": self.name,
            "state": dict(self.state),
            "owner": self.owner_id,
        }

    @classmethod
    def from_dict(cls, d:Mapping[str, Any]) -> "Possession":
        return cls(d["id"], d.get("type", "item"), d.get("name", ""), d.get("state", {}), d.get("owner"))
