""" Last Jump core data model """

from .base import ContentError, StatDefinition, StatRegistry, SkillDefinition, SkillRegistry, Template, resolve_template
from .character import Character, Possession
from .progress import Storyline, PursuitState, ScheduleEntry
from .gamestate import Gamestate, Counters, PLAYER
