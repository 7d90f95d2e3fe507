""" Named handlers content can reference for logic too rich for effects.

Handlers are looked up by name from a HandlerRegistry. Content loading checks
every referenced name against the registry so a typo fails at load rather
than silently at play time.

A handler is called as handler(gamestate, source, context) where source is
the record that named it (an action, an event, a chapter). It may return a
HandlerResult. A pending result means the handler has started an external
flow and will resume the game loop through context.on_complete exactly once.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Callable, Iterable
from typing import Any, Optional, TYPE_CHECKING

from lastjump import core, util

if TYPE_CHECKING:
    from lastjump import creation

logger = logging.getLogger(__name__)

class Continuation:
    """ A one shot resumption token.

    Calling it more than once is a programming error and raises.
    """

    def __init__(self, fn:Callable[[], Any], label:str="") -> None:
        self._fn:Optional[Callable[[], Any]] = fn
        self.label = label

    @property
    def resumed(self) -> bool:
        return self._fn is None

    def __call__(self) -> Any:
        if self._fn is None:
            raise RuntimeError(f'continuation {self.label} already resumed')
        fn = self._fn
        self._fn = None
        return fn()

    def __repr__(self) -> str:
        return f'Continuation({self.label}, resumed={self.resumed})'

@dataclasses.dataclass
class Choice:
    """ something the player can pick, rendered by the presenter """
    text:str
    action:str = "dismiss"
    action_cost:int = 0
    data:dict[str, Any] = dataclasses.field(default_factory=dict)

def dismiss_choices() -> list[Choice]:
    return [Choice("Continue", "dismiss")]

@dataclasses.dataclass
class HandlerResult:
    text:Optional[str] = None
    choices:Optional[list[Choice]] = None
    # the handler resumes the loop itself via context.on_complete
    pending:bool = False
    # skip the source record's declarative effects
    skip_effects:bool = False

@dataclasses.dataclass
class HandlerContext:
    on_complete:Optional[Continuation] = None
    creation:Optional["creation.CreationManager"] = None
    interpolate:Optional[Callable[[str], str]] = None

Handler = Callable[[core.Gamestate, Any, HandlerContext], Optional[HandlerResult]]

class HandlerRegistry:
    def __init__(self) -> None:
        self.logger = logging.getLogger(util.fullname(self))
        self.handlers:dict[str, Handler] = {}

    def __contains__(self, name:str) -> bool:
        return name in self.handlers

    def register(self, name:str, fn:Optional[Handler]=None) -> Any:
        """ registers fn under name, or used as a decorator without fn """
        if fn is None:
            def decorator(f:Handler) -> Handler:
                self.register(name, f)
                return f
            return decorator
        if name in self.handlers:
            raise ValueError(f'handler {name} already registered')
        self.handlers[name] = fn
        return fn

    def get(self, name:str) -> Handler:
        return self.handlers[name]

    def validate(self, record_id:str, names:Iterable[Optional[str]]) -> None:
        for name in names:
            if name is not None and name not in self.handlers:
                raise core.ContentError(record_id, f'references missing handler {name}')

    def call(self, name:str, gamestate:core.Gamestate, source:Any, context:HandlerContext) -> Optional[HandlerResult]:
        self.logger.debug(f'calling handler {name}')
        return self.handlers[name](gamestate, source, context)

def process_rent_payments(gamestate:core.Gamestate, source:Any, context:HandlerContext) -> Optional[HandlerResult]:
    """ pays rent on each home the player has, evicting where money is short """
    homes = gamestate.get_character_objects(core.PLAYER, "home")
    if not homes:
        return None

    lines = []
    for home in homes:
        rent = home.state.get("rent", 0)
        money = gamestate.get_stat(core.PLAYER, "money")
        if money >= rent:
            gamestate.modify_stat(core.PLAYER, "money", -rent)
            lines.append(f'You pay ${rent} rent for {home.name}.')
        else:
            gamestate.remove_object(home.object_id)
            lines.append(f"You can't make rent on {home.name}. You've been evicted.")
            logger.info(f'evicted from {home}')

    return HandlerResult(text="\n\n".join(lines), choices=dismiss_choices())

def start_character_creation(gamestate:core.Gamestate, source:Any, context:HandlerContext) -> Optional[HandlerResult]:
    """ runs the first jump creation choices for the player """
    if context.creation is None or gamestate.player_id is None:
        raise ValueError("character creation needs a creation manager and a player")

    def finished() -> None:
        gamestate.set_flag("character_created")
        if context.on_complete is not None:
            context.on_complete()

    context.creation.start(gamestate, gamestate.player_id, "first_jump", Continuation(finished, "character creation"))
    return HandlerResult(pending=True, skip_effects=True)

def start_acquaintance_creation(gamestate:core.Gamestate, source:Any, context:HandlerContext) -> Optional[HandlerResult]:
    """ creates a remembered stranger linked to the player by an acquaintance """
    if context.creation is None or gamestate.player_id is None:
        raise ValueError("acquaintance creation needs a creation manager and a player")

    stranger = gamestate.create_character("human", "Stranger")

    def finished() -> None:
        gamestate.set_flag("rememberedAcquaintance")
        if context.on_complete is not None:
            context.on_complete()

    context.creation.start(
        gamestate,
        stranger.character_id,
        "remember_acquaintance",
        Continuation(finished, "acquaintance creation"),
        acquaintance_owner=gamestate.player_id,
    )
    return HandlerResult(pending=True)

def default_registry() -> HandlerRegistry:
    registry = HandlerRegistry()
    registry.register("process_rent_payments", process_rent_payments)
    registry.register("start_character_creation", start_character_creation)
    registry.register("start_acquaintance_creation", start_acquaintance_creation)
    return registry
