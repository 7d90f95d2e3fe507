""" The presentation boundary.

The game calls out to a presenter for exactly these things: narrative text,
the choices the player may make, the end of a week and an active character
creation session. Presenters never mutate the gamestate directly, they hand
the player's picks back to the game.
"""

import abc
import logging
import sys
from collections.abc import Sequence
from typing import Optional, TextIO

from lastjump import config, core, pursuits, util
from lastjump.creation import CreationSession
from lastjump.handlers import Choice, Continuation

class AbstractPresenter(abc.ABC):
    @abc.abstractmethod
    def render_story(self, text:str) -> None: ...

    @abc.abstractmethod
    def render_choices(self, choices:Sequence[Choice], actions_remaining:int) -> None: ...

    @abc.abstractmethod
    def week_ended(self, gamestate:core.Gamestate, continuation:Continuation) -> None:
        """ called between weeks, the presenter resumes play with continuation

        this is where the player configures their pursuits for the next week.
        """
        ...

    @abc.abstractmethod
    def present_creation(self, session:CreationSession) -> None: ...

def choice_label(choice:Choice, actions_remaining:int) -> str:
    label = choice.text
    if choice.action_cost:
        label += f' [{choice.action_cost} action{"s" if choice.action_cost > 1 else ""}]'
        if actions_remaining < choice.action_cost:
            label += " (not enough actions)"
    if "odds" in choice.data:
        label += f' ({choice.data["odds"]})'
    return label

class TextPresenter(AbstractPresenter):
    """ Writes the game to a text stream.

    The week end continuation and the current choices are kept so a driver
    reading player input can act on them.
    """

    def __init__(self, out:Optional[TextIO]=None) -> None:
        self.logger = logging.getLogger(util.fullname(self))
        self.out = out if out is not None else sys.stdout
        self.choices:list[Choice] = []
        self.week_continuation:Optional[Continuation] = None
        self.creation_session:Optional[CreationSession] = None

    def _write(self, text:str) -> None:
        self.out.write(text)
        self.out.write("\n")

    def render_story(self, text:str) -> None:
        if not text:
            return
        for paragraph in text.split("\n\n"):
            self._write(paragraph)
            self._write("")

    def render_choices(self, choices:Sequence[Choice], actions_remaining:int) -> None:
        self.choices = list(choices)
        self._write(f'({actions_remaining} action{"" if actions_remaining == 1 else "s"} remaining)')
        for i, choice in enumerate(self.choices, start=1):
            self._write(f'  {i}. {choice_label(choice, actions_remaining)}')

    def week_ended(self, gamestate:core.Gamestate, continuation:Continuation) -> None:
        self.choices = []
        self.week_continuation = continuation
        self._write(f'--- {config.Settings.game.time_unit.capitalize()} {gamestate.week} ---')
        self.render_pursuits(gamestate)

    def render_pursuits(self, gamestate:core.Gamestate) -> None:
        shown = pursuits.configurable_pursuits(gamestate)
        if not shown:
            return
        self._write("Pursuits:")
        for pursuit in shown:
            state = gamestate.pursuits.get(pursuit.pursuit_id)
            if state is None:
                setting = "-"
            elif pursuit.mode == pursuits.TOGGLE:
                setting = "on" if state.enabled else "off"
            elif pursuit.mode == pursuits.SELECT:
                option = pursuit.options.get(state.option) if state.option is not None else None
                setting = option.name if option is not None else "-"
            elif pursuit.mode == pursuits.NUMBER:
                setting = f'{state.value or 0:g}'
            else:
                setting = "ongoing"
            self._write(f'  {pursuit.pursuit_id} ({pursuit.mode}): {pursuit.name} = {setting}, {pursuit.hours_cost(state):g}h')
        budget = pursuits.calculate_effective_actions(gamestate)
        self._write(f'  {pursuits.total_hours(gamestate):g} hours, {budget.guaranteed} actions and a {budget.bonus_chance:.0%} chance of another')

    def resume_week(self) -> None:
        if self.week_continuation is None:
            raise RuntimeError("no week to resume")
        continuation = self.week_continuation
        self.week_continuation = None
        continuation()

    def present_creation(self, session:CreationSession) -> None:
        self.choices = []
        self.creation_session = session
        choice = session.current
        if choice is None:
            return
        self._write(choice.text_for(session.target))
        for i, option in enumerate(session.available_options(), start=1):
            self._write(f'  {i}. {option.text}')
