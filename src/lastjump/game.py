""" The main loop.

Every player action and every week transition runs the same loop: event
evaluation, then storyline evaluation, then a display refresh. Pursuits are
processed once at week start and set how many actions the week has.

An action whose handler starts an interactive flow (character creation)
suspends the loop. The loop resumes only when the flow calls the action's
continuation, exactly once. While suspended no other action may run.
"""

import dataclasses
import logging
from collections.abc import Callable
from typing import Optional

from lastjump import config, core, effects, pursuits, util
from lastjump.ability_checks import AbilityChecker, CheckResult
from lastjump.actions import ActionDefinition
from lastjump.content import Content
from lastjump.creation import CreationManager
from lastjump.events import EventManager, EventResult
from lastjump.handlers import Choice, Continuation, HandlerContext, HandlerRegistry, HandlerResult, default_registry
from lastjump.interface import AbstractPresenter
from lastjump.serialization.save_game import GameSaver
from lastjump.stories import StoryManager

END_WEEK = "end_week"
ACTION = "action"
DISMISS = "dismiss"

@dataclasses.dataclass
class ActionResult:
    action_id:str
    # the loop is suspended waiting on an interactive flow
    pending:bool = False
    check:Optional[CheckResult] = None

class Game:
    def __init__(self, content:Content, presenter:AbstractPresenter, handlers:Optional[HandlerRegistry]=None, seed:Optional[int]=None, saver:Optional[GameSaver]=None, interpolate:Optional[Callable[[str], str]]=None) -> None:
        self.logger = logging.getLogger(util.fullname(self))
        self.content = content
        self.presenter = presenter
        self.handlers = handlers if handlers is not None else default_registry()
        self.seed = seed
        self.saver = saver
        self.interpolate = interpolate

        self.gamestate = core.Gamestate(content, seed)
        self.event_manager = EventManager(content.events, self.handlers)
        self.story_manager = StoryManager(content.stories, self.handlers)
        self.checker = AbilityChecker(content.ability_checks)
        self.creation = CreationManager(content.creation_choices, content.creation_sets)

        # set while an interactive flow or the week transition holds the loop
        self.pending:Optional[Continuation] = None
        # an event shown to the player, waiting to be dismissed
        self.current_event:Optional[EventResult] = None
        self.offered_choices:list[Choice] = []
        # text produced since the last refresh
        self.story_text:list[str] = []
        self._executing = False

    def _handler_context(self, on_complete:Optional[Continuation]=None) -> HandlerContext:
        return HandlerContext(on_complete=on_complete, creation=self.creation, interpolate=self.interpolate)

    def _effect_context(self) -> effects.EffectContext:
        return effects.EffectContext(interpolate=self.interpolate)

    def _queue_text(self, text:Optional[str]) -> None:
        if text:
            self.story_text.append(text)

    def _check_not_pending(self) -> None:
        if self.pending is not None:
            raise RuntimeError(f'game is waiting on {self.pending}')

    def new_game(self, name:Optional[str]=None, seed:Optional[int]=None) -> None:
        """ a fresh world with the player at the start of the first story """
        gamestate = core.Gamestate(self.content, seed if seed is not None else self.seed)
        player = gamestate.create_character("player", name)
        gamestate.player_id = player.character_id
        self.gamestate = gamestate
        self.pending = None
        self.current_event = None
        self.story_text = []

        pursuits.init_defaults(gamestate)
        gamestate.enter_story(config.Settings.game.initial_story)
        gamestate.actions_remaining = config.Settings.game.actions_per_week
        gamestate.week_start_actions = gamestate.actions_remaining
        self.logger.info(f'new game for {player}')
        self.continue_game_loop()

    # the loop

    def continue_game_loop(self) -> None:
        self.evaluate_events()
        self.evaluate_storylines()
        self.refresh_display()

    def evaluate_events(self, week_end:bool=False) -> Optional[EventResult]:
        result = self.event_manager.evaluate(self.gamestate, week_end=week_end, context=self._handler_context())
        if result is None:
            return None
        if week_end:
            # nobody is around to dismiss it, show it with the next week
            self._queue_text(result.text)
        else:
            self.current_event = result
        return result

    def evaluate_storylines(self) -> None:
        for text in self.story_manager.evaluate_storylines(self.gamestate, self._handler_context()):
            self._queue_text(text)

    def refresh_display(self) -> None:
        """ shows an undismissed event, or queued and chapter text with the available actions """
        if self.current_event is not None:
            self.presenter.render_story(self.current_event.text)
            self.offered_choices = list(self.current_event.choices)
            self.presenter.render_choices(self.offered_choices, self.gamestate.actions_remaining)
            return

        texts = self.story_text + self.story_manager.collect_narrative_text(self.gamestate)
        self.story_text = []
        self.presenter.render_story("\n\n".join(texts))

        self.offered_choices = self.action_choices()
        self.presenter.render_choices(self.offered_choices, self.gamestate.actions_remaining)

    def collect_available_actions(self) -> list[ActionDefinition]:
        return [x for x in self.content.actions.values() if x.criteria.evaluate(self.gamestate)]

    def action_choices(self) -> list[Choice]:
        choices = []
        for action in self.collect_available_actions():
            data:dict[str, str] = {"action_id": action.action_id}
            if action.ability_check is not None:
                data["odds"] = self.checker.estimate_odds(action.ability_check, self.gamestate, action.use_deep_memory).value
            choices.append(Choice(action.text, ACTION, action.action_cost, data))
        if self.gamestate.actions_remaining <= 0:
            choices.append(Choice(f'End {config.Settings.game.time_unit}', END_WEEK))
        return choices

    # time

    def start_week(self) -> None:
        gamestate = self.gamestate
        self.pending = None
        self.event_manager.reset_schedule(gamestate)

        budget = pursuits.calculate_effective_actions(gamestate)
        gamestate.actions_remaining = budget.guaranteed
        if budget.bonus_chance > 0 and gamestate.draw() < budget.bonus_chance:
            gamestate.actions_remaining += 1
            gamestate.counters[core.Counters.BONUS_ACTIONS] += 1
        gamestate.week_start_actions = gamestate.actions_remaining
        self.logger.info(f'week {gamestate.week} starts with {gamestate.actions_remaining} actions')

        self._queue_text(pursuits.apply_weekly_effects(gamestate))
        if config.Settings.saves.autosave:
            self.autosave()
        self.continue_game_loop()

    def end_week(self) -> None:
        """ week end events, pursuit exits, then hands over to the presenter

        the presenter resumes with the next week via the continuation it gets.
        """
        self._check_not_pending()
        gamestate = self.gamestate
        self.current_event = None

        self.evaluate_events(week_end=True)
        for pursuit_id, text in pursuits.check_exit_conditions(gamestate).items():
            self.logger.info(f'pursuit {pursuit_id} ended')
            self._queue_text(text)
        gamestate.week += 1

        self.pending = Continuation(self.start_week, f'start of week {gamestate.week}')
        self.offered_choices = []
        self.presenter.week_ended(gamestate, self.pending)

    def use_action(self, cost:int=1) -> None:
        self._check_not_pending()
        if cost > self.gamestate.actions_remaining:
            raise ValueError(f'{cost} actions needed, {self.gamestate.actions_remaining} remaining')
        self.gamestate.actions_remaining -= cost
        self.continue_game_loop()

    # actions and choices

    def _resume_game_loop(self) -> None:
        self.pending = None
        # finished before the action returned, the action runs the loop
        if self._executing:
            return
        self.continue_game_loop()

    def execute_action(self, action:ActionDefinition) -> ActionResult:
        """ spends the action's cost, then check, handler and effects

        the loop runs after unless the handler started an interactive flow.
        """
        self._check_not_pending()
        gamestate = self.gamestate
        if action.action_cost > gamestate.actions_remaining:
            raise ValueError(f'{action.action_id} costs {action.action_cost}, {gamestate.actions_remaining} remaining')
        if not action.criteria.evaluate(gamestate):
            raise ValueError(f'{action.action_id} is not available')

        self.logger.info(f'executing {action.action_id}')
        self.current_event = None
        gamestate.actions_remaining -= action.action_cost
        continuation = Continuation(self._resume_game_loop, f'action {action.action_id}')
        self.pending = continuation

        handler_result:Optional[HandlerResult] = None
        check_result:Optional[CheckResult] = None
        self._executing = True
        try:
            if action.ability_check is not None:
                check_result = self.checker.check(action.ability_check, gamestate, action.use_deep_memory)

            if action.handler is not None:
                handler_result = self.handlers.call(action.handler, gamestate, action, self._handler_context(continuation))
                if handler_result is not None:
                    self._queue_text(handler_result.text)

            if handler_result is None or not handler_result.skip_effects:
                self._queue_text(effects.execute(action.effects, gamestate, self._effect_context()))
                if check_result is not None:
                    if check_result.valid:
                        self._queue_text(effects.execute(action.outcome_effects(check_result.outcome), gamestate, self._effect_context()))
                    else:
                        self.logger.error(f'{action.action_id} check could not be resolved: {check_result.errors}')
        except Exception:
            # nothing will resume the loop, give the cost back and unblock it
            if not continuation.resumed:
                self.logger.error(f'{action.action_id} failed, refunding {action.action_cost}')
                self.pending = None
                gamestate.actions_remaining += action.action_cost
            raise
        finally:
            self._executing = False

        if continuation.resumed:
            self.continue_game_loop()
        elif handler_result is not None and handler_result.pending:
            self.logger.debug(f'{action.action_id} waiting on {continuation}')
            session = self.creation.active
            if session is not None and not session.completed:
                self.presenter.present_creation(session)
            return ActionResult(action.action_id, pending=True, check=check_result)
        else:
            continuation()
        return ActionResult(action.action_id, check=check_result)

    def choose_creation_option(self, option_index:int) -> None:
        session = self.creation.active
        if session is None or session.completed:
            raise RuntimeError("no character creation in progress")
        session.choose(option_index)
        if not session.completed:
            self.presenter.present_creation(session)

    def handle_choice(self, choice:Choice) -> Optional[ActionResult]:
        if choice not in self.offered_choices:
            raise ValueError(f'{choice} was not offered')

        if choice.action == ACTION:
            return self.execute_action(self.content.actions[choice.data["action_id"]])
        elif choice.action == END_WEEK:
            self.end_week()
        elif choice.action == DISMISS:
            self._check_not_pending()
            self.current_event = None
            if choice.action_cost:
                self.use_action(choice.action_cost)
            else:
                self.refresh_display()
        else:
            raise ValueError(f'unknown choice action {choice.action}')
        return None

    # persistence

    def save(self, slot:int) -> str:
        if self.saver is None:
            raise ValueError("no saver configured")
        self._check_not_pending()
        return self.saver.save(self.gamestate, slot)

    def autosave(self) -> Optional[str]:
        if self.saver is None:
            return None
        return self.saver.autosave(self.gamestate)

    def load(self, slot:Optional[int]) -> None:
        """ loads a slot, None for the autosave, and shows where we left off """
        if self.saver is None:
            raise ValueError("no saver configured")
        self.gamestate = self.saver.load(self.content, slot)
        self.pending = None
        self.current_event = None
        self.story_text = []
        self.creation.active = None
        self.refresh_display()
