""" Weekly event scheduling.

Events are evaluated at every point in the week: week start, after each
action and at week end. Events with probability 1 fire whenever their
conditions hold. Other events have their fate for the week decided once,
the first time their conditions hold: one draw decides whether the event
happens this week at all, a second picks its trigger point as a fraction of
the week. An event first seen after its trigger point has passed misses the
week. So an event whose conditions start holding a fraction p0 into the week
fires with probability probability * (1 - p0), and an event whose
conditions hold all week fires with its configured probability no matter
how many actions the week has.

Only one event fires per evaluation, the highest priority one. Others are
superseded: retired for good or left to fire at a later evaluation.
"""

import logging
from collections.abc import Mapping, Sequence
from typing import Any, Optional

from lastjump import core, conditions, effects, util
from lastjump.handlers import Choice, HandlerContext, HandlerRegistry, HandlerResult, dismiss_choices

RETIRE = "retire"
REQUEUE = "requeue"
# older content names for the same policies
SUPERSEDE_ALIASES = {"remove": RETIRE, "reschedule": REQUEUE}

class EventDefinition:
    def __init__(self, event_id:str, priority:int=0, probability:float=1., criteria:Optional[conditions.Condition]=None, handler:Optional[str]=None, event_effects:Optional[Sequence[Mapping[str, Any]]]=None, text:Optional[str]=None, on_superseded:str=REQUEUE, once_per_week:bool=False) -> None:
        self.event_id = event_id
        self.priority = priority
        self.probability = probability
        self.criteria = criteria
        self.handler = handler
        self.effects = effects.normalize(event_effects)
        self.text = text
        self.on_superseded = on_superseded
        # certain events otherwise fire at every evaluation while their conditions hold
        self.once_per_week = once_per_week

    def __repr__(self) -> str:
        return f'EventDefinition({self.event_id}, priority={self.priority}, probability={self.probability})'

def load_event(event_id:str, d:Mapping[str, Any]) -> EventDefinition:
    on_superseded = d.get("on_superseded", REQUEUE)
    on_superseded = SUPERSEDE_ALIASES.get(on_superseded, on_superseded)
    if on_superseded not in (RETIRE, REQUEUE):
        raise core.ContentError(event_id, f'unknown superseded policy {on_superseded}')
    probability = d.get("probability", 1.)
    if not 0 <= probability <= 1:
        raise core.ContentError(event_id, f'probability {probability} outside [0, 1]')
    return EventDefinition(
        event_id,
        priority=d.get("priority", 0),
        probability=probability,
        criteria=conditions.load_criteria(d.get("conditions")),
        handler=d.get("handler"),
        event_effects=d.get("effects"),
        text=d.get("text"),
        on_superseded=on_superseded,
        once_per_week=d.get("once_per_week", False),
    )

class EventResult:
    def __init__(self, event_id:str, text:str, choices:list[Choice]) -> None:
        self.event_id = event_id
        self.text = text
        self.choices = choices

    def __repr__(self) -> str:
        return f'EventResult({self.event_id})'

class EventManager:
    """ Decides which event, if any, fires at each evaluation point. """

    def __init__(self, events:Mapping[str, EventDefinition], handlers:HandlerRegistry) -> None:
        self.logger = logging.getLogger(util.fullname(self))
        # content order breaks priority ties
        self.events = events
        self.handlers = handlers

    def reset_schedule(self, gamestate:core.Gamestate) -> None:
        """ forgets the week's rolls, called at week start """
        gamestate.event_schedule.clear()

    def _schedule(self, gamestate:core.Gamestate, event:EventDefinition, progress:float) -> core.ScheduleEntry:
        # draws happen in this order, pass roll then trigger point
        if gamestate.draw() < event.probability:
            trigger_at = gamestate.draw()
            entry = core.ScheduleEntry(passed=True, trigger_at=trigger_at, missed=trigger_at < progress)
            if entry.missed:
                gamestate.counters[core.Counters.EVENTS_MISSED] += 1
                self.logger.debug(f'{event.event_id} missed, trigger {trigger_at:.3f} before {progress:.3f}')
        else:
            entry = core.ScheduleEntry(passed=False)
            gamestate.counters[core.Counters.EVENTS_ROLL_FAILED] += 1
        gamestate.event_schedule[event.event_id] = entry
        return entry

    def eligible_events(self, gamestate:core.Gamestate, progress:float) -> list[EventDefinition]:
        """ events that may fire at this point of the week, in content order

        schedules probabilistic events whose conditions hold for the first
        time this week.
        """
        eligible = []
        for event_id, event in self.events.items():
            if event_id in gamestate.completed_events:
                continue
            if event.criteria is not None and not event.criteria.evaluate(gamestate):
                continue
            entry = gamestate.event_schedule.get(event_id)
            if event.once_per_week and entry is not None and entry.fired:
                continue
            if event.probability >= 1:
                eligible.append(event)
                continue

            if entry is None:
                entry = self._schedule(gamestate, event, progress)
            if entry.passed and not entry.missed and not entry.fired and entry.trigger_at <= progress:
                eligible.append(event)
        return eligible

    def evaluate(self, gamestate:core.Gamestate, week_end:bool=False, context:Optional[HandlerContext]=None) -> Optional[EventResult]:
        """ fires at most one event, returning what it has to show """
        progress = 1. if week_end else gamestate.week_progress()
        gamestate.counters[core.Counters.EVENTS_EVALUATED] += 1

        eligible = self.eligible_events(gamestate, progress)
        if not eligible:
            return None

        winner = eligible[0]
        for event in eligible[1:]:
            if event.priority > winner.priority:
                winner = event

        for event in eligible:
            if event is winner:
                continue
            gamestate.counters[core.Counters.EVENTS_SUPERSEDED] += 1
            if event.on_superseded == RETIRE:
                gamestate.completed_events.add(event.event_id)
                gamestate.counters[core.Counters.EVENTS_RETIRED] += 1
                self.logger.debug(f'{event.event_id} superseded by {winner.event_id} and retired')

        return self.fire(gamestate, winner, context)

    def fire(self, gamestate:core.Gamestate, event:EventDefinition, context:Optional[HandlerContext]=None) -> Optional[EventResult]:
        if context is None:
            context = HandlerContext()
        entry = gamestate.event_schedule.get(event.event_id)
        if entry is None and event.once_per_week:
            entry = core.ScheduleEntry(passed=True, trigger_at=0.)
            gamestate.event_schedule[event.event_id] = entry
        if entry is not None:
            entry.fired = True
        gamestate.counters[core.Counters.EVENTS_FIRED] += 1
        self.logger.info(f'firing event {event.event_id} in week {gamestate.week}')

        if event.handler is not None:
            result:Optional[HandlerResult] = self.handlers.call(event.handler, gamestate, event, context)
            if result is None:
                return None
            return EventResult(event.event_id, result.text or "", result.choices or dismiss_choices())
        elif event.effects:
            text = effects.execute(event.effects, gamestate, effects.EffectContext(interpolate=context.interpolate))
            return EventResult(event.event_id, event.text or text or "", dismiss_choices())
        else:
            return EventResult(event.event_id, event.text or "", dismiss_choices())
