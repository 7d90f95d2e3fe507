""" Player actions offered when their conditions hold. """

from collections.abc import Mapping
from typing import Any, Optional

from lastjump import core, conditions, effects
from lastjump.ability_checks import Outcome

class ActionDefinition:
    def __init__(self, action_id:str, text:str, action_cost:int=1) -> None:
        self.action_id = action_id
        self.text = text
        self.action_cost = action_cost
        self.criteria:conditions.Condition = conditions.load_criteria(None)
        self.handler:Optional[str] = None
        self.effects:list[dict[str, Any]] = []
        # an ability check id, {ref=..., overrides} or inline check
        self.ability_check:Any = None
        self.use_deep_memory = False
        # effects per outcome tier, tiers fall back to plain success/failure
        self.outcomes:dict[Outcome, list[dict[str, Any]]] = {}

    def __repr__(self) -> str:
        return f'ActionDefinition({self.action_id})'

    def outcome_effects(self, outcome:Outcome) -> list[dict[str, Any]]:
        if outcome in self.outcomes:
            return self.outcomes[outcome]
        return self.outcomes.get(Outcome.SUCCESS if outcome.succeeded else Outcome.FAILURE, [])

def load_action(action_id:str, d:Mapping[str, Any]) -> ActionDefinition:
    action = ActionDefinition(action_id, d.get("text", action_id), d.get("action_cost", 1))
    if action.action_cost < 0:
        raise core.ContentError(action_id, "negative action cost")
    action.criteria = conditions.load_criteria(d.get("conditions"))
    action.handler = d.get("handler")
    action.effects = effects.normalize(d.get("effects"))
    action.ability_check = d.get("ability_check")
    action.use_deep_memory = d.get("use_deep_memory", False)
    for outcome_name, outcome_effects in d.get("outcomes", {}).items():
        try:
            outcome = Outcome(outcome_name)
        except ValueError:
            raise core.ContentError(action_id, f'unknown outcome {outcome_name}')
        action.outcomes[outcome] = effects.normalize(outcome_effects)
    return action
