import pytest

from lastjump import core, pursuits
from . import make_content, make_gamestate

PURSUITS = {
    "midnight_oil": {"mode": "toggle", "hours_cost": -15, "weekly_effects": [{"modify_stat": ["health", -3]}]},
    "frugal": {"mode": "toggle", "hours_cost": 5, "tags": ["budget"], "weekly_effects": [{"modify_stat": ["money", 10]}]},
    "night_life": {"mode": "toggle", "hours_cost": 10, "tags": ["social"], "exclusive": ["budget"]},
    "exercise": {
        "mode": "select",
        "default": "none",
        "options": {
            "none": {},
            "light": {"hours_cost": 4, "weekly_effects": [{"modify_stat": {"stat": "health", "delta": 2}, "max": 60}]},
            "intense": {"hours_cost": 10, "requirements": {"stat": ["health", ">=", 60]}},
        },
    },
    "savings": {"mode": "number", "hours_cost": 1, "max_stat": "money", "weekly_effects": [{"modify_stat": ["money", "-$input"]}]},
    "job": {
        "mode": "action",
        "hours_cost": 40,
        "weekly_effects": [{"modify_stat": ["health", -2]}],
        "exit_conditions": {"stat": ["health", "<", 10]},
        "exit_effects": [{"clear_flag": "hasJob"}, {"show_text": "you quit"}],
    },
    "second_job": {"mode": "action", "hours_cost": 22},
}

@pytest.fixture
def gamestate():
    gamestate = make_gamestate(make_content(pursuits=PURSUITS))
    pursuits.init_defaults(gamestate)
    return gamestate

def test_effective_actions():
    assert pursuits.effective_actions(3, 0) == (3, 0)
    assert pursuits.effective_actions(3, 50) == (3, 0)

    budget = pursuits.effective_actions(3, 62)
    assert budget.guaranteed == 2
    assert budget.bonus_chance == pytest.approx(0.4)

    # never below zero
    assert pursuits.effective_actions(3, 500) == (0, 0)

def test_init_defaults(gamestate):
    # everything but action pursuits starts configured and costing nothing
    assert set(gamestate.pursuits) == {"midnight_oil", "frugal", "night_life", "exercise", "savings"}
    assert gamestate.pursuits["frugal"].enabled is False
    assert gamestate.pursuits["exercise"].option == "none"
    assert gamestate.pursuits["savings"].value == 0
    assert pursuits.total_hours(gamestate) == 0
    assert pursuits.calculate_effective_actions(gamestate) == (3, 0)

def test_hours_by_mode(gamestate):
    pursuits.activate(gamestate, "job")
    assert pursuits.total_hours(gamestate) == 40

    pursuits.set_enabled(gamestate, "frugal", True)
    pursuits.set_option(gamestate, "exercise", "light")
    gamestate.set_stat(core.PLAYER, "money", 100)
    pursuits.set_value(gamestate, "savings", 20)
    assert pursuits.total_hours(gamestate) == 40 + 5 + 4 + 1

    pursuits.activate(gamestate, "second_job")
    budget = pursuits.calculate_effective_actions(gamestate)
    # 72 hours, 22 over the free hours
    assert budget.guaranteed == 1
    assert budget.bonus_chance == pytest.approx(0.9)

def test_negative_hours(gamestate):
    pursuits.activate(gamestate, "job")
    pursuits.activate(gamestate, "second_job")
    assert pursuits.calculate_effective_actions(gamestate).guaranteed == 2
    pursuits.set_enabled(gamestate, "midnight_oil", True)
    assert pursuits.total_hours(gamestate) == 47
    assert pursuits.calculate_effective_actions(gamestate) == (3, 0)

def test_weekly_effects(gamestate):
    pursuits.set_enabled(gamestate, "frugal", True)
    pursuits.activate(gamestate, "job")
    pursuits.apply_weekly_effects(gamestate)
    assert gamestate.get_stat(core.PLAYER, "money") == 60
    assert gamestate.get_stat(core.PLAYER, "health") == 48

    # switched off toggles do nothing
    pursuits.set_enabled(gamestate, "frugal", False)
    pursuits.apply_weekly_effects(gamestate)
    assert gamestate.get_stat(core.PLAYER, "money") == 60

def test_input_substitution(gamestate):
    gamestate.set_stat(core.PLAYER, "money", 100)
    assert pursuits.set_value(gamestate, "savings", 30) == 30
    pursuits.apply_weekly_effects(gamestate)
    assert gamestate.get_stat(core.PLAYER, "money") == 70

def test_number_bounds(gamestate):
    gamestate.set_stat(core.PLAYER, "money", 40)
    assert pursuits.set_value(gamestate, "savings", 100) == 40
    assert pursuits.set_value(gamestate, "savings", -5) == 0

def test_max_caps_weekly_gain(gamestate):
    pursuits.set_option(gamestate, "exercise", "light")
    gamestate.set_stat(core.PLAYER, "health", 59)
    pursuits.apply_weekly_effects(gamestate)
    assert gamestate.get_stat(core.PLAYER, "health") == 60
    pursuits.apply_weekly_effects(gamestate)
    assert gamestate.get_stat(core.PLAYER, "health") == 60

def test_malformed_weekly_effect_is_skipped():
    gamestate = make_gamestate(make_content(pursuits={
        "odd_job": {"mode": "action", "hours_cost": 5, "weekly_effects": [{"modify_stat": "money"}, {"modify_stat": ["health", 5]}]},
    }))
    pursuits.activate(gamestate, "odd_job")
    pursuits.apply_weekly_effects(gamestate)
    assert gamestate.get_stat(core.PLAYER, "money") == 50
    assert gamestate.get_stat(core.PLAYER, "health") == 55

def test_option_requirements(gamestate):
    assert [x.option_id for x in pursuits.available_options(gamestate, "exercise")] == ["none", "light"]
    assert not pursuits.set_option(gamestate, "exercise", "intense")
    assert gamestate.pursuits["exercise"].option == "none"
    assert not pursuits.set_option(gamestate, "exercise", "yoga")

    gamestate.set_stat(core.PLAYER, "health", 60)
    assert pursuits.set_option(gamestate, "exercise", "intense")
    assert pursuits.total_hours(gamestate) == 10

def test_wrong_mode_raises(gamestate):
    with pytest.raises(ValueError):
        pursuits.set_enabled(gamestate, "exercise", True)
    with pytest.raises(ValueError):
        pursuits.set_value(gamestate, "frugal", 3)

def test_conflicts(gamestate):
    assert pursuits.get_conflicting_pursuits(gamestate, "frugal") == ["night_life"]
    assert pursuits.get_conflicting_pursuits(gamestate, "night_life") == ["frugal"]
    assert pursuits.get_conflicting_pursuits(gamestate, "exercise") == []
    assert pursuits.get_conflicting_pursuits(gamestate, "unknown") == []

def test_exit_conditions(gamestate):
    gamestate.set_flag("hasJob")
    pursuits.activate(gamestate, "job")
    pursuits.activate(gamestate, "second_job")
    assert pursuits.check_exit_conditions(gamestate) == {}

    gamestate.set_stat(core.PLAYER, "health", 5)
    assert pursuits.check_exit_conditions(gamestate) == {"job": "you quit"}
    assert not gamestate.pursuits["job"].active
    assert gamestate.pursuits["second_job"].active
    assert not gamestate.has_flag("hasJob")
    assert pursuits.total_hours(gamestate) == 22

    # already ended
    assert pursuits.check_exit_conditions(gamestate) == {}

def test_configurable_pursuits(gamestate):
    shown = [x.pursuit_id for x in pursuits.configurable_pursuits(gamestate)]
    assert "job" not in shown
    pursuits.activate(gamestate, "job")
    shown = [x.pursuit_id for x in pursuits.configurable_pursuits(gamestate)]
    assert "job" in shown

def test_load_pursuit():
    with pytest.raises(core.ContentError):
        pursuits.load_pursuit("p", {"mode": "sometimes"})
    with pytest.raises(core.ContentError):
        pursuits.load_pursuit("p", {"mode": "select"})
    with pytest.raises(core.ContentError):
        pursuits.load_pursuit("p", {"mode": "select", "default": "b", "options": {"a": {}}})

    pursuit = pursuits.load_pursuit("p", {"mode": "number", "min": 5, "max": 50, "step": 5})
    assert (pursuit.min_value, pursuit.max_value, pursuit.step) == (5, 50, 5)
