import pytest

from lastjump import core, effects
from . import make_content, make_gamestate, script_random

def test_empty_effects(gamestate):
    assert effects.execute(None, gamestate) is None
    assert effects.execute([], gamestate) is None

def test_flags_and_stats(gamestate):
    effects.execute([
        {"set_flag": "a"},
        {"set_flag": ["b", "c"], "clear_flag": "c"},
        {"modify_stat": ["health", -10]},
        {"set_stat": {"stat": "money", "value": 75}},
    ], gamestate)

    assert gamestate.has_flag("a")
    assert gamestate.has_flag("b")
    # clear_flag applies after set_flag within the same record
    assert not gamestate.has_flag("c")
    assert gamestate.get_stat(core.PLAYER, "health") == 40
    assert gamestate.get_stat(core.PLAYER, "money") == 75

def test_stats_clamp(gamestate):
    effects.execute([{"modify_stat": ["money", -500]}], gamestate)
    assert gamestate.get_stat(core.PLAYER, "money") == 0
    effects.execute([{"set_stat": ["health", 1000]}], gamestate)
    assert gamestate.get_stat(core.PLAYER, "health") == 200

def test_camel_case_keys(gamestate):
    effects.execute([{"setFlag": "a", "modifyStat": ["health", 5]}], gamestate)
    assert gamestate.has_flag("a")
    assert gamestate.get_stat(core.PLAYER, "health") == 55

def test_effects_apply_in_order(gamestate):
    text = effects.execute([
        {"set_stat": ["money", 10]},
        {"modify_stat": ["money", 5]},
        {"set_stat": ["money", 100]},
        {"modify_stat": ["money", -1]},
    ], gamestate)
    assert text is None
    assert gamestate.get_stat(core.PLAYER, "money") == 99

def test_show_text_joins(gamestate):
    text = effects.execute([
        {"show_text": "first"},
        {"set_flag": "a"},
        {"show_text": "second"},
    ], gamestate)
    assert text == "first\n\nsecond"

def test_show_text_interpolates(gamestate):
    context = effects.EffectContext(interpolate=lambda s: s.replace("{name}", "Ada"))
    assert effects.execute([{"show_text": "hi {name}"}], gamestate, context) == "hi Ada"

def test_unknown_and_malformed_effects_are_skipped(gamestate):
    before = gamestate.to_dict()
    assert effects.execute([{"summon_dragon": True}, {"modify_stat": ["health"]}, {"set_stat": {"stat": "health"}}], gamestate) is None
    assert gamestate.to_dict() == before

def test_character_effects(gamestate):
    other = gamestate.create_character("human", "Other")
    effects.execute([
        {"modify_char_stat": [other.character_id, "health", 7]},
        {"set_char_flag": [other.character_id, "met"]},
    ], gamestate)
    assert gamestate.get_stat(other.character_id, "health") == 57
    assert gamestate.has_character_flag(other.character_id, "met")

    effects.execute([{"set_char_stat": {"character": other.character_id, "stat": "health", "value": 3}}], gamestate)
    assert gamestate.get_stat(other.character_id, "health") == 3

    # missing characters are ignored
    effects.execute([{"modify_char_stat": ["nobody", "health", 7]}], gamestate)

def test_give_and_remove_object(gamestate):
    effects.execute([{"give_object": "home"}], gamestate)
    homes = gamestate.get_character_objects(core.PLAYER, "home")
    assert len(homes) == 1
    assert homes[0].name == "Apartment"
    assert homes[0].state["rent"] == 200

    effects.execute([{"give_object": {"template": "home", "name": "Studio", "state": {"rent": 150}}}], gamestate)
    homes = gamestate.get_character_objects(core.PLAYER, "home")
    assert [x.name for x in homes] == ["Apartment", "Studio"]
    assert homes[1].state["rent"] == 150

    effects.execute([{"remove_object_of_type": "home"}], gamestate)
    assert [x.name for x in gamestate.get_character_objects(core.PLAYER, "home")] == ["Studio"]

def test_ensure_possession(gamestate):
    effects.execute([{"ensure_possession": {"type": "home", "state": {"rent": 120}}}], gamestate)
    effects.execute([{"ensure_possession": {"type": "home", "state": {"furnished": True}}}], gamestate)
    homes = gamestate.get_character_objects(core.PLAYER, "home")
    assert len(homes) == 1
    assert homes[0].state == {"rent": 120, "furnished": True}

def test_skills(gamestate):
    effects.execute([
        {"modify_skill": ["stealth", 10]},
        {"set_skill": ["lockpicking", 5]},
        {"grant_deep_skill": "lockpicking"},
    ], gamestate)
    assert gamestate.get_skill(core.PLAYER, "stealth") == 10
    assert gamestate.get_skill(core.PLAYER, "lockpicking") == 15
    assert gamestate.has_deep_skill(core.PLAYER, "lockpicking")

    effects.execute([{"modify_skill": ["stealth", -50]}], gamestate)
    assert gamestate.get_skill(core.PLAYER, "stealth") == 0

def test_story_effects():
    content = make_content(stories={
        "job": {"chapters": {"working": {"text": "w"}, "done": {"text": "d"}}},
    })
    gamestate = make_gamestate(content)

    effects.execute([{"enter_story": "job"}, {"modify_objective_progress": ["job", 2]}], gamestate)
    assert gamestate.storyline("job").chapter == "working"
    assert gamestate.storyline("job").progress == 2

    effects.execute([{"set_objective_progress": {"story": "job", "value": 10}, "advance_chapter": ["job", "done"]}], gamestate)
    assert gamestate.storyline("job").progress == 10
    assert gamestate.storyline("job").chapter == "done"

def test_pursuit_effects():
    content = make_content(pursuits={
        "job": {
            "mode": "action",
            "hours_cost": 40,
            "exit_effects": [{"clear_flag": "hasJob"}, {"show_text": "you quit"}],
        },
    })
    gamestate = make_gamestate(content)
    gamestate.set_flag("hasJob")

    assert effects.execute([{"start_pursuit": "job"}], gamestate) is None
    assert gamestate.pursuits["job"].active

    assert effects.execute([{"end_pursuit": "job"}], gamestate) == "you quit"
    assert not gamestate.pursuits["job"].active
    assert not gamestate.has_flag("hasJob")

    # ending it again does nothing
    assert effects.execute([{"end_pursuit": "job"}], gamestate) is None

def test_with_probability_is_all_or_nothing(gamestate):
    record = [{"set_flag": "a"}, {"set_flag": "b"}]

    draws = script_random(gamestate, [0.9])
    assert effects.execute_with_probability(record, gamestate, 0.5) is None
    assert draws.remaining == 0
    assert not gamestate.has_flag("a")
    assert not gamestate.has_flag("b")

    script_random(gamestate, [0.1])
    effects.execute_with_probability(record, gamestate, 0.5)
    assert gamestate.has_flag("a")
    assert gamestate.has_flag("b")

def test_certain_effects_draw_nothing(gamestate):
    draws = script_random(gamestate, [])
    effects.execute_with_probability([{"set_flag": "a"}], gamestate)
    assert draws.consumed == 0
    assert gamestate.has_flag("a")
