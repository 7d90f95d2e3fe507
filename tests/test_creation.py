import pytest

from lastjump import core, creation
from lastjump.creation import CreationManager
from lastjump.handlers import Continuation
from . import make_content, make_gamestate, script_random

CREATION = {
    "sets": {
        "first_jump": ["combat", "affluence", "veteran_only"],
        "acquaintance": ["gender", "relationship"],
        "nothing": ["veteran_only"],
    },
    "choices": {
        "combat": {
            "text": "How combat-capable is {name}?",
            "options": [
                {"text": "Low", "impacts": []},
                {"text": "High", "impacts": [{"stat": "health", "delta": 100}, {"flag": "fighter"}]},
            ],
        },
        "affluence": {
            "text": "How affluent?",
            "options": [
                {"text": "Medium", "impacts": [{"stat": "money", "delta": 100}]},
                {"text": "Lucky", "impacts": [{"stat": "money", "delta": 500, "probability": 0.5}]},
                {"text": "Housed", "impacts": [{"give_object": {"template": "home", "name": "Loft"}}]},
                {"text": "Landlord", "impacts": [], "condition": {"has_flag": "landlord"}},
            ],
        },
        "veteran_only": {
            "text": "Which jump was worst?",
            "condition": {"jump_count": [">", 0]},
            "options": [{"text": "The first"}],
        },
        "gender": {
            "text": "Are they:",
            "options": [
                {"text": "Male", "impacts": [{"gender": "male"}]},
                {"text": "Female", "impacts": [{"gender": "female"}]},
            ],
        },
        "relationship": {
            "text": "Is the {gender} person an enemy or a loved one?",
            "options": [
                {"text": "An enemy", "impacts": [{"acquaintance_type": "enemy"}]},
                {"text": "A loved one", "impacts": [{"acquaintance_type": "loved_one"}]},
            ],
        },
    },
}

@pytest.fixture
def content():
    return make_content(creation=CREATION)

@pytest.fixture
def gamestate(content):
    return make_gamestate(content)

@pytest.fixture
def manager(content):
    return CreationManager(content.creation_choices, content.creation_sets)

def test_walks_choices_and_applies_impacts_at_the_end(manager, gamestate):
    done = []
    session = manager.start(gamestate, gamestate.player_id, "first_jump", Continuation(lambda: done.append(True)))
    assert manager.active is session
    assert session.current.choice_id == "combat"
    assert session.current.text_for(session.target) == "How combat-capable is Tester?"

    session.choose(1)
    # queued, not applied yet
    assert gamestate.get_stat(core.PLAYER, "health") == 50
    assert session.current.choice_id == "affluence"
    # the landlord option isn't offered
    assert [x.text for x in session.available_options()] == ["Medium", "Lucky", "Housed"]

    session.choose(0)
    # veteran_only is skipped for a first jump
    assert session.completed
    assert session.current is None
    assert done == [True]
    assert gamestate.get_stat(core.PLAYER, "health") == 150
    assert gamestate.get_stat(core.PLAYER, "money") == 150
    assert gamestate.has_character_flag(core.PLAYER, "fighter")

def test_probabilistic_impacts(manager, gamestate):
    session = manager.start(gamestate, gamestate.player_id, "first_jump")
    session.choose(0)
    script_random(gamestate, [0.7])
    session.choose(1)
    assert gamestate.get_stat(core.PLAYER, "money") == 50

    gamestate = make_gamestate(gamestate.content)
    session = manager.start(gamestate, gamestate.player_id, "first_jump")
    session.choose(0)
    script_random(gamestate, [0.3])
    session.choose(1)
    assert gamestate.get_stat(core.PLAYER, "money") == 550

def test_give_object_impact(manager, gamestate):
    session = manager.start(gamestate, gamestate.player_id, "first_jump")
    session.choose(0)
    session.choose(2)
    homes = gamestate.get_character_objects(core.PLAYER, "home")
    assert [x.name for x in homes] == ["Loft"]
    assert homes[0].state["rent"] == 200

def test_conditional_choice_for_later_jumps(manager, gamestate):
    gamestate.jump_count = 1
    session = manager.start(gamestate, gamestate.player_id, "first_jump")
    session.choose(0)
    session.choose(0)
    assert not session.completed
    assert session.current.choice_id == "veteran_only"
    session.choose(0)
    assert session.completed

def test_bad_option(manager, gamestate):
    session = manager.start(gamestate, gamestate.player_id, "first_jump")
    with pytest.raises(ValueError):
        session.choose(5)
    assert session.current.choice_id == "combat"

def test_empty_set_finishes_immediately(manager, gamestate):
    done = []
    session = manager.start(gamestate, gamestate.player_id, "nothing", Continuation(lambda: done.append(True)))
    assert session.completed
    assert done == [True]

    session = manager.start(gamestate, gamestate.player_id, "unknown_set")
    assert session.completed

def test_finishes_once(manager, gamestate):
    session = manager.start(gamestate, gamestate.player_id, "nothing")
    with pytest.raises(RuntimeError):
        session.finish()

def test_acquaintance(manager, gamestate):
    stranger = gamestate.create_character("human", "Stranger")
    session = manager.start(gamestate, stranger.character_id, "acquaintance", acquaintance_owner=gamestate.player_id, reverse_acquaintance=True)

    session.choose(1)
    # gender applies right away, later text refers to it
    assert stranger.gender == "female"
    assert session.current.text_for(session.target) == "Is the female person an enemy or a loved one?"

    session.choose(0)
    acquaintances = gamestate.get_character_objects(core.PLAYER, "acquaintance")
    assert len(acquaintances) == 1
    assert acquaintances[0].name == "Stranger"
    assert acquaintances[0].state == {"strength": 50, "target_char_id": stranger.character_id, "relationship_type": "enemy"}

    reverse = gamestate.get_character_objects(stranger.character_id, "acquaintance")
    assert len(reverse) == 1
    assert reverse[0].state["target_char_id"] == gamestate.player_id

def test_load_creation_choice():
    with pytest.raises(core.ContentError):
        creation.load_creation_choice("c", {"text": "?", "options": []})

def test_unknown_choice_in_set():
    with pytest.raises(core.ContentError):
        make_content(creation={"sets": {"s": ["missing"]}, "choices": {}})
