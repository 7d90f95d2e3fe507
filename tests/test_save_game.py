import io
import os

import pytest

from lastjump import core
from lastjump.serialization import util as s_util
from lastjump.serialization.save_game import FORMAT_VERSION, GameSaver
from . import make_content, make_gamestate

def populated_gamestate(content):
    gamestate = make_gamestate(content, seed=3)
    gamestate.week = 7
    gamestate.jump_count = 1
    gamestate.actions_remaining = 2
    gamestate.week_start_actions = 3
    gamestate.set_flag("hasJob")
    gamestate.set_skill(core.PLAYER, "lockpicking", 12)
    gamestate.grant_deep_skill(core.PLAYER, "lockpicking")
    gamestate.create_object("home", "Loft", {"rent": 150}, owner_ref=core.PLAYER)
    gamestate.enter_story("job")
    gamestate.modify_objective_progress("job", 2)
    gamestate.completed_events.add("street_musician")
    gamestate.event_schedule["chance"] = core.ScheduleEntry(passed=True, trigger_at=0.25, fired=True)
    return gamestate

@pytest.fixture
def content():
    return make_content(stories={"job": {"chapters": {"working": {"text": "w"}}}})

def test_round_trip(saver, content):
    gamestate = populated_gamestate(content)
    filename = saver.save(gamestate, 1)
    assert os.path.basename(filename) == "save_1.ljsave"
    assert saver.exists(1)

    loaded = saver.load(content, 1)
    assert loaded.to_dict() == gamestate.to_dict()
    assert loaded.player.name == "Tester"
    assert loaded.get_skill(core.PLAYER, "lockpicking") == 12
    assert loaded.has_object_of_type(core.PLAYER, "home")

    # the random stream carries on where it left off
    assert loaded.draw() == gamestate.draw()
    assert loaded.generate_id("obj") == gamestate.generate_id("obj")

def test_no_temp_files_left(saver, content, tmp_path):
    saver.save(populated_gamestate(content), 2)
    saver.autosave(populated_gamestate(content))
    assert sorted(os.listdir(tmp_path)) == ["autosave.ljsave", "save_2.ljsave"]

def test_slots(saver):
    assert saver.slot_filename(None).endswith("autosave.ljsave")
    with pytest.raises(ValueError):
        saver.slot_filename(0)
    with pytest.raises(ValueError):
        saver.slot_filename(4)

def test_list_save_slots(saver, content):
    gamestate = populated_gamestate(content)
    saver.save(gamestate, 2)
    saver.autosave(gamestate)

    slots = saver.list_save_slots()
    assert [x.slot for x in slots] == [1, 2, 3, None]
    assert [x.exists for x in slots] == [False, True, False, True]
    assert slots[1].week == 7
    assert slots[1].character_name == "Tester"
    assert slots[1].version == FORMAT_VERSION
    assert slots[3].is_autosave

def test_unreadable_slot_is_listed(saver, tmp_path):
    with open(tmp_path / "save_1.ljsave", "wb") as f:
        f.write(b"\x00")
    slots = saver.list_save_slots()
    assert slots[0].exists
    assert slots[0].week == 0

def test_delete(saver, content):
    saver.save(populated_gamestate(content), 3)
    assert saver.delete(3)
    assert not saver.exists(3)
    assert not saver.delete(3)

def test_newer_format_refused(saver, content, tmp_path):
    with open(tmp_path / "save_1.ljsave", "wb") as f:
        s_util.int_to_f(FORMAT_VERSION+1, f, blen=2) # type: ignore
    with pytest.raises(ValueError):
        saver.load(content, 1)

def test_old_save_missing_fields(saver, content, tmp_path):
    with open(tmp_path / "save_1.ljsave", "wb") as f:
        s_util.int_to_f(1, f, blen=2) # type: ignore
        s_util.to_len_pre_f("2024-01-01T12:00:00", f) # type: ignore
        s_util.int_to_f(5, f) # type: ignore
        s_util.to_len_pre_f("Old Timer", f) # type: ignore
        s_util.msgpack_to_f({"state": {
            "week": 5,
            "player_id": "char_4",
            "characters": [{"id": "char_4", "name": "Old Timer", "stats": {"health": 80}}],
        }}, f) # type: ignore

    loaded = saver.load(content, 1)
    assert loaded.week == 5
    assert loaded.player.name == "Old Timer"
    assert loaded.get_stat(core.PLAYER, "health") == 80
    assert loaded.flags == {}
    assert loaded.pursuits == {}
    assert loaded.jump_count == 0
    assert loaded.actions_remaining == 0
    # fresh ids don't collide with the old ones
    assert loaded.generate_id("char") == "char_5"
    # no random state saved, we get a fresh generator
    assert 0 <= loaded.draw() < 1

def test_int_to_f():
    f = io.BytesIO()
    assert s_util.int_to_f(258, f, blen=2) == 2 # type: ignore
    assert f.getvalue() == b"\x01\x02"
    f.seek(0)
    assert s_util.int_from_f(f, blen=2) == 258 # type: ignore
    with pytest.raises(ValueError):
        s_util.int_from_f(f, blen=2) # type: ignore

def test_length_prefixed_strings():
    f = io.BytesIO()
    s_util.to_len_pre_f("jümper", f) # type: ignore
    s_util.to_len_pre_f("", f) # type: ignore
    f.seek(0)
    assert s_util.from_len_pre_f(f) == "jümper" # type: ignore
    assert s_util.from_len_pre_f(f) == "" # type: ignore

def test_truncated_bytes():
    f = io.BytesIO(b"\x00\x00\x00\x09abc")
    with pytest.raises(ValueError):
        s_util.bytes_from_f(f) # type: ignore
