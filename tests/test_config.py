import io

import pytest

from lastjump import config

def test_defaults():
    assert config.Settings.game.actions_per_week == 3
    assert config.Settings.pursuits.free_hours == 50
    assert config.Settings.pursuits.hours_per_action == 20

def test_override(restore_config):
    settings = config.load_config(io.StringIO("[game]\nactions_per_week = 5\n[pursuits]\nfree_hours = 40.0\n"))
    assert settings is config.Settings
    assert config.Settings.game.actions_per_week == 5
    assert config.Settings.pursuits.free_hours == 40.0
    # untouched settings keep their defaults
    assert config.Settings.game.initial_story == "intro"

def test_override_type_conflict(restore_config):
    with pytest.raises(ValueError):
        config.load_config(io.StringIO("[game]\ninitial_story = 3\n"))

def test_merge():
    a = {"x": {"y": 1, "z": 2}, "w": "a"}
    config.merge(a, {"x": {"y": 3}, "v": True})
    assert a == {"x": {"y": 3, "z": 2}, "w": "a", "v": True}
