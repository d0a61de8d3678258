# Copyright © 2025 Ed Nutting
# SPDX-License-Identifier: MIT
# See LICENSE file for details

"""
Tests for configuration management.
"""

import tempfile
from pathlib import Path

import yaml

from lingocue.config import (
    DEFAULT_CONFIG,
    get_display_settings,
    get_practice_settings,
    load_config,
    save_config,
    update_config_display,
)


def test_defaults_when_file_missing():
    """A missing config file gives the defaults."""
    with tempfile.TemporaryDirectory() as tmpdir:
        config = load_config(Path(tmpdir) / ".lingocue.yaml")
        assert config == DEFAULT_CONFIG


def test_load_config_merges_nested_sections():
    """Values from the file override defaults without dropping sibling keys."""
    with tempfile.TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / ".lingocue.yaml"
        config_data = {
            "port": 9000,
            "practice": {"auto_stop_tolerance": 0.25},
        }
        with open(config_path, "w", encoding="utf-8") as f:
            yaml.dump(config_data, f)

        config = load_config(config_path)
        assert config["port"] == 9000
        assert config["host"] == DEFAULT_CONFIG["host"]
        assert config["practice"]["auto_stop_tolerance"] == 0.25
        assert config["practice"]["default_mode"] == "listening"


def test_load_config_does_not_mutate_defaults():
    """Changing a loaded config must not change DEFAULT_CONFIG."""
    with tempfile.TemporaryDirectory() as tmpdir:
        config = load_config(Path(tmpdir) / ".lingocue.yaml")
        config["practice"]["default_speed"] = 0.5
        assert DEFAULT_CONFIG["practice"]["default_speed"] == 1.0


def test_invalid_yaml_falls_back_to_defaults(capsys):
    """Unparseable files print a warning and use the defaults."""
    with tempfile.TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / ".lingocue.yaml"
        config_path.write_text("port: [unclosed", encoding="utf-8")

        config = load_config(config_path)
        assert config["port"] == DEFAULT_CONFIG["port"]
        assert "Warning" in capsys.readouterr().out


def test_non_mapping_yaml_ignored():
    """A YAML file that is not a mapping is ignored."""
    with tempfile.TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / ".lingocue.yaml"
        config_path.write_text("- just\n- a list\n", encoding="utf-8")
        assert load_config(config_path)["port"] == DEFAULT_CONFIG["port"]


def test_save_and_reload():
    """Saved config round-trips through the YAML file."""
    with tempfile.TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / ".lingocue.yaml"
        config = load_config(config_path)
        config["practice"]["regenerate_on_load"] = True

        assert save_config(config, config_path)
        assert load_config(config_path)["practice"]["regenerate_on_load"] is True


def test_save_config_failure_returns_false():
    """Saving into a missing directory reports failure instead of raising."""
    assert not save_config(DEFAULT_CONFIG, Path("/nonexistent/dir/.lingocue.yaml"))


def test_get_practice_settings_fills_missing_keys():
    """A partial practice section is completed from the defaults."""
    config = dict(DEFAULT_CONFIG)
    config["practice"] = {"default_mode": "dictation"}
    settings = get_practice_settings(config)
    assert settings["default_mode"] == "dictation"
    assert settings["auto_stop_tolerance"] == 0.1


def test_get_display_settings_returns_copy():
    """The returned settings can be modified without touching the config."""
    settings = get_display_settings(DEFAULT_CONFIG)
    settings["theme"] = "dark"
    assert DEFAULT_CONFIG["display"]["theme"] == "light"


def test_update_config_display():
    """Display updates merge into a new config."""
    updated = update_config_display(DEFAULT_CONFIG, {"autoScroll": False})
    assert updated["display"]["autoScroll"] is False
    assert updated["display"]["showTimestamps"] is True
    assert DEFAULT_CONFIG["display"]["autoScroll"] is True
