# Copyright © 2025 Ed Nutting
# SPDX-License-Identifier: MIT
# See LICENSE file for details

"""
Configuration management for lingocue.
Handles loading and saving settings from a YAML config file.
"""

import copy
from pathlib import Path
from typing import Any, TypedDict

import yaml

CONFIG_FILENAME: str = ".lingocue.yaml"


class DisplaySettings(TypedDict):
    """Type definition for display configuration settings."""
    autoScroll: bool
    showTimestamps: bool
    blurUntilTyped: bool
    theme: str


class PracticeSettings(TypedDict):
    """Type definition for practice engine settings."""
    default_mode: str  # "listening", "dictation" or "shadowing"
    shadowing_submode: str  # "sentence" or "full"
    auto_stop_tolerance: float  # Seconds before sentence end to pause
    regenerate_on_load: bool  # Merge captions into sentences when loading
    default_speed: float  # Playback rate when a sentence has no override
    default_volume: float  # 0-1, when a sentence has no override


class Config(TypedDict):
    """Type definition for the complete configuration."""
    # Server settings
    host: str
    port: int
    # Microphone used for server-side shadowing recordings
    audio_device: int | None
    sample_rate: int
    # Practice and UI settings
    practice: PracticeSettings
    display: DisplaySettings


# Default configuration values
DEFAULT_CONFIG: Config = {
    # Server settings
    "host": "127.0.0.1",
    "port": 8000,

    # Recording settings
    "audio_device": None,
    "sample_rate": 16000,

    # Practice engine
    "practice": {
        "default_mode": "listening",
        "shadowing_submode": "sentence",
        "auto_stop_tolerance": 0.1,
        "regenerate_on_load": False,
        "default_speed": 1.0,
        "default_volume": 1.0,
    },

    # UI display settings
    "display": {
        "autoScroll": True,
        "showTimestamps": True,
        "blurUntilTyped": True,
        "theme": "light",
    },
}


def get_config_path() -> Path:
    """Get the path to the config file in the current working directory."""
    return Path.cwd() / CONFIG_FILENAME


def _deep_merge(base, override):
    """
    Deep merge two dictionaries, with override taking precedence.
    Returns a new dictionary without modifying the originals.

    Args:
        base: Base dictionary to merge from.
        override: Dictionary with values that take precedence over base.

    Returns:
        New dictionary with merged values.
    """
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_config(config_path: Path | None = None) -> Config:
    """
    Load configuration from file, merged with defaults.

    Args:
        config_path: Optional path to config file. If None, uses default location.

    Returns:
        Configuration dictionary with all values (defaults + overrides from file).
    """
    if config_path is None:
        config_path = get_config_path()

    # Start with defaults
    config: dict[str, Any] = copy.deepcopy(DEFAULT_CONFIG)  # type: ignore[arg-type]

    # Load from file if it exists
    if config_path.exists():
        try:
            with open(config_path, encoding='utf-8') as f:
                file_config: dict[str, Any] | None = yaml.safe_load(f)
                if isinstance(file_config, dict):
                    config = _deep_merge(config, file_config)
        except (OSError, yaml.YAMLError) as e:
            print(f"Warning: Could not load config from {config_path}: {e}")

    return config  # type: ignore[return-value]


def save_config(config: Config, config_path: Path | None = None) -> bool:
    """
    Save configuration to file.

    Args:
        config: Configuration dictionary to save.
        config_path: Optional path to config file. If None, uses default location.

    Returns:
        True if save was successful, False otherwise.
    """
    if config_path is None:
        config_path = get_config_path()

    try:
        with open(config_path, 'w', encoding='utf-8') as f:
            yaml.dump(dict(config), f, default_flow_style=False, sort_keys=False)
        return True
    except (OSError, yaml.YAMLError) as e:
        print(f"Error saving config to {config_path}: {e}")
        return False


def get_display_settings(config: Config) -> DisplaySettings:
    """
    Extract display settings from config.

    Args:
        config: Configuration dictionary.

    Returns:
        Display settings dictionary.
    """
    return config.get("display", DEFAULT_CONFIG["display"]).copy()  # type: ignore[return-value]


def get_practice_settings(config: Config) -> PracticeSettings:
    """
    Extract practice engine settings from config.

    Missing keys fall back to the defaults, so a partial section still works.

    Args:
        config: Configuration dictionary.

    Returns:
        Practice settings dictionary.
    """
    return _deep_merge(DEFAULT_CONFIG["practice"],
                       config.get("practice", {}))  # type: ignore[return-value]


def update_config_display(config: Config, display_settings: DisplaySettings) -> Config:
    """
    Update the display section of the config with new settings.
    Returns a new config dict.

    Args:
        config: Current configuration.
        display_settings: New display settings to merge in.

    Returns:
        New configuration with updated display settings.
    """
    new_config: dict[str, Any] = _deep_merge({}, config)
    new_config["display"] = _deep_merge(
        new_config.get("display", {}),
        display_settings
    )
    return new_config  # type: ignore[return-value]
