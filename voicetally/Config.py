"""Configuration loading for the voice tally application.

Configuration is a JSON file (config/tally_config.json) with one object per
section. Values found in the file override DEFAULT_CONFIG section by section;
missing keys keep their defaults.
"""

import copy
import json
import logging
from pathlib import Path
from typing import Any, Dict

DEFAULT_CONFIG: Dict[str, Dict[str, Any]] = {
    'audio': {
        'sample_rate': 16000,
        'chunk_duration': 0.1,
    },
    'recognition': {
        'restart_delay': 1.0,
        'default_confidence': 0.8,
        'language': 'en-US',
    },
    'storage': {
        'key': 'voiceTallyState',
        'file_name': 'tally_state.json',
    },
    'history': {
        'undo_limit': None,
    },
    'notification': {
        'frequency_start': 1000.0,
        'frequency_end': 800.0,
        'duration': 0.3,
        'volume': 0.3,
    },
    'bridge': {
        'host': '127.0.0.1',
        'port': 8765,
    },
}


def load_config(config_path: str) -> Dict:
    """Load configuration from JSON file and merge it over the defaults.

    Args:
        config_path: Path to tally_config.json

    Returns:
        Configuration dictionary

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file is not valid JSON or a value is out of range
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(path, 'r', encoding='utf-8') as f:
        try:
            loaded = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in {config_path}: {e}") from e

    config = merge_config(loaded)
    validate_config(config)
    logging.info(f"Configuration loaded from {config_path}")
    return config


def merge_config(overrides: Dict) -> Dict:
    """Return DEFAULT_CONFIG with overrides applied per section."""
    if not isinstance(overrides, dict):
        raise ValueError("Configuration root must be a JSON object")

    config = copy.deepcopy(DEFAULT_CONFIG)
    for section, values in overrides.items():
        if not isinstance(values, dict):
            raise ValueError(f"Configuration section '{section}' must be an object")
        config.setdefault(section, {}).update(values)
    return config


def validate_config(config: Dict) -> None:
    """
    Validate configuration values.

    Raises:
        ValueError: If configuration values are invalid.
    """
    sample_rate = config['audio']['sample_rate']
    if not isinstance(sample_rate, int) or sample_rate <= 0:
        raise ValueError(f"audio.sample_rate must be a positive integer, got: {sample_rate}")

    if config['audio']['chunk_duration'] <= 0:
        raise ValueError(f"audio.chunk_duration must be positive, got: {config['audio']['chunk_duration']}")

    if config['recognition']['restart_delay'] < 0:
        raise ValueError(f"recognition.restart_delay must be >= 0, got: {config['recognition']['restart_delay']}")

    default_confidence = config['recognition']['default_confidence']
    if not 0.0 <= default_confidence <= 1.0:
        raise ValueError(f"recognition.default_confidence must be between 0-1, got: {default_confidence}")

    undo_limit = config['history']['undo_limit']
    if undo_limit is not None and (not isinstance(undo_limit, int) or undo_limit < 0):
        raise ValueError(f"history.undo_limit must be null or a non-negative integer, got: {undo_limit}")

    volume = config['notification']['volume']
    if not 0.0 < volume <= 1.0:
        raise ValueError(f"notification.volume must be in (0, 1], got: {volume}")

    if config['notification']['duration'] <= 0:
        raise ValueError(f"notification.duration must be positive, got: {config['notification']['duration']}")

    if not config['storage']['key']:
        raise ValueError("storage.key must not be empty")
