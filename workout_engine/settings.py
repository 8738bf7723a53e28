from __future__ import annotations

"""Loading and saving of user settings that drive the session engine.

The settings are stored as a list of dictionaries to preserve order.
Each dictionary contains ``key``, ``value`` and ``type`` entries.
"""

from dataclasses import dataclass
from pathlib import Path
import json
import logging
from typing import Any, List, Dict

from workout_engine import (
    DATA_DIR,
    DEFAULT_ADJUST_FLOOR,
    DEFAULT_BODY_MASS_KG,
    DEFAULT_MET,
    DEFAULT_REST_DURATION,
    DEFAULT_WARNING_TIME,
)
from workout_engine.metrics import body_mass_to_kg

# Path to the JSON file where settings are persisted.
SETTINGS_PATH = DATA_DIR / "settings.json"

# Default settings to initialize the file on first run.
DEFAULT_SETTINGS: List[Dict[str, Any]] = [
    {"key": "default_rest_time", "value": DEFAULT_REST_DURATION, "type": "int"},
    {"key": "warning_time", "value": DEFAULT_WARNING_TIME, "type": "int"},
    {"key": "adjust_floor", "value": DEFAULT_ADJUST_FLOOR, "type": "int"},
    {"key": "met_value", "value": DEFAULT_MET, "type": "float"},
    {"key": "body_mass_kg", "value": DEFAULT_BODY_MASS_KG, "type": "float"},
    {"key": "mass_unit", "value": "kg", "type": "str"},
]

# Internal cache so settings are only read from disk once.
_settings_cache: List[Dict[str, Any]] | None = None


def load_settings(path: Path | None = None) -> List[Dict[str, Any]]:
    """Load settings from ``path`` or create the defaults there."""
    path = Path(path) if path is not None else SETTINGS_PATH
    if path.exists():
        try:
            with path.open("r", encoding="utf-8") as fh:
                data = json.load(fh)
                if isinstance(data, list):
                    return data
        except (OSError, json.JSONDecodeError):
            logging.exception("Could not read settings from %s", path)
    defaults = [item.copy() for item in DEFAULT_SETTINGS]
    save_settings(defaults, path)
    return defaults


def save_settings(settings: List[Dict[str, Any]], path: Path | None = None) -> None:
    """Persist ``settings`` to ``path``."""
    path = Path(path) if path is not None else SETTINGS_PATH
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as fh:
        json.dump(settings, fh)


def get_settings() -> List[Dict[str, Any]]:
    """Return the cached settings list, loading from disk if needed."""
    global _settings_cache
    if _settings_cache is None:
        _settings_cache = load_settings()
    return _settings_cache


def clear_cache() -> None:
    global _settings_cache
    _settings_cache = None


def get_value(key: str, settings: List[Dict[str, Any]] | None = None) -> Any:
    """Fetch the value associated with ``key``."""
    for item in settings if settings is not None else get_settings():
        if item.get("key") == key:
            return item.get("value")
    for item in DEFAULT_SETTINGS:
        if item["key"] == key:
            return item["value"]
    return None


def set_value(key: str, value: Any) -> None:
    """Update ``key`` with ``value`` and persist the change."""
    settings = get_settings()
    for item in settings:
        if item.get("key") == key:
            item["value"] = value
            break
    else:
        settings.append({"key": key, "value": value, "type": type(value).__name__})
    save_settings(settings)


@dataclass(frozen=True)
class EngineConfig:
    """Tunables consumed by the session state machine."""

    default_rest_time: int = DEFAULT_REST_DURATION
    warning_time: int = DEFAULT_WARNING_TIME
    adjust_floor: int = DEFAULT_ADJUST_FLOOR
    met_value: float = DEFAULT_MET
    body_mass_kg: float = DEFAULT_BODY_MASS_KG

    @classmethod
    def from_settings(
        cls, settings: List[Dict[str, Any]] | None = None
    ) -> "EngineConfig":
        return cls(
            default_rest_time=int(get_value("default_rest_time", settings)),
            warning_time=int(get_value("warning_time", settings)),
            adjust_floor=int(get_value("adjust_floor", settings)),
            met_value=float(get_value("met_value", settings)),
            body_mass_kg=body_mass_to_kg(
                get_value("body_mass_kg", settings), get_value("mass_unit", settings)
            ),
        )
