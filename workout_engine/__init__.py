"""Shared constants for the workout session engine."""

from __future__ import annotations

from pathlib import Path

# Default values used throughout the engine
DEFAULT_REST_DURATION = 60
DEFAULT_WARNING_TIME = 10
DEFAULT_ADJUST_FLOOR = 1

# Average MET for resistance training and the body mass assumed when the
# profile does not provide one
DEFAULT_MET = 3.5
DEFAULT_BODY_MASS_KG = 70

# Directory holding settings and recovery files
DATA_DIR = Path(__file__).resolve().parent.parent / "data"

__all__ = [
    "DEFAULT_REST_DURATION",
    "DEFAULT_WARNING_TIME",
    "DEFAULT_ADJUST_FLOOR",
    "DEFAULT_MET",
    "DEFAULT_BODY_MASS_KG",
    "DATA_DIR",
]
