"""Crash-recovery snapshots of an in-progress session.

The engine state is written to two identical JSON files so a crash while
writing one of them still leaves a readable copy.  Durable storage of
finished sessions belongs to the persistence layer, not here.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from workout_engine import DATA_DIR

# Default location of the recovery files within the ``data`` folder.
RECOVERY_BASE = DATA_DIR / "session_recovery"


def recovery_paths(base: Path = RECOVERY_BASE) -> tuple[Path, Path]:
    base = Path(base)
    return (
        base.with_name(base.name + "_1.json"),
        base.with_name(base.name + "_2.json"),
    )


def save_recovery_state(state: dict, base: Path = RECOVERY_BASE) -> bool:
    """Persist ``state`` (``WorkoutSessionEngine.export_state()``) to disk.

    Returns ``False`` when the snapshot could not be written; the failure is
    logged and the workout carries on.
    """

    payload = json.dumps(state)
    try:
        for path in recovery_paths(base):
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(payload, encoding="utf-8")
    except OSError:
        logging.exception("Failed to write session recovery files")
        return False
    return True


def load_recovery_state(base: Path = RECOVERY_BASE) -> dict | None:
    """Return the first readable recovery snapshot, if any."""

    for path in recovery_paths(base):
        if not path.exists():
            continue
        try:
            text = path.read_text(encoding="utf-8").strip()
            if not text:
                continue
            return json.loads(text)
        except (OSError, json.JSONDecodeError):
            logging.warning("Ignoring unreadable recovery file %s", path)
            continue
    return None


def clear_recovery_files(base: Path = RECOVERY_BASE) -> None:
    """Remove any existing recovery files."""

    for path in recovery_paths(base):
        try:
            path.unlink()
        except FileNotFoundError:
            pass
