"""Navigation over the exercise -> set hierarchy of a session.

A :class:`Cursor` names the set currently being performed.  Navigation
functions never modify the session; they only compute the next position.
Exercises without any sets are passed over in both directions.
"""

from __future__ import annotations

from dataclasses import dataclass

from workout_engine.errors import InvalidCursorError
from workout_engine.models import SetInSession, WorkoutSession


@dataclass(frozen=True)
class Cursor:
    exercise_index: int
    set_index: int

    @property
    def is_terminal(self) -> bool:
        return self.exercise_index < 0

    def to_dict(self) -> dict:
        return {"exerciseIndex": self.exercise_index, "setIndex": self.set_index}

    @classmethod
    def from_dict(cls, data: dict | None) -> "Cursor | None":
        if data is None:
            return None
        return cls(data["exerciseIndex"], data["setIndex"])


# Returned by :func:`advance` when no further set exists.
TERMINAL_CURSOR = Cursor(-1, -1)


def _set_count(session: WorkoutSession, exercise_index: int) -> int:
    return len(session.exercises[exercise_index].sets)


def validate_cursor(session: WorkoutSession, cursor: Cursor | None) -> Cursor:
    """Return ``cursor`` if it references an existing set."""

    if cursor is None or cursor.is_terminal:
        raise InvalidCursorError("Cursor does not reference a set")
    if not 0 <= cursor.exercise_index < len(session.exercises):
        raise InvalidCursorError(f"Invalid exercise index {cursor.exercise_index}")
    if not 0 <= cursor.set_index < _set_count(session, cursor.exercise_index):
        raise InvalidCursorError(
            f"Invalid set index {cursor.set_index} for exercise "
            f"{cursor.exercise_index}"
        )
    return cursor


def set_at(session: WorkoutSession, cursor: Cursor) -> SetInSession:
    validate_cursor(session, cursor)
    return session.exercises[cursor.exercise_index].sets[cursor.set_index]


def first_cursor(session: WorkoutSession) -> Cursor:
    """Return the first set of the session."""

    for idx in range(len(session.exercises)):
        if _set_count(session, idx):
            return Cursor(idx, 0)
    raise InvalidCursorError("Session has no sets")


def advance(session: WorkoutSession, cursor: Cursor) -> Cursor:
    """Return the position after ``cursor`` or :data:`TERMINAL_CURSOR`."""

    validate_cursor(session, cursor)
    if cursor.set_index + 1 < _set_count(session, cursor.exercise_index):
        return Cursor(cursor.exercise_index, cursor.set_index + 1)
    for idx in range(cursor.exercise_index + 1, len(session.exercises)):
        if _set_count(session, idx):
            return Cursor(idx, 0)
    return TERMINAL_CURSOR


def retreat(session: WorkoutSession, cursor: Cursor) -> Cursor:
    """Return the position before ``cursor``.

    Retreating from the very first set returns ``cursor`` unchanged.
    """

    validate_cursor(session, cursor)
    if cursor.set_index > 0:
        return Cursor(cursor.exercise_index, cursor.set_index - 1)
    for idx in range(cursor.exercise_index - 1, -1, -1):
        count = _set_count(session, idx)
        if count:
            return Cursor(idx, count - 1)
    return cursor


def jump_to_exercise(session: WorkoutSession, exercise_index: int) -> Cursor:
    """Return the first set of ``exercise_index`` (clamped to the session).

    When the target has no sets the nearest following exercise with sets is
    used, falling back to the nearest preceding one.
    """

    if not session.exercises:
        raise InvalidCursorError("Session has no exercises")
    index = min(max(0, exercise_index), len(session.exercises) - 1)
    for idx in range(index, len(session.exercises)):
        if _set_count(session, idx):
            return Cursor(idx, 0)
    for idx in range(index - 1, -1, -1):
        if _set_count(session, idx):
            return Cursor(idx, 0)
    raise InvalidCursorError("Session has no sets")


def is_last_set(session: WorkoutSession, cursor: Cursor) -> bool:
    return advance(session, cursor).is_terminal


def describe(session: WorkoutSession, cursor: Cursor | None) -> str:
    """Return a display string such as ``"Bench Press set 2 of 3"``."""

    if cursor is None or cursor.is_terminal:
        return ""
    validate_cursor(session, cursor)
    ex = session.exercises[cursor.exercise_index]
    return f"{ex.name} set {cursor.set_index + 1} of {len(ex.sets)}"


def upcoming(session: WorkoutSession, cursor: Cursor | None) -> str:
    """Return the display string for the set after ``cursor``."""

    if cursor is None or cursor.is_terminal:
        return ""
    return describe(session, advance(session, cursor))


def progress(session: WorkoutSession, cursor: Cursor | None) -> dict:
    """Summarise how far through the workout ``cursor`` is.

    Only completed sets positioned before the cursor are counted, so the
    figure reflects the path walked so far rather than edits made ahead.
    """

    total = sum(len(ex.sets) for ex in session.exercises)
    done = 0
    if cursor is not None and not cursor.is_terminal:
        for idx, ex in enumerate(session.exercises):
            if idx < cursor.exercise_index:
                done += sum(1 for s in ex.sets if s.completed)
            elif idx == cursor.exercise_index:
                done += sum(1 for s in ex.sets[: cursor.set_index] if s.completed)
        current = cursor.exercise_index + 1
    else:
        done = sum(1 for ex in session.exercises for s in ex.sets if s.completed)
        current = len(session.exercises)
    return {
        "completedSets": done,
        "totalSets": total,
        "percentage": done / total * 100 if total else 0,
        "currentExercise": current,
        "totalExercises": len(session.exercises),
    }
