"""Exceptions raised by the workout session engine."""

from __future__ import annotations


class WorkoutEngineError(Exception):
    """Base class for all engine errors."""


class InvalidStateError(WorkoutEngineError):
    """Operation is not legal in the current session or timer state."""


class InvalidCursorError(WorkoutEngineError, IndexError):
    """Cursor does not reference an existing exercise/set."""


class ValidationError(WorkoutEngineError, ValueError):
    """Set values are outside their allowed domain.

    ``errors`` holds one message per offending field.
    """

    def __init__(self, errors: list[str] | str):
        if isinstance(errors, str):
            errors = [errors]
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))
