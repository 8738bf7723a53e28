"""Domain checks for the values recorded against a set.

:func:`validate_set_values` is the stock validator; pass it (or any callable
with the same signature) to the engine to reject out-of-range input before
a transition is applied.
"""

from __future__ import annotations

from typing import Callable, Mapping

from workout_engine.errors import ValidationError

# Keys accepted by ``complete_set`` / ``fail_set``
SET_VALUE_KEYS = (
    "actual_reps",
    "actual_weight",
    "actual_duration",
    "rpe",
    "notes",
    "failure_point",
    "assistance_used",
    "form_breakdown",
    "rest_time_used",
)

SetValidator = Callable[[Mapping[str, object], str], None]


def check_keys(values: Mapping[str, object]) -> None:
    unknown = sorted(set(values) - set(SET_VALUE_KEYS))
    if unknown:
        raise ValidationError([f"Unknown set value '{name}'" for name in unknown])


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_set_values(values: Mapping[str, object], set_type: str = "normal") -> None:
    """Raise :class:`ValidationError` listing every out-of-range value."""

    check_keys(values)
    errors: list[str] = []

    reps = values.get("actual_reps")
    if reps is not None and set_type != "timed":
        if not _is_int(reps) or not 0 <= reps <= 100:
            errors.append("Reps must be an integer between 0 and 100")

    weight = values.get("actual_weight")
    if weight is not None and (not _is_number(weight) or not 0 <= weight <= 1000):
        errors.append("Weight must be between 0 and 1000")

    duration = values.get("actual_duration")
    if duration is not None and set_type == "timed":
        if not _is_int(duration) or not 1 <= duration <= 3600:
            errors.append("Duration must be an integer between 1 and 3600 seconds")

    rpe = values.get("rpe")
    if rpe is not None and (not _is_number(rpe) or not 1 <= rpe <= 10):
        errors.append("RPE must be between 1 and 10")

    failure_point = values.get("failure_point")
    if failure_point is not None and (not _is_int(failure_point) or failure_point < 0):
        errors.append("Failure point must be a non-negative integer")

    if errors:
        raise ValidationError(errors)
