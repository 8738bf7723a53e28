"""Session-level metrics computed from an exercise/set tree.

Every function here is pure: the same exercises always produce the same
:class:`~workout_engine.models.SessionMetrics`.
"""

from __future__ import annotations

from typing import Iterable

from workout_engine import DEFAULT_BODY_MASS_KG, DEFAULT_MET
from workout_engine.errors import ValidationError
from workout_engine.models import ExerciseInSession, SessionMetrics

LB_TO_KG = 0.45359237


def body_mass_to_kg(value: float | None, unit: str = "kg") -> float:
    """Convert a profile body mass to kilograms.

    ``None`` falls back to :data:`DEFAULT_BODY_MASS_KG`.
    """

    if value is None:
        return DEFAULT_BODY_MASS_KG
    if unit == "kg":
        return float(value)
    if unit in ("lb", "lbs"):
        return float(value) * LB_TO_KG
    raise ValidationError(f"Unknown mass unit '{unit}'")


def estimate_calories(
    duration_minutes: float,
    body_mass_kg: float = DEFAULT_BODY_MASS_KG,
    met: float = DEFAULT_MET,
) -> int:
    """Return a rough calorie estimate for ``duration_minutes`` of training.

    This is a flat MET model, not a physiological one; treat the result as
    approximate.
    """

    return round(met * body_mass_kg * (duration_minutes / 60))


def exercise_progress(exercise: ExerciseInSession) -> dict:
    """Return completed and total set counts for a single exercise."""

    completed = sum(1 for s in exercise.sets if s.completed)
    return {
        "completedSets": completed,
        "totalSets": len(exercise.sets),
        "isCompleted": bool(exercise.sets) and completed == len(exercise.sets),
    }


def count_fully_completed_exercises(exercises: Iterable[ExerciseInSession]) -> int:
    """Return the number of exercises whose every set is completed.

    :func:`calculate_metrics` reports ``exercises_completed`` as the number
    of exercises with *any* completed set; this is the strict count.
    """

    return sum(1 for ex in exercises if exercise_progress(ex)["isCompleted"])


def calculate_metrics(
    exercises: Iterable[ExerciseInSession],
    *,
    duration_minutes: float = 0,
    body_mass_kg: float = DEFAULT_BODY_MASS_KG,
    met: float = DEFAULT_MET,
    personal_records: list[dict] | None = None,
) -> SessionMetrics:
    """Recompute all session metrics from ``exercises``.

    Only completed sets count towards volume, reps and RPE.  A completed set
    without a weight (bodyweight work) adds its reps but no volume.
    ``personal_records`` is copied through untouched.
    """

    total_volume = 0
    total_sets = 0
    completed_sets = 0
    total_reps = 0
    rpe_sum = 0
    rpe_count = 0
    exercises_completed = 0

    for exercise in exercises:
        has_progress = False
        for set_ in exercise.sets:
            total_sets += 1
            if not set_.completed:
                continue
            completed_sets += 1
            has_progress = True
            reps = set_.effective_reps
            if reps:
                total_reps += reps
                total_volume += set_.volume
            if set_.rpe is not None:
                rpe_sum += set_.rpe
                rpe_count += 1
        if has_progress:
            exercises_completed += 1

    completion_rate = completed_sets / total_sets * 100 if total_sets else 0
    return SessionMetrics(
        total_volume=total_volume,
        total_sets=total_sets,
        completed_sets=completed_sets,
        total_reps=total_reps,
        average_rpe=rpe_sum / rpe_count if rpe_count else 0,
        exercises_completed=exercises_completed,
        completion_rate=completion_rate,
        estimated_calories=estimate_calories(duration_minutes, body_mass_kg, met),
        personal_records=list(personal_records or []),
    )
