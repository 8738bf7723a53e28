"""Plain data records exchanged with the persistence collaborator.

Every record converts to and from a JSON-compatible ``dict`` whose keys use
the camelCase names of the stored documents, so sessions saved by earlier
versions of the product load unchanged.  Unknown keys are ignored and
missing keys fall back to the defaults below.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from workout_engine import DEFAULT_REST_DURATION

SET_TYPES = ("normal", "warmup", "dropset", "rest_pause", "timed")


@dataclass
class SessionMetrics:
    total_volume: float = 0
    total_sets: int = 0
    completed_sets: int = 0
    total_reps: int = 0
    average_rpe: float = 0
    exercises_completed: int = 0
    completion_rate: float = 0
    estimated_calories: int = 0
    personal_records: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "totalVolume": self.total_volume,
            "totalSets": self.total_sets,
            "completedSets": self.completed_sets,
            "totalReps": self.total_reps,
            "averageRPE": self.average_rpe,
            "exercisesCompleted": self.exercises_completed,
            "completionRate": self.completion_rate,
            "estimatedCalories": self.estimated_calories,
            "personalRecords": [dict(r) for r in self.personal_records],
        }

    @classmethod
    def from_dict(cls, data: dict | None) -> "SessionMetrics":
        data = data or {}
        return cls(
            total_volume=data.get("totalVolume") or 0,
            total_sets=data.get("totalSets") or 0,
            completed_sets=data.get("completedSets") or 0,
            total_reps=data.get("totalReps") or 0,
            average_rpe=data.get("averageRPE") or 0,
            exercises_completed=data.get("exercisesCompleted") or 0,
            completion_rate=data.get("completionRate") or 0,
            estimated_calories=data.get("estimatedCalories") or 0,
            personal_records=[dict(r) for r in data.get("personalRecords") or []],
        )


@dataclass
class SetInSession:
    """A single planned set and, once performed, its recorded result."""

    type: str = "normal"
    target_reps: int | None = None
    target_weight: float | None = None
    target_duration: int | None = None
    actual_reps: int | None = None
    actual_weight: float | None = None
    actual_duration: int | None = None
    rpe: float | None = None
    completed: bool = False
    failed: bool = False
    failure_point: int | None = None
    assistance_used: bool = False
    form_breakdown: bool = False
    start_time: float | None = None
    end_time: float | None = None
    rest_time_used: int | None = None
    notes: str = ""

    # Values recorded at completion are preferred over the planned targets.
    @property
    def effective_reps(self) -> int | None:
        return self.actual_reps if self.actual_reps is not None else self.target_reps

    @property
    def effective_weight(self) -> float | None:
        return (
            self.actual_weight if self.actual_weight is not None else self.target_weight
        )

    @property
    def effective_duration(self) -> int | None:
        return (
            self.actual_duration
            if self.actual_duration is not None
            else self.target_duration
        )

    @property
    def volume(self) -> float:
        weight = self.effective_weight
        reps = self.effective_reps
        if weight and reps:
            return weight * reps
        return 0

    def was_target_met(self) -> bool:
        """Return ``True`` if the recorded result reached the target."""

        if self.target_reps and self.actual_reps is not None:
            return self.actual_reps >= self.target_reps
        if self.target_duration and self.actual_duration is not None:
            return self.actual_duration >= self.target_duration
        return self.completed

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "targetReps": self.target_reps,
            "targetWeight": self.target_weight,
            "targetDuration": self.target_duration,
            "actualReps": self.actual_reps,
            "actualWeight": self.actual_weight,
            "actualDuration": self.actual_duration,
            "rpe": self.rpe,
            "completed": self.completed,
            "failed": self.failed,
            "failurePoint": self.failure_point,
            "assistanceUsed": self.assistance_used,
            "formBreakdown": self.form_breakdown,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "restTimeUsed": self.rest_time_used,
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SetInSession":
        return cls(
            type=data.get("type") or "normal",
            target_reps=data.get("targetReps"),
            target_weight=data.get("targetWeight"),
            target_duration=data.get("targetDuration"),
            actual_reps=data.get("actualReps"),
            actual_weight=data.get("actualWeight"),
            actual_duration=data.get("actualDuration"),
            rpe=data.get("rpe"),
            completed=bool(data.get("completed", False)),
            failed=bool(data.get("failed", False)),
            failure_point=data.get("failurePoint"),
            assistance_used=bool(data.get("assistanceUsed", False)),
            form_breakdown=bool(data.get("formBreakdown", False)),
            start_time=data.get("startTime"),
            end_time=data.get("endTime"),
            rest_time_used=data.get("restTimeUsed"),
            notes=data.get("notes") or "",
        )


@dataclass
class ExerciseInSession:
    exercise_id: str = ""
    name: str = ""
    order: int = 0
    sets: list[SetInSession] = field(default_factory=list)
    rest_time: int = DEFAULT_REST_DURATION
    notes: str = ""
    start_time: float | None = None
    end_time: float | None = None
    completed: bool = False
    skipped: bool = False
    skip_reason: str = ""
    personal_record: bool = False
    pr_type: str | None = None
    previous_best: Any = None

    def to_dict(self) -> dict:
        return {
            "exerciseId": self.exercise_id,
            "name": self.name,
            "order": self.order,
            "sets": [s.to_dict() for s in self.sets],
            "restTime": self.rest_time,
            "notes": self.notes,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "completed": self.completed,
            "skipped": self.skipped,
            "skipReason": self.skip_reason,
            "personalRecord": self.personal_record,
            "prType": self.pr_type,
            "previousBest": self.previous_best,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ExerciseInSession":
        rest = data.get("restTime")
        return cls(
            exercise_id=data.get("exerciseId") or "",
            name=data.get("name") or "",
            order=data.get("order") or 0,
            sets=[SetInSession.from_dict(s) for s in data.get("sets") or []],
            rest_time=DEFAULT_REST_DURATION if rest is None else rest,
            notes=data.get("notes") or "",
            start_time=data.get("startTime"),
            end_time=data.get("endTime"),
            completed=bool(data.get("completed", False)),
            skipped=bool(data.get("skipped", False)),
            skip_reason=data.get("skipReason") or "",
            personal_record=bool(data.get("personalRecord", False)),
            pr_type=data.get("prType"),
            previous_best=data.get("previousBest"),
        )


@dataclass
class WorkoutSession:
    """One real-time execution of a workout."""

    id: str | None = None
    user_id: str | None = None
    name: str = ""
    template_id: str | None = None
    exercises: list[ExerciseInSession] = field(default_factory=list)
    start_time: float | None = None
    end_time: float | None = None
    completed: bool = False
    abandoned: bool = False
    paused_at: float | None = None
    resumed_at: float | None = None
    paused_duration: float = 0
    notes: str = ""
    mood: int | None = None
    energy: int | None = None
    motivation: int | None = None
    location: str = ""
    date: str | float | None = None
    # whole minutes of active training, written when the session ends
    duration: int = 0
    environment: dict = field(default_factory=dict)
    metadata: dict = field(default_factory=dict)
    metrics: SessionMetrics = field(default_factory=SessionMetrics)

    def is_terminal(self) -> bool:
        return self.completed or self.abandoned

    def is_active(self) -> bool:
        return self.start_time is not None and not self.is_terminal()

    def is_paused(self) -> bool:
        return self.is_active() and self.paused_at is not None

    def active_seconds(self, now: float) -> float:
        """Return the time spent working out, excluding pauses."""

        if self.start_time is None:
            return 0.0
        end = self.end_time if self.end_time is not None else now
        paused = self.paused_duration
        if self.paused_at is not None:
            paused += max(0.0, end - self.paused_at)
        return max(0.0, end - self.start_time - paused)

    def duration_minutes(self, now: float) -> int:
        return round(self.active_seconds(now) / 60)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "name": self.name,
            "templateId": self.template_id,
            "exercises": [e.to_dict() for e in self.exercises],
            "startTime": self.start_time,
            "endTime": self.end_time,
            "completed": self.completed,
            "abandoned": self.abandoned,
            "pausedAt": self.paused_at,
            "resumedAt": self.resumed_at,
            "pausedDuration": self.paused_duration,
            "notes": self.notes,
            "mood": self.mood,
            "energy": self.energy,
            "motivation": self.motivation,
            "location": self.location,
            "date": self.date,
            "duration": self.duration,
            "environment": dict(self.environment),
            "metadata": dict(self.metadata),
            "metrics": self.metrics.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "WorkoutSession":
        return cls(
            id=data.get("id"),
            user_id=data.get("userId"),
            name=data.get("name") or "",
            template_id=data.get("templateId"),
            exercises=[
                ExerciseInSession.from_dict(e) for e in data.get("exercises") or []
            ],
            start_time=data.get("startTime"),
            end_time=data.get("endTime"),
            completed=bool(data.get("completed", False)),
            abandoned=bool(data.get("abandoned", False)),
            paused_at=data.get("pausedAt"),
            resumed_at=data.get("resumedAt"),
            paused_duration=data.get("pausedDuration") or 0,
            notes=data.get("notes") or "",
            mood=data.get("mood"),
            energy=data.get("energy"),
            motivation=data.get("motivation"),
            location=data.get("location") or "",
            date=data.get("date"),
            duration=data.get("duration") or 0,
            environment=dict(data.get("environment") or {}),
            metadata=dict(data.get("metadata") or {}),
            metrics=SessionMetrics.from_dict(data.get("metrics")),
        )


def _set_from_template(data: dict[str, Any]) -> SetInSession:
    set_type = data.get("type") or "normal"
    if set_type not in SET_TYPES:
        raise ValueError(f"Unknown set type '{set_type}'")
    return SetInSession(
        type=set_type,
        target_reps=data.get("targetReps", data.get("reps")),
        target_weight=data.get("targetWeight", data.get("weight")),
        target_duration=data.get("targetDuration", data.get("duration")),
        notes=data.get("notes") or "",
    )


def session_from_template(template: dict, **fields) -> WorkoutSession:
    """Build a not-yet-started session from a workout template.

    ``template`` mirrors the stored template documents: a ``name`` and a
    list of ``exercises`` each carrying ``name``, ``exerciseId``,
    ``restTime`` and ``sets`` (``reps``/``weight``/``duration`` or their
    ``target*`` spellings).  Extra keyword arguments populate session fields
    such as ``user_id``.
    """

    exercises = []
    for idx, ex in enumerate(template.get("exercises") or []):
        rest = ex.get("restTime")
        exercises.append(
            ExerciseInSession(
                exercise_id=ex.get("exerciseId") or "",
                name=ex.get("name") or "",
                order=idx,
                sets=[_set_from_template(s) for s in ex.get("sets") or []],
                rest_time=DEFAULT_REST_DURATION if rest is None else rest,
                notes=ex.get("notes") or "",
            )
        )
    fields.setdefault("name", template.get("name") or "")
    fields.setdefault("template_id", template.get("id"))
    return WorkoutSession(exercises=exercises, **fields)


def new_session(exercises: list[ExerciseInSession], **fields) -> WorkoutSession:
    """Return an ad hoc session, renumbering ``order`` to list positions."""

    for idx, ex in enumerate(exercises):
        ex.order = idx
    return WorkoutSession(exercises=list(exercises), **fields)
