"""Pure transitions of an active workout session.

Each transition takes an :class:`EngineState` and returns a
:class:`Transition` holding a *new* state plus the events it produced.  The
input state is never modified, so a failed transition leaves the caller with
its previous, valid state.

Session lifecycle::

    not_started -> active <-> paused
    active | paused -> completed | abandoned   (terminal)
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Mapping

from workout_engine import cursor as nav
from workout_engine.cursor import Cursor
from workout_engine.errors import InvalidStateError
from workout_engine.metrics import calculate_metrics
from workout_engine.models import SetInSession, WorkoutSession
from workout_engine.rest_timer import (
    RestTimerState,
    adjust_timer,
    pause_timer,
    reset_timer,
    resume_timer,
    skip_timer,
    start_timer,
    tick_timer,
)
from workout_engine.settings import EngineConfig
from workout_engine.validation import SetValidator, check_keys


class SessionStatus(str, Enum):
    NOT_STARTED = "not_started"
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


def session_status(session: WorkoutSession) -> SessionStatus:
    if session.completed:
        return SessionStatus.COMPLETED
    if session.abandoned:
        return SessionStatus.ABANDONED
    if session.start_time is None:
        return SessionStatus.NOT_STARTED
    if session.paused_at is not None:
        return SessionStatus.PAUSED
    return SessionStatus.ACTIVE


@dataclass(frozen=True)
class SessionEvent:
    name: str
    data: dict = field(default_factory=dict)


@dataclass
class EngineState:
    session: WorkoutSession
    cursor: Cursor | None = None
    timer: RestTimerState = field(default_factory=RestTimerState)
    # the running rest timer moves the cursor on when it completes
    advance_on_rest_complete: bool = False
    all_sets_visited: bool = False

    @property
    def status(self) -> SessionStatus:
        return session_status(self.session)

    @classmethod
    def from_session(cls, session: WorkoutSession) -> "EngineState":
        """Wrap a stored session, placing the cursor on its first open set."""

        state = cls(session)
        if session_status(session) in (SessionStatus.ACTIVE, SessionStatus.PAUSED):
            state.cursor = _first_open_set(session)
        return state

    def to_dict(self) -> dict:
        return {
            "session": self.session.to_dict(),
            "cursor": self.cursor.to_dict() if self.cursor else None,
            "timer": self.timer.to_dict(),
            "advanceOnRestComplete": self.advance_on_rest_complete,
            "allSetsVisited": self.all_sets_visited,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "EngineState":
        return cls(
            session=WorkoutSession.from_dict(data["session"]),
            cursor=Cursor.from_dict(data.get("cursor")),
            timer=RestTimerState.from_dict(data.get("timer")),
            advance_on_rest_complete=bool(data.get("advanceOnRestComplete", False)),
            all_sets_visited=bool(data.get("allSetsVisited", False)),
        )


@dataclass
class Transition:
    state: EngineState
    events: list[SessionEvent] = field(default_factory=list)

    def emit(self, name: str, **data) -> None:
        self.events.append(SessionEvent(name, data))


_TIMER_EVENTS = {
    "started": "rest_timer_started",
    "tick": "rest_timer_tick",
    "warning": "rest_timer_warning",
    "complete": "rest_timer_complete",
    "paused": "rest_timer_paused",
    "resumed": "rest_timer_resumed",
    "adjusted": "rest_timer_adjusted",
}

_DEFAULT_CONFIG = EngineConfig()


# ----------------------------------------------------------------------
# Helpers
# ----------------------------------------------------------------------


def _first_open_set(session: WorkoutSession) -> Cursor | None:
    last = None
    for ex_idx, ex in enumerate(session.exercises):
        for set_idx, set_ in enumerate(ex.sets):
            last = Cursor(ex_idx, set_idx)
            if not (set_.completed or set_.failed):
                return last
    return last


def _begin(state: EngineState, *allowed: SessionStatus) -> Transition:
    status = state.status
    if status not in allowed:
        expected = " or ".join(s.value for s in allowed)
        raise InvalidStateError(f"Session is {status.value}, expected {expected}")
    return Transition(copy.deepcopy(state))


def _recompute_metrics(tr: Transition, now: float, config: EngineConfig) -> None:
    session = tr.state.session
    session.metrics = calculate_metrics(
        session.exercises,
        duration_minutes=session.active_seconds(now) / 60,
        body_mass_kg=config.body_mass_kg,
        met=config.met_value,
        personal_records=session.metrics.personal_records,
    )
    tr.emit("metrics_updated", metrics=session.metrics.to_dict())


def _enter_set(state: EngineState, target: Cursor, now: float) -> None:
    ex = state.session.exercises[target.exercise_index]
    set_ = ex.sets[target.set_index]
    if ex.start_time is None:
        ex.start_time = now
    if set_.start_time is None:
        set_.start_time = now


def _move(tr: Transition, target: Cursor, now: float) -> None:
    """Place the cursor on ``target`` or flag the end of the workout."""

    state = tr.state
    if target.is_terminal:
        if not state.all_sets_visited:
            state.all_sets_visited = True
            tr.emit("workout_complete_eligible")
        return
    previous = state.cursor
    state.cursor = target
    _enter_set(state, target, now)
    if previous != target:
        tr.emit(
            "cursor_moved",
            previous=previous.to_dict() if previous else None,
            cursor=target.to_dict(),
        )


def _apply_timer(tr: Transition, step, now: float) -> None:
    state = tr.state
    state.timer, signals = step
    for signal in signals:
        if signal == "tick":
            tr.emit(_TIMER_EVENTS[signal], time_remaining=state.timer.time_remaining)
        else:
            tr.emit(_TIMER_EVENTS[signal], kind=state.timer.kind)
        if signal == "complete" and state.advance_on_rest_complete:
            state.advance_on_rest_complete = False
            _move(tr, nav.advance(state.session, state.cursor), now)


def _record_values(
    set_: SetInSession, values: Mapping[str, object], now: float, *, completed: bool
) -> None:
    for name, value in values.items():
        setattr(set_, name, value)
    set_.completed = completed
    set_.failed = not completed
    if set_.start_time is None:
        set_.start_time = now
    set_.end_time = now


def _update_exercise_flags(state: EngineState, exercise_index: int, now: float) -> None:
    ex = state.session.exercises[exercise_index]
    ex.completed = bool(ex.sets) and all(s.completed for s in ex.sets)
    if all(s.completed or s.failed for s in ex.sets):
        ex.end_time = now


def _write_set(
    state: EngineState,
    values: Mapping[str, object] | None,
    target: Cursor | None,
    now: float,
    validator: SetValidator | None,
    *,
    completed: bool,
) -> tuple[Transition, Cursor]:
    tr = _begin(state, SessionStatus.ACTIVE)
    session = tr.state.session
    target = nav.validate_cursor(session, target or tr.state.cursor)
    values = dict(values or {})
    check_keys(values)
    set_ = nav.set_at(session, target)
    if validator is not None:
        validator(values, set_.type)
    _record_values(set_, values, now, completed=completed)
    _update_exercise_flags(tr.state, target.exercise_index, now)
    tr.emit(
        "set_completed" if completed else "set_failed",
        cursor=target.to_dict(),
        set=set_.to_dict(),
    )
    return tr, target


# ----------------------------------------------------------------------
# Lifecycle
# ----------------------------------------------------------------------


def start_session(
    state: EngineState, *, now: float, config: EngineConfig = _DEFAULT_CONFIG
) -> Transition:
    tr = _begin(state, SessionStatus.NOT_STARTED)
    first = nav.first_cursor(tr.state.session)
    tr.state.session.start_time = now
    if tr.state.session.date is None:
        tr.state.session.date = now
    tr.state.timer = RestTimerState(warning_threshold=config.warning_time)
    tr.emit("session_started", start_time=now)
    _move(tr, first, now)
    _recompute_metrics(tr, now, config)
    logging.info("Workout session '%s' started", tr.state.session.name)
    return tr


def pause_session(state: EngineState, *, now: float) -> Transition:
    tr = _begin(state, SessionStatus.ACTIVE)
    tr.state.session.paused_at = now
    tr.emit("session_paused", paused_at=now)
    _apply_timer(tr, pause_timer(tr.state.timer), now)
    return tr


def resume_session(state: EngineState, *, now: float) -> Transition:
    tr = _begin(state, SessionStatus.PAUSED)
    session = tr.state.session
    session.paused_duration += max(0.0, now - session.paused_at)
    session.paused_at = None
    session.resumed_at = now
    tr.emit("session_resumed", resumed_at=now)
    _apply_timer(tr, resume_timer(tr.state.timer), now)
    return tr


def _close(
    state: EngineState, now: float, config: EngineConfig, *, completed: bool
) -> Transition:
    tr = _begin(state, SessionStatus.ACTIVE, SessionStatus.PAUSED)
    session = tr.state.session
    if session.paused_at is not None:
        session.paused_duration += max(0.0, now - session.paused_at)
        session.paused_at = None
    session.end_time = now
    session.duration = session.duration_minutes(now)
    session.completed = completed
    session.abandoned = not completed
    tr.state.timer, _ = reset_timer(tr.state.timer)
    tr.state.advance_on_rest_complete = False
    tr.state.cursor = None
    _recompute_metrics(tr, now, config)
    tr.emit(
        "session_finished" if completed else "session_abandoned",
        session=session.to_dict(),
    )
    logging.info(
        "Workout session '%s' %s after %d minutes",
        session.name,
        "finished" if completed else "abandoned",
        session.duration_minutes(now),
    )
    return tr


def finish_session(
    state: EngineState, *, now: float, config: EngineConfig = _DEFAULT_CONFIG
) -> Transition:
    return _close(state, now, config, completed=True)


def abandon_session(
    state: EngineState, *, now: float, config: EngineConfig = _DEFAULT_CONFIG
) -> Transition:
    return _close(state, now, config, completed=False)


# ----------------------------------------------------------------------
# Sets
# ----------------------------------------------------------------------


def complete_set(
    state: EngineState,
    values: Mapping[str, object] | None = None,
    *,
    cursor: Cursor | None = None,
    now: float,
    config: EngineConfig = _DEFAULT_CONFIG,
    validator: SetValidator | None = None,
) -> Transition:
    """Record the set at ``cursor`` (default: the current set) as completed.

    Completing the current set starts the rest timer with the rest time of
    the exercise just performed; the cursor moves on once the rest is over
    or skipped.  After the last set no timer is started and the session
    becomes eligible to finish.
    """

    tr, target = _write_set(state, values, cursor, now, validator, completed=True)
    _recompute_metrics(tr, now, config)
    if target != tr.state.cursor:
        return tr

    state = tr.state
    if nav.advance(state.session, target).is_terminal:
        state.advance_on_rest_complete = False
        _move(tr, nav.TERMINAL_CURSOR, now)
        return tr

    rest = state.session.exercises[target.exercise_index].rest_time
    state.advance_on_rest_complete = True
    _apply_timer(
        tr,
        start_timer(
            state.timer,
            rest or config.default_rest_time,
            kind="rest",
            warning_threshold=config.warning_time,
        ),
        now,
    )
    return tr


def fail_set(
    state: EngineState,
    values: Mapping[str, object] | None = None,
    *,
    cursor: Cursor | None = None,
    now: float,
    config: EngineConfig = _DEFAULT_CONFIG,
    validator: SetValidator | None = None,
) -> Transition:
    """Record the set at ``cursor`` as failed; no rest timer is started."""

    tr, _ = _write_set(state, values, cursor, now, validator, completed=False)
    _recompute_metrics(tr, now, config)
    return tr


# ----------------------------------------------------------------------
# Navigation
# ----------------------------------------------------------------------


def _navigate(
    state: EngineState, now: float, compute: Callable[[WorkoutSession, Cursor], Cursor]
) -> Transition:
    tr = _begin(state, SessionStatus.ACTIVE, SessionStatus.PAUSED)
    tr.state.advance_on_rest_complete = False
    _move(tr, compute(tr.state.session, tr.state.cursor), now)
    return tr


def advance(state: EngineState, *, now: float) -> Transition:
    return _navigate(state, now, nav.advance)


def retreat(state: EngineState, *, now: float) -> Transition:
    return _navigate(state, now, nav.retreat)


def jump_to_exercise(state: EngineState, exercise_index: int, *, now: float) -> Transition:
    return _navigate(
        state, now, lambda session, _cursor: nav.jump_to_exercise(session, exercise_index)
    )


def skip_exercise(
    state: EngineState,
    reason: str = "",
    *,
    now: float,
    config: EngineConfig = _DEFAULT_CONFIG,
) -> Transition:
    """Mark the current exercise as skipped and move to the next one."""

    tr = _begin(state, SessionStatus.ACTIVE)
    state = tr.state
    ex_idx = nav.validate_cursor(state.session, state.cursor).exercise_index
    exercise = state.session.exercises[ex_idx]
    exercise.skipped = True
    exercise.skip_reason = reason
    exercise.end_time = now
    state.advance_on_rest_complete = False
    state.timer, _ = reset_timer(state.timer)
    tr.emit("exercise_skipped", exercise_index=ex_idx, reason=reason)

    last_set = Cursor(ex_idx, len(exercise.sets) - 1)
    target = nav.TERMINAL_CURSOR
    if exercise.sets:
        target = nav.advance(state.session, last_set)
    else:
        for idx in range(ex_idx + 1, len(state.session.exercises)):
            if state.session.exercises[idx].sets:
                target = Cursor(idx, 0)
                break
    _move(tr, target, now)
    _recompute_metrics(tr, now, config)
    return tr


# ----------------------------------------------------------------------
# Rest timer
# ----------------------------------------------------------------------


def tick(state: EngineState, *, now: float) -> Transition:
    """Forward one elapsed second to the rest timer.

    Ticks before the start or while paused are ignored.
    """

    status = state.status
    if status in (SessionStatus.NOT_STARTED, SessionStatus.PAUSED):
        return Transition(state)
    tr = _begin(state, SessionStatus.ACTIVE)
    _apply_timer(tr, tick_timer(tr.state.timer), now)
    return tr


def skip_rest(state: EngineState, *, now: float) -> Transition:
    tr = _begin(state, SessionStatus.ACTIVE)
    _apply_timer(tr, skip_timer(tr.state.timer), now)
    return tr


def adjust_rest(
    state: EngineState,
    delta: int,
    *,
    now: float,
    config: EngineConfig = _DEFAULT_CONFIG,
) -> Transition:
    tr = _begin(state, SessionStatus.ACTIVE, SessionStatus.PAUSED)
    _apply_timer(tr, adjust_timer(tr.state.timer, delta, floor=config.adjust_floor), now)
    return tr


# ----------------------------------------------------------------------
# Annotations
# ----------------------------------------------------------------------


def update_notes(state: EngineState, notes: str) -> Transition:
    tr = _begin(state, SessionStatus.ACTIVE, SessionStatus.PAUSED)
    tr.state.session.notes = notes
    tr.emit("notes_updated", notes=notes)
    return tr


def add_personal_record(state: EngineState, record: dict) -> Transition:
    """Append an externally detected personal record to the metrics."""

    tr = _begin(state, SessionStatus.ACTIVE, SessionStatus.PAUSED)
    tr.state.session.metrics.personal_records.append(dict(record))
    tr.emit("personal_record_added", record=dict(record))
    return tr
