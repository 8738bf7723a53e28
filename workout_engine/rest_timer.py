"""Cancellable rest countdown driven by one tick per elapsed second.

The timer logic lives in small pure functions over :class:`RestTimerState`
so the session state machine can embed the timer in its own state.  Each
function returns the new state together with the list of signals raised by
the step (``"started"``, ``"tick"``, ``"warning"``, ``"complete"``,
``"paused"``, ``"resumed"``, ``"adjusted"``).  :class:`RestTimer` wraps the
functions for standalone use and turns the signals into callbacks.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable

from workout_engine import DEFAULT_ADJUST_FLOOR, DEFAULT_WARNING_TIME
from workout_engine.errors import InvalidStateError, ValidationError

TIMER_KINDS = ("rest", "exercise", "warmup")

# Common rest durations offered to the user, in seconds
TIME_PRESETS = (30, 45, 60, 90, 120, 180, 300)


class TimerPhase(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"


@dataclass(frozen=True)
class RestTimerState:
    phase: TimerPhase = TimerPhase.IDLE
    time_remaining: int = 0
    initial_time: int = 0
    kind: str = "rest"
    warning_threshold: int = DEFAULT_WARNING_TIME
    warned: bool = False

    @property
    def is_active(self) -> bool:
        return self.phase is TimerPhase.RUNNING

    @property
    def is_paused(self) -> bool:
        return self.phase is TimerPhase.PAUSED

    @property
    def is_pending(self) -> bool:
        """``True`` while the countdown has not finished (running or paused)."""
        return self.phase in (TimerPhase.RUNNING, TimerPhase.PAUSED)

    def to_dict(self) -> dict:
        return {
            "isActive": self.is_active,
            "timeRemaining": self.time_remaining,
            "initialTime": self.initial_time,
            "kind": self.kind,
            "phase": self.phase.value,
            "warningThreshold": self.warning_threshold,
            "warned": self.warned,
        }

    @classmethod
    def from_dict(cls, data: dict | None) -> "RestTimerState":
        data = data or {}
        return cls(
            phase=TimerPhase(data.get("phase", TimerPhase.IDLE.value)),
            time_remaining=data.get("timeRemaining") or 0,
            initial_time=data.get("initialTime") or 0,
            kind=data.get("kind") or "rest",
            warning_threshold=data.get("warningThreshold", DEFAULT_WARNING_TIME),
            warned=bool(data.get("warned", False)),
        )


Step = tuple[RestTimerState, list[str]]


def start_timer(
    state: RestTimerState,
    duration: int,
    *,
    kind: str = "rest",
    warning_threshold: int | None = None,
) -> Step:
    """Start (or restart) the countdown from ``duration`` seconds."""

    if duration < 0:
        raise ValidationError("Timer duration must not be negative")
    if kind not in TIMER_KINDS:
        raise ValidationError(f"Unknown timer kind '{kind}'")
    threshold = state.warning_threshold if warning_threshold is None else warning_threshold
    duration = int(duration)
    if duration == 0:
        done = RestTimerState(
            TimerPhase.COMPLETED, 0, 0, kind, threshold, warned=False
        )
        return done, ["started", "complete"]
    new = RestTimerState(TimerPhase.RUNNING, duration, duration, kind, threshold)
    return new, ["started"]


def tick_timer(state: RestTimerState) -> Step:
    """Advance the countdown by one second.

    Ticks outside the running phase are ignored, so a paused timer never
    loses time however many ticks arrive.
    """

    if state.phase is not TimerPhase.RUNNING:
        return state, []
    remaining = max(0, state.time_remaining - 1)
    signals = ["tick"]
    warned = state.warned
    if (
        remaining > 0
        and state.warning_threshold > 0
        and remaining == state.warning_threshold
        and not warned
    ):
        warned = True
        signals.append("warning")
    if remaining == 0:
        signals.append("complete")
        return replace(
            state, phase=TimerPhase.COMPLETED, time_remaining=0, warned=warned
        ), signals
    return replace(state, time_remaining=remaining, warned=warned), signals


def pause_timer(state: RestTimerState) -> Step:
    if state.phase is not TimerPhase.RUNNING:
        return state, []
    return replace(state, phase=TimerPhase.PAUSED), ["paused"]


def resume_timer(state: RestTimerState) -> Step:
    if state.phase is not TimerPhase.PAUSED:
        return state, []
    return replace(state, phase=TimerPhase.RUNNING), ["resumed"]


def adjust_timer(
    state: RestTimerState, delta: int, *, floor: int = DEFAULT_ADJUST_FLOOR
) -> Step:
    """Add ``delta`` seconds (negative to subtract) to a pending countdown.

    The remaining time never drops below ``floor`` (or below the current
    remaining time when that is already smaller), so shortening the rest
    cannot complete the timer by itself.
    """

    if not state.is_pending:
        raise InvalidStateError(f"Cannot adjust a {state.phase.value} timer")
    lower = min(max(0, floor), state.time_remaining)
    remaining = max(lower, state.time_remaining + int(delta))
    initial = max(remaining, state.initial_time + int(delta))
    return replace(state, time_remaining=remaining, initial_time=initial), ["adjusted"]


def skip_timer(state: RestTimerState) -> Step:
    """Finish a pending countdown immediately."""

    if not state.is_pending:
        return state, []
    return replace(state, phase=TimerPhase.COMPLETED, time_remaining=0), ["complete"]


def reset_timer(state: RestTimerState) -> Step:
    """Return to idle, keeping the configured warning threshold."""

    return RestTimerState(warning_threshold=state.warning_threshold), []


def format_time(seconds: int) -> str:
    """Return ``seconds`` formatted as ``m:ss``."""

    minutes, secs = divmod(max(0, int(seconds)), 60)
    return f"{minutes}:{secs:02d}"


def timer_progress(state: RestTimerState) -> float:
    """Return the elapsed share of the countdown as a percentage."""

    if state.initial_time <= 0:
        return 100.0 if state.phase is TimerPhase.COMPLETED else 0.0
    elapsed = state.initial_time - state.time_remaining
    return elapsed / state.initial_time * 100


def adjust_step(remaining: int) -> int:
    """Return the adjustment step suited to the remaining rest time."""

    if remaining < 60:
        return 10
    if remaining < 300:
        return 30
    return 60


class RestTimer:
    """Standalone rest timer with callbacks.

    ``on_tick`` receives the remaining seconds after every tick while
    ``on_warning`` and ``on_complete`` are called without arguments.  The
    caller is responsible for invoking :meth:`tick` once per second.
    """

    def __init__(
        self,
        *,
        warning_threshold: int = DEFAULT_WARNING_TIME,
        adjust_floor: int = DEFAULT_ADJUST_FLOOR,
        on_tick: Callable[[int], None] | None = None,
        on_warning: Callable[[], None] | None = None,
        on_complete: Callable[[], None] | None = None,
    ):
        self.state = RestTimerState(warning_threshold=warning_threshold)
        self.adjust_floor = adjust_floor
        self.on_tick = on_tick
        self.on_warning = on_warning
        self.on_complete = on_complete

    @property
    def time_remaining(self) -> int:
        return self.state.time_remaining

    @property
    def phase(self) -> TimerPhase:
        return self.state.phase

    def _apply(self, step: Step) -> None:
        self.state, signals = step
        for signal in signals:
            if signal == "tick" and self.on_tick:
                self.on_tick(self.state.time_remaining)
            elif signal == "warning" and self.on_warning:
                self.on_warning()
            elif signal == "complete":
                logging.debug("Rest timer complete")
                if self.on_complete:
                    self.on_complete()

    def start(self, duration: int, kind: str = "rest") -> None:
        self._apply(start_timer(self.state, duration, kind=kind))

    def tick(self) -> None:
        self._apply(tick_timer(self.state))

    def pause(self) -> None:
        self._apply(pause_timer(self.state))

    def resume(self) -> None:
        self._apply(resume_timer(self.state))

    def adjust(self, delta: int) -> None:
        self._apply(adjust_timer(self.state, delta, floor=self.adjust_floor))

    def skip(self) -> None:
        self._apply(skip_timer(self.state))

    def reset(self) -> None:
        self._apply(reset_timer(self.state))
