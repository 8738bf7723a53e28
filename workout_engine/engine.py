"""Single-writer driver around the pure session transitions."""

from __future__ import annotations

import logging
import time
from typing import Callable

from workout_engine import cursor as nav
from workout_engine import state_machine as sm
from workout_engine.clock import TimeSource
from workout_engine.cursor import Cursor
from workout_engine.kivy_clock import KivyClock
from workout_engine.models import SessionMetrics, WorkoutSession
from workout_engine.rest_timer import RestTimerState, format_time
from workout_engine.settings import EngineConfig
from workout_engine.state_machine import EngineState, SessionEvent, SessionStatus
from workout_engine.validation import SetValidator

Listener = Callable[[SessionEvent], None]


class WorkoutSessionEngine:
    """Drive one workout session in real time.

    The engine owns the current :class:`EngineState`, applies transitions
    one at a time and publishes the resulting events to listeners.  While
    the rest timer runs it keeps exactly one tick subscription on the time
    source; the subscription is cancelled as soon as the timer stops, the
    session is paused or the session ends.

    Every mutating method returns the list of events it produced.  A method
    that raises leaves the engine state untouched.  Listener errors are
    logged and do not stop delivery to the remaining listeners.  The engine
    never persists anything: callers store :attr:`session` (or
    :meth:`export_state`) after each call.
    """

    def __init__(
        self,
        session: WorkoutSession | EngineState,
        *,
        time_source: TimeSource | None = None,
        config: EngineConfig | None = None,
        validator: SetValidator | None = None,
        listeners: list[Listener] | None = None,
    ):
        self.time_source = time_source if time_source is not None else KivyClock()
        self.config = config if config is not None else EngineConfig()
        self.validator = validator
        if isinstance(session, EngineState):
            self._state = session
        else:
            self._state = EngineState.from_session(session)
        self._listeners: list[Listener] = list(listeners or [])
        self._tick_handle = None
        self._sync_ticks()

    # ------------------------------------------------------------------
    # State access
    # ------------------------------------------------------------------

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def session(self) -> WorkoutSession:
        return self._state.session

    @property
    def cursor(self) -> Cursor | None:
        return self._state.cursor

    @property
    def timer(self) -> RestTimerState:
        return self._state.timer

    @property
    def status(self) -> SessionStatus:
        return self._state.status

    @property
    def metrics(self) -> SessionMetrics:
        return self._state.session.metrics

    def is_workout_complete(self) -> bool:
        """Return ``True`` once every planned set has been visited."""

        metrics = self.metrics
        return self._state.all_sets_visited or (
            metrics.total_sets > 0 and metrics.completed_sets == metrics.total_sets
        )

    def current_display(self) -> str:
        return nav.describe(self.session, self.cursor)

    def upcoming_display(self) -> str:
        return nav.upcoming(self.session, self.cursor)

    def progress(self) -> dict:
        return nav.progress(self.session, self.cursor)

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _now(self) -> float:
        return self.time_source.now()

    def _sync_ticks(self) -> None:
        running = self._state.timer.is_active and self.status is SessionStatus.ACTIVE
        if running and self._tick_handle is None:
            self._tick_handle = self.time_source.schedule_tick(self.tick)
        elif not running and self._tick_handle is not None:
            self._tick_handle.cancel()
            self._tick_handle = None

    def _apply(self, transition: sm.Transition) -> list[SessionEvent]:
        self._state = transition.state
        self._sync_ticks()
        for event in transition.events:
            if event.name != "rest_timer_tick":
                logging.debug("Session event %s %s", event.name, event.data)
            for listener in list(self._listeners):
                try:
                    listener(event)
                except Exception:
                    logging.exception("Session listener failed on %s", event.name)
        return transition.events

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def start(self) -> list[SessionEvent]:
        return self._apply(sm.start_session(self._state, now=self._now(), config=self.config))

    def complete_set(
        self, values: dict | None = None, cursor: Cursor | None = None
    ) -> list[SessionEvent]:
        return self._apply(
            sm.complete_set(
                self._state,
                values,
                cursor=cursor,
                now=self._now(),
                config=self.config,
                validator=self.validator,
            )
        )

    def fail_set(
        self, values: dict | None = None, cursor: Cursor | None = None
    ) -> list[SessionEvent]:
        return self._apply(
            sm.fail_set(
                self._state,
                values,
                cursor=cursor,
                now=self._now(),
                config=self.config,
                validator=self.validator,
            )
        )

    def advance(self) -> list[SessionEvent]:
        return self._apply(sm.advance(self._state, now=self._now()))

    def retreat(self) -> list[SessionEvent]:
        return self._apply(sm.retreat(self._state, now=self._now()))

    def jump_to_exercise(self, exercise_index: int) -> list[SessionEvent]:
        return self._apply(
            sm.jump_to_exercise(self._state, exercise_index, now=self._now())
        )

    def skip_exercise(self, reason: str = "") -> list[SessionEvent]:
        return self._apply(
            sm.skip_exercise(self._state, reason, now=self._now(), config=self.config)
        )

    def pause(self) -> list[SessionEvent]:
        return self._apply(sm.pause_session(self._state, now=self._now()))

    def resume(self) -> list[SessionEvent]:
        return self._apply(sm.resume_session(self._state, now=self._now()))

    def finish(self) -> list[SessionEvent]:
        return self._apply(
            sm.finish_session(self._state, now=self._now(), config=self.config)
        )

    def abandon(self) -> list[SessionEvent]:
        return self._apply(
            sm.abandon_session(self._state, now=self._now(), config=self.config)
        )

    def tick(self) -> list[SessionEvent]:
        return self._apply(sm.tick(self._state, now=self._now()))

    def skip_rest(self) -> list[SessionEvent]:
        return self._apply(sm.skip_rest(self._state, now=self._now()))

    def adjust_rest(self, delta: int) -> list[SessionEvent]:
        return self._apply(
            sm.adjust_rest(self._state, delta, now=self._now(), config=self.config)
        )

    def update_notes(self, notes: str) -> list[SessionEvent]:
        return self._apply(sm.update_notes(self._state, notes))

    def add_personal_record(self, record: dict) -> list[SessionEvent]:
        return self._apply(sm.add_personal_record(self._state, record))

    def close(self) -> None:
        """Drop the tick subscription, e.g. when the UI goes away."""

        if self._tick_handle is not None:
            self._tick_handle.cancel()
            self._tick_handle = None

    # ------------------------------------------------------------------
    # Persistence helpers
    # ------------------------------------------------------------------

    def export_state(self) -> dict:
        """Return a JSON-serialisable snapshot including cursor and timer."""

        return self._state.to_dict()

    @classmethod
    def from_state(cls, data: dict, **kwargs) -> "WorkoutSessionEngine":
        """Rebuild an engine from :meth:`export_state` output."""

        return cls(EngineState.from_dict(data), **kwargs)

    def summary(self) -> str:
        """Return a formatted text summary of the session."""

        session = self.session
        now = self._now()
        lines = [f"Workout: {session.name}"]
        if session.start_time is not None:
            end_time = session.end_time if session.end_time is not None else now
            start = time.strftime(
                "%Y-%m-%d %H:%M:%S", time.localtime(session.start_time)
            )
            end = time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(end_time))
            lines.append(f"Start: {start}")
            lines.append(f"End:   {end}")
            lines.append(f"Duration: {format_time(session.active_seconds(now))}")
        metrics = session.metrics
        lines.append(
            f"Sets: {metrics.completed_sets}/{metrics.total_sets}"
            f" ({metrics.completion_rate:.0f}%)"
        )
        lines.append(f"Volume: {metrics.total_volume:g} kg")
        for ex in session.exercises:
            lines.append(f"\n{ex.name}" + (" (skipped)" if ex.skipped else ""))
            for idx, set_ in enumerate(ex.sets, 1):
                if not (set_.completed or set_.failed):
                    continue
                parts = []
                if set_.effective_reps is not None:
                    parts.append(f"{set_.effective_reps} reps")
                if set_.effective_weight:
                    parts.append(f"{set_.effective_weight:g} kg")
                if set_.effective_duration is not None and set_.type == "timed":
                    parts.append(f"{set_.effective_duration}s")
                if set_.rpe is not None:
                    parts.append(f"RPE {set_.rpe:g}")
                status = "done" if set_.completed else "failed"
                lines.append(f"  Set {idx}: {', '.join(parts)} [{status}]")
        return "\n".join(lines)
