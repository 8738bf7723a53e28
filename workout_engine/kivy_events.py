"""Bridge engine events to Kivy widgets.

:class:`SessionEventDispatcher` subscribes to a
:class:`~workout_engine.engine.WorkoutSessionEngine` and re-dispatches its
events as Kivy events (``on_set_complete``, ``on_rest_timer_complete`` ...).
It also mirrors the live rest-timer projection and headline metrics into
Kivy properties so screens can bind to them in kv rules.
"""

from __future__ import annotations

from kivy.event import EventDispatcher
from kivy.properties import (
    BooleanProperty,
    NumericProperty,
    ObjectProperty,
    StringProperty,
)

from workout_engine.rest_timer import format_time, timer_progress

EVENT_MAP = {
    "session_started": "on_session_start",
    "set_completed": "on_set_complete",
    "set_failed": "on_set_failed",
    "cursor_moved": "on_cursor_moved",
    "rest_timer_started": "on_rest_timer_start",
    "rest_timer_warning": "on_rest_timer_warning",
    "rest_timer_complete": "on_rest_timer_complete",
    "workout_complete_eligible": "on_workout_complete_eligible",
    "exercise_skipped": "on_exercise_skipped",
    "session_paused": "on_session_paused",
    "session_resumed": "on_session_resumed",
    "session_finished": "on_session_finished",
    "session_abandoned": "on_session_abandoned",
    "personal_record_added": "on_personal_record",
}


class SessionEventDispatcher(EventDispatcher):
    """Kivy-facing view of a running session."""

    __events__ = tuple(EVENT_MAP.values())

    engine = ObjectProperty(None, allownone=True)
    status = StringProperty("not_started")
    timer_active = BooleanProperty(False)
    timer_paused = BooleanProperty(False)
    time_remaining = NumericProperty(0)
    timer_label = StringProperty("0:00")
    timer_progress = NumericProperty(0)
    current_set = StringProperty("")
    upcoming_set = StringProperty("")
    completed_sets = NumericProperty(0)
    total_sets = NumericProperty(0)
    completion_rate = NumericProperty(0)
    total_volume = NumericProperty(0)

    def __init__(self, engine=None, **kwargs):
        super().__init__(**kwargs)
        if engine is not None:
            self.attach(engine)

    def attach(self, engine) -> None:
        self.detach()
        self.engine = engine
        engine.subscribe(self.handle_event)
        self.refresh()

    def detach(self) -> None:
        if self.engine is not None:
            self.engine.unsubscribe(self.handle_event)
            self.engine = None

    def handle_event(self, event) -> None:
        self.refresh()
        name = EVENT_MAP.get(event.name)
        if name:
            self.dispatch(name, event.data)

    def refresh(self) -> None:
        engine = self.engine
        if engine is None:
            return
        timer = engine.timer
        metrics = engine.metrics
        self.status = engine.status.value
        self.timer_active = timer.is_active
        self.timer_paused = timer.is_paused
        self.time_remaining = timer.time_remaining
        self.timer_label = format_time(timer.time_remaining)
        self.timer_progress = timer_progress(timer)
        self.current_set = engine.current_display()
        self.upcoming_set = engine.upcoming_display()
        self.completed_sets = metrics.completed_sets
        self.total_sets = metrics.total_sets
        self.completion_rate = metrics.completion_rate
        self.total_volume = metrics.total_volume

    # Default handlers; Kivy requires one per registered event.
    def on_session_start(self, data):
        pass

    def on_set_complete(self, data):
        pass

    def on_set_failed(self, data):
        pass

    def on_cursor_moved(self, data):
        pass

    def on_rest_timer_start(self, data):
        pass

    def on_rest_timer_warning(self, data):
        pass

    def on_rest_timer_complete(self, data):
        pass

    def on_workout_complete_eligible(self, data):
        pass

    def on_exercise_skipped(self, data):
        pass

    def on_session_paused(self, data):
        pass

    def on_session_resumed(self, data):
        pass

    def on_session_finished(self, data):
        pass

    def on_session_abandoned(self, data):
        pass

    def on_personal_record(self, data):
        pass
