"""Wall-clock time source backed by the Kivy event loop."""

from __future__ import annotations

import time
from typing import Callable

from kivy.clock import Clock

from workout_engine.clock import TimeSource


class KivyClock(TimeSource):
    """Deliver ticks through :data:`kivy.clock.Clock`.

    Ticks only fire while the Kivy main loop is running.  ``schedule_tick``
    returns the Kivy ``ClockEvent`` whose ``cancel()`` stops the interval.
    """

    def __init__(self, clock=None):
        self._clock = clock if clock is not None else Clock

    def now(self) -> float:
        return time.time()

    def schedule_tick(self, callback: Callable[[], None], interval: float = 1.0):
        return self._clock.schedule_interval(lambda dt: callback(), interval)
