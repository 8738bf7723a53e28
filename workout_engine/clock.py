"""Time sources injected into the session engine.

The engine never reads the wall clock directly.  A time source provides
``now()`` (epoch seconds) and ``schedule_tick(callback, interval)`` which
calls ``callback()`` every ``interval`` seconds until the returned handle's
``cancel()`` is invoked.
"""

from __future__ import annotations

from typing import Callable


class TimeSource:
    """Interface implemented by every time source."""

    def now(self) -> float:
        raise NotImplementedError

    def schedule_tick(self, callback: Callable[[], None], interval: float = 1.0):
        raise NotImplementedError


class _ManualTick:
    def __init__(self, callback: Callable[[], None], interval: float, due: float):
        self.callback = callback
        self.interval = interval
        self.next_due = due
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualClock(TimeSource):
    """Deterministic clock advanced explicitly by the caller.

    Scheduled ticks fire in time order while :meth:`advance` moves the clock
    forward, which makes timer behaviour reproducible in tests and replays.
    """

    def __init__(self, start: float = 0.0):
        self._now = float(start)
        self._ticks: list[_ManualTick] = []

    def now(self) -> float:
        return self._now

    def schedule_tick(self, callback: Callable[[], None], interval: float = 1.0):
        tick = _ManualTick(callback, interval, self._now + interval)
        self._ticks.append(tick)
        return tick

    @property
    def active_ticks(self) -> int:
        """Number of subscriptions that have not been cancelled."""
        self._ticks = [t for t in self._ticks if not t.cancelled]
        return len(self._ticks)

    def advance(self, seconds: float) -> None:
        """Move the clock forward, firing every tick that falls due."""

        target = self._now + seconds
        while True:
            due = [t for t in self._ticks if not t.cancelled and t.next_due <= target]
            if not due:
                break
            tick = min(due, key=lambda t: t.next_due)
            self._now = tick.next_due
            tick.next_due += tick.interval
            tick.callback()
        self._now = target
