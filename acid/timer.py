"""Millisecond timers kept in deadline order."""

from __future__ import annotations

import bisect
import itertools
import threading
import weakref
from typing import Any, Callable, Optional

from .util import get_current_ms

__all__ = ["NO_TIMER", "Timer", "TimerManager"]

#: Returned by :meth:`TimerManager.get_next_timer` when no timer is pending.
NO_TIMER = 2**64 - 1

_sequence = itertools.count()


def _order(timer: "Timer") -> tuple[int, int]:
    return (timer.deadline, timer._seq)


class Timer:
    """A pending callback owned by a :class:`TimerManager`."""

    def __init__(
        self,
        ms: int,
        cb: Callable[[], Any],
        recurring: bool,
        manager: "TimerManager",
    ) -> None:
        self.ms = ms
        self.recurring = recurring
        self.deadline = get_current_ms() + ms
        self._cb: Optional[Callable[[], Any]] = cb
        self._manager = manager
        self._seq = next(_sequence)

    def __repr__(self) -> str:
        return f"Timer(ms={self.ms}, deadline={self.deadline}, recurring={self.recurring})"

    def cancel(self) -> bool:
        """Remove the timer; False if it already ran or was cancelled."""
        manager = self._manager
        with manager._lock:
            if self._cb is None:
                return False
            index = manager._find(self)
            if index is None:
                return False
            del manager._timers[index]
            self._cb = None
            return True

    def refresh(self) -> bool:
        """Restart the period from now; False if the timer is not pending."""
        manager = self._manager
        with manager._lock:
            if self._cb is None:
                return False
            index = manager._find(self)
            if index is None:
                return False
            del manager._timers[index]
            self.deadline = get_current_ms() + self.ms
            bisect.insort(manager._timers, self, key=_order)
            return True

    def reset(self, ms: int, from_now: bool) -> bool:
        """Change the period, counting from now or from the last start."""
        if ms == self.ms and not from_now:
            return True
        manager = self._manager
        with manager._lock:
            if self._cb is None:
                return False
            index = manager._find(self)
            if index is None:
                return False
            del manager._timers[index]
            start = get_current_ms() if from_now else self.deadline - self.ms
            self.ms = ms
            self.deadline = start + ms
            at_front = manager._insert(self)
        if at_front:
            manager.on_insert_at_front()
        return True


class TimerManager:
    """Holds timers ordered by deadline and hands out the expired ones."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._timers: list[Timer] = []
        self._tickled = False

    def add_timer(self, ms: int, cb: Callable[[], Any], recurring: bool = False) -> Timer:
        """Schedule ``cb`` to run ``ms`` milliseconds from now."""
        timer = Timer(ms, cb, recurring, self)
        with self._lock:
            at_front = self._insert(timer)
        if at_front:
            self.on_insert_at_front()
        return timer

    def add_condition_timer(
        self,
        ms: int,
        cb: Callable[[], Any],
        cond: Any,
        recurring: bool = False,
    ) -> Timer:
        """Schedule ``cb`` to run only while ``cond`` is still alive.

        ``cond`` is held through a weak reference; a ``weakref.ref`` may be
        passed directly.
        """
        ref = cond if isinstance(cond, weakref.ref) else weakref.ref(cond)

        def guarded() -> None:
            if ref() is not None:
                cb()

        return self.add_timer(ms, guarded, recurring)

    def get_next_timer(self) -> int:
        """Milliseconds until the earliest deadline, 0 if overdue."""
        with self._lock:
            if not self._timers:
                return NO_TIMER
            self._tickled = False
            deadline = self._timers[0].deadline
        now = get_current_ms()
        return 0 if now >= deadline else deadline - now

    def get_expired_callbacks(self) -> list[Callable[[], Any]]:
        """Take every callback whose deadline has passed.

        Recurring timers are rescheduled one period from now; the others
        are spent.
        """
        now = get_current_ms()
        with self._lock:
            if not self._timers:
                return []
            split = bisect.bisect_right(self._timers, now, key=lambda t: t.deadline)
            expired = self._timers[:split]
            del self._timers[:split]
            callbacks = []
            for timer in expired:
                callbacks.append(timer._cb)
                if timer.recurring:
                    timer.deadline = now + timer.ms
                    bisect.insort(self._timers, timer, key=_order)
                else:
                    timer._cb = None
            return callbacks

    def has_timer(self) -> bool:
        """Whether any timer is pending."""
        with self._lock:
            return bool(self._timers)

    def on_insert_at_front(self) -> None:
        """Called when a new timer becomes the earliest one."""

    def _find(self, timer: Timer) -> Optional[int]:
        index = bisect.bisect_left(self._timers, _order(timer), key=_order)
        if index < len(self._timers) and self._timers[index] is timer:
            return index
        return None

    def _insert(self, timer: Timer) -> bool:
        bisect.insort(self._timers, timer, key=_order)
        at_front = self._timers[0] is timer and not self._tickled
        if at_front:
            self._tickled = True
        return at_front