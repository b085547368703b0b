"""Named worker threads that know their own name and native id."""

from __future__ import annotations

import threading
from typing import Any, Callable, Optional

from .util import get_thread_id

__all__ = [
    "Thread",
    "current_thread",
    "current_thread_name",
    "set_current_thread_name",
]

_local = threading.local()


class Thread:
    """A thread that starts running ``cb`` as soon as it is created.

    The constructor returns only once the new thread is running, so
    ``id`` already holds its native id.
    """

    def __init__(self, name: str, cb: Callable[[], Any]) -> None:
        self.name = name or "UNKNOWN"
        self.id = 0
        self._cb: Optional[Callable[[], Any]] = cb
        self._started = threading.Semaphore(0)
        self._thread: Optional[threading.Thread] = threading.Thread(
            target=self._run, name=self.name[:15], daemon=True
        )
        self._thread.start()
        self._started.acquire()

    def __repr__(self) -> str:
        return f"Thread(name={self.name!r}, id={self.id})"

    def join(self) -> None:
        """Wait for the thread to finish; later calls return at once."""
        if self._thread is not None:
            self._thread.join()
            self._thread = None

    def _run(self) -> None:
        _local.thread = self
        _local.name = self.name
        self.id = get_thread_id()
        cb, self._cb = self._cb, None
        self._started.release()
        cb()


def current_thread() -> Optional[Thread]:
    """The :class:`Thread` running the caller, or None outside one."""
    return getattr(_local, "thread", None)


def current_thread_name() -> str:
    """Name of the calling thread; ``"main"`` outside a :class:`Thread`."""
    if current_thread() is None:
        set_current_thread_name("main")
    return _local.name


def set_current_thread_name(name: str) -> None:
    """Rename the calling thread."""
    thread = current_thread()
    if thread is not None:
        thread.name = name
    _local.name = name