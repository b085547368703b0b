"""Small process-wide helpers: clocks, thread ids and stack traces."""

import threading
import time
import traceback

__all__ = [
    "get_current_ms",
    "get_current_us",
    "get_thread_id",
    "backtrace",
    "backtrace_to_string",
]


def get_current_ms() -> int:
    """Wall-clock time in milliseconds since the epoch."""
    return time.time_ns() // 1_000_000


def get_current_us() -> int:
    """Wall-clock time in microseconds since the epoch."""
    return time.time_ns() // 1_000


def get_thread_id() -> int:
    """Native id of the calling thread as the kernel knows it."""
    return threading.get_native_id()


def backtrace(size: int = 64, skip: int = 1) -> list[str]:
    """Return the call stack, innermost frame first.

    At most ``size`` frames are taken, counting this function's own frame,
    and the first ``skip`` of them are dropped.
    """
    frames = list(reversed(traceback.extract_stack()))[:size]
    return [f"{frame.filename}:{frame.lineno} {frame.name}" for frame in frames[skip:]]


def backtrace_to_string(size: int = 64, skip: int = 2, prefix: str = "") -> str:
    """Return the call stack as text, one prefixed frame per line."""
    return "".join(f"{prefix}{line}\n" for line in backtrace(size, skip))