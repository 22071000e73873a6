"""
Miscellaneous utilities for object_controller.
"""

import os
import re
import sys
import time
import logging
from multiprocessing import shared_memory

logger = logging.getLogger("objctl.utils")

SEGMENT_PREFIX = "objctl_"

_UNSAFE = re.compile(r"[^A-Za-z0-9_]+")


# ── SHM name helpers ──────────────────────────────────────────────────────────

def topic_segment_name(topic: str) -> str:
    """Return the SHM segment name used for a bus topic.

    Slashes and other characters the OS rejects in segment names are
    folded into underscores::

        topic_segment_name("/goods/transform")   # "objctl_goods_transform"
    """
    safe = _UNSAFE.sub("_", topic).strip("_")
    if not safe:
        raise ValueError(f"Topic name {topic!r} has no usable characters")
    return f"{SEGMENT_PREFIX}{safe}"


# ── Polling helpers ───────────────────────────────────────────────────────────

def poll_until(check_fn, timeout: float | None, poll_interval: float = 0.001):
    """Call *check_fn()* until it returns something other than ``None``
    or *timeout* expires.

    Args:
        check_fn:      Callable returning the result or ``None``.
        timeout:       Seconds. ``None`` = block indefinitely.
        poll_interval: Sleep time between retries (seconds).

    Returns:
        The first non-``None`` value returned by *check_fn*, or ``None``
        on timeout.
    """
    deadline = (time.monotonic() + timeout) if timeout is not None else None

    while True:
        result = check_fn()
        if result is not None:
            return result
        if deadline is not None and time.monotonic() >= deadline:
            return None
        time.sleep(poll_interval)


# ── Loop pacing ───────────────────────────────────────────────────────────────

class Rate:
    """Sleep so that a loop runs at a fixed frequency.

    Each :meth:`sleep` waits until one period after the previous wake-up
    target. If the loop fell a full period or more behind, the schedule
    is reset to *now* instead of trying to catch up.

    Args:
        hz: Loop frequency in Hertz.

    Example::

        rate = Rate(50)
        while running:
            step()
            rate.sleep()
    """

    def __init__(self, hz: float, clock=time.monotonic, sleep=time.sleep):
        if hz <= 0:
            raise ValueError(f"Rate must be positive, got {hz!r}")
        self.period = 1.0 / hz
        self._clock = clock
        self._sleep = sleep
        self._last = clock()

    def sleep(self) -> None:
        target = self._last + self.period
        now = self._clock()
        if target > now:
            self._sleep(target - now)
        self._last = target
        if now - target > self.period:
            self._last = now

    def __repr__(self) -> str:
        return f"Rate(hz={1.0 / self.period:g})"


# ── Cleanup helpers ───────────────────────────────────────────────────────────

def force_unlink(name: str) -> bool:
    """Forcibly destroy a shared memory segment by name if it exists.

    Useful for cleaning up after a crashed controller.

    Args:
        name: The OS-level segment name (e.g. ``"objctl_goods_transform"``).

    Returns:
        ``True`` if the segment existed and was destroyed,
        ``False`` if it was not found.
    """
    try:
        shm = shared_memory.SharedMemory(name=name, create=False)
        shm.close()
        shm.unlink()
        logger.info("Force-unlinked segment '%s'", name)
        return True
    except FileNotFoundError:
        return False
    except Exception as exc:
        logger.warning("Could not unlink '%s': %s", name, exc)
        return False


def list_segments() -> list[str]:
    """List all object_controller segments visible on this system.

    Only works on Linux (reads ``/dev/shm``). Returns an empty list
    on other platforms.
    """
    if sys.platform != "linux":
        logger.debug("list_segments() is only supported on Linux.")
        return []
    try:
        return [
            entry
            for entry in os.listdir("/dev/shm")
            if entry.startswith(SEGMENT_PREFIX)
        ]
    except Exception as exc:
        logger.warning("Could not list /dev/shm: %s", exc)
        return []
