"""
Periodic orbit poses for the tracked objects.

Every tracked object owns an independent timer. When a timer is due the
object's position on the unit circle is computed and published as a
:class:`~object_controller.messages.PoseMessage`. Timers are plain
records polled by :meth:`PoseEmitter.spin_once` from the main loop, so
everything runs on the caller's thread.

Two phase formulas are available:

``"absolute"`` (default)
    ``phase = start_time + speed * now`` where *now* is the absolute
    clock reading. This is the long-standing behaviour simulators were
    tuned against; note that the angular speed is ``speed`` radians per
    second of absolute time and ``start_time`` only contributes a fixed
    offset.

``"elapsed"``
    ``phase = speed * (now - start_time)``, i.e. every object starts at
    angle 0 and turns at ``speed`` rad/s from its timer's creation.
"""

import math
import time
import logging
from dataclasses import dataclass
from types import MappingProxyType

from .messages import MAP_FRAME, PoseMessage, Vector3

logger = logging.getLogger("objctl.emitter")


@dataclass(frozen=True)
class TrackedObject:
    name: str
    speed: float
    start_time: float


@dataclass
class OrbitTimer:
    """Schedule entry for one tracked object."""

    obj: TrackedObject
    period: float
    next_due: float


class PoseEmitter:
    """Owns the per-object timers and publishes their orbit poses.

    Args:
        publish:    Callable taking a :class:`PoseMessage`.
        period:     Seconds between updates of a single object.
        clock:      Time source for start times and due checks.
        phase_mode: ``"absolute"`` or ``"elapsed"``.
        frame_id:   Parent frame of the emitted poses.
    """

    def __init__(
        self,
        publish,
        period: float = 0.05,
        clock=time.time,
        phase_mode: str = "absolute",
        frame_id: str = MAP_FRAME,
    ):
        if phase_mode not in ("absolute", "elapsed"):
            raise ValueError(f"Unknown phase mode: {phase_mode!r}")
        self._publish = publish
        self._period = period
        self._clock = clock
        self._phase_mode = phase_mode
        self._frame_id = frame_id
        self._timers: dict[str, OrbitTimer] = {}

    @property
    def timers(self):
        """Read-only name → :class:`OrbitTimer` view."""
        return MappingProxyType(self._timers)

    @property
    def phase_mode(self) -> str:
        return self._phase_mode

    def create_timer(self, name: str, speed: float) -> TrackedObject:
        """Start animating *name*; replaces any timer already registered for it."""
        start = self._clock()
        obj = TrackedObject(name=name, speed=speed, start_time=start)
        self._timers[name] = OrbitTimer(obj=obj, period=self._period, next_due=start + self._period)
        logger.info("Timer for '%s' created (speed=%.2f, period=%.3fs)", name, speed, self._period)
        return obj

    def cancel_timer(self, name: str) -> bool:
        """Stop emitting for *name*. Returns ``False`` if it had no timer."""
        timer = self._timers.pop(name, None)
        if timer is None:
            return False
        logger.info("Timer for '%s' cancelled", name)
        return True

    def phase(self, obj: TrackedObject, now: float) -> float:
        if self._phase_mode == "elapsed":
            return obj.speed * (now - obj.start_time)
        return obj.start_time + obj.speed * now

    def orbit_pose(self, obj: TrackedObject, now: float) -> PoseMessage:
        """Pose of *obj* at clock reading *now*; rotation left to the receiver."""
        phase = self.phase(obj, now)
        return PoseMessage(
            child_frame_id=obj.name,
            translation=Vector3(math.cos(phase), math.sin(phase), 0.0),
            frame_id=self._frame_id,
        )

    def spin_once(self, now: float | None = None) -> int:
        """Fire every timer that is due at *now* (default: the clock).

        Each timer fires at most once per call. A timer that fell more
        than a period behind is rescheduled from *now* rather than
        firing a burst of stale updates.

        Returns:
            Number of poses published.
        """
        if now is None:
            now = self._clock()
        fired = 0
        for timer in list(self._timers.values()):
            if now < timer.next_due:
                continue
            pose = self.orbit_pose(timer.obj, now)
            self._publish(pose)
            fired += 1
            timer.next_due += timer.period
            if timer.next_due <= now:
                timer.next_due = now + timer.period
            logger.debug(
                "Pose %s -> (%.3f, %.3f)",
                timer.obj.name,
                pose.translation.x,
                pose.translation.y,
            )
        return fired

    def __repr__(self) -> str:
        return f"PoseEmitter(timers={sorted(self._timers)}, phase_mode={self._phase_mode!r})"
