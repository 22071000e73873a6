"""
Runtime configuration for the object controller.

Every value has a default matching the simulator's expectations, so a
bare ``ControllerConfig()`` is ready to run. The CLI builds one from
command-line options.
"""

from dataclasses import dataclass, field

from .exceptions import ConfigError
from .messages import MAP_FRAME
from .serialize import METHODS

PHASE_MODES = ("absolute", "elapsed")

DEFAULT_TRACKED_OBJECTS = (
    ("bear_doll", 0.5),
    ("dog_doll", 0.6),
    ("rabbit_doll", 0.7),
)


@dataclass(frozen=True)
class ControllerConfig:
    """Topics, timing and object set for one controller instance.

    Attributes:
        transform_topic:  Outbound pose topic.
        outbound_topic:   Outbound text event topic.
        inbound_topic:    Text topic the simulator publishes on.
        tracked_objects:  ``(name, speed)`` pairs animated on the unit circle.
        table_name:       Object moved by the table keys.
        frame_id:         Parent frame of every pose.
        loop_hz:          Main loop frequency.
        timer_period:     Seconds between pose updates per tracked object.
        phase_mode:       ``"absolute"`` or ``"elapsed"``; see
                          :class:`~object_controller.emitter.PoseEmitter`.
        serialization:    Bus codec, ``"pickle"`` or ``"msgpack"``.
        num_slots:        Ring slots per outbound topic.
        slot_size:        Bytes per ring slot.
    """

    transform_topic: str = "/goods/transform"
    outbound_topic: str = "/goods/message/from_ros"
    inbound_topic: str = "/goods/message/from_sigverse"
    tracked_objects: tuple = field(default=DEFAULT_TRACKED_OBJECTS)
    table_name: str = "table"
    frame_id: str = MAP_FRAME
    loop_hz: float = 50.0
    timer_period: float = 0.05
    phase_mode: str = "absolute"
    serialization: str = "pickle"
    num_slots: int = 64
    slot_size: int = 4096

    @property
    def object_names(self) -> frozenset:
        """Every name the controller may emit for: tracked objects plus the table."""
        return frozenset(name for name, _ in self.tracked_objects) | {self.table_name}

    def validate(self) -> "ControllerConfig":
        """Return ``self`` if usable.

        Raises:
            ConfigError: Describing the first invalid field.
        """
        if self.loop_hz <= 0:
            raise ConfigError(f"loop_hz must be positive, got {self.loop_hz!r}")
        if self.timer_period <= 0:
            raise ConfigError(f"timer_period must be positive, got {self.timer_period!r}")
        if self.phase_mode not in PHASE_MODES:
            raise ConfigError(
                f"phase_mode must be one of {PHASE_MODES}, got {self.phase_mode!r}"
            )
        if self.serialization not in METHODS:
            raise ConfigError(
                f"serialization must be one of {METHODS}, got {self.serialization!r}"
            )
        names = [name for name, _ in self.tracked_objects]
        if len(set(names)) != len(names) or self.table_name in names:
            raise ConfigError(f"Object names must be unique, got {names + [self.table_name]}")
        return self
