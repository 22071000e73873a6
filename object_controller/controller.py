"""
Keyboard-driven object controller.

Reads one key per loop iteration and turns it into bus traffic: table
moves on the pose topic, grasp/release events on the text topic. Three
tracked objects orbit continuously so the simulator always has
something moving.

Typical wiring (what the CLI does)::

    config = ControllerConfig()
    with ObjectController.from_config(config) as controller:
        controller.install_signal_handler()
        controller.run(KeyboardReader(0), RawTerminal(0))
"""

import signal
import time
import logging
from dataclasses import dataclass

from .bus import Publisher, Subscriber
from .config import ControllerConfig
from .emitter import PoseEmitter
from .exceptions import UnknownObjectError
from .messages import PoseMessage, TextMessage, Vector3
from .utils import Rate

logger = logging.getLogger("objctl.controller")

MOVE_TABLE = "move_table"
GRASPED = "grasped"
RELEASED = "released"


@dataclass(frozen=True)
class KeyAction:
    key: bytes
    description: str
    kind: str
    args: tuple = ()


KEYMAP = {
    action.key: action
    for action in (
        KeyAction(b"1", "Move Table to Position1", MOVE_TABLE, (0.0, 0.0)),
        KeyAction(b"2", "Move Table to Position2", MOVE_TABLE, (0.5, 0.0)),
        KeyAction(b"3", "Move Table to Position3", MOVE_TABLE, (0.0, 0.5)),
        KeyAction(b"g", "Send Grasped bear_doll", GRASPED, ("bear_doll",)),
        KeyAction(b"h", "Send Grasped dog_doll", GRASPED, ("dog_doll",)),
        KeyAction(b"i", "Send Grasped rabbit_doll", GRASPED, ("rabbit_doll",)),
        KeyAction(b"r", "Send Released", RELEASED),
    )
}


def help_text() -> str:
    rule = "---------------------------"
    lines = [rule, "-- Object Controller --", rule]
    lines += [f"{a.key.decode()} : {a.description}" for a in KEYMAP.values()]
    lines.append(rule)
    return "\n".join(lines)


class ObjectController:
    """Dispatches keys to bus messages and drives the orbit timers.

    Args:
        config:          Topics, timing and object names.
        pose_publisher:  Anything with ``send(PoseMessage)``.
        text_publisher:  Anything with ``send(TextMessage)``.
        text_subscriber: Optional inbound subscriber with ``spin_once()``;
                         :meth:`on_message` should be its callback.
        clock:           Time source shared with the pose emitter.
    """

    def __init__(
        self,
        config: ControllerConfig,
        pose_publisher,
        text_publisher,
        text_subscriber=None,
        clock=time.time,
    ):
        self.config = config.validate()
        self._pose_pub = pose_publisher
        self._text_pub = text_publisher
        self._text_sub = text_subscriber
        self._running = False
        self.emitter = PoseEmitter(
            self._publish_pose,
            period=config.timer_period,
            clock=clock,
            phase_mode=config.phase_mode,
            frame_id=config.frame_id,
        )

    @classmethod
    def from_config(cls, config: ControllerConfig) -> "ObjectController":
        """Build a controller with shared-memory bus endpoints for *config*.

        Endpoints already created are closed again if a later one fails.
        """
        config.validate()
        pose_pub = Publisher(
            config.transform_topic,
            num_slots=config.num_slots,
            slot_size=config.slot_size,
            serialization=config.serialization,
        )
        try:
            text_pub = Publisher(
                config.outbound_topic,
                num_slots=config.num_slots,
                slot_size=config.slot_size,
                serialization=config.serialization,
            )
        except Exception:
            pose_pub.close()
            raise

        controller = cls(config, pose_pub, text_pub)
        try:
            controller._text_sub = Subscriber(
                config.inbound_topic,
                callback=controller.on_message,
                lazy=True,
                serialization=config.serialization,
            )
        except Exception:
            controller.close()
            raise
        return controller

    @property
    def known_names(self) -> frozenset:
        return self.config.object_names

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def move_table(self, x: float, y: float) -> None:
        """Publish the table's new position."""
        pose = PoseMessage(
            child_frame_id=self.config.table_name,
            translation=Vector3(x, y, 0.0),
            frame_id=self.config.frame_id,
        )
        self._publish_pose(pose)
        logger.info("Moved %s to (%.2f, %.2f)", self.config.table_name, x, y)

    def send_grasped(self, name: str) -> None:
        self._check_name(name)
        self._send_text(f"grasped,{name}")

    def send_released(self) -> None:
        self._send_text("released")

    def on_message(self, message) -> None:
        """Inbound callback: log the payload and nothing else."""
        data = message.data if isinstance(message, TextMessage) else message
        logger.info("Subscribe Message: %s", data)

    def dispatch(self, key: bytes) -> bool:
        """Run the action mapped to *key*.

        Returns:
            ``True`` if *key* was mapped, ``False`` if it was ignored.
        """
        action = KEYMAP.get(key)
        if action is None:
            return False
        if action.kind == MOVE_TABLE:
            self.move_table(*action.args)
        elif action.kind == GRASPED:
            self.send_grasped(*action.args)
        elif action.kind == RELEASED:
            self.send_released()
        return True

    # ------------------------------------------------------------------
    # Main loop
    # ------------------------------------------------------------------

    def show_help(self) -> None:
        print(help_text())

    def start(self) -> None:
        """Create one orbit timer per tracked object."""
        for name, speed in self.config.tracked_objects:
            self.emitter.create_timer(name, speed)
        logger.info("Orbit phase mode: %s", self.emitter.phase_mode)

    def spin_once(self) -> int:
        """Run inbound callbacks, then any due pose timers.

        Returns:
            Number of inbound messages plus poses handled.
        """
        handled = 0
        if self._text_sub is not None:
            handled += self._text_sub.spin_once()
        handled += self.emitter.spin_once()
        return handled

    def stop(self) -> None:
        """Ask :meth:`run` to return after the current iteration.

        Only sets a flag, so it is safe to call from a signal handler.
        """
        self._running = False

    def install_signal_handler(self):
        """Make SIGINT stop the loop. Returns the previous handler."""
        return signal.signal(signal.SIGINT, lambda signum, frame: self.stop())

    def run(self, reader, terminal, rate=None) -> int:
        """Poll keys and spin timers until :meth:`stop` or end of input.

        Args:
            reader:   Object with ``poll() -> bytes | None`` and a
                      ``closed`` flag, e.g. :class:`KeyboardReader`.
            terminal: Context manager holding the terminal mode, e.g.
                      :class:`RawTerminal`; exited exactly once.
            rate:     Loop pacer with ``sleep()``; defaults to
                      ``Rate(config.loop_hz)``.

        Returns:
            ``0`` on normal shutdown.

        Raises:
            TerminalReadError: Reading a key failed.
        """
        if rate is None:
            rate = Rate(self.config.loop_hz)
        self.show_help()
        self.start()
        self._running = True
        with terminal:
            while self._running:
                key = reader.poll()
                if key is not None:
                    self.dispatch(key)
                elif getattr(reader, "closed", False):
                    self.stop()
                self.spin_once()
                rate.sleep()
        logger.info("Object controller stopped")
        return 0

    def close(self) -> None:
        """Close the bus endpoints this controller was given."""
        for endpoint in (self._text_sub, self._text_pub, self._pose_pub):
            close = getattr(endpoint, "close", None)
            if close is not None:
                close()

    def __enter__(self) -> "ObjectController":
        return self

    def __exit__(self, *_) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _check_name(self, name: str) -> None:
        if name not in self.known_names:
            raise UnknownObjectError(f"Unknown object name {name!r}")

    def _publish_pose(self, pose: PoseMessage) -> None:
        self._check_name(pose.child_frame_id)
        self._pose_pub.send(pose)

    def _send_text(self, data: str) -> None:
        self._text_pub.send(TextMessage(data))
        logger.info("Sent Message: %s", data)

    def __repr__(self) -> str:
        return f"ObjectController(objects={sorted(self.known_names)})"
