"""
object_controller: keyboard test harness for a simulated environment
===================================================================

Publishes object poses and grasp/release events onto a shared-memory
message bus from single keystrokes, while three dolls orbit the unit
circle so the simulator always has motion to render.

Quick start::

    from object_controller import ControllerConfig, ObjectController
    from object_controller import KeyboardReader, RawTerminal

    with ObjectController.from_config(ControllerConfig()) as controller:
        controller.install_signal_handler()
        controller.run(KeyboardReader(0), RawTerminal(0))

Listening to what it publishes::

    from object_controller import Subscriber

    with Subscriber("/goods/transform", callback=print) as sub:
        while True:
            sub.spin_once()
"""

__version__ = "1.0.0"

from .bus import Publisher, Subscriber
from .config import ControllerConfig
from .controller import KEYMAP, KeyAction, ObjectController, help_text
from .emitter import OrbitTimer, PoseEmitter, TrackedObject
from .keyboard import KeyboardReader, RawTerminal
from .messages import PoseMessage, Quaternion, TextMessage, Vector3
from .exceptions import (
    ObjectControllerError,
    ConfigError,
    BusConnectionError,
    SerializationError,
    TerminalReadError,
    UnknownObjectError,
)
from .utils import force_unlink, list_segments

__all__ = [
    # Controller
    "ObjectController",
    "ControllerConfig",
    "KeyAction",
    "KEYMAP",
    "help_text",
    # Components
    "PoseEmitter",
    "TrackedObject",
    "OrbitTimer",
    "KeyboardReader",
    "RawTerminal",
    # Bus
    "Publisher",
    "Subscriber",
    "PoseMessage",
    "TextMessage",
    "Vector3",
    "Quaternion",
    # Exceptions
    "ObjectControllerError",
    "ConfigError",
    "BusConnectionError",
    "SerializationError",
    "TerminalReadError",
    "UnknownObjectError",
    # Utilities
    "force_unlink",
    "list_segments",
]
