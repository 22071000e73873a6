"""
Custom exceptions for object_controller.

All exceptions inherit from ObjectControllerError so callers can catch
everything with a single except clause if needed.
"""


class ObjectControllerError(Exception):
    """Base exception for all object_controller errors."""


class ConfigError(ObjectControllerError):
    """Raised when a :class:`~object_controller.config.ControllerConfig`
    holds values the controller cannot run with."""


class BusConnectionError(ObjectControllerError):
    """Raised when a topic's shared memory segment cannot be created or
    attached.

    Example::

        try:
            sub = Subscriber("/goods/transform", timeout_connect=1.0)
        except BusConnectionError as e:
            print(f"Is the controller running? {e}")
    """


class SerializationError(ObjectControllerError):
    """Raised when a message cannot be encoded or decoded."""


class TerminalReadError(ObjectControllerError):
    """Raised when reading a keystroke from the terminal fails.

    This is fatal: the controller does not retry and the process exits
    with a failure status.
    """


class UnknownObjectError(ObjectControllerError, ValueError):
    """Raised when asked to emit a message for an object name that is not
    part of the fixed set configured at startup.

    Example::

        controller.send_grasped("cat_doll")   # raises UnknownObjectError
    """
