"""
Serialization helpers for object_controller.

Two backends are supported:

* ``pickle``   – built-in (default).
* ``msgpack``  – compact and readable from other languages; requires
                 the ``msgpack`` package (``pip install msgpack``).

Messages are always converted to their wire dict first
(:func:`~object_controller.messages.message_to_dict`), so both backends
carry the same schema.
"""

import pickle
import logging

from .exceptions import SerializationError
from .messages import message_to_dict, message_from_dict

logger = logging.getLogger("objctl.serialize")

# msgpack is optional; requesting it without the package raises below.
try:
    import msgpack as _msgpack
    _MSGPACK_AVAILABLE = True
except ImportError:
    _MSGPACK_AVAILABLE = False

METHODS = ("pickle", "msgpack")


def _require_msgpack() -> None:
    if not _MSGPACK_AVAILABLE:
        raise SerializationError(
            "msgpack is not installed. Run: pip install msgpack"
        )


def serialize(obj, method: str = "pickle") -> bytes:
    """Serialize *obj* to bytes using the chosen *method*.

    Raw ``bytes``/``bytearray``/``memoryview`` pass through unchanged.

    Raises:
        SerializationError: Serialization failed, the method is unknown,
            or msgpack was requested but is not installed.
    """
    if isinstance(obj, (bytes, bytearray, memoryview)):
        return bytes(obj)

    if method == "pickle":
        try:
            return pickle.dumps(obj, protocol=pickle.HIGHEST_PROTOCOL)
        except Exception as exc:
            raise SerializationError(f"pickle serialization failed: {exc}") from exc

    if method == "msgpack":
        _require_msgpack()
        try:
            return _msgpack.packb(obj, use_bin_type=True)
        except Exception as exc:
            raise SerializationError(f"msgpack serialization failed: {exc}") from exc

    raise SerializationError(f"Unknown serialization method: {method!r}")


def deserialize(data: bytes, method: str = "pickle"):
    """Deserialize *data* back to a Python object.

    Raises:
        SerializationError: If deserialization fails.
    """
    if method == "pickle":
        try:
            return pickle.loads(data)
        except Exception as exc:
            raise SerializationError(f"pickle deserialization failed: {exc}") from exc

    if method == "msgpack":
        _require_msgpack()
        try:
            return _msgpack.unpackb(data, raw=False)
        except Exception as exc:
            raise SerializationError(f"msgpack deserialization failed: {exc}") from exc

    raise SerializationError(f"Unknown serialization method: {method!r}")


def encode_message(msg, method: str = "pickle") -> bytes:
    """Encode a bus message to bytes."""
    return serialize(message_to_dict(msg), method=method)


def decode_message(data: bytes, method: str = "pickle"):
    """Decode bytes produced by :func:`encode_message`."""
    obj = deserialize(data, method=method)
    if not isinstance(obj, dict):
        raise SerializationError(f"Expected a message dict, got {type(obj).__name__}")
    return message_from_dict(obj)


def is_msgpack_available() -> bool:
    """Return ``True`` if the ``msgpack`` package is installed."""
    return _MSGPACK_AVAILABLE
