"""
Messages carried on the bus.

Two kinds travel between the controller and the simulator:

* :class:`PoseMessage` -- a translation (and optional rotation) of a
  named child frame relative to a parent frame, normally ``"map"``.
* :class:`TextMessage` -- an opaque string event such as
  ``"grasped,bear_doll"`` or ``"released"``.

On the wire both are plain dicts (see :func:`message_to_dict`) so the
pickle and msgpack codecs carry exactly the same shape::

    {"type": "pose", "frame_id": "map", "child_frame_id": "table",
     "translation": [0.5, 0.0, 0.0], "rotation": None}
    {"type": "text", "data": "released"}
"""

from dataclasses import dataclass

from .exceptions import SerializationError

MAP_FRAME = "map"


@dataclass(frozen=True)
class Vector3:
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0


@dataclass(frozen=True)
class Quaternion:
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    w: float = 1.0


@dataclass(frozen=True)
class PoseMessage:
    """Transform update for one named object.

    ``rotation`` is ``None`` when the sender leaves orientation for the
    receiver to work out.
    """

    child_frame_id: str
    translation: Vector3
    rotation: Quaternion | None = None
    frame_id: str = MAP_FRAME


@dataclass(frozen=True)
class TextMessage:
    data: str


def message_to_dict(msg) -> dict:
    """Return the wire dict for a :class:`PoseMessage` or :class:`TextMessage`."""
    if isinstance(msg, PoseMessage):
        t = msg.translation
        r = msg.rotation
        return {
            "type": "pose",
            "frame_id": msg.frame_id,
            "child_frame_id": msg.child_frame_id,
            "translation": [t.x, t.y, t.z],
            "rotation": None if r is None else [r.x, r.y, r.z, r.w],
        }
    if isinstance(msg, TextMessage):
        return {"type": "text", "data": msg.data}
    raise SerializationError(f"Cannot encode {type(msg).__name__} as a bus message")


def message_from_dict(d: dict):
    """Rebuild a message from its wire dict.

    Raises:
        SerializationError: The dict is not a recognised message.
    """
    try:
        kind = d["type"]
        if kind == "pose":
            rotation = d.get("rotation")
            return PoseMessage(
                child_frame_id=d["child_frame_id"],
                translation=Vector3(*d["translation"]),
                rotation=None if rotation is None else Quaternion(*rotation),
                frame_id=d.get("frame_id", MAP_FRAME),
            )
        if kind == "text":
            return TextMessage(d["data"])
    except (KeyError, TypeError) as exc:
        raise SerializationError(f"Malformed bus message {d!r}: {exc}") from exc
    raise SerializationError(f"Unknown message type {kind!r}")
