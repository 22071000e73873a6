"""
Topic publish/subscribe over shared memory.

Each topic is one ring buffer owned by its publisher. Subscribers keep a
private read cursor, so any number of them can follow a topic without
coordinating. A slow subscriber simply misses old messages once the
ring wraps.

Usage::

    # Controller side
    from object_controller.bus import Publisher

    pub = Publisher("/goods/transform")
    pub.send(PoseMessage("table", Vector3(0.5, 0.0, 0.0)))
    pub.close()                # or use as context manager

    # Simulator side
    from object_controller.bus import Subscriber

    with Subscriber("/goods/transform", callback=print) as sub:
        while True:
            sub.spin_once()
            time.sleep(0.02)
"""

import atexit
import logging
from multiprocessing import shared_memory

from .ring import (
    create_segment,
    attach_segment,
    close_segment,
    current_head,
    write_message,
    read_message,
    get_stats,
)
from .serialize import encode_message, decode_message
from .messages import TextMessage
from .utils import topic_segment_name, poll_until
from .exceptions import BusConnectionError, SerializationError

logger = logging.getLogger("objctl.bus")

# Default ring-buffer geometry
DEFAULT_NUM_SLOTS = 64
DEFAULT_SLOT_SIZE = 4096   # bytes per slot (payload + 4-byte size prefix)


class Publisher:
    """Writes messages to a named topic.

    Args:
        topic:     Topic name (e.g. ``"/goods/transform"``).
        num_slots: Number of ring-buffer slots.
        slot_size: Max bytes per message (overhead: 4 bytes per slot).
        serialization: ``"pickle"`` (default) or ``"msgpack"``.
    """

    def __init__(
        self,
        topic: str,
        num_slots: int = DEFAULT_NUM_SLOTS,
        slot_size: int = DEFAULT_SLOT_SIZE,
        serialization: str = "pickle",
    ):
        self._topic = topic
        self._serialization = serialization
        self._shm_name = topic_segment_name(topic)
        self._shm: shared_memory.SharedMemory | None = create_segment(
            self._shm_name, num_slots, slot_size
        )
        atexit.register(self._atexit_close)
        logger.info(
            "Publisher('%s') ready, %d slots × %d bytes", topic, num_slots, slot_size
        )

    @property
    def topic(self) -> str:
        return self._topic

    def send(self, message) -> bool:
        """Encode and publish *message*. Never blocks.

        Returns:
            ``True`` always; publishing is fire-and-forget.

        Raises:
            SerializationError: *message* is not a bus message.
            BusConnectionError: The publisher has been closed.
        """
        if self._shm is None:
            raise BusConnectionError(f"Publisher('{self._topic}') is closed")
        payload = encode_message(message, method=self._serialization)
        logger.debug("Publisher('%s') sending %r", self._topic, message)
        return write_message(self._shm, payload)

    def stats(self) -> dict:
        """Return a snapshot of ring-buffer statistics."""
        if self._shm is None:
            raise BusConnectionError(f"Publisher('{self._topic}') is closed")
        return get_stats(self._shm)

    def close(self) -> None:
        """Release and destroy the topic's segment."""
        if self._shm is not None:
            close_segment(self._shm, destroy=True)
            self._shm = None
            logger.info("Publisher('%s') closed", self._topic)

    def __enter__(self) -> "Publisher":
        return self

    def __exit__(self, *_) -> None:
        self.close()

    def _atexit_close(self) -> None:
        if self._shm is not None:
            self.close()

    def __repr__(self) -> str:
        return f"Publisher(topic={self._topic!r})"


class Subscriber:
    """Reads messages from a named topic.

    Args:
        topic:           Topic name; must match the publisher.
        callback:        Called with each message delivered by
                         :meth:`spin_once`.
        timeout_connect: Seconds to wait for the publisher's segment
                         before raising
                         :class:`~object_controller.exceptions.BusConnectionError`.
                         Ignored when *lazy* is set.
        lazy:            Do not attach now; :meth:`spin_once` and
                         :meth:`recv` retry without blocking until the
                         publisher shows up.
        serialization:   Must match the publisher's serialization method.

    Payloads that do not decode as a bus message (for instance a bare
    string from a non-Python sender) are delivered as a
    :class:`~object_controller.messages.TextMessage` of their UTF-8 text.
    """

    def __init__(
        self,
        topic: str,
        callback=None,
        timeout_connect: float = 5.0,
        lazy: bool = False,
        serialization: str = "pickle",
    ):
        self._topic = topic
        self._callback = callback
        self._serialization = serialization
        self._shm_name = topic_segment_name(topic)
        self._shm: shared_memory.SharedMemory | None = None
        self._tail = 0
        self._closed = False
        atexit.register(self._atexit_close)
        if not lazy:
            self._attach(timeout_connect)

    @property
    def topic(self) -> str:
        return self._topic

    @property
    def connected(self) -> bool:
        return self._shm is not None

    def try_connect(self) -> bool:
        """Make one non-blocking attempt to attach. Returns :attr:`connected`."""
        if self._shm is None and not self._closed:
            try:
                self._attach(0)
            except BusConnectionError as exc:
                logger.debug("Subscriber('%s') not connected yet: %s", self._topic, exc)
        return self.connected

    def recv(self, timeout: float | None = None):
        """Return the next message, waiting up to *timeout* seconds.

        ``None`` blocks indefinitely; ``0`` is a pure poll. Returns
        ``None`` if nothing arrived in time.
        """
        return poll_until(
            lambda: self._try_recv() if self.try_connect() else None,
            timeout=timeout,
        )

    def spin_once(self) -> int:
        """Deliver every pending message to the callback without blocking.

        Returns:
            Number of messages delivered.
        """
        if not self.try_connect():
            return 0
        count = 0
        while True:
            message = self._try_recv()
            if message is None:
                return count
            count += 1
            if self._callback is not None:
                self._callback(message)

    def close(self) -> None:
        """Detach from the topic's segment."""
        self._closed = True
        if self._shm is not None:
            close_segment(self._shm, destroy=False)
            self._shm = None
            logger.info("Subscriber('%s') closed", self._topic)

    def __enter__(self) -> "Subscriber":
        return self

    def __exit__(self, *_) -> None:
        self.close()

    def _attach(self, timeout: float) -> None:
        self._shm = attach_segment(self._shm_name, timeout=timeout)
        # Start at the current head so only new messages are received.
        self._tail = current_head(self._shm)
        logger.info("Subscriber('%s') attached, starting tail=%d", self._topic, self._tail)

    def _try_recv(self):
        if self._shm is None:
            return None
        result = read_message(self._shm, self._tail)
        if result is None:
            return None
        raw, self._tail = result
        try:
            return decode_message(raw, method=self._serialization)
        except SerializationError as exc:
            # Foreign senders publish bare strings; pass them on as text.
            logger.warning(
                "Subscriber('%s') got undecodable payload %r: %s", self._topic, raw, exc
            )
            return TextMessage(raw.decode("utf-8", "replace"))

    def _atexit_close(self) -> None:
        if self._shm is not None:
            self.close()

    def __repr__(self) -> str:
        return f"Subscriber(topic={self._topic!r}, tail={self._tail})"
