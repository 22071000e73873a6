"""
Shared memory ring buffer backing every bus topic.

One process (the topic's publisher) creates a named segment and is the
only writer. Readers attach to it and keep a private cursor, so they
never coordinate with each other or with the writer. The writer never
blocks: when the ring wraps, readers that fell behind silently skip the
overwritten slots.

Header layout (128 bytes, little-endian int64 values):
    Index  Offset  Field
    0      0       MAGIC  -- b"OBJCTL01" read as a little-endian int64
    1      8       VERSION
    2      16      HEAD   -- next write slot (updated only by the writer)
    3      24      MSG_COUNT
    4      32      NUM_SLOTS
    5      40      SLOT_SIZE
    6-15   48-127  RESERVED (zeros)

Data area starts at byte offset 128.
Each slot: first 4 bytes = payload size (little-endian uint32),
           remaining bytes = payload.
"""

import time
import struct
import logging
import numpy as np
from multiprocessing import shared_memory

from .exceptions import BusConnectionError

logger = logging.getLogger("objctl.ring")

# ── Constants ────────────────────────────────────────────────────────────────

MAGIC: int = int.from_bytes(b"OBJCTL01", "little")
VERSION: int = 1
HEADER_SIZE: int = 128

IDX_MAGIC = 0
IDX_VERSION = 1
IDX_HEAD = 2
IDX_MSG_COUNT = 3
IDX_NUM_SLOTS = 4
IDX_SLOT_SIZE = 5

SLOT_PREFIX_SIZE: int = 4

_SIZE_STRUCT = struct.Struct("<I")


def segment_size(num_slots: int, slot_size: int) -> int:
    """Return the total shared memory size in bytes for the given geometry."""
    return HEADER_SIZE + num_slots * slot_size


# ── Header helpers ────────────────────────────────────────────────────────────

def get_header(shm: shared_memory.SharedMemory) -> np.ndarray:
    """Return a live numpy int64 view of the 128-byte header region.

    Reads and writes to individual int64 elements are single machine
    instructions on 64-bit platforms, which is what lets the writer
    publish a new head without a lock.
    """
    return np.ndarray((16,), dtype="<i8", buffer=shm.buf, offset=0)


def _init_header(shm: shared_memory.SharedMemory, num_slots: int, slot_size: int) -> None:
    hdr = get_header(shm)
    hdr[:] = 0
    hdr[IDX_MAGIC] = MAGIC
    hdr[IDX_VERSION] = VERSION
    hdr[IDX_NUM_SLOTS] = num_slots
    hdr[IDX_SLOT_SIZE] = slot_size


def _validate_header(shm: shared_memory.SharedMemory) -> None:
    hdr = get_header(shm)
    if hdr[IDX_MAGIC] != MAGIC:
        raise BusConnectionError(
            f"Shared memory '{shm.name}' has invalid magic "
            f"0x{int(hdr[IDX_MAGIC]):016X} (expected 0x{MAGIC:016X}). "
            "Is another program using this segment name?"
        )
    if hdr[IDX_VERSION] != VERSION:
        raise BusConnectionError(
            f"Shared memory '{shm.name}' has version {int(hdr[IDX_VERSION])} "
            f"but this library expects version {VERSION}."
        )


# ── Segment lifecycle ─────────────────────────────────────────────────────────

def create_segment(name: str, num_slots: int, slot_size: int) -> shared_memory.SharedMemory:
    """Create a named segment and initialise its header.

    A stale segment left behind by a crashed writer is unlinked first
    so a fresh segment is always returned.

    Raises:
        BusConnectionError: If the OS refuses to allocate the segment.
        ValueError: If the geometry cannot hold a single message.
    """
    if num_slots < 2 or slot_size <= SLOT_PREFIX_SIZE:
        raise ValueError(
            f"Invalid ring geometry: num_slots={num_slots}, slot_size={slot_size}"
        )
    size = segment_size(num_slots, slot_size)

    try:
        stale = shared_memory.SharedMemory(name=name, create=False)
        stale.close()
        stale.unlink()
        logger.debug("Removed stale shared memory segment '%s'", name)
    except FileNotFoundError:
        pass
    except Exception as exc:
        logger.debug("Could not clean stale segment '%s': %s", name, exc)

    try:
        shm = shared_memory.SharedMemory(name=name, create=True, size=size)
    except Exception as exc:
        raise BusConnectionError(
            f"Failed to create shared memory '{name}' ({size} bytes): {exc}"
        ) from exc

    _init_header(shm, num_slots, slot_size)
    logger.info("Created shared memory segment '%s' (%d bytes)", name, size)
    return shm


def attach_segment(
    name: str,
    timeout: float = 5.0,
    poll_interval: float = 0.005,
) -> shared_memory.SharedMemory:
    """Attach to an existing segment, polling until it appears.

    At least one attempt is always made, so ``timeout=0`` is a single
    non-blocking try.

    Raises:
        BusConnectionError: If the segment does not appear in time or
            its header is invalid.
    """
    deadline = time.monotonic() + timeout
    last_exc: Exception | None = None

    while True:
        try:
            shm = shared_memory.SharedMemory(name=name, create=False)
        except FileNotFoundError as exc:
            last_exc = exc
        else:
            try:
                _validate_header(shm)
            except BusConnectionError:
                shm.close()
                raise
            logger.info("Attached to shared memory segment '%s'", name)
            return shm

        if time.monotonic() >= deadline:
            break
        time.sleep(poll_interval)

    raise BusConnectionError(
        f"Shared memory segment '{name}' did not appear within "
        f"{timeout:.1f}s. Is the publisher running? (Last error: {last_exc})"
    )


def close_segment(shm: shared_memory.SharedMemory, *, destroy: bool = False) -> None:
    """Close the segment, and unlink it too when *destroy* is set.

    Only the creating process should pass ``destroy=True``.
    """
    try:
        shm.close()
        if destroy:
            shm.unlink()
            logger.info("Destroyed shared memory segment '%s'", shm.name)
        else:
            logger.debug("Closed shared memory segment '%s'", shm.name)
    except Exception as exc:
        logger.warning("Error closing segment '%s': %s", shm.name, exc)


# ── Slot I/O ──────────────────────────────────────────────────────────────────

def _slot_offset(slot_index: int, slot_size: int) -> int:
    return HEADER_SIZE + slot_index * slot_size


def write_message(shm: shared_memory.SharedMemory, payload: bytes) -> bool:
    """Write *payload* into the slot at head, then advance head.

    The head pointer moves only after the payload is in place, so a
    reader never sees a half-written slot as available.

    Raises:
        ValueError: If *payload* is larger than a slot can hold.
    """
    hdr = get_header(shm)
    num_slots = int(hdr[IDX_NUM_SLOTS])
    slot_size = int(hdr[IDX_SLOT_SIZE])
    max_payload = slot_size - SLOT_PREFIX_SIZE

    if len(payload) > max_payload:
        raise ValueError(
            f"Payload size {len(payload)} exceeds slot capacity {max_payload}. "
            f"Increase slot_size when creating the topic."
        )

    head = int(hdr[IDX_HEAD])
    offset = _slot_offset(head, slot_size)
    _SIZE_STRUCT.pack_into(shm.buf, offset, len(payload))
    start = offset + SLOT_PREFIX_SIZE
    shm.buf[start : start + len(payload)] = payload

    next_head = (head + 1) % num_slots
    hdr[IDX_HEAD] = np.int64(next_head)
    hdr[IDX_MSG_COUNT] += 1

    logger.debug("Wrote %d bytes to slot %d (head→%d)", len(payload), head, next_head)
    return True


def read_message(
    shm: shared_memory.SharedMemory,
    local_tail: int,
) -> tuple[bytes, int] | None:
    """Non-blocking read at the caller's private cursor.

    Returns:
        ``(payload_bytes, new_tail)`` if a message was available, or
        ``None`` if the reader is caught up.
    """
    hdr = get_header(shm)
    head = int(hdr[IDX_HEAD])
    if local_tail == head:
        return None

    num_slots = int(hdr[IDX_NUM_SLOTS])
    slot_size = int(hdr[IDX_SLOT_SIZE])
    offset = _slot_offset(local_tail, slot_size)
    (payload_size,) = _SIZE_STRUCT.unpack_from(shm.buf, offset)
    start = offset + SLOT_PREFIX_SIZE
    payload = bytes(shm.buf[start : start + payload_size])

    return payload, (local_tail + 1) % num_slots


def current_head(shm: shared_memory.SharedMemory) -> int:
    """Return the writer's head, i.e. where a new reader should start."""
    return int(get_header(shm)[IDX_HEAD])


def get_stats(shm: shared_memory.SharedMemory) -> dict:
    """Return a snapshot of the ring buffer statistics.

    Keys: ``head``, ``num_slots``, ``slot_size``, ``msg_count``.
    """
    hdr = get_header(shm)
    return {
        "head": int(hdr[IDX_HEAD]),
        "num_slots": int(hdr[IDX_NUM_SLOTS]),
        "slot_size": int(hdr[IDX_SLOT_SIZE]),
        "msg_count": int(hdr[IDX_MSG_COUNT]),
    }
