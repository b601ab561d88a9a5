"""Fixed-capacity ring buffer holding the most recent captured audio."""

import logging
import threading
from typing import Tuple, Union

from ..models.audio import AudioConfig, BufferStats

logger = logging.getLogger(__name__)


BytesLike = Union[bytes, bytearray, memoryview]


class RingBuffer:
    """Circular byte store that overwrites the oldest audio once full.

    A single capture thread calls write() while any number of readers may call
    snapshot(). All mutable state (storage, write_index, has_overflowed) is
    guarded by one lock, so a snapshot never observes a half-applied write.
    """

    def __init__(self, capacity: int, bytes_per_second: int = 0):
        """Initialize ring buffer.

        Args:
            capacity: Size of the buffer in bytes
            bytes_per_second: Audio byte rate, only used for statistics
        """
        if capacity < 0:
            raise ValueError(f"Ring buffer capacity must not be negative, got {capacity}")

        self.capacity = capacity
        self.bytes_per_second = bytes_per_second
        self._storage = bytearray(capacity)
        self.write_index = 0
        self.has_overflowed = False
        self.lock = threading.Lock()

        logger.info(f"RingBuffer initialized: {capacity} bytes capacity")

    @classmethod
    def from_config(cls, config: AudioConfig) -> "RingBuffer":
        """Create a ring buffer sized for config.buffer_time_length_s of audio."""
        return cls(config.ring_buffer_capacity, config.bytes_per_second)

    def write(self, data: BytesLike) -> None:
        """Append bytes at the write index, wrapping to the start when full."""
        view = memoryview(data).cast("B")
        length = len(view)
        if length == 0 or self.capacity == 0:
            return

        capacity = self.capacity
        with self.lock:
            start = self.write_index
            new_index = (start + length) % capacity

            if length >= capacity:
                # Only the newest `capacity` bytes survive; the oldest of them
                # lands at new_index, exactly as a byte-by-byte write would.
                tail = view[length - capacity:]
                head_len = capacity - new_index
                self._storage[new_index:] = tail[:head_len]
                self._storage[:new_index] = tail[head_len:]
                wrapped = True
            elif start + length < capacity:
                self._storage[start:start + length] = view
                wrapped = False
            else:
                first = capacity - start
                self._storage[start:] = view[:first]
                self._storage[:length - first] = view[first:]
                wrapped = True

            self.write_index = new_index
            if wrapped and not self.has_overflowed:
                self.has_overflowed = True
                logger.debug("Ring buffer overflowed, oldest audio is now being overwritten")

    def snapshot(self) -> bytes:
        """Return the buffered audio in chronological order (oldest first)."""
        return self.snapshot_with_overflow()[0]

    def snapshot_with_overflow(self) -> Tuple[bytes, bool]:
        """Chronological copy of the buffered audio and the overflow flag, read under one lock."""
        with self.lock:
            index = self.write_index
            if not self.has_overflowed:
                return bytes(self._storage[:index]), False
            return bytes(self._storage[index:]) + bytes(self._storage[:index]), True

    def reset(self) -> None:
        """Forget buffered audio. Storage bytes are left untouched."""
        with self.lock:
            self.write_index = 0
            self.has_overflowed = False
        logger.info("Ring buffer reset")

    def __len__(self) -> int:
        """Number of bytes snapshot() would currently return."""
        with self.lock:
            return self.capacity if self.has_overflowed else self.write_index

    def stats(self) -> BufferStats:
        """Get buffer statistics."""
        with self.lock:
            buffered = self.capacity if self.has_overflowed else self.write_index
            return BufferStats(
                capacity_bytes=self.capacity,
                buffered_bytes=buffered,
                write_index=self.write_index,
                has_overflowed=self.has_overflowed,
                buffered_seconds=buffered / self.bytes_per_second if self.bytes_per_second else 0.0,
            )
