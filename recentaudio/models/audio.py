"""Audio-related data models."""

import numbers
from dataclasses import dataclass
from enum import Enum
from typing import Union

from ..exceptions import InvalidConfigError


class BitDepth(Enum):
    """Supported PCM sample formats."""
    PCM_8BIT = (8, "pcm_u8")  # unsigned
    PCM_16BIT = (16, "pcm_s16le")  # signed little-endian

    def __init__(self, bits: int, encoding: str):
        self.bits = bits
        self.encoding = encoding

    @property
    def bytes_per_sample(self) -> int:
        return self.bits // 8

    @classmethod
    def from_bits(cls, bits: Union[int, str, "BitDepth"]) -> "BitDepth":
        """Resolve a bit depth from its bit count (8 or 16)."""
        if isinstance(bits, BitDepth):
            return bits
        try:
            value = int(bits)
        except (TypeError, ValueError):
            raise InvalidConfigError(f"Unsupported bit depth: {bits!r}")
        for depth in cls:
            if depth.bits == value:
                return depth
        raise InvalidConfigError(f"Unsupported bit depth: {bits!r} (only 8 and 16 bit PCM)")


@dataclass(frozen=True)
class AudioConfig:
    """Recording format and ring buffer length."""
    sample_rate_hz: int
    buffer_time_length_s: int
    bit_depth: BitDepth

    def __post_init__(self):
        """Resolve integer bit depths and validate."""
        if not isinstance(self.bit_depth, BitDepth):
            object.__setattr__(self, "bit_depth", BitDepth.from_bits(self.bit_depth))
        self.validate()

    def validate(self) -> None:
        """Raise InvalidConfigError if any field is out of range."""
        if isinstance(self.sample_rate_hz, bool) or not isinstance(self.sample_rate_hz, numbers.Integral):
            raise InvalidConfigError(f"Sample rate must be an integer, got {self.sample_rate_hz!r}")
        if self.sample_rate_hz <= 0:
            raise InvalidConfigError(f"Sample rate must be positive, got {self.sample_rate_hz}")
        buffer_length = self.buffer_time_length_s
        if isinstance(buffer_length, bool) or not isinstance(buffer_length, numbers.Integral):
            raise InvalidConfigError(
                f"Buffer length must be a whole number of seconds, got {self.buffer_time_length_s!r}")
        if self.buffer_time_length_s < 0:
            raise InvalidConfigError(
                f"Buffer length must not be negative, got {self.buffer_time_length_s}")
        if not isinstance(self.bit_depth, BitDepth):
            raise InvalidConfigError(f"Unsupported bit depth: {self.bit_depth!r}")

    @property
    def bytes_per_sample(self) -> int:
        return self.bit_depth.bytes_per_sample

    @property
    def bytes_per_second(self) -> int:
        return self.sample_rate_hz * self.bytes_per_sample

    @property
    def ring_buffer_capacity(self) -> int:
        """Size in bytes of a ring buffer holding buffer_time_length_s of audio."""
        return self.bytes_per_second * self.buffer_time_length_s


@dataclass(frozen=True)
class Windowing:
    """Classifier window geometry at one native sample rate."""
    sample_rate: int
    window_samples: int
    context_samples: int


@dataclass(frozen=True)
class Segment:
    """Half-open byte range [start_byte, end_byte) of the raw input buffer."""
    start_byte: int
    end_byte: int

    @property
    def length(self) -> int:
        return self.end_byte - self.start_byte


@dataclass
class BenchmarkResult:
    """Average cost of one VADProcessor.process() run."""
    avg_ms: float
    avg_alloc_bytes: int


@dataclass
class BufferStats:
    """Ring buffer statistics."""
    capacity_bytes: int
    buffered_bytes: int
    write_index: int
    has_overflowed: bool
    buffered_seconds: float
