"""Data models for the RecentAudio application."""

from .audio import (
    BitDepth,
    AudioConfig,
    Windowing,
    Segment,
    BenchmarkResult,
    BufferStats,
)
from .events import AudioEvent

__all__ = [
    "BitDepth",
    "AudioConfig",
    "Windowing",
    "Segment",
    "BenchmarkResult",
    "BufferStats",
    "AudioEvent",
]
