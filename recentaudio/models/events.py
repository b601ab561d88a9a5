"""Event models for the pub/sub capture pipeline."""

from dataclasses import dataclass
from typing import Optional


@dataclass
class AudioEvent:
    """Audio chunk event with metadata."""
    audio_data: bytes
    sequence_number: int  # 1 for the first chunk of each capture run
    sample_rate: int = 16000
    bytes_per_sample: int = 2
    chunk_duration_ms: Optional[int] = None

    def __post_init__(self):
        """Calculate chunk duration if not provided."""
        if self.chunk_duration_ms is None and self.audio_data:
            bytes_per_second = self.sample_rate * self.bytes_per_sample
            duration_seconds = len(self.audio_data) / bytes_per_second
            self.chunk_duration_ms = int(duration_seconds * 1000)
