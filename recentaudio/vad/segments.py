"""Turns per-window speech probabilities into padded, merged byte segments."""

import logging
import math
import numbers
from typing import List, Sequence, Tuple, Union

import numpy as np

from ..exceptions import InvalidConfigError
from ..models.audio import AudioConfig, Segment, Windowing

logger = logging.getLogger(__name__)


# Windows scoring at or above this probability count as speech. Deliberately
# lower than Silero's usual 0.5 so quiet speech in a noisy room is kept.
DEFAULT_SPEECH_THRESHOLD = 0.2

BytesLike = Union[bytes, bytearray, memoryview]


def validate_duration_ms(name: str, value: float) -> None:
    """Reject negative, NaN or non-numeric durations."""
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise InvalidConfigError(f"{name} must be a number, got {value!r}")
    if not value >= 0:
        raise InvalidConfigError(f"{name} must be non-negative, got {value}")


def ms_to_samples(duration_ms: float, sample_rate: int, limit: int) -> int:
    """Convert a duration to a sample count, clamped to limit.

    The duration is clamped before it is scaled, so arbitrarily large values
    (including float infinity) never produce a huge intermediate number.
    """
    limit_ms = limit * 1000 // sample_rate + 1
    if duration_ms >= limit_ms:
        return limit
    return min(math.floor(duration_ms * sample_rate / 1000), limit)


def find_speech_runs(probabilities: Sequence[float], threshold: float) -> List[Tuple[int, int]]:
    """Maximal runs of consecutive speech windows as half-open window index ranges."""
    speech = np.asarray(probabilities, dtype=np.float64) >= threshold
    if not speech.any():
        return []
    edges = np.flatnonzero(np.diff(np.concatenate([[0], speech.astype(np.int8), [0]])))
    return list(zip(edges[0::2].tolist(), edges[1::2].tolist()))


class SegmentMerger:
    """Builds speech segments in raw-buffer byte offsets.

    Steps, in order: threshold windows into runs, map runs from classifier
    samples to raw samples, bridge runs separated by at most merge_gap_ms,
    pad both ends by padding_ms (clamped to the buffer), then merge
    overlapping or touching segments in a single left-to-right pass.
    """

    def __init__(self, threshold: float = DEFAULT_SPEECH_THRESHOLD):
        self.threshold = threshold

    def merge(self, probabilities: Sequence[float], windowing: Windowing, padding_ms: float,
              config: AudioConfig, total_bytes: int, merge_gap_ms: float = 0) -> List[Segment]:
        """Build speech segments from window probabilities.

        Args:
            probabilities: One speech probability per classifier window
            windowing: Geometry the probabilities were produced with
            padding_ms: Extension applied to both ends of every segment
            config: Format of the raw buffer
            total_bytes: Length of the raw buffer in bytes
            merge_gap_ms: Segments separated by at most this much silence are joined

        Returns:
            Sorted, non-overlapping segments within [0, total_bytes]
        """
        validate_duration_ms("padding_ms", padding_ms)
        validate_duration_ms("merge_gap_ms", merge_gap_ms)

        runs = find_speech_runs(probabilities, self.threshold)
        if not runs:
            return []

        bytes_per_sample = config.bytes_per_sample
        raw_samples = total_bytes // bytes_per_sample
        from_rate = windowing.sample_rate
        to_rate = config.sample_rate_hz
        window_size = windowing.window_samples

        mapped = []
        for first_window, end_window in runs:
            start = first_window * window_size * to_rate // from_rate
            end = -(-end_window * window_size * to_rate // from_rate)
            start, end = min(start, raw_samples), min(end, raw_samples)
            if end > start:
                mapped.append([start, end])

        gap_samples = ms_to_samples(merge_gap_ms, to_rate, raw_samples)
        bridged = []
        for start, end in mapped:
            if bridged and start - bridged[-1][1] <= gap_samples:
                bridged[-1][1] = end
            else:
                bridged.append([start, end])

        pad_samples = ms_to_samples(padding_ms, to_rate, raw_samples)
        padded = [[max(0, start - pad_samples), min(raw_samples, end + pad_samples)]
                  for start, end in bridged]
        padded.sort(key=lambda segment: segment[0])

        merged = []
        for start, end in padded:
            if merged and start <= merged[-1][1]:
                merged[-1][1] = max(merged[-1][1], end)
            else:
                merged.append([start, end])

        segments = [Segment(start * bytes_per_sample, end * bytes_per_sample) for start, end in merged]
        logger.debug(f"{len(runs)} speech runs -> {len(segments)} segments "
                     f"(padding {pad_samples} samples, merge gap {gap_samples} samples)")
        return segments

    @staticmethod
    def extract_bytes(segments: Sequence[Segment], raw_buffer: BytesLike) -> bytes:
        """Concatenate the raw bytes of each segment in order."""
        view = memoryview(raw_buffer).cast("B")
        for segment in segments:
            if not 0 <= segment.start_byte <= segment.end_byte <= len(view):
                raise ValueError(f"Segment {segment} lies outside a buffer of {len(view)} bytes")
        return b"".join(view[segment.start_byte:segment.end_byte] for segment in segments)
