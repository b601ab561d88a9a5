"""Speech extraction pipeline: resample, classify, merge, stitch."""

import gc
import logging
import time
import tracemalloc
from typing import Optional, Union

import numpy as np

from ..models.audio import AudioConfig, BenchmarkResult
from ..storage.file_manager import FileManager
from .base import AbstractSpeechClassifier
from .driver import ProgressCallback, ProgressReporter, WindowedClassifierDriver
from .resampler import pcm_to_float, resample_float
from .segments import DEFAULT_SPEECH_THRESHOLD, SegmentMerger, validate_duration_ms

logger = logging.getLogger(__name__)


DEFAULT_PADDING_MS = 500
DEFAULT_MERGE_GAP_MS = 1500
USE_PARALLEL_PIPELINE = True

AudioBuffer = Union[bytes, bytearray, memoryview, np.ndarray]


def as_byte_view(buffer: AudioBuffer) -> memoryview:
    """Flat read-only-safe byte view over a caller's buffer, without copying when possible."""
    if isinstance(buffer, np.ndarray) and not buffer.flags.c_contiguous:
        buffer = np.ascontiguousarray(buffer)
    return memoryview(buffer).cast("B")


class VADProcessor:
    """Extracts the speech-bearing parts of a raw PCM buffer.

    The processor holds no per-recording state: the classifier state lives only
    inside a single process() call, so repeated calls on the same input return
    identical bytes.
    """

    def __init__(self, classifier: AbstractSpeechClassifier,
                 speech_threshold: float = DEFAULT_SPEECH_THRESHOLD,
                 max_workers: Optional[int] = None,
                 file_manager: Optional[FileManager] = None):
        """Initialize the pipeline.

        Args:
            classifier: Speech probability model
            speech_threshold: Probability at or above which a window is speech
            max_workers: Worker count for parallel classification
            file_manager: Receives debug dumps when process() is given a debug name
        """
        self.classifier = classifier
        self.driver = WindowedClassifierDriver(classifier, max_workers)
        self.merger = SegmentMerger(speech_threshold)
        self.file_manager = file_manager

    def process(self, buffer: AudioBuffer, config: AudioConfig,
                padding_ms: float = DEFAULT_PADDING_MS,
                merge_gap_ms: float = DEFAULT_MERGE_GAP_MS,
                use_parallel: bool = USE_PARALLEL_PIPELINE,
                on_progress: Optional[ProgressCallback] = None,
                debug_file_base_name: Optional[str] = None) -> bytes:
        """Return only the speech in buffer, concatenated in chronological order.

        Args:
            buffer: Raw PCM in config's format; never modified
            config: Sample rate and bit depth of buffer
            padding_ms: Audio kept before and after every speech segment
            merge_gap_ms: Silences up to this long between speech are kept
            use_parallel: Classify on a worker pool (same result as sequential)
            on_progress: Called with non-decreasing values from 0.0 to 1.0
            debug_file_base_name: Also dump the input and result as WAV files

        Returns:
            Speech bytes, never longer than buffer

        Raises:
            InvalidConfigError: Invalid config, padding or merge gap
            InferenceError: The classifier failed
        """
        config.validate()
        validate_duration_ms("padding_ms", padding_ms)
        validate_duration_ms("merge_gap_ms", merge_gap_ms)
        if debug_file_base_name and self.file_manager is None:
            raise ValueError("debug_file_base_name requires a FileManager")

        start_time = time.perf_counter()
        reporter = ProgressReporter(on_progress)
        reporter.report(0.0)

        raw = as_byte_view(buffer)
        usable = len(raw) - len(raw) % config.bytes_per_sample
        raw = raw[:usable]

        if debug_file_base_name:
            self.file_manager.save_debug_file(f"{debug_file_base_name}_01_original.wav", raw, config)

        target_rate = self.classifier.target_sample_rate(config.sample_rate_hz)
        windowing = self.classifier.windowing(target_rate)
        samples = resample_float(pcm_to_float(raw, config.bit_depth), config.sample_rate_hz, target_rate)
        reporter.report(0.1)

        probabilities = self.driver.classify(
            samples, windowing, use_parallel,
            on_progress=ProgressReporter(reporter.report, 0.1, 0.9).report,
        )

        segments = self.merger.merge(probabilities, windowing, padding_ms, config, usable, merge_gap_ms)
        result = SegmentMerger.extract_bytes(segments, raw)

        if debug_file_base_name:
            self.file_manager.save_debug_file(f"{debug_file_base_name}_02_speech.wav", result, config)

        reporter.report(1.0)
        elapsed_ms = (time.perf_counter() - start_time) * 1000
        logger.info(f"Processed {usable} bytes at {config.sample_rate_hz}Hz "
                    f"({len(probabilities)} windows at {target_rate}Hz): "
                    f"{len(segments)} speech segments, {len(result)} bytes kept, {elapsed_ms:.0f}ms")
        return result

    def measure_processing_ms_for_buffer(self, buffer: AudioBuffer, config: AudioConfig,
                                         runs: int = 3, warmup: int = 1) -> BenchmarkResult:
        """Benchmark process() on a private copy of buffer.

        Runs `warmup` untimed passes, then `runs` timed passes. Allocation per
        run is the tracemalloc peak above the pre-run baseline; tracing adds
        some overhead to the measured time.
        """
        if runs <= 0:
            raise ValueError("runs must be > 0")
        if warmup < 0:
            raise ValueError("warmup must be >= 0")

        data = bytes(as_byte_view(buffer))
        for _ in range(warmup):
            self.process(data, config)
        gc.collect()

        runtimes = []
        allocations = []
        was_tracing = tracemalloc.is_tracing()
        if not was_tracing:
            tracemalloc.start()
        try:
            for _ in range(runs):
                tracemalloc.reset_peak()
                baseline, _ = tracemalloc.get_traced_memory()
                started = time.perf_counter()
                self.process(data, config)
                runtimes.append((time.perf_counter() - started) * 1000)
                _, peak = tracemalloc.get_traced_memory()
                allocations.append(max(peak - baseline, 0))
        finally:
            if not was_tracing:
                tracemalloc.stop()

        result = BenchmarkResult(
            avg_ms=sum(runtimes) / runs,
            avg_alloc_bytes=sum(allocations) // runs,
        )
        logger.info(f"Benchmark over {runs} runs: {result.avg_ms:.1f}ms, "
                    f"{result.avg_alloc_bytes} bytes allocated per run")
        return result

    def close(self) -> None:
        self.classifier.close()
