"""Windowed speech classification, sequential or across a worker pool."""

import copy
import logging
import os
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, List, Optional

import numpy as np

from ..exceptions import InferenceError
from ..models.audio import Windowing
from .base import AbstractSpeechClassifier

logger = logging.getLogger(__name__)


ProgressCallback = Callable[[float], None]


def default_pool_size() -> int:
    """Worker count for parallel classification based on available cores."""
    cores = os.cpu_count() or 1
    if cores <= 2:
        return 2
    if cores <= 4:
        return 4
    return min(cores - 1, 8)


class ProgressReporter:
    """Forwards progress to a callback as non-decreasing values in [0, 1].

    Values are mapped linearly into [start, end] and only forwarded when the
    whole percentage increases, so callers never see a value go backwards even
    when several workers report concurrently.
    """

    def __init__(self, callback: Optional[ProgressCallback], start: float = 0.0, end: float = 1.0):
        self.callback = callback
        self.start = start
        self.end = end
        self._last_percent = -1
        self._lock = threading.Lock()

    def report(self, fraction: float) -> None:
        if self.callback is None:
            return
        fraction = min(max(fraction, 0.0), 1.0)
        value = self.start + (self.end - self.start) * fraction
        percent = int(value * 100)
        with self._lock:
            if percent <= self._last_percent:
                return
            self._last_percent = percent
            self.callback(value)


class _WorkCounter:
    """Counts processed windows across threads and reports the completed fraction."""

    def __init__(self, total: int, reporter: ProgressReporter):
        self.total = max(total, 1)
        self.done = 0
        self.reporter = reporter
        self.lock = threading.Lock()

    def tick(self) -> None:
        with self.lock:
            self.done += 1
            self.reporter.report(self.done / self.total)


class WindowedClassifierDriver:
    """Slices audio into classifier windows and collects one probability per window.

    Window i covers samples [i*W, (i+1)*W). Its context is the C samples right
    before it, zeros for the first window, so contexts depend on the input only.
    The classifier state is threaded from window to window starting at
    classifier.initial_state().

    In parallel mode the windows are split into one contiguous chunk per
    worker. A single state-propagation pass first records the state each chunk
    would enter with in a sequential run; every worker then scores its chunk
    from a private copy of that state. Both modes therefore return
    bit-identical probabilities.
    """

    def __init__(self, classifier: AbstractSpeechClassifier, max_workers: Optional[int] = None):
        """Initialize driver.

        Args:
            classifier: Speech classifier to drive
            max_workers: Worker count for parallel mode (defaults to default_pool_size())
        """
        self.classifier = classifier
        self.max_workers = max_workers or default_pool_size()

    @staticmethod
    def window_count(num_samples: int, windowing: Windowing) -> int:
        return num_samples // windowing.window_samples

    def classify(self, samples: np.ndarray, windowing: Windowing, use_parallel: bool = False,
                 on_progress: Optional[ProgressCallback] = None) -> np.ndarray:
        """Score every complete window of samples.

        Args:
            samples: float32 audio at windowing.sample_rate
            windowing: Window geometry
            use_parallel: Fan scoring out across worker threads
            on_progress: Receives the completed fraction of work

        Returns:
            float64 array with one probability per window, chronological
        """
        reporter = ProgressReporter(on_progress)
        num_windows = self.window_count(len(samples), windowing)
        if num_windows == 0:
            logger.debug(f"Input of {len(samples)} samples is shorter than one window, "
                         f"nothing to classify")
            reporter.report(1.0)
            return np.zeros(0, dtype=np.float64)

        window_size = windowing.window_samples
        padded = np.concatenate([
            np.zeros(windowing.context_samples, dtype=np.float32),
            np.asarray(samples[:num_windows * window_size], dtype=np.float32),
        ])

        workers = min(self.max_workers, num_windows) if use_parallel else 1
        if workers <= 1:
            counter = _WorkCounter(num_windows, reporter)
            probabilities = self._score_range(padded, windowing, 0, num_windows,
                                              self.classifier.initial_state(), counter)
        else:
            probabilities = self._classify_parallel(padded, windowing, num_windows, workers, reporter)

        logger.debug(f"Classified {num_windows} windows at {windowing.sample_rate}Hz "
                     f"({'parallel x' + str(workers) if workers > 1 else 'sequential'})")
        return probabilities

    def _classify_parallel(self, padded: np.ndarray, windowing: Windowing, num_windows: int,
                           workers: int, reporter: ProgressReporter) -> np.ndarray:
        bounds = [k * num_windows // workers for k in range(workers + 1)]
        # replay windows before the last chunk, then score all windows
        counter = _WorkCounter(bounds[-2] + num_windows, reporter)

        entry_states: List[Any] = [self.classifier.initial_state()]
        state = entry_states[0]
        for k in range(1, workers):
            for index in range(bounds[k - 1], bounds[k]):
                window, context = self._slice(padded, windowing, index)
                state = self._advance(window, context, state, windowing.sample_rate)
                counter.tick()
            entry_states.append(state)

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="VADWorker") as executor:
            futures = [
                executor.submit(self._score_range, padded, windowing, bounds[k], bounds[k + 1],
                                copy.deepcopy(entry_states[k]), counter)
                for k in range(workers)
            ]
            chunks = [future.result() for future in futures]

        return np.concatenate(chunks)

    @staticmethod
    def _slice(padded: np.ndarray, windowing: Windowing, index: int):
        window_size = windowing.window_samples
        context_size = windowing.context_samples
        start = index * window_size
        context = padded[start:start + context_size]
        window = padded[context_size + start:context_size + start + window_size]
        return window, context

    def _score_range(self, padded: np.ndarray, windowing: Windowing, start: int, stop: int,
                     state: Any, counter: _WorkCounter) -> np.ndarray:
        probabilities = np.empty(stop - start, dtype=np.float64)
        for offset, index in enumerate(range(start, stop)):
            window, context = self._slice(padded, windowing, index)
            probabilities[offset], state = self._score(window, context, state, windowing.sample_rate)
            counter.tick()
        return probabilities

    def _score(self, window, context, state, sample_rate):
        try:
            return self.classifier.score(window, context, state, sample_rate)
        except InferenceError:
            raise
        except Exception as e:
            raise InferenceError(f"Speech classifier failed: {e}") from e

    def _advance(self, window, context, state, sample_rate):
        try:
            return self.classifier.advance(window, context, state, sample_rate)
        except InferenceError:
            raise
        except Exception as e:
            raise InferenceError(f"Speech classifier failed: {e}") from e
