"""Abstract base class for speech probability classifiers."""

from abc import ABC, abstractmethod
from typing import Any, Tuple

import numpy as np

from ..models.audio import Windowing


class AbstractSpeechClassifier(ABC):
    """Stateful classifier scoring one fixed-size window of audio at a time.

    Implementations must be pure with respect to their inputs: score() must not
    mutate the state it is given, and identical (window, context, state) must
    always produce identical output. The driver relies on both to give
    parallel and sequential runs bit-identical results.
    """

    @property
    @abstractmethod
    def sample_rates(self) -> Tuple[int, ...]:
        """Native sample rates the model accepts, ascending."""
        pass

    @abstractmethod
    def windowing(self, sample_rate: int) -> Windowing:
        """Window and context sample counts at a native sample rate."""
        pass

    @abstractmethod
    def initial_state(self) -> Any:
        """State blob for the first window of a recording."""
        pass

    @abstractmethod
    def score(self, window: np.ndarray, context: np.ndarray, state: Any,
              sample_rate: int) -> Tuple[float, Any]:
        """Score one window.

        Args:
            window: float32 samples, windowing(sample_rate).window_samples long
            context: float32 samples preceding the window
            state: State blob returned for the previous window
            sample_rate: Native sample rate the window is sampled at

        Returns:
            Tuple of (speech probability in [0, 1], next state blob)
        """
        pass

    def advance(self, window: np.ndarray, context: np.ndarray, state: Any,
                sample_rate: int) -> Any:
        """Propagate state across one window without needing its probability."""
        _, next_state = self.score(window, context, state, sample_rate)
        return next_state

    def target_sample_rate(self, input_rate: int) -> int:
        """Highest native rate not above input_rate, else the lowest native rate."""
        rates = sorted(self.sample_rates)
        eligible = [rate for rate in rates if rate <= input_rate]
        return eligible[-1] if eligible else rates[0]

    def close(self) -> None:
        """Release model resources."""
        pass
