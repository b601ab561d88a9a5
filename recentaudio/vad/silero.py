"""Silero VAD speech classifier running on ONNX Runtime."""

import logging
from pathlib import Path
from typing import Tuple, Union

import numpy as np
import onnxruntime as ort

from ..models.audio import Windowing
from .base import AbstractSpeechClassifier

logger = logging.getLogger(__name__)


SILERO_WINDOWING = {
    8000: Windowing(sample_rate=8000, window_samples=256, context_samples=32),
    16000: Windowing(sample_rate=16000, window_samples=512, context_samples=64),
}
STATE_SHAPE = (2, 1, 128)


class SileroVadClassifier(AbstractSpeechClassifier):
    """Wraps silero_vad.onnx.

    The model takes `input` (context + window, shape [1, C+W]), `state`
    ([2, 1, 128]) and `sr` (int64) and returns the speech probability and the
    next state. One intra-op thread keeps results reproducible across runs and
    lets several driver workers share the session safely.
    """

    def __init__(self, model_path: Union[str, Path]):
        """Load the ONNX model.

        Args:
            model_path: Path to silero_vad.onnx
        """
        self.model_path = Path(model_path)
        if not self.model_path.exists():
            raise FileNotFoundError(f"Silero VAD model not found: {self.model_path}")

        options = ort.SessionOptions()
        options.intra_op_num_threads = 1
        options.inter_op_num_threads = 1
        self.session = ort.InferenceSession(
            str(self.model_path), sess_options=options, providers=["CPUExecutionProvider"]
        )
        logger.info(f"Silero VAD model loaded from {self.model_path}")

    @property
    def sample_rates(self) -> Tuple[int, ...]:
        return tuple(sorted(SILERO_WINDOWING))

    def windowing(self, sample_rate: int) -> Windowing:
        if sample_rate not in SILERO_WINDOWING:
            raise ValueError(f"Silero VAD does not support {sample_rate}Hz")
        return SILERO_WINDOWING[sample_rate]

    def initial_state(self) -> np.ndarray:
        return np.zeros(STATE_SHAPE, dtype=np.float32)

    def score(self, window: np.ndarray, context: np.ndarray, state: np.ndarray,
              sample_rate: int) -> Tuple[float, np.ndarray]:
        model_input = np.concatenate([context, window]).astype(np.float32)[np.newaxis, :]
        outputs = self.session.run(None, {
            "input": model_input,
            "state": state,
            "sr": np.array(sample_rate, dtype=np.int64),
        })
        probability = float(np.asarray(outputs[0]).reshape(-1)[0])
        next_state = np.asarray(outputs[1], dtype=np.float32)
        if next_state.shape != STATE_SHAPE:
            raise ValueError(f"Silero VAD returned state of shape {next_state.shape}, "
                             f"expected {STATE_SHAPE}")
        return probability, next_state
