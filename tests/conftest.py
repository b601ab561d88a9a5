"""Pytest configuration and fixtures for RecentAudio tests."""

import pytest
import tempfile
import threading
import logging
from unittest.mock import Mock, patch
import numpy as np

from recentaudio.models.audio import AudioConfig, BitDepth, Windowing
from recentaudio.vad.base import AbstractSpeechClassifier


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class EnergyClassifier(AbstractSpeechClassifier):
    """Deterministic stand-in for the Silero model.

    Speech probability follows the RMS energy of context + window, smoothed
    through the state, so results depend on every earlier window the way a
    recurrent model's do.
    """

    WINDOWING = {
        8000: Windowing(8000, 256, 32),
        16000: Windowing(16000, 512, 64),
    }

    def __init__(self, full_scale_rms: float = 0.05):
        self.full_scale_rms = full_scale_rms
        self.calls = 0
        self._lock = threading.Lock()

    @property
    def sample_rates(self):
        return (8000, 16000)

    def windowing(self, sample_rate):
        return self.WINDOWING[sample_rate]

    def initial_state(self):
        return np.zeros(2, dtype=np.float64)

    def score(self, window, context, state, sample_rate):
        with self._lock:
            self.calls += 1
        frame = np.concatenate([context, window]).astype(np.float64)
        rms = float(np.sqrt(np.mean(frame ** 2)))
        smoothed = 0.5 * state[0] + 0.5 * rms
        probability = min(1.0, smoothed / self.full_scale_rms)
        return probability, np.array([smoothed, state[1] + 1])


@pytest.fixture
def temp_data_dir():
    """Create temporary directory for test data."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield temp_dir


@pytest.fixture
def energy_classifier():
    return EnergyClassifier()


@pytest.fixture
def config_16k():
    return AudioConfig(16000, 10, BitDepth.PCM_16BIT)


@pytest.fixture
def audio_test_data():
    """Generate audio test data patterns as PCM bytes."""
    def generate_audio(pattern="sine", duration_ms=1000, sample_rate=16000,
                       bit_depth=BitDepth.PCM_16BIT, amplitude=0.5, freq=440.0, seed=0):
        """Generate audio data for testing.

        Args:
            pattern: Type of audio pattern ('sine', 'noise', 'silence')
            duration_ms: Duration of audio
            sample_rate: Sample rate in Hz
            bit_depth: PCM format of the returned bytes
            amplitude: Peak amplitude in [0, 1]

        Returns:
            bytes: PCM audio
        """
        samples = duration_ms * sample_rate // 1000

        if pattern == "sine":
            t = np.arange(samples) / sample_rate
            wave_data = amplitude * np.sin(2 * np.pi * freq * t)
        elif pattern == "noise":
            wave_data = amplitude * np.random.default_rng(seed).uniform(-1, 1, samples)
        elif pattern == "silence":
            wave_data = np.zeros(samples)
        else:
            raise ValueError(f"Unknown pattern: {pattern}")

        if bit_depth is BitDepth.PCM_16BIT:
            return (wave_data * 32767).astype("<i2").tobytes()
        return (np.round(wave_data * 127) + 128).astype(np.uint8).tobytes()

    return generate_audio


@pytest.fixture
def speech_pattern(audio_test_data):
    """Build a buffer from (kind, duration_ms) parts where kind is 'speech' or 'silence'."""
    def build(parts, sample_rate=16000, bit_depth=BitDepth.PCM_16BIT):
        chunks = []
        for kind, duration_ms in parts:
            pattern = "sine" if kind == "speech" else "silence"
            chunks.append(audio_test_data(pattern, duration_ms, sample_rate, bit_depth))
        return b"".join(chunks)

    return build


@pytest.fixture
def mock_pyaudio():
    """Mock PyAudio for testing without actual audio hardware."""
    with patch('pyaudio.PyAudio') as mock_pyaudio_class:
        mock_pyaudio_instance = Mock()
        mock_stream = Mock()

        # Configure mock stream
        mock_stream.read.return_value = b'\x00' * 2048  # Silent audio
        mock_stream.stop_stream.return_value = None
        mock_stream.close.return_value = None

        # Configure mock PyAudio instance
        mock_pyaudio_instance.open.return_value = mock_stream
        mock_pyaudio_instance.terminate.return_value = None

        mock_pyaudio_class.return_value = mock_pyaudio_instance

        yield {
            'class': mock_pyaudio_class,
            'instance': mock_pyaudio_instance,
            'stream': mock_stream
        }


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests without hardware")
    config.addinivalue_line("markers", "integration: tests wiring several components together")
    config.addinivalue_line("markers", "slow: tests that take more than a few seconds")
