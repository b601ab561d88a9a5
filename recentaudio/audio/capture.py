"""Microphone capture thread feeding raw PCM chunks to a callback."""

import logging
import threading
from typing import Callable, Optional

import pyaudio

from ..models.audio import AudioConfig, BitDepth
from ..models.events import AudioEvent

logger = logging.getLogger(__name__)


PYAUDIO_FORMATS = {
    BitDepth.PCM_8BIT: pyaudio.paUInt8,
    BitDepth.PCM_16BIT: pyaudio.paInt16,
}


class AudioCapture:
    """Reads mono PCM from an input device on a daemon thread.

    Every chunk read is wrapped in an AudioEvent and handed to `on_chunk`,
    normally AudioPublisher.publish_audio_event. The PyAudio instance and
    stream live entirely on the capture thread.
    """

    def __init__(self, on_chunk: Callable[[AudioEvent], None], config: AudioConfig,
                 chunk_size: int = 1024, device_index: Optional[int] = None):
        """Initialize audio capture.

        Args:
            on_chunk: Receives an AudioEvent per captured chunk, on the capture thread
            config: Sample rate and bit depth to record with
            chunk_size: Samples per read
            device_index: PyAudio input device, None for the system default
        """
        self.on_chunk = on_chunk
        self.config = config
        self.chunk_size = chunk_size
        self.device_index = device_index
        self.sample_format = PYAUDIO_FORMATS[config.bit_depth]

        self._thread: Optional[threading.Thread] = None
        self._stop_requested = threading.Event()
        self.is_running = False
        self.chunks_captured = 0
        self.bytes_captured = 0
        self.error: Optional[Exception] = None

    def start(self) -> None:
        """Open the input device and start reading on a background thread."""
        if self.is_running:
            logger.warning("Audio capture already running")
            return

        self._stop_requested.clear()
        self.chunks_captured = 0
        self.bytes_captured = 0
        self.error = None

        self._thread = threading.Thread(target=self._capture_loop, name="AudioCaptureThread", daemon=True)
        self._thread.start()
        self.is_running = True
        logger.info(f"Audio capture started: {self.config.sample_rate_hz}Hz, "
                    f"{self.config.bit_depth.bits}-bit mono, {self.chunk_size} samples/chunk")

    def stop(self, timeout: float = 2.0) -> None:
        """Ask the capture thread to finish and wait for it."""
        if not self.is_running:
            logger.warning("Audio capture is not running")
            return

        self._stop_requested.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            if self._thread.is_alive():
                logger.warning(f"Audio capture thread did not stop within {timeout}s")

        self.is_running = False
        seconds = self.bytes_captured / self.config.bytes_per_second
        logger.info(f"Audio capture stopped after {self.chunks_captured} chunks ({seconds:.1f}s of audio)")

    def _open_stream(self, audio: pyaudio.PyAudio):
        return audio.open(
            format=self.sample_format,
            channels=1,
            rate=self.config.sample_rate_hz,
            input=True,
            input_device_index=self.device_index,
            frames_per_buffer=self.chunk_size,
        )

    def _emit(self, data: bytes) -> None:
        self.chunks_captured += 1
        self.bytes_captured += len(data)
        self.on_chunk(AudioEvent(
            audio_data=data,
            sequence_number=self.chunks_captured,
            sample_rate=self.config.sample_rate_hz,
            bytes_per_sample=self.config.bytes_per_sample,
        ))

    def _capture_loop(self) -> None:
        audio = pyaudio.PyAudio()
        stream = None
        try:
            stream = self._open_stream(audio)
            while not self._stop_requested.is_set():
                self._emit(stream.read(self.chunk_size, exception_on_overflow=False))
        except Exception as e:
            self.error = e
            logger.error(f"Audio capture failed: {e}", exc_info=True)
            raise
        finally:
            if stream is not None:
                stream.stop_stream()
                stream.close()
            audio.terminate()
