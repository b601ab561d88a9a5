"""Buffering service that keeps recent audio and saves the speech in it."""

import logging
from concurrent import futures
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

from pubsub import pub

from ..audio.audio_pub import AudioPublisher
from ..audio.buffer import RingBuffer
from ..audio.capture import AudioCapture
from ..config import RecentAudioConfig
from ..models.audio import AudioConfig, BufferStats
from ..models.events import AudioEvent
from ..storage.file_manager import FileManager
from ..vad.driver import ProgressCallback
from ..vad.processor import (
    DEFAULT_MERGE_GAP_MS,
    DEFAULT_PADDING_MS,
    USE_PARALLEL_PIPELINE,
    VADProcessor,
)

logger = logging.getLogger(__name__)


class BufferingService:
    """Feeds captured audio into a ring buffer and saves it on demand."""

    def __init__(self,
                 audio_config: AudioConfig,
                 processor: VADProcessor,
                 file_manager: FileManager,
                 topic: str = "audio.frame",
                 chunk_size: int = 1024,
                 device_index: Optional[int] = None,
                 padding_ms: float = DEFAULT_PADDING_MS,
                 merge_gap_ms: float = DEFAULT_MERGE_GAP_MS,
                 use_parallel: bool = USE_PARALLEL_PIPELINE):
        """Initialize buffering service.

        Args:
            audio_config: Recording format and ring buffer length
            processor: Speech extraction pipeline
            file_manager: Where recordings are written
            topic: Pub/sub topic carrying captured AudioEvents
            chunk_size: Capture chunk size in samples
            device_index: PyAudio input device, None for the system default
            padding_ms: Padding passed to processor.process()
            merge_gap_ms: Merge gap passed to processor.process()
            use_parallel: Parallel classification flag passed to processor.process()
        """
        self.audio_config = audio_config
        self.processor = processor
        self.file_manager = file_manager
        self.topic = topic
        self.chunk_size = chunk_size
        self.device_index = device_index
        self.padding_ms = padding_ms
        self.merge_gap_ms = merge_gap_ms
        self.use_parallel = use_parallel

        self.ring_buffer = RingBuffer.from_config(audio_config)
        self.audio_publisher = AudioPublisher(topic)
        self.audio_capture: Optional[AudioCapture] = None
        self.is_buffering = False
        self.last_sequence_number = 0
        self.missed_chunks = 0

        self.executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="SpeechExtraction")

        logger.info(f"BufferingService ready: {audio_config.buffer_time_length_s}s at "
                    f"{audio_config.sample_rate_hz}Hz/{audio_config.bit_depth.bits}-bit")

    @classmethod
    def from_config(cls, config: RecentAudioConfig, processor: VADProcessor,
                    file_manager: FileManager) -> "BufferingService":
        """Create a service from the YAML configuration."""
        return cls(
            audio_config=config.get_audio_config(),
            processor=processor,
            file_manager=file_manager,
            chunk_size=config.get('audio.chunk_size', 1024),
            device_index=config.get('audio.input_device_index'),
            padding_ms=config.get('vad.padding_ms', DEFAULT_PADDING_MS),
            merge_gap_ms=config.get('vad.merge_gap_ms', DEFAULT_MERGE_GAP_MS),
            use_parallel=config.get('vad.use_parallel', USE_PARALLEL_PIPELINE),
        )

    def on_audio_event(self, event: AudioEvent) -> None:
        """Pub/sub listener: append a captured chunk to the ring buffer."""
        expected = self.last_sequence_number + 1
        if event.sequence_number > expected:
            missed = event.sequence_number - expected
            self.missed_chunks += missed
            logger.warning(f"Missed {missed} audio chunks before chunk {event.sequence_number}")
        self.last_sequence_number = event.sequence_number
        self.ring_buffer.write(event.audio_data)

    def start_buffering(self) -> None:
        """Subscribe the ring buffer to the audio topic and start capture."""
        if self.is_buffering:
            logger.warning("Buffering already in progress")
            return

        self.last_sequence_number = 0
        pub.subscribe(self.on_audio_event, self.topic)
        self.audio_capture = AudioCapture(
            on_chunk=self.audio_publisher.publish_audio_event,
            config=self.audio_config,
            chunk_size=self.chunk_size,
            device_index=self.device_index,
        )
        self.audio_capture.start()
        self.is_buffering = True
        logger.info("Buffering started")

    def stop_buffering(self) -> None:
        """Stop capture and detach the ring buffer from the audio topic."""
        if not self.is_buffering:
            logger.warning("Buffering is not running")
            return

        if self.audio_capture:
            self.audio_capture.stop()
        pub.unsubscribe(self.on_audio_event, self.topic)
        self.is_buffering = False
        logger.info(f"Buffering stopped at chunk {self.last_sequence_number}, {self.missed_chunks} chunks missed")

    def reset_buffer(self) -> None:
        """Forget everything buffered so far."""
        self.ring_buffer.reset()

    def get_buffer(self) -> bytes:
        """Chronological copy of the buffered audio."""
        return self.ring_buffer.snapshot()

    def get_buffer_stats(self) -> BufferStats:
        return self.ring_buffer.stats()

    def save_recent_audio(self, filename: Optional[str] = None, speech_only: bool = True,
                          on_progress: Optional[ProgressCallback] = None,
                          timeout: Optional[float] = None) -> str:
        """Save the buffered audio, optionally reduced to its speech, as a WAV file.

        Args:
            filename: Optional recording filename
            speech_only: Run the VAD pipeline before saving
            on_progress: Progress callback forwarded to the pipeline
            timeout: Seconds to wait for the pipeline. On timeout TimeoutError is
                raised but the pipeline keeps running in the background.

        Returns:
            Path to the saved WAV file
        """
        audio, overflowed = self.ring_buffer.snapshot_with_overflow()
        logger.info(f"Saving recent audio: {len(audio)} bytes buffered, speech_only={speech_only}"
                    f"{', oldest audio overwritten' if overflowed else ''}")

        if speech_only:
            future = self.executor.submit(
                self.processor.process, audio, self.audio_config,
                padding_ms=self.padding_ms,
                merge_gap_ms=self.merge_gap_ms,
                use_parallel=self.use_parallel,
                on_progress=on_progress,
            )
            try:
                audio = future.result(timeout=timeout)
            except futures.TimeoutError:
                logger.warning(f"Speech extraction did not finish within {timeout}s")
                raise TimeoutError(f"Speech extraction did not finish within {timeout}s")

        return self.file_manager.save_recording(audio, self.audio_config, filename)

    def shutdown(self) -> None:
        """Stop buffering and release the extraction worker."""
        if self.is_buffering:
            self.stop_buffering()
        self.executor.shutdown(wait=False)
