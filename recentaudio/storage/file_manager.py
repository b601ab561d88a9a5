"""File management for saved recordings and debug dumps."""

import logging
from pathlib import Path
from datetime import datetime
from typing import List, Optional

from ..audio.wav import write_wav
from ..models.audio import AudioConfig

logger = logging.getLogger(__name__)


class FileManager:
    """Manages where recordings and debug WAV dumps are written."""

    def __init__(self, data_dir: str = "./data"):
        """Initialize file manager with data directory.

        Args:
            data_dir: Base directory for storing all data
        """
        self.data_dir = Path(data_dir)
        self.recordings_dir = self.data_dir / "recordings"
        self.debug_dir = self.data_dir / "debug"

        self._ensure_directories()

        logger.info(f"FileManager initialized with data_dir: {self.data_dir}")

    def _ensure_directories(self) -> None:
        """Ensure all required directories exist."""
        for directory in [self.data_dir, self.recordings_dir, self.debug_dir]:
            directory.mkdir(parents=True, exist_ok=True)
            logger.debug(f"Ensured directory exists: {directory}")

    @staticmethod
    def _wav_filename(filename: Optional[str], prefix: str) -> str:
        if filename is None:
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
            filename = f"{prefix}_{timestamp}.wav"
        if not filename.endswith('.wav'):
            filename += '.wav'
        return filename

    def save_recording(self, pcm: bytes, config: AudioConfig, filename: Optional[str] = None) -> str:
        """Save PCM audio as a WAV file in the recordings directory.

        Args:
            pcm: Raw PCM bytes in config's format
            config: Sample rate and bit depth of pcm
            filename: Optional custom filename (.wav is appended if missing)

        Returns:
            Full path to saved WAV file
        """
        path = self.recordings_dir / self._wav_filename(filename, "recording")
        try:
            write_wav(path, pcm, config)
        except Exception as e:
            logger.error(f"Error saving recording {path}: {e}")
            raise

        logger.info(f"Recording saved: {path} ({len(pcm)} bytes of audio)")
        return str(path)

    def save_debug_file(self, filename: str, pcm: bytes, config: AudioConfig) -> str:
        """Save an intermediate pipeline buffer for inspection."""
        path = self.debug_dir / self._wav_filename(filename, "debug")
        write_wav(path, pcm, config)
        logger.debug(f"Debug file saved: {path} ({len(pcm)} bytes)")
        return str(path)

    def list_recordings(self) -> List[str]:
        """List saved recording paths, oldest name first."""
        recordings = sorted(str(path) for path in self.recordings_dir.glob("*.wav"))
        logger.debug(f"Found {len(recordings)} recordings")
        return recordings
