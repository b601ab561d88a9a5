"""Canonical 44-byte mono PCM WAV helpers."""

import logging
import struct
import wave
from pathlib import Path
from typing import Tuple, Union

from ..exceptions import InvalidConfigError
from ..models.audio import AudioConfig, BitDepth

logger = logging.getLogger(__name__)


WAV_HEADER_SIZE = 44

# RIFF chunk, fmt sub-chunk (16 bytes, PCM), data sub-chunk header
_HEADER_FORMAT = "<4sI4s4sIHHIIHH4sI"


def wav_header(audio_data_len: int, config: AudioConfig) -> bytes:
    """Build the 44-byte header for audio_data_len bytes of mono PCM.

    Args:
        audio_data_len: Length of the PCM payload in bytes
        config: Sample rate and bit depth of the payload

    Returns:
        Header bytes, little-endian, PCM format tag 1
    """
    channels = 1
    bits = config.bit_depth.bits
    block_align = channels * config.bytes_per_sample
    byte_rate = config.sample_rate_hz * block_align
    return struct.pack(
        _HEADER_FORMAT,
        b"RIFF", audio_data_len + 36, b"WAVE",
        b"fmt ", 16, 1, channels, config.sample_rate_hz, byte_rate, block_align, bits,
        b"data", audio_data_len,
    )


def read_wav_header(wav_bytes: bytes) -> AudioConfig:
    """Read sample rate and bit depth from a canonical WAV header.

    The returned config has buffer_time_length_s=0.
    """
    if len(wav_bytes) < WAV_HEADER_SIZE:
        raise InvalidConfigError("Invalid WAV header: file is too small")

    (riff, _, wave_tag, fmt, _, audio_format, channels,
     sample_rate, _, _, bits, _, _) = struct.unpack(_HEADER_FORMAT, bytes(wav_bytes[:WAV_HEADER_SIZE]))

    if riff != b"RIFF" or wave_tag != b"WAVE" or fmt != b"fmt ":
        raise InvalidConfigError("Invalid WAV header: missing RIFF/WAVE/fmt tags")
    if audio_format != 1:
        raise InvalidConfigError(f"Unsupported WAV format tag {audio_format}, expected PCM (1)")
    if channels != 1:
        raise InvalidConfigError(f"Only mono WAV files are supported, got {channels} channels")

    logger.debug(f"Read from WAV: sample_rate={sample_rate}, bit_depth={bits}")
    return AudioConfig(sample_rate, 0, BitDepth.from_bits(bits))


def write_wav(path: Union[str, Path], pcm: bytes, config: AudioConfig) -> str:
    """Write mono PCM to a WAV file and return its path."""
    with wave.open(str(path), 'wb') as wf:
        wf.setnchannels(1)
        wf.setsampwidth(config.bytes_per_sample)
        wf.setframerate(config.sample_rate_hz)
        wf.writeframes(pcm)
    return str(path)


def read_wav(path: Union[str, Path]) -> Tuple[bytes, AudioConfig]:
    """Read a mono PCM WAV file.

    Returns:
        Tuple of (pcm_bytes, config)
    """
    with wave.open(str(path), 'rb') as wf:
        if wf.getnchannels() != 1:
            raise InvalidConfigError(
                f"Only mono WAV files are supported, {path} has {wf.getnchannels()} channels")
        config = AudioConfig(wf.getframerate(), 0, BitDepth.from_bits(wf.getsampwidth() * 8))
        pcm = wf.readframes(wf.getnframes())

    logger.info(f"Loaded {path}: {len(pcm)} bytes, {config.sample_rate_hz}Hz, "
                f"{config.bit_depth.bits}-bit")
    return pcm, config
