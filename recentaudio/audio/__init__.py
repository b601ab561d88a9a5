"""Audio capture and buffering module."""

from .buffer import RingBuffer
from .wav import wav_header, read_wav_header, write_wav, read_wav, WAV_HEADER_SIZE

__all__ = [
    'RingBuffer',
    'wav_header',
    'read_wav_header',
    'write_wav',
    'read_wav',
    'WAV_HEADER_SIZE',
]
