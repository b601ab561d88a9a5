"""Unit tests for WAV helpers."""

import wave
from pathlib import Path

import pytest

from recentaudio.audio.wav import WAV_HEADER_SIZE, read_wav, read_wav_header, wav_header, write_wav
from recentaudio.exceptions import InvalidConfigError
from recentaudio.models.audio import AudioConfig, BitDepth


def u32(value):
    return value.to_bytes(4, "little")


def u16(value):
    return value.to_bytes(2, "little")


@pytest.mark.unit
class TestWavHeader:
    """Test cases for the 44-byte WAV header."""

    def test_16bit_header_layout(self):
        config = AudioConfig(16000, 0, BitDepth.PCM_16BIT)

        header = wav_header(100, config)

        expected = (
            b"RIFF" + u32(136) + b"WAVE"
            + b"fmt " + u32(16) + u16(1) + u16(1) + u32(16000) + u32(32000) + u16(2) + u16(16)
            + b"data" + u32(100)
        )
        assert len(header) == WAV_HEADER_SIZE
        assert header == expected

    def test_8bit_header_fields(self):
        config = AudioConfig(8000, 0, BitDepth.PCM_8BIT)

        header = wav_header(0, config)

        assert header[4:8] == u32(36)
        assert header[28:32] == u32(8000)  # byte rate
        assert header[32:34] == u16(1)  # block align
        assert header[34:36] == u16(8)

    def test_matches_wave_module(self, temp_data_dir):
        """Test the header equals what the standard wave writer produces."""
        config = AudioConfig(44100, 0, BitDepth.PCM_16BIT)
        pcm = bytes(range(256)) * 4
        path = Path(temp_data_dir) / "check.wav"

        write_wav(path, pcm, config)

        data = path.read_bytes()
        assert len(data) == WAV_HEADER_SIZE + len(pcm)
        assert data[:WAV_HEADER_SIZE] == wav_header(len(pcm), config)
        assert data[WAV_HEADER_SIZE:] == pcm

    def test_read_header(self):
        config = AudioConfig(22050, 0, BitDepth.PCM_8BIT)

        parsed = read_wav_header(wav_header(10, config) + bytes(10))

        assert parsed.sample_rate_hz == 22050
        assert parsed.bit_depth is BitDepth.PCM_8BIT
        assert parsed.buffer_time_length_s == 0

    def test_read_header_too_small(self):
        with pytest.raises(InvalidConfigError):
            read_wav_header(b"RIFF")

    def test_read_header_bad_tags(self):
        header = bytearray(wav_header(0, AudioConfig(16000, 0, BitDepth.PCM_16BIT)))
        header[8:12] = b"AVI "

        with pytest.raises(InvalidConfigError):
            read_wav_header(bytes(header))

    def test_read_header_unsupported_bit_depth(self):
        header = bytearray(wav_header(0, AudioConfig(16000, 0, BitDepth.PCM_16BIT)))
        header[34:36] = u16(24)

        with pytest.raises(InvalidConfigError):
            read_wav_header(bytes(header))

    def test_read_header_stereo(self):
        header = bytearray(wav_header(0, AudioConfig(16000, 0, BitDepth.PCM_16BIT)))
        header[22:24] = u16(2)

        with pytest.raises(InvalidConfigError):
            read_wav_header(bytes(header))


@pytest.mark.unit
class TestWavFiles:
    """Test cases for reading and writing WAV files."""

    def test_write_then_read(self, temp_data_dir, audio_test_data):
        config = AudioConfig(16000, 0, BitDepth.PCM_16BIT)
        pcm = audio_test_data("noise", 250)
        path = Path(temp_data_dir) / "noise.wav"

        assert write_wav(path, pcm, config) == str(path)
        loaded, loaded_config = read_wav(path)

        assert loaded == pcm
        assert loaded_config.sample_rate_hz == 16000
        assert loaded_config.bit_depth is BitDepth.PCM_16BIT

    def test_read_rejects_stereo(self, temp_data_dir):
        path = Path(temp_data_dir) / "stereo.wav"
        with wave.open(str(path), "wb") as wf:
            wf.setnchannels(2)
            wf.setsampwidth(2)
            wf.setframerate(16000)
            wf.writeframes(bytes(400))

        with pytest.raises(InvalidConfigError):
            read_wav(path)
