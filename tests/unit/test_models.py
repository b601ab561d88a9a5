"""Unit tests for data models."""

import pytest

from recentaudio.exceptions import InvalidConfigError
from recentaudio.models.audio import AudioConfig, BitDepth, Segment
from recentaudio.models.events import AudioEvent


@pytest.mark.unit
class TestBitDepth:
    """Test cases for BitDepth enum."""

    def test_properties(self):
        assert BitDepth.PCM_8BIT.bits == 8
        assert BitDepth.PCM_8BIT.bytes_per_sample == 1
        assert BitDepth.PCM_16BIT.bytes_per_sample == 2
        assert BitDepth.PCM_16BIT.encoding == "pcm_s16le"

    @pytest.mark.parametrize("value,expected", [
        (8, BitDepth.PCM_8BIT), (16, BitDepth.PCM_16BIT), ("16", BitDepth.PCM_16BIT),
        (BitDepth.PCM_8BIT, BitDepth.PCM_8BIT),
    ])
    def test_from_bits(self, value, expected):
        assert BitDepth.from_bits(value) is expected

    @pytest.mark.parametrize("value", [24, 32, 0, "abc", None])
    def test_from_bits_unsupported(self, value):
        with pytest.raises(InvalidConfigError):
            BitDepth.from_bits(value)


@pytest.mark.unit
class TestAudioConfig:
    """Test cases for AudioConfig dataclass."""

    def test_derived_sizes(self):
        config = AudioConfig(44100, 60, BitDepth.PCM_16BIT)

        assert config.bytes_per_sample == 2
        assert config.bytes_per_second == 88200
        assert config.ring_buffer_capacity == 88200 * 60

    def test_integer_bit_depth(self):
        assert AudioConfig(8000, 1, 8).bit_depth is BitDepth.PCM_8BIT

    @pytest.mark.parametrize("sample_rate", [0, -16000, 16000.0, True, "16000"])
    def test_invalid_sample_rate(self, sample_rate):
        with pytest.raises(InvalidConfigError):
            AudioConfig(sample_rate, 10, BitDepth.PCM_16BIT)

    def test_negative_buffer_length(self):
        with pytest.raises(InvalidConfigError):
            AudioConfig(16000, -1, BitDepth.PCM_16BIT)

    @pytest.mark.parametrize("buffer_length", [1.5, 10.0, True, "10", None])
    def test_non_integer_buffer_length(self, buffer_length):
        """Test fractional or non-numeric buffer lengths fail before a ring buffer is sized."""
        with pytest.raises(InvalidConfigError):
            AudioConfig(16000, buffer_length, BitDepth.PCM_16BIT)

    def test_invalid_config_is_value_error(self):
        with pytest.raises(ValueError):
            AudioConfig(16000, 10, 12)

    def test_frozen(self):
        config = AudioConfig(16000, 10, BitDepth.PCM_16BIT)

        with pytest.raises(AttributeError):
            config.sample_rate_hz = 8000


@pytest.mark.unit
class TestEvents:
    """Test cases for AudioEvent and Segment."""

    def test_audio_event_duration(self):
        event = AudioEvent(audio_data=b"\x00" * 3200, sequence_number=1,
                           sample_rate=16000, bytes_per_sample=2)

        assert event.chunk_duration_ms == 100

    def test_segment_length(self):
        assert Segment(10, 30).length == 20
