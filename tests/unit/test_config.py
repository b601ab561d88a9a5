"""Unit tests for RecentAudioConfig."""

from pathlib import Path

import pytest

from recentaudio.config import RecentAudioConfig
from recentaudio.exceptions import InvalidConfigError
from recentaudio.models.audio import BitDepth


CONFIG_YAML = """
audio:
  sample_rate: 44100
  bit_depth: 8
  buffer_time_length_s: 30
vad:
  model_path: models/silero_vad.onnx
  padding_ms: 250
storage:
  data_directory: data
logging:
  file_path: logs/test.log
"""


@pytest.fixture
def config_file(temp_data_dir):
    path = Path(temp_data_dir) / "recentaudio.yaml"
    path.write_text(CONFIG_YAML, encoding="utf-8")
    return path


@pytest.mark.unit
class TestRecentAudioConfig:
    """Test cases for RecentAudioConfig class."""

    def test_get_values(self, config_file):
        config = RecentAudioConfig(str(config_file))

        assert config.get('audio.sample_rate') == 44100
        assert config.get('vad.padding_ms') == 250
        assert config.get('vad.missing', 'fallback') == 'fallback'
        assert config.get('audio.sample_rate.deeper') is None

    def test_set_value(self, config_file):
        config = RecentAudioConfig(str(config_file))

        config.set('vad.merge_gap_ms', 800)
        config.set('new.section.key', True)

        assert config.get('vad.merge_gap_ms') == 800
        assert config.get('new.section.key') is True

    def test_relative_paths_resolved_against_config_dir(self, config_file):
        config = RecentAudioConfig(str(config_file))
        base = config_file.parent

        assert config.get('storage.data_directory') == str(base / "data")
        assert config.get('logging.file_path') == str(base / "logs" / "test.log")
        assert config.get('vad.model_path') == str(base / "models" / "silero_vad.onnx")

    def test_audio_config(self, config_file):
        audio = RecentAudioConfig(str(config_file)).get_audio_config()

        assert audio.sample_rate_hz == 44100
        assert audio.bit_depth is BitDepth.PCM_8BIT
        assert audio.ring_buffer_capacity == 44100 * 30

    def test_invalid_audio_config(self, config_file):
        config = RecentAudioConfig(str(config_file))
        config.set('audio.bit_depth', 24)

        with pytest.raises(InvalidConfigError):
            config.get_audio_config()

    def test_fractional_buffer_length_rejected(self, config_file):
        config = RecentAudioConfig(str(config_file))
        config.set('audio.buffer_time_length_s', 1.5)

        with pytest.raises(InvalidConfigError):
            config.get_audio_config()

    def test_model_path_missing_file(self, config_file):
        config = RecentAudioConfig(str(config_file))

        with pytest.raises(FileNotFoundError, match="snakers4/silero-vad"):
            config.get_model_path()

    def test_model_path_found(self, config_file):
        model = config_file.parent / "models" / "silero_vad.onnx"
        model.parent.mkdir()
        model.write_bytes(b"onnx")

        assert RecentAudioConfig(str(config_file)).get_model_path() == str(model.absolute())

    def test_model_path_not_configured(self, temp_data_dir):
        path = Path(temp_data_dir) / "minimal.yaml"
        path.write_text("audio:\n  sample_rate: 16000\n", encoding="utf-8")

        with pytest.raises(ValueError):
            RecentAudioConfig(str(path)).get_model_path()

    def test_data_directory(self, config_file):
        config = RecentAudioConfig(str(config_file))

        assert config.get_data_directory() == str((config_file.parent / "data").absolute())

    def test_missing_file(self, temp_data_dir):
        with pytest.raises(FileNotFoundError):
            RecentAudioConfig(str(Path(temp_data_dir) / "nope.yaml"))

    @pytest.mark.parametrize("content", ["", "just a string", "audio: [unclosed"])
    def test_invalid_content(self, temp_data_dir, content):
        path = Path(temp_data_dir) / "bad.yaml"
        path.write_text(content, encoding="utf-8")

        with pytest.raises(ValueError):
            RecentAudioConfig(str(path))

    def test_shipped_config_loads(self):
        """Test the recentaudio.yaml at the repository root is valid."""
        shipped = Path(__file__).resolve().parents[2] / "recentaudio.yaml"
        config = RecentAudioConfig(str(shipped))

        audio = config.get_audio_config()
        assert audio.sample_rate_hz == 16000
        assert audio.buffer_time_length_s == 120
        assert config.get('vad.merge_gap_ms') == 1500

    def test_defaults_fill_missing_keys(self, temp_data_dir):
        """Test keys left out of the file fall back to the built-in defaults."""
        path = Path(temp_data_dir) / "partial.yaml"
        path.write_text("audio:\n  sample_rate: 8000\n", encoding="utf-8")

        config = RecentAudioConfig(str(path))

        assert config.get('audio.sample_rate') == 8000
        assert config.get('audio.bit_depth') == 16
        assert config.get('vad.merge_gap_ms') == 1500
        assert config.get('vad.use_parallel') is True
        assert config.get_data_directory() == str((Path(temp_data_dir) / "data").absolute())
