"""YAML configuration for RecentAudio."""

import copy
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from ..models.audio import AudioConfig, BitDepth

logger = logging.getLogger(__name__)


DEFAULT_CONFIG_FILENAME = "recentaudio.yaml"

# Values used for keys the YAML file leaves out
DEFAULTS: Dict[str, Any] = {
    "audio": {
        "sample_rate": 16000,
        "bit_depth": 16,
        "buffer_time_length_s": 120,
        "chunk_size": 1024,
        "input_device_index": None,
    },
    "vad": {
        "model_path": None,
        "padding_ms": 500,
        "merge_gap_ms": 1500,
        "speech_threshold": 0.2,
        "use_parallel": True,
        "max_workers": None,
    },
    "storage": {
        "data_directory": "data",
    },
    "logging": {
        "level": "INFO",
        "file_path": "data/logs/recentaudio.log",
        "console_output": True,
    },
}

MODEL_DOWNLOAD_HINT = ("download silero_vad.onnx from the snakers4/silero-vad GitHub repository "
                       "(src/silero_vad/data/silero_vad.onnx) and point vad.model_path at it")

# Relative values of these keys are resolved against the config file's directory
PATH_KEYS = ("storage.data_directory", "logging.file_path", "vad.model_path")


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
    return base


class RecentAudioConfig:
    """Configuration loaded from a YAML file layered over DEFAULTS."""

    def __init__(self, config_path: Optional[str] = None):
        """Load configuration.

        Args:
            config_path: Path to the YAML file, recentaudio.yaml in the
                current directory when None
        """
        self.config_file = Path(config_path or DEFAULT_CONFIG_FILENAME)
        if not self.config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_file}")

        logger.info(f"Loading configuration from: {self.config_file}")
        self.config = _deep_merge(copy.deepcopy(DEFAULTS), self._read_yaml())
        self._resolve_paths()
        logger.info("Configuration loaded successfully")

    def _read_yaml(self) -> Dict[str, Any]:
        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                loaded = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {self.config_file}: {e}")

        if not loaded:
            raise ValueError(f"Configuration file {self.config_file} is empty")
        if not isinstance(loaded, dict):
            raise ValueError(f"Configuration file {self.config_file} must hold a mapping")
        return loaded

    def _resolve_paths(self) -> None:
        base = self.config_file.parent
        for key_path in PATH_KEYS:
            value = self.get(key_path)
            if value and not os.path.isabs(value):
                self.set(key_path, str(base / value))

    def get(self, key_path: str, default: Any = None) -> Any:
        """Look up a value by dot path, e.g. 'audio.sample_rate'."""
        node: Any = self.config
        for key in key_path.split('.'):
            if not isinstance(node, dict) or key not in node:
                return default
            node = node[key]
        return node

    def set(self, key_path: str, value: Any) -> None:
        """Set a value by dot path, creating intermediate sections."""
        *sections, leaf = key_path.split('.')
        node = self.config
        for key in sections:
            node = node.setdefault(key, {})
        node[leaf] = value
        logger.debug(f"Configuration key '{key_path}' set to: {value}")

    def get_audio_config(self) -> AudioConfig:
        """Validated recording format; raises InvalidConfigError when out of range."""
        return AudioConfig(
            sample_rate_hz=self.get('audio.sample_rate'),
            buffer_time_length_s=self.get('audio.buffer_time_length_s'),
            bit_depth=BitDepth.from_bits(self.get('audio.bit_depth')),
        )

    def get_model_path(self) -> str:
        """Absolute path of the Silero model, which must exist."""
        model_path = self.get('vad.model_path')
        if not model_path:
            raise ValueError(f"vad.model_path not configured in {self.config_file.name}")

        model_file = Path(model_path)
        if not model_file.exists():
            raise FileNotFoundError(f"Silero VAD model not found: {model_path}; {MODEL_DOWNLOAD_HINT}")
        return str(model_file.absolute())

    def get_data_directory(self) -> str:
        return str(Path(self.get('storage.data_directory')).absolute())
