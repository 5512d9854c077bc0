"""Simple YAML configuration loader for cornerspeech."""

import copy
import os
import sys
import yaml
from pathlib import Path
from typing import Dict, Any, Optional
import logging

logger = logging.getLogger(__name__)

APP_DIR_NAME = "corner"

DEFAULT_CONFIG: Dict[str, Any] = {
    "model": {
        "url": "https://huggingface.co/ggerganov/whisper.cpp/resolve/main/ggml-base.en.bin",
        "filename": "ggml-base.en.bin",
        "cache_directory": None,
        "download_chunk_size": 64 * 1024,
        "download_timeout_seconds": 600,
        "verify_with_full_load": True,
    },
    "transcription": {
        "chunk_duration_seconds": 3.0,
        "poll_interval_seconds": 0.1,
        "target_sample_rate": 16000,
        "language": "en",
        "n_threads": 4,
    },
    "audio": {
        "frames_per_buffer": 1024,
        "max_channels": 2,
    },
    "logging": {
        "level": "INFO",
        "file_path": None,
        "console_output": True,
    },
}


def platform_cache_dir() -> Path:
    """Per-user cache directory for the current platform."""
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Caches"
    if sys.platform.startswith("win"):
        local_app_data = os.environ.get("LOCALAPPDATA")
        if local_app_data:
            return Path(local_app_data)
        return Path.home() / "AppData" / "Local"
    xdg_cache_home = os.environ.get("XDG_CACHE_HOME")
    if xdg_cache_home:
        return Path(xdg_cache_home)
    return Path.home() / ".cache"


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _merge(base[key], value)
        else:
            base[key] = value
    return base


class CornerSpeechConfig:
    """cornerspeech configuration loader."""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration loader.

        Args:
            config_path: Path to YAML config file. If None, built-in defaults
                        are used.
        """
        self.config_file = Path(config_path) if config_path else None

        if self.config_file is None:
            logger.info("No configuration file given, using defaults")
            self.config = copy.deepcopy(DEFAULT_CONFIG)
            return

        if not self.config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_file}")

        logger.info(f"Loading configuration from: {self.config_file}")
        self.config = self._load_config()

    @classmethod
    def from_dict(cls, overrides: Dict[str, Any]) -> "CornerSpeechConfig":
        """Build a configuration from defaults plus in-memory overrides."""
        config = cls()
        _merge(config.config, copy.deepcopy(overrides))
        return config

    def _load_config(self) -> Dict[str, Any]:
        """Load and parse YAML configuration file."""
        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                loaded = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file: {e}") from e
        except OSError as e:
            raise ValueError(f"Failed to load configuration: {e}") from e

        if not loaded:
            raise ValueError("Configuration file is empty")
        if not isinstance(loaded, dict):
            raise ValueError("Configuration file must contain a mapping")

        config = _merge(copy.deepcopy(DEFAULT_CONFIG), loaded)
        self._resolve_paths(config)

        logger.info("Configuration loaded successfully")
        return config

    def _resolve_paths(self, config: Dict[str, Any]) -> None:
        """Resolve relative paths in configuration relative to config file location."""
        config_dir = self.config_file.parent

        cache_dir = config['model'].get('cache_directory')
        if cache_dir and not os.path.isabs(cache_dir):
            config['model']['cache_directory'] = str(config_dir / cache_dir)

        log_path = config['logging'].get('file_path')
        if log_path and not os.path.isabs(log_path):
            config['logging']['file_path'] = str(config_dir / log_path)

    def get(self, key_path: str, default: Any = None) -> Any:
        """Look up a dotted key such as 'transcription.chunk_duration_seconds'.

        Missing keys and keys explicitly set to null both yield `default`.
        """
        node: Any = self.config
        for part in key_path.split('.'):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return default if node is None else node

    def set(self, key_path: str, value: Any) -> None:
        """Assign a dotted key, creating intermediate sections as needed."""
        *sections, leaf = key_path.split('.')
        node = self.config
        for section in sections:
            node = node.setdefault(section, {})
        node[leaf] = value
        logger.debug(f"Config override {key_path} = {value!r}")

    def get_model_directory(self) -> Path:
        """Directory holding the acoustic model file."""
        cache_dir = self.get('model.cache_directory')
        if cache_dir:
            return Path(cache_dir)
        return platform_cache_dir() / APP_DIR_NAME / "models"
