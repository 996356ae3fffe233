"""Simple YAML configuration loader for Therabot."""

import copy
import os
import yaml
from pathlib import Path
from typing import Dict, Any, Optional
import logging

logger = logging.getLogger(__name__)


DEFAULT_BASE_URL = "https://therapy-chatbot-murphy-24161ebc687d.herokuapp.com"

DEFAULTS: Dict[str, Any] = {
    "dialogue": {
        "base_url": DEFAULT_BASE_URL,
        "timeout_seconds": None,
    },
    "speech": {
        "language": "en-US",
        "voice_output_enabled": False,
        "continuous": True,
        "rate": None,
        "voice_name": None,
    },
    "audio": {
        "sample_rate": 16000,
        "chunk_size": 1024,
        "channels": 1,
        "recognition_window_seconds": 3.0,
    },
    "google_cloud": {
        "use_enhanced_model": True,
        "enable_automatic_punctuation": True,
    },
    "logging": {
        "level": "INFO",
        "file_path": "logs/therabot.log",
        "console_output": True,
    },
}


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge ``override`` into a copy of ``base``."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class TherabotConfig:
    """Therabot configuration loader."""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration loader.

        Args:
            config_path: Path to YAML config file. If None, built-in defaults
                        are used and relative paths resolve against the
                        current directory.
        """
        self.config_file = Path(config_path) if config_path else None

        if self.config_file is None:
            logger.info("No configuration file given, using defaults")
            self.config = copy.deepcopy(DEFAULTS)
            return

        if not self.config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_file}")

        logger.info(f"Loading configuration from: {self.config_file}")
        self.config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load and parse YAML configuration file."""
        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                loaded = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file: {e}")

        if not loaded:
            raise ValueError("Configuration file is empty")
        if not isinstance(loaded, dict):
            raise ValueError("Configuration file must contain a mapping")

        config = _merge(DEFAULTS, loaded)
        self._resolve_paths(config)

        logger.info("Configuration loaded successfully")
        return config

    def _resolve_paths(self, config: Dict[str, Any]) -> None:
        """Resolve relative paths in configuration relative to config file location."""
        config_dir = self.config_file.parent

        # Resolve Google credentials path
        creds_path = config.get('google_cloud', {}).get('credentials_path')
        if creds_path and not os.path.isabs(creds_path):
            config['google_cloud']['credentials_path'] = str(config_dir / creds_path)

        # Resolve log file path
        log_path = config.get('logging', {}).get('file_path')
        if log_path and not os.path.isabs(log_path):
            config['logging']['file_path'] = str(config_dir / log_path)

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get configuration value using dot notation (e.g., 'dialogue.base_url').

        Args:
            key_path: Dot-separated key path (e.g., 'speech.language')
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key_path.split('.')
        value = self.config

        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return default if value is None else value

    def set(self, key_path: str, value: Any) -> None:
        """Set configuration value using dot notation.

        Args:
            key_path: Dot-separated path to config value (e.g., 'speech.language')
            value: Value to set
        """
        keys = key_path.split('.')
        config_dict = self.config

        # Navigate to the parent dictionary
        for key in keys[:-1]:
            if key not in config_dict:
                config_dict[key] = {}
            config_dict = config_dict[key]

        config_dict[keys[-1]] = value
        logger.debug(f"Configuration key '{key_path}' set to: {value}")

    def get_base_url(self) -> str:
        """Get the dialogue service base URL without a trailing slash."""
        base_url = self.get('dialogue.base_url')
        if not base_url:
            raise ValueError("Dialogue service base URL not configured (dialogue.base_url)")
        return str(base_url).rstrip('/')

    def get_google_credentials_path(self) -> Optional[str]:
        """Get Google credentials path, or None when speech input is not configured."""
        creds_path = self.get('google_cloud.credentials_path')
        if not creds_path:
            return None

        creds_file = Path(creds_path)
        if not creds_file.exists():
            raise FileNotFoundError(f"Google credentials file not found: {creds_path}")

        return str(creds_file.absolute())
