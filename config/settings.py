# File: src/config/settings.py
"""Configuration management and validation"""
from dataclasses import dataclass
from typing import Dict, Any

import yaml

from core.exceptions import ConfigurationError
from utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_CONFIG_PATH = "feed_triage_config.yaml"

@dataclass
class DatabaseConfig:
    """Article store configuration"""
    path: str
    timeout_seconds: float = 5.0

@dataclass(frozen=True)
class FeedConfig:
    """Tunable constants of the article feed"""
    page_size: int = 100
    score_floor: int = -6
    top_score_window_days: int = 2
    newest_window_days: int = 5
    publications_window_days: int = 30

@dataclass
class PreferencesConfig:
    """Preference persistence configuration"""
    path: str = "preferences.json"

class ConfigManager:
    """Configuration manager with validation"""

    DEFAULTS: Dict[str, Any] = {
        'database_path': 'articles.db',
        'database_timeout_seconds': 5.0,
        'preferences_path': 'preferences.json',
        'feed': {
            'page_size': 100,
            'score_floor': -6,
            'top_score_window_days': 2,
            'newest_window_days': 5,
            'publications_window_days': 30
        },
        'logging': {
            'level': 'INFO',
            'file_enabled': False,
            'file_path': 'feed_triage.log',
            'console_enabled': True,
            'format': 'standard'
        }
    }

    def __init__(self, config_path: str = DEFAULT_CONFIG_PATH):
        self.config_path = config_path
        self._config: Dict[str, Any] = {}
        self._validated = False

    def load_config(self) -> Dict[str, Any]:
        """Load and validate configuration"""
        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                loaded = yaml.safe_load(f)
        except FileNotFoundError:
            raise ConfigurationError(f"Configuration file not found: {self.config_path}")
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in configuration file: {e}")
        except OSError as e:
            raise ConfigurationError(f"Error loading configuration: {e}")

        return self.load_dict(loaded or {})

    def load_dict(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Validate an already parsed configuration mapping"""
        if not isinstance(data, dict):
            raise ConfigurationError("Configuration root must be a mapping")

        self._config = data
        self._apply_defaults()
        self._validate_config()

        logger.info(f"Configuration loaded successfully from {self.config_path}")
        return self._config

    def _apply_defaults(self):
        """Apply default values for optional configuration"""
        for key, value in self.DEFAULTS.items():
            if key not in self._config or self._config[key] is None:
                self._config[key] = dict(value) if isinstance(value, dict) else value
            elif isinstance(value, dict) and isinstance(self._config[key], dict):
                # Merge nested dictionaries
                for subkey, subvalue in value.items():
                    if subkey not in self._config[key]:
                        self._config[key][subkey] = subvalue

    def _validate_config(self):
        """Validate configuration structure and values"""
        for key in ('feed', 'logging'):
            if not isinstance(self._config[key], dict):
                raise ConfigurationError(f"'{key}' must be a mapping")

        feed = self._config['feed']
        for key in ('page_size', 'score_floor', 'top_score_window_days',
                    'newest_window_days', 'publications_window_days'):
            value = feed[key]
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigurationError(f"feed.{key} must be an integer, got {value!r}")

        if feed['page_size'] <= 0:
            raise ConfigurationError("feed.page_size must be positive")
        if feed['score_floor'] > 0:
            raise ConfigurationError("feed.score_floor must not be positive")
        if feed['top_score_window_days'] <= 0 or feed['newest_window_days'] <= 0:
            raise ConfigurationError("feed recency windows must be positive")
        if feed['newest_window_days'] < feed['top_score_window_days']:
            raise ConfigurationError("feed.newest_window_days must not be shorter than feed.top_score_window_days")
        if feed['publications_window_days'] <= 0:
            raise ConfigurationError("feed.publications_window_days must be positive")

        for key in ('database_path', 'preferences_path'):
            if not isinstance(self._config[key], str) or not self._config[key]:
                raise ConfigurationError(f"'{key}' must be a non-empty string")

        self._validated = True
        logger.debug("Configuration validation passed")

    def get_database_config(self) -> DatabaseConfig:
        """Get article store configuration"""
        if not self._validated:
            raise ConfigurationError("Configuration not validated")

        return DatabaseConfig(
            path=self._config['database_path'],
            timeout_seconds=float(self._config['database_timeout_seconds'])
        )

    def get_feed_config(self) -> FeedConfig:
        """Get feed configuration"""
        if not self._validated:
            raise ConfigurationError("Configuration not validated")

        feed = self._config['feed']
        return FeedConfig(
            page_size=feed['page_size'],
            score_floor=feed['score_floor'],
            top_score_window_days=feed['top_score_window_days'],
            newest_window_days=feed['newest_window_days'],
            publications_window_days=feed['publications_window_days']
        )

    def get_preferences_config(self) -> PreferencesConfig:
        """Get preference persistence configuration"""
        if not self._validated:
            raise ConfigurationError("Configuration not validated")

        return PreferencesConfig(path=self._config['preferences_path'])

    def get_logging_config(self) -> Dict[str, Any]:
        return self._config['logging']
