"""
Configuration management for Stickies.

Loads settings from config.ini with environment variable overrides.
"""

import configparser
import os
from pathlib import Path
from typing import Any, Dict, Optional

from stickies.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_DATA_DIR = Path.home() / ".stickies"
DEFAULT_DATABASE_URL = f"sqlite+aiosqlite:///{DEFAULT_DATA_DIR / 'stickies.db'}"

MODE_FILTER_CHOICES = ("all", "personal", "professional")


class Config:
    """Application configuration manager."""

    def __init__(self, config_path: Optional[Path] = None):
        """
        Initialize configuration manager.

        Args:
            config_path: Path to config file, defaults to ~/.stickies/config.ini
        """
        self.config_path = config_path or self._default_config_path()
        self._config = configparser.ConfigParser()
        self._load()

    def _default_config_path(self) -> Path:
        """Get default config path."""
        return DEFAULT_DATA_DIR / "config.ini"

    def _load(self):
        """Load configuration from file."""
        if self.config_path.exists():
            try:
                self._config.read(self.config_path)
                logger.info(f"Loaded configuration from {self.config_path}")
            except configparser.Error as e:
                logger.warning(f"Failed to read config file: {e}. Using defaults.")
        else:
            logger.debug(f"Config file not found at {self.config_path}. Using defaults.")

    def get_store_config(self) -> Dict[str, Any]:
        """
        Get document store configuration with environment overrides.

        Environment variables take precedence over config file:
        - STICKIES_DATABASE_URL

        Returns:
            Dictionary with store configuration
        """
        config = {
            'database_url': os.getenv('STICKIES_DATABASE_URL') or
                            self._config.get('store', 'database_url', fallback=DEFAULT_DATABASE_URL),
        }

        logger.debug(f"Store config: database_url={config['database_url']}")

        return config

    def get_board_config(self) -> Dict[str, Any]:
        """
        Get board configuration with environment overrides.

        Environment variables take precedence over config file:
        - STICKIES_OWNER_ID
        - STICKIES_MODE_FILTER
        - STICKIES_TODAY_ONLY

        Returns:
            Dictionary with board configuration
        """
        today_only_env = os.getenv('STICKIES_TODAY_ONLY', '').lower()
        today_only = (
            today_only_env == 'true'
            if today_only_env
            else self._config.getboolean('board', 'today_only', fallback=False)
        )

        mode_filter = (
            os.getenv('STICKIES_MODE_FILTER') or
            self._config.get('board', 'mode_filter', fallback='all')
        ).lower()
        if mode_filter not in MODE_FILTER_CHOICES:
            logger.warning(f"Unknown mode filter '{mode_filter}', falling back to 'all'")
            mode_filter = 'all'

        config = {
            'owner_id': os.getenv('STICKIES_OWNER_ID') or
                        self._config.get('board', 'owner_id', fallback='local'),
            'mode_filter': mode_filter,
            'today_only': today_only,
        }

        logger.debug(f"Board config: owner_id={config['owner_id']}, "
                     f"mode_filter={config['mode_filter']}, today_only={config['today_only']}")

        return config
