"""Configuration management for calnote."""

from __future__ import annotations

import logging
import os
import zoneinfo
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_CACHE_TIMEOUT_SECONDS = 60
DEFAULT_REQUEST_TIMEOUT_SECONDS = 30
DEFAULT_SETTINGS_FILENAME = "data.json"


class ConfigManager:
    """Manages application configuration from environment variables and .env files."""

    def __init__(self, env_file_path: Path | None = None):
        """Initialize configuration manager.

        Args:
            env_file_path: Optional path to .env file (defaults to .env in current directory)
        """
        self.env_file_path = env_file_path or Path.cwd() / ".env"

    def load_env_file(self) -> list[str]:
        """Load .env file and set environment variables.

        Only sets variables that are not already in the environment to avoid
        surprising overrides of user's environment.

        Returns:
            List of environment variable keys that were loaded from .env file
        """
        if not self.env_file_path.exists():
            logger.debug("No .env file found at %s", self.env_file_path)
            return []

        set_keys = []

        try:
            content = self.env_file_path.read_text(encoding="utf-8")
        except OSError:
            logger.debug(
                "Failed to read .env file for defaults (continuing): %s",
                str(self.env_file_path),
                exc_info=True,
            )
            return []

        for raw_line in content.splitlines():
            line = raw_line.strip()

            if not line or line.startswith("#") or "=" not in line:
                continue

            key, val = line.split("=", 1)
            key = key.strip()
            val = val.strip().strip('"').strip("'")

            if key and key not in os.environ:
                os.environ[key] = val
                set_keys.append(key)

        if set_keys:
            logger.debug("Loaded .env defaults for keys: %s", ", ".join(set_keys))

        return set_keys

    def build_config_from_env(self) -> dict[str, Any]:
        """Build configuration dictionary from environment variables.

        Recognizes:
        - CALNOTE_ICS_URL -> 'ics_url'
        - CALNOTE_CACHE_TIMEOUT -> 'cache_timeout_seconds' (int)
        - CALNOTE_REQUEST_TIMEOUT -> 'request_timeout' (int)
        - CALNOTE_DEFAULT_TIMEZONE -> 'default_timezone'
        - CALNOTE_SETTINGS_PATH -> 'settings_path'

        Returns:
            Configuration dictionary; keys are present only when configured
        """
        cfg: dict[str, Any] = {}

        ics_url = os.environ.get("CALNOTE_ICS_URL")
        if ics_url:
            cfg["ics_url"] = ics_url

        for env_key, cfg_key in (
            ("CALNOTE_CACHE_TIMEOUT", "cache_timeout_seconds"),
            ("CALNOTE_REQUEST_TIMEOUT", "request_timeout"),
        ):
            raw = os.environ.get(env_key)
            if not raw:
                continue
            try:
                cfg[cfg_key] = int(raw)
            except ValueError:
                logger.warning("Invalid %s=%r; ignoring", env_key, raw)

        if os.environ.get("CALNOTE_DEFAULT_TIMEZONE"):
            cfg["default_timezone"] = get_default_timezone()

        settings_path = os.environ.get("CALNOTE_SETTINGS_PATH")
        if settings_path:
            cfg["settings_path"] = Path(settings_path).expanduser()

        return cfg

    def load_full_config(self) -> dict[str, Any]:
        """Load .env file and build configuration from environment.

        This is the main entry point for loading configuration.
        """
        self.load_env_file()
        return self.build_config_from_env()


def get_default_timezone(fallback: str = "UTC") -> str:
    """Get default timezone from environment with validation.

    Args:
        fallback: Fallback timezone if not configured or invalid

    Returns:
        Valid IANA timezone string
    """
    timezone = os.environ.get("CALNOTE_DEFAULT_TIMEZONE", fallback)

    try:
        zoneinfo.ZoneInfo(timezone)
    except (zoneinfo.ZoneInfoNotFoundError, ValueError):
        logger.warning("Invalid timezone %r, falling back to %r", timezone, fallback)
        return fallback
    return timezone


def get_config_value(config: Any, key: str, default: Any = None) -> Any:
    """Get configuration value supporting both dict and attribute-style objects."""
    if isinstance(config, dict):
        return config.get(key, default)
    return getattr(config, key, default)
