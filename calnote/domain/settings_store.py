"""JSON-backed plugin settings and the settings-page connection test."""

from __future__ import annotations

import contextlib
import json
import logging
import os
import tempfile
from enum import Enum
from pathlib import Path

from pydantic import ValidationError

from calnote.calendar.ics_fetcher import ICSFetcher
from calnote.calendar.models import PluginSettings
from calnote.core.exceptions import SettingsError

logger = logging.getLogger(__name__)


class SettingsStore:
    """Loads and saves :class:`PluginSettings` as a flat JSON object.

    The on-disk format matches the host's ``data.json``:
    ``{"CalendarURL": "https://..."}``. Unknown keys are ignored on load.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> PluginSettings:
        """Read settings, falling back to defaults when the file is missing or unreadable."""
        if not self._path.exists():
            logger.debug("Settings file not found; using defaults: %s", self._path)
            return PluginSettings()

        try:
            with self._path.open("r", encoding="utf-8") as fh:
                data = json.load(fh)
            if not isinstance(data, dict):
                raise ValueError("settings JSON root must be an object")  # noqa: TRY004
            return PluginSettings.model_validate(data)
        except (OSError, ValueError, ValidationError) as exc:
            logger.warning("Failed to read settings %s, using defaults: %s", self._path, exc)
            return PluginSettings()

    def save(self, settings: PluginSettings) -> None:
        """Persist settings atomically.

        Writes to a temporary file in the same directory then replaces the target.

        Raises:
            SettingsError: If the file could not be written
        """
        data = settings.model_dump(by_alias=True)
        tmp_path: Path | None = None
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w", dir=self._path.parent, delete=False, encoding="utf-8"
            ) as tf:
                tmp_path = Path(tf.name)
                json.dump(data, tf, ensure_ascii=False, indent=2)
                tf.flush()
                os.fsync(tf.fileno())
            tmp_path.replace(self._path)
        except OSError as exc:
            if tmp_path is not None:
                with contextlib.suppress(OSError):
                    tmp_path.unlink()
            raise SettingsError(f"Failed to save settings to {self._path}: {exc}") from exc

        logger.debug("Saved settings to %s", self._path)


class ConnectionState(str, Enum):
    """States of the settings-page "Test" button."""

    IDLE = "idle"
    TESTING = "testing"
    SUCCESS = "success"
    FAILURE = "failure"


class ConnectionTester:
    """Finite state machine behind the settings-page connection test.

    IDLE -> TESTING -> SUCCESS | FAILURE; a finished test may be started
    again, and ``reset()`` returns to IDLE. A test cannot start while one is
    already running.
    """

    def __init__(self, fetcher: ICSFetcher) -> None:
        self.fetcher = fetcher
        self.state = ConnectionState.IDLE
        self.error: str = ""

    async def test(self, url: str) -> ConnectionState:
        """Fetch ``url`` once and record the outcome.

        Raises:
            RuntimeError: If a test is already in progress
        """
        if self.state is ConnectionState.TESTING:
            raise RuntimeError("Connection test already in progress")

        self.state = ConnectionState.TESTING
        self.error = ""
        logger.debug("Testing calendar URL %s", url)

        try:
            response = await self.fetcher.fetch_text(url)
        except Exception as e:
            # a test must always finish, or the button stays stuck in TESTING
            logger.exception("Calendar URL test crashed for %s", url)
            self.state = ConnectionState.FAILURE
            self.error = f"Unexpected error: {e}"
            return self.state

        if response.success:
            self.state = ConnectionState.SUCCESS
        else:
            self.state = ConnectionState.FAILURE
            self.error = response.error_message or "Calendar fetch failed"
            logger.info("Calendar URL test failed: %s", self.error)
        return self.state

    def reset(self) -> None:
        self.state = ConnectionState.IDLE
        self.error = ""
