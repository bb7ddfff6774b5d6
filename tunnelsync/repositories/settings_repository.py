"""Settings Repository - JSON-backed storage for the user's connection settings."""
import json
from typing import Optional, Tuple

from loguru import logger

from tunnelsync.core.constants import USER_SETTINGS_PATH
from tunnelsync.core.errors import SettingsError
from tunnelsync.core.types import UserSettings
from tunnelsync.repositories.file_utils import atomic_write_json

NO_SAVED_SETTINGS = "Unable to find any saved user settings"


class SettingsRepository:
    """Thin wrapper for settings persistence at a fixed well-known path."""

    def __init__(self, path: Optional[str] = None):
        self._path = path or USER_SETTINGS_PATH

    @property
    def path(self) -> str:
        return self._path

    def read(self) -> UserSettings:
        """
        Read saved settings, merged over defaults.

        Raises:
            SettingsError: File missing, unreadable or not a JSON object
        """
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError as e:
            raise SettingsError(f"No saved settings at {self._path}") from e
        except (OSError, ValueError) as e:
            raise SettingsError(f"Cannot read {self._path}: {e}") from e
        if not isinstance(data, dict):
            raise SettingsError(f"Expected a JSON object in {self._path}")
        return UserSettings.from_dict(data)

    def load(self) -> Tuple[UserSettings, Optional[str]]:
        """
        Like ``read`` but never raises.

        Returns:
            Tuple of (settings, message). The message is set when nothing
            usable was found; it is informational, never fatal.
        """
        try:
            return self.read(), None
        except SettingsError as e:
            logger.debug(f"[Settings] {e}")
            return UserSettings(), NO_SAVED_SETTINGS

    def save(self, data: dict) -> Optional[str]:
        """Write the flat settings object. Returns an error message on failure."""
        error = atomic_write_json(self._path, data)
        if error is None:
            logger.info(f"[Settings] Saved to {self._path}")
        return error
