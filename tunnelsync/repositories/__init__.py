"""Repositories Package - Concrete JSON-backed storage."""
from tunnelsync.repositories.settings_repository import SettingsRepository

__all__ = [
    "SettingsRepository",
]
