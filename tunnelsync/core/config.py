"""Configuration management for tunnelsync."""

import json
import platform
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from loguru import logger

from tunnelsync.core.constants import TUNNEL_STATUS_CHANNEL, USER_SETTINGS_PATH


class Config:
    """Manages tunnelsync engine configuration."""

    def __init__(self, config_path: Optional[Path] = None):
        """Initialize configuration.

        Args:
            config_path: Path to configuration file. If None, uses default path.
        """
        self.config_path = config_path or self._get_default_config_path()
        self.config_data: Dict[str, Any] = {}
        self._load_config()

    @staticmethod
    def _get_default_config_path() -> Path:
        """Get default configuration path based on platform."""
        system = platform.system()
        home = Path.home()

        if system == "Windows":
            config_dir = home / "AppData" / "Roaming" / "tunnelsync"
        elif system == "Darwin":
            config_dir = home / "Library" / "Application Support" / "tunnelsync"
        else:  # Linux and others
            config_dir = home / ".config" / "tunnelsync"

        return config_dir / "config.json"

    def _load_config(self) -> None:
        """Load configuration from file, filling in missing keys with defaults."""
        self.config_data = self._get_default_config()
        if not self.config_path.exists():
            return
        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                data = json.load(f)
            if isinstance(data, dict):
                self.config_data.update(data)
        except (json.JSONDecodeError, IOError) as e:
            logger.error(f"Error loading config: {e}. Using default configuration.")

    @staticmethod
    def _get_default_config() -> Dict[str, Any]:
        """Get default configuration."""
        return {
            "log_level": "info",
            "notifications_enabled": True,
            "settings_path": USER_SETTINGS_PATH,
            "channel": TUNNEL_STATUS_CHANNEL,
            "persist_in_background": True,
            "notifier": "log",
            "tray_icon": None,
        }

    def save(self) -> None:
        """Save configuration to file."""
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_path, "w", encoding="utf-8") as f:
            json.dump(self.config_data, f, indent=2)

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value.

        Args:
            key: Configuration key (supports dot notation)
            default: Default value if key doesn't exist

        Returns:
            Configuration value or default
        """
        keys = key.split(".")
        value = self.config_data
        for k in keys:
            if isinstance(value, dict):
                value = value.get(k)
                if value is None:
                    return default
            else:
                return default
        return value

    def set(self, key: str, value: Any) -> None:
        """Set configuration value.

        Args:
            key: Configuration key (supports dot notation)
            value: Value to set
        """
        keys = key.split(".")
        data = self.config_data
        for k in keys[:-1]:
            if k not in data:
                data[k] = {}
            data = data[k]
        data[keys[-1]] = value

    def import_config(self, config_file: Path, file_format: Optional[str] = None) -> bool:
        """Merge known keys from a JSON or YAML file and save.

        Keys that are not engine settings are skipped with a warning.

        Returns:
            True if successful, False otherwise
        """
        file_format = _detect_format(config_file, file_format)
        try:
            with open(config_file, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) if file_format == "yaml" else json.load(f)
        except (OSError, ValueError, yaml.YAMLError) as e:
            logger.error(f"Error importing config from {config_file}: {e}")
            return False

        if not isinstance(data, dict):
            logger.error(f"Config file {config_file} does not hold a mapping")
            return False

        known = self._get_default_config()
        unknown = sorted(k for k in data if k not in known)
        if unknown:
            logger.warning(f"Ignoring unknown config keys: {', '.join(unknown)}")
        self.config_data.update({k: v for k, v in data.items() if k in known})
        self.save()
        return True

    def export_config(self, output_file: Path, file_format: Optional[str] = None) -> bool:
        """Write the effective configuration to a JSON or YAML file."""
        file_format = _detect_format(output_file, file_format)
        try:
            with open(output_file, "w", encoding="utf-8") as f:
                if file_format == "yaml":
                    yaml.safe_dump(self.config_data, f, default_flow_style=False, sort_keys=False)
                else:
                    json.dump(self.config_data, f, indent=2)
        except (OSError, TypeError, yaml.YAMLError) as e:
            logger.error(f"Error exporting config to {output_file}: {e}")
            return False
        return True


def _detect_format(path: Path, file_format: Optional[str]) -> str:
    if file_format:
        return file_format.lower()
    return "yaml" if Path(path).suffix.lower() in (".yaml", ".yml") else "json"
