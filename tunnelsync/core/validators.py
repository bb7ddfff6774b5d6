"""Validators - Pure functions for validation (exception-based)."""

from tunnelsync.core.errors import SettingsError
from tunnelsync.core.types import UserSettings

ILLEGAL_PORT = "Illegal port value"


class ValidationError(SettingsError, ValueError):
    """Raised when validation fails."""

    pass


_REQUIRED_FIELDS = (
    ("host", "Please enter an IP Address"),
    ("user", "Please enter a username"),
    ("port", "Please enter a port to forward the connection to"),
    ("key_path", "Please select an SSH Key file"),
)


def validate_port(port: str) -> int:
    """Parse the local port the tunnel forwards to."""
    try:
        value = int(str(port).strip())
    except ValueError:
        raise ValidationError(ILLEGAL_PORT)
    if not (0 < value <= 65535):
        raise ValidationError(ILLEGAL_PORT)
    return value


def validate_user_settings(settings: UserSettings) -> None:
    """
    Validate connection settings before starting a tunnel.

    Raises:
        ValidationError: First missing field, or an unparseable port
    """
    for name, message in _REQUIRED_FIELDS:
        if not str(getattr(settings, name)).strip():
            raise ValidationError(message)
    validate_port(settings.port)
