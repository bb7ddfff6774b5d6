"""Core types and enums."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple, Union


class StatusCode(Enum):
    """Connection states reported by the tunnel supervisor."""

    DISCONNECTED = "DISCONNECTED"
    CONNECTING = "CONNECTING"
    CONNECTED = "CONNECTED"
    RETRYING = "RETRYING"
    DROPPED = "DROPPED"
    DENIED = "DENIED"
    UNREACHABLE = "UNREACHABLE"
    BAD_CONFIG = "BAD_CONFIG"
    ERROR = "ERROR"
    UNKNOWN = "UNKNOWN"

    def __str__(self):
        return self.value


class SideEffectClass(Enum):
    """How a status code drives notifications and persistence."""

    SUCCESS = "success"
    TRANSIENT_WARNING = "transient_warning"
    TERMINAL_FAILURE = "terminal_failure"
    NEUTRAL = "neutral"

    def __str__(self):
        return self.value


class IconKind(Enum):
    """Icon classes understood by the presentation layer."""

    CIRCLE = "circle"
    PENDING = "pending"
    OK = "ok"
    WARN = "warn"
    ERR = "err"
    ALERT = "alert"
    INFO = "info"

    def __str__(self):
        return self.value


class SubscriptionState(Enum):
    """Lifecycle of the status channel subscription."""

    UNSUBSCRIBED = "unsubscribed"
    SUBSCRIBED = "subscribed"


@dataclass(frozen=True)
class DisplayInfo:
    label: str
    icon: IconKind


@dataclass(frozen=True)
class HistoryEntry:
    """One status transition; ``timestamp`` is an ISO 8601 string."""

    timestamp: str
    status: StatusCode


@dataclass(frozen=True)
class UserSettings:
    """Connection parameters entered by the user."""

    host: str = ""
    user: str = ""
    port: str = ""
    key_path: str = ""

    def to_dict(self) -> dict:
        """Flat JSON shape shared with the desktop client (camelCase key path)."""
        return {
            "host": self.host,
            "user": self.user,
            "port": self.port,
            "keyPath": self.key_path,
        }

    def to_command_payload(self) -> dict:
        """Payload for the start-tunnel command (snake_case key path)."""
        return {
            "host": self.host,
            "user": self.user,
            "port": self.port,
            "key_path": self.key_path,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "UserSettings":
        defaults = cls()
        return cls(
            host=str(data.get("host", defaults.host)),
            user=str(data.get("user", defaults.user)),
            port=str(data.get("port", defaults.port)),
            key_path=str(data.get("keyPath", data.get("key_path", defaults.key_path))),
        )


@dataclass(frozen=True)
class EmitNotification:
    title: str
    body: str


@dataclass(frozen=True)
class PersistSettings:
    data: dict


Effect = Union[EmitNotification, PersistSettings]


@dataclass(frozen=True)
class SystemState:
    """
    Externally observable snapshot of the engine.

    Replaced as a whole on every processed signal. ``connection_error`` and
    ``save_error`` are tracked independently; ``system_error`` is the one
    produced most recently.
    """

    status: StatusCode
    display_info: DisplayInfo
    system_error: Optional[str]
    history: Tuple[HistoryEntry, ...]
    connection_error: Optional[str] = None
    save_error: Optional[str] = None
    settings: Optional[UserSettings] = None
    persist_in_flight: bool = False
    detail: Optional[str] = field(default=None, compare=False)
