"""Status Registry - Static display data and side-effect policy per status code."""

from types import MappingProxyType

from tunnelsync.core.types import DisplayInfo, IconKind, SideEffectClass, StatusCode

_DISPLAY = MappingProxyType(
    {
        StatusCode.DISCONNECTED: DisplayInfo("Ready", IconKind.CIRCLE),
        StatusCode.CONNECTING: DisplayInfo("Connecting...", IconKind.PENDING),
        StatusCode.CONNECTED: DisplayInfo("Connected", IconKind.OK),
        StatusCode.RETRYING: DisplayInfo("Reconnecting...", IconKind.WARN),
        StatusCode.DROPPED: DisplayInfo("Connection Dropped", IconKind.ERR),
        StatusCode.DENIED: DisplayInfo("Access Denied", IconKind.ALERT),
        StatusCode.UNREACHABLE: DisplayInfo("Server Unreachable", IconKind.ALERT),
        StatusCode.BAD_CONFIG: DisplayInfo("Invalid Configuration", IconKind.ERR),
        StatusCode.ERROR: DisplayInfo("Error Connecting", IconKind.ERR),
        StatusCode.UNKNOWN: DisplayInfo("Unknown Error", IconKind.INFO),
    }
)

_EFFECT_CLASS = MappingProxyType(
    {
        StatusCode.CONNECTED: SideEffectClass.SUCCESS,
        StatusCode.CONNECTING: SideEffectClass.TRANSIENT_WARNING,
        StatusCode.RETRYING: SideEffectClass.TRANSIENT_WARNING,
        StatusCode.DROPPED: SideEffectClass.TERMINAL_FAILURE,
        StatusCode.DENIED: SideEffectClass.TERMINAL_FAILURE,
        StatusCode.UNREACHABLE: SideEffectClass.TERMINAL_FAILURE,
        StatusCode.BAD_CONFIG: SideEffectClass.TERMINAL_FAILURE,
        StatusCode.ERROR: SideEffectClass.TERMINAL_FAILURE,
        StatusCode.UNKNOWN: SideEffectClass.TERMINAL_FAILURE,
        StatusCode.DISCONNECTED: SideEffectClass.NEUTRAL,
    }
)

# The connected screen stays up while the supervisor retries
_CONNECTED_VIEW = frozenset({StatusCode.CONNECTED, StatusCode.RETRYING})


def lookup(code: StatusCode) -> DisplayInfo:
    """Return display data for ``code``. A missing entry raises KeyError."""
    return _DISPLAY[code]


def side_effect_class(code: StatusCode) -> SideEffectClass:
    return _EFFECT_CLASS[code]


def is_connected_view(code: StatusCode) -> bool:
    """Whether the UI should show the connected screen for ``code``."""
    return code in _CONNECTED_VIEW


def all_entries():
    """Yield (code, display info, side-effect class) in enum order."""
    for code in StatusCode:
        yield code, _DISPLAY[code], _EFFECT_CLASS[code]
