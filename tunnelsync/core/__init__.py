"""Core functionality for tunnelsync."""

from tunnelsync.core.errors import SettingsError, SubscriptionError, TunnelSyncError
from tunnelsync.core.scheduler import complete_persistence, initial_state, reduce
from tunnelsync.core.signal_decoder import decode
from tunnelsync.core.status_registry import lookup
from tunnelsync.core.types import StatusCode, SystemState

__all__ = [
    "SettingsError",
    "StatusCode",
    "SubscriptionError",
    "SystemState",
    "TunnelSyncError",
    "complete_persistence",
    "decode",
    "initial_state",
    "lookup",
    "reduce",
]
