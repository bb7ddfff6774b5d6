"""Exception types used inside tunnelsync.

None of these cross into ``SystemState``: engine failures are reported there
as data. They mark failures between internal components.
"""


class TunnelSyncError(Exception):
    """Base class for tunnelsync errors."""


class SettingsError(TunnelSyncError):
    """User settings are missing, unreadable or invalid."""


class SubscriptionError(TunnelSyncError):
    """The subscription manager was used outside an active session."""
