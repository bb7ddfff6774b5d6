"""
Services subpackage - Collaborators at the edge of the status engine.

- EventChannel: In-process named event channel
- TunnelCommandClient: Fire-and-forget start/end commands
- LogNotifier / TrayNotifier: Notification sinks (build_notifier picks one)
- NotificationPermission: Cached notification permission
"""

from tunnelsync.services.notification_service import (
    LogNotifier,
    NotificationPermission,
    TrayNotifier,
    build_notifier,
)
from tunnelsync.services.signal_channel import EventChannel
from tunnelsync.services.tunnel_commands import TunnelCommandClient

__all__ = [
    "EventChannel",
    "LogNotifier",
    "NotificationPermission",
    "TrayNotifier",
    "TunnelCommandClient",
    "build_notifier",
]
