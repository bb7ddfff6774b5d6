"""
Notification Service - OS notification sinks and permission handling.

Notifications are fire-and-forget: every sink failure is swallowed so status
processing is never affected.
"""

import os
import threading
from typing import Callable, Optional, Protocol

from loguru import logger
from PIL import Image

NOTIFIER_LOG = "log"
NOTIFIER_TRAY = "tray"

# Fallback tray image when no icon file is configured
_ICON_SIZE = (48, 48)
_ICON_COLOR = (38, 132, 255, 255)


class NotificationSink(Protocol):
    def notify(self, title: str, body: str) -> None:
        ...


class LogNotifier:
    """Writes notifications to the log. Default sink for headless use."""

    def notify(self, title: str, body: str) -> None:
        logger.info(f"[Notification] {title}: {body}")


class TrayNotifier:
    """Shows notifications through a pystray tray icon."""

    def __init__(self, icon):
        self._icon = icon

    @classmethod
    def create(cls, name: str, icon_path: Optional[str] = None) -> "TrayNotifier":
        """Build and show a tray icon named ``name``."""
        import pystray

        icon = pystray.Icon(name, _load_icon(icon_path), title=name)
        icon.run_detached()
        logger.debug(f"[Notification] Tray icon '{name}' started")
        return cls(icon)

    def notify(self, title: str, body: str) -> None:
        # pystray takes (message, title)
        self._icon.notify(body, title)

    def stop(self) -> None:
        try:
            self._icon.stop()
        except Exception as e:
            logger.debug(f"[Notification] Tray icon stop failed (ignored): {e}")


def _load_icon(icon_path: Optional[str]) -> Image.Image:
    if icon_path and os.path.exists(icon_path):
        try:
            return Image.open(icon_path).convert("RGBA").resize(_ICON_SIZE)
        except OSError as e:
            logger.error(f"[Notification] Failed to load tray icon {icon_path}: {e}")
    return Image.new("RGBA", _ICON_SIZE, _ICON_COLOR)


def build_notifier(kind: str, name: str = "tunnelsync", icon_path: Optional[str] = None) -> NotificationSink:
    """
    Sink for the configured notifier kind ("log" or "tray").

    A tray that cannot be created (no display, no backend) falls back to the
    log sink.
    """
    if kind == NOTIFIER_TRAY:
        try:
            return TrayNotifier.create(name, icon_path)
        except Exception as e:
            logger.warning(f"[Notification] Tray unavailable, logging notifications instead: {e}")
    elif kind != NOTIFIER_LOG:
        logger.warning(f"[Notification] Unknown notifier '{kind}', using '{NOTIFIER_LOG}'")
    return LogNotifier()


class NotificationPermission:
    """
    Resolves the notification permission once and caches the answer.

    Args:
        is_granted: Returns True if permission was granted previously
        request: Asks the user; returns True if granted
    """

    def __init__(
        self,
        is_granted: Optional[Callable[[], bool]] = None,
        request: Optional[Callable[[], bool]] = None,
    ):
        self._is_granted = is_granted or (lambda: True)
        self._request = request
        self._lock = threading.Lock()
        self._granted: Optional[bool] = None

    @classmethod
    def fixed(cls, granted: bool) -> "NotificationPermission":
        return cls(is_granted=lambda: granted)

    @property
    def granted(self) -> bool:
        with self._lock:
            if self._granted is None:
                self._granted = self._resolve()
            return self._granted

    def _resolve(self) -> bool:
        try:
            if self._is_granted():
                logger.debug("[Notification] Permission already granted")
                return True
            if self._request is None:
                return False
            logger.debug("[Notification] Requesting permission")
            return bool(self._request())
        except Exception as e:
            logger.warning(f"[Notification] Permission check failed: {e}")
            return False


def safe_notify(sink: Optional[NotificationSink], title: str, body: str) -> None:
    """Deliver a notification, swallowing any sink failure."""
    if sink is None:
        return
    try:
        sink.notify(title, body)
    except Exception as e:
        logger.debug(f"[Notification] Delivery failed (ignored): {e}")
