"""Connection Manager - Facade tying the status engine to its collaborators."""

from typing import Callable, Optional

from loguru import logger

from tunnelsync.core.config import Config
from tunnelsync.core.signal_decoder import encode
from tunnelsync.core.subscription_manager import SubscriptionManager
from tunnelsync.core.types import StatusCode, SystemState, UserSettings
from tunnelsync.core.validators import ILLEGAL_PORT, ValidationError, validate_user_settings
from tunnelsync.repositories.settings_repository import SettingsRepository
from tunnelsync.services.notification_service import (
    NOTIFIER_LOG,
    NotificationPermission,
    NotificationSink,
    TrayNotifier,
    build_notifier,
)
from tunnelsync.services.signal_channel import SignalSource
from tunnelsync.services.tunnel_commands import Invoker, TunnelCommandClient


class ConnectionManager:
    """
    Facade for the SSH tunnel client.

    - Status only ever changes through signals; ``connect``/``disconnect``
      just send commands to the supervisor
    - Settings loaded at startup are the ones persisted on the next success,
      until ``connect`` attaches new ones
    - Local failures (invalid settings, failed invocation) are fed into the
      engine as signals so they surface like supervisor errors
    """

    def __init__(
        self,
        channel: SignalSource,
        invoker: Invoker,
        settings_repository: Optional[SettingsRepository] = None,
        notifier: Optional[NotificationSink] = None,
        permission: Optional[NotificationPermission] = None,
        channel_name: Optional[str] = None,
        persist_in_background: bool = True,
    ):
        self._settings_repository = settings_repository or SettingsRepository()
        self._notifier = notifier

        kwargs = {"channel_name": channel_name} if channel_name else {}
        self._subscriptions = SubscriptionManager(
            channel=channel,
            persist=self._settings_repository.save,
            notifier=notifier,
            permission=permission,
            persist_in_background=persist_in_background,
            **kwargs,
        )
        self._commands = TunnelCommandClient(invoker, on_failure=self._subscriptions.dispatch)

        self.saved_settings, self.settings_message = self._settings_repository.load()
        self.form_error: Optional[str] = None

    @classmethod
    def from_config(
        cls,
        config: Config,
        channel: SignalSource,
        invoker: Invoker,
        notifier: Optional[NotificationSink] = None,
        permission: Optional[NotificationPermission] = None,
    ) -> "ConnectionManager":
        """Factory wiring the manager from engine configuration."""
        if not config.get("notifications_enabled", True):
            permission = NotificationPermission.fixed(False)
        if notifier is None:
            notifier = build_notifier(config.get("notifier", NOTIFIER_LOG), icon_path=config.get("tray_icon"))
        return cls(
            channel=channel,
            invoker=invoker,
            settings_repository=SettingsRepository(config.get("settings_path")),
            notifier=notifier,
            permission=permission,
            channel_name=config.get("channel"),
            persist_in_background=bool(config.get("persist_in_background", True)),
        )

    # --- Lifecycle ---

    def start(self) -> bool:
        """Begin listening for status signals."""
        settings = self.saved_settings if self.settings_message is None else None
        return self._subscriptions.start(settings=settings)

    def shutdown(self) -> None:
        """End the tunnel and tear down the subscription."""
        if self._subscriptions.is_subscribed():
            self._commands.end_tunnel()
        self._subscriptions.stop()
        if isinstance(self._notifier, TrayNotifier):
            self._notifier.stop()

    # --- Commands ---

    def connect(self, settings: UserSettings) -> bool:
        """
        Validate ``settings`` and ask the supervisor to start the tunnel.

        Returns:
            True if the start command was sent
        """
        self.form_error = None
        try:
            validate_user_settings(settings)
        except ValidationError as e:
            self.form_error = str(e)
            logger.warning(f"[ConnectionManager] Refusing to connect: {e}")
            # Only a bad port maps to a status; missing fields stay form-level
            if str(e) == ILLEGAL_PORT:
                self._subscriptions.dispatch(encode(StatusCode.BAD_CONFIG, ILLEGAL_PORT))
            return False

        self._subscriptions.set_settings(settings)
        return self._commands.start_tunnel(settings)

    def disconnect(self) -> bool:
        return self._commands.end_tunnel()

    # --- State ---

    @property
    def state(self) -> SystemState:
        return self._subscriptions.state

    def add_observer(self, observer: Callable[[SystemState], None]) -> Callable[[], None]:
        return self._subscriptions.add_observer(observer)

    @property
    def subscriptions(self) -> SubscriptionManager:
        return self._subscriptions
