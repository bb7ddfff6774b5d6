"""Unit tests for SubscriptionManager."""
import threading
from unittest.mock import Mock

import pytest

from tunnelsync.core.subscription_manager import SubscriptionManager
from tunnelsync.core.types import StatusCode, SubscriptionState, UserSettings
from tunnelsync.services.notification_service import NotificationPermission
from tunnelsync.services.signal_channel import EventChannel

CHANNEL = "tunnel_status"
SETTINGS = UserSettings(host="10.0.0.5", user="deploy", port="5432", key_path="/keys/id_rsa")


class TestSubscriptionManager:
    """Test suite for SubscriptionManager."""

    @pytest.fixture
    def channel(self):
        return EventChannel()

    @pytest.fixture
    def persist(self):
        return Mock(return_value=None)

    @pytest.fixture
    def notifier(self):
        return Mock()

    @pytest.fixture
    def manager(self, channel, persist, notifier):
        return SubscriptionManager(
            channel=channel,
            persist=persist,
            notifier=notifier,
            permission=NotificationPermission.fixed(True),
            channel_name=CHANNEL,
            persist_in_background=False,
        )

    def test_initialization(self, manager, channel):
        """Manager starts unsubscribed with a DISCONNECTED state."""
        assert manager.subscription_state == SubscriptionState.UNSUBSCRIBED
        assert manager.session_id == 0
        assert manager.state.status == StatusCode.DISCONNECTED
        assert channel.listener_count(CHANNEL) == 0

    def test_start_registers_single_listener(self, manager, channel):
        assert manager.start() is True
        assert manager.is_subscribed()
        assert channel.listener_count(CHANNEL) == 1

    def test_start_twice_does_not_register_twice(self, manager, channel):
        manager.start()
        first_session = manager.session_id

        assert manager.start() is False
        assert channel.listener_count(CHANNEL) == 1
        assert manager.session_id == first_session

    def test_signal_updates_state_and_observers(self, manager, channel):
        observer = Mock()
        manager.add_observer(observer)
        manager.start()

        channel.emit(CHANNEL, "CONNECTING")

        assert manager.state.status == StatusCode.CONNECTING
        published = observer.call_args_list[-1].args[0]
        assert published is manager.state

    def test_signals_processed_in_delivery_order(self, manager, channel):
        manager.start()
        for raw in ["CONNECTING", "CONNECTED", "RETRYING", "CONNECTED"]:
            channel.emit(CHANNEL, raw)

        assert [e.status for e in manager.state.history] == [
            StatusCode.DISCONNECTED,
            StatusCode.CONNECTING,
            StatusCode.CONNECTED,
            StatusCode.RETRYING,
            StatusCode.CONNECTED,
        ]

    def test_stop_deregisters_listener(self, manager, channel):
        manager.start()
        manager.stop()

        assert manager.subscription_state == SubscriptionState.UNSUBSCRIBED
        assert channel.listener_count(CHANNEL) == 0

    def test_stop_is_idempotent(self, channel):
        unlisten = Mock()
        source = Mock()
        source.listen.return_value = unlisten
        manager = SubscriptionManager(channel=source, channel_name=CHANNEL)

        manager.start()
        manager.stop()
        manager.stop()

        unlisten.assert_called_once()
        assert manager.subscription_state == SubscriptionState.UNSUBSCRIBED

    def test_stop_without_start(self, manager):
        manager.stop()
        assert manager.subscription_state == SubscriptionState.UNSUBSCRIBED

    def test_signal_after_stop_is_discarded(self, manager, channel, notifier):
        """A stray RETRYING after stop changes nothing and emits nothing."""
        manager.start()
        channel.emit(CHANNEL, "CONNECTED")
        before = manager.state
        notifier.reset_mock()

        manager.stop()
        channel.emit(CHANNEL, "RETRYING")

        assert manager.state is before
        notifier.notify.assert_not_called()

    def test_late_delivery_through_old_handler_is_discarded(self, notifier):
        """A handler captured before stop() cannot mutate state."""
        source = Mock()
        source.listen.return_value = Mock()
        manager = SubscriptionManager(
            channel=source,
            notifier=notifier,
            permission=NotificationPermission.fixed(True),
            channel_name=CHANNEL,
        )
        manager.start()
        handler = source.listen.call_args.args[1]
        before = manager.state

        manager.stop()
        handler("RETRYING")

        assert manager.state is before
        notifier.notify.assert_not_called()

    def test_old_session_handler_ignored_after_restart(self):
        source = Mock()
        source.listen.return_value = Mock()
        manager = SubscriptionManager(channel=source, channel_name=CHANNEL)

        manager.start()
        old_handler = source.listen.call_args.args[1]
        manager.stop()
        manager.start()

        old_handler("DENIED")
        assert manager.state.status == StatusCode.DISCONNECTED

    def test_restart_begins_fresh_session(self, manager, channel):
        manager.start()
        channel.emit(CHANNEL, "DENIED")
        manager.stop()
        manager.start()

        assert manager.state.status == StatusCode.DISCONNECTED
        assert manager.state.system_error is None
        assert len(manager.state.history) == 1

    def test_signal_flushed_during_registration_reaches_observers(self):
        """A channel replaying a buffered signal inside listen() must not be overwritten."""

        class FlushingSource:
            def listen(self, event, handler):
                handler("CONNECTING")
                return lambda: None

        seen = []
        manager = SubscriptionManager(channel=FlushingSource(), channel_name=CHANNEL)
        manager.add_observer(lambda state: seen.append(state.status))

        assert manager.start() is True
        assert manager.state.status == StatusCode.CONNECTING
        assert seen[-1] == StatusCode.CONNECTING
        assert StatusCode.DISCONNECTED not in seen

    def test_listen_failure_leaves_manager_unsubscribed(self):
        source = Mock()
        source.listen.side_effect = RuntimeError("channel closed")
        manager = SubscriptionManager(channel=source, channel_name=CHANNEL)

        assert manager.start() is False
        assert manager.subscription_state == SubscriptionState.UNSUBSCRIBED


class TestSubscriptionManagerEffects:
    @pytest.fixture
    def channel(self):
        return EventChannel()

    def _manager(self, channel, persist=None, notifier=None, granted=True, background=False):
        return SubscriptionManager(
            channel=channel,
            persist=persist,
            notifier=notifier,
            permission=NotificationPermission.fixed(granted),
            channel_name=CHANNEL,
            persist_in_background=background,
        )

    def test_connected_persists_and_notifies(self, channel):
        persist = Mock(return_value=None)
        notifier = Mock()
        manager = self._manager(channel, persist, notifier)
        manager.start(settings=SETTINGS)

        channel.emit(CHANNEL, "CONNECTED")

        persist.assert_called_once_with(SETTINGS.to_dict())
        notifier.notify.assert_called_once_with("SUCCESS", "SSH Connected!")
        assert manager.state.persist_in_flight is False
        assert manager.state.system_error is None

    def test_repeated_connected_persists_once(self, channel):
        persist = Mock(return_value=None)
        manager = self._manager(channel, persist)
        manager.start(settings=SETTINGS)

        for raw in ["CONNECTING", "CONNECTED", "CONNECTED", "CONNECTED"]:
            channel.emit(CHANNEL, raw)

        persist.assert_called_once()
        assert len(manager.state.history) == 3

    def test_persist_failure_becomes_system_error(self, channel):
        persist = Mock(return_value="No space left on device")
        manager = self._manager(channel, persist)
        manager.start(settings=SETTINGS)

        channel.emit(CHANNEL, "CONNECTED")

        assert manager.state.status == StatusCode.CONNECTED
        assert manager.state.system_error == "Unable to save settings: No space left on device"

    def test_persist_exception_becomes_system_error(self, channel):
        persist = Mock(side_effect=OSError("read-only file system"))
        manager = self._manager(channel, persist)
        manager.start(settings=SETTINGS)

        channel.emit(CHANNEL, "CONNECTED")

        assert manager.state.system_error == "Unable to save settings: read-only file system"
        assert manager.state.persist_in_flight is False

    def test_persist_failure_does_not_block_status_updates(self, channel):
        persist = Mock(return_value="boom")
        manager = self._manager(channel, persist)
        manager.start(settings=SETTINGS)

        channel.emit(CHANNEL, "CONNECTED")
        channel.emit(CHANNEL, "RETRYING")

        assert manager.state.status == StatusCode.RETRYING
        persist.assert_called_once()

    def test_notifier_failure_is_swallowed(self, channel):
        notifier = Mock()
        notifier.notify.side_effect = RuntimeError("no notification daemon")
        manager = self._manager(channel, notifier=notifier)
        manager.start()

        channel.emit(CHANNEL, "DROPPED")

        assert manager.state.status == StatusCode.DROPPED

    def test_no_notification_without_permission(self, channel):
        notifier = Mock()
        manager = self._manager(channel, notifier=notifier, granted=False)
        manager.start()

        channel.emit(CHANNEL, "DROPPED")

        notifier.notify.assert_not_called()

    def test_observer_failure_does_not_stop_delivery(self, channel):
        bad = Mock(side_effect=ValueError("render failed"))
        good = Mock()
        manager = self._manager(channel)
        manager.add_observer(bad)
        manager.add_observer(good)
        manager.start()

        channel.emit(CHANNEL, "CONNECTING")

        assert good.call_args.args[0].status == StatusCode.CONNECTING

    def test_removed_observer_not_called(self, channel):
        observer = Mock()
        manager = self._manager(channel)
        remove = manager.add_observer(observer)
        remove()
        manager.start()

        channel.emit(CHANNEL, "CONNECTING")

        observer.assert_not_called()

    def test_background_write_completing_after_stop_is_discarded(self, channel):
        release = threading.Event()
        finished = threading.Event()

        def slow_persist(data):
            release.wait(timeout=5)
            finished.set()
            return "too late"

        manager = self._manager(channel, persist=slow_persist, background=True)
        manager.start(settings=SETTINGS)
        channel.emit(CHANNEL, "CONNECTED")
        assert manager.state.persist_in_flight is True

        manager.stop()
        before = manager.state
        release.set()
        assert finished.wait(timeout=5)

        # Give the worker thread a moment to attempt its completion
        for thread in threading.enumerate():
            if thread.name == "tunnelsync-settings-writer":
                thread.join(timeout=5)

        assert manager.state is before
        assert manager.state.system_error is None

    def test_background_write_completion_is_applied(self, channel):
        done = threading.Event()
        manager = self._manager(channel, persist=Mock(return_value=None), background=True)
        manager.add_observer(lambda state: done.set() if not state.persist_in_flight and state.status == StatusCode.CONNECTED else None)
        manager.start(settings=SETTINGS)

        channel.emit(CHANNEL, "CONNECTED")

        assert done.wait(timeout=5)
        assert manager.state.persist_in_flight is False

    def test_set_settings_enables_persistence(self, channel):
        persist = Mock(return_value=None)
        manager = self._manager(channel, persist)
        manager.start()
        manager.set_settings(SETTINGS)

        channel.emit(CHANNEL, "CONNECTED")

        persist.assert_called_once_with(SETTINGS.to_dict())

    def test_dispatch_feeds_current_session(self, channel):
        manager = self._manager(channel)
        manager.start()

        assert manager.dispatch("BAD_CONFIG: Illegal port value") is True
        assert manager.state.system_error == "Invalid parameter(s): Illegal port value"

    def test_dispatch_ignored_when_unsubscribed(self, channel):
        manager = self._manager(channel)
        assert manager.dispatch("DENIED") is False
        assert manager.state.status == StatusCode.DISCONNECTED

    def test_dispatch_from_observer_runs_after_current_effects(self, channel):
        events = []
        persist = Mock(side_effect=lambda data: events.append("persist"))
        notifier = Mock()
        notifier.notify.side_effect = lambda title, body: events.append(body)
        manager = self._manager(channel, persist, notifier)

        def observer(state):
            if state.status == StatusCode.CONNECTED and "dispatched" not in events:
                events.append("dispatched")
                manager.dispatch("DENIED")

        manager.add_observer(observer)
        manager.start(settings=SETTINGS)
        channel.emit(CHANNEL, "CONNECTED")

        assert events == ["dispatched", "persist", "SSH Connected!", "Incorrect username or bad ssh key"]
        assert manager.state.status == StatusCode.DENIED
        assert [e.status for e in manager.state.history][-2:] == [StatusCode.CONNECTED, StatusCode.DENIED]
