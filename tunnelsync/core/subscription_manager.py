"""
Subscription Manager - Owns the status channel subscription and the engine state.

Session-Scoped Lifecycle:
- ``start()`` registers exactly one listener and opens a new session
- Every signal runs through ``reduce`` to completion before the next one,
  including its effects; signals dispatched from observers are queued
- ``stop()`` is TERMINAL for the session: later signals and late settings
  write completions are discarded
- Starting twice or stopping twice is harmless

State Machine: UNSUBSCRIBED → SUBSCRIBED → UNSUBSCRIBED
"""

import threading
from collections import deque
from datetime import datetime, timezone
from typing import Callable, Deque, List, Optional, Tuple

from loguru import logger

from tunnelsync.core import scheduler
from tunnelsync.core.constants import TUNNEL_STATUS_CHANNEL
from tunnelsync.core.errors import SubscriptionError
from tunnelsync.core.types import (
    Effect,
    EmitNotification,
    PersistSettings,
    SubscriptionState,
    SystemState,
    UserSettings,
)
from tunnelsync.services.notification_service import NotificationPermission, NotificationSink, safe_notify
from tunnelsync.services.signal_channel import SignalSource

Observer = Callable[[SystemState], None]
PersistFn = Callable[[dict], Optional[str]]


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class SubscriptionManager:
    """
    Single owner of the status subscription and of ``SystemState``.

    Args:
        channel: Event source the supervisor emits status signals on
        persist: Writes the settings dict; returns an error message or None
        notifier: Notification sink (failures are swallowed)
        permission: Notification permission, passed explicitly to the reducer
        channel_name: Event name to listen on
        clock: Returns the ISO 8601 timestamp for history entries
        persist_in_background: Run settings writes on a worker thread
    """

    def __init__(
        self,
        channel: SignalSource,
        persist: Optional[PersistFn] = None,
        notifier: Optional[NotificationSink] = None,
        permission: Optional[NotificationPermission] = None,
        channel_name: str = TUNNEL_STATUS_CHANNEL,
        clock: Callable[[], str] = _utc_now,
        persist_in_background: bool = True,
    ):
        self._channel = channel
        self._persist = persist
        self._notifier = notifier
        self._permission = permission
        self._channel_name = channel_name
        self._clock = clock
        self._persist_in_background = persist_in_background

        # Guards subscription state, session id, engine state and the
        # in-flight flag carried inside it
        self._lock = threading.Lock()
        # Serializes signal processing so signals are handled in delivery order
        self._dispatch_lock = threading.RLock()
        # Only touched while holding _dispatch_lock
        self._dispatching = False
        self._pending: Deque[Tuple[int, str]] = deque()

        self._subscription_state = SubscriptionState.UNSUBSCRIBED
        self._session_id = 0
        self._unlisten: Optional[Callable[[], None]] = None
        self._state = scheduler.initial_state(self._clock(), None)
        self._observers: List[Observer] = []

    # --- Lifecycle ---

    def start(self, settings: Optional[UserSettings] = None) -> bool:
        """
        Subscribe to the status channel and open a new session.

        Returns:
            True if a subscription was created, False if one already existed
            or registration failed
        """
        with self._lock:
            if self._subscription_state == SubscriptionState.SUBSCRIBED:
                logger.warning(f"[SubscriptionManager] Already subscribed (session {self._session_id}), ignoring start")
                return False
            self._session_id += 1
            session_id = self._session_id
            self._subscription_state = SubscriptionState.SUBSCRIBED
            self._state = scheduler.initial_state(self._clock(), settings)

        try:
            unlisten = self._channel.listen(self._channel_name, lambda raw: self._handle_signal(session_id, raw))
        except Exception as e:
            logger.error(f"[SubscriptionManager] Failed to listen on '{self._channel_name}': {e}")
            with self._lock:
                if self._session_id == session_id:
                    self._subscription_state = SubscriptionState.UNSUBSCRIBED
            return False

        stale = False
        with self._lock:
            if self._session_id == session_id and self._subscription_state == SubscriptionState.SUBSCRIBED:
                self._unlisten = unlisten
            else:
                # stop() ran while the listener was being registered
                stale = True
        if stale:
            unlisten()
            return False

        logger.info(f"[SubscriptionManager] Subscribed to '{self._channel_name}' (session {session_id})")
        # The channel may flush buffered signals during registration, so
        # publish whatever is current rather than the initial snapshot
        with self._dispatch_lock:
            with self._lock:
                state = self._state
            self._publish(state)
        return True

    def stop(self) -> None:
        """Deregister the listener and end the session. Safe to call repeatedly."""
        with self._lock:
            if self._subscription_state == SubscriptionState.UNSUBSCRIBED:
                return
            self._subscription_state = SubscriptionState.UNSUBSCRIBED
            unlisten = self._unlisten
            self._unlisten = None
            session_id = self._session_id

        if unlisten is not None:
            try:
                unlisten()
            except Exception as e:
                logger.warning(f"[SubscriptionManager] Listener removal failed: {e}")

        logger.info(f"[SubscriptionManager] Unsubscribed (session {session_id})")

    # --- Observers ---

    def add_observer(self, observer: Observer) -> Callable[[], None]:
        """Register a state observer; returns a function that removes it."""
        with self._lock:
            self._observers.append(observer)

        def remove():
            with self._lock:
                if observer in self._observers:
                    self._observers.remove(observer)

        return remove

    def _publish(self, state: SystemState) -> None:
        with self._lock:
            observers = list(self._observers)
        for observer in observers:
            try:
                observer(state)
            except Exception as e:
                logger.error(f"[SubscriptionManager] Observer failed: {e}")

    # --- Signal handling ---

    def dispatch(self, raw_signal: str) -> bool:
        """
        Feed a locally produced signal into the current session.

        Returns:
            True if the signal was accepted
        """
        try:
            session_id = self._current_session()
        except SubscriptionError as e:
            logger.warning(f"[SubscriptionManager] Signal {raw_signal!r} not dispatched: {e}")
            return False
        return self._handle_signal(session_id, raw_signal)

    def _current_session(self) -> int:
        with self._lock:
            if self._subscription_state != SubscriptionState.SUBSCRIBED:
                raise SubscriptionError("no active subscription")
            return self._session_id

    def set_settings(self, settings: Optional[UserSettings]) -> None:
        """Settings to persist once the next connection succeeds."""
        with self._lock:
            self._state = scheduler.with_settings(self._state, settings)

    def _is_current(self, session_id: int) -> bool:
        return self._subscription_state == SubscriptionState.SUBSCRIBED and session_id == self._session_id

    def _handle_signal(self, session_id: int, raw_signal: str) -> bool:
        with self._dispatch_lock:
            if self._dispatching:
                # Dispatched from an observer or effect of the signal being
                # handled; it runs once that signal's effects are done
                self._pending.append((session_id, raw_signal))
                return True

            self._dispatching = True
            try:
                handled = self._process_signal(session_id, raw_signal)
                while self._pending:
                    self._process_signal(*self._pending.popleft())
            finally:
                self._dispatching = False
                self._pending.clear()
            return handled

    def _process_signal(self, session_id: int, raw_signal: str) -> bool:
        with self._lock:
            if not self._is_current(session_id):
                logger.debug(f"[SubscriptionManager] Signal {raw_signal!r} ignored (session {session_id} not active)")
                return False
            granted = self._permission.granted if self._permission is not None else False
            next_state, effects = scheduler.reduce(self._state, raw_signal, self._clock(), granted)
            self._state = next_state

        logger.debug(f"[SubscriptionManager] {raw_signal!r} -> {next_state.status.value} ({len(effects)} effects)")
        self._publish(next_state)
        self._run_effects(session_id, effects)
        return True

    # --- Effects ---

    def _run_effects(self, session_id: int, effects: List[Effect]) -> None:
        for effect in effects:
            if isinstance(effect, PersistSettings):
                self._start_persist(session_id, effect.data)
            elif isinstance(effect, EmitNotification):
                safe_notify(self._notifier, effect.title, effect.body)

    def _start_persist(self, session_id: int, data: dict) -> None:
        if self._persist is None:
            self._on_persist_done(session_id, None)
            return
        if self._persist_in_background:
            threading.Thread(
                target=self._persist_worker,
                args=(session_id, data),
                name="tunnelsync-settings-writer",
                daemon=True,
            ).start()
        else:
            self._persist_worker(session_id, data)

    def _persist_worker(self, session_id: int, data: dict) -> None:
        try:
            error = self._persist(data)
        except Exception as e:
            error = str(e) or type(e).__name__
        if error:
            logger.error(f"[SubscriptionManager] Saving settings failed: {error}")
        self._on_persist_done(session_id, error)

    def _on_persist_done(self, session_id: int, error: Optional[str]) -> None:
        with self._dispatch_lock:
            with self._lock:
                if not self._is_current(session_id):
                    logger.debug(f"[SubscriptionManager] Settings write for session {session_id} completed after stop, discarded")
                    return
                self._state = scheduler.complete_persistence(self._state, error)
                state = self._state
            self._publish(state)

    # --- Accessors ---

    @property
    def state(self) -> SystemState:
        with self._lock:
            return self._state

    @property
    def subscription_state(self) -> SubscriptionState:
        with self._lock:
            return self._subscription_state

    def is_subscribed(self) -> bool:
        return self.subscription_state == SubscriptionState.SUBSCRIBED

    @property
    def session_id(self) -> int:
        """Current session ID (0 if not subscribed)."""
        with self._lock:
            return self._session_id if self._subscription_state == SubscriptionState.SUBSCRIBED else 0
