"""
Side-Effect Scheduler - Pure reducer from (state, signal) to (state, effects).

The reducer never performs I/O. It decides which effects should happen and
returns them in execution order; the subscription manager runs them.

Rules:
- Notifications and persistence only fire on a real transition
- Settings are persisted at most once per successful connection
- Connection and save errors are tracked separately; the most recently
  produced one is surfaced as ``system_error``
"""

from dataclasses import replace
from datetime import datetime
from typing import List, Optional, Tuple, Union

from loguru import logger

from tunnelsync.core import history_log, status_registry
from tunnelsync.core.signal_decoder import decode
from tunnelsync.core.types import (
    Effect,
    EmitNotification,
    PersistSettings,
    SideEffectClass,
    StatusCode,
    SystemState,
    UserSettings,
)

DENIED_MESSAGE = "Incorrect username or bad ssh key"
UNREACHABLE_MESSAGE = "Incorrect IP Address"

NOTIFY_SUCCESS = "SUCCESS"
NOTIFY_ERROR = "ERROR"
NOTIFY_INTERRUPTION = "INTERRUPTION"

_DEFAULT_SETTINGS = UserSettings()


def _with_detail(prefix: str, detail: Optional[str]) -> str:
    return f"{prefix}: {detail}" if detail else prefix


def connection_error_for(code: StatusCode, detail: Optional[str], raw: str) -> Optional[str]:
    """
    User-facing error for a status code, or None when the code clears errors.

    A missing detail drops the ``": detail"`` suffix; an empty UNKNOWN signal
    gives plain "Unknown Error" rather than "Unknown Error: ".
    """
    if code == StatusCode.DENIED:
        return DENIED_MESSAGE
    if code == StatusCode.UNREACHABLE:
        return UNREACHABLE_MESSAGE
    if code == StatusCode.BAD_CONFIG:
        return _with_detail("Invalid parameter(s)", detail)
    if code == StatusCode.ERROR:
        return _with_detail("System Error", detail)
    if code == StatusCode.UNKNOWN:
        return _with_detail("Unknown Error", detail or raw)
    return None


def notification_for(
    code: StatusCode, effect_class: SideEffectClass, connection_error: Optional[str]
) -> Optional[EmitNotification]:
    if effect_class == SideEffectClass.SUCCESS:
        return EmitNotification(title=NOTIFY_SUCCESS, body="SSH Connected!")
    if code == StatusCode.DROPPED:
        return EmitNotification(title=NOTIFY_ERROR, body="SSH Connection Dropped!")
    if code == StatusCode.RETRYING:
        return EmitNotification(title=NOTIFY_INTERRUPTION, body="SSH Connection Interrupted!")
    if code in (StatusCode.DENIED, StatusCode.UNREACHABLE):
        return EmitNotification(title=NOTIFY_ERROR, body=connection_error)
    return None


def _timestamp(now: Union[str, datetime, None]) -> str:
    if now is None:
        return history_log.iso_now()
    if isinstance(now, datetime):
        return now.isoformat()
    return now


def initial_state(
    session_start: Union[str, datetime, None] = None,
    settings: Optional[UserSettings] = _DEFAULT_SETTINGS,
) -> SystemState:
    """
    State at subscription start: DISCONNECTED with a one-entry history.

    ``settings`` defaults to what the settings reader yields when nothing is
    saved. Pass None to disable persistence until settings are attached.
    """
    return SystemState(
        status=StatusCode.DISCONNECTED,
        display_info=status_registry.lookup(StatusCode.DISCONNECTED),
        system_error=None,
        history=history_log.initial(_timestamp(session_start)),
        settings=settings,
    )


def reduce(
    previous: SystemState,
    raw_signal: str,
    now: Union[str, datetime, None],
    notifications_granted: bool,
) -> Tuple[SystemState, List[Effect]]:
    """
    Process one raw signal.

    Args:
        previous: Current state snapshot
        raw_signal: Signal payload from the status channel
        now: Timestamp for a new history entry
        notifications_granted: Whether OS notifications may be emitted

    Returns:
        Tuple of (next state, ordered effects). Persistence precedes
        notification so a notification can reflect a completed save.
    """
    raw_signal = raw_signal if isinstance(raw_signal, str) else ("" if raw_signal is None else str(raw_signal))
    code, detail = decode(raw_signal)
    display_info = status_registry.lookup(code)
    effect_class = status_registry.side_effect_class(code)
    is_transition = code != previous.status

    connection_error = connection_error_for(code, detail, raw_signal)
    if connection_error and effect_class == SideEffectClass.TERMINAL_FAILURE:
        logger.warning(f"[Scheduler] {code.value}: {connection_error}")

    effects: List[Effect] = []
    persist_in_flight = previous.persist_in_flight

    if (
        effect_class == SideEffectClass.SUCCESS
        and is_transition
        and previous.settings is not None
        and not persist_in_flight
    ):
        effects.append(PersistSettings(data=previous.settings.to_dict()))
        persist_in_flight = True
    elif effect_class == SideEffectClass.SUCCESS and previous.persist_in_flight:
        logger.debug("[Scheduler] Settings write already in flight, not scheduling another")

    if notifications_granted and is_transition:
        notification = notification_for(code, effect_class, connection_error)
        if notification is not None:
            effects.append(notification)

    next_state = replace(
        previous,
        status=code,
        display_info=display_info,
        system_error=connection_error or previous.save_error,
        history=history_log.append(previous.history, code, _timestamp(now)),
        connection_error=connection_error,
        persist_in_flight=persist_in_flight,
        detail=detail,
    )
    return next_state, effects


def complete_persistence(state: SystemState, error: Optional[str] = None) -> SystemState:
    """
    Fold the outcome of a settings write into the state.

    A failure becomes ``save_error`` and is surfaced immediately; it is not
    retried. Success clears any earlier save error.
    """
    if error:
        save_error = f"Unable to save settings: {error}"
        return replace(state, persist_in_flight=False, save_error=save_error, system_error=save_error)
    return replace(
        state,
        persist_in_flight=False,
        save_error=None,
        system_error=state.connection_error,
    )


def with_settings(state: SystemState, settings: Optional[UserSettings]) -> SystemState:
    """Attach the settings to persist once the next connection succeeds."""
    return replace(state, settings=settings)
