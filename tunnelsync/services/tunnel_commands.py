"""Tunnel Commands - Fire-and-forget invocations to the tunnel supervisor."""

from typing import Any, Callable, Optional

from loguru import logger

from tunnelsync.core.constants import END_TUNNEL_COMMAND, START_TUNNEL_COMMAND
from tunnelsync.core.signal_decoder import encode
from tunnelsync.core.types import StatusCode, UserSettings

Invoker = Callable[[str, Optional[dict]], Any]


class TunnelCommandClient:
    """
    Sends start/end commands to the supervisor.

    Neither command reports status directly; results arrive on the status
    channel. If the invocation itself fails, an ``ERROR`` signal is passed to
    ``on_failure`` so the engine still sees it.
    """

    def __init__(self, invoker: Invoker, on_failure: Optional[Callable[[str], None]] = None):
        self._invoker = invoker
        self._on_failure = on_failure

    def start_tunnel(self, settings: UserSettings) -> bool:
        logger.info(f"[TunnelCommands] Starting tunnel to {settings.user}@{settings.host}")
        return self._invoke(START_TUNNEL_COMMAND, {"settings": settings.to_command_payload()})

    def end_tunnel(self) -> bool:
        logger.info("[TunnelCommands] Ending tunnel")
        return self._invoke(END_TUNNEL_COMMAND, None)

    def _invoke(self, command: str, payload: Optional[dict]) -> bool:
        try:
            self._invoker(command, payload)
            return True
        except Exception as e:
            logger.error(f"[TunnelCommands] '{command}' failed: {e}")
            if self._on_failure is not None:
                self._on_failure(encode(StatusCode.ERROR, str(e) or type(e).__name__))
            return False
