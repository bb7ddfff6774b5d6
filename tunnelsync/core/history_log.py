"""History Log - Append-only record of status transitions."""

from datetime import datetime, timezone
from typing import Optional, Tuple

from tunnelsync.core.types import HistoryEntry, StatusCode

History = Tuple[HistoryEntry, ...]


def iso_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def initial(session_start: Optional[str] = None) -> History:
    """A fresh log holding the single DISCONNECTED entry for session start."""
    return (HistoryEntry(timestamp=session_start or iso_now(), status=StatusCode.DISCONNECTED),)


def append(log: History, status: StatusCode, now: str) -> History:
    """
    Record ``status`` unless it repeats the last entry.

    Consecutive duplicates are suppressed, so no two adjacent entries
    share a status.
    """
    if log and log[-1].status == status:
        return log
    return tuple(log) + (HistoryEntry(timestamp=now, status=status),)
