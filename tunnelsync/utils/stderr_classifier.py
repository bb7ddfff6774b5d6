"""Maps ssh stderr output to the status signal the tunnel supervisor would emit."""

import re

from tunnelsync.core.signal_decoder import encode
from tunnelsync.core.types import StatusCode

_DROPPED_PATTERN = re.compile(r"Timeout, server .* not responding")

_UNREACHABLE_MARKERS = (
    "timed out",
    "Network is unreachable",
    "Unknown error",
    "Could not resolve hostname",
)

_DENIED_MARKERS = ("Permission denied", "Connection refused")

_BAD_CONFIG_MARKER = "Bad local forwarding specification"

READY_SIGNAL = "READY"


def classify_stderr(msg: str) -> str:
    """Return the raw status signal for captured ssh stderr text."""
    if not msg:
        return READY_SIGNAL
    if _DROPPED_PATTERN.search(msg) or "Connection reset" in msg:
        return StatusCode.DROPPED.value
    if any(marker in msg for marker in _UNREACHABLE_MARKERS):
        return StatusCode.UNREACHABLE.value
    if any(marker in msg for marker in _DENIED_MARKERS):
        return StatusCode.DENIED.value
    if _BAD_CONFIG_MARKER in msg:
        return encode(StatusCode.BAD_CONFIG, msg)
    return encode(StatusCode.UNKNOWN, msg)
