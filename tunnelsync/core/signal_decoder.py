"""
Signal Decoder - Turns raw tunnel status signals into typed status codes.

Accepted forms:
- ``"CONNECTED"``                      exact token
- ``"ERROR: something went wrong"``    colon-delimited detail (preferred)
- ``"BAD_CONFIG port must be ..."``    legacy fixed-offset detail

Anything else degrades to ``UNKNOWN`` with the raw text as detail.
Decoding never raises.
"""

from typing import Optional, Tuple

from loguru import logger

from tunnelsync.core.types import StatusCode

DETAIL_DELIMITER = ":"

# Tokens emitted by older supervisor builds
LEGACY_ALIASES = {
    "READY": StatusCode.DISCONNECTED,
    "EXIT": StatusCode.DISCONNECTED,
}

# Legacy signals place the detail a fixed number of characters after the
# token (one separator character). Only detail-carrying codes use this form.
LEGACY_DETAIL_OFFSETS = {
    StatusCode.BAD_CONFIG: 1,
    StatusCode.ERROR: 1,
    StatusCode.UNKNOWN: 1,
}


def _lookup_token(token: str) -> Optional[StatusCode]:
    if token in LEGACY_ALIASES:
        return LEGACY_ALIASES[token]
    try:
        return StatusCode(token)
    except ValueError:
        return None


def _clean_detail(detail: str) -> Optional[str]:
    detail = detail.strip()
    return detail or None


def _decode_colon(raw: str) -> Optional[Tuple[StatusCode, Optional[str]]]:
    if DETAIL_DELIMITER not in raw:
        return None
    prefix, _, detail = raw.partition(DETAIL_DELIMITER)
    code = _lookup_token(prefix.strip())
    if code is None:
        return None
    return code, _clean_detail(detail)


def _decode_fixed_offset(raw: str) -> Optional[Tuple[StatusCode, Optional[str]]]:
    # Longest token first so a shorter token never shadows a longer one
    for code in sorted(LEGACY_DETAIL_OFFSETS, key=lambda c: len(c.value), reverse=True):
        token = code.value
        if not raw.startswith(token) or len(raw) == len(token):
            continue
        separator = raw[len(token)]
        # "ERRORS" is not "ERROR" followed by a detail
        if separator.isalnum() or separator == "_":
            continue
        return code, _clean_detail(raw[len(token) + LEGACY_DETAIL_OFFSETS[code]:])
    return None


def decode(raw: Optional[str]) -> Tuple[StatusCode, Optional[str]]:
    """
    Decode a raw status signal.

    Args:
        raw: Signal payload as delivered on the status channel

    Returns:
        Tuple of (status code, detail message or None)
    """
    if not raw:
        return StatusCode.UNKNOWN, None

    if not isinstance(raw, str):
        raw = str(raw)

    code = _lookup_token(raw.strip())
    if code is not None:
        return code, None

    decoded = _decode_colon(raw) or _decode_fixed_offset(raw)
    if decoded is not None:
        return decoded

    logger.debug(f"[SignalDecoder] Unrecognized signal: {raw!r}")
    return StatusCode.UNKNOWN, raw


def encode(code: StatusCode, detail: Optional[str] = None) -> str:
    """Build a signal in the preferred colon-delimited form."""
    if detail:
        return f"{code.value}{DETAIL_DELIMITER} {detail}"
    return code.value
