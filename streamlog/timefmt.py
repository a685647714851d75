"""Timestamp prefixes for log lines."""

from datetime import datetime, timezone
from enum import Enum

from streamlog.errors import TimestampError

# Upper bound for a rendered prefix, in bytes.
TIME_FMT_MAX_LEN = 32


class TimeFormat(Enum):
    NONE = "none"
    EPOCH_MS = "epoch"
    HUMAN_MINUTE = "human"
    HUMAN_MINUTE_T = "human-t"


_STRFTIME = {
    TimeFormat.HUMAN_MINUTE: "%Y-%m-%d_%H:%M:%S",
    TimeFormat.HUMAN_MINUTE_T: "%Y-%m-%dT%H:%M:%S",
}


def _split(instant_ns: int) -> tuple[int, int]:
    seconds, rest = divmod(instant_ns, 1_000_000_000)
    return seconds, rest // 1_000_000


def epoch_ms(instant_ns: int) -> str:
    """Render ``<unix_seconds><3-digit millis>``, e.g. ``1736942400123``."""
    seconds, millis = _split(instant_ns)
    text = f"{seconds}{millis:03d}"
    if len(text) >= TIME_FMT_MAX_LEN:
        raise TimestampError(f"cannot fit time into format: {text[:TIME_FMT_MAX_LEN]}...")
    return text


def _human(instant_ns: int, fmt: str) -> str:
    seconds, millis = _split(instant_ns)
    try:
        stamp = datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError, ValueError) as e:
        raise TimestampError(f"cannot convert {seconds}s to a calendar date: {e}") from e
    text = stamp.strftime(fmt) + f".{millis:05d}"
    if len(text) >= TIME_FMT_MAX_LEN:
        raise TimestampError(f"formatted time too long: {text}")
    return text


def format_timestamp(fmt: TimeFormat, instant_ns: int) -> bytes | None:
    """Return the prefix for a line started at *instant_ns*, or None for NONE.

    Raises TimestampError if the instant cannot be rendered; callers write the
    line without a prefix in that case.
    """
    if fmt is TimeFormat.NONE:
        return None
    if fmt is TimeFormat.EPOCH_MS:
        return epoch_ms(instant_ns).encode("ascii")
    return _human(instant_ns, _STRFTIME[fmt]).encode("ascii")
