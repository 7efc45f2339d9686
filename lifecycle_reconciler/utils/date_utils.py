"""Date manipulation utilities"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Union

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# Windows FILETIME: 100ns ticks since 1601-01-01 UTC
FILETIME_EPOCH = datetime(1601, 1, 1, tzinfo=timezone.utc)
FILETIME_NEVER = 0x7FFFFFFFFFFFFFFF

DISPLAY_FORMAT = "%Y-%m-%d %H:%M"


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes, convert aware ones to UTC"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def whole_days_between(earlier: datetime, later: datetime) -> int:
    """Floor of the elapsed time in days (negative when earlier is after later)"""
    return (ensure_utc(later) - ensure_utc(earlier)) // timedelta(days=1)


def from_filetime(ticks: int) -> Optional[datetime]:
    """Convert a FILETIME integer; 0 and the max value mean 'not set'"""
    if ticks <= 0 or ticks >= FILETIME_NEVER:
        return None
    try:
        return FILETIME_EPOCH + timedelta(microseconds=ticks // 10)
    except OverflowError:
        # Past datetime.max, which only the 'never' conventions produce
        return None


def parse_directory_timestamp(value: Union[str, int, None]) -> Optional[datetime]:
    """
    Parse a timestamp as reported by the directory.

    Accepts ISO-8601 strings (a trailing "Z" is allowed) and FILETIME integers,
    including integers serialized as strings. Empty values and FILETIME
    sentinels return None.

    Raises:
        ValueError: value is neither a timestamp nor a known sentinel
    """
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValueError(f"Not a timestamp: {value!r}")
    if isinstance(value, int):
        return from_filetime(value)
    text = str(value).strip()
    if text.lstrip("-").isdigit():
        return from_filetime(int(text))
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return ensure_utc(datetime.fromisoformat(text))


def is_never_expires(expires_at: Optional[datetime]) -> bool:
    """True for missing expirations and the sentinel values directories use for 'never'"""
    if expires_at is None:
        return True
    expires_at = ensure_utc(expires_at)
    return expires_at <= EPOCH or expires_at.year >= 9999


def format_timestamp(value: Optional[datetime], default: str = "Never") -> str:
    if value is None or ensure_utc(value) <= EPOCH:
        return default
    return ensure_utc(value).strftime(DISPLAY_FORMAT)
