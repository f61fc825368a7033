from __future__ import annotations

from datetime import datetime
from zoneinfo import ZoneInfo

MELBOURNE_TZ: ZoneInfo = ZoneInfo("Australia/Melbourne")
UTC_TZ: ZoneInfo = ZoneInfo("UTC")


def now_melbourne() -> datetime:
    """Return the current moment as a timezone-aware datetime in Australia/Melbourne."""
    return datetime.now(tz=MELBOURNE_TZ)


def parse_iso_datetime(s: str) -> datetime:
    """Parse an ISO 8601 datetime string.

    Handles formats:
    - "2022-07-21T16:17:00"          (naive, assumed Melbourne)
    - "2022-07-21T16:17:00+10:00"    (offset-aware)
    - "2022-07-21T06:17:00Z"         (UTC)

    Always returns a timezone-aware datetime in Australia/Melbourne.
    Raises ValueError on empty or unparseable input.
    """
    if not s or not s.strip():
        raise ValueError("Empty datetime string")

    s = s.strip()
    if s.endswith(("Z", "z")):
        s = s[:-1] + "+00:00"

    try:
        dt = datetime.fromisoformat(s)
    except ValueError:
        raise ValueError(f"Cannot parse datetime string: {s!r}")

    if dt.tzinfo is None:
        # Treat as Melbourne local time
        return dt.replace(tzinfo=MELBOURNE_TZ)
    return dt.astimezone(MELBOURNE_TZ)


def to_utc(dt: datetime) -> datetime:
    """Convert a timezone-aware datetime to UTC."""
    return dt.astimezone(UTC_TZ)


def format_utc(dt: datetime) -> str:
    """Format as YYYY-MM-DDTHH:MM:SS.000Z, the way service times are reported."""
    return to_utc(dt).strftime("%Y-%m-%dT%H:%M:%S.000Z")
