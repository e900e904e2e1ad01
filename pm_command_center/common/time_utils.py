from __future__ import annotations

import math
import re
from datetime import datetime, timezone

_COMPACT_OFFSET = re.compile(r"([+-]\d{2})(\d{2})$")


def parse_iso8601(dt_str: str) -> datetime:
    # GitHub uses 2024-01-01T00:00:00Z, Jira 2024-01-10T15:30:00.000+0000
    if dt_str.endswith("Z"):
        dt_str = dt_str[:-1] + "+00:00"
    dt_str = _COMPACT_OFFSET.sub(r"\1:\2", dt_str)
    parsed = datetime.fromisoformat(dt_str)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_optional_timestamp(value: object) -> datetime | None:
    """Parse a platform timestamp, returning None for missing or garbled values."""
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return parse_iso8601(value.strip())
    except ValueError:
        return None


def cycle_time_days(created_at: datetime | None, closed_at: datetime | None) -> int | None:
    """Whole calendar days between creation and closure, partial days rounded up."""
    if created_at is None or closed_at is None:
        return None
    elapsed = (closed_at - created_at).total_seconds()
    if elapsed < 0:
        # closed before created; no usable cycle time
        return None
    return math.ceil(elapsed / 86400)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))
