"""
Small formatting helpers used when shaping responses.
"""

from __future__ import annotations

import math
import re
from datetime import datetime, timezone
from typing import Optional, Union

WORDS_PER_MINUTE = 200

_TIME_AGO_BUCKETS = (
    (365 * 24 * 3600, "year"),
    (30 * 24 * 3600, "month"),
    (7 * 24 * 3600, "week"),
    (24 * 3600, "day"),
    (3600, "hour"),
    (60, "minute"),
)


def parse_timestamp(value: Union[str, datetime, None]) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def time_ago(value: Union[str, datetime, None], now: Optional[datetime] = None) -> str:
    """Human-readable age such as ``3 days ago`` or ``just now``."""
    moment = parse_timestamp(value)
    if moment is None:
        return ""
    now = now or datetime.now(timezone.utc)
    seconds = int((now - moment).total_seconds())
    if seconds < 60:
        return "just now"
    for size, unit in _TIME_AGO_BUCKETS:
        if seconds >= size:
            count = seconds // size
            return f"{count} {unit}{'s' if count != 1 else ''} ago"
    return "just now"


def estimate_read_time(text: Optional[str]) -> str:
    words = len(re.findall(r"\S+", text or ""))
    minutes = max(1, math.ceil(words / WORDS_PER_MINUTE))
    return f"{minutes} min read"


def format_file_size(size: Optional[int]) -> str:
    if not size:
        return "0 Bytes"
    units = ("Bytes", "KB", "MB", "GB")
    exponent = 0
    while size >= 1024 ** (exponent + 1) and exponent < len(units) - 1:
        exponent += 1
    value = round(size / (1024**exponent), 2)
    # 2.0 -> "2", 2.5 -> "2.5"
    return f"{value:g} {units[exponent]}"

