"""Human-readable rendering helpers for sizes and timestamps."""

from __future__ import annotations

from datetime import datetime, timezone
from zoneinfo import ZoneInfo

KB = 1024
MB = KB * 1024
GB = MB * 1024


def format_file_size(size: int) -> str:
    if size < KB:
        return f"{size} B"
    if size < MB:
        return f"{size / KB:.2f} KB"
    if size < GB:
        return f"{size / MB:.2f} MB"
    return f"{size / GB:.2f} GB"


def _to_millis(timestamp: int) -> int:
    # Unit is inferred from magnitude: ns, us, ms, then plain seconds.
    if timestamp > 1e17:
        return timestamp // 1_000_000
    if timestamp > 1e14:
        return timestamp // 1000
    if timestamp > 1e11:
        return timestamp
    return timestamp * 1000


def format_timestamp(timestamp: int, tz_name: str = "UTC") -> str:
    if not timestamp:
        return "unknown"
    try:
        moment = datetime.fromtimestamp(_to_millis(int(timestamp)) / 1000, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return f"invalid timestamp ({timestamp})"
    if moment.year < 1970 or moment.year > 2100:
        return f"invalid timestamp ({timestamp})"
    return moment.astimezone(ZoneInfo(tz_name)).strftime("%Y-%m-%d %H:%M:%S")


def usage_percentage(used: int, capacity: int) -> str:
    if capacity == 0:
        return "0%"
    return f"{used * 100.0 / capacity:.2f}%"
