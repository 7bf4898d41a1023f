"""Data formatting utilities."""

import re
from datetime import datetime, timezone
from typing import Optional

_COMPACT_OFFSET = re.compile(r'([+-]\d{2})(\d{2})$')


def parse_jira_datetime(value: Optional[str]) -> Optional[datetime]:
    """Parse a Jira timestamp into an aware UTC datetime.

    Jira emits offsets without a colon (``2024-09-01T10:00:00.000+0000``);
    ``Z`` suffixes and naive values (assumed UTC) are accepted too.

    Args:
        value: Timestamp string from the API

    Returns:
        Aware datetime in UTC or None for empty input

    Raises:
        ValueError: If the value is not a recognisable timestamp
    """
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    text = _COMPACT_OFFSET.sub(r'\1:\2', text.replace('Z', '+00:00'))
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_jira_date(value: Optional[str]) -> Optional[datetime]:
    """Parse a Jira date-only field (e.g. duedate) into midnight UTC."""
    if not value:
        return None
    text = str(value).strip()
    if 'T' in text:
        return parse_jira_datetime(text)
    d = datetime.strptime(text, "%Y-%m-%d").date()
    return datetime(d.year, d.month, d.day, tzinfo=timezone.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes (as returned by SQLite) and convert aware ones."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def format_duration(seconds: Optional[int]) -> str:
    """Format a duration in seconds as a compact day/hour/minute string.

    Args:
        seconds: Duration in seconds

    Returns:
        Formatted string (e.g., "1d 2h 5m", "45s") or "-" for empty values
    """
    if not seconds:
        return "-"
    days, rest = divmod(int(seconds), 86400)
    hours, rest = divmod(rest, 3600)
    minutes, secs = divmod(rest, 60)
    parts = []
    if days:
        parts.append(f"{days}d")
    if hours:
        parts.append(f"{hours}h")
    if minutes:
        parts.append(f"{minutes}m")
    if not parts:
        parts.append(f"{secs}s")
    return " ".join(parts)
