"""Shared utility functions for service layer."""
from datetime import UTC, datetime, timedelta


def escape_ilike(value: str) -> str:
    r"""
    Escape special ILIKE characters for safe use in LIKE/ILIKE patterns.

    LIKE/ILIKE treats these characters specially:
    - % matches any sequence of characters
    - _ matches any single character
    - \\ is the escape character

    This function escapes them so they match literally. Callers must pass
    escape="\\" to ilike() so SQLite honours the same escape character.
    """
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def truncate_to_ms(value: datetime) -> datetime:
    """
    Normalize a timestamp to UTC at millisecond resolution.

    Naive datetimes are assumed to already be in UTC.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    else:
        value = value.astimezone(UTC)
    return value.replace(microsecond=value.microsecond - value.microsecond % 1000)


def utc_now() -> datetime:
    """Current UTC time truncated to milliseconds."""
    return truncate_to_ms(datetime.now(UTC))


def next_timestamp(previous: datetime | None, now: datetime) -> datetime:
    """
    Return a timestamp strictly later than `previous`.

    Two mutations inside the same millisecond would otherwise share an
    updated_at value and defeat conflict detection.
    """
    now = truncate_to_ms(now)
    if previous is None:
        return now
    floor = truncate_to_ms(previous) + timedelta(milliseconds=1)
    return max(now, floor)
