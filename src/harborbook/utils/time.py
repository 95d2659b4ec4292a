"""Time utilities for UTC timestamp formatting."""

from datetime import datetime, timedelta, timezone

# Legacy records count seconds from the Apple reference date rather than the Unix epoch.
APPLE_REFERENCE_DATE = datetime(2001, 1, 1, tzinfo=timezone.utc)


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def utc_now_z() -> str:
    """
    Get current UTC time as ISO 8601 string with Z suffix.

    Returns:
        ISO 8601 UTC timestamp ending with 'Z' (e.g., '2025-12-23T00:27:07.804867Z')
    """
    return to_utc_z(utc_now())


def to_utc_z(dt: datetime) -> str:
    """
    Convert datetime to ISO 8601 UTC string with Z suffix.

    Args:
        dt: Datetime object (must be timezone-aware)

    Returns:
        ISO 8601 UTC timestamp ending with 'Z'

    Raises:
        ValueError: If datetime is naive (not timezone-aware)
    """
    if dt.tzinfo is None:
        raise ValueError(
            f"Naive datetime not allowed. Got {dt}. "
            "Use datetime.now(timezone.utc) or dt.replace(tzinfo=timezone.utc)"
        )
    return dt.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def ensure_utc(dt: datetime) -> datetime:
    """Attach UTC to naive datetimes and normalize aware ones to UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def from_reference_seconds(seconds: float) -> datetime:
    """Convert seconds since 2001-01-01T00:00:00Z into a UTC datetime."""
    return APPLE_REFERENCE_DATE + timedelta(seconds=float(seconds))


def filename_stamp(dt: datetime | None = None) -> str:
    """Compact UTC stamp safe for file names, e.g. '20250101_083000'."""
    dt = ensure_utc(dt or utc_now())
    return dt.strftime("%Y%m%d_%H%M%S")


def display_stamp(dt: datetime | None = None) -> str:
    """Short human-readable UTC stamp used in generated category names."""
    dt = ensure_utc(dt or utc_now())
    return dt.strftime("%Y-%m-%d %H:%M")
