from datetime import datetime, timezone


def get_current_timestamp() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)
