from datetime import datetime, timezone


def utcnow() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive values; SQLite hands DateTime columns back naive."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
