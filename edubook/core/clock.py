from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_timestamp(value: datetime) -> str:
    # Fixed width so stored timestamps sort as strings.
    return value.astimezone(timezone.utc).isoformat(timespec='microseconds')


def now_timestamp() -> str:
    return to_timestamp(utcnow())
