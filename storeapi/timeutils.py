from datetime import datetime, timezone

# Timestamps are stored as naive UTC; sqlite drops tzinfo anyway.


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_epoch(dt: datetime) -> int:
    return int(dt.replace(tzinfo=timezone.utc).timestamp())


def from_epoch(seconds: int) -> datetime:
    return datetime.fromtimestamp(seconds, tz=timezone.utc).replace(tzinfo=None)


def isoformat(dt):
    """Render a stored timestamp the way JavaScript's Date.toJSON does."""
    if dt is None:
        return None
    return dt.isoformat(timespec="milliseconds") + "Z"
