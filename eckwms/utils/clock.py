from datetime import datetime, timezone


def utcnow():
    """Naive UTC timestamp, matching how the models store datetimes."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def isoformat_utc(value):
    """ISO 8601 text for a naive UTC timestamp, with an explicit +00:00 offset."""
    if value is None:
        return None
    return value.replace(tzinfo=timezone.utc).isoformat()
