from datetime import datetime, timezone


def utcnow() -> datetime:
    """Naive UTC now, matching how timestamps are stored in the metadata store."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
