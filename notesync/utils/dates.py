from datetime import datetime, timezone


def utcnow():
    """Naive UTC timestamp, matching how the database columns store times."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
