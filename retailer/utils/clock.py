from datetime import datetime, timezone


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, the format stored in every table."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)
