from datetime import date, datetime, timezone

from core.date_helper import add_months


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def calculate_expiry(start_date: date, duration_months: int) -> date:
    return add_months(start_date, duration_months)


def to_naive_utc(value: datetime | None) -> datetime | None:
    # columns hold naive UTC; aware values are converted before the offset is dropped
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
