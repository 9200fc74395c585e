"""Calendar helpers shared by the scheduler and the ledger.

All timestamps are naive local datetimes; aware values coming from storage
are converted to local time on the way in.
"""

from datetime import date, datetime, time


def end_of_day(moment: datetime) -> datetime:
    """Last representable millisecond of ``moment``'s local calendar day."""
    return datetime.combine(moment.date(), time(23, 59, 59, 999000))


def parse_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def parse_date(value: str) -> date:
    return date.fromisoformat(value)
