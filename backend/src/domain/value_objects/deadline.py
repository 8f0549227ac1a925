"""
Deadline parsing
Deadlines arrive as ISO strings from forms or as stored timestamps
"""
from datetime import date, datetime
from typing import Any, Optional


def parse_deadline(value: Any) -> Optional[date]:
    """
    Calendar date of a deadline, or None when missing or malformed.

    Accepts date / datetime objects, "YYYY-MM-DD" and ISO-8601 datetime
    strings. Timestamps are truncated to their date in the server's local
    zone, the zone date.today() uses; time of day is ignored.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return _local_date(value)
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None

    text = value.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        # "Z" suffix is not accepted by fromisoformat before 3.11
        return _local_date(datetime.fromisoformat(text.replace("Z", "+00:00")))
    except ValueError:
        return None


def _local_date(value: datetime) -> date:
    if value.tzinfo is None:
        return value.date()
    return value.astimezone().date()


def is_expired(deadline: Any, today: date) -> bool:
    """True only for a parsable deadline strictly before today"""
    parsed = parse_deadline(deadline)
    return parsed is not None and parsed < today
