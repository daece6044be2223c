"""Date helpers.

Timestamps are stored as naive UTC datetimes. Calendar dates supplied without
a time are expanded to the start or the end of that day.
"""

from __future__ import annotations

import re
from datetime import date, datetime, time, timezone
from typing import Literal, Union

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_DOTTED_DATE = re.compile(r"^(\d{2})\.(\d{2})\.(\d{4})$")

START_OF_DAY = time(0, 0, 0)
END_OF_DAY = time(23, 59, 59, 999000)

Boundary = Literal["start", "end"]


def utc_now() -> datetime:
    """Current UTC time as a naive datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def parse_day_or_datetime(value: Union[str, date, datetime, None], boundary: Boundary) -> datetime | None:
    """Parse a date-only or full datetime value.

    ``YYYY-MM-DD`` and ``DD.MM.YYYY`` are expanded to ``00:00:00.000`` for the
    ``start`` boundary and ``23:59:59.999`` for the ``end`` boundary. Full
    ISO-8601 datetimes are kept as given (converted to naive UTC).

    Raises:
        ValueError: if the value is not a recognised date format.
    """
    if value is None or value == "":
        return None
    moment = END_OF_DAY if boundary == "end" else START_OF_DAY
    if isinstance(value, datetime):
        return to_naive_utc(value)
    if isinstance(value, date):
        return datetime.combine(value, moment)

    text = value.strip()
    if _ISO_DATE.match(text):
        return datetime.combine(date.fromisoformat(text), moment)
    dotted = _DOTTED_DATE.match(text)
    if dotted:
        day, month, year = (int(part) for part in dotted.groups())
        return datetime.combine(date(year, month, day), moment)
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        raise ValueError(f"Invalid date: {value!r}") from None
    return to_naive_utc(parsed)


def from_epoch_millis(value: Union[str, int, None]) -> datetime | None:
    """Naive UTC datetime for a millisecond Unix timestamp; ``None`` when unparseable."""
    if value in (None, ""):
        return None
    try:
        seconds = int(value) / 1000
    except (TypeError, ValueError):
        return None
    return datetime.fromtimestamp(seconds, tz=timezone.utc).replace(tzinfo=None)


def parse_iso(value: Union[str, None]) -> datetime | None:
    """Naive UTC datetime for an ISO-8601 string; ``None`` when missing or invalid."""
    if not value:
        return None
    try:
        return to_naive_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))
    except ValueError:
        return None
