"""
Shared field types and validators for the I/O schemas.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Iterable, Optional

from pydantic import BaseModel, BeforeValidator, StringConstraints

from loopwell.core.dates import parse_day_or_datetime

HEX_COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"

HexColor = Annotated[str, StringConstraints(pattern=HEX_COLOR_PATTERN)]
ShortLabel = Annotated[str, StringConstraints(max_length=100)]
Tag = Annotated[str, StringConstraints(max_length=50)]


def _start_of_day(value: Any) -> Optional[datetime]:
    return parse_day_or_datetime(value, "start")


def _end_of_day(value: Any) -> Optional[datetime]:
    return parse_day_or_datetime(value, "end")


# Date-only input becomes 00:00:00.000 / 23:59:59.999 of that day
StartDate = Annotated[Optional[datetime], BeforeValidator(_start_of_day)]
EndDate = Annotated[Optional[datetime], BeforeValidator(_end_of_day)]


def ensure_ordered(start: Optional[datetime], end: Optional[datetime], label: str = "End date") -> None:
    """Raise ``ValueError`` when ``end`` precedes ``start``."""
    if start is not None and end is not None and end < start:
        raise ValueError(f"{label} must be after or equal to start date")


def reject_nulls(model: BaseModel, fields: Iterable[str]) -> None:
    """Raise ``ValueError`` when a required column was explicitly sent as null."""
    for name in fields:
        if name in model.model_fields_set and getattr(model, name) is None:
            raise ValueError(f"{name} cannot be null")
