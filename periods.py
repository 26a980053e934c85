from dataclasses import dataclass
from datetime import date
from typing import Optional

from errors import InvalidPeriod


@dataclass(frozen=True)
class Period:
    year: int
    month: int
    start: date
    end: date

    def contains(self, day: date) -> bool:
        return self.start <= day < self.end

    @property
    def days(self) -> int:
        return (self.end - self.start).days


def resolve_period(year: int, month: int) -> Period:
    """Calendar month as a half-open interval ``[start, end)``."""
    if not 1 <= month <= 12:
        raise InvalidPeriod(f"Month must be between 1 and 12, got {month}")
    try:
        start = date(year, month, 1)
        if month == 12:
            end = date(year + 1, 1, 1)
        else:
            end = date(year, month + 1, 1)
    except (ValueError, OverflowError) as exc:
        raise InvalidPeriod(f"Invalid period {year}-{month:02d}") from exc
    return Period(year, month, start, end)


def period_for_date(day: date) -> Period:
    return resolve_period(day.year, day.month)


def parse_period(year: Optional[str], month: Optional[str]) -> Period:
    try:
        year_value = int(str(year).strip())
        month_value = int(str(month).strip())
    except (TypeError, ValueError) as exc:
        raise InvalidPeriod(f"Invalid period {year!r}/{month!r}") from exc
    return resolve_period(year_value, month_value)
