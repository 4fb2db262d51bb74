"""Calendar arithmetic on the proleptic Gregorian calendar.

Dates are converted to a day count relative to 1970-01-01 and back, using
plain integers, so shifting by any number of days never overflows.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime

START_DATE_FORMATS = ("%m/%d/%Y", "%Y-%m-%d")


def days_from_civil(year: int, month: int, day: int) -> int:
    """Return the number of days between 1970-01-01 and the given date."""
    y = year - 1 if month <= 2 else year
    era = y // 400
    yoe = y - era * 400
    mp = (month + 9) % 12  # March = 0
    doy = (153 * mp + 2) // 5 + day - 1
    doe = yoe * 365 + yoe // 4 - yoe // 100 + doy
    return era * 146097 + doe - 719468


def civil_from_days(days: int) -> tuple[int, int, int]:
    """Inverse of :func:`days_from_civil`."""
    z = days + 719468
    era = z // 146097
    doe = z - era * 146097
    yoe = (doe - doe // 1460 + doe // 36524 - doe // 146096) // 365
    doy = doe - (365 * yoe + yoe // 4 - yoe // 100)
    mp = (5 * doy + 2) // 153
    day = doy - (153 * mp + 2) // 5 + 1
    month = mp + 3 if mp < 10 else mp - 9
    year = yoe + era * 400 + (1 if month <= 2 else 0)
    return year, month, day


@dataclass(frozen=True, order=True)
class CalendarDate:
    """A civil date without range limits. Weekday follows ``date.weekday()``."""

    year: int
    month: int
    day: int

    @classmethod
    def from_date(cls, d: date) -> CalendarDate:
        return cls(d.year, d.month, d.day)

    @classmethod
    def from_days(cls, days: int) -> CalendarDate:
        return cls(*civil_from_days(days))

    def to_days(self) -> int:
        return days_from_civil(self.year, self.month, self.day)

    def to_date(self) -> date:
        """Convert to ``datetime.date``; raises ValueError outside years 1-9999."""
        return date(self.year, self.month, self.day)

    @property
    def weekday(self) -> int:
        """Monday is 0, Sunday is 6."""
        # 1970-01-01 was a Thursday
        return (self.to_days() + 3) % 7

    def isoformat(self) -> str:
        return f"{self.year:04d}-{self.month:02d}-{self.day:02d}"

    def __str__(self) -> str:
        return self.isoformat()


def add_days(base: CalendarDate, days: int) -> CalendarDate:
    """Shift *base* by *days* (either sign), normalizing month and year."""
    return CalendarDate.from_days(base.to_days() + days)


def parse_start_date(value: str) -> CalendarDate | None:
    """Parse MM/DD/YYYY or YYYY-MM-DD. Returns None on failure."""
    value = value.strip()
    for fmt in START_DATE_FORMATS:
        try:
            return CalendarDate.from_date(datetime.strptime(value, fmt).date())
        except ValueError:
            continue
    return None
