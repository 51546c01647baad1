"""
Reporting periods.

A period is one calendar month. It knows its start date, its exclusive end
date and a day-of-month cursor used to pace goals in the month that is
still in progress.
"""

import calendar
import re
from dataclasses import dataclass
from datetime import MAXYEAR, MINYEAR, date
from typing import Optional

_PERIOD_KEY_RE = re.compile(r"^(\d{4})-(\d{2})$")


@dataclass(frozen=True)
class Period:
    """A calendar year + month."""

    year: int
    month: int

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise ValueError(f"Invalid month: {self.month}")
        # end (day 1 of the next month) must stay representable
        if not MINYEAR <= self.year < MAXYEAR:
            raise ValueError(f"Invalid year: {self.year}")

    @classmethod
    def from_key(cls, key: str) -> "Period":
        """Parse a "YYYY-MM" key."""
        match = _PERIOD_KEY_RE.match(key or "")
        if not match:
            raise ValueError(f"Invalid period key: {key!r} (expected YYYY-MM)")
        return cls(int(match.group(1)), int(match.group(2)))

    @classmethod
    def containing(cls, day: date) -> "Period":
        return cls(day.year, day.month)

    @classmethod
    def resolve(cls, key: Optional[str], today: date) -> "Period":
        """Period for the given key, or the one containing today when no key is given."""
        if key:
            return cls.from_key(key)
        return cls.containing(today)

    @property
    def key(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"

    @property
    def start(self) -> date:
        return date(self.year, self.month, 1)

    @property
    def end(self) -> date:
        """First day of the next month (exclusive bound)."""
        return self.shift(1).start

    @property
    def days_in_month(self) -> int:
        return calendar.monthrange(self.year, self.month)[1]

    def shift(self, months: int) -> "Period":
        """Period `months` calendar months away (negative goes back)."""
        index = self.year * 12 + (self.month - 1) + months
        return Period(index // 12, index % 12 + 1)

    def previous(self) -> "Period":
        return self.shift(-1)

    def kind(self, today: date) -> str:
        """'current', 'past' or 'future' relative to today."""
        current = Period.containing(today)
        if self == current:
            return "current"
        if (self.year, self.month) < (current.year, current.month):
            return "past"
        return "future"

    def day_cursor(self, today: date) -> int:
        """Today's day for the in-progress month, the full month otherwise."""
        if self.kind(today) == "current":
            return today.day
        return self.days_in_month

    def contains(self, day: date) -> bool:
        return self.start <= day < self.end
