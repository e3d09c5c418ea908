"""GameDate value type and calendar arithmetic."""
from __future__ import annotations

import calendar
import datetime as _dt
from dataclasses import dataclass
from typing import Any

MONTH_NAMES = (
    "", "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)


def days_in_month(year: int, month: int) -> int:
    """Number of days in *month* of *year*, leap years included."""
    return calendar.monthrange(year, month)[1]


@dataclass(frozen=True, order=True)
class GameDate:
    """An in-world calendar date. Ordered by (year, month, day)."""

    year: int
    month: int
    day: int = 1

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise ValueError(f"month must be in [1, 12], got {self.month}")
        if not 1 <= self.day <= days_in_month(self.year, self.month):
            raise ValueError(
                f"day {self.day} out of range for {self.year}-{self.month:02d}"
            )

    # --- Arithmetic ---

    @property
    def ordinal(self) -> int:
        """Days since 0001-01-01, for day-level deadline math."""
        return _dt.date(self.year, self.month, self.day).toordinal()

    @property
    def month_index(self) -> int:
        return self.year * 12 + (self.month - 1)

    @property
    def is_month_end(self) -> bool:
        return self.day == days_in_month(self.year, self.month)

    def next_day(self) -> GameDate:
        if self.day < days_in_month(self.year, self.month):
            return GameDate(self.year, self.month, self.day + 1)
        if self.month == 12:
            return GameDate(self.year + 1, 1, 1)
        return GameDate(self.year, self.month + 1, 1)

    def add_days(self, days: int) -> GameDate:
        d = _dt.date.fromordinal(self.ordinal + days)
        return GameDate(d.year, d.month, d.day)

    def add_months(self, months: int) -> GameDate:
        """Shift by whole months, clamping the day to the target month."""
        index = self.month_index + months
        year, month0 = divmod(index, 12)
        month = month0 + 1
        return GameDate(year, month, min(self.day, days_in_month(year, month)))

    def days_until(self, other: GameDate) -> int:
        return other.ordinal - self.ordinal

    def months_until(self, other: GameDate) -> int:
        return other.month_index - self.month_index

    def same_month(self, other: GameDate) -> bool:
        return self.year == other.year and self.month == other.month

    def month_end(self) -> GameDate:
        return GameDate(self.year, self.month, days_in_month(self.year, self.month))

    # --- Display ---

    def format(self) -> str:
        return f"{MONTH_NAMES[self.month]} {self.year}"

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}-{self.day:02d}"

    # --- Serialization ---

    def to_dict(self) -> dict[str, int]:
        return {"year": self.year, "month": self.month, "day": self.day}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GameDate:
        return cls(int(data["year"]), int(data["month"]), int(data.get("day", 1)))


def date_or_none(data: dict[str, Any] | None) -> GameDate | None:
    return GameDate.from_dict(data) if data is not None else None


def dump_date(date: GameDate | None) -> dict[str, int] | None:
    return date.to_dict() if date is not None else None
