"""
Time-of-day values and wall-clock range membership.

Ranges are inclusive at both ends and compared at minute resolution.
A range whose end is earlier than its start wraps past midnight
(22:00-06:00 covers the overnight span). A range whose start equals its
end covers that single minute, not the whole day.
"""
from __future__ import annotations

import datetime
from dataclasses import dataclass

MINUTES_PER_DAY = 24 * 60


@dataclass(frozen=True)
class TimeOfDay:
    hour: int
    minute: int

    def __post_init__(self):
        if not 0 <= self.hour <= 23 or not 0 <= self.minute <= 59:
            raise ValueError(f"invalid time of day: {self.hour}:{self.minute}")

    @property
    def minutes(self) -> int:
        """Minutes since midnight."""
        return self.hour * 60 + self.minute

    @classmethod
    def from_datetime(cls, dt: datetime.datetime | datetime.time) -> TimeOfDay:
        return cls(dt.hour, dt.minute)

    @classmethod
    def parse(cls, s: str) -> TimeOfDay:
        """Parse an "HH:MM" string. Raises ValueError if malformed."""
        try:
            h, m = str(s).strip().split(":")
            return cls(int(h), int(m))
        except (TypeError, AttributeError) as e:
            raise ValueError(f"invalid time string: {s!r}") from e

    def fmt12(self) -> str:
        """12-hour display form, e.g. 14:30 -> '2:30 PM'."""
        suffix = "AM" if self.hour < 12 else "PM"
        h12 = self.hour % 12 or 12
        return f"{h12}:{self.minute:02d} {suffix}"

    def __str__(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}"


@dataclass(frozen=True)
class TimeRange:
    start: TimeOfDay
    end: TimeOfDay

    @property
    def wraps(self) -> bool:
        return self.end.minutes < self.start.minutes

    def contains(self, at: TimeOfDay | datetime.datetime | datetime.time) -> bool:
        return contains(self, at)

    def __str__(self) -> str:
        return f"{self.start}-{self.end}"


def contains(rng: TimeRange, at: TimeOfDay | datetime.datetime | datetime.time) -> bool:
    """True if `at` falls inside `rng` (inclusive, midnight-wrapping)."""
    if not isinstance(at, TimeOfDay):
        at = TimeOfDay.from_datetime(at)
    s, e, t = rng.start.minutes, rng.end.minutes, at.minutes
    if e >= s:
        return s <= t <= e
    return t >= s or t <= e
