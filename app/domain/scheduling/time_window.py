"""Clock-time windows and overlap math for the scheduling engine"""

import re
from dataclasses import dataclass
from datetime import date, datetime, time

from .exceptions import InvalidTimeFormat, ValidationError

MINUTES_PER_DAY = 24 * 60

_TIME_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})$")


def to_minutes(value: str) -> int:
    """
    Parse an HH:MM string into minutes since midnight.

    Raises:
        InvalidTimeFormat: If the string is not a valid 24h clock time
    """
    if not isinstance(value, str):
        raise InvalidTimeFormat(f"Invalid time format: {value!r} (expected HH:MM)")

    match = _TIME_PATTERN.match(value.strip())
    if not match:
        raise InvalidTimeFormat(f"Invalid time format: {value!r} (expected HH:MM)")

    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        raise InvalidTimeFormat(f"Invalid time format: {value!r} (expected HH:MM)")

    return hours * 60 + minutes


def format_minutes(minutes: int) -> str:
    """Render minutes since midnight as HH:MM"""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def parse_date(value: str) -> date:
    """Parse a YYYY-MM-DD calendar date"""
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid date format: {value!r} (expected YYYY-MM-DD)")


def minutes_of_day(moment: datetime) -> int:
    return moment.hour * 60 + moment.minute


@dataclass(frozen=True)
class TimeWindow:
    """Half-open interval [start, end) in minutes since midnight; never spans midnight"""

    start: int
    end: int

    def __post_init__(self):
        if not (0 <= self.start < MINUTES_PER_DAY and 0 <= self.end < MINUTES_PER_DAY):
            raise ValidationError(
                f"Time window {self.start}-{self.end} must lie within a single day"
            )
        if self.start >= self.end:
            raise ValidationError(
                f"Start time {format_minutes(self.start)} must be before end time {format_minutes(self.end)}"
            )

    @classmethod
    def from_strings(cls, start: str, end: str) -> "TimeWindow":
        return cls(to_minutes(start), to_minutes(end))

    @classmethod
    def from_datetimes(cls, start: datetime, end: datetime) -> "TimeWindow":
        """Window from the time-of-day components of two timestamps"""
        return cls(minutes_of_day(start), minutes_of_day(end))

    def overlaps(self, other: "TimeWindow") -> bool:
        return overlaps(self, other)

    def contains(self, point: int) -> bool:
        return contains(self, point)

    def start_clock(self) -> time:
        return time(self.start // 60, self.start % 60)

    def end_clock(self) -> time:
        return time(self.end // 60, self.end % 60)

    def __str__(self) -> str:
        return f"{format_minutes(self.start)} - {format_minutes(self.end)}"


def overlaps(a: TimeWindow, b: TimeWindow) -> bool:
    """Strict half-open overlap: windows that only touch at a boundary do not overlap"""
    return a.start < b.end and b.start < a.end


def contains(window: TimeWindow, point: int) -> bool:
    return window.start <= point < window.end


def check_on_grid(window: TimeWindow, size: int) -> None:
    """
    Reject windows whose edges do not fall on a size-minute boundary.

    Slot claims cover whole buckets, so an edge inside a bucket would make two
    touching windows claim the same one.
    """
    if size <= 0:
        raise ValidationError("Bucket size must be a positive number of minutes")
    if window.start % size or window.end % size:
        raise ValidationError(f"Times must fall on a {size}-minute boundary ({window})")


def buckets_for(window: TimeWindow, size: int) -> list[int]:
    """Start minutes of the size-minute buckets covering window"""
    check_on_grid(window, size)
    return list(range(window.start, window.end, size))
