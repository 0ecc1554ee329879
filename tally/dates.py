"""Date utilities for tally.

Calendar periods and RFC-3339 timestamps. Every datetime handed out here is
timezone-aware and in UTC.
"""

from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta


@dataclass(frozen=True, order=True)
class CalendarMonth:
    """A (year, month) pair with no time of day."""

    year: int
    month: int

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise ValueError(f"Month must be between 1 and 12, got {self.month}")

    @classmethod
    def of_date(cls, value: date) -> "CalendarMonth":
        """Month containing value. Aware datetimes are converted to UTC first."""
        if isinstance(value, datetime) and value.tzinfo is not None:
            value = value.astimezone(UTC)
        return cls(value.year, value.month)

    @classmethod
    def current(cls) -> "CalendarMonth":
        return cls.of_date(datetime.now(UTC))

    @classmethod
    def parse(cls, text: str) -> "CalendarMonth":
        """Parse a month in YYYY-MM format.

        Raises:
            ValueError: If text is not a valid month.
        """
        parsed = datetime.strptime(text, "%Y-%m")
        return cls(parsed.year, parsed.month)

    def first_day(self) -> datetime:
        """Midnight UTC on day 1."""
        return datetime(self.year, self.month, 1, tzinfo=UTC)

    def last_day(self) -> datetime:
        """Midnight UTC on the last day of the month."""
        return self.next_month().first_day() - timedelta(days=1)

    def next_month(self) -> "CalendarMonth":
        first = self.first_day()
        return CalendarMonth.of_date((first.replace(day=28) + timedelta(days=4)).replace(day=1))

    def previous_month(self) -> "CalendarMonth":
        return CalendarMonth.of_date(self.first_day() - timedelta(days=1))

    def days(self) -> list[datetime]:
        """Midnight UTC of every day in the month."""
        count = (self.next_month().first_day() - self.first_day()).days
        return [self.first_day() + timedelta(days=offset) for offset in range(count)]

    @property
    def label(self) -> str:
        """Human-readable month, e.g. "January 2025"."""
        return self.first_day().strftime("%B %Y")

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"


@dataclass(frozen=True, order=True)
class CalendarWeek:
    """An ISO week, Monday to Sunday."""

    year: int
    week: int

    @classmethod
    def of_date(cls, value: date) -> "CalendarWeek":
        if isinstance(value, datetime) and value.tzinfo is not None:
            value = value.astimezone(UTC)
        iso = value.isocalendar()
        return cls(iso.year, iso.week)

    @classmethod
    def current(cls) -> "CalendarWeek":
        return cls.of_date(datetime.now(UTC))

    def first_day(self) -> datetime:
        """Midnight UTC on Monday."""
        monday = date.fromisocalendar(self.year, self.week, 1)
        return datetime(monday.year, monday.month, monday.day, tzinfo=UTC)

    def last_day(self) -> datetime:
        """Midnight UTC on Sunday."""
        return self.first_day() + timedelta(days=6)

    def next_week(self) -> "CalendarWeek":
        return CalendarWeek.of_date(self.first_day() + timedelta(days=7))

    def __str__(self) -> str:
        return f"{self.year:04d}-W{self.week:02d}"


def parse_rfc3339(text: str) -> datetime:
    """Parse an RFC-3339 timestamp into UTC.

    Args:
        text: Timestamp such as "2021-01-01T22:08:41Z". An offset is required.

    Returns:
        Aware datetime in UTC.

    Raises:
        ValueError: If text is not a timestamp with an offset.
    """
    parsed = datetime.fromisoformat(text.strip())
    if parsed.tzinfo is None:
        raise ValueError(f"Timestamp {text!r} has no UTC offset")
    return parsed.astimezone(UTC)


def format_rfc3339(value: datetime) -> str:
    """Format an aware datetime as RFC-3339 UTC with a "Z" suffix."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    value = value.astimezone(UTC)
    timespec = "microseconds" if value.microsecond else "seconds"
    return value.isoformat(timespec=timespec).replace("+00:00", "Z")
