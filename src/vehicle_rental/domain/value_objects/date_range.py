"""Date range value object for rental periods."""

from dataclasses import dataclass
from datetime import date

from ..exceptions import InvalidDateRangeError


@dataclass(frozen=True)
class DateRange:
    """Immutable rental period occupying [start_date, end_date], both days inclusive.

    The start date is the pickup day and the end date is the return day.
    """

    start_date: date
    end_date: date

    def __post_init__(self) -> None:
        """Validate date range data."""
        if self.start_date is None or self.end_date is None:
            raise InvalidDateRangeError("Start date and end date are required")
        if self.end_date <= self.start_date:
            raise InvalidDateRangeError("End date must be after start date")

    @property
    def days(self) -> int:
        """Get number of billable rental days."""
        return (self.end_date - self.start_date).days

    def overlaps(self, other: "DateRange") -> bool:
        """Check whether two ranges share at least one calendar day.

        Comparison is inclusive on both ends, so a booking returned on the
        day another one starts is a conflict.
        """
        return self.start_date <= other.end_date and other.start_date <= self.end_date

    def starts_before(self, today: date) -> bool:
        """Check if the range starts in the past relative to ``today``."""
        return self.start_date < today

    def ensure_not_in_past(self, today: date) -> None:
        """Raise if the pickup day is already behind us."""
        if self.starts_before(today):
            raise InvalidDateRangeError("Start date cannot be in the past")

    def format(self) -> str:
        """Get ISO formatted range string."""
        return f"{self.start_date.isoformat()} - {self.end_date.isoformat()}"

    def __str__(self) -> str:
        return self.format()
