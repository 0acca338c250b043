"""
Report Filters

Request-level filter set shared by the report queries and exports.
"""

from datetime import date, datetime, timedelta, timezone
from typing import List, Optional, Tuple

from pydantic import BaseModel, Field

from edureports.database.models import SaleStatus
from edureports.reporting.errors import InvalidFilterError


def utc_now() -> datetime:
    """Naive UTC timestamp, matching the stored DateTime columns"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def window_start(now: datetime, days: int) -> datetime:
    """
    Start of a trailing window of `days` days ending at `now`.

    Records stamped at or after the returned instant fall inside the window,
    so a zero-day window only contains records stamped at or after `now`.
    """
    if days < 0:
        raise InvalidFilterError("period must be zero or a positive number of days")
    try:
        return now - timedelta(days=days)
    except OverflowError:
        raise InvalidFilterError(f"period of {days} days reaches beyond the earliest representable date") from None


class ReportFilters(BaseModel):
    """Filter set for sales and completion reports"""

    start_date: Optional[date] = None
    end_date: Optional[date] = None
    course_id: Optional[int] = None
    producer_id: Optional[int] = None
    status: Optional[SaleStatus] = Field(default=None, description="Restrict sale line items to one status")

    def validate_range(self) -> "ReportFilters":
        """Reject ranges whose start lies after their end"""
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise InvalidFilterError(
                f"startDate ({self.start_date.isoformat()}) must not be after endDate ({self.end_date.isoformat()})"
            )
        return self

    def date_bounds(self) -> Tuple[Optional[datetime], Optional[datetime]]:
        """
        Inclusive datetime bounds of the date range.

        The end date covers the whole day; a missing side stays open.
        """
        start = datetime.combine(self.start_date, datetime.min.time()) if self.start_date else None
        end = datetime.combine(self.end_date, datetime.max.time()) if self.end_date else None
        return start, end

    def describe(self) -> List[str]:
        """Human-readable summary of the applied filters"""
        lines = []
        if self.start_date and self.end_date:
            lines.append(f"Period: {self.start_date.isoformat()} to {self.end_date.isoformat()}")
        elif self.start_date:
            lines.append(f"Period: from {self.start_date.isoformat()}")
        elif self.end_date:
            lines.append(f"Period: until {self.end_date.isoformat()}")
        else:
            lines.append("Period: all records")
        if self.course_id is not None:
            lines.append(f"Course: {self.course_id}")
        if self.producer_id is not None:
            lines.append(f"Producer: {self.producer_id}")
        if self.status is not None:
            lines.append(f"Status: {self.status.value}")
        return lines
