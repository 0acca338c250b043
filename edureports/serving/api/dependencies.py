"""
Shared request dependencies
"""

from datetime import date
from typing import Optional

from fastapi import Query

from edureports.database.models import SaleStatus
from edureports.reporting.filters import ReportFilters


def report_filters(
    start_date: Optional[date] = Query(default=None, alias="startDate", description="YYYY-MM-DD, inclusive"),
    end_date: Optional[date] = Query(default=None, alias="endDate", description="YYYY-MM-DD, inclusive"),
    course_id: Optional[int] = Query(default=None, alias="courseId"),
    producer_id: Optional[int] = Query(default=None, alias="producerId"),
    status: Optional[SaleStatus] = Query(default=None, description="Only list sales with this status"),
) -> ReportFilters:
    """Report filters from camelCase query parameters"""
    return ReportFilters(
        start_date=start_date,
        end_date=end_date,
        course_id=course_id,
        producer_id=producer_id,
        status=status,
    ).validate_range()
