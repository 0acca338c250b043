"""
Report Endpoints

Sales grouped by course and producer, user activity, course completion and
the per-instructor course report.
"""

from datetime import date
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from edureports.config import get_settings
from edureports.database.connection import get_db_dependency
from edureports.reporting import aggregator, formatter, queries
from edureports.reporting.filters import ReportFilters, utc_now, window_start
from edureports.serving.api.dependencies import report_filters

router = APIRouter()
logger = structlog.get_logger(__name__)


@router.get("/sales-by-course")
async def get_sales_by_course(
    filters: ReportFilters = Depends(report_filters),
    db: AsyncSession = Depends(get_db_dependency),
) -> Dict[str, Any]:
    """
    Sales grouped by course.

    Totals count revenue sales only; line items list every sale matching
    the filters. Sales of deleted courses are reported in
    `summary.orphanedSales`.
    """
    lines = await queries.fetch_sale_lines(db, filters)
    groups, orphaned = aggregator.sales_by_course(lines)
    return formatter.format_course_sales(groups, orphaned)


@router.get("/sales-by-producer")
async def get_sales_by_producer(
    filters: ReportFilters = Depends(report_filters),
    db: AsyncSession = Depends(get_db_dependency),
) -> Dict[str, Any]:
    """Sales grouped by producer with a per-course breakdown."""
    lines = await queries.fetch_sale_lines(db, filters)
    groups, orphaned = aggregator.sales_by_producer(lines)
    return formatter.format_producer_sales(groups, orphaned)


@router.get("/active-users")
async def get_active_users(
    period: Optional[int] = Query(default=None, description="Trailing window in days"),
    db: AsyncSession = Depends(get_db_dependency),
) -> Dict[str, Any]:
    days = get_settings().reporting.default_period_days if period is None else period
    since = window_start(utc_now(), days)

    users = await queries.fetch_active_users(db, since)
    total = await queries.count_users(db)
    return formatter.format_active_users(users, aggregator.activity_metrics(total, len(users)))


@router.get("/completion-rate")
async def get_completion_rate(
    course_id: Optional[int] = Query(default=None, alias="courseId"),
    producer_id: Optional[int] = Query(default=None, alias="producerId"),
    db: AsyncSession = Depends(get_db_dependency),
) -> Dict[str, Any]:
    """Completion metrics per course; an enrollment is completed once it has a completion date."""
    rows = await queries.fetch_enrollment_rows(db, course_id=course_id, producer_id=producer_id)
    return formatter.format_completion(aggregator.completion_by_course(rows))


@router.get("/courses-by-instructor")
async def get_courses_by_instructor(
    instructor_id: int = Query(alias="instructorId"),
    include_inactive: bool = Query(default=False, alias="includeInactive"),
    category: Optional[str] = Query(default=None),
    start_date: Optional[date] = Query(default=None, alias="startDate"),
    end_date: Optional[date] = Query(default=None, alias="endDate"),
    db: AsyncSession = Depends(get_db_dependency),
) -> Dict[str, Any]:
    """
    Courses of one instructor with sales and enrollment metrics.

    An unknown instructor yields an empty list with `instructor: null`.
    """
    filters = ReportFilters(start_date=start_date, end_date=end_date).validate_range()

    instructor = await queries.fetch_producer(db, instructor_id)
    courses = []
    if instructor is not None:
        courses = await queries.fetch_instructor_courses(
            db,
            instructor_id,
            filters,
            include_inactive=include_inactive,
            category=category,
        )

    echo = {
        "instructorId": instructor_id,
        "includeInactive": include_inactive,
        "category": category,
        "startDate": formatter.iso(start_date),
        "endDate": formatter.iso(end_date),
    }
    logger.debug("Instructor courses fetched", instructor_id=instructor_id, courses=len(courses))
    return formatter.format_instructor_courses(
        courses,
        aggregator.instructor_summary(courses),
        instructor,
        echo,
    )
