"""
Report Data Access

Scoped queries over sales, users, courses and enrollments. Every function
receives the session it runs on; none of them keeps state between calls.

Functions return plain row dicts (or raw scalar aggregates) and leave
grouping and number formatting to the aggregator and formatter.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

import structlog
from sqlalchemy import select, func, and_
from sqlalchemy.ext.asyncio import AsyncSession

from edureports.config import get_settings
from edureports.database.models import (
    Course,
    CourseProgress,
    CourseStatus,
    Producer,
    Sale,
    SaleStatus,
    User,
)
from edureports.reporting.filters import ReportFilters

logger = structlog.get_logger(__name__)


def revenue_status() -> SaleStatus:
    """Sale status counted as revenue"""
    return SaleStatus(get_settings().reporting.revenue_status)


def _value(member: Any) -> Any:
    return member.value if isinstance(member, Enum) else member


def _sale_conditions(filters: ReportFilters) -> list:
    """WHERE clauses for the sale-level filters"""
    start, end = filters.date_bounds()
    conditions = []
    if start is not None:
        conditions.append(Sale.sale_date >= start)
    if end is not None:
        conditions.append(Sale.sale_date <= end)
    if filters.course_id is not None:
        conditions.append(Sale.course_id == filters.course_id)
    if filters.status is not None:
        conditions.append(Sale.status == filters.status)
    return conditions


# =============================================================================
# SALES
# =============================================================================

async def fetch_sale_lines(db: AsyncSession, filters: ReportFilters) -> List[Dict[str, Any]]:
    """
    Sale rows joined with course, producer and buyer, newest first.

    Sales whose course no longer resolves are returned with
    `course_resolved=False` so callers can count them; a producer filter
    excludes them since they cannot belong to any producer.
    """
    stmt = (
        select(
            Sale.id.label("sale_id"),
            Sale.course_id,
            Sale.amount,
            Sale.status,
            Sale.sale_date,
            Course.id.label("resolved_course_id"),
            Course.title.label("course_title"),
            Producer.id.label("producer_id"),
            Producer.name.label("producer_name"),
            User.name.label("user_name"),
            User.email.label("user_email"),
        )
        .select_from(Sale)
        .outerjoin(Course, Sale.course_id == Course.id)
        .outerjoin(Producer, Course.producer_id == Producer.id)
        .outerjoin(User, Sale.user_id == User.id)
    )

    conditions = _sale_conditions(filters)
    if filters.producer_id is not None:
        conditions.append(Course.producer_id == filters.producer_id)
    if conditions:
        stmt = stmt.where(and_(*conditions))

    stmt = stmt.order_by(Sale.sale_date.desc(), Sale.id.desc())

    result = await db.execute(stmt)
    lines = [
        {
            "sale_id": row.sale_id,
            "course_id": row.course_id,
            "course_resolved": row.resolved_course_id is not None,
            "course_title": row.course_title,
            "producer_id": row.producer_id,
            "producer_name": row.producer_name,
            "user_name": row.user_name,
            "user_email": row.user_email,
            "amount": float(row.amount or 0),
            "status": _value(row.status),
            "sale_date": row.sale_date,
        }
        for row in result.all()
    ]

    logger.debug("Sale lines fetched", rows=len(lines), filters=filters.model_dump(exclude_none=True))
    return lines


async def fetch_revenue_points(db: AsyncSession, since: datetime) -> List[Dict[str, Any]]:
    """Timestamp and amount of every revenue sale since `since`"""
    result = await db.execute(
        select(Sale.sale_date, Sale.amount)
        .where(
            and_(
                Sale.status == revenue_status(),
                Sale.sale_date >= since,
            )
        )
        .order_by(Sale.sale_date)
    )
    return [
        {"sale_date": row.sale_date, "amount": float(row.amount or 0)}
        for row in result.all()
    ]


async def fetch_top_courses(db: AsyncSession, since: datetime, limit: int) -> List[Dict[str, Any]]:
    """Best-selling courses by revenue-sale count since `since`"""
    sales_count = func.count(Sale.id).label("sales_count")
    total_revenue = func.sum(Sale.amount).label("total_revenue")

    result = await db.execute(
        select(
            Course.id.label("course_id"),
            Course.title.label("course_title"),
            sales_count,
            total_revenue,
        )
        .select_from(Sale)
        .join(Course, Sale.course_id == Course.id)
        .where(
            and_(
                Sale.status == revenue_status(),
                Sale.sale_date >= since,
            )
        )
        .group_by(Course.id, Course.title)
        .order_by(sales_count.desc(), total_revenue.desc(), Course.id)
        .limit(limit)
    )
    return [row._asdict() for row in result.all()]


# =============================================================================
# KPIs
# =============================================================================

async def fetch_kpi_snapshot(db: AsyncSession, since: datetime) -> Dict[str, Any]:
    """
    Scalar KPIs for the window starting at `since`.

    completion_rate is the average progress across every enrollment,
    regardless of the window.
    """
    revenue = await db.execute(
        select(
            func.sum(Sale.amount).label("total_revenue"),
            func.count(Sale.id).label("sales_count"),
        ).where(
            and_(
                Sale.status == revenue_status(),
                Sale.sale_date >= since,
            )
        )
    )
    revenue_row = revenue.one()

    active_users = await db.scalar(
        select(func.count(User.id)).where(User.last_activity >= since)
    )
    total_users = await db.scalar(select(func.count(User.id)))

    completed_courses = await db.scalar(
        select(func.count(CourseProgress.id)).where(
            and_(
                CourseProgress.completed,
                CourseProgress.completed_at >= since,
            )
        )
    )
    avg_progress = await db.scalar(select(func.avg(CourseProgress.progress)))

    return {
        "total_revenue": revenue_row.total_revenue,
        "sales_count": revenue_row.sales_count,
        "active_users": active_users,
        "total_users": total_users,
        "completed_courses": completed_courses,
        "completion_rate": avg_progress,
    }


async def fetch_realtime_counts(db: AsyncSession, since: datetime) -> Dict[str, int]:
    """Activity counters for the short realtime window"""
    sales = await db.scalar(
        select(func.count(Sale.id)).where(
            and_(Sale.status == revenue_status(), Sale.sale_date >= since)
        )
    )
    active_users = await db.scalar(
        select(func.count(User.id)).where(User.last_activity >= since)
    )
    new_users = await db.scalar(
        select(func.count(User.id)).where(User.registered_at >= since)
    )
    completions = await db.scalar(
        select(func.count(CourseProgress.id)).where(CourseProgress.completed_at >= since)
    )
    return {
        "sales": sales or 0,
        "active_users": active_users or 0,
        "new_users": new_users or 0,
        "completions": completions or 0,
    }


# =============================================================================
# USERS
# =============================================================================

async def count_users(db: AsyncSession) -> int:
    """Total number of users"""
    return await db.scalar(select(func.count(User.id))) or 0


async def fetch_active_users(db: AsyncSession, since: datetime) -> List[Dict[str, Any]]:
    """Users whose last activity falls in the window, most recent first"""
    result = await db.execute(
        select(User)
        .where(User.last_activity >= since)
        .order_by(User.last_activity.desc(), User.id)
    )
    return [
        {
            "id": user.id,
            "name": user.name,
            "email": user.email,
            "status": _value(user.status),
            "last_activity": user.last_activity,
        }
        for user in result.scalars().all()
    ]


async def fetch_user_purchase_rows(db: AsyncSession, since: datetime) -> List[Dict[str, Any]]:
    """Active users with their revenue-sale count and total spent"""
    purchases = func.count(Sale.id).label("total_purchases")
    spent = func.sum(Sale.amount).label("total_spent")

    result = await db.execute(
        select(
            User.id,
            User.name,
            User.email,
            User.status,
            User.last_activity,
            User.registered_at,
            purchases,
            spent,
        )
        .select_from(User)
        .outerjoin(
            Sale,
            and_(Sale.user_id == User.id, Sale.status == revenue_status()),
        )
        .where(User.last_activity >= since)
        .group_by(
            User.id,
            User.name,
            User.email,
            User.status,
            User.last_activity,
            User.registered_at,
        )
        .order_by(User.last_activity.desc(), User.id)
    )
    rows = []
    for row in result.all():
        data = row._asdict()
        data["status"] = _value(data["status"])
        rows.append(data)
    return rows


# =============================================================================
# ENROLLMENTS
# =============================================================================

async def fetch_enrollment_rows(
    db: AsyncSession,
    course_id: Optional[int] = None,
    producer_id: Optional[int] = None,
) -> List[Dict[str, Any]]:
    """
    One row per enrollment, joined with its course and producer.

    Courses without enrollments yield a single row with a null
    progress_id; enrollments of unresolvable courses are not returned.
    """
    stmt = (
        select(
            Course.id.label("course_id"),
            Course.title.label("course_title"),
            Producer.name.label("producer_name"),
            CourseProgress.id.label("progress_id"),
            CourseProgress.progress,
            CourseProgress.completed_at,
        )
        .select_from(Course)
        .outerjoin(CourseProgress, CourseProgress.course_id == Course.id)
        .outerjoin(Producer, Course.producer_id == Producer.id)
    )

    conditions = []
    if course_id is not None:
        conditions.append(Course.id == course_id)
    if producer_id is not None:
        conditions.append(Course.producer_id == producer_id)
    if conditions:
        stmt = stmt.where(and_(*conditions))

    result = await db.execute(stmt.order_by(Course.id, CourseProgress.id))
    return [
        {
            "course_id": row.course_id,
            "course_title": row.course_title,
            "producer_name": row.producer_name,
            "progress_id": row.progress_id,
            "progress": float(row.progress) if row.progress is not None else None,
            "completed_at": row.completed_at,
        }
        for row in result.all()
    ]


# =============================================================================
# INSTRUCTORS
# =============================================================================

async def fetch_producer(db: AsyncSession, producer_id: int) -> Optional[Dict[str, Any]]:
    """Producer by id, or None when it does not exist"""
    producer = await db.get(Producer, producer_id)
    if producer is None:
        return None
    return {
        "id": producer.id,
        "name": producer.name,
        "email": producer.email,
        "status": _value(producer.status),
    }


async def fetch_instructor_courses(
    db: AsyncSession,
    instructor_id: int,
    filters: ReportFilters,
    include_inactive: bool = False,
    category: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """
    Courses owned by one producer with per-course sales and enrollment metrics.

    The date range scopes sales by sale date and enrollments by enrollment
    date. Inactive and draft courses are only listed when requested.
    """
    start, end = filters.date_bounds()

    sale_conditions = [Sale.status == revenue_status()]
    progress_conditions = []
    if start is not None:
        sale_conditions.append(Sale.sale_date >= start)
        progress_conditions.append(CourseProgress.enrolled_at >= start)
    if end is not None:
        sale_conditions.append(Sale.sale_date <= end)
        progress_conditions.append(CourseProgress.enrolled_at <= end)

    sales_sq = (
        select(
            Sale.course_id.label("course_id"),
            func.count(Sale.id).label("sales_count"),
            func.sum(Sale.amount).label("total_revenue"),
        )
        .where(and_(*sale_conditions))
        .group_by(Sale.course_id)
        .subquery()
    )

    progress_stmt = select(
        CourseProgress.course_id.label("course_id"),
        func.count(CourseProgress.id).label("enrollments"),
        func.avg(CourseProgress.progress).label("avg_progress"),
        func.count(CourseProgress.completed_at).label("completed_count"),
    )
    if progress_conditions:
        progress_stmt = progress_stmt.where(and_(*progress_conditions))
    progress_sq = progress_stmt.group_by(CourseProgress.course_id).subquery()

    conditions = [Course.producer_id == instructor_id]
    if not include_inactive:
        conditions.append(Course.status == CourseStatus.ACTIVE)
    if category:
        conditions.append(Course.category == category)

    result = await db.execute(
        select(
            Course.id,
            Course.title,
            Course.description,
            Course.price,
            Course.category,
            Course.level,
            Course.duration_hours,
            Course.status,
            sales_sq.c.sales_count,
            sales_sq.c.total_revenue,
            progress_sq.c.enrollments,
            progress_sq.c.avg_progress,
            progress_sq.c.completed_count,
        )
        .select_from(Course)
        .outerjoin(sales_sq, sales_sq.c.course_id == Course.id)
        .outerjoin(progress_sq, progress_sq.c.course_id == Course.id)
        .where(and_(*conditions))
        .order_by(Course.title, Course.id)
    )
    rows = []
    for row in result.all():
        data = row._asdict()
        data["status"] = _value(data["status"])
        rows.append(data)

    logger.debug("Instructor courses fetched", instructor_id=instructor_id, rows=len(rows))
    return rows
