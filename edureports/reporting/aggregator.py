"""
Report Aggregator

Groups flat sale and enrollment rows into nested summaries and computes the
derived metrics (totals, rates, averages, time buckets).

Every function takes the row dicts produced by `reporting.queries`, loads
them into a polars frame with a fixed schema (so empty input yields empty
output) and returns snake_case dicts. Money is accumulated as float.
"""

from typing import Any, Dict, List, Optional, Tuple

import polars as pl
import structlog

from edureports.config import get_settings
from edureports.reporting.errors import InvalidFilterError

logger = structlog.get_logger(__name__)


SALE_LINE_SCHEMA = {
    "sale_id": pl.Int64,
    "course_id": pl.Int64,
    "course_resolved": pl.Boolean,
    "course_title": pl.String,
    "producer_id": pl.Int64,
    "producer_name": pl.String,
    "user_name": pl.String,
    "user_email": pl.String,
    "amount": pl.Float64,
    "status": pl.String,
    "sale_date": pl.Datetime("us"),
}

ENROLLMENT_SCHEMA = {
    "course_id": pl.Int64,
    "course_title": pl.String,
    "producer_name": pl.String,
    "progress_id": pl.Int64,
    "progress": pl.Float64,
    "completed_at": pl.Datetime("us"),
}

REVENUE_POINT_SCHEMA = {
    "sale_date": pl.Datetime("us"),
    "amount": pl.Float64,
}

# groupBy -> (truncation interval, bucket label format)
TIME_BUCKETS = {
    "hour": ("1h", "%Y-%m-%d %H:00"),
    "day": ("1d", "%Y-%m-%d"),
    "week": ("1w", "%G-W%V"),
    "month": ("1mo", "%Y-%m"),
}


def _frame(rows: List[Dict[str, Any]], schema: Dict[str, pl.DataType]) -> pl.DataFrame:
    return pl.from_dicts(rows, schema=schema) if rows else pl.DataFrame(schema=schema)


def _resolved_sales(lines: List[Dict[str, Any]]) -> Tuple[pl.DataFrame, int]:
    """Sale frame with placeholder labels applied, and the orphan count"""
    reporting = get_settings().reporting
    frame = _frame(lines, SALE_LINE_SCHEMA)

    orphaned = frame.filter(~pl.col("course_resolved")).height
    if orphaned:
        logger.warning("Dropping sales with unresolvable course", orphaned=orphaned)

    resolved = frame.filter(pl.col("course_resolved")).with_columns(
        pl.col("course_title").fill_null(reporting.untitled_course_label),
        pl.col("producer_name").fill_null(reporting.unassigned_producer_label),
        pl.col("user_name").fill_null(reporting.unknown_user_label),
    )
    return resolved, orphaned


def _is_revenue(revenue_status: Optional[str]) -> pl.Expr:
    return pl.col("status") == (revenue_status or get_settings().reporting.revenue_status)


def sales_by_course(
    lines: List[Dict[str, Any]],
    revenue_status: Optional[str] = None,
) -> Tuple[List[Dict[str, Any]], int]:
    """
    Group sale lines by course.

    Each group carries the producer label, the count and sum of revenue
    sales, and every line item (any status, newest first). Groups are
    ordered by revenue, then course id.

    Returns:
        (groups, orphaned) where orphaned counts the dropped sales whose
        course could not be resolved
    """
    resolved, orphaned = _resolved_sales(lines)
    is_revenue = _is_revenue(revenue_status)

    grouped = (
        resolved
        .sort(["sale_date", "sale_id"], descending=True)
        .group_by("course_id", maintain_order=True)
        .agg(
            pl.col("course_title").first(),
            pl.col("producer_name").first().alias("producer"),
            is_revenue.sum().cast(pl.Int64).alias("total_sales"),
            pl.col("amount").filter(is_revenue).sum().alias("total_revenue"),
            pl.struct(
                pl.col("sale_id").alias("id"),
                pl.col("user_name").alias("user"),
                pl.col("amount"),
                pl.col("sale_date").alias("date"),
                pl.col("status"),
            ).alias("sales"),
        )
        .sort(["total_revenue", "course_id"], descending=[True, False])
    )
    return grouped.to_dicts(), orphaned


def sales_by_producer(
    lines: List[Dict[str, Any]],
    revenue_status: Optional[str] = None,
) -> Tuple[List[Dict[str, Any]], int]:
    """
    Group sale lines by producer, with a nested per-course breakdown.

    Courses without producer are collected under a null producer id with
    the placeholder label.

    Returns:
        (groups, orphaned)
    """
    resolved, orphaned = _resolved_sales(lines)
    is_revenue = _is_revenue(revenue_status)

    per_course = (
        resolved
        .group_by(["producer_id", "producer_name", "course_id"], maintain_order=True)
        .agg(
            pl.col("course_title").first(),
            is_revenue.sum().cast(pl.Int64).alias("sales"),
            pl.col("amount").filter(is_revenue).sum().alias("revenue"),
        )
        .sort(["revenue", "course_id"], descending=[True, False])
    )

    grouped = (
        per_course
        .group_by(["producer_id", "producer_name"], maintain_order=True)
        .agg(
            pl.col("sales").sum().alias("total_sales"),
            pl.col("revenue").sum().alias("total_revenue"),
            pl.struct(
                pl.col("course_id"),
                pl.col("course_title"),
                pl.col("sales"),
                pl.col("revenue"),
            ).alias("courses"),
        )
        .sort(["total_revenue", "producer_id"], descending=[True, False], nulls_last=True)
    )
    return grouped.to_dicts(), orphaned


def completion_by_course(rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Completion metrics per course.

    An enrollment counts as completed when it has a completion timestamp,
    whatever its progress value. Courses without enrollments report zeros.
    """
    reporting = get_settings().reporting
    frame = _frame(rows, ENROLLMENT_SCHEMA).with_columns(
        pl.col("course_title").fill_null(reporting.untitled_course_label),
        pl.col("producer_name").fill_null(reporting.unassigned_producer_label),
    )

    enrolled = pl.col("progress_id").is_not_null()
    completed = enrolled & pl.col("completed_at").is_not_null()

    grouped = (
        frame
        .group_by("course_id", maintain_order=True)
        .agg(
            pl.col("course_title").first(),
            pl.col("producer_name").first().alias("producer"),
            enrolled.sum().cast(pl.Int64).alias("total_enrolled"),
            completed.sum().cast(pl.Int64).alias("completed"),
            pl.col("progress").mean().fill_null(0.0).alias("average_progress"),
        )
        .with_columns(
            (pl.col("total_enrolled") - pl.col("completed")).alias("in_progress"),
            pl.when(pl.col("total_enrolled") > 0)
            .then(pl.col("completed") / pl.col("total_enrolled") * 100)
            .otherwise(0.0)
            .alias("completion_rate"),
        )
        .sort("course_id")
    )
    return grouped.to_dicts()


def revenue_series(points: List[Dict[str, Any]], group_by: str = "day") -> List[Dict[str, Any]]:
    """
    Revenue time series bucketed by hour, day, ISO week or month.

    Buckets are unique and ascending; empty buckets are not emitted.
    """
    if group_by not in TIME_BUCKETS:
        raise InvalidFilterError(f"groupBy must be one of: {list(TIME_BUCKETS)}")
    every, label = TIME_BUCKETS[group_by]

    series = (
        _frame(points, REVENUE_POINT_SCHEMA)
        .with_columns(pl.col("sale_date").dt.truncate(every).alias("bucket"))
        .group_by("bucket")
        .agg(
            pl.col("amount").sum().alias("revenue"),
            pl.len().cast(pl.Int64).alias("sales_count"),
        )
        .sort("bucket")
        .with_columns(pl.col("bucket").dt.strftime(label).alias("period"))
        .select(["period", "revenue", "sales_count"])
    )
    return series.to_dicts()


def activity_metrics(total_users: int, active_users: int) -> Dict[str, Any]:
    """Active/inactive split and activity rate in percent"""
    rate = active_users / total_users * 100 if total_users > 0 else 0.0
    return {
        "total_users": total_users,
        "active_users": active_users,
        "inactive_users": total_users - active_users,
        "activity_rate": rate,
    }


def instructor_summary(courses: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Totals across an instructor's course rows"""
    return {
        "total_courses": len(courses),
        "total_sales": sum(int(c.get("sales_count") or 0) for c in courses),
        "total_revenue": sum(float(c.get("total_revenue") or 0) for c in courses),
        "total_enrollments": sum(int(c.get("enrollments") or 0) for c in courses),
    }
