"""
Report Formatter

Shapes aggregator output into:

- the JSON envelope `{success, data, summary?}` returned by every endpoint,
  with camelCase keys and every numeric field a finite number
- `ReportTable` structures (title, generation time, applied filters,
  columns, rows, totals row) consumed by the Excel and PDF renderers
"""

import math
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Sequence

from edureports.config import get_settings


# =============================================================================
# NUMBERS & ENVELOPE
# =============================================================================

def to_number(value: Any, digits: Optional[int] = 2) -> float:
    """
    Coerce an ORM/driver value to a finite float.

    Decimal, numeric strings and ints are parsed; None, NaN, infinities and
    unparsable strings become 0.0.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(Decimal(str(value)))
    except (InvalidOperation, ValueError):
        return 0.0
    if not math.isfinite(number):
        return 0.0
    return round(number, digits) if digits is not None else number


def to_count(value: Any) -> int:
    """Coerce a count to int (None becomes 0)"""
    return int(to_number(value, digits=None))


def iso(value: Optional[Any]) -> Optional[str]:
    """ISO-8601 string of a date/datetime, None passes through"""
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def envelope(data: Any, summary: Optional[Dict[str, Any]] = None, **extra: Any) -> Dict[str, Any]:
    """Success envelope shared by every JSON endpoint"""
    body = {"success": True, "data": data}
    if summary is not None:
        body["summary"] = summary
    body.update(extra)
    return body


def error_envelope(message: str, **extra: Any) -> Dict[str, Any]:
    """Failure envelope"""
    body = {"success": False, "error": message}
    body.update(extra)
    return body


# =============================================================================
# JSON SHAPERS
# =============================================================================

def format_course_sales(groups: List[Dict[str, Any]], orphaned: int) -> Dict[str, Any]:
    data = [
        {
            "courseId": group["course_id"],
            "courseTitle": group["course_title"],
            "producer": group["producer"],
            "totalSales": to_count(group["total_sales"]),
            "totalRevenue": to_number(group["total_revenue"]),
            "sales": [
                {
                    "id": sale["id"],
                    "user": sale["user"],
                    "amount": to_number(sale["amount"]),
                    "date": iso(sale["date"]),
                    "status": sale["status"],
                }
                for sale in group["sales"]
            ],
        }
        for group in groups
    ]
    summary = {
        "totalCourses": len(data),
        "totalSales": sum(course["totalSales"] for course in data),
        "totalRevenue": to_number(sum(group["total_revenue"] for group in groups)),
        "orphanedSales": orphaned,
    }
    return envelope(data, summary)


def format_producer_sales(groups: List[Dict[str, Any]], orphaned: int) -> Dict[str, Any]:
    data = [
        {
            "producerId": group["producer_id"],
            "producerName": group["producer_name"],
            "totalSales": to_count(group["total_sales"]),
            "totalRevenue": to_number(group["total_revenue"]),
            "courses": [
                {
                    "courseId": course["course_id"],
                    "courseTitle": course["course_title"],
                    "sales": to_count(course["sales"]),
                    "revenue": to_number(course["revenue"]),
                }
                for course in group["courses"]
            ],
        }
        for group in groups
    ]
    summary = {
        "totalProducers": len(data),
        "totalSales": sum(producer["totalSales"] for producer in data),
        "totalRevenue": to_number(sum(group["total_revenue"] for group in groups)),
        "orphanedSales": orphaned,
    }
    return envelope(data, summary)


def format_completion(rows: List[Dict[str, Any]]) -> Dict[str, Any]:
    data = [
        {
            "courseId": row["course_id"],
            "courseTitle": row["course_title"],
            "producer": row["producer"],
            "totalEnrolled": to_count(row["total_enrolled"]),
            "completed": to_count(row["completed"]),
            "inProgress": to_count(row["in_progress"]),
            "completionRate": to_number(row["completion_rate"]),
            "averageProgress": to_number(row["average_progress"]),
        }
        for row in rows
    ]
    enrolled = sum(course["totalEnrolled"] for course in data)
    completed = sum(course["completed"] for course in data)
    summary = {
        "totalCourses": len(data),
        "totalEnrolled": enrolled,
        "totalCompleted": completed,
        "overallCompletionRate": to_number(completed / enrolled * 100) if enrolled else 0.0,
    }
    return envelope(data, summary)


def format_series(series: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [
        {
            "period": point["period"],
            "revenue": to_number(point["revenue"]),
            "salesCount": to_count(point["sales_count"]),
        }
        for point in series
    ]


def format_kpis(
    snapshot: Dict[str, Any],
    period: int,
    sales_by_day: List[Dict[str, Any]],
    top_courses: List[Dict[str, Any]],
) -> Dict[str, Any]:
    kpis = {
        "totalRevenue": to_number(snapshot["total_revenue"]),
        "salesCount": to_count(snapshot["sales_count"]),
        "activeUsers": to_count(snapshot["active_users"]),
        "totalUsers": to_count(snapshot["total_users"]),
        "completionRate": to_number(snapshot["completion_rate"]),
        "completedCourses": to_count(snapshot["completed_courses"]),
        "period": period,
    }
    charts = {
        "salesByDay": [
            {
                "date": point["period"],
                "count": to_count(point["sales_count"]),
                "total": to_number(point["revenue"]),
            }
            for point in sales_by_day
        ],
        "topCourses": [
            {
                "courseId": course["course_id"],
                "courseTitle": course["course_title"],
                "salesCount": to_count(course["sales_count"]),
                "totalRevenue": to_number(course["total_revenue"]),
            }
            for course in top_courses
        ],
    }
    return envelope({"kpis": kpis, "charts": charts})


def format_realtime(counts: Dict[str, int], generated_at: datetime) -> Dict[str, Any]:
    return envelope({
        "sales24h": to_count(counts["sales"]),
        "activeUsers": to_count(counts["active_users"]),
        "newUsers24h": to_count(counts["new_users"]),
        "completions24h": to_count(counts["completions"]),
        "timestamp": iso(generated_at),
    })


def format_active_users(users: List[Dict[str, Any]], metrics: Dict[str, Any]) -> Dict[str, Any]:
    return envelope({
        "activeUsers": [
            {
                "id": user["id"],
                "name": user["name"],
                "email": user["email"],
                "status": user["status"],
                "lastActivity": iso(user["last_activity"]),
            }
            for user in users
        ],
        "metrics": {
            "totalUsers": to_count(metrics["total_users"]),
            "activeUsers": to_count(metrics["active_users"]),
            "inactiveUsers": to_count(metrics["inactive_users"]),
            "activityRate": to_number(metrics["activity_rate"]),
        },
    })


def format_instructor_courses(
    courses: List[Dict[str, Any]],
    summary: Dict[str, Any],
    instructor: Optional[Dict[str, Any]],
    filters: Dict[str, Any],
) -> Dict[str, Any]:
    data = [
        {
            "id": course["id"],
            "title": course["title"],
            "description": course["description"],
            "price": to_number(course["price"]),
            "category": course["category"],
            "level": course["level"],
            "durationHours": to_count(course["duration_hours"]),
            "status": course["status"],
            "active": course["status"] == "active",
            "metrics": {
                "salesCount": to_count(course["sales_count"]),
                "totalRevenue": to_number(course["total_revenue"]),
                "enrollments": to_count(course["enrollments"]),
                "avgProgress": to_number(course["avg_progress"]),
                "completedCount": to_count(course["completed_count"]),
            },
        }
        for course in courses
    ]
    return envelope(
        data,
        {
            "totalCourses": to_count(summary["total_courses"]),
            "totalSales": to_count(summary["total_sales"]),
            "totalRevenue": to_number(summary["total_revenue"]),
            "totalEnrollments": to_count(summary["total_enrollments"]),
        },
        instructor=instructor,
        filters=filters,
    )


# =============================================================================
# EXPORT TABLES
# =============================================================================

@dataclass
class Column:
    """Export column: header text, relative width, numeric alignment"""
    header: str
    width: int = 15
    numeric: bool = False


@dataclass
class ReportTable:
    """Tabular report handed to the spreadsheet and PDF renderers"""
    title: str
    slug: str
    generated_at: datetime
    filters: List[str]
    columns: List[Column]
    rows: List[List[Any]]
    totals: Optional[List[Any]] = None
    summary: List[str] = field(default_factory=list)
    empty_message: str = "No records match the selected filters."

    def cell_text(self, value: Any) -> str:
        """Display text of a cell"""
        reporting = get_settings().reporting
        if value is None:
            return ""
        if isinstance(value, datetime):
            return value.strftime(reporting.datetime_format)
        if isinstance(value, date):
            return value.strftime(reporting.date_format)
        if isinstance(value, float):
            return f"{value:,.2f}"
        return str(value)


def money(value: Any) -> str:
    """Currency text of an amount"""
    return f"{get_settings().reporting.currency_symbol}{to_number(value):,.2f}"


STATUS_LABELS = {
    "completed": "Completed",
    "pending": "Pending",
    "cancelled": "Cancelled",
    "refunded": "Refunded",
}


def status_label(status: Optional[str]) -> str:
    if not status:
        return "No status"
    return STATUS_LABELS.get(status, status)


def sales_table(
    lines: Sequence[Dict[str, Any]],
    filter_lines: List[str],
    generated_at: datetime,
) -> ReportTable:
    """Flat sales listing, one row per sale, totals of revenue sales"""
    reporting = get_settings().reporting
    rows = []
    revenue_total = 0.0
    revenue_count = 0
    for line in lines:
        amount = to_number(line["amount"])
        if line["status"] == reporting.revenue_status:
            revenue_total += amount
            revenue_count += 1
        rows.append([
            line["sale_id"],
            line["sale_date"],
            line["user_name"] or reporting.unknown_user_label,
            line["user_email"] or "",
            line["course_title"] or reporting.untitled_course_label,
            line["producer_name"] or reporting.unassigned_producer_label,
            amount,
            status_label(line["status"]),
        ])

    return ReportTable(
        title="Sales Report",
        slug="sales-report",
        generated_at=generated_at,
        filters=filter_lines,
        columns=[
            Column("Sale ID", 10),
            Column("Date", 18),
            Column("User", 25),
            Column("User Email", 30),
            Column("Course", 30),
            Column("Producer", 25),
            Column("Amount", 12, numeric=True),
            Column("Status", 12),
        ],
        rows=rows,
        totals=["", "", "", "", "", f"TOTAL ({status_label(reporting.revenue_status).lower()})", to_number(revenue_total), f"{revenue_count} sales"],
        summary=[
            f"Sales listed: {len(rows)}",
            f"{status_label(reporting.revenue_status)} sales: {revenue_count}",
            f"Revenue: {money(revenue_total)}",
        ],
        empty_message="No sales match the selected filters.",
    )


def users_table(
    users: Sequence[Dict[str, Any]],
    period: int,
    metrics: Dict[str, Any],
    generated_at: datetime,
) -> ReportTable:
    """Active users with purchase totals"""
    rows = []
    for user in users:
        rows.append([
            user["id"],
            user["name"],
            user["email"],
            (user["status"] or "").capitalize(),
            user["last_activity"],
            user["registered_at"].date() if isinstance(user["registered_at"], datetime) else user["registered_at"],
            to_count(user["total_purchases"]),
            to_number(user["total_spent"]),
        ])

    return ReportTable(
        title="Active Users Report",
        slug="active-users",
        generated_at=generated_at,
        filters=[f"Period: last {period} days"],
        columns=[
            Column("ID", 8),
            Column("Name", 25),
            Column("Email", 30),
            Column("Status", 12),
            Column("Last Activity", 18),
            Column("Registered", 14),
            Column("Purchases", 12, numeric=True),
            Column("Total Spent", 14, numeric=True),
        ],
        rows=rows,
        totals=["", "TOTAL", "", "", "", "", sum(r[6] for r in rows), to_number(sum(r[7] for r in rows))],
        summary=[
            f"Total users: {to_count(metrics['total_users'])}",
            f"Active users: {to_count(metrics['active_users'])}",
            f"Inactive users: {to_count(metrics['inactive_users'])}",
            f"Activity rate: {to_number(metrics['activity_rate']):.2f}%",
        ],
        empty_message="No users were active in the selected period.",
    )


def completion_table(
    rows: Sequence[Dict[str, Any]],
    filter_lines: List[str],
    generated_at: datetime,
) -> ReportTable:
    """Completion metrics per course"""
    table_rows = [
        [
            row["course_id"],
            row["course_title"],
            row["producer"],
            to_count(row["total_enrolled"]),
            to_count(row["completed"]),
            to_count(row["in_progress"]),
            to_number(row["average_progress"]),
            to_number(row["completion_rate"]),
        ]
        for row in rows
    ]
    enrolled = sum(r[3] for r in table_rows)
    completed = sum(r[4] for r in table_rows)
    overall = to_number(completed / enrolled * 100) if enrolled else 0.0

    return ReportTable(
        title="Course Completion Report",
        slug="course-completion",
        generated_at=generated_at,
        filters=filter_lines,
        columns=[
            Column("Course ID", 10),
            Column("Course", 30),
            Column("Producer", 25),
            Column("Enrolled", 10, numeric=True),
            Column("Completed", 11, numeric=True),
            Column("In Progress", 12, numeric=True),
            Column("Avg Progress %", 15, numeric=True),
            Column("Completion %", 14, numeric=True),
        ],
        rows=table_rows,
        totals=["", "TOTAL", "", enrolled, completed, enrolled - completed, "", overall],
        summary=[
            f"Courses: {len(table_rows)}",
            f"Enrollments: {enrolled}",
            f"Overall completion rate: {overall:.2f}%",
        ],
        empty_message="No courses match the selected filters.",
    )
