"""
Unit Tests - Report Data Access
"""
from datetime import timedelta

import pytest
from sqlalchemy import update

from edureports.database.models import Course, CourseStatus
from edureports.reporting import queries
from edureports.reporting.filters import ReportFilters
from edureports.reporting.formatter import to_number


async def test_sale_lines_newest_first_with_orphan(test_db, scenario):
    lines = await queries.fetch_sale_lines(test_db, ReportFilters())

    assert len(lines) == 7
    dates = [line["sale_date"] for line in lines]
    assert dates == sorted(dates, reverse=True)

    orphan = next(line for line in lines if line["course_id"] == 999)
    assert orphan["course_resolved"] is False
    assert orphan["course_title"] is None


async def test_producer_filter_excludes_orphans(test_db, scenario):
    filters = ReportFilters(producer_id=scenario["producers"]["carlos"])
    lines = await queries.fetch_sale_lines(test_db, filters)

    assert [line["amount"] for line in lines] == [50.0, 50.0]
    assert all(line["course_resolved"] for line in lines)


async def test_kpi_snapshot(test_db, scenario):
    since = scenario["now"] - timedelta(days=30)
    snapshot = await queries.fetch_kpi_snapshot(test_db, since)

    assert to_number(snapshot["total_revenue"]) == 500.0
    assert snapshot["sales_count"] == 5
    assert snapshot["active_users"] == 2
    assert snapshot["total_users"] == 3
    assert snapshot["completed_courses"] == 2
    assert to_number(snapshot["completion_rate"]) == 85.0


async def test_top_courses_ordered_by_count_then_revenue(test_db, scenario):
    since = scenario["now"] - timedelta(days=30)
    top = await queries.fetch_top_courses(test_db, since, limit=5)

    courses = scenario["courses"]
    assert [row["course_id"] for row in top] == [courses["react"], courses["python"], courses["node"]]


async def test_enrollment_rows_include_empty_course(test_db, scenario):
    rows = await queries.fetch_enrollment_rows(test_db)

    python_rows = [row for row in rows if row["course_id"] == scenario["courses"]["python"]]
    assert len(python_rows) == 1
    assert python_rows[0]["progress_id"] is None
    assert len(rows) == 5


async def test_instructor_courses(test_db, scenario):
    courses = await queries.fetch_instructor_courses(
        test_db, scenario["producers"]["ana"], ReportFilters()
    )

    assert [course["title"] for course in courses] == ["Advanced Node.js", "React Fundamentals"]
    react = courses[1]
    assert react["sales_count"] == 2
    assert to_number(react["total_revenue"]) == 200.0
    assert react["enrollments"] == 3
    assert react["completed_count"] == 1


async def test_instructor_courses_skip_inactive_unless_requested(test_db, scenario):
    await test_db.execute(
        update(Course).where(Course.id == scenario["courses"]["node"]).values(status=CourseStatus.DRAFT)
    )
    await test_db.commit()
    ana = scenario["producers"]["ana"]

    active = await queries.fetch_instructor_courses(test_db, ana, ReportFilters())
    everything = await queries.fetch_instructor_courses(test_db, ana, ReportFilters(), include_inactive=True)

    assert [course["title"] for course in active] == ["React Fundamentals"]
    assert [course["title"] for course in everything] == ["Advanced Node.js", "React Fundamentals"]
    assert everything[0]["status"] == "draft"


async def test_instructor_courses_date_range(test_db, scenario):
    since = (scenario["now"] - timedelta(days=2)).date()
    courses = await queries.fetch_instructor_courses(
        test_db, scenario["producers"]["ana"], ReportFilters(start_date=since)
    )
    node, react = courses

    # React sold 1 and 3 days ago, all enrollments are 20 days old
    assert react["sales_count"] == 1
    assert to_number(react["total_revenue"]) == 100.0
    assert not react["enrollments"]
    assert node["sales_count"] == 1
    assert not node["enrollments"]


async def test_unknown_producer(test_db, scenario):
    assert await queries.fetch_producer(test_db, 12345) is None


@pytest.mark.parametrize("days, expected", [(30, 2), (90, 3)])
async def test_active_users_window(test_db, scenario, days, expected):
    users = await queries.fetch_active_users(test_db, scenario["now"] - timedelta(days=days))
    assert len(users) == expected
