"""
Unit Tests - Report Aggregator
"""
from datetime import datetime, timedelta

import pytest

from edureports.reporting.aggregator import (
    activity_metrics,
    completion_by_course,
    instructor_summary,
    revenue_series,
    sales_by_course,
    sales_by_producer,
)
from edureports.reporting.errors import InvalidFilterError

BASE = datetime(2025, 1, 10, 12, 0, 0)


def line(sale_id, course_id, amount, status="completed", days=0, producer_id=1,
         producer_name="Ana Garcia", course_title=None, resolved=True, user="Maria"):
    return {
        "sale_id": sale_id,
        "course_id": course_id,
        "course_resolved": resolved,
        "course_title": course_title if course_title is not None else (f"Course {course_id}" if resolved else None),
        "producer_id": producer_id if resolved else None,
        "producer_name": producer_name if resolved else None,
        "user_name": user,
        "user_email": f"{user.lower()}@example.com" if user else None,
        "amount": amount,
        "status": status,
        "sale_date": BASE - timedelta(days=days),
    }


@pytest.fixture
def lines():
    return [
        line(1, 1, 100.0, days=1),
        line(2, 1, 100.0, days=3),
        line(3, 2, 200.0, days=2),
        line(4, 3, 50.0, days=5, producer_id=2, producer_name="Carlos Lopez"),
        line(5, 3, 50.0, days=10, producer_id=2, producer_name="Carlos Lopez"),
        line(6, 1, 80.0, status="pending", days=4),
        line(7, 999, 30.0, days=6, resolved=False),
    ]


class TestSalesByCourse:
    """Tests for sales_by_course"""

    def test_course_revenue_partitions_total(self, lines):
        groups, _ = sales_by_course(lines)

        expected = sum(l["amount"] for l in lines if l["course_resolved"] and l["status"] == "completed")
        assert sum(g["total_revenue"] for g in groups) == pytest.approx(expected)
        assert expected == pytest.approx(500.0)

    def test_orphans_dropped_and_counted(self, lines):
        groups, orphaned = sales_by_course(lines)

        assert orphaned == 1
        assert 999 not in [g["course_id"] for g in groups]

    def test_line_items_keep_every_status(self, lines):
        groups, _ = sales_by_course(lines)
        course_1 = next(g for g in groups if g["course_id"] == 1)

        assert course_1["total_sales"] == 2
        assert course_1["total_revenue"] == pytest.approx(200.0)
        assert [s["id"] for s in course_1["sales"]] == [1, 2, 6]
        assert {s["status"] for s in course_1["sales"]} == {"completed", "pending"}

    def test_groups_ordered_by_revenue_then_id(self, lines):
        groups, _ = sales_by_course(lines)
        assert [g["course_id"] for g in groups] == [1, 2, 3]

    def test_missing_producer_uses_placeholder(self, test_settings):
        groups, _ = sales_by_course([line(1, 5, 10.0, producer_id=None, producer_name=None)])
        assert groups[0]["producer"] == test_settings.reporting.unassigned_producer_label

    def test_empty_input(self):
        assert sales_by_course([]) == ([], 0)


class TestSalesByProducer:
    """Tests for sales_by_producer"""

    def test_producer_totals_and_nested_courses(self, lines):
        groups, orphaned = sales_by_producer(lines)

        assert orphaned == 1
        assert [g["producer_id"] for g in groups] == [1, 2]
        ana = groups[0]
        assert ana["total_revenue"] == pytest.approx(400.0)
        assert ana["total_sales"] == 3
        assert [c["course_id"] for c in ana["courses"]] == [1, 2]
        assert sum(c["revenue"] for c in ana["courses"]) == pytest.approx(ana["total_revenue"])

    def test_unassigned_courses_grouped_last(self, test_settings):
        groups, _ = sales_by_producer([
            line(1, 1, 10.0),
            line(2, 4, 10.0, producer_id=None, producer_name=None),
        ])

        assert groups[-1]["producer_id"] is None
        assert groups[-1]["producer_name"] == test_settings.reporting.unassigned_producer_label

    def test_empty_input(self):
        assert sales_by_producer([]) == ([], 0)


class TestCompletionByCourse:
    """Tests for completion_by_course"""

    @staticmethod
    def row(course_id, progress_id, progress, completed_at):
        return {
            "course_id": course_id,
            "course_title": f"Course {course_id}",
            "producer_name": None,
            "progress_id": progress_id,
            "progress": progress,
            "completed_at": completed_at,
        }

    def test_completion_requires_completion_date(self):
        rows = [
            self.row(1, 1, 100.0, BASE),
            self.row(1, 2, 100.0, None),
            self.row(1, 3, 40.0, None),
        ]
        (course,) = completion_by_course(rows)

        assert course["total_enrolled"] == 3
        assert course["completed"] == 1
        assert course["in_progress"] == 2
        assert course["completion_rate"] == pytest.approx(100 / 3)
        assert course["average_progress"] == pytest.approx(80.0)

    def test_course_without_enrollments(self, test_settings):
        (course,) = completion_by_course([self.row(2, None, None, None)])

        assert course["total_enrolled"] == 0
        assert course["completion_rate"] == 0.0
        assert course["average_progress"] == 0.0
        assert course["producer"] == test_settings.reporting.unassigned_producer_label

    def test_rates_within_bounds(self):
        rows = [self.row(c, c * 10 + i, 100.0, BASE if i % 2 else None) for c in range(1, 4) for i in range(c)]
        for course in completion_by_course(rows):
            assert 0.0 <= course["completion_rate"] <= 100.0
            assert course["completed"] <= course["total_enrolled"]


class TestRevenueSeries:
    """Tests for revenue_series"""

    def test_daily_buckets_ascending_and_unique(self):
        points = [
            {"sale_date": BASE, "amount": 10.0},
            {"sale_date": BASE - timedelta(days=2), "amount": 5.0},
            {"sale_date": BASE + timedelta(hours=3), "amount": 20.0},
        ]
        series = revenue_series(points, "day")
        periods = [p["period"] for p in series]

        assert periods == ["2025-01-08", "2025-01-10"]
        assert series[1]["revenue"] == pytest.approx(30.0)
        assert series[1]["sales_count"] == 2

    def test_bucket_labels(self):
        points = [{"sale_date": datetime(2025, 1, 8, 14, 30), "amount": 1.0}]

        assert revenue_series(points, "hour")[0]["period"] == "2025-01-08 14:00"
        assert revenue_series(points, "week")[0]["period"] == "2025-W02"
        assert revenue_series(points, "month")[0]["period"] == "2025-01"

    def test_month_boundary(self):
        points = [
            {"sale_date": datetime(2025, 2, 1, 0, 0), "amount": 1.0},
            {"sale_date": datetime(2025, 1, 31, 23, 59), "amount": 1.0},
        ]
        assert [p["period"] for p in revenue_series(points, "month")] == ["2025-01", "2025-02"]

    def test_empty_points(self):
        assert revenue_series([], "week") == []

    def test_unknown_grouping(self):
        with pytest.raises(InvalidFilterError):
            revenue_series([], "year")


def test_activity_metrics():
    metrics = activity_metrics(4, 1)
    assert metrics["inactive_users"] == 3
    assert metrics["activity_rate"] == pytest.approx(25.0)
    assert activity_metrics(0, 0)["activity_rate"] == 0.0


def test_instructor_summary():
    summary = instructor_summary([
        {"sales_count": 2, "total_revenue": 200.0, "enrollments": 3},
        {"sales_count": None, "total_revenue": None, "enrollments": None},
    ])
    assert summary == {
        "total_courses": 2,
        "total_sales": 2,
        "total_revenue": 200.0,
        "total_enrollments": 3,
    }
