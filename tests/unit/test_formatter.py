"""
Unit Tests - Report Formatter
"""
from datetime import date, datetime
from decimal import Decimal

import pytest

from edureports.reporting.formatter import (
    completion_table,
    envelope,
    format_course_sales,
    format_series,
    sales_table,
    to_count,
    to_number,
    users_table,
)

GENERATED = datetime(2025, 1, 10, 9, 30)


class TestNumbers:
    """Tests for number coercion"""

    @pytest.mark.parametrize(
        "value, expected",
        [
            (Decimal("19.99"), 19.99),
            ("150.50", 150.5),
            (7, 7.0),
            (None, 0.0),
            (float("nan"), 0.0),
            (float("inf"), 0.0),
            ("not a number", 0.0),
        ],
    )
    def test_to_number(self, value, expected):
        assert to_number(value) == expected

    def test_to_count(self):
        assert to_count("3") == 3
        assert to_count(None) == 0
        assert to_count(Decimal("2")) == 2


def test_envelope():
    assert envelope([1]) == {"success": True, "data": [1]}
    assert envelope([], {"total": 0}, filters={}) == {
        "success": True,
        "data": [],
        "summary": {"total": 0},
        "filters": {},
    }


def test_course_sales_shape():
    groups = [
        {
            "course_id": 1,
            "course_title": "React Fundamentals",
            "producer": "Ana Garcia",
            "total_sales": 2,
            "total_revenue": 200.0,
            "sales": [
                {"id": 1, "user": "Maria", "amount": Decimal("100.00"), "date": GENERATED, "status": "completed"},
            ],
        }
    ]
    body = format_course_sales(groups, 1)

    assert body["success"] is True
    assert body["data"][0]["courseTitle"] == "React Fundamentals"
    assert body["data"][0]["sales"][0] == {
        "id": 1,
        "user": "Maria",
        "amount": 100.0,
        "date": "2025-01-10T09:30:00",
        "status": "completed",
    }
    assert body["summary"] == {
        "totalCourses": 1,
        "totalSales": 2,
        "totalRevenue": 200.0,
        "orphanedSales": 1,
    }


def test_format_series_camel_case():
    assert format_series([{"period": "2025-01", "revenue": 10.456, "sales_count": 3}]) == [
        {"period": "2025-01", "revenue": 10.46, "salesCount": 3}
    ]


class TestTables:
    """Tests for export table builders"""

    def test_sales_table_totals_count_revenue_sales(self):
        lines = [
            {
                "sale_id": 1, "sale_date": GENERATED, "user_name": "Maria", "user_email": "maria@example.com",
                "course_title": "React", "producer_name": None, "amount": 100.0, "status": "completed",
            },
            {
                "sale_id": 2, "sale_date": GENERATED, "user_name": None, "user_email": None,
                "course_title": "React", "producer_name": "Ana", "amount": 80.0, "status": "pending",
            },
        ]
        table = sales_table(lines, ["Period: all records"], GENERATED)

        assert table.title == "Sales Report"
        assert table.generated_at == GENERATED
        assert table.filters == ["Period: all records"]
        assert len(table.rows) == 2
        assert table.rows[1][7] == "Pending"
        assert table.totals[-2:] == [100.0, "1 sales"]
        assert len(table.totals) == len(table.columns)

    def test_users_table(self):
        users = [
            {
                "id": 1, "name": "Maria", "email": "maria@example.com", "status": "active",
                "last_activity": GENERATED, "registered_at": GENERATED,
                "total_purchases": 2, "total_spent": Decimal("300.00"),
            }
        ]
        metrics = {"total_users": 3, "active_users": 1, "inactive_users": 2, "activity_rate": 33.333}
        table = users_table(users, 30, metrics, GENERATED)

        assert table.filters == ["Period: last 30 days"]
        assert table.rows[0][5] == date(2025, 1, 10)
        assert table.totals[-2:] == [2, 300.0]
        assert "Activity rate: 33.33%" in table.summary

    def test_empty_completion_table(self):
        table = completion_table([], [], GENERATED)

        assert table.rows == []
        assert table.totals[-1] == 0.0
        assert table.empty_message

    def test_cell_text(self):
        table = completion_table([], [], GENERATED)

        assert table.cell_text(None) == ""
        assert table.cell_text(1234.5) == "1,234.50"
        assert table.cell_text(GENERATED).startswith("2025")
