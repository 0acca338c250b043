"""
Export Endpoints

`/export/{format}/{report}` renders a report table as an Excel workbook or a
PDF. The file is produced completely before the response starts, so a
failure yields a JSON error instead of a truncated download.
"""

from datetime import datetime
from typing import Awaitable, Callable, Dict, Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from edureports.config import get_settings
from edureports.database.connection import get_db_dependency
from edureports.reporting import aggregator, formatter, queries
from edureports.reporting.errors import UnsupportedExportError
from edureports.reporting.exporters import RENDERERS, render
from edureports.reporting.filters import ReportFilters, utc_now, window_start
from edureports.serving.api.dependencies import report_filters

router = APIRouter()
logger = structlog.get_logger(__name__)

TableBuilder = Callable[[AsyncSession, ReportFilters, int, datetime], Awaitable[formatter.ReportTable]]


async def _sales_table(db: AsyncSession, filters: ReportFilters, period: int, now: datetime) -> formatter.ReportTable:
    lines = await queries.fetch_sale_lines(db, filters)
    return formatter.sales_table(lines, filters.describe(), now)


async def _users_table(db: AsyncSession, filters: ReportFilters, period: int, now: datetime) -> formatter.ReportTable:
    users = await queries.fetch_user_purchase_rows(db, window_start(now, period))
    total = await queries.count_users(db)
    return formatter.users_table(users, period, aggregator.activity_metrics(total, len(users)), now)


async def _completion_table(db: AsyncSession, filters: ReportFilters, period: int, now: datetime) -> formatter.ReportTable:
    rows = await queries.fetch_enrollment_rows(db, course_id=filters.course_id, producer_id=filters.producer_id)
    return formatter.completion_table(aggregator.completion_by_course(rows), filters.describe(), now)


REPORTS: Dict[str, TableBuilder] = {
    "sales": _sales_table,
    "users": _users_table,
    "completion": _completion_table,
}


@router.get("/{fmt}/{report}")
async def export_report(
    fmt: str,
    report: str,
    filters: ReportFilters = Depends(report_filters),
    period: Optional[int] = Query(default=None, description="Trailing window in days (users report)"),
    db: AsyncSession = Depends(get_db_dependency),
) -> Response:
    """
    Download a report.

    - **fmt**: `excel` or `pdf`
    - **report**: `sales`, `users` or `completion`
    """
    if fmt not in RENDERERS:
        raise UnsupportedExportError(f"Unsupported export format: {fmt}")
    if report not in REPORTS:
        raise UnsupportedExportError(f"Unknown report: {report}")

    days = get_settings().reporting.default_period_days if period is None else period
    table = await REPORTS[report](db, filters, days, utc_now())
    content, media_type, filename = render(table, fmt)

    logger.info("Report exported", report=report, format=fmt, rows=len(table.rows))
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
