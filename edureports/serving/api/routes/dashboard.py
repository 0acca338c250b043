"""
Dashboard Endpoints

KPIs, realtime counters and the revenue chart.
"""

from datetime import timedelta
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from edureports.config import get_settings
from edureports.database.connection import get_db_dependency
from edureports.reporting import aggregator, formatter, queries
from edureports.reporting.filters import utc_now, window_start

router = APIRouter()
logger = structlog.get_logger(__name__)


def _period(period: Optional[int]) -> int:
    return get_settings().reporting.default_period_days if period is None else period


@router.get("/kpis")
async def get_kpis(
    period: Optional[int] = Query(default=None, description="Trailing window in days"),
    db: AsyncSession = Depends(get_db_dependency),
) -> Dict[str, Any]:
    """
    Headline KPIs for the trailing window, with the daily sales chart and
    the best-selling courses.
    """
    days = _period(period)
    since = window_start(utc_now(), days)

    snapshot = await queries.fetch_kpi_snapshot(db, since)
    points = await queries.fetch_revenue_points(db, since)
    top_courses = await queries.fetch_top_courses(db, since, get_settings().reporting.top_courses_limit)

    sales_by_day = aggregator.revenue_series(points, "day")
    logger.debug("KPIs computed", period=days, sales=snapshot["sales_count"])
    return formatter.format_kpis(snapshot, days, sales_by_day, top_courses)


@router.get("/realtime")
async def get_realtime(db: AsyncSession = Depends(get_db_dependency)) -> Dict[str, Any]:
    """Counters for the last realtime window (24 hours by default)."""
    now = utc_now()
    since = now - timedelta(hours=get_settings().reporting.realtime_window_hours)
    counts = await queries.fetch_realtime_counts(db, since)
    return formatter.format_realtime(counts, now)


@router.get("/revenue-chart")
async def get_revenue_chart(
    period: Optional[int] = Query(default=None, description="Trailing window in days"),
    group_by: str = Query(default="day", alias="groupBy", description="hour, day, week or month"),
    db: AsyncSession = Depends(get_db_dependency),
) -> Dict[str, Any]:
    since = window_start(utc_now(), _period(period))
    points = await queries.fetch_revenue_points(db, since)
    series = aggregator.revenue_series(points, group_by)
    return formatter.envelope(formatter.format_series(series))
