"""
Test Suite Configuration
"""
import os

os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, AsyncGenerator, Dict

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from edureports.config import Settings, get_settings
from edureports.database.connection import get_db_dependency
from edureports.database.models import (
    Base,
    Course,
    CourseProgress,
    CourseStatus,
    Producer,
    Sale,
    SaleStatus,
    User,
    UserStatus,
)
from edureports.reporting.filters import utc_now
from edureports.serving.api import create_api_app


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """Application settings as seen by the tests"""
    return get_settings()


@pytest.fixture
async def test_engine():
    """In-memory database shared by every session of one test"""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def test_db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session"""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def now() -> datetime:
    return utc_now()


@pytest.fixture
async def scenario(session_factory, now) -> Dict[str, Any]:
    """
    Two producers, three courses and five completed sales
    (100 + 100 on React, 200 on Node, 50 + 50 on Python), plus:

    - a pending sale on React (listed, not counted)
    - a completed sale of a deleted course, 60 days old
    - an enrollment at 100% progress without completion date
    """
    async with session_factory() as db:
        ana = Producer(name="Ana Garcia", email="ana@example.com")
        carlos = Producer(name="Carlos Lopez", email="carlos@example.com")
        maria = User(
            name="Maria Gonzalez",
            email="maria@example.com",
            status=UserStatus.ACTIVE,
            last_activity=now - timedelta(days=1),
            registered_at=now - timedelta(hours=2),
        )
        juan = User(
            name="Juan Perez",
            email="juan@example.com",
            status=UserStatus.ACTIVE,
            last_activity=now - timedelta(days=2),
            registered_at=now - timedelta(days=90),
        )
        pedro = User(
            name="Pedro Sanchez",
            email="pedro@example.com",
            status=UserStatus.INACTIVE,
            last_activity=now - timedelta(days=60),
            registered_at=now - timedelta(days=120),
        )
        db.add_all([ana, carlos, maria, juan, pedro])
        await db.flush()

        react = Course(title="React Fundamentals", price=Decimal("100.00"), producer_id=ana.id,
                       category="frontend", level="beginner", duration_hours=20, status=CourseStatus.ACTIVE)
        node = Course(title="Advanced Node.js", price=Decimal("200.00"), producer_id=ana.id,
                      category="backend", level="advanced", duration_hours=30, status=CourseStatus.ACTIVE)
        python = Course(title="Python for Data Science", price=Decimal("50.00"), producer_id=carlos.id,
                        category="data", level="intermediate", duration_hours=40, status=CourseStatus.ACTIVE)
        db.add_all([react, node, python])
        await db.flush()

        def sale(user, course_id, amount, days, status=SaleStatus.COMPLETED):
            return Sale(
                user_id=user.id,
                course_id=course_id,
                amount=Decimal(amount),
                status=status,
                sale_date=now - timedelta(days=days),
            )

        db.add_all([
            sale(maria, react.id, "100.00", 1),
            sale(juan, react.id, "100.00", 3),
            sale(maria, node.id, "200.00", 2),
            sale(juan, python.id, "50.00", 5),
            sale(pedro, python.id, "50.00", 10),
            sale(pedro, react.id, "80.00", 4, status=SaleStatus.PENDING),
            sale(maria, 999, "30.00", 60),
        ])

        db.add_all([
            CourseProgress(user_id=maria.id, course_id=react.id, progress=Decimal("100"),
                           completed_at=now - timedelta(days=1), enrolled_at=now - timedelta(days=20)),
            CourseProgress(user_id=juan.id, course_id=react.id, progress=Decimal("100"),
                           completed_at=None, enrolled_at=now - timedelta(days=20)),
            CourseProgress(user_id=pedro.id, course_id=react.id, progress=Decimal("40"),
                           completed_at=None, enrolled_at=now - timedelta(days=20)),
            CourseProgress(user_id=maria.id, course_id=node.id, progress=Decimal("100"),
                           completed_at=now - timedelta(days=2), enrolled_at=now - timedelta(days=20)),
        ])
        await db.commit()

        return {
            "now": now,
            "producers": {"ana": ana.id, "carlos": carlos.id},
            "courses": {"react": react.id, "node": node.id, "python": python.id},
            "users": {"maria": maria.id, "juan": juan.id, "pedro": pedro.id},
        }


@pytest.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """API client bound to the in-memory database"""
    app = create_api_app()

    async def override_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db_dependency] = override_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def offline_client() -> AsyncGenerator[AsyncClient, None]:
    """API client with no database configured"""
    app = create_api_app()
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
