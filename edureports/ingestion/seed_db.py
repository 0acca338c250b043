"""
Demo Data Seeder

Loads a small fixed catalogue (producers, users, courses, sales and
enrollments) with timestamps relative to now, so the dashboard windows
always have something to show. `--random N` adds N random sales.

Usage:
    python -m edureports.ingestion.seed_db [--reset] [--random N]
"""

import argparse
import asyncio
import random
from datetime import datetime, timedelta
from decimal import Decimal
from typing import List

import structlog
from faker import Faker
from sqlalchemy import func, select

from edureports.config.logging import configure_logging
from edureports.database.connection import close_database, get_db, get_engine, init_database
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

logger = structlog.get_logger(__name__)

fake = Faker()

# (name, email)
PRODUCERS = [
    ("Ana Garcia", "ana.garcia@example.com"),
    ("Carlos Lopez", "carlos.lopez@example.com"),
    ("Isabel Torres", "isabel.torres@example.com"),
]

# (name, email, status, days since last activity)
USERS = [
    ("Maria Gonzalez", "maria.gonzalez@example.com", UserStatus.ACTIVE, 0),
    ("Juan Perez", "juan.perez@example.com", UserStatus.ACTIVE, 2),
    ("Laura Martin", "laura.martin@example.com", UserStatus.ACTIVE, 0),
    ("Pedro Sanchez", "pedro.sanchez@example.com", UserStatus.INACTIVE, 45),
    ("Miguel Ruiz", "miguel.ruiz@example.com", UserStatus.ACTIVE, 1),
    ("Carmen Diaz", "carmen.diaz@example.com", UserStatus.SUSPENDED, 90),
]

# (title, description, price, producer index, category, level, hours, status)
COURSES = [
    ("React Fundamentals", "React from scratch", "129.99", 0, "frontend", "beginner", 24, CourseStatus.ACTIVE),
    ("Advanced Node.js", "Backend development with Node.js", "179.99", 0, "backend", "advanced", 32, CourseStatus.ACTIVE),
    ("Python for Data Science", "Data analysis with Python", "299.99", 1, "data", "intermediate", 40, CourseStatus.ACTIVE),
    ("Modern JavaScript", "ES6+ and good practices", "89.99", 0, "frontend", "intermediate", 18, CourseStatus.ACTIVE),
    ("Machine Learning Basics", "Introduction to ML", "349.99", 1, "data", "beginner", 36, CourseStatus.INACTIVE),
    ("CSS Grid and Flexbox", "Modern CSS layout", "69.99", 2, "frontend", "beginner", 10, CourseStatus.DRAFT),
]

# (user index, course index, status, days ago)
SALES = [
    (0, 0, SaleStatus.COMPLETED, 1),
    (1, 0, SaleStatus.COMPLETED, 5),
    (4, 0, SaleStatus.COMPLETED, 12),
    (2, 0, SaleStatus.REFUNDED, 20),
    (3, 2, SaleStatus.COMPLETED, 3),
    (4, 2, SaleStatus.COMPLETED, 9),
    (0, 2, SaleStatus.PENDING, 0),
    (2, 1, SaleStatus.COMPLETED, 7),
    (3, 1, SaleStatus.COMPLETED, 40),
    (0, 3, SaleStatus.COMPLETED, 15),
    (5, 3, SaleStatus.CANCELLED, 25),
    (2, 4, SaleStatus.COMPLETED, 60),
    (1, 5, SaleStatus.COMPLETED, 2),
]

# (user index, course index, progress, days since completion or None)
ENROLLMENTS = [
    (0, 0, "100.00", 3),
    (1, 0, "75.50", None),
    (2, 1, "100.00", 10),
    (3, 2, "45.25", None),
    (4, 2, "100.00", None),
    (0, 3, "100.00", 1),
    (2, 4, "20.00", None),
]


async def reset_schema() -> None:
    """Drop and recreate every table"""
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Schema recreated")


async def seed_catalogue(now: datetime) -> None:
    """Insert the fixed demo catalogue"""
    async with get_db() as db:
        existing = await db.scalar(select(func.count(Producer.id)))
        if existing:
            logger.info("Catalogue already present, skipping", producers=existing)
            return

        producers = [Producer(name=name, email=email) for name, email in PRODUCERS]
        users = [
            User(
                name=name,
                email=email,
                status=status,
                last_activity=now - timedelta(days=days),
                registered_at=now - timedelta(days=days + 30),
            )
            for name, email, status, days in USERS
        ]
        db.add_all(producers + users)
        await db.flush()

        courses = [
            Course(
                title=title,
                description=description,
                price=Decimal(price),
                producer_id=producers[producer].id,
                category=category,
                level=level,
                duration_hours=hours,
                status=status,
            )
            for title, description, price, producer, category, level, hours, status in COURSES
        ]
        db.add_all(courses)
        await db.flush()

        db.add_all(
            Sale(
                user_id=users[user].id,
                course_id=courses[course].id,
                amount=courses[course].price,
                status=status,
                sale_date=now - timedelta(days=days),
            )
            for user, course, status, days in SALES
        )
        db.add_all(
            CourseProgress(
                user_id=users[user].id,
                course_id=courses[course].id,
                progress=Decimal(progress),
                completed_at=now - timedelta(days=completed) if completed is not None else None,
                enrolled_at=now - timedelta(days=30),
            )
            for user, course, progress, completed in ENROLLMENTS
        )

    logger.info(
        "Catalogue seeded",
        producers=len(PRODUCERS),
        users=len(USERS),
        courses=len(COURSES),
        sales=len(SALES),
        enrollments=len(ENROLLMENTS),
    )


async def seed_random_sales(count: int, now: datetime, seed: int = 42) -> None:
    """Insert `count` random sales spread over the last 90 days"""
    rng = random.Random(seed)
    Faker.seed(seed)
    statuses: List[SaleStatus] = list(SaleStatus)

    async with get_db() as db:
        user_ids = list((await db.scalars(select(User.id))).all())
        courses = list((await db.execute(select(Course.id, Course.price))).all())
        if not user_ids or not courses:
            logger.warning("No users or courses to attach random sales to")
            return

        for _ in range(count):
            course_id, price = rng.choice(courses)
            db.add(
                Sale(
                    user_id=rng.choice(user_ids),
                    course_id=course_id,
                    amount=price,
                    status=rng.choices(statuses, weights=[5, 85, 5, 5])[0],
                    sale_date=fake.date_time_between(start_date=now - timedelta(days=90), end_date=now),
                )
            )

    logger.info("Random sales seeded", count=count)


async def main(reset: bool = False, random_sales: int = 0) -> None:
    configure_logging()
    await init_database()
    try:
        if reset:
            await reset_schema()
        now = utc_now()
        await seed_catalogue(now)
        if random_sales > 0:
            await seed_random_sales(random_sales, now)
    finally:
        await close_database()


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Seed the reports database with demo data")
    parser.add_argument("--reset", action="store_true", help="Drop and recreate all tables first")
    parser.add_argument("--random", type=int, default=0, metavar="N", help="Add N random sales")
    return parser.parse_args(argv)


def cli() -> None:
    args = parse_args()
    asyncio.run(main(reset=args.reset, random_sales=args.random))


if __name__ == "__main__":
    cli()
