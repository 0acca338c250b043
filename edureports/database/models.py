"""
Database Models - Course Sales Platform

This module defines the data models the reporting layer reads from:

- User: platform students with activity tracking
- Producer: instructors who own courses and receive revenue attribution
- Course: catalogue entries owned by a producer
- Sale: course purchases
- CourseProgress: enrollments with progress and completion timestamp

The reporting API never writes these tables; rows are created by the
seed script or by the upstream purchase/enrollment flows.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, List

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.ext.hybrid import hybrid_property
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all database models"""
    pass


def _enum_column(enum_cls) -> SQLEnum:
    """Enum column persisting the lowercase member values"""
    return SQLEnum(
        enum_cls,
        values_callable=lambda members: [m.value for m in members],
        native_enum=False,
        length=20,
    )


# =============================================================================
# ENUMERATIONS
# =============================================================================

class UserStatus(str, Enum):
    """User account status"""
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


class ProducerStatus(str, Enum):
    """Producer account status"""
    ACTIVE = "active"
    INACTIVE = "inactive"


class CourseStatus(str, Enum):
    """Course publication status"""
    ACTIVE = "active"
    INACTIVE = "inactive"
    DRAFT = "draft"


class SaleStatus(str, Enum):
    """Sale status enumeration"""
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


# =============================================================================
# TABLES
# =============================================================================

class Producer(Base):
    """
    Producer (instructor) table

    A producer owns many courses and is credited with their revenue.
    """
    __tablename__ = "producers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(150), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    status: Mapped[ProducerStatus] = mapped_column(
        _enum_column(ProducerStatus), default=ProducerStatus.ACTIVE
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now()
    )

    courses: Mapped[List["Course"]] = relationship(back_populates="producer")


class User(Base):
    """
    User table

    Status is tri-state; activity reports are driven by last_activity,
    not by status.
    """
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(150), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    status: Mapped[UserStatus] = mapped_column(
        _enum_column(UserStatus), default=UserStatus.ACTIVE
    )
    last_activity: Mapped[Optional[datetime]] = mapped_column(DateTime)
    registered_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now()
    )

    sales: Mapped[List["Sale"]] = relationship(back_populates="user")
    progress: Mapped[List["CourseProgress"]] = relationship(back_populates="user")

    __table_args__ = (
        Index("ix_users_last_activity", "last_activity"),
        Index("ix_users_registered_at", "registered_at"),
    )


class Course(Base):
    """
    Course table

    producer_id is nullable: reports label ownerless courses with a
    placeholder instead of dropping them.
    """
    __tablename__ = "courses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=0)
    producer_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("producers.id")
    )
    category: Mapped[Optional[str]] = mapped_column(String(100))
    duration_hours: Mapped[Optional[int]] = mapped_column(Integer)
    level: Mapped[Optional[str]] = mapped_column(String(50))
    status: Mapped[CourseStatus] = mapped_column(
        _enum_column(CourseStatus), default=CourseStatus.ACTIVE
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now()
    )

    producer: Mapped[Optional["Producer"]] = relationship(back_populates="courses")
    sales: Mapped[List["Sale"]] = relationship(back_populates="course")
    enrollments: Mapped[List["CourseProgress"]] = relationship(back_populates="course")

    __table_args__ = (
        Index("ix_courses_producer", "producer_id"),
        Index("ix_courses_category", "category"),
        Index("ix_courses_status", "status"),
    )


class Sale(Base):
    """
    Sale fact table

    One purchase of one course by one user.
    """
    __tablename__ = "sales"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False
    )
    course_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("courses.id"), nullable=False
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    status: Mapped[SaleStatus] = mapped_column(
        _enum_column(SaleStatus), default=SaleStatus.PENDING
    )
    sale_date: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now()
    )

    user: Mapped["User"] = relationship(back_populates="sales")
    course: Mapped["Course"] = relationship(back_populates="sales")

    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_sales_amount_non_negative"),
        Index("ix_sales_course", "course_id"),
        Index("ix_sales_user", "user_id"),
        Index("ix_sales_status_date", "status", "sale_date"),
    )


class CourseProgress(Base):
    """
    Enrollment table

    An enrollment is complete exactly when completed_at is set; there is
    no separately stored completion flag.
    """
    __tablename__ = "course_progress"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False
    )
    course_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("courses.id"), nullable=False
    )
    progress: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False, default=0)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    enrolled_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now()
    )

    user: Mapped["User"] = relationship(back_populates="progress")
    course: Mapped["Course"] = relationship(back_populates="enrollments")

    @hybrid_property
    def completed(self) -> bool:
        return self.completed_at is not None

    @completed.inplace.expression
    @classmethod
    def _completed_expression(cls):
        return cls.completed_at.is_not(None)

    __table_args__ = (
        CheckConstraint("progress >= 0 AND progress <= 100", name="ck_progress_range"),
        Index("ix_course_progress_course", "course_id"),
        Index("ix_course_progress_completed_at", "completed_at"),
    )
