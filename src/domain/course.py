"""Course and Enrollment Domain Entities

Courses are owned by the course catalogue; the credits economy only reads
price, instructor and enrollment state, and writes enrollment count and
roster rows.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from sqlmodel import Field, Column, Index
from sqlalchemy import CheckConstraint, ForeignKey, Integer, String, UniqueConstraint
from src.domain.base import BaseModel, ID_TYPE


class CourseStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class CourseLevel(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class Course(BaseModel, table=True):
    """
    Course - priced offering taught by one instructor

    Domain Rules:
    - price is in credits and never negative
    - enrollment is open only when published and not full
    - enrollment_count never exceeds max_enrollments (guarded increment)
    """

    __tablename__ = "courses"
    __table_args__ = (
        CheckConstraint('price >= 0', name='price_non_negative'),
        CheckConstraint('enrollment_count >= 0', name='enrollment_count_non_negative'),
        Index('ix_courses_instructor_id', 'instructor_id'),
    )

    id: int = Field(
        default=None,
        sa_column=Column(ID_TYPE, primary_key=True, autoincrement=True),
        description="Unique course identifier (auto-increment)"
    )

    title: str = Field(
        sa_column=Column(String(200), nullable=False),
        description="Course title"
    )

    instructor_id: int = Field(
        sa_column=Column(ID_TYPE, ForeignKey("user_accounts.id"), nullable=False),
        description="Instructor account receiving earnings"
    )

    price: int = Field(
        default=0,
        sa_column=Column(Integer, nullable=False, default=0),
        description="Price in credits before badge discount"
    )

    level: CourseLevel = Field(
        default=CourseLevel.BEGINNER,
        description="Difficulty, drives completion points"
    )

    status: CourseStatus = Field(
        default=CourseStatus.DRAFT,
        description="Publication status"
    )

    is_published: bool = Field(
        default=False,
        description="Published flag"
    )

    max_enrollments: Optional[int] = Field(
        default=None,
        description="Enrollment cap (None = unlimited)"
    )

    enrollment_count: int = Field(
        default=0,
        sa_column=Column(Integer, nullable=False, default=0),
        description="Number of enrolled learners"
    )

    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Course creation timestamp"
    )

    @property
    def is_full(self) -> bool:
        return self.max_enrollments is not None and self.enrollment_count >= self.max_enrollments

    @property
    def is_enrollment_open(self) -> bool:
        if not self.is_published or self.status != CourseStatus.PUBLISHED:
            return False
        return not self.is_full


class Enrollment(BaseModel, table=True):
    """
    Enrollment - one learner on one course's roster

    Doubles as the learner's enrolled-courses list.
    """

    __tablename__ = "enrollments"
    __table_args__ = (
        UniqueConstraint('course_id', 'user_id', name='uq_enrollments_course_user'),
        Index('ix_enrollments_user_id', 'user_id'),
    )

    id: int = Field(
        default=None,
        sa_column=Column(ID_TYPE, primary_key=True, autoincrement=True),
        description="Unique enrollment identifier (auto-increment)"
    )

    course_id: int = Field(
        sa_column=Column(ID_TYPE, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False),
        description="Course"
    )

    user_id: int = Field(
        sa_column=Column(ID_TYPE, ForeignKey("user_accounts.id", ondelete="CASCADE"), nullable=False),
        description="Learner"
    )

    completed: bool = Field(
        default=False,
        description="Learner finished the course"
    )

    enrolled_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Enrollment timestamp"
    )

    completed_at: Optional[datetime] = Field(
        default=None,
        description="Completion timestamp"
    )
