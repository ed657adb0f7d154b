"""SQLAlchemy implementation of CourseRepository"""

from typing import Dict, List, Optional
from sqlalchemy import func, or_, update
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.repositories.course_repository import CourseRepository
from src.domain.course import Course, Enrollment


class SqlAlchemyCourseRepository(CourseRepository):
    """
    SQLAlchemy implementation of CourseRepository

    Enrollment count increments are guarded against the course cap in the
    UPDATE itself; the roster has a unique (course_id, user_id) constraint.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, course_id: int, for_update: bool = False) -> Optional[Course]:
        stmt = (
            select(Course)
            .where(Course.id == course_id)
            .execution_options(populate_existing=True)
        )

        if for_update:
            stmt = stmt.with_for_update()

        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def create(self, course: Course) -> Course:
        self.session.add(course)
        await self.session.flush()
        await self.session.refresh(course)
        return course

    async def increment_enrollment_count(self, course_id: int) -> bool:
        stmt = (
            update(Course)
            .where(
                Course.id == course_id,
                or_(
                    Course.max_enrollments.is_(None),
                    Course.enrollment_count < Course.max_enrollments,
                ),
            )
            .values(enrollment_count=Course.enrollment_count + 1)
            .returning(Course.enrollment_count)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def get_enrollment(self, course_id: int, user_id: int) -> Optional[Enrollment]:
        stmt = select(Enrollment).where(
            Enrollment.course_id == course_id,
            Enrollment.user_id == user_id,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def add_enrollment(self, enrollment: Enrollment) -> Enrollment:
        self.session.add(enrollment)
        await self.session.flush()
        await self.session.refresh(enrollment)
        return enrollment

    async def save_enrollment(self, enrollment: Enrollment) -> Enrollment:
        self.session.add(enrollment)
        await self.session.flush()
        return enrollment

    async def count_completed_by_users(self, user_ids: List[int]) -> Dict[int, int]:
        if not user_ids:
            return {}

        stmt = (
            select(Enrollment.user_id, func.count())
            .where(
                Enrollment.user_id.in_(user_ids),
                Enrollment.completed.is_(True),
            )
            .group_by(Enrollment.user_id)
        )
        result = await self.session.execute(stmt)
        return {user_id: count for user_id, count in result.all()}
