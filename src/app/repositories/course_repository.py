"""Course Repository Interface

Defines the contract for the course and roster data the settlement uses.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional
from src.domain.course import Course, Enrollment


class CourseRepository(ABC):
    """
    Repository interface for Course and Enrollment persistence
    """

    @abstractmethod
    async def get_by_id(self, course_id: int, for_update: bool = False) -> Optional[Course]:
        pass

    @abstractmethod
    async def create(self, course: Course) -> Course:
        pass

    @abstractmethod
    async def increment_enrollment_count(self, course_id: int) -> bool:
        """
        Atomically increment enrollment_count unless the course is full

        Returns:
            True if incremented, False if the course is full or missing
        """
        pass

    @abstractmethod
    async def get_enrollment(self, course_id: int, user_id: int) -> Optional[Enrollment]:
        pass

    @abstractmethod
    async def add_enrollment(self, enrollment: Enrollment) -> Enrollment:
        """
        Append a learner to a course roster

        Raises:
            IntegrityError: If the learner is already enrolled
        """
        pass

    @abstractmethod
    async def save_enrollment(self, enrollment: Enrollment) -> Enrollment:
        pass

    @abstractmethod
    async def count_completed_by_users(self, user_ids: List[int]) -> Dict[int, int]:
        """Number of completed enrollments per user id"""
        pass
