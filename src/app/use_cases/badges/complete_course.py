"""CompleteCourse Use Case

Marks an enrollment completed and grants completion points by course level.
"""

import logging
from datetime import datetime
from typing import Optional
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.services.ledger import Ledger
from src.app.services.notification_service import BadgeChangeEvent, NotificationService
from src.app.repositories.user_account_repository import UserAccountRepository
from src.app.repositories.course_repository import CourseRepository
from src.app.repositories.credit_transaction_repository import CreditTransactionRepository
from src.app.use_cases.errors import error_from
from src.domain.badge import BadgeChange, add_points
from src.domain.credit_policy import CreditPolicy
from src.domain.credit_transaction import TransactionType
from src.domain.errors import (
    CourseAlreadyCompletedError,
    CourseNotFoundError,
    CreditsError,
    NotEnrolledError,
    UserNotFoundError,
)
from src.domain.transaction_meta import BonusMeta
from .award_points import notify_badge_change
from .dtos import BadgeProgressDTO, CompleteCourseCommandDTO

logger = logging.getLogger(__name__)

COMPLETION_REASON = "Course completion"


class CompleteCourse:
    """
    Use Case: Complete a course

    Business Rules:
    1. Learner must be enrolled and not have completed the course yet
    2. Points granted depend on course level (beginner/intermediate/advanced)
    3. One badge step at most, recorded as a zero-credit `bonus` entry
    """

    def __init__(
        self,
        uow: UnitOfWork,
        user_repo: UserAccountRepository,
        course_repo: CourseRepository,
        transaction_repo: CreditTransactionRepository,
        policy: Optional[CreditPolicy] = None,
        notification_service: Optional[NotificationService] = None,
    ):
        self.uow = uow
        self.user_repo = user_repo
        self.course_repo = course_repo
        self.policy = policy or CreditPolicy()
        self.notification_service = notification_service
        self.ledger = Ledger(transaction_repo)

    async def execute(self, command: CompleteCourseCommandDTO) -> Result[BadgeProgressDTO]:
        try:
            course = await self.course_repo.get_by_id(command.course_id)
            if not course:
                raise CourseNotFoundError(f"Course {command.course_id} not found")

            learner = await self.user_repo.get_by_id(command.learner_id, for_update=True)
            if not learner:
                raise UserNotFoundError(f"Learner {command.learner_id} not found")

            enrollment = await self.course_repo.get_enrollment(course.id, learner.id)
            if not enrollment:
                raise NotEnrolledError(
                    f"Learner {learner.id} is not enrolled in course {course.id}"
                )
            if enrollment.completed:
                raise CourseAlreadyCompletedError(
                    f"Learner {learner.id} already completed course {course.id}"
                )

            points = self.policy.completion_points[course.level.value]
            now = datetime.utcnow()

            enrollment.completed = True
            enrollment.completed_at = now
            await self.course_repo.save_enrollment(enrollment)

            old_badge = learner.badge
            change = add_points(learner, points, now)
            new_badge = learner.badge
            await self.user_repo.save(learner)

            transaction = await self.ledger.record(
                learner.id,
                TransactionType.BONUS,
                0,
                meta=BonusMeta(
                    reason=COMPLETION_REASON,
                    old_badge=str(old_badge),
                    new_badge=str(new_badge),
                    points_awarded=points,
                    performance_points=learner.performance_points,
                    course_id=course.id,
                ),
                related_course_id=course.id,
                idempotency_key=f"course-completion:{course.id}:{learner.id}",
            )

            await self.uow.commit()
            logger.info(
                f"User {learner.id} completed course {course.id} (+{points} points): "
                f"{old_badge} -> {new_badge}"
            )

            await notify_badge_change(
                self.notification_service,
                BadgeChangeEvent(
                    user_id=learner.id,
                    username=learner.username,
                    old_badge=old_badge,
                    new_badge=new_badge,
                    change=change,
                    reason=COMPLETION_REASON,
                    occurred_at=now,
                    transaction_id=transaction.id,
                ),
            )

            return Return.ok(
                BadgeProgressDTO(
                    user_id=learner.id,
                    course_id=course.id,
                    points_awarded=points,
                    performance_points=learner.performance_points,
                    badge_upgraded=change != BadgeChange.NONE,
                    change=change.value,
                    old_badge=str(old_badge),
                    new_badge=str(new_badge),
                    discount_percent=new_badge.discount_percent,
                    transaction_id=transaction.id,
                )
            )

        except CreditsError as e:
            await self.uow.rollback()
            return Return.err(error_from(e))
        except Exception as e:
            await self.uow.rollback()
            return Return.err(
                Error(
                    code="COMPLETE_COURSE_FAILED",
                    message="Failed to complete course",
                    reason=str(e),
                )
            )
