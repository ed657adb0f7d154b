"""AwardPoints Use Case

Adds performance points to an enrolled learner and evaluates one badge
upgrade step.
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
    CourseNotFoundError,
    CreditsError,
    ForbiddenError,
    InvalidRequestError,
    NotEnrolledError,
    UserNotFoundError,
)
from src.domain.transaction_meta import BonusMeta
from src.domain.user_account import AccountRole
from .dtos import AwardPointsCommandDTO, BadgeProgressDTO

logger = logging.getLogger(__name__)


async def notify_badge_change(
    notification_service: Optional[NotificationService], event: BadgeChangeEvent
) -> None:
    """Announce a committed badge change; delivery problems never fail the caller"""
    if notification_service is None or event.change == BadgeChange.NONE:
        return
    try:
        await notification_service.send_badge_change(event)
    except Exception as e:
        logger.warning(f"Badge notification for user {event.user_id} failed: {e}")


class AwardPoints:
    """
    Use Case: Award performance points

    Business Rules:
    1. 0 < points <= max points per award
    2. awarded_by, when given, must be the course instructor or an admin
    3. Learner must be enrolled in the course
    4. At most one badge step per award (no cascade)
    5. A zero-credit `bonus` entry records the award and badge movement
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

    async def execute(self, command: AwardPointsCommandDTO) -> Result[BadgeProgressDTO]:
        try:
            if command.points <= 0 or command.points > self.policy.max_points_per_award:
                raise InvalidRequestError(
                    f"Points must be between 1 and {self.policy.max_points_per_award}"
                )

            course = await self.course_repo.get_by_id(command.course_id)
            if not course:
                raise CourseNotFoundError(f"Course {command.course_id} not found")

            if command.awarded_by is not None:
                awarder = await self.user_repo.get_by_id(command.awarded_by)
                if not awarder:
                    raise UserNotFoundError(f"Account {command.awarded_by} not found")
                if awarder.id != course.instructor_id and awarder.role != AccountRole.ADMIN:
                    raise ForbiddenError("Not authorized to award points for this course")

            learner = await self.user_repo.get_by_id(command.learner_id, for_update=True)
            if not learner:
                raise UserNotFoundError(f"Learner {command.learner_id} not found")

            if not await self.course_repo.get_enrollment(course.id, learner.id):
                raise NotEnrolledError(
                    f"Learner {learner.id} is not enrolled in course {course.id}"
                )

            now = datetime.utcnow()
            old_badge = learner.badge
            change = add_points(learner, command.points, now)
            new_badge = learner.badge
            await self.user_repo.save(learner)

            transaction = await self.ledger.record(
                learner.id,
                TransactionType.BONUS,
                0,
                meta=BonusMeta(
                    reason=command.reason,
                    old_badge=str(old_badge),
                    new_badge=str(new_badge),
                    points_awarded=command.points,
                    performance_points=learner.performance_points,
                    course_id=course.id,
                    awarded_by=command.awarded_by,
                ),
                related_user_id=command.awarded_by,
                related_course_id=course.id,
            )

            await self.uow.commit()
            logger.info(
                f"Awarded {command.points} points to user {learner.id}: "
                f"{old_badge} -> {new_badge} ({change.value})"
            )

            await notify_badge_change(
                self.notification_service,
                BadgeChangeEvent(
                    user_id=learner.id,
                    username=learner.username,
                    old_badge=old_badge,
                    new_badge=new_badge,
                    change=change,
                    reason=command.reason,
                    occurred_at=now,
                    transaction_id=transaction.id,
                ),
            )

            return Return.ok(
                BadgeProgressDTO(
                    user_id=learner.id,
                    course_id=course.id,
                    points_awarded=command.points,
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
                    code="AWARD_POINTS_FAILED",
                    message="Failed to award performance points",
                    reason=str(e),
                )
            )
