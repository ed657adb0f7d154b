"""EnrollInCourse Use Case

Settles a paid enrollment: the learner pays the badge-discounted price,
the instructor receives it minus the platform fee, and the platform account
receives the fee. Everything happens in one unit of work.
"""

import logging
from typing import Optional
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from libs.result import Result, Return
from src.app.services.unit_of_work import UnitOfWork
from src.app.services.ledger import Ledger
from src.app.services.wallet import Wallet
from src.app.repositories.user_account_repository import UserAccountRepository
from src.app.repositories.course_repository import CourseRepository
from src.app.repositories.credit_transaction_repository import CreditTransactionRepository
from src.app.use_cases.errors import error_from
from src.domain.course import Enrollment
from src.domain.credit_policy import CreditPolicy, apply_discount, percent_of
from src.domain.credit_transaction import TransactionType
from src.domain.errors import (
    AlreadyEnrolledError,
    CourseNotFoundError,
    CreditsError,
    EnrollmentClosedError,
    PlatformAccountMissingError,
    SettlementFailureError,
    UserNotFoundError,
)
from src.domain.transaction_meta import EarnMeta, EnrollMeta, PlatformFeeMeta
from .dtos import EnrollCommandDTO, EnrollmentReceiptDTO

logger = logging.getLogger(__name__)

ENROLLMENT_REFERENCE = "enrollment"

# PostgreSQL serialization_failure and deadlock_detected
RETRYABLE_SQLSTATES = frozenset({"40001", "40P01"})


def is_retryable(exc: DBAPIError) -> bool:
    """Conflicts that a fresh attempt of the same settlement can resolve"""
    if isinstance(exc, (OperationalError, IntegrityError)) or exc.connection_invalidated:
        return True
    sqlstate = getattr(exc.orig, "pgcode", None) or getattr(exc.orig, "sqlstate", None)
    return sqlstate in RETRYABLE_SQLSTATES


class EnrollInCourse:
    """
    Use Case: Enroll a learner in a paid course

    Business Rules:
    1. Preconditions (course exists and is open, learner exists and is not
       enrolled, platform account provisioned) are checked before any mutation
    2. final_price = floor(price * (1 - badge discount / 100))
    3. platform_fee = floor(final_price * platform fee % / 100)
    4. learner debit == instructor earnings + platform fee (conservation)
    5. All-or-nothing: any failure rolls the whole unit back
    6. Transient conflicts are retried a bounded number of times

    Flow:
    1. Load course and platform account, lock participant rows in id order
    2. Check preconditions
    3. Debit learner (guarded, raises INSUFFICIENT_CREDIT)
    4. Credit instructor and platform account
    5. Reserve a seat (guarded increment) and add the roster row
    6. Record enroll / earn / platform fee ledger entries
    7. Commit and return the receipt
    """

    def __init__(
        self,
        uow: UnitOfWork,
        user_repo: UserAccountRepository,
        course_repo: CourseRepository,
        transaction_repo: CreditTransactionRepository,
        policy: Optional[CreditPolicy] = None,
    ):
        self.uow = uow
        self.user_repo = user_repo
        self.course_repo = course_repo
        self.policy = policy or CreditPolicy()
        self.wallet = Wallet(user_repo)
        self.ledger = Ledger(transaction_repo)

    async def execute(self, command: EnrollCommandDTO) -> Result[EnrollmentReceiptDTO]:
        """
        Execute enrollment settlement

        Args:
            command: EnrollCommandDTO with learner_id and course_id

        Returns:
            Result[EnrollmentReceiptDTO]: Settlement receipt or error
        """
        attempts = max(1, self.policy.settlement_max_retries)

        for attempt in range(1, attempts + 1):
            progress = {"step": "start"}
            try:
                receipt = await self._settle(command, progress)
                progress["step"] = "commit"
                await self.uow.commit()

                logger.info(
                    f"Enrollment settled: learner={command.learner_id} course={command.course_id} "
                    f"spent={receipt.amount_spent} instructor={receipt.instructor_earnings} "
                    f"platform={receipt.platform_fee}"
                )
                return Return.ok(receipt)

            except CreditsError as e:
                await self._rollback(command, progress)
                return Return.err(error_from(e))

            except DBAPIError as e:
                await self._rollback(command, progress)
                if is_retryable(e) and attempt < attempts:
                    logger.warning(
                        f"Settlement conflict for learner {command.learner_id} on course "
                        f"{command.course_id} at step '{progress['step']}', "
                        f"retrying ({attempt}/{attempts}): {e}"
                    )
                    continue
                return self._failure(command, progress, e)

            except Exception as e:
                await self._rollback(command, progress)
                return self._failure(command, progress, e)

    async def _settle(self, command: EnrollCommandDTO, progress: dict) -> EnrollmentReceiptDTO:
        progress["step"] = "load"
        course = await self.course_repo.get_by_id(command.course_id)
        if not course:
            raise CourseNotFoundError(f"Course {command.course_id} not found")

        platform = await self.user_repo.get_platform_account()
        if not platform:
            raise PlatformAccountMissingError(
                "Platform fee account has not been provisioned",
                reason="Run `python -m src.worker.provision` or start the API once",
            )

        # Every participant row is locked in id order so that crossed
        # settlements queue instead of deadlocking
        progress["step"] = "lock_accounts"
        locked = await self.user_repo.lock_accounts(
            sorted({command.learner_id, course.instructor_id, platform.id})
        )
        learner = locked.get(command.learner_id)
        if not learner:
            raise UserNotFoundError(f"Learner {command.learner_id} not found")

        if not course.is_enrollment_open:
            raise EnrollmentClosedError(f"Enrollment is not open for course {course.id}")

        if await self.course_repo.get_enrollment(course.id, learner.id):
            raise AlreadyEnrolledError(
                f"Learner {learner.id} is already enrolled in course {course.id}"
            )

        discount_percent = learner.badge.discount_percent
        final_price = apply_discount(course.price, discount_percent)
        platform_fee = percent_of(final_price, self.policy.platform_fee_percent)
        instructor_earnings = final_price - platform_fee

        progress["step"] = "debit_learner"
        remaining_balance = await self.wallet.debit(learner.id, final_price)

        progress["step"] = "credit_instructor"
        await self.wallet.credit(course.instructor_id, instructor_earnings)

        progress["step"] = "credit_platform"
        await self.wallet.credit(platform.id, platform_fee)

        progress["step"] = "reserve_seat"
        if not await self.course_repo.increment_enrollment_count(course.id):
            raise EnrollmentClosedError(f"Course {course.id} is full")

        enrollment = await self.course_repo.add_enrollment(
            Enrollment(course_id=course.id, user_id=learner.id)
        )

        progress["step"] = "record_ledger"
        reference_id = str(enrollment.id)
        key_suffix = f"{course.id}:{learner.id}"

        enroll_tx = await self.ledger.record(
            learner.id,
            TransactionType.ENROLL,
            final_price,
            meta=EnrollMeta(
                course_id=course.id,
                original_price=course.price,
                discount_percent=discount_percent,
                discount_amount=course.price - final_price,
            ),
            description=f"Enrolled in course: {course.title}",
            related_user_id=course.instructor_id,
            related_course_id=course.id,
            reference_type=ENROLLMENT_REFERENCE,
            reference_id=reference_id,
            idempotency_key=f"enroll:{key_suffix}",
        )

        earn_tx = await self.ledger.record(
            course.instructor_id,
            TransactionType.EARN,
            final_price,
            platform_fee,
            meta=EarnMeta(
                course_id=course.id,
                learner_id=learner.id,
                fee_percent=self.policy.platform_fee_percent,
            ),
            description=f"Earned from course: {course.title}",
            related_user_id=learner.id,
            related_course_id=course.id,
            reference_type=ENROLLMENT_REFERENCE,
            reference_id=reference_id,
            idempotency_key=f"earn:{key_suffix}",
        )

        fee_tx = await self.ledger.record(
            platform.id,
            TransactionType.BONUS,
            platform_fee,
            meta=PlatformFeeMeta(
                course_id=course.id,
                learner_id=learner.id,
                instructor_id=course.instructor_id,
                fee_percent=self.policy.platform_fee_percent,
            ),
            description="Platform fee",
            related_user_id=learner.id,
            related_course_id=course.id,
            reference_type=ENROLLMENT_REFERENCE,
            reference_id=reference_id,
            idempotency_key=f"platform-fee:{key_suffix}",
        )

        return EnrollmentReceiptDTO(
            enrollment_id=enrollment.id,
            learner_id=learner.id,
            course_id=course.id,
            instructor_id=course.instructor_id,
            original_price=course.price,
            discount_percent=discount_percent,
            discount_amount=course.price - final_price,
            amount_spent=final_price,
            platform_fee=platform_fee,
            instructor_earnings=instructor_earnings,
            remaining_balance=remaining_balance,
            enroll_transaction_id=enroll_tx.id,
            earn_transaction_id=earn_tx.id,
            platform_fee_transaction_id=fee_tx.id,
            enrolled_at=enrollment.enrolled_at,
        )

    async def _rollback(self, command: EnrollCommandDTO, progress: dict) -> None:
        try:
            await self.uow.rollback()
        except Exception as e:
            logger.critical(
                f"Rollback failed after settlement error: learner={command.learner_id} "
                f"course={command.course_id} step='{progress['step']}'. "
                f"Manual reconciliation required: {e}"
            )

    def _failure(self, command: EnrollCommandDTO, progress: dict, exc: Exception) -> Result:
        logger.error(
            f"Settlement failed: learner={command.learner_id} course={command.course_id} "
            f"step='{progress['step']}': {exc}"
        )
        return Return.err(
            error_from(
                SettlementFailureError(
                    "Failed to settle enrollment",
                    reason=f"step={progress['step']}: {exc}",
                )
            )
        )
