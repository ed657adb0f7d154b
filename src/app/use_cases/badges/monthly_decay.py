"""RunMonthlyDecay Use Case

Drops inactive learners one badge step. Invoked once a month by an
external scheduler with an explicit `now`.
"""

import logging
import time
from datetime import datetime, timedelta
from typing import Optional
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.services.ledger import Ledger
from src.app.services.notification_service import BadgeChangeEvent, NotificationService
from src.app.repositories.user_account_repository import UserAccountRepository
from src.app.repositories.credit_transaction_repository import CreditTransactionRepository
from src.domain.base import as_naive_utc
from src.domain.badge import BadgeChange, decay
from src.domain.credit_transaction import TransactionType
from src.domain.transaction_meta import BonusMeta
from .award_points import notify_badge_change
from .dtos import BadgeChangeDTO, BadgeJobResultDTO

logger = logging.getLogger(__name__)

DECAY_REASON = "Monthly Inactivity Decay"
# Runs on days 1-3 of consecutive months are at least 26 days apart
RERUN_GUARD = timedelta(days=20)


def decay_key_prefix(user_id: int) -> str:
    return f"monthly-decay:{user_id}:"


def decay_key(user_id: int, period: str) -> str:
    return f"{decay_key_prefix(user_id)}{period}"


class RunMonthlyDecay:
    """
    Use Case: Monthly inactivity decay

    Business Rules:
    1. Candidates: active-flagged students above Bronze whose last activity
       is older than the inactivity threshold (default 6 weeks)
    2. Each candidate drops one step; Bronze is the floor
    3. Idempotent per (user, YYYY-MM), and an overlapping run that crosses
       into the next month within RERUN_GUARD of the previous decay skips
       the user; inactivity is re-checked on the locked row so users
       active since selection are skipped
    4. One user's failure is logged and skipped; the batch continues
    5. Failing to list candidates aborts the run (MONTHLY_DECAY_FAILED)
    """

    def __init__(
        self,
        uow: UnitOfWork,
        user_repo: UserAccountRepository,
        transaction_repo: CreditTransactionRepository,
        inactivity_weeks: int = 6,
        notification_service: Optional[NotificationService] = None,
    ):
        self.uow = uow
        self.user_repo = user_repo
        self.transaction_repo = transaction_repo
        self.inactivity_weeks = inactivity_weeks
        self.notification_service = notification_service
        self.ledger = Ledger(transaction_repo)

    async def execute(self, now: datetime) -> Result[BadgeJobResultDTO]:
        start_time = time.time()
        now = as_naive_utc(now)
        period = now.strftime("%Y-%m")
        inactive_before = now - timedelta(weeks=self.inactivity_weeks)

        try:
            candidates = await self.user_repo.get_inactive_above_floor(inactive_before)
            user_ids = [candidate.id for candidate in candidates]
        except Exception as e:
            logger.error(f"Monthly decay aborted, could not list candidates: {e}")
            await self.uow.rollback()
            return Return.err(
                Error(
                    code="MONTHLY_DECAY_FAILED",
                    message="Failed to run monthly decay",
                    reason=str(e),
                )
            )

        logger.info(f"Found {len(user_ids)} inactive learners for decay ({period})")

        changes: list[BadgeChangeDTO] = []
        skipped = 0
        failed = 0

        for user_id in user_ids:
            try:
                change = await self._decay(user_id, period, inactive_before, now)
                if change is None:
                    skipped += 1
                else:
                    changes.append(change)
            except Exception as e:
                failed += 1
                logger.error(f"Error decaying user {user_id}: {e}")
                await self.uow.rollback()

        execution_time_ms = int((time.time() - start_time) * 1000)
        logger.info(
            f"Monthly decay complete: {len(changes)} decayed, {skipped} skipped, "
            f"{failed} failed in {execution_time_ms}ms"
        )

        return Return.ok(
            BadgeJobResultDTO(
                job="monthly_decay",
                period=period,
                candidates=len(user_ids),
                changed=len(changes),
                skipped=skipped,
                failed=failed,
                changes=changes,
                run_at=now,
                execution_time_ms=execution_time_ms,
            )
        )

    async def _decay(
        self, user_id: int, period: str, inactive_before: datetime, now: datetime
    ) -> Optional[BadgeChangeDTO]:
        key = decay_key(user_id, period)
        if await self.transaction_repo.get_by_idempotency_key(key):
            logger.info(f"User {user_id} already decayed for {period}")
            return None

        learner = await self.user_repo.get_by_id(user_id, for_update=True)
        if not learner:
            return None

        if learner.last_activity >= inactive_before:
            logger.info(f"User {user_id} became active since selection, skipping decay")
            return None

        previous = await self.transaction_repo.get_latest_by_key_prefix(
            user_id, decay_key_prefix(user_id)
        )
        if previous and previous.created_at > now - RERUN_GUARD:
            logger.info(
                f"User {user_id} was decayed at {previous.created_at}, skipping overlapping run"
            )
            return None

        old_badge = learner.badge
        new_badge, change = decay(old_badge)
        if change == BadgeChange.NONE:
            return None

        learner.badge_level = new_badge.level
        learner.badge_tier = new_badge.tier
        await self.user_repo.save(learner)

        transaction = await self.ledger.record(
            learner.id,
            TransactionType.BONUS,
            0,
            meta=BonusMeta(
                reason=DECAY_REASON,
                old_badge=str(old_badge),
                new_badge=str(new_badge),
                last_activity=learner.last_activity,
                inactivity_weeks=self.inactivity_weeks,
                period=period,
            ),
            idempotency_key=key,
            recorded_at=now,
        )
        await self.uow.commit()

        logger.info(f"Decayed {learner.username} from {old_badge} to {new_badge}")

        await notify_badge_change(
            self.notification_service,
            BadgeChangeEvent(
                user_id=learner.id,
                username=learner.username,
                old_badge=old_badge,
                new_badge=new_badge,
                change=change,
                reason=DECAY_REASON,
                occurred_at=now,
                transaction_id=transaction.id,
            ),
        )

        return BadgeChangeDTO(
            user_id=learner.id,
            username=learner.username,
            old_badge=str(old_badge),
            new_badge=str(new_badge),
            change=change.value,
            transaction_id=transaction.id,
        )
