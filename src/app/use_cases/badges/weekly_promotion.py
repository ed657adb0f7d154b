"""RunWeeklyPromotion Use Case

Promotes the week's top active learners by one tier. Invoked once a week
by an external scheduler with an explicit `now`.
"""

import logging
import time
from datetime import date, datetime, timedelta
from typing import Optional
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.services.ledger import Ledger
from src.app.services.notification_service import BadgeChangeEvent, NotificationService
from src.app.repositories.user_account_repository import UserAccountRepository
from src.app.repositories.credit_transaction_repository import CreditTransactionRepository
from src.domain.base import as_naive_utc
from src.domain.badge import BadgeChange, promote_tier
from src.domain.credit_transaction import TransactionType
from src.domain.transaction_meta import BonusMeta
from .award_points import notify_badge_change
from .dtos import BadgeChangeDTO, BadgeJobResultDTO

logger = logging.getLogger(__name__)

PROMOTION_REASON = "Weekly Leaderboard Promotion"
ACTIVITY_WINDOW = timedelta(days=7)
# Sunday runs are at least six days apart
RERUN_GUARD = timedelta(days=5)


def week_start(now: datetime) -> date:
    """Monday of the ISO week containing `now`"""
    return (now - timedelta(days=now.weekday())).date()


def promotion_key_prefix(user_id: int) -> str:
    return f"weekly-promotion:{user_id}:"


def promotion_key(user_id: int, week: date) -> str:
    return f"{promotion_key_prefix(user_id)}{week.isoformat()}"


class RunWeeklyPromotion:
    """
    Use Case: Weekly leaderboard promotion

    Business Rules:
    1. Candidates: top N active students by performance points (ties by id)
       whose last activity is within the last 7 days
    2. Each candidate below tier 3 moves up one tier within the level
    3. Idempotent per (user, ISO week): a re-run in the same week skips
       users already promoted, and so does an overlapping run that crosses
       into the next week within RERUN_GUARD of the previous promotion
    4. One user's failure is logged and skipped; the batch continues
    5. Failing to list candidates aborts the run (WEEKLY_PROMOTION_FAILED)
    """

    def __init__(
        self,
        uow: UnitOfWork,
        user_repo: UserAccountRepository,
        transaction_repo: CreditTransactionRepository,
        top_count: int = 5,
        notification_service: Optional[NotificationService] = None,
    ):
        self.uow = uow
        self.user_repo = user_repo
        self.transaction_repo = transaction_repo
        self.top_count = top_count
        self.notification_service = notification_service
        self.ledger = Ledger(transaction_repo)

    async def execute(self, now: datetime) -> Result[BadgeJobResultDTO]:
        start_time = time.time()
        now = as_naive_utc(now)
        week = week_start(now)

        try:
            candidates = await self.user_repo.get_top_active(
                active_since=now - ACTIVITY_WINDOW,
                limit=self.top_count,
                students_only=True,
            )
            ranked = [(rank, candidate.id) for rank, candidate in enumerate(candidates, start=1)]
        except Exception as e:
            logger.error(f"Weekly promotion aborted, could not list candidates: {e}")
            await self.uow.rollback()
            return Return.err(
                Error(
                    code="WEEKLY_PROMOTION_FAILED",
                    message="Failed to run weekly promotion",
                    reason=str(e),
                )
            )

        logger.info(f"Found {len(ranked)} top learners for weekly promotion (week of {week})")

        changes: list[BadgeChangeDTO] = []
        skipped = 0
        failed = 0

        for rank, user_id in ranked:
            try:
                change = await self._promote(user_id, rank, week, now)
                if change is None:
                    skipped += 1
                else:
                    changes.append(change)
            except Exception as e:
                failed += 1
                logger.error(f"Error promoting user {user_id}: {e}")
                await self.uow.rollback()

        execution_time_ms = int((time.time() - start_time) * 1000)
        logger.info(
            f"Weekly promotion complete: {len(changes)} promoted, {skipped} skipped, "
            f"{failed} failed in {execution_time_ms}ms"
        )

        return Return.ok(
            BadgeJobResultDTO(
                job="weekly_promotion",
                period=week.isoformat(),
                candidates=len(ranked),
                changed=len(changes),
                skipped=skipped,
                failed=failed,
                changes=changes,
                run_at=now,
                execution_time_ms=execution_time_ms,
            )
        )

    async def _promote(
        self, user_id: int, rank: int, week: date, now: datetime
    ) -> Optional[BadgeChangeDTO]:
        key = promotion_key(user_id, week)
        if await self.transaction_repo.get_by_idempotency_key(key):
            logger.info(f"User {user_id} already promoted for week of {week}")
            return None

        learner = await self.user_repo.get_by_id(user_id, for_update=True)
        if not learner:
            return None

        previous = await self.transaction_repo.get_latest_by_key_prefix(
            user_id, promotion_key_prefix(user_id)
        )
        if previous and previous.created_at > now - RERUN_GUARD:
            logger.info(
                f"User {user_id} was promoted at {previous.created_at}, skipping overlapping run"
            )
            return None

        old_badge = learner.badge
        new_badge, change = promote_tier(old_badge)
        if change == BadgeChange.NONE:
            logger.info(f"{learner.username} is already at max tier for {old_badge.level.value}")
            return None

        learner.badge_level = new_badge.level
        learner.badge_tier = new_badge.tier
        await self.user_repo.save(learner)

        transaction = await self.ledger.record(
            learner.id,
            TransactionType.BONUS,
            0,
            meta=BonusMeta(
                reason=PROMOTION_REASON,
                old_badge=str(old_badge),
                new_badge=str(new_badge),
                rank=rank,
                performance_points=learner.performance_points,
                period=week.isoformat(),
            ),
            idempotency_key=key,
            recorded_at=now,
        )
        await self.uow.commit()

        logger.info(f"Promoted {learner.username} from {old_badge} to {new_badge} (rank {rank})")

        await notify_badge_change(
            self.notification_service,
            BadgeChangeEvent(
                user_id=learner.id,
                username=learner.username,
                old_badge=old_badge,
                new_badge=new_badge,
                change=change,
                reason=PROMOTION_REASON,
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
            rank=rank,
            transaction_id=transaction.id,
        )
