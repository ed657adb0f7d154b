"""Weekly Leaderboard Promotion Background Worker

Promotes the week's top learners by one badge tier.
Can be run as a standalone script (cron) or continuously.
"""

import asyncio
import logging
from datetime import datetime
from typing import Optional
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession

from config import ApplicationConfig
from src.adapter.repositories.user_account_repository import SqlAlchemyUserAccountRepository
from src.adapter.repositories.credit_transaction_repository import SqlAlchemyCreditTransactionRepository
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.adapter.services.notification_service import create_notification_service
from src.domain.base import as_naive_utc
from src.app.use_cases.badges import RunWeeklyPromotion, BadgeJobResultDTO

logger = logging.getLogger(__name__)


class WeeklyPromotionWorker:
    """
    Background worker for the weekly leaderboard promotion

    Features:
    - Promotes top N active students one tier
    - Idempotent per ISO week: safe to re-run
    - Announces badge changes through the notification service
    - Can run once or continuously

    Usage:
        # Run once for the current week
        worker = WeeklyPromotionWorker()
        result = await worker.run_once()

        # Run continuously (checks daily, promotes once per week)
        worker = WeeklyPromotionWorker()
        await worker.run_forever()
    """

    def __init__(
        self,
        db_uri: Optional[str] = None,
        top_count: Optional[int] = None,
        webhook_url: Optional[str] = None,
    ):
        """
        Initialize the worker

        Args:
            db_uri: Database URI (defaults to ApplicationConfig.DB_URI)
            top_count: Learners promoted per week (defaults to config)
            webhook_url: Badge notification webhook URL (defaults to config)
        """
        self.db_uri = db_uri or ApplicationConfig.DB_URI
        self.top_count = int(top_count or ApplicationConfig.WEEKLY_TOP_COUNT)
        self.webhook_url = webhook_url or ApplicationConfig.BADGE_NOTIFICATION_WEBHOOK

        # Create engine and session factory
        self.engine = create_async_engine(self.db_uri, echo=False, future=True)
        self.async_session_factory = sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
        )

        self.notification_service = create_notification_service(self.webhook_url)

        logger.info(f"WeeklyPromotionWorker initialized with top_count={self.top_count}")

    async def run_once(self, now: Optional[datetime] = None) -> Optional[BadgeJobResultDTO]:
        """
        Run promotion once for the week containing `now`

        Returns:
            BadgeJobResultDTO, or None when the job is disabled
        """
        if not ApplicationConfig.WEEKLY_PROMOTION_ENABLED:
            logger.info("Weekly promotion is disabled, skipping")
            return None

        now = as_naive_utc(now) if now else datetime.utcnow()

        async with self.async_session_factory() as session:
            use_case = RunWeeklyPromotion(
                uow=SqlAlchemyUnitOfWork(session),
                user_repo=SqlAlchemyUserAccountRepository(session),
                transaction_repo=SqlAlchemyCreditTransactionRepository(session),
                top_count=self.top_count,
                notification_service=self.notification_service,
            )

            result = await use_case.execute(now)

            if result.is_err():
                logger.error(f"Weekly promotion failed: {result.error.message}")
                raise RuntimeError(f"Weekly promotion failed: {result.error.reason}")

            return result.value

    async def run_forever(self, check_interval_seconds: int = 86400):
        """
        Run promotion continuously, once per ISO week

        Args:
            check_interval_seconds: Seconds between checks (default: 24 hours)
        """
        logger.info(
            f"Starting continuous weekly promotion with {check_interval_seconds}s interval"
        )

        last_processed_week = None

        while True:
            try:
                today = datetime.utcnow()
                current_week = today.isocalendar()[:2]

                # Promote on Sundays, once per week
                if today.weekday() == 6 and last_processed_week != current_week:
                    result = await self.run_once(today)
                    last_processed_week = current_week
                    if result:
                        logger.info(f"Processed weekly promotion: {result.changed} promoted")
                else:
                    logger.debug("Skipping promotion check - not Sunday or already processed")

            except Exception as e:
                logger.error(f"Promotion cycle failed: {e}")

            await asyncio.sleep(check_interval_seconds)

    async def shutdown(self):
        """Cleanup resources"""
        await self.engine.dispose()
        logger.info("WeeklyPromotionWorker shutdown complete")


async def main():
    """
    Entry point for running the worker as a standalone script

    Usage:
        # Run once for the current week (typical cron usage)
        python -m src.worker.weekly_promotion

        # Run once as if it were a given date
        python -m src.worker.weekly_promotion --date 2024-01-07

        # Run continuously
        python -m src.worker.weekly_promotion --continuous
    """
    import argparse

    logging.basicConfig(
        level=ApplicationConfig.LOG_LEVEL,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    parser = argparse.ArgumentParser(description="Weekly Leaderboard Promotion Worker")
    parser.add_argument("--date", type=datetime.fromisoformat, help="Run as of this date")
    parser.add_argument(
        "--continuous", action="store_true", help="Run continuously"
    )
    args = parser.parse_args()

    worker = WeeklyPromotionWorker()

    try:
        if args.continuous:
            await worker.run_forever()
        else:
            result = await worker.run_once(now=args.date)
            if result is None:
                print("Weekly promotion is disabled.")
            else:
                print(f"Weekly promotion complete (week of {result.period}):")
                print(f"  Candidates: {result.candidates}")
                print(f"  Promoted: {result.changed}")
                print(f"  Skipped: {result.skipped}")
                print(f"  Failed: {result.failed}")
                print(f"  Execution time: {result.execution_time_ms}ms")
    except KeyboardInterrupt:
        logger.info("Received shutdown signal")
    finally:
        await worker.shutdown()


if __name__ == "__main__":
    asyncio.run(main())
