"""Monthly Inactivity Decay Background Worker

Drops inactive learners one badge step per month.
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
from src.app.use_cases.badges import RunMonthlyDecay, BadgeJobResultDTO

logger = logging.getLogger(__name__)


class MonthlyDecayWorker:
    """
    Background worker for monthly badge decay

    Features:
    - Decays students inactive longer than INACTIVITY_THRESHOLD_WEEKS
    - Idempotent per calendar month: safe to re-run
    - Can run once or continuously

    Usage:
        worker = MonthlyDecayWorker()
        result = await worker.run_once()
    """

    def __init__(
        self,
        db_uri: Optional[str] = None,
        inactivity_weeks: Optional[int] = None,
        webhook_url: Optional[str] = None,
    ):
        """
        Initialize the worker

        Args:
            db_uri: Database URI (defaults to ApplicationConfig.DB_URI)
            inactivity_weeks: Weeks without activity before decay (defaults to config)
            webhook_url: Badge notification webhook URL (defaults to config)
        """
        self.db_uri = db_uri or ApplicationConfig.DB_URI
        self.inactivity_weeks = int(
            inactivity_weeks or ApplicationConfig.INACTIVITY_THRESHOLD_WEEKS
        )
        self.webhook_url = webhook_url or ApplicationConfig.BADGE_NOTIFICATION_WEBHOOK

        # Create engine and session factory
        self.engine = create_async_engine(self.db_uri, echo=False, future=True)
        self.async_session_factory = sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
        )

        self.notification_service = create_notification_service(self.webhook_url)

        logger.info(
            f"MonthlyDecayWorker initialized with inactivity_weeks={self.inactivity_weeks}"
        )

    async def run_once(self, now: Optional[datetime] = None) -> Optional[BadgeJobResultDTO]:
        """
        Run decay once for the month containing `now`

        Returns:
            BadgeJobResultDTO, or None when the job is disabled
        """
        if not ApplicationConfig.MONTHLY_DECAY_ENABLED:
            logger.info("Monthly decay is disabled, skipping")
            return None

        now = as_naive_utc(now) if now else datetime.utcnow()

        async with self.async_session_factory() as session:
            use_case = RunMonthlyDecay(
                uow=SqlAlchemyUnitOfWork(session),
                user_repo=SqlAlchemyUserAccountRepository(session),
                transaction_repo=SqlAlchemyCreditTransactionRepository(session),
                inactivity_weeks=self.inactivity_weeks,
                notification_service=self.notification_service,
            )

            result = await use_case.execute(now)

            if result.is_err():
                logger.error(f"Monthly decay failed: {result.error.message}")
                raise RuntimeError(f"Monthly decay failed: {result.error.reason}")

            return result.value

    async def run_forever(self, check_interval_seconds: int = 86400):
        """
        Run decay continuously, once at the start of each month

        Args:
            check_interval_seconds: Seconds between checks (default: 24 hours)
        """
        logger.info(f"Starting continuous monthly decay with {check_interval_seconds}s interval")

        last_processed_month = None

        while True:
            try:
                today = datetime.utcnow()
                current_month = (today.year, today.month)

                if today.day <= 3 and last_processed_month != current_month:
                    result = await self.run_once(today)
                    last_processed_month = current_month
                    if result:
                        logger.info(f"Processed monthly decay: {result.changed} decayed")
                else:
                    logger.debug("Skipping decay check - not first 3 days or already processed")

            except Exception as e:
                logger.error(f"Decay cycle failed: {e}")

            await asyncio.sleep(check_interval_seconds)

    async def shutdown(self):
        """Cleanup resources"""
        await self.engine.dispose()
        logger.info("MonthlyDecayWorker shutdown complete")


async def main():
    """
    Entry point for running the worker as a standalone script

    Usage:
        python -m src.worker.monthly_decay
        python -m src.worker.monthly_decay --date 2024-03-01
        python -m src.worker.monthly_decay --continuous
    """
    import argparse

    logging.basicConfig(
        level=ApplicationConfig.LOG_LEVEL,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    parser = argparse.ArgumentParser(description="Monthly Badge Decay Worker")
    parser.add_argument("--date", type=datetime.fromisoformat, help="Run as of this date")
    parser.add_argument(
        "--continuous", action="store_true", help="Run continuously"
    )
    args = parser.parse_args()

    worker = MonthlyDecayWorker()

    try:
        if args.continuous:
            await worker.run_forever()
        else:
            result = await worker.run_once(now=args.date)
            if result is None:
                print("Monthly decay is disabled.")
            else:
                print(f"Monthly decay complete ({result.period}):")
                print(f"  Candidates: {result.candidates}")
                print(f"  Decayed: {result.changed}")
                print(f"  Skipped: {result.skipped}")
                print(f"  Failed: {result.failed}")
                print(f"  Execution time: {result.execution_time_ms}ms")
    except KeyboardInterrupt:
        logger.info("Received shutdown signal")
    finally:
        await worker.shutdown()


if __name__ == "__main__":
    asyncio.run(main())
