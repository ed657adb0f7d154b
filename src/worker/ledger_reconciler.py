"""Ledger Reconciliation Background Worker

Checks that every wallet balance equals the signed sum of its ledger
entries and that every enrollment settlement conserved credits. Findings
are reported, never repaired.

    python -m src.worker.ledger_reconciler --once
    python -m src.worker.ledger_reconciler --interval 3600
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
from src.app.use_cases.credits import ReconcileLedger, ReconciliationResultDTO

logger = logging.getLogger(__name__)


def report_discrepancies(result: ReconciliationResultDTO):
    """Log every balance and settlement mismatch at error level"""
    if result.is_balanced:
        return

    logger.error(
        f"ALERT: ledger out of balance ({result.discrepancies_found} wallets, "
        f"{len(result.settlement_discrepancies)} settlements)"
    )
    for d in result.discrepancies:
        logger.error(
            f"  wallet {d.user_id} ({d.username}): ledger={d.calculated_balance} "
            f"stored={d.account_balance} diff={d.discrepancy}"
        )
    for s in result.settlement_discrepancies:
        logger.error(
            f"  enrollment {s.reference_id}: difference={s.difference} "
            f"missing={','.join(s.missing_legs) or '-'}"
        )


class LedgerReconcilerWorker:
    """
    Runs ReconcileLedger against its own engine, once or on an interval.

    A failed use case raises RuntimeError from run_once; run_forever logs
    the failure and keeps its schedule.
    """

    def __init__(self, db_uri: Optional[str] = None):
        self.db_uri = db_uri or ApplicationConfig.DB_URI
        self.engine = create_async_engine(self.db_uri, echo=False, future=True)
        self.async_session_factory = sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
        )
        logger.info("LedgerReconcilerWorker initialized")

    async def run_once(self) -> ReconciliationResultDTO:
        if not ApplicationConfig.RECONCILIATION_ENABLED:
            logger.info("Ledger reconciliation is disabled, skipping")
            return ReconciliationResultDTO(
                total_accounts_checked=0,
                discrepancies_found=0,
                discrepancies=[],
                reconciliation_time=datetime.utcnow(),
                execution_time_ms=0,
            )

        async with self.async_session_factory() as session:
            result = await ReconcileLedger(
                uow=SqlAlchemyUnitOfWork(session),
                user_repo=SqlAlchemyUserAccountRepository(session),
                transaction_repo=SqlAlchemyCreditTransactionRepository(session),
            ).execute()

        if result.is_err():
            logger.error(f"Reconciliation failed: {result.error.message} ({result.error.reason})")
            raise RuntimeError(f"Reconciliation failed: {result.error.message}")

        report_discrepancies(result.value)
        return result.value

    async def run_forever(self, interval_seconds: Optional[int] = None):
        interval_seconds = int(
            interval_seconds or ApplicationConfig.RECONCILIATION_INTERVAL_SECONDS
        )
        logger.info(f"Reconciling the ledger every {interval_seconds}s")

        while True:
            try:
                result = await self.run_once()
                logger.info(
                    f"Reconciled {result.total_accounts_checked} wallets and "
                    f"{result.settlements_checked} settlements in {result.execution_time_ms}ms"
                )
            except Exception as e:
                logger.error(f"Reconciliation cycle failed: {e}")

            await asyncio.sleep(interval_seconds)

    async def shutdown(self):
        await self.engine.dispose()
        logger.info("LedgerReconcilerWorker shutdown complete")


async def main():
    import sys
    import argparse

    logging.basicConfig(
        level=ApplicationConfig.LOG_LEVEL,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    parser = argparse.ArgumentParser(description="SkillSwap ledger reconciliation")
    parser.add_argument("--once", action="store_true", help="Reconcile once and exit")
    parser.add_argument(
        "--interval", type=int, default=None,
        help="Seconds between runs (default: RECONCILIATION_INTERVAL_SECONDS)",
    )
    args = parser.parse_args()

    worker = LedgerReconcilerWorker()
    balanced = True

    try:
        if args.once:
            result = await worker.run_once()
            balanced = result.is_balanced
            print(
                f"wallets={result.total_accounts_checked} "
                f"wallet_discrepancies={result.discrepancies_found} "
                f"settlements={result.settlements_checked} "
                f"settlement_discrepancies={len(result.settlement_discrepancies)} "
                f"time={result.execution_time_ms}ms"
            )
        else:
            await worker.run_forever(interval_seconds=args.interval)
    except KeyboardInterrupt:
        logger.info("Received shutdown signal")
    finally:
        await worker.shutdown()

    if not balanced:
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
