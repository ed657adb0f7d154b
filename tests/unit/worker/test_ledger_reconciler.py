"""Unit tests for LedgerReconcilerWorker

Tests cover:
- Worker initialization with configuration
- run_once execution with reconciliation
- Reconciliation disabled scenario
- run_forever continuous execution
- Shutdown and cleanup
"""

import pytest
from datetime import datetime
from unittest.mock import AsyncMock, MagicMock, patch

from src.worker.ledger_reconciler import LedgerReconcilerWorker
from src.app.use_cases.credits.dtos import (
    LedgerDiscrepancyDTO,
    ReconciliationResultDTO,
    SettlementDiscrepancyDTO,
)


def mock_session_factory(mock_sessionmaker):
    session = MagicMock()
    session.__aenter__ = AsyncMock(return_value=session)
    session.__aexit__ = AsyncMock(return_value=False)
    mock_sessionmaker.return_value = MagicMock(return_value=session)
    return session


def use_case_returning(mock_use_case_class, value=None, error=None):
    mock_use_case = MagicMock()
    mock_result = MagicMock()
    mock_result.is_err.return_value = error is not None
    mock_result.value = value
    mock_result.error = error
    mock_use_case.execute = AsyncMock(return_value=mock_result)
    mock_use_case_class.return_value = mock_use_case
    return mock_use_case


@pytest.fixture
def balanced_result():
    return ReconciliationResultDTO(
        total_accounts_checked=10,
        discrepancies_found=0,
        discrepancies=[],
        settlements_checked=4,
        reconciliation_time=datetime.utcnow(),
        execution_time_ms=150,
    )


@pytest.fixture
def unbalanced_result():
    return ReconciliationResultDTO(
        total_accounts_checked=10,
        discrepancies_found=1,
        discrepancies=[
            LedgerDiscrepancyDTO(
                user_id=2,
                username="grace",
                account_balance=500,
                calculated_balance=167,
                discrepancy=333,
            )
        ],
        settlements_checked=4,
        settlement_discrepancies=[
            SettlementDiscrepancyDTO(
                reference_id="7",
                learner_debit=170,
                instructor_net=167,
                platform_fee=0,
                difference=3,
                missing_legs=["platform_fee"],
            )
        ],
        reconciliation_time=datetime.utcnow(),
        execution_time_ms=250,
    )


class TestLedgerReconcilerWorkerInit:
    @patch("src.worker.ledger_reconciler.ApplicationConfig")
    @patch("src.worker.ledger_reconciler.create_async_engine")
    def test_initializes_with_default_config(self, mock_create_engine, mock_app_config):
        mock_app_config.DB_URI = "sqlite+aiosqlite:///./default.db"

        worker = LedgerReconcilerWorker()

        assert worker.db_uri == "sqlite+aiosqlite:///./default.db"
        mock_create_engine.assert_called_once()

    @patch("src.worker.ledger_reconciler.ApplicationConfig")
    @patch("src.worker.ledger_reconciler.create_async_engine")
    def test_initializes_with_custom_db_uri(self, mock_create_engine, mock_app_config):
        mock_app_config.DB_URI = "sqlite+aiosqlite:///./default.db"

        worker = LedgerReconcilerWorker(db_uri="postgresql+asyncpg://custom@localhost/skillswap")

        assert worker.db_uri == "postgresql+asyncpg://custom@localhost/skillswap"


@pytest.mark.asyncio
class TestLedgerReconcilerWorkerRunOnce:
    @patch("src.worker.ledger_reconciler.ApplicationConfig")
    @patch("src.worker.ledger_reconciler.ReconcileLedger")
    @patch("src.worker.ledger_reconciler.create_async_engine")
    @patch("src.worker.ledger_reconciler.sessionmaker")
    async def test_run_once_executes_reconciliation(
        self, mock_sessionmaker, mock_create_engine, mock_use_case_class, mock_app_config, balanced_result
    ):
        """
        Given: Reconciliation is enabled
        When: run_once is called
        Then: Executes reconciliation use case and returns result
        """
        mock_app_config.DB_URI = "sqlite+aiosqlite:///./test.db"
        mock_app_config.RECONCILIATION_ENABLED = True
        mock_session_factory(mock_sessionmaker)
        mock_use_case = use_case_returning(mock_use_case_class, value=balanced_result)

        worker = LedgerReconcilerWorker()
        result = await worker.run_once()

        assert result.total_accounts_checked == 10
        assert result.is_balanced
        mock_use_case.execute.assert_called_once()

    @patch("src.worker.ledger_reconciler.ApplicationConfig")
    @patch("src.worker.ledger_reconciler.ReconcileLedger")
    @patch("src.worker.ledger_reconciler.create_async_engine")
    @patch("src.worker.ledger_reconciler.sessionmaker")
    async def test_run_once_returns_discrepancies(
        self, mock_sessionmaker, mock_create_engine, mock_use_case_class, mock_app_config, unbalanced_result
    ):
        mock_app_config.RECONCILIATION_ENABLED = True
        mock_session_factory(mock_sessionmaker)
        use_case_returning(mock_use_case_class, value=unbalanced_result)

        worker = LedgerReconcilerWorker(db_uri="sqlite+aiosqlite:///./test.db")
        result = await worker.run_once()

        assert result.discrepancies[0].user_id == 2
        assert result.settlement_discrepancies[0].missing_legs == ["platform_fee"]
        assert not result.is_balanced

    @patch("src.worker.ledger_reconciler.ApplicationConfig")
    @patch("src.worker.ledger_reconciler.ReconcileLedger")
    @patch("src.worker.ledger_reconciler.create_async_engine")
    async def test_run_once_skips_when_disabled(
        self, mock_create_engine, mock_use_case_class, mock_app_config
    ):
        mock_app_config.DB_URI = "sqlite+aiosqlite:///./test.db"
        mock_app_config.RECONCILIATION_ENABLED = False

        worker = LedgerReconcilerWorker()
        result = await worker.run_once()

        assert result.total_accounts_checked == 0
        assert result.execution_time_ms == 0
        mock_use_case_class.assert_not_called()

    @patch("src.worker.ledger_reconciler.ApplicationConfig")
    @patch("src.worker.ledger_reconciler.ReconcileLedger")
    @patch("src.worker.ledger_reconciler.create_async_engine")
    @patch("src.worker.ledger_reconciler.sessionmaker")
    async def test_run_once_raises_on_use_case_error(
        self, mock_sessionmaker, mock_create_engine, mock_use_case_class, mock_app_config
    ):
        mock_app_config.RECONCILIATION_ENABLED = True
        mock_session_factory(mock_sessionmaker)
        error = MagicMock()
        error.message = "Failed to reconcile credit ledger"
        use_case_returning(mock_use_case_class, error=error)

        worker = LedgerReconcilerWorker(db_uri="sqlite+aiosqlite:///./test.db")
        with pytest.raises(RuntimeError, match="Reconciliation failed"):
            await worker.run_once()


@pytest.mark.asyncio
class TestLedgerReconcilerWorkerLifecycle:
    @patch("src.worker.ledger_reconciler.ApplicationConfig")
    @patch("src.worker.ledger_reconciler.create_async_engine")
    async def test_shutdown_disposes_engine(self, mock_create_engine, mock_app_config):
        mock_engine = MagicMock()
        mock_engine.dispose = AsyncMock()
        mock_create_engine.return_value = mock_engine

        worker = LedgerReconcilerWorker(db_uri="sqlite+aiosqlite:///./test.db")
        await worker.shutdown()

        mock_engine.dispose.assert_called_once()

    @patch("src.worker.ledger_reconciler.ApplicationConfig")
    @patch("src.worker.ledger_reconciler.asyncio.sleep")
    @patch("src.worker.ledger_reconciler.create_async_engine")
    async def test_run_forever_continues_after_failed_cycle(
        self, mock_create_engine, mock_sleep, mock_app_config
    ):
        """
        Given: The first reconciliation cycle raises
        When: run_forever is running
        Then: The loop sleeps and runs again
        """
        mock_app_config.RECONCILIATION_ENABLED = False
        call_count = 0

        async def limited_sleep(seconds):
            nonlocal call_count
            call_count += 1
            if call_count >= 2:
                raise KeyboardInterrupt("Test termination")

        mock_sleep.side_effect = limited_sleep

        worker = LedgerReconcilerWorker(db_uri="sqlite+aiosqlite:///./test.db")
        worker.run_once = AsyncMock(side_effect=[Exception("boom"), MagicMock()])

        with pytest.raises(KeyboardInterrupt):
            await worker.run_forever(interval_seconds=3600)

        assert worker.run_once.call_count == 2
        mock_sleep.assert_called_with(3600)
