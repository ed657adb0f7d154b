"""Unit tests for WeeklyPromotionWorker and MonthlyDecayWorker

Tests cover:
- Configuration defaults
- run_once wiring and disabled jobs
- Error propagation
- Timezone-aware dates are converted to naive UTC
- run_forever scheduling windows
"""

import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock, patch

from src.worker.monthly_decay import MonthlyDecayWorker
from src.worker.weekly_promotion import WeeklyPromotionWorker
from src.app.use_cases.badges.dtos import BadgeJobResultDTO


def configure(mock_app_config):
    mock_app_config.DB_URI = "sqlite+aiosqlite:///./test.db"
    mock_app_config.WEEKLY_TOP_COUNT = 5
    mock_app_config.INACTIVITY_THRESHOLD_WEEKS = 6
    mock_app_config.BADGE_NOTIFICATION_WEBHOOK = None
    mock_app_config.WEEKLY_PROMOTION_ENABLED = True
    mock_app_config.MONTHLY_DECAY_ENABLED = True


def mock_session_factory(mock_sessionmaker):
    session = MagicMock()
    session.__aenter__ = AsyncMock(return_value=session)
    session.__aexit__ = AsyncMock(return_value=False)
    mock_sessionmaker.return_value = MagicMock(return_value=session)


def use_case_returning(mock_use_case_class, value=None, error=None):
    mock_use_case = MagicMock()
    mock_result = MagicMock()
    mock_result.is_err.return_value = error is not None
    mock_result.value = value
    mock_result.error = error
    mock_use_case.execute = AsyncMock(return_value=mock_result)
    mock_use_case_class.return_value = mock_use_case
    return mock_use_case


def job_result(job, period, changed=1):
    return BadgeJobResultDTO(
        job=job,
        period=period,
        candidates=changed,
        changed=changed,
        skipped=0,
        failed=0,
        run_at=datetime(2024, 3, 10),
        execution_time_ms=12,
    )


@pytest.mark.asyncio
class TestWeeklyPromotionWorker:
    @patch("src.worker.weekly_promotion.ApplicationConfig")
    @patch("src.worker.weekly_promotion.create_async_engine")
    async def test_initializes_from_config(self, mock_create_engine, mock_app_config):
        configure(mock_app_config)

        worker = WeeklyPromotionWorker()

        assert worker.db_uri == "sqlite+aiosqlite:///./test.db"
        assert worker.top_count == 5
        mock_create_engine.assert_called_once()

    @patch("src.worker.weekly_promotion.ApplicationConfig")
    @patch("src.worker.weekly_promotion.RunWeeklyPromotion")
    @patch("src.worker.weekly_promotion.create_async_engine")
    @patch("src.worker.weekly_promotion.sessionmaker")
    async def test_run_once_promotes_for_given_date(
        self, mock_sessionmaker, mock_create_engine, mock_use_case_class, mock_app_config
    ):
        """
        Given: Promotion is enabled
        When: run_once is called with an explicit date
        Then: The use case runs for that date with the configured top count
        """
        configure(mock_app_config)
        mock_session_factory(mock_sessionmaker)
        mock_use_case = use_case_returning(
            mock_use_case_class, value=job_result("weekly_promotion", "2024-03-04")
        )
        now = datetime(2024, 3, 10, 23, 0, 0)

        worker = WeeklyPromotionWorker(top_count=3)
        result = await worker.run_once(now)

        assert result.changed == 1
        mock_use_case.execute.assert_called_once_with(now)
        assert mock_use_case_class.call_args.kwargs["top_count"] == 3

    @patch("src.worker.weekly_promotion.ApplicationConfig")
    @patch("src.worker.weekly_promotion.RunWeeklyPromotion")
    @patch("src.worker.weekly_promotion.create_async_engine")
    @patch("src.worker.weekly_promotion.sessionmaker")
    async def test_run_once_converts_aware_date_to_naive_utc(
        self, mock_sessionmaker, mock_create_engine, mock_use_case_class, mock_app_config
    ):
        configure(mock_app_config)
        mock_session_factory(mock_sessionmaker)
        mock_use_case = use_case_returning(
            mock_use_case_class, value=job_result("weekly_promotion", "2024-03-04")
        )
        local_after_midnight = datetime(2024, 3, 11, 0, 30, 0, tzinfo=timezone(timedelta(hours=1)))

        await WeeklyPromotionWorker().run_once(local_after_midnight)

        passed = mock_use_case.execute.call_args.args[0]
        assert passed == datetime(2024, 3, 10, 23, 30, 0)
        assert passed.tzinfo is None

    @patch("src.worker.weekly_promotion.ApplicationConfig")
    @patch("src.worker.weekly_promotion.RunWeeklyPromotion")
    @patch("src.worker.weekly_promotion.create_async_engine")
    async def test_run_once_skips_when_disabled(
        self, mock_create_engine, mock_use_case_class, mock_app_config
    ):
        configure(mock_app_config)
        mock_app_config.WEEKLY_PROMOTION_ENABLED = False

        result = await WeeklyPromotionWorker().run_once()

        assert result is None
        mock_use_case_class.assert_not_called()

    @patch("src.worker.weekly_promotion.ApplicationConfig")
    @patch("src.worker.weekly_promotion.RunWeeklyPromotion")
    @patch("src.worker.weekly_promotion.create_async_engine")
    @patch("src.worker.weekly_promotion.sessionmaker")
    async def test_run_once_raises_on_use_case_error(
        self, mock_sessionmaker, mock_create_engine, mock_use_case_class, mock_app_config
    ):
        configure(mock_app_config)
        mock_session_factory(mock_sessionmaker)
        error = MagicMock()
        error.message = "Failed to run weekly promotion"
        error.reason = "Database unavailable"
        use_case_returning(mock_use_case_class, error=error)

        with pytest.raises(RuntimeError, match="Weekly promotion failed"):
            await WeeklyPromotionWorker().run_once()

    @patch("src.worker.weekly_promotion.ApplicationConfig")
    @patch("src.worker.weekly_promotion.asyncio.sleep")
    @patch("src.worker.weekly_promotion.datetime")
    @patch("src.worker.weekly_promotion.create_async_engine")
    async def test_run_forever_promotes_once_per_week(
        self, mock_create_engine, mock_datetime, mock_sleep, mock_app_config
    ):
        """
        Given: Two checks on the same Sunday
        When: run_forever loops
        Then: Promotion runs only once
        """
        configure(mock_app_config)
        mock_datetime.utcnow.return_value = datetime(2024, 3, 10, 1, 0, 0)
        call_count = 0

        async def limited_sleep(seconds):
            nonlocal call_count
            call_count += 1
            if call_count >= 2:
                raise KeyboardInterrupt("Test termination")

        mock_sleep.side_effect = limited_sleep

        worker = WeeklyPromotionWorker()
        worker.run_once = AsyncMock(return_value=job_result("weekly_promotion", "2024-03-04"))

        with pytest.raises(KeyboardInterrupt):
            await worker.run_forever(check_interval_seconds=60)

        worker.run_once.assert_called_once()
        mock_sleep.assert_called_with(60)

    @patch("src.worker.weekly_promotion.ApplicationConfig")
    @patch("src.worker.weekly_promotion.create_async_engine")
    async def test_shutdown_disposes_engine(self, mock_create_engine, mock_app_config):
        configure(mock_app_config)
        mock_engine = MagicMock()
        mock_engine.dispose = AsyncMock()
        mock_create_engine.return_value = mock_engine

        await WeeklyPromotionWorker().shutdown()

        mock_engine.dispose.assert_called_once()


@pytest.mark.asyncio
class TestMonthlyDecayWorker:
    @patch("src.worker.monthly_decay.ApplicationConfig")
    @patch("src.worker.monthly_decay.create_async_engine")
    async def test_initializes_from_config(self, mock_create_engine, mock_app_config):
        configure(mock_app_config)

        worker = MonthlyDecayWorker()

        assert worker.inactivity_weeks == 6

    @patch("src.worker.monthly_decay.ApplicationConfig")
    @patch("src.worker.monthly_decay.RunMonthlyDecay")
    @patch("src.worker.monthly_decay.create_async_engine")
    @patch("src.worker.monthly_decay.sessionmaker")
    async def test_run_once_decays_for_given_date(
        self, mock_sessionmaker, mock_create_engine, mock_use_case_class, mock_app_config
    ):
        configure(mock_app_config)
        mock_session_factory(mock_sessionmaker)
        mock_use_case = use_case_returning(
            mock_use_case_class, value=job_result("monthly_decay", "2024-04", changed=2)
        )
        now = datetime(2024, 4, 1, 2, 0, 0)

        worker = MonthlyDecayWorker(inactivity_weeks=8)
        result = await worker.run_once(now)

        assert result.changed == 2
        mock_use_case.execute.assert_called_once_with(now)
        assert mock_use_case_class.call_args.kwargs["inactivity_weeks"] == 8

    @patch("src.worker.monthly_decay.ApplicationConfig")
    @patch("src.worker.monthly_decay.RunMonthlyDecay")
    @patch("src.worker.monthly_decay.create_async_engine")
    @patch("src.worker.monthly_decay.sessionmaker")
    async def test_run_once_accepts_utc_offset_date(
        self, mock_sessionmaker, mock_create_engine, mock_use_case_class, mock_app_config
    ):
        """
        Given: --date 2024-04-01T02:00:00+00:00
        When: run_once is called with that aware value
        Then: The use case receives the same instant as a naive UTC datetime
        """
        configure(mock_app_config)
        mock_session_factory(mock_sessionmaker)
        mock_use_case = use_case_returning(
            mock_use_case_class, value=job_result("monthly_decay", "2024-04")
        )

        await MonthlyDecayWorker().run_once(datetime.fromisoformat("2024-04-01T02:00:00+00:00"))

        mock_use_case.execute.assert_called_once_with(datetime(2024, 4, 1, 2, 0, 0))
        assert mock_use_case.execute.call_args.args[0].tzinfo is None

    @patch("src.worker.monthly_decay.ApplicationConfig")
    @patch("src.worker.monthly_decay.RunMonthlyDecay")
    @patch("src.worker.monthly_decay.create_async_engine")
    async def test_run_once_skips_when_disabled(
        self, mock_create_engine, mock_use_case_class, mock_app_config
    ):
        configure(mock_app_config)
        mock_app_config.MONTHLY_DECAY_ENABLED = False

        result = await MonthlyDecayWorker().run_once()

        assert result is None
        mock_use_case_class.assert_not_called()

    @patch("src.worker.monthly_decay.ApplicationConfig")
    @patch("src.worker.monthly_decay.asyncio.sleep")
    @patch("src.worker.monthly_decay.datetime")
    @patch("src.worker.monthly_decay.create_async_engine")
    async def test_run_forever_skips_outside_first_days(
        self, mock_create_engine, mock_datetime, mock_sleep, mock_app_config
    ):
        configure(mock_app_config)
        mock_datetime.utcnow.return_value = datetime(2024, 4, 15, 1, 0, 0)
        mock_sleep.side_effect = KeyboardInterrupt("Test termination")

        worker = MonthlyDecayWorker()
        worker.run_once = AsyncMock()

        with pytest.raises(KeyboardInterrupt):
            await worker.run_forever(check_interval_seconds=60)

        worker.run_once.assert_not_called()
