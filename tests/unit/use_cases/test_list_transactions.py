"""Unit tests for ListTransactions use case"""

import pytest
from datetime import datetime
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

from src.app.use_cases.credits import ListTransactions
from src.domain.credit_transaction import CreditTransaction, TransactionStatus, TransactionType
from src.domain.transaction_meta import EnrollMeta, dump_meta
from src.domain.user_account import UserAccount


@pytest.fixture
def mock_transaction_repo():
    return MagicMock()


@pytest.fixture
def mock_user_repo():
    repo = MagicMock()
    repo.get_by_id = AsyncMock(return_value=UserAccount(id=9, username="ada"))
    return repo


@pytest.fixture
def list_use_case(mock_transaction_repo, mock_user_repo):
    return ListTransactions(mock_transaction_repo, mock_user_repo)


@pytest.mark.asyncio
class TestListTransactions:
    async def test_lists_entries_with_meta(self, list_use_case, mock_transaction_repo):
        # Arrange
        entry = CreditTransaction(
            id=21,
            user_id=9,
            transaction_type=TransactionType.ENROLL,
            amount_credits=170,
            fee_credits=0,
            net_credits=170,
            status=TransactionStatus.COMPLETED,
            meta_json=dump_meta(
                EnrollMeta(course_id=3, original_price=200, discount_percent=Decimal("15"), discount_amount=30)
            ),
            related_course_id=3,
            reference_type="enrollment",
            reference_id="7",
            created_at=datetime(2024, 3, 1, 12, 0, 0),
        )
        mock_transaction_repo.get_by_user_id = AsyncMock(return_value=([entry], 1))

        # Act
        result = await list_use_case.execute(9, transaction_type=TransactionType.ENROLL, limit=10)

        # Assert
        assert result.is_ok()
        page = result.value
        assert page.total == 1
        assert page.limit == 10
        assert page.transactions[0].transaction_type == "enroll"
        assert page.transactions[0].status == "completed"
        assert page.transactions[0].meta["kind"] == "enroll"
        assert page.transactions[0].meta["discount_amount"] == 30
        mock_transaction_repo.get_by_user_id.assert_called_once_with(
            user_id=9, transaction_type=TransactionType.ENROLL, limit=10, offset=0
        )

    async def test_empty_history(self, list_use_case, mock_transaction_repo):
        mock_transaction_repo.get_by_user_id = AsyncMock(return_value=([], 0))

        result = await list_use_case.execute(9)

        assert result.value.transactions == []
        assert result.value.total == 0

    @pytest.mark.parametrize("limit,offset", [(0, 0), (101, 0), (20, -1)])
    async def test_rejects_invalid_pagination(self, list_use_case, mock_transaction_repo, limit, offset):
        mock_transaction_repo.get_by_user_id = AsyncMock()

        result = await list_use_case.execute(9, limit=limit, offset=offset)

        assert result.error.code == "VALIDATION_ERROR"
        mock_transaction_repo.get_by_user_id.assert_not_called()

    async def test_unknown_user(self, list_use_case, mock_user_repo):
        mock_user_repo.get_by_id = AsyncMock(return_value=None)

        result = await list_use_case.execute(404)

        assert result.error.code == "USER_NOT_FOUND"
