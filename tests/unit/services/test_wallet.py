"""Unit tests for the Wallet balance manager"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from src.app.services.wallet import Wallet
from src.domain.errors import InsufficientFundsError, InvalidRequestError, UserNotFoundError
from src.domain.user_account import UserAccount


@pytest.fixture
def mock_user_repo():
    """Mock user account repository"""
    return MagicMock()


@pytest.fixture
def wallet(mock_user_repo):
    return Wallet(mock_user_repo)


@pytest.mark.asyncio
class TestWalletDebit:
    async def test_debit_returns_new_balance(self, wallet, mock_user_repo):
        # Arrange
        mock_user_repo.subtract_credits = AsyncMock(return_value=70)

        # Act
        balance = await wallet.debit(1, 30)

        # Assert
        assert balance == 70
        mock_user_repo.subtract_credits.assert_called_once_with(1, 30)

    async def test_debit_above_balance_is_refused(self, wallet, mock_user_repo):
        """
        Given: Balance is 30
        When: Debiting 50
        Then: InsufficientFundsError, balance untouched (guarded UPDATE matched nothing)
        """
        # Arrange
        mock_user_repo.subtract_credits = AsyncMock(return_value=None)
        mock_user_repo.get_by_id = AsyncMock(return_value=UserAccount(id=1, username="ada", credits=30))

        # Act
        with pytest.raises(InsufficientFundsError) as exc_info:
            await wallet.debit(1, 50)

        # Assert
        assert exc_info.value.code == "INSUFFICIENT_CREDIT"
        assert exc_info.value.required == 50
        assert exc_info.value.available == 30

    async def test_debit_unknown_account(self, wallet, mock_user_repo):
        mock_user_repo.subtract_credits = AsyncMock(return_value=None)
        mock_user_repo.get_by_id = AsyncMock(return_value=None)

        with pytest.raises(UserNotFoundError):
            await wallet.debit(99, 10)

    @pytest.mark.parametrize("amount", [-1, 2.5, "10"])
    async def test_debit_rejects_invalid_amount(self, wallet, mock_user_repo, amount):
        mock_user_repo.subtract_credits = AsyncMock()

        with pytest.raises(InvalidRequestError):
            await wallet.debit(1, amount)

        mock_user_repo.subtract_credits.assert_not_called()


@pytest.mark.asyncio
class TestWalletCredit:
    async def test_credit_returns_new_balance(self, wallet, mock_user_repo):
        mock_user_repo.add_credits = AsyncMock(return_value=150)

        assert await wallet.credit(1, 50) == 150
        mock_user_repo.add_credits.assert_called_once_with(1, 50)

    async def test_credit_of_zero_is_allowed(self, wallet, mock_user_repo):
        mock_user_repo.add_credits = AsyncMock(return_value=100)

        assert await wallet.credit(1, 0) == 100

    async def test_credit_unknown_account(self, wallet, mock_user_repo):
        mock_user_repo.add_credits = AsyncMock(return_value=None)

        with pytest.raises(UserNotFoundError):
            await wallet.credit(99, 10)


@pytest.mark.asyncio
class TestWalletBalance:
    async def test_balance(self, wallet, mock_user_repo):
        mock_user_repo.get_by_id = AsyncMock(return_value=UserAccount(id=1, username="ada", credits=42))

        assert await wallet.balance(1) == 42
