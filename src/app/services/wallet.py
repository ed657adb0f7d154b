"""Wallet / Balance Manager

Single source of truth for spendable credits (UserAccount.credits).
The balance can never go negative: debits are one guarded UPDATE, so the
balance check and the subtraction cannot be split by a concurrent debit.
"""

import logging
from src.app.repositories.user_account_repository import UserAccountRepository
from src.domain.errors import InsufficientFundsError, InvalidRequestError, UserNotFoundError

logger = logging.getLogger(__name__)


def _require_amount(amount) -> None:
    if not isinstance(amount, int) or isinstance(amount, bool) or amount < 0:
        raise InvalidRequestError(f"Amount must be a non-negative integer, got {amount!r}")


class Wallet:
    def __init__(self, user_repo: UserAccountRepository):
        self.user_repo = user_repo

    async def credit(self, user_id: int, amount: int) -> int:
        """Add credits; no upper bound. Returns the new balance."""
        _require_amount(amount)
        new_balance = await self.user_repo.add_credits(user_id, amount)
        if new_balance is None:
            raise UserNotFoundError(f"Account {user_id} not found")
        return new_balance

    async def debit(self, user_id: int, amount: int) -> int:
        """
        Remove credits if the balance covers them. Returns the new balance.

        Raises:
            InsufficientFundsError: balance < amount (balance unchanged)
            UserNotFoundError: unknown account
        """
        _require_amount(amount)
        new_balance = await self.user_repo.subtract_credits(user_id, amount)
        if new_balance is not None:
            return new_balance

        account = await self.user_repo.get_by_id(user_id)
        if account is None:
            raise UserNotFoundError(f"Account {user_id} not found")

        logger.info(f"Debit of {amount} refused for user {user_id}: balance {account.credits}")
        raise InsufficientFundsError(user_id, required=amount, available=account.credits)

    async def balance(self, user_id: int) -> int:
        account = await self.user_repo.get_by_id(user_id)
        if account is None:
            raise UserNotFoundError(f"Account {user_id} not found")
        return account.credits
