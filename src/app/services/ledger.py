"""Ledger

Append-only record of every credit movement. The ledger never touches
balances; callers pair each entry with the matching Wallet operation
inside the same unit of work.
"""

from datetime import datetime
from typing import List, Optional, Tuple
from src.app.repositories.credit_transaction_repository import CreditTransactionRepository
from src.domain.credit_transaction import CreditTransaction, TransactionStatus, TransactionType
from src.domain.errors import InvalidRequestError, TransactionNotFoundError
from src.domain.transaction_meta import ALLOWED_META_KINDS, TransactionMeta, dump_meta

_DEFAULT_DESCRIPTIONS = {
    TransactionType.ENROLL: "Enrolled in course",
    TransactionType.EARN: "Earned from course",
    TransactionType.CASHOUT: "Cashout request",
    TransactionType.ONBOARDING: "Welcome bonus",
    TransactionType.PURCHASE: "Credits purchase",
    TransactionType.REFUND: "Refund",
    TransactionType.BONUS: "Bonus",
}


def _require_credits(name: str, value) -> None:
    if not isinstance(value, int) or isinstance(value, bool) or value < 0:
        raise InvalidRequestError(f"{name} must be a non-negative integer, got {value!r}")


class Ledger:
    def __init__(self, transaction_repo: CreditTransactionRepository):
        self.transaction_repo = transaction_repo

    async def record(
        self,
        user_id: int,
        transaction_type: TransactionType,
        amount_credits: int,
        fee_credits: int = 0,
        meta: Optional[TransactionMeta] = None,
        *,
        description: Optional[str] = None,
        related_user_id: Optional[int] = None,
        related_course_id: Optional[int] = None,
        status: Optional[TransactionStatus] = None,
        reference_type: Optional[str] = None,
        reference_id: Optional[str] = None,
        idempotency_key: Optional[str] = None,
        recorded_at: Optional[datetime] = None,
    ) -> CreditTransaction:
        """
        Append one ledger entry

        Cashouts start pending; every other type is recorded completed
        unless a status is given. `recorded_at` pins created_at to the
        clock of a scheduled job instead of the wall clock.

        Raises:
            InvalidRequestError: negative amounts, fee above amount, or a
                meta variant that does not belong to the transaction type
        """
        _require_credits("amount_credits", amount_credits)
        _require_credits("fee_credits", fee_credits)
        if fee_credits > amount_credits:
            raise InvalidRequestError(
                f"fee_credits ({fee_credits}) cannot exceed amount_credits ({amount_credits})"
            )

        transaction_type = TransactionType(transaction_type)
        if meta is not None and meta.kind not in ALLOWED_META_KINDS[transaction_type.value]:
            raise InvalidRequestError(
                f"Metadata of kind '{meta.kind}' is not valid for {transaction_type.value} transactions"
            )

        if status is None:
            status = (
                TransactionStatus.PENDING
                if transaction_type == TransactionType.CASHOUT
                else TransactionStatus.COMPLETED
            )

        if description is None:
            description = _DEFAULT_DESCRIPTIONS[transaction_type]
            reason = getattr(meta, "reason", None)
            if transaction_type == TransactionType.BONUS and reason:
                description = f"Bonus: {reason}"

        transaction = CreditTransaction(
            user_id=user_id,
            transaction_type=transaction_type,
            amount_credits=amount_credits,
            fee_credits=fee_credits,
            net_credits=amount_credits - fee_credits,
            status=status,
            description=description[:200],
            meta_json=dump_meta(meta) if meta is not None else None,
            related_user_id=related_user_id,
            related_course_id=related_course_id,
            reference_type=reference_type,
            reference_id=reference_id,
            idempotency_key=idempotency_key,
        )
        if recorded_at is not None:
            transaction.created_at = recorded_at
        return await self.transaction_repo.create(transaction)

    async def get(self, transaction_id: int, for_update: bool = False) -> CreditTransaction:
        transaction = await self.transaction_repo.get_by_id(transaction_id, for_update=for_update)
        if transaction is None:
            raise TransactionNotFoundError(f"Transaction {transaction_id} not found")
        return transaction

    async def mark_completed(self, transaction_id: int) -> CreditTransaction:
        return await self._transition(transaction_id, TransactionStatus.COMPLETED)

    async def mark_failed(self, transaction_id: int) -> CreditTransaction:
        return await self._transition(transaction_id, TransactionStatus.FAILED)

    async def mark_cancelled(self, transaction_id: int) -> CreditTransaction:
        return await self._transition(transaction_id, TransactionStatus.CANCELLED)

    async def list_for_user(
        self,
        user_id: int,
        transaction_type: Optional[TransactionType] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Tuple[List[CreditTransaction], int]:
        return await self.transaction_repo.get_by_user_id(
            user_id=user_id,
            transaction_type=transaction_type,
            limit=limit,
            offset=offset,
        )

    async def _transition(self, transaction_id: int, status: TransactionStatus) -> CreditTransaction:
        transaction = await self.get(transaction_id, for_update=True)
        transaction.transition_to(status)
        await self.transaction_repo.update_status(transaction_id, status)
        return transaction
