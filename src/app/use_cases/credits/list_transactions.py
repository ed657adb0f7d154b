"""
List Transactions Use Case

Retrieves credit transaction history for a user with pagination and an
optional type filter.
"""
from typing import Optional
from libs.result import Result, Return, Error
from src.app.repositories.credit_transaction_repository import CreditTransactionRepository
from src.app.repositories.user_account_repository import UserAccountRepository
from src.domain.credit_transaction import CreditTransaction, TransactionType
from .dtos import ListTransactionsResponseDTO, TransactionDTO

MAX_PAGE_SIZE = 100


def to_transaction_dto(txn: CreditTransaction) -> TransactionDTO:
    meta = txn.meta
    return TransactionDTO(
        id=txn.id,
        transaction_type=TransactionType(txn.transaction_type).value,
        amount_credits=txn.amount_credits,
        fee_credits=txn.fee_credits,
        net_credits=txn.net_credits,
        status=txn.status.value if hasattr(txn.status, "value") else txn.status,
        description=txn.description,
        related_user_id=txn.related_user_id,
        related_course_id=txn.related_course_id,
        reference_type=txn.reference_type,
        reference_id=txn.reference_id,
        meta=meta.model_dump(mode="json") if meta is not None else None,
        created_at=txn.created_at,
    )


class ListTransactions:
    """
    Use case: View credit transactions

    Transactions are ordered by created_at DESC (most recent first).
    """

    def __init__(
        self,
        transaction_repo: CreditTransactionRepository,
        user_repo: UserAccountRepository,
    ):
        self.transaction_repo = transaction_repo
        self.user_repo = user_repo

    async def execute(
        self,
        user_id: int,
        transaction_type: Optional[TransactionType] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Result[ListTransactionsResponseDTO]:
        """
        List transactions for a user with pagination.

        Args:
            user_id: Account identifier
            transaction_type: Only return entries of this type
            limit: Maximum number of transactions to return (1..100)
            offset: Number of transactions to skip
        """
        if limit < 1 or limit > MAX_PAGE_SIZE or offset < 0:
            return Return.err(
                Error(
                    code="VALIDATION_ERROR",
                    message=f"limit must be between 1 and {MAX_PAGE_SIZE} and offset >= 0",
                )
            )

        if not await self.user_repo.get_by_id(user_id):
            return Return.err(
                Error(
                    code="USER_NOT_FOUND",
                    message=f"No account found for user {user_id}",
                )
            )

        transactions, total = await self.transaction_repo.get_by_user_id(
            user_id=user_id,
            transaction_type=transaction_type,
            limit=limit,
            offset=offset,
        )

        return Return.ok(
            ListTransactionsResponseDTO(
                transactions=[to_transaction_dto(txn) for txn in transactions],
                total=total,
                limit=limit,
                offset=offset,
            )
        )
