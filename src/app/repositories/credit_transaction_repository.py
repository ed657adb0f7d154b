"""Credit Transaction Repository Interface

Defines the contract for ledger persistence operations.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Tuple
from src.domain.credit_transaction import CreditTransaction, TransactionStatus, TransactionType


class CreditTransactionRepository(ABC):
    """
    Repository interface for CreditTransaction persistence

    Transactions are append-only; only their status may be updated.
    Idempotency is enforced via unique idempotency_key.
    """

    @abstractmethod
    async def create(self, transaction: CreditTransaction) -> CreditTransaction:
        """
        Create a new credit transaction

        Raises:
            IntegrityError: If idempotency_key already exists (duplicate transaction)
        """
        pass

    @abstractmethod
    async def get_by_idempotency_key(self, idempotency_key: str) -> Optional[CreditTransaction]:
        pass

    @abstractmethod
    async def get_latest_by_key_prefix(self, user_id: int, key_prefix: str) -> Optional[CreditTransaction]:
        """
        Most recent entry of a user whose idempotency_key starts with key_prefix

        Used by scheduled jobs to find their previous run for the user.
        """
        pass

    @abstractmethod
    async def get_by_id(self, transaction_id: int, for_update: bool = False) -> Optional[CreditTransaction]:
        pass

    @abstractmethod
    async def update_status(self, transaction_id: int, status: TransactionStatus) -> None:
        pass

    @abstractmethod
    async def get_by_user_id(
        self,
        user_id: int,
        transaction_type: Optional[TransactionType] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Tuple[List[CreditTransaction], int]:
        """
        Page of a user's transactions, newest first

        Returns:
            (transactions, total matching count)
        """
        pass

    @abstractmethod
    async def get_signed_sum_by_user(self) -> Dict[int, int]:
        """
        Balance implied by the ledger for every user with entries

        enroll/cashout count as -amount_credits, every other type as +net_credits.
        """
        pass

    @abstractmethod
    async def get_by_reference_type(self, reference_type: str) -> List[CreditTransaction]:
        pass
