"""SQLAlchemy implementation of CreditTransactionRepository

Provides persistence for ledger entries with idempotency enforcement
via unique constraint on idempotency_key.
"""

from typing import Dict, List, Optional, Tuple
from sqlalchemy import case, func
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.repositories.credit_transaction_repository import CreditTransactionRepository
from src.domain.credit_transaction import (
    CreditTransaction,
    DEBIT_TYPES,
    TransactionStatus,
    TransactionType,
)


class SqlAlchemyCreditTransactionRepository(CreditTransactionRepository):
    """
    SQLAlchemy implementation of CreditTransactionRepository

    Features:
    - Idempotency enforcement via unique idempotency_key constraint
    - Append-only entries (only status is ever updated)
    - Ledger-implied balances computed in SQL for reconciliation
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, transaction: CreditTransaction) -> CreditTransaction:
        """
        Create a new credit transaction

        Raises:
            IntegrityError: If idempotency_key already exists (duplicate transaction attempt)
        """
        self.session.add(transaction)
        await self.session.flush()
        await self.session.refresh(transaction)
        return transaction

    async def get_by_idempotency_key(self, idempotency_key: str) -> Optional[CreditTransaction]:
        stmt = select(CreditTransaction).where(
            CreditTransaction.idempotency_key == idempotency_key
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_latest_by_key_prefix(self, user_id: int, key_prefix: str) -> Optional[CreditTransaction]:
        stmt = (
            select(CreditTransaction)
            .where(
                CreditTransaction.user_id == user_id,
                CreditTransaction.idempotency_key.startswith(key_prefix, autoescape=True),
            )
            .order_by(CreditTransaction.created_at.desc(), CreditTransaction.id.desc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def get_by_id(self, transaction_id: int, for_update: bool = False) -> Optional[CreditTransaction]:
        stmt = (
            select(CreditTransaction)
            .where(CreditTransaction.id == transaction_id)
            .execution_options(populate_existing=True)
        )

        if for_update:
            stmt = stmt.with_for_update()

        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def update_status(self, transaction_id: int, status: TransactionStatus) -> None:
        transaction = await self.get_by_id(transaction_id)
        if transaction:
            transaction.status = status
            self.session.add(transaction)
            await self.session.flush()

    async def get_by_user_id(
        self,
        user_id: int,
        transaction_type: Optional[TransactionType] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Tuple[List[CreditTransaction], int]:
        filters = [CreditTransaction.user_id == user_id]
        if transaction_type is not None:
            filters.append(CreditTransaction.transaction_type == transaction_type)

        count_stmt = select(func.count()).select_from(CreditTransaction).where(*filters)
        total = (await self.session.execute(count_stmt)).scalar_one()

        stmt = (
            select(CreditTransaction)
            .where(*filters)
            .order_by(CreditTransaction.created_at.desc(), CreditTransaction.id.desc())
            .limit(limit)
            .offset(offset)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all()), total

    async def get_signed_sum_by_user(self) -> Dict[int, int]:
        signed = case(
            (
                CreditTransaction.transaction_type.in_(list(DEBIT_TYPES)),
                -CreditTransaction.amount_credits,
            ),
            else_=CreditTransaction.net_credits,
        )
        stmt = (
            select(CreditTransaction.user_id, func.coalesce(func.sum(signed), 0))
            .group_by(CreditTransaction.user_id)
        )
        result = await self.session.execute(stmt)
        return {user_id: int(total) for user_id, total in result.all()}

    async def get_by_reference_type(self, reference_type: str) -> List[CreditTransaction]:
        stmt = (
            select(CreditTransaction)
            .where(CreditTransaction.reference_type == reference_type)
            .order_by(CreditTransaction.id.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
