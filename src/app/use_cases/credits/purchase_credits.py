"""PurchaseCredits Use Case

Credits a user's balance after a fiat payment. The payment reference, when
given, makes the purchase idempotent.
"""

import logging
from decimal import Decimal, ROUND_DOWN
from typing import Optional
from sqlalchemy.exc import IntegrityError
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.services.ledger import Ledger
from src.app.services.wallet import Wallet
from src.app.repositories.user_account_repository import UserAccountRepository
from src.app.repositories.credit_transaction_repository import CreditTransactionRepository
from src.app.use_cases.errors import error_from
from src.domain.credit_policy import CreditPolicy
from src.domain.credit_transaction import CreditTransaction, TransactionType
from src.domain.errors import CreditsError, PaymentReferenceConflictError
from src.domain.transaction_meta import PurchaseMeta
from .dtos import PurchaseCommandDTO, PurchaseResponseDTO

logger = logging.getLogger(__name__)


class PurchaseCredits:
    """
    Use Case: Buy credits

    Business Rules:
    1. Idempotency: same payment_reference returns the original purchase
    2. A payment_reference settles exactly one purchase; replaying it for
       another user or amount is PAYMENT_REFERENCE_CONFLICT and reveals
       nothing about the original
    3. Balance and `purchase` entry are written in one transaction
    """

    def __init__(
        self,
        uow: UnitOfWork,
        user_repo: UserAccountRepository,
        transaction_repo: CreditTransactionRepository,
        policy: Optional[CreditPolicy] = None,
    ):
        self.uow = uow
        self.transaction_repo = transaction_repo
        self.policy = policy or CreditPolicy()
        self.wallet = Wallet(user_repo)
        self.ledger = Ledger(transaction_repo)

    async def execute(self, command: PurchaseCommandDTO) -> Result[PurchaseResponseDTO]:
        idempotency_key = (
            f"purchase:{command.payment_reference}" if command.payment_reference else None
        )

        try:
            if idempotency_key:
                existing = await self.transaction_repo.get_by_idempotency_key(idempotency_key)
                if existing:
                    return await self._replay(existing, command)

            fiat_amount = (Decimal(command.amount_credits) * self.policy.credit_to_fiat_rate).quantize(
                Decimal("0.01"), rounding=ROUND_DOWN
            )

            balance = await self.wallet.credit(command.user_id, command.amount_credits)
            transaction = await self.ledger.record(
                command.user_id,
                TransactionType.PURCHASE,
                command.amount_credits,
                meta=PurchaseMeta(
                    payment_reference=command.payment_reference,
                    fiat_amount=fiat_amount,
                ),
                idempotency_key=idempotency_key,
            )

            await self.uow.commit()
            logger.info(
                f"User {command.user_id} purchased {command.amount_credits} credits "
                f"(transaction {transaction.id})"
            )

            return Return.ok(
                PurchaseResponseDTO(
                    transaction_id=transaction.id,
                    user_id=transaction.user_id,
                    amount_credits=transaction.amount_credits,
                    fiat_amount=fiat_amount,
                    balance=balance,
                    created_at=transaction.created_at,
                )
            )

        except CreditsError as e:
            await self.uow.rollback()
            return Return.err(error_from(e))
        except IntegrityError as e:
            await self.uow.rollback()
            if idempotency_key:
                # Concurrent request with the same payment reference won the race
                existing = await self.transaction_repo.get_by_idempotency_key(idempotency_key)
                if existing:
                    return await self._replay(existing, command)
            return Return.err(
                Error(code="PURCHASE_FAILED", message="Failed to purchase credits", reason=str(e))
            )
        except Exception as e:
            await self.uow.rollback()
            return Return.err(
                Error(
                    code="PURCHASE_FAILED",
                    message="Failed to purchase credits",
                    reason=str(e),
                )
            )

    async def _replay(
        self, existing: CreditTransaction, command: PurchaseCommandDTO
    ) -> Result[PurchaseResponseDTO]:
        if existing.user_id != command.user_id or existing.amount_credits != command.amount_credits:
            logger.warning(
                f"Payment reference {command.payment_reference!r} replayed by user {command.user_id} "
                f"for {command.amount_credits} credits; already settled as transaction {existing.id}"
            )
            return Return.err(
                error_from(
                    PaymentReferenceConflictError(
                        f"Payment reference {command.payment_reference!r} has already been used",
                    )
                )
            )
        return Return.ok(await self._to_response_dto(existing))

    async def _to_response_dto(self, transaction: CreditTransaction) -> PurchaseResponseDTO:
        meta = transaction.meta
        return PurchaseResponseDTO(
            transaction_id=transaction.id,
            user_id=transaction.user_id,
            amount_credits=transaction.amount_credits,
            fiat_amount=meta.fiat_amount if meta is not None else Decimal("0"),
            balance=await self.wallet.balance(transaction.user_id),
            created_at=transaction.created_at,
        )
