"""Cashout settlement Use Cases

Terminal transitions for pending cashouts. A completed payout only changes
the entry status. A failed payout, or a cashout withdrawn by its owner, is
compensated: the debited credits go back to the user together with a
`refund` ledger entry.
"""

import logging
from typing import Optional
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.services.ledger import Ledger
from src.app.services.wallet import Wallet
from src.app.repositories.user_account_repository import UserAccountRepository
from src.app.repositories.credit_transaction_repository import CreditTransactionRepository
from src.app.use_cases.errors import error_from
from src.domain.credit_transaction import CreditTransaction, TransactionType
from src.domain.errors import CreditsError, ForbiddenError, InvalidRequestError
from src.domain.transaction_meta import RefundMeta
from .dtos import CashoutSettlementResponseDTO

logger = logging.getLogger(__name__)


async def _load_cashout(ledger: Ledger, transaction_id: int) -> CreditTransaction:
    transaction = await ledger.get(transaction_id, for_update=True)
    if transaction.transaction_type != TransactionType.CASHOUT:
        raise InvalidRequestError(f"Transaction {transaction_id} is not a cashout")
    return transaction


async def _refund_cashout(
    ledger: Ledger, wallet: Wallet, transaction: CreditTransaction, reason: str, description: str
):
    """Give the full debited amount back; one refund per cashout"""
    balance = await wallet.credit(transaction.user_id, transaction.amount_credits)
    refund = await ledger.record(
        transaction.user_id,
        TransactionType.REFUND,
        transaction.amount_credits,
        meta=RefundMeta(original_transaction_id=transaction.id, reason=reason),
        description=description,
        reference_type="cashout",
        reference_id=str(transaction.id),
        idempotency_key=f"cashout-refund:{transaction.id}",
    )
    return refund, balance


class MarkCashoutCompleted:
    """
    Use Case: External payout succeeded

    pending -> completed; balances are untouched.
    """

    def __init__(
        self,
        uow: UnitOfWork,
        user_repo: UserAccountRepository,
        transaction_repo: CreditTransactionRepository,
    ):
        self.uow = uow
        self.wallet = Wallet(user_repo)
        self.ledger = Ledger(transaction_repo)

    async def execute(self, transaction_id: int) -> Result[CashoutSettlementResponseDTO]:
        try:
            transaction = await _load_cashout(self.ledger, transaction_id)
            transaction = await self.ledger.mark_completed(transaction.id)
            await self.uow.commit()

            logger.info(f"Cashout {transaction_id} completed for user {transaction.user_id}")
            return Return.ok(
                CashoutSettlementResponseDTO(
                    transaction_id=transaction.id,
                    user_id=transaction.user_id,
                    status=transaction.status.value,
                    balance=await self.wallet.balance(transaction.user_id),
                )
            )

        except CreditsError as e:
            await self.uow.rollback()
            return Return.err(error_from(e))
        except Exception as e:
            await self.uow.rollback()
            return Return.err(
                Error(
                    code="CASHOUT_SETTLEMENT_FAILED",
                    message="Failed to complete cashout",
                    reason=str(e),
                )
            )


class MarkCashoutFailed:
    """
    Use Case: External payout failed

    Business Rules:
    1. pending -> failed
    2. Compensating credit of the full debited amount
    3. `refund` entry referencing the cashout (one per cashout)
    """

    def __init__(
        self,
        uow: UnitOfWork,
        user_repo: UserAccountRepository,
        transaction_repo: CreditTransactionRepository,
    ):
        self.uow = uow
        self.wallet = Wallet(user_repo)
        self.ledger = Ledger(transaction_repo)

    async def execute(
        self, transaction_id: int, reason: Optional[str] = None
    ) -> Result[CashoutSettlementResponseDTO]:
        try:
            transaction = await _load_cashout(self.ledger, transaction_id)
            transaction = await self.ledger.mark_failed(transaction.id)
            refund, balance = await _refund_cashout(
                self.ledger,
                self.wallet,
                transaction,
                reason=reason or "Cashout payout failed",
                description="Refund: failed cashout",
            )

            await self.uow.commit()
            logger.warning(
                f"Cashout {transaction_id} failed for user {transaction.user_id}; "
                f"refunded {transaction.amount_credits} credits (refund {refund.id})"
            )

            return Return.ok(
                CashoutSettlementResponseDTO(
                    transaction_id=transaction.id,
                    user_id=transaction.user_id,
                    status=transaction.status.value,
                    refund_transaction_id=refund.id,
                    balance=balance,
                )
            )

        except CreditsError as e:
            await self.uow.rollback()
            return Return.err(error_from(e))
        except Exception as e:
            await self.uow.rollback()
            return Return.err(
                Error(
                    code="CASHOUT_SETTLEMENT_FAILED",
                    message="Failed to record cashout failure",
                    reason=str(e),
                )
            )


class CancelCashout:
    """
    Use Case: Owner withdraws a pending cashout before payout

    Business Rules:
    1. Only the account that requested the cashout may cancel it (FORBIDDEN)
    2. pending -> cancelled; completed or failed cashouts cannot be cancelled
    3. Same compensation as a failed payout
    """

    def __init__(
        self,
        uow: UnitOfWork,
        user_repo: UserAccountRepository,
        transaction_repo: CreditTransactionRepository,
    ):
        self.uow = uow
        self.wallet = Wallet(user_repo)
        self.ledger = Ledger(transaction_repo)

    async def execute(self, transaction_id: int, user_id: int) -> Result[CashoutSettlementResponseDTO]:
        try:
            transaction = await _load_cashout(self.ledger, transaction_id)
            if transaction.user_id != user_id:
                raise ForbiddenError(
                    f"User {user_id} cannot cancel cashout {transaction_id}",
                    reason=f"owner={transaction.user_id}",
                )

            transaction = await self.ledger.mark_cancelled(transaction.id)
            refund, balance = await _refund_cashout(
                self.ledger,
                self.wallet,
                transaction,
                reason="Cashout cancelled by user",
                description="Refund: cancelled cashout",
            )

            await self.uow.commit()
            logger.info(
                f"Cashout {transaction_id} cancelled by user {user_id}; "
                f"refunded {transaction.amount_credits} credits (refund {refund.id})"
            )

            return Return.ok(
                CashoutSettlementResponseDTO(
                    transaction_id=transaction.id,
                    user_id=transaction.user_id,
                    status=transaction.status.value,
                    refund_transaction_id=refund.id,
                    balance=balance,
                )
            )

        except CreditsError as e:
            await self.uow.rollback()
            return Return.err(error_from(e))
        except Exception as e:
            await self.uow.rollback()
            return Return.err(
                Error(
                    code="CASHOUT_SETTLEMENT_FAILED",
                    message="Failed to cancel cashout",
                    reason=str(e),
                )
            )
