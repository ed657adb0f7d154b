"""RequestCashout Use Case

Withdraws credits to fiat. Credits are debited immediately; the ledger
entry stays pending until the external payout process reports back.
"""

import logging
from decimal import Decimal, ROUND_DOWN
from typing import Optional
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.services.ledger import Ledger
from src.app.services.wallet import Wallet
from src.app.repositories.user_account_repository import UserAccountRepository
from src.app.repositories.credit_transaction_repository import CreditTransactionRepository
from src.app.use_cases.errors import error_from
from src.domain.credit_policy import CreditPolicy, percent_of
from src.domain.credit_transaction import TransactionType
from src.domain.errors import CreditsError, ForbiddenError, InvalidRequestError, UserNotFoundError
from src.domain.transaction_meta import CashoutMeta
from src.domain.user_account import AccountRole
from .dtos import CashoutCommandDTO, CashoutResponseDTO

logger = logging.getLogger(__name__)

CASHOUT_ROLES = (AccountRole.INSTRUCTOR, AccountRole.ADMIN)
CENT = Decimal("0.01")


class RequestCashout:
    """
    Use Case: Request a cashout

    Business Rules:
    1. Only instructors and admins may cash out
    2. amount >= minimum cashout
    3. cashout fee = floor(amount * cashout fee % / 100), net = amount - fee
    4. fiat amount = net * credit-to-fiat rate, rounded down to cents
    5. The full amount is debited now (guarded, never negative)
    6. The ledger entry is created pending
    """

    def __init__(
        self,
        uow: UnitOfWork,
        user_repo: UserAccountRepository,
        transaction_repo: CreditTransactionRepository,
        policy: Optional[CreditPolicy] = None,
    ):
        self.uow = uow
        self.user_repo = user_repo
        self.policy = policy or CreditPolicy()
        self.wallet = Wallet(user_repo)
        self.ledger = Ledger(transaction_repo)

    async def execute(self, command: CashoutCommandDTO) -> Result[CashoutResponseDTO]:
        try:
            account = await self.user_repo.get_by_id(command.user_id, for_update=True)
            if not account:
                raise UserNotFoundError(f"Account {command.user_id} not found")

            if account.role not in CASHOUT_ROLES:
                raise ForbiddenError("Only instructors and admins can request a cashout")

            if command.amount_credits < self.policy.min_cashout_credits:
                raise InvalidRequestError(
                    f"Amount must be at least {self.policy.min_cashout_credits} credits"
                )

            fee = percent_of(command.amount_credits, self.policy.cashout_fee_percent)
            net = command.amount_credits - fee
            fiat_amount = (Decimal(net) * self.policy.credit_to_fiat_rate).quantize(
                CENT, rounding=ROUND_DOWN
            )

            remaining_balance = await self.wallet.debit(account.id, command.amount_credits)

            transaction = await self.ledger.record(
                account.id,
                TransactionType.CASHOUT,
                command.amount_credits,
                fee,
                meta=CashoutMeta(
                    payment_method=command.payment_method,
                    fiat_amount=fiat_amount,
                    credit_to_fiat_rate=self.policy.credit_to_fiat_rate,
                ),
            )

            await self.uow.commit()
            logger.info(
                f"Cashout {transaction.id} requested by user {account.id}: "
                f"{command.amount_credits} credits, fee {fee}, fiat {fiat_amount}"
            )

            return Return.ok(
                CashoutResponseDTO(
                    transaction_id=transaction.id,
                    user_id=account.id,
                    amount_credits=transaction.amount_credits,
                    fee_credits=transaction.fee_credits,
                    net_credits=transaction.net_credits,
                    fiat_amount=fiat_amount,
                    payment_method=command.payment_method,
                    status=transaction.status.value,
                    remaining_balance=remaining_balance,
                    created_at=transaction.created_at,
                )
            )

        except CreditsError as e:
            await self.uow.rollback()
            return Return.err(error_from(e))
        except Exception as e:
            await self.uow.rollback()
            return Return.err(
                Error(
                    code="CASHOUT_FAILED",
                    message="Failed to process cashout request",
                    reason=str(e),
                )
            )
