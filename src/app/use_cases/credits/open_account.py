"""OpenAccount Use Case

Creates a user account and grants the onboarding bonus.
"""

import logging
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
from src.domain.credit_transaction import TransactionType
from src.domain.errors import CreditsError, DuplicateAccountError
from src.domain.transaction_meta import OnboardingMeta
from src.domain.user_account import UserAccount
from .dtos import OpenAccountCommandDTO, AccountResponseDTO

logger = logging.getLogger(__name__)


class OpenAccount:
    """
    Use Case: Open a user account

    Business Rules:
    1. Usernames are unique
    2. New accounts start at Bronze 1 with 0 performance points
    3. The onboarding bonus is credited through the wallet and recorded
       as an `onboarding` ledger entry, so balance and ledger agree
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

    async def execute(self, command: OpenAccountCommandDTO) -> Result[AccountResponseDTO]:
        try:
            if await self.user_repo.get_by_username(command.username):
                raise DuplicateAccountError(f"Username '{command.username}' is already taken")

            account = await self.user_repo.create(
                UserAccount(username=command.username, role=command.role)
            )

            balance = account.credits
            onboarding_tx = None
            if self.policy.onboarding_bonus > 0:
                balance = await self.wallet.credit(account.id, self.policy.onboarding_bonus)
                onboarding_tx = await self.ledger.record(
                    account.id,
                    TransactionType.ONBOARDING,
                    self.policy.onboarding_bonus,
                    meta=OnboardingMeta(),
                    idempotency_key=f"onboarding:{account.id}",
                )

            await self.uow.commit()
            logger.info(f"Opened account {account.id} ({account.username}) with {balance} credits")

            return Return.ok(
                AccountResponseDTO(
                    user_id=account.id,
                    username=account.username,
                    role=account.role.value,
                    credits=balance,
                    performance_points=account.performance_points,
                    badge=account.badge.display_name,
                    onboarding_transaction_id=onboarding_tx.id if onboarding_tx else None,
                    created_at=account.created_at,
                )
            )

        except CreditsError as e:
            await self.uow.rollback()
            return Return.err(error_from(e))
        except IntegrityError as e:
            await self.uow.rollback()
            return Return.err(
                Error(
                    code=DuplicateAccountError.code,
                    message=f"Username '{command.username}' is already taken",
                    reason=str(e),
                )
            )
        except Exception as e:
            await self.uow.rollback()
            return Return.err(
                Error(
                    code="OPEN_ACCOUNT_FAILED",
                    message="Failed to open account",
                    reason=str(e),
                )
            )
