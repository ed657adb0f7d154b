"""ProvisionPlatformAccount Use Case

Creates the platform fee account once, at system start-up. Enrollment
settlement never creates it on demand.
"""

import logging
from sqlalchemy.exc import IntegrityError
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.repositories.user_account_repository import UserAccountRepository
from src.domain.user_account import AccountRole, UserAccount
from .dtos import PlatformAccountDTO

logger = logging.getLogger(__name__)


class ProvisionPlatformAccount:
    """
    Use Case: Ensure the platform fee account exists

    Idempotent: running it again returns the existing account. A configured
    username that already belongs to an ordinary account is refused, never
    turned into the platform account.
    """

    def __init__(self, uow: UnitOfWork, user_repo: UserAccountRepository, username: str = "platform"):
        self.uow = uow
        self.user_repo = user_repo
        self.username = username

    async def execute(self) -> Result[PlatformAccountDTO]:
        try:
            existing = await self.user_repo.get_platform_account()
            if existing:
                return Return.ok(
                    PlatformAccountDTO(user_id=existing.id, username=existing.username, created=False)
                )

            taken_by = await self.user_repo.get_by_username(self.username)
            if taken_by:
                logger.error(
                    f"Platform username '{self.username}' belongs to user account {taken_by.id}; "
                    f"refusing to provision"
                )
                return Return.err(
                    Error(
                        code="PROVISION_PLATFORM_ACCOUNT_FAILED",
                        message="Failed to provision platform account",
                        reason=f"Username '{self.username}' is already used by account {taken_by.id}",
                    )
                )

            account = await self.user_repo.create(
                UserAccount(username=self.username, role=AccountRole.ADMIN, is_platform=True)
            )

            await self.uow.commit()
            logger.info(f"Provisioned platform account {account.id} ({account.username})")
            return Return.ok(
                PlatformAccountDTO(user_id=account.id, username=account.username, created=True)
            )

        except IntegrityError:
            # Another process provisioned it concurrently
            await self.uow.rollback()
            existing = await self.user_repo.get_platform_account()
            if existing:
                return Return.ok(
                    PlatformAccountDTO(user_id=existing.id, username=existing.username, created=False)
                )
            return Return.err(
                Error(
                    code="PROVISION_PLATFORM_ACCOUNT_FAILED",
                    message="Failed to provision platform account",
                    reason=f"Username '{self.username}' conflict",
                )
            )
        except Exception as e:
            await self.uow.rollback()
            return Return.err(
                Error(
                    code="PROVISION_PLATFORM_ACCOUNT_FAILED",
                    message="Failed to provision platform account",
                    reason=str(e),
                )
            )
