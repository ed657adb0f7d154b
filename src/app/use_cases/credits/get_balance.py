"""Get Balance Use Case

Retrieves a user's credits, performance points, badge and discount.
"""

from libs.result import Result, Return, Error
from src.app.repositories.user_account_repository import UserAccountRepository
from src.app.use_cases.credits.dtos import BalanceResponseDTO


class GetBalance:
    """
    Get Balance Use Case

    Read-only operation. The balance returned is never negative.
    """

    def __init__(self, user_repo: UserAccountRepository):
        self.user_repo = user_repo

    async def execute(self, user_id: int) -> Result[BalanceResponseDTO]:
        """
        Execute get balance operation

        Errors:
            USER_NOT_FOUND: No account with this id
        """
        account = await self.user_repo.get_by_id(user_id)

        if not account:
            return Return.err(
                Error(
                    code="USER_NOT_FOUND",
                    message=f"No account found for user {user_id}",
                )
            )

        badge = account.badge
        return Return.ok(
            BalanceResponseDTO(
                user_id=account.id,
                balance=account.credits,
                performance_points=account.performance_points,
                badge=badge.display_name,
                badge_level=badge.level.value,
                badge_tier=badge.tier,
                discount_percent=badge.discount_percent,
                last_activity=account.last_activity,
            )
        )
