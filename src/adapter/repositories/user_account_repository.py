"""SQLAlchemy implementation of UserAccountRepository

Balance changes are single guarded UPDATE ... RETURNING statements, so the
check and the mutation happen atomically in the database.
"""

from datetime import datetime
from typing import Dict, List, Optional
from sqlalchemy import update
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.repositories.user_account_repository import UserAccountRepository
from src.domain.badge import BadgeLevel
from src.domain.user_account import AccountRole, UserAccount


class SqlAlchemyUserAccountRepository(UserAccountRepository):
    """
    SQLAlchemy implementation of UserAccountRepository

    Features:
    - Pessimistic locking via SELECT FOR UPDATE for badge updates
    - Guarded atomic debits (credits >= amount checked in the UPDATE)
    - Reads always refresh already-loaded instances
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, user_id: int, for_update: bool = False) -> Optional[UserAccount]:
        """
        Retrieve account by ID with optional row-level locking

        Args:
            user_id: Account ID
            for_update: If True, locks the row with SELECT FOR UPDATE

        Returns:
            UserAccount if found, None otherwise
        """
        stmt = (
            select(UserAccount)
            .where(UserAccount.id == user_id)
            .execution_options(populate_existing=True)
        )

        if for_update:
            stmt = stmt.with_for_update()

        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def lock_accounts(self, user_ids: List[int]) -> Dict[int, UserAccount]:
        stmt = (
            select(UserAccount)
            .where(UserAccount.id.in_(user_ids))
            .order_by(UserAccount.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return {account.id: account for account in result.scalars().all()}

    async def get_by_username(self, username: str) -> Optional[UserAccount]:
        stmt = (
            select(UserAccount)
            .where(UserAccount.username == username)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_platform_account(self) -> Optional[UserAccount]:
        stmt = (
            select(UserAccount)
            .where(UserAccount.is_platform.is_(True))
            .order_by(UserAccount.id.asc())
            .limit(1)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def create(self, account: UserAccount) -> UserAccount:
        self.session.add(account)
        await self.session.flush()
        await self.session.refresh(account)
        return account

    async def save(self, account: UserAccount) -> UserAccount:
        account.updated_at = datetime.utcnow()
        self.session.add(account)
        await self.session.flush()
        return account

    async def add_credits(self, user_id: int, amount: int) -> Optional[int]:
        stmt = (
            update(UserAccount)
            .where(UserAccount.id == user_id)
            .values(credits=UserAccount.credits + amount, updated_at=datetime.utcnow())
            .returning(UserAccount.credits)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def subtract_credits(self, user_id: int, amount: int) -> Optional[int]:
        stmt = (
            update(UserAccount)
            .where(UserAccount.id == user_id, UserAccount.credits >= amount)
            .values(credits=UserAccount.credits - amount, updated_at=datetime.utcnow())
            .returning(UserAccount.credits)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_top_active(
        self, active_since: Optional[datetime], limit: int, students_only: bool = False
    ) -> List[UserAccount]:
        stmt = select(UserAccount).where(
            UserAccount.is_active.is_(True),
            UserAccount.is_platform.is_(False),
        )
        if active_since is not None:
            stmt = stmt.where(UserAccount.last_activity >= active_since)
        if students_only:
            stmt = stmt.where(UserAccount.role == AccountRole.STUDENT)

        stmt = stmt.order_by(
            UserAccount.performance_points.desc(), UserAccount.id.asc()
        ).limit(limit).execution_options(populate_existing=True)

        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_inactive_above_floor(self, inactive_before: datetime) -> List[UserAccount]:
        stmt = (
            select(UserAccount)
            .where(
                UserAccount.is_active.is_(True),
                UserAccount.is_platform.is_(False),
                UserAccount.role == AccountRole.STUDENT,
                UserAccount.last_activity < inactive_before,
                UserAccount.badge_level != BadgeLevel.BRONZE,
            )
            .order_by(UserAccount.id.asc())
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_all(self) -> List[UserAccount]:
        stmt = (
            select(UserAccount)
            .order_by(UserAccount.id.asc())
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
