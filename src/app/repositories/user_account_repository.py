"""User Account Repository Interface

Defines the contract for account persistence, including the atomic
balance primitives the wallet relies on.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, List, Optional
from src.domain.user_account import UserAccount


class UserAccountRepository(ABC):
    """
    Repository interface for UserAccount persistence

    Balance mutations are single guarded UPDATE statements so that two
    concurrent debits can never both pass the balance check.
    """

    @abstractmethod
    async def get_by_id(self, user_id: int, for_update: bool = False) -> Optional[UserAccount]:
        """
        Retrieve account by ID

        Args:
            user_id: Account ID
            for_update: If True, lock the row with SELECT FOR UPDATE

        Returns:
            UserAccount if found, None otherwise
        """
        pass

    @abstractmethod
    async def lock_accounts(self, user_ids: List[int]) -> Dict[int, UserAccount]:
        """
        Lock several account rows with SELECT FOR UPDATE, in ascending id order

        Returns:
            Locked accounts keyed by id; unknown ids are absent
        """
        pass

    @abstractmethod
    async def get_by_username(self, username: str) -> Optional[UserAccount]:
        pass

    @abstractmethod
    async def get_platform_account(self) -> Optional[UserAccount]:
        """Retrieve the provisioned platform fee account, if any"""
        pass

    @abstractmethod
    async def create(self, account: UserAccount) -> UserAccount:
        pass

    @abstractmethod
    async def save(self, account: UserAccount) -> UserAccount:
        """Persist badge/points/activity changes made on a loaded account"""
        pass

    @abstractmethod
    async def add_credits(self, user_id: int, amount: int) -> Optional[int]:
        """
        Atomically add credits

        Returns:
            New balance, or None if the account does not exist
        """
        pass

    @abstractmethod
    async def subtract_credits(self, user_id: int, amount: int) -> Optional[int]:
        """
        Atomically subtract credits only if balance >= amount

        Returns:
            New balance, or None if the account does not exist or
            the balance is insufficient (nothing is changed)
        """
        pass

    @abstractmethod
    async def get_top_active(
        self, active_since: Optional[datetime], limit: int, students_only: bool = False
    ) -> List[UserAccount]:
        """
        Active non-platform accounts ranked by performance points

        Args:
            active_since: Only accounts with last_activity >= this (None = all time)
            limit: Maximum number of accounts
            students_only: Restrict to the student role

        Returns:
            Accounts ordered by performance_points desc, id asc
        """
        pass

    @abstractmethod
    async def get_inactive_above_floor(self, inactive_before: datetime) -> List[UserAccount]:
        """Active students with last_activity < inactive_before and level above Bronze"""
        pass

    @abstractmethod
    async def get_all(self) -> List[UserAccount]:
        pass
