"""Notification Service Interface

Defines the contract for announcing badge changes.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from src.domain.badge import Badge, BadgeChange


@dataclass(frozen=True)
class BadgeChangeEvent:
    user_id: int
    username: str
    old_badge: Badge
    new_badge: Badge
    change: BadgeChange
    reason: str
    occurred_at: datetime
    transaction_id: Optional[int] = None


class NotificationService(ABC):
    """
    Abstract notification service for badge change alerts

    Implementations can send notifications via:
    - Logging
    - Webhook (HTTP POST)
    - Composite (several channels at once)
    """

    @abstractmethod
    async def send_badge_change(self, event: BadgeChangeEvent) -> bool:
        """
        Announce a badge change

        Args:
            event: BadgeChangeEvent describing the transition

        Returns:
            True if notification sent successfully, False otherwise
        """
        pass
