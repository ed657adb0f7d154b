"""Badge notifiers

Concrete channels for announcing badge changes. Delivery is best effort:
a notifier reports failure by returning False and never raises into the
job or request that triggered it.
"""

import logging
from typing import Optional
import httpx
from src.app.services.notification_service import BadgeChangeEvent, NotificationService

logger = logging.getLogger(__name__)

WEBHOOK_EVENT_TYPE = "badge_change"


def badge_change_payload(event: BadgeChangeEvent) -> dict:
    """JSON body posted to badge webhooks"""
    return {
        "type": WEBHOOK_EVENT_TYPE,
        "user_id": event.user_id,
        "username": event.username,
        "old_badge": {"level": event.old_badge.level.value, "tier": event.old_badge.tier},
        "new_badge": {"level": event.new_badge.level.value, "tier": event.new_badge.tier},
        "change": event.change.value,
        "reason": event.reason,
        "transaction_id": event.transaction_id,
        "occurred_at": event.occurred_at.isoformat(),
    }


class LogBadgeNotifier(NotificationService):
    """Writes badge changes to the application log"""

    async def send_badge_change(self, event: BadgeChangeEvent) -> bool:
        logger.info(
            f"[BADGE] {event.username} ({event.user_id}): {event.old_badge} -> "
            f"{event.new_badge} [{event.change.value}] {event.reason}"
        )
        return True


class WebhookBadgeNotifier(NotificationService):
    """
    Posts badge changes to an HTTP endpoint

    Any transport error or non-2xx response counts as a failed delivery.
    """

    def __init__(self, webhook_url: str, timeout: float = 10.0):
        self.webhook_url = webhook_url
        self.timeout = timeout

    async def send_badge_change(self, event: BadgeChangeEvent) -> bool:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(self.webhook_url, json=badge_change_payload(event))
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Badge webhook delivery failed for user {event.user_id}: {e}")
            return False

        logger.info(f"Badge webhook delivered for user {event.user_id}")
        return True


class FanoutBadgeNotifier(NotificationService):
    """
    Sends each event to every configured notifier

    Delivery succeeds when at least one notifier succeeds.
    """

    def __init__(self, services: list[NotificationService]):
        self.services = services

    async def send_badge_change(self, event: BadgeChangeEvent) -> bool:
        delivered = []
        for service in self.services:
            try:
                delivered.append(await service.send_badge_change(event))
            except Exception as e:
                logger.error(f"{type(service).__name__} raised while notifying user {event.user_id}: {e}")
                delivered.append(False)
        return any(delivered)


def create_notification_service(webhook_url: Optional[str] = None) -> NotificationService:
    """Log notifier, plus a webhook notifier when BADGE_NOTIFICATION_WEBHOOK is set"""
    if not webhook_url:
        return LogBadgeNotifier()
    return FanoutBadgeNotifier([LogBadgeNotifier(), WebhookBadgeNotifier(webhook_url)])
