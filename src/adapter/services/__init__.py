from .unit_of_work import SqlAlchemyUnitOfWork
from .notification_service import (
    FanoutBadgeNotifier,
    LogBadgeNotifier,
    WebhookBadgeNotifier,
    badge_change_payload,
    create_notification_service,
)

__all__ = [
    "SqlAlchemyUnitOfWork",
    "FanoutBadgeNotifier",
    "LogBadgeNotifier",
    "WebhookBadgeNotifier",
    "badge_change_payload",
    "create_notification_service",
]
