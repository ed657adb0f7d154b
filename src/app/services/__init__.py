from .unit_of_work import UnitOfWork
from .notification_service import NotificationService, BadgeChangeEvent
from .ledger import Ledger
from .wallet import Wallet

__all__ = [
    "UnitOfWork",
    "NotificationService",
    "BadgeChangeEvent",
    "Ledger",
    "Wallet",
]
