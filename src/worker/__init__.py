"""Background workers for the SkillSwap credits service"""
from .weekly_promotion import WeeklyPromotionWorker
from .monthly_decay import MonthlyDecayWorker
from .ledger_reconciler import LedgerReconcilerWorker
from .provision import PlatformProvisioner

__all__ = [
    "WeeklyPromotionWorker",
    "MonthlyDecayWorker",
    "LedgerReconcilerWorker",
    "PlatformProvisioner",
]
