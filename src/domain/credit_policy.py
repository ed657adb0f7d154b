"""Credit economy policy

Tunable numbers of the credits economy, built from ApplicationConfig and
handed to use cases. Rounding is always down to whole credits.
"""

from dataclasses import dataclass, field
from decimal import Decimal, ROUND_FLOOR
from typing import Dict


def percent_of(amount: int, percent) -> int:
    """floor(amount * percent / 100)"""
    value = Decimal(amount) * Decimal(str(percent)) / Decimal(100)
    return int(value.to_integral_value(rounding=ROUND_FLOOR))


def apply_discount(price: int, discount_percent) -> int:
    """floor(price * (1 - discount / 100))"""
    value = Decimal(price) * (Decimal(100) - Decimal(str(discount_percent))) / Decimal(100)
    return int(value.to_integral_value(rounding=ROUND_FLOOR))


@dataclass(frozen=True)
class CreditPolicy:
    platform_fee_percent: Decimal = Decimal("2")
    min_cashout_credits: int = 100
    cashout_fee_percent: Decimal = Decimal("5")
    credit_to_fiat_rate: Decimal = Decimal("0.01")
    onboarding_bonus: int = 50
    max_points_per_award: int = 1000
    completion_points: Dict[str, int] = field(
        default_factory=lambda: {"beginner": 50, "intermediate": 75, "advanced": 100}
    )
    settlement_max_retries: int = 3
    platform_account_username: str = "platform"

    @classmethod
    def from_config(cls, config) -> "CreditPolicy":
        return cls(
            platform_fee_percent=Decimal(str(config.PLATFORM_FEE_PERCENT)),
            min_cashout_credits=int(config.MIN_CASHOUT_CREDITS),
            cashout_fee_percent=Decimal(str(config.CASHOUT_FEE_PERCENT)),
            credit_to_fiat_rate=Decimal(str(config.CREDIT_TO_FIAT_RATE)),
            onboarding_bonus=int(config.ONBOARDING_BONUS),
            max_points_per_award=int(config.MAX_POINTS_PER_AWARD),
            completion_points=dict(config.COMPLETION_POINTS),
            settlement_max_retries=int(config.SETTLEMENT_MAX_RETRIES),
            platform_account_username=config.PLATFORM_ACCOUNT_USERNAME,
        )
