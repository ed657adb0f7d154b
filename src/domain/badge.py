"""Badge Table and Badge Engine

Performance points map to a (level, tier) badge. There are 7 levels with
3 tiers each; within a level the tier-3 threshold is the highest, and the
tier-1 threshold of the next level is above the tier-3 threshold of the
current one.

Every transition (upgrade, decay, weekly promotion) moves the badge by at
most ONE step per call. A large point award that crosses several
thresholds advances a single tier; later awards continue the climb.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, Optional, Tuple

from src.domain.errors import InvalidRequestError


class BadgeLevel(str, Enum):
    """Badge levels, declared lowest to highest"""
    BRONZE = "Bronze"
    SILVER = "Silver"
    GOLD = "Gold"
    PLATINUM = "Platinum"
    DIAMOND = "Diamond"
    MASTER = "Master"
    LEGEND = "Legend"

    @property
    def rank(self) -> int:
        return _LEVEL_RANK[self]

    def next(self) -> Optional["BadgeLevel"]:
        """Level above this one, None at Legend"""
        return _NEXT_LEVEL[self]

    def previous(self) -> Optional["BadgeLevel"]:
        """Level below this one, None at Bronze"""
        return _PREVIOUS_LEVEL[self]


_LEVELS = list(BadgeLevel)
_LEVEL_RANK: Dict[BadgeLevel, int] = {level: index for index, level in enumerate(_LEVELS)}
_NEXT_LEVEL: Dict[BadgeLevel, Optional[BadgeLevel]] = {
    level: (_LEVELS[index + 1] if index + 1 < len(_LEVELS) else None)
    for index, level in enumerate(_LEVELS)
}
_PREVIOUS_LEVEL: Dict[BadgeLevel, Optional[BadgeLevel]] = {
    level: (_LEVELS[index - 1] if index > 0 else None)
    for index, level in enumerate(_LEVELS)
}

MIN_TIER = 1
MAX_TIER = 3

# level -> tier -> performance points required
BADGE_THRESHOLDS: Dict[BadgeLevel, Dict[int, int]] = {
    BadgeLevel.BRONZE: {1: 0, 2: 100, 3: 250},
    BadgeLevel.SILVER: {1: 500, 2: 750, 3: 1000},
    BadgeLevel.GOLD: {1: 1500, 2: 2000, 3: 2500},
    BadgeLevel.PLATINUM: {1: 3500, 2: 4500, 3: 5500},
    BadgeLevel.DIAMOND: {1: 7000, 2: 9000, 3: 11000},
    BadgeLevel.MASTER: {1: 14000, 2: 18000, 3: 22000},
    BadgeLevel.LEGEND: {1: 30000, 2: 40000, 3: 50000},
}

# level -> base discount percent
BADGE_DISCOUNTS: Dict[BadgeLevel, int] = {
    BadgeLevel.BRONZE: 0,
    BadgeLevel.SILVER: 5,
    BadgeLevel.GOLD: 10,
    BadgeLevel.PLATINUM: 15,
    BadgeLevel.DIAMOND: 20,
    BadgeLevel.MASTER: 25,
    BadgeLevel.LEGEND: 30,
}

TIER_MULTIPLIERS: Dict[int, Decimal] = {
    1: Decimal("1.5"),
    2: Decimal("1.25"),
    3: Decimal("1"),
}

MAX_DISCOUNT_PERCENT = Decimal("50")


class BadgeChange(str, Enum):
    NONE = "none"
    TIER_UP = "tier_up"
    LEVEL_UP = "level_up"
    TIER_DOWN = "tier_down"
    LEVEL_DOWN = "level_down"


@dataclass(frozen=True)
class Badge:
    level: BadgeLevel
    tier: int

    def __post_init__(self):
        if not isinstance(self.level, BadgeLevel):
            object.__setattr__(self, "level", BadgeLevel(self.level))
        if self.tier < MIN_TIER or self.tier > MAX_TIER:
            raise ValueError(f"Badge tier must be between {MIN_TIER} and {MAX_TIER}, got {self.tier}")

    @property
    def display_name(self) -> str:
        return f"{self.level.value} {self.tier}"

    @property
    def discount_percent(self) -> Decimal:
        return discount_for(self.level, self.tier)

    def __str__(self) -> str:
        return self.display_name


INITIAL_BADGE = Badge(BadgeLevel.BRONZE, MIN_TIER)


def discount_for(
    level: BadgeLevel, tier: int, max_discount: Decimal = MAX_DISCOUNT_PERCENT
) -> Decimal:
    """Purchase discount percent for a badge, clamped to max_discount"""
    if tier not in TIER_MULTIPLIERS:
        raise ValueError(f"Unknown badge tier: {tier}")
    return min(Decimal(BADGE_DISCOUNTS[BadgeLevel(level)]) * TIER_MULTIPLIERS[tier], max_discount)


def evaluate_upgrade(points: int, badge: Badge) -> Tuple[Badge, BadgeChange]:
    """
    Single-step upgrade policy

    1. Next tier within the level if its threshold is met
    2. Otherwise tier 1 of the next level if its threshold is met
    3. Otherwise unchanged
    """
    if badge.tier < MAX_TIER and points >= BADGE_THRESHOLDS[badge.level][badge.tier + 1]:
        return Badge(badge.level, badge.tier + 1), BadgeChange.TIER_UP

    next_level = badge.level.next()
    if next_level is not None and points >= BADGE_THRESHOLDS[next_level][MIN_TIER]:
        return Badge(next_level, MIN_TIER), BadgeChange.LEVEL_UP

    return badge, BadgeChange.NONE


def decay(badge: Badge) -> Tuple[Badge, BadgeChange]:
    """Drop one step; Bronze (any tier) is the floor"""
    if badge.level == BadgeLevel.BRONZE:
        return badge, BadgeChange.NONE
    if badge.tier > MIN_TIER:
        return Badge(badge.level, badge.tier - 1), BadgeChange.TIER_DOWN
    return Badge(badge.level.previous(), MAX_TIER), BadgeChange.LEVEL_DOWN


def promote_tier(badge: Badge) -> Tuple[Badge, BadgeChange]:
    """Leaderboard promotion: one tier up within the current level"""
    if badge.tier >= MAX_TIER:
        return badge, BadgeChange.NONE
    return Badge(badge.level, badge.tier + 1), BadgeChange.TIER_UP


def add_points(account, points: int, now: Optional[datetime] = None) -> BadgeChange:
    """
    Award performance points to an account and evaluate one upgrade step

    Mutates `performance_points`, `last_activity`, `badge_level` and
    `badge_tier` on the account in place.
    """
    if not isinstance(points, int) or isinstance(points, bool) or points <= 0:
        raise InvalidRequestError(f"Points must be a positive integer, got {points!r}")

    account.performance_points = (account.performance_points or 0) + points
    account.last_activity = now or datetime.utcnow()

    new_badge, change = evaluate_upgrade(account.performance_points, account.badge)
    account.badge_level = new_badge.level
    account.badge_tier = new_badge.tier
    return change
