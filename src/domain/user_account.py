"""User Account Domain Entity

The slice of a SkillSwap user that the credits economy reads and writes:
spendable credits, performance points, badge and activity timestamp.
`credits` is the single balance field; there is no separate wallet record.
"""

from datetime import datetime
from enum import Enum
from sqlmodel import Field, Column
from sqlalchemy import CheckConstraint, Integer, String
from src.domain.base import BaseModel, ID_TYPE
from src.domain.badge import Badge, BadgeLevel, MIN_TIER


class AccountRole(str, Enum):
    STUDENT = "student"
    INSTRUCTOR = "instructor"
    ADMIN = "admin"


class UserAccount(BaseModel, table=True):
    """
    User Account - balance, points and badge of one user

    Domain Rules:
    - credits is never negative (guarded debits + check constraint)
    - performance_points only grow, except through badge decay which
      moves the badge but leaves points untouched
    - badge_tier is always 1..3 and badge_level one of the 7 levels
    - exactly one account has is_platform=True (the platform fee account)
    """

    __tablename__ = "user_accounts"
    __table_args__ = (
        CheckConstraint('credits >= 0', name='credits_non_negative'),
        CheckConstraint('performance_points >= 0', name='performance_points_non_negative'),
        CheckConstraint('badge_tier >= 1 AND badge_tier <= 3', name='badge_tier_range'),
    )

    id: int = Field(
        default=None,
        sa_column=Column(ID_TYPE, primary_key=True, autoincrement=True),
        description="Unique account identifier (auto-increment)"
    )

    username: str = Field(
        sa_column=Column(String(100), unique=True, nullable=False),
        description="Unique username"
    )

    role: AccountRole = Field(
        default=AccountRole.STUDENT,
        description="Account role"
    )

    is_active: bool = Field(
        default=True,
        description="Inactive accounts are excluded from jobs and leaderboards"
    )

    is_platform: bool = Field(
        default=False,
        index=True,
        description="True only for the platform fee account"
    )

    credits: int = Field(
        default=0,
        sa_column=Column(Integer, nullable=False, default=0),
        description="Spendable credit balance (must be >= 0)"
    )

    performance_points: int = Field(
        default=0,
        sa_column=Column(Integer, nullable=False, default=0),
        description="Non-spendable score driving badge progression"
    )

    badge_level: BadgeLevel = Field(
        default=BadgeLevel.BRONZE,
        description="Badge level"
    )

    badge_tier: int = Field(
        default=MIN_TIER,
        sa_column=Column(Integer, nullable=False, default=MIN_TIER),
        description="Badge tier within the level (1..3)"
    )

    last_activity: datetime = Field(
        default_factory=datetime.utcnow,
        index=True,
        description="Updated whenever performance points are added"
    )

    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Account creation timestamp"
    )

    updated_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Last balance or badge update timestamp"
    )

    @property
    def badge(self) -> Badge:
        return Badge(self.badge_level, self.badge_tier)

    class Config:
        """SQLModel configuration"""
        json_schema_extra = {
            "example": {
                "id": 1,
                "username": "ada",
                "role": "student",
                "credits": 150,
                "performance_points": 260,
                "badge_level": "Bronze",
                "badge_tier": 2,
                "last_activity": "2024-01-01T00:00:00Z",
            }
        }
