"""Badge economy use cases"""
from .award_points import AwardPoints
from .complete_course import CompleteCourse
from .weekly_promotion import RunWeeklyPromotion
from .monthly_decay import RunMonthlyDecay
from .get_leaderboard import GetLeaderboard
from .dtos import (
    AwardPointsCommandDTO,
    CompleteCourseCommandDTO,
    BadgeProgressDTO,
    BadgeChangeDTO,
    BadgeJobResultDTO,
    LeaderboardEntryDTO,
    LeaderboardResponseDTO,
)

__all__ = [
    "AwardPoints",
    "CompleteCourse",
    "RunWeeklyPromotion",
    "RunMonthlyDecay",
    "GetLeaderboard",
    "AwardPointsCommandDTO",
    "CompleteCourseCommandDTO",
    "BadgeProgressDTO",
    "BadgeChangeDTO",
    "BadgeJobResultDTO",
    "LeaderboardEntryDTO",
    "LeaderboardResponseDTO",
]
