"""Get Leaderboard Use Case

Ranks active users by performance points over a time window.
"""

from datetime import datetime, timedelta
from typing import Optional
from libs.result import Result, Return, Error
from src.app.repositories.user_account_repository import UserAccountRepository
from src.app.repositories.course_repository import CourseRepository
from .dtos import LeaderboardEntryDTO, LeaderboardResponseDTO

# window -> lookback on last_activity (None = all time)
LEADERBOARD_WINDOWS = {
    "weekly": timedelta(days=7),
    "monthly": timedelta(days=30),
    "alltime": None,
}


class GetLeaderboard:
    """
    Get Leaderboard Use Case

    Ordering is performance points descending, ties broken by account id.
    The platform account never appears.
    """

    def __init__(
        self,
        user_repo: UserAccountRepository,
        course_repo: CourseRepository,
        weekly_top: int = 5,
        monthly_top: int = 5,
        alltime_top: int = 10,
    ):
        self.user_repo = user_repo
        self.course_repo = course_repo
        self.limits = {"weekly": weekly_top, "monthly": monthly_top, "alltime": alltime_top}

    async def execute(
        self, window: str = "alltime", now: Optional[datetime] = None
    ) -> Result[LeaderboardResponseDTO]:
        if window not in LEADERBOARD_WINDOWS:
            return Return.err(
                Error(
                    code="VALIDATION_ERROR",
                    message="Window must be weekly, monthly, or alltime",
                )
            )

        now = now or datetime.utcnow()
        lookback = LEADERBOARD_WINDOWS[window]
        users = await self.user_repo.get_top_active(
            active_since=now - lookback if lookback else None,
            limit=self.limits[window],
        )
        completed = await self.course_repo.count_completed_by_users([user.id for user in users])

        entries = [
            LeaderboardEntryDTO(
                rank=rank,
                user_id=user.id,
                username=user.username,
                performance_points=user.performance_points,
                badge=user.badge.display_name,
                courses_completed=completed.get(user.id, 0),
            )
            for rank, user in enumerate(users, start=1)
        ]

        return Return.ok(
            LeaderboardResponseDTO(window=window, entries=entries, total=len(entries))
        )
