"""Data Transfer Objects for Badge Use Cases"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel, Field


class AwardPointsCommandDTO(BaseModel):
    """
    Command DTO for awarding performance points

    Used as input to AwardPoints use case.
    """

    learner_id: int = Field(..., gt=0, description="Learner receiving the points")
    course_id: int = Field(..., gt=0, description="Course the points are earned in")

    points: int = Field(
        ...,
        gt=0,
        description="Performance points to add (must be > 0)"
    )

    reason: str = Field(
        default="Course completion",
        max_length=200,
        description="Why the points were awarded"
    )

    awarded_by: Optional[int] = Field(
        default=None,
        description="Instructor or admin awarding the points"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "learner_id": 9,
                "course_id": 3,
                "points": 120,
                "reason": "Excellent final project",
                "awarded_by": 4
            }
        }


class CompleteCourseCommandDTO(BaseModel):
    learner_id: int = Field(..., gt=0)
    course_id: int = Field(..., gt=0)


class BadgeProgressDTO(BaseModel):
    """
    Result of adding performance points

    badge_upgraded is True when the award moved the badge by one step.
    """

    user_id: int
    course_id: int
    points_awarded: int
    performance_points: int
    badge_upgraded: bool
    change: str
    old_badge: str
    new_badge: str
    discount_percent: Decimal
    transaction_id: int


class BadgeChangeDTO(BaseModel):
    user_id: int
    username: str
    old_badge: str
    new_badge: str
    change: str
    rank: Optional[int] = None
    transaction_id: int


class BadgeJobResultDTO(BaseModel):
    """
    Summary of one promotion or decay run

    skipped counts users left untouched: already processed this period,
    already at the boundary, or active again since selection.
    """

    job: str
    period: str
    candidates: int
    changed: int
    skipped: int
    failed: int
    changes: List[BadgeChangeDTO] = Field(default_factory=list)
    run_at: datetime
    execution_time_ms: int


class LeaderboardEntryDTO(BaseModel):
    rank: int
    user_id: int
    username: str
    performance_points: int
    badge: str
    courses_completed: int


class LeaderboardResponseDTO(BaseModel):
    window: str
    entries: List[LeaderboardEntryDTO]
    total: int
