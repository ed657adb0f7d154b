"""Request schemas for Badges API"""

from typing import Optional
from pydantic import BaseModel, Field


class AwardPointsRequestSchema(BaseModel):
    """
    Request schema for awarding performance points

    Used for POST /badges/points/award endpoint.
    """

    learner_id: int = Field(..., gt=0)
    course_id: int = Field(..., gt=0)

    points: int = Field(..., gt=0, description="Points to add (must be > 0)")

    reason: str = Field(default="Course completion", min_length=1, max_length=200)

    awarded_by: Optional[int] = Field(
        default=None,
        gt=0,
        description="Course instructor or admin awarding the points"
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


class CompleteCourseRequestSchema(BaseModel):
    """Request schema for POST /badges/courses/complete"""

    learner_id: int = Field(..., gt=0)
    course_id: int = Field(..., gt=0)
