"""Badges API Routes

FastAPI routes for performance points and leaderboards.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlmodel.ext.asyncio.session import AsyncSession

from config import ApplicationConfig
from src.api.schemas.badges_request import AwardPointsRequestSchema, CompleteCourseRequestSchema
from src.app.use_cases.badges import (
    AwardPoints,
    CompleteCourse,
    GetLeaderboard,
    AwardPointsCommandDTO,
    CompleteCourseCommandDTO,
    BadgeProgressDTO,
    LeaderboardResponseDTO,
)
from src.app.services.notification_service import NotificationService
from src.adapter.repositories.user_account_repository import SqlAlchemyUserAccountRepository
from src.adapter.repositories.course_repository import SqlAlchemyCourseRepository
from src.adapter.repositories.credit_transaction_repository import SqlAlchemyCreditTransactionRepository
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.domain.credit_policy import CreditPolicy
from src.depends import get_session, get_policy, get_notification_service
from src.api.error import ClientError

router = APIRouter(prefix="/badges", tags=["Badges"])


@router.post(
    "/points/award",
    response_model=BadgeProgressDTO,
    status_code=status.HTTP_200_OK,
    responses={
        400: {
            "description": "Validation error or learner not enrolled",
            "content": {
                "application/json": {
                    "example": {
                        "error": {
                            "code": "NOT_ENROLLED",
                            "message": "Learner 9 is not enrolled in course 3"
                        }
                    }
                }
            }
        },
        403: {
            "description": "Awarder is not the course instructor",
            "content": {
                "application/json": {
                    "example": {
                        "error": {
                            "code": "FORBIDDEN",
                            "message": "Only the course instructor can award points"
                        }
                    }
                }
            }
        }
    }
)
async def award_points(
    request: AwardPointsRequestSchema,
    session: AsyncSession = Depends(get_session),
    policy: CreditPolicy = Depends(get_policy),
    notification_service: NotificationService = Depends(get_notification_service),
):
    """
    Award performance points to an enrolled learner.

    The learner's badge moves at most one step per award.

    **Returns:**
    - 200: `{badge_upgraded, old_badge, new_badge, performance_points, ...}`
    - 400: Invalid points or learner not enrolled
    - 403: Awarder is not the course instructor or an admin
    - 404: Learner or course not found
    """
    use_case = AwardPoints(
        SqlAlchemyUnitOfWork(session),
        SqlAlchemyUserAccountRepository(session),
        SqlAlchemyCourseRepository(session),
        SqlAlchemyCreditTransactionRepository(session),
        policy,
        notification_service,
    )
    result = await use_case.execute(
        AwardPointsCommandDTO(
            learner_id=request.learner_id,
            course_id=request.course_id,
            points=request.points,
            reason=request.reason,
            awarded_by=request.awarded_by,
        )
    )

    if result.is_err():
        raise ClientError(result.error)

    return result.value


@router.post(
    "/courses/complete",
    response_model=BadgeProgressDTO,
    status_code=status.HTTP_200_OK,
)
async def complete_course(
    request: CompleteCourseRequestSchema,
    session: AsyncSession = Depends(get_session),
    policy: CreditPolicy = Depends(get_policy),
    notification_service: NotificationService = Depends(get_notification_service),
):
    """
    Mark an enrollment completed and award completion points by course level.

    **Returns:**
    - 200: Badge progress after the completion award
    - 409: Course already completed by this learner
    """
    use_case = CompleteCourse(
        SqlAlchemyUnitOfWork(session),
        SqlAlchemyUserAccountRepository(session),
        SqlAlchemyCourseRepository(session),
        SqlAlchemyCreditTransactionRepository(session),
        policy,
        notification_service,
    )
    result = await use_case.execute(
        CompleteCourseCommandDTO(learner_id=request.learner_id, course_id=request.course_id)
    )

    if result.is_err():
        raise ClientError(result.error)

    return result.value


@router.get(
    "/leaderboard",
    response_model=LeaderboardResponseDTO,
    status_code=status.HTTP_200_OK,
)
async def get_leaderboard(
    window: str = Query(default="alltime", description="weekly, monthly or alltime"),
    session: AsyncSession = Depends(get_session),
):
    """
    Rank active users by performance points.

    Weekly and monthly windows only include users active within the last
    7 or 30 days.
    """
    use_case = GetLeaderboard(
        SqlAlchemyUserAccountRepository(session),
        SqlAlchemyCourseRepository(session),
        weekly_top=int(ApplicationConfig.WEEKLY_TOP_COUNT),
        monthly_top=int(ApplicationConfig.MONTHLY_TOP_COUNT),
        alltime_top=int(ApplicationConfig.ALLTIME_TOP_COUNT),
    )
    result = await use_case.execute(window)

    if result.is_err():
        raise ClientError(result.error)

    return result.value
