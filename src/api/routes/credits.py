"""Credits API Routes

FastAPI routes for accounts, enrollment settlement, balances and cashouts.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlmodel.ext.asyncio.session import AsyncSession

from src.api.schemas.credits_request import (
    OpenAccountRequestSchema,
    EnrollRequestSchema,
    CashoutRequestSchema,
    CashoutFailureRequestSchema,
    CashoutCancelRequestSchema,
    PurchaseRequestSchema,
)
from src.app.use_cases.credits import (
    OpenAccount,
    EnrollInCourse,
    GetBalance,
    ListTransactions,
    RequestCashout,
    MarkCashoutCompleted,
    MarkCashoutFailed,
    CancelCashout,
    PurchaseCredits,
    OpenAccountCommandDTO,
    AccountResponseDTO,
    EnrollCommandDTO,
    EnrollmentReceiptDTO,
    BalanceResponseDTO,
    ListTransactionsResponseDTO,
    CashoutCommandDTO,
    CashoutResponseDTO,
    CashoutSettlementResponseDTO,
    PurchaseCommandDTO,
    PurchaseResponseDTO,
)
from src.adapter.repositories.user_account_repository import SqlAlchemyUserAccountRepository
from src.adapter.repositories.course_repository import SqlAlchemyCourseRepository
from src.adapter.repositories.credit_transaction_repository import SqlAlchemyCreditTransactionRepository
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.domain.credit_policy import CreditPolicy
from src.domain.credit_transaction import TransactionType
from src.depends import get_session, get_policy
from src.api.error import ClientError

router = APIRouter(prefix="/credits", tags=["Credits"])


def _error_example(code: str, message: str) -> dict:
    return {"content": {"application/json": {"example": {"error": {"code": code, "message": message}}}}}


@router.post(
    "/accounts",
    response_model=AccountResponseDTO,
    status_code=status.HTTP_201_CREATED,
    responses={
        409: {"description": "Username taken", **_error_example("USERNAME_TAKEN", "Username 'ada' is already taken")},
    },
)
async def open_account(
    request: OpenAccountRequestSchema,
    session: AsyncSession = Depends(get_session),
    policy: CreditPolicy = Depends(get_policy),
):
    """
    Open a user account and grant the onboarding bonus.

    **Returns:**
    - 201: Account created, `credits` includes the onboarding bonus
    - 409: Username already taken
    """
    use_case = OpenAccount(
        SqlAlchemyUnitOfWork(session),
        SqlAlchemyUserAccountRepository(session),
        SqlAlchemyCreditTransactionRepository(session),
        policy,
    )
    result = await use_case.execute(
        OpenAccountCommandDTO(username=request.username, role=request.role)
    )

    if result.is_err():
        raise ClientError(result.error)

    return result.value


@router.post(
    "/enroll",
    response_model=EnrollmentReceiptDTO,
    status_code=status.HTTP_200_OK,
    responses={
        402: {
            "description": "Insufficient credits",
            **_error_example("INSUFFICIENT_CREDIT", "Insufficient credits. Required: 170, Available: 50"),
        },
        404: {"description": "Learner or course not found", **_error_example("COURSE_NOT_FOUND", "Course 3 not found")},
        409: {"description": "Already enrolled or enrollment closed", **_error_example("ALREADY_ENROLLED", "Learner 9 is already enrolled in course 3")},
    },
)
async def enroll_in_course(
    request: EnrollRequestSchema,
    session: AsyncSession = Depends(get_session),
    policy: CreditPolicy = Depends(get_policy),
):
    """
    Enroll a learner in a course, settling the price in credits.

    The learner pays the badge-discounted price. The instructor receives it
    minus the platform fee, and the platform account receives the fee. All three
    ledger entries and the enrollment commit together or not at all.

    **Example request:**
    ```json
    {"learner_id": 9, "course_id": 3}
    ```

    **Returns:**
    - 200: Enrollment receipt
    - 402: Learner cannot afford the discounted price
    - 404: Learner or course not found
    - 409: Already enrolled, or course not open / full
    """
    use_case = EnrollInCourse(
        SqlAlchemyUnitOfWork(session),
        SqlAlchemyUserAccountRepository(session),
        SqlAlchemyCourseRepository(session),
        SqlAlchemyCreditTransactionRepository(session),
        policy,
    )
    result = await use_case.execute(
        EnrollCommandDTO(learner_id=request.learner_id, course_id=request.course_id)
    )

    if result.is_err():
        raise ClientError(result.error)

    return result.value


@router.get(
    "/balance/{user_id}",
    response_model=BalanceResponseDTO,
    status_code=status.HTTP_200_OK,
    responses={
        404: {"description": "User not found", **_error_example("USER_NOT_FOUND", "User 42 not found")},
    },
)
async def get_balance(
    user_id: int,
    session: AsyncSession = Depends(get_session),
):
    """
    Get a user's spendable credits, performance points and badge.

    **Returns:**
    - 200: Balance retrieved successfully
    - 404: User not found
    """
    use_case = GetBalance(SqlAlchemyUserAccountRepository(session))
    result = await use_case.execute(user_id)

    if result.is_err():
        raise ClientError(result.error)

    return result.value


@router.get(
    "/transactions/{user_id}",
    response_model=ListTransactionsResponseDTO,
    status_code=status.HTTP_200_OK,
)
async def list_transactions(
    user_id: int,
    transaction_type: Optional[TransactionType] = Query(default=None, alias="type"),
    limit: int = Query(default=20),
    offset: int = Query(default=0),
    session: AsyncSession = Depends(get_session),
):
    """
    List a user's ledger entries, newest first.

    **Query parameters:**
    - `type` (optional): enroll, earn, purchase, cashout, onboarding, bonus, refund
    - `limit` (default 20, max 100), `offset` (default 0)
    """
    use_case = ListTransactions(
        SqlAlchemyCreditTransactionRepository(session),
        SqlAlchemyUserAccountRepository(session),
    )
    result = await use_case.execute(
        user_id, transaction_type=transaction_type, limit=limit, offset=offset
    )

    if result.is_err():
        raise ClientError(result.error)

    return result.value


@router.post(
    "/cashout",
    response_model=CashoutResponseDTO,
    status_code=status.HTTP_200_OK,
    responses={
        400: {"description": "Below minimum cashout", **_error_example("VALIDATION_ERROR", "Minimum cashout is 100 credits")},
        402: {"description": "Insufficient credits", **_error_example("INSUFFICIENT_CREDIT", "Insufficient credits. Required: 500, Available: 120")},
        403: {"description": "Role cannot cash out", **_error_example("FORBIDDEN", "Only instructors can cash out credits")},
    },
)
async def request_cashout(
    request: CashoutRequestSchema,
    session: AsyncSession = Depends(get_session),
    policy: CreditPolicy = Depends(get_policy),
):
    """
    Withdraw credits to fiat.

    Credits are debited immediately and a pending cashout entry is recorded.
    The payout provider later reports completion or failure.
    """
    use_case = RequestCashout(
        SqlAlchemyUnitOfWork(session),
        SqlAlchemyUserAccountRepository(session),
        SqlAlchemyCreditTransactionRepository(session),
        policy,
    )
    result = await use_case.execute(
        CashoutCommandDTO(
            user_id=request.user_id,
            amount_credits=request.amount_credits,
            payment_method=request.payment_method,
        )
    )

    if result.is_err():
        raise ClientError(result.error)

    return result.value


@router.post(
    "/cashout/{transaction_id}/complete",
    response_model=CashoutSettlementResponseDTO,
    status_code=status.HTTP_200_OK,
)
async def complete_cashout(
    transaction_id: int,
    session: AsyncSession = Depends(get_session),
):
    """Payout provider callback: the payout succeeded."""
    use_case = MarkCashoutCompleted(
        SqlAlchemyUnitOfWork(session),
        SqlAlchemyUserAccountRepository(session),
        SqlAlchemyCreditTransactionRepository(session),
    )
    result = await use_case.execute(transaction_id)

    if result.is_err():
        raise ClientError(result.error)

    return result.value


@router.post(
    "/cashout/{transaction_id}/fail",
    response_model=CashoutSettlementResponseDTO,
    status_code=status.HTTP_200_OK,
)
async def fail_cashout(
    transaction_id: int,
    request: Optional[CashoutFailureRequestSchema] = None,
    session: AsyncSession = Depends(get_session),
):
    """Payout provider callback: the payout failed, credits are refunded."""
    use_case = MarkCashoutFailed(
        SqlAlchemyUnitOfWork(session),
        SqlAlchemyUserAccountRepository(session),
        SqlAlchemyCreditTransactionRepository(session),
    )
    result = await use_case.execute(transaction_id, reason=request.reason if request else None)

    if result.is_err():
        raise ClientError(result.error)

    return result.value


@router.post(
    "/cashout/{transaction_id}/cancel",
    response_model=CashoutSettlementResponseDTO,
    status_code=status.HTTP_200_OK,
    responses={
        403: {"description": "Not the owner", **_error_example("FORBIDDEN", "User 9 cannot cancel cashout 31")},
        409: {"description": "Not pending", **_error_example("INVALID_STATUS_TRANSITION", "Cannot move transaction 31 from completed to cancelled")},
    },
)
async def cancel_cashout(
    transaction_id: int,
    request: CashoutCancelRequestSchema,
    session: AsyncSession = Depends(get_session),
):
    """Owner withdraws a pending cashout; credits are refunded."""
    use_case = CancelCashout(
        SqlAlchemyUnitOfWork(session),
        SqlAlchemyUserAccountRepository(session),
        SqlAlchemyCreditTransactionRepository(session),
    )
    result = await use_case.execute(transaction_id, user_id=request.user_id)

    if result.is_err():
        raise ClientError(result.error)

    return result.value


@router.post(
    "/purchase",
    response_model=PurchaseResponseDTO,
    status_code=status.HTTP_200_OK,
    responses={
        409: {"description": "Payment reference already used", **_error_example("PAYMENT_REFERENCE_CONFLICT", "Payment reference 'pi_3Nabc' has already been used")},
    },
)
async def purchase_credits(
    request: PurchaseRequestSchema,
    session: AsyncSession = Depends(get_session),
    policy: CreditPolicy = Depends(get_policy),
):
    """
    Buy credits with fiat money.

    Repeated requests with the same `payment_reference` return the original
    purchase without crediting twice. Reusing a reference for another user or
    amount is 409 `PAYMENT_REFERENCE_CONFLICT`.
    """
    use_case = PurchaseCredits(
        SqlAlchemyUnitOfWork(session),
        SqlAlchemyUserAccountRepository(session),
        SqlAlchemyCreditTransactionRepository(session),
        policy,
    )
    result = await use_case.execute(
        PurchaseCommandDTO(
            user_id=request.user_id,
            amount_credits=request.amount_credits,
            payment_reference=request.payment_reference,
        )
    )

    if result.is_err():
        raise ClientError(result.error)

    return result.value
