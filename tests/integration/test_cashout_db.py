"""Integration tests for the cashout lifecycle against a real database"""

import pytest

from src.app.use_cases.credits import (
    CashoutCommandDTO,
    MarkCashoutCompleted,
    MarkCashoutFailed,
    ReconcileLedger,
    RequestCashout,
)
from src.domain.credit_transaction import TransactionStatus, TransactionType
from src.domain.user_account import AccountRole


async def request_cashout(repos, user_id, amount):
    return await RequestCashout(
        repos["uow"], repos["user_repo"], repos["transaction_repo"]
    ).execute(CashoutCommandDTO(user_id=user_id, amount_credits=amount))


@pytest.mark.asyncio
async def test_completed_cashout(repos, make_account):
    instructor = await make_account("grace", role=AccountRole.INSTRUCTOR, credits=1000)
    instructor_id = instructor.id

    requested = await request_cashout(repos, instructor_id, 500)
    assert requested.value.status == "pending"
    assert requested.value.remaining_balance == 500

    result = await MarkCashoutCompleted(
        repos["uow"], repos["user_repo"], repos["transaction_repo"]
    ).execute(requested.value.transaction_id)

    assert result.value.status == "completed"
    stored = await repos["transaction_repo"].get_by_id(requested.value.transaction_id)
    assert stored.status == TransactionStatus.COMPLETED
    assert (await repos["user_repo"].get_by_id(instructor_id)).credits == 500


@pytest.mark.asyncio
async def test_failed_cashout_refunds_and_stays_balanced(repos, make_account):
    """
    Given: Pending cashout of 500 credits
    When: The payout fails
    Then: Balance is restored by a refund entry and the ledger still reconciles
    """
    instructor = await make_account("grace", role=AccountRole.INSTRUCTOR, credits=1000)
    instructor_id = instructor.id
    requested = await request_cashout(repos, instructor_id, 500)

    result = await MarkCashoutFailed(
        repos["uow"], repos["user_repo"], repos["transaction_repo"]
    ).execute(requested.value.transaction_id, reason="Bank rejected transfer")

    assert result.value.status == "failed"
    assert result.value.balance == 1000
    refunds, total = await repos["transaction_repo"].get_by_user_id(instructor_id, TransactionType.REFUND)
    assert total == 1
    assert refunds[0].reference_id == str(requested.value.transaction_id)

    reconciliation = await ReconcileLedger(
        repos["uow"], repos["user_repo"], repos["transaction_repo"]
    ).execute()
    assert reconciliation.value.is_balanced


@pytest.mark.asyncio
async def test_settled_cashout_cannot_be_settled_again(repos, make_account):
    instructor = await make_account("grace", role=AccountRole.INSTRUCTOR, credits=1000)
    instructor_id = instructor.id
    requested = await request_cashout(repos, instructor_id, 500)
    transaction_id = requested.value.transaction_id

    await MarkCashoutCompleted(repos["uow"], repos["user_repo"], repos["transaction_repo"]).execute(transaction_id)
    result = await MarkCashoutFailed(
        repos["uow"], repos["user_repo"], repos["transaction_repo"]
    ).execute(transaction_id)

    assert result.error.code == "INVALID_STATUS_TRANSITION"
    assert (await repos["user_repo"].get_by_id(instructor_id)).credits == 500


@pytest.mark.asyncio
async def test_cashout_above_balance_is_rejected(repos, make_account):
    instructor = await make_account("grace", role=AccountRole.INSTRUCTOR, credits=150)
    instructor_id = instructor.id

    result = await request_cashout(repos, instructor_id, 500)

    assert result.error.code == "INSUFFICIENT_CREDIT"
    assert (await repos["user_repo"].get_by_id(instructor_id)).credits == 150
