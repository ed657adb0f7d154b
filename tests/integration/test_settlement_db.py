"""Integration tests for enrollment settlement against a real database"""

import pytest
from decimal import Decimal

from src.app.use_cases.credits import EnrollCommandDTO, EnrollInCourse, ReconcileLedger
from src.domain.badge import BadgeLevel
from src.domain.credit_transaction import TransactionType
from src.domain.user_account import AccountRole


def enroll_use_case(repos):
    return EnrollInCourse(
        repos["uow"], repos["user_repo"], repos["course_repo"], repos["transaction_repo"]
    )


@pytest.mark.asyncio
async def test_bronze_learner_pays_full_price(repos, platform_account, make_account, make_course):
    """
    Given: Bronze 1 learner with 100 credits, course priced 100, 2% fee
    When: Learner enrolls
    Then: Learner 0, instructor 98, platform 2
    """
    instructor = await make_account("grace", role=AccountRole.INSTRUCTOR)
    learner = await make_account("ada", credits=100)
    course = await make_course(instructor.id, price=100)
    instructor_id, learner_id, course_id, platform_id = instructor.id, learner.id, course.id, platform_account.id

    result = await enroll_use_case(repos).execute(
        EnrollCommandDTO(learner_id=learner_id, course_id=course_id)
    )

    assert result.is_ok()
    receipt = result.value
    assert receipt.amount_spent == 100
    assert receipt.platform_fee == 2
    assert receipt.instructor_earnings == 98
    assert receipt.remaining_balance == 0

    user_repo = repos["user_repo"]
    assert (await user_repo.get_by_id(learner_id)).credits == 0
    assert (await user_repo.get_by_id(instructor_id)).credits == 98
    assert (await user_repo.get_by_id(platform_id)).credits == 2

    stored_course = await repos["course_repo"].get_by_id(course_id)
    assert stored_course.enrollment_count == 1
    assert await repos["course_repo"].get_enrollment(course_id, learner_id) is not None


@pytest.mark.asyncio
async def test_gold_learner_gets_badge_discount(repos, platform_account, make_account, make_course):
    """
    Given: Gold 1 learner (15% discount) with 200 credits, course priced 200
    When: Learner enrolls
    Then: Spent 170, instructor 167, platform 3, balance 30
    """
    instructor = await make_account("grace", role=AccountRole.INSTRUCTOR)
    learner = await make_account(
        "ada", credits=200, badge_level=BadgeLevel.GOLD, badge_tier=1, performance_points=1600
    )
    course = await make_course(instructor.id, price=200)

    result = await enroll_use_case(repos).execute(
        EnrollCommandDTO(learner_id=learner.id, course_id=course.id)
    )

    receipt = result.value
    assert receipt.discount_percent == Decimal("15")
    assert receipt.discount_amount == 30
    assert receipt.amount_spent == 170
    assert receipt.platform_fee == 3
    assert receipt.instructor_earnings == 167
    assert receipt.remaining_balance == 30

    entries, total = await repos["transaction_repo"].get_by_user_id(learner.id, TransactionType.ENROLL)
    assert total == 1
    assert entries[0].reference_id == str(receipt.enrollment_id)


@pytest.mark.asyncio
async def test_failed_settlement_changes_nothing(repos, platform_account, make_account, make_course):
    """
    Given: Learner with 50 credits, course priced 100
    When: Learner tries to enroll
    Then: INSUFFICIENT_CREDIT and no balance, roster or ledger change
    """
    instructor = await make_account("grace", role=AccountRole.INSTRUCTOR)
    learner = await make_account("ada", credits=50)
    course = await make_course(instructor.id, price=100)
    instructor_id, learner_id, course_id = instructor.id, learner.id, course.id

    result = await enroll_use_case(repos).execute(
        EnrollCommandDTO(learner_id=learner_id, course_id=course_id)
    )

    assert result.error.code == "INSUFFICIENT_CREDIT"
    user_repo = repos["user_repo"]
    assert (await user_repo.get_by_id(learner_id)).credits == 50
    assert (await user_repo.get_by_id(instructor_id)).credits == 0
    assert (await repos["course_repo"].get_by_id(course_id)).enrollment_count == 0
    assert await repos["course_repo"].get_enrollment(course_id, learner_id) is None
    _, total = await repos["transaction_repo"].get_by_user_id(learner_id, TransactionType.ENROLL)
    assert total == 0


@pytest.mark.asyncio
async def test_second_enrollment_rejected(repos, platform_account, make_account, make_course):
    instructor = await make_account("grace", role=AccountRole.INSTRUCTOR)
    learner = await make_account("ada", credits=300)
    course = await make_course(instructor.id, price=100)
    learner_id, course_id = learner.id, course.id
    use_case = enroll_use_case(repos)

    await use_case.execute(EnrollCommandDTO(learner_id=learner_id, course_id=course_id))
    result = await use_case.execute(EnrollCommandDTO(learner_id=learner_id, course_id=course_id))

    assert result.error.code == "ALREADY_ENROLLED"
    assert (await repos["user_repo"].get_by_id(learner_id)).credits == 200


@pytest.mark.asyncio
async def test_full_course_rejects_enrollment(repos, platform_account, make_account, make_course):
    instructor = await make_account("grace", role=AccountRole.INSTRUCTOR)
    first = await make_account("ada", credits=100)
    second = await make_account("alan", credits=100)
    course = await make_course(instructor.id, price=10, max_enrollments=1)
    first_id, second_id, course_id = first.id, second.id, course.id
    use_case = enroll_use_case(repos)

    assert (await use_case.execute(EnrollCommandDTO(learner_id=first_id, course_id=course_id))).is_ok()
    result = await use_case.execute(EnrollCommandDTO(learner_id=second_id, course_id=course_id))

    assert result.error.code == "ENROLLMENT_CLOSED"
    assert (await repos["user_repo"].get_by_id(second_id)).credits == 100


@pytest.mark.asyncio
async def test_settlements_keep_ledger_balanced(repos, platform_account, make_account, make_course):
    """
    Given: Several settled enrollments
    When: The ledger is reconciled
    Then: Every balance matches its ledger and every settlement conserves credits
    """
    instructor = await make_account("grace", role=AccountRole.INSTRUCTOR)
    course_a = await make_course(instructor.id, price=99)
    course_b = await make_course(instructor.id, price=250)
    learner = await make_account("ada", credits=400)
    learner_id, course_ids = learner.id, [course_a.id, course_b.id]

    use_case = enroll_use_case(repos)
    for course_id in course_ids:
        assert (await use_case.execute(EnrollCommandDTO(learner_id=learner_id, course_id=course_id))).is_ok()

    result = await ReconcileLedger(
        repos["uow"], repos["user_repo"], repos["transaction_repo"]
    ).execute()

    assert result.value.settlements_checked == 2
    assert result.value.is_balanced
