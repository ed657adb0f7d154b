import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

import src.domain  # noqa: F401
from src.depends import get_session
from src.adapter.repositories import (
    SqlAlchemyCourseRepository,
    SqlAlchemyCreditTransactionRepository,
    SqlAlchemyUserAccountRepository,
)
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.app.use_cases.credits import (
    OpenAccount,
    OpenAccountCommandDTO,
    ProvisionPlatformAccount,
    PurchaseCommandDTO,
    PurchaseCredits,
)
from src.domain.course import Course, CourseLevel, CourseStatus
from src.domain.credit_policy import CreditPolicy
from src.domain.user_account import AccountRole


@pytest_asyncio.fixture(scope="function")
async def engine():
    """In-memory SQLite database shared by every connection of one test"""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        echo=False,
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(engine):
    """Create a new database session for each test"""
    Session = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
    async with Session() as session:
        yield session


@pytest.fixture
def repos(db_session):
    return {
        "uow": SqlAlchemyUnitOfWork(db_session),
        "user_repo": SqlAlchemyUserAccountRepository(db_session),
        "course_repo": SqlAlchemyCourseRepository(db_session),
        "transaction_repo": SqlAlchemyCreditTransactionRepository(db_session),
    }


@pytest_asyncio.fixture
async def platform_account(repos):
    """Provisioned platform fee account"""
    result = await ProvisionPlatformAccount(repos["uow"], repos["user_repo"]).execute()
    return await repos["user_repo"].get_by_id(result.value.user_id)


@pytest_asyncio.fixture
async def make_account(repos):
    """Open an account and fund it through ledger-backed purchases"""

    async def _make_account(username, role=AccountRole.STUDENT, credits=0, **badge_fields):
        opened = await OpenAccount(
            repos["uow"],
            repos["user_repo"],
            repos["transaction_repo"],
            CreditPolicy(onboarding_bonus=0),
        ).execute(OpenAccountCommandDTO(username=username, role=role))
        user_id = opened.value.user_id

        if credits:
            await PurchaseCredits(
                repos["uow"], repos["user_repo"], repos["transaction_repo"]
            ).execute(PurchaseCommandDTO(user_id=user_id, amount_credits=credits))

        account = await repos["user_repo"].get_by_id(user_id)
        if badge_fields:
            for name, value in badge_fields.items():
                setattr(account, name, value)
            await repos["user_repo"].save(account)
            await repos["uow"].commit()
        return account

    return _make_account


@pytest_asyncio.fixture
async def make_course(repos):
    async def _make_course(instructor_id, price, level=CourseLevel.BEGINNER, max_enrollments=None):
        course = await repos["course_repo"].create(
            Course(
                title="Async Python",
                instructor_id=instructor_id,
                price=price,
                level=level,
                status=CourseStatus.PUBLISHED,
                is_published=True,
                max_enrollments=max_enrollments,
            )
        )
        await repos["uow"].commit()
        return course

    return _make_course


@pytest_asyncio.fixture
async def client(db_session):
    """Create test client with database session override"""
    from src.api.app import create_app
    from config import ApplicationConfig

    app = create_app(ApplicationConfig)

    # Override the session dependency to use test session
    async def override_get_session():
        yield db_session

    app.dependency_overrides[get_session] = override_get_session

    # Use ASGITransport for httpx AsyncClient
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
