"""Concurrent debits against one balance, each on its own session and connection"""

import asyncio

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

import src.domain  # noqa: F401
from src.adapter.repositories import SqlAlchemyUserAccountRepository
from src.app.services.wallet import Wallet
from src.domain.errors import InsufficientFundsError
from src.domain.user_account import UserAccount


@pytest_asyncio.fixture
async def file_session_factory(tmp_path):
    """Database file shared by independent connections"""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'wallet.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)

    await engine.dispose()


async def open_funded_account(Session, credits):
    async with Session() as session:
        account = UserAccount(username="ada", credits=credits)
        session.add(account)
        await session.commit()
        return account.id


async def debit_and_commit(Session, user_id, amount):
    async with Session() as session:
        try:
            balance = await Wallet(SqlAlchemyUserAccountRepository(session)).debit(user_id, amount)
            await session.commit()
            return balance
        except Exception:
            await session.rollback()
            raise


async def balance_of(Session, user_id):
    async with Session() as session:
        return await Wallet(SqlAlchemyUserAccountRepository(session)).balance(user_id)


@pytest.mark.asyncio
async def test_two_concurrent_debits_cannot_overdraw(file_session_factory):
    """
    Given: Balance of 100
    When: Two debits of 70 race on separate sessions
    Then: Exactly one succeeds, the other is INSUFFICIENT_CREDIT, balance is 30
    """
    user_id = await open_funded_account(file_session_factory, credits=100)

    outcomes = await asyncio.gather(
        debit_and_commit(file_session_factory, user_id, 70),
        debit_and_commit(file_session_factory, user_id, 70),
        return_exceptions=True,
    )

    succeeded = [outcome for outcome in outcomes if not isinstance(outcome, Exception)]
    refused = [outcome for outcome in outcomes if isinstance(outcome, InsufficientFundsError)]
    assert succeeded == [30]
    assert len(refused) == 1
    assert refused[0].available == 30
    assert await balance_of(file_session_factory, user_id) == 30


@pytest.mark.asyncio
async def test_many_concurrent_debits_stop_at_zero(file_session_factory):
    user_id = await open_funded_account(file_session_factory, credits=100)

    outcomes = await asyncio.gather(
        *(debit_and_commit(file_session_factory, user_id, 30) for _ in range(5)),
        return_exceptions=True,
    )

    succeeded = sorted(outcome for outcome in outcomes if not isinstance(outcome, Exception))
    refused = [outcome for outcome in outcomes if isinstance(outcome, InsufficientFundsError)]
    assert succeeded == [10, 40, 70]
    assert len(refused) == 2
    assert await balance_of(file_session_factory, user_id) == 10
