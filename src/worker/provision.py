"""Platform Account Provisioning

Start-up task: creates the database schema (optional) and the platform
fee account that collects enrollment fees. Safe to run repeatedly.
"""

import asyncio
import logging
from typing import Optional
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

import src.domain  # noqa: F401  registers table models on SQLModel.metadata
from config import ApplicationConfig
from src.adapter.repositories.user_account_repository import SqlAlchemyUserAccountRepository
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.app.use_cases.credits import ProvisionPlatformAccount, PlatformAccountDTO

logger = logging.getLogger(__name__)


class PlatformProvisioner:
    """
    Provisions the platform account outside the request path

    Usage:
        provisioner = PlatformProvisioner()
        account = await provisioner.run_once(create_tables=True)
    """

    def __init__(self, db_uri: Optional[str] = None, username: Optional[str] = None):
        self.db_uri = db_uri or ApplicationConfig.DB_URI
        self.username = username or ApplicationConfig.PLATFORM_ACCOUNT_USERNAME

        self.engine = create_async_engine(self.db_uri, echo=False, future=True)
        self.async_session_factory = sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
        )

    async def create_tables(self):
        async with self.engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)
        logger.info("Database tables created")

    async def run_once(self, create_tables: bool = False) -> PlatformAccountDTO:
        if create_tables:
            await self.create_tables()

        async with self.async_session_factory() as session:
            use_case = ProvisionPlatformAccount(
                uow=SqlAlchemyUnitOfWork(session),
                user_repo=SqlAlchemyUserAccountRepository(session),
                username=self.username,
            )
            result = await use_case.execute()

            if result.is_err():
                logger.error(f"Provisioning failed: {result.error.reason}")
                raise RuntimeError(f"Provisioning failed: {result.error.reason}")

            return result.value

    async def shutdown(self):
        await self.engine.dispose()


async def main():
    """
    Usage:
        python -m src.worker.provision --create-tables
    """
    import argparse

    logging.basicConfig(
        level=ApplicationConfig.LOG_LEVEL,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    parser = argparse.ArgumentParser(description="Provision the platform fee account")
    parser.add_argument(
        "--create-tables", action="store_true", help="Create database tables first"
    )
    args = parser.parse_args()

    provisioner = PlatformProvisioner()
    try:
        account = await provisioner.run_once(create_tables=args.create_tables)
        state = "created" if account.created else "already present"
        print(f"Platform account {account.username} (id={account.user_id}) {state}")
    finally:
        await provisioner.shutdown()


if __name__ == "__main__":
    asyncio.run(main())
