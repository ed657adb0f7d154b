"""FastAPI application factory"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlmodel import SQLModel

import src.domain  # noqa: F401  registers table models on SQLModel.metadata
from src.api.error import ClientError, client_error_handler, validation_error_handler
from src.api.routes import badges, credits
from src.adapter.repositories.user_account_repository import SqlAlchemyUserAccountRepository
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.app.use_cases.credits import ProvisionPlatformAccount
from src.depends import AsyncSessionLocal, engine

logger = logging.getLogger(__name__)


def create_app(config) -> FastAPI:
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if config.CREATE_TABLES_ON_STARTUP:
            async with engine.begin() as conn:
                await conn.run_sync(SQLModel.metadata.create_all)

        async with AsyncSessionLocal() as session:
            result = await ProvisionPlatformAccount(
                uow=SqlAlchemyUnitOfWork(session),
                user_repo=SqlAlchemyUserAccountRepository(session),
                username=config.PLATFORM_ACCOUNT_USERNAME,
            ).execute()
        if result.is_err():
            raise RuntimeError(f"Platform account provisioning failed: {result.error.reason}")
        logger.info(f"Platform account ready: {result.value.username} ({result.value.user_id})")

        yield

        await engine.dispose()

    app = FastAPI(
        title="SkillSwap Credits Service",
        description="Credits ledger, enrollment settlement and badge economy",
        version="0.1.0",
        lifespan=lifespan,
    )

    if config.CORS_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=config.CORS_ORIGINS,
            allow_credentials=config.CORS_ALLOW_CREDENTIALS,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.add_exception_handler(ClientError, client_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    app.include_router(credits.router, prefix=config.API_PREFIX)
    app.include_router(badges.router, prefix=config.API_PREFIX)

    @app.get("/health", tags=["Health"])
    async def health():
        return {"status": "ok"}

    return app
