from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession
from config import ApplicationConfig
from src.adapter.services.notification_service import create_notification_service
from src.app.services.notification_service import NotificationService
from src.domain.credit_policy import CreditPolicy

engine = create_async_engine(ApplicationConfig.DB_URI, echo=False, future=True)

AsyncSessionLocal = sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
)

credit_policy = CreditPolicy.from_config(ApplicationConfig)
notification_service = create_notification_service(ApplicationConfig.BADGE_NOTIFICATION_WEBHOOK)


async def get_session() -> AsyncSession:
    async with AsyncSessionLocal() as session:
        yield session


def get_policy() -> CreditPolicy:
    return credit_policy


def get_notification_service() -> NotificationService:
    return notification_service
