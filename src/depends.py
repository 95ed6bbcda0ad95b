from typing import Optional
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession
from config import ApplicationConfig
from src.adapter.services.notification_service import create_notification_service
from src.adapter.services.shopify_order_snapshot_provider import ShopifyOrderSnapshotProvider
from src.app.services.notification_service import ReviewNotificationService
from src.app.services.order_snapshot_provider import OrderSnapshotProvider

engine = create_async_engine(ApplicationConfig.DB_URI, echo=False, future=True)

AsyncSessionLocal = sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
)


async def get_session() -> AsyncSession:
    async with AsyncSessionLocal() as session:
        yield session


def get_review_notifier() -> ReviewNotificationService:
    return create_notification_service(ApplicationConfig.REVIEW_NOTIFICATION_WEBHOOK)


def get_order_snapshot_provider() -> Optional[OrderSnapshotProvider]:
    return ShopifyOrderSnapshotProvider(
        api_version=ApplicationConfig.SHOPIFY_API_VERSION,
        timeout=float(ApplicationConfig.SHOPIFY_ADMIN_TIMEOUT_SECONDS),
    )
