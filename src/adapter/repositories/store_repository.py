"""SQLAlchemy implementation of StoreRepository"""

from typing import Optional
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.repositories.store_repository import StoreRepository
from src.domain.store import Store


class SqlAlchemyStoreRepository(StoreRepository):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_domain(self, shop_domain: str) -> Optional[Store]:
        """
        Resolve an active store from its myshopify domain

        Args:
            shop_domain: Domain from the webhook header; case and surrounding
                whitespace are ignored

        Returns:
            Store if installed and active, None otherwise
        """
        stmt = select(Store).where(
            Store.shop_domain == shop_domain.strip().lower(),
            Store.is_active == True,  # noqa: E712
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_id(self, store_id: str) -> Optional[Store]:
        """
        Retrieve store by ID

        Args:
            store_id: Store ID

        Returns:
            Store if found, None otherwise
        """
        stmt = select(Store).where(Store.id == store_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()
