"""SQLAlchemy implementation of PortalUserRepository"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from src.adapter.repositories.base import flush_or_conflict
from src.app.repositories.portal_user_repository import PortalUserRepository
from src.domain.portal_user import PortalUser, UserStatus


class SqlAlchemyPortalUserRepository(PortalUserRepository):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_portal_user(self, shop_id: str, customer_gid: str) -> Optional[PortalUser]:
        """
        Find the approved, active portal user behind a Shopify customer

        Args:
            shop_id: Store ID
            customer_gid: Shopify customer GID

        Returns:
            First matching PortalUser, None when the customer is not a portal user
        """
        stmt = select(PortalUser).where(
            PortalUser.shop_id == shop_id,
            PortalUser.shopify_customer_id == customer_gid,
            PortalUser.is_active == True,  # noqa: E712
            PortalUser.status == UserStatus.APPROVED,
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def get_by_id(self, user_id: str, for_update: bool = False) -> Optional[PortalUser]:
        """
        Retrieve user by ID

        Args:
            user_id: Portal user ID
            for_update: Lock the row and refresh any instance already in the session

        Returns:
            PortalUser if found, None otherwise
        """
        stmt = select(PortalUser).where(PortalUser.id == user_id)

        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)

        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def create(self, user: PortalUser) -> PortalUser:
        """
        Create a new portal user

        Args:
            user: PortalUser entity to persist

        Returns:
            Created PortalUser with database defaults loaded

        Raises:
            LedgerWriteConflict: If a unique constraint rejects the row
        """
        self.session.add(user)
        await flush_or_conflict(self.session)
        await self.session.refresh(user)
        return user

    async def update_credit_used(self, user_id: str, credit_used: Decimal) -> None:
        """
        Overwrite a user's personal credit usage; unknown IDs are ignored

        Args:
            user_id: Portal user ID
            credit_used: New usage figure

        Raises:
            LedgerWriteConflict: On a lock failure during flush
        """
        user = await self.get_by_id(user_id)
        if user:
            user.user_credit_used = credit_used
            user.updated_at = datetime.utcnow()
            self.session.add(user)
            await flush_or_conflict(self.session)

    async def update_credit_limit(self, user_id: str, credit_limit: Optional[Decimal]) -> None:
        """
        Set or clear (None) a user's personal limit; unknown IDs are ignored

        Args:
            user_id: Portal user ID
            credit_limit: New limit, None for no personal cap

        Raises:
            LedgerWriteConflict: On a lock failure during flush
        """
        user = await self.get_by_id(user_id)
        if user:
            user.user_credit_limit = credit_limit
            user.updated_at = datetime.utcnow()
            self.session.add(user)
            await flush_or_conflict(self.session)

    async def list_by_company(self, company_id: str) -> List[PortalUser]:
        """
        List a company's users, oldest first

        Args:
            company_id: Company ID

        Returns:
            PortalUser rows of the company
        """
        stmt = select(PortalUser).where(PortalUser.company_id == company_id).order_by(PortalUser.created_at)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
