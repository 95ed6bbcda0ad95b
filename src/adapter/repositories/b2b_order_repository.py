"""SQLAlchemy implementation of B2BOrderRepository"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Sequence, Tuple
from sqlalchemy import func
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from src.adapter.repositories.base import flush_or_conflict
from src.app.repositories.b2b_order_repository import B2BOrderRepository
from src.domain.b2b_order import (
    B2BOrder,
    OrderStatus,
    OUTSTANDING_PAYMENT_STATUSES,
)
from src.domain.money import to_money


class SqlAlchemyB2BOrderRepository(B2BOrderRepository):
    """
    SQLAlchemy implementation of B2BOrderRepository

    Features:
    - Row locking on order reads used by ledger writers
    - Outstanding-balance aggregate computed in the database
    - Duplicate (shop, Shopify order) inserts surface as LedgerWriteConflict
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, order_id: str, for_update: bool = False) -> Optional[B2BOrder]:
        """
        Retrieve order by ID

        Args:
            order_id: Order ID
            for_update: Lock the row and refresh any instance already in the session

        Returns:
            B2BOrder if found, None otherwise
        """
        stmt = select(B2BOrder).where(B2BOrder.id == order_id)

        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)

        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_shopify_id(
        self, shop_id: str, shopify_order_id: str, for_update: bool = False
    ) -> Optional[B2BOrder]:
        """
        Retrieve the tracked order for a Shopify order in one shop

        Args:
            shop_id: Store ID
            shopify_order_id: Shopify order GID
            for_update: Lock the row and refresh any instance already in the session

        Returns:
            B2BOrder if tracked, None otherwise
        """
        stmt = select(B2BOrder).where(
            B2BOrder.shop_id == shop_id,
            B2BOrder.shopify_order_id == shopify_order_id,
        )

        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)

        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def create(self, order: B2BOrder) -> B2BOrder:
        """
        Create a new order

        Args:
            order: B2BOrder entity to persist

        Returns:
            Created B2BOrder with database defaults loaded

        Raises:
            LedgerWriteConflict: If the Shopify order is already tracked for the shop
        """
        self.session.add(order)
        await flush_or_conflict(self.session)
        await self.session.refresh(order)
        return order

    async def save(self, order: B2BOrder) -> B2BOrder:
        """
        Persist changes to an order and stamp updated_at

        Args:
            order: B2BOrder entity with pending changes

        Returns:
            The same B2BOrder

        Raises:
            LedgerWriteConflict: On a lock or unique-key failure during flush
        """
        order.updated_at = datetime.utcnow()
        self.session.add(order)
        await flush_or_conflict(self.session)
        return order

    async def sum_outstanding(
        self,
        company_id: str,
        exclude_order_id: Optional[str] = None,
        order_statuses: Optional[Sequence[OrderStatus]] = None,
    ) -> Decimal:
        """
        Sum remaining balances of a company's unpaid, non-cancelled orders

        Args:
            company_id: Company ID
            exclude_order_id: Order left out of the sum (the one being re-evaluated)
            order_statuses: Restrict to these order statuses when given

        Returns:
            Outstanding total as money, 0.00 when nothing is outstanding
        """
        stmt = select(func.sum(B2BOrder.remaining_balance)).where(
            B2BOrder.company_id == company_id,
            B2BOrder.payment_status.in_(OUTSTANDING_PAYMENT_STATUSES),
            B2BOrder.order_status != OrderStatus.CANCELLED,
        )

        if exclude_order_id is not None:
            stmt = stmt.where(B2BOrder.id != exclude_order_id)
        if order_statuses is not None:
            stmt = stmt.where(B2BOrder.order_status.in_(list(order_statuses)))

        result = await self.session.execute(stmt)
        return to_money(result.scalar_one_or_none())

    async def list_outstanding(self, company_id: str) -> List[B2BOrder]:
        """
        List a company's unpaid, non-cancelled orders, oldest first

        Args:
            company_id: Company ID

        Returns:
            Orders that still hold credit
        """
        stmt = (
            select(B2BOrder)
            .where(
                B2BOrder.company_id == company_id,
                B2BOrder.payment_status.in_(OUTSTANDING_PAYMENT_STATUSES),
                B2BOrder.order_status != OrderStatus.CANCELLED,
            )
            .order_by(B2BOrder.created_at)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_by_company(
        self, company_id: str, limit: int = 20, offset: int = 0
    ) -> Tuple[List[B2BOrder], int]:
        """
        Retrieve a page of a company's orders, most recent first

        Args:
            company_id: Company ID
            limit: Maximum number of orders to return
            offset: Number of orders to skip

        Returns:
            Tuple of (orders, total count)
        """
        count_stmt = select(func.count()).select_from(B2BOrder).where(B2BOrder.company_id == company_id)
        total = (await self.session.execute(count_stmt)).scalar_one()

        stmt = (
            select(B2BOrder)
            .where(B2BOrder.company_id == company_id)
            .order_by(B2BOrder.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all()), total
