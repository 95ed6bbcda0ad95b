"""B2B Order Repository Interface

Defines the contract for order record persistence and the company usage
aggregate derived from it.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import List, Optional, Sequence, Tuple
from src.domain.b2b_order import B2BOrder, OrderStatus


class B2BOrderRepository(ABC):
    """
    Repository interface for B2BOrder persistence

    Used credit is never stored: it is the sum of remaining balances of a
    company's outstanding orders, computed by sum_outstanding.
    """

    @abstractmethod
    async def get_by_id(self, order_id: str, for_update: bool = False) -> Optional[B2BOrder]:
        pass

    @abstractmethod
    async def get_by_shopify_id(
        self, shop_id: str, shopify_order_id: str, for_update: bool = False
    ) -> Optional[B2BOrder]:
        """
        Retrieve order by shop and Shopify order GID (webhook correlation key)
        """
        pass

    @abstractmethod
    async def create(self, order: B2BOrder) -> B2BOrder:
        """
        Create a new order record

        Raises:
            LedgerWriteConflict: If the (shop, Shopify order) pair already exists
        """
        pass

    @abstractmethod
    async def save(self, order: B2BOrder) -> B2BOrder:
        """Persist changes made to a loaded order"""
        pass

    @abstractmethod
    async def sum_outstanding(
        self,
        company_id: str,
        exclude_order_id: Optional[str] = None,
        order_statuses: Optional[Sequence[OrderStatus]] = None,
    ) -> Decimal:
        """
        Sum remaining_balance over the company's pending/partial, non-cancelled orders

        Args:
            company_id: Company identifier
            exclude_order_id: Order to leave out of the sum (the one being mutated)
            order_statuses: Restrict to these order statuses (pending credit view)

        Returns:
            Total outstanding amount (0 when there are no orders)
        """
        pass

    @abstractmethod
    async def list_outstanding(self, company_id: str) -> List[B2BOrder]:
        pass

    @abstractmethod
    async def list_by_company(
        self, company_id: str, limit: int = 20, offset: int = 0
    ) -> Tuple[List[B2BOrder], int]:
        pass
