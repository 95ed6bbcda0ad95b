"""Portal User Repository Interface"""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import List, Optional
from src.domain.portal_user import PortalUser


class PortalUserRepository(ABC):
    @abstractmethod
    async def find_portal_user(self, shop_id: str, customer_gid: str) -> Optional[PortalUser]:
        """
        Find the portal user mapped to a Shopify customer

        Only active, APPROVED users are returned.

        Args:
            shop_id: Store identifier
            customer_gid: Shopify customer GID

        Returns:
            PortalUser if an eligible user exists, None otherwise
        """
        pass

    @abstractmethod
    async def get_by_id(self, user_id: str, for_update: bool = False) -> Optional[PortalUser]:
        pass

    @abstractmethod
    async def create(self, user: PortalUser) -> PortalUser:
        pass

    @abstractmethod
    async def update_credit_used(self, user_id: str, credit_used: Decimal) -> None:
        pass

    @abstractmethod
    async def update_credit_limit(self, user_id: str, credit_limit: Optional[Decimal]) -> None:
        pass

    @abstractmethod
    async def list_by_company(self, company_id: str) -> List[PortalUser]:
        pass
