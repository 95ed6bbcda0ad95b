"""Store Repository Interface"""

from abc import ABC, abstractmethod
from typing import Optional
from src.domain.store import Store


class StoreRepository(ABC):
    @abstractmethod
    async def get_by_domain(self, shop_domain: str) -> Optional[Store]:
        """Retrieve an active store by its myshopify.com domain"""
        pass

    @abstractmethod
    async def get_by_id(self, store_id: str) -> Optional[Store]:
        pass
