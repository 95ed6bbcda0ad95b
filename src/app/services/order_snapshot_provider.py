"""Order Snapshot Provider Interface

ORDERS_EDITED deliveries may carry only the order_edit wrapper. A snapshot
provider fetches the order's current state so it can be reconciled like any
other update.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional
from src.domain.store import Store


class OrderSnapshotProvider(ABC):
    @abstractmethod
    async def fetch_order(self, store: Store, order_id: str) -> Optional[Dict[str, Any]]:
        """
        Fetch the current state of an order

        Args:
            store: Store the order belongs to (supplies the Admin API token)
            order_id: Numeric Shopify order id or order GID

        Returns:
            Order payload shaped like an orders/updated webhook body, or None
            if the order could not be fetched
        """
        pass
