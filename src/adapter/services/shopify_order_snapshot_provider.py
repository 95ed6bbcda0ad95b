"""Shopify Admin GraphQL order snapshot provider"""

import logging
from typing import Any, Dict, Optional
import httpx
from src.app.services.order_snapshot_provider import OrderSnapshotProvider
from src.domain.store import Store

logger = logging.getLogger(__name__)

ORDER_QUERY = """
query GetOrder($id: ID!) {
  order(id: $id) {
    id
    updatedAt
    cancelledAt
    displayFinancialStatus
    displayFulfillmentStatus
    totalPriceSet { shopMoney { amount } }
    currentTotalPriceSet { shopMoney { amount } }
    totalOutstandingSet { shopMoney { amount } }
    customer { id }
  }
}
"""

# GraphQL enum values that differ from their REST webhook spelling
FULFILLMENT_STATUS_ALIASES = {
    "PARTIALLY_FULFILLED": "partial",
    "UNFULFILLED": None,
}


def _amount(money_set: Optional[Dict[str, Any]]) -> Optional[str]:
    if not money_set:
        return None
    return (money_set.get("shopMoney") or {}).get("amount")


def _legacy_id(gid: Optional[str]) -> Optional[str]:
    if not gid:
        return None
    return gid.rsplit("/", 1)[-1]


def graphql_order_to_payload(order: Dict[str, Any]) -> Dict[str, Any]:
    """Reshape a GraphQL order node into the orders/updated webhook body"""
    fulfillment = order.get("displayFulfillmentStatus")
    if fulfillment in FULFILLMENT_STATUS_ALIASES:
        fulfillment = FULFILLMENT_STATUS_ALIASES[fulfillment]

    financial = order.get("displayFinancialStatus")

    return {
        "id": _legacy_id(order.get("id")),
        "financial_status": financial.lower() if financial else None,
        "fulfillment_status": fulfillment.lower() if fulfillment else None,
        "total_price": _amount(order.get("totalPriceSet")),
        "current_total_price": _amount(order.get("currentTotalPriceSet")),
        "total_outstanding": _amount(order.get("totalOutstandingSet")),
        "cancelled_at": order.get("cancelledAt"),
        "updated_at": order.get("updatedAt"),
        "customer": {"id": _legacy_id((order.get("customer") or {}).get("id"))},
    }


class ShopifyOrderSnapshotProvider(OrderSnapshotProvider):
    """
    Fetches orders through the Shopify Admin GraphQL API

    Uses the store's offline access token. Any HTTP or GraphQL error yields
    None; the caller acknowledges the delivery without changes.
    """

    def __init__(self, api_version: str, timeout: float = 10.0):
        self.api_version = api_version
        self.timeout = timeout

    async def fetch_order(self, store: Store, order_id: str) -> Optional[Dict[str, Any]]:
        if not store.access_token:
            logger.warning(f"No Admin API token for {store.shop_domain}; cannot fetch order {order_id}")
            return None

        order_gid = order_id if str(order_id).startswith("gid://") else f"gid://shopify/Order/{order_id}"
        url = f"https://{store.shop_domain}/admin/api/{self.api_version}/graphql.json"

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    url,
                    json={"query": ORDER_QUERY, "variables": {"id": order_gid}},
                    headers={"X-Shopify-Access-Token": store.access_token},
                )
                response.raise_for_status()
                body = response.json()
        except httpx.HTTPError as e:
            logger.error(f"Failed to fetch order {order_gid} from {store.shop_domain}: {e}")
            return None

        if body.get("errors"):
            logger.error(f"GraphQL errors fetching order {order_gid}: {body['errors']}")
            return None

        order = (body.get("data") or {}).get("order")
        if not order:
            logger.info(f"Order {order_gid} not found on {store.shop_domain}")
            return None

        return graphql_order_to_payload(order)
