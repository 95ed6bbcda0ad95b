"""Unit tests for the Shopify order snapshot provider and review notifications"""

import pytest
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch

from src.adapter.services.notification_service import (
    CompositeNotificationService,
    LoggingNotificationService,
    WebhookNotificationService,
    create_notification_service,
)
from src.adapter.services.shopify_order_snapshot_provider import (
    ShopifyOrderSnapshotProvider,
    graphql_order_to_payload,
)
from src.app.use_cases.webhooks.order_event import WebhookTopic, parse_order_event
from src.domain.b2b_order import OrderStatus, PaymentStatus
from src.domain.store import Store

GRAPHQL_ORDER = {
    "id": "gid://shopify/Order/450789469",
    "updatedAt": "2024-03-01T10:00:00Z",
    "cancelledAt": None,
    "displayFinancialStatus": "PARTIALLY_PAID",
    "displayFulfillmentStatus": "PARTIALLY_FULFILLED",
    "totalPriceSet": {"shopMoney": {"amount": "650.0"}},
    "currentTotalPriceSet": {"shopMoney": {"amount": "650.0"}},
    "totalOutstandingSet": {"shopMoney": {"amount": "150.0"}},
    "customer": {"id": "gid://shopify/Customer/42"},
}


class TestGraphqlOrderToPayload:
    def test_reshapes_to_webhook_body(self):
        payload = graphql_order_to_payload(GRAPHQL_ORDER)

        assert payload["id"] == "450789469"
        assert payload["financial_status"] == "partially_paid"
        assert payload["fulfillment_status"] == "partial"
        assert payload["total_price"] == "650.0"
        assert payload["customer"] == {"id": "42"}

    def test_payload_parses_as_order_event(self):
        event = parse_order_event(WebhookTopic.ORDERS_UPDATED, graphql_order_to_payload(GRAPHQL_ORDER))

        assert event.order_gid == "gid://shopify/Order/450789469"
        assert event.payment_status == PaymentStatus.PARTIAL
        assert event.order_status == OrderStatus.PROCESSING
        assert event.outstanding() == Decimal("150.00")

    def test_unfulfilled_maps_to_no_fulfillment(self):
        payload = graphql_order_to_payload({**GRAPHQL_ORDER, "displayFulfillmentStatus": "UNFULFILLED"})

        assert payload["fulfillment_status"] is None


@pytest.mark.asyncio
class TestShopifyOrderSnapshotProvider:
    async def test_store_without_token(self):
        provider = ShopifyOrderSnapshotProvider(api_version="2025-01")
        store = Store(id="shop_1", shop_domain="acme.myshopify.com", access_token=None)

        assert await provider.fetch_order(store, "450789469") is None

    async def test_fetches_and_reshapes(self):
        provider = ShopifyOrderSnapshotProvider(api_version="2025-01")
        store = Store(id="shop_1", shop_domain="acme.myshopify.com", access_token="shpat_test")
        response = MagicMock()
        response.raise_for_status = MagicMock()
        response.json = MagicMock(return_value={"data": {"order": GRAPHQL_ORDER}})
        client = MagicMock()
        client.post = AsyncMock(return_value=response)
        client.__aenter__ = AsyncMock(return_value=client)
        client.__aexit__ = AsyncMock(return_value=False)

        with patch("src.adapter.services.shopify_order_snapshot_provider.httpx.AsyncClient", return_value=client):
            payload = await provider.fetch_order(store, "450789469")

        assert payload["total_outstanding"] == "150.0"
        url = client.post.call_args[0][0]
        assert url == "https://acme.myshopify.com/admin/api/2025-01/graphql.json"
        assert client.post.call_args[1]["headers"] == {"X-Shopify-Access-Token": "shpat_test"}
        assert client.post.call_args[1]["json"]["variables"] == {"id": "gid://shopify/Order/450789469"}

    async def test_graphql_errors_yield_none(self):
        provider = ShopifyOrderSnapshotProvider(api_version="2025-01")
        store = Store(id="shop_1", shop_domain="acme.myshopify.com", access_token="shpat_test")
        response = MagicMock()
        response.raise_for_status = MagicMock()
        response.json = MagicMock(return_value={"errors": [{"message": "Throttled"}]})
        client = MagicMock()
        client.post = AsyncMock(return_value=response)
        client.__aenter__ = AsyncMock(return_value=client)
        client.__aexit__ = AsyncMock(return_value=False)

        with patch("src.adapter.services.shopify_order_snapshot_provider.httpx.AsyncClient", return_value=client):
            assert await provider.fetch_order(store, "450789469") is None


@pytest.mark.asyncio
class TestReviewNotifications:
    async def test_factory_without_webhook_logs_only(self):
        assert isinstance(create_notification_service(None), LoggingNotificationService)

    async def test_factory_with_webhook_is_composite(self):
        service = create_notification_service("https://hooks.example.com/review")

        assert isinstance(service, CompositeNotificationService)
        assert isinstance(service.services[1], WebhookNotificationService)

    async def test_composite_survives_failing_service(self, make_order):
        failing = MagicMock()
        failing.send_review_alert = AsyncMock(side_effect=Exception("Connection refused"))
        service = CompositeNotificationService([failing, LoggingNotificationService()])

        assert await service.send_review_alert(make_order(), "Credit limit exceeded") is True

    async def test_composite_reports_total_failure(self, make_order):
        failing = MagicMock()
        failing.send_review_alert = AsyncMock(return_value=False)
        service = CompositeNotificationService([failing])

        assert await service.send_review_alert(make_order(), "Credit limit exceeded") is False
