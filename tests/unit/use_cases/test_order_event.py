"""Unit tests for order webhook payload parsing and status mapping"""

import pytest
from datetime import datetime
from decimal import Decimal

from src.app.use_cases.webhooks.order_event import (
    WebhookTopic,
    map_financial_status,
    map_fulfillment_status,
    parse_order_event,
)
from src.domain.b2b_order import OrderStatus, PaymentStatus
from src.domain.exceptions import MalformedPayload


class TestWebhookTopic:
    @pytest.mark.parametrize(
        "header, expected",
        [
            ("orders/create", WebhookTopic.ORDERS_CREATE),
            ("ORDERS_CREATE", WebhookTopic.ORDERS_CREATE),
            ("orders/updated", WebhookTopic.ORDERS_UPDATED),
            ("orders/update", WebhookTopic.ORDERS_UPDATED),
            ("orders/edited", WebhookTopic.ORDERS_EDITED),
            ("orders/cancelled", WebhookTopic.ORDERS_CANCELLED),
            ("orders/paid", WebhookTopic.ORDERS_PAID),
        ],
    )
    def test_header_spellings(self, header, expected):
        assert WebhookTopic.from_header(header) == expected

    @pytest.mark.parametrize("header", [None, "", "products/create", "orders/fulfilled"])
    def test_unsupported(self, header):
        assert WebhookTopic.from_header(header) is None


class TestStatusMapping:
    @pytest.mark.parametrize(
        "financial_status, expected",
        [
            ("paid", PaymentStatus.PAID),
            ("PAID", PaymentStatus.PAID),
            ("partially_paid", PaymentStatus.PARTIAL),
            ("refunded", PaymentStatus.CANCELLED),
            ("voided", PaymentStatus.CANCELLED),
            ("pending", PaymentStatus.PENDING),
            ("authorized", PaymentStatus.PENDING),
            ("partially_refunded", PaymentStatus.PENDING),
            (None, PaymentStatus.PENDING),
        ],
    )
    def test_financial_status(self, financial_status, expected):
        assert map_financial_status(financial_status) == expected

    @pytest.mark.parametrize(
        "fulfillment_status, expected",
        [
            ("fulfilled", OrderStatus.DELIVERED),
            ("partial", OrderStatus.PROCESSING),
            ("in_progress", OrderStatus.PROCESSING),
            ("cancelled", OrderStatus.CANCELLED),
            (None, OrderStatus.SUBMITTED),
            ("restocked", OrderStatus.SUBMITTED),
        ],
    )
    def test_fulfillment_status(self, fulfillment_status, expected):
        assert map_fulfillment_status(fulfillment_status) == expected

    def test_cancelled_at_forces_cancelled(self):
        assert map_fulfillment_status("fulfilled", datetime(2024, 1, 1)) == OrderStatus.CANCELLED


class TestParseOrderEvent:
    def test_rest_payload(self):
        event = parse_order_event(
            WebhookTopic.ORDERS_CREATE,
            {
                "id": 820982911946154508,
                "customer": {"id": 115310627314723954, "email": "buyer@acme.test"},
                "financial_status": "pending",
                "total_price": "500.00",
                "updated_at": "2024-03-01T10:00:00-05:00",
                "line_items": [{"id": 1}],
            },
        )

        assert event.order_gid == "gid://shopify/Order/820982911946154508"
        assert event.customer_gid == "gid://shopify/Customer/115310627314723954"
        assert event.order_total == Decimal("500.00")
        assert event.payment_status == PaymentStatus.PENDING
        assert event.order_status == OrderStatus.SUBMITTED
        assert event.updated_at == datetime(2024, 3, 1, 15, 0, 0)

    def test_gid_ids_are_kept(self):
        event = parse_order_event(
            WebhookTopic.ORDERS_UPDATED,
            {"id": "gid://shopify/Order/1", "customer": {"id": "gid://shopify/Customer/2"}},
        )

        assert event.order_gid == "gid://shopify/Order/1"
        assert event.customer_gid == "gid://shopify/Customer/2"

    def test_missing_total_is_zero(self):
        event = parse_order_event(WebhookTopic.ORDERS_UPDATED, {"id": 1})

        assert event.order_total == Decimal("0.00")

    def test_current_total_used_when_total_missing(self):
        event = parse_order_event(WebhookTopic.ORDERS_UPDATED, {"id": 1, "current_total_price": "75.50"})

        assert event.order_total == Decimal("75.50")

    def test_missing_id_is_malformed(self):
        with pytest.raises(MalformedPayload):
            parse_order_event(WebhookTopic.ORDERS_UPDATED, {"financial_status": "paid"})

    def test_non_numeric_total_is_malformed(self):
        with pytest.raises(MalformedPayload):
            parse_order_event(WebhookTopic.ORDERS_UPDATED, {"id": 1, "total_price": "lots"})

    def test_non_object_is_malformed(self):
        with pytest.raises(MalformedPayload):
            parse_order_event(WebhookTopic.ORDERS_UPDATED, ["not", "an", "object"])

    def test_edit_stub(self):
        event = parse_order_event(
            WebhookTopic.ORDERS_EDITED,
            {"order_edit": {"id": 78912328, "order_id": 450789469, "app_id": None}},
        )

        assert event.is_edit_stub is True
        assert event.order_gid == "gid://shopify/Order/450789469"

    def test_edit_stub_without_order_id(self):
        with pytest.raises(MalformedPayload):
            parse_order_event(WebhookTopic.ORDERS_EDITED, {"order_edit": {"id": 1}})


class TestOutstanding:
    def test_total_outstanding_wins(self):
        event = parse_order_event(
            WebhookTopic.ORDERS_UPDATED,
            {"id": 1, "financial_status": "partially_paid", "total_price": "500.00", "total_outstanding": "300.00"},
        )

        assert event.outstanding(Decimal("0.00")) == Decimal("300.00")

    def test_paid_without_outstanding_is_zero(self):
        event = parse_order_event(
            WebhookTopic.ORDERS_UPDATED, {"id": 1, "financial_status": "paid", "total_price": "500.00"}
        )

        assert event.outstanding(Decimal("0.00")) == Decimal("0.00")

    def test_falls_back_to_previous_paid(self):
        event = parse_order_event(
            WebhookTopic.ORDERS_UPDATED, {"id": 1, "financial_status": "pending", "total_price": "500.00"}
        )

        assert event.outstanding(Decimal("120.00")) == Decimal("380.00")

    def test_clamped_to_total(self):
        event = parse_order_event(
            WebhookTopic.ORDERS_UPDATED, {"id": 1, "total_price": "500.00", "total_outstanding": "900.00"}
        )

        assert event.outstanding() == Decimal("500.00")
