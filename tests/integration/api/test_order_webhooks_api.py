"""Integration tests for POST /webhooks/orders

Full path: HMAC verification, topic routing, reconciliation against SQLite,
ledger entries and the audit invariant (transaction replay == used credit).
"""

import json
import pytest
from decimal import Decimal
from sqlmodel import select

from src.adapter.repositories.b2b_order_repository import SqlAlchemyB2BOrderRepository
from src.adapter.repositories.credit_transaction_repository import SqlAlchemyCreditTransactionRepository
from src.api.security import HMAC_HEADER, compute_shopify_hmac
from src.domain import B2BOrder, CreditTransaction, TransactionType

# Match the store and secret seeded by the integration conftest
TEST_SHOP_DOMAIN = "acme-wholesale.myshopify.com"
TEST_WEBHOOK_SECRET = "test-webhook-secret"
ORDER_GID = "gid://shopify/Order/1001"


def _order_payload(**overrides):
    payload = {
        "id": 1001,
        "customer": {"id": 42, "email": "buyer@acme.test"},
        "financial_status": "pending",
        "fulfillment_status": None,
        "total_price": "500.00",
        "updated_at": "2024-03-01T10:00:00Z",
    }
    payload.update(overrides)
    return payload


async def _deliver(client, topic, payload, secret=TEST_WEBHOOK_SECRET, shop=TEST_SHOP_DOMAIN):
    body = json.dumps(payload).encode("utf-8")
    return await client.post(
        "/webhooks/orders",
        content=body,
        headers={
            "Content-Type": "application/json",
            "X-Shopify-Topic": topic,
            "X-Shopify-Shop-Domain": shop,
            HMAC_HEADER: compute_shopify_hmac(body, secret),
        },
    )


async def _transactions(db_session, transaction_type=None):
    stmt = select(CreditTransaction)
    if transaction_type is not None:
        stmt = stmt.where(CreditTransaction.transaction_type == transaction_type)
    result = await db_session.execute(stmt)
    return list(result.scalars().all())


async def _order(db_session):
    result = await db_session.execute(
        select(B2BOrder)
        .where(B2BOrder.shopify_order_id == ORDER_GID)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def _assert_ledger_balanced(db_session, company_id):
    used = await SqlAlchemyB2BOrderRepository(db_session).sum_outstanding(company_id)
    replayed = await SqlAlchemyCreditTransactionRepository(db_session).get_replayed_balance(company_id)
    assert used == replayed


@pytest.mark.asyncio
class TestWebhookAuthentication:
    async def test_invalid_signature_rejected(self, client, seeded):
        response = await _deliver(client, "orders/create", _order_payload(), secret="wrong-secret")

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "UNAUTHORIZED"

    async def test_missing_signature_rejected(self, client, seeded):
        response = await client.post(
            "/webhooks/orders",
            content=b"{}",
            headers={"X-Shopify-Topic": "orders/create", "X-Shopify-Shop-Domain": TEST_SHOP_DOMAIN},
        )

        assert response.status_code == 401

    async def test_non_json_body_acknowledged(self, client, seeded):
        body = b"not json"
        response = await client.post(
            "/webhooks/orders",
            content=body,
            headers={
                "X-Shopify-Topic": "orders/create",
                "X-Shopify-Shop-Domain": TEST_SHOP_DOMAIN,
                HMAC_HEADER: compute_shopify_hmac(body, TEST_WEBHOOK_SECRET),
            },
        )

        assert response.status_code == 200
        assert response.json()["action"] == "ignored"


@pytest.mark.asyncio
class TestOrderLifecycle:
    async def test_create_then_paid(self, client, db_session, seeded):
        """Given a pending order of 500 created through ORDERS_CREATE
        When ORDERS_UPDATED reports it paid
        Then credit_used and remaining_balance are 0 and the ledger replays to 0
        """
        # Arrange
        created = await _deliver(client, "orders/create", _order_payload())
        assert created.status_code == 200
        assert created.json()["action"] == "created"
        assert Decimal(created.json()["credit_used"]) == Decimal("500.00")

        # Act
        response = await _deliver(
            client,
            "orders/updated",
            _order_payload(financial_status="paid", updated_at="2024-03-01T11:00:00Z"),
        )

        # Assert
        assert response.status_code == 200
        body = response.json()
        assert body["action"] == "updated"
        assert body["payment_status"] == "paid"
        order = await _order(db_session)
        assert order.credit_used == Decimal("0.00")
        assert order.remaining_balance == Decimal("0.00")
        assert order.paid_amount == Decimal("500.00")
        assert len(await _transactions(db_session, TransactionType.RESERVE)) == 1
        assert len(await _transactions(db_session, TransactionType.DEDUCT)) == 1
        await _assert_ledger_balanced(db_session, seeded["company_id"])

    async def test_cancel_delivered_twice_restores_once(self, client, db_session, seeded):
        await _deliver(client, "orders/create", _order_payload())
        cancel = _order_payload(cancelled_at="2024-03-01T12:00:00Z", updated_at="2024-03-01T12:00:00Z")

        first = await _deliver(client, "orders/cancelled", cancel)
        second = await _deliver(client, "orders/cancelled", cancel)

        assert first.json()["action"] == "updated"
        assert second.json()["action"] == "unchanged"
        assert len(await _transactions(db_session, TransactionType.RESTORE)) == 1
        order = await _order(db_session)
        assert order.credit_used == Decimal("0.00")
        assert order.order_status.value == "cancelled"
        await _assert_ledger_balanced(db_session, seeded["company_id"])

    async def test_partial_payment(self, client, db_session, seeded):
        """Given a pending order of 500
        When it becomes partially paid with 300 outstanding
        Then paid_amount is 200 and credit_used is 300
        """
        await _deliver(client, "orders/create", _order_payload())

        response = await _deliver(
            client,
            "orders/updated",
            _order_payload(
                financial_status="partially_paid",
                total_outstanding="300.00",
                updated_at="2024-03-01T11:00:00Z",
            ),
        )

        assert response.json()["payment_status"] == "partial"
        order = await _order(db_session)
        assert order.paid_amount == Decimal("200.00")
        assert order.credit_used == Decimal("300.00")
        assert order.remaining_balance == Decimal("300.00")
        await _assert_ledger_balanced(db_session, seeded["company_id"])

    async def test_paid_order_edited_to_partial(self, client, db_session, seeded):
        """Given a pending order of 500 that was paid
        When an edit raises the total to 600 with 100 outstanding
        Then the order is partial and the unpaid 100 counts against company credit
        """
        await _deliver(client, "orders/create", _order_payload())
        await _deliver(
            client, "orders/updated", _order_payload(financial_status="paid", updated_at="2024-03-01T11:00:00Z")
        )

        response = await _deliver(
            client,
            "orders/edited",
            _order_payload(
                financial_status="partially_paid",
                total_price="600.00",
                total_outstanding="100.00",
                updated_at="2024-03-01T12:00:00Z",
            ),
        )

        assert response.json()["payment_status"] == "partial"
        order = await _order(db_session)
        assert order.order_total == Decimal("600.00")
        assert order.paid_amount == Decimal("500.00")
        assert order.remaining_balance == Decimal("100.00")
        assert order.credit_used == Decimal("100.00")
        await _assert_ledger_balanced(db_session, seeded["company_id"])

    async def test_duplicate_create_is_unchanged(self, client, db_session, seeded):
        await _deliver(client, "orders/create", _order_payload())

        replay = await _deliver(client, "orders/create", _order_payload())

        assert replay.json()["action"] == "unchanged"
        assert len(await _transactions(db_session)) == 1

    async def test_stale_update_ignored(self, client, db_session, seeded):
        await _deliver(client, "orders/create", _order_payload(updated_at="2024-03-01T10:00:00Z"))

        response = await _deliver(
            client,
            "orders/updated",
            _order_payload(financial_status="paid", updated_at="2024-03-01T09:00:00Z"),
        )

        assert response.json()["action"] == "stale"
        order = await _order(db_session)
        assert order.payment_status.value == "pending"
        assert order.credit_used == Decimal("500.00")

    async def test_over_limit_order_is_booked_and_flagged(self, client, db_session, seeded):
        response = await _deliver(client, "orders/create", _order_payload(total_price="1500.00"))

        body = response.json()
        assert body["action"] == "created"
        assert body["flagged"] is True
        order = await _order(db_session)
        assert order.requires_review is True
        assert order.credit_used == Decimal("1500.00")


@pytest.mark.asyncio
class TestIgnoredWebhooks:
    async def test_unknown_shop(self, client, seeded):
        response = await _deliver(client, "orders/create", _order_payload(), shop="other.myshopify.com")

        assert response.status_code == 200
        assert response.json()["action"] == "ignored"

    async def test_customer_not_in_portal(self, client, db_session, seeded):
        response = await _deliver(client, "orders/create", _order_payload(customer={"id": 999}))

        assert response.json()["action"] == "ignored"
        assert await _transactions(db_session) == []

    async def test_pending_portal_user_ignored(self, client, seeded):
        response = await _deliver(client, "orders/create", _order_payload(customer={"id": 44}))

        assert response.json()["action"] == "ignored"

    async def test_update_for_unknown_order(self, client, seeded):
        response = await _deliver(client, "orders/updated", _order_payload(financial_status="paid"))

        assert response.json()["action"] == "ignored"

    async def test_unsupported_topic(self, client, seeded):
        response = await _deliver(client, "products/create", {"id": 1})

        assert response.status_code == 200
        assert response.json()["action"] == "ignored"
