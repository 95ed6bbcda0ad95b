"""Integration tests for the SQLAlchemy repositories

Covers the contracts the adapters document: outstanding sums skip paid and
cancelled orders, ledger replay signs entries by type, duplicate inserts
surface as LedgerWriteConflict and store lookups ignore domain case.
"""

import pytest
from decimal import Decimal

from src.adapter.repositories.b2b_order_repository import SqlAlchemyB2BOrderRepository
from src.adapter.repositories.credit_transaction_repository import SqlAlchemyCreditTransactionRepository
from src.adapter.repositories.portal_user_repository import SqlAlchemyPortalUserRepository
from src.adapter.repositories.store_repository import SqlAlchemyStoreRepository
from src.domain import B2BOrder, CreditTransaction, OrderStatus, PaymentStatus, TransactionType
from src.domain.exceptions import LedgerWriteConflict


def _order(seeded, total, remaining, **kwargs):
    return B2BOrder(
        company_id=seeded["company_id"],
        created_by_user_id=seeded["buyer_id"],
        shop_id=seeded["shop_id"],
        order_total=Decimal(total),
        paid_amount=Decimal(total) - Decimal(remaining),
        remaining_balance=Decimal(remaining),
        credit_used=Decimal(remaining),
        **kwargs,
    )


def _entry(seeded, transaction_type, amount, key):
    return CreditTransaction(
        company_id=seeded["company_id"],
        transaction_type=transaction_type,
        credit_amount=Decimal(amount),
        previous_balance=Decimal("0.00"),
        new_balance=Decimal("0.00"),
        created_by="test",
        idempotency_key=key,
    )


@pytest.mark.asyncio
class TestB2BOrderRepository:
    async def test_sum_outstanding_skips_paid_and_cancelled(self, db_session, seeded):
        """Given a pending, a partial, a paid and a cancelled order
        When summing the company's outstanding balance
        Then only the pending and partial remaining balances count
        """
        # Arrange
        repo = SqlAlchemyB2BOrderRepository(db_session)
        pending = await repo.create(_order(seeded, "300.00", "300.00", order_status=OrderStatus.SUBMITTED))
        await repo.create(
            _order(seeded, "500.00", "200.00", payment_status=PaymentStatus.PARTIAL, order_status=OrderStatus.SHIPPED)
        )
        await repo.create(_order(seeded, "400.00", "0.00", payment_status=PaymentStatus.PAID))
        await repo.create(
            _order(
                seeded,
                "900.00",
                "900.00",
                payment_status=PaymentStatus.CANCELLED,
                order_status=OrderStatus.CANCELLED,
            )
        )

        # Act
        total = await repo.sum_outstanding(seeded["company_id"])
        without_pending = await repo.sum_outstanding(seeded["company_id"], exclude_order_id=pending.id)
        in_flight = await repo.sum_outstanding(
            seeded["company_id"], order_statuses=[OrderStatus.DRAFT, OrderStatus.SUBMITTED, OrderStatus.PROCESSING]
        )

        # Assert
        assert total == Decimal("500.00")
        assert without_pending == Decimal("200.00")
        assert in_flight == Decimal("300.00")
        assert len(await repo.list_outstanding(seeded["company_id"])) == 2

    async def test_sum_outstanding_without_orders_is_zero(self, db_session, seeded):
        repo = SqlAlchemyB2BOrderRepository(db_session)

        assert await repo.sum_outstanding(seeded["company_id"]) == Decimal("0.00")

    async def test_duplicate_shopify_order_conflicts(self, db_session, seeded):
        repo = SqlAlchemyB2BOrderRepository(db_session)
        await repo.create(_order(seeded, "100.00", "100.00", shopify_order_id="gid://shopify/Order/7"))

        with pytest.raises(LedgerWriteConflict):
            await repo.create(_order(seeded, "100.00", "100.00", shopify_order_id="gid://shopify/Order/7"))

    async def test_get_by_shopify_id(self, db_session, seeded):
        repo = SqlAlchemyB2BOrderRepository(db_session)
        order = await repo.create(_order(seeded, "100.00", "100.00", shopify_order_id="gid://shopify/Order/8"))

        found = await repo.get_by_shopify_id(seeded["shop_id"], "gid://shopify/Order/8", for_update=True)

        assert found.id == order.id
        assert await repo.get_by_shopify_id(seeded["shop_id"], "gid://shopify/Order/9") is None


@pytest.mark.asyncio
class TestCreditTransactionRepository:
    async def test_replayed_balance_signs_by_type(self, db_session, seeded):
        """Reserve and adjust add their amount; deduct, refund and restore subtract"""
        repo = SqlAlchemyCreditTransactionRepository(db_session)
        for transaction_type, amount, key in [
            (TransactionType.RESERVE, "500.00", "o1:reserve"),
            (TransactionType.RESERVE, "300.00", "o2:reserve"),
            (TransactionType.ADJUST, "-50.00", "adj-1"),
            (TransactionType.DEDUCT, "450.00", "o1:deduct"),
            (TransactionType.RESTORE, "100.00", "o2:restore"),
            (TransactionType.REFUND, "50.00", "o2:refund"),
        ]:
            await repo.create(_entry(seeded, transaction_type, amount, key))

        assert await repo.get_replayed_balance(seeded["company_id"]) == Decimal("150.00")

    async def test_empty_ledger_replays_to_zero(self, db_session, seeded):
        repo = SqlAlchemyCreditTransactionRepository(db_session)

        assert await repo.get_replayed_balance(seeded["company_id"]) == Decimal("0.00")

    async def test_duplicate_idempotency_key_conflicts(self, db_session, seeded):
        repo = SqlAlchemyCreditTransactionRepository(db_session)
        await repo.create(_entry(seeded, TransactionType.RESERVE, "10.00", "o1:reserve"))

        with pytest.raises(LedgerWriteConflict):
            await repo.create(_entry(seeded, TransactionType.RESERVE, "10.00", "o1:reserve"))

    async def test_history_is_paginated(self, db_session, seeded):
        repo = SqlAlchemyCreditTransactionRepository(db_session)
        for i in range(3):
            await repo.create(_entry(seeded, TransactionType.ADJUST, "1.00", f"adj-{i}"))

        page, total = await repo.get_by_company_id(seeded["company_id"], limit=2, offset=0)

        assert total == 3
        assert len(page) == 2
        assert await repo.get_by_idempotency_key("adj-1") is not None


@pytest.mark.asyncio
class TestPortalUserAndStoreRepositories:
    async def test_find_portal_user_requires_approval(self, db_session, seeded):
        repo = SqlAlchemyPortalUserRepository(db_session)

        buyer = await repo.find_portal_user(seeded["shop_id"], "gid://shopify/Customer/42")
        pending = await repo.find_portal_user(seeded["shop_id"], "gid://shopify/Customer/44")

        assert buyer.id == seeded["buyer_id"]
        assert pending is None

    async def test_update_credit_used_ignores_unknown_user(self, db_session, seeded):
        repo = SqlAlchemyPortalUserRepository(db_session)

        await repo.update_credit_used("missing", Decimal("10.00"))
        await repo.update_credit_used(seeded["buyer_id"], Decimal("25.00"))

        buyer = await repo.get_by_id(seeded["buyer_id"])
        assert buyer.user_credit_used == Decimal("25.00")

    async def test_store_domain_lookup_ignores_case(self, db_session, seeded):
        repo = SqlAlchemyStoreRepository(db_session)

        store = await repo.get_by_domain("  ACME-Wholesale.myshopify.com ")

        assert store.id == seeded["shop_id"]
