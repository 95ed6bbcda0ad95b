"""Unit tests for RecordOrderPayment use case

Tests cover:
- Partial payment shrinks credit_used to the unpaid portion
- Paying the remaining balance settles the order
- Overpayment, paid and cancelled orders are refused
"""

import pytest
from decimal import Decimal
from unittest.mock import AsyncMock

from src.app.use_cases.credit.dtos import RecordOrderPaymentCommandDTO
from src.app.use_cases.credit.record_order_payment import RecordOrderPayment
from src.domain.b2b_order import OrderStatus, PaymentStatus
from src.domain.credit_transaction import TransactionType


@pytest.fixture
def payment_use_case(mock_uow, mock_company_repo, mock_user_repo, mock_order_repo, mock_transaction_repo):
    return RecordOrderPayment(
        uow=mock_uow,
        company_repo=mock_company_repo,
        user_repo=mock_user_repo,
        order_repo=mock_order_repo,
        transaction_repo=mock_transaction_repo,
    )


@pytest.fixture
def reserved_order(mock_company_repo, mock_user_repo, mock_order_repo, make_company, make_user, make_order):
    """A pending portal order of 500 with 500 reserved"""
    company = make_company("1000.00")
    user = make_user(user_credit_used="500.00")
    order = make_order("500.00", credit_used="500.00", shopify_order_id=None)
    mock_company_repo.get_by_id = AsyncMock(return_value=company)
    mock_user_repo.get_by_id = AsyncMock(return_value=user)
    mock_order_repo.get_by_id = AsyncMock(return_value=order)
    return company, user, order


def _payment(amount, **kwargs):
    return RecordOrderPaymentCommandDTO(order_id="order_1", amount=Decimal(amount), **kwargs)


@pytest.mark.asyncio
class TestRecordOrderPayment:
    async def test_partial_payment(self, payment_use_case, mock_uow, mock_transaction_repo, reserved_order):
        """Given a pending order of 500 with 500 reserved
        When 200 is paid by bank transfer
        Then the order is partial with 300 still used as credit
        """
        # Arrange
        _, user, order = reserved_order

        # Act
        result = await payment_use_case.execute(_payment("200.00", payment_method="bank_transfer"))

        # Assert
        assert result.is_ok()
        assert result.value.message == "Partial payment received"
        assert result.value.order.payment_status == "partial"
        assert order.paid_amount == Decimal("200.00")
        assert order.remaining_balance == Decimal("300.00")
        assert order.credit_used == Decimal("300.00")
        assert user.user_credit_used == Decimal("300.00")
        assert "Payment of $200.00 received via bank_transfer" in order.notes
        entry = mock_transaction_repo.create.call_args[0][0]
        assert entry.transaction_type == TransactionType.ADJUST
        assert entry.credit_amount == Decimal("-200.00")
        mock_uow.commit.assert_awaited_once()

    async def test_remaining_balance_settles_order(
        self, payment_use_case, mock_transaction_repo, reserved_order
    ):
        _, user, order = reserved_order
        order.payment_status = PaymentStatus.PARTIAL
        order.paid_amount = Decimal("200.00")
        order.remaining_balance = Decimal("300.00")
        order.credit_used = Decimal("300.00")
        user.user_credit_used = Decimal("300.00")

        result = await payment_use_case.execute(_payment("300.00", recorded_by="ap@acme.test"))

        assert result.value.message == "Payment received - Order fully paid"
        assert order.payment_status == PaymentStatus.PAID
        assert order.paid_amount == Decimal("500.00")
        assert order.remaining_balance == Decimal("0.00")
        assert order.credit_used == Decimal("0.00")
        assert order.paid_at is not None
        entry = mock_transaction_repo.create.call_args[0][0]
        assert entry.transaction_type == TransactionType.DEDUCT
        assert entry.credit_amount == Decimal("300.00")
        assert entry.created_by == "ap@acme.test"

    async def test_payment_above_remaining_balance(
        self, payment_use_case, mock_uow, mock_transaction_repo, reserved_order
    ):
        _, _, order = reserved_order

        result = await payment_use_case.execute(_payment("500.01"))

        assert result.is_err()
        assert result.error.code == "PAYMENT_EXCEEDS_BALANCE"
        assert order.credit_used == Decimal("500.00")
        mock_transaction_repo.create.assert_not_awaited()
        mock_uow.commit.assert_not_awaited()

    async def test_paid_order_refused(self, payment_use_case, reserved_order):
        _, _, order = reserved_order
        order.payment_status = PaymentStatus.PAID

        result = await payment_use_case.execute(_payment("10.00"))

        assert result.error.code == "ORDER_ALREADY_PAID"

    async def test_cancelled_order_refused(self, payment_use_case, reserved_order):
        _, _, order = reserved_order
        order.order_status = OrderStatus.CANCELLED

        result = await payment_use_case.execute(_payment("10.00"))

        assert result.error.code == "ORDER_CANCELLED"

    async def test_order_not_found(self, payment_use_case, mock_order_repo):
        mock_order_repo.get_by_id = AsyncMock(return_value=None)

        result = await payment_use_case.execute(_payment("10.00"))

        assert result.error.code == "ORDER_NOT_FOUND"
