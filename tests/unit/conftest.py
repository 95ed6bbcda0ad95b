import pytest
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

from src.domain.b2b_order import B2BOrder, OrderStatus, PaymentStatus
from src.domain.company_account import CompanyAccount
from src.domain.portal_user import PortalUser, UserStatus


@pytest.fixture
def mock_uow():
    """Mock unit of work"""
    uow = MagicMock()
    uow.__aenter__ = AsyncMock(return_value=uow)
    uow.__aexit__ = AsyncMock()
    uow.commit = AsyncMock()
    uow.rollback = AsyncMock()
    return uow


@pytest.fixture
def make_company():
    def _make(credit_limit="1000.00", **kwargs):
        return CompanyAccount(
            id=kwargs.pop("id", "company_1"),
            shop_id=kwargs.pop("shop_id", "shop_1"),
            name=kwargs.pop("name", "Acme Wholesale"),
            credit_limit=Decimal(credit_limit),
            **kwargs,
        )

    return _make


@pytest.fixture
def make_user():
    def _make(user_credit_limit=None, user_credit_used="0.00", **kwargs):
        return PortalUser(
            id=kwargs.pop("id", "user_1"),
            shop_id=kwargs.pop("shop_id", "shop_1"),
            company_id=kwargs.pop("company_id", "company_1"),
            shopify_customer_id=kwargs.pop("shopify_customer_id", "gid://shopify/Customer/42"),
            email=kwargs.pop("email", "buyer@acme.test"),
            status=kwargs.pop("status", UserStatus.APPROVED),
            user_credit_limit=Decimal(user_credit_limit) if user_credit_limit is not None else None,
            user_credit_used=Decimal(user_credit_used),
            **kwargs,
        )

    return _make


@pytest.fixture
def make_order():
    def _make(order_total="500.00", credit_used="0.00", remaining_balance=None, paid_amount="0.00", **kwargs):
        total = Decimal(order_total)
        return B2BOrder(
            id=kwargs.pop("id", "order_1"),
            company_id=kwargs.pop("company_id", "company_1"),
            created_by_user_id=kwargs.pop("created_by_user_id", "user_1"),
            shop_id=kwargs.pop("shop_id", "shop_1"),
            shopify_order_id=kwargs.pop("shopify_order_id", "gid://shopify/Order/1001"),
            order_total=total,
            paid_amount=Decimal(paid_amount),
            credit_used=Decimal(credit_used),
            remaining_balance=Decimal(remaining_balance) if remaining_balance is not None else total,
            payment_status=kwargs.pop("payment_status", PaymentStatus.PENDING),
            order_status=kwargs.pop("order_status", OrderStatus.SUBMITTED),
            **kwargs,
        )

    return _make


@pytest.fixture
def mock_order_repo():
    """Order repository with no other outstanding orders"""
    repo = MagicMock()
    repo.sum_outstanding = AsyncMock(return_value=Decimal("0.00"))
    repo.save = AsyncMock(side_effect=lambda order: order)
    repo.create = AsyncMock(side_effect=lambda order: order)
    repo.get_by_id = AsyncMock(return_value=None)
    repo.get_by_shopify_id = AsyncMock(return_value=None)
    repo.list_outstanding = AsyncMock(return_value=[])
    repo.list_by_company = AsyncMock(return_value=([], 0))
    return repo


@pytest.fixture
def mock_user_repo():
    repo = MagicMock()
    repo.get_by_id = AsyncMock(return_value=None)
    repo.find_portal_user = AsyncMock(return_value=None)
    repo.update_credit_used = AsyncMock()
    repo.update_credit_limit = AsyncMock()
    repo.list_by_company = AsyncMock(return_value=[])
    return repo


@pytest.fixture
def mock_transaction_repo():
    """Transaction repository with an empty ledger"""
    repo = MagicMock()
    repo.get_by_idempotency_key = AsyncMock(return_value=None)
    repo.create = AsyncMock(side_effect=lambda transaction: transaction)
    repo.get_by_company_id = AsyncMock(return_value=([], 0))
    repo.get_replayed_balance = AsyncMock(return_value=Decimal("0.00"))
    return repo


@pytest.fixture
def mock_company_repo():
    repo = MagicMock()
    repo.get_by_id = AsyncMock(return_value=None)
    repo.list_all = AsyncMock(return_value=[])
    repo.update_credit_limit = AsyncMock()
    return repo
