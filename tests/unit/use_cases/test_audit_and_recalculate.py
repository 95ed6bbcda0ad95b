"""Unit tests for AuditCreditLedger and RecalculateCompanyCredit

Tests cover:
- Audit: balanced companies, discrepancy detection, failure handling
- Recalculate: order/user realignment and drift adjust entry
"""

import pytest
from decimal import Decimal
from unittest.mock import AsyncMock

from src.app.use_cases.credit.audit_credit_ledger import AuditCreditLedger
from src.app.use_cases.credit.recalculate_company_credit import RecalculateCompanyCredit
from src.domain.b2b_order import PaymentStatus
from src.domain.credit_transaction import TransactionType


@pytest.fixture
def audit_use_case(mock_company_repo, mock_order_repo, mock_transaction_repo):
    return AuditCreditLedger(mock_company_repo, mock_order_repo, mock_transaction_repo)


@pytest.fixture
def recalculate_use_case(mock_uow, mock_company_repo, mock_user_repo, mock_order_repo, mock_transaction_repo):
    return RecalculateCompanyCredit(
        mock_uow, mock_company_repo, mock_user_repo, mock_order_repo, mock_transaction_repo
    )


@pytest.mark.asyncio
class TestAuditCreditLedger:
    async def test_balanced_ledger(
        self, audit_use_case, mock_company_repo, mock_order_repo, mock_transaction_repo, make_company
    ):
        mock_company_repo.list_all = AsyncMock(return_value=[make_company(id="c1"), make_company(id="c2")])
        mock_order_repo.sum_outstanding = AsyncMock(return_value=Decimal("300.00"))
        mock_transaction_repo.get_replayed_balance = AsyncMock(return_value=Decimal("300.00"))

        result = await audit_use_case.execute()

        assert result.is_ok()
        assert result.value.total_companies_checked == 2
        assert result.value.discrepancies_found == 0

    async def test_discrepancy_detected(
        self, audit_use_case, mock_company_repo, mock_order_repo, mock_transaction_repo, make_company
    ):
        """Given a company whose replayed ledger says 250 but orders say 300
        When the audit runs
        Then a discrepancy of 50 is reported
        """
        # Arrange
        mock_company_repo.list_all = AsyncMock(return_value=[make_company(id="c1")])
        mock_order_repo.sum_outstanding = AsyncMock(return_value=Decimal("300.00"))
        mock_transaction_repo.get_replayed_balance = AsyncMock(return_value=Decimal("250.00"))

        # Act
        result = await audit_use_case.execute()

        # Assert
        discrepancy = result.value.discrepancies[0]
        assert result.value.discrepancies_found == 1
        assert discrepancy.company_id == "c1"
        assert discrepancy.discrepancy == Decimal("50.00")

    async def test_no_companies(self, audit_use_case):
        result = await audit_use_case.execute()

        assert result.value.total_companies_checked == 0

    async def test_failure(self, audit_use_case, mock_company_repo):
        mock_company_repo.list_all = AsyncMock(side_effect=Exception("Database error"))

        result = await audit_use_case.execute()

        assert result.error.code == "AUDIT_FAILED"


@pytest.mark.asyncio
class TestRecalculateCompanyCredit:
    async def test_realigns_orders_users_and_ledger(
        self,
        recalculate_use_case,
        mock_uow,
        mock_company_repo,
        mock_user_repo,
        mock_order_repo,
        mock_transaction_repo,
        make_company,
        make_user,
        make_order,
    ):
        """Given a pending order of 300 recorded with credit_used 0, a user at 0
        and a ledger replaying to 100
        When the company is recalculated
        Then the order and user carry 300 and an adjust of +200 fixes the ledger
        """
        # Arrange
        drifted = make_order("300.00", credit_used="0.00", id="o1")
        paid = make_order("200.00", remaining_balance="0.00", payment_status=PaymentStatus.PAID, id="o2")
        user = make_user(user_credit_used="0.00")
        mock_company_repo.get_by_id = AsyncMock(return_value=make_company())
        mock_order_repo.list_by_company = AsyncMock(return_value=([drifted, paid], 2))
        mock_order_repo.sum_outstanding = AsyncMock(return_value=Decimal("300.00"))
        mock_user_repo.list_by_company = AsyncMock(return_value=[user])
        mock_transaction_repo.get_replayed_balance = AsyncMock(return_value=Decimal("100.00"))

        # Act
        result = await recalculate_use_case.execute("company_1", requested_by="admin")

        # Assert
        assert result.is_ok()
        response = result.value
        assert response.orders_realigned == 1
        assert response.users_realigned == 1
        assert response.outstanding_order_count == 1
        assert response.adjustment_amount == Decimal("200.00")
        assert drifted.credit_used == Decimal("300.00")
        mock_order_repo.save.assert_awaited_once_with(drifted)
        mock_user_repo.update_credit_used.assert_awaited_once_with("user_1", Decimal("300.00"))
        entry = mock_transaction_repo.create.call_args[0][0]
        assert entry.transaction_type == TransactionType.ADJUST
        assert entry.credit_amount == Decimal("200.00")
        assert entry.previous_balance == Decimal("100.00")
        assert entry.new_balance == Decimal("300.00")
        mock_uow.commit.assert_awaited_once()

    async def test_consistent_company_writes_nothing(
        self,
        recalculate_use_case,
        mock_company_repo,
        mock_order_repo,
        mock_transaction_repo,
        make_company,
        make_order,
    ):
        order = make_order("300.00", credit_used="300.00")
        mock_company_repo.get_by_id = AsyncMock(return_value=make_company())
        mock_order_repo.list_by_company = AsyncMock(return_value=([order], 1))
        mock_order_repo.sum_outstanding = AsyncMock(return_value=Decimal("300.00"))
        mock_transaction_repo.get_replayed_balance = AsyncMock(return_value=Decimal("300.00"))

        result = await recalculate_use_case.execute("company_1")

        assert result.value.adjustment_amount == Decimal("0.00")
        mock_transaction_repo.create.assert_not_awaited()
        mock_order_repo.save.assert_not_awaited()

    async def test_unknown_company(self, recalculate_use_case):
        result = await recalculate_use_case.execute("missing")

        assert result.error.code == "COMPANY_NOT_FOUND"
