"""RecalculateCompanyCredit Use Case

Repairs a company's derived credit state from its order balances: realigns
each order's credit_used with its exposure, each user's usage with their
orders, and books the remaining ledger drift as an adjust entry.
"""

import logging
from collections import defaultdict
from decimal import Decimal
from typing import Dict, List
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.repositories.b2b_order_repository import B2BOrderRepository
from src.app.repositories.company_account_repository import CompanyAccountRepository
from src.app.repositories.credit_transaction_repository import CreditTransactionRepository
from src.app.repositories.portal_user_repository import PortalUserRepository
from src.domain.b2b_order import B2BOrder
from src.domain.credit_transaction import CreditTransaction, TransactionType
from src.domain.money import ZERO, format_money, to_money
from .dtos import RecalculationResultDTO

logger = logging.getLogger(__name__)

PAGE_SIZE = 200


class RecalculateCompanyCredit:
    """
    Use Case: Recalculate a company's credit usage

    Flow:
    1. Lock company row
    2. Realign order.credit_used with each order's exposure
    3. Realign user_credit_used with the exposure of the user's orders
    4. Write an adjust entry for replay drift so the ledger reproduces usage
    5. Commit
    """

    def __init__(
        self,
        uow: UnitOfWork,
        company_repo: CompanyAccountRepository,
        user_repo: PortalUserRepository,
        order_repo: B2BOrderRepository,
        transaction_repo: CreditTransactionRepository,
    ):
        self.uow = uow
        self.company_repo = company_repo
        self.user_repo = user_repo
        self.order_repo = order_repo
        self.transaction_repo = transaction_repo

    async def execute(self, company_id: str, requested_by: str = "system") -> Result[RecalculationResultDTO]:
        try:
            # Step 1: Lock company
            company = await self.company_repo.get_by_id(company_id, for_update=True)
            if not company:
                return Return.err(Error(code="COMPANY_NOT_FOUND", message=f"Company {company_id} not found"))

            # Step 2: Orders
            orders = await self._all_orders(company.id)
            orders_realigned = 0
            exposure_by_user: Dict[str, Decimal] = defaultdict(lambda: ZERO)

            for order in orders:
                exposure = to_money(order.exposure)
                exposure_by_user[order.created_by_user_id] += exposure
                if to_money(order.credit_used) != exposure:
                    logger.warning(
                        f"Order {order.id} credit_used {order.credit_used} realigned to exposure {exposure}"
                    )
                    order.credit_used = exposure
                    await self.order_repo.save(order)
                    orders_realigned += 1

            # Step 3: Users
            users_realigned = 0
            for user in await self.user_repo.list_by_company(company.id):
                expected = exposure_by_user.get(user.id, ZERO)
                if to_money(user.user_credit_used) != expected:
                    logger.warning(f"User {user.id} credit usage {user.user_credit_used} realigned to {expected}")
                    await self.user_repo.update_credit_used(user.id, expected)
                    users_realigned += 1

            # Step 4: Ledger drift
            used_credit = await self.order_repo.sum_outstanding(company.id)
            replayed = await self.transaction_repo.get_replayed_balance(company.id)
            drift = used_credit - replayed

            if drift != 0:
                await self.transaction_repo.create(
                    CreditTransaction(
                        company_id=company.id,
                        transaction_type=TransactionType.ADJUST,
                        credit_amount=drift,
                        previous_balance=replayed,
                        new_balance=used_credit,
                        notes=f"Credit recalculation: ledger drift of {format_money(drift)} corrected",
                        created_by=requested_by,
                        idempotency_key=CreditTransaction.order_key(
                            f"recalc-{company.id}", TransactionType.ADJUST
                        ),
                    )
                )

            # Step 5: Commit
            await self.uow.commit()

            outstanding = sum(1 for order in orders if order.counts_toward_usage)
            message = (
                f"Recalculated {company.name}: used credit {format_money(used_credit)}, "
                f"{orders_realigned} orders and {users_realigned} users realigned"
            )
            logger.info(message)

            return Return.ok(
                RecalculationResultDTO(
                    company_id=company.id,
                    used_credit=used_credit,
                    replayed_balance_before=replayed,
                    outstanding_order_count=outstanding,
                    orders_realigned=orders_realigned,
                    users_realigned=users_realigned,
                    adjustment_amount=drift,
                    message=message,
                )
            )

        except Exception as e:
            await self.uow.rollback()
            return Return.err(
                Error(
                    code="RECALCULATION_FAILED",
                    message="Failed to recalculate company credit",
                    reason=str(e),
                )
            )

    async def _all_orders(self, company_id: str) -> List[B2BOrder]:
        orders: List[B2BOrder] = []
        offset = 0
        while True:
            page, total = await self.order_repo.list_by_company(company_id, limit=PAGE_SIZE, offset=offset)
            orders.extend(page)
            offset += len(page)
            if not page or offset >= total:
                return orders
