"""PlaceOrderWithCredit Use Case

Records a portal order and reserves its full amount against the company
(and user) credit limits in one unit of work.
"""

import logging
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.repositories.b2b_order_repository import B2BOrderRepository
from src.app.repositories.company_account_repository import CompanyAccountRepository
from src.app.repositories.credit_transaction_repository import CreditTransactionRepository
from src.app.repositories.portal_user_repository import PortalUserRepository
from src.domain.b2b_order import B2BOrder, OrderStatus, PaymentStatus
from src.domain.exceptions import InsufficientCredit, LedgerWriteConflict
from src.domain.money import ZERO, to_money
from .credit_applier import CreditApplier
from .dtos import OrderResponseDTO, PlaceOrderCommandDTO

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 2


class PlaceOrderWithCredit:
    """
    Use Case: Place a B2B order against credit

    Business Rules:
    1. Only active, APPROVED users belonging to a company may order
    2. The reservation is re-validated under the company lock; a rejection
       leaves no order and no transaction behind
    3. A write conflict from a concurrent writer is retried once

    Flow:
    1. Load user, lock company row
    2. Create order record (pending / submitted)
    3. Reserve order_total (raises InsufficientCredit when over limit)
    4. Commit
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
        self.applier = CreditApplier(order_repo, user_repo, transaction_repo)

    async def execute(self, command: PlaceOrderCommandDTO) -> Result[OrderResponseDTO]:
        for attempt in range(1, MAX_ATTEMPTS + 1):
            try:
                return await self._place(command)

            except InsufficientCredit as e:
                await self.uow.rollback()
                return Return.err(
                    Error(
                        code="INSUFFICIENT_CREDIT",
                        message=e.message,
                        reason=f"limiting_factor={e.limiting_factor}",
                    )
                )

            except LedgerWriteConflict as e:
                await self.uow.rollback()
                logger.warning(f"Write conflict placing order for user {command.user_id} (attempt {attempt}): {e}")
                if attempt == MAX_ATTEMPTS:
                    return Return.err(
                        Error(
                            code="LEDGER_WRITE_CONFLICT",
                            message="Concurrent credit update, please retry",
                            reason=str(e),
                        )
                    )

            except Exception as e:
                await self.uow.rollback()
                logger.error(f"Failed to place order for user {command.user_id}: {e}")
                return Return.err(
                    Error(
                        code="PLACE_ORDER_FAILED",
                        message="Failed to place order",
                        reason=str(e),
                    )
                )

    async def _place(self, command: PlaceOrderCommandDTO) -> Result[OrderResponseDTO]:
        # Step 1: Resolve user and lock the company row
        user = await self.user_repo.get_by_id(command.user_id)
        if not user or not user.can_order:
            return Return.err(
                Error(
                    code="USER_NOT_AUTHORIZED",
                    message="User is not authorized to place B2B orders",
                    reason=f"user_id={command.user_id}",
                )
            )

        company = await self.company_repo.get_by_id(user.company_id, for_update=True)
        if not company:
            return Return.err(
                Error(
                    code="COMPANY_NOT_FOUND",
                    message=f"Company {user.company_id} not found",
                )
            )
        user = await self.user_repo.get_by_id(user.id, for_update=True)

        # Step 2: Record the order
        order_total = to_money(command.order_total)
        order = B2BOrder(
            company_id=company.id,
            created_by_user_id=user.id,
            shop_id=user.shop_id,
            shopify_order_id=command.shopify_order_id,
            order_total=order_total,
            paid_amount=ZERO,
            credit_used=ZERO,
            remaining_balance=order_total,
            payment_status=PaymentStatus.PENDING,
            order_status=OrderStatus.SUBMITTED,
            notes=command.notes,
        )
        order = await self.order_repo.create(order)

        # Step 3: Reserve credit, re-validated under the lock
        await self.applier.reserve(company, order, user, order_total, created_by=user.email)

        # Step 4: Commit
        await self.uow.commit()

        logger.info(f"Order {order.id} placed by user {user.id} for company {company.id}: {order_total}")
        return Return.ok(OrderResponseDTO.from_entity(order))
