"""CancelOrder Use Case

Cancels a portal order and returns the credit it still holds.
"""

import logging
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.repositories.b2b_order_repository import B2BOrderRepository
from src.app.repositories.company_account_repository import CompanyAccountRepository
from src.app.repositories.credit_transaction_repository import CreditTransactionRepository
from src.app.repositories.portal_user_repository import PortalUserRepository
from src.domain.b2b_order import OrderStatus, PaymentStatus
from src.domain.exceptions import LedgerWriteConflict
from src.domain.money import ZERO, format_money, to_money
from .credit_applier import CreditApplier
from .credit_state import load_company_credit
from .dtos import CancelOrderCommandDTO, CancelOrderResponseDTO, OrderResponseDTO

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 2

NON_CANCELLABLE_STATUSES = (OrderStatus.SHIPPED, OrderStatus.DELIVERED)


class CancelOrder:
    """
    Use Case: Cancel a portal order

    Business Rules:
    1. Cancelled orders cannot be cancelled again
    2. Shipped or delivered orders cannot be cancelled
    3. The recorded credit_used is restored (never a caller-supplied amount);
       paid orders hold none, so nothing is written for them
    4. A paid order keeps its payment status; anything else becomes cancelled
    5. A write conflict from a concurrent writer is retried once

    Lock order: company row, then order row, then user row.
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

    async def execute(self, command: CancelOrderCommandDTO) -> Result[CancelOrderResponseDTO]:
        for attempt in range(1, MAX_ATTEMPTS + 1):
            try:
                return await self._cancel(command)

            except LedgerWriteConflict as e:
                await self.uow.rollback()
                logger.warning(f"Write conflict cancelling order {command.order_id} (attempt {attempt}): {e}")
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
                logger.error(f"Failed to cancel order {command.order_id}: {e}")
                return Return.err(
                    Error(
                        code="CANCEL_ORDER_FAILED",
                        message="Failed to cancel order",
                        reason=str(e),
                    )
                )

    async def _cancel(self, command: CancelOrderCommandDTO) -> Result[CancelOrderResponseDTO]:
        order = await self.order_repo.get_by_id(command.order_id)
        if not order:
            return Return.err(
                Error(code="ORDER_NOT_FOUND", message=f"Order {command.order_id} not found")
            )

        company = await self.company_repo.get_by_id(order.company_id, for_update=True)
        if not company:
            return Return.err(
                Error(code="COMPANY_NOT_FOUND", message=f"Company {order.company_id} not found")
            )
        order = await self.order_repo.get_by_id(command.order_id, for_update=True)
        user = await self.user_repo.get_by_id(order.created_by_user_id, for_update=True)

        if order.is_cancelled:
            return Return.err(
                Error(
                    code="ORDER_ALREADY_CANCELLED",
                    message="Order is already cancelled",
                    reason=f"order_id={order.id}",
                )
            )

        if order.order_status in NON_CANCELLABLE_STATUSES:
            return Return.err(
                Error(
                    code="ORDER_NOT_CANCELLABLE",
                    message=f"Cannot cancel order with status: {order.order_status.value}",
                    reason=f"order_status={order.order_status.value}",
                )
            )

        cancelled_by = command.cancelled_by or order.created_by_user_id
        restored = to_money(order.credit_used)

        order.order_status = OrderStatus.CANCELLED
        if order.payment_status != PaymentStatus.PAID:
            order.payment_status = PaymentStatus.CANCELLED
        if command.reason:
            order.append_note(f"Cancelled by {cancelled_by}: {command.reason}")

        applied = await self.applier.restore(
            company, order, user, reason_code="cancelled", created_by=cancelled_by
        )
        if not applied.changed_ledger:
            restored = ZERO
            await self.order_repo.save(order)

        credit = await load_company_credit(company, self.order_repo)
        await self.uow.commit()

        if restored > 0:
            message = f"Order cancelled successfully. Credit of {format_money(restored)} restored."
        else:
            message = "Order cancelled successfully"
        logger.info(f"Order {order.id} cancelled by {cancelled_by} for company {company.id}; restored {restored}")

        return Return.ok(
            CancelOrderResponseDTO(
                order=OrderResponseDTO.from_entity(order),
                credit_restored=restored,
                credit=credit,
                message=message,
            )
        )
