"""RecordOrderPayment Use Case

Records money received against a portal order. A payment covering the
remaining balance settles the order; anything less leaves it partial with
the unpaid portion still counted as used credit.
"""

import logging
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.repositories.b2b_order_repository import B2BOrderRepository
from src.app.repositories.company_account_repository import CompanyAccountRepository
from src.app.repositories.credit_transaction_repository import CreditTransactionRepository
from src.app.repositories.portal_user_repository import PortalUserRepository
from src.domain.b2b_order import PaymentStatus
from src.domain.exceptions import LedgerWriteConflict
from src.domain.money import format_money, to_money
from .credit_applier import CreditApplier
from .credit_state import load_company_credit
from .dtos import OrderPaymentResponseDTO, OrderResponseDTO, RecordOrderPaymentCommandDTO

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 2


class RecordOrderPayment:
    """
    Use Case: Record a payment on a portal order

    Business Rules:
    1. Cancelled and fully paid orders accept no payments
    2. The amount may not exceed the remaining balance
    3. Paying the remaining balance finalizes the order (deduct); a smaller
       amount makes it partial and shrinks credit_used to the unpaid portion
    4. A write conflict from a concurrent writer is retried once
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

    async def execute(self, command: RecordOrderPaymentCommandDTO) -> Result[OrderPaymentResponseDTO]:
        for attempt in range(1, MAX_ATTEMPTS + 1):
            try:
                return await self._record(command)

            except LedgerWriteConflict as e:
                await self.uow.rollback()
                logger.warning(
                    f"Write conflict recording payment on order {command.order_id} (attempt {attempt}): {e}"
                )
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
                logger.error(f"Failed to record payment on order {command.order_id}: {e}")
                return Return.err(
                    Error(
                        code="RECORD_PAYMENT_FAILED",
                        message="Failed to process payment",
                        reason=str(e),
                    )
                )

    async def _record(self, command: RecordOrderPaymentCommandDTO) -> Result[OrderPaymentResponseDTO]:
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
                Error(code="ORDER_CANCELLED", message="Cannot process payment for cancelled order")
            )

        if order.payment_status == PaymentStatus.PAID:
            return Return.err(
                Error(code="ORDER_ALREADY_PAID", message="Order is already fully paid")
            )

        amount = to_money(command.amount)
        remaining = to_money(order.remaining_balance)
        if amount > remaining:
            return Return.err(
                Error(
                    code="PAYMENT_EXCEEDS_BALANCE",
                    message="Payment amount exceeds remaining balance",
                    reason=f"remaining_balance={remaining}, attempted_payment={amount}",
                )
            )

        recorded_by = command.recorded_by or order.created_by_user_id
        note = f"Payment of {format_money(amount)} received via {command.payment_method}"
        order.append_note(f"{note}: {command.notes}" if command.notes else note)

        if amount == remaining:
            applied = await self.applier.finalize(company, order, user, created_by=recorded_by)
            message = "Payment received - Order fully paid"
        else:
            applied = await self.applier.apply_partial_payment(
                company, order, user, order.order_total, remaining - amount, created_by=recorded_by
            )
            message = "Partial payment received"

        credit = await load_company_credit(company, self.order_repo)
        await self.uow.commit()

        logger.info(
            f"Payment {amount} ({command.payment_method}) recorded on order {order.id}; "
            f"status {order.payment_status.value}, remaining {order.remaining_balance}"
        )
        return Return.ok(
            OrderPaymentResponseDTO(
                order=OrderResponseDTO.from_entity(order),
                amount=amount,
                payment_method=command.payment_method,
                credit=credit,
                flagged=applied.flagged,
                message=message,
            )
        )
