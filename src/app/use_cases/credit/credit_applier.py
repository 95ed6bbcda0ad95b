"""Credit Transaction Applier

Mutates order credit fields, user usage and the transaction ledger together.
Every method runs inside the caller's unit of work, expects the company row
(then the order row) to be locked already, flushes and never commits.

Transitions are derived from the stored order state versus the requested
state, so replaying the same webhook produces no further change.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional
from src.app.repositories.b2b_order_repository import B2BOrderRepository
from src.app.repositories.credit_transaction_repository import CreditTransactionRepository
from src.app.repositories.portal_user_repository import PortalUserRepository
from src.domain.b2b_order import B2BOrder, PaymentStatus
from src.domain.company_account import CompanyAccount
from src.domain.credit_transaction import CreditTransaction, TransactionType
from src.domain.exceptions import InsufficientCredit
from src.domain.money import ZERO, format_money, to_money
from src.domain.portal_user import PortalUser
from .credit_state import load_company_credit, user_credit_info
from .dtos import CreditDecisionDTO
from .evaluate_credit import evaluate_credit

logger = logging.getLogger(__name__)

SYSTEM_ACTOR = "system"


@dataclass
class ApplyOutcome:
    """Result of one applier call"""
    transaction: Optional[CreditTransaction] = None
    decision: Optional[CreditDecisionDTO] = None
    flagged: bool = False
    company_available_credit: Optional[Decimal] = None

    @property
    def changed_ledger(self) -> bool:
        return self.transaction is not None


class CreditApplier:
    """
    Applies reserve / finalize / refund / restore / partial payment / amount sync

    Business Rules:
    1. order.credit_used always equals the order's exposure after a call
    2. reserve, deduct, refund and restore are written at most once per order
       (idempotency key "<order_id>:<type>"); later movements become adjust
    3. Every exposure change is mirrored in the user's user_credit_used
    4. Transaction balances are the company's used credit around the entry
    """

    def __init__(
        self,
        order_repo: B2BOrderRepository,
        user_repo: PortalUserRepository,
        transaction_repo: CreditTransactionRepository,
    ):
        self.order_repo = order_repo
        self.user_repo = user_repo
        self.transaction_repo = transaction_repo

    async def reserve(
        self,
        company: CompanyAccount,
        order: B2BOrder,
        user: Optional[PortalUser],
        amount: Decimal,
        created_by: str = SYSTEM_ACTOR,
        allow_over_limit: bool = False,
    ) -> ApplyOutcome:
        """
        Reserve credit for an order's unpaid amount

        Re-validates against freshly read state. With allow_over_limit (the
        order already exists upstream) a rejected reservation is still booked
        and the order flagged for review.

        Raises:
            InsufficientCredit: If the evaluator rejects and allow_over_limit is False
            ValueError: If amount is negative or exceeds the order total
        """
        amount = to_money(amount)
        if amount < 0 or amount > to_money(order.order_total):
            raise ValueError(f"Reserve amount {amount} outside [0, {order.order_total}]")

        existing = await self.transaction_repo.get_by_idempotency_key(
            CreditTransaction.order_key(order.id, TransactionType.RESERVE)
        )
        if existing:
            logger.info(f"Credit already reserved for order {order.id}; skipping")
            return ApplyOutcome()

        company_state = await load_company_credit(company, self.order_repo, exclude_order_id=order.id)
        user_state = user_credit_info(user, exclude_amount=order.credit_used) if user else None
        decision = evaluate_credit(company_state, user_state, amount)

        if not decision.admit and not allow_over_limit:
            raise InsufficientCredit(decision.message, decision.limiting_factor)

        order.remaining_balance = amount
        order.paid_amount = to_money(order.order_total) - amount

        transaction = await self._move_exposure(
            company, order, user, order.exposure, TransactionType.RESERVE, created_by,
            notes=f"Credit reserved for order {order.shopify_order_id or order.id}",
        )

        flagged = False
        if not decision.admit:
            flagged = True
            order.requires_review = True
            order.append_note(f"Credit limit exceeded at reservation: {decision.message}. Requires manual review.")
            logger.warning(
                f"Order {order.id} reserved over limit for company {company.id}: {decision.message}"
            )

        await self.order_repo.save(order)
        return ApplyOutcome(transaction=transaction, decision=decision, flagged=flagged)

    async def finalize(
        self,
        company: CompanyAccount,
        order: B2BOrder,
        user: Optional[PortalUser],
        created_by: str = SYSTEM_ACTOR,
    ) -> ApplyOutcome:
        """
        Settle an order's reservation once payment is confirmed

        A post-hoc validation failure never blocks the payment: the order is
        marked paid and flagged for manual review.
        """
        if order.payment_status == PaymentStatus.PAID:
            logger.info(f"Order {order.id} already paid; finalize is a no-op")
            return ApplyOutcome()

        company_state = await load_company_credit(company, self.order_repo, exclude_order_id=order.id)
        user_state = user_credit_info(user, exclude_amount=order.credit_used) if user else None
        decision = evaluate_credit(company_state, user_state, order.credit_used)

        order_total = to_money(order.order_total)
        order.payment_status = PaymentStatus.PAID
        order.paid_amount = order_total
        order.remaining_balance = ZERO
        order.paid_at = order.paid_at or datetime.utcnow()

        transaction = await self._move_exposure(
            company, order, user, ZERO, TransactionType.DEDUCT, created_by,
            notes=f"Payment received for order {order.shopify_order_id or order.id}",
        )

        flagged = False
        if not decision.admit:
            flagged = True
            order.requires_review = True
            order.append_note(
                f"Post-payment credit validation failed: {decision.message}. Requires manual review."
            )
            logger.warning(f"Post-payment credit validation failed for order {order.id}: {decision.message}")

        await self.order_repo.save(order)
        return ApplyOutcome(transaction=transaction, decision=decision, flagged=flagged)

    async def refund(
        self,
        company: CompanyAccount,
        order: B2BOrder,
        user: Optional[PortalUser],
        amount: Decimal,
        reason: str,
        created_by: str = SYSTEM_ACTOR,
    ) -> ApplyOutcome:
        """
        Release reserved credit after a refunded or voided payment

        Releases at most the recorded credit_used. No-op when nothing is reserved.
        """
        if order.credit_used <= 0:
            logger.info(f"No reserved credit on order {order.id}; refund ({reason}) skipped")
            return ApplyOutcome()

        release = min(to_money(amount), to_money(order.credit_used))
        transaction = await self._move_exposure(
            company, order, user, to_money(order.credit_used) - release, TransactionType.REFUND, created_by,
            notes=f"Credit refunded for order {order.shopify_order_id or order.id}: {reason}",
        )
        await self.order_repo.save(order)
        return ApplyOutcome(transaction=transaction)

    async def restore(
        self,
        company: CompanyAccount,
        order: B2BOrder,
        user: Optional[PortalUser],
        reason_code: str,
        expected_amount: Optional[Decimal] = None,
        created_by: str = SYSTEM_ACTOR,
    ) -> ApplyOutcome:
        """
        Return exactly the credit recorded on the order

        The amount always comes from order.credit_used; a payload-derived
        expected_amount is only compared and logged.
        """
        recorded = to_money(order.credit_used)
        if expected_amount is not None and to_money(expected_amount) != recorded:
            logger.warning(
                f"Restore for order {order.id} uses recorded credit {recorded}, "
                f"not caller amount {to_money(expected_amount)}"
            )

        if recorded <= 0:
            logger.info(f"No reserved credit on order {order.id}; restore ({reason_code}) skipped")
            return ApplyOutcome()

        transaction = await self._move_exposure(
            company, order, user, ZERO, TransactionType.RESTORE, created_by,
            notes=f"Credit restored for order {order.shopify_order_id or order.id}: {reason_code}",
        )
        await self.order_repo.save(order)
        return ApplyOutcome(transaction=transaction)

    async def apply_partial_payment(
        self,
        company: CompanyAccount,
        order: B2BOrder,
        user: Optional[PortalUser],
        order_total: Decimal,
        outstanding: Decimal,
        created_by: str = SYSTEM_ACTOR,
    ) -> ApplyOutcome:
        """
        Redefine credit_used as the unpaid portion of a partially paid order

        Returns the company's available credit recomputed from the aggregate,
        since a partial payment changes the whole company's exposure.
        """
        order_total = to_money(order_total)
        outstanding = min(max(to_money(outstanding), ZERO), order_total)

        order.order_total = order_total
        order.paid_amount = order_total - outstanding
        order.remaining_balance = outstanding
        order.payment_status = PaymentStatus.PARTIAL

        transaction = await self._move_exposure(
            company, order, user, order.exposure, TransactionType.ADJUST, created_by,
            notes=(
                f"Partial payment on order {order.shopify_order_id or order.id}: "
                f"paid {format_money(order.paid_amount)} of {format_money(order_total)}"
            ),
        )
        await self.order_repo.save(order)

        company_state = await load_company_credit(company, self.order_repo)
        return ApplyOutcome(transaction=transaction, company_available_credit=company_state.available_credit)

    async def sync_amounts(
        self,
        company: CompanyAccount,
        order: B2BOrder,
        user: Optional[PortalUser],
        order_total: Decimal,
        paid_amount: Decimal,
        created_by: str = SYSTEM_ACTOR,
    ) -> ApplyOutcome:
        """
        Keep totals current without a payment transition

        Writes an adjust entry only when the order's exposure actually moved.
        """
        order_total = to_money(order_total)
        paid_amount = min(max(to_money(paid_amount), ZERO), order_total)

        order.order_total = order_total
        order.paid_amount = paid_amount
        order.remaining_balance = order_total - paid_amount

        transaction = await self._move_exposure(
            company, order, user, order.exposure, TransactionType.ADJUST, created_by,
            notes=f"Order {order.shopify_order_id or order.id} amounts updated to {format_money(order_total)}",
        )
        await self.order_repo.save(order)
        return ApplyOutcome(transaction=transaction)

    async def _move_exposure(
        self,
        company: CompanyAccount,
        order: B2BOrder,
        user: Optional[PortalUser],
        new_exposure: Decimal,
        transaction_type: TransactionType,
        created_by: str,
        notes: str,
    ) -> Optional[CreditTransaction]:
        old_exposure = to_money(order.credit_used)
        new_exposure = to_money(new_exposure)
        delta = new_exposure - old_exposure

        if transaction_type.is_one_shot:
            wrong_direction = delta * transaction_type.direction < 0
            key_taken = await self.transaction_repo.get_by_idempotency_key(
                CreditTransaction.order_key(order.id, transaction_type)
            )
            if wrong_direction or key_taken:
                transaction_type = TransactionType.ADJUST

        order.credit_used = new_exposure

        if delta == 0:
            return None

        if user is not None:
            user_used = max(to_money(user.user_credit_used) + delta, ZERO)
            user.user_credit_used = user_used
            await self.user_repo.update_credit_used(user.id, user_used)

        others = await self.order_repo.sum_outstanding(company.id, exclude_order_id=order.id)
        transaction = CreditTransaction(
            company_id=company.id,
            user_id=order.created_by_user_id,
            order_id=order.id,
            transaction_type=transaction_type,
            credit_amount=delta if transaction_type == TransactionType.ADJUST else abs(delta),
            previous_balance=others + old_exposure,
            new_balance=others + new_exposure,
            notes=notes,
            created_by=created_by,
            idempotency_key=CreditTransaction.order_key(order.id, transaction_type),
        )
        created = await self.transaction_repo.create(transaction)
        logger.info(
            f"Credit {transaction_type.value} for company {company.id} order {order.id}: "
            f"{created.previous_balance} -> {created.new_balance}"
        )
        return created
