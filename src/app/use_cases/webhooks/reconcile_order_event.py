"""ReconcileOrderEvent Use Case

Applies one Shopify order webhook to the local order record and the credit
ledger. Deliveries may arrive duplicated, out of order or after a partial
failure; every transition is derived from the stored order state, so a
replayed delivery changes nothing.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple
from libs.result import Result, Return, Error
from src.app.services.notification_service import ReviewNotificationService
from src.app.services.order_snapshot_provider import OrderSnapshotProvider
from src.app.services.unit_of_work import UnitOfWork
from src.app.repositories.b2b_order_repository import B2BOrderRepository
from src.app.repositories.company_account_repository import CompanyAccountRepository
from src.app.repositories.credit_transaction_repository import CreditTransactionRepository
from src.app.repositories.portal_user_repository import PortalUserRepository
from src.app.repositories.store_repository import StoreRepository
from src.app.use_cases.credit.credit_applier import ApplyOutcome, CreditApplier
from src.domain.b2b_order import B2BOrder, OrderStatus, PaymentStatus
from src.domain.company_account import CompanyAccount
from src.domain.exceptions import LedgerWriteConflict, MalformedPayload
from src.domain.money import ZERO, to_money
from src.domain.portal_user import PortalUser
from src.domain.store import Store
from .dtos import OrderWebhookCommandDTO, WebhookOutcomeDTO
from .order_event import OrderEvent, WebhookTopic, parse_order_event

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 2
WEBHOOK_ACTOR = "shopify-webhook"


@dataclass
class _Applied:
    """Outcome of one transition attempt, before commit"""
    outcome: WebhookOutcomeDTO
    order: Optional[B2BOrder] = None
    review_reason: Optional[str] = None


class ReconcileOrderEvent:
    """
    Use Case: Reconcile an order webhook with the credit ledger

    Business Rules:
    1. Creation: only orders of active, APPROVED users in a company are
       tracked; the unpaid amount is reserved even when over limit (the order
       already exists upstream) and the order is flagged for review
    2. Updates for unknown orders are ignored; stale events are ignored
    3. Cancelled orders are terminal
    4. Transition table (stored -> new):
       - order cancelled          -> restore the recorded credit_used
       - payment refunded/voided  -> refund the recorded credit_used
       - pending/partial -> paid  -> finalize (post-hoc validation may flag)
       - any -> partial           -> unpaid portion becomes credit_used
       - paid -> pending          -> ignored; paid only re-opens through partial
       - otherwise                -> sync totals; adjust only if exposure moved
    5. Failure containment: a write conflict is retried once and then
       reported (the HTTP edge answers 503 so Shopify redelivers); any other
       error is rolled back, then the event's statuses and totals are written
       with a note and the review flag, leaving the ledger to recalculation

    Lock order: company row, then order row, then user row.
    """

    def __init__(
        self,
        uow: UnitOfWork,
        store_repo: StoreRepository,
        company_repo: CompanyAccountRepository,
        user_repo: PortalUserRepository,
        order_repo: B2BOrderRepository,
        transaction_repo: CreditTransactionRepository,
        notifier: Optional[ReviewNotificationService] = None,
        snapshot_provider: Optional[OrderSnapshotProvider] = None,
    ):
        self.uow = uow
        self.store_repo = store_repo
        self.company_repo = company_repo
        self.user_repo = user_repo
        self.order_repo = order_repo
        self.transaction_repo = transaction_repo
        self.notifier = notifier
        self.snapshot_provider = snapshot_provider
        self.applier = CreditApplier(order_repo, user_repo, transaction_repo)

    async def execute(self, command: OrderWebhookCommandDTO) -> Result[WebhookOutcomeDTO]:
        """
        Execute webhook reconciliation

        Returns:
            Result[WebhookOutcomeDTO]: Acknowledged outcome, or the
            LEDGER_WRITE_CONFLICT error when a conflict persisted after retry
        """
        topic = WebhookTopic.from_header(command.topic)
        if topic is None:
            logger.info(f"Ignoring unsupported webhook topic {command.topic} from {command.shop_domain}")
            return Return.ok(self._ignored(None, f"Unsupported topic {command.topic}"))

        # Step 1: Parse
        try:
            event = parse_order_event(topic, command.payload)
        except MalformedPayload as e:
            logger.warning(f"Dropping malformed {topic.value} webhook from {command.shop_domain}: {e}")
            return Return.ok(self._ignored(topic, str(e)))

        # Step 2: Resolve store
        store = await self.store_repo.get_by_domain(command.shop_domain)
        if not store:
            logger.info(f"Ignoring {topic.value} webhook for unknown shop {command.shop_domain}")
            return Return.ok(self._ignored(topic, f"Unknown shop {command.shop_domain}"))

        # Step 3: Edit stubs carry no order state; fetch it before taking any lock
        if event.is_edit_stub:
            event = await self._resolve_edit_stub(store, event)
            if event is None:
                return Return.ok(self._ignored(topic, "Order edit could not be resolved"))

        # Rollback expires loaded rows; keep the key as a plain value across attempts
        shop_id = store.id

        # Step 4: Apply, retrying a write conflict once
        for attempt in range(1, MAX_ATTEMPTS + 1):
            try:
                applied = await self._apply(topic, shop_id, event)
                await self.uow.commit()
                break

            except LedgerWriteConflict as e:
                await self.uow.rollback()
                logger.warning(
                    f"Write conflict reconciling {topic.value} for {event.order_gid} "
                    f"(attempt {attempt}/{MAX_ATTEMPTS}): {e}"
                )
                if attempt == MAX_ATTEMPTS:
                    return Return.err(
                        Error(
                            code="LEDGER_WRITE_CONFLICT",
                            message=f"Concurrent credit update on {event.order_gid}",
                            reason=str(e),
                        )
                    )

            except Exception as e:
                await self.uow.rollback()
                logger.exception(f"Failed to reconcile {topic.value} for {event.order_gid}: {e}")
                order = await self._flag_failure(shop_id, event, e)
                applied = _Applied(
                    outcome=self._outcome(
                        topic, "failed", order, f"Status update error: {e}", flagged=order is not None
                    ),
                    order=order,
                    review_reason=f"Status update error: {e}" if order is not None else None,
                )
                break

        # Step 5: Review alert after commit
        if applied.review_reason and applied.order is not None and self.notifier is not None:
            await self.notifier.send_review_alert(applied.order, applied.review_reason)

        logger.info(
            f"{topic.value} {event.order_gid} from {command.shop_domain}: "
            f"{applied.outcome.action} ({applied.outcome.message})"
        )
        return Return.ok(applied.outcome)

    async def _resolve_edit_stub(self, store: Store, event: OrderEvent) -> Optional[OrderEvent]:
        if self.snapshot_provider is None:
            logger.info(f"No order snapshot provider configured; ORDERS_EDITED for {event.order_gid} skipped")
            return None

        existing = await self.order_repo.get_by_shopify_id(store.id, event.order_gid)
        if not existing:
            logger.info(f"ORDERS_EDITED for untracked order {event.order_gid}; skipped")
            return None

        snapshot = await self.snapshot_provider.fetch_order(store, event.id)
        if not snapshot:
            return None

        try:
            return parse_order_event(WebhookTopic.ORDERS_UPDATED, snapshot)
        except MalformedPayload as e:
            logger.warning(f"Order snapshot for {event.order_gid} unusable: {e}")
            return None

    async def _apply(self, topic: WebhookTopic, shop_id: str, event: OrderEvent) -> _Applied:
        order = await self.order_repo.get_by_shopify_id(shop_id, event.order_gid)

        if order is None:
            if topic != WebhookTopic.ORDERS_CREATE:
                return _Applied(outcome=self._ignored(topic, f"Untracked order {event.order_gid}"))
            return await self._create(topic, shop_id, event)

        company, order, user = await self._lock(order.company_id, shop_id, event, order.created_by_user_id)
        return await self._transition(topic, company, order, user, event)

    async def _lock(
        self, company_id: str, shop_id: str, event: OrderEvent, user_id: str
    ) -> Tuple[CompanyAccount, B2BOrder, Optional[PortalUser]]:
        company = await self.company_repo.get_by_id(company_id, for_update=True)
        order = await self.order_repo.get_by_shopify_id(shop_id, event.order_gid, for_update=True)
        user = await self.user_repo.get_by_id(user_id, for_update=True)
        return company, order, user

    async def _create(self, topic: WebhookTopic, shop_id: str, event: OrderEvent) -> _Applied:
        if not event.customer_gid:
            return _Applied(outcome=self._ignored(topic, "Order has no customer"))

        user = await self.user_repo.find_portal_user(shop_id, event.customer_gid)
        if not user or not user.can_order:
            return _Applied(outcome=self._ignored(topic, f"Customer {event.customer_gid} is not a B2B portal user"))

        company = await self.company_repo.get_by_id(user.company_id, for_update=True)
        if not company:
            return _Applied(outcome=self._ignored(topic, f"Company {user.company_id} not found"))

        # A concurrent delivery may have created the order while we waited for the lock
        existing = await self.order_repo.get_by_shopify_id(shop_id, event.order_gid, for_update=True)
        user = await self.user_repo.get_by_id(user.id, for_update=True)
        if existing is not None:
            return await self._transition(topic, company, existing, user, event)

        payment_status = event.payment_status
        order_status = event.order_status
        order_total = event.order_total
        outstanding = event.outstanding(ZERO)
        cancelled = payment_status == PaymentStatus.CANCELLED or order_status == OrderStatus.CANCELLED
        if payment_status == PaymentStatus.CANCELLED:
            order_status = OrderStatus.CANCELLED

        order = B2BOrder(
            company_id=company.id,
            created_by_user_id=user.id,
            shop_id=shop_id,
            shopify_order_id=event.order_gid,
            order_total=order_total,
            paid_amount=order_total - outstanding,
            credit_used=ZERO,
            remaining_balance=outstanding,
            payment_status=payment_status,
            order_status=order_status,
            paid_at=datetime.utcnow() if payment_status == PaymentStatus.PAID else None,
            shopify_updated_at=event.updated_at,
        )
        order = await self.order_repo.create(order)

        if cancelled:
            return _Applied(
                outcome=self._outcome(topic, "created", order, "Order created already cancelled; no credit reserved"),
                order=order,
            )

        applied = await self.applier.reserve(
            company, order, user, outstanding, created_by=WEBHOOK_ACTOR, allow_over_limit=True
        )
        return _Applied(
            outcome=self._outcome(
                topic, "created", order, applied.decision.message if applied.decision else "Order created",
                flagged=applied.flagged,
            ),
            order=order,
            review_reason=applied.decision.message if applied.flagged else None,
        )

    async def _transition(
        self,
        topic: WebhookTopic,
        company: CompanyAccount,
        order: B2BOrder,
        user: Optional[PortalUser],
        event: OrderEvent,
    ) -> _Applied:
        if order.is_cancelled:
            return _Applied(outcome=self._outcome(topic, "unchanged", order, "Order already cancelled"), order=order)

        if self._is_stale(order, event):
            logger.info(
                f"Stale {topic.value} for {order.shopify_order_id}: "
                f"{event.updated_at} < {order.shopify_updated_at}"
            )
            return _Applied(outcome=self._outcome(topic, "stale", order, "Older than last applied update"), order=order)

        before = self._snapshot(order)
        previous_payment = order.payment_status
        new_payment = event.payment_status
        new_order_status = event.order_status
        order_total = event.order_total
        outstanding = event.outstanding(order.paid_amount)
        applied = ApplyOutcome()

        if new_payment == PaymentStatus.CANCELLED:
            self._set_totals(order, order_total, outstanding)
            order.payment_status = PaymentStatus.CANCELLED
            order.order_status = OrderStatus.CANCELLED
            applied = await self.applier.refund(
                company, order, user, order.credit_used,
                reason=f"payment {event.financial_status}", created_by=WEBHOOK_ACTOR,
            )
            summary = f"{previous_payment.value} -> cancelled (payment {event.financial_status})"

        elif new_order_status == OrderStatus.CANCELLED:
            self._set_totals(order, order_total, outstanding)
            order.order_status = OrderStatus.CANCELLED
            if new_payment != PaymentStatus.PAID:
                order.payment_status = PaymentStatus.CANCELLED
            applied = await self.applier.restore(
                company, order, user, reason_code="order_cancelled",
                expected_amount=outstanding, created_by=WEBHOOK_ACTOR,
            )
            summary = "order cancelled"

        elif new_payment == PaymentStatus.PAID and previous_payment != PaymentStatus.PAID:
            order.order_total = order_total
            order.order_status = new_order_status
            applied = await self.applier.finalize(company, order, user, created_by=WEBHOOK_ACTOR)
            summary = f"{previous_payment.value} -> paid"

        elif new_payment == PaymentStatus.PARTIAL:
            # Also reached from "paid" when an edit leaves part of a raised total unpaid
            order.order_status = new_order_status
            applied = await self.applier.apply_partial_payment(
                company, order, user, order_total, outstanding, created_by=WEBHOOK_ACTOR
            )
            summary = f"{previous_payment.value} -> partial"

        elif previous_payment == PaymentStatus.PAID:
            # A pending or partially_refunded report never re-opens a paid order
            if new_payment != PaymentStatus.PAID:
                logger.warning(
                    f"Ignoring payment status regression paid -> {new_payment.value} "
                    f"for {order.shopify_order_id}"
                )
            order.order_status = new_order_status
            applied = await self.applier.sync_amounts(
                company, order, user, order_total, order_total, created_by=WEBHOOK_ACTOR
            )
            summary = "paid order synced"

        else:
            order.order_status = new_order_status
            applied = await self.applier.sync_amounts(
                company, order, user, order_total, order_total - outstanding, created_by=WEBHOOK_ACTOR
            )
            summary = "totals synced"

        if event.updated_at is not None:
            order.shopify_updated_at = event.updated_at
        await self.order_repo.save(order)

        changed = self._snapshot(order) != before or applied.changed_ledger
        review_reason = None
        if applied.flagged and applied.decision is not None:
            review_reason = applied.decision.message

        return _Applied(
            outcome=self._outcome(
                topic, "updated" if changed else "unchanged", order, summary, flagged=applied.flagged
            ),
            order=order,
            review_reason=review_reason,
        )

    async def _flag_failure(self, shop_id: str, event: OrderEvent, error: Exception) -> Optional[B2BOrder]:
        """
        Persist what the event reported, plus the review flag and a note, in a fresh attempt

        Statuses and totals are written without ledger movements; credit_used
        stays as recorded until RecalculateCompanyCredit realigns the company.
        """
        try:
            order = await self.order_repo.get_by_shopify_id(shop_id, event.order_gid, for_update=True)
            if order is None:
                return None
            if not order.is_cancelled and not self._is_stale(order, event):
                self._record_event_state(order, event)
            order.requires_review = True
            order.append_note(f"Status update error ({type(error).__name__}): {error}. Requires manual review.")
            await self.order_repo.save(order)
            await self.uow.commit()
            return order
        except Exception as e:
            await self.uow.rollback()
            logger.error(f"Could not flag order {event.order_gid} for review: {e}")
            return None

    @classmethod
    def _record_event_state(cls, order: B2BOrder, event: OrderEvent) -> None:
        payment_status = event.payment_status
        order_status = event.order_status
        if payment_status == PaymentStatus.CANCELLED:
            order_status = OrderStatus.CANCELLED
        elif order_status == OrderStatus.CANCELLED and payment_status != PaymentStatus.PAID:
            payment_status = PaymentStatus.CANCELLED

        if order.payment_status == PaymentStatus.PAID and payment_status == PaymentStatus.PENDING:
            payment_status = PaymentStatus.PAID

        cls._set_totals(order, event.order_total, event.outstanding(order.paid_amount))
        if payment_status == PaymentStatus.PAID:
            order.paid_amount = to_money(order.order_total)
            order.remaining_balance = ZERO
            order.paid_at = order.paid_at or datetime.utcnow()
        order.payment_status = payment_status
        order.order_status = order_status
        if event.updated_at is not None:
            order.shopify_updated_at = event.updated_at

    @staticmethod
    def _is_stale(order: B2BOrder, event: OrderEvent) -> bool:
        return (
            order.shopify_updated_at is not None
            and event.updated_at is not None
            and event.updated_at < order.shopify_updated_at
        )

    @staticmethod
    def _set_totals(order: B2BOrder, order_total, outstanding) -> None:
        order.order_total = to_money(order_total)
        order.remaining_balance = to_money(outstanding)
        order.paid_amount = order.order_total - order.remaining_balance

    @staticmethod
    def _snapshot(order: B2BOrder) -> tuple:
        return (
            order.payment_status,
            order.order_status,
            to_money(order.order_total),
            to_money(order.paid_amount),
            to_money(order.remaining_balance),
            to_money(order.credit_used),
        )

    @staticmethod
    def _ignored(topic: Optional[WebhookTopic], message: str) -> WebhookOutcomeDTO:
        return WebhookOutcomeDTO(topic=topic.value if topic else None, action="ignored", message=message)

    @staticmethod
    def _outcome(
        topic: WebhookTopic,
        action: str,
        order: Optional[B2BOrder],
        message: str,
        flagged: bool = False,
    ) -> WebhookOutcomeDTO:
        if order is None:
            return WebhookOutcomeDTO(topic=topic.value, action=action, message=message, flagged=flagged)
        return WebhookOutcomeDTO(
            topic=topic.value,
            action=action,
            order_id=order.id,
            shopify_order_id=order.shopify_order_id,
            payment_status=order.payment_status.value,
            order_status=order.order_status.value,
            credit_used=order.credit_used,
            flagged=flagged,
            message=message,
        )
