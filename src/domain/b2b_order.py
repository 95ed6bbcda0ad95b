"""B2B Order Domain Entity

Local record of one Shopify order placed by a portal user. The order's
remaining balance is what the company's used credit is derived from.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from sqlmodel import Field, Column, Index
from sqlalchemy import CheckConstraint, Numeric, String, Text, UniqueConstraint
from src.domain.base import BaseModel, generate_uuid
from src.domain.money import MONEY_PRECISION, MONEY_SCALE, ZERO


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PARTIAL = "partial"
    PAID = "paid"
    CANCELLED = "cancelled"


class OrderStatus(str, Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


# Payment statuses whose remaining balance counts toward used credit
OUTSTANDING_PAYMENT_STATUSES = (PaymentStatus.PENDING, PaymentStatus.PARTIAL)

# Order statuses counted as "pending" credit (not yet shipped)
PENDING_ORDER_STATUSES = (OrderStatus.DRAFT, OrderStatus.SUBMITTED, OrderStatus.PROCESSING)


class B2BOrder(BaseModel, table=True):
    """
    B2B Order - credit-bearing order record

    Domain Rules:
    - paid_amount + remaining_balance == order_total at every settled state
    - credit_used equals the order's exposure: remaining_balance while the
      order is pending/partial and not cancelled, zero otherwise
    - shopify_order_id is unique per shop
    - Never deleted; cancellation is a status
    """

    __tablename__ = "b2b_orders"
    __table_args__ = (
        UniqueConstraint("shop_id", "shopify_order_id", name="uq_b2b_orders_shop_order"),
        Index("ix_b2b_orders_company_payment", "company_id", "payment_status"),
        CheckConstraint("paid_amount >= 0", name="paid_amount_non_negative"),
        CheckConstraint("credit_used >= 0", name="credit_used_non_negative"),
    )

    id: str = Field(default_factory=generate_uuid, primary_key=True)

    company_id: str = Field(foreign_key="company_accounts.id", index=True)

    created_by_user_id: str = Field(foreign_key="portal_users.id", index=True)

    shop_id: str = Field(foreign_key="stores.id", index=True)

    shopify_order_id: Optional[str] = Field(
        default=None,
        sa_column=Column(String(255), nullable=True),
        description="Shopify order GID (gid://shopify/Order/<id>)"
    )

    order_total: Decimal = Field(
        sa_column=Column(Numeric(MONEY_PRECISION, MONEY_SCALE), nullable=False),
    )

    paid_amount: Decimal = Field(
        default=ZERO,
        sa_column=Column(Numeric(MONEY_PRECISION, MONEY_SCALE), nullable=False, default=0),
    )

    credit_used: Decimal = Field(
        default=ZERO,
        sa_column=Column(Numeric(MONEY_PRECISION, MONEY_SCALE), nullable=False, default=0),
        description="Credit currently reserved by this order (its unpaid exposure)"
    )

    remaining_balance: Decimal = Field(
        sa_column=Column(Numeric(MONEY_PRECISION, MONEY_SCALE), nullable=False),
    )

    payment_status: PaymentStatus = Field(default=PaymentStatus.PENDING, index=True)

    order_status: OrderStatus = Field(default=OrderStatus.DRAFT)

    requires_review: bool = Field(
        default=False,
        description="Set when post-hoc credit validation failed or a transition errored"
    )

    notes: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))

    paid_at: Optional[datetime] = Field(default=None)

    shopify_updated_at: Optional[datetime] = Field(
        default=None,
        description="updated_at of the last applied webhook (UTC, naive)"
    )

    created_at: datetime = Field(default_factory=datetime.utcnow)

    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def is_cancelled(self) -> bool:
        return (
            self.order_status == OrderStatus.CANCELLED
            or self.payment_status == PaymentStatus.CANCELLED
        )

    @property
    def counts_toward_usage(self) -> bool:
        return (
            self.payment_status in OUTSTANDING_PAYMENT_STATUSES
            and self.order_status != OrderStatus.CANCELLED
        )

    @property
    def exposure(self) -> Decimal:
        """Amount this order contributes to its company's used credit"""
        return self.remaining_balance if self.counts_toward_usage else ZERO

    def append_note(self, note: str) -> None:
        self.notes = f"{self.notes}\n{note}" if self.notes else note
