"""Credit Transaction Domain Entity

Immutable append-only audit trail of every change to a company's used credit.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from sqlmodel import Field, Column, Index
from sqlalchemy import Numeric, String, Text
from src.domain.base import BaseModel, generate_uuid
from src.domain.money import MONEY_PRECISION, MONEY_SCALE


class TransactionType(str, Enum):
    """Credit transaction types"""
    RESERVE = "reserve"      # Order exposure allocated against the company limit
    DEDUCT = "deduct"        # Reservation settled by payment
    REFUND = "refund"        # Reservation released by a refunded/voided payment
    RESTORE = "restore"      # Reservation released by an order cancellation
    ADJUST = "adjust"        # Signed exposure change or limit edit

    @property
    def direction(self) -> int:
        if self == TransactionType.RESERVE:
            return 1
        if self == TransactionType.ADJUST:
            return 1  # amount carries its own sign
        return -1

    @property
    def is_one_shot(self) -> bool:
        """At most one entry of this type may exist per order"""
        return self != TransactionType.ADJUST


class CreditTransaction(BaseModel, table=True):
    """
    Credit Transaction - Immutable audit trail of used-credit mutations

    Domain Rules:
    - Transactions are immutable (append-only)
    - previous_balance/new_balance are the company's used credit around the entry
    - new_balance == previous_balance + signed_amount
    - idempotency_key is unique: "<order_id>:<type>" for one-shot types
    - Replaying a company's entries reproduces its used credit
    """

    __tablename__ = "credit_transactions"
    __table_args__ = (
        Index("ix_credit_transactions_company_created", "company_id", "created_at"),
        Index("ix_credit_transactions_order", "order_id"),
    )

    id: str = Field(default_factory=generate_uuid, primary_key=True)

    company_id: str = Field(foreign_key="company_accounts.id", index=True)

    user_id: Optional[str] = Field(default=None)

    order_id: Optional[str] = Field(default=None)

    transaction_type: TransactionType = Field(index=True)

    credit_amount: Decimal = Field(
        sa_column=Column(Numeric(MONEY_PRECISION, MONEY_SCALE), nullable=False),
        description="Magnitude for reserve/deduct/refund/restore, signed for adjust"
    )

    previous_balance: Decimal = Field(
        sa_column=Column(Numeric(MONEY_PRECISION, MONEY_SCALE), nullable=False),
    )

    new_balance: Decimal = Field(
        sa_column=Column(Numeric(MONEY_PRECISION, MONEY_SCALE), nullable=False),
    )

    notes: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))

    created_by: str = Field(sa_column=Column(String(255), nullable=False))

    idempotency_key: str = Field(unique=True, index=True)

    created_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def signed_amount(self) -> Decimal:
        return self.credit_amount * self.transaction_type.direction

    @staticmethod
    def order_key(order_id: str, transaction_type: TransactionType) -> str:
        if transaction_type.is_one_shot:
            return f"{order_id}:{transaction_type.value}"
        return f"{order_id}:{transaction_type.value}:{generate_uuid()}"
