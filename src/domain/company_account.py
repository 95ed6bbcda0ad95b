"""Company Account Domain Entity

A B2B company and its credit limit. Usage is never stored on the company: it is
derived from the outstanding balances of the company's orders.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from sqlmodel import Field, Column
from sqlalchemy import CheckConstraint, Numeric, String, UniqueConstraint
from src.domain.base import BaseModel, generate_uuid
from src.domain.money import MONEY_PRECISION, MONEY_SCALE


class CompanyAccount(BaseModel, table=True):
    """
    Company Account - credit limit holder for a B2B company

    Domain Rules:
    - One account per (shop, Shopify company) pair
    - credit_limit is administrator-settable and never negative
    - used/available credit are derived from B2B orders, not stored here
    - Ledger writers lock this row (SELECT FOR UPDATE) for the duration of
      every reserve/finalize/refund/restore
    """

    __tablename__ = "company_accounts"
    __table_args__ = (
        UniqueConstraint("shop_id", "shopify_company_id", name="uq_company_shop_external"),
        CheckConstraint("credit_limit >= 0", name="credit_limit_non_negative"),
    )

    id: str = Field(default_factory=generate_uuid, primary_key=True)

    shop_id: str = Field(
        index=True,
        foreign_key="stores.id",
        description="Owning store"
    )

    shopify_company_id: Optional[str] = Field(
        default=None,
        sa_column=Column(String(255), nullable=True),
        description="Shopify company GID"
    )

    name: str = Field(
        sa_column=Column(String(255), nullable=False),
        description="Company display name"
    )

    credit_limit: Decimal = Field(
        default=Decimal("0.00"),
        sa_column=Column(Numeric(MONEY_PRECISION, MONEY_SCALE), nullable=False, default=0),
        description="Company-wide credit limit"
    )

    created_at: datetime = Field(default_factory=datetime.utcnow)

    updated_at: datetime = Field(default_factory=datetime.utcnow)
