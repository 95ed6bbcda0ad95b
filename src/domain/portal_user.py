"""Portal User Domain Entity

A storefront customer registered in the B2B portal, optionally capped by a
personal credit sub-limit inside their company.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from sqlmodel import Field, Column, Index
from sqlalchemy import CheckConstraint, Numeric, String
from src.domain.base import BaseModel, generate_uuid
from src.domain.money import MONEY_PRECISION, MONEY_SCALE, ZERO


class UserStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class PortalUser(BaseModel, table=True):
    """
    Portal User - B2B customer within a company

    Domain Rules:
    - Only active, APPROVED users with a company take part in B2B ordering
    - user_credit_limit None means no personal cap (company cap still applies)
    - user_credit_used tracks the user's own unpaid order exposure
    """

    __tablename__ = "portal_users"
    __table_args__ = (
        Index("ix_portal_users_shop_customer", "shop_id", "shopify_customer_id"),
        CheckConstraint(
            "user_credit_limit IS NULL OR user_credit_limit >= 0",
            name="user_credit_limit_non_negative",
        ),
    )

    id: str = Field(default_factory=generate_uuid, primary_key=True)

    shop_id: str = Field(foreign_key="stores.id", index=True)

    shopify_customer_id: Optional[str] = Field(
        default=None,
        sa_column=Column(String(255), nullable=True),
        description="Shopify customer GID (gid://shopify/Customer/<id>)"
    )

    company_id: Optional[str] = Field(
        default=None,
        foreign_key="company_accounts.id",
        index=True,
    )

    email: str = Field(sa_column=Column(String(255), nullable=False))

    first_name: Optional[str] = Field(default=None, sa_column=Column(String(255), nullable=True))

    last_name: Optional[str] = Field(default=None, sa_column=Column(String(255), nullable=True))

    status: UserStatus = Field(default=UserStatus.PENDING)

    is_active: bool = Field(default=True)

    user_credit_limit: Optional[Decimal] = Field(
        default=None,
        sa_column=Column(Numeric(MONEY_PRECISION, MONEY_SCALE), nullable=True),
        description="Personal credit cap (None = unlimited)"
    )

    user_credit_used: Decimal = Field(
        default=ZERO,
        sa_column=Column(Numeric(MONEY_PRECISION, MONEY_SCALE), nullable=False, default=0),
        description="Unpaid exposure of orders placed by this user"
    )

    created_at: datetime = Field(default_factory=datetime.utcnow)

    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()

    @property
    def can_order(self) -> bool:
        return bool(self.is_active and self.status == UserStatus.APPROVED and self.company_id)
