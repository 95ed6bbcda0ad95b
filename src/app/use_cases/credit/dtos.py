"""Data Transfer Objects for Credit Use Cases

Pydantic models for command inputs and response outputs.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional
from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

LimitingFactor = Literal["company", "user"]


class CompanyCreditInfoDTO(BaseModel):
    """Company credit snapshot used by the evaluator and returned to callers"""

    company_id: str = Field(..., description="Company identifier")
    credit_limit: Decimal = Field(..., description="Administrator-set credit limit")
    used_credit: Decimal = Field(..., description="Outstanding balance of pending/partial orders")
    pending_credit: Decimal = Field(
        default=Decimal("0.00"),
        description="Outstanding balance of orders not yet shipped (informational)"
    )
    available_credit: Decimal = Field(..., description="credit_limit - used_credit (may be negative)")

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class UserCreditInfoDTO(BaseModel):
    """Personal sub-limit snapshot for a portal user"""

    user_id: str = Field(..., description="Portal user identifier")
    has_limit: bool = Field(..., description="False when the user has no personal cap")
    user_credit_limit: Optional[Decimal] = Field(default=None)
    user_credit_used: Decimal = Field(default=Decimal("0.00"))
    user_credit_available: Optional[Decimal] = Field(
        default=None,
        description="Limit minus usage; None when the user has no personal cap"
    )

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class CreditDecisionDTO(BaseModel):
    """Output of the credit evaluator"""

    admit: bool
    limiting_factor: Optional[LimitingFactor] = None
    message: str


class CreditInfoDTO(BaseModel):
    company: CompanyCreditInfoDTO
    user: Optional[UserCreditInfoDTO] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class ValidateCreditCommandDTO(BaseModel):
    """
    Command DTO for interactive (checkout-time) credit validation
    """

    company_id: str = Field(..., description="Company identifier")
    user_id: str = Field(..., description="Portal user placing the order")
    order_amount: Decimal = Field(..., ge=0, description="Proposed order amount")


class CreditValidationResponseDTO(BaseModel):
    """
    Response DTO for interactive credit validation

    Serialized in camelCase for the checkout extension.
    """

    can_create: bool
    limiting_factor: Optional[LimitingFactor] = None
    message: str
    credit_info: CreditInfoDTO

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "canCreate": False,
                "limitingFactor": "user",
                "message": "Insufficient personal credit. Available: $50.00, Required: $100.00",
                "creditInfo": {
                    "company": {
                        "companyId": "c0ffee",
                        "creditLimit": "5000.00",
                        "usedCredit": "1200.00",
                        "pendingCredit": "800.00",
                        "availableCredit": "3800.00"
                    },
                    "user": {
                        "userId": "u123",
                        "hasLimit": True,
                        "userCreditLimit": "200.00",
                        "userCreditUsed": "150.00",
                        "userCreditAvailable": "50.00"
                    }
                }
            }
        }


class PlaceOrderCommandDTO(BaseModel):
    """
    Command DTO for placing a portal order against credit

    The order is recorded and its full amount reserved; rejected when the
    company or user limit would be exceeded.
    """

    user_id: str = Field(..., description="Portal user placing the order")
    order_total: Decimal = Field(..., gt=0, description="Order amount to reserve")
    shopify_order_id: Optional[str] = Field(default=None, description="Draft/order GID if already known")
    notes: Optional[str] = Field(default=None)


class OrderResponseDTO(BaseModel):
    order_id: str
    company_id: str
    created_by_user_id: str
    shopify_order_id: Optional[str] = None
    order_total: Decimal
    paid_amount: Decimal
    credit_used: Decimal
    remaining_balance: Decimal
    payment_status: str
    order_status: str
    requires_review: bool
    notes: Optional[str] = None
    created_at: datetime

    @classmethod
    def from_entity(cls, order) -> "OrderResponseDTO":
        return cls(
            order_id=order.id,
            company_id=order.company_id,
            created_by_user_id=order.created_by_user_id,
            shopify_order_id=order.shopify_order_id,
            order_total=order.order_total,
            paid_amount=order.paid_amount,
            credit_used=order.credit_used,
            remaining_balance=order.remaining_balance,
            payment_status=order.payment_status.value,
            order_status=order.order_status.value,
            requires_review=order.requires_review,
            notes=order.notes,
            created_at=order.created_at,
        )


class CancelOrderCommandDTO(BaseModel):
    """
    Command DTO for cancelling a portal order

    Shipped or delivered orders cannot be cancelled; the credit still held
    by the order is returned to the company (and user).
    """

    order_id: str = Field(..., description="Local order identifier")
    cancelled_by: Optional[str] = Field(default=None, description="Defaults to the ordering user")
    reason: Optional[str] = Field(default=None)


class CancelOrderResponseDTO(BaseModel):
    order: OrderResponseDTO
    credit_restored: Decimal
    credit: CompanyCreditInfoDTO
    message: str


class RecordOrderPaymentCommandDTO(BaseModel):
    """
    Command DTO for recording a payment against a portal order

    The amount may not exceed the order's remaining balance.
    """

    order_id: str = Field(..., description="Local order identifier")
    amount: Decimal = Field(..., gt=0, description="Amount received")
    payment_method: str = Field(default="credit", description="credit, card, bank_transfer, ...")
    notes: Optional[str] = Field(default=None)
    recorded_by: Optional[str] = Field(default=None, description="Defaults to the ordering user")


class OrderPaymentResponseDTO(BaseModel):
    order: OrderResponseDTO
    amount: Decimal
    payment_method: str
    credit: CompanyCreditInfoDTO
    flagged: bool = False
    message: str


class CreditTransactionDTO(BaseModel):
    id: str
    order_id: Optional[str] = None
    user_id: Optional[str] = None
    transaction_type: str
    credit_amount: Decimal
    previous_balance: Decimal
    new_balance: Decimal
    notes: Optional[str] = None
    created_by: str
    created_at: datetime

    @classmethod
    def from_entity(cls, transaction) -> "CreditTransactionDTO":
        return cls(
            id=transaction.id,
            order_id=transaction.order_id,
            user_id=transaction.user_id,
            transaction_type=transaction.transaction_type.value,
            credit_amount=transaction.credit_amount,
            previous_balance=transaction.previous_balance,
            new_balance=transaction.new_balance,
            notes=transaction.notes,
            created_by=transaction.created_by,
            created_at=transaction.created_at,
        )


class ListCreditTransactionsResponseDTO(BaseModel):
    transactions: List[CreditTransactionDTO]
    total: int
    limit: int
    offset: int


class CompanyCreditStatusDTO(BaseModel):
    company_id: str
    name: str
    credit: CompanyCreditInfoDTO
    outstanding_order_count: int
    recent_transactions: List[CreditTransactionDTO]


class UserCreditStatusDTO(BaseModel):
    user_id: str
    name: str
    email: str
    company: CompanyCreditInfoDTO
    user: UserCreditInfoDTO


class SetCompanyCreditLimitCommandDTO(BaseModel):
    company_id: str
    credit_limit: Decimal = Field(..., ge=0)
    set_by: str = Field(..., min_length=1)


class SetUserCreditLimitCommandDTO(BaseModel):
    user_id: str
    credit_limit: Optional[Decimal] = Field(default=None, ge=0, description="None removes the personal cap")
    set_by: str = Field(..., min_length=1)


class CreditLimitResponseDTO(BaseModel):
    subject_id: str
    previous_limit: Optional[Decimal] = None
    credit_limit: Optional[Decimal] = None
    message: str


class LedgerDiscrepancyDTO(BaseModel):
    """
    DTO for a company whose transaction replay disagrees with its orders
    """

    company_id: str = Field(..., description="Company identifier")
    used_credit: Decimal = Field(..., description="Live usage from order balances")
    replayed_balance: Decimal = Field(..., description="Usage reproduced from transactions")
    discrepancy: Decimal = Field(..., description="used_credit - replayed_balance")


class AuditResultDTO(BaseModel):
    total_companies_checked: int
    discrepancies_found: int
    discrepancies: List[LedgerDiscrepancyDTO]
    audit_time: datetime
    execution_time_ms: int


class RecalculationResultDTO(BaseModel):
    company_id: str
    used_credit: Decimal
    replayed_balance_before: Decimal
    outstanding_order_count: int
    orders_realigned: int
    users_realigned: int
    adjustment_amount: Decimal
    message: str
