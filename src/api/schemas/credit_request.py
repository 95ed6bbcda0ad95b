"""Request schemas for Credit API

Pydantic models for validating incoming HTTP requests.
"""

from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field, field_validator


class ValidateCreditRequestSchema(BaseModel):
    """
    Request schema for interactive credit validation

    Used for POST /credit/validate (checkout extension, camelCase accepted).
    """

    company_id: str = Field(..., min_length=1, alias="companyId")

    user_id: str = Field(..., min_length=1, alias="userId")

    order_amount: Decimal = Field(
        ...,
        alias="orderAmount",
        description="Proposed order amount (must be >= 0)"
    )

    @field_validator("order_amount")
    @classmethod
    def validate_amount(cls, v):
        if v < 0:
            raise ValueError("Order amount must not be negative")
        return v

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "companyId": "c0ffee",
                "userId": "u123",
                "orderAmount": "100.00"
            }
        }


class PlaceOrderRequestSchema(BaseModel):
    """
    Request schema for placing a portal order against credit

    Used for POST /credit/orders endpoint.
    """

    user_id: str = Field(..., min_length=1)

    order_total: Decimal = Field(..., gt=0, description="Order amount to reserve (must be > 0)")

    shopify_order_id: Optional[str] = Field(default=None, description="Draft or order GID, if known")

    notes: Optional[str] = Field(default=None, max_length=2000)

    @field_validator("order_total")
    @classmethod
    def validate_precision(cls, v):
        """Reject sub-cent amounts instead of silently rounding them"""
        if v != v.quantize(Decimal("0.01")):
            raise ValueError("Order total must have at most 2 decimal places")
        return v

    class Config:
        json_schema_extra = {
            "example": {
                "user_id": "u123",
                "order_total": "250.00",
                "notes": "PO-7781"
            }
        }


class CancelOrderRequestSchema(BaseModel):
    """Used for POST /credit/orders/{order_id}/cancel"""

    cancelled_by: Optional[str] = Field(default=None, min_length=1, description="Defaults to the ordering user")

    reason: Optional[str] = Field(default=None, max_length=500)


class RecordOrderPaymentRequestSchema(BaseModel):
    """
    Request schema for recording a payment on a portal order

    Used for POST /credit/orders/{order_id}/payments endpoint.
    """

    amount: Decimal = Field(..., gt=0, description="Amount received (must be > 0)")

    payment_method: str = Field(default="credit", min_length=1, max_length=50)

    notes: Optional[str] = Field(default=None, max_length=2000)

    recorded_by: Optional[str] = Field(default=None, min_length=1)

    @field_validator("amount")
    @classmethod
    def validate_precision(cls, v):
        if v != v.quantize(Decimal("0.01")):
            raise ValueError("Payment amount must have at most 2 decimal places")
        return v

    class Config:
        json_schema_extra = {
            "example": {
                "amount": "150.00",
                "payment_method": "bank_transfer",
                "notes": "Wire ref 88123"
            }
        }


class SetCompanyCreditLimitRequestSchema(BaseModel):
    """Used for PUT /credit/companies/{company_id}/limit"""

    credit_limit: Decimal = Field(..., ge=0)

    set_by: str = Field(..., min_length=1, description="Admin performing the change")

    class Config:
        json_schema_extra = {
            "example": {"credit_limit": "5000.00", "set_by": "admin@example.com"}
        }


class SetUserCreditLimitRequestSchema(BaseModel):
    """Used for PUT /credit/users/{user_id}/limit; null removes the personal cap"""

    credit_limit: Optional[Decimal] = Field(default=None, ge=0)

    set_by: str = Field(..., min_length=1, description="Admin performing the change")

    class Config:
        json_schema_extra = {
            "example": {"credit_limit": "200.00", "set_by": "admin@example.com"}
        }


class RecalculateCreditRequestSchema(BaseModel):
    """Used for POST /credit/companies/{company_id}/recalculate"""

    requested_by: str = Field(default="admin", min_length=1)
