"""Shopify order webhook payloads

Typed view over the orders/* webhook body with the status and amount
mappings the reconciler relies on. Only the fields used for credit
reconciliation are modelled; everything else in the body is ignored.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator
from src.domain.b2b_order import OrderStatus, PaymentStatus
from src.domain.exceptions import MalformedPayload
from src.domain.money import ZERO, to_money

ORDER_GID_PREFIX = "gid://shopify/Order/"
CUSTOMER_GID_PREFIX = "gid://shopify/Customer/"


class WebhookTopic(str, Enum):
    ORDERS_CREATE = "ORDERS_CREATE"
    ORDERS_UPDATED = "ORDERS_UPDATED"
    ORDERS_EDITED = "ORDERS_EDITED"
    ORDERS_CANCELLED = "ORDERS_CANCELLED"
    ORDERS_PAID = "ORDERS_PAID"

    @classmethod
    def from_header(cls, value: Optional[str]) -> Optional["WebhookTopic"]:
        """Accept both "orders/create" (HTTP header) and "ORDERS_CREATE" spellings"""
        if not value:
            return None
        normalized = value.strip().upper().replace("/", "_")
        if normalized == "ORDERS_UPDATE":
            normalized = cls.ORDERS_UPDATED.value
        try:
            return cls(normalized)
        except ValueError:
            return None


FINANCIAL_STATUS_MAP = {
    "paid": PaymentStatus.PAID,
    "partially_paid": PaymentStatus.PARTIAL,
    "refunded": PaymentStatus.CANCELLED,
    "voided": PaymentStatus.CANCELLED,
}

FULFILLMENT_STATUS_MAP = {
    "fulfilled": OrderStatus.DELIVERED,
    "partial": OrderStatus.PROCESSING,
    "in_progress": OrderStatus.PROCESSING,
    "cancelled": OrderStatus.CANCELLED,
}


def map_financial_status(financial_status: Optional[str]) -> PaymentStatus:
    if not financial_status:
        return PaymentStatus.PENDING
    return FINANCIAL_STATUS_MAP.get(financial_status.strip().lower(), PaymentStatus.PENDING)


def map_fulfillment_status(
    fulfillment_status: Optional[str], cancelled_at: Optional[datetime] = None
) -> OrderStatus:
    if cancelled_at is not None:
        return OrderStatus.CANCELLED
    if not fulfillment_status:
        return OrderStatus.SUBMITTED
    return FULFILLMENT_STATUS_MAP.get(fulfillment_status.strip().lower(), OrderStatus.SUBMITTED)


def _to_gid(prefix: str, value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    return value if value.startswith("gid://") else f"{prefix}{value}"


class OrderEvent(BaseModel):
    """
    Order webhook body

    Timestamps are normalized to naive UTC to compare with stored columns.
    """

    id: str
    customer_id: Optional[str] = None
    financial_status: Optional[str] = None
    fulfillment_status: Optional[str] = None
    total_price: Optional[Decimal] = None
    current_total_price: Optional[Decimal] = None
    total_outstanding: Optional[Decimal] = None
    cancelled_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    is_edit_stub: bool = Field(
        default=False,
        description="ORDERS_EDITED body carrying only the order_edit wrapper"
    )

    @model_validator(mode="before")
    @classmethod
    def _flatten_customer(cls, data: Any) -> Any:
        if isinstance(data, dict) and "customer_id" not in data:
            customer = data.get("customer")
            if isinstance(customer, dict) and customer.get("id") is not None:
                data = {**data, "customer_id": customer["id"]}
        return data

    @field_validator("id", "customer_id", mode="before")
    @classmethod
    def _stringify_id(cls, value: Any) -> Any:
        if value is None or isinstance(value, str):
            return value
        if isinstance(value, bool):
            raise ValueError("id must be a number or string")
        return str(value)

    @field_validator("id")
    @classmethod
    def _id_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("id must not be blank")
        return value.strip()

    @field_validator("total_price", "current_total_price", "total_outstanding", mode="before")
    @classmethod
    def _parse_money(cls, value: Any) -> Optional[Decimal]:
        if value is None or value == "":
            return None
        return to_money(value)

    @field_validator("cancelled_at", "updated_at")
    @classmethod
    def _naive_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is not None and value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value

    @property
    def order_gid(self) -> str:
        return _to_gid(ORDER_GID_PREFIX, self.id)

    @property
    def customer_gid(self) -> Optional[str]:
        return _to_gid(CUSTOMER_GID_PREFIX, self.customer_id)

    @property
    def payment_status(self) -> PaymentStatus:
        return map_financial_status(self.financial_status)

    @property
    def order_status(self) -> OrderStatus:
        return map_fulfillment_status(self.fulfillment_status, self.cancelled_at)

    @property
    def order_total(self) -> Decimal:
        if self.total_price is not None:
            return self.total_price
        if self.current_total_price is not None:
            return self.current_total_price
        return ZERO

    def outstanding(self, previous_paid: Decimal = ZERO) -> Decimal:
        """
        Unpaid portion of the order

        total_outstanding wins when present; otherwise zero for paid orders and
        total minus the previously recorded paid amount for everything else.
        """
        total = self.order_total
        if self.total_outstanding is not None:
            amount = self.total_outstanding
        elif self.payment_status == PaymentStatus.PAID:
            amount = ZERO
        else:
            amount = total - to_money(previous_paid)
        return min(max(amount, ZERO), total)


def parse_order_event(topic: Optional[WebhookTopic], payload: Dict[str, Any]) -> OrderEvent:
    """
    Parse a webhook body into an OrderEvent

    Raises:
        MalformedPayload: If the body is not an object or carries no order id
    """
    if not isinstance(payload, dict):
        raise MalformedPayload("Webhook body must be a JSON object")

    if topic == WebhookTopic.ORDERS_EDITED and payload.get("id") is None:
        order_edit = payload.get("order_edit")
        order_id = order_edit.get("order_id") if isinstance(order_edit, dict) else None
        if order_id is None:
            raise MalformedPayload("ORDERS_EDITED body has no order_edit.order_id")
        payload = {"id": order_id, "is_edit_stub": True}

    if payload.get("id") is None:
        raise MalformedPayload("Order webhook body has no id")

    try:
        return OrderEvent.model_validate(payload)
    except ValidationError as e:
        raise MalformedPayload(f"Invalid order webhook body: {e.error_count()} errors") from e
