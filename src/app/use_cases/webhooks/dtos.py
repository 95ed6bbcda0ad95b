"""Data Transfer Objects for webhook use cases"""

from decimal import Decimal
from typing import Any, Dict, Literal, Optional
from pydantic import BaseModel, Field

WebhookAction = Literal["ignored", "created", "updated", "unchanged", "stale", "failed"]


class OrderWebhookCommandDTO(BaseModel):
    """
    Command DTO for one verified order webhook delivery
    """

    topic: str = Field(..., description="X-Shopify-Topic header (orders/create, ORDERS_UPDATED, ...)")
    shop_domain: str = Field(..., description="X-Shopify-Shop-Domain header")
    payload: Dict[str, Any] = Field(default_factory=dict, description="Parsed JSON body")
    webhook_id: Optional[str] = Field(default=None, description="X-Shopify-Webhook-Id header")


class WebhookOutcomeDTO(BaseModel):
    """
    Acknowledged outcome of a webhook delivery

    Every outcome is answered with 200 so Shopify stops redelivering.
    """

    topic: Optional[str] = None
    action: WebhookAction
    order_id: Optional[str] = None
    shopify_order_id: Optional[str] = None
    payment_status: Optional[str] = None
    order_status: Optional[str] = None
    credit_used: Optional[Decimal] = None
    flagged: bool = Field(default=False, description="Order was flagged for manual review")
    message: str = ""

    class Config:
        json_schema_extra = {
            "example": {
                "topic": "ORDERS_UPDATED",
                "action": "updated",
                "order_id": "5f2c0d2e9b7a4c1e8d3f6a7b8c9d0e1f",
                "shopify_order_id": "gid://shopify/Order/820982911946154508",
                "payment_status": "paid",
                "order_status": "submitted",
                "credit_used": "0.00",
                "flagged": False,
                "message": "pending -> paid"
            }
        }
