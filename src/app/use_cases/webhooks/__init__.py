"""Shopify webhook use cases"""
from .reconcile_order_event import ReconcileOrderEvent
from .order_event import (
    OrderEvent,
    WebhookTopic,
    map_financial_status,
    map_fulfillment_status,
    parse_order_event,
)
from .dtos import OrderWebhookCommandDTO, WebhookOutcomeDTO

__all__ = [
    "ReconcileOrderEvent",
    "OrderEvent",
    "WebhookTopic",
    "map_financial_status",
    "map_fulfillment_status",
    "parse_order_event",
    "OrderWebhookCommandDTO",
    "WebhookOutcomeDTO",
]
