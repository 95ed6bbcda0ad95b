"""Review Notification Service Implementations

Provides concrete implementations for review alerts.
"""

import logging
from typing import Optional
import httpx
from src.app.services.notification_service import ReviewNotificationService
from src.domain.b2b_order import B2BOrder

logger = logging.getLogger(__name__)


class LoggingNotificationService(ReviewNotificationService):
    """
    Notification service that logs review alerts

    Always enabled so flagged orders show up in the service logs.
    """

    async def send_review_alert(self, order: B2BOrder, reason: str) -> bool:
        logger.warning(
            f"[CREDIT REVIEW] Order: {order.shopify_order_id or order.id}, "
            f"Company: {order.company_id}, "
            f"Total: {order.order_total}, "
            f"Credit used: {order.credit_used}, "
            f"Payment: {order.payment_status.value}, "
            f"Reason: {reason}"
        )
        return True


class WebhookNotificationService(ReviewNotificationService):
    """
    Notification service that posts review alerts to an HTTP webhook
    """

    def __init__(self, webhook_url: str, timeout: float = 10.0):
        self.webhook_url = webhook_url
        self.timeout = timeout

    async def send_review_alert(self, order: B2BOrder, reason: str) -> bool:
        """
        Send review alert via webhook

        Returns:
            True if webhook call succeeded, False otherwise
        """
        payload = {
            "type": "credit_review",
            "order_id": order.id,
            "shopify_order_id": order.shopify_order_id,
            "company_id": order.company_id,
            "created_by_user_id": order.created_by_user_id,
            "order_total": str(order.order_total),
            "paid_amount": str(order.paid_amount),
            "credit_used": str(order.credit_used),
            "payment_status": order.payment_status.value,
            "order_status": order.order_status.value,
            "reason": reason,
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(self.webhook_url, json=payload)
                response.raise_for_status()
                logger.info(f"Review notification sent for order {order.id} to {self.webhook_url}")
                return True
        except httpx.HTTPError as e:
            logger.error(f"Failed to send review notification for order {order.id}: {e}")
            return False


class CompositeNotificationService(ReviewNotificationService):
    """
    Notification service that delegates to multiple services (log + webhook)
    """

    def __init__(self, services: list[ReviewNotificationService]):
        self.services = services

    async def send_review_alert(self, order: B2BOrder, reason: str) -> bool:
        """
        Returns:
            True if at least one service succeeded, False otherwise
        """
        success = False
        for service in self.services:
            try:
                if await service.send_review_alert(order, reason):
                    success = True
            except Exception as e:
                logger.error(f"Notification service {type(service).__name__} failed: {e}")
        return success


def create_notification_service(webhook_url: Optional[str] = None) -> ReviewNotificationService:
    """
    Factory function to create the review notification service

    Args:
        webhook_url: Optional webhook URL. If provided, creates composite
                     service with logging + webhook. Otherwise, just logging.
    """
    services: list[ReviewNotificationService] = [LoggingNotificationService()]

    if webhook_url:
        services.append(WebhookNotificationService(webhook_url))

    if len(services) == 1:
        return services[0]

    return CompositeNotificationService(services)
