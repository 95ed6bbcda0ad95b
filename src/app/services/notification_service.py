"""Review Notification Service Interface

Defines the contract for alerting merchants about orders flagged for
manual credit review.
"""

from abc import ABC, abstractmethod
from src.domain.b2b_order import B2BOrder


class ReviewNotificationService(ABC):
    """
    Abstract notification service for review alerts

    Implementations can send notifications via:
    - Logging
    - Webhook (HTTP POST)
    """

    @abstractmethod
    async def send_review_alert(self, order: B2BOrder, reason: str) -> bool:
        """
        Send alert for an order that requires manual review

        Args:
            order: The flagged order
            reason: Human-readable cause (evaluator message or error)

        Returns:
            True if notification sent successfully, False otherwise
        """
        pass
