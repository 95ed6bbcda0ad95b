from .unit_of_work import UnitOfWork
from .notification_service import ReviewNotificationService
from .order_snapshot_provider import OrderSnapshotProvider

__all__ = [
    "UnitOfWork",
    "ReviewNotificationService",
    "OrderSnapshotProvider",
]
