"""Shopify Webhook Routes

Order lifecycle webhooks. Every verified delivery is acknowledged with 200
except a write conflict that persisted after retry (503, Shopify redelivers).
"""

import json
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Header, status
from sqlmodel.ext.asyncio.session import AsyncSession

from src.app.services.notification_service import ReviewNotificationService
from src.app.services.order_snapshot_provider import OrderSnapshotProvider
from src.app.use_cases.webhooks.dtos import OrderWebhookCommandDTO, WebhookOutcomeDTO
from src.app.use_cases.webhooks.reconcile_order_event import ReconcileOrderEvent
from src.adapter.repositories.b2b_order_repository import SqlAlchemyB2BOrderRepository
from src.adapter.repositories.company_account_repository import SqlAlchemyCompanyAccountRepository
from src.adapter.repositories.credit_transaction_repository import SqlAlchemyCreditTransactionRepository
from src.adapter.repositories.portal_user_repository import SqlAlchemyPortalUserRepository
from src.adapter.repositories.store_repository import SqlAlchemyStoreRepository
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.depends import get_order_snapshot_provider, get_review_notifier, get_session
from src.api.error import ClientError
from src.api.security import verify_shopify_hmac

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["Webhooks"])


@router.post(
    "/orders",
    response_model=WebhookOutcomeDTO,
    status_code=status.HTTP_200_OK,
    responses={
        401: {"description": "Invalid webhook signature"},
        503: {
            "description": "Concurrent credit update persisted after retry; Shopify will redeliver",
            "content": {
                "application/json": {
                    "example": {
                        "error": {
                            "code": "LEDGER_WRITE_CONFLICT",
                            "message": "Concurrent credit update on gid://shopify/Order/820982911946154508"
                        }
                    }
                }
            }
        },
    }
)
async def receive_order_webhook(
    raw_body: bytes = Depends(verify_shopify_hmac),
    x_shopify_topic: str = Header(...),
    x_shopify_shop_domain: str = Header(...),
    x_shopify_webhook_id: Optional[str] = Header(default=None),
    session: AsyncSession = Depends(get_session),
    notifier: ReviewNotificationService = Depends(get_review_notifier),
    snapshot_provider: Optional[OrderSnapshotProvider] = Depends(get_order_snapshot_provider),
):
    """
    Reconcile an ORDERS_CREATE / ORDERS_UPDATED / ORDERS_EDITED (also
    ORDERS_CANCELLED, ORDERS_PAID) delivery with the credit ledger.

    **Headers:**
    - `X-Shopify-Topic`: e.g. `orders/updated`
    - `X-Shopify-Shop-Domain`: `<shop>.myshopify.com`
    - `X-Shopify-Hmac-Sha256`: base64 HMAC-SHA256 of the raw body

    **Returns:**
    - 200: Delivery acknowledged (including ignored and failed-but-flagged outcomes)
    - 401: Signature verification failed
    - 503: Persistent write conflict
    """
    try:
        payload = json.loads(raw_body or b"{}")
    except ValueError:
        logger.warning(f"Non-JSON {x_shopify_topic} webhook from {x_shopify_shop_domain}; acknowledged")
        return WebhookOutcomeDTO(topic=x_shopify_topic, action="ignored", message="Body is not JSON")

    command = OrderWebhookCommandDTO(
        topic=x_shopify_topic,
        shop_domain=x_shopify_shop_domain.strip().lower(),
        payload=payload if isinstance(payload, dict) else {},
        webhook_id=x_shopify_webhook_id,
    )

    use_case = ReconcileOrderEvent(
        uow=SqlAlchemyUnitOfWork(session),
        store_repo=SqlAlchemyStoreRepository(session),
        company_repo=SqlAlchemyCompanyAccountRepository(session),
        user_repo=SqlAlchemyPortalUserRepository(session),
        order_repo=SqlAlchemyB2BOrderRepository(session),
        transaction_repo=SqlAlchemyCreditTransactionRepository(session),
        notifier=notifier,
        snapshot_provider=snapshot_provider,
    )
    result = await use_case.execute(command)

    if result.is_err():
        if result.error.code == "LEDGER_WRITE_CONFLICT":
            raise ClientError(result.error, status_code=status.HTTP_503_SERVICE_UNAVAILABLE)
        raise ClientError(result.error, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)

    return result.value
