"""Shopify webhook signature verification

Shopify signs every webhook with base64(HMAC-SHA256(raw body, app secret))
in the X-Shopify-Hmac-Sha256 header. Verification runs on the raw bytes,
before the body is parsed.
"""

import base64
import hashlib
import hmac
import logging
from typing import Optional
from fastapi import Request, status
from libs.result import Error
from src.api.error import ClientError

logger = logging.getLogger(__name__)

HMAC_HEADER = "X-Shopify-Hmac-Sha256"


class AuthenticationFailure(ClientError):
    def __init__(self, reason: str):
        super().__init__(
            Error(code="UNAUTHORIZED", message="Webhook signature verification failed", reason=reason),
            status_code=status.HTTP_401_UNAUTHORIZED,
        )


def compute_shopify_hmac(body: bytes, secret: str) -> str:
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("utf-8")


def is_valid_shopify_hmac(body: bytes, secret: str, received: Optional[str]) -> bool:
    if not secret or not received:
        return False
    return hmac.compare_digest(compute_shopify_hmac(body, secret), received.strip())


async def verify_shopify_hmac(request: Request) -> bytes:
    """
    FastAPI dependency: verify the webhook signature and return the raw body

    Skipped when AUTH_DISABLED is set (local development).

    Raises:
        AuthenticationFailure: Missing or mismatching signature (401)
    """
    body = await request.body()
    config = request.app.state.config

    if config.AUTH_DISABLED:
        return body

    received = request.headers.get(HMAC_HEADER)
    if not received:
        logger.warning(f"Webhook without {HMAC_HEADER} header from {request.headers.get('X-Shopify-Shop-Domain')}")
        raise AuthenticationFailure(f"Missing {HMAC_HEADER} header")

    if not is_valid_shopify_hmac(body, config.SHOPIFY_API_SECRET, received):
        logger.warning(f"Invalid webhook signature from {request.headers.get('X-Shopify-Shop-Domain')}")
        raise AuthenticationFailure("Signature mismatch")

    return body
