"""Security utilities: webhook signatures and admin access."""

import base64
import hashlib
import hmac
import logging
from typing import Annotated, Optional

from fastapi import Depends, Header, HTTPException, status

from clover_sync.core.config import settings

logger = logging.getLogger(__name__)


def compute_webhook_signature(body: bytes, secret: str) -> str:
    """Base64 HMAC-SHA256 of the raw body, as WooCommerce sends it."""
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("utf-8")


def verify_webhook_signature(body: bytes, signature: Optional[str], secret: Optional[str]) -> bool:
    """Verify the X-WC-Webhook-Signature header.

    Returns True when no secret is configured.
    """
    if not secret:
        logger.warning("WooCommerce webhook secret not set; skipping verification")
        return True
    if not signature:
        return False
    return hmac.compare_digest(compute_webhook_signature(body, secret), signature)


async def require_admin(
    x_admin_key: Annotated[Optional[str], Header()] = None,
) -> bool:
    """Dependency guarding admin endpoints with the X-Admin-Key header.

    With no key configured the endpoints are only reachable in debug mode.
    """
    expected = settings.admin_api_key
    if not expected:
        if settings.debug:
            return True
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin API key not configured",
        )

    if not x_admin_key or not hmac.compare_digest(x_admin_key, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid admin key",
        )
    return True


RequireAdmin = Annotated[bool, Depends(require_admin)]
