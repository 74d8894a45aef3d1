"""
Webhook endpoints.

A platform notifying us of new data (e.g. a BigCommerce order webhook)
drops the cached entries for that platform.
"""

import hmac
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException
from pydantic import BaseModel

from backend.config import get_webhook_secret
from backend.routers.dashboard import get_aggregator
from backend.services.data_aggregator import PLATFORMS, DataAggregator

router = APIRouter()


class WebhookEvent(BaseModel):
    """Webhook body; only used for logging."""
    scope: Optional[str] = None
    store_id: Optional[str | int] = None
    data: dict = {}


def verify_secret(x_webhook_secret: Optional[str] = Header(None)):
    """Check the shared secret when one is configured."""
    secret = get_webhook_secret()
    if secret is None:
        return
    if not x_webhook_secret or not hmac.compare_digest(x_webhook_secret, secret):
        raise HTTPException(status_code=401, detail="Invalid webhook secret")


@router.post("/{platform}", dependencies=[Depends(verify_secret)])
async def receive_webhook(
    platform: str,
    event: Optional[WebhookEvent] = None,
    aggregator: DataAggregator = Depends(get_aggregator),
):
    """Invalidate cached data for a platform."""
    if platform not in PLATFORMS:
        raise HTTPException(status_code=404, detail=f"Unknown platform: {platform}")

    scope = event.scope if event else None
    print(f"[Webhook] {platform} event received (scope: {scope or 'n/a'})")

    removed = aggregator.invalidate_cache(platform)
    return {"received": True, "platform": platform, "invalidated": removed}
