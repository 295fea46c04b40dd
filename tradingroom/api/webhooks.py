"""
Stripe webhook endpoint.

Verifies the ``Stripe-Signature`` header against STRIPE_WEBHOOK_SECRET and
hands the event to ``SubscriptionSyncService``. Events that cannot be tied
to a user are acknowledged so Stripe does not retry them forever.
"""
import json
import logging
from typing import Optional

import stripe
from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from sqlalchemy.orm import Session

from tradingroom.db.database import get_db
from tradingroom.services.subscription_service import SubscriptionSyncService
from tradingroom.utils.runtime import stripe_webhook_secret

logger = logging.getLogger("tradingroom.webhooks")

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@router.post("/stripe")
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(default=None, alias="Stripe-Signature"),
    db: Session = Depends(get_db),
):
    secret = stripe_webhook_secret()
    if not secret:
        logger.error("STRIPE_WEBHOOK_SECRET is not configured; rejecting webhook")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Webhook secret not configured")
    if not stripe_signature:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing Stripe-Signature header")

    body = await request.body()
    try:
        payload = body.decode("utf-8")
    except UnicodeDecodeError:
        logger.warning("Stripe webhook body is not valid UTF-8 (%d bytes)", len(body))
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid payload")
    try:
        stripe.Webhook.construct_event(payload, stripe_signature, secret)
    except stripe.SignatureVerificationError as e:
        logger.warning("Stripe webhook signature verification failed: %s", e)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid signature")
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid payload")

    # Work on the plain JSON body once the signature checks out
    event = json.loads(payload)
    logger.info("Received Stripe event type=%s id=%s", event.get("type"), event.get("id"))
    result = SubscriptionSyncService(db).handle_event(event)
    return {"received": True, "handled": result.get("handled", False)}
