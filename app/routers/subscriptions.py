import logging
from typing import Annotated

import stripe
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth import get_current_user, get_user_by_id
from app.config import get_settings
from app.database import get_db
from app.models import User
from app.schemas import CheckoutResponse, SubscriptionStatus, WebhookAck

router = APIRouter(prefix="/api/subscriptions", tags=["subscriptions"])
settings = get_settings()
logger = logging.getLogger(__name__)

CHECKOUT_COMPLETED = "checkout.session.completed"


def require_billing() -> None:
    if not settings.billing_enabled:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Payments are not configured",
        )
    stripe.api_key = settings.stripe_secret_key


async def ensure_stripe_customer(db: AsyncSession, user: User) -> str:
    """Return the user's Stripe customer id, creating the customer on first checkout."""
    if user.stripe_customer_id:
        return user.stripe_customer_id

    customer = await run_in_threadpool(
        stripe.Customer.create,
        email=user.email or None,
        name=user.display_name or user.username,
        metadata={"userId": str(user.id)},
    )
    user.stripe_customer_id = customer["id"]
    await db.flush()
    return user.stripe_customer_id


@router.post("/create-checkout", response_model=CheckoutResponse, dependencies=[Depends(require_billing)])
async def create_checkout(
    request: Request,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Start a one-time payment for lifetime premium access."""
    base_url = str(request.base_url).rstrip("/")
    try:
        customer_id = await ensure_stripe_customer(db, current_user)
        session = await run_in_threadpool(
            stripe.checkout.Session.create,
            payment_method_types=["card"],
            line_items=[
                {
                    "price_data": {
                        "currency": settings.premium_currency,
                        "product_data": {
                            "name": settings.premium_product_name,
                            "description": settings.premium_product_description,
                        },
                        "unit_amount": settings.premium_price_cents,
                    },
                    "quantity": 1,
                }
            ],
            mode="payment",
            success_url=f"{base_url}/subscription-success",
            cancel_url=f"{base_url}/subscribe",
            customer=customer_id,
            metadata={"userId": str(current_user.id)},
        )
    except stripe.StripeError as exc:
        logger.error("Stripe checkout failed for user %s: %s", current_user.id, exc)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Failed to create checkout session",
        )

    return CheckoutResponse(url=session["url"])


@router.post("/webhook", response_model=WebhookAck)
async def stripe_webhook(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Activate premium access once Stripe reports a completed checkout."""
    signature = request.headers.get("stripe-signature")
    if not signature or not settings.stripe_webhook_secret:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing Stripe signature",
        )

    payload = await request.body()
    try:
        event = stripe.Webhook.construct_event(payload, signature, settings.stripe_webhook_secret)
    except (ValueError, stripe.SignatureVerificationError) as exc:
        logger.warning("Webhook signature verification failed: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Webhook signature verification failed",
        )

    if event["type"] == CHECKOUT_COMPLETED:
        session = event["data"]["object"]
        metadata = session.get("metadata") or {}
        user_id = metadata.get("userId")
        if user_id and str(user_id).isdigit():
            user = await get_user_by_id(db, int(user_id))
            if user is None:
                logger.warning("Checkout completed for unknown user %s", user_id)
            else:
                # one-time payment: lifetime access, no expiry
                user.is_subscribed = True
                user.subscription_expiry = None
                await db.flush()
                logger.info("User %s subscription activated", user.id)

    return WebhookAck(received=True)


@router.get("/status", response_model=SubscriptionStatus)
async def subscription_status(
    current_user: Annotated[User, Depends(get_current_user)],
):
    """Report whether the current user has premium access."""
    return SubscriptionStatus(
        is_subscribed=current_user.is_subscribed,
        subscription_expiry=current_user.subscription_expiry,
    )
