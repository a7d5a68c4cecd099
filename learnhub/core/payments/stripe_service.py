import stripe # Stripe Python library
import logging
from typing import Optional, Dict, Any

from learnhub.core.config import settings

logger = logging.getLogger(__name__)

# --- Stripe API Configuration ---
if not settings.STRIPE_API_KEY:
    logger.warning("STRIPE_API_KEY not set. Course payments will be recorded without a Stripe PaymentIntent.")
else:
    stripe.api_key = settings.STRIPE_API_KEY

def is_configured() -> bool:
    return bool(settings.STRIPE_API_KEY)

def create_stripe_payment_intent(
    amount_cents: int,
    currency: str,
    description: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> Optional[stripe.PaymentIntent]:
    """
    Creates a Stripe PaymentIntent. The client confirms it with the returned
    client_secret; the outcome arrives later through the webhook.
    """
    if not is_configured():
        return None
    try:
        payment_intent = stripe.PaymentIntent.create(
            amount=amount_cents,
            currency=currency.lower(),
            description=description,
            metadata=metadata or {},
        )
        logger.info(f"Stripe PaymentIntent {payment_intent.id} created. Amount: {amount_cents} {currency.upper()}. Status: {payment_intent.status}")
        return payment_intent
    except stripe.StripeError as e:
        logger.error(f"Error creating Stripe PaymentIntent: {e}", exc_info=True)
        return None

def construct_stripe_webhook_event(payload: bytes, sig_header: str) -> Optional[stripe.Event]:
    """
    Verifies and constructs a Stripe webhook event.
    `payload` is the raw request body, `sig_header` the 'Stripe-Signature' header.
    """
    if not settings.STRIPE_API_KEY or not settings.STRIPE_WEBHOOK_SECRET:
        logger.error("Stripe API key or Webhook secret not configured. Cannot process webhook.")
        return None
    try:
        event = stripe.Webhook.construct_event(payload, sig_header, settings.STRIPE_WEBHOOK_SECRET)
        logger.info(f"Stripe webhook event constructed: ID: {event.id}, Type: {event.type}")
        return event
    except ValueError as e: # Invalid payload
        logger.error(f"Invalid Stripe webhook payload: {e}", exc_info=True)
        return None
    except stripe.SignatureVerificationError as e:
        logger.error(f"Stripe webhook signature verification failed: {e}", exc_info=True)
        return None
