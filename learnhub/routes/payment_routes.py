from fastapi import APIRouter, BackgroundTasks, Depends, Header, HTTPException, Query, Request, status
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from learnhub.core.database import get_db
from learnhub.core.dependencies import get_current_active_user, get_current_admin_user
from learnhub.core.payments import stripe_service
from learnhub.crud import payment_crud
from learnhub.crud.payment_crud import PaymentConfirmation
from learnhub.models.user_model import User
from learnhub.schemas import payment_schema as schemas
from learnhub.services import email_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/payments", tags=["Payments"])


def _schedule_enrollment_email(background_tasks: BackgroundTasks, confirmation: PaymentConfirmation) -> None:
    if not confirmation.enrollment_created:
        return
    payment = confirmation.payment
    background_tasks.add_task(
        email_service.send_enrollment_confirmation_email,
        payment.user.email, payment.user.display_name, payment.course.title, payment.course_id
    )

@router.post("/initiate", response_model=schemas.PaymentInitiateResponse, status_code=status.HTTP_201_CREATED)
def initiate_payment(
    payment_in: schemas.PaymentInitiateRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """
    Start paying for a course. Returns the Stripe client secret the frontend
    confirms the card payment with; enrollment happens when Stripe reports success.
    """
    payment, client_secret = payment_crud.initiate_course_payment(db, current_user, payment_in.course_id)
    return schemas.PaymentInitiateResponse(
        tx_ref=payment.tx_ref,
        amount=payment.amount,
        currency=payment.currency,
        status=payment.status,
        client_secret=client_secret,
        payment_intent_id=payment.payment_intent_id,
    )

# --- Stripe Webhook Endpoint ---
@router.post("/webhook/stripe", include_in_schema=False)
async def webhook_stripe(
    request: Request,
    background_tasks: BackgroundTasks,
    stripe_signature: Optional[str] = Header(None, alias="Stripe-Signature"),
    db: Session = Depends(get_db)
):
    if not stripe_signature:
        logger.warning("Missing Stripe-Signature header in webhook.")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing Stripe-Signature header.")

    payload_bytes = await request.body()
    event = stripe_service.construct_stripe_webhook_event(payload_bytes, stripe_signature)
    if not event:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid Stripe webhook event.")

    event_type = event["type"]
    intent = event["data"]["object"]
    tx_ref = (intent.get("metadata") or {}).get("tx_ref")
    logger.info(f"Received Stripe webhook event: ID: {event['id']}, Type: {event_type}, tx_ref: {tx_ref}")

    if event_type not in ("payment_intent.succeeded", "payment_intent.payment_failed"):
        logger.info(f"Unhandled Stripe event type: {event_type}")
        return {"status": "ignored"}
    if not tx_ref:
        logger.warning(f"Stripe event {event['id']} carries no tx_ref metadata; ignoring.")
        return {"status": "ignored"}

    if event_type == "payment_intent.succeeded":
        confirmation = payment_crud.confirm_payment(db, tx_ref, success=True, payment_intent_id=intent.get("id"))
        _schedule_enrollment_email(background_tasks, confirmation)
    else:
        error = intent.get("last_payment_error") or {}
        payment_crud.confirm_payment(
            db, tx_ref, success=False, payment_intent_id=intent.get("id"), error_message=error.get("message")
        )
    return {"status": "success"}

@router.post("/{tx_ref}/confirm", response_model=schemas.PaymentDisplay)
def confirm_payment_manually(
    tx_ref: str,
    background_tasks: BackgroundTasks,
    success: bool = Query(True),
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin_user)
):
    """Admin: record the outcome of a payment settled outside the webhook."""
    logger.info(f"Admin {current_admin.email} confirming payment {tx_ref} (success={success})")
    confirmation = payment_crud.confirm_payment(
        db, tx_ref, success=success, error_message=None if success else "Marked failed by admin"
    )
    _schedule_enrollment_email(background_tasks, confirmation)
    return confirmation.payment

# --- Payment History ---
@router.get("/history", response_model=List[schemas.PaymentDisplay])
def get_my_payment_history(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return payment_crud.get_payments_for_user(db, current_user.id, skip=skip, limit=limit)
