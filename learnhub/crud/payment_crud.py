from sqlalchemy.orm import Session, joinedload
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, NamedTuple, Optional
import logging
import secrets
import time

from learnhub.core.database import commit_or_rollback
from learnhub.core.exceptions import (
    AlreadyEnrolledError, AuthorizationDeniedError, NotFoundError, PersistenceError,
    ValidationFailedError
)
from learnhub.core.payments import stripe_service
from learnhub.crud import course_crud, enrollment_crud
from learnhub.models.enrollment_model import Enrollment
from learnhub.models.enums import PaymentGateway, PaymentStatus
from learnhub.models.payment_model import Payment
from learnhub.models.user_model import User

logger = logging.getLogger(__name__)


class PaymentInitiation(NamedTuple):
    payment: Payment
    client_secret: Optional[str]

class PaymentConfirmation(NamedTuple):
    payment: Payment
    enrollment: Optional[Enrollment]
    enrollment_created: bool


def generate_tx_ref() -> str:
    return f"learnhub-{int(time.time())}-{secrets.token_hex(4)}"

def get_payment_by_tx_ref(db: Session, tx_ref: str) -> Optional[Payment]:
    return db.query(Payment).filter(Payment.tx_ref == tx_ref).first()

def initiate_course_payment(db: Session, user: User, course_id: int) -> PaymentInitiation:
    """Records a pending payment for a paid course and opens a Stripe PaymentIntent for it."""
    course = course_crud.get_course_or_raise(db, course_id)
    if not course.is_published:
        raise AuthorizationDeniedError("Course is not open for enrollment.", code="course_unpublished")
    if course.is_free:
        raise ValidationFailedError("This course is free; enroll directly.", code="course_is_free")
    if enrollment_crud.get_active_enrollment(db, user.id, course.id):
        raise AlreadyEnrolledError()

    payment = Payment(
        user_id=user.id,
        course_id=course.id,
        amount=course.price,
        currency=course.currency,
        status=PaymentStatus.PENDING,
        payment_gateway=PaymentGateway.STRIPE,
        tx_ref=generate_tx_ref(),
    )
    db.add(payment)
    commit_or_rollback(db, f"recording payment for course {course.id}")
    db.refresh(payment)

    client_secret = None
    if stripe_service.is_configured():
        intent = stripe_service.create_stripe_payment_intent(
            amount_cents=int((Decimal(payment.amount) * 100).to_integral_value()),
            currency=payment.currency,
            description=f"Enrollment in '{course.title}'",
            metadata={"tx_ref": payment.tx_ref, "user_id": user.id, "course_id": course.id},
        )
        if intent is None:
            payment.status = PaymentStatus.FAILED
            payment.error_message = "Could not create Stripe PaymentIntent"
            commit_or_rollback(db, f"marking payment {payment.tx_ref} failed")
            raise PersistenceError("Payment gateway is unavailable. Please retry.", code="gateway_unavailable")
        payment.payment_intent_id = intent.id
        commit_or_rollback(db, f"linking payment {payment.tx_ref} to intent")
        db.refresh(payment)
        client_secret = intent.client_secret

    logger.info(f"Payment {payment.tx_ref} initiated by user {user.id} for course {course.id}")
    return PaymentInitiation(payment, client_secret)

def confirm_payment(
    db: Session,
    tx_ref: str,
    success: bool,
    payment_intent_id: Optional[str] = None,
    error_message: Optional[str] = None,
) -> PaymentConfirmation:
    """
    Applies the gateway's verdict for `tx_ref`. On success the payment is
    marked succeeded and the enrollment is created in the same commit.
    Replayed confirmations are harmless.
    """
    payment = get_payment_by_tx_ref(db, tx_ref)
    if not payment:
        raise NotFoundError(f"Payment with reference {tx_ref} not found.")

    if not success:
        if payment.status == PaymentStatus.SUCCEEDED:
            logger.warning(f"Ignoring failure notice for already succeeded payment {tx_ref}")
            return PaymentConfirmation(payment, None, False)
        payment.status = PaymentStatus.FAILED
        payment.error_message = error_message
        commit_or_rollback(db, f"marking payment {tx_ref} failed")
        db.refresh(payment)
        logger.info(f"Payment {tx_ref} marked failed")
        return PaymentConfirmation(payment, None, False)

    if payment.user_id is None or payment.course_id is None:
        raise ValidationFailedError(f"Payment {tx_ref} is not linked to a user and course.", code="orphan_payment")

    if payment.status != PaymentStatus.SUCCEEDED:
        payment.status = PaymentStatus.SUCCEEDED
        payment.paid_at = datetime.now(timezone.utc)
        payment.error_message = None
    if payment_intent_id and not payment.payment_intent_id:
        payment.payment_intent_id = payment_intent_id

    enrollment, created = enrollment_crud.create_enrollment_for_payment(
        db, user_id=payment.user_id, course_id=payment.course_id, payment_id=payment.id
    )
    commit_or_rollback(db, f"confirming payment {tx_ref}")
    db.refresh(payment)
    db.refresh(enrollment)
    logger.info(f"Payment {tx_ref} succeeded; enrollment {enrollment.id} {'created' if created else 'already present'}")
    return PaymentConfirmation(payment, enrollment, created)

def get_payments_for_user(db: Session, user_id: int, skip: int = 0, limit: int = 50) -> List[Payment]:
    return (
        db.query(Payment)
        .filter(Payment.user_id == user_id)
        .order_by(Payment.created_at.desc(), Payment.id.desc())
        .offset(skip).limit(limit).all()
    )

def get_recent_payments(db: Session, limit: int = 20) -> List[Payment]:
    return (
        db.query(Payment)
        .options(joinedload(Payment.user), joinedload(Payment.course))
        .order_by(Payment.created_at.desc(), Payment.id.desc())
        .limit(limit).all()
    )
