"""Tests for course payments and payment confirmation."""

from decimal import Decimal

import pytest
from sqlalchemy.orm import Session

from learnhub.core.exceptions import AlreadyEnrolledError, NotFoundError, ValidationFailedError
from learnhub.crud import payment_crud
from learnhub.models import Enrollment, Payment
from learnhub.models.enums import PaymentStatus


@pytest.fixture
def paid_course(instructor, make_course):
    return make_course(instructor, lessons=2, price="49.99")


class TestInitiatePayment:
    """Tests for initiate_course_payment."""

    def test_records_pending_payment(self, db_session: Session, student, paid_course) -> None:
        """Without Stripe configured the payment is recorded with no client secret."""
        payment, client_secret = payment_crud.initiate_course_payment(db_session, student, paid_course.id)

        assert payment.status == PaymentStatus.PENDING
        assert payment.amount == Decimal("49.99")
        assert payment.tx_ref.startswith("learnhub-")
        assert client_secret is None

    def test_free_course_is_rejected(self, db_session: Session, instructor, student, make_course) -> None:
        """Free courses are enrolled directly."""
        course = make_course(instructor)
        with pytest.raises(ValidationFailedError):
            payment_crud.initiate_course_payment(db_session, student, course.id)

    def test_already_enrolled(self, db_session: Session, student, paid_course, enroll) -> None:
        """Enrolled learners cannot pay again."""
        enroll(student, paid_course)
        with pytest.raises(AlreadyEnrolledError):
            payment_crud.initiate_course_payment(db_session, student, paid_course.id)

    def test_tx_refs_are_unique(self) -> None:
        """Every reference is fresh."""
        assert len({payment_crud.generate_tx_ref() for _ in range(50)}) == 50


class TestConfirmPayment:
    """Tests for confirm_payment."""

    def test_success_creates_enrollment(self, db_session: Session, student, paid_course) -> None:
        """A successful payment marks it paid and enrolls the learner."""
        payment, _ = payment_crud.initiate_course_payment(db_session, student, paid_course.id)

        confirmation = payment_crud.confirm_payment(db_session, payment.tx_ref, success=True, payment_intent_id="pi_123")

        assert confirmation.payment.status == PaymentStatus.SUCCEEDED
        assert confirmation.payment.paid_at is not None
        assert confirmation.payment.payment_intent_id == "pi_123"
        assert confirmation.enrollment_created is True
        assert confirmation.enrollment.payment_id == payment.id
        assert confirmation.enrollment.total_lessons == 2

    def test_replay_is_harmless(self, db_session: Session, student, paid_course) -> None:
        """Confirming twice keeps a single enrollment."""
        payment, _ = payment_crud.initiate_course_payment(db_session, student, paid_course.id)
        payment_crud.confirm_payment(db_session, payment.tx_ref, success=True)

        replay = payment_crud.confirm_payment(db_session, payment.tx_ref, success=True)

        assert replay.enrollment_created is False
        assert db_session.query(Enrollment).filter(Enrollment.user_id == student.id).count() == 1

    def test_failure_marks_failed(self, db_session: Session, student, paid_course) -> None:
        """A failed payment records the error and creates no enrollment."""
        payment, _ = payment_crud.initiate_course_payment(db_session, student, paid_course.id)

        confirmation = payment_crud.confirm_payment(db_session, payment.tx_ref, success=False, error_message="Card declined")

        assert confirmation.payment.status == PaymentStatus.FAILED
        assert confirmation.payment.error_message == "Card declined"
        assert confirmation.enrollment is None
        assert db_session.query(Enrollment).count() == 0

    def test_failure_after_success_is_ignored(self, db_session: Session, student, paid_course) -> None:
        """A late failure notice cannot undo a settled payment."""
        payment, _ = payment_crud.initiate_course_payment(db_session, student, paid_course.id)
        payment_crud.confirm_payment(db_session, payment.tx_ref, success=True)

        late = payment_crud.confirm_payment(db_session, payment.tx_ref, success=False)

        assert late.payment.status == PaymentStatus.SUCCEEDED

    def test_unknown_reference(self, db_session: Session) -> None:
        """Unknown tx_refs are not found."""
        with pytest.raises(NotFoundError):
            payment_crud.confirm_payment(db_session, "learnhub-0-missing", success=True)

    def test_history_lists_own_payments(self, db_session: Session, make_user, student, paid_course) -> None:
        """History only includes the caller's payments."""
        payment_crud.initiate_course_payment(db_session, student, paid_course.id)
        payment_crud.initiate_course_payment(db_session, make_user(), paid_course.id)

        history = payment_crud.get_payments_for_user(db_session, student.id)

        assert [p.user_id for p in history] == [student.id]
        assert db_session.query(Payment).count() == 2
