"""Tests for certificate issuance and verification."""

from datetime import datetime, timezone

import pytest
from sqlalchemy.orm import Session

from learnhub.core.database import SessionLocal
from learnhub.core.exceptions import (
    AuthorizationDeniedError, CertificateAlreadyIssuedError, CourseNotCompletedError,
    NotEnrolledError, NotFoundError, PersistenceError, ValidationFailedError
)
from learnhub.crud import certificate_crud, lesson_progress_crud
from learnhub.models import Certificate, User


@pytest.fixture
def completed_course(db_session: Session, instructor, student, make_course, enroll):
    """A two-lesson course the student has fully completed."""
    course = make_course(instructor, lessons=2)
    enroll(student, course)
    for lesson in course.modules[0].lessons:
        lesson_progress_crud.record_progress(db_session, student, lesson.id, completed=True)
    return course


class TestIssueCertificate:
    """Tests for issue_certificate."""

    def test_full_cycle(self, db_session: Session, instructor, student, make_course, enroll) -> None:
        """0 -> 50 -> 100, then the first issue succeeds and the second conflicts."""
        course = make_course(instructor, lessons=2)
        enroll(student, course)
        first, second = course.modules[0].lessons

        assert lesson_progress_crud.record_progress(db_session, student, first.id, completed=True).enrollment.progress == 50
        result = lesson_progress_crud.record_progress(db_session, student, second.id, completed=True)
        assert result.enrollment.progress == 100
        assert result.enrollment.completed_at is not None

        certificate = certificate_crud.issue_certificate(db_session, student, course.id)
        assert certificate.verification_code
        assert certificate.enrollment_id == result.enrollment.id

        with pytest.raises(CertificateAlreadyIssuedError):
            certificate_crud.issue_certificate(db_session, student, course.id)
        assert db_session.query(Certificate).count() == 1

    def test_stamps_enrollment(self, db_session: Session, student, completed_course) -> None:
        """The enrollment records the certificate id and issue time."""
        certificate = certificate_crud.issue_certificate(db_session, student, completed_course.id)

        enrollment = certificate.enrollment
        assert enrollment.certificate_id == certificate.id
        assert enrollment.certificate_issued_at is not None
        assert certificate.id.startswith(f"LHC-{enrollment.id}-")

    def test_expiry_is_two_years_out(self, db_session: Session, student, completed_course) -> None:
        """Certificates expire after the configured validity period."""
        certificate = certificate_crud.issue_certificate(db_session, student, completed_course.id)

        assert certificate.expiry_date.year == certificate.issue_date.year + 2

    def test_incomplete_course(self, db_session: Session, instructor, student, make_course, enroll) -> None:
        """Partial progress is a validation error."""
        course = make_course(instructor, lessons=2)
        enroll(student, course)
        lesson_progress_crud.record_progress(db_session, student, course.modules[0].lessons[0].id, completed=True)

        with pytest.raises(CourseNotCompletedError) as exc_info:
            certificate_crud.issue_certificate(db_session, student, course.id)
        assert exc_info.value.status_code == 400
        assert db_session.query(Certificate).count() == 0

    def test_not_enrolled(self, db_session: Session, instructor, student, make_course) -> None:
        """Only enrolled learners can receive a certificate."""
        course = make_course(instructor)
        with pytest.raises(NotEnrolledError):
            certificate_crud.issue_certificate(db_session, student, course.id)

    def test_missing_course(self, db_session: Session, student) -> None:
        """Unknown courses are not found."""
        with pytest.raises(NotFoundError):
            certificate_crud.issue_certificate(db_session, student, 777)

    def test_retries_on_code_collision(self, db_session: Session, make_user, student, completed_course,
                                       instructor, make_course, enroll, monkeypatch) -> None:
        """A clashing verification code is replaced with a fresh one."""
        other = make_user()
        other_course = make_course(instructor, lessons=1)
        enroll(other, other_course)
        lesson_progress_crud.record_progress(db_session, other, other_course.modules[0].lessons[0].id, completed=True)
        monkeypatch.setattr(certificate_crud, "generate_verification_code", lambda: "AAAAAAAAAAAA")
        certificate_crud.issue_certificate(db_session, other, other_course.id)

        codes = iter(["AAAAAAAAAAAA", "BBBBBBBBBBBB"])
        monkeypatch.setattr(certificate_crud, "generate_verification_code", lambda: next(codes))
        certificate = certificate_crud.issue_certificate(db_session, student, completed_course.id)

        assert certificate.verification_code == "BBBBBBBBBBBB"
        assert db_session.query(Certificate).count() == 2

    def test_gives_up_after_max_attempts(self, db_session: Session, make_user, student, completed_course,
                                         instructor, make_course, enroll, monkeypatch) -> None:
        """Persistent collisions surface as a retryable persistence error."""
        other = make_user()
        other_course = make_course(instructor, lessons=1)
        enroll(other, other_course)
        lesson_progress_crud.record_progress(db_session, other, other_course.modules[0].lessons[0].id, completed=True)
        monkeypatch.setattr(certificate_crud, "generate_verification_code", lambda: "SAMECODE0000")
        certificate_crud.issue_certificate(db_session, other, other_course.id)

        with pytest.raises(PersistenceError) as exc_info:
            certificate_crud.issue_certificate(db_session, student, completed_course.id)
        assert exc_info.value.retryable is True
        assert db_session.query(Certificate).count() == 1


    def test_concurrent_issue_is_a_conflict(self, db_session: Session, student, completed_course,
                                            monkeypatch) -> None:
        """When another session issues between the pre-check and the commit, this one conflicts."""
        course_id, student_id = completed_course.id, student.id
        real_exists = certificate_crud._certificate_exists_for
        issued_elsewhere = []

        def check_then_issue_elsewhere(db, enrollment_id):
            exists = real_exists(db, enrollment_id)
            if not issued_elsewhere:
                issued_elsewhere.append(True)
                other = SessionLocal()
                try:
                    certificate_crud.issue_certificate(other, other.get(User, student_id), course_id)
                finally:
                    other.close()
            return exists

        monkeypatch.setattr(certificate_crud, "_certificate_exists_for", check_then_issue_elsewhere)

        with pytest.raises(CertificateAlreadyIssuedError):
            certificate_crud.issue_certificate(db_session, student, course_id)

        assert db_session.query(Certificate).filter(Certificate.user_id == student_id).count() == 1

class TestVerifyCertificate:
    """Tests for verify_certificate."""

    def test_by_code(self, db_session: Session, student, completed_course) -> None:
        """A known code returns the public view."""
        certificate = certificate_crud.issue_certificate(db_session, student, completed_course.id)

        result = certificate_crud.verify_certificate(db_session, code=certificate.verification_code.lower())

        assert result["valid"] is True
        assert result["certificate"]["student_name"] == "Sam Student"
        assert result["certificate"]["course_title"] == completed_course.title

    def test_falls_back_to_id(self, db_session: Session, student, completed_course) -> None:
        """An unknown code still matches on the certificate id."""
        certificate = certificate_crud.issue_certificate(db_session, student, completed_course.id)

        result = certificate_crud.verify_certificate(db_session, code="NOPE", certificate_id=certificate.id)

        assert result["valid"] is True
        assert result["certificate"]["id"] == certificate.id

    def test_unknown_reference(self, db_session: Session) -> None:
        """Unknown references are reported invalid, not raised."""
        assert certificate_crud.verify_certificate(db_session, code="DOESNOTEXIST") == {"valid": False, "certificate": None}

    def test_missing_reference(self, db_session: Session) -> None:
        """Either a code or an id must be given."""
        with pytest.raises(ValidationFailedError):
            certificate_crud.verify_certificate(db_session, code="  ")


class TestCertificateHelpers:
    """Tests for certificate helper functions."""

    def test_add_years_handles_leap_day(self) -> None:
        """Feb 29 rolls over to Mar 1 in a non-leap year."""
        moment = datetime(2024, 2, 29, 12, 0, tzinfo=timezone.utc)
        assert certificate_crud.add_years(moment, 2) == datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

    def test_format_issue_date(self) -> None:
        """Issue dates render as long-form dates."""
        assert certificate_crud.format_issue_date(datetime(2026, 1, 2, tzinfo=timezone.utc)) == "January 2, 2026"

    def test_owner_only_lookup(self, db_session: Session, make_user, student, completed_course) -> None:
        """Another user cannot read someone else's certificate."""
        certificate = certificate_crud.issue_certificate(db_session, student, completed_course.id)
        with pytest.raises(AuthorizationDeniedError):
            certificate_crud.get_certificate_for_owner(db_session, make_user(), certificate.id)
