"""
Certificate issuance and public verification.

Issuance is one-shot per enrollment: a second request is a conflict, not a
no-op. Double issue under concurrency is prevented by the unique
enrollment_id on certificates, the unique certificate_id on enrollments and
a locked pre-check inside the issuing transaction.
"""
from sqlalchemy.orm import Session, joinedload
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from datetime import datetime, timezone
from typing import List, Optional
import logging

from learnhub.core.config import settings
from learnhub.core.exceptions import (
    AuthorizationDeniedError, CertificateAlreadyIssuedError, CourseNotCompletedError,
    NotEnrolledError, NotFoundError, PersistenceError, ValidationFailedError
)
from learnhub.crud import course_crud
from learnhub.models.certificate_model import Certificate, generate_verification_code
from learnhub.models.enrollment_model import Enrollment
from learnhub.models.user_model import User

logger = logging.getLogger(__name__)


def build_certificate_id(enrollment_id: int, issued_at: datetime) -> str:
    return f"LHC-{enrollment_id}-{issued_at:%Y%m%d}"

def add_years(moment: datetime, years: int) -> datetime:
    """Same calendar date `years` later; Feb 29 rolls over to Mar 1."""
    try:
        return moment.replace(year=moment.year + years)
    except ValueError:
        return moment.replace(year=moment.year + years, month=3, day=1)

def format_issue_date(moment: datetime) -> str:
    return f"{moment:%B} {moment.day}, {moment.year}"

def _load_enrollment_for_issue(db: Session, user_id: int, course_id: int) -> Optional[Enrollment]:
    return (
        db.query(Enrollment)
        .filter(
            Enrollment.user_id == user_id,
            Enrollment.course_id == course_id,
            Enrollment.is_active.is_(True),
        )
        .with_for_update()
        .first()
    )

def _certificate_exists_for(db: Session, enrollment_id: int) -> bool:
    return db.query(Certificate.id).filter(Certificate.enrollment_id == enrollment_id).first() is not None

def issue_certificate(db: Session, user: User, course_id: int) -> Certificate:
    """
    Mints the certificate for a completed enrollment and stamps the
    enrollment with its id, in one commit.

    A uniqueness violation caused by a colliding verification code is retried
    with a fresh code; one caused by a concurrent issue becomes a conflict.
    """
    course_crud.get_course_or_raise(db, course_id)

    for attempt in range(1, settings.CERTIFICATE_CODE_MAX_ATTEMPTS + 1):
        enrollment = _load_enrollment_for_issue(db, user.id, course_id)
        if not enrollment:
            raise NotEnrolledError()
        if enrollment.progress < 100:
            raise CourseNotCompletedError(
                f"Course not completed yet ({enrollment.progress:.2f}% done)."
            )
        if enrollment.certificate_id or _certificate_exists_for(db, enrollment.id):
            logger.warning(f"Certificate already issued for enrollment {enrollment.id}")
            raise CertificateAlreadyIssuedError()

        issued_at = datetime.now(timezone.utc)
        certificate = Certificate(
            id=build_certificate_id(enrollment.id, issued_at),
            user_id=user.id,
            course_id=course_id,
            enrollment_id=enrollment.id,
            issue_date=issued_at,
            expiry_date=add_years(issued_at, settings.CERTIFICATE_VALIDITY_YEARS),
            verification_code=generate_verification_code(),
        )
        db.add(certificate)
        enrollment.certificate_id = certificate.id
        enrollment.certificate_issued_at = issued_at
        enrollment_id = enrollment.id

        try:
            db.commit()
        except IntegrityError as e:
            db.rollback()
            if _certificate_exists_for(db, enrollment_id):
                logger.warning(f"Concurrent certificate issue for enrollment {enrollment_id} rejected")
                raise CertificateAlreadyIssuedError() from e
            logger.warning(f"Verification code collision on attempt {attempt} for enrollment {enrollment_id}; retrying")
            continue
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Error issuing certificate for user {user.id}, course {course_id}: {e}", exc_info=True)
            raise PersistenceError("Could not issue the certificate. Please retry.") from e

        db.refresh(certificate)
        logger.info(f"Certificate {certificate.id} issued to user {user.id} for course {course_id}")
        return certificate

    logger.error(f"Could not generate a unique verification code for user {user.id}, course {course_id}")
    raise PersistenceError("Could not issue the certificate. Please retry.")

def get_certificate_by_id(db: Session, certificate_id: str) -> Optional[Certificate]:
    return db.query(Certificate).filter(Certificate.id == certificate_id).first()

def get_certificate_by_verification_code(db: Session, code: str) -> Optional[Certificate]:
    return db.query(Certificate).filter(Certificate.verification_code == code).first()

def get_certificate_for_owner(db: Session, user: User, certificate_id: str) -> Certificate:
    certificate = get_certificate_by_id(db, certificate_id)
    if not certificate:
        raise NotFoundError("Certificate not found.")
    if certificate.user_id != user.id:
        raise AuthorizationDeniedError("This certificate belongs to another user.", code="not_certificate_owner")
    return certificate

def get_certificates_for_user(db: Session, user_id: int) -> List[Certificate]:
    return (
        db.query(Certificate)
        .filter(Certificate.user_id == user_id)
        .order_by(Certificate.issue_date.desc())
        .all()
    )

def verify_certificate(db: Session, code: Optional[str] = None, certificate_id: Optional[str] = None) -> dict:
    """
    Public lookup by verification code, falling back to the certificate id.
    Unknown references are reported as invalid rather than raised.
    """
    code = (code or "").strip()
    certificate_id = (certificate_id or "").strip()
    if not code and not certificate_id:
        raise ValidationFailedError("Provide a verification code or certificate id.", code="missing_reference")

    query = db.query(Certificate).options(joinedload(Certificate.user), joinedload(Certificate.course))
    certificate = None
    if code:
        certificate = query.filter(Certificate.verification_code == code.upper()).first()
    if certificate is None and certificate_id:
        certificate = query.filter(Certificate.id == certificate_id).first()

    if certificate is None:
        logger.info(f"Certificate verification failed for code={code!r} id={certificate_id!r}")
        return {"valid": False, "certificate": None}

    return {
        "valid": True,
        "certificate": {
            "id": certificate.id,
            "student_name": certificate.user.display_name if certificate.user else "Unknown",
            "course_title": certificate.course.title if certificate.course else "Unknown",
            "issue_date": format_issue_date(certificate.issue_date),
            "verification_code": certificate.verification_code,
        },
    }
