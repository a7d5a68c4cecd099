from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from learnhub.core.database import get_db
from learnhub.core.dependencies import get_current_active_user
from learnhub.crud import certificate_crud
from learnhub.models.user_model import User
from learnhub.schemas import certificate_schema as schemas
from learnhub.services import email_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/certificates", tags=["Certificates"])

@router.post("/courses/{course_id}", response_model=schemas.CertificateDisplay, status_code=status.HTTP_201_CREATED)
def issue_course_certificate(
    course_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """
    Issue the caller's certificate for a course they have completed.
    Only one certificate is ever issued per enrollment.
    """
    certificate = certificate_crud.issue_certificate(db, current_user, course_id)
    background_tasks.add_task(
        email_service.send_certificate_issued_email,
        current_user.email,
        current_user.display_name,
        certificate.course.title,
        certificate.id,
        certificate.verification_code,
        certificate_crud.format_issue_date(certificate.issue_date),
    )
    return certificate

@router.get("/me", response_model=List[schemas.CertificateDisplay])
def read_my_certificates(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return certificate_crud.get_certificates_for_user(db, current_user.id)

# Public; declared before /{certificate_id} so "verify" is not taken as an id
@router.get("/verify", response_model=schemas.CertificateVerification)
def verify_certificate(
    code: Optional[str] = Query(None, description="Verification code printed on the certificate"),
    certificate_id: Optional[str] = Query(None, alias="id", description="Certificate id, used when no code matches"),
    db: Session = Depends(get_db)
):
    return certificate_crud.verify_certificate(db, code=code, certificate_id=certificate_id)

@router.get("/{certificate_id}", response_model=schemas.CertificateDisplay)
def read_certificate(
    certificate_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return certificate_crud.get_certificate_for_owner(db, current_user, certificate_id)
