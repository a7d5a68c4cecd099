from fastapi import APIRouter, BackgroundTasks, Depends, status, Body
from sqlalchemy.orm import Session
import logging

from learnhub.core.database import get_db
from learnhub.core.dependencies import get_current_active_user
from learnhub.core.exceptions import ValidationFailedError
from learnhub.core.security import verify_firebase_id_token
from learnhub.crud import email_domain_crud, user_crud
from learnhub.models.enums import UserRole
from learnhub.models.user_model import User
from learnhub.schemas.admin_schema import EmailDomainList
from learnhub.schemas.user_schema import (
    AuthResponse, TokenData, UserCreateInternal, UserDisplay, UserRegisterRequest, UserUpdate
)
from learnhub.services import email_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/auth", tags=["Authentication"])

@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register_user_after_firebase(
    background_tasks: BackgroundTasks,
    payload: UserRegisterRequest = Body(...),
    db: Session = Depends(get_db)
):
    """
    Register a new student after client-side sign-up with Firebase.
    The email's domain must be on the allowed list.
    """
    token_data: TokenData = verify_firebase_id_token(payload.firebase_id_token)

    if not email_domain_crud.is_email_allowed(db, token_data.email):
        domain = token_data.email.rpartition("@")[2]
        logger.warning(f"Registration rejected for domain {domain}")
        raise ValidationFailedError(
            f"Email domain '{domain}' is not allowed for registration.", code="email_domain_not_allowed"
        )

    user = user_crud.create_user(db, UserCreateInternal(
        firebase_uid=token_data.firebase_uid,
        email=token_data.email,
        full_name=payload.full_name or token_data.name,
        role=UserRole.STUDENT,
    ))
    background_tasks.add_task(email_service.send_welcome_email, user.email, user.display_name)
    return AuthResponse(message="User registered successfully.", user=UserDisplay.model_validate(user))

@router.get("/me", response_model=UserDisplay)
def read_current_user(current_user: User = Depends(get_current_active_user)):
    return current_user

@router.put("/me", response_model=UserDisplay)
def update_current_user(
    user_in: UserUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return user_crud.update_profile(db, current_user, full_name=user_in.full_name)

@router.get("/allowed-email-domains", response_model=EmailDomainList)
def read_allowed_email_domains(db: Session = Depends(get_db)):
    """Public list of email domains accepted at registration."""
    domains = email_domain_crud.list_domains(db)
    return EmailDomainList(domains=domains, count=len(domains))
