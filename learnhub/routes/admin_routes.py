from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from learnhub.core.database import get_db
from learnhub.core.dependencies import get_current_admin_user
from learnhub.crud import analytics_crud, email_domain_crud, payment_crud
from learnhub.crud import user_crud as crud
from learnhub.models.enums import UserRole
from learnhub.models.user_model import User
from learnhub.schemas import admin_schema
from learnhub.schemas import payment_schema
from learnhub.schemas import user_schema as schemas

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/admin", tags=["Admin Panel"])

# --- User Management by Admin ---

class PaginatedUsersAdmin(BaseModel):
    total: int
    users: List[schemas.UserDisplay]
    page: int
    size: int

@router.get("/users", response_model=PaginatedUsersAdmin)
def admin_list_users(
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin_user),
    skip: int = Query(0, ge=0, alias="page_offset"),
    limit: int = Query(20, ge=1, le=200, alias="page_size"),
    email_contains: Optional[str] = Query(None),
    role: Optional[UserRole] = Query(None)
):
    """
    Admin: Get a list of all users with pagination and optional filters.
    """
    logger.info(f"Admin {current_admin.email} listing users. Skip: {skip}, Limit: {limit}")

    filters = {"email_contains": email_contains, "role": role.value if role else None}
    active_filters = {k: v for k, v in filters.items() if v is not None}

    total_users = crud.count_users(db, filters=active_filters)
    users_db = crud.get_users(db, skip=skip, limit=limit, filters=active_filters)

    return PaginatedUsersAdmin(
        total=total_users,
        users=[schemas.UserDisplay.model_validate(user) for user in users_db],
        page=(skip // limit) + 1,
        size=limit,
    )

@router.put("/users/{user_id}/role", response_model=schemas.UserDisplay)
def admin_update_user_role(
    user_id: int,
    role_in: schemas.AdminRoleUpdate,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin_user)
):
    logger.info(f"Admin {current_admin.email} setting role of user {user_id} to {role_in.role.value}")
    return crud.update_user_role(db, user_id, role_in.role)

@router.put("/users/{user_id}/status", response_model=schemas.UserDisplay)
def admin_update_user_status(
    user_id: int,
    status_in: schemas.AdminUserStatusUpdate,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin_user)
):
    logger.info(f"Admin {current_admin.email} setting is_active={status_in.is_active} for user {user_id}")
    return crud.set_user_active(db, user_id, status_in.is_active)

# --- Reporting ---
@router.get("/stats/overview", response_model=admin_schema.PlatformStatsOverview)
def admin_get_platform_stats(
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin_user)
):
    return analytics_crud.get_platform_stats_overview(db)

@router.get("/enrollments/recent", response_model=List[admin_schema.RecentEnrollmentInfo])
def admin_get_recent_enrollments(
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin_user)
):
    return analytics_crud.get_recent_enrollments(db, limit=limit)

@router.get("/payments/recent", response_model=List[payment_schema.PaymentDisplay])
def admin_get_recent_payments(
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin_user)
):
    return payment_crud.get_recent_payments(db, limit=limit)

@router.get("/courses/analytics", response_model=List[admin_schema.CourseAnalyticsInfo])
def admin_get_courses_analytics(
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin_user)
):
    return analytics_crud.get_courses_analytics(db)

# --- Allowed Email Domains ---
@router.get("/email-domains", response_model=List[admin_schema.EmailDomainDisplay])
def admin_list_email_domains(
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin_user)
):
    return email_domain_crud.get_domain_rows(db)

@router.post("/email-domains", response_model=admin_schema.EmailDomainDisplay, status_code=status.HTTP_201_CREATED)
def admin_add_email_domain(
    domain_in: admin_schema.EmailDomainCreate,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin_user)
):
    logger.info(f"Admin {current_admin.email} allowing email domain {domain_in.domain}")
    return email_domain_crud.add_domain(db, domain_in.domain)

@router.delete("/email-domains/{domain}", status_code=status.HTTP_204_NO_CONTENT)
def admin_remove_email_domain(
    domain: str,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin_user)
):
    logger.info(f"Admin {current_admin.email} removing email domain {domain}")
    email_domain_crud.remove_domain(db, domain)
    return None
