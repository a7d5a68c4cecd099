from fastapi import Depends, HTTPException, status, Request
from fastapi.security.utils import get_authorization_scheme_param
from sqlalchemy.orm import Session
import logging

from learnhub.core.database import get_db
from learnhub.core.security import verify_firebase_id_token
from learnhub.crud.user_crud import get_user_by_firebase_uid
from learnhub.crud.course_crud import get_course
from learnhub.models.course_model import Course
from learnhub.models.enums import UserRole
from learnhub.models.user_model import User
from learnhub.schemas.user_schema import TokenData

logger = logging.getLogger(__name__)

async def get_current_user(
    request: Request, db: Session = Depends(get_db)
) -> User:
    """
    Verifies the Firebase ID token from the Authorization header and
    returns the matching local user.
    """
    authorization: str = request.headers.get("Authorization")
    scheme, param = get_authorization_scheme_param(authorization)

    if not authorization or scheme.lower() != "bearer":
        logger.warning("Missing or invalid Bearer token in Authorization header.")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated. Bearer token required.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token_data: TokenData = verify_firebase_id_token(param)

    user = get_user_by_firebase_uid(db, firebase_uid=token_data.firebase_uid)
    if user is None:
        logger.warning(f"User not found in DB for Firebase UID: {token_data.firebase_uid}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account not found or not fully registered in the system.",
        )

    logger.debug(f"Authenticated user retrieved: {user.email} (ID: {user.id})")
    return user


# --- User Status/Role Dependencies ---
async def get_current_active_user(current_user: User = Depends(get_current_user)) -> User:
    if not current_user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account is deactivated.")
    return current_user


def _require_roles(current_user: User, *roles: UserRole) -> User:
    if current_user.role not in {r.value for r in roles}:
        logger.warning(f"Access denied for user {current_user.email} (Role: {current_user.role}); needs {[r.value for r in roles]}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Operation not permitted: requires {' or '.join(r.value for r in roles)} role.",
        )
    return current_user

async def get_current_admin_user(current_user: User = Depends(get_current_active_user)) -> User:
    return _require_roles(current_user, UserRole.ADMIN)

async def get_current_instructor_user(current_user: User = Depends(get_current_active_user)) -> User:
    return _require_roles(current_user, UserRole.INSTRUCTOR, UserRole.ADMIN)


# --- Resource Specific Fetching and Authorization Dependencies ---
def get_course_or_404(course_id: int, db: Session = Depends(get_db)) -> Course:
    course = get_course(db, course_id)
    if not course:
        logger.warning(f"Course with ID {course_id} not found.")
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Course with ID {course_id} not found.")
    return course

async def get_course_owner_or_admin(
    course: Course = Depends(get_course_or_404),
    current_user: User = Depends(get_current_active_user)
) -> Course:
    if current_user.role == UserRole.ADMIN.value or course.instructor_id == current_user.id:
        return course

    logger.warning(f"User {current_user.email} not authorized for course {course.id}. Not admin or instructor.")
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="Not authorized to perform this action on the specified course.",
    )
