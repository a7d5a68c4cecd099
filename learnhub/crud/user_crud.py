from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
import logging
from typing import List, Optional, Dict, Any

from learnhub.core.database import commit_or_rollback
from learnhub.core.exceptions import ConflictError, NotFoundError
from learnhub.models.user_model import User
from learnhub.models.enums import UserRole
from learnhub.schemas.user_schema import UserCreateInternal

logger = logging.getLogger(__name__)


def _apply_user_filters(query, filters: Optional[Dict[str, Any]] = None):
    if not filters:
        return query

    if filters.get("email_contains"):
        query = query.filter(User.email.ilike(f"%{filters['email_contains']}%"))
    if filters.get("role"):
        query = query.filter(User.role == filters["role"])
    return query

def get_user_by_id(db: Session, user_id: int) -> User | None:
    """Fetches a user by their internal database ID."""
    logger.debug(f"Fetching user by ID: {user_id}")
    return db.query(User).filter(User.id == user_id).first()

def get_user_by_email(db: Session, email: str) -> User | None:
    logger.debug(f"Fetching user by email: {email}")
    return db.query(User).filter(User.email == email).first()

def get_user_by_firebase_uid(db: Session, firebase_uid: str) -> User | None:
    logger.debug(f"Fetching user by Firebase UID: {firebase_uid}")
    return db.query(User).filter(User.firebase_uid == firebase_uid).first()

def create_user(db: Session, user_data: UserCreateInternal) -> User:
    """
    Creates the local user row for a Firebase-verified identity.
    Duplicate UID or email is a conflict.
    """
    logger.info(f"Creating user for email: {user_data.email}")

    if get_user_by_firebase_uid(db, user_data.firebase_uid):
        raise ConflictError("User with this Firebase UID already exists.", code="duplicate_user")
    if get_user_by_email(db, user_data.email):
        raise ConflictError("User with this email already exists.", code="duplicate_user")

    db_user = User(
        firebase_uid=user_data.firebase_uid,
        email=user_data.email,
        full_name=user_data.full_name,
        role=user_data.role.value,
    )
    db.add(db_user)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.warning(f"Concurrent registration for {user_data.email}: {e}")
        raise ConflictError("User with this email already exists.", code="duplicate_user") from e
    db.refresh(db_user)
    logger.info(f"User {db_user.email} created with ID {db_user.id}")
    return db_user

def get_users(db: Session, skip: int = 0, limit: int = 100, filters: Optional[Dict[str, Any]] = None) -> List[User]:
    query = _apply_user_filters(db.query(User), filters)
    return query.order_by(User.created_at.desc(), User.id.desc()).offset(skip).limit(limit).all()

def count_users(db: Session, filters: Optional[Dict[str, Any]] = None) -> int:
    return _apply_user_filters(db.query(User), filters).count()

def update_profile(db: Session, user: User, full_name: Optional[str]) -> User:
    if full_name is not None:
        user.full_name = full_name
    commit_or_rollback(db, f"updating profile of user {user.id}")
    db.refresh(user)
    return user

def update_user_role(db: Session, user_id: int, role: UserRole) -> User:
    user = get_user_by_id(db, user_id)
    if not user:
        raise NotFoundError(f"User with ID {user_id} not found.")
    user.role = role.value
    commit_or_rollback(db, f"updating role of user {user_id}")
    db.refresh(user)
    logger.info(f"User {user.email} role changed to {user.role}")
    return user

def set_user_active(db: Session, user_id: int, is_active: bool) -> User:
    user = get_user_by_id(db, user_id)
    if not user:
        raise NotFoundError(f"User with ID {user_id} not found.")
    user.is_active = is_active
    commit_or_rollback(db, f"updating status of user {user_id}")
    db.refresh(user)
    logger.info(f"User {user.email} active flag set to {is_active}")
    return user
