"""
Enrollment ledger.

An Enrollment's aggregate fields are always derived from durable
LessonProgress rows by `recompute_aggregate`; nothing else writes them.
"""
from sqlalchemy.orm import Session, joinedload
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy import func
from datetime import datetime, timezone
from typing import List, Optional, Tuple
import logging

from learnhub.core.database import commit_or_rollback
from learnhub.core.exceptions import (
    AlreadyEnrolledError, AuthorizationDeniedError, NotEnrolledError, PersistenceError
)
from learnhub.crud import course_crud
from learnhub.models.course_model import Course, CourseModule, Lesson
from learnhub.models.enrollment_model import Enrollment, LessonProgress
from learnhub.models.user_model import User
from learnhub.schemas.enrollment_schema import LessonProgressDisplay

logger = logging.getLogger(__name__)


def get_enrollment(db: Session, user_id: int, course_id: int) -> Optional[Enrollment]:
    return db.query(Enrollment).filter(
        Enrollment.user_id == user_id,
        Enrollment.course_id == course_id
    ).first()

def get_active_enrollment(db: Session, user_id: int, course_id: int, lock: bool = False) -> Optional[Enrollment]:
    query = db.query(Enrollment).filter(
        Enrollment.user_id == user_id,
        Enrollment.course_id == course_id,
        Enrollment.is_active.is_(True)
    )
    if lock:
        query = query.with_for_update()
    return query.first()

def require_active_enrollment(db: Session, user_id: int, course_id: int, lock: bool = False) -> Enrollment:
    enrollment = get_active_enrollment(db, user_id, course_id, lock=lock)
    if not enrollment:
        logger.warning(f"User {user_id} has no active enrollment in course {course_id}")
        raise NotEnrolledError()
    return enrollment

def recompute_aggregate(db: Session, enrollment: Enrollment) -> bool:
    """
    Recomputes progress, lesson counts and time spent from persisted rows.

    Flushes pending writes first so the counts include them, but does not
    commit; the caller owns the transaction. Returns True only when this call
    stamped the course completion time.
    """
    db.flush()

    total = course_crud.count_course_lessons(db, enrollment.course_id)

    # Joining through the course's modules keeps completed <= total
    completed = (
        db.query(func.count(LessonProgress.id))
        .join(Lesson, LessonProgress.lesson_id == Lesson.id)
        .join(CourseModule, Lesson.module_id == CourseModule.id)
        .filter(
            CourseModule.course_id == enrollment.course_id,
            LessonProgress.user_id == enrollment.user_id,
            LessonProgress.completed.is_(True),
        )
        .scalar()
    ) or 0

    time_spent = db.query(func.coalesce(func.sum(LessonProgress.time_spent), 0)).filter(
        LessonProgress.user_id == enrollment.user_id,
        LessonProgress.course_id == enrollment.course_id,
    ).scalar() or 0

    now = datetime.now(timezone.utc)
    enrollment.total_lessons = total
    enrollment.completed_lessons = completed
    enrollment.time_spent = int(time_spent)
    enrollment.progress = (completed / total * 100) if total > 0 else 0.0
    enrollment.last_activity_at = now

    newly_completed = False
    if enrollment.progress >= 100 and enrollment.completed_at is None:
        enrollment.completed_at = now
        newly_completed = True
        logger.info(f"Enrollment {enrollment.id}: user {enrollment.user_id} completed course {enrollment.course_id}")

    db.flush()
    logger.debug(f"Enrollment {enrollment.id} aggregate: {completed}/{total} lessons, {enrollment.progress:.2f}%")
    return newly_completed

def refresh_enrollment_progress(db: Session, user_id: int, course_id: int) -> Enrollment:
    """Committing wrapper around `recompute_aggregate` for one (user, course)."""
    enrollment = require_active_enrollment(db, user_id, course_id)
    recompute_aggregate(db, enrollment)
    commit_or_rollback(db, f"recomputing enrollment {enrollment.id}")
    db.refresh(enrollment)
    return enrollment

def enroll_free(db: Session, user: User, course_id: int) -> Enrollment:
    """Direct enrollment; only published free courses. Paid courses go through payments."""
    course = course_crud.get_course_or_raise(db, course_id)
    if not course.is_published:
        raise AuthorizationDeniedError("Course is not open for enrollment.", code="course_unpublished")
    if not course.is_free:
        raise AuthorizationDeniedError("This course requires payment before enrollment.", code="payment_required")
    if get_enrollment(db, user.id, course.id):
        raise AlreadyEnrolledError()

    enrollment = Enrollment(user_id=user.id, course_id=course.id, is_active=True)
    db.add(enrollment)
    try:
        recompute_aggregate(db, enrollment)
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.warning(f"Duplicate enrollment race for user {user.id}, course {course.id}: {e}")
        raise AlreadyEnrolledError() from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error enrolling user {user.id} in course {course.id}: {e}", exc_info=True)
        raise PersistenceError("Could not create the enrollment. Please retry.") from e

    db.refresh(enrollment)
    logger.info(f"User {user.id} enrolled in free course {course.id} (enrollment {enrollment.id})")
    return enrollment

def create_enrollment_for_payment(db: Session, user_id: int, course_id: int,
                                  payment_id: Optional[int]) -> Tuple[Enrollment, bool]:
    """
    Grants access after a confirmed payment. Idempotent: an existing
    enrollment is reactivated and returned. Does not commit.
    """
    enrollment = get_enrollment(db, user_id, course_id)
    if enrollment:
        if not enrollment.is_active:
            enrollment.is_active = True
            logger.info(f"Enrollment {enrollment.id} reactivated by payment {payment_id}")
        return enrollment, False

    enrollment = Enrollment(user_id=user_id, course_id=course_id, payment_id=payment_id, is_active=True)
    db.add(enrollment)
    recompute_aggregate(db, enrollment)
    logger.info(f"Enrollment created for user {user_id}, course {course_id} from payment {payment_id}")
    return enrollment, True

def list_enrollments_for_user(db: Session, user_id: int) -> List[Enrollment]:
    return (
        db.query(Enrollment)
        .options(joinedload(Enrollment.course))
        .filter(Enrollment.user_id == user_id, Enrollment.is_active.is_(True))
        .order_by(Enrollment.enrolled_at.desc(), Enrollment.id.desc())
        .all()
    )

def get_course_progress_detail(db: Session, user: User, course_id: int) -> dict:
    course: Course = course_crud.get_course_or_raise(db, course_id)
    enrollment = require_active_enrollment(db, user.id, course.id)

    lessons = db.query(LessonProgress).filter(
        LessonProgress.user_id == user.id,
        LessonProgress.course_id == course.id
    ).order_by(LessonProgress.lesson_id).all()

    return {
        "course_id": course.id,
        "course_title": course.title,
        "progress": enrollment.progress,
        "total_lessons": enrollment.total_lessons,
        "completed_lessons": enrollment.completed_lessons,
        "remaining_lessons": max(enrollment.total_lessons - enrollment.completed_lessons, 0),
        "time_spent_minutes": enrollment.time_spent,
        "time_spent_hours": round(enrollment.time_spent / 60, 2),
        "completed_at": enrollment.completed_at,
        "certificate_id": enrollment.certificate_id,
        "lessons": [LessonProgressDisplay.model_validate(p) for p in lessons],
    }
