from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from datetime import datetime, timezone
from typing import List, NamedTuple
import logging

from learnhub.core.exceptions import PersistenceError, ValidationFailedError
from learnhub.crud import course_crud, enrollment_crud
from learnhub.models.enrollment_model import Enrollment, LessonProgress
from learnhub.models.user_model import User

logger = logging.getLogger(__name__)


class ProgressWriteResult(NamedTuple):
    lesson_progress: LessonProgress
    enrollment: Enrollment
    course_completed: bool # this write stamped the enrollment's completed_at


def record_progress(
    db: Session,
    user: User,
    lesson_id: int,
    time_spent_delta: int = 0,
    completed: bool = False,
) -> ProgressWriteResult:
    """
    Records time spent on a lesson and optionally marks it complete, then
    recomputes the owning enrollment in the same transaction.

    Time spent is always added to the stored total (minutes). The completed
    flag only moves from false to true, and completed_at is stamped on that
    transition alone.
    """
    if time_spent_delta < 0:
        raise ValidationFailedError("time_spent cannot be negative.", code="invalid_time_spent")

    lesson = course_crud.get_lesson_or_raise(db, lesson_id)
    enrollment = enrollment_crud.require_active_enrollment(db, user.id, lesson.course_id)

    now = datetime.now(timezone.utc)
    progress = db.query(LessonProgress).filter(
        LessonProgress.user_id == user.id,
        LessonProgress.lesson_id == lesson.id
    ).first()

    if progress is None:
        logger.info(f"Creating progress for user {user.id} on lesson {lesson.id}")
        progress = LessonProgress(
            user_id=user.id,
            lesson_id=lesson.id,
            course_id=lesson.course_id,
            completed=completed,
            completed_at=now if completed else None,
            time_spent=time_spent_delta,
            last_accessed_at=now,
        )
        db.add(progress)
    else:
        if completed and not progress.completed:
            progress.completed = True
            progress.completed_at = now
        progress.time_spent = (progress.time_spent or 0) + time_spent_delta
        progress.last_accessed_at = now

    enrollment.current_module_id = lesson.module_id
    enrollment.current_lesson_id = lesson.id

    try:
        course_completed = enrollment_crud.recompute_aggregate(db, enrollment)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error saving progress for user {user.id}, lesson {lesson.id}: {e}", exc_info=True)
        raise PersistenceError("Could not save lesson progress. Please retry.") from e

    db.refresh(progress)
    db.refresh(enrollment)
    logger.info(
        f"Progress saved for user {user.id}, lesson {lesson.id}: completed={progress.completed}, "
        f"time_spent={progress.time_spent}; course {lesson.course_id} at {enrollment.progress:.2f}%"
    )
    return ProgressWriteResult(progress, enrollment, course_completed)

def get_lesson_progress(db: Session, user_id: int, lesson_id: int) -> LessonProgress | None:
    return db.query(LessonProgress).filter(
        LessonProgress.user_id == user_id,
        LessonProgress.lesson_id == lesson_id
    ).first()

def get_progress_for_course(db: Session, user_id: int, course_id: int) -> List[LessonProgress]:
    return db.query(LessonProgress).filter(
        LessonProgress.user_id == user_id,
        LessonProgress.course_id == course_id
    ).order_by(LessonProgress.last_accessed_at.desc()).all()
