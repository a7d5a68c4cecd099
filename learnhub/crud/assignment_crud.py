from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from datetime import datetime, timezone
from typing import List, Optional, Tuple
import logging

from learnhub.core.database import commit_or_rollback
from learnhub.core.exceptions import (
    AuthorizationDeniedError, DuplicateSubmissionError, GradeOutOfRangeError,
    NotFoundError, PersistenceError, StorageUnavailableError, ValidationFailedError
)
from learnhub.crud import course_crud, enrollment_crud
from learnhub.models.assignment_model import Assignment, AssignmentSubmission
from learnhub.models.user_model import User
from learnhub.schemas import assignment_schema as schemas
from learnhub.services import storage_service

logger = logging.getLogger(__name__)


# --- Authoring ---
def get_assignment(db: Session, assignment_id: int) -> Optional[Assignment]:
    return db.query(Assignment).filter(Assignment.id == assignment_id).first()

def get_assignment_or_raise(db: Session, assignment_id: int) -> Assignment:
    assignment = get_assignment(db, assignment_id)
    if not assignment:
        raise NotFoundError(f"Assignment with ID {assignment_id} not found.")
    return assignment

def create_assignment(db: Session, instructor: User, course_id: int,
                      assignment_in: schemas.AssignmentCreate) -> Assignment:
    course = course_crud.get_course_or_raise(db, course_id)
    course_crud.require_course_instructor(course, instructor, allow_admin=True)
    assignment = Assignment(course_id=course.id, **assignment_in.model_dump())
    db.add(assignment)
    commit_or_rollback(db, f"creating assignment for course {course.id}")
    db.refresh(assignment)
    logger.info(f"Assignment '{assignment.title}' (ID: {assignment.id}) created in course {course.id}")
    return assignment

def update_assignment(db: Session, instructor: User, assignment_id: int,
                      assignment_in: schemas.AssignmentUpdate) -> Assignment:
    assignment = get_assignment_or_raise(db, assignment_id)
    course_crud.require_course_instructor(assignment.course, instructor, allow_admin=True)
    for field, value in assignment_in.model_dump(exclude_unset=True).items():
        setattr(assignment, field, value)
    commit_or_rollback(db, f"updating assignment {assignment.id}")
    db.refresh(assignment)
    return assignment

def list_course_assignments(db: Session, user: User, course_id: int) -> List[Assignment]:
    course = course_crud.get_course_or_raise(db, course_id)
    query = db.query(Assignment).filter(Assignment.course_id == course.id)
    if course.instructor_id != user.id:
        enrollment_crud.require_active_enrollment(db, user.id, course.id)
        query = query.filter(Assignment.is_published.is_(True))
    return query.order_by(Assignment.due_date.is_(None), Assignment.due_date, Assignment.id).all()

# --- Submissions ---
def _discard_upload(file_url: Optional[str]) -> None:
    # The submission row failed; a leftover blob is logged rather than masking that error
    if not file_url:
        return
    try:
        storage_service.delete_by_url(file_url)
    except StorageUnavailableError as e:
        logger.warning(f"Orphaned upload {file_url} could not be removed: {e.message}")

def submit_assignment(
    db: Session,
    user: User,
    assignment_id: int,
    submission_text: Optional[str] = None,
    upload: Optional[Tuple[str, bytes]] = None,
) -> AssignmentSubmission:
    """
    Accepts the one submission a student gets per assignment. `upload` is
    (filename, content). Every check runs before the file is stored; the row
    is written after, and the file is removed again if that write fails.
    """
    assignment = get_assignment_or_raise(db, assignment_id)
    if not assignment.is_published:
        raise AuthorizationDeniedError("Assignment is not available.", code="assignment_unpublished")
    enrollment_crud.require_active_enrollment(db, user.id, assignment.course_id)

    existing = db.query(AssignmentSubmission).filter(
        AssignmentSubmission.assignment_id == assignment.id,
        AssignmentSubmission.user_id == user.id
    ).first()
    if existing:
        raise DuplicateSubmissionError()

    text = submission_text.strip() if submission_text else None
    if upload is None and not text:
        raise ValidationFailedError("Either a file or submission text is required.", code="empty_submission")
    if upload is not None:
        filename, content = upload
        storage_service.validate_document(filename, len(content))

    file_url = None
    if upload is not None:
        file_url = storage_service.store_bytes(content, filename, folder=f"assignments/{assignment.id}")

    submission = AssignmentSubmission(
        assignment_id=assignment.id,
        user_id=user.id,
        file_url=file_url,
        submission_text=text,
        submitted_at=datetime.now(timezone.utc),
    )
    db.add(submission)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        _discard_upload(file_url)
        raise DuplicateSubmissionError() from e
    except SQLAlchemyError as e:
        db.rollback()
        _discard_upload(file_url)
        logger.error(f"Error saving submission for assignment {assignment.id}, user {user.id}: {e}", exc_info=True)
        raise PersistenceError("Could not save the submission. Please retry.") from e

    db.refresh(submission)
    logger.info(f"User {user.id} submitted assignment {assignment.id} (submission {submission.id})")
    return submission

def get_submission_or_raise(db: Session, submission_id: int) -> AssignmentSubmission:
    submission = db.query(AssignmentSubmission).filter(AssignmentSubmission.id == submission_id).first()
    if not submission:
        raise NotFoundError(f"Submission with ID {submission_id} not found.")
    return submission

def grade_submission(db: Session, instructor: User, submission_id: int, grade: float,
                     feedback: Optional[str] = None) -> AssignmentSubmission:
    """Grades or re-grades a submission. Only the course instructor may grade."""
    submission = get_submission_or_raise(db, submission_id)
    assignment = submission.assignment
    course_crud.require_course_instructor(assignment.course, instructor)

    if grade < 0 or grade > assignment.max_points:
        raise GradeOutOfRangeError(f"Grade must be between 0 and {assignment.max_points}.")

    if submission.is_graded:
        logger.info(f"Re-grading submission {submission.id} (previous grade {submission.grade})")
    submission.grade = grade
    submission.feedback = feedback
    submission.is_graded = True
    submission.graded_at = datetime.now(timezone.utc)
    submission.graded_by_id = instructor.id

    commit_or_rollback(db, f"grading submission {submission.id}")
    db.refresh(submission)
    logger.info(f"Submission {submission.id} graded {grade}/{assignment.max_points} by instructor {instructor.id}")
    return submission

def list_my_submissions(db: Session, user: User, assignment_id: int) -> List[AssignmentSubmission]:
    get_assignment_or_raise(db, assignment_id)
    return db.query(AssignmentSubmission).filter(
        AssignmentSubmission.assignment_id == assignment_id,
        AssignmentSubmission.user_id == user.id
    ).all()

def list_submissions(db: Session, instructor: User, assignment_id: int) -> List[AssignmentSubmission]:
    assignment = get_assignment_or_raise(db, assignment_id)
    course_crud.require_course_instructor(assignment.course, instructor, allow_admin=True)
    return db.query(AssignmentSubmission).filter(
        AssignmentSubmission.assignment_id == assignment.id
    ).order_by(AssignmentSubmission.submitted_at.desc()).all()
