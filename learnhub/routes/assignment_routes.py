from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, UploadFile, status
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from learnhub.core.database import get_db
from learnhub.core.dependencies import get_current_active_user, get_current_instructor_user
from learnhub.crud import assignment_crud
from learnhub.models.user_model import User
from learnhub.schemas import assignment_schema as schemas
from learnhub.services import email_service

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Assignments"])

@router.post("/courses/{course_id}/assignments", response_model=schemas.AssignmentDisplay, status_code=status.HTTP_201_CREATED)
def create_new_assignment(
    course_id: int,
    assignment_in: schemas.AssignmentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_instructor_user)
):
    return assignment_crud.create_assignment(db, current_user, course_id, assignment_in)

@router.get("/courses/{course_id}/assignments", response_model=List[schemas.AssignmentDisplay])
def read_course_assignments(
    course_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return assignment_crud.list_course_assignments(db, current_user, course_id)

@router.put("/assignments/{assignment_id}", response_model=schemas.AssignmentDisplay)
def update_existing_assignment(
    assignment_id: int,
    assignment_in: schemas.AssignmentUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_instructor_user)
):
    return assignment_crud.update_assignment(db, current_user, assignment_id, assignment_in)

@router.post("/assignments/{assignment_id}/submit", response_model=schemas.SubmissionDisplay, status_code=status.HTTP_201_CREATED)
def submit_assignment(
    assignment_id: int,
    file: Optional[UploadFile] = File(None),
    submission_text: Optional[str] = Form(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """
    Submit work for an assignment as a document upload, text, or both.
    Each learner gets exactly one submission per assignment.
    """
    upload = None
    if file is not None and file.filename:
        upload = (file.filename, file.file.read())
    return assignment_crud.submit_assignment(
        db, current_user, assignment_id, submission_text=submission_text, upload=upload
    )

@router.get("/assignments/{assignment_id}/submissions/me", response_model=List[schemas.SubmissionDisplay])
def read_my_submissions(
    assignment_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return assignment_crud.list_my_submissions(db, current_user, assignment_id)

@router.get("/assignments/{assignment_id}/submissions", response_model=List[schemas.SubmissionDisplay])
def read_assignment_submissions(
    assignment_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_instructor_user)
):
    return assignment_crud.list_submissions(db, current_user, assignment_id)

@router.put("/submissions/{submission_id}/grade", response_model=schemas.SubmissionDisplay)
def grade_assignment_submission(
    submission_id: int,
    grade_in: schemas.GradeSubmission,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_instructor_user)
):
    submission = assignment_crud.grade_submission(
        db, current_user, submission_id, grade=grade_in.grade, feedback=grade_in.feedback
    )
    student = submission.user
    assignment = submission.assignment
    background_tasks.add_task(
        email_service.send_assignment_graded_email,
        student.email, student.display_name, assignment.title,
        submission.grade, assignment.max_points, submission.feedback
    )
    return submission
