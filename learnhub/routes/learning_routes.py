from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List
import logging

from learnhub.core.database import get_db
from learnhub.core.dependencies import get_current_active_user
from learnhub.crud import analytics_crud, course_crud, enrollment_crud, lesson_progress_crud
from learnhub.crud.lesson_progress_crud import ProgressWriteResult
from learnhub.models.enums import UserRole
from learnhub.models.user_model import User
from learnhub.schemas import course_schema
from learnhub.schemas import enrollment_schema as schemas
from learnhub.services import email_service

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Learning"])


def _is_course_staff(user: User, instructor_id: int) -> bool:
    return user.role == UserRole.ADMIN.value or user.id == instructor_id

def _progress_response(
    result: ProgressWriteResult,
    user: User,
    background_tasks: BackgroundTasks,
    message: str,
) -> schemas.ProgressUpdateResponse:
    if result.course_completed:
        course = result.enrollment.course
        background_tasks.add_task(
            email_service.send_course_completed_email,
            user.email, user.display_name, course.title, course.id
        )
    return schemas.ProgressUpdateResponse(
        message=message,
        lesson_progress=schemas.LessonProgressDisplay.model_validate(result.lesson_progress),
        enrollment=schemas.EnrollmentDisplay.model_validate(result.enrollment),
        course_completed=result.course_completed,
    )


# --- Lesson Authoring ---
@router.post("/modules/{module_id}/lessons", response_model=course_schema.LessonDisplay, status_code=status.HTTP_201_CREATED)
def create_new_lesson_for_module(
    module_id: int,
    lesson_in: course_schema.LessonCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    module = course_crud.get_module_or_raise(db, module_id)
    course_crud.require_course_instructor(module.course, current_user, allow_admin=True)
    return course_crud.create_lesson(db=db, module=module, lesson_in=lesson_in)

@router.get("/lessons/{lesson_id}", response_model=course_schema.LessonDisplay)
def read_lesson(
    lesson_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Lesson content for enrolled learners, course staff, or anyone when marked as preview."""
    lesson = course_crud.get_lesson_or_raise(db, lesson_id)
    if not lesson.is_preview and not _is_course_staff(current_user, lesson.course.instructor_id):
        enrollment_crud.require_active_enrollment(db, current_user.id, lesson.course_id)
    return lesson

@router.put("/lessons/{lesson_id}", response_model=course_schema.LessonDisplay)
def update_existing_lesson(
    lesson_id: int,
    lesson_in: course_schema.LessonUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    lesson = course_crud.get_lesson_or_raise(db, lesson_id)
    course_crud.require_course_instructor(lesson.course, current_user, allow_admin=True)
    return course_crud.update_lesson(db=db, lesson=lesson, lesson_in=lesson_in)

@router.delete("/lessons/{lesson_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_existing_lesson(
    lesson_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    lesson = course_crud.get_lesson_or_raise(db, lesson_id)
    course_crud.require_course_instructor(lesson.course, current_user, allow_admin=True)
    course_crud.delete_lesson(db, lesson)
    return None

# --- Progress Tracking ---
@router.put("/progress/lessons", response_model=schemas.ProgressUpdateResponse)
def update_lesson_progress(
    progress_in: schemas.LessonProgressUpdate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Adds time spent on a lesson and optionally marks it complete."""
    result = lesson_progress_crud.record_progress(
        db, current_user, progress_in.lesson_id,
        time_spent_delta=progress_in.time_spent, completed=progress_in.completed
    )
    return _progress_response(result, current_user, background_tasks, "Progress updated successfully")

@router.put("/lessons/{lesson_id}/progress", response_model=schemas.ProgressUpdateResponse)
def track_lesson_time(
    lesson_id: int,
    time_in: schemas.LessonTimeUpdate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    result = lesson_progress_crud.record_progress(db, current_user, lesson_id, time_spent_delta=time_in.time_spent)
    return _progress_response(result, current_user, background_tasks, "Progress updated successfully")

@router.post("/lessons/{lesson_id}/complete", response_model=schemas.ProgressUpdateResponse)
def mark_lesson_complete(
    lesson_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    result = lesson_progress_crud.record_progress(db, current_user, lesson_id, completed=True)
    return _progress_response(result, current_user, background_tasks, "Lesson marked as complete")

@router.get("/progress/courses/{course_id}", response_model=schemas.CourseProgressDetail)
def read_course_progress(
    course_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return enrollment_crud.get_course_progress_detail(db, current_user, course_id)

@router.post("/progress/courses/{course_id}/refresh", response_model=schemas.EnrollmentDisplay)
def refresh_course_progress(
    course_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Recomputes the caller's aggregate for a course from the stored lesson rows."""
    return enrollment_crud.refresh_enrollment_progress(db, current_user.id, course_id)

# --- Learner Views ---
@router.get("/enrollments/me", response_model=List[schemas.EnrollmentDisplay])
def read_my_enrollments(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return enrollment_crud.list_enrollments_for_user(db, current_user.id)

@router.get("/dashboard/student", response_model=schemas.StudentDashboard)
def read_student_dashboard(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    if current_user.role != UserRole.STUDENT.value:
        logger.info(f"Non-student {current_user.email} requested the student dashboard")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Student dashboard is only available to students.")
    return analytics_crud.get_student_dashboard(db, current_user)
