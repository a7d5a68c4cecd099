from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Response, status, Query
from sqlalchemy.orm import Session
from typing import List
import logging

from learnhub.core.database import get_db
from learnhub.core.dependencies import (
    get_current_active_user,
    get_current_instructor_user,
    get_course_owner_or_admin,
)
from learnhub.crud import analytics_crud, course_crud, enrollment_crud, review_crud
from learnhub.models.course_model import Course
from learnhub.models.user_model import User
from learnhub.schemas import admin_schema, review_schema
from learnhub.schemas import course_schema as schemas
from learnhub.schemas.enrollment_schema import EnrollmentDisplay
from learnhub.services import email_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/courses", tags=["Courses"])

# --- Course Endpoints ---
@router.post("/", response_model=schemas.CourseDisplay, status_code=status.HTTP_201_CREATED)
def create_new_course(
    course_in: schemas.CourseCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_instructor_user)
):
    """Create a course taught by the caller. (Instructor or Admin)"""
    logger.info(f"User {current_user.email} creating course: {course_in.title}")
    return course_crud.create_course(db=db, course_in=course_in, instructor_id=current_user.id)

@router.get("/", response_model=List[schemas.CourseDisplay])
def read_courses_list(
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db)
):
    """Published courses. Publicly accessible."""
    return course_crud.get_courses(db, skip=skip, limit=limit)

@router.get("/teaching", response_model=List[schemas.CourseDisplay])
def read_my_teaching_courses(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_instructor_user)
):
    return course_crud.get_courses(db, limit=100, published_only=False, instructor_id=current_user.id)

@router.get("/{course_id}", response_model=schemas.CourseDetailDisplay)
def read_single_course(course_id: int, db: Session = Depends(get_db)):
    """Course with its modules and lessons. Unpublished courses are hidden."""
    course = course_crud.get_course_with_content(db, course_id)
    if not course or not course.is_published:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Course with ID {course_id} not found.")
    return course

@router.put("/{course_id}", response_model=schemas.CourseDisplay)
def update_existing_course(
    course_in: schemas.CourseUpdate,
    course: Course = Depends(get_course_owner_or_admin),
    db: Session = Depends(get_db)
):
    return course_crud.update_course(db=db, course=course, course_in=course_in)

@router.delete("/{course_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_existing_course(
    course: Course = Depends(get_course_owner_or_admin),
    db: Session = Depends(get_db)
):
    """Delete a course nobody has enrolled in. (Course instructor or Admin)"""
    course_crud.delete_course(db, course)
    return None

# --- Module Endpoints ---
@router.post("/{course_id}/modules", response_model=schemas.CourseModuleDisplay, status_code=status.HTTP_201_CREATED)
def create_new_module_for_course(
    module_in: schemas.CourseModuleCreate,
    course: Course = Depends(get_course_owner_or_admin),
    db: Session = Depends(get_db)
):
    return course_crud.create_module(db=db, course=course, module_in=module_in)

# --- Enrollment ---
@router.post("/{course_id}/enroll", response_model=EnrollmentDisplay, status_code=status.HTTP_201_CREATED)
def enroll_in_free_course(
    course_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Enroll in a free course. Paid courses are enrolled through /payments."""
    enrollment = enrollment_crud.enroll_free(db, current_user, course_id)
    background_tasks.add_task(
        email_service.send_enrollment_confirmation_email,
        current_user.email, current_user.display_name, enrollment.course.title, course_id
    )
    return enrollment

# --- Analytics (course instructor or admin) ---
@router.get("/{course_id}/analytics", response_model=admin_schema.CourseAnalyticsInfo)
def read_course_analytics(
    course: Course = Depends(get_course_owner_or_admin),
    db: Session = Depends(get_db)
):
    return analytics_crud.get_course_analytics(db, course)

@router.get("/{course_id}/lessons/analytics", response_model=List[admin_schema.LessonAnalyticsInfo])
def read_lesson_analytics(
    course: Course = Depends(get_course_owner_or_admin),
    db: Session = Depends(get_db)
):
    return analytics_crud.get_lesson_analytics(db, course)

# --- Reviews ---
@router.post("/{course_id}/reviews", response_model=review_schema.ReviewDisplay, status_code=status.HTTP_201_CREATED)
def rate_course(
    course_id: int,
    review_in: review_schema.ReviewCreate,
    response: Response,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Rate an enrolled course. Rating again replaces the earlier review (200)."""
    review, created = review_crud.submit_review(db, current_user, course_id, review_in)
    if not created:
        response.status_code = status.HTTP_200_OK
    return review

@router.get("/{course_id}/reviews", response_model=review_schema.CourseReviews)
def read_course_reviews(
    course_id: int,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    db: Session = Depends(get_db)
):
    """Reviews of a published course, newest first. Publicly accessible."""
    return review_crud.get_course_reviews(db, course_id, skip=skip, limit=limit)
