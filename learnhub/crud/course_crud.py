from sqlalchemy.orm import Session, selectinload
from typing import List, Optional
import logging

from learnhub.core.database import commit_or_rollback
from learnhub.core.exceptions import AuthorizationDeniedError, ConflictError, NotFoundError
from learnhub.models.course_model import Course, CourseModule, Lesson
from learnhub.models.enrollment_model import Enrollment, LessonProgress
from learnhub.models.enums import UserRole
from learnhub.models.user_model import User
from learnhub.schemas import course_schema as schemas

logger = logging.getLogger(__name__)


def require_course_instructor(course: Course, user: User, allow_admin: bool = False) -> None:
    """Raises AuthorizationDeniedError unless `user` teaches `course`."""
    if course.instructor_id == user.id:
        return
    if allow_admin and user.role == UserRole.ADMIN.value:
        return
    logger.warning(f"User {user.id} is not the instructor of course {course.id}")
    raise AuthorizationDeniedError("Only the course instructor can perform this action.", code="not_course_instructor")

# --- Course ---
def create_course(db: Session, course_in: schemas.CourseCreate, instructor_id: int) -> Course:
    db_course = Course(**course_in.model_dump(), instructor_id=instructor_id)
    db.add(db_course)
    commit_or_rollback(db, f"creating course '{course_in.title}'")
    db.refresh(db_course)
    logger.info(f"Course '{db_course.title}' (ID: {db_course.id}) created by instructor {instructor_id}")
    return db_course

def get_course(db: Session, course_id: int) -> Optional[Course]:
    return db.query(Course).filter(Course.id == course_id).first()

def get_course_or_raise(db: Session, course_id: int) -> Course:
    course = get_course(db, course_id)
    if not course:
        raise NotFoundError(f"Course with ID {course_id} not found.")
    return course

def get_course_with_content(db: Session, course_id: int) -> Optional[Course]:
    return (
        db.query(Course)
        .options(selectinload(Course.modules).selectinload(CourseModule.lessons))
        .filter(Course.id == course_id)
        .first()
    )

def get_courses(db: Session, skip: int = 0, limit: int = 20, published_only: bool = True,
                instructor_id: Optional[int] = None) -> List[Course]:
    query = db.query(Course)
    if published_only:
        query = query.filter(Course.is_published.is_(True))
    if instructor_id is not None:
        query = query.filter(Course.instructor_id == instructor_id)
    return query.order_by(Course.id.desc()).offset(skip).limit(limit).all()

def update_course(db: Session, course: Course, course_in: schemas.CourseUpdate) -> Course:
    for field, value in course_in.model_dump(exclude_unset=True).items():
        setattr(course, field, value)
    commit_or_rollback(db, f"updating course {course.id}")
    db.refresh(course)
    logger.info(f"Course {course.id} updated")
    return course

# --- Modules ---
def create_module(db: Session, course: Course, module_in: schemas.CourseModuleCreate) -> CourseModule:
    module = CourseModule(course_id=course.id, **module_in.model_dump())
    db.add(module)
    commit_or_rollback(db, f"creating module for course {course.id}")
    db.refresh(module)
    logger.info(f"Module '{module.title}' (ID: {module.id}) added to course {course.id}")
    return module

def get_module(db: Session, module_id: int) -> Optional[CourseModule]:
    return db.query(CourseModule).filter(CourseModule.id == module_id).first()

def get_module_or_raise(db: Session, module_id: int) -> CourseModule:
    module = get_module(db, module_id)
    if not module:
        raise NotFoundError(f"Module with ID {module_id} not found.")
    return module

# --- Lessons ---
def create_lesson(db: Session, module: CourseModule, lesson_in: schemas.LessonCreate) -> Lesson:
    # Existing enrollments pick the new lesson up on their next recompute
    lesson = Lesson(module_id=module.id, course_id=module.course_id, **lesson_in.model_dump())
    db.add(lesson)
    commit_or_rollback(db, f"creating lesson in module {module.id}")
    db.refresh(lesson)
    logger.info(f"Lesson '{lesson.title}' (ID: {lesson.id}) added to module {module.id}")
    return lesson

def get_lesson(db: Session, lesson_id: int) -> Optional[Lesson]:
    return db.query(Lesson).filter(Lesson.id == lesson_id).first()

def get_lesson_or_raise(db: Session, lesson_id: int) -> Lesson:
    lesson = get_lesson(db, lesson_id)
    if not lesson:
        raise NotFoundError(f"Lesson with ID {lesson_id} not found.")
    return lesson

def update_lesson(db: Session, lesson: Lesson, lesson_in: schemas.LessonUpdate) -> Lesson:
    for field, value in lesson_in.model_dump(exclude_unset=True).items():
        setattr(lesson, field, value)
    commit_or_rollback(db, f"updating lesson {lesson.id}")
    db.refresh(lesson)
    return lesson

def delete_lesson(db: Session, lesson: Lesson) -> None:
    """Lessons with learner progress are kept so enrollment aggregates stay explainable."""
    progress_count = db.query(LessonProgress).filter(LessonProgress.lesson_id == lesson.id).count()
    if progress_count:
        raise ConflictError(
            f"Cannot delete lesson {lesson.id}: {progress_count} learner(s) have progress on it.",
            code="lesson_has_progress",
        )
    db.delete(lesson)
    commit_or_rollback(db, f"deleting lesson {lesson.id}")
    logger.info(f"Lesson {lesson.id} deleted")

def delete_course(db: Session, course: Course) -> None:
    """
    Removes a course with its modules, lessons, quizzes, assignments and
    reviews. Courses anyone has enrolled in are kept, like lessons with progress.
    """
    enrollment_count = db.query(Enrollment).filter(Enrollment.course_id == course.id).count()
    if enrollment_count:
        raise ConflictError(
            f"Cannot delete course {course.id}: {enrollment_count} enrollment(s) exist.",
            code="course_has_enrollments",
        )
    db.delete(course)
    commit_or_rollback(db, f"deleting course {course.id}")
    logger.info(f"Course {course.id} deleted")

def count_course_lessons(db: Session, course_id: int) -> int:
    return (
        db.query(Lesson)
        .join(CourseModule, Lesson.module_id == CourseModule.id)
        .filter(CourseModule.course_id == course_id)
        .count()
    )
