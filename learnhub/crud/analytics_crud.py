from sqlalchemy.orm import Session, joinedload
from sqlalchemy import func
from decimal import Decimal
from typing import List
import logging

from learnhub.models.certificate_model import Certificate
from learnhub.models.course_model import Course, CourseModule, Lesson
from learnhub.models.enrollment_model import Enrollment, LessonProgress
from learnhub.models.enums import PaymentStatus, UserRole
from learnhub.models.payment_model import Payment
from learnhub.models.user_model import User
from learnhub.schemas import admin_schema as schemas
from learnhub.schemas import enrollment_schema

logger = logging.getLogger(__name__)

# All progress figures below read the stored enrollment aggregate; nothing
# here recomputes completion on its own.

def get_platform_stats_overview(db: Session) -> schemas.PlatformStatsOverview:
    logger.debug("Calculating platform stats overview.")

    active_students = (
        db.query(func.count(func.distinct(User.id)))
        .join(Enrollment, Enrollment.user_id == User.id)
        .filter(User.role == UserRole.STUDENT.value)
        .scalar()
    ) or 0
    active_instructors = (
        db.query(func.count(func.distinct(User.id)))
        .join(Course, Course.instructor_id == User.id)
        .filter(User.role == UserRole.INSTRUCTOR.value)
        .scalar()
    ) or 0
    total_revenue = db.query(func.sum(Payment.amount)).filter(
        Payment.status == PaymentStatus.SUCCEEDED
    ).scalar() or Decimal("0.00")

    return schemas.PlatformStatsOverview(
        total_users=db.query(func.count(User.id)).scalar() or 0,
        total_courses=db.query(func.count(Course.id)).scalar() or 0,
        total_enrollments=db.query(func.count(Enrollment.id)).scalar() or 0,
        total_payments=db.query(func.count(Payment.id)).scalar() or 0,
        total_certificates=db.query(func.count(Certificate.id)).scalar() or 0,
        total_revenue=total_revenue,
        active_students=active_students,
        active_instructors=active_instructors,
    )

def get_course_analytics(db: Session, course: Course) -> schemas.CourseAnalyticsInfo:
    total_enrollments = db.query(func.count(Enrollment.id)).filter(Enrollment.course_id == course.id).scalar() or 0
    completed = db.query(func.count(Enrollment.id)).filter(
        Enrollment.course_id == course.id,
        Enrollment.completed_at.isnot(None)
    ).scalar() or 0
    average_progress = db.query(func.avg(Enrollment.progress)).filter(Enrollment.course_id == course.id).scalar() or 0.0
    revenue = db.query(func.sum(Payment.amount)).filter(
        Payment.course_id == course.id,
        Payment.status == PaymentStatus.SUCCEEDED
    ).scalar() or Decimal("0.00")
    certificates = db.query(func.count(Certificate.id)).filter(Certificate.course_id == course.id).scalar() or 0

    return schemas.CourseAnalyticsInfo(
        course_id=course.id,
        course_title=course.title,
        total_enrollments=total_enrollments,
        total_revenue=revenue,
        completed_enrollments=completed,
        completion_rate=(completed / total_enrollments * 100) if total_enrollments else 0.0,
        average_progress=float(average_progress),
        certificates_issued=certificates,
    )

def get_courses_analytics(db: Session) -> List[schemas.CourseAnalyticsInfo]:
    logger.debug("Calculating analytics for all courses.")
    return [get_course_analytics(db, course) for course in db.query(Course).order_by(Course.id).all()]

def get_lesson_analytics(db: Session, course: Course) -> List[schemas.LessonAnalyticsInfo]:
    enrolled = db.query(func.count(Enrollment.id)).filter(
        Enrollment.course_id == course.id,
        Enrollment.is_active.is_(True)
    ).scalar() or 0

    lessons = (
        db.query(Lesson)
        .join(CourseModule, Lesson.module_id == CourseModule.id)
        .filter(CourseModule.course_id == course.id)
        .order_by(CourseModule.position, Lesson.position, Lesson.id)
        .all()
    )

    results = []
    for lesson in lessons:
        completions = db.query(func.count(LessonProgress.id)).filter(
            LessonProgress.lesson_id == lesson.id,
            LessonProgress.completed.is_(True)
        ).scalar() or 0
        average_time = db.query(func.avg(LessonProgress.time_spent)).filter(
            LessonProgress.lesson_id == lesson.id
        ).scalar() or 0.0
        results.append(schemas.LessonAnalyticsInfo(
            lesson_id=lesson.id,
            lesson_title=lesson.title,
            module_id=lesson.module_id,
            completions=completions,
            completion_rate=min(completions / enrolled * 100, 100.0) if enrolled else 0.0,
            average_time_spent=float(average_time),
        ))
    return results

def get_recent_enrollments(db: Session, limit: int = 20) -> List[schemas.RecentEnrollmentInfo]:
    enrollments = (
        db.query(Enrollment)
        .options(joinedload(Enrollment.user), joinedload(Enrollment.course))
        .order_by(Enrollment.enrolled_at.desc(), Enrollment.id.desc())
        .limit(limit)
        .all()
    )
    return [
        schemas.RecentEnrollmentInfo(
            enrollment_id=e.id,
            user_id=e.user_id,
            user_email=e.user.email,
            course_id=e.course_id,
            course_title=e.course.title,
            progress=e.progress,
            enrolled_at=e.enrolled_at,
        )
        for e in enrollments
    ]

def get_student_dashboard(db: Session, user: User) -> enrollment_schema.StudentDashboard:
    enrollments = db.query(Enrollment).filter(
        Enrollment.user_id == user.id,
        Enrollment.is_active.is_(True)
    ).all()

    completed = sum(1 for e in enrollments if e.completed_at is not None)
    recent = (
        db.query(LessonProgress, Lesson)
        .join(Lesson, LessonProgress.lesson_id == Lesson.id)
        .filter(LessonProgress.user_id == user.id)
        .order_by(LessonProgress.last_accessed_at.desc(), LessonProgress.id.desc())
        .limit(10)
        .all()
    )
    certificates = db.query(func.count(Certificate.id)).filter(Certificate.user_id == user.id).scalar() or 0

    return enrollment_schema.StudentDashboard(
        total_enrollments=len(enrollments),
        completed_courses=completed,
        in_progress_courses=len(enrollments) - completed,
        total_learning_minutes=sum(e.time_spent for e in enrollments),
        average_progress=(sum(e.progress for e in enrollments) / len(enrollments)) if enrollments else 0.0,
        certificates_earned=certificates,
        recent_activity=[
            enrollment_schema.RecentActivity(
                lesson_id=lesson.id,
                lesson_title=lesson.title,
                course_id=lesson.course_id,
                completed=progress.completed,
                time_spent=progress.time_spent,
                last_accessed_at=progress.last_accessed_at,
            )
            for progress, lesson in recent
        ],
    )
