from sqlalchemy import (
    Column, Integer, String, Boolean, Float, TIMESTAMP, ForeignKey, UniqueConstraint
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from learnhub.core.database import Base

class Enrollment(Base):
    """
    One row per (user, course). Holds the aggregate progress that the lesson
    progress tracker recomputes; completed_at is stamped once and never moves.
    """
    __tablename__ = "enrollments"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    course_id = Column(Integer, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    payment_id = Column(Integer, ForeignKey("payments.id", ondelete="SET NULL"), nullable=True)

    is_active = Column(Boolean, nullable=False, default=True)

    progress = Column(Float, nullable=False, default=0.0) # 0-100
    total_lessons = Column(Integer, nullable=False, default=0)
    completed_lessons = Column(Integer, nullable=False, default=0)
    time_spent = Column(Integer, nullable=False, default=0) # minutes

    current_module_id = Column(Integer, ForeignKey("course_modules.id", ondelete="SET NULL"), nullable=True)
    current_lesson_id = Column(Integer, ForeignKey("lessons.id", ondelete="SET NULL"), nullable=True)

    certificate_id = Column(String(64), nullable=True, unique=True)
    certificate_issued_at = Column(TIMESTAMP(timezone=True), nullable=True)

    enrolled_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    completed_at = Column(TIMESTAMP(timezone=True), nullable=True)
    last_activity_at = Column(TIMESTAMP(timezone=True), nullable=True)

    user = relationship("User", back_populates="enrollments")
    course = relationship("Course", back_populates="enrollments")
    certificate = relationship("Certificate", back_populates="enrollment", uselist=False)

    __table_args__ = (
        UniqueConstraint('user_id', 'course_id', name='uq_user_course_enrollment'),
    )

    def __repr__(self):
        return f"<Enrollment(id={self.id}, user_id={self.user_id}, course_id={self.course_id}, progress={self.progress})>"


class LessonProgress(Base):
    __tablename__ = "lesson_progress"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    lesson_id = Column(Integer, ForeignKey("lessons.id", ondelete="CASCADE"), nullable=False)
    course_id = Column(Integer, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True) # Denormalized for easier querying

    completed = Column(Boolean, nullable=False, default=False)
    completed_at = Column(TIMESTAMP(timezone=True), nullable=True)
    time_spent = Column(Integer, nullable=False, default=0) # minutes

    last_accessed_at = Column(TIMESTAMP(timezone=True), server_default=func.now())

    user = relationship("User", back_populates="lesson_progress_entries")
    lesson = relationship("Lesson", back_populates="progress_entries")

    __table_args__ = (
        UniqueConstraint('user_id', 'lesson_id', name='uq_user_lesson_progress'),
    )

    def __repr__(self):
        return f"<LessonProgress(id={self.id}, user_id={self.user_id}, lesson_id={self.lesson_id}, completed={self.completed})>"
