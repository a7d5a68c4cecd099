from sqlalchemy import (
    Column, Integer, String, Text, Boolean, Float, ForeignKey, TIMESTAMP, UniqueConstraint
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from learnhub.core.database import Base

class Assignment(Base):
    __tablename__ = "assignments"

    id = Column(Integer, primary_key=True, index=True)
    course_id = Column(Integer, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    module_id = Column(Integer, ForeignKey("course_modules.id", ondelete="SET NULL"), nullable=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    instructions = Column(Text, nullable=True)
    due_date = Column(TIMESTAMP(timezone=True), nullable=True)
    max_points = Column(Integer, nullable=False, default=100)
    is_published = Column(Boolean, nullable=False, default=False)

    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), default=func.now(), onupdate=func.now())

    course = relationship("Course", back_populates="assignments")
    submissions = relationship("AssignmentSubmission", back_populates="assignment", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Assignment(id={self.id}, title='{self.title}', course_id={self.course_id})>"

class AssignmentSubmission(Base):
    __tablename__ = "assignment_submissions"

    id = Column(Integer, primary_key=True, index=True)
    assignment_id = Column(Integer, ForeignKey("assignments.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    file_url = Column(String(500), nullable=True)
    submission_text = Column(Text, nullable=True)
    submitted_at = Column(TIMESTAMP(timezone=True), nullable=False)

    grade = Column(Float, nullable=True)
    feedback = Column(Text, nullable=True)
    is_graded = Column(Boolean, nullable=False, default=False)
    graded_at = Column(TIMESTAMP(timezone=True), nullable=True)
    graded_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    assignment = relationship("Assignment", back_populates="submissions")
    user = relationship("User", back_populates="submissions", foreign_keys=[user_id])
    graded_by = relationship("User", foreign_keys=[graded_by_id])

    __table_args__ = (
        UniqueConstraint('assignment_id', 'user_id', name='uq_assignment_user_submission'),
    )

    def __repr__(self):
        return f"<AssignmentSubmission(id={self.id}, assignment_id={self.assignment_id}, user_id={self.user_id}, graded={self.is_graded})>"
