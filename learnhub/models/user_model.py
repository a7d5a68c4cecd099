from sqlalchemy import Column, Integer, String, Boolean, TIMESTAMP, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from learnhub.core.database import Base

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    firebase_uid = Column(String(255), unique=True, index=True, nullable=False) # Firebase User ID
    email = Column(String(255), unique=True, index=True, nullable=False)
    full_name = Column(String(255), nullable=True)

    role = Column(String(50), nullable=False, default="student") # student, instructor, admin
    is_active = Column(Boolean, nullable=False, default=True)

    courses_taught = relationship("Course", back_populates="instructor")
    enrollments = relationship("Enrollment", back_populates="user", cascade="all, delete-orphan")
    lesson_progress_entries = relationship("LessonProgress", back_populates="user", cascade="all, delete-orphan")
    certificates = relationship("Certificate", back_populates="user", cascade="all, delete-orphan")
    quiz_attempts = relationship("QuizAttempt", back_populates="user", cascade="all, delete-orphan")
    submissions = relationship(
        "AssignmentSubmission", back_populates="user",
        foreign_keys="AssignmentSubmission.user_id", cascade="all, delete-orphan"
    )
    payments = relationship("Payment", back_populates="user")

    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint('email', name='uq_user_email'),
        UniqueConstraint('firebase_uid', name='uq_user_firebase_uid'),
    )

    @property
    def display_name(self) -> str:
        return self.full_name or self.email

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"
