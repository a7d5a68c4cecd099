from sqlalchemy import (
    Column, Integer, String, Text, Boolean, Float, ForeignKey, TIMESTAMP, JSON,
    Enum as SAEnum, UniqueConstraint
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from learnhub.core.database import Base
from learnhub.models.enums import QuestionType

class Quiz(Base):
    __tablename__ = "quizzes"

    id = Column(Integer, primary_key=True, index=True)
    course_id = Column(Integer, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    module_id = Column(Integer, ForeignKey("course_modules.id", ondelete="SET NULL"), nullable=True)
    lesson_id = Column(Integer, ForeignKey("lessons.id", ondelete="SET NULL"), nullable=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    time_limit = Column(Integer, nullable=False, default=0) # minutes, 0 = unlimited
    max_attempts = Column(Integer, nullable=False, default=1) # 0 = unlimited
    passing_score = Column(Float, nullable=False, default=70.0) # percentage
    is_published = Column(Boolean, nullable=False, default=False)

    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), default=func.now(), onupdate=func.now())

    course = relationship("Course", back_populates="quizzes")
    questions = relationship("QuizQuestion", back_populates="quiz", cascade="all, delete-orphan", order_by="QuizQuestion.position")
    attempts = relationship("QuizAttempt", back_populates="quiz", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Quiz(id={self.id}, title='{self.title}', course_id={self.course_id})>"

class QuizQuestion(Base):
    __tablename__ = "quiz_questions"

    id = Column(Integer, primary_key=True, index=True)
    quiz_id = Column(Integer, ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False, index=True)
    question_type = Column(SAEnum(QuestionType, name="question_type_enum", values_callable=lambda obj: [e.value for e in obj]), nullable=False)
    question_text = Column(Text, nullable=False)
    options = Column(JSON, nullable=True) # list of strings for choice questions
    correct_answer = Column(Text, nullable=False)
    points = Column(Integer, nullable=False, default=1)
    explanation = Column(Text, nullable=True)
    position = Column(Integer, nullable=False, default=0)

    quiz = relationship("Quiz", back_populates="questions")

    def __repr__(self):
        return f"<QuizQuestion(id={self.id}, quiz_id={self.quiz_id}, type='{self.question_type}')>"

class QuizAttempt(Base):
    __tablename__ = "quiz_attempts"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    quiz_id = Column(Integer, ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False, index=True)

    started_at = Column(TIMESTAMP(timezone=True), nullable=False)
    completed_at = Column(TIMESTAMP(timezone=True), nullable=True)
    total_points = Column(Integer, nullable=False, default=0) # snapshot taken at start
    earned_points = Column(Integer, nullable=False, default=0)
    score = Column(Float, nullable=False, default=0.0)
    passed = Column(Boolean, nullable=False, default=False)
    time_spent = Column(Integer, nullable=False, default=0) # seconds
    is_completed = Column(Boolean, nullable=False, default=False)

    user = relationship("User", back_populates="quiz_attempts")
    quiz = relationship("Quiz", back_populates="attempts")
    answers = relationship("QuizAnswer", back_populates="attempt", cascade="all, delete-orphan", order_by="QuizAnswer.question_id")

    def __repr__(self):
        return f"<QuizAttempt(id={self.id}, user_id={self.user_id}, quiz_id={self.quiz_id}, completed={self.is_completed})>"

class QuizAnswer(Base):
    __tablename__ = "quiz_answers"

    id = Column(Integer, primary_key=True, index=True)
    attempt_id = Column(Integer, ForeignKey("quiz_attempts.id", ondelete="CASCADE"), nullable=False)
    question_id = Column(Integer, ForeignKey("quiz_questions.id", ondelete="CASCADE"), nullable=False)
    answer = Column(Text, nullable=False)
    is_correct = Column(Boolean, nullable=False, default=False)
    points_earned = Column(Integer, nullable=False, default=0)
    answered_at = Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now())

    attempt = relationship("QuizAttempt", back_populates="answers")
    question = relationship("QuizQuestion")

    __table_args__ = (
        UniqueConstraint('attempt_id', 'question_id', name='uq_attempt_question_answer'),
    )

    def __repr__(self):
        return f"<QuizAnswer(attempt_id={self.attempt_id}, question_id={self.question_id}, correct={self.is_correct})>"
