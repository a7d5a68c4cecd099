from pydantic import BaseModel, Field, model_validator
from typing import Optional, List
from datetime import datetime

from learnhub.models.enums import QuestionType

# --- Questions ---
class QuizQuestionBase(BaseModel):
    question_type: QuestionType
    question_text: str = Field(..., min_length=1)
    options: Optional[List[str]] = None
    points: int = Field(1, ge=0)
    position: int = Field(0, ge=0)

class QuizQuestionCreate(QuizQuestionBase):
    correct_answer: str = Field(..., min_length=1)
    explanation: Optional[str] = None

    @model_validator(mode="after")
    def check_choice_options(self):
        if self.question_type == QuestionType.MULTIPLE_CHOICE and not self.options:
            raise ValueError("Multiple choice questions need at least one option")
        return self

# Student-facing: no correct answer, no explanation
class QuizQuestionPublic(QuizQuestionBase):
    id: int

    class Config:
        from_attributes = True

class QuizQuestionInstructor(QuizQuestionCreate):
    id: int
    quiz_id: int

    class Config:
        from_attributes = True

# --- Quizzes ---
class QuizBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    module_id: Optional[int] = None
    lesson_id: Optional[int] = None
    time_limit: int = Field(0, ge=0, description="Minutes, 0 = unlimited")
    max_attempts: int = Field(1, ge=0, description="0 = unlimited")
    passing_score: float = Field(70.0, ge=0, le=100)

class QuizCreate(QuizBase):
    is_published: bool = False
    questions: List[QuizQuestionCreate] = []

class QuizUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    time_limit: Optional[int] = Field(None, ge=0)
    max_attempts: Optional[int] = Field(None, ge=0)
    passing_score: Optional[float] = Field(None, ge=0, le=100)
    is_published: Optional[bool] = None

class QuizSummary(QuizBase):
    id: int
    course_id: int
    is_published: bool

    class Config:
        from_attributes = True

class QuizPublic(QuizSummary):
    questions: List[QuizQuestionPublic] = []

class QuizInstructorView(QuizSummary):
    questions: List[QuizQuestionInstructor] = []

# --- Attempts ---
class QuizAttemptDisplay(BaseModel):
    id: int
    user_id: int
    quiz_id: int
    started_at: datetime
    completed_at: Optional[datetime] = None
    total_points: int
    earned_points: int
    score: float
    passed: bool
    time_spent: int = Field(..., description="Seconds between start and completion")
    is_completed: bool

    class Config:
        from_attributes = True

class QuizStartResponse(BaseModel):
    attempt: QuizAttemptDisplay
    quiz: QuizPublic

class AnswerSubmit(BaseModel):
    question_id: int
    answer: str

class AnswerAck(BaseModel):
    attempt_id: int
    question_id: int
    answer: str
    saved: bool = True

class AnswerResult(BaseModel):
    question_id: int
    answer: str
    is_correct: bool
    points_earned: int
    correct_answer: Optional[str] = None
    explanation: Optional[str] = None

class QuizResult(BaseModel):
    attempt: QuizAttemptDisplay
    answers: List[AnswerResult] = []
