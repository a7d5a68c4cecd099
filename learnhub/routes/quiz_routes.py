from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.orm import Session
from typing import List
import logging

from learnhub.core.database import get_db
from learnhub.core.dependencies import get_current_active_user, get_current_instructor_user
from learnhub.crud import quiz_crud
from learnhub.models.user_model import User
from learnhub.schemas import quiz_schema as schemas
from learnhub.services import email_service

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Quizzes"])

# --- Authoring (course instructor or admin) ---
@router.post("/courses/{course_id}/quizzes", response_model=schemas.QuizInstructorView, status_code=status.HTTP_201_CREATED)
def create_new_quiz(
    course_id: int,
    quiz_in: schemas.QuizCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_instructor_user)
):
    return quiz_crud.create_quiz(db, current_user, course_id, quiz_in)

@router.get("/courses/{course_id}/quizzes", response_model=List[schemas.QuizSummary])
def read_course_quizzes(
    course_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Published quizzes for enrolled learners; every quiz for the course instructor."""
    return quiz_crud.list_course_quizzes(db, current_user, course_id)

@router.get("/quizzes/{quiz_id}", response_model=schemas.QuizInstructorView)
def read_quiz_for_instructor(
    quiz_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_instructor_user)
):
    return quiz_crud.get_quiz_for_instructor(db, current_user, quiz_id)

@router.put("/quizzes/{quiz_id}", response_model=schemas.QuizSummary)
def update_existing_quiz(
    quiz_id: int,
    quiz_in: schemas.QuizUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_instructor_user)
):
    return quiz_crud.update_quiz(db, current_user, quiz_id, quiz_in)

@router.post("/quizzes/{quiz_id}/questions", response_model=schemas.QuizQuestionInstructor, status_code=status.HTTP_201_CREATED)
def add_quiz_question(
    quiz_id: int,
    question_in: schemas.QuizQuestionCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_instructor_user)
):
    return quiz_crud.add_question(db, current_user, quiz_id, question_in)

@router.get("/quizzes/{quiz_id}/attempts", response_model=List[schemas.QuizAttemptDisplay])
def read_quiz_attempts(
    quiz_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_instructor_user)
):
    return quiz_crud.list_quiz_attempts(db, current_user, quiz_id)

# --- Taking a quiz ---
@router.post("/quizzes/{quiz_id}/start", response_model=schemas.QuizStartResponse, status_code=status.HTTP_201_CREATED)
def start_quiz_attempt(
    quiz_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Opens a new attempt and returns the questions without their answers."""
    attempt, quiz = quiz_crud.start_attempt(db, current_user, quiz_id)
    return schemas.QuizStartResponse(
        attempt=schemas.QuizAttemptDisplay.model_validate(attempt),
        quiz=schemas.QuizPublic.model_validate(quiz),
    )

@router.get("/quizzes/{quiz_id}/attempts/me", response_model=List[schemas.QuizAttemptDisplay])
def read_my_quiz_attempts(
    quiz_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    return quiz_crud.list_my_attempts(db, current_user, quiz_id)

@router.post("/quiz-attempts/{attempt_id}/answers", response_model=schemas.AnswerAck)
def submit_quiz_answer(
    attempt_id: int,
    answer_in: schemas.AnswerSubmit,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """Saves or replaces the answer to one question. Correctness is revealed on completion."""
    saved = quiz_crud.submit_answer(db, current_user, attempt_id, answer_in.question_id, answer_in.answer)
    return schemas.AnswerAck(attempt_id=saved.attempt_id, question_id=saved.question_id, answer=saved.answer)

@router.post("/quiz-attempts/{attempt_id}/complete", response_model=schemas.QuizResult)
def complete_quiz_attempt(
    attempt_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    result = quiz_crud.complete_attempt(db, current_user, attempt_id)
    attempt = result.attempt
    if result.newly_completed:
        background_tasks.add_task(
            email_service.send_quiz_result_email,
            current_user.email, current_user.display_name, attempt.quiz.title,
            attempt.score, attempt.passed, attempt.quiz.passing_score
        )
    return schemas.QuizResult(
        attempt=schemas.QuizAttemptDisplay.model_validate(attempt),
        answers=quiz_crud.build_answer_results(result.answers),
    )

@router.get("/quiz-attempts/{attempt_id}", response_model=schemas.QuizResult)
def read_quiz_attempt(
    attempt_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user)
):
    """The attempt; the per-answer breakdown is included only once it is completed."""
    result = quiz_crud.get_attempt_result(db, current_user, attempt_id)
    answers = quiz_crud.build_answer_results(result.answers) if result.attempt.is_completed else []
    return schemas.QuizResult(attempt=schemas.QuizAttemptDisplay.model_validate(result.attempt), answers=answers)
