"""
Quiz engine: authoring, the attempt lifecycle and deterministic grading.

An attempt moves not-started -> in-progress -> completed and never reopens.
Answers are graded as they arrive but the attempt is scored only once, at
completion; completing twice returns the stored result.
"""
from sqlalchemy.orm import Session, selectinload
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy import func
from datetime import datetime, timezone
from typing import List, NamedTuple, Optional, Tuple
import logging

from learnhub.core.database import commit_or_rollback
from learnhub.core.exceptions import (
    AttemptClosedError, AttemptLimitReachedError, AuthorizationDeniedError,
    NotFoundError, PersistenceError, ValidationFailedError
)
from learnhub.crud import course_crud, enrollment_crud
from learnhub.models.enums import QuestionType
from learnhub.models.quiz_model import Quiz, QuizAnswer, QuizAttempt, QuizQuestion
from learnhub.models.user_model import User
from learnhub.schemas import quiz_schema as schemas

logger = logging.getLogger(__name__)

_UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class CompletionResult(NamedTuple):
    attempt: QuizAttempt
    answers: List[QuizAnswer]
    newly_completed: bool


# --- Grading ---
def normalize_answer(value: str) -> str:
    return value.strip().lower()

def grade_answer(question_type: QuestionType | str, correct_answer: str, submitted: str) -> bool:
    """
    Choice questions need an exact match after trimming and lowercasing.
    Short answers are lenient: either string may contain the other. Coding
    and unknown types fall back to exact match; nothing is executed.
    """
    correct = normalize_answer(correct_answer)
    given = normalize_answer(submitted)

    if question_type in (QuestionType.MULTIPLE_CHOICE, QuestionType.TRUE_FALSE):
        return given == correct
    if question_type == QuestionType.SHORT_ANSWER:
        return correct in given or given in correct
    return given == correct

def _as_utc(moment: datetime) -> datetime:
    # SQLite hands back naive datetimes
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment

# --- Authoring ---
def get_quiz(db: Session, quiz_id: int) -> Optional[Quiz]:
    return db.query(Quiz).options(selectinload(Quiz.questions)).filter(Quiz.id == quiz_id).first()

def get_quiz_or_raise(db: Session, quiz_id: int) -> Quiz:
    quiz = get_quiz(db, quiz_id)
    if not quiz:
        raise NotFoundError(f"Quiz with ID {quiz_id} not found.")
    return quiz

def _new_question(quiz_id: int, question_in: schemas.QuizQuestionCreate) -> QuizQuestion:
    return QuizQuestion(quiz_id=quiz_id, **question_in.model_dump())

def create_quiz(db: Session, instructor: User, course_id: int, quiz_in: schemas.QuizCreate) -> Quiz:
    course = course_crud.get_course_or_raise(db, course_id)
    course_crud.require_course_instructor(course, instructor, allow_admin=True)

    data = quiz_in.model_dump(exclude={"questions"})
    quiz = Quiz(course_id=course.id, **data)
    db.add(quiz)
    db.flush()
    for question_in in quiz_in.questions:
        db.add(_new_question(quiz.id, question_in))
    commit_or_rollback(db, f"creating quiz for course {course.id}")
    db.refresh(quiz)
    logger.info(f"Quiz '{quiz.title}' (ID: {quiz.id}) created with {len(quiz_in.questions)} questions")
    return quiz

def add_question(db: Session, instructor: User, quiz_id: int, question_in: schemas.QuizQuestionCreate) -> QuizQuestion:
    # In-flight attempts keep the total_points they snapshotted at start
    quiz = get_quiz_or_raise(db, quiz_id)
    course_crud.require_course_instructor(quiz.course, instructor, allow_admin=True)
    question = _new_question(quiz.id, question_in)
    db.add(question)
    commit_or_rollback(db, f"adding question to quiz {quiz.id}")
    db.refresh(question)
    return question

def update_quiz(db: Session, instructor: User, quiz_id: int, quiz_in: schemas.QuizUpdate) -> Quiz:
    quiz = get_quiz_or_raise(db, quiz_id)
    course_crud.require_course_instructor(quiz.course, instructor, allow_admin=True)
    for field, value in quiz_in.model_dump(exclude_unset=True).items():
        setattr(quiz, field, value)
    commit_or_rollback(db, f"updating quiz {quiz.id}")
    db.refresh(quiz)
    return quiz

def get_quiz_for_instructor(db: Session, instructor: User, quiz_id: int) -> Quiz:
    quiz = get_quiz_or_raise(db, quiz_id)
    course_crud.require_course_instructor(quiz.course, instructor, allow_admin=True)
    return quiz

def list_course_quizzes(db: Session, user: User, course_id: int) -> List[Quiz]:
    course = course_crud.get_course_or_raise(db, course_id)
    query = db.query(Quiz).filter(Quiz.course_id == course.id)
    if course.instructor_id != user.id:
        enrollment_crud.require_active_enrollment(db, user.id, course.id)
        query = query.filter(Quiz.is_published.is_(True))
    return query.order_by(Quiz.id).all()

# --- Attempt lifecycle ---
def _count_attempts(db: Session, user_id: int, quiz_id: int) -> int:
    return db.query(func.count(QuizAttempt.id)).filter(
        QuizAttempt.user_id == user_id,
        QuizAttempt.quiz_id == quiz_id
    ).scalar() or 0

def _attempt_is_completed(db: Session, attempt_id: int) -> bool:
    # Column query, so the value comes from the store rather than the identity map
    return bool(db.query(QuizAttempt.is_completed).filter(QuizAttempt.id == attempt_id).scalar())

def start_attempt(db: Session, user: User, quiz_id: int) -> Tuple[QuizAttempt, Quiz]:
    quiz = get_quiz_or_raise(db, quiz_id)
    if not quiz.is_published:
        raise AuthorizationDeniedError("Quiz is not available.", code="quiz_unpublished")
    # The enrollment row lock serializes concurrent starts by the same learner
    enrollment_crud.require_active_enrollment(db, user.id, quiz.course_id, lock=True)

    limited = quiz.max_attempts > 0
    if limited and _count_attempts(db, user.id, quiz.id) >= quiz.max_attempts:
        db.rollback()
        logger.warning(f"User {user.id} reached the attempt limit ({quiz.max_attempts}) on quiz {quiz.id}")
        raise AttemptLimitReachedError(f"Maximum attempts reached ({quiz.max_attempts}).")

    attempt = QuizAttempt(
        user_id=user.id,
        quiz_id=quiz.id,
        started_at=datetime.now(timezone.utc),
        total_points=sum(q.points for q in quiz.questions),
        is_completed=False,
    )
    db.add(attempt)
    if limited:
        db.flush()
        # Stores without row locks (SQLite) can still let a rival start through
        if _count_attempts(db, user.id, quiz.id) > quiz.max_attempts:
            db.rollback()
            logger.warning(f"Concurrent start on quiz {quiz.id} by user {user.id} exceeded the attempt limit")
            raise AttemptLimitReachedError(f"Maximum attempts reached ({quiz.max_attempts}).")
    commit_or_rollback(db, f"starting attempt on quiz {quiz.id}")
    db.refresh(attempt)
    logger.info(f"User {user.id} started attempt {attempt.id} on quiz {quiz.id} ({attempt.total_points} points)")
    return attempt, quiz

def _get_owned_attempt(db: Session, user: User, attempt_id: int, lock: bool = False) -> QuizAttempt:
    query = db.query(QuizAttempt).filter(QuizAttempt.id == attempt_id)
    if lock:
        query = query.with_for_update()
    attempt = query.first()
    if not attempt:
        raise NotFoundError(f"Attempt with ID {attempt_id} not found.")
    if attempt.user_id != user.id:
        logger.warning(f"User {user.id} tried to use attempt {attempt_id} owned by user {attempt.user_id}")
        raise AuthorizationDeniedError("This attempt belongs to another user.", code="not_attempt_owner")
    return attempt

def _upsert_answer(db: Session, values: dict) -> None:
    insert = _UPSERT_INSERTS.get(db.get_bind().dialect.name)
    if insert is not None:
        stmt = insert(QuizAnswer).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=["attempt_id", "question_id"],
            set_={col: stmt.excluded[col] for col in ("answer", "is_correct", "points_earned", "answered_at")},
        )
        db.execute(stmt)
        return

    existing = db.query(QuizAnswer).filter(
        QuizAnswer.attempt_id == values["attempt_id"],
        QuizAnswer.question_id == values["question_id"]
    ).first()
    if existing:
        for field, value in values.items():
            setattr(existing, field, value)
    else:
        db.add(QuizAnswer(**values))

def submit_answer(db: Session, user: User, attempt_id: int, question_id: int, answer: str) -> QuizAnswer:
    # Locked like complete_attempt, so an answer cannot land after the score is taken
    attempt = _get_owned_attempt(db, user, attempt_id, lock=True)
    if attempt.is_completed:
        db.rollback()
        raise AttemptClosedError()

    question = db.query(QuizQuestion).filter(
        QuizQuestion.id == question_id,
        QuizQuestion.quiz_id == attempt.quiz_id
    ).first()
    if not question:
        raise NotFoundError(f"Question {question_id} is not part of this quiz.")
    if not answer or not answer.strip():
        raise ValidationFailedError("Answer cannot be blank.", code="blank_answer")

    is_correct = grade_answer(question.question_type, question.correct_answer, answer)
    values = {
        "attempt_id": attempt.id,
        "question_id": question.id,
        "answer": answer,
        "is_correct": is_correct,
        "points_earned": question.points if is_correct else 0,
        "answered_at": datetime.now(timezone.utc),
    }

    try:
        _upsert_answer(db, values)
        if _attempt_is_completed(db, attempt.id):
            db.rollback()
            logger.warning(f"Attempt {attempt_id} was completed while an answer was being saved; answer discarded")
            raise AttemptClosedError()
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error saving answer for attempt {attempt_id}, question {question_id}: {e}", exc_info=True)
        raise PersistenceError("Could not save the answer. Please retry.") from e

    saved = db.query(QuizAnswer).filter(
        QuizAnswer.attempt_id == attempt.id,
        QuizAnswer.question_id == question.id
    ).one()
    db.refresh(saved)
    logger.debug(f"Answer saved for attempt {attempt.id}, question {question.id}")
    return saved

def complete_attempt(db: Session, user: User, attempt_id: int) -> CompletionResult:
    attempt = _get_owned_attempt(db, user, attempt_id, lock=True)
    if attempt.is_completed:
        return CompletionResult(attempt, list(attempt.answers), False)

    quiz = attempt.quiz
    earned = db.query(func.coalesce(func.sum(QuizAnswer.points_earned), 0)).filter(
        QuizAnswer.attempt_id == attempt.id
    ).scalar() or 0

    completed_at = datetime.now(timezone.utc)
    attempt.earned_points = int(earned)
    attempt.score = (earned / attempt.total_points * 100) if attempt.total_points > 0 else 0.0
    attempt.passed = attempt.score >= quiz.passing_score
    attempt.completed_at = completed_at
    attempt.time_spent = max(int((completed_at - _as_utc(attempt.started_at)).total_seconds()), 0)
    attempt.is_completed = True

    commit_or_rollback(db, f"completing attempt {attempt.id}")
    db.refresh(attempt)
    logger.info(
        f"Attempt {attempt.id} completed by user {user.id}: {attempt.earned_points}/{attempt.total_points} "
        f"({attempt.score:.2f}%), passed={attempt.passed}"
    )
    return CompletionResult(attempt, list(attempt.answers), True)

def get_attempt_result(db: Session, user: User, attempt_id: int) -> CompletionResult:
    attempt = _get_owned_attempt(db, user, attempt_id)
    return CompletionResult(attempt, list(attempt.answers), False)

def list_my_attempts(db: Session, user: User, quiz_id: int) -> List[QuizAttempt]:
    get_quiz_or_raise(db, quiz_id)
    return db.query(QuizAttempt).filter(
        QuizAttempt.user_id == user.id,
        QuizAttempt.quiz_id == quiz_id
    ).order_by(QuizAttempt.started_at.desc()).all()

def list_quiz_attempts(db: Session, instructor: User, quiz_id: int) -> List[QuizAttempt]:
    quiz = get_quiz_or_raise(db, quiz_id)
    course_crud.require_course_instructor(quiz.course, instructor, allow_admin=True)
    return db.query(QuizAttempt).filter(QuizAttempt.quiz_id == quiz.id).order_by(QuizAttempt.started_at.desc()).all()

def build_answer_results(answers: List[QuizAnswer]) -> List[schemas.AnswerResult]:
    """Per-answer breakdown; only ever built for completed attempts."""
    return [
        schemas.AnswerResult(
            question_id=a.question_id,
            answer=a.answer,
            is_correct=a.is_correct,
            points_earned=a.points_earned,
            correct_answer=a.question.correct_answer if a.question else None,
            explanation=a.question.explanation if a.question else None,
        )
        for a in answers
    ]
