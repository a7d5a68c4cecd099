from sqlalchemy.orm import Session, joinedload
from sqlalchemy import func
from typing import Tuple
import logging

from learnhub.core.database import commit_or_rollback
from learnhub.core.exceptions import NotFoundError
from learnhub.crud import course_crud, enrollment_crud
from learnhub.models.review_model import Review
from learnhub.models.user_model import User
from learnhub.schemas import review_schema as schemas

logger = logging.getLogger(__name__)


def submit_review(db: Session, user: User, course_id: int, review_in: schemas.ReviewCreate) -> Tuple[Review, bool]:
    """
    Rates a course the caller is enrolled in. A learner holds one review per
    course; submitting again replaces its rating and comment. Returns the
    review and whether it was newly created.
    """
    course = course_crud.get_course_or_raise(db, course_id)
    if not course.is_published:
        raise NotFoundError(f"Course with ID {course_id} not found.")
    enrollment_crud.require_active_enrollment(db, user.id, course.id)

    comment = review_in.comment.strip() if review_in.comment else None
    review = db.query(Review).filter(Review.user_id == user.id, Review.course_id == course.id).first()
    created = review is None
    if created:
        review = Review(user_id=user.id, course_id=course.id, rating=review_in.rating, comment=comment)
        db.add(review)
    else:
        review.rating = review_in.rating
        review.comment = comment

    commit_or_rollback(db, f"saving review by user {user.id} for course {course.id}")
    db.refresh(review)
    logger.info(f"User {user.id} {'rated' if created else 're-rated'} course {course.id}: {review.rating}/5")
    return review, created

def get_course_reviews(db: Session, course_id: int, skip: int = 0, limit: int = 50) -> schemas.CourseReviews:
    course = course_crud.get_course_or_raise(db, course_id)
    if not course.is_published:
        raise NotFoundError(f"Course with ID {course_id} not found.")

    count, average = db.query(func.count(Review.id), func.avg(Review.rating)).filter(
        Review.course_id == course.id
    ).one()
    reviews = (
        db.query(Review)
        .options(joinedload(Review.user))
        .filter(Review.course_id == course.id)
        .order_by(Review.updated_at.desc(), Review.id.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )
    return schemas.CourseReviews(
        course_id=course.id,
        review_count=count or 0,
        average_rating=round(float(average), 2) if average is not None else None,
        reviews=[schemas.ReviewDisplay.model_validate(r) for r in reviews],
    )
