"""Tests for course reviews and course deletion."""

import pytest
from sqlalchemy.orm import Session

from learnhub.core.exceptions import ConflictError, NotEnrolledError, NotFoundError
from learnhub.crud import course_crud, review_crud
from learnhub.models import Assignment, Course, CourseModule, Lesson, Quiz, QuizQuestion, Review
from learnhub.models.enums import QuestionType
from learnhub.schemas.review_schema import ReviewCreate


class TestSubmitReview:
    """Tests for submit_review."""

    def test_enrolled_learner_rates_course(self, db_session: Session, instructor, student,
                                           make_course, enroll) -> None:
        """The review is stored with a trimmed comment and the reviewer's name."""
        course = make_course(instructor)
        enroll(student, course)

        review, created = review_crud.submit_review(
            db_session, student, course.id, ReviewCreate(rating=4, comment="  Clear and practical.  ")
        )

        assert created is True
        assert review.rating == 4
        assert review.comment == "Clear and practical."
        assert review.reviewer_name == student.display_name

    def test_second_review_replaces_first(self, db_session: Session, instructor, student,
                                          make_course, enroll) -> None:
        """A learner keeps a single review per course."""
        course = make_course(instructor)
        enroll(student, course)
        first, _ = review_crud.submit_review(db_session, student, course.id, ReviewCreate(rating=2, comment="Slow"))

        second, created = review_crud.submit_review(db_session, student, course.id, ReviewCreate(rating=5))

        assert created is False
        assert second.id == first.id
        assert second.rating == 5
        assert second.comment is None
        assert db_session.query(Review).count() == 1

    def test_requires_enrollment(self, db_session: Session, instructor, student, make_course) -> None:
        """Only learners enrolled in the course may rate it."""
        course = make_course(instructor)

        with pytest.raises(NotEnrolledError):
            review_crud.submit_review(db_session, student, course.id, ReviewCreate(rating=3))
        assert db_session.query(Review).count() == 0

    def test_inactive_enrollment_cannot_review(self, db_session: Session, instructor, student,
                                               make_course, enroll) -> None:
        """Deactivated enrollments lose the right to review."""
        course = make_course(instructor)
        enrollment = enroll(student, course)
        enrollment.is_active = False
        db_session.commit()

        with pytest.raises(NotEnrolledError):
            review_crud.submit_review(db_session, student, course.id, ReviewCreate(rating=3))

    def test_unpublished_course_not_found(self, db_session: Session, instructor, student, make_course) -> None:
        """Drafts cannot be reviewed."""
        course = make_course(instructor, is_published=False)

        with pytest.raises(NotFoundError):
            review_crud.submit_review(db_session, student, course.id, ReviewCreate(rating=3))

    def test_rating_range(self) -> None:
        """Ratings run from one to five stars."""
        with pytest.raises(ValueError):
            ReviewCreate(rating=0)
        with pytest.raises(ValueError):
            ReviewCreate(rating=6)


class TestCourseReviews:
    """Tests for get_course_reviews."""

    def test_summary_and_order(self, db_session: Session, instructor, make_user, make_course, enroll) -> None:
        """The newest review comes first and the average covers every review."""
        course = make_course(instructor)
        early, late = make_user(), make_user()
        for learner, rating in ((early, 4), (late, 5)):
            enroll(learner, course)
            review_crud.submit_review(db_session, learner, course.id, ReviewCreate(rating=rating))

        summary = review_crud.get_course_reviews(db_session, course.id)

        assert summary.review_count == 2
        assert summary.average_rating == 4.5
        assert [r.user_id for r in summary.reviews] == [late.id, early.id]

    def test_no_reviews(self, db_session: Session, instructor, make_course) -> None:
        """Courses without reviews have no average."""
        course = make_course(instructor)

        summary = review_crud.get_course_reviews(db_session, course.id)

        assert summary.review_count == 0
        assert summary.average_rating is None
        assert summary.reviews == []

    def test_unpublished_course_hidden(self, db_session: Session, instructor, make_course) -> None:
        """Reviews of drafts are not listed."""
        course = make_course(instructor, is_published=False)

        with pytest.raises(NotFoundError):
            review_crud.get_course_reviews(db_session, course.id)


class TestDeleteCourse:
    """Tests for delete_course."""

    def test_removes_course_content(self, db_session: Session, instructor, make_course) -> None:
        """Modules, lessons, quizzes and assignments go with the course."""
        course = make_course(instructor, lessons=3)
        quiz = Quiz(course_id=course.id, title="Check", is_published=True)
        quiz.questions.append(QuizQuestion(
            question_text="2 + 2?", question_type=QuestionType.SHORT_ANSWER,
            correct_answer="4", points=1, position=0,
        ))
        db_session.add_all([quiz, Assignment(course_id=course.id, title="Essay")])
        db_session.commit()
        course_id = course.id

        course_crud.delete_course(db_session, course)

        assert db_session.get(Course, course_id) is None
        assert db_session.query(CourseModule).filter(CourseModule.course_id == course_id).count() == 0
        assert db_session.query(Lesson).filter(Lesson.course_id == course_id).count() == 0
        assert db_session.query(Quiz).count() == 0
        assert db_session.query(QuizQuestion).count() == 0
        assert db_session.query(Assignment).count() == 0

    def test_enrolled_course_is_kept(self, db_session: Session, instructor, student, make_course, enroll) -> None:
        """Courses with enrollments cannot be deleted."""
        course = make_course(instructor)
        enroll(student, course)

        with pytest.raises(ConflictError) as exc_info:
            course_crud.delete_course(db_session, course)
        assert exc_info.value.code == "course_has_enrollments"
        assert db_session.get(Course, course.id) is not None
