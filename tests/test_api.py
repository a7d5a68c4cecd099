"""API-level tests: routing, authorization and error rendering."""

import pytest
from sqlalchemy.orm import Session

from learnhub.core.payments import stripe_service
from learnhub.crud import email_domain_crud, payment_crud
from learnhub.models import Enrollment, User
from learnhub.models.enums import UserRole
from learnhub.routes import auth_routes
from learnhub.schemas.user_schema import TokenData

API = "/api/v1"


class TestRootAndErrors:
    """Tests for the root endpoint and error rendering."""

    def test_root(self, client_as) -> None:
        """The root endpoint answers without authentication."""
        response = client_as(None).get("/")
        assert response.status_code == 200
        assert "LearnHub" in response.json()["message"]

    def test_domain_error_body(self, client_as, student) -> None:
        """Domain errors render kind, code and retryable alongside detail."""
        response = client_as(student).get(f"{API}/progress/courses/999")

        assert response.status_code == 404
        body = response.json()
        assert body["kind"] == "not_found"
        assert body["code"] == "not_found"
        assert body["retryable"] is False
        assert "999" in body["detail"]

    def test_missing_token(self, client_as) -> None:
        """Protected routes need a bearer token."""
        response = client_as(None).get(f"{API}/auth/me")
        assert response.status_code == 401

    def test_deactivated_user(self, client_as, make_user) -> None:
        """Deactivated accounts are refused."""
        response = client_as(make_user(is_active=False)).get(f"{API}/auth/me")
        assert response.status_code == 403


class TestRegistration:
    """Tests for /auth/register."""

    @pytest.fixture(autouse=True)
    def fake_firebase(self, monkeypatch) -> None:
        monkeypatch.setattr(
            auth_routes, "verify_firebase_id_token",
            lambda token: TokenData(firebase_uid=f"fb-{token}", email=f"{token}@school.edu", name="New Learner"),
        )

    def test_register_allowed_domain(self, client_as, db_session: Session) -> None:
        """A verified token from an allowed domain creates a student."""
        email_domain_crud.add_domain(db_session, "school.edu")

        response = client_as(None).post(f"{API}/auth/register", json={"firebase_id_token": "alice"})

        assert response.status_code == 201
        user = response.json()["user"]
        assert user["email"] == "alice@school.edu"
        assert user["role"] == "student"
        assert user["full_name"] == "New Learner"

    def test_register_blocked_domain(self, client_as) -> None:
        """Emails outside the allowed domains are rejected."""
        response = client_as(None).post(f"{API}/auth/register", json={"firebase_id_token": "bob"})

        assert response.status_code == 400
        assert response.json()["code"] == "email_domain_not_allowed"

    def test_register_twice(self, client_as, db_session: Session) -> None:
        """A second registration for the same account conflicts."""
        email_domain_crud.add_domain(db_session, "school.edu")
        client = client_as(None)
        client.post(f"{API}/auth/register", json={"firebase_id_token": "carol"})

        response = client.post(f"{API}/auth/register", json={"firebase_id_token": "carol"})

        assert response.status_code == 409

    def test_public_domain_list(self, client_as, db_session: Session) -> None:
        """Anyone can read the allowed domains."""
        email_domain_crud.add_domain(db_session, "school.edu")

        response = client_as(None).get(f"{API}/auth/allowed-email-domains")

        assert response.json() == {"domains": ["school.edu"], "count": 1}


class TestLearningFlow:
    """Tests for enrollment, progress and certificates over HTTP."""

    def test_progress_entry_points(self, client_as, instructor, student, make_course) -> None:
        """All three progress routes add time and the last completion finishes the course."""
        course = make_course(instructor, lessons=2)
        first, second = course.modules[0].lessons
        client = client_as(student)

        assert client.post(f"{API}/courses/{course.id}/enroll").status_code == 201

        response = client.put(f"{API}/progress/lessons", json={"lesson_id": first.id, "time_spent": 5, "completed": True})
        assert response.status_code == 200
        assert response.json()["enrollment"]["progress"] == 50

        response = client.put(f"{API}/lessons/{second.id}/progress", json={"time_spent": 3})
        assert response.json()["lesson_progress"]["completed"] is False

        response = client.post(f"{API}/lessons/{second.id}/complete")
        body = response.json()
        assert body["course_completed"] is True
        assert body["enrollment"]["progress"] == 100
        assert body["enrollment"]["time_spent"] == 8

        detail = client.get(f"{API}/progress/courses/{course.id}").json()
        assert detail["remaining_lessons"] == 0
        assert len(detail["lessons"]) == 2

    def test_progress_without_enrollment(self, client_as, instructor, student, make_course) -> None:
        """Writing progress without an enrollment is forbidden."""
        course = make_course(instructor, lessons=1)
        lesson = course.modules[0].lessons[0]

        response = client_as(student).post(f"{API}/lessons/{lesson.id}/complete")

        assert response.status_code == 403
        assert response.json()["code"] == "not_enrolled"

    def test_paid_course_enroll(self, client_as, instructor, student, make_course) -> None:
        """Direct enrollment in a paid course asks for payment."""
        course = make_course(instructor, price="10.00")

        response = client_as(student).post(f"{API}/courses/{course.id}/enroll")

        assert response.status_code == 403
        assert response.json()["code"] == "payment_required"

    def test_certificate_issue_and_public_verify(self, client_as, instructor, student, make_course) -> None:
        """Issued certificates verify publicly; a second issue conflicts."""
        course = make_course(instructor, lessons=1)
        lesson = course.modules[0].lessons[0]
        client = client_as(student)
        client.post(f"{API}/courses/{course.id}/enroll")
        client.post(f"{API}/lessons/{lesson.id}/complete")

        response = client.post(f"{API}/certificates/courses/{course.id}")
        assert response.status_code == 201
        certificate = response.json()

        again = client.post(f"{API}/certificates/courses/{course.id}")
        assert again.status_code == 409
        assert again.json()["code"] == "certificate_already_issued"

        verified = client_as(None).get(f"{API}/certificates/verify", params={"code": certificate["verification_code"]})
        assert verified.status_code == 200
        assert verified.json()["valid"] is True
        assert verified.json()["certificate"]["course_title"] == course.title

        unknown = client_as(None).get(f"{API}/certificates/verify", params={"code": "NOTACODE"})
        assert unknown.json() == {"valid": False, "certificate": None}

        mine = client_as(student).get(f"{API}/certificates/me").json()
        assert [c["id"] for c in mine] == [certificate["id"]]

    def test_certificate_before_completion(self, client_as, instructor, student, make_course) -> None:
        """An unfinished course cannot be certified."""
        course = make_course(instructor, lessons=2)
        client = client_as(student)
        client.post(f"{API}/courses/{course.id}/enroll")

        response = client.post(f"{API}/certificates/courses/{course.id}")

        assert response.status_code == 400
        assert response.json()["code"] == "course_not_completed"


class TestCatalog:
    """Tests for course and lesson authoring routes."""

    def test_instructor_builds_course(self, client_as, instructor) -> None:
        """Instructors create courses, modules and lessons."""
        client = client_as(instructor)
        course = client.post(f"{API}/courses/", json={"title": "Intro", "is_published": True}).json()
        module = client.post(f"{API}/courses/{course['id']}/modules", json={"title": "Basics"}).json()
        lesson = client.post(f"{API}/modules/{module['id']}/lessons", json={"title": "Hello"})

        assert lesson.status_code == 201
        assert lesson.json()["course_id"] == course["id"]
        detail = client_as(None).get(f"{API}/courses/{course['id']}").json()
        assert detail["modules"][0]["lessons"][0]["title"] == "Hello"

    def test_student_cannot_create_course(self, client_as, student) -> None:
        """Students lack the instructor role."""
        response = client_as(student).post(f"{API}/courses/", json={"title": "Nope"})
        assert response.status_code == 403

    def test_unpublished_course_hidden(self, client_as, instructor, make_course) -> None:
        """Drafts are not shown in the public catalog."""
        course = make_course(instructor, is_published=False)
        assert client_as(None).get(f"{API}/courses/{course.id}").status_code == 404

    def test_delete_lesson_with_progress(self, client_as, instructor, student, make_course) -> None:
        """Lessons learners have progress on cannot be deleted."""
        course = make_course(instructor, lessons=2)
        lesson = course.modules[0].lessons[0]
        learner = client_as(student)
        learner.post(f"{API}/courses/{course.id}/enroll")
        learner.put(f"{API}/lessons/{lesson.id}/progress", json={"time_spent": 1})

        response = client_as(instructor).delete(f"{API}/lessons/{lesson.id}")

        assert response.status_code == 409
        assert response.json()["code"] == "lesson_has_progress"

    def test_delete_course(self, client_as, instructor, student, make_course) -> None:
        """Only the owner deletes, and only before anyone enrolls."""
        draft, taken = make_course(instructor), make_course(instructor)
        client_as(student).post(f"{API}/courses/{taken.id}/enroll")

        assert client_as(student).delete(f"{API}/courses/{draft.id}").status_code == 403
        owner = client_as(instructor)
        refused = owner.delete(f"{API}/courses/{taken.id}")
        assert refused.status_code == 409
        assert refused.json()["code"] == "course_has_enrollments"
        assert owner.delete(f"{API}/courses/{draft.id}").status_code == 204
        assert client_as(None).get(f"{API}/courses/{draft.id}").status_code == 404

    def test_reviews(self, client_as, instructor, student, make_course) -> None:
        """Enrolled learners rate a course and anyone can read the ratings."""
        course = make_course(instructor)
        learner = client_as(student)
        assert learner.post(f"{API}/courses/{course.id}/reviews", json={"rating": 4}).status_code == 403
        learner.post(f"{API}/courses/{course.id}/enroll")

        created = learner.post(f"{API}/courses/{course.id}/reviews", json={"rating": 4, "comment": "Good"})
        updated = learner.post(f"{API}/courses/{course.id}/reviews", json={"rating": 5})
        out_of_range = learner.post(f"{API}/courses/{course.id}/reviews", json={"rating": 6})

        assert created.status_code == 201
        assert updated.status_code == 200
        assert updated.json()["id"] == created.json()["id"]
        assert out_of_range.status_code == 422
        summary = client_as(None).get(f"{API}/courses/{course.id}/reviews").json()
        assert summary["review_count"] == 1
        assert summary["average_rating"] == 5.0
        assert summary["reviews"][0]["reviewer_name"] == student.display_name


class TestAssessments:
    """Tests for quiz and assignment routes."""

    def test_quiz_round_trip_hides_answers_until_complete(self, client_as, instructor, student, make_course) -> None:
        """Questions and acks never leak the answer; the result does."""
        course = make_course(instructor, lessons=1)
        quiz = client_as(instructor).post(f"{API}/courses/{course.id}/quizzes", json={
            "title": "Quick check",
            "is_published": True,
            "passing_score": 50,
            "questions": [
                {"question_type": "true_false", "question_text": "Sky is blue?", "correct_answer": "true", "points": 2},
            ],
        }).json()
        learner = client_as(student)
        learner.post(f"{API}/courses/{course.id}/enroll")

        started = learner.post(f"{API}/quizzes/{quiz['id']}/start").json()
        question = started["quiz"]["questions"][0]
        assert "correct_answer" not in question

        ack = learner.post(f"{API}/quiz-attempts/{started['attempt']['id']}/answers",
                           json={"question_id": question["id"], "answer": "True"}).json()
        assert "is_correct" not in ack

        result = learner.post(f"{API}/quiz-attempts/{started['attempt']['id']}/complete").json()
        assert result["attempt"]["passed"] is True
        assert result["attempt"]["score"] == 100
        assert result["answers"][0]["correct_answer"] == "true"

        limit = learner.post(f"{API}/quizzes/{quiz['id']}/start")
        assert limit.status_code == 409
        assert limit.json()["code"] == "attempt_limit_reached"

    def test_assignment_upload_and_grade(self, client_as, instructor, student, make_course,
                                         storage_bucket) -> None:
        """Multipart submissions are stored and grades are range checked."""
        course = make_course(instructor, lessons=1)
        instructor_client = client_as(instructor)
        assignment = instructor_client.post(f"{API}/courses/{course.id}/assignments",
                                  json={"title": "Report", "max_points": 100, "is_published": True}).json()
        learner = client_as(student)
        learner.post(f"{API}/courses/{course.id}/enroll")

        submitted = learner.post(
            f"{API}/assignments/{assignment['id']}/submit",
            files={"file": ("report.txt", b"my report", "text/plain")},
            data={"submission_text": "see attached"},
        )
        assert submitted.status_code == 201
        submission = submitted.json()
        assert submission["file_url"].endswith(".txt")
        assert list(storage_bucket.objects.values()) == [b"my report"]

        instructor_client = client_as(instructor)
        too_high = instructor_client.put(f"{API}/submissions/{submission['id']}/grade", json={"grade": 150})
        assert too_high.status_code == 400
        assert too_high.json()["code"] == "grade_out_of_range"

        graded = instructor_client.put(f"{API}/submissions/{submission['id']}/grade", json={"grade": 85, "feedback": "Nice"})
        assert graded.status_code == 200
        assert graded.json()["grade"] == 85


class TestPaymentsApi:
    """Tests for payment routes."""

    def test_webhook_requires_signature(self, client_as) -> None:
        """Unsigned webhook calls are rejected."""
        response = client_as(None).post(f"{API}/payments/webhook/stripe", content=b"{}")
        assert response.status_code == 400

    def test_webhook_success_enrolls(self, client_as, db_session: Session, student, instructor,
                                     make_course, monkeypatch) -> None:
        """payment_intent.succeeded confirms the payment and enrolls the payer."""
        course = make_course(instructor, price="15.00")
        payment, _ = payment_crud.initiate_course_payment(db_session, student, course.id)
        event = {
            "id": "evt_1",
            "type": "payment_intent.succeeded",
            "data": {"object": {"id": "pi_1", "metadata": {"tx_ref": payment.tx_ref}}},
        }
        monkeypatch.setattr(stripe_service, "construct_stripe_webhook_event", lambda payload, sig: event)

        response = client_as(None).post(f"{API}/payments/webhook/stripe", content=b"{}",
                                         headers={"Stripe-Signature": "t=1,v1=abc"})

        assert response.status_code == 200
        db_session.expire_all()
        enrollment = db_session.query(Enrollment).filter(Enrollment.user_id == student.id).one()
        assert enrollment.course_id == course.id
        history = client_as(student).get(f"{API}/payments/history").json()
        assert history[0]["status"] == "succeeded"


class TestAdminApi:
    """Tests for admin routes."""

    def test_requires_admin(self, client_as, instructor) -> None:
        """Non-admins are refused."""
        assert client_as(instructor).get(f"{API}/admin/stats/overview").status_code == 403

    def test_role_change_and_domains(self, client_as, db_session: Session, make_user, student) -> None:
        """Admins manage roles and the allowed domain list."""
        client = client_as(make_user(role=UserRole.ADMIN))

        response = client.put(f"{API}/admin/users/{student.id}/role", json={"role": "instructor"})
        assert response.json()["role"] == "instructor"

        assert client.post(f"{API}/admin/email-domains", json={"domain": "Academy.org"}).status_code == 201
        assert client.post(f"{API}/admin/email-domains", json={"domain": "academy.org"}).status_code == 409
        assert client.delete(f"{API}/admin/email-domains/academy.org").status_code == 204

        db_session.expire_all()
        assert db_session.get(User, student.id).role == "instructor"
        assert email_domain_crud.list_domains(db_session) == []

    def test_user_listing(self, client_as, make_user, student, instructor) -> None:
        """Admins can filter users by role."""
        client = client_as(make_user(role=UserRole.ADMIN))

        body = client.get(f"{API}/admin/users", params={"role": "instructor"}).json()

        assert body["total"] == 1
        assert body["users"][0]["id"] == instructor.id
