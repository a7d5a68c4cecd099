"""Shared fixtures: an in-memory database, model factories and an API client."""

import os

# Settings are read at import time, so the environment is fixed before any app import
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["STRIPE_API_KEY"] = ""
os.environ["STRIPE_WEBHOOK_SECRET"] = ""
os.environ["EMAIL_HOST"] = ""
os.environ["FIREBASE_STORAGE_BUCKET"] = "learnhub-test.appspot.com"

from collections.abc import Callable, Generator
from decimal import Decimal
from itertools import count

import pytest
from fastapi import Depends
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from learnhub.core.database import Base, SessionLocal, engine, get_db
from learnhub.core.dependencies import get_current_user
from learnhub.crud import enrollment_crud
from learnhub.main import app
from learnhub.models import Course, CourseModule, Enrollment, Lesson, User
from learnhub.models.enums import UserRole
from learnhub.services import storage_service

Base.metadata.create_all(bind=engine)

_sequence = count(1)


@pytest.fixture
def db_session() -> Generator[Session, None, None]:
    """A session per test; every table is emptied afterwards."""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        with engine.begin() as conn:
            for table in reversed(Base.metadata.sorted_tables):
                conn.execute(table.delete())


@pytest.fixture
def make_user(db_session: Session) -> Callable[..., User]:
    def _make_user(role: UserRole = UserRole.STUDENT, email: str | None = None,
                   full_name: str | None = "Test User", is_active: bool = True) -> User:
        n = next(_sequence)
        user = User(
            firebase_uid=f"uid-{n}",
            email=email or f"user{n}@gmail.com",
            full_name=full_name,
            role=role.value,
            is_active=is_active,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture
def instructor(make_user: Callable[..., User]) -> User:
    return make_user(role=UserRole.INSTRUCTOR, full_name="Ada Instructor")


@pytest.fixture
def student(make_user: Callable[..., User]) -> User:
    return make_user(full_name="Sam Student")


@pytest.fixture
def make_course(db_session: Session) -> Callable[..., Course]:
    """Creates a course with `lessons` lessons spread over one module."""

    def _make_course(instructor: User, lessons: int = 2, price: str = "0.00",
                     is_published: bool = True) -> Course:
        course = Course(
            title=f"Course {next(_sequence)}",
            description="A course",
            price=Decimal(price),
            currency="USD",
            is_published=is_published,
            instructor_id=instructor.id,
        )
        db_session.add(course)
        db_session.flush()
        module = CourseModule(course_id=course.id, title="Module 1", position=0)
        db_session.add(module)
        db_session.flush()
        for position in range(lessons):
            db_session.add(Lesson(
                module_id=module.id,
                course_id=course.id,
                title=f"Lesson {position + 1}",
                duration_minutes=10,
                position=position,
            ))
        db_session.commit()
        db_session.refresh(course)
        return course

    return _make_course


@pytest.fixture
def add_lesson(db_session: Session) -> Callable[[Course], Lesson]:
    def _add_lesson(course: Course) -> Lesson:
        module = course.modules[0]
        lesson = Lesson(
            module_id=module.id,
            course_id=course.id,
            title=f"Lesson {next(_sequence)}",
            position=len(module.lessons),
        )
        db_session.add(lesson)
        db_session.commit()
        db_session.refresh(lesson)
        return lesson

    return _add_lesson


@pytest.fixture
def enroll(db_session: Session) -> Callable[[User, Course], Enrollment]:
    """Enrolls directly, bypassing the free/paid checks."""

    def _enroll(user: User, course: Course) -> Enrollment:
        enrollment = Enrollment(user_id=user.id, course_id=course.id, is_active=True)
        db_session.add(enrollment)
        enrollment_crud.recompute_aggregate(db_session, enrollment)
        db_session.commit()
        db_session.refresh(enrollment)
        return enrollment

    return _enroll


@pytest.fixture
def client_as(db_session: Session) -> Generator[Callable[[User | None], TestClient], None, None]:
    """
    Returns a factory for a TestClient authenticated as the given user.
    `None` leaves authentication to the real Firebase dependency. Overrides
    are app-wide, so the most recent call decides who every client acts as.
    """

    def override_get_db() -> Generator[Session, None, None]:
        session = SessionLocal()
        try:
            yield session
        finally:
            session.close()

    def _client_as(user: User | None) -> TestClient:
        app.dependency_overrides[get_db] = override_get_db
        if user is None:
            app.dependency_overrides.pop(get_current_user, None)
        else:
            user_id = user.id

            def override_current_user(db: Session = Depends(get_db)) -> User:
                return db.get(User, user_id)

            app.dependency_overrides[get_current_user] = override_current_user
        return TestClient(app)

    yield _client_as
    app.dependency_overrides.clear()


class FakeBlob:
    """Stands in for a google.cloud.storage Blob held by FakeBucket."""

    def __init__(self, bucket: "FakeBucket", name: str) -> None:
        self.bucket = bucket
        self.name = name
        self.cache_control = None
        self.content_disposition = None
        self.content_type = None
        self.public = False

    def upload_from_string(self, data: bytes, content_type: str | None = None) -> None:
        self.content_type = content_type
        self.bucket.objects[self.name] = data
        self.bucket.blobs[self.name] = self

    def make_public(self) -> None:
        self.public = True

    def exists(self) -> bool:
        return self.name in self.bucket.objects

    def delete(self) -> None:
        del self.bucket.objects[self.name]


class FakeBucket:
    def __init__(self) -> None:
        self.objects: dict[str, bytes] = {}
        self.blobs: dict[str, FakeBlob] = {}

    def blob(self, name: str) -> FakeBlob:
        return self.blobs.get(name) or FakeBlob(self, name)


@pytest.fixture
def storage_bucket(monkeypatch: pytest.MonkeyPatch) -> FakeBucket:
    """Replaces the Firebase Storage bucket with an in-memory one."""
    bucket = FakeBucket()
    monkeypatch.setattr(storage_service, "_get_bucket", lambda: bucket)
    return bucket
