"""Test configuration and fixtures."""

import os
import tempfile
from datetime import timedelta

import pytest

# Settings are read once at import time of the app
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="schoolhub-uploads-"))
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("FIREBASE_PROJECT_ID", "schoolhub-test")
os.environ.setdefault("APP_ENV", "test")

from fastapi.testclient import TestClient
from sqlalchemy.exc import SQLAlchemyError

from schoolhub import database
from schoolhub.auth.service import AuthService
from schoolhub.database import Base, SessionLocal, configure_engine, create_tables, get_db
from schoolhub.models import Assignment, Course, Semester, User, UserRole
from schoolhub.security.principal import Principal
from schoolhub.timeutil import utcnow


# Use in-memory SQLite for testing
TEST_DATABASE_URL = "sqlite://"

PASSWORD = "secret123"


@pytest.fixture(scope="session")
def engine():
    """Create test database engine."""
    engine = configure_engine(TEST_DATABASE_URL)
    create_tables()
    yield engine
    engine.dispose()
    database.engine = None


@pytest.fixture
def db_session(engine):
    """Session shared by the test body and the app; tables are emptied afterwards."""
    session = SessionLocal()
    yield session
    session.rollback()
    for table in reversed(Base.metadata.sorted_tables):
        session.execute(table.delete())
    session.commit()
    session.close()


@pytest.fixture
def client(db_session):
    from schoolhub.main import app

    def override_get_db():
        try:
            yield db_session
        except SQLAlchemyError:
            db_session.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db_session):
    """Factory for users of any role."""
    counter = {"n": 0}

    def factory(role: UserRole = UserRole.student, first_name: str = None, email: str = None, **fields):
        counter["n"] += 1
        n = counter["n"]
        user = User(
            email=email or f"{role.value}{n}@example.com",
            role=role,
            first_name=first_name or f"{role.value.capitalize()}{n}",
            last_name="Tester",
            **fields,
        )
        user.set_password(PASSWORD)
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return factory


@pytest.fixture
def admin(make_user):
    return make_user(UserRole.admin)


@pytest.fixture
def teacher(make_user):
    return make_user(UserRole.teacher)


@pytest.fixture
def student(make_user):
    return make_user(UserRole.student)


@pytest.fixture
def parent(make_user, student, db_session):
    user = make_user(UserRole.parent)
    user.children = [student]
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def make_course(db_session):
    counter = {"n": 0}

    def factory(teacher: User, students=(), **fields):
        counter["n"] += 1
        course = Course(
            code=fields.pop("code", f"SCI{100 + counter['n']}"),
            name=fields.pop("name", f"Science {counter['n']}"),
            description="Introductory science",
            academic_year="2024-2025",
            semester=fields.pop("semester", Semester.Fall),
            teacher_id=teacher.id,
            **fields,
        )
        course.students = list(students)
        db_session.add(course)
        db_session.commit()
        db_session.refresh(course)
        return course

    return factory


@pytest.fixture
def course(make_course, teacher, student):
    """A course owned by ``teacher`` with ``student`` enrolled."""
    return make_course(teacher, students=[student])


@pytest.fixture
def make_assignment(db_session):
    def factory(course: Course, **fields):
        values = {
            "title": "Lab report",
            "description": "Write up the experiment",
            "due_date": utcnow() + timedelta(days=7),
            "total_points": 100,
            "is_published": True,
        }
        values.update(fields)
        assignment = Assignment(course_id=course.id, created_by=course.teacher_id, **values)
        db_session.add(assignment)
        db_session.commit()
        db_session.refresh(assignment)
        return assignment

    return factory


@pytest.fixture
def assignment(make_assignment, course):
    return make_assignment(course)


@pytest.fixture
def token_for(db_session):
    def factory(user: User) -> str:
        return AuthService(db_session).create_access_token(user)

    return factory


@pytest.fixture
def auth_headers(token_for):
    """Bearer headers for ``user``."""

    def factory(user: User) -> dict:
        return {"Authorization": f"Bearer {token_for(user)}"}

    return factory


@pytest.fixture
def principal_of(db_session):
    def factory(user: User) -> Principal:
        db_session.refresh(user)
        return Principal.from_user(user)

    return factory


@pytest.fixture
def password():
    """Plain-text password every factory-made user shares."""
    return PASSWORD
