import os

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')
os.environ.setdefault('JWT_SECRET_KEY', 'test-secret')

from fastapi.testclient import TestClient  # noqa: E402

from backend.auth import jwt_handler  # noqa: E402
from backend.database import Base, enable_sqlite_foreign_keys, get_db  # noqa: E402
from backend.main import app  # noqa: E402
from backend.models.course import Chapter, Course  # noqa: E402
from backend.models.enrollment import Enrollment  # noqa: E402
from backend.models.user import Role, User  # noqa: E402


@pytest.fixture
def db_session():
    engine = create_engine(
        'sqlite:///:memory:',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    db = testing_session_local()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def client(db_session):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.pop(get_db, None)


@pytest.fixture
def make_user(db_session):
    counter = {'value': 0}

    def _make_user(role: Role = Role.STUDENT, approved: bool = False, name: str | None = None) -> User:
        counter['value'] += 1
        user = User(
            name=name or f'{role.value.title()} {counter["value"]}',
            email=f'{role.value.lower()}{counter["value"]}@example.com',
            hashed_password='not-a-bcrypt-hash',
            role=role.value,
            approved=approved,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture
def make_course(db_session):
    def _make_course(mentor: User, title: str = 'Intro to Python') -> Course:
        course = Course(title=title, description=f'{title} description', mentor_id=mentor.id)
        db_session.add(course)
        db_session.commit()
        db_session.refresh(course)
        return course

    return _make_course


@pytest.fixture
def make_chapter(db_session):
    def _make_chapter(course: Course, title: str = 'Chapter') -> Chapter:
        chapter = Chapter(title=title, content=f'{title} content', course_id=course.id)
        db_session.add(chapter)
        db_session.commit()
        db_session.refresh(chapter)
        return chapter

    return _make_chapter


@pytest.fixture
def enroll(db_session):
    def _enroll(student: User, course: Course) -> Enrollment:
        enrollment = Enrollment(student_id=student.id, course_id=course.id)
        db_session.add(enrollment)
        db_session.commit()
        return enrollment

    return _enroll


@pytest.fixture
def auth_headers():
    def _auth_headers(user: User) -> dict[str, str]:
        token = jwt_handler.create_access_token(user_id=user.id, role=user.role)
        return {'Authorization': f'Bearer {token}'}

    return _auth_headers
