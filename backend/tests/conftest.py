import uuid
from datetime import datetime, timedelta, timezone

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker

from examportal.app import app
from examportal.db import create_db_and_tables, get_async_session, make_engine
from examportal.models.exam_model import Exam, ExamQuestion, QuestionType
from examportal.models.user_model import User, UserRole
from examportal.security import current_active_user


def utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


@pytest.fixture
async def engine(tmp_path):
    engine = make_engine(f"sqlite+aiosqlite:///{tmp_path / 'exams.db'}")
    await create_db_and_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


def _user(role, class_name, name):
    return User(
        id=uuid.uuid4(),
        email=f"{name}@school.test",
        hashed_password="not-used",
        is_active=True,
        is_verified=True,
        full_name=name.title(),
        role=role,
        class_name=class_name,
    )


@pytest.fixture
async def users(session_maker):
    people = {
        "teacher": _user(UserRole.TEACHER, "10-A", "teacher"),
        "other_teacher": _user(UserRole.TEACHER, "10-B", "otherteacher"),
        "admin": _user(UserRole.ADMIN, None, "admin"),
        "student": _user(UserRole.STUDENT, "10-A", "student"),
        "outsider": _user(UserRole.STUDENT, "10-B", "outsider"),
    }
    # short-lived sessions only: an open SQLite transaction would block the app
    async with session_maker() as db:
        db.add_all(people.values())
        await db.commit()
    return people


@pytest.fixture
async def make_exam(session_maker, users):
    async def _make(questions=None, start=None, end=None, class_name="10-A", is_active=True, duration=60):
        now = utcnow()
        exam = Exam(
            title="Advanced JavaScript Concepts",
            instructions="Answer every question.",
            class_name=class_name,
            teacher_id=users["teacher"].id,
            duration=duration,
            start_date=start or now - timedelta(hours=1),
            end_date=end or now + timedelta(hours=2),
            is_active=is_active,
        )
        if questions is None:
            questions = [
                ExamQuestion(text="What is a closure?", options=["a", "b", "c", "d"], correct_answer=1, points=5),
                ExamQuestion(text="What does 'this' refer to?", options=["a", "b", "c", "d"], correct_answer=2, points=5),
            ]
        for idx, q in enumerate(questions):
            q.position = idx
        exam.questions = questions
        async with session_maker() as db:
            db.add(exam)
            await db.commit()
        return exam
    return _make


@pytest.fixture
def written_question():
    return ExamQuestion(text="Explain the event loop", options=[], type=QuestionType.WRITTEN, points=10)


@pytest.fixture
async def client(session_maker):
    async def _session():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_async_session] = _session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def login_as():
    def _login(user):
        app.dependency_overrides[current_active_user] = lambda: user
        return user
    return _login


@pytest.fixture
def fetch_submission(session_maker):
    from examportal.services.submission_service import get_submission

    async def _fetch(exam_id, student_id):
        async with session_maker() as db:
            return await get_submission(db, exam_id, student_id)
    return _fetch
