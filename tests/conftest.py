# ============================================================================
# Test Configuration & Fixtures
# ============================================================================
import pytest
from datetime import datetime, timedelta
from typing import AsyncGenerator, List
from uuid import uuid4
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401
from app.main import app
from app.api.deps import get_report_sink, get_uow_factory
from app.core.database import Base, get_db
from app.models.curriculum import Question
from app.models.gamification import XPEvent
from app.models.practice import QuestionAttempt
from app.models.user import Student
from app.repositories.sql import SqlAlchemyUnitOfWork, unit_of_work

# In-memory SQLite shared across sessions of one test
TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest.fixture
async def engine():
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_maker(engine) -> async_sessionmaker:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test"""
    async with session_maker() as session:
        yield session


@pytest.fixture
def uow(db_session: AsyncSession) -> SqlAlchemyUnitOfWork:
    return SqlAlchemyUnitOfWork(db_session)


@pytest.fixture
def uow_factory(session_maker):
    """One fresh unit of work per call, as the maintenance batches expect"""
    return lambda: unit_of_work(session_maker)


@pytest.fixture
def report_sink() -> List:
    """Collects student ids instead of enqueueing Celery tasks"""
    return []


@pytest.fixture
async def client(db_session: AsyncSession, uow_factory, report_sink) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with overridden database"""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_uow_factory] = lambda: uow_factory
    app.dependency_overrides[get_report_sink] = lambda: report_sink.append

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ============================================================================
# Data builders
# ============================================================================

def build_question(topic: str = "Algebra", grade_rating: int = 50, **kwargs) -> Question:
    """Unsaved question with an id, usable without a database"""
    fields = {
        "id": uuid4(),
        "question_text": f"{topic} question {grade_rating}",
        "options": ["A", "B", "C", "D"],
        "correct_answer": "A",
        "topic": topic,
        "subject": "Mathematics",
        "difficulty": "medium",
        "grade_rating": grade_rating,
        "is_active": True,
    }
    fields.update(kwargs)
    return Question(**fields)


def build_attempt(question: Question, correct: bool, days_ago: float = 0, now: datetime = None, **kwargs) -> QuestionAttempt:
    now = now or datetime.utcnow()
    fields = {
        "id": uuid4(),
        "question_id": question.id,
        "correct": correct,
        "attempt_date": now - timedelta(days=days_ago),
        "time_taken": 45,
        "watched_solution": False,
    }
    fields.update(kwargs)
    return QuestionAttempt(**fields)


@pytest.fixture
def make_student(db_session: AsyncSession):
    """Persist a student; created_at increases with each call"""
    counter = {"n": 0}

    async def _make(name: str = None, **kwargs) -> Student:
        counter["n"] += 1
        fields = {
            "name": name or f"Student {counter['n']}",
            "email": f"student{counter['n']}-{uuid4().hex[:6]}@example.com",
            "created_at": datetime(2026, 1, 1) + timedelta(minutes=counter["n"]),
            "weak_topics": [],
            "strong_topics": [],
            "recent_topics": [],
        }
        fields.update(kwargs)
        student = Student(**fields)
        db_session.add(student)
        await db_session.commit()
        return student

    return _make


@pytest.fixture
def make_questions(db_session: AsyncSession):
    async def _make(topic: str = "Algebra", ratings=(30, 50, 70), **kwargs) -> List[Question]:
        questions = [build_question(topic, rating, **kwargs) for rating in ratings]
        db_session.add_all(questions)
        await db_session.commit()
        return questions

    return _make


@pytest.fixture
def add_xp_event(db_session: AsyncSession):
    """Insert a raw ledger row (and keep the student's total in step)"""
    async def _add(student: Student, amount: int, date: datetime, action: str = "quiz_submitted") -> XPEvent:
        event = XPEvent(student_id=student.id, action=action, xp_amount=amount, date=date)
        db_session.add(event)
        student.xp_total = (student.xp_total or 0) + amount
        student.current_level = student.xp_total // 200 + 1
        await db_session.commit()
        return event

    return _add
