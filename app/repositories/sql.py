# ============================================================================
# SQLAlchemy Repositories
# ============================================================================
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Dict, Iterable, List, Optional, Set, Tuple
from uuid import UUID

from sqlalchemy import Integer, delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.database import get_session_maker
from app.models.curriculum import Question
from app.models.gamification import Badge, LeaderboardEntry, StudentBadge, XPEvent
from app.models.practice import (
    HomeworkAssignment, HomeworkStatus, LessonCompletion, LexSession, QuestionAttempt
)
from app.models.user import ParentStudentLink, Student
from app.repositories.base import (
    ActivityRepository, AttemptRepository, BadgeRepository, LeaderboardRepository,
    QuestionRepository, StudentRepository, UnitOfWork, XPEventRepository,
)


class SqlQuestionRepository(QuestionRepository):
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, question_id: UUID) -> Optional[Question]:
        return await self.db.get(Question, question_id)

    async def get_many(self, question_ids: Iterable[UUID]) -> List[Question]:
        ids = list(question_ids)
        if not ids:
            return []
        result = await self.db.execute(select(Question).where(Question.id.in_(ids)))
        return list(result.scalars().all())

    async def list_all(self) -> List[Question]:
        result = await self.db.execute(
            select(Question)
            .where(Question.is_active == True)
            .order_by(Question.created_at, Question.id)
        )
        return list(result.scalars().all())

    async def list_by_topic(self, topic: str) -> List[Question]:
        result = await self.db.execute(
            select(Question)
            .where(Question.is_active == True)
            .where(Question.topic == topic)
            .order_by(Question.grade_rating, Question.id)
        )
        return list(result.scalars().all())

    async def add(self, question: Question) -> Question:
        self.db.add(question)
        return question


class SqlAttemptRepository(AttemptRepository):
    def __init__(self, db: AsyncSession):
        self.db = db

    async def add(self, attempt: QuestionAttempt) -> QuestionAttempt:
        self.db.add(attempt)
        return attempt

    async def list_for_student(
        self, student_id: UUID, since: Optional[datetime] = None
    ) -> List[QuestionAttempt]:
        query = (
            select(QuestionAttempt)
            .where(QuestionAttempt.student_id == student_id)
            .order_by(QuestionAttempt.attempt_date.desc())
        )
        if since is not None:
            query = query.where(QuestionAttempt.attempt_date >= since)

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def list_recent(self, student_id: UUID, limit: int) -> List[QuestionAttempt]:
        result = await self.db.execute(
            select(QuestionAttempt)
            .where(QuestionAttempt.student_id == student_id)
            .order_by(QuestionAttempt.attempt_date.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def subject_accuracy(self, student_id: UUID, subject: str) -> Tuple[int, int]:
        result = await self.db.execute(
            select(
                func.count(QuestionAttempt.id).label("total"),
                func.sum(QuestionAttempt.correct.cast(Integer)).label("correct")
            )
            .join(Question, QuestionAttempt.question_id == Question.id)
            .where(QuestionAttempt.student_id == student_id)
            .where(Question.subject == subject)
        )
        row = result.one()
        return int(row.correct or 0), int(row.total or 0)

    async def count_faster_than(self, student_id: UUID, seconds: int) -> int:
        result = await self.db.execute(
            select(func.count(QuestionAttempt.id))
            .where(QuestionAttempt.student_id == student_id)
            .where(QuestionAttempt.time_taken < seconds)
        )
        return result.scalar() or 0


class SqlStudentRepository(StudentRepository):
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, student_id: UUID) -> Optional[Student]:
        return await self.db.get(Student, student_id)

    async def get_for_update(self, student_id: UUID) -> Optional[Student]:
        result = await self.db.execute(
            select(Student)
            .where(Student.id == student_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_ids(self) -> List[UUID]:
        result = await self.db.execute(select(Student.id).order_by(Student.created_at, Student.id))
        return [row[0] for row in result.all()]

    async def list_inactive(self, since: datetime) -> List[Student]:
        result = await self.db.execute(
            select(Student)
            .where(Student.last_login.isnot(None))
            .where(Student.last_login < since)
            .order_by(Student.last_login)
        )
        return list(result.scalars().all())

    async def list_with_parent_reports(self) -> List[ParentStudentLink]:
        result = await self.db.execute(
            select(ParentStudentLink)
            .where(ParentStudentLink.notifications_enabled == True)
        )
        return list(result.scalars().all())

    async def add(self, student: Student) -> Student:
        self.db.add(student)
        return student


class SqlXPEventRepository(XPEventRepository):
    def __init__(self, db: AsyncSession):
        self.db = db

    async def add(self, event: XPEvent) -> XPEvent:
        self.db.add(event)
        return event

    async def sum_for_student(
        self,
        student_id: UUID,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> int:
        query = select(func.coalesce(func.sum(XPEvent.xp_amount), 0)).where(XPEvent.student_id == student_id)
        if start is not None:
            query = query.where(XPEvent.date >= start)
        if end is not None:
            query = query.where(XPEvent.date < end)

        result = await self.db.execute(query)
        return int(result.scalar() or 0)

    async def sum_by_student(self, start: datetime, end: datetime) -> Dict[UUID, int]:
        result = await self.db.execute(
            select(XPEvent.student_id, func.sum(XPEvent.xp_amount).label("total"))
            .where(XPEvent.date >= start)
            .where(XPEvent.date < end)
            .group_by(XPEvent.student_id)
        )
        return {row.student_id: int(row.total or 0) for row in result.all()}

    async def exists_between(self, student_id: UUID, start: datetime, end: datetime) -> bool:
        result = await self.db.execute(
            select(XPEvent.id)
            .where(XPEvent.student_id == student_id)
            .where(XPEvent.date >= start)
            .where(XPEvent.date < end)
            .limit(1)
        )
        return result.first() is not None

    async def list_for_student(self, student_id: UUID) -> List[XPEvent]:
        result = await self.db.execute(
            select(XPEvent)
            .where(XPEvent.student_id == student_id)
            .order_by(XPEvent.date)
        )
        return list(result.scalars().all())


class SqlBadgeRepository(BadgeRepository):
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, badge_id: UUID) -> Optional[Badge]:
        return await self.db.get(Badge, badge_id)

    async def get_by_name(self, name: str) -> Optional[Badge]:
        result = await self.db.execute(select(Badge).where(Badge.name == name))
        return result.scalar_one_or_none()

    async def list_active(self) -> List[Badge]:
        result = await self.db.execute(
            select(Badge).where(Badge.is_active == True).order_by(Badge.name)
        )
        return list(result.scalars().all())

    async def add(self, badge: Badge) -> Badge:
        self.db.add(badge)
        return badge

    async def earned_badge_ids(self, student_id: UUID) -> Set[UUID]:
        result = await self.db.execute(
            select(StudentBadge.badge_id).where(StudentBadge.student_id == student_id)
        )
        return {row[0] for row in result.all()}

    async def find_student_badge(self, student_id: UUID, badge_id: UUID) -> Optional[StudentBadge]:
        result = await self.db.execute(
            select(StudentBadge)
            .where(StudentBadge.student_id == student_id)
            .where(StudentBadge.badge_id == badge_id)
        )
        return result.scalar_one_or_none()

    async def add_student_badge(self, student_badge: StudentBadge) -> StudentBadge:
        self.db.add(student_badge)
        return student_badge

    async def list_student_badges(self, student_id: UUID) -> List[Tuple[StudentBadge, Badge]]:
        result = await self.db.execute(
            select(StudentBadge, Badge)
            .join(Badge, StudentBadge.badge_id == Badge.id)
            .where(StudentBadge.student_id == student_id)
            .order_by(StudentBadge.date_earned.desc())
        )
        return [(sb, badge) for sb, badge in result.all()]


class SqlLeaderboardRepository(LeaderboardRepository):
    def __init__(self, db: AsyncSession):
        self.db = db

    async def add(self, entry: LeaderboardEntry) -> LeaderboardEntry:
        self.db.add(entry)
        return entry

    async def find_entry(
        self, student_id: UUID, period: str, start: datetime, end: datetime
    ) -> Optional[LeaderboardEntry]:
        result = await self.db.execute(
            select(LeaderboardEntry)
            .where(LeaderboardEntry.student_id == student_id)
            .where(LeaderboardEntry.period == period)
            .where(LeaderboardEntry.window_start == start)
            .where(LeaderboardEntry.window_end == end)
        )
        return result.scalar_one_or_none()

    async def find_entry_ending_within(
        self, student_id: UUID, period: str, start: datetime, end: datetime
    ) -> Optional[LeaderboardEntry]:
        result = await self.db.execute(
            select(LeaderboardEntry)
            .where(LeaderboardEntry.student_id == student_id)
            .where(LeaderboardEntry.period == period)
            .where(LeaderboardEntry.window_end >= start)
            .where(LeaderboardEntry.window_end < end)
            .order_by(LeaderboardEntry.window_end.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def latest_entry_ending_before(
        self, student_id: UUID, period: str, cutoff: datetime
    ) -> Optional[LeaderboardEntry]:
        result = await self.db.execute(
            select(LeaderboardEntry)
            .where(LeaderboardEntry.student_id == student_id)
            .where(LeaderboardEntry.period == period)
            .where(LeaderboardEntry.window_end < cutoff)
            .order_by(LeaderboardEntry.window_end.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def list_window(
        self, period: str, start: datetime, end: datetime, limit: Optional[int] = None
    ) -> List[LeaderboardEntry]:
        query = (
            select(LeaderboardEntry)
            .where(LeaderboardEntry.period == period)
            .where(LeaderboardEntry.window_start == start)
            .where(LeaderboardEntry.window_end == end)
            .order_by(LeaderboardEntry.weekly_xp.desc(), LeaderboardEntry.id.asc())
        )
        if limit is not None:
            query = query.limit(limit)

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def latest_window(self, period: str) -> Optional[Tuple[datetime, datetime]]:
        result = await self.db.execute(
            select(LeaderboardEntry.window_start, LeaderboardEntry.window_end)
            .where(LeaderboardEntry.period == period)
            .order_by(LeaderboardEntry.window_end.desc())
            .limit(1)
        )
        row = result.first()
        return (row.window_start, row.window_end) if row else None

    async def delete_window(self, period: str, start: datetime, end: datetime) -> int:
        result = await self.db.execute(
            delete(LeaderboardEntry)
            .where(LeaderboardEntry.period == period)
            .where(LeaderboardEntry.window_start == start)
            .where(LeaderboardEntry.window_end == end)
        )
        return result.rowcount

    async def list_for_student(self, student_id: UUID, period: str) -> List[LeaderboardEntry]:
        result = await self.db.execute(
            select(LeaderboardEntry)
            .where(LeaderboardEntry.student_id == student_id)
            .where(LeaderboardEntry.period == period)
            .order_by(LeaderboardEntry.window_end.desc())
        )
        return list(result.scalars().all())


class SqlActivityRepository(ActivityRepository):
    def __init__(self, db: AsyncSession):
        self.db = db

    async def add_lesson_completion(self, completion: LessonCompletion) -> LessonCompletion:
        self.db.add(completion)
        return completion

    async def find_lesson_completion(self, student_id: UUID, lesson_ref: str) -> Optional[LessonCompletion]:
        result = await self.db.execute(
            select(LessonCompletion)
            .where(LessonCompletion.student_id == student_id)
            .where(LessonCompletion.lesson_ref == lesson_ref)
        )
        return result.scalar_one_or_none()

    async def count_lessons(self, student_id: UUID, subject: Optional[str] = None) -> int:
        query = (
            select(func.count(func.distinct(LessonCompletion.lesson_ref)))
            .where(LessonCompletion.student_id == student_id)
        )
        if subject:
            query = query.where(LessonCompletion.subject == subject)

        result = await self.db.execute(query)
        return result.scalar() or 0

    async def get_homework(self, homework_id: UUID) -> Optional[HomeworkAssignment]:
        return await self.db.get(HomeworkAssignment, homework_id)

    async def add_homework(self, homework: HomeworkAssignment) -> HomeworkAssignment:
        self.db.add(homework)
        return homework

    async def mark_overdue_homework(self, now: datetime) -> int:
        result = await self.db.execute(
            update(HomeworkAssignment)
            .where(HomeworkAssignment.due_date < now)
            .where(HomeworkAssignment.completion_status.in_([
                HomeworkStatus.NOT_STARTED.value,
                HomeworkStatus.IN_PROGRESS.value,
            ]))
            .values(completion_status=HomeworkStatus.OVERDUE.value, updated_at=now)
        )
        return result.rowcount

    async def add_lex_session(self, session: LexSession) -> LexSession:
        self.db.add(session)
        return session


class SqlAlchemyUnitOfWork(UnitOfWork):
    """All repositories over one AsyncSession (one transaction)"""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.questions = SqlQuestionRepository(db)
        self.attempts = SqlAttemptRepository(db)
        self.students = SqlStudentRepository(db)
        self.xp_events = SqlXPEventRepository(db)
        self.badges = SqlBadgeRepository(db)
        self.leaderboard = SqlLeaderboardRepository(db)
        self.activity = SqlActivityRepository(db)

    async def flush(self) -> None:
        await self.db.flush()

    async def commit(self) -> None:
        await self.db.commit()

    async def rollback(self) -> None:
        await self.db.rollback()


@asynccontextmanager
async def unit_of_work(session_maker: Optional[async_sessionmaker] = None) -> AsyncIterator[SqlAlchemyUnitOfWork]:
    """Open a session-backed unit of work; rolls back if the block raises"""
    maker = session_maker or get_session_maker()
    async with maker() as session:
        uow = SqlAlchemyUnitOfWork(session)
        try:
            yield uow
        except Exception:
            await session.rollback()
            raise
