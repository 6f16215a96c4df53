# ============================================================================
# Repository Interfaces
# ============================================================================
"""
Narrow per-entity access contracts.

Services depend on these abstractions only; the concrete store lives in
``app.repositories.sql``. A ``UnitOfWork`` bundles one repository per entity
over a single transaction so multi-entity writes (badge awards, session
completion) commit or roll back together.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Set, Tuple
from uuid import UUID

from app.models.curriculum import Question
from app.models.gamification import Badge, LeaderboardEntry, StudentBadge, XPEvent
from app.models.practice import HomeworkAssignment, LessonCompletion, LexSession, QuestionAttempt
from app.models.user import ParentStudentLink, Student


class QuestionRepository(ABC):
    @abstractmethod
    async def get(self, question_id: UUID) -> Optional[Question]:
        raise NotImplementedError

    @abstractmethod
    async def get_many(self, question_ids: Iterable[UUID]) -> List[Question]:
        raise NotImplementedError

    @abstractmethod
    async def list_all(self) -> List[Question]:
        raise NotImplementedError

    @abstractmethod
    async def list_by_topic(self, topic: str) -> List[Question]:
        raise NotImplementedError

    @abstractmethod
    async def add(self, question: Question) -> Question:
        raise NotImplementedError


class AttemptRepository(ABC):
    @abstractmethod
    async def add(self, attempt: QuestionAttempt) -> QuestionAttempt:
        raise NotImplementedError

    @abstractmethod
    async def list_for_student(
        self, student_id: UUID, since: Optional[datetime] = None
    ) -> List[QuestionAttempt]:
        raise NotImplementedError

    @abstractmethod
    async def list_recent(self, student_id: UUID, limit: int) -> List[QuestionAttempt]:
        raise NotImplementedError

    @abstractmethod
    async def subject_accuracy(self, student_id: UUID, subject: str) -> Tuple[int, int]:
        """Return (correct, total) over attempts on questions of ``subject``"""
        raise NotImplementedError

    @abstractmethod
    async def count_faster_than(self, student_id: UUID, seconds: int) -> int:
        raise NotImplementedError


class StudentRepository(ABC):
    @abstractmethod
    async def get(self, student_id: UUID) -> Optional[Student]:
        raise NotImplementedError

    @abstractmethod
    async def get_for_update(self, student_id: UUID) -> Optional[Student]:
        """Fetch the student row locked for the rest of the transaction"""
        raise NotImplementedError

    @abstractmethod
    async def list_ids(self) -> List[UUID]:
        raise NotImplementedError

    @abstractmethod
    async def list_inactive(self, since: datetime) -> List[Student]:
        raise NotImplementedError

    @abstractmethod
    async def list_with_parent_reports(self) -> List[ParentStudentLink]:
        raise NotImplementedError

    @abstractmethod
    async def add(self, student: Student) -> Student:
        raise NotImplementedError


class XPEventRepository(ABC):
    @abstractmethod
    async def add(self, event: XPEvent) -> XPEvent:
        raise NotImplementedError

    @abstractmethod
    async def sum_for_student(
        self,
        student_id: UUID,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> int:
        """Sum of xp_amount in [start, end)"""
        raise NotImplementedError

    @abstractmethod
    async def sum_by_student(self, start: datetime, end: datetime) -> Dict[UUID, int]:
        raise NotImplementedError

    @abstractmethod
    async def exists_between(self, student_id: UUID, start: datetime, end: datetime) -> bool:
        raise NotImplementedError

    @abstractmethod
    async def list_for_student(self, student_id: UUID) -> List[XPEvent]:
        raise NotImplementedError


class BadgeRepository(ABC):
    @abstractmethod
    async def get(self, badge_id: UUID) -> Optional[Badge]:
        raise NotImplementedError

    @abstractmethod
    async def get_by_name(self, name: str) -> Optional[Badge]:
        raise NotImplementedError

    @abstractmethod
    async def list_active(self) -> List[Badge]:
        raise NotImplementedError

    @abstractmethod
    async def add(self, badge: Badge) -> Badge:
        raise NotImplementedError

    @abstractmethod
    async def earned_badge_ids(self, student_id: UUID) -> Set[UUID]:
        raise NotImplementedError

    @abstractmethod
    async def find_student_badge(self, student_id: UUID, badge_id: UUID) -> Optional[StudentBadge]:
        raise NotImplementedError

    @abstractmethod
    async def add_student_badge(self, student_badge: StudentBadge) -> StudentBadge:
        raise NotImplementedError

    @abstractmethod
    async def list_student_badges(self, student_id: UUID) -> List[Tuple[StudentBadge, Badge]]:
        raise NotImplementedError


class LeaderboardRepository(ABC):
    @abstractmethod
    async def add(self, entry: LeaderboardEntry) -> LeaderboardEntry:
        raise NotImplementedError

    @abstractmethod
    async def find_entry(
        self, student_id: UUID, period: str, start: datetime, end: datetime
    ) -> Optional[LeaderboardEntry]:
        raise NotImplementedError

    @abstractmethod
    async def find_entry_ending_within(
        self, student_id: UUID, period: str, start: datetime, end: datetime
    ) -> Optional[LeaderboardEntry]:
        """The student's entry whose window_end falls in [start, end)"""
        raise NotImplementedError

    @abstractmethod
    async def latest_entry_ending_before(
        self, student_id: UUID, period: str, cutoff: datetime
    ) -> Optional[LeaderboardEntry]:
        raise NotImplementedError

    @abstractmethod
    async def list_window(
        self, period: str, start: datetime, end: datetime, limit: Optional[int] = None
    ) -> List[LeaderboardEntry]:
        """Entries of one window ordered by XP desc, then insertion order"""
        raise NotImplementedError

    @abstractmethod
    async def latest_window(self, period: str) -> Optional[Tuple[datetime, datetime]]:
        raise NotImplementedError

    @abstractmethod
    async def delete_window(self, period: str, start: datetime, end: datetime) -> int:
        raise NotImplementedError

    @abstractmethod
    async def list_for_student(self, student_id: UUID, period: str) -> List[LeaderboardEntry]:
        raise NotImplementedError


class ActivityRepository(ABC):
    """Lesson completions, homework and Lex session logs"""

    @abstractmethod
    async def add_lesson_completion(self, completion: LessonCompletion) -> LessonCompletion:
        raise NotImplementedError

    @abstractmethod
    async def find_lesson_completion(self, student_id: UUID, lesson_ref: str) -> Optional[LessonCompletion]:
        raise NotImplementedError

    @abstractmethod
    async def count_lessons(self, student_id: UUID, subject: Optional[str] = None) -> int:
        """Distinct lessons completed"""
        raise NotImplementedError

    @abstractmethod
    async def get_homework(self, homework_id: UUID) -> Optional[HomeworkAssignment]:
        raise NotImplementedError

    @abstractmethod
    async def add_homework(self, homework: HomeworkAssignment) -> HomeworkAssignment:
        raise NotImplementedError

    @abstractmethod
    async def mark_overdue_homework(self, now: datetime) -> int:
        raise NotImplementedError

    @abstractmethod
    async def add_lex_session(self, session: LexSession) -> LexSession:
        raise NotImplementedError


class UnitOfWork(ABC):
    questions: QuestionRepository
    attempts: AttemptRepository
    students: StudentRepository
    xp_events: XPEventRepository
    badges: BadgeRepository
    leaderboard: LeaderboardRepository
    activity: ActivityRepository

    @abstractmethod
    async def flush(self) -> None:
        raise NotImplementedError

    @abstractmethod
    async def commit(self) -> None:
        raise NotImplementedError

    @abstractmethod
    async def rollback(self) -> None:
        raise NotImplementedError
