# ============================================================================
# Mastery / Current Working Average
# ============================================================================
from typing import Dict, Iterable, List, Optional
from uuid import UUID
from collections import defaultdict
import logging

from app.config import get_settings
from app.core.exceptions import NotFound
from app.models.curriculum import Question
from app.models.practice import QuestionAttempt
from app.repositories.base import UnitOfWork

logger = logging.getLogger(__name__)
settings = get_settings()


def _usable(attempts: Iterable[QuestionAttempt]) -> List[QuestionAttempt]:
    """Drop records missing a date or an outcome"""
    usable = []
    for attempt in attempts:
        if attempt.attempt_date is None or attempt.correct is None:
            logger.warning(f"Skipping malformed attempt {attempt.id}")
            continue
        usable.append(attempt)
    return usable


def _percent(attempts: List[QuestionAttempt]) -> float:
    if not attempts:
        return 0.0
    correct = sum(1 for a in attempts if a.correct)
    return 100.0 * correct / len(attempts)


def calculate_cwa(attempts: Iterable[QuestionAttempt], window: Optional[int] = None) -> float:
    """Percentage correct over the most recent ``window`` attempts (0-100)"""
    if window is None:
        window = settings.CWA_WINDOW
    recent = sorted(_usable(attempts), key=lambda a: a.attempt_date, reverse=True)[:window]
    return _percent(recent)


def calculate_topic_mastery(
    attempts: Iterable[QuestionAttempt],
    questions_by_id: Dict[UUID, Question],
    topic: str
) -> float:
    """Percentage correct over every attempt on ``topic``"""
    on_topic = []
    for attempt in _usable(attempts):
        question = questions_by_id.get(attempt.question_id)
        if question is not None and question.topic == topic:
            on_topic.append(attempt)
    return _percent(on_topic)


class MasteryCalculator:
    """Student-level mastery figures loaded through the unit of work"""

    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    async def cwa(self, student_id: UUID) -> float:
        attempts = await self.uow.attempts.list_recent(student_id, settings.CWA_WINDOW)
        return calculate_cwa(attempts)

    async def topic_mastery(self, student_id: UUID, topic: str) -> float:
        attempts = await self.uow.attempts.list_for_student(student_id)
        questions = await self.uow.questions.get_many({a.question_id for a in attempts})
        return calculate_topic_mastery(attempts, {q.id: q for q in questions}, topic)

    async def topic_breakdown(self, student_id: UUID) -> Dict[str, Dict]:
        """Per-topic attempts, correct count and mastery"""
        attempts = _usable(await self.uow.attempts.list_for_student(student_id))
        questions = await self.uow.questions.get_many({a.question_id for a in attempts})
        questions_by_id = {q.id: q for q in questions}

        stats = defaultdict(lambda: {"attempts": 0, "correct": 0})
        for attempt in attempts:
            question = questions_by_id.get(attempt.question_id)
            if question is None:
                continue
            stats[question.topic]["attempts"] += 1
            if attempt.correct:
                stats[question.topic]["correct"] += 1

        return {
            topic: {
                **s,
                "mastery": round(100.0 * s["correct"] / s["attempts"], 1)
            }
            for topic, s in sorted(stats.items())
        }

    async def refresh_cwa(self, student_id: UUID) -> float:
        """Recompute the CWA and store it on the student (no commit)"""
        student = await self.uow.students.get(student_id)
        if not student:
            raise NotFound("Student", student_id)

        await self.uow.flush()
        student.current_working_average = await self.cwa(student_id)
        return student.current_working_average
