# ============================================================================
# Lex Session Question Selection
# ============================================================================
from typing import List, Optional, Set, Sequence, Iterable
from uuid import UUID
from datetime import datetime, timedelta
import logging
import random

from app.config import get_settings
from app.core.exceptions import Exhausted
from app.models.curriculum import Question
from app.models.practice import QuestionAttempt
from app.models.user import Student

logger = logging.getLogger(__name__)
settings = get_settings()


class LexQuestionSelector:
    """
    Builds one Lex practice session from the question bank and a student's
    attempt history.

    Pools are filled in a fixed order and each pool samples uniformly without
    replacement from questions not already picked:

    1. recent   - topics touched in the last 14 days, minus questions seen there
    2. weak     - the profile's weak topics, minus questions ever answered wrong
    3. unseen   - topics with no attempt in the last 28 days
    4. reattempt - questions missed more than 28 days ago (fills what is left)
    5. fallback - anything in the bank

    A pool that cannot meet its target just comes up short; the missing slots
    are not handed to the next pool.
    """

    def __init__(
        self,
        question_bank: Sequence[Question],
        attempts: Iterable[QuestionAttempt],
        rng: Optional[random.Random] = None
    ):
        self.question_bank = list(question_bank)
        self.attempts = [a for a in attempts if a.attempt_date is not None]
        self.rng = rng or random.Random()
        self.shortfalls: List[Exhausted] = []

        self._by_id = {q.id: q for q in self.question_bank}

    def generate_session_questions(
        self,
        student_id: UUID,
        profile: Student,
        now: Optional[datetime] = None
    ) -> List[Question]:
        """Return up to LEX_SESSION_SIZE distinct questions"""
        now = now or datetime.utcnow()
        size = settings.LEX_SESSION_SIZE
        self.shortfalls = []

        selected: List[Question] = []
        taken: Set[UUID] = set()

        def take(pool: str, candidates: List[Question], target: int) -> None:
            available = [q for q in candidates if q.id not in taken]
            picked = self.rng.sample(available, min(target, len(available)))
            if len(picked) < target:
                shortfall = Exhausted(pool, target, len(picked))
                self.shortfalls.append(shortfall)
                logger.debug(f"Student {student_id}: {shortfall.detail}")
            selected.extend(picked)
            taken.update(q.id for q in picked)

        take("recent", self._recent_pool(now), settings.LEX_RECENT_TARGET)
        take("weak", self._weak_pool(profile), settings.LEX_WEAK_TARGET)
        take("unseen", self._unseen_pool(now), settings.LEX_UNSEEN_TARGET)

        if len(selected) < size:
            take("reattempt", self._reattempt_pool(now), size - len(selected))

        if len(selected) < size:
            take("fallback", self.question_bank, size - len(selected))

        logger.info(
            f"Generated Lex session for {student_id}: {len(selected[:size])} questions"
        )
        return selected[:size]

    # ------------------------------------------------------------------
    # Pools
    # ------------------------------------------------------------------

    def _topic_of(self, attempt: QuestionAttempt) -> Optional[str]:
        question = self._by_id.get(attempt.question_id)
        return question.topic if question else None

    def _recent_pool(self, now: datetime) -> List[Question]:
        cutoff = now - timedelta(days=settings.LEX_RECENT_WINDOW_DAYS)
        recent = [a for a in self.attempts if a.attempt_date >= cutoff]

        topics = {self._topic_of(a) for a in recent} - {None}
        seen = {a.question_id for a in recent}

        return [q for q in self.question_bank if q.topic in topics and q.id not in seen]

    def _weak_pool(self, profile: Student) -> List[Question]:
        weak_topics = set(profile.weak_topics or [])
        if not weak_topics:
            return []

        missed = {a.question_id for a in self.attempts if a.correct is False}
        return [q for q in self.question_bank if q.topic in weak_topics and q.id not in missed]

    def _unseen_pool(self, now: datetime) -> List[Question]:
        cutoff = now - timedelta(days=settings.LEX_UNSEEN_WINDOW_DAYS)
        touched = {self._topic_of(a) for a in self.attempts if a.attempt_date >= cutoff}

        return [q for q in self.question_bank if q.topic not in touched]

    def _reattempt_pool(self, now: datetime) -> List[Question]:
        cutoff = now - timedelta(days=settings.LEX_UNSEEN_WINDOW_DAYS)
        missed = {
            a.question_id for a in self.attempts
            if a.correct is False and a.attempt_date < cutoff
        }
        return [q for q in self.question_bank if q.id in missed]
