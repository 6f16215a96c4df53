# ============================================================================
# Post-Session Profile Update
# ============================================================================
from typing import Callable, Dict, Iterable, List, Optional
from uuid import UUID
from datetime import datetime
from collections import defaultdict
import logging

from app.config import get_settings
from app.models.curriculum import Question
from app.models.practice import QuestionAttempt
from app.models.user import Student

logger = logging.getLogger(__name__)
settings = get_settings()

TopicStrategy = Callable[[Student, Dict[str, float]], Dict[str, List[str]]]


def session_topic_accuracy(
    session_questions: Iterable[Question],
    session_attempts: Iterable[QuestionAttempt]
) -> Dict[str, float]:
    """correct/total per topic for this session's attempts only"""
    topics = {q.id: q.topic for q in session_questions}
    totals = defaultdict(lambda: [0, 0])

    for attempt in session_attempts:
        topic = topics.get(attempt.question_id)
        if topic is None:
            logger.debug(f"Attempt on question {attempt.question_id} outside the session, ignored")
            continue
        totals[topic][1] += 1
        if attempt.correct:
            totals[topic][0] += 1

    return {topic: correct / total for topic, (correct, total) in totals.items()}


def replace_topic_sets(student: Student, accuracy: Dict[str, float]) -> Dict[str, List[str]]:
    """Rebuild weak/strong/recent from this session alone; prior values are dropped"""
    return {
        "weak_topics": sorted(t for t, a in accuracy.items() if a < settings.WEAK_TOPIC_THRESHOLD),
        "strong_topics": sorted(t for t, a in accuracy.items() if a > settings.STRONG_TOPIC_THRESHOLD),
        "recent_topics": sorted(accuracy),
    }


class ProfileUpdater:
    def __init__(self, strategy: Optional[TopicStrategy] = None):
        self.strategy = strategy or replace_topic_sets

    def update_profile(
        self,
        student: Student,
        session_questions: Iterable[Question],
        session_attempts: Iterable[QuestionAttempt],
        now: Optional[datetime] = None
    ) -> Dict:
        """Apply the topic strategy to ``student`` in place and return the new values"""
        accuracy = session_topic_accuracy(session_questions, session_attempts)
        update = self.strategy(student, accuracy)

        student.weak_topics = update["weak_topics"]
        student.strong_topics = update["strong_topics"]
        student.recent_topics = update["recent_topics"]
        student.last_study_date = now or datetime.utcnow()

        return {
            **update,
            "last_study_date": student.last_study_date,
            "topic_accuracy": accuracy,
        }
