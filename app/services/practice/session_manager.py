# ============================================================================
# Lex Session Management Service
# ============================================================================
"""
Entry points for the Lex practice flow.

- ``generate_session``: pick the session's questions for a student
- ``next_question``: step difficulty within a topic after each answer
- ``complete_session``: record answers, refresh the profile, CWA and XP

All persistence goes through the unit of work; the selection and stepping
logic itself lives in pure classes that take plain lists.
"""
from typing import Dict, List, Optional, Sequence
from datetime import datetime
from uuid import UUID, uuid4
import logging
import random

from app.core.exceptions import NotFound
from app.models.curriculum import Question
from app.models.gamification import XPAction
from app.models.practice import LexSession, QuestionAttempt
from app.repositories.base import UnitOfWork
from app.services.gamification.xp_system import XPSystem, calculate_xp, earns_time_bonus
from app.services.practice.adaptive_difficulty import DifficultyStepper
from app.services.practice.mastery import MasteryCalculator
from app.services.practice.profile_updater import ProfileUpdater, TopicStrategy
from app.services.practice.question_selector import LexQuestionSelector

logger = logging.getLogger(__name__)


class LexSessionManager:
    def __init__(
        self,
        uow: UnitOfWork,
        rng: Optional[random.Random] = None,
        topic_strategy: Optional[TopicStrategy] = None
    ):
        self.uow = uow
        self.rng = rng or random.Random()
        self.profile_updater = ProfileUpdater(topic_strategy)
        self.xp_system = XPSystem(uow)
        self.mastery = MasteryCalculator(uow)

    # ==================== Question Flow ====================

    async def generate_session(self, student_id: UUID, now: Optional[datetime] = None) -> List[Question]:
        student = await self.uow.students.get(student_id)
        if not student:
            raise NotFound("Student", student_id)

        question_bank = await self.uow.questions.list_all()
        attempts = await self.uow.attempts.list_for_student(student_id)

        selector = LexQuestionSelector(question_bank, attempts, rng=self.rng)
        return selector.generate_session_questions(student_id, student, now=now)

    async def next_question(
        self,
        question_id: UUID,
        was_correct: bool,
        student_id: Optional[UUID] = None
    ) -> Optional[Question]:
        current = await self.uow.questions.get(question_id)
        if not current:
            raise NotFound("Question", question_id)

        same_topic = await self.uow.questions.list_by_topic(current.topic)
        return DifficultyStepper(same_topic, rng=self.rng).next_question(
            current, was_correct, student_id
        )

    # ==================== Session Close ====================

    async def complete_session(
        self,
        student_id: UUID,
        session_questions: Sequence[Question],
        session_attempts: Sequence[QuestionAttempt],
        started_at: Optional[datetime] = None,
        now: Optional[datetime] = None
    ) -> Dict:
        """Record the session's answers and fold them into the student's state (one commit)"""
        now = now or datetime.utcnow()

        try:
            student = await self.uow.students.get_for_update(student_id)
            if not student:
                raise NotFound("Student", student_id)

            level_start = student.current_level
            lex_session = LexSession(
                id=uuid4(),
                student_id=student_id,
                started_at=started_at or now,
                ended_at=now,
                level_start=level_start
            )
            await self.uow.activity.add_lex_session(lex_session)

            for attempt in session_attempts:
                attempt.student_id = student_id
                attempt.session_id = lex_session.id
                if attempt.attempt_date is None:
                    attempt.attempt_date = now
                await self.uow.attempts.add(attempt)

            profile = self.profile_updater.update_profile(
                student, session_questions, session_attempts, now=now
            )
            cwa = await self.mastery.refresh_cwa(student_id)

            questions_by_id = {q.id: q for q in session_questions}
            session_xp = sum(
                calculate_xp(
                    questions_by_id[a.question_id].difficulty,
                    a.correct,
                    earns_time_bonus(a.time_taken)
                )
                for a in session_attempts
                if a.question_id in questions_by_id
            )

            award = None
            if session_xp > 0:
                award = await self.xp_system.apply_xp(
                    student_id,
                    XPAction.LEX_SESSION,
                    session_xp,
                    trigger=f"lex_session_{lex_session.id}",
                    student=student
                )

            answered = len(session_attempts)
            correct = sum(1 for a in session_attempts if a.correct)
            accuracy = round(100.0 * correct / answered, 1) if answered else 0.0

            topic_accuracy = profile["topic_accuracy"]
            focus = sorted(profile["weak_topics"], key=lambda t: (topic_accuracy.get(t, 0.0), t))

            lex_session.questions_answered = answered
            lex_session.accuracy = accuracy
            lex_session.suggested_focus_topics = focus
            lex_session.level_end = student.current_level
            lex_session.xp_earned = session_xp

            await self.uow.commit()
        except Exception:
            await self.uow.rollback()
            raise

        logger.info(
            f"Lex session {lex_session.id} closed for {student_id}: "
            f"{correct}/{answered} correct, +{session_xp} XP"
        )

        return {
            "session_id": lex_session.id,
            "questions_answered": answered,
            "correct": correct,
            "accuracy": accuracy,
            "xp_earned": session_xp,
            "xp_total": student.xp_total,
            "level_start": level_start,
            "level_end": student.current_level,
            "leveled_up": bool(award and award.leveled_up),
            "current_working_average": cwa,
            "weak_topics": profile["weak_topics"],
            "strong_topics": profile["strong_topics"],
            "recent_topics": profile["recent_topics"],
            "suggested_focus_topics": focus,
        }
