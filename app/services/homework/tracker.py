# ============================================================================
# Homework Tracking
# ============================================================================
"""
Homework status moves one way:

    not_started -> in_progress -> completed
    not_started | in_progress -> overdue   (weekly sweep only)

completed and overdue are terminal.
"""
from typing import Dict, Optional
from uuid import UUID
from datetime import datetime
import logging

from app.config import get_settings
from app.core.exceptions import InvalidState, NotFound
from app.models.gamification import XPAction
from app.models.practice import HomeworkAssignment, HomeworkStatus
from app.repositories.base import UnitOfWork
from app.services.gamification.xp_system import XPSystem

logger = logging.getLogger(__name__)
settings = get_settings()


class HomeworkTracker:
    def __init__(self, uow: UnitOfWork):
        self.uow = uow
        self.xp_system = XPSystem(uow)

    async def _get(self, homework_id: UUID) -> HomeworkAssignment:
        homework = await self.uow.activity.get_homework(homework_id)
        if not homework:
            raise NotFound("Homework", homework_id)
        return homework

    async def start(self, homework_id: UUID) -> HomeworkAssignment:
        homework = await self._get(homework_id)
        if homework.completion_status != HomeworkStatus.NOT_STARTED.value:
            raise InvalidState(f"Cannot start homework in status '{homework.completion_status}'")

        homework.completion_status = HomeworkStatus.IN_PROGRESS.value
        await self.uow.commit()
        return homework

    async def record_progress(self, homework_id: UUID, completed_questions: int) -> HomeworkAssignment:
        homework = await self._get(homework_id)
        if homework.completion_status not in (
            HomeworkStatus.NOT_STARTED.value, HomeworkStatus.IN_PROGRESS.value
        ):
            raise InvalidState(f"Cannot update homework in status '{homework.completion_status}'")

        total = homework.total_questions or 0
        if completed_questions < 0 or (total and completed_questions > total):
            raise InvalidState(f"Completed questions must be between 0 and {total}")

        homework.completed_questions = completed_questions
        homework.completion_status = HomeworkStatus.IN_PROGRESS.value
        await self.uow.commit()
        return homework

    async def complete(
        self,
        homework_id: UUID,
        score: Optional[float] = None,
        now: Optional[datetime] = None
    ) -> Dict:
        """Submit in-progress homework and grant HOMEWORK_XP"""
        try:
            homework = await self._get(homework_id)
            if homework.completion_status != HomeworkStatus.IN_PROGRESS.value:
                raise InvalidState(f"Cannot complete homework in status '{homework.completion_status}'")

            award = await self.xp_system.apply_xp(
                homework.student_id,
                XPAction.HOMEWORK_COMPLETED,
                settings.HOMEWORK_XP,
                trigger=f"homework_{homework_id}"
            )

            homework.completion_status = HomeworkStatus.COMPLETED.value
            homework.completed_questions = homework.total_questions or homework.completed_questions
            homework.score = score
            homework.date_submitted = now or datetime.utcnow()
            homework.xp_earned = award.amount
            await self.uow.commit()
        except Exception:
            await self.uow.rollback()
            raise

        return {
            "homework_id": homework.id,
            "status": homework.completion_status,
            "score": homework.score,
            "xp_earned": award.amount,
            "xp_total": award.xp_total,
            "leveled_up": award.leveled_up,
        }

    async def mark_overdue(self, now: Optional[datetime] = None) -> int:
        """Move unfinished homework past its due date to overdue"""
        count = await self.uow.activity.mark_overdue_homework(now or datetime.utcnow())
        await self.uow.commit()

        if count:
            logger.info(f"Marked {count} homework assignments overdue")
        return count
