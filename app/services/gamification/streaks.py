# ============================================================================
# Study Streaks
# ============================================================================
from typing import Optional
from uuid import UUID
from datetime import date, datetime, time, timedelta
import logging

from app.core.exceptions import NotFound
from app.repositories.base import UnitOfWork

logger = logging.getLogger(__name__)


def next_streak(current: int, active_today: bool, active_yesterday: bool) -> int:
    """+1 for a day with XP, reset after two quiet days, otherwise unchanged"""
    if active_today:
        return (current or 0) + 1
    if not active_yesterday:
        return 0
    return current or 0


class StreakTracker:
    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    async def update_streak(self, student_id: UUID, day: Optional[date] = None) -> int:
        """Apply the streak step for `day` once; repeat runs for that day are no-ops"""
        day = day or datetime.utcnow().date()

        student = await self.uow.students.get_for_update(student_id)
        if not student:
            raise NotFound("Student", student_id)

        if student.streak_updated_on == day:
            return student.study_streak

        day_start = datetime.combine(day, time.min)
        one_day = timedelta(days=1)
        active_today = await self.uow.xp_events.exists_between(student_id, day_start, day_start + one_day)
        active_yesterday = await self.uow.xp_events.exists_between(student_id, day_start - one_day, day_start)

        old_streak = student.study_streak
        student.study_streak = next_streak(old_streak, active_today, active_yesterday)
        student.streak_updated_on = day
        await self.uow.commit()

        if student.study_streak != old_streak:
            logger.debug(f"Streak for {student_id}: {old_streak} -> {student.study_streak}")
        return student.study_streak
