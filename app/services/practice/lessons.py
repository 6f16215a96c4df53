# ============================================================================
# Lesson Completion
# ============================================================================
from typing import Dict, Optional
from uuid import UUID
from datetime import datetime
import logging

from sqlalchemy.exc import IntegrityError

from app.config import get_settings
from app.core.exceptions import Conflict
from app.models.gamification import XPAction
from app.models.practice import LessonCompletion
from app.repositories.base import UnitOfWork
from app.services.gamification.xp_system import XPSystem

logger = logging.getLogger(__name__)
settings = get_settings()


class LessonTracker:
    def __init__(self, uow: UnitOfWork):
        self.uow = uow
        self.xp_system = XPSystem(uow)

    async def complete_lesson(
        self,
        student_id: UUID,
        lesson_ref: str,
        subject: str,
        topic: Optional[str] = None
    ) -> Dict:
        """Log a finished lesson and grant LESSON_XP once per lesson_ref"""
        try:
            if await self.uow.activity.find_lesson_completion(student_id, lesson_ref):
                raise Conflict(f"Lesson '{lesson_ref}' already completed by student {student_id}")

            # Locks the student row before the completion is queued
            award = await self.xp_system.apply_xp(
                student_id,
                XPAction.LESSON_COMPLETED,
                settings.LESSON_XP,
                trigger=f"lesson_{lesson_ref}"
            )
            completion = await self.uow.activity.add_lesson_completion(LessonCompletion(
                student_id=student_id,
                lesson_ref=lesson_ref,
                subject=subject,
                topic=topic,
                completed_at=datetime.utcnow()
            ))
            await self.uow.commit()
        except IntegrityError:
            await self.uow.rollback()
            raise Conflict(f"Lesson '{lesson_ref}' already completed by student {student_id}")
        except Exception:
            await self.uow.rollback()
            raise

        return {
            "lesson_ref": completion.lesson_ref,
            "subject": completion.subject,
            "xp_earned": award.amount,
            "xp_total": award.xp_total,
            "level": award.new_level,
            "leveled_up": award.leveled_up,
        }
