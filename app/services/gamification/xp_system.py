# ============================================================================
# XP & Leveling System
# ============================================================================
from typing import Dict, Optional
from dataclasses import dataclass
from uuid import UUID
from datetime import datetime
import logging

from app.config import get_settings
from app.core.exceptions import InvalidState, NotFound
from app.models.gamification import XPAction, XPEvent
from app.models.user import Student
from app.repositories.base import UnitOfWork

logger = logging.getLogger(__name__)
settings = get_settings()

# XP for a correct answer by difficulty
XP_VALUES = {
    "easy": 10,
    "medium": 20,
    "hard": 30,
}
DEFAULT_XP = 15
TIME_BONUS_MULTIPLIER = 1.2

VALID_ACTIONS = {action.value for action in XPAction}


def calculate_xp(difficulty: Optional[str], correct: bool, time_bonus: bool = False) -> int:
    """XP for one answer; wrong answers earn nothing"""
    if not correct:
        return 0

    xp = XP_VALUES.get(difficulty, DEFAULT_XP)
    if time_bonus:
        xp = int(xp * TIME_BONUS_MULTIPLIER)
    return xp


def earns_time_bonus(time_taken: Optional[int]) -> bool:
    return time_taken is not None and time_taken < settings.LEX_TIME_BONUS_SECONDS


def calculate_level(xp_total: int) -> int:
    return xp_total // settings.XP_PER_LEVEL + 1


@dataclass
class XPAward:
    student_id: UUID
    action: str
    amount: int
    xp_total: int
    old_level: int
    new_level: int

    @property
    def leveled_up(self) -> bool:
        return self.new_level > self.old_level


class XPSystem:
    """Append-only XP ledger with a materialized total per student"""

    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    async def record_xp(
        self,
        student_id: UUID,
        action: str,
        amount: int,
        trigger: Optional[str] = None
    ) -> XPAward:
        """Append an XPEvent and update the student's total and level in one commit"""
        try:
            award = await self.apply_xp(student_id, action, amount, trigger)
            await self.uow.commit()
        except Exception:
            await self.uow.rollback()
            raise

        if award.leveled_up:
            logger.info(f"Student {student_id} leveled up: {award.old_level} -> {award.new_level}")
        return award

    async def apply_xp(
        self,
        student_id: UUID,
        action: str,
        amount: int,
        trigger: Optional[str] = None,
        student: Optional[Student] = None
    ) -> XPAward:
        """Same as record_xp without committing, for callers that own the transaction"""
        action = action.value if isinstance(action, XPAction) else action
        if action not in VALID_ACTIONS:
            raise InvalidState(f"Unknown XP action: {action}")
        if amount is None or amount < 0:
            raise InvalidState(f"XP amount must be non-negative, got {amount}")

        if student is None:
            # Row lock serializes concurrent grants for the same student
            student = await self.uow.students.get_for_update(student_id)
        if not student:
            raise NotFound("Student", student_id)

        old_level = student.current_level or 1

        await self.uow.xp_events.add(XPEvent(
            student_id=student_id,
            action=action,
            xp_amount=amount,
            date=datetime.utcnow(),
            trigger=trigger
        ))

        student.xp_total = (student.xp_total or 0) + amount
        student.current_level = calculate_level(student.xp_total)

        return XPAward(
            student_id=student_id,
            action=action,
            amount=amount,
            xp_total=student.xp_total,
            old_level=old_level,
            new_level=student.current_level
        )

    async def recalculate_totals(self, student_id: UUID) -> XPAward:
        """Rebuild xp_total and current_level from the ledger"""
        student = await self.uow.students.get_for_update(student_id)
        if not student:
            raise NotFound("Student", student_id)

        old_level = student.current_level or 1
        ledger_total = await self.uow.xp_events.sum_for_student(student_id)

        if ledger_total != student.xp_total:
            logger.warning(
                f"XP drift for student {student_id}: stored {student.xp_total}, ledger {ledger_total}"
            )

        student.xp_total = ledger_total
        student.current_level = calculate_level(ledger_total)
        await self.uow.commit()

        return XPAward(
            student_id=student_id,
            action="recalculate",
            amount=0,
            xp_total=ledger_total,
            old_level=old_level,
            new_level=student.current_level
        )

    def get_level_info(self, xp_total: int) -> Dict:
        """Get detailed level information"""
        level = calculate_level(xp_total)
        xp_in_level = xp_total - (level - 1) * settings.XP_PER_LEVEL

        return {
            "level": level,
            "total_xp": xp_total,
            "xp_in_level": xp_in_level,
            "xp_for_next_level": settings.XP_PER_LEVEL - xp_in_level,
            "progress_percent": round(xp_in_level / settings.XP_PER_LEVEL * 100, 1),
        }
