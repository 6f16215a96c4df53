# ============================================================================
# Badge System
# ============================================================================
from typing import Dict, List
from uuid import UUID
from datetime import datetime
import logging

from sqlalchemy.exc import IntegrityError

from app.core.exceptions import Conflict, NotFound
from app.models.gamification import Badge, StudentBadge, XPAction
from app.models.user import Student
from app.repositories.base import UnitOfWork
from app.services.gamification.xp_system import XPSystem

logger = logging.getLogger(__name__)

# Named criteria; Badge.criteria stores one of these keys
BADGE_RULES = {
    "math_master": {"subject": "Mathematics", "lessons": 15, "accuracy": 90},
    "speed_demon": {"seconds": 30, "attempts": 10},
    "consistent_learner": {"streak_days": 7},
}

BADGE_DEFINITIONS = [
    {"name": "Math Master", "criteria": "math_master", "xp_reward": 200, "rarity": "epic", "icon": "🧮",
     "description": "Complete 15 Mathematics lessons with at least 90% accuracy"},
    {"name": "Speed Demon", "criteria": "speed_demon", "xp_reward": 100, "rarity": "rare", "icon": "⚡",
     "description": "Answer 10 questions in under 30 seconds each"},
    {"name": "Consistent Learner", "criteria": "consistent_learner", "xp_reward": 150, "rarity": "rare", "icon": "🔥",
     "description": "Study 7 days in a row"},
]


class BadgeEngine:
    """Badge eligibility checks and awarding"""

    def __init__(self, uow: UnitOfWork):
        self.uow = uow
        self.xp_system = XPSystem(uow)

    async def ensure_default_badges(self) -> int:
        """Insert any missing default badges; returns how many were created"""
        created = 0
        for definition in BADGE_DEFINITIONS:
            if await self.uow.badges.get_by_name(definition["name"]):
                continue
            await self.uow.badges.add(Badge(**definition))
            created += 1

        if created:
            await self.uow.commit()
            logger.info(f"Seeded {created} default badges")
        return created

    # ==================== Eligibility ====================

    async def check_eligibility(self, student_id: UUID) -> List[UUID]:
        """Badges the student now qualifies for and does not hold yet"""
        student = await self.uow.students.get(student_id)
        if not student:
            raise NotFound("Student", student_id)

        earned_ids = await self.uow.badges.earned_badge_ids(student_id)
        eligible = []

        for badge in await self.uow.badges.list_active():
            if badge.id in earned_ids:
                continue
            if await self._check_criteria(student, badge):
                eligible.append(badge.id)

        return eligible

    async def _check_criteria(self, student: Student, badge: Badge) -> bool:
        rule = BADGE_RULES.get(badge.criteria)
        if rule is None:
            logger.warning(f"Badge {badge.name} has unknown criteria '{badge.criteria}'")
            return False

        if badge.criteria == "math_master":
            return await self._check_math_master(student.id, rule)
        elif badge.criteria == "speed_demon":
            fast = await self.uow.attempts.count_faster_than(student.id, rule["seconds"])
            return fast >= rule["attempts"]
        elif badge.criteria == "consistent_learner":
            return (student.study_streak or 0) >= rule["streak_days"]

        return False

    async def _check_math_master(self, student_id: UUID, rule: Dict) -> bool:
        lessons = await self.uow.activity.count_lessons(student_id, rule["subject"])
        if lessons < rule["lessons"]:
            return False

        correct, total = await self.uow.attempts.subject_accuracy(student_id, rule["subject"])
        if total == 0:
            return False
        return 100.0 * correct / total >= rule["accuracy"]

    # ==================== Awarding ====================

    async def award_badge(self, student_id: UUID, badge_id: UUID) -> Dict:
        """
        Grant a badge with its XP reward.

        The StudentBadge row, the badge_earned XPEvent and the student's
        total/level change are committed together or not at all.
        """
        try:
            badge = await self.uow.badges.get(badge_id)
            if not badge:
                raise NotFound("Badge", badge_id)

            student = await self.uow.students.get_for_update(student_id)
            if not student:
                raise NotFound("Student", student_id)

            if await self.uow.badges.find_student_badge(student_id, badge_id):
                raise Conflict(f"Badge '{badge.name}' already awarded to student {student_id}")

            student_badge = await self.uow.badges.add_student_badge(StudentBadge(
                student_id=student_id,
                badge_id=badge_id,
                date_earned=datetime.utcnow()
            ))
            await self.uow.flush()

            award = await self.xp_system.apply_xp(
                student_id,
                XPAction.BADGE_EARNED,
                badge.xp_reward or 0,
                trigger=f"badge_{badge_id}",
                student=student
            )
            await self.uow.commit()
        except IntegrityError:
            await self.uow.rollback()
            raise Conflict(f"Badge {badge_id} already awarded to student {student_id}")
        except Exception:
            await self.uow.rollback()
            raise

        logger.info(f"Awarded badge '{badge.name}' to student {student_id}")

        return {
            "badge_id": badge.id,
            "name": badge.name,
            "xp_reward": award.amount,
            "xp_total": award.xp_total,
            "level": award.new_level,
            "leveled_up": award.leveled_up,
            "date_earned": student_badge.date_earned,
        }

    async def check_and_award(self, student_id: UUID) -> List[Dict]:
        """Award every badge the student is newly eligible for"""
        awarded = []
        for badge_id in await self.check_eligibility(student_id):
            try:
                awarded.append(await self.award_badge(student_id, badge_id))
            except Conflict as e:
                logger.info(f"Skipping badge for {student_id}: {e.detail}")
        return awarded

    async def get_student_badges(self, student_id: UUID) -> List[Dict]:
        student = await self.uow.students.get(student_id)
        if not student:
            raise NotFound("Student", student_id)

        return [
            {
                "badge_id": badge.id,
                "name": badge.name,
                "description": badge.description,
                "icon": badge.icon,
                "rarity": badge.rarity,
                "xp_reward": badge.xp_reward,
                "date_earned": student_badge.date_earned,
            }
            for student_badge, badge in await self.uow.badges.list_student_badges(student_id)
        ]
