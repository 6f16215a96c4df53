# ============================================================================
# Parent Report Service
# ============================================================================
from typing import Dict, List, Optional
from uuid import UUID
from datetime import datetime, timedelta
from collections import defaultdict
import logging

from app.core.exceptions import NotFound
from app.models.user import Student
from app.repositories.base import UnitOfWork

logger = logging.getLogger(__name__)


class ParentReportService:
    """Weekly progress summary for a student's linked parents"""

    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    async def generate_report(self, student_id: UUID, now: Optional[datetime] = None) -> Dict:
        student = await self.uow.students.get(student_id)
        if not student:
            raise NotFound("Student", student_id)

        now = now or datetime.utcnow()
        week_start = now - timedelta(days=7)

        attempts = await self.uow.attempts.list_for_student(student_id, since=week_start)
        questions = await self.uow.questions.get_many({a.question_id for a in attempts})
        topics = {q.id: q.topic for q in questions}

        total_questions = len(attempts)
        correct_answers = sum(1 for a in attempts if a.correct)
        accuracy = (correct_answers / total_questions * 100) if total_questions > 0 else 0

        daily_stats = defaultdict(lambda: {"attempted": 0, "correct": 0})
        topic_stats = defaultdict(lambda: {"attempted": 0, "correct": 0})
        for attempt in attempts:
            day = attempt.attempt_date.date().isoformat()
            daily_stats[day]["attempted"] += 1
            topic = topics.get(attempt.question_id)
            if topic:
                topic_stats[topic]["attempted"] += 1
            if attempt.correct:
                daily_stats[day]["correct"] += 1
                if topic:
                    topic_stats[topic]["correct"] += 1

        weekly_xp = await self.uow.xp_events.sum_for_student(student_id, start=week_start, end=now)
        badges = await self.uow.badges.list_student_badges(student_id)

        return {
            "report_type": "weekly",
            "week_start": week_start.date().isoformat(),
            "week_end": now.date().isoformat(),
            "student": {
                "id": str(student.id),
                "name": student.name,
                "level": student.current_level,
                "total_xp": student.xp_total,
                "current_working_average": round(student.current_working_average or 0, 1),
            },
            "summary": {
                "total_questions": total_questions,
                "correct_answers": correct_answers,
                "accuracy_percentage": round(accuracy, 1),
                "active_days": len(daily_stats),
                "xp_earned": weekly_xp,
                "current_streak": student.study_streak,
            },
            "daily_breakdown": dict(daily_stats),
            "topic_breakdown": dict(topic_stats),
            "weak_topics": list(student.weak_topics or []),
            "strong_topics": list(student.strong_topics or []),
            "new_badges": [
                badge.name for student_badge, badge in badges
                if student_badge.date_earned and student_badge.date_earned >= week_start
            ],
            "recommendations": self._generate_recommendations(accuracy, total_questions, student),
        }

    def _generate_recommendations(self, accuracy: float, questions: int, student: Student) -> List[str]:
        recommendations = []

        if questions < 5:
            recommendations.append("Encourage more daily practice - aim for at least 10 questions per day")

        if questions and accuracy < 60:
            recommendations.append("Focus on reviewing weak topics before moving to new ones")

        if not student.study_streak:
            recommendations.append("Help maintain a daily practice streak for better retention")

        if student.weak_topics:
            recommendations.append(f"Spend extra time on: {', '.join(student.weak_topics[:3])}")

        if not recommendations:
            recommendations.append("Great work this week! Keep up the consistent practice")

        return recommendations
