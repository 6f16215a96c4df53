# ============================================================================
# Scheduled Maintenance
# ============================================================================
"""
Daily and weekly housekeeping runs.

Each per-student step opens its own unit of work, so one student's failure
is logged and the batch moves on. Global steps (leaderboards, homework sweep)
run once per batch and propagate their errors to the caller.
"""
from typing import Any, AsyncContextManager, Awaitable, Callable, Dict, List, Optional
from uuid import UUID
from datetime import datetime, time, timedelta
import logging

from app.config import get_settings
from app.repositories.base import UnitOfWork
from app.repositories.sql import unit_of_work
from app.services.gamification.achievements import BadgeEngine
from app.services.gamification.leaderboards import LeaderboardService
from app.services.gamification.streaks import StreakTracker
from app.services.gamification.xp_system import XPSystem
from app.services.homework.tracker import HomeworkTracker

logger = logging.getLogger(__name__)
settings = get_settings()

UowFactory = Callable[[], AsyncContextManager[UnitOfWork]]
ReportSink = Callable[[UUID], Any]
StudentStep = Callable[[UnitOfWork, UUID], Awaitable[Any]]


def enqueue_parent_report(student_id: UUID) -> None:
    """Hand the report off to the Celery worker"""
    from app.tasks.celery_app import celery_app  # noqa: F401  binds shared tasks to the broker
    from app.tasks.report_tasks import send_weekly_parent_report

    send_weekly_parent_report.delay(str(student_id))


class _Maintenance:
    def __init__(self, uow_factory: Optional[UowFactory] = None):
        self.uow_factory = uow_factory or unit_of_work

    async def _student_ids(self) -> List[UUID]:
        async with self.uow_factory() as uow:
            return await uow.students.list_ids()

    async def _for_each_student(self, step: str, student_ids: List[UUID], fn: StudentStep) -> Dict:
        done, failed = 0, []
        for student_id in student_ids:
            try:
                async with self.uow_factory() as uow:
                    await fn(uow, student_id)
                done += 1
            except Exception as e:
                logger.error(f"{step} failed for student {student_id}: {e}")
                failed.append(student_id)

        if failed:
            logger.warning(f"{step}: {len(failed)} of {len(student_ids)} students failed")
        return {"done": done, "failed": failed}


class DailyMaintenance(_Maintenance):
    async def run(self, now: Optional[datetime] = None) -> Dict:
        """Close out the day before `now` (the beat runs just after midnight)"""
        now = now or datetime.utcnow()
        day = now.date() - timedelta(days=1)
        student_ids = await self._student_ids()

        async def update_streak(uow: UnitOfWork, student_id: UUID):
            await StreakTracker(uow).update_streak(student_id, day)

        streaks = await self._for_each_student("Streak update", student_ids, update_streak)

        async with self.uow_factory() as uow:
            cutoff = now - timedelta(days=settings.INACTIVE_DAYS)
            inactive = [s.id for s in await uow.students.list_inactive(cutoff)]

        async with self.uow_factory() as uow:
            snapshot = await LeaderboardService(uow).update_daily_snapshot(datetime.combine(day, time.min))

        logger.info(
            f"Daily maintenance for {day}: {streaks['done']} streaks updated, "
            f"{len(inactive)} inactive students, snapshot of {len(snapshot)}"
        )
        return {
            "streaks_updated": streaks["done"],
            "failed_students": streaks["failed"],
            "inactive_students": inactive,
            "snapshot_size": len(snapshot),
        }


class WeeklyMaintenance(_Maintenance):
    def __init__(self, uow_factory: Optional[UowFactory] = None, report_sink: Optional[ReportSink] = None):
        super().__init__(uow_factory)
        self.report_sink = report_sink or enqueue_parent_report

    async def run(self, now: Optional[datetime] = None) -> Dict:
        now = now or datetime.utcnow()
        student_ids = await self._student_ids()

        async def recalculate(uow: UnitOfWork, student_id: UUID):
            await XPSystem(uow).recalculate_totals(student_id)

        totals = await self._for_each_student("XP recalculation", student_ids, recalculate)

        async with self.uow_factory() as uow:
            ranked = await LeaderboardService(uow).update_weekly_leaderboard(now)

        awarded = []

        async def award_badges(uow: UnitOfWork, student_id: UUID):
            awarded.extend(await BadgeEngine(uow).check_and_award(student_id))

        badges = await self._for_each_student("Badge check", student_ids, award_badges)

        async with self.uow_factory() as uow:
            overdue = await HomeworkTracker(uow).mark_overdue(now)

        async with self.uow_factory() as uow:
            links = await uow.students.list_with_parent_reports()

        reports_enqueued = 0
        for student_id in sorted({link.student_id for link in links}, key=str):
            try:
                self.report_sink(student_id)
                reports_enqueued += 1
            except Exception as e:
                logger.error(f"Parent report enqueue failed for student {student_id}: {e}")

        logger.info(
            f"Weekly maintenance: {len(ranked)} ranked, {len(awarded)} badges awarded, "
            f"{overdue} homework overdue, {reports_enqueued} parent reports queued"
        )
        return {
            "totals_recalculated": totals["done"],
            "failed_students": sorted(set(totals["failed"]) | set(badges["failed"]), key=str),
            "leaderboard_entries": len(ranked),
            "badges_awarded": len(awarded),
            "homework_overdue": overdue,
            "parent_reports_enqueued": reports_enqueued,
        }


async def run_daily_maintenance(
    now: Optional[datetime] = None,
    uow_factory: Optional[UowFactory] = None
) -> Dict:
    return await DailyMaintenance(uow_factory).run(now)


async def run_weekly_maintenance(
    now: Optional[datetime] = None,
    uow_factory: Optional[UowFactory] = None,
    report_sink: Optional[ReportSink] = None
) -> Dict:
    return await WeeklyMaintenance(uow_factory, report_sink).run(now)
