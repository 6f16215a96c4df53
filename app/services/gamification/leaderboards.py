# ============================================================================
# Leaderboard System
# ============================================================================
from typing import Dict, List, Optional, Tuple
from uuid import UUID
from datetime import datetime, time, timedelta
import logging

from app.config import get_settings
from app.core.exceptions import NotFound
from app.models.gamification import LeaderboardEntry, LeaderboardPeriod
from app.repositories.base import UnitOfWork

logger = logging.getLogger(__name__)
settings = get_settings()

WEEK = timedelta(days=7)
DAY = timedelta(days=1)


def _midnight(now: datetime) -> datetime:
    return datetime.combine(now.date(), time.min)


def weekly_window(now: Optional[datetime] = None) -> Tuple[datetime, datetime]:
    """[now - 7d, now)"""
    end = now or datetime.utcnow()
    return end - WEEK, end


def daily_window(now: Optional[datetime] = None) -> Tuple[datetime, datetime]:
    start = _midnight(now or datetime.utcnow())
    return start, start + DAY


class LeaderboardService:
    """Weekly XP rankings plus a same-day snapshot"""

    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    async def update_weekly_leaderboard(self, now: Optional[datetime] = None) -> List[LeaderboardEntry]:
        """
        Rank every student by XP earned in the 7 days up to `now`.

        Phase 1 writes an unranked entry per student; phase 2 starts only
        after all of them are committed and assigns ranks 1..n by XP desc,
        ties in insertion order. A student gets one entry per run day: a
        later run on the same day moves the existing entry to the new window
        and re-ranks.
        """
        period = LeaderboardPeriod.WEEKLY.value
        start, end = weekly_window(now)
        run_day = _midnight(end)

        weekly_xp = await self.uow.xp_events.sum_by_student(start, end)

        # Phase 1
        inserted = 0
        for student_id in await self.uow.students.list_ids():
            xp = weekly_xp.get(student_id, 0)
            entry = await self.uow.leaderboard.find_entry_ending_within(
                student_id, period, run_day, run_day + DAY
            )
            if entry:
                entry.window_start, entry.window_end, entry.weekly_xp = start, end, xp
                continue

            previous = await self.uow.leaderboard.latest_entry_ending_before(student_id, period, run_day)
            await self.uow.leaderboard.add(LeaderboardEntry(
                student_id=student_id,
                period=period,
                window_start=start,
                window_end=end,
                weekly_xp=xp,
                rank=0,
                previous_rank=previous.rank if previous else 0
            ))
            inserted += 1
        await self.uow.commit()

        # Phase 2
        entries = await self.uow.leaderboard.list_window(period, start, end)
        for rank, entry in enumerate(entries, 1):
            entry.rank = rank
        await self.uow.commit()

        logger.info(
            f"Weekly leaderboard {start:%Y-%m-%d}..{end:%Y-%m-%d}: "
            f"{inserted} new entries, {len(entries)} ranked"
        )
        return entries

    async def update_daily_snapshot(
        self,
        now: Optional[datetime] = None,
        limit: Optional[int] = None
    ) -> List[LeaderboardEntry]:
        """Replace the top-N XP snapshot for the day containing `now`"""
        period = LeaderboardPeriod.DAILY.value
        limit = limit or settings.DAILY_LEADERBOARD_LIMIT
        start, end = daily_window(now)

        await self.uow.leaderboard.delete_window(period, start, end)

        today_xp = await self.uow.xp_events.sum_by_student(start, end)
        order = {sid: i for i, sid in enumerate(await self.uow.students.list_ids())}
        ranked = sorted(
            today_xp.items(),
            key=lambda item: (-item[1], order.get(item[0], len(order)))
        )[:limit]

        entries = []
        for rank, (student_id, xp) in enumerate(ranked, 1):
            previous = await self.uow.leaderboard.find_entry(student_id, period, start - DAY, start)
            entries.append(await self.uow.leaderboard.add(LeaderboardEntry(
                student_id=student_id,
                period=period,
                window_start=start,
                window_end=end,
                weekly_xp=xp,
                rank=rank,
                previous_rank=previous.rank if previous else 0
            )))
        await self.uow.commit()

        logger.info(f"Daily snapshot {start:%Y-%m-%d}: {len(entries)} students")
        return entries

    async def get_current_leaderboard(
        self,
        limit: int = 20,
        period: str = LeaderboardPeriod.WEEKLY.value
    ) -> List[Dict]:
        """Entries of the most recent ranked window"""
        window = await self.uow.leaderboard.latest_window(period)
        if not window:
            return []

        entries = await self.uow.leaderboard.list_window(period, *window, limit=limit)

        leaderboard = []
        for entry in entries:
            student = await self.uow.students.get(entry.student_id)
            leaderboard.append({
                "rank": entry.rank,
                "previous_rank": entry.previous_rank,
                "movement": (entry.previous_rank - entry.rank) if entry.previous_rank else None,
                "student_id": entry.student_id,
                "name": student.name if student else "Unknown",
                "level": student.current_level if student else 1,
                "weekly_xp": entry.weekly_xp,
                "window_start": entry.window_start,
                "window_end": entry.window_end,
            })

        return leaderboard

    async def get_student_history(
        self,
        student_id: UUID,
        period: str = LeaderboardPeriod.WEEKLY.value
    ) -> List[Dict]:
        if not await self.uow.students.get(student_id):
            raise NotFound("Student", student_id)

        return [
            {
                "window_start": e.window_start,
                "window_end": e.window_end,
                "weekly_xp": e.weekly_xp,
                "rank": e.rank,
                "previous_rank": e.previous_rank,
            }
            for e in await self.uow.leaderboard.list_for_student(student_id, period)
        ]
