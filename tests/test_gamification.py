# ============================================================================
# Gamification Tests
# ============================================================================
import pytest
from datetime import datetime, timedelta
from uuid import uuid4
from sqlalchemy import select

from app.core.exceptions import Conflict, InvalidState, NotFound
from app.models.gamification import Badge, LeaderboardEntry, StudentBadge, XPAction
from app.models.practice import LessonCompletion
from app.services.gamification.achievements import BadgeEngine, BADGE_DEFINITIONS
from app.services.gamification.leaderboards import LeaderboardService, weekly_window
from app.services.gamification.xp_system import XPSystem, calculate_level, calculate_xp
from app.services.practice.lessons import LessonTracker

from tests.conftest import build_attempt

NOW = datetime(2026, 3, 15, 10, 0)


class TestXPCalculation:
    """Tests for XP amounts and levels"""

    def test_xp_by_difficulty(self):
        assert calculate_xp("easy", True) == 10
        assert calculate_xp("medium", True) == 20
        assert calculate_xp("hard", True) == 30
        assert calculate_xp("exam", True) == 15
        assert calculate_xp(None, True) == 15

    def test_time_bonus_is_floored(self):
        assert calculate_xp("easy", True, time_bonus=True) == 12
        assert calculate_xp("medium", True, time_bonus=True) == 24
        assert calculate_xp("hard", True, time_bonus=True) == 36
        assert calculate_xp("unknown", True, time_bonus=True) == 18

    def test_wrong_answers_earn_nothing(self):
        assert calculate_xp("hard", False, time_bonus=True) == 0

    def test_level_calculation(self):
        assert calculate_level(0) == 1
        assert calculate_level(199) == 1
        assert calculate_level(200) == 2
        assert calculate_level(205) == 2
        assert calculate_level(1000) == 6

    def test_level_info(self):
        info = XPSystem(None).get_level_info(450)

        assert info["level"] == 3
        assert info["xp_in_level"] == 50
        assert info["xp_for_next_level"] == 150
        assert info["progress_percent"] == 25.0


class TestXPLedger:
    """Tests for recording XP against the ledger"""

    async def test_level_up_example(self, uow, make_student, add_xp_event):
        student = await make_student()
        await add_xp_event(student, 195, NOW - timedelta(days=1))
        assert student.current_level == 1

        award = await XPSystem(uow).record_xp(student.id, XPAction.QUIZ_SUBMITTED, 10, "quiz_1")

        assert award.xp_total == 205
        assert award.old_level == 1
        assert award.new_level == 2
        assert award.leveled_up
        assert student.xp_total == 205
        assert student.current_level == 2

    async def test_ledger_sum_matches_total(self, uow, make_student):
        student = await make_student()
        xp_system = XPSystem(uow)

        for amount in (10, 0, 45, 150, 200, 3):
            award = await xp_system.record_xp(student.id, "lesson_completed", amount)
            assert award.new_level == award.xp_total // 200 + 1

        assert student.xp_total == 408
        assert await uow.xp_events.sum_for_student(student.id) == 408
        assert len(await uow.xp_events.list_for_student(student.id)) == 6

    async def test_rejects_negative_amount(self, uow, make_student):
        student = await make_student()

        with pytest.raises(InvalidState):
            await XPSystem(uow).record_xp(student.id, "lesson_completed", -5)

    async def test_rejects_unknown_action(self, uow, make_student):
        student = await make_student()

        with pytest.raises(InvalidState):
            await XPSystem(uow).record_xp(student.id, "cheating", 5)

    async def test_unknown_student(self, uow):
        with pytest.raises(NotFound):
            await XPSystem(uow).record_xp(uuid4(), "lesson_completed", 5)

    async def test_recalculate_repairs_drift(self, uow, db_session, make_student, add_xp_event):
        student = await make_student()
        await add_xp_event(student, 250, NOW)
        student.xp_total = 999
        student.current_level = 5
        await db_session.commit()

        award = await XPSystem(uow).recalculate_totals(student.id)

        assert award.xp_total == 250
        assert student.xp_total == 250
        assert student.current_level == 2

    async def test_lesson_completion_grants_xp(self, uow, db_session, make_student):
        student = await make_student()

        result = await LessonTracker(uow).complete_lesson(student.id, "alg-01", "Mathematics", "Algebra")

        assert result["xp_earned"] == 50
        assert await uow.activity.count_lessons(student.id, "Mathematics") == 1
        assert student.xp_total == 50

    async def test_repeating_a_lesson_earns_nothing(self, uow, make_student):
        student_id = (await make_student()).id
        tracker = LessonTracker(uow)
        await tracker.complete_lesson(student_id, "alg-01", "Mathematics")

        for _ in range(14):
            with pytest.raises(Conflict):
                await tracker.complete_lesson(student_id, "alg-01", "Mathematics")

        student = await uow.students.get(student_id)
        assert student.xp_total == 50
        assert await uow.activity.count_lessons(student_id, "Mathematics") == 1
        assert len(await uow.xp_events.list_for_student(student_id)) == 1


class TestBadges:
    """Tests for badge eligibility and awarding"""

    async def _seed(self, uow):
        await BadgeEngine(uow).ensure_default_badges()
        return {b.criteria: b for b in await uow.badges.list_active()}

    async def test_seeding_is_idempotent(self, uow):
        assert await BadgeEngine(uow).ensure_default_badges() == len(BADGE_DEFINITIONS)
        assert await BadgeEngine(uow).ensure_default_badges() == 0

    async def test_award_twice_conflicts(self, uow, db_session, make_student):
        badges = await self._seed(uow)
        badge_id, reward = badges["speed_demon"].id, badges["speed_demon"].xp_reward
        student = await make_student()
        student_id = student.id
        engine = BadgeEngine(uow)

        first = await engine.award_badge(student_id, badge_id)
        assert first["xp_reward"] == reward

        with pytest.raises(Conflict):
            await engine.award_badge(student_id, badge_id)

        # The failed call rolled back, so reload before reading attributes
        await db_session.refresh(student)
        assert student.xp_total == reward
        assert await uow.xp_events.sum_for_student(student_id) == reward
        events = await uow.xp_events.list_for_student(student_id)
        assert [e.trigger for e in events] == [f"badge_{badge_id}"]

    async def test_award_unknown_badge_or_student(self, uow, make_student):
        badges = await self._seed(uow)
        badge_id = badges["speed_demon"].id
        student_id = (await make_student()).id

        with pytest.raises(NotFound):
            await BadgeEngine(uow).award_badge(student_id, uuid4())
        with pytest.raises(NotFound):
            await BadgeEngine(uow).award_badge(uuid4(), badge_id)

    async def test_failed_award_leaves_nothing_behind(self, uow, db_session, make_student):
        broken = Badge(name="Broken", criteria="speed_demon", xp_reward=-10)
        db_session.add(broken)
        await db_session.commit()
        student_id = (await make_student()).id

        with pytest.raises(InvalidState):
            await BadgeEngine(uow).award_badge(student_id, broken.id)

        rows = (await db_session.execute(select(StudentBadge))).scalars().all()
        assert rows == []
        assert await uow.xp_events.list_for_student(student_id) == []

    async def test_speed_demon_eligibility(self, uow, db_session, make_student, make_questions):
        badges = await self._seed(uow)
        student = await make_student()
        questions = await make_questions("Algebra", ratings=range(10, 22))

        db_session.add_all([
            build_attempt(q, True, student_id=student.id, time_taken=12) for q in questions[:9]
        ])
        await db_session.commit()
        assert badges["speed_demon"].id not in await BadgeEngine(uow).check_eligibility(student.id)

        db_session.add(build_attempt(questions[9], False, student_id=student.id, time_taken=29))
        await db_session.commit()
        assert badges["speed_demon"].id in await BadgeEngine(uow).check_eligibility(student.id)

    async def test_consistent_learner_eligibility(self, uow, make_student):
        badges = await self._seed(uow)
        streaky = await make_student(study_streak=7)
        casual = await make_student(study_streak=6)

        assert badges["consistent_learner"].id in await BadgeEngine(uow).check_eligibility(streaky.id)
        assert badges["consistent_learner"].id not in await BadgeEngine(uow).check_eligibility(casual.id)

    async def test_math_master_needs_lessons_and_accuracy(self, uow, db_session, make_student, make_questions):
        badges = await self._seed(uow)
        student = await make_student()
        questions = await make_questions("Algebra", ratings=range(10, 20))

        db_session.add_all([
            build_attempt(q, i != 0, student_id=student.id) for i, q in enumerate(questions)
        ])
        db_session.add_all([
            LessonCompletion(student_id=student.id, lesson_ref=f"m-{i}", subject="Mathematics")
            for i in range(14)
        ])
        await db_session.commit()
        assert badges["math_master"].id not in await BadgeEngine(uow).check_eligibility(student.id)

        db_session.add(LessonCompletion(student_id=student.id, lesson_ref="m-14", subject="Mathematics"))
        await db_session.commit()
        assert badges["math_master"].id in await BadgeEngine(uow).check_eligibility(student.id)

    async def test_earned_badges_are_not_eligible_again(self, uow, make_student):
        badges = await self._seed(uow)
        student = await make_student(study_streak=10)
        engine = BadgeEngine(uow)

        awarded = await engine.check_and_award(student.id)
        assert [a["badge_id"] for a in awarded] == [badges["consistent_learner"].id]
        assert await engine.check_eligibility(student.id) == []

        held = await engine.get_student_badges(student.id)
        assert [b["name"] for b in held] == ["Consistent Learner"]


class TestLeaderboard:
    """Tests for weekly ranking"""

    def test_window_ends_at_run_time(self):
        start, end = weekly_window(NOW)

        assert end == NOW
        assert start == datetime(2026, 3, 8, 10, 0)

    async def test_ties_keep_insertion_order(self, uow, make_student, add_xp_event):
        a = await make_student("A")
        b = await make_student("B")
        c = await make_student("C")
        in_window = datetime(2026, 3, 10, 9, 0)
        await add_xp_event(a, 50, in_window)
        await add_xp_event(b, 80, in_window)
        await add_xp_event(c, 80, in_window)

        entries = await LeaderboardService(uow).update_weekly_leaderboard(NOW)

        ranks = {e.student_id: e.rank for e in entries}
        assert ranks == {b.id: 1, c.id: 2, a.id: 3}
        assert [e.weekly_xp for e in entries] == [80, 80, 50]

    async def test_only_window_events_count(self, uow, make_student, add_xp_event):
        student = await make_student()
        await add_xp_event(student, 30, datetime(2026, 3, 8, 10, 0))    # start, included
        await add_xp_event(student, 40, datetime(2026, 3, 15, 9, 59))   # run day, included
        await add_xp_event(student, 500, datetime(2026, 3, 15, 10, 0))  # end, excluded
        await add_xp_event(student, 700, datetime(2026, 3, 8, 9, 59))   # before start

        entries = await LeaderboardService(uow).update_weekly_leaderboard(NOW)

        assert entries[0].weekly_xp == 70

    async def test_ranks_are_dense_and_descending(self, uow, make_student, add_xp_event):
        in_window = datetime(2026, 3, 12)
        for xp in (10, 90, 40, 70):
            await add_xp_event(await make_student(), xp, in_window)
        await make_student("No XP")

        entries = await LeaderboardService(uow).update_weekly_leaderboard(NOW)

        assert [e.rank for e in entries] == [1, 2, 3, 4, 5]
        assert [e.weekly_xp for e in entries] == [90, 70, 40, 10, 0]

    async def test_previous_rank_carries_over(self, uow, make_student, add_xp_event):
        a = await make_student("A")
        b = await make_student("B")
        await add_xp_event(a, 100, datetime(2026, 3, 3))
        await add_xp_event(b, 20, datetime(2026, 3, 3))
        await add_xp_event(b, 300, datetime(2026, 3, 10))

        service = LeaderboardService(uow)
        await service.update_weekly_leaderboard(NOW - timedelta(days=7))
        entries = await service.update_weekly_leaderboard(NOW)

        by_student = {e.student_id: e for e in entries}
        assert by_student[b.id].rank == 1
        assert by_student[b.id].previous_rank == 2
        assert by_student[a.id].rank == 2
        assert by_student[a.id].previous_rank == 1

        history = await service.get_student_history(a.id)
        assert [h["rank"] for h in history] == [2, 1]

    async def test_rerun_is_idempotent(self, uow, db_session, make_student, add_xp_event):
        a = await make_student("A")
        await add_xp_event(a, 60, datetime(2026, 3, 10))

        service = LeaderboardService(uow)
        await service.update_weekly_leaderboard(NOW)
        late = await make_student("Late")
        entries = await service.update_weekly_leaderboard(NOW)

        rows = (await db_session.execute(select(LeaderboardEntry))).scalars().all()
        assert len(rows) == 2
        assert [e.student_id for e in entries] == [a.id, late.id]
        assert [e.rank for e in entries] == [1, 2]

    async def test_run_day_xp_counts(self, uow, make_student, add_xp_event):
        a = await make_student("A")
        b = await make_student("B")
        await add_xp_event(a, 100, datetime(2026, 3, 5, 12, 0))
        await add_xp_event(b, 500, datetime(2026, 3, 8, 20, 0))

        entries = await LeaderboardService(uow).update_weekly_leaderboard(datetime(2026, 3, 8, 23, 0))

        assert [(e.student_id, e.weekly_xp, e.rank) for e in entries] == [(b.id, 500, 1), (a.id, 100, 2)]

    async def test_later_run_same_day_moves_entries(self, uow, db_session, make_student, add_xp_event):
        a = await make_student("A")
        b = await make_student("B")
        await add_xp_event(a, 60, datetime(2026, 3, 10))
        service = LeaderboardService(uow)
        await service.update_weekly_leaderboard(NOW)

        await add_xp_event(b, 90, NOW + timedelta(hours=1))
        later = NOW + timedelta(hours=2)
        entries = await service.update_weekly_leaderboard(later)

        rows = (await db_session.execute(select(LeaderboardEntry))).scalars().all()
        assert len(rows) == 2
        assert [(e.student_id, e.weekly_xp, e.rank) for e in entries] == [(b.id, 90, 1), (a.id, 60, 2)]
        assert all(e.window_end == later for e in entries)

        board = await service.get_current_leaderboard()
        assert [row["student_id"] for row in board] == [b.id, a.id]

    async def test_current_leaderboard(self, uow, make_student, add_xp_event):
        a = await make_student("Tariro")
        await add_xp_event(a, 60, datetime(2026, 3, 10))
        service = LeaderboardService(uow)

        assert await service.get_current_leaderboard() == []

        await service.update_weekly_leaderboard(NOW)
        board = await service.get_current_leaderboard(limit=10)

        assert board[0]["name"] == "Tariro"
        assert board[0]["rank"] == 1
        assert board[0]["movement"] is None

    async def test_daily_snapshot_replaces_same_day(self, uow, db_session, make_student, add_xp_event):
        a = await make_student("A")
        b = await make_student("B")
        await add_xp_event(a, 20, datetime(2026, 3, 15, 8, 0))
        await add_xp_event(b, 35, datetime(2026, 3, 15, 9, 0))
        await add_xp_event(b, 500, datetime(2026, 3, 14, 9, 0))

        service = LeaderboardService(uow)
        await service.update_daily_snapshot(NOW)
        entries = await service.update_daily_snapshot(NOW)

        assert [(e.student_id, e.weekly_xp, e.rank) for e in entries] == [(b.id, 35, 1), (a.id, 20, 2)]
        rows = (await db_session.execute(
            select(LeaderboardEntry).where(LeaderboardEntry.period == "daily")
        )).scalars().all()
        assert len(rows) == 2

    async def test_daily_snapshot_limit(self, uow, make_student, add_xp_event):
        for xp in range(1, 6):
            await add_xp_event(await make_student(), xp, datetime(2026, 3, 15, 7, 0))

        entries = await LeaderboardService(uow).update_daily_snapshot(NOW, limit=3)

        assert [e.weekly_xp for e in entries] == [5, 4, 3]
