# ============================================================================
# Gamification Endpoints
# ============================================================================
from fastapi import APIRouter, Depends, Query
from typing import List
from uuid import UUID

from app.api.deps import get_uow
from app.core.exceptions import NotFound
from app.models.gamification import LeaderboardPeriod
from app.repositories.sql import SqlAlchemyUnitOfWork
from app.schemas.gamification import (
    BadgeAwardResponse, LeaderboardHistoryEntry, LeaderboardResponse,
    LessonCompleteResponse, LevelInfoResponse, StudentBadgeResponse
)
from app.schemas.practice import LessonCompleteRequest
from app.services.gamification.achievements import BadgeEngine
from app.services.gamification.leaderboards import LeaderboardService
from app.services.gamification.xp_system import XPSystem
from app.services.practice.lessons import LessonTracker

router = APIRouter(tags=["gamification"])

@router.get("/leaderboard", response_model=LeaderboardResponse)
async def get_leaderboard(
    period: LeaderboardPeriod = LeaderboardPeriod.WEEKLY,
    limit: int = Query(20, ge=1, le=100),
    uow: SqlAlchemyUnitOfWork = Depends(get_uow)
):
    """Most recent ranked leaderboard window"""
    entries = await LeaderboardService(uow).get_current_leaderboard(limit=limit, period=period.value)
    return {"period": period.value, "entries": entries}

@router.get("/students/{student_id}/leaderboard", response_model=List[LeaderboardHistoryEntry])
async def get_leaderboard_history(
    student_id: UUID,
    uow: SqlAlchemyUnitOfWork = Depends(get_uow)
):
    return await LeaderboardService(uow).get_student_history(student_id)

@router.get("/students/{student_id}/badges", response_model=List[StudentBadgeResponse])
async def get_student_badges(
    student_id: UUID,
    uow: SqlAlchemyUnitOfWork = Depends(get_uow)
):
    return await BadgeEngine(uow).get_student_badges(student_id)

@router.post("/students/{student_id}/badges/{badge_id}", response_model=BadgeAwardResponse, status_code=201)
async def award_badge(
    student_id: UUID,
    badge_id: UUID,
    uow: SqlAlchemyUnitOfWork = Depends(get_uow)
):
    """Award a badge; 409 if the student already holds it"""
    return await BadgeEngine(uow).award_badge(student_id, badge_id)

@router.post("/students/{student_id}/lessons/complete", response_model=LessonCompleteResponse)
async def complete_lesson(
    student_id: UUID,
    request: LessonCompleteRequest,
    uow: SqlAlchemyUnitOfWork = Depends(get_uow)
):
    return await LessonTracker(uow).complete_lesson(
        student_id, request.lesson_ref, request.subject, request.topic
    )

@router.get("/students/{student_id}/level", response_model=LevelInfoResponse)
async def get_level(
    student_id: UUID,
    uow: SqlAlchemyUnitOfWork = Depends(get_uow)
):
    student = await uow.students.get(student_id)
    if not student:
        raise NotFound("Student", student_id)
    return XPSystem(uow).get_level_info(student.xp_total)
