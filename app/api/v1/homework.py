# ============================================================================
# Homework Endpoints
# ============================================================================
from fastapi import APIRouter, Depends
from uuid import UUID

from app.api.deps import get_uow
from app.repositories.sql import SqlAlchemyUnitOfWork
from app.schemas.gamification import HomeworkCompleteResponse
from app.schemas.practice import HomeworkCompleteRequest, HomeworkResponse
from app.services.homework.tracker import HomeworkTracker

router = APIRouter(prefix="/homework", tags=["homework"])

@router.post("/{homework_id}/start", response_model=HomeworkResponse)
async def start_homework(
    homework_id: UUID,
    uow: SqlAlchemyUnitOfWork = Depends(get_uow)
):
    return await HomeworkTracker(uow).start(homework_id)

@router.post("/{homework_id}/complete", response_model=HomeworkCompleteResponse)
async def complete_homework(
    homework_id: UUID,
    request: HomeworkCompleteRequest,
    uow: SqlAlchemyUnitOfWork = Depends(get_uow)
):
    """Submit homework and grant its XP"""
    return await HomeworkTracker(uow).complete(homework_id, score=request.score)
