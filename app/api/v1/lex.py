# ============================================================================
# Lex Practice Endpoints
# ============================================================================
from fastapi import APIRouter, Depends
from datetime import datetime
from uuid import UUID

from app.api.deps import get_uow
from app.core.exceptions import InvalidState, NotFound
from app.models.practice import QuestionAttempt
from app.repositories.sql import SqlAlchemyUnitOfWork
from app.schemas.practice import (
    CompleteSessionRequest, CompleteSessionResponse, LexSessionResponse,
    NextQuestionRequest, NextQuestionResponse, TopicMasteryResponse
)
from app.services.practice.mastery import MasteryCalculator
from app.services.practice.session_manager import LexSessionManager

router = APIRouter(prefix="/lex", tags=["lex"])

@router.get("/{student_id}/session", response_model=LexSessionResponse)
async def generate_session(
    student_id: UUID,
    uow: SqlAlchemyUnitOfWork = Depends(get_uow)
):
    """Generate a Lex practice session (up to 20 questions)"""
    now = datetime.utcnow()
    questions = await LexSessionManager(uow).generate_session(student_id, now=now)

    return {
        "student_id": student_id,
        "generated_at": now,
        "total_questions": len(questions),
        "questions": questions
    }

@router.post("/{student_id}/session/complete", response_model=CompleteSessionResponse)
async def complete_session(
    student_id: UUID,
    request: CompleteSessionRequest,
    uow: SqlAlchemyUnitOfWork = Depends(get_uow)
):
    """Record a finished session's answers and update profile, CWA and XP"""
    questions = await uow.questions.get_many(request.question_ids)
    found = {q.id for q in questions}

    for question_id in request.question_ids:
        if question_id not in found:
            raise NotFound("Question", question_id)

    for attempt in request.attempts:
        if attempt.question_id not in found:
            raise InvalidState(f"Question {attempt.question_id} is not part of this session")

    attempts = [
        QuestionAttempt(
            question_id=a.question_id,
            correct=a.correct,
            time_taken=a.time_taken,
            watched_solution=a.watched_solution,
            student_answer=a.student_answer,
            attempt_date=a.attempt_date
        )
        for a in request.attempts
    ]

    return await LexSessionManager(uow).complete_session(
        student_id, questions, attempts, started_at=request.started_at
    )

@router.post("/{student_id}/next-question", response_model=NextQuestionResponse)
async def next_question(
    student_id: UUID,
    request: NextQuestionRequest,
    uow: SqlAlchemyUnitOfWork = Depends(get_uow)
):
    """Step to the next question in the same topic"""
    question = await LexSessionManager(uow).next_question(
        request.question_id, request.was_correct, student_id
    )
    return {"question": question}

@router.get("/{student_id}/mastery", response_model=TopicMasteryResponse)
async def get_mastery(
    student_id: UUID,
    uow: SqlAlchemyUnitOfWork = Depends(get_uow)
):
    """Current working average and per-topic mastery"""
    if not await uow.students.get(student_id):
        raise NotFound("Student", student_id)

    calculator = MasteryCalculator(uow)
    return {
        "student_id": student_id,
        "current_working_average": await calculator.cwa(student_id),
        "topics": await calculator.topic_breakdown(student_id)
    }
