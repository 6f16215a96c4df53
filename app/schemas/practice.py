# ============================================================================
# Practice Schemas
# ============================================================================
from pydantic import BaseModel, Field
from typing import Optional, List, Dict
from datetime import datetime
from uuid import UUID
from enum import Enum

class DifficultyEnum(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"

class QuestionResponse(BaseModel):
    id: UUID
    question_text: str
    options: Optional[List[str]] = None
    topic: str
    subject: str
    difficulty: Optional[str] = DifficultyEnum.MEDIUM.value
    grade_rating: Optional[int] = None
    hint: Optional[str] = None
    video_solution_link: Optional[str] = None

    class Config:
        from_attributes = True

class QuestionWithAnswer(QuestionResponse):
    """Answers ship with the session; grading happens client-side"""
    correct_answer: str
    explanation: Optional[str] = None

class LexSessionResponse(BaseModel):
    student_id: UUID
    generated_at: datetime
    total_questions: int
    questions: List[QuestionWithAnswer]

class AttemptSubmission(BaseModel):
    question_id: UUID
    correct: bool
    time_taken: int = Field(default=0, ge=0)
    watched_solution: bool = False
    student_answer: Optional[str] = None
    attempt_date: Optional[datetime] = None

class CompleteSessionRequest(BaseModel):
    question_ids: List[UUID] = Field(..., min_length=1)
    attempts: List[AttemptSubmission] = Field(default_factory=list)
    started_at: Optional[datetime] = None

class CompleteSessionResponse(BaseModel):
    session_id: UUID
    questions_answered: int
    correct: int
    accuracy: float
    xp_earned: int
    xp_total: int
    level_start: int
    level_end: int
    leveled_up: bool
    current_working_average: float
    weak_topics: List[str]
    strong_topics: List[str]
    recent_topics: List[str]
    suggested_focus_topics: List[str]

class NextQuestionRequest(BaseModel):
    question_id: UUID
    was_correct: bool

class NextQuestionResponse(BaseModel):
    question: Optional[QuestionWithAnswer] = None

class LessonCompleteRequest(BaseModel):
    lesson_ref: str = Field(..., min_length=1, max_length=100)
    subject: str = Field(..., min_length=1, max_length=100)
    topic: Optional[str] = None

class HomeworkCompleteRequest(BaseModel):
    score: Optional[float] = Field(default=None, ge=0, le=100)

class HomeworkResponse(BaseModel):
    id: UUID
    student_id: UUID
    title: str
    subject: Optional[str] = None
    due_date: datetime
    completion_status: str
    total_questions: Optional[int] = 0
    completed_questions: Optional[int] = 0
    score: Optional[float] = None
    date_submitted: Optional[datetime] = None
    xp_earned: Optional[int] = 0

    class Config:
        from_attributes = True

class TopicMasteryResponse(BaseModel):
    student_id: UUID
    current_working_average: float
    topics: Dict[str, Dict[str, float]]
