# ============================================================================
# Practice Activity Models
# ============================================================================
from sqlalchemy import Column, String, Integer, Boolean, DateTime, ForeignKey
from sqlalchemy import Text, Float, JSON, Uuid, Index, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime
import enum
import uuid
from app.core.database import Base


class LexSession(Base):
    __tablename__ = "lex_sessions"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    student_id = Column(Uuid(as_uuid=True), ForeignKey("students.id", ondelete="CASCADE"), nullable=False)

    started_at = Column(DateTime, default=datetime.utcnow)
    ended_at = Column(DateTime)

    questions_answered = Column(Integer, default=0)
    accuracy = Column(Float, default=0.0)
    suggested_focus_topics = Column(JSON, default=list)
    level_start = Column(Integer)
    level_end = Column(Integer)
    xp_earned = Column(Integer, default=0)

    attempts = relationship("QuestionAttempt", back_populates="session")

    def __repr__(self):
        return f"<LexSession {self.id} ({self.questions_answered} answered)>"


class QuestionAttempt(Base):
    """One answer submission. Rows are never updated or deleted."""
    __tablename__ = "question_attempts"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    student_id = Column(Uuid(as_uuid=True), ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    question_id = Column(Uuid(as_uuid=True), ForeignKey("questions.id"), nullable=False)
    session_id = Column(Uuid(as_uuid=True), ForeignKey("lex_sessions.id"), nullable=True)

    attempt_date = Column(DateTime, nullable=False, default=datetime.utcnow)
    correct = Column(Boolean, nullable=False)
    time_taken = Column(Integer, default=0)  # seconds
    watched_solution = Column(Boolean, default=False)
    student_answer = Column(Text)

    student = relationship("Student", back_populates="attempts")
    session = relationship("LexSession", back_populates="attempts")
    question = relationship("Question")

    __table_args__ = (
        Index("ix_attempts_student_date", "student_id", "attempt_date"),
    )

    def __repr__(self):
        return f"<QuestionAttempt {self.id} ({'✓' if self.correct else '✗'})>"


class LessonCompletion(Base):
    __tablename__ = "lesson_completions"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    student_id = Column(Uuid(as_uuid=True), ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    lesson_ref = Column(String(100), nullable=False)
    subject = Column(String(100), nullable=False)
    topic = Column(String(200))
    completed_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint('student_id', 'lesson_ref', name='unique_student_lesson'),
    )


class HomeworkStatus(str, enum.Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    OVERDUE = "overdue"


class HomeworkAssignment(Base):
    __tablename__ = "homework_assignments"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    student_id = Column(Uuid(as_uuid=True), ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    title = Column(String(200), nullable=False)
    subject = Column(String(100))

    due_date = Column(DateTime, nullable=False)
    completion_status = Column(String(20), default=HomeworkStatus.NOT_STARTED.value, nullable=False)
    total_questions = Column(Integer, default=0)
    completed_questions = Column(Integer, default=0)
    score = Column(Float)
    date_submitted = Column(DateTime)
    xp_earned = Column(Integer, default=0)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<HomeworkAssignment {self.title} ({self.completion_status})>"
