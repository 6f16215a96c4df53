# ============================================================================
# Question Bank Models
# ============================================================================
from sqlalchemy import Column, String, Integer, Boolean, DateTime
from sqlalchemy import Text, JSON, Uuid, Index
from datetime import datetime
import enum
import uuid
from app.core.database import Base


class Difficulty(str, enum.Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class Question(Base):
    __tablename__ = "questions"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    question_text = Column(Text, nullable=False)
    options = Column(JSON, nullable=True)  # For MCQ: ["option1", "option2", ...]
    correct_answer = Column(Text, nullable=False)
    explanation = Column(Text)
    hint = Column(Text)
    video_solution_link = Column(String(500))

    topic = Column(String(200), nullable=False)
    subject = Column(String(100), nullable=False)
    difficulty = Column(String(20), default=Difficulty.MEDIUM.value)  # easy, medium, hard
    grade_rating = Column(Integer, default=50)  # 10-99 difficulty proxy

    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index("ix_questions_topic", "topic"),
        Index("ix_questions_subject", "subject"),
    )

    def __repr__(self):
        return f"<Question {self.id} ({self.topic}, {self.difficulty}, {self.grade_rating})>"
