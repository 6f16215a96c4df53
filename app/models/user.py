# ============================================================================
# Student & Parent Models
# ============================================================================
from sqlalchemy import Column, String, Integer, Boolean, DateTime, Date, ForeignKey
from sqlalchemy import Float, JSON, Uuid, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime
import uuid
from app.core.database import Base


class Student(Base):
    __tablename__ = "students"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(200), nullable=False)
    email = Column(String(255), unique=True, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    last_login = Column(DateTime, nullable=True)

    # Topic classification, replaced wholesale at the end of every Lex session
    weak_topics = Column(JSON, default=list)
    strong_topics = Column(JSON, default=list)
    recent_topics = Column(JSON, default=list)
    last_study_date = Column(DateTime, nullable=True)

    # Gamification stats; current_level is always xp_total // XP_PER_LEVEL + 1
    xp_total = Column(Integer, default=0, nullable=False)
    current_level = Column(Integer, default=1, nullable=False)
    current_working_average = Column(Float, default=0.0)
    study_streak = Column(Integer, default=0, nullable=False)
    streak_updated_on = Column(Date, nullable=True)

    attempts = relationship("QuestionAttempt", back_populates="student", cascade="all, delete-orphan")
    xp_events = relationship("XPEvent", back_populates="student", cascade="all, delete-orphan")
    badges = relationship("StudentBadge", back_populates="student", cascade="all, delete-orphan")
    parent_links = relationship("ParentStudentLink", back_populates="student", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Student {self.name} (L{self.current_level}, {self.xp_total} XP)>"


class ParentStudentLink(Base):
    __tablename__ = "parent_student_links"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    parent_id = Column(Uuid(as_uuid=True), nullable=False)
    parent_email = Column(String(255))
    student_id = Column(Uuid(as_uuid=True), ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    relationship_type = Column(String(20))  # mother, father, guardian
    notifications_enabled = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    student = relationship("Student", back_populates="parent_links")

    __table_args__ = (
        UniqueConstraint('parent_id', 'student_id', name='unique_parent_student'),
    )
