# ============================================================================
# Gamification Models
# ============================================================================
from sqlalchemy import Column, String, Integer, Boolean, DateTime, ForeignKey
from sqlalchemy import Text, Uuid, UniqueConstraint, Index
from sqlalchemy.orm import relationship
from datetime import datetime
import enum
import uuid
from app.core.database import Base


class XPAction(str, enum.Enum):
    LESSON_COMPLETED = "lesson_completed"
    QUIZ_SUBMITTED = "quiz_submitted"
    HOMEWORK_COMPLETED = "homework_completed"
    LEX_SESSION = "lex_session"
    BADGE_EARNED = "badge_earned"


class XPEvent(Base):
    """Append-only XP ledger. Student.xp_total is the materialized sum."""
    __tablename__ = "xp_events"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    student_id = Column(Uuid(as_uuid=True), ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    action = Column(String(30), nullable=False)
    xp_amount = Column(Integer, nullable=False, default=0)
    date = Column(DateTime, nullable=False, default=datetime.utcnow)
    trigger = Column(String(200))

    student = relationship("Student", back_populates="xp_events")

    __table_args__ = (
        Index("ix_xp_events_student_date", "student_id", "date"),
    )

    def __repr__(self):
        return f"<XPEvent {self.action} +{self.xp_amount}>"


class Badge(Base):
    __tablename__ = "badges"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False, unique=True)
    description = Column(Text)
    icon = Column(String(50))
    rarity = Column(String(20), default="common")  # common, rare, epic, legendary
    xp_reward = Column(Integer, default=0)
    criteria = Column(String(50), nullable=False)  # named rule, see achievements.BADGE_RULES
    is_active = Column(Boolean, default=True)

    created_at = Column(DateTime, default=datetime.utcnow)

    student_badges = relationship("StudentBadge", back_populates="badge")

    def __repr__(self):
        return f"<Badge {self.name}>"


class StudentBadge(Base):
    __tablename__ = "student_badges"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    student_id = Column(Uuid(as_uuid=True), ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    badge_id = Column(Uuid(as_uuid=True), ForeignKey("badges.id"), nullable=False)
    date_earned = Column(DateTime, default=datetime.utcnow)

    student = relationship("Student", back_populates="badges")
    badge = relationship("Badge", back_populates="student_badges")

    __table_args__ = (
        UniqueConstraint('student_id', 'badge_id', name='unique_student_badge'),
    )


class LeaderboardPeriod(str, enum.Enum):
    WEEKLY = "weekly"
    DAILY = "daily"


class LeaderboardEntry(Base):
    """One row per student per ranking window; older windows are kept as history."""
    __tablename__ = "leaderboard_entries"

    # Integer key doubles as the insertion order used for tie-breaks
    id = Column(Integer, primary_key=True, autoincrement=True)
    student_id = Column(Uuid(as_uuid=True), ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    period = Column(String(10), nullable=False, default=LeaderboardPeriod.WEEKLY.value)
    window_start = Column(DateTime, nullable=False)
    window_end = Column(DateTime, nullable=False)

    weekly_xp = Column(Integer, default=0, nullable=False)
    rank = Column(Integer, default=0, nullable=False)
    previous_rank = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint('student_id', 'period', 'window_start', 'window_end', name='unique_leaderboard_window'),
        Index("ix_leaderboard_window", "period", "window_start", "window_end"),
        {"sqlite_autoincrement": True},
    )

    def __repr__(self):
        return f"<LeaderboardEntry #{self.rank} {self.weekly_xp} XP>"
