# ============================================================================
# Gamification Schemas
# ============================================================================
from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime
from uuid import UUID

class XPAwardResponse(BaseModel):
    xp_earned: int
    xp_total: int
    level: int
    leveled_up: bool

class LessonCompleteResponse(XPAwardResponse):
    lesson_ref: str
    subject: str

class HomeworkCompleteResponse(BaseModel):
    homework_id: UUID
    status: str
    score: Optional[float] = None
    xp_earned: int
    xp_total: int
    leveled_up: bool

class StudentBadgeResponse(BaseModel):
    badge_id: UUID
    name: str
    description: Optional[str] = None
    icon: Optional[str] = None
    rarity: Optional[str] = None
    xp_reward: Optional[int] = 0
    date_earned: Optional[datetime] = None

class BadgeAwardResponse(BaseModel):
    badge_id: UUID
    name: str
    xp_reward: int
    xp_total: int
    level: int
    leveled_up: bool
    date_earned: Optional[datetime] = None

class LeaderboardEntryResponse(BaseModel):
    rank: int
    previous_rank: int
    movement: Optional[int] = None
    student_id: UUID
    name: str
    level: int
    weekly_xp: int
    window_start: datetime
    window_end: datetime

class LeaderboardResponse(BaseModel):
    period: str
    entries: List[LeaderboardEntryResponse]

class LeaderboardHistoryEntry(BaseModel):
    window_start: datetime
    window_end: datetime
    weekly_xp: int
    rank: int
    previous_rank: int

class LevelInfoResponse(BaseModel):
    level: int
    total_xp: int
    xp_in_level: int
    xp_for_next_level: int
    progress_percent: float
