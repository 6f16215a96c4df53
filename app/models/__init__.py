from app.models.user import Student, ParentStudentLink
from app.models.curriculum import Question, Difficulty
from app.models.practice import LexSession, QuestionAttempt, LessonCompletion, HomeworkAssignment, HomeworkStatus
from app.models.gamification import XPEvent, XPAction, Badge, StudentBadge, LeaderboardEntry, LeaderboardPeriod

__all__ = [
    "Student", "ParentStudentLink", "Question", "Difficulty", "LexSession",
    "QuestionAttempt", "LessonCompletion", "HomeworkAssignment", "HomeworkStatus",
    "XPEvent", "XPAction", "Badge", "StudentBadge", "LeaderboardEntry",
    "LeaderboardPeriod"
]
