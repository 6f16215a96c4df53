# ============================================================================
# Celery Application Configuration
# ============================================================================
from celery import Celery
from celery.schedules import crontab
from app.config import get_settings

settings = get_settings()

celery_app = Celery(
    "proacademics_lex",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
    include=[
        "app.tasks.daily_tasks",
        "app.tasks.weekly_tasks",
        "app.tasks.report_tasks"
    ]
)

# Celery Configuration
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone=settings.CELERY_TIMEZONE,
    enable_utc=True,
    task_track_started=True,
    task_time_limit=30 * 60,  # 30 minutes
    worker_prefetch_multiplier=1,
    task_acks_late=True,
)

# Beat Schedule (Periodic Tasks)
celery_app.conf.beat_schedule = {
    # Streaks and XP snapshot for the day just ended, inactivity list
    "daily-maintenance": {
        "task": "app.tasks.daily_tasks.run_daily_maintenance",
        "schedule": crontab(hour=0, minute=30),
    },

    # XP totals, weekly leaderboard, badges, overdue homework, parent reports (Sunday 1 AM)
    "weekly-maintenance": {
        "task": "app.tasks.weekly_tasks.run_weekly_maintenance",
        "schedule": crontab(hour=1, minute=0, day_of_week=0),
    },
}
