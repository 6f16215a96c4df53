# ============================================================================
# Weekly Scheduled Tasks
# ============================================================================
from celery import shared_task
import logging

from app.tasks.daily_tasks import run_async, dispose_engine

logger = logging.getLogger(__name__)

@shared_task(name="app.tasks.weekly_tasks.run_weekly_maintenance")
def run_weekly_maintenance():
    """XP recompute, weekly leaderboard, badges, overdue sweep, parent reports"""
    async def _run():
        from app.services.maintenance import run_weekly_maintenance as run

        try:
            result = await run()
        finally:
            await dispose_engine()

        logger.info(f"Weekly maintenance done: {result['leaderboard_entries']} ranked")
        return {**result, "failed_students": [str(s) for s in result["failed_students"]]}

    return run_async(_run())
