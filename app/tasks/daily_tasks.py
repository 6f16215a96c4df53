# ============================================================================
# Daily Scheduled Tasks
# ============================================================================
from celery import shared_task
import asyncio
import logging

logger = logging.getLogger(__name__)

def run_async(coro):
    """Helper to run async functions in Celery tasks"""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()

async def dispose_engine():
    """Drop pooled connections bound to this task's event loop"""
    from app.core.database import get_engine

    await get_engine().dispose()

@shared_task(name="app.tasks.daily_tasks.run_daily_maintenance")
def run_daily_maintenance():
    """Streak update and XP snapshot for the day just ended, inactivity list"""
    async def _run():
        from app.services.maintenance import run_daily_maintenance as run

        try:
            result = await run()
        finally:
            await dispose_engine()

        logger.info(
            f"Daily maintenance done: {result['streaks_updated']} streaks, "
            f"{len(result['inactive_students'])} inactive"
        )
        return {
            **result,
            "failed_students": [str(s) for s in result["failed_students"]],
            "inactive_students": [str(s) for s in result["inactive_students"]],
        }

    return run_async(_run())
