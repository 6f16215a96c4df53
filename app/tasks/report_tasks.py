# ============================================================================
# Report Generation Tasks
# ============================================================================
from celery import shared_task
from uuid import UUID
import logging

from app.tasks.daily_tasks import run_async, dispose_engine

logger = logging.getLogger(__name__)

@shared_task(name="app.tasks.report_tasks.send_weekly_parent_report")
def send_weekly_parent_report(student_id: str):
    """Build one student's weekly report for their linked parents"""
    async def _generate():
        from app.repositories.sql import unit_of_work
        from app.services.notifications.parent_reports import ParentReportService

        try:
            async with unit_of_work() as uow:
                report = await ParentReportService(uow).generate_report(UUID(student_id))
        finally:
            await dispose_engine()

        # Delivery (email / PDF) is handled outside this service
        logger.info(
            f"Weekly parent report ready for {student_id}: "
            f"{report['summary']['total_questions']} questions, "
            f"{report['summary']['accuracy_percentage']}% accuracy"
        )
        return report

    return run_async(_generate())
