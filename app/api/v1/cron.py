# ============================================================================
# Scheduler Trigger Endpoints
# ============================================================================
from fastapi import APIRouter, Depends

from app.api.deps import get_report_sink, get_uow_factory, verify_cron_secret
from app.services.maintenance import ReportSink, UowFactory, run_daily_maintenance, run_weekly_maintenance

router = APIRouter(prefix="/cron", tags=["cron"], dependencies=[Depends(verify_cron_secret)])

@router.post("/daily")
async def daily_maintenance(uow_factory: UowFactory = Depends(get_uow_factory)):
    """Streaks and XP snapshot for yesterday, inactivity list"""
    return await run_daily_maintenance(uow_factory=uow_factory)

@router.post("/weekly")
async def weekly_maintenance(
    uow_factory: UowFactory = Depends(get_uow_factory),
    report_sink: ReportSink = Depends(get_report_sink)
):
    """XP totals, weekly leaderboard, badges, overdue homework, parent reports"""
    return await run_weekly_maintenance(uow_factory=uow_factory, report_sink=report_sink)
