# ============================================================================
# API Dependencies
# ============================================================================
from typing import Optional
from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
import hmac
import logging

from app.config import get_settings
from app.core.database import get_db
from app.repositories.sql import SqlAlchemyUnitOfWork, unit_of_work
from app.services.maintenance import ReportSink, UowFactory, enqueue_parent_report

settings = get_settings()
logger = logging.getLogger(__name__)


async def get_uow(db: AsyncSession = Depends(get_db)) -> SqlAlchemyUnitOfWork:
    """Unit of work over the request-scoped session"""
    return SqlAlchemyUnitOfWork(db)


def get_uow_factory() -> UowFactory:
    """Session factory for batch jobs that open one unit of work per student"""
    return unit_of_work


def get_report_sink() -> ReportSink:
    return enqueue_parent_report


async def verify_cron_secret(x_cron_secret: Optional[str] = Header(None)) -> None:
    """Reject scheduler calls without the shared secret"""
    if not x_cron_secret or not hmac.compare_digest(x_cron_secret, settings.CRON_SECRET):
        logger.warning("Rejected cron call with missing or invalid secret")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid cron secret"
        )
