from apscheduler.schedulers.asyncio import AsyncIOScheduler
from sqlalchemy.exc import SQLAlchemyError

from app.core.db import session_scope
from app.services.quotations.revision_reconciliation import report_orphaned_revisions
from app.utils.logger import get_logger

logger = get_logger(__name__)

scheduler = AsyncIOScheduler(timezone="UTC")


@scheduler.scheduled_job(
    "cron",
    id="revision_reconciliation",
    hour=0,
    minute=5,  # daily at 00:05 UTC
    max_instances=1,
    coalesce=True,
)
async def revision_reconciliation_job():
    try:
        async with session_scope() as db:
            orphans = await report_orphaned_revisions(db)
    except SQLAlchemyError:
        logger.exception("Revision reconciliation failed")
        return

    logger.info("Revision reconciliation finished", extra={"orphans": orphans})
