from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.models.quotations.quotation_models import Quotation
from app.models.enums.quotation_status import InternalStatus
from app.schemas.quotations.quotation_schemas import OrphanedRevisionOut
from app.constants import features
from app.services.access.permission_gate import PermissionGate
from app.services.quotations.numbering import revise_number
from app.utils.logger import get_logger

logger = get_logger(__name__)


async def find_orphaned_revisions(db: AsyncSession) -> list[OrphanedRevisionOut]:
    """Revised quotations whose successor was never stored."""
    revised = (
        await db.execute(
            select(Quotation.id, Quotation.quotation_number, Quotation.updated_at)
            .where(Quotation.internal_status == InternalStatus.revised)
            .order_by(Quotation.quotation_number)
        )
    ).all()

    if not revised:
        return []

    expected = {r.id: revise_number(r.quotation_number) for r in revised}

    # Soft-deleted successors still count as existing
    present = set(
        (
            await db.execute(
                select(Quotation.quotation_number).where(
                    Quotation.quotation_number.in_(set(expected.values()))
                )
            )
        ).scalars()
    )

    return [
        OrphanedRevisionOut(
            id=r.id,
            quotation_number=r.quotation_number,
            expected_successor=expected[r.id],
            updated_at=r.updated_at,
        )
        for r in revised
        if expected[r.id] not in present
    ]


async def report_orphaned_revisions(db: AsyncSession) -> int:
    orphans = await find_orphaned_revisions(db)

    for o in orphans:
        logger.error(
            "Revised quotation has no successor, manual recovery needed",
            extra={
                "quotation_id": o.id,
                "quotation_number": o.quotation_number,
                "expected_successor": o.expected_successor,
            },
        )

    if not orphans:
        logger.info("Revision reconciliation: no orphaned revisions")
    return len(orphans)


async def list_orphaned_revisions(db: AsyncSession, caller) -> list[OrphanedRevisionOut]:
    gate = PermissionGate.for_session(db)
    await gate.check(caller, features.VIEW_QUOTATION_ANALYTICS)
    return await find_orphaned_revisions(db)
