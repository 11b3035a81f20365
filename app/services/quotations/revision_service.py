"""Revision engine.

A revision closes the parent (``request-revise`` -> ``revised``) and creates a
successor numbered ``<parent base>R<n+1>``. The two writes are committed
separately: if the successor cannot be stored, the parent stays ``revised``
without one and ``PartialRevisionFailure`` is raised. Such orphans are picked
up by ``revision_reconciliation``.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums.quotation_status import InternalStatus, DiscountType, PENDING_REVIEW
from app.models.quotations.quotation_models import Quotation
from app.schemas.quotations.quotation_schemas import QuotationOut, QuotationRevise

from app.core.exceptions import PartialRevisionFailure
from app.constants.activity_codes import ActivityCode
from app.constants import features
from app.services.access.permission_gate import PermissionGate
from app.services.quotations.action_history import append_action, format_timestamp, utcnow
from app.services.quotations.numbering import generate_quotation_id, revise_number
from app.services.quotations.quotation_lifecycle import ensure_transition
from app.services.quotations.quotation_service import (
    EDITABLE_FIELDS,
    apply_totals,
    build_items,
    build_terms,
    get_quotation_row,
    map_quotation,
    reload_quotation,
)
from app.utils.activity_helpers import emit_caller_activity
from app.utils.get_user import CallerContext
from app.utils.logger import get_logger

logger = get_logger(__name__)


async def _persist_revision(db: AsyncSession, child: Quotation) -> None:
    db.add(child)
    await db.commit()


async def revise_quotation(
    db: AsyncSession,
    parent_id: str,
    payload: QuotationRevise,
    caller: CallerContext,
) -> QuotationOut:
    gate = PermissionGate.for_session(db)
    role = await gate.check(caller, features.APPROVE_QUOTATIONS)

    parent = await get_quotation_row(db, parent_id, for_update=True)
    ensure_transition(parent.internal_status, InternalStatus.revised)

    now = utcnow()
    parent_no = parent.quotation_number
    child_number = revise_number(parent_no)
    child_id = generate_quotation_id()

    # -------------------------------
    # Build the successor
    # -------------------------------
    child = Quotation(
        id=child_id,
        quotation_number=child_number,
        date=now.date(),
        internal_status=InternalStatus.pending,
        external_status=PENDING_REVIEW,
        created_by=caller.username,
        created_by_role=role,
        created_by_department=caller.department,
        creator_type=caller.access_type.value,
        for_department=payload.for_department or parent.for_department,
        is_requested=parent.is_requested,
        request_id=parent.request_id,
        version=1,
        is_deleted=False,
        items=build_items(payload.items),
        terms=build_terms(payload.terms),
        action_history=[],
    )
    for field in EDITABLE_FIELDS:
        setattr(child, field, getattr(payload, field))
    child.discount_type = payload.discount_type or DiscountType.percentage
    child.discount_value = payload.discount_value or "0"
    child.tax_rate = payload.tax_rate or "0"

    # Totals come from the edited lines, never from the parent's stored amount.
    # A payload that cannot be priced fails here with the parent untouched.
    apply_totals(child, payload.items)
    append_action(child, f"Created as revision of {parent_no} on {format_timestamp(now)}")

    # -------------------------------
    # Close the parent
    # -------------------------------
    parent.internal_status = InternalStatus.revised
    parent.version += 1
    append_action(parent, f"Revised on {format_timestamp(now)}")

    await emit_caller_activity(
        db, caller, role, ActivityCode.REVISE_QUOTATION,
        target_name=parent_no,
        new_number=child_number,
    )

    await db.commit()

    # -------------------------------
    # Store the successor
    # -------------------------------
    try:
        logger.info(
            "Quotation closed as revised",
            extra={"quotation_id": parent_id, "quotation_number": parent_no, "successor": child_number},
        )
        await _persist_revision(db, child)
    except Exception as e:
        await db.rollback()
        logger.error(
            "Revision successor could not be created; parent left revised without one",
            extra={
                "parent_id": parent_id,
                "child_id": child_id,
                "child_number": child_number,
                "error": str(e),
            },
        )
        raise PartialRevisionFailure(parent_id, child_id, child_number, str(e)) from e

    logger.info(
        "Revision created",
        extra={"quotation_id": child_id, "quotation_number": child_number, "parent_id": parent_id},
    )

    child = await reload_quotation(db, child_id)
    return map_quotation(child)
