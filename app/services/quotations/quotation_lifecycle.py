"""Internal and client-facing status transitions.

Internal axis::

    pending        -> approved | rejected | cancelled
    approved       -> request-revise | cancelled
    request-revise -> revised          (revision engine only)

Client axis, open only while the internal status is ``approved``::

    pending -> approved | Rejected | Revision Requested

Every transition follows the same order: permission check, locked load,
state validation, mutation, history append, commit.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums.quotation_status import (
    InternalStatus,
    ExternalStatus,
    normalize_external_status,
)
from app.models.enums.access_type import AccessType
from app.models.quotations.quotation_models import Quotation
from app.schemas.quotations.quotation_schemas import QuotationOut, ClientApprovalIn, PurchaseOrderIn

from app.core.exceptions import InvalidStateTransition
from app.constants.activity_codes import ActivityCode
from app.constants import features
from app.services.access.permission_gate import PermissionGate
from app.services.quotations.action_history import actor_entry, append_action, utcnow
from app.services.quotations.quotation_service import (
    ensure_company_scope,
    get_quotation_row,
    map_quotation,
    reload_quotation,
)
from app.utils.activity_helpers import emit_caller_activity
from app.utils.get_user import CallerContext
from app.utils.logger import get_logger

logger = get_logger(__name__)

INTERNAL_TRANSITIONS: dict[InternalStatus, frozenset[InternalStatus]] = {
    InternalStatus.pending: frozenset({
        InternalStatus.approved,
        InternalStatus.rejected,
        InternalStatus.cancelled,
    }),
    InternalStatus.approved: frozenset({
        InternalStatus.request_revise,
        InternalStatus.cancelled,
    }),
    InternalStatus.request_revise: frozenset({InternalStatus.revised}),
}

CLIENT_DECISIONS = frozenset({
    ExternalStatus.approved,
    ExternalStatus.rejected,
    ExternalStatus.revision_requested,
})


def can_transition(current: InternalStatus, target: InternalStatus) -> bool:
    return target in INTERNAL_TRANSITIONS.get(current, frozenset())


def ensure_transition(current: InternalStatus, target: InternalStatus) -> None:
    if not can_transition(current, target):
        raise InvalidStateTransition(current.value, target.value)


def ensure_client_decision_open(q: Quotation, target: ExternalStatus) -> None:
    if q.internal_status != InternalStatus.approved:
        raise InvalidStateTransition(
            q.internal_status.value,
            target.value,
            "Client decisions require an internally approved quotation",
        )

    # Blank counts as not yet decided; unknown strings are treated as decided
    raw = q.external_status
    if raw and raw.strip() and normalize_external_status(raw) != ExternalStatus.pending:
        raise InvalidStateTransition(
            raw,
            target.value,
            f"Client decision already recorded: {raw}",
        )


async def check_client_permission(gate: PermissionGate, caller: CallerContext) -> str:
    if caller.is_external:
        return await gate.check(caller, features.EXT_APPROVE_QUOTATIONS, AccessType.external)
    return await gate.check(caller, features.UPDATE_CLIENT_STATUS)


async def _finish(db: AsyncSession, q: Quotation, message: str, **extra) -> QuotationOut:
    await db.commit()
    logger.info(message, extra={"quotation_id": q.id, "quotation_number": q.quotation_number, **extra})

    q = await reload_quotation(db, q.id)
    return map_quotation(q)


# =====================================================
# INTERNAL AXIS
# =====================================================
async def _internal_transition(
    db: AsyncSession,
    quotation_id: str,
    caller: CallerContext,
    *,
    feature_id: str,
    target: InternalStatus,
    history_action: str,
    activity: ActivityCode,
) -> QuotationOut:
    gate = PermissionGate.for_session(db)
    role = await gate.check(caller, feature_id)

    q = await get_quotation_row(db, quotation_id, for_update=True)
    previous = q.internal_status
    ensure_transition(previous, target)

    q.internal_status = target
    q.version += 1
    append_action(q, actor_entry(history_action, caller.username))

    await emit_caller_activity(
        db, caller, role, activity,
        target_name=q.quotation_number,
    )

    return await _finish(
        db, q, "Quotation status changed",
        previous=previous.value, status=target.value,
    )


async def approve_quotation(db: AsyncSession, quotation_id: str, caller: CallerContext) -> QuotationOut:
    return await _internal_transition(
        db, quotation_id, caller,
        feature_id=features.APPROVE_QUOTATIONS,
        target=InternalStatus.approved,
        history_action="Approved",
        activity=ActivityCode.APPROVE_QUOTATION,
    )


async def reject_quotation(db: AsyncSession, quotation_id: str, caller: CallerContext) -> QuotationOut:
    return await _internal_transition(
        db, quotation_id, caller,
        feature_id=features.APPROVE_QUOTATIONS,
        target=InternalStatus.rejected,
        history_action="Rejected",
        activity=ActivityCode.REJECT_QUOTATION,
    )


async def request_revise_quotation(db: AsyncSession, quotation_id: str, caller: CallerContext) -> QuotationOut:
    return await _internal_transition(
        db, quotation_id, caller,
        feature_id=features.APPROVE_QUOTATIONS,
        target=InternalStatus.request_revise,
        history_action="Revision requested",
        activity=ActivityCode.REQUEST_REVISE_QUOTATION,
    )


async def cancel_quotation(db: AsyncSession, quotation_id: str, caller: CallerContext) -> QuotationOut:
    return await _internal_transition(
        db, quotation_id, caller,
        feature_id=features.CANCEL_QUOTATIONS,
        target=InternalStatus.cancelled,
        history_action="Cancelled",
        activity=ActivityCode.CANCEL_QUOTATION,
    )


# =====================================================
# CLIENT AXIS
# =====================================================
async def _client_decision(
    db: AsyncSession,
    quotation_id: str,
    caller: CallerContext,
    *,
    target: ExternalStatus,
    history_action: str,
    po: ClientApprovalIn | None = None,
) -> QuotationOut:
    gate = PermissionGate.for_session(db)
    role = await check_client_permission(gate, caller)

    q = await get_quotation_row(db, quotation_id, for_update=True)
    ensure_company_scope(q, caller)
    ensure_client_decision_open(q, target)

    q.external_status = target.value
    q.version += 1
    if target == ExternalStatus.approved:
        q.client_approval_date = utcnow()
        if po is not None:
            q.po_no = po.po_no or q.po_no
            q.po_file_url = po.po_file_url or q.po_file_url
    append_action(q, actor_entry(history_action, caller.username))

    await emit_caller_activity(
        db, caller, role, ActivityCode.CLIENT_DECISION,
        target_name=q.quotation_number,
        new_status=target.value,
    )

    return await _finish(db, q, "Client decision recorded", status=target.value)


async def client_approve_quotation(
    db: AsyncSession,
    quotation_id: str,
    caller: CallerContext,
    po: ClientApprovalIn | None = None,
) -> QuotationOut:
    return await _client_decision(
        db, quotation_id, caller,
        target=ExternalStatus.approved,
        history_action="Client approval set",
        po=po,
    )


async def client_reject_quotation(db: AsyncSession, quotation_id: str, caller: CallerContext) -> QuotationOut:
    return await _client_decision(
        db, quotation_id, caller,
        target=ExternalStatus.rejected,
        history_action="Client rejection set",
    )


async def client_request_revision(db: AsyncSession, quotation_id: str, caller: CallerContext) -> QuotationOut:
    return await _client_decision(
        db, quotation_id, caller,
        target=ExternalStatus.revision_requested,
        history_action="Client revision requested",
    )


async def submit_purchase_order(
    db: AsyncSession,
    quotation_id: str,
    payload: PurchaseOrderIn,
    caller: CallerContext,
) -> QuotationOut:
    gate = PermissionGate.for_session(db)
    role = await check_client_permission(gate, caller)

    q = await get_quotation_row(db, quotation_id, for_update=True)
    ensure_company_scope(q, caller)

    if (
        q.internal_status != InternalStatus.approved
        or normalize_external_status(q.external_status) != ExternalStatus.approved
    ):
        raise InvalidStateTransition(
            q.external_status,
            "po-submitted",
            "A purchase order can only be submitted for a client-approved quotation",
        )

    q.po_no = payload.po_no
    if payload.po_file_url:
        q.po_file_url = payload.po_file_url
    q.version += 1
    append_action(q, actor_entry(f"PO {payload.po_no} submitted", caller.username))

    await emit_caller_activity(
        db, caller, role, ActivityCode.SUBMIT_PURCHASE_ORDER,
        target_name=q.quotation_number,
        po_no=payload.po_no,
    )

    return await _finish(db, q, "Purchase order submitted", po_no=payload.po_no)
