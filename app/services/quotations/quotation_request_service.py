from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, desc

from app.models.quotations.quotation_request_models import QuotationRequest
from app.models.enums.request_status import RequestStatus
from app.models.enums.access_type import AccessType

from app.schemas.quotations.quotation_request_schemas import (
    QuotationRequestCreate,
    QuotationRequestOut,
    QuotationRequestListData,
)

from app.core.exceptions import AppException, NotFound
from app.constants.error_codes import ErrorCode
from app.constants.activity_codes import ActivityCode
from app.constants import features
from app.services.access.permission_gate import PermissionGate
from app.services.quotations.action_history import (
    append_request_action,
    format_timestamp,
    history_texts,
    utcnow,
)
from app.utils.activity_helpers import emit_caller_activity
from app.utils.get_user import CallerContext
from app.utils.logger import get_logger

logger = get_logger(__name__)


async def get_request_for_update(db: AsyncSession, request_id: str) -> QuotationRequest:
    result = await db.execute(
        select(QuotationRequest)
        .where(QuotationRequest.id == request_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    request = result.scalar_one_or_none()
    if not request:
        raise NotFound("Quotation request not found", ErrorCode.QUOTATION_REQUEST_NOT_FOUND, request_id)
    return request


def _map_request(r: QuotationRequest) -> QuotationRequestOut:
    return QuotationRequestOut(
        id=r.id,
        customer_name=r.customer_name,
        project=r.project,
        title=r.title,
        description=r.description,
        company=r.company,
        date=r.date,
        status=r.status,
        user_email=r.user_email,
        created_at=r.created_at,
        action_history=history_texts(r.action_history),
    )


async def _reload_request(db: AsyncSession, request_id: str) -> QuotationRequest:
    result = await db.execute(
        select(QuotationRequest)
        .where(QuotationRequest.id == request_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def _check_reader(gate: PermissionGate, caller: CallerContext) -> None:
    if caller.is_external:
        await gate.check(caller, features.EXT_REQUEST_QUOTATIONS, AccessType.external)
    else:
        await gate.check(caller, features.VIEW_QUOTATION_REQUESTS)


async def _next_request_id(db: AsyncSession, moment) -> str:
    prefix = f"RQ{moment.strftime('%Y%m%d')}-"
    count = await db.scalar(
        select(func.count()).select_from(QuotationRequest).where(QuotationRequest.id.like(f"{prefix}%"))
    )
    return f"{prefix}{(count or 0) + 1}"


async def create_quotation_request(
    db: AsyncSession,
    payload: QuotationRequestCreate,
    caller: CallerContext,
) -> QuotationRequestOut:
    gate = PermissionGate.for_session(db)
    role = await gate.check(caller, features.EXT_REQUEST_QUOTATIONS, AccessType.external)

    if not caller.company:
        raise AppException(
            400,
            "Your account is not linked to a company",
            ErrorCode.VALIDATION_ERROR,
        )

    now = utcnow()
    request = QuotationRequest(
        id=await _next_request_id(db, now),
        customer_name=payload.customer_name,
        project=payload.project,
        title=payload.title,
        description=payload.description,
        company=caller.company,
        date=now.date(),
        status=RequestStatus.pending,
        user_email=caller.username,
        action_history=[],
    )
    append_request_action(
        request,
        f"Requested by {payload.customer_name} ({caller.company}, {caller.username}) on {format_timestamp(now)}",
    )
    db.add(request)

    await emit_caller_activity(
        db, caller, role, ActivityCode.CREATE_QUOTATION_REQUEST,
        target_name=request.id,
        company=caller.company,
    )

    await db.commit()
    logger.info("Quotation request created", extra={"request_id": request.id, "company": caller.company})

    request = await _reload_request(db, request.id)
    return _map_request(request)


async def get_quotation_request(
    db: AsyncSession,
    request_id: str,
    caller: CallerContext,
) -> QuotationRequestOut:
    gate = PermissionGate.for_session(db)
    await _check_reader(gate, caller)

    request = await db.get(QuotationRequest, request_id)
    if not request or (caller.is_external and request.company != caller.company):
        raise NotFound("Quotation request not found", ErrorCode.QUOTATION_REQUEST_NOT_FOUND, request_id)

    return _map_request(request)


async def list_quotation_requests(
    db: AsyncSession,
    caller: CallerContext,
    status: RequestStatus | None = None,
    page: int = 1,
    page_size: int = 20,
) -> QuotationRequestListData:
    gate = PermissionGate.for_session(db)
    await _check_reader(gate, caller)

    conditions = []
    if caller.is_external:
        conditions.append(QuotationRequest.company == caller.company)
    if status:
        conditions.append(QuotationRequest.status == status)

    total = await db.scalar(
        select(func.count()).select_from(QuotationRequest).where(*conditions)
    )

    result = await db.execute(
        select(QuotationRequest)
        .where(*conditions)
        .order_by(desc(QuotationRequest.created_at), desc(QuotationRequest.id))
        .offset((page - 1) * page_size)
        .limit(page_size)
    )

    return QuotationRequestListData(
        total=total or 0,
        items=[_map_request(r) for r in result.scalars()],
    )


async def reject_quotation_request(
    db: AsyncSession,
    request_id: str,
    caller: CallerContext,
) -> QuotationRequestOut:
    gate = PermissionGate.for_session(db)
    role = await gate.check(caller, features.APPROVE_QUOTATIONS)

    request = await get_request_for_update(db, request_id)

    if request.status != RequestStatus.pending:
        raise AppException(
            409,
            f"Quotation request {request.id} is already {request.status.value}",
            ErrorCode.QUOTATION_REQUEST_INVALID_STATE,
            {"current": request.status.value, "attempted": RequestStatus.rejected.value},
        )

    request.status = RequestStatus.rejected
    append_request_action(request, f"Rejected by {caller.username} on {format_timestamp()}")

    await emit_caller_activity(
        db, caller, role, ActivityCode.REJECT_QUOTATION_REQUEST,
        target_name=request.id,
    )

    await db.commit()
    logger.info("Quotation request rejected", extra={"request_id": request.id})

    request = await _reload_request(db, request.id)
    return _map_request(request)
