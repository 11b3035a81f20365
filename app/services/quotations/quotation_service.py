from decimal import Decimal
from typing import Iterable

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, asc, desc, or_

from app.models.quotations.quotation_models import Quotation, QuotationItem, QuotationTerm
from app.models.enums.quotation_status import (
    InternalStatus,
    ExternalStatus,
    DiscountType,
    normalize_external_status,
    external_status_aliases,
)
from app.models.enums.request_status import RequestStatus
from app.models.enums.access_type import AccessType

from app.schemas.quotations.quotation_schemas import (
    QuotationCreate,
    QuotationUpdate,
    QuotationOut,
    QuotationItemIn,
    QuotationItemOut,
    QuotationListData,
    QuotationListItem,
    QuotationStatsOut,
    TotalsPreviewIn,
    TotalsOut,
)

from app.core.exceptions import (
    AppException,
    NotFound,
    InvalidStateTransition,
    PermissionDenied,
    MalformedInput,
)
from app.constants.error_codes import ErrorCode
from app.constants.activity_codes import ActivityCode
from app.constants import features
from app.services.access.permission_gate import PermissionGate
from app.services.quotations.action_history import (
    actor_entry,
    append_action,
    append_request_action,
    history_texts,
    is_requested_quotation,
    utcnow,
)
from app.services.quotations.numbering import generate_quotation_id, next_quotation_number, utc_today
from app.services.quotations.quotation_request_service import get_request_for_update
from app.services.quotations.totals import QuotationTotals, compute_totals
from app.utils.activity_helpers import emit_caller_activity
from app.utils.decimal_utils import to_decimal
from app.utils.get_user import CallerContext
from app.utils.logger import get_logger
from app.utils.pdf_generators.quotation_pdf import QuotationRenderer, render_quotation_pdf as render_pdf_file

logger = get_logger(__name__)

# Plain columns copied 1:1 from create / update / revise payloads
EDITABLE_FIELDS = (
    "company",
    "my_company",
    "project",
    "title",
    "to_address",
    "attn",
    "email_to",
    "email_cc",
    "salesperson",
    "customer_references",
    "payment_terms",
    "due_date",
    "annexure_url",
    "currency",
    "discount_type",
    "discount_value",
    "tax_rate",
)


# =====================================================
# LOADING
# =====================================================
async def get_quotation_row(
    db: AsyncSession,
    quotation_id: str,
    *,
    for_update: bool = False,
    include_deleted: bool = False,
) -> Quotation:
    """Load one quotation with items, terms and history.

    ``for_update`` takes a row lock and refreshes any copy already held by the
    session, so state checks run against what is committed.
    """
    stmt = select(Quotation).where(Quotation.id == quotation_id)
    if not include_deleted:
        stmt = stmt.where(Quotation.is_deleted.is_(False))
    if for_update:
        stmt = stmt.with_for_update().execution_options(populate_existing=True)

    q = (await db.execute(stmt)).scalar_one_or_none()
    if not q:
        raise NotFound("Quotation not found", ErrorCode.QUOTATION_NOT_FOUND, quotation_id)
    return q


async def reload_quotation(db: AsyncSession, quotation_id: str) -> Quotation:
    # Server-side defaults (timestamps, history ids) are only known after a round trip
    result = await db.execute(
        select(Quotation)
        .where(Quotation.id == quotation_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


def ensure_company_scope(q: Quotation, caller: CallerContext) -> None:
    """External callers only ever see their own company's quotations."""
    if caller.is_external and (not caller.company or q.company != caller.company):
        raise NotFound("Quotation not found", ErrorCode.QUOTATION_NOT_FOUND, q.id)


# =====================================================
# MAPPING
# =====================================================
def totals_of(q: Quotation) -> QuotationTotals:
    return compute_totals(q.items, q.discount_type, q.discount_value, q.tax_rate)


def map_totals(t: QuotationTotals) -> TotalsOut:
    return TotalsOut(
        subtotal=t.subtotal,
        discount=t.discount,
        after_discount=t.after_discount,
        tax=t.tax,
        total=t.total,
    )


def map_quotation(q: Quotation) -> QuotationOut:
    return QuotationOut(
        id=q.id,
        quotation_number=q.quotation_number,
        date=q.date,
        company=q.company,
        my_company=q.my_company,
        project=q.project,
        title=q.title,
        to_address=q.to_address,
        attn=q.attn,
        email_to=q.email_to,
        email_cc=q.email_cc,
        salesperson=q.salesperson,
        customer_references=q.customer_references,
        payment_terms=q.payment_terms,
        due_date=q.due_date,
        currency=q.currency,
        discount_type=q.discount_type,
        discount_value=q.discount_value,
        tax_rate=q.tax_rate,
        amount=q.amount,
        totals=map_totals(totals_of(q)),
        internal_status=q.internal_status,
        external_status=q.external_status,
        pdf_url=q.pdf_url,
        annexure_url=q.annexure_url,
        po_no=q.po_no,
        po_file_url=q.po_file_url,
        client_approval_date=q.client_approval_date,
        created_by=q.created_by,
        created_by_role=q.created_by_role,
        created_by_department=q.created_by_department,
        for_department=q.for_department,
        is_requested=is_requested_quotation(q),
        request_id=q.request_id,
        version=q.version,
        created_at=q.created_at,
        updated_at=q.updated_at,
        items=[
            QuotationItemOut(
                id=i.id,
                position=i.position,
                system=i.system,
                description=i.description,
                unit=i.unit,
                qty=i.qty,
                amount=i.amount,
            )
            for i in q.items
        ],
        terms=[t.content for t in q.terms],
        action_history=history_texts(q.action_history),
    )


# =====================================================
# BUILDING
# =====================================================
def build_items(items: Iterable[QuotationItemIn]) -> list[QuotationItem]:
    return [
        QuotationItem(
            position=n,
            system=i.system,
            description=i.description,
            unit=i.unit,
            qty=i.qty,
            amount=i.amount,
        )
        for n, i in enumerate(items, start=1)
    ]


def build_terms(terms: Iterable[str]) -> list[QuotationTerm]:
    kept = [t for t in terms if t and t.strip()]
    return [QuotationTerm(position=n, content=t) for n, t in enumerate(kept, start=1)]


# Quotation.amount is Numeric(14, 2)
MAX_AMOUNT = Decimal("1e12")


def stored_amount(total: Decimal) -> Decimal:
    if abs(total) >= MAX_AMOUNT or abs(to_decimal(total)) >= MAX_AMOUNT:
        raise MalformedInput(f"Quotation total {total} exceeds the storable amount")
    return to_decimal(total)


def apply_totals(q: Quotation, items) -> QuotationTotals:
    totals = compute_totals(items, q.discount_type, q.discount_value, q.tax_rate)
    q.amount = stored_amount(totals.total)
    return totals


async def next_number_for_today(db: AsyncSession) -> str:
    today = utc_today()
    prefix = today.strftime("%Y%m%d")
    # Soft-deleted rows keep their number, so they take part
    existing = (
        await db.execute(
            select(Quotation.quotation_number).where(Quotation.quotation_number.like(f"{prefix}%"))
        )
    ).scalars().all()
    return next_quotation_number(existing, today)


# =====================================================
# CREATE
# =====================================================
async def create_quotation(
    db: AsyncSession,
    payload: QuotationCreate,
    caller: CallerContext,
) -> QuotationOut:
    gate = PermissionGate.for_session(db)
    role = await gate.check(caller, features.CREATE_QUOTATIONS)

    request = None
    if payload.request_id:
        request = await get_request_for_update(db, payload.request_id)
        if request.status != RequestStatus.pending:
            raise AppException(
                409,
                f"Quotation request {request.id} is already {request.status.value}",
                ErrorCode.QUOTATION_REQUEST_INVALID_STATE,
                {"current": request.status.value},
            )

    now = utcnow()
    number = await next_number_for_today(db)

    q = Quotation(
        id=generate_quotation_id(),
        quotation_number=number,
        date=now.date(),
        internal_status=InternalStatus.pending,
        external_status=ExternalStatus.pending.value,
        created_by=caller.username,
        created_by_role=role,
        created_by_department=caller.department,
        creator_type=caller.access_type.value,
        for_department=payload.for_department or caller.department,
        is_requested=request is not None,
        request_id=request.id if request else None,
        version=1,
        is_deleted=False,
        items=build_items(payload.items),
        terms=build_terms(payload.terms),
        action_history=[],
    )
    for field in EDITABLE_FIELDS:
        setattr(q, field, getattr(payload, field))
    q.discount_type = payload.discount_type or DiscountType.percentage
    q.discount_value = payload.discount_value or "0"
    q.tax_rate = payload.tax_rate or "0"

    apply_totals(q, payload.items)
    append_action(q, actor_entry("Created", caller.username, now))
    db.add(q)

    if request is not None:
        request.status = RequestStatus.created
        append_request_action(request, actor_entry(f"Created quotation {number}", caller.username, now))

    await emit_caller_activity(
        db, caller, role, ActivityCode.CREATE_QUOTATION,
        target_name=number,
    )

    await db.commit()
    logger.info(
        "Quotation created",
        extra={"quotation_id": q.id, "quotation_number": number, "request_id": q.request_id},
    )

    q = await reload_quotation(db, q.id)
    return map_quotation(q)


# =====================================================
# READ
# =====================================================
async def _resolve_reader(gate: PermissionGate, caller: CallerContext) -> str:
    """Active internal users may read; external users need one of their features."""
    resolved = await gate.resolve_role(caller)
    if resolved is None:
        raise PermissionDenied("view_quotations", None)

    if resolved.access_type == AccessType.external:
        for feature_id in (features.EXT_APPROVE_QUOTATIONS, features.EXT_REQUEST_QUOTATIONS):
            if await gate.is_allowed(caller, feature_id, AccessType.external):
                return resolved.role
        raise PermissionDenied(features.EXT_APPROVE_QUOTATIONS, resolved.role)

    return resolved.role


async def _visibility_filters(gate: PermissionGate, caller: CallerContext) -> list:
    if caller.is_external:
        return [Quotation.company == caller.company]

    filters = []
    if await gate.is_allowed(caller, features.VIEW_OWN_QUOTATIONS_ONLY):
        filters.append(Quotation.created_by == caller.username)
    elif await gate.is_allowed(caller, features.VIEW_DEPARTMENT_DATA):
        filters.append(
            or_(
                Quotation.for_department == caller.department,
                Quotation.created_by_department == caller.department,
            )
        )
    return filters


async def get_quotation(
    db: AsyncSession,
    quotation_id: str,
    caller: CallerContext,
) -> QuotationOut:
    gate = PermissionGate.for_session(db)
    await _resolve_reader(gate, caller)

    q = await get_quotation_row(db, quotation_id)
    ensure_company_scope(q, caller)

    filters = await _visibility_filters(gate, caller)
    if filters and not caller.is_external:
        visible = await db.scalar(
            select(func.count()).select_from(Quotation).where(Quotation.id == q.id, *filters)
        )
        if not visible:
            raise NotFound("Quotation not found", ErrorCode.QUOTATION_NOT_FOUND, quotation_id)

    return map_quotation(q)


async def list_quotations(
    db: AsyncSession,
    caller: CallerContext,
    internal_status: InternalStatus | None = None,
    external_status: str | None = None,
    company: str | None = None,
    search: str | None = None,
    page: int = 1,
    page_size: int = 20,
    sort_by: str = "created_at",
    order: str = "desc",
) -> QuotationListData:
    gate = PermissionGate.for_session(db)
    await _resolve_reader(gate, caller)

    conditions = [Quotation.is_deleted.is_(False)]
    conditions.extend(await _visibility_filters(gate, caller))

    if internal_status:
        conditions.append(Quotation.internal_status == internal_status)

    if external_status:
        conditions.append(
            func.lower(Quotation.external_status).in_(external_status_aliases(external_status))
        )

    if company:
        conditions.append(Quotation.company == company)

    if search:
        pattern = f"%{search.strip()}%"
        conditions.append(
            or_(
                Quotation.quotation_number.ilike(pattern),
                Quotation.company.ilike(pattern),
                Quotation.project.ilike(pattern),
                Quotation.title.ilike(pattern),
            )
        )

    total = await db.scalar(
        select(func.count()).select_from(Quotation).where(*conditions)
    )

    sort_map = {
        "created_at": Quotation.created_at,
        "date": Quotation.date,
        "quotation_number": Quotation.quotation_number,
        "amount": Quotation.amount,
        "company": Quotation.company,
    }
    sort_col = sort_map.get(sort_by, Quotation.created_at)

    result = await db.execute(
        select(Quotation)
        .where(*conditions)
        .order_by(asc(sort_col) if order == "asc" else desc(sort_col), Quotation.quotation_number)
        .offset((page - 1) * page_size)
        .limit(page_size)
    )

    items = [
        QuotationListItem(
            id=q.id,
            quotation_number=q.quotation_number,
            date=q.date,
            company=q.company,
            project=q.project,
            title=q.title,
            currency=q.currency,
            amount=q.amount,
            internal_status=q.internal_status,
            external_status=q.external_status,
            created_by=q.created_by,
            for_department=q.for_department,
            is_requested=is_requested_quotation(q),
            created_at=q.created_at,
        )
        for q in result.scalars()
    ]

    return QuotationListData(
        total=total or 0,
        items=items,
    )


# =====================================================
# UPDATE
# =====================================================
async def update_quotation(
    db: AsyncSession,
    quotation_id: str,
    payload: QuotationUpdate,
    caller: CallerContext,
) -> QuotationOut:
    gate = PermissionGate.for_session(db)
    role = await gate.check(caller, features.EDIT_QUOTATIONS)

    q = await get_quotation_row(db, quotation_id, for_update=True)

    if q.internal_status != InternalStatus.pending:
        raise InvalidStateTransition(
            q.internal_status.value,
            "edit",
            "Only pending quotations can be edited",
        )

    if q.version != payload.version:
        raise AppException(409, "Version conflict", ErrorCode.CONFLICT, {"current_version": q.version})

    # Price the edited quotation before touching the row
    stored_amount(
        compute_totals(
            payload.items if payload.items is not None else q.items,
            payload.discount_type or q.discount_type,
            payload.discount_value if payload.discount_value is not None else q.discount_value,
            payload.tax_rate if payload.tax_rate is not None else q.tax_rate,
        ).total
    )

    changes: list[str] = []

    for field in EDITABLE_FIELDS:
        value = getattr(payload, field)
        if value is not None and value != getattr(q, field):
            setattr(q, field, value)
            changes.append(field)

    items = q.items
    if payload.items is not None:
        q.items = build_items(payload.items)
        items = payload.items
        changes.append("items")

    if payload.terms is not None:
        q.terms = build_terms(payload.terms)
        changes.append("terms")

    if not changes:
        return map_quotation(q)

    apply_totals(q, items)
    q.version += 1
    append_action(q, actor_entry("Edited", caller.username))

    await emit_caller_activity(
        db, caller, role, ActivityCode.UPDATE_QUOTATION,
        target_name=q.quotation_number,
        changes=", ".join(changes),
    )

    await db.commit()
    logger.info("Quotation updated", extra={"quotation_id": q.id, "changes": changes})

    q = await reload_quotation(db, q.id)
    return map_quotation(q)


# =====================================================
# DELETE (SOFT)
# =====================================================
async def delete_quotation(
    db: AsyncSession,
    quotation_id: str,
    caller: CallerContext,
) -> QuotationOut:
    gate = PermissionGate.for_session(db)
    role = await gate.require_admin(caller)

    q = await get_quotation_row(db, quotation_id, for_update=True)

    q.is_deleted = True
    q.version += 1
    append_action(q, actor_entry("Deleted", caller.username))

    await emit_caller_activity(
        db, caller, role, ActivityCode.DELETE_QUOTATION,
        target_name=q.quotation_number,
    )

    await db.commit()
    logger.info("Quotation deleted", extra={"quotation_id": q.id})

    q = await reload_quotation(db, q.id)
    return map_quotation(q)


# =====================================================
# PDF
# =====================================================
async def attach_pdf(
    db: AsyncSession,
    quotation_id: str,
    pdf_url: str,
    caller: CallerContext,
) -> QuotationOut:
    gate = PermissionGate.for_session(db)
    await gate.check(caller, features.CREATE_QUOTATIONS)

    q = await get_quotation_row(db, quotation_id, for_update=True)
    q.pdf_url = pdf_url

    await db.commit()
    logger.info("Quotation PDF attached", extra={"quotation_id": q.id})

    q = await reload_quotation(db, q.id)
    return map_quotation(q)


async def render_quotation_pdf(
    db: AsyncSession,
    quotation_id: str,
    caller: CallerContext,
    renderer: QuotationRenderer = render_pdf_file,
) -> QuotationOut:
    gate = PermissionGate.for_session(db)
    role = await gate.check(caller, features.CREATE_QUOTATIONS)

    q = await get_quotation_row(db, quotation_id, for_update=True)

    q.pdf_url = renderer(q, totals_of(q))

    await emit_caller_activity(
        db, caller, role, ActivityCode.RENDER_QUOTATION_PDF,
        target_name=q.quotation_number,
    )

    await db.commit()

    q = await reload_quotation(db, q.id)
    return map_quotation(q)


# =====================================================
# TOTALS PREVIEW / STATS
# =====================================================
def preview_totals(payload: TotalsPreviewIn) -> TotalsOut:
    return map_totals(
        compute_totals(payload.items, payload.discount_type, payload.discount_value, payload.tax_rate)
    )


async def get_quotation_stats(
    db: AsyncSession,
    caller: CallerContext,
) -> QuotationStatsOut:
    gate = PermissionGate.for_session(db)
    await gate.check(caller, features.VIEW_QUOTATION_ANALYTICS)

    live = Quotation.is_deleted.is_(False)

    by_internal = {
        status.value: count
        for status, count in (
            await db.execute(
                select(Quotation.internal_status, func.count()).where(live).group_by(Quotation.internal_status)
            )
        ).all()
    }

    by_external: dict[str, int] = {}
    for raw, count in (
        await db.execute(
            select(Quotation.external_status, func.count()).where(live).group_by(Quotation.external_status)
        )
    ).all():
        normalized = normalize_external_status(raw)
        key = normalized.value if normalized else (raw or "unset")
        by_external[key] = by_external.get(key, 0) + count

    approved_amounts = {
        currency: Decimal(total or 0)
        for currency, total in (
            await db.execute(
                select(Quotation.currency, func.sum(Quotation.amount))
                .where(live, Quotation.internal_status == InternalStatus.approved)
                .group_by(Quotation.currency)
            )
        ).all()
    }

    return QuotationStatsOut(
        total=sum(by_internal.values()),
        by_internal_status=by_internal,
        by_external_status=by_external,
        approved_amount_by_currency=approved_amounts,
    )
