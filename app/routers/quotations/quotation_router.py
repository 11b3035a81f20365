from typing import List

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.models.enums.quotation_status import InternalStatus
from app.utils.get_user import CallerContext, get_caller
from app.utils.response import success_response, APIResponse

from app.schemas.quotations.quotation_schemas import (
    QuotationCreate,
    QuotationUpdate,
    QuotationRevise,
    QuotationOut,
    QuotationListData,
    QuotationStatsOut,
    ClientApprovalIn,
    PurchaseOrderIn,
    PdfAttachIn,
    TotalsPreviewIn,
    TotalsOut,
    OrphanedRevisionOut,
)

from app.services.quotations.quotation_service import (
    create_quotation,
    update_quotation,
    delete_quotation,
    get_quotation,
    list_quotations,
    attach_pdf,
    render_quotation_pdf,
    preview_totals,
    get_quotation_stats,
)
from app.services.quotations.quotation_lifecycle import (
    approve_quotation,
    reject_quotation,
    request_revise_quotation,
    cancel_quotation,
    client_approve_quotation,
    client_reject_quotation,
    client_request_revision,
    submit_purchase_order,
)
from app.services.quotations.revision_service import revise_quotation
from app.services.quotations.revision_reconciliation import list_orphaned_revisions

router = APIRouter(
    prefix="/quotations",
    tags=["Quotations"],
)


@router.post(
    "",
    response_model=APIResponse[QuotationOut],
)
async def create_quotation_api(
    payload: QuotationCreate,
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    quotation = await create_quotation(db, payload, caller)
    return success_response(
        "Quotation created successfully",
        quotation,
    )


@router.post(
    "/preview-totals",
    response_model=APIResponse[TotalsOut],
)
async def preview_totals_api(
    payload: TotalsPreviewIn,
    caller: CallerContext = Depends(get_caller),
):
    return success_response(
        "Totals computed successfully",
        preview_totals(payload),
    )


@router.get(
    "",
    response_model=APIResponse[QuotationListData],
)
async def list_quotations_api(
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
    internal_status: InternalStatus | None = Query(None, description="Filter by internal status"),
    external_status: str | None = Query(None, description="Filter by client status (case-insensitive)"),
    company: str | None = Query(None, description="Filter by client company"),
    search: str | None = Query(None, description="Number, company, project or title contains"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    sort_by: str = Query("created_at"),
    order: str = Query("desc"),
):
    data = await list_quotations(
        db=db,
        caller=caller,
        internal_status=internal_status,
        external_status=external_status,
        company=company,
        search=search,
        page=page,
        page_size=page_size,
        sort_by=sort_by,
        order=order,
    )
    return success_response(
        "Quotations retrieved successfully",
        data,
    )


@router.get(
    "/stats",
    response_model=APIResponse[QuotationStatsOut],
)
async def quotation_stats_api(
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    return success_response(
        "Quotation statistics retrieved successfully",
        await get_quotation_stats(db, caller),
    )


@router.get(
    "/orphaned-revisions",
    response_model=APIResponse[List[OrphanedRevisionOut]],
)
async def orphaned_revisions_api(
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    return success_response(
        "Orphaned revisions retrieved successfully",
        await list_orphaned_revisions(db, caller),
    )


@router.get(
    "/{quotation_id}",
    response_model=APIResponse[QuotationOut],
)
async def get_quotation_api(
    quotation_id: str,
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    quotation = await get_quotation(
        db=db,
        quotation_id=quotation_id,
        caller=caller,
    )
    return success_response(
        "Quotation retrieved successfully",
        quotation,
    )


@router.patch(
    "/{quotation_id}",
    response_model=APIResponse[QuotationOut],
)
async def update_quotation_api(
    quotation_id: str,
    payload: QuotationUpdate,
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    quotation = await update_quotation(
        db=db,
        quotation_id=quotation_id,
        payload=payload,
        caller=caller,
    )
    return success_response(
        "Quotation updated successfully",
        quotation,
    )


@router.delete(
    "/{quotation_id}",
    response_model=APIResponse[QuotationOut],
)
async def delete_quotation_api(
    quotation_id: str,
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    quotation = await delete_quotation(
        db=db,
        quotation_id=quotation_id,
        caller=caller,
    )
    return success_response(
        "Quotation deleted successfully",
        quotation,
    )


# =====================================================
# INTERNAL APPROVAL
# =====================================================
@router.post(
    "/{quotation_id}/approve",
    response_model=APIResponse[QuotationOut],
)
async def approve_quotation_api(
    quotation_id: str,
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    return success_response(
        "Quotation approved successfully",
        await approve_quotation(db, quotation_id, caller),
    )


@router.post(
    "/{quotation_id}/reject",
    response_model=APIResponse[QuotationOut],
)
async def reject_quotation_api(
    quotation_id: str,
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    return success_response(
        "Quotation rejected successfully",
        await reject_quotation(db, quotation_id, caller),
    )


@router.post(
    "/{quotation_id}/request-revise",
    response_model=APIResponse[QuotationOut],
)
async def request_revise_quotation_api(
    quotation_id: str,
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    return success_response(
        "Revision requested successfully",
        await request_revise_quotation(db, quotation_id, caller),
    )


@router.post(
    "/{quotation_id}/cancel",
    response_model=APIResponse[QuotationOut],
)
async def cancel_quotation_api(
    quotation_id: str,
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    return success_response(
        "Quotation cancelled successfully",
        await cancel_quotation(db, quotation_id, caller),
    )


@router.post(
    "/{quotation_id}/revise",
    response_model=APIResponse[QuotationOut],
)
async def revise_quotation_api(
    quotation_id: str,
    payload: QuotationRevise,
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    return success_response(
        "Quotation revised successfully",
        await revise_quotation(db, quotation_id, payload, caller),
    )


# =====================================================
# CLIENT DECISIONS
# =====================================================
@router.post(
    "/{quotation_id}/client-approve",
    response_model=APIResponse[QuotationOut],
)
async def client_approve_quotation_api(
    quotation_id: str,
    payload: ClientApprovalIn | None = Body(None),
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    return success_response(
        "Client approval recorded successfully",
        await client_approve_quotation(db, quotation_id, caller, payload),
    )


@router.post(
    "/{quotation_id}/client-reject",
    response_model=APIResponse[QuotationOut],
)
async def client_reject_quotation_api(
    quotation_id: str,
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    return success_response(
        "Client rejection recorded successfully",
        await client_reject_quotation(db, quotation_id, caller),
    )


@router.post(
    "/{quotation_id}/client-request-revision",
    response_model=APIResponse[QuotationOut],
)
async def client_request_revision_api(
    quotation_id: str,
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    return success_response(
        "Client revision request recorded successfully",
        await client_request_revision(db, quotation_id, caller),
    )


@router.post(
    "/{quotation_id}/purchase-order",
    response_model=APIResponse[QuotationOut],
)
async def submit_purchase_order_api(
    quotation_id: str,
    payload: PurchaseOrderIn,
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    return success_response(
        "Purchase order submitted successfully",
        await submit_purchase_order(db, quotation_id, payload, caller),
    )


# =====================================================
# PDF
# =====================================================
@router.post(
    "/{quotation_id}/pdf",
    response_model=APIResponse[QuotationOut],
)
async def render_quotation_pdf_api(
    quotation_id: str,
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    return success_response(
        "Quotation PDF generated successfully",
        await render_quotation_pdf(db, quotation_id, caller),
    )


@router.put(
    "/{quotation_id}/pdf-url",
    response_model=APIResponse[QuotationOut],
)
async def attach_pdf_api(
    quotation_id: str,
    payload: PdfAttachIn,
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    return success_response(
        "Quotation PDF attached successfully",
        await attach_pdf(db, quotation_id, payload.pdf_url, caller),
    )
