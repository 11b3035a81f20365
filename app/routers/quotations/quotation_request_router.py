from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.models.enums.request_status import RequestStatus
from app.utils.get_user import CallerContext, get_caller
from app.utils.response import success_response, APIResponse

from app.schemas.quotations.quotation_request_schemas import (
    QuotationRequestCreate,
    QuotationRequestOut,
    QuotationRequestListData,
)
from app.services.quotations.quotation_request_service import (
    create_quotation_request,
    get_quotation_request,
    list_quotation_requests,
    reject_quotation_request,
)

router = APIRouter(
    prefix="/quotation-requests",
    tags=["Quotation Requests"],
)


@router.post(
    "",
    response_model=APIResponse[QuotationRequestOut],
)
async def create_quotation_request_api(
    payload: QuotationRequestCreate,
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    return success_response(
        "Quotation request created successfully",
        await create_quotation_request(db, payload, caller),
    )


@router.get(
    "",
    response_model=APIResponse[QuotationRequestListData],
)
async def list_quotation_requests_api(
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
    status: RequestStatus | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
):
    return success_response(
        "Quotation requests retrieved successfully",
        await list_quotation_requests(db, caller, status=status, page=page, page_size=page_size),
    )


@router.get(
    "/{request_id}",
    response_model=APIResponse[QuotationRequestOut],
)
async def get_quotation_request_api(
    request_id: str,
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    return success_response(
        "Quotation request retrieved successfully",
        await get_quotation_request(db, request_id, caller),
    )


@router.post(
    "/{request_id}/reject",
    response_model=APIResponse[QuotationRequestOut],
)
async def reject_quotation_request_api(
    request_id: str,
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    return success_response(
        "Quotation request rejected successfully",
        await reject_quotation_request(db, request_id, caller),
    )
