from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.schemas.auth.activity_schemas import UserActivityFilters, UserActivityListData
from app.services.auth.activity_service import list_user_activities
from app.utils.get_user import CallerContext, get_caller
from app.utils.response import success_response, APIResponse
from app.utils.logger import get_logger

router = APIRouter(prefix="/activities", tags=["User Activities"])
logger = get_logger(__name__)


@router.get("/", response_model=APIResponse[UserActivityListData])
async def list_user_activities_api(
    filters: UserActivityFilters = Depends(),
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    logger.info(
        "List user activities requested",
        extra=filters.model_dump(exclude_none=True),
    )

    result = await list_user_activities(db=db, filters=filters, caller=caller)

    return success_response(
        "User activities fetched successfully",
        result,
    )
