from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import get_db
from app.models.enums.access_type import AccessType
from app.utils.get_user import CallerContext, get_caller
from app.utils.response import success_response, APIResponse

from app.schemas.access.feature_schemas import (
    FeatureIn,
    FeatureListData,
    RoleCreate,
    RoleOut,
    RoleListData,
)
from app.services.access.feature_service import (
    list_features,
    replace_features,
    list_roles,
    create_role,
    delete_role,
)

feature_router = APIRouter(prefix="/features", tags=["Features"])
role_router = APIRouter(prefix="/roles", tags=["Roles"])


# =====================================================
# FEATURES
# =====================================================
@feature_router.get(
    "/{axis}",
    response_model=APIResponse[FeatureListData],
)
async def list_features_api(
    axis: AccessType,
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    return success_response(
        "Features retrieved successfully",
        await list_features(db, axis, caller),
    )


@feature_router.put(
    "/{axis}",
    response_model=APIResponse[FeatureListData],
)
async def replace_features_api(
    axis: AccessType,
    payload: List[FeatureIn],
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    return success_response(
        "Features updated successfully",
        await replace_features(db, axis, payload, caller),
    )


# =====================================================
# ROLES
# =====================================================
@role_router.get(
    "/{axis}",
    response_model=APIResponse[RoleListData],
)
async def list_roles_api(
    axis: AccessType,
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    return success_response(
        "Roles retrieved successfully",
        await list_roles(db, axis, caller),
    )


@role_router.post(
    "/{axis}",
    response_model=APIResponse[RoleOut],
)
async def create_role_api(
    axis: AccessType,
    payload: RoleCreate,
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    return success_response(
        "Role created successfully",
        await create_role(db, axis, payload, caller),
    )


@role_router.delete(
    "/{axis}/{role_id}",
    response_model=APIResponse[RoleOut],
)
async def delete_role_api(
    axis: AccessType,
    role_id: str,
    db: AsyncSession = Depends(get_db),
    caller: CallerContext = Depends(get_caller),
):
    return success_response(
        "Role deleted successfully",
        await delete_role(db, axis, role_id, caller),
    )
