from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete

from app.models.access.feature_models import Feature, Role
from app.models.enums.access_type import AccessType
from app.schemas.access.feature_schemas import (
    FeatureIn,
    FeatureOut,
    FeatureListData,
    RoleCreate,
    RoleOut,
    RoleListData,
)

from app.core.exceptions import AppException, NotFound
from app.constants.error_codes import ErrorCode
from app.constants.activity_codes import ActivityCode
from app.constants import features
from app.services.access.permission_gate import PermissionGate, format_external_role
from app.utils.activity_helpers import emit_caller_activity
from app.utils.get_user import CallerContext
from app.utils.logger import get_logger

logger = get_logger(__name__)


def _map_feature(f: Feature) -> FeatureOut:
    return FeatureOut(
        id=f.id,
        axis=f.axis,
        name=f.name,
        description=f.description or "",
        allowed_roles=list(f.allowed_roles or []),
    )


def _map_role(r: Role) -> RoleOut:
    return RoleOut(id=r.id, axis=r.axis, name=r.name, description=r.description or "")


def role_id_from_name(name: str, axis: AccessType) -> str:
    role_id = "_".join(name.strip().lower().split())
    return format_external_role(role_id) if axis == AccessType.external else role_id


async def _load_features(db: AsyncSession, axis: AccessType) -> list[Feature]:
    result = await db.execute(
        select(Feature)
        .where(Feature.axis == axis)
        .order_by(Feature.id)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars())


# =====================================================
# FEATURES
# =====================================================
async def list_features(
    db: AsyncSession,
    axis: AccessType,
    caller: CallerContext,
) -> FeatureListData:
    gate = PermissionGate.for_session(db)
    if not await gate.is_allowed(caller, features.MANAGE_FEATURES):
        await gate.check(caller, features.MANAGE_ROLES)

    return FeatureListData(
        axis=axis,
        items=[_map_feature(f) for f in await _load_features(db, axis)],
    )


async def replace_features(
    db: AsyncSession,
    axis: AccessType,
    payload: list[FeatureIn],
    caller: CallerContext,
) -> FeatureListData:
    """Whole-list replace of one axis of the feature matrix."""
    gate = PermissionGate.for_session(db)
    role = await gate.check(caller, features.MANAGE_FEATURES)

    ids = [f.id for f in payload]
    duplicates = sorted({i for i in ids if ids.count(i) > 1})
    if duplicates:
        raise AppException(
            400,
            f"Duplicate feature ids: {', '.join(duplicates)}",
            ErrorCode.FEATURE_INVALID,
            {"duplicates": duplicates},
        )

    known_roles = set(
        (await db.execute(select(Role.id).where(Role.axis == axis))).scalars()
    )
    unknown = sorted({r for f in payload for r in f.allowed_roles if r not in known_roles})
    if unknown:
        raise AppException(
            400,
            f"Unknown {axis.value} roles: {', '.join(unknown)}",
            ErrorCode.FEATURE_INVALID,
            {"unknown_roles": unknown},
        )

    await db.execute(delete(Feature).where(Feature.axis == axis))
    db.add_all([
        Feature(
            axis=axis,
            id=f.id,
            name=f.name,
            description=f.description,
            allowed_roles=f.allowed_roles,
        )
        for f in payload
    ])

    await emit_caller_activity(
        db, caller, role, ActivityCode.UPDATE_FEATURES,
        axis=axis.value,
        count=len(payload),
    )

    await db.commit()
    logger.info("Feature matrix replaced", extra={"axis": axis.value, "count": len(payload)})

    return FeatureListData(
        axis=axis,
        items=[_map_feature(f) for f in await _load_features(db, axis)],
    )


# =====================================================
# ROLES
# =====================================================
async def list_roles(
    db: AsyncSession,
    axis: AccessType,
    caller: CallerContext,
) -> RoleListData:
    gate = PermissionGate.for_session(db)
    await gate.check(caller, features.MANAGE_ROLES)

    result = await db.execute(select(Role).where(Role.axis == axis).order_by(Role.id))
    return RoleListData(axis=axis, items=[_map_role(r) for r in result.scalars()])


async def create_role(
    db: AsyncSession,
    axis: AccessType,
    payload: RoleCreate,
    caller: CallerContext,
) -> RoleOut:
    gate = PermissionGate.for_session(db)
    actor_role = await gate.check(caller, features.MANAGE_ROLES)

    role_id = role_id_from_name(payload.name, axis)
    if await db.get(Role, (axis, role_id)):
        raise AppException(409, f"Role {role_id} already exists", ErrorCode.ROLE_EXISTS, {"id": role_id})

    role = Role(axis=axis, id=role_id, name=payload.name.strip(), description=payload.description or "")
    db.add(role)

    await emit_caller_activity(
        db, caller, actor_role, ActivityCode.CREATE_ROLE,
        axis=axis.value,
        target_name=role_id,
    )

    await db.commit()
    logger.info("Role created", extra={"axis": axis.value, "role": role_id})

    return _map_role(role)


async def delete_role(
    db: AsyncSession,
    axis: AccessType,
    role_id: str,
    caller: CallerContext,
) -> RoleOut:
    gate = PermissionGate.for_session(db)
    actor_role = await gate.check(caller, features.MANAGE_ROLES)

    if axis == AccessType.internal and role_id == features.ADMIN_ROLE:
        raise AppException(400, "The admin role cannot be deleted", ErrorCode.ROLE_PROTECTED, {"id": role_id})

    role = await db.get(Role, (axis, role_id))
    if not role:
        raise NotFound("Role not found", ErrorCode.ROLE_NOT_FOUND, role_id)

    out = _map_role(role)

    # A deleted role must not keep any grant
    for feature in await _load_features(db, axis):
        if role_id in (feature.allowed_roles or []):
            feature.allowed_roles = [r for r in feature.allowed_roles if r != role_id]

    await db.delete(role)

    await emit_caller_activity(
        db, caller, actor_role, ActivityCode.DELETE_ROLE,
        axis=axis.value,
        target_name=role_id,
    )

    await db.commit()
    logger.info("Role deleted", extra={"axis": axis.value, "role": role_id})

    return out
