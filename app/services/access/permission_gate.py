"""Feature-based authorization, re-evaluated at the moment of every action.

Neither the caller's role nor the feature matrix is ever taken from an earlier
read: both are fetched from their stores on each call, so an admin changing a
role or a feature's allowed roles takes effect on the very next action.
Every lookup miss denies.
"""

from dataclasses import dataclass
from typing import Iterable, Mapping, Protocol

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import FEATURE_FETCH_RETRIES
from app.core.exceptions import PermissionDenied
from app.constants.features import ADMIN_ROLE, DEFAULT_EXTERNAL_ROLE, EXTERNAL_ROLE_PREFIX
from app.models.access.feature_models import Feature
from app.models.enums.access_type import AccessType
from app.models.users.user_models import User
from app.utils.get_user import CallerContext
from app.utils.logger import get_logger

logger = get_logger(__name__)

ADMIN_ONLY = "admin_only"


class FeatureMatrix:
    """Immutable feature id -> allowed roles mapping."""

    def __init__(self, entries: Mapping[str, Iterable[str]] | None = None):
        self._entries = {
            feature_id: frozenset(roles or ())
            for feature_id, roles in (entries or {}).items()
        }

    def roles_for(self, feature_id: str) -> frozenset[str]:
        return self._entries.get(feature_id, frozenset())

    def __contains__(self, feature_id: str) -> bool:
        return feature_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)


def is_allowed(matrix: FeatureMatrix, feature_id: str, role: str | None) -> bool:
    if not role or feature_id not in matrix:
        return False
    return role in matrix.roles_for(feature_id)


def format_external_role(role: str | None) -> str:
    if not role:
        return DEFAULT_EXTERNAL_ROLE
    return role if role.startswith(EXTERNAL_ROLE_PREFIX) else f"{EXTERNAL_ROLE_PREFIX}{role}"


@dataclass(frozen=True)
class ResolvedRole:
    role: str
    access_type: AccessType


# =====================================================
# PORTS
# =====================================================
class RoleResolver(Protocol):
    async def resolve(self, caller: CallerContext) -> ResolvedRole | None: ...


class FeatureMatrixSource(Protocol):
    async def load(self, axis: AccessType) -> FeatureMatrix: ...


# =====================================================
# SQL ADAPTERS
# =====================================================
class SqlRoleResolver:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def resolve(self, caller: CallerContext) -> ResolvedRole | None:
        # Column select: bypasses the identity map, always hits the table
        row = (
            await self.db.execute(
                select(User.role, User.access_type, User.is_active).where(User.id == caller.user_id)
            )
        ).first()

        if row is None or not row.is_active:
            return None

        role = row.role
        if row.access_type == AccessType.external:
            role = format_external_role(role)
        return ResolvedRole(role=role, access_type=row.access_type)


class SqlFeatureMatrixSource:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def load(self, axis: AccessType) -> FeatureMatrix:
        rows = (
            await self.db.execute(
                select(Feature.id, Feature.allowed_roles).where(Feature.axis == axis)
            )
        ).all()
        return FeatureMatrix({r.id: r.allowed_roles or [] for r in rows})


# =====================================================
# GATE
# =====================================================
class PermissionGate:
    def __init__(
        self,
        roles: RoleResolver,
        features: FeatureMatrixSource,
        retries: int = FEATURE_FETCH_RETRIES,
    ):
        self.roles = roles
        self.features = features
        self.retries = max(1, retries)

    @classmethod
    def for_session(cls, db: AsyncSession) -> "PermissionGate":
        return cls(SqlRoleResolver(db), SqlFeatureMatrixSource(db))

    async def resolve_role(self, caller: CallerContext) -> ResolvedRole | None:
        return await self.roles.resolve(caller)

    async def _load_matrix(self, axis: AccessType) -> FeatureMatrix | None:
        for attempt in range(1, self.retries + 1):
            try:
                return await self.features.load(axis)
            except (SQLAlchemyError, OSError) as e:
                logger.warning(
                    "Feature matrix fetch failed",
                    extra={"axis": axis.value, "attempt": attempt, "error": str(e)},
                )
        logger.error("Feature matrix unavailable, denying", extra={"axis": axis.value})
        return None

    async def _evaluate(
        self,
        caller: CallerContext,
        feature_id: str,
        axis: AccessType,
    ) -> tuple[bool, str | None]:
        resolved = await self.resolve_role(caller)
        if resolved is None:
            return False, None
        if resolved.access_type != axis:
            return False, resolved.role

        matrix = await self._load_matrix(axis)
        if matrix is None:
            return False, resolved.role
        return is_allowed(matrix, feature_id, resolved.role), resolved.role

    async def is_allowed(
        self,
        caller: CallerContext,
        feature_id: str,
        axis: AccessType = AccessType.internal,
    ) -> bool:
        allowed, _ = await self._evaluate(caller, feature_id, axis)
        return allowed

    async def check(
        self,
        caller: CallerContext,
        feature_id: str,
        axis: AccessType = AccessType.internal,
    ) -> str:
        """Raise PermissionDenied unless allowed; returns the role that was checked."""
        allowed, role = await self._evaluate(caller, feature_id, axis)
        if not allowed:
            logger.warning(
                "Permission denied",
                extra={"user_id": caller.user_id, "feature_id": feature_id, "axis": axis.value, "role": role},
            )
            raise PermissionDenied(feature_id, role)
        return role

    async def require_admin(self, caller: CallerContext) -> str:
        """The one hard-coded role check: deletion is reserved to internal admins."""
        resolved = await self.resolve_role(caller)
        role = resolved.role if resolved else None

        if resolved is None or resolved.access_type != AccessType.internal or role != ADMIN_ROLE:
            logger.warning("Admin-only action refused", extra={"user_id": caller.user_id, "role": role})
            raise PermissionDenied(
                ADMIN_ONLY,
                role,
                f"Unauthorized: Insufficient permissions to delete quotations. Role: {role}",
            )
        return role
