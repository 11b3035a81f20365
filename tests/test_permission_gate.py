import pytest
from sqlalchemy import update
from sqlalchemy.exc import OperationalError

from app.core.exceptions import PermissionDenied
from app.constants import features
from app.models.access.feature_models import Feature
from app.models.enums.access_type import AccessType
from app.models.users.user_models import User
from app.services.access.permission_gate import (
    FeatureMatrix,
    PermissionGate,
    ResolvedRole,
    format_external_role,
    is_allowed,
)
from app.utils.get_user import CallerContext

CALLER = CallerContext(user_id=1, username="someone@acme.io", access_type=AccessType.internal)


# -------------------------
# Pure predicate
# -------------------------
def test_is_allowed_default_deny():
    matrix = FeatureMatrix({"approve_quotations": ["admin", "manager"]})

    assert is_allowed(matrix, "approve_quotations", "manager")
    assert not is_allowed(matrix, "approve_quotations", "sales")
    assert not is_allowed(matrix, "unknown_feature", "admin")
    assert not is_allowed(matrix, "approve_quotations", None)
    assert not is_allowed(FeatureMatrix(), "approve_quotations", "admin")


def test_format_external_role():
    assert format_external_role(None) == "ext_client"
    assert format_external_role("buyer") == "ext_buyer"
    assert format_external_role("ext_manager") == "ext_manager"


# -------------------------
# Gate with fake ports
# -------------------------
class FakeRoles:
    def __init__(self, resolved):
        self.resolved = resolved
        self.calls = 0

    async def resolve(self, caller):
        self.calls += 1
        return self.resolved


class FakeFeatures:
    def __init__(self, matrix, failures=0):
        self.matrix = matrix
        self.failures = failures
        self.calls = 0

    async def load(self, axis):
        self.calls += 1
        if self.calls <= self.failures:
            raise OperationalError("SELECT", {}, Exception("connection reset"))
        return self.matrix


MATRIX = FeatureMatrix({"approve_quotations": ["manager"]})


async def test_allowed_role_passes():
    gate = PermissionGate(FakeRoles(ResolvedRole("manager", AccessType.internal)), FakeFeatures(MATRIX))
    assert await gate.is_allowed(CALLER, "approve_quotations")
    assert await gate.check(CALLER, "approve_quotations") == "manager"


async def test_missing_caller_denies_without_raising():
    gate = PermissionGate(FakeRoles(None), FakeFeatures(MATRIX))
    assert not await gate.is_allowed(CALLER, "approve_quotations")


async def test_wrong_axis_denies():
    gate = PermissionGate(FakeRoles(ResolvedRole("manager", AccessType.internal)), FakeFeatures(MATRIX))
    assert not await gate.is_allowed(CALLER, "approve_quotations", AccessType.external)


async def test_check_raises_with_feature_and_role():
    gate = PermissionGate(FakeRoles(ResolvedRole("sales", AccessType.internal)), FakeFeatures(MATRIX))

    with pytest.raises(PermissionDenied) as exc:
        await gate.check(CALLER, "approve_quotations")

    assert exc.value.feature_id == "approve_quotations"
    assert exc.value.role == "sales"
    assert exc.value.status_code == 403


async def test_transient_fetch_failures_are_retried():
    source = FakeFeatures(MATRIX, failures=2)
    gate = PermissionGate(FakeRoles(ResolvedRole("manager", AccessType.internal)), source, retries=3)

    assert await gate.is_allowed(CALLER, "approve_quotations")
    assert source.calls == 3


async def test_persistent_fetch_failure_denies():
    source = FakeFeatures(MATRIX, failures=10)
    gate = PermissionGate(FakeRoles(ResolvedRole("manager", AccessType.internal)), source, retries=2)

    assert not await gate.is_allowed(CALLER, "approve_quotations")
    assert source.calls == 2


async def test_every_call_refetches_role_and_matrix():
    roles = FakeRoles(ResolvedRole("manager", AccessType.internal))
    source = FakeFeatures(MATRIX)
    gate = PermissionGate(roles, source)

    await gate.is_allowed(CALLER, "approve_quotations")
    await gate.is_allowed(CALLER, "approve_quotations")

    assert roles.calls == 2
    assert source.calls == 2


async def test_require_admin_reports_role():
    gate = PermissionGate(FakeRoles(ResolvedRole("manager", AccessType.internal)), FakeFeatures(MATRIX))

    with pytest.raises(PermissionDenied) as exc:
        await gate.require_admin(CALLER)

    assert "Role: manager" in exc.value.detail


# -------------------------
# Gate against the database
# -------------------------
async def test_role_change_mid_session_is_honored(db, manager):
    gate = PermissionGate.for_session(db)
    assert await gate.is_allowed(manager, features.APPROVE_QUOTATIONS)

    await db.execute(update(User).where(User.id == manager.user_id).values(role="sales"))
    await db.commit()

    assert not await gate.is_allowed(manager, features.APPROVE_QUOTATIONS)


async def test_matrix_change_is_honored(db, sales):
    gate = PermissionGate.for_session(db)
    assert not await gate.is_allowed(sales, features.APPROVE_QUOTATIONS)

    await db.execute(
        update(Feature)
        .where(Feature.axis == AccessType.internal, Feature.id == features.APPROVE_QUOTATIONS)
        .values(allowed_roles=["admin", "manager", "sales"])
    )
    await db.commit()

    assert await gate.is_allowed(sales, features.APPROVE_QUOTATIONS)


async def test_deactivated_user_is_denied(db, admin):
    await db.execute(update(User).where(User.id == admin.user_id).values(is_active=False))
    await db.commit()

    gate = PermissionGate.for_session(db)
    assert not await gate.is_allowed(admin, features.MANAGE_FEATURES)


async def test_external_roles_use_the_external_matrix(db, client_buyer, client_viewer):
    gate = PermissionGate.for_session(db)

    assert await gate.is_allowed(client_buyer, features.EXT_APPROVE_QUOTATIONS, AccessType.external)
    assert not await gate.is_allowed(client_viewer, features.EXT_APPROVE_QUOTATIONS, AccessType.external)
    # Same feature id on the internal axis is a different entry
    assert not await gate.is_allowed(client_buyer, features.APPROVE_QUOTATIONS, AccessType.internal)


async def test_unprefixed_external_role_is_normalized(db, client_viewer):
    await db.execute(update(User).where(User.id == client_viewer.user_id).values(role="manager"))
    await db.commit()

    gate = PermissionGate.for_session(db)
    resolved = await gate.resolve_role(client_viewer)
    assert resolved.role == "ext_manager"
    assert await gate.is_allowed(client_viewer, features.EXT_APPROVE_QUOTATIONS, AccessType.external)
