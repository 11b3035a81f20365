from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError

from app.core.exceptions import InvalidStateTransition, MalformedInput, PartialRevisionFailure, PermissionDenied
from app.models.enums.quotation_status import InternalStatus, PENDING_REVIEW
from app.schemas.quotations.quotation_schemas import QuotationRevise
from app.services.quotations import quotation_lifecycle as lifecycle
from app.services.quotations import quotation_service as service
from app.services.quotations import revision_service
from app.services.quotations.revision_reconciliation import (
    find_orphaned_revisions,
    list_orphaned_revisions,
    report_orphaned_revisions,
)


def revise_payload(make_payload, **overrides) -> QuotationRevise:
    return QuotationRevise(**make_payload(**overrides).model_dump(exclude={"request_id"}))


async def _ready_for_revision(db, make_payload, manager):
    q = await service.create_quotation(db, make_payload(), manager)
    await lifecycle.approve_quotation(db, q.id, manager)
    return await lifecycle.request_revise_quotation(db, q.id, manager)


async def test_revise_creates_successor_and_closes_parent(db, manager, make_payload):
    parent = await _ready_for_revision(db, make_payload, manager)

    child = await revision_service.revise_quotation(
        db, parent.id,
        revise_payload(
            make_payload,
            title="Lighting package v2",
            items=[{"system": "LED", "description": "Panel", "unit": "pcs", "qty": "3", "amount": "100"}],
        ),
        manager,
    )

    assert child.id != parent.id
    assert child.quotation_number == f"{parent.quotation_number}R1"
    assert child.internal_status == InternalStatus.pending
    assert child.external_status == PENDING_REVIEW
    assert child.title == "Lighting package v2"
    assert child.for_department == parent.for_department
    assert child.version == 1
    assert len(child.action_history) == 1
    assert child.action_history[0].startswith(f"Created as revision of {parent.quotation_number} on ")

    # 300 - 10% = 270, + 8% tax
    assert child.totals.total == Decimal("291.6")
    assert child.amount == Decimal("291.60")

    closed = await service.reload_quotation(db, parent.id)
    assert closed.internal_status == InternalStatus.revised
    assert closed.version == parent.version + 1
    assert closed.action_history[-1].action.startswith("Revised on ")

    assert await find_orphaned_revisions(db) == []


async def test_revision_of_a_revision_increments_suffix(db, manager, make_payload):
    parent = await _ready_for_revision(db, make_payload, manager)
    first = await revision_service.revise_quotation(db, parent.id, revise_payload(make_payload), manager)

    await lifecycle.approve_quotation(db, first.id, manager)
    await lifecycle.request_revise_quotation(db, first.id, manager)
    second = await revision_service.revise_quotation(db, first.id, revise_payload(make_payload), manager)

    assert second.quotation_number == f"{parent.quotation_number}R2"


async def test_revised_parent_cannot_be_revised_again(db, manager, make_payload):
    parent = await _ready_for_revision(db, make_payload, manager)
    await revision_service.revise_quotation(db, parent.id, revise_payload(make_payload), manager)

    with pytest.raises(InvalidStateTransition):
        await revision_service.revise_quotation(db, parent.id, revise_payload(make_payload), manager)


async def test_revise_requires_request_revise_status(db, manager, make_payload):
    q = await service.create_quotation(db, make_payload(), manager)
    await lifecycle.approve_quotation(db, q.id, manager)

    with pytest.raises(InvalidStateTransition) as exc:
        await revision_service.revise_quotation(db, q.id, revise_payload(make_payload), manager)

    assert exc.value.current == "approved"
    stored = await service.reload_quotation(db, q.id)
    assert stored.internal_status == InternalStatus.approved


async def test_revise_requires_approve_feature(db, manager, sales, make_payload):
    parent = await _ready_for_revision(db, make_payload, manager)

    with pytest.raises(PermissionDenied):
        await revision_service.revise_quotation(db, parent.id, revise_payload(make_payload), sales)


async def test_revision_keeps_request_linkage(db, manager, client_viewer, make_payload):
    from app.schemas.quotations.quotation_request_schemas import QuotationRequestCreate
    from app.services.quotations.quotation_request_service import create_quotation_request

    request = await create_quotation_request(
        db, QuotationRequestCreate(customer_name="Dana"), client_viewer,
    )
    q = await service.create_quotation(db, make_payload(request_id=request.id), manager)
    await lifecycle.approve_quotation(db, q.id, manager)
    await lifecycle.request_revise_quotation(db, q.id, manager)

    child = await revision_service.revise_quotation(db, q.id, revise_payload(make_payload), manager)

    assert child.is_requested is True
    assert child.request_id == request.id


# -------------------------
# Partial failure
# -------------------------
async def test_failed_successor_leaves_parent_revised(db, manager, make_payload, monkeypatch):
    parent = await _ready_for_revision(db, make_payload, manager)

    async def failing_persist(session, child):
        raise IntegrityError("INSERT INTO quotations", {}, Exception("disk full"))

    monkeypatch.setattr(revision_service, "_persist_revision", failing_persist)

    with pytest.raises(PartialRevisionFailure) as exc:
        await revision_service.revise_quotation(db, parent.id, revise_payload(make_payload), manager)

    err = exc.value
    assert err.status_code == 500
    assert err.parent_id == parent.id
    assert err.child_number == f"{parent.quotation_number}R1"
    assert err.child_id.startswith("QT")
    assert err.details["parent_id"] == parent.id

    closed = await service.reload_quotation(db, parent.id)
    assert closed.internal_status == InternalStatus.revised

    orphans = await find_orphaned_revisions(db)
    assert [o.id for o in orphans] == [parent.id]
    assert orphans[0].expected_successor == err.child_number

    assert await report_orphaned_revisions(db) == 1
    assert len(await list_orphaned_revisions(db, manager)) == 1


async def test_orphan_listing_requires_analytics(db, sales):
    with pytest.raises(PermissionDenied):
        await list_orphaned_revisions(db, sales)


async def test_report_without_orphans(db):
    assert await report_orphaned_revisions(db) == 0


async def test_unpriceable_revision_leaves_parent_open(db, manager, make_payload):
    parent = await _ready_for_revision(db, make_payload, manager)
    huge = [{"system": "LED", "description": "Panel", "unit": "pcs", "qty": "1", "amount": "1e30"}]

    with pytest.raises(MalformedInput) as exc:
        await revision_service.revise_quotation(db, parent.id, revise_payload(make_payload, items=huge), manager)
    assert exc.value.status_code == 400

    current = await service.reload_quotation(db, parent.id)
    assert current.internal_status == InternalStatus.request_revise
    assert current.version == parent.version
    assert await find_orphaned_revisions(db) == []

    child = await revision_service.revise_quotation(db, parent.id, revise_payload(make_payload), manager)
    assert child.quotation_number == f"{parent.quotation_number}R1"


async def test_pending_review_children_match_pending_filter(db, manager, make_payload):
    parent = await _ready_for_revision(db, make_payload, manager)
    child = await revision_service.revise_quotation(db, parent.id, revise_payload(make_payload), manager)

    pending = await service.list_quotations(db, manager, external_status="pending")
    assert {i.id for i in pending.items} == {parent.id, child.id}

    review = await service.list_quotations(db, manager, external_status="Pending Review")
    assert review.total == 2

    approved = await service.list_quotations(db, manager, external_status="approved")
    assert approved.total == 0
