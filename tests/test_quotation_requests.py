import pytest

from app.core.exceptions import AppException, NotFound, PermissionDenied
from app.constants.error_codes import ErrorCode
from app.models.enums.request_status import RequestStatus
from app.schemas.quotations.quotation_request_schemas import QuotationRequestCreate
from app.services.quotations import quotation_request_service as requests
from app.services.quotations import quotation_service as service


def request_payload(**overrides) -> QuotationRequestCreate:
    data = {"customer_name": "Dana", "project": "Warehouse", "title": "Racking lights"}
    data.update(overrides)
    return QuotationRequestCreate(**data)


async def test_client_creates_request(db, client_viewer):
    r = await requests.create_quotation_request(db, request_payload(), client_viewer)

    assert r.id.startswith("RQ") and r.id.endswith("-1")
    assert r.status == RequestStatus.pending
    assert r.company == "Client Co"
    assert r.user_email == "viewer@client.io"
    assert r.action_history[0].startswith("Requested by Dana (Client Co, viewer@client.io) on ")


async def test_request_ids_are_sequential(db, client_viewer):
    first = await requests.create_quotation_request(db, request_payload(), client_viewer)
    second = await requests.create_quotation_request(db, request_payload(), client_viewer)

    assert first.id.endswith("-1")
    assert second.id.endswith("-2")


async def test_internal_users_cannot_create_requests(db, manager):
    with pytest.raises(PermissionDenied):
        await requests.create_quotation_request(db, request_payload(), manager)


async def test_quotation_from_request_marks_it_created(db, manager, client_viewer, make_payload):
    r = await requests.create_quotation_request(db, request_payload(), client_viewer)

    q = await service.create_quotation(db, make_payload(request_id=r.id), manager)
    assert q.is_requested is True
    assert q.request_id == r.id

    stored = await requests.get_quotation_request(db, r.id, manager)
    assert stored.status == RequestStatus.created
    assert stored.action_history[-1].startswith(f"Created quotation {q.quotation_number} by manager@acme.io")


async def test_request_can_only_be_fulfilled_once(db, manager, client_viewer, make_payload):
    r = await requests.create_quotation_request(db, request_payload(), client_viewer)
    await service.create_quotation(db, make_payload(request_id=r.id), manager)

    with pytest.raises(AppException) as exc:
        await service.create_quotation(db, make_payload(request_id=r.id), manager)
    assert exc.value.status_code == 409
    assert exc.value.error_code == ErrorCode.QUOTATION_REQUEST_INVALID_STATE


async def test_unknown_request_id_is_not_found(db, manager, make_payload):
    with pytest.raises(NotFound):
        await service.create_quotation(db, make_payload(request_id="RQ19990101-1"), manager)


async def test_reject_request(db, manager, client_viewer, make_payload):
    r = await requests.create_quotation_request(db, request_payload(), client_viewer)

    rejected = await requests.reject_quotation_request(db, r.id, manager)
    assert rejected.status == RequestStatus.rejected
    assert rejected.action_history[-1].startswith("Rejected by manager@acme.io on ")

    with pytest.raises(AppException) as exc:
        await requests.reject_quotation_request(db, r.id, manager)
    assert exc.value.status_code == 409

    with pytest.raises(AppException):
        await service.create_quotation(db, make_payload(request_id=r.id), manager)


async def test_sales_cannot_reject_request(db, sales, client_viewer):
    r = await requests.create_quotation_request(db, request_payload(), client_viewer)

    with pytest.raises(PermissionDenied):
        await requests.reject_quotation_request(db, r.id, sales)


async def test_requests_are_company_scoped(db, client_viewer, other_buyer, manager):
    r = await requests.create_quotation_request(db, request_payload(), client_viewer)
    await requests.create_quotation_request(db, request_payload(customer_name="Lee"), other_buyer)

    mine = await requests.list_quotation_requests(db, client_viewer)
    assert [i.id for i in mine.items] == [r.id]

    with pytest.raises(NotFound):
        await requests.get_quotation_request(db, r.id, other_buyer)

    everything = await requests.list_quotation_requests(db, manager)
    assert everything.total == 2

    pending = await requests.list_quotation_requests(db, manager, status=RequestStatus.rejected)
    assert pending.total == 0
