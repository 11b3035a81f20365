from datetime import datetime, timezone

from app.models.enums.quotation_status import ExternalStatus, normalize_external_status
from app.models.quotations.quotation_models import Quotation, QuotationActionHistory
from app.services.quotations.action_history import (
    actor_entry,
    append_action,
    format_timestamp,
    history_texts,
    is_requested_quotation,
)

MOMENT = datetime(2025, 3, 4, 5, 6, 7, tzinfo=timezone.utc)


def _quotation(**kw):
    q = Quotation(is_requested=False, request_id=None, action_history=[])
    for k, v in kw.items():
        setattr(q, k, v)
    return q


def test_actor_entry_shape():
    assert actor_entry("Approved", "manager@acme.io", MOMENT) == "Approved by manager@acme.io on 2025-03-04"


def test_timestamp_format():
    assert format_timestamp(MOMENT) == "2025-03-04 05:06:07 UTC"


def test_append_keeps_order():
    q = _quotation()
    append_action(q, "first")
    append_action(q, "second")
    assert history_texts(q.action_history) == ["first", "second"]


def test_structured_flag_wins():
    assert is_requested_quotation(_quotation(is_requested=True))
    assert is_requested_quotation(_quotation(request_id="RQ20250101-1"))
    assert not is_requested_quotation(_quotation())


def test_history_marker_is_a_fallback():
    q = _quotation()
    q.action_history.append(QuotationActionHistory(action="Requested by Jane (Client Co, jane@client.io) on 2024-01-01"))
    assert is_requested_quotation(q)


def test_external_status_normalization():
    assert normalize_external_status("Pending Review") == ExternalStatus.pending
    assert normalize_external_status("REJECTED") == ExternalStatus.rejected
    assert normalize_external_status("revision requested") == ExternalStatus.revision_requested
    assert normalize_external_status("  ") is None
    assert normalize_external_status(None) is None
    assert normalize_external_status("on hold") is None
