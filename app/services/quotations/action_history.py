from datetime import datetime, timezone
from typing import Iterable

from app.models.quotations.quotation_models import Quotation, QuotationActionHistory
from app.models.quotations.quotation_request_models import (
    QuotationRequest,
    QuotationRequestActionHistory,
)

# Legacy marker left in request-derived histories before is_requested existed
REQUESTED_MARKER = "Requested by"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_date(moment: datetime | None = None) -> str:
    return (moment or utcnow()).strftime("%Y-%m-%d")


def format_timestamp(moment: datetime | None = None) -> str:
    return (moment or utcnow()).strftime("%Y-%m-%d %H:%M:%S UTC")


def actor_entry(action: str, actor: str, moment: datetime | None = None) -> str:
    return f"{action} by {actor} on {format_date(moment)}"


def append_action(quotation: Quotation, action: str) -> QuotationActionHistory:
    entry = QuotationActionHistory(action=action)
    quotation.action_history.append(entry)
    return entry


def append_request_action(request: QuotationRequest, action: str) -> QuotationRequestActionHistory:
    entry = QuotationRequestActionHistory(action=action)
    request.action_history.append(entry)
    return entry


def history_texts(entries: Iterable[QuotationActionHistory | QuotationRequestActionHistory]) -> list[str]:
    return [e.action for e in entries]


def is_requested_quotation(quotation: Quotation) -> bool:
    if quotation.is_requested or quotation.request_id:
        return True
    # Fallback for rows written before the structured flag existed
    return any(REQUESTED_MARKER in e.action for e in quotation.action_history)
