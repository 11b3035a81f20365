# app/models/enums/quotation_status.py
import enum


class InternalStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    request_revise = "request-revise"
    revised = "revised"
    cancelled = "cancelled"


class ExternalStatus(str, enum.Enum):
    # Casing follows what the client-facing side has always written
    pending = "pending"
    approved = "approved"
    rejected = "Rejected"
    revision_requested = "Revision Requested"


# Initial external status of a revision child
PENDING_REVIEW = "Pending Review"

_EXTERNAL_ALIASES = {
    "pending": ExternalStatus.pending,
    "pending review": ExternalStatus.pending,
    "approved": ExternalStatus.approved,
    "rejected": ExternalStatus.rejected,
    "revision requested": ExternalStatus.revision_requested,
    "revision": ExternalStatus.revision_requested,
}


def normalize_external_status(raw: str | None) -> ExternalStatus | None:
    """Case-insensitive mapping of a stored external status onto the enum.

    ``None``/blank means "not set"; unknown strings also map to ``None`` so the
    caller can decide how strict to be.
    """
    if raw is None or not raw.strip():
        return None
    return _EXTERNAL_ALIASES.get(raw.strip().casefold())


class DiscountType(str, enum.Enum):
    percentage = "percentage"
    fixed = "fixed"


def external_status_aliases(raw: str) -> list[str]:
    """Lowercased stored spellings that normalize to the same status as ``raw``."""
    status = normalize_external_status(raw)
    if status is None:
        return [raw.strip().lower()]
    return sorted(alias for alias, value in _EXTERNAL_ALIASES.items() if value == status)
