from decimal import Decimal

from sqlalchemy import (
    Column, Integer, String, Text, ForeignKey, Numeric, Enum, Boolean,
    Date, DateTime, Index, event,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.core.db import Base
from app.models.base.mixins import TimestampMixin, SoftDeleteMixin
from app.models.enums.quotation_status import InternalStatus, DiscountType, ExternalStatus


def _enum_values(enum_cls):
    return [m.value for m in enum_cls]


class Quotation(Base, TimestampMixin, SoftDeleteMixin):
    __tablename__ = "quotations"

    id = Column(String(32), primary_key=True)
    quotation_number = Column(String(64), nullable=False, unique=True, index=True)
    date = Column(Date, nullable=False)

    company = Column(String(255), nullable=False, index=True)
    my_company = Column(String(255), nullable=True)
    project = Column(String(255), nullable=True)
    title = Column(String(255), nullable=True)
    to_address = Column(String, nullable=True)
    attn = Column(String(255), nullable=True)
    email_to = Column(String, nullable=True)
    email_cc = Column(String, nullable=True)
    salesperson = Column(String(255), nullable=True)
    customer_references = Column(String(255), nullable=True)
    payment_terms = Column(String, nullable=True)
    due_date = Column(Date, nullable=True)

    currency = Column(String(10), nullable=False, default="USD")
    discount_type = Column(
        Enum(DiscountType, values_callable=_enum_values, name="discount_type"),
        nullable=False,
        default=DiscountType.percentage,
    )
    discount_value = Column(String(32), nullable=False, default="0")
    tax_rate = Column(String(32), nullable=False, default="0")
    amount = Column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))

    pdf_url = Column(String, nullable=True)
    annexure_url = Column(String, nullable=True)
    po_no = Column(String(100), nullable=True)
    po_file_url = Column(String, nullable=True)
    client_approval_date = Column(DateTime(timezone=True), nullable=True)

    internal_status = Column(
        Enum(InternalStatus, values_callable=_enum_values, name="internal_status"),
        nullable=False,
        default=InternalStatus.pending,
        index=True,
    )
    # Free-form: written by the client-facing side, normalized on read
    external_status = Column(String(50), nullable=True, default=ExternalStatus.pending.value)

    created_by = Column(String(150), nullable=False, index=True)
    created_by_role = Column(String(50), nullable=True)
    created_by_department = Column(String(100), nullable=True)
    creator_type = Column(String(20), nullable=True)
    for_department = Column(String(100), nullable=True, index=True)

    is_requested = Column(Boolean, nullable=False, default=False)
    request_id = Column(String(32), ForeignKey("quotation_requests.id", ondelete="SET NULL"), nullable=True, index=True)

    version = Column(Integer, nullable=False, default=1)

    items = relationship(
        "QuotationItem",
        back_populates="quotation",
        cascade="all, delete-orphan",
        order_by="QuotationItem.position",
        lazy="selectin",
    )
    terms = relationship(
        "QuotationTerm",
        back_populates="quotation",
        cascade="all, delete-orphan",
        order_by="QuotationTerm.position",
        lazy="selectin",
    )
    action_history = relationship(
        "QuotationActionHistory",
        back_populates="quotation",
        cascade="save-update, merge",
        order_by="QuotationActionHistory.id",
        lazy="selectin",
    )

    __table_args__ = (
        Index("ix_quotation_statuses", "internal_status", "external_status"),
    )

    def __repr__(self):
        return (
            f"<Quotation {self.quotation_number} "
            f"internal={self.internal_status} external={self.external_status}>"
        )


class QuotationItem(Base):
    __tablename__ = "quotation_items"

    id = Column(Integer, primary_key=True)
    quotation_id = Column(String(32), ForeignKey("quotations.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    system = Column(String(255), nullable=True)
    description = Column(String, nullable=True)
    unit = Column(String(50), nullable=True)
    # Decimal strings as entered; parsed tolerantly by the totals calculator
    qty = Column(String(32), nullable=True)
    amount = Column(String(32), nullable=True)

    quotation = relationship("Quotation", back_populates="items")

    def __repr__(self):
        return f"<QuotationItem id={self.id} qty={self.qty} amount={self.amount}>"


class QuotationTerm(Base):
    __tablename__ = "quotation_terms"

    id = Column(Integer, primary_key=True)
    quotation_id = Column(String(32), ForeignKey("quotations.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    content = Column(Text, nullable=False)

    quotation = relationship("Quotation", back_populates="terms")


class QuotationActionHistory(Base):
    """Per-quotation audit trail. APPEND-ONLY: insertion order is chronological order."""

    __tablename__ = "quotation_action_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    quotation_id = Column(String(32), ForeignKey("quotations.id", ondelete="RESTRICT"), nullable=False, index=True)
    action = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    quotation = relationship("Quotation", back_populates="action_history")

    def __repr__(self):
        return f"<QuotationActionHistory id={self.id} action={self.action!r}>"


@event.listens_for(QuotationActionHistory, "before_update")
def _forbid_history_update(mapper, connection, target):
    raise ValueError("Quotation action history is append-only")


@event.listens_for(QuotationActionHistory, "before_delete")
def _forbid_history_delete(mapper, connection, target):
    raise ValueError("Quotation action history is append-only")
