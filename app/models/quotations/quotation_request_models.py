from sqlalchemy import Column, Integer, String, ForeignKey, Enum, Date, DateTime, event
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.core.db import Base
from app.models.base.mixins import TimestampMixin
from app.models.enums.request_status import RequestStatus


class QuotationRequest(Base, TimestampMixin):
    """A client's ask for a quotation; fulfilled by creating a Quotation that links back."""

    __tablename__ = "quotation_requests"

    id = Column(String(32), primary_key=True)
    customer_name = Column(String(255), nullable=False)
    project = Column(String(255), nullable=True)
    title = Column(String(255), nullable=True)
    description = Column(String, nullable=True)
    company = Column(String(255), nullable=False, index=True)
    date = Column(Date, nullable=False)
    status = Column(
        Enum(RequestStatus, values_callable=lambda e: [m.value for m in e], name="request_status"),
        nullable=False,
        default=RequestStatus.pending,
        index=True,
    )
    user_email = Column(String(150), nullable=True, index=True)

    action_history = relationship(
        "QuotationRequestActionHistory",
        back_populates="request",
        cascade="save-update, merge",
        order_by="QuotationRequestActionHistory.id",
        lazy="selectin",
    )

    def __repr__(self):
        return f"<QuotationRequest {self.id} status={self.status}>"


class QuotationRequestActionHistory(Base):
    """APPEND-ONLY, same contract as QuotationActionHistory."""

    __tablename__ = "quotation_request_action_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    request_id = Column(String(32), ForeignKey("quotation_requests.id", ondelete="RESTRICT"), nullable=False, index=True)
    action = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    request = relationship("QuotationRequest", back_populates="action_history")


@event.listens_for(QuotationRequestActionHistory, "before_update")
@event.listens_for(QuotationRequestActionHistory, "before_delete")
def _forbid_request_history_mutation(mapper, connection, target):
    raise ValueError("Quotation request action history is append-only")
