from pydantic import BaseModel, Field, field_validator
from typing import List, Optional
from decimal import Decimal
from datetime import datetime, date

from app.models.enums.quotation_status import InternalStatus, DiscountType

# Alias: some schemas have a field named "date"
DateType = date


def _numeric_to_str(v):
    if isinstance(v, bool):
        raise ValueError("must be a number or numeric string")
    if isinstance(v, (int, float, Decimal)):
        return str(v)
    return v


# =====================================================
# ITEM PAYLOADS
# =====================================================

class QuotationItemIn(BaseModel):
    system: Optional[str] = None
    description: Optional[str] = None
    unit: Optional[str] = None
    # Kept as decimal strings end to end; numbers are accepted and stringified
    qty: Optional[str] = "0"
    amount: Optional[str] = "0"

    @field_validator("qty", "amount", mode="before")
    @classmethod
    def stringify_number(cls, v):
        return _numeric_to_str(v)


class QuotationItemOut(BaseModel):
    id: int
    position: int
    system: Optional[str]
    description: Optional[str]
    unit: Optional[str]
    qty: Optional[str]
    amount: Optional[str]


# =====================================================
# PRICING INPUT (shared by create / update / preview)
# =====================================================

class PricingIn(BaseModel):
    discount_type: Optional[DiscountType] = DiscountType.percentage
    discount_value: Optional[str] = "0"
    tax_rate: Optional[str] = "0"

    @field_validator("discount_type", mode="before")
    @classmethod
    def coerce_discount_type(cls, v):
        # "amount" is what older clients send for a fixed discount
        if isinstance(v, str) and v.strip().lower() in {"amount", "fixed"}:
            return DiscountType.fixed
        return v

    @field_validator("discount_value", "tax_rate", mode="before")
    @classmethod
    def stringify_rate(cls, v):
        return _numeric_to_str(v)


# =====================================================
# QUOTATION CREATE / UPDATE / REVISE
# =====================================================

class QuotationFields(PricingIn):
    company: str = Field(..., min_length=1)
    my_company: Optional[str] = None
    project: Optional[str] = None
    title: Optional[str] = None
    to_address: Optional[str] = None
    attn: Optional[str] = None
    email_to: Optional[str] = None
    email_cc: Optional[str] = None
    salesperson: Optional[str] = None
    customer_references: Optional[str] = None
    payment_terms: Optional[str] = None
    due_date: Optional[date] = None
    annexure_url: Optional[str] = None
    currency: str = "USD"
    for_department: Optional[str] = None

    items: List[QuotationItemIn] = []
    terms: List[str] = []


class QuotationCreate(QuotationFields):
    request_id: Optional[str] = None


class QuotationRevise(QuotationFields):
    """Edited content of the revision; linkage and ownership come from the parent."""


class QuotationUpdate(PricingIn):
    company: Optional[str] = None
    my_company: Optional[str] = None
    project: Optional[str] = None
    title: Optional[str] = None
    to_address: Optional[str] = None
    attn: Optional[str] = None
    email_to: Optional[str] = None
    email_cc: Optional[str] = None
    salesperson: Optional[str] = None
    customer_references: Optional[str] = None
    payment_terms: Optional[str] = None
    due_date: Optional[date] = None
    annexure_url: Optional[str] = None
    currency: Optional[str] = None

    # None means "leave unchanged"
    discount_type: Optional[DiscountType] = None
    discount_value: Optional[str] = None
    tax_rate: Optional[str] = None

    items: Optional[List[QuotationItemIn]] = None
    terms: Optional[List[str]] = None
    version: int


# =====================================================
# CLIENT DECISIONS / PO
# =====================================================

class ClientApprovalIn(BaseModel):
    po_no: Optional[str] = None
    po_file_url: Optional[str] = None


class PurchaseOrderIn(BaseModel):
    po_no: str = Field(..., min_length=1)
    po_file_url: Optional[str] = None


# =====================================================
# TOTALS
# =====================================================

class TotalsPreviewIn(PricingIn):
    items: List[QuotationItemIn] = []


class TotalsOut(BaseModel):
    subtotal: Decimal
    discount: Decimal
    after_discount: Decimal
    tax: Decimal
    total: Decimal


# =====================================================
# QUOTATION RESPONSES
# =====================================================

class QuotationOut(BaseModel):
    id: str
    quotation_number: str
    date: DateType

    company: str
    my_company: Optional[str]
    project: Optional[str]
    title: Optional[str]
    to_address: Optional[str]
    attn: Optional[str]
    email_to: Optional[str]
    email_cc: Optional[str]
    salesperson: Optional[str]
    customer_references: Optional[str]
    payment_terms: Optional[str]
    due_date: Optional[date]

    currency: str
    discount_type: DiscountType
    discount_value: str
    tax_rate: str
    amount: Decimal
    totals: TotalsOut

    internal_status: InternalStatus
    external_status: Optional[str]

    pdf_url: Optional[str]
    annexure_url: Optional[str]
    po_no: Optional[str]
    po_file_url: Optional[str]
    client_approval_date: Optional[datetime]

    created_by: str
    created_by_role: Optional[str]
    created_by_department: Optional[str]
    for_department: Optional[str]

    is_requested: bool
    request_id: Optional[str]
    version: int

    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    items: List[QuotationItemOut]
    terms: List[str]
    action_history: List[str]


class QuotationListItem(BaseModel):
    id: str
    quotation_number: str
    date: DateType
    company: str
    project: Optional[str]
    title: Optional[str]
    currency: str
    amount: Decimal
    internal_status: InternalStatus
    external_status: Optional[str]
    created_by: str
    for_department: Optional[str]
    is_requested: bool
    created_at: Optional[datetime]


class QuotationListData(BaseModel):
    total: int
    items: List[QuotationListItem]


class QuotationStatsOut(BaseModel):
    total: int
    by_internal_status: dict[str, int]
    by_external_status: dict[str, int]
    approved_amount_by_currency: dict[str, Decimal]


class OrphanedRevisionOut(BaseModel):
    id: str
    quotation_number: str
    expected_successor: str
    updated_at: Optional[datetime]


class PdfAttachIn(BaseModel):
    pdf_url: str = Field(..., min_length=1)
