from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime, date

from app.models.enums.request_status import RequestStatus

# Alias: the request schema has a field named "date"
DateType = date


class QuotationRequestCreate(BaseModel):
    customer_name: str = Field(..., min_length=1)
    project: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None


class QuotationRequestOut(BaseModel):
    id: str
    customer_name: str
    project: Optional[str]
    title: Optional[str]
    description: Optional[str]
    company: str
    date: DateType
    status: RequestStatus
    user_email: Optional[str]
    created_at: Optional[datetime]
    action_history: List[str]


class QuotationRequestListData(BaseModel):
    total: int
    items: List[QuotationRequestOut]
