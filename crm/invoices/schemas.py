from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime, date
from crm.models import InvoiceType

class LineItem(BaseModel):
    description: str = Field(..., min_length=1)
    quantity: float = 1
    rate: float = 0
    amount: Optional[float] = None

class InvoiceCreate(BaseModel):
    project_id: int
    line_items: List[LineItem] = Field(..., min_length=1)
    due_date: Optional[date] = None
    invoice_type: InvoiceType = InvoiceType.STANDARD
    notes: Optional[str] = None

class InvoiceUpdate(BaseModel):
    line_items: Optional[List[LineItem]] = None
    due_date: Optional[date] = None
    notes: Optional[str] = None

class InvoiceStatusUpdate(BaseModel):
    status: str

class AmountRequest(BaseModel):
    amount: float = Field(..., gt=0)

class InvoiceResponse(BaseModel):
    id: int
    invoice_number: str
    project_id: int
    client_id: Optional[int] = None
    invoice_type: str
    line_items: Optional[List[dict]] = None
    amount_total: float = 0
    amount_paid: float = 0
    credit_applied: float = 0
    status: str
    issue_date: Optional[date] = None
    due_date: Optional[date] = None
    sent_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    reminder_count: int = 0
    last_reminder_at: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class InvoiceListItem(InvoiceResponse):
    project_name: Optional[str] = None
    client_name: Optional[str] = None
    company_name: Optional[str] = None
