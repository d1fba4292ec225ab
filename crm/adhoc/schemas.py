from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from crm.models import RequestStatus, RequestType, RequestPriority, RequestUrgency

class RequestCreate(BaseModel):
    project_id: int
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    request_type: RequestType
    priority: RequestPriority = RequestPriority.NORMAL
    urgency: RequestUrgency = RequestUrgency.NORMAL

    class Config:
        use_enum_values = True

class RequestUpdate(BaseModel):
    status: Optional[RequestStatus] = None
    priority: Optional[RequestPriority] = None
    urgency: Optional[RequestUrgency] = None
    quoted_price: Optional[float] = Field(None, ge=0)
    estimated_hours: Optional[float] = Field(None, ge=0)
    admin_notes: Optional[str] = None

    class Config:
        use_enum_values = True

class RequestResponse(BaseModel):
    id: int
    project_id: int
    client_id: int
    title: str
    description: str
    request_type: str
    priority: Optional[str] = None
    urgency: Optional[str] = None
    status: str
    quoted_price: Optional[float] = None
    estimated_hours: Optional[float] = None
    admin_notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class RequestListItem(RequestResponse):
    project_name: Optional[str] = None
    client_name: Optional[str] = None
