from pydantic import BaseModel, EmailStr, Field, validator
from typing import Optional, List, Union
from datetime import datetime
from crm.features import normalize_features

class LeadCreate(BaseModel):
    contact_name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    phone: Optional[str] = None
    company_name: Optional[str] = None
    project_type: Optional[str] = None
    budget_range: Optional[str] = None
    timeline: Optional[str] = None
    description: Optional[str] = None
    features: Optional[Union[List[str], str]] = None
    source: Optional[str] = "intake_form"

    @validator("features", pre=True)
    def coerce_features(cls, value):
        return normalize_features(value)

class LeadStatusUpdate(BaseModel):
    status: Optional[str] = None
    cancelled_by: Optional[str] = None
    cancellation_reason: Optional[str] = None

class LeadResponse(BaseModel):
    id: int
    contact_name: str
    email: str
    phone: Optional[str] = None
    company_name: Optional[str] = None
    project_type: Optional[str] = None
    budget_range: Optional[str] = None
    timeline: Optional[str] = None
    description: Optional[str] = None
    features: Optional[Union[List[str], str]] = None
    source: Optional[str] = None
    notes: Optional[str] = None
    status: str
    cancelled_by: Optional[str] = None
    cancellation_reason: Optional[str] = None
    client_id: Optional[int] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
