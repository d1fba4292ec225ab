from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

class ContractCreate(BaseModel):
    project_id: int
    client_id: Optional[int] = None  # Defaults to the project's client
    content: str = Field(..., min_length=1)
    expires_at: Optional[datetime] = None

class ContractUpdate(BaseModel):
    content: Optional[str] = Field(None, min_length=1)
    expires_at: Optional[datetime] = None

class AmendmentRequest(BaseModel):
    content: Optional[str] = Field(None, min_length=1)

class ContractResponse(BaseModel):
    id: int
    project_id: int
    client_id: int
    parent_contract_id: Optional[int] = None
    content: str
    status: str
    sent_at: Optional[datetime] = None
    signed_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    reminder_count: int = 0
    last_reminder_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class ContractListItem(ContractResponse):
    project_name: Optional[str] = None
    client_name: Optional[str] = None
    client_email: Optional[str] = None
