from pydantic import BaseModel
from typing import Optional
from datetime import datetime

class ClientResponse(BaseModel):
    id: int
    email: str
    contact_name: Optional[str] = None
    company_name: Optional[str] = None
    phone: Optional[str] = None
    status: str
    invitation_sent_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class ClientListItem(ClientResponse):
    project_count: int = 0
