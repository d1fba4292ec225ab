from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from datetime import datetime

class ContactCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    company: Optional[str] = None
    subject: Optional[str] = None
    message: str = Field(..., min_length=1)

class ContactStatusUpdate(BaseModel):
    status: str

class ContactResponse(BaseModel):
    id: int
    name: str
    email: str
    company: Optional[str] = None
    subject: Optional[str] = None
    message: str
    status: str
    read_at: Optional[datetime] = None
    replied_at: Optional[datetime] = None
    client_id: Optional[int] = None
    created_at: datetime

    class Config:
        from_attributes = True
