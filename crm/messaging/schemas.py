from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

class ThreadCreate(BaseModel):
    client_id: Optional[int] = None  # Ignored for client callers
    project_id: Optional[int] = None
    subject: str = Field(..., min_length=1, max_length=255)
    thread_type: Optional[str] = "general"
    message: str = Field(..., min_length=1)

class MessageCreate(BaseModel):
    message: str = Field(..., min_length=1)

class MessageResponse(BaseModel):
    id: int
    thread_id: int
    sender_type: str
    sender_name: Optional[str] = None
    message: str
    is_read: bool = False
    read_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class ThreadResponse(BaseModel):
    id: int
    client_id: int
    project_id: Optional[int] = None
    subject: str
    thread_type: Optional[str] = None
    status: Optional[str] = None
    last_message_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class ThreadListItem(ThreadResponse):
    client_name: Optional[str] = None
    company_name: Optional[str] = None
    project_name: Optional[str] = None
    message_count: int = 0
    unread_count: int = 0
