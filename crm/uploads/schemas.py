from pydantic import BaseModel
from typing import Optional
from datetime import datetime

class FileShareUpdate(BaseModel):
    shared: bool

class ProjectFileResponse(BaseModel):
    id: int
    project_id: int
    original_name: str
    filename: str
    mime_type: Optional[str] = None
    file_size: int
    uploaded_by: Optional[str] = None
    shared_with_client: bool = False
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class ProjectFileListItem(ProjectFileResponse):
    project_name: Optional[str] = None
