from pydantic import BaseModel, Field, validator
from typing import Optional, List, Union
from datetime import datetime, date
from crm.features import normalize_features
from crm.models import ProjectStatus

# =====================================================
# PROJECT SCHEMAS
# =====================================================

class ProjectUpdate(BaseModel):
    project_name: Optional[str] = Field(None, min_length=1, max_length=255)
    project_type: Optional[str] = None
    description: Optional[str] = None
    status: Optional[ProjectStatus] = None
    budget: Optional[str] = None
    price: Optional[float] = None
    deposit: Optional[float] = None
    timeline: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    progress: Optional[int] = None
    features: Optional[Union[List[str], str]] = None
    preview_url: Optional[str] = None
    repo_url: Optional[str] = None
    production_url: Optional[str] = None
    admin_notes: Optional[str] = None

    class Config:
        use_enum_values = True

    @validator("progress")
    def clamp_progress(cls, value):
        if value is None:
            return value
        return max(0, min(100, value))

    @validator("features", pre=True)
    def coerce_features(cls, value):
        return normalize_features(value)

class ProjectResponse(BaseModel):
    id: int
    client_id: Optional[int] = None
    lead_id: Optional[int] = None
    project_name: str
    project_type: Optional[str] = None
    description: Optional[str] = None
    status: str
    budget: Optional[str] = None
    price: Optional[float] = None
    deposit: Optional[float] = None
    timeline: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    progress: Optional[int] = 0
    features: Optional[Union[List[str], str]] = None
    preview_url: Optional[str] = None
    repo_url: Optional[str] = None
    production_url: Optional[str] = None
    admin_notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class ProjectListItem(ProjectResponse):
    client_name: Optional[str] = None
    company_name: Optional[str] = None
    client_email: Optional[str] = None
    client_status: Optional[str] = None
    client_invitation_sent_at: Optional[datetime] = None
    client_last_login_at: Optional[datetime] = None

# =====================================================
# MILESTONE SCHEMAS
# =====================================================

class MilestoneCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    due_date: Optional[date] = None
    deliverables: Optional[List[str]] = None

class MilestoneUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    due_date: Optional[date] = None
    deliverables: Optional[List[str]] = None
    is_completed: Optional[bool] = None

class MilestoneResponse(BaseModel):
    id: int
    project_id: int
    title: str
    description: Optional[str] = None
    due_date: Optional[date] = None
    deliverables: Optional[List[str]] = None
    is_completed: bool = False
    completed_date: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
