from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session, joinedload
from sqlalchemy import desc, asc
from datetime import datetime
import logging

from crm.database import get_db
from crm.models import Project, Milestone
from crm.projects.schemas import (
    ProjectUpdate, ProjectResponse, ProjectListItem,
    MilestoneCreate, MilestoneUpdate, MilestoneResponse
)
from crm.auth.dependencies import get_current_principal, require_admin
from crm.auth.schemas import Principal
from crm.errors import not_found, validation_error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/projects", tags=["Projects"])


def get_project_for_principal(db: Session, project_id: int, principal: Principal) -> Project:
    """Load a project the caller may see; clients only reach their own."""
    query = db.query(Project).filter(Project.id == project_id)
    if not principal.is_admin:
        query = query.filter(Project.client_id == principal.client_id)

    project = query.first()
    if not project:
        raise not_found("Project")
    return project


def to_list_item(project: Project) -> ProjectListItem:
    item = ProjectListItem(**ProjectResponse.model_validate(project).dict())
    if project.client is not None:
        item.client_name = project.client.contact_name
        item.company_name = project.client.company_name
        item.client_email = project.client.email
        item.client_status = project.client.status
        item.client_invitation_sent_at = project.client.invitation_sent_at
        item.client_last_login_at = project.client.last_login_at
    return item

# =====================================================
# PROJECT OPERATIONS
# =====================================================

@router.get("")
def list_projects(
    current_user: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db)
):
    """List projects; clients see only their own."""
    query = db.query(Project).options(joinedload(Project.client))
    if not current_user.is_admin:
        query = query.filter(Project.client_id == current_user.client_id)

    projects = query.order_by(desc(Project.created_at), desc(Project.id)).all()
    return {"projects": [to_list_item(p) for p in projects]}

@router.get("/{project_id}")
def get_project(
    project_id: int,
    current_user: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db)
):
    project = get_project_for_principal(db, project_id, current_user)
    return {"project": to_list_item(project)}

@router.put("/{project_id}")
def update_project(
    project_id: int,
    project_update: ProjectUpdate,
    current_user: Principal = Depends(require_admin()),
    db: Session = Depends(get_db)
):
    project = get_project_for_principal(db, project_id, current_user)

    update_data = project_update.dict(exclude_unset=True)
    for field, value in update_data.items():
        setattr(project, field, value)

    project.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(project)

    return {"success": True, "project": to_list_item(project)}

@router.delete("/{project_id}")
def delete_project(
    project_id: int,
    current_user: Principal = Depends(require_admin()),
    db: Session = Depends(get_db)
):
    project = get_project_for_principal(db, project_id, current_user)
    if project.invoices or project.contracts:
        raise validation_error("Projects with invoices or contracts cannot be deleted; archive it instead")

    db.delete(project)
    db.commit()
    logger.info("Deleted project %s", project_id)
    return {"success": True, "message": "Project deleted successfully"}

# =====================================================
# MILESTONE OPERATIONS
# =====================================================

def get_milestone_or_404(db: Session, project_id: int, milestone_id: int) -> Milestone:
    milestone = db.query(Milestone).filter(
        Milestone.id == milestone_id,
        Milestone.project_id == project_id
    ).first()
    if not milestone:
        raise not_found("Milestone")
    return milestone

@router.get("/{project_id}/milestones")
def get_project_milestones(
    project_id: int,
    current_user: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db)
):
    get_project_for_principal(db, project_id, current_user)

    milestones = db.query(Milestone).filter(
        Milestone.project_id == project_id
    ).order_by(asc(Milestone.due_date), asc(Milestone.created_at), asc(Milestone.id)).all()

    return {"milestones": [MilestoneResponse.model_validate(m) for m in milestones]}

@router.post("/{project_id}/milestones", status_code=status.HTTP_201_CREATED)
def create_milestone(
    project_id: int,
    milestone_data: MilestoneCreate,
    current_user: Principal = Depends(require_admin()),
    db: Session = Depends(get_db)
):
    get_project_for_principal(db, project_id, current_user)

    milestone = Milestone(
        project_id=project_id,
        **milestone_data.dict(exclude={"deliverables"}),
        deliverables=milestone_data.deliverables or []
    )
    db.add(milestone)
    db.commit()
    db.refresh(milestone)

    return {"success": True, "milestone": MilestoneResponse.model_validate(milestone)}

@router.put("/{project_id}/milestones/{milestone_id}")
def update_milestone(
    project_id: int,
    milestone_id: int,
    milestone_update: MilestoneUpdate,
    current_user: Principal = Depends(require_admin()),
    db: Session = Depends(get_db)
):
    milestone = get_milestone_or_404(db, project_id, milestone_id)

    update_data = milestone_update.dict(exclude_unset=True)
    if "is_completed" in update_data:
        completed = bool(update_data.pop("is_completed"))
        if completed and not milestone.is_completed:
            milestone.completed_date = datetime.utcnow()
        elif not completed:
            milestone.completed_date = None
        milestone.is_completed = completed

    for field, value in update_data.items():
        setattr(milestone, field, value)

    milestone.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(milestone)

    return {"success": True, "milestone": MilestoneResponse.model_validate(milestone)}

@router.delete("/{project_id}/milestones/{milestone_id}")
def delete_milestone(
    project_id: int,
    milestone_id: int,
    current_user: Principal = Depends(require_admin()),
    db: Session = Depends(get_db)
):
    milestone = get_milestone_or_404(db, project_id, milestone_id)
    db.delete(milestone)
    db.commit()
    return {"success": True, "message": "Milestone deleted successfully"}
