from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from crm.database import get_db
from crm.auth.dependencies import require_admin
from crm.auth.schemas import Principal
from crm.leads.schemas import LeadCreate, LeadStatusUpdate, LeadResponse
from crm.services.lead_service import LeadService

router = APIRouter(prefix="/api", tags=["Leads"])

# =====================================================
# PUBLIC INTAKE
# =====================================================

@router.post("/intake", status_code=status.HTTP_201_CREATED)
def submit_intake(lead_data: LeadCreate, db: Session = Depends(get_db)):
    """Public intake form: creates a lead in the 'new' state."""
    lead = LeadService(db).create_lead(lead_data)
    return {
        "success": True,
        "message": "Thanks! We will be in touch shortly.",
        "lead": LeadResponse.model_validate(lead),
    }

# =====================================================
# ADMIN PIPELINE
# =====================================================

@router.get("/admin/leads")
def list_leads(
    current_user: Principal = Depends(require_admin()),
    db: Session = Depends(get_db)
):
    service = LeadService(db)
    return {
        "leads": [LeadResponse.model_validate(lead) for lead in service.list_leads()],
        "stats": service.get_pipeline_stats(),
    }

@router.get("/admin/leads/{lead_id}")
def get_lead(
    lead_id: int,
    current_user: Principal = Depends(require_admin()),
    db: Session = Depends(get_db)
):
    return {"lead": LeadResponse.model_validate(LeadService(db).get_lead(lead_id))}

@router.put("/admin/leads/{lead_id}/status")
def update_lead_status(
    lead_id: int,
    update: LeadStatusUpdate,
    current_user: Principal = Depends(require_admin()),
    db: Session = Depends(get_db)
):
    result = LeadService(db).update_status(lead_id, update)
    return {"success": True, "message": "Lead status updated successfully", "data": result}

@router.post("/admin/leads/{lead_id}/invite")
def invite_lead(
    lead_id: int,
    current_user: Principal = Depends(require_admin()),
    db: Session = Depends(get_db)
):
    client = LeadService(db).invite_lead(lead_id)
    return {
        "success": True,
        "message": f"Invitation created for {client.email}",
        "client_id": client.id,
        "invitation_token": client.invitation_token,
    }

@router.post("/admin/leads/{lead_id}/activate", status_code=status.HTTP_201_CREATED)
def activate_lead(
    lead_id: int,
    current_user: Principal = Depends(require_admin()),
    db: Session = Depends(get_db)
):
    project = LeadService(db).activate_lead(lead_id)
    return {
        "success": True,
        "message": "Lead activated as project",
        "project_id": project.id,
    }
