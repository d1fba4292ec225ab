from sqlalchemy.orm import Session
from sqlalchemy import func, desc
from typing import List, Optional, Dict, Any
from datetime import datetime
import logging

from crm.auth.utils import generate_invitation_token
from crm.errors import not_found, validation_error
from crm.features import normalize_features
from crm.models import Client, ClientStatus, Lead, LeadStatus, Project, ProjectStatus
from crm.leads.schemas import LeadCreate, LeadStatusUpdate

logger = logging.getLogger(__name__)

PIPELINE_STATUSES = [s.value for s in LeadStatus]


def normalize_lead_status(raw: Optional[str]) -> str:
    """Accept legacy and label forms: spaces, underscores, 'inprogress'."""
    if not isinstance(raw, str):
        return ""
    normalized = "-".join(raw.strip().lower().split()).replace("_", "-")
    if normalized == "inprogress":
        normalized = LeadStatus.IN_PROGRESS.value
    if normalized == "onhold":
        normalized = LeadStatus.ON_HOLD.value
    return normalized


class LeadService:
    def __init__(self, db: Session):
        self.db = db

    def create_lead(self, lead_data: LeadCreate) -> Lead:
        """Store a public intake submission as a new lead."""
        lead = Lead(**lead_data.dict(), status=LeadStatus.NEW.value)
        self.db.add(lead)
        self.db.commit()
        self.db.refresh(lead)
        logger.info("New lead %s from %s", lead.id, lead.email)
        return lead

    def get_lead(self, lead_id: int) -> Lead:
        lead = self.db.query(Lead).filter(Lead.id == lead_id).first()
        if not lead:
            raise not_found("Lead")
        return lead

    def list_leads(self) -> List[Lead]:
        return self.db.query(Lead).order_by(desc(Lead.created_at), desc(Lead.id)).all()

    def get_pipeline_stats(self) -> Dict[str, Any]:
        counts = dict(
            self.db.query(Lead.status, func.count(Lead.id)).group_by(Lead.status).all()
        )
        stats = {status: counts.get(status, 0) for status in PIPELINE_STATUSES}
        stats["total"] = sum(counts.values())
        return stats

    def update_status(self, lead_id: int, update: LeadStatusUpdate) -> Dict[str, Any]:
        new_status = normalize_lead_status(update.status)
        if not new_status or new_status not in PIPELINE_STATUSES:
            raise validation_error(
                f'Invalid status "{new_status}". Must be one of: {", ".join(PIPELINE_STATUSES)}'
                if new_status else "Missing or invalid status in request body"
            )

        if new_status == LeadStatus.CANCELLED.value and update.cancelled_by not in ("admin", "client"):
            raise validation_error('When cancelling, must specify cancelled_by as "admin" or "client"')

        lead = self.get_lead(lead_id)
        previous_status = lead.status

        lead.status = new_status
        if new_status == LeadStatus.CANCELLED.value:
            lead.cancelled_by = update.cancelled_by
            lead.cancellation_reason = update.cancellation_reason
        else:
            lead.cancelled_by = None
            lead.cancellation_reason = None

        self.db.commit()

        return {
            "previousStatus": previous_status,
            "newStatus": new_status,
            "cancelledBy": lead.cancelled_by,
            "cancellationReason": lead.cancellation_reason,
        }

    def get_or_create_client(self, email: str, contact_name: Optional[str] = None,
                             company_name: Optional[str] = None, phone: Optional[str] = None) -> Client:
        client = self.db.query(Client).filter(Client.email == email).first()
        if client:
            return client

        client = Client(
            email=email,
            contact_name=contact_name,
            company_name=company_name,
            phone=phone,
            status=ClientStatus.PENDING.value,
        )
        self.db.add(client)
        self.db.flush()
        return client

    def invite_lead(self, lead_id: int) -> Client:
        """Create (or reuse) the client account for a lead and issue an invitation token."""
        lead = self.get_lead(lead_id)
        client = self.get_or_create_client(lead.email, lead.contact_name, lead.company_name, lead.phone)

        if client.status != ClientStatus.ACTIVE.value:
            client.invitation_token = generate_invitation_token()
            client.invitation_sent_at = datetime.utcnow()

        lead.client_id = client.id
        if lead.project is not None and lead.project.client_id is None:
            lead.project.client_id = client.id

        self.db.commit()
        self.db.refresh(client)
        logger.info("Invited lead %s as client %s", lead.id, client.id)
        return client

    def activate_lead(self, lead_id: int) -> Project:
        """Turn a lead into an active project."""
        lead = self.get_lead(lead_id)
        if lead.project is not None:
            raise validation_error("Lead already has a project")

        project = Project(
            lead_id=lead.id,
            client_id=lead.client_id,
            project_name=f"{lead.company_name or lead.contact_name} {lead.project_type or 'Project'}".strip(),
            project_type=lead.project_type,
            description=lead.description,
            budget=lead.budget_range,
            timeline=lead.timeline,
            features=normalize_features(lead.features),
            status=ProjectStatus.ACTIVE.value,
            start_date=datetime.utcnow().date(),
            progress=0,
        )
        lead.status = LeadStatus.CONVERTED.value

        self.db.add(project)
        self.db.commit()
        self.db.refresh(project)
        logger.info("Activated lead %s as project %s", lead.id, project.id)
        return project
