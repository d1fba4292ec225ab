from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from sqlalchemy import desc, func
from datetime import datetime
import logging

from crm.database import get_db
from crm.auth.dependencies import require_admin
from crm.auth.schemas import Principal
from crm.contacts.schemas import ContactCreate, ContactStatusUpdate, ContactResponse
from crm.errors import not_found, validation_error
from crm.models import ContactSubmission, ContactStatus, Lead, LeadStatus
from crm.services.lead_service import LeadService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Contact Submissions"])

CONTACT_STATUSES = [s.value for s in ContactStatus]


def get_submission_or_404(db: Session, submission_id: int) -> ContactSubmission:
    submission = db.query(ContactSubmission).filter(ContactSubmission.id == submission_id).first()
    if not submission:
        raise not_found("Contact submission")
    return submission


@router.post("/contact", status_code=status.HTTP_201_CREATED)
def submit_contact(contact_data: ContactCreate, db: Session = Depends(get_db)):
    submission = ContactSubmission(**contact_data.dict(), status=ContactStatus.NEW.value)
    db.add(submission)
    db.commit()
    db.refresh(submission)
    logger.info("New contact submission %s from %s", submission.id, submission.email)
    return {"success": True, "message": "Message received", "id": submission.id}


@router.get("/admin/contact-submissions")
def list_contact_submissions(
    current_user: Principal = Depends(require_admin()),
    db: Session = Depends(get_db)
):
    submissions = db.query(ContactSubmission).order_by(
        desc(ContactSubmission.created_at), desc(ContactSubmission.id)
    ).all()

    counts = dict(
        db.query(ContactSubmission.status, func.count(ContactSubmission.id))
        .group_by(ContactSubmission.status).all()
    )
    stats = {s: counts.get(s, 0) for s in CONTACT_STATUSES}
    stats["total"] = sum(counts.values())

    return {
        "submissions": [ContactResponse.model_validate(s) for s in submissions],
        "stats": stats,
    }


@router.put("/admin/contact-submissions/{submission_id}/status")
def update_contact_status(
    submission_id: int,
    update: ContactStatusUpdate,
    current_user: Principal = Depends(require_admin()),
    db: Session = Depends(get_db)
):
    new_status = (update.status or "").strip().lower()
    if new_status not in CONTACT_STATUSES:
        raise validation_error(f'Invalid status "{update.status}". Must be one of: {", ".join(CONTACT_STATUSES)}')

    submission = get_submission_or_404(db, submission_id)
    submission.status = new_status

    # First transition stamps the timestamp
    if new_status == ContactStatus.READ.value and submission.read_at is None:
        submission.read_at = datetime.utcnow()
    elif new_status == ContactStatus.REPLIED.value:
        submission.replied_at = datetime.utcnow()
        if submission.read_at is None:
            submission.read_at = submission.replied_at

    db.commit()
    return {"success": True, "message": "Status updated", "status": new_status}


@router.post("/admin/contact-submissions/{submission_id}/convert-to-client")
def convert_contact_to_client(
    submission_id: int,
    current_user: Principal = Depends(require_admin()),
    db: Session = Depends(get_db)
):
    submission = get_submission_or_404(db, submission_id)
    if submission.client_id:
        raise validation_error("Contact submission already converted")

    client = LeadService(db).get_or_create_client(
        submission.email, contact_name=submission.name, company_name=submission.company
    )
    lead = Lead(
        contact_name=submission.name,
        email=submission.email,
        company_name=submission.company,
        description=submission.message,
        features=[],
        source="contact_form",
        status=LeadStatus.NEW.value,
        client_id=client.id,
    )
    db.add(lead)

    submission.client_id = client.id
    if submission.status == ContactStatus.NEW.value:
        submission.status = ContactStatus.READ.value
        submission.read_at = datetime.utcnow()
    db.commit()

    logger.info("Converted contact submission %s to client %s", submission.id, client.id)
    return {
        "success": True,
        "message": "Converted to client",
        "client_id": client.id,
        "lead_id": lead.id,
    }
