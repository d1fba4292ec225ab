from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session, joinedload
from sqlalchemy import desc
from datetime import datetime
from typing import Optional
import logging

from crm.database import get_db
from crm.models import AdHocRequest, RequestStatus
from crm.adhoc.schemas import RequestCreate, RequestUpdate, RequestResponse, RequestListItem
from crm.auth.dependencies import require_admin, require_client
from crm.auth.schemas import Principal
from crm.errors import not_found, validation_error
from crm.projects.routes import get_project_for_principal

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/ad-hoc-requests", tags=["Ad Hoc Requests"])

REQUEST_STATUSES = [s.value for s in RequestStatus]


def to_list_item(request: AdHocRequest, include_notes: bool = True) -> RequestListItem:
    item = RequestListItem(**RequestResponse.model_validate(request).dict())
    if request.project is not None:
        item.project_name = request.project.project_name
    if request.client is not None:
        item.client_name = request.client.contact_name
    if not include_notes:
        item.admin_notes = None
    return item


def get_request_or_404(db: Session, request_id: int, client_id: Optional[int] = None) -> AdHocRequest:
    query = db.query(AdHocRequest).filter(AdHocRequest.id == request_id)
    if client_id is not None:
        query = query.filter(AdHocRequest.client_id == client_id)

    request = query.first()
    if not request:
        raise not_found("Request")
    return request


def answer_quote(db: Session, request_id: int, client_id: int, answer: RequestStatus) -> AdHocRequest:
    request = get_request_or_404(db, request_id, client_id)
    if request.status != RequestStatus.QUOTED.value:
        raise validation_error("This request has no open quote")

    request.status = answer.value
    request.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(request)
    logger.info("Client %s %s the quote for request %s", client_id, answer.value, request_id)
    return request

# =====================================================
# CLIENT PORTAL
# =====================================================

@router.get("/me")
def list_my_requests(
    current_user: Principal = Depends(require_client()),
    db: Session = Depends(get_db)
):
    requests = db.query(AdHocRequest).options(joinedload(AdHocRequest.project)).filter(
        AdHocRequest.client_id == current_user.client_id
    ).order_by(desc(AdHocRequest.created_at), desc(AdHocRequest.id)).all()
    return {"requests": [to_list_item(r, include_notes=False) for r in requests]}

@router.post("/me", status_code=status.HTTP_201_CREATED)
def submit_request(
    request_data: RequestCreate,
    current_user: Principal = Depends(require_client()),
    db: Session = Depends(get_db)
):
    project = get_project_for_principal(db, request_data.project_id, current_user)

    request = AdHocRequest(
        client_id=current_user.client_id,
        status=RequestStatus.SUBMITTED.value,
        **request_data.dict()
    )
    db.add(request)
    db.commit()
    db.refresh(request)
    logger.info("Client %s submitted request %s on project %s", current_user.client_id, request.id, project.id)
    return {"success": True, "message": "Request submitted", "request": RequestResponse.model_validate(request)}

@router.post("/me/{request_id}/approve")
def approve_quote(
    request_id: int,
    current_user: Principal = Depends(require_client()),
    db: Session = Depends(get_db)
):
    request = answer_quote(db, request_id, current_user.client_id, RequestStatus.APPROVED)
    return {"success": True, "message": "Quote approved", "request": to_list_item(request, include_notes=False)}

@router.post("/me/{request_id}/decline")
def decline_quote(
    request_id: int,
    current_user: Principal = Depends(require_client()),
    db: Session = Depends(get_db)
):
    request = answer_quote(db, request_id, current_user.client_id, RequestStatus.DECLINED)
    return {"success": True, "message": "Quote declined", "request": to_list_item(request, include_notes=False)}

# =====================================================
# ADMIN
# =====================================================

@router.get("")
def list_requests(
    status: Optional[str] = None,
    project_id: Optional[int] = None,
    current_user: Principal = Depends(require_admin()),
    db: Session = Depends(get_db)
):
    if status is not None and status not in REQUEST_STATUSES:
        raise validation_error("Invalid request status")

    query = db.query(AdHocRequest).options(
        joinedload(AdHocRequest.project),
        joinedload(AdHocRequest.client)
    )
    if status is not None:
        query = query.filter(AdHocRequest.status == status)
    if project_id is not None:
        query = query.filter(AdHocRequest.project_id == project_id)

    requests = query.order_by(desc(AdHocRequest.created_at), desc(AdHocRequest.id)).all()
    return {"requests": [to_list_item(r) for r in requests]}

@router.put("/{request_id}")
def update_request(
    request_id: int,
    request_update: RequestUpdate,
    current_user: Principal = Depends(require_admin()),
    db: Session = Depends(get_db)
):
    request = get_request_or_404(db, request_id)

    update_data = {k: v for k, v in request_update.dict(exclude_unset=True).items()
                   if v is not None or k in ("quoted_price", "estimated_hours", "admin_notes")}
    quoted_price = update_data.get("quoted_price", request.quoted_price)
    if update_data.get("status") == RequestStatus.QUOTED.value and quoted_price is None:
        raise validation_error("A quote needs a price")

    for field, value in update_data.items():
        setattr(request, field, value)

    request.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(request)
    return {"success": True, "message": "Request updated", "request": to_list_item(request)}

@router.delete("/{request_id}")
def delete_request(
    request_id: int,
    current_user: Principal = Depends(require_admin()),
    db: Session = Depends(get_db)
):
    request = get_request_or_404(db, request_id)
    db.delete(request)
    db.commit()
    return {"success": True, "message": "Request deleted successfully"}
