from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from sqlalchemy import func, desc

from crm.database import get_db
from crm.auth.dependencies import require_admin, require_client
from crm.auth.schemas import Principal
from crm.clients.schemas import ClientResponse, ClientListItem
from crm.errors import not_found
from crm.models import Client, Project
from crm.projects.schemas import ProjectResponse

router = APIRouter(prefix="/api/clients", tags=["Clients"])

@router.get("")
def list_clients(
    current_user: Principal = Depends(require_admin()),
    db: Session = Depends(get_db)
):
    rows = db.query(Client, func.count(Project.id)).outerjoin(
        Project, Project.client_id == Client.id
    ).group_by(Client.id).order_by(desc(Client.created_at), desc(Client.id)).all()

    return {
        "clients": [
            ClientListItem(**ClientResponse.model_validate(client).dict(), project_count=count)
            for client, count in rows
        ]
    }

@router.get("/me")
def get_my_profile(
    current_user: Principal = Depends(require_client()),
    db: Session = Depends(get_db)
):
    client = db.query(Client).filter(Client.id == current_user.client_id).first()
    if not client:
        raise not_found("Client")
    return {"client": ClientResponse.model_validate(client)}

@router.get("/{client_id}")
def get_client(
    client_id: int,
    current_user: Principal = Depends(require_admin()),
    db: Session = Depends(get_db)
):
    client = db.query(Client).filter(Client.id == client_id).first()
    if not client:
        raise not_found("Client")

    projects = db.query(Project).filter(Project.client_id == client_id).order_by(desc(Project.created_at)).all()
    return {
        "client": ClientResponse.model_validate(client),
        "projects": [ProjectResponse.model_validate(p) for p in projects],
    }
