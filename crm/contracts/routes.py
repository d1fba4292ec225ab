from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import Optional

from crm.database import get_db
from crm.auth.dependencies import require_admin, require_client
from crm.auth.schemas import Principal
from crm.contracts.schemas import (
    ContractCreate, ContractUpdate, AmendmentRequest,
    ContractResponse, ContractListItem
)
from crm.models import Contract
from crm.services.contract_service import ContractService

router = APIRouter(prefix="/api/contracts", tags=["Contracts"])


def to_list_item(contract: Contract) -> ContractListItem:
    item = ContractListItem(**ContractResponse.model_validate(contract).dict())
    if contract.project is not None:
        item.project_name = contract.project.project_name
    if contract.client is not None:
        item.client_name = contract.client.contact_name
        item.client_email = contract.client.email
    return item

# =====================================================
# LISTING
# =====================================================

@router.get("")
def list_contracts(
    project_id: Optional[int] = None,
    client_id: Optional[int] = None,
    status: Optional[str] = None,
    current_user: Principal = Depends(require_admin()),
    db: Session = Depends(get_db)
):
    contracts = ContractService(db).list_contracts(project_id=project_id, client_id=client_id, status=status)
    return {"contracts": [to_list_item(c) for c in contracts]}

# =====================================================
# CLIENT PORTAL
# =====================================================

@router.get("/me")
def list_my_contracts(
    current_user: Principal = Depends(require_client()),
    db: Session = Depends(get_db)
):
    """Contracts sent to the caller; drafts stay private."""
    contracts = ContractService(db).list_contracts(client_id=current_user.client_id, include_drafts=False)
    return {"contracts": [to_list_item(c) for c in contracts]}

@router.get("/me/{contract_id}")
def get_my_contract(
    contract_id: int,
    current_user: Principal = Depends(require_client()),
    db: Session = Depends(get_db)
):
    service = ContractService(db)
    contract = service.mark_viewed(service.get_contract(contract_id, client_id=current_user.client_id))
    return {"contract": to_list_item(contract)}

@router.post("/me/{contract_id}/sign")
def sign_contract(
    contract_id: int,
    current_user: Principal = Depends(require_client()),
    db: Session = Depends(get_db)
):
    contract = ContractService(db).sign_contract(contract_id, current_user.client_id)
    return {"success": True, "message": "Contract signed", "contract": ContractResponse.model_validate(contract)}

# =====================================================
# LIFECYCLE
# =====================================================

@router.post("", status_code=status.HTTP_201_CREATED)
def create_contract(
    contract_data: ContractCreate,
    current_user: Principal = Depends(require_admin()),
    db: Session = Depends(get_db)
):
    contract = ContractService(db).create_contract(contract_data)
    return {"success": True, "message": "Contract created", "contract": ContractResponse.model_validate(contract)}

@router.get("/{contract_id}")
def get_contract(
    contract_id: int,
    current_user: Principal = Depends(require_admin()),
    db: Session = Depends(get_db)
):
    return {"contract": to_list_item(ContractService(db).get_contract(contract_id))}

@router.put("/{contract_id}")
def update_contract(
    contract_id: int,
    contract_update: ContractUpdate,
    current_user: Principal = Depends(require_admin()),
    db: Session = Depends(get_db)
):
    contract = ContractService(db).update_contract(contract_id, contract_update)
    return {"success": True, "message": "Contract updated", "contract": ContractResponse.model_validate(contract)}

@router.post("/{contract_id}/send")
def send_contract(
    contract_id: int,
    current_user: Principal = Depends(require_admin()),
    db: Session = Depends(get_db)
):
    contract = ContractService(db).send_contract(contract_id)
    return {"success": True, "message": "Contract sent", "contract": ContractResponse.model_validate(contract)}

@router.post("/{contract_id}/remind")
def send_reminder(
    contract_id: int,
    current_user: Principal = Depends(require_admin()),
    db: Session = Depends(get_db)
):
    contract = ContractService(db).send_reminder(contract_id)
    return {"success": True, "message": "Reminder sent", "contract": ContractResponse.model_validate(contract)}

@router.post("/{contract_id}/expire")
def expire_contract(
    contract_id: int,
    current_user: Principal = Depends(require_admin()),
    db: Session = Depends(get_db)
):
    contract = ContractService(db).expire_contract(contract_id)
    return {"success": True, "message": "Contract expired", "contract": ContractResponse.model_validate(contract)}

@router.post("/{contract_id}/amendment", status_code=status.HTTP_201_CREATED)
def create_amendment(
    contract_id: int,
    amendment: Optional[AmendmentRequest] = None,
    current_user: Principal = Depends(require_admin()),
    db: Session = Depends(get_db)
):
    contract = ContractService(db).create_amendment(contract_id, amendment.content if amendment else None)
    return {"success": True, "message": "Amendment created", "contract": ContractResponse.model_validate(contract)}

@router.delete("/{contract_id}")
def cancel_contract(
    contract_id: int,
    current_user: Principal = Depends(require_admin()),
    db: Session = Depends(get_db)
):
    contract = ContractService(db).cancel_contract(contract_id)
    return {"success": True, "message": "Contract cancelled", "contract": ContractResponse.model_validate(contract)}
