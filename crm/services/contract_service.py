from sqlalchemy.orm import Session, joinedload
from sqlalchemy import desc
from typing import List, Optional
from datetime import datetime, timezone
import logging

from crm.errors import not_found, validation_error
from crm.models import Contract, ContractStatus, Project
from crm.contracts.schemas import ContractCreate, ContractUpdate

logger = logging.getLogger(__name__)

CONTRACT_STATUSES = [s.value for s in ContractStatus]

# Waiting on the client's signature
AWAITING_SIGNATURE = {ContractStatus.SENT.value, ContractStatus.VIEWED.value}

# No further transitions out of these
FINAL_STATUSES = {ContractStatus.SIGNED.value, ContractStatus.CANCELLED.value}


def naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Stored timestamps are naive UTC."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def is_valid_contract_status(value: Optional[str]) -> bool:
    return value in CONTRACT_STATUSES


class ContractService:
    def __init__(self, db: Session):
        self.db = db

    def get_contract(self, contract_id: int, client_id: Optional[int] = None) -> Contract:
        query = self.db.query(Contract).filter(Contract.id == contract_id)
        if client_id is not None:
            query = query.filter(
                Contract.client_id == client_id,
                Contract.status != ContractStatus.DRAFT.value
            )

        contract = query.first()
        if not contract:
            raise not_found("Contract")
        return contract

    def list_contracts(self, project_id: Optional[int] = None, client_id: Optional[int] = None,
                       status: Optional[str] = None, include_drafts: bool = True) -> List[Contract]:
        if status is not None and not is_valid_contract_status(status):
            raise validation_error("Invalid contract status")

        query = self.db.query(Contract).options(
            joinedload(Contract.project),
            joinedload(Contract.client)
        )
        if project_id is not None:
            query = query.filter(Contract.project_id == project_id)
        if client_id is not None:
            query = query.filter(Contract.client_id == client_id)
        if status is not None:
            query = query.filter(Contract.status == status)
        if not include_drafts:
            query = query.filter(Contract.status != ContractStatus.DRAFT.value)
        return query.order_by(desc(Contract.created_at), desc(Contract.id)).all()

    def create_contract(self, data: ContractCreate, parent: Optional[Contract] = None) -> Contract:
        project = self.db.query(Project).filter(Project.id == data.project_id).first()
        if not project:
            raise not_found("Project")

        client_id = data.client_id or project.client_id
        if not client_id:
            raise validation_error("Project has no client to contract with")

        contract = Contract(
            project_id=project.id,
            client_id=client_id,
            parent_contract_id=parent.id if parent is not None else None,
            content=data.content,
            status=ContractStatus.DRAFT.value,
            expires_at=naive_utc(data.expires_at),
            reminder_count=0,
        )
        self.db.add(contract)
        self.db.commit()
        self.db.refresh(contract)
        logger.info("Created contract %s for project %s", contract.id, project.id)
        return contract

    def update_contract(self, contract_id: int, update: ContractUpdate) -> Contract:
        contract = self.get_contract(contract_id)
        update_data = update.dict(exclude_unset=True)

        if "content" in update_data and contract.status != ContractStatus.DRAFT.value:
            raise validation_error("Only draft contracts can be edited; create an amendment instead")
        if "expires_at" in update_data:
            update_data["expires_at"] = naive_utc(update_data["expires_at"])

        for field, value in update_data.items():
            setattr(contract, field, value)

        self.db.commit()
        self.db.refresh(contract)
        return contract

    def send_contract(self, contract_id: int) -> Contract:
        contract = self.get_contract(contract_id)
        if contract.status != ContractStatus.DRAFT.value:
            raise validation_error("Only draft contracts can be sent")

        contract.status = ContractStatus.SENT.value
        contract.sent_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(contract)
        logger.info("Sent contract %s", contract.id)
        return contract

    def mark_viewed(self, contract: Contract) -> Contract:
        if contract.status == ContractStatus.SENT.value:
            contract.status = ContractStatus.VIEWED.value
            self.db.commit()
            self.db.refresh(contract)
        return contract

    def sign_contract(self, contract_id: int, client_id: int) -> Contract:
        contract = self.get_contract(contract_id, client_id=client_id)
        if contract.status not in AWAITING_SIGNATURE:
            raise validation_error("This contract is not awaiting a signature")

        now = datetime.utcnow()
        if contract.expires_at is not None and contract.expires_at < now:
            raise validation_error("This contract has expired")

        contract.status = ContractStatus.SIGNED.value
        contract.signed_at = now
        self.db.commit()
        self.db.refresh(contract)
        logger.info("Contract %s signed by client %s", contract.id, client_id)
        return contract

    def send_reminder(self, contract_id: int) -> Contract:
        contract = self.get_contract(contract_id)
        if contract.status not in AWAITING_SIGNATURE:
            raise validation_error("Reminders can only be sent for contracts awaiting a signature")

        contract.reminder_count = (contract.reminder_count or 0) + 1
        contract.last_reminder_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(contract)
        logger.info("Reminder %s recorded for contract %s", contract.reminder_count, contract.id)
        return contract

    def expire_contract(self, contract_id: int) -> Contract:
        contract = self.get_contract(contract_id)
        if contract.status in FINAL_STATUSES:
            raise validation_error(f"A {contract.status} contract cannot be expired")

        contract.status = ContractStatus.EXPIRED.value
        contract.expires_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(contract)
        return contract

    def create_amendment(self, contract_id: int, content: Optional[str] = None) -> Contract:
        original = self.get_contract(contract_id)
        data = ContractCreate(
            project_id=original.project_id,
            client_id=original.client_id,
            content=content or original.content,
        )
        return self.create_contract(data, parent=original)

    def cancel_contract(self, contract_id: int) -> Contract:
        contract = self.get_contract(contract_id)
        contract.status = ContractStatus.CANCELLED.value
        self.db.commit()
        self.db.refresh(contract)
        logger.info("Cancelled contract %s", contract.id)
        return contract
