from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from crm.database import get_db
from crm.auth.dependencies import get_current_principal, require_admin, require_client
from crm.auth.schemas import Principal
from crm.invoices.schemas import (
    InvoiceCreate, InvoiceUpdate, InvoiceStatusUpdate, AmountRequest,
    InvoiceResponse, InvoiceListItem
)
from crm.models import Invoice
from crm.projects.routes import get_project_for_principal
from crm.services.invoice_service import InvoiceService

router = APIRouter(prefix="/api/invoices", tags=["Invoices"])


def to_list_item(invoice: Invoice) -> InvoiceListItem:
    item = InvoiceListItem(**InvoiceResponse.model_validate(invoice).dict())
    if invoice.project is not None:
        item.project_name = invoice.project.project_name
    if invoice.client is not None:
        item.client_name = invoice.client.contact_name
        item.company_name = invoice.client.company_name
    return item

# =====================================================
# LISTING
# =====================================================

@router.get("")
def list_invoices(
    current_user: Principal = Depends(require_admin()),
    db: Session = Depends(get_db)
):
    return {"invoices": [to_list_item(i) for i in InvoiceService(db).list_invoices()]}

@router.get("/me")
def list_my_invoices(
    current_user: Principal = Depends(require_client()),
    db: Session = Depends(get_db)
):
    invoices = InvoiceService(db).list_invoices(client_id=current_user.client_id, include_drafts=False)
    return {"invoices": [to_list_item(i) for i in invoices]}

@router.get("/project/{project_id}")
def list_project_invoices(
    project_id: int,
    current_user: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db)
):
    get_project_for_principal(db, project_id, current_user)
    invoices = InvoiceService(db).list_invoices(project_id=project_id, include_drafts=current_user.is_admin)
    return {"invoices": [to_list_item(i) for i in invoices]}

# =====================================================
# LIFECYCLE
# =====================================================

@router.post("", status_code=status.HTTP_201_CREATED)
def create_invoice(
    invoice_data: InvoiceCreate,
    current_user: Principal = Depends(require_admin()),
    db: Session = Depends(get_db)
):
    invoice = InvoiceService(db).create_invoice(invoice_data)
    return {"success": True, "invoice": InvoiceResponse.model_validate(invoice)}

@router.put("/{invoice_id}")
def update_invoice(
    invoice_id: int,
    invoice_update: InvoiceUpdate,
    current_user: Principal = Depends(require_admin()),
    db: Session = Depends(get_db)
):
    invoice = InvoiceService(db).update_invoice(invoice_id, invoice_update)
    return {"success": True, "invoice": InvoiceResponse.model_validate(invoice)}

@router.put("/{invoice_id}/status")
def update_invoice_status(
    invoice_id: int,
    update: InvoiceStatusUpdate,
    current_user: Principal = Depends(require_admin()),
    db: Session = Depends(get_db)
):
    invoice = InvoiceService(db).set_status(invoice_id, update.status)
    return {"success": True, "invoice": InvoiceResponse.model_validate(invoice)}

@router.post("/{invoice_id}/send")
def send_invoice(
    invoice_id: int,
    current_user: Principal = Depends(require_admin()),
    db: Session = Depends(get_db)
):
    invoice = InvoiceService(db).send_invoice(invoice_id)
    return {"success": True, "message": f"Invoice {invoice.invoice_number} sent", "invoice": InvoiceResponse.model_validate(invoice)}

@router.post("/{invoice_id}/pay")
def mark_invoice_paid(
    invoice_id: int,
    current_user: Principal = Depends(require_admin()),
    db: Session = Depends(get_db)
):
    invoice = InvoiceService(db).mark_paid(invoice_id)
    return {"success": True, "message": "Invoice marked as paid", "invoice": InvoiceResponse.model_validate(invoice)}

@router.post("/{invoice_id}/payments")
def record_payment(
    invoice_id: int,
    payment: AmountRequest,
    current_user: Principal = Depends(require_admin()),
    db: Session = Depends(get_db)
):
    invoice = InvoiceService(db).record_payment(invoice_id, payment.amount)
    return {"success": True, "message": "Payment recorded", "invoice": InvoiceResponse.model_validate(invoice)}

@router.post("/{invoice_id}/apply-credit")
def apply_credit(
    invoice_id: int,
    credit: AmountRequest,
    current_user: Principal = Depends(require_admin()),
    db: Session = Depends(get_db)
):
    invoice = InvoiceService(db).apply_credit(invoice_id, credit.amount)
    return {"success": True, "message": "Credit applied", "invoice": InvoiceResponse.model_validate(invoice)}

@router.post("/{invoice_id}/remind")
def send_reminder(
    invoice_id: int,
    current_user: Principal = Depends(require_admin()),
    db: Session = Depends(get_db)
):
    invoice = InvoiceService(db).send_reminder(invoice_id)
    return {"success": True, "message": "Reminder sent", "invoice": InvoiceResponse.model_validate(invoice)}

@router.post("/{invoice_id}/duplicate", status_code=status.HTTP_201_CREATED)
def duplicate_invoice(
    invoice_id: int,
    current_user: Principal = Depends(require_admin()),
    db: Session = Depends(get_db)
):
    invoice = InvoiceService(db).duplicate_invoice(invoice_id)
    return {"success": True, "message": f"Created {invoice.invoice_number}", "invoice": InvoiceResponse.model_validate(invoice)}

@router.delete("/{invoice_id}")
def delete_invoice(
    invoice_id: int,
    current_user: Principal = Depends(require_admin()),
    db: Session = Depends(get_db)
):
    action = InvoiceService(db).delete_or_void(invoice_id)
    return {"success": True, "message": f"Invoice {action}", "action": action}
