from sqlalchemy.orm import Session, joinedload
from sqlalchemy import desc
from typing import List, Optional, Dict, Any
from datetime import datetime, date
import logging

from crm.errors import not_found, validation_error
from crm.models import Invoice, InvoiceStatus, InvoiceType, Project, OUTSTANDING_INVOICE_STATUSES
from crm.invoices.schemas import InvoiceCreate, InvoiceUpdate, LineItem

logger = logging.getLogger(__name__)

INVOICE_STATUSES = [s.value for s in InvoiceStatus]

# Balances below half a cent count as settled
SETTLED_EPSILON = 0.005


def line_items_to_json(line_items: List[LineItem]) -> List[Dict[str, Any]]:
    items = []
    for item in line_items:
        amount = item.amount if item.amount is not None else item.quantity * item.rate
        items.append({
            "description": item.description,
            "quantity": item.quantity,
            "rate": item.rate,
            "amount": round(amount, 2),
        })
    return items


def invoice_balance(invoice: Invoice) -> float:
    balance = (invoice.amount_total or 0) - (invoice.amount_paid or 0) - (invoice.credit_applied or 0)
    return round(max(balance, 0), 2)


class InvoiceService:
    def __init__(self, db: Session):
        self.db = db

    def generate_invoice_number(self, today: Optional[date] = None) -> str:
        """Next number in the yearly sequence, e.g. INV-2026-007."""
        year = (today or date.today()).year
        prefix = f"INV-{year}-"
        numbers = self.db.query(Invoice.invoice_number).filter(
            Invoice.invoice_number.like(f"{prefix}%")
        ).all()

        highest = 0
        for (number,) in numbers:
            suffix = number[len(prefix):]
            if suffix.isdigit():
                highest = max(highest, int(suffix))
        return f"{prefix}{highest + 1:03d}"

    def get_invoice(self, invoice_id: int) -> Invoice:
        invoice = self.db.query(Invoice).filter(Invoice.id == invoice_id).first()
        if not invoice:
            raise not_found("Invoice")
        return invoice

    def list_invoices(self, project_id: Optional[int] = None, client_id: Optional[int] = None,
                      include_drafts: bool = True) -> List[Invoice]:
        query = self.db.query(Invoice).options(
            joinedload(Invoice.project),
            joinedload(Invoice.client)
        )
        if project_id is not None:
            query = query.filter(Invoice.project_id == project_id)
        if client_id is not None:
            query = query.filter(Invoice.client_id == client_id)
        if not include_drafts:
            query = query.filter(Invoice.status != InvoiceStatus.DRAFT.value)
        return query.order_by(desc(Invoice.created_at), desc(Invoice.id)).all()

    def create_invoice(self, invoice_data: InvoiceCreate) -> Invoice:
        project = self.db.query(Project).filter(Project.id == invoice_data.project_id).first()
        if not project:
            raise not_found("Project")

        items = line_items_to_json(invoice_data.line_items)
        invoice = Invoice(
            invoice_number=self.generate_invoice_number(),
            project_id=project.id,
            client_id=project.client_id,
            invoice_type=InvoiceType(invoice_data.invoice_type).value,
            line_items=items,
            amount_total=round(sum(i["amount"] for i in items), 2),
            amount_paid=0,
            credit_applied=0,
            status=InvoiceStatus.DRAFT.value,
            issue_date=date.today(),
            due_date=invoice_data.due_date,
            notes=invoice_data.notes,
        )
        self.db.add(invoice)
        self.db.commit()
        self.db.refresh(invoice)
        logger.info("Created invoice %s for project %s", invoice.invoice_number, project.id)
        return invoice

    def update_invoice(self, invoice_id: int, invoice_update: InvoiceUpdate) -> Invoice:
        invoice = self.get_invoice(invoice_id)
        if invoice.status != InvoiceStatus.DRAFT.value:
            raise validation_error("Only draft invoices can be edited")

        update_data = invoice_update.dict(exclude_unset=True, exclude={"line_items"})
        for field, value in update_data.items():
            setattr(invoice, field, value)

        if invoice_update.line_items is not None:
            items = line_items_to_json(invoice_update.line_items)
            invoice.line_items = items
            invoice.amount_total = round(sum(i["amount"] for i in items), 2)

        self.db.commit()
        self.db.refresh(invoice)
        return invoice

    def set_status(self, invoice_id: int, new_status: str) -> Invoice:
        """Admin override: any valid status may be forced."""
        new_status = (new_status or "").strip().lower()
        if new_status not in INVOICE_STATUSES:
            raise validation_error(f'Invalid status "{new_status}". Must be one of: {", ".join(INVOICE_STATUSES)}')

        invoice = self.get_invoice(invoice_id)
        invoice.status = new_status
        if new_status == InvoiceStatus.PAID.value:
            invoice.amount_paid = invoice.amount_total
            invoice.paid_at = datetime.utcnow()
        elif new_status == InvoiceStatus.SENT.value and invoice.sent_at is None:
            invoice.sent_at = datetime.utcnow()

        self.db.commit()
        self.db.refresh(invoice)
        return invoice

    def send_invoice(self, invoice_id: int) -> Invoice:
        invoice = self.get_invoice(invoice_id)
        if invoice.status != InvoiceStatus.DRAFT.value:
            raise validation_error("Only draft invoices can be sent")

        invoice.status = InvoiceStatus.SENT.value
        invoice.sent_at = datetime.utcnow()
        if invoice.issue_date is None:
            invoice.issue_date = date.today()

        self.db.commit()
        self.db.refresh(invoice)
        logger.info("Sent invoice %s", invoice.invoice_number)
        return invoice

    def mark_paid(self, invoice_id: int) -> Invoice:
        invoice = self.get_invoice(invoice_id)
        if invoice.status in (InvoiceStatus.PAID.value, InvoiceStatus.CANCELLED.value):
            raise validation_error(f"Cannot mark a {invoice.status} invoice as paid")
        return self.set_status(invoice_id, InvoiceStatus.PAID.value)

    def record_payment(self, invoice_id: int, amount: float) -> Invoice:
        invoice = self.get_invoice(invoice_id)
        if invoice.status not in OUTSTANDING_INVOICE_STATUSES:
            raise validation_error("Payments can only be recorded on outstanding invoices")

        balance = invoice_balance(invoice)
        if amount > balance + SETTLED_EPSILON:
            raise validation_error(f"Payment exceeds balance due of {balance:.2f}")

        invoice.amount_paid = round((invoice.amount_paid or 0) + amount, 2)
        self._settle_or_partial(invoice)

        self.db.commit()
        self.db.refresh(invoice)
        return invoice

    def apply_credit(self, invoice_id: int, amount: float) -> Invoice:
        invoice = self.get_invoice(invoice_id)
        if invoice.invoice_type == InvoiceType.DEPOSIT.value:
            raise validation_error("Cannot apply credit to a deposit invoice")
        if invoice.status in (InvoiceStatus.PAID.value, InvoiceStatus.CANCELLED.value):
            raise validation_error(f"Cannot apply credit to a {invoice.status} invoice")

        balance = invoice_balance(invoice)
        if amount > balance + SETTLED_EPSILON:
            raise validation_error(f"Credit exceeds balance due of {balance:.2f}")

        invoice.credit_applied = round((invoice.credit_applied or 0) + amount, 2)
        if invoice.status != InvoiceStatus.DRAFT.value:
            self._settle_or_partial(invoice)

        self.db.commit()
        self.db.refresh(invoice)
        return invoice

    def _settle_or_partial(self, invoice: Invoice) -> None:
        if invoice_balance(invoice) <= SETTLED_EPSILON:
            invoice.status = InvoiceStatus.PAID.value
            invoice.paid_at = datetime.utcnow()
        elif invoice.amount_paid or invoice.credit_applied:
            invoice.status = InvoiceStatus.PARTIAL.value

    def send_reminder(self, invoice_id: int) -> Invoice:
        invoice = self.get_invoice(invoice_id)
        if invoice.status not in OUTSTANDING_INVOICE_STATUSES:
            raise validation_error("Reminders can only be sent for outstanding invoices")

        invoice.reminder_count = (invoice.reminder_count or 0) + 1
        invoice.last_reminder_at = datetime.utcnow()

        self.db.commit()
        self.db.refresh(invoice)
        logger.info("Reminder %s recorded for invoice %s", invoice.reminder_count, invoice.invoice_number)
        return invoice

    def duplicate_invoice(self, invoice_id: int) -> Invoice:
        source = self.get_invoice(invoice_id)
        if source.status == InvoiceStatus.CANCELLED.value:
            raise validation_error("Cancelled invoices cannot be duplicated")

        copy = Invoice(
            invoice_number=self.generate_invoice_number(),
            project_id=source.project_id,
            client_id=source.client_id,
            invoice_type=source.invoice_type,
            line_items=list(source.line_items or []),
            amount_total=source.amount_total,
            amount_paid=0,
            credit_applied=0,
            status=InvoiceStatus.DRAFT.value,
            issue_date=date.today(),
            due_date=source.due_date,
            notes=source.notes,
        )
        self.db.add(copy)
        self.db.commit()
        self.db.refresh(copy)
        return copy

    def delete_or_void(self, invoice_id: int) -> str:
        """Drafts and cancelled invoices are deleted; issued ones are voided."""
        invoice = self.get_invoice(invoice_id)
        if invoice.status == InvoiceStatus.PAID.value:
            raise validation_error("Paid invoices cannot be deleted or voided")

        if invoice.status in (InvoiceStatus.DRAFT.value, InvoiceStatus.CANCELLED.value):
            self.db.delete(invoice)
            action = "deleted"
        else:
            invoice.status = InvoiceStatus.CANCELLED.value
            action = "voided"

        self.db.commit()
        logger.info("Invoice %s %s", invoice_id, action)
        return action
