from sqlalchemy.orm import Session
from sqlalchemy import func
from typing import Dict, Any
from collections import OrderedDict

from crm.models import (
    ContactSubmission, ContactStatus, Invoice, InvoiceStatus, Lead, LeadStatus,
    Message, PrincipalType, Project, ProjectStatus, OUTSTANDING_INVOICE_STATUSES
)


class StatsService:
    def __init__(self, db: Session):
        self.db = db

    def _count_by(self, column, id_column) -> Dict[str, int]:
        rows = self.db.query(column, func.count(id_column)).group_by(column).all()
        return {str(key): count for key, count in rows if key is not None}

    def revenue_totals(self) -> Dict[str, float]:
        """Outstanding and collected amounts across issued invoices."""
        outstanding = 0.0
        paid = 0.0
        for status, total, amount_paid in self.db.query(
            Invoice.status, Invoice.amount_total, Invoice.amount_paid
        ).all():
            total = total or 0
            amount_paid = amount_paid or 0
            if status == InvoiceStatus.PAID.value:
                paid += total
            elif status in OUTSTANDING_INVOICE_STATUSES:
                outstanding += total - amount_paid
                paid += amount_paid
        return {"outstanding": round(outstanding, 2), "paid": round(paid, 2)}

    def get_overview_stats(self) -> Dict[str, Any]:
        leads_by_status = self._count_by(Lead.status, Lead.id)
        return {
            "leads": {
                "total": sum(leads_by_status.values()),
                "new": leads_by_status.get(LeadStatus.NEW.value, 0),
                "by_status": leads_by_status,
            },
            "contacts": {
                "new": self.db.query(ContactSubmission).filter(
                    ContactSubmission.status == ContactStatus.NEW.value
                ).count(),
            },
            "projects": {
                "total": self.db.query(Project).count(),
                "active": self.db.query(Project).filter(
                    Project.status == ProjectStatus.ACTIVE.value
                ).count(),
            },
            "revenue": self.revenue_totals(),
            "messages": {
                "unread": self.db.query(Message).filter(
                    Message.sender_type == PrincipalType.CLIENT.value,
                    Message.is_read == False
                ).count(),
            },
        }

    def get_analytics(self) -> Dict[str, Any]:
        total_leads = self.db.query(Lead).count()
        converted = self.db.query(Lead).filter(Lead.status == LeadStatus.CONVERTED.value).count()

        monthly = OrderedDict()
        invoices = self.db.query(Invoice).filter(
            Invoice.status != InvoiceStatus.CANCELLED.value,
            Invoice.status != InvoiceStatus.DRAFT.value
        ).order_by(Invoice.issue_date).all()
        for invoice in invoices:
            issued = invoice.issue_date or (invoice.created_at.date() if invoice.created_at else None)
            if issued is None:
                continue
            month = issued.strftime("%Y-%m")
            bucket = monthly.setdefault(month, {"month": month, "invoiced": 0.0, "paid": 0.0})
            bucket["invoiced"] = round(bucket["invoiced"] + (invoice.amount_total or 0), 2)
            bucket["paid"] = round(bucket["paid"] + (invoice.amount_paid or 0), 2)

        return {
            "lead_sources": self._count_by(Lead.source, Lead.id),
            "leads_by_status": self._count_by(Lead.status, Lead.id),
            "conversion_rate": round(converted / total_leads * 100, 1) if total_leads else 0,
            "projects_by_status": self._count_by(Project.status, Project.id),
            "projects_by_type": self._count_by(Project.project_type, Project.id),
            "monthly_revenue": list(monthly.values()),
            "revenue": self.revenue_totals(),
        }
