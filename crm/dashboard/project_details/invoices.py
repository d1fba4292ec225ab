"""
Project invoices sub-tab: aggregates, effective status, filter and actions.

The effective status is derived on every render: an invoice that is neither
paid nor cancelled and whose due date is before today shows as ``overdue``
whatever the stored status says.
"""
import logging
from abc import ABC, abstractmethod
from datetime import date
from typing import Dict, Iterable, List, Optional, Tuple

import httpx

from crm.dashboard.actions import as_amount
from crm.dashboard.api_client import APIRequestError, parse_json_response
from crm.dashboard.context import ModuleContext

logger = logging.getLogger(__name__)

OUTSTANDING_STATUSES = {"sent", "viewed", "partial", "overdue"}
CLOSED_STATUSES = {"paid", "cancelled"}
INVOICE_FILTERS = ["all", "draft", "sent", "paid", "overdue", "partial"]


def _as_date(value) -> Optional[date]:
    if value is None or isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


def effective_status(invoice: dict, today: Optional[date] = None) -> str:
    status = invoice.get("status") or "draft"
    if status in CLOSED_STATUSES:
        return status

    due = _as_date(invoice.get("due_date"))
    if due is not None and due < (today or date.today()):
        return "overdue"
    return status


def compute_invoice_totals(invoices: Iterable[dict]) -> Tuple[float, float]:
    """(total_outstanding, total_paid) in one pass over stored statuses.

    Applied credit reduces the outstanding balance but is not counted as paid.
    """
    outstanding = 0.0
    paid = 0.0
    for invoice in invoices:
        amount = float(invoice.get("amount_total") or 0)
        amount_paid = float(invoice.get("amount_paid") or 0)
        credit = float(invoice.get("credit_applied") or 0)
        status = invoice.get("status")
        if status == "paid":
            paid += amount
        elif status in OUTSTANDING_STATUSES:
            outstanding += max(amount - amount_paid - credit, 0)
            paid += amount_paid
    return round(outstanding, 2), round(paid, 2)


def filter_invoices(invoices: Iterable[dict], invoice_filter: str = "all", today: Optional[date] = None) -> List[dict]:
    if invoice_filter == "all":
        return list(invoices)
    return [i for i in invoices if effective_status(i, today) == invoice_filter]


def invoice_actions(invoice: dict, today: Optional[date] = None) -> List[str]:
    """Action names offered for an invoice row."""
    stored = invoice.get("status")
    status = effective_status(invoice, today)
    is_draft = stored == "draft"
    is_outstanding = not is_draft and status in OUTSTANDING_STATUSES

    actions = []
    if is_draft:
        actions += ["edit-invoice", "send-invoice"]
    if is_outstanding:
        actions += ["record-payment", "mark-invoice-paid", "remind-invoice"]
        if invoice.get("invoice_type") != "deposit":
            actions.append("apply-credit")
    if status != "cancelled":
        actions.append("duplicate-invoice")
    if status != "paid":
        actions.append("delete-invoice")
    return actions


def decorate_invoices(invoices: Iterable[dict], today: Optional[date] = None) -> List[Dict]:
    """Rows ready for the template: effective status and actions attached."""
    return [
        dict(invoice, effective_status=effective_status(invoice, today), actions=invoice_actions(invoice, today))
        for invoice in invoices
    ]


class InvoiceActions(ABC):
    """Invoice mutations; every one reloads the owning view afterwards."""

    def __init__(self, ctx: ModuleContext):
        self.ctx = ctx

    @abstractmethod
    async def reload(self) -> List[dict]:
        """Refetch and re-render the view that owns these invoices."""

    async def _mutate(self, method: str, url: str, json: Optional[dict] = None, message: Optional[str] = None) -> dict:
        response = await self.ctx.api.request(method, url, json=json)
        result = parse_json_response(response)
        if message:
            self.ctx.notify(result.get("message") or message, "success")
        await self.reload()
        return result

    async def edit(self, invoice_id, **changes) -> dict:
        return await self._mutate("PUT", f"/api/invoices/{invoice_id}", changes, "Invoice updated")

    async def send(self, invoice_id) -> dict:
        return await self._mutate("POST", f"/api/invoices/{invoice_id}/send", message="Invoice sent")

    async def mark_paid(self, invoice_id) -> dict:
        return await self._mutate("POST", f"/api/invoices/{invoice_id}/pay", message="Invoice marked as paid")

    async def record_payment(self, invoice_id, amount) -> dict:
        return await self._mutate("POST", f"/api/invoices/{invoice_id}/payments", {"amount": as_amount(amount)}, "Payment recorded")

    async def apply_credit(self, invoice_id, amount) -> dict:
        return await self._mutate("POST", f"/api/invoices/{invoice_id}/apply-credit", {"amount": as_amount(amount)}, "Credit applied")

    async def remind(self, invoice_id) -> dict:
        return await self._mutate("POST", f"/api/invoices/{invoice_id}/remind", message="Reminder sent")

    async def duplicate(self, invoice_id) -> dict:
        return await self._mutate("POST", f"/api/invoices/{invoice_id}/duplicate", message="Invoice duplicated")

    async def delete(self, invoice_id) -> dict:
        return await self._mutate("DELETE", f"/api/invoices/{invoice_id}", message="Invoice deleted")


class ProjectInvoices(InvoiceActions):
    """Invoice state for the project currently open in the detail view."""

    def __init__(self, ctx: ModuleContext, project_id):
        super().__init__(ctx)
        self.project_id = project_id
        self.current_filter = "all"
        self.cached_invoices = ctx.cache(f"cached_invoices:{project_id}", self._fetch)

    async def _fetch(self) -> List[dict]:
        data = await self.ctx.api.get_json(f"/api/invoices/project/{self.project_id}")
        return data.get("invoices", [])

    async def load(self) -> List[dict]:
        try:
            invoices = await self.cached_invoices.get(refresh=True)
        except (APIRequestError, httpx.HTTPError) as e:
            logger.error("Error loading invoices for project %s: %s", self.project_id, e)
            self.ctx.show_error("invoices", "invoices")
            return []

        self.render()
        return invoices

    reload = load

    def render(self, today: Optional[date] = None) -> None:
        invoices = self.cached_invoices.peek() or []
        outstanding, paid = compute_invoice_totals(invoices)
        self.ctx.render_into("invoice_totals", "invoice_totals.html", outstanding=outstanding, paid=paid)
        self.ctx.render_into(
            "invoices", "project_invoices.html",
            invoices=decorate_invoices(filter_invoices(invoices, self.current_filter, today), today),
            current_filter=self.current_filter,
            filters=INVOICE_FILTERS,
        )

    def apply_filter(self, invoice_filter: str) -> List[dict]:
        """Filter the cached list without refetching."""
        if invoice_filter not in INVOICE_FILTERS:
            invoice_filter = "all"
        self.current_filter = invoice_filter
        self.render()
        return filter_invoices(self.cached_invoices.peek() or [], invoice_filter)

    async def create(self, line_items: List[dict], due_date: Optional[str] = None,
                     invoice_type: str = "standard", notes: Optional[str] = None) -> dict:
        body = {"project_id": int(self.project_id), "line_items": line_items, "invoice_type": invoice_type}
        if due_date:
            body["due_date"] = due_date
        if notes:
            body["notes"] = notes
        return await self._mutate("POST", "/api/invoices", body, "Invoice created")


async def load_project_invoices(ctx: ModuleContext, project_id) -> ProjectInvoices:
    invoices = ProjectInvoices(ctx, project_id)
    await invoices.load()
    return invoices
