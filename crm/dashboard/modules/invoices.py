import csv
import io
import logging
from datetime import date
from typing import Dict, Iterable, List, Optional

import httpx

from crm.dashboard.api_client import APIRequestError
from crm.dashboard.context import ModuleContext
from crm.dashboard.project_details.invoices import (
    INVOICE_FILTERS, InvoiceActions, compute_invoice_totals, decorate_invoices, effective_status, filter_invoices
)

logger = logging.getLogger(__name__)

CSV_COLUMNS = [
    "invoice_number", "project_name", "client_name", "invoice_type", "status",
    "issue_date", "due_date", "amount_total", "amount_paid", "credit_applied",
]


def invoice_stats(invoices: Iterable[dict], today: Optional[date] = None) -> Dict[str, float]:
    """Counts per effective status plus the outstanding and paid totals."""
    invoices = list(invoices)
    stats: Dict[str, float] = {name: 0 for name in INVOICE_FILTERS if name != "all"}
    stats["cancelled"] = 0
    for invoice in invoices:
        status = effective_status(invoice, today)
        stats[status] = stats.get(status, 0) + 1

    stats["total"] = len(invoices)
    stats["total_outstanding"], stats["total_paid"] = compute_invoice_totals(invoices)
    return stats


def export_invoices_csv(invoices: Iterable[dict], today: Optional[date] = None) -> str:
    """CSV with one row per invoice; ``status`` is the effective status."""
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=CSV_COLUMNS, extrasaction="ignore")
    writer.writeheader()
    for invoice in invoices:
        row = {column: invoice.get(column) for column in CSV_COLUMNS}
        row["status"] = effective_status(invoice, today)
        writer.writerow(row)
    return buffer.getvalue()


def invoices_cache(ctx: ModuleContext):
    async def fetch() -> List[dict]:
        data = await ctx.api.get_json("/api/invoices")
        return data.get("invoices", [])

    return ctx.cache("all_invoices", fetch)


async def load_invoices(ctx: ModuleContext, invoice_filter: str = "all") -> List[dict]:
    try:
        invoices = await invoices_cache(ctx).get(refresh=True)
    except (APIRequestError, httpx.HTTPError) as e:
        logger.error("Error loading invoices: %s", e)
        ctx.show_error("invoices_table", "invoices")
        return []

    render_invoices(ctx, invoices, invoice_filter)
    return invoices


def render_invoices(ctx: ModuleContext, invoices: List[dict], invoice_filter: str = "all") -> None:
    if invoice_filter not in INVOICE_FILTERS:
        invoice_filter = "all"
    ctx.render_into("invoices_stats", "invoice_stats.html", stats=invoice_stats(invoices))
    ctx.render_into(
        "invoices_table", "invoices.html",
        invoices=decorate_invoices(filter_invoices(invoices, invoice_filter)),
        current_filter=invoice_filter,
        filters=INVOICE_FILTERS,
    )


async def export_invoices(ctx: ModuleContext) -> str:
    invoices = await invoices_cache(ctx).get()
    ctx.notify(f"Exported {len(invoices)} invoices", "success")
    return export_invoices_csv(invoices)


class GlobalInvoices(InvoiceActions):
    """Row actions on the invoices tab; each reloads the full list."""

    def __init__(self, ctx: ModuleContext):
        super().__init__(ctx)
        self.current_filter = "all"

    async def reload(self) -> List[dict]:
        return await load_invoices(self.ctx, self.current_filter)

    def apply_filter(self, invoice_filter: str) -> List[dict]:
        """Re-render from the cached list without refetching."""
        self.current_filter = invoice_filter if invoice_filter in INVOICE_FILTERS else "all"
        invoices = invoices_cache(self.ctx).peek() or []
        render_invoices(self.ctx, invoices, self.current_filter)
        return filter_invoices(invoices, self.current_filter)
