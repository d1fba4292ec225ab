"""
Invoice effective status, totals, filters and row actions
"""
import csv
import io
from datetime import date

from crm.dashboard.modules.invoices import export_invoices_csv, invoice_stats
from crm.dashboard.project_details.invoices import (
    compute_invoice_totals, decorate_invoices, effective_status, filter_invoices, invoice_actions
)

TODAY = date(2026, 3, 1)


def invoice(status="sent", due="2026-03-15", total=100.0, paid=0.0, invoice_type="standard", **extra):
    return dict(status=status, due_date=due, amount_total=total, amount_paid=paid, invoice_type=invoice_type, **extra)


class TestEffectiveStatus:
    def test_past_due_sent_invoice_is_overdue(self):
        assert effective_status(invoice(due="2026-02-01"), TODAY) == "overdue"

    def test_future_due_keeps_stored_status(self):
        assert effective_status(invoice(status="partial"), TODAY) == "partial"

    def test_paid_and_cancelled_are_never_overdue(self):
        assert effective_status(invoice(status="paid", due="2025-01-01"), TODAY) == "paid"
        assert effective_status(invoice(status="cancelled", due="2025-01-01"), TODAY) == "cancelled"

    def test_due_today_is_not_overdue(self):
        assert effective_status(invoice(due="2026-03-01"), TODAY) == "sent"

    def test_missing_due_date(self):
        assert effective_status(invoice(due=None), TODAY) == "sent"


class TestTotals:
    def test_single_pass_over_stored_statuses(self):
        invoices = [
            invoice(status="paid", total=100),
            invoice(status="sent", total=200, paid=50),
            invoice(status="overdue", total=80),
            invoice(status="draft", total=300),
            invoice(status="cancelled", total=400),
        ]
        assert compute_invoice_totals(invoices) == (230.0, 150.0)

    def test_applied_credit_reduces_outstanding(self):
        invoices = [
            invoice(status="partial", total=200, paid=50, credit_applied=30),
            invoice(status="sent", total=100, credit_applied=150),
        ]
        assert compute_invoice_totals(invoices) == (120.0, 50.0)

    def test_empty(self):
        assert compute_invoice_totals([]) == (0.0, 0.0)


class TestFilter:
    def test_overdue_filter_uses_effective_status(self):
        past_due = invoice(due="2026-02-01", id=1)
        future_due = invoice(due="2026-04-01", id=2)
        assert filter_invoices([past_due, future_due], "overdue", TODAY) == [past_due]

    def test_all_returns_everything(self):
        invoices = [invoice(), invoice(status="draft")]
        assert filter_invoices(invoices, "all", TODAY) == invoices

    def test_sent_filter_excludes_overdue(self):
        past_due = invoice(due="2026-02-01")
        assert filter_invoices([past_due], "sent", TODAY) == []


class TestActions:
    def test_draft(self):
        assert invoice_actions(invoice(status="draft"), TODAY) == [
            "edit-invoice", "send-invoice", "duplicate-invoice", "delete-invoice",
        ]

    def test_outstanding_standard_invoice(self):
        assert invoice_actions(invoice(status="sent"), TODAY) == [
            "record-payment", "mark-invoice-paid", "remind-invoice", "apply-credit",
            "duplicate-invoice", "delete-invoice",
        ]

    def test_deposit_invoice_gets_no_credit(self):
        assert "apply-credit" not in invoice_actions(invoice(status="partial", invoice_type="deposit"), TODAY)

    def test_paid_cannot_be_deleted(self):
        assert invoice_actions(invoice(status="paid"), TODAY) == ["duplicate-invoice"]

    def test_cancelled_cannot_be_duplicated(self):
        assert invoice_actions(invoice(status="cancelled"), TODAY) == ["delete-invoice"]

    def test_past_due_draft_still_edits(self):
        actions = invoice_actions(invoice(status="draft", due="2026-01-01"), TODAY)
        assert actions[:2] == ["edit-invoice", "send-invoice"]
        assert "record-payment" not in actions

    def test_decorate_attaches_status_and_actions(self):
        row = decorate_invoices([invoice(due="2026-02-01")], TODAY)[0]
        assert row["effective_status"] == "overdue"
        assert "remind-invoice" in row["actions"]


class TestInvoicesTab:
    def test_stats_count_effective_statuses(self):
        stats = invoice_stats([
            invoice(due="2026-02-01"),
            invoice(),
            invoice(status="paid", total=50),
        ], TODAY)
        assert stats["overdue"] == 1
        assert stats["sent"] == 1
        assert stats["paid"] == 1
        assert stats["total"] == 3
        assert stats["total_outstanding"] == 200.0
        assert stats["total_paid"] == 50.0

    def test_csv_export(self):
        rows = [
            invoice(due="2026-02-01", invoice_number="INV-2026-001", project_name="Site", client_name="Ada"),
            invoice(status="draft", invoice_number="INV-2026-002", project_name="Site", client_name="Ada"),
        ]
        parsed = list(csv.DictReader(io.StringIO(export_invoices_csv(rows, TODAY))))
        assert [r["invoice_number"] for r in parsed] == ["INV-2026-001", "INV-2026-002"]
        assert parsed[0]["status"] == "overdue"
        assert parsed[1]["status"] == "draft"
