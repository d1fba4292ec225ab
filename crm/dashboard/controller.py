"""
Admin dashboard controller.

One controller per admin session. It owns the page model, the tab router,
the action dispatcher and the read caches, and it talks to the REST API only
through its ``APIClient``.
"""
import asyncio
import logging
from contextlib import suppress
from typing import Any, Awaitable, Callable, Dict, List, Optional

from crm.config import DASHBOARD_REFRESH_SECONDS
from crm.dashboard.actions import ActionDispatcher, ConfirmHook, as_bool
from crm.dashboard.api_client import APIClient
from crm.dashboard.context import ModuleContext
from crm.dashboard.dom import create_dom_cache
from crm.dashboard.layout import DASHBOARD_SELECTORS, build_admin_page
from crm.dashboard.loader import ModuleLoader
from crm.dashboard.render import render
from crm.dashboard.router import TabRouter
from crm.dashboard.store import RequestSequencer

logger = logging.getLogger(__name__)

TAB_CHANNEL = "tab"
MAX_NOTIFICATIONS = 20


class DashboardController:
    def __init__(self, api: APIClient, confirm: Optional[ConfirmHook] = None,
                 refresh_seconds: float = DASHBOARD_REFRESH_SECONDS, loader: Optional[ModuleLoader] = None):
        self.api = api
        self.api.on_session_expired = self.handle_session_expired
        self.api.notify = self.notify

        self.page = build_admin_page()
        self.dom = create_dom_cache(self.page, DASHBOARD_SELECTORS)
        self.sequencer = RequestSequencer()
        self.dispatcher = ActionDispatcher(confirm)
        self.router = TabRouter(self.page, self.dom, render, self.load_tab_data)
        self.loader = loader or ModuleLoader()
        self.ctx = ModuleContext(
            api, self.page, self.dom, render, self.sequencer, self.notify, switch_tab=self.switch_tab,
        )

        self.refresh_seconds = refresh_seconds
        self.authenticated = False
        self.dirty = False
        self.notifications: List[Dict[str, str]] = []
        self.selected_thread_id = None
        self.contracts_filter = "all"
        self.last_export: Optional[str] = None
        self._project_details = None
        self._invoices = None
        self._refresh_task: Optional[asyncio.Task] = None
        # Called with this controller once its session has expired
        self.on_session_ended: Optional[Callable[["DashboardController"], Awaitable[Any]]] = None

        self._register_actions()

    # =====================================================
    # LIFECYCLE
    # =====================================================

    async def init(self) -> bool:
        """Probe the admin session, then show either the gate or the overview."""
        self.authenticated = await self.api.probe_admin_session()
        self._show_auth_state()
        if not self.authenticated:
            logger.info("Admin session probe failed; showing auth gate")
            return False

        await self.switch_tab("overview")
        self.start_auto_refresh()
        return True

    def _show_auth_state(self) -> None:
        self.dom.require("auth_gate").toggle_class("hidden", self.authenticated)
        self.dom.require("dashboard").toggle_class("hidden", not self.authenticated)

    async def handle_session_expired(self) -> None:
        self.authenticated = False
        self._cancel_refresh()
        self._show_auth_state()
        if self.on_session_ended is not None:
            await self.on_session_ended(self)

    def notify(self, message: str, kind: str = "info") -> None:
        logger.info("[%s] %s", kind, message)
        self.notifications.append({"message": message, "type": kind})
        del self.notifications[:-MAX_NOTIFICATIONS]

        element = self.dom.get("notification")
        if element is not None:
            element.set_text(message)
            element.dataset["type"] = kind
            element.remove_class("hidden")

    async def close(self) -> None:
        await self.stop_auto_refresh()
        await self.api.aclose()

    # =====================================================
    # AUTO-REFRESH
    # =====================================================

    def start_auto_refresh(self) -> None:
        if self.refresh_seconds <= 0 or self._refresh_task is not None:
            return
        self._refresh_task = asyncio.create_task(self._auto_refresh_loop())

    async def _auto_refresh_loop(self) -> None:
        while self._refresh_task is asyncio.current_task():
            await asyncio.sleep(self.refresh_seconds)
            try:
                await self.refresh()
            except Exception:
                logger.exception("Auto-refresh of %s failed", self.router.current_tab)

    def _cancel_refresh(self) -> Optional[asyncio.Task]:
        task, self._refresh_task = self._refresh_task, None
        # The loop stops itself after a refresh that ended the session
        if task is not None and task is not asyncio.current_task():
            task.cancel()
        return task

    async def stop_auto_refresh(self) -> None:
        task = self._cancel_refresh()
        if task is not None and task is not asyncio.current_task():
            with suppress(asyncio.CancelledError):
                await task

    async def refresh(self, force: bool = False) -> bool:
        """Reload the current tab; skipped while an edit form is open."""
        if self.dirty and not force:
            logger.debug("Skipping refresh of %s: page has unsaved edits", self.router.current_tab)
            return False
        await self.load_tab_data(self.router.current_tab)
        return True

    def mark_dirty(self, dirty: bool = True) -> None:
        self.dirty = dirty

    # =====================================================
    # TABS
    # =====================================================

    async def switch_tab(self, tab_name: str, detail_label=None):
        self.dirty = False
        return await self.router.switch_tab(tab_name, detail_label=detail_label)

    def _set_loading(self, loading: bool) -> None:
        self.dom.require("loading").toggle_class("hidden", not loading)

    async def load_tab_data(self, tab: str) -> None:
        ticket = self.sequencer.issue(TAB_CHANNEL)
        ctx = self.ctx.for_ticket(TAB_CHANNEL, ticket)
        self._set_loading(True)
        try:
            await self._load_tab(ctx, tab)
        finally:
            if self.sequencer.is_current(TAB_CHANNEL, ticket):
                self._set_loading(False)

    async def _load_tab(self, ctx: ModuleContext, tab: str) -> None:
        if tab == "overview":
            await (await self.loader.load("overview")).load_overview(ctx)
        elif tab == "analytics":
            await (await self.loader.load("analytics")).load_analytics(ctx)
        elif tab == "system":
            await (await self.loader.load("analytics")).load_system_status(ctx)
        elif tab == "projects":
            await (await self.loader.load("projects")).load_projects(ctx)
        elif tab == "leads":
            await (await self.loader.load("leads")).load_leads(ctx)
            await (await self.loader.load("contacts")).load_contacts(ctx, target="leads_contacts_table")
        elif tab == "contacts":
            await (await self.loader.load("contacts")).load_contacts(ctx)
        elif tab == "clients":
            await (await self.loader.load("clients")).load_clients(ctx)
        elif tab == "invoices":
            invoices = await self.invoices()
            await (await self.loader.load("invoices")).load_invoices(ctx, invoices.current_filter)
        elif tab == "contracts":
            await (await self.loader.load("contracts")).load_contracts(ctx, self.contracts_filter)
        elif tab == "tasks":
            await (await self.loader.load("tasks")).load_tasks(ctx)
        elif tab == "requests":
            await (await self.loader.load("requests")).load_requests(ctx)
        elif tab == "files":
            await (await self.loader.load("files")).load_files(ctx)
        elif tab == "messages":
            messaging = await self.loader.load("messaging")
            await messaging.load_client_threads(ctx, selected_thread_id=self.selected_thread_id)
            if self.selected_thread_id:
                await messaging.select_thread(ctx, self.selected_thread_id)
        # Detail tabs are filled by their own handlers

    # =====================================================
    # PROJECT DETAILS
    # =====================================================

    async def project_details(self):
        if self._project_details is None:
            module = await self.loader.load("project_details")
            self._project_details = module.ProjectDetailsHandler(self.ctx)
        return self._project_details

    async def invoices(self):
        if self._invoices is None:
            module = await self.loader.load("invoices")
            self._invoices = module.GlobalInvoices(self.ctx)
        return self._invoices

    async def show_project_details(self, project_id) -> Optional[dict]:
        projects = await self.loader.load("projects")
        leads = await self.loader.load("leads")
        handler = await self.project_details()
        projects_data = await projects.projects_cache(self.ctx).get()

        async def invite(lead_id):
            return await leads.invite_lead(self.ctx, lead_id)

        async def reload_projects():
            return await projects.load_projects(self.ctx)

        return await handler.show_project_details(
            project_id, projects_data, self.switch_tab, reload_projects, projects.format_project_type, invite,
        )

    def _on_project_detail(self) -> bool:
        return (
            self.router.current_tab == "project-detail"
            and self._project_details is not None
            and self._project_details.current_project is not None
        )

    async def _invoice_target(self):
        if self._on_project_detail():
            return self._project_details.project_invoices()
        return await self.invoices()

    # =====================================================
    # ACTIONS
    # =====================================================

    async def dispatch(self, action: str, payload: Optional[Dict[str, Any]] = None,
                       confirm: Optional[ConfirmHook] = None) -> Any:
        return await self.dispatcher.dispatch(action, payload, confirm=confirm)

    async def handle_click(self, dataset: Dict[str, str], confirm: Optional[ConfirmHook] = None) -> Any:
        return await self.dispatcher.handle_click(dataset, confirm=confirm)

    def _register_actions(self) -> None:
        on = self.dispatcher.action

        @on("switch-tab")
        async def switch_tab(tab):
            return await self.switch_tab(tab)

        @on("refresh")
        async def refresh():
            return await self.refresh(force=True)

        # Leads and contacts

        @on("update-lead-status")
        async def update_lead_status(lead_id, status, cancelled_by=None, cancellation_reason=None):
            leads = await self.loader.load("leads")
            return await leads.update_lead_status(self.ctx, lead_id, status, cancelled_by, cancellation_reason)

        @on("invite-lead")
        async def invite_lead(lead_id):
            return await (await self.loader.load("leads")).invite_lead(self.ctx, lead_id)

        @on("activate-lead")
        async def activate_lead(lead_id):
            return await (await self.loader.load("leads")).activate_lead(self.ctx, lead_id)

        @on("update-contact-status")
        async def update_contact_status(contact_id, status):
            return await (await self.loader.load("contacts")).update_contact_status(self.ctx, contact_id, status)

        @on("convert-contact")
        async def convert_contact(contact_id):
            return await (await self.loader.load("contacts")).convert_contact(self.ctx, contact_id)

        @on("view-client")
        async def view_client(client_id):
            return await (await self.loader.load("clients")).show_client_details(self.ctx, client_id)

        # Projects

        @on("view-project")
        async def view_project(project_id):
            return await self.show_project_details(project_id)

        @on("project-subtab")
        async def project_subtab(subtab):
            return await (await self.project_details()).switch_subtab(subtab)

        @on("open-project-settings")
        async def open_project_settings():
            self.mark_dirty(True)

        @on("cancel-edit")
        async def cancel_edit():
            self.mark_dirty(False)

        @on("save-project")
        async def save_project(**changes):
            project = await (await self.project_details()).save_project(**changes)
            self.mark_dirty(False)
            return project

        @on("archive-project")
        async def archive_project():
            return await (await self.project_details()).archive_project()

        @on("delete-project", confirm="Delete this project? This cannot be undone.")
        async def delete_project():
            return await (await self.project_details()).delete_project()

        @on("resend-invite")
        async def resend_invite():
            return await (await self.project_details()).resend_invite()

        # Milestones

        @on("toggle-milestone")
        async def toggle_milestone(milestone_id, completed):
            return await (await self.project_details()).toggle_milestone(milestone_id, as_bool(completed))

        @on("add-milestone")
        async def add_milestone(title, description=None, due_date=None, deliverables=None):
            handler = await self.project_details()
            return await handler.add_milestone(title, description=description, due_date=due_date,
                                               deliverables=deliverables)

        @on("delete-milestone", confirm="Delete this milestone?")
        async def delete_milestone(milestone_id):
            return await (await self.project_details()).delete_milestone(milestone_id)

        # Invoices

        @on("filter-invoices")
        async def filter_invoices(invoice_filter="all"):
            return (await self._invoice_target()).apply_filter(invoice_filter)

        @on("create-invoice")
        async def create_invoice(line_items, due_date=None, invoice_type="standard", notes=None):
            invoices = (await self.project_details()).project_invoices()
            return await invoices.create(line_items, due_date=due_date, invoice_type=invoice_type, notes=notes)

        @on("edit-invoice")
        async def edit_invoice(invoice_id, **changes):
            return await (await self._invoice_target()).edit(invoice_id, **changes)

        @on("send-invoice")
        async def send_invoice(invoice_id):
            return await (await self._invoice_target()).send(invoice_id)

        @on("mark-invoice-paid")
        async def mark_invoice_paid(invoice_id):
            return await (await self._invoice_target()).mark_paid(invoice_id)

        @on("record-payment")
        async def record_payment(invoice_id, amount):
            return await (await self._invoice_target()).record_payment(invoice_id, amount)

        @on("apply-credit")
        async def apply_credit(invoice_id, amount):
            return await (await self._invoice_target()).apply_credit(invoice_id, amount)

        @on("remind-invoice")
        async def remind_invoice(invoice_id):
            return await (await self._invoice_target()).remind(invoice_id)

        @on("duplicate-invoice")
        async def duplicate_invoice(invoice_id):
            return await (await self._invoice_target()).duplicate(invoice_id)

        @on("delete-invoice", confirm="Delete this invoice? Sent invoices are voided instead.")
        async def delete_invoice(invoice_id):
            return await (await self._invoice_target()).delete(invoice_id)

        @on("export-invoices")
        async def export_invoices():
            self.last_export = await (await self.loader.load("invoices")).export_invoices(self.ctx)
            return self.last_export

        # Contracts

        async def contracts_module():
            return await self.loader.load("contracts")

        @on("filter-contracts")
        async def filter_contracts(status_filter="all"):
            self.contracts_filter = status_filter
            return await (await contracts_module()).load_contracts(self.ctx, status_filter)

        @on("send-contract")
        async def send_contract(contract_id):
            return await (await contracts_module()).send_contract(self.ctx, contract_id, self.contracts_filter)

        @on("remind-contract")
        async def remind_contract(contract_id):
            return await (await contracts_module()).remind_contract(self.ctx, contract_id, self.contracts_filter)

        @on("expire-contract", confirm="Expire this contract? The client will no longer be able to sign it.")
        async def expire_contract(contract_id):
            return await (await contracts_module()).expire_contract(self.ctx, contract_id, self.contracts_filter)

        @on("amend-contract")
        async def amend_contract(contract_id, content=None):
            module = await contracts_module()
            return await module.amend_contract(self.ctx, contract_id, content, self.contracts_filter)

        @on("cancel-contract", confirm="Cancel this contract?")
        async def cancel_contract(contract_id):
            return await (await contracts_module()).cancel_contract(self.ctx, contract_id, self.contracts_filter)

        # Tasks and ad hoc requests

        @on("update-task-status")
        async def update_task_status(task_id, status):
            return await (await self.loader.load("tasks")).update_task_status(self.ctx, task_id, status)

        @on("update-request-status")
        async def update_request_status(request_id, status):
            return await (await self.loader.load("requests")).update_request_status(self.ctx, request_id, status)

        @on("quote-request")
        async def quote_request(request_id, quoted_price, estimated_hours=None):
            module = await self.loader.load("requests")
            return await module.quote_request(self.ctx, request_id, quoted_price, estimated_hours)

        # Files

        @on("toggle-file-share")
        async def toggle_file_share(file_id, shared):
            if self._on_project_detail():
                return await self._project_details.toggle_file_share(file_id, as_bool(shared))
            return await (await self.loader.load("files")).toggle_file_share(self.ctx, file_id, as_bool(shared))

        @on("delete-file", confirm="Delete this file?")
        async def delete_file(file_id):
            if self._on_project_detail():
                return await self._project_details.delete_file(file_id)
            return await (await self.loader.load("files")).delete_file(self.ctx, file_id)

        # Messages

        @on("select-thread")
        async def select_thread(thread_id):
            self.selected_thread_id = thread_id
            messaging = await self.loader.load("messaging")
            data = await messaging.select_thread(self.ctx, thread_id)
            await messaging.load_client_threads(self.ctx, selected_thread_id=thread_id)
            return data

        @on("send-message")
        async def send_message(message, thread_id=None):
            thread_id = thread_id or self.selected_thread_id
            if not thread_id:
                self.notify("Select a conversation first", "error")
                return None
            return await (await self.loader.load("messaging")).send_message(self.ctx, thread_id, message)

        @on("send-project-message")
        async def send_project_message(message):
            return await (await self.project_details()).send_message(message)

    # =====================================================
    # STATE
    # =====================================================

    def state(self) -> dict:
        """Serializable snapshot for the browser shell."""
        sections = {}
        if self.authenticated:
            for element in self.page.children_of(f"tab-{self.router.current_tab}"):
                sections[element.id] = element.to_dict()

        project = self._project_details.current_project if self._project_details else None
        return {
            "authenticated": self.authenticated,
            "active_group": self.router.current_group,
            "active_tab": self.router.current_tab,
            "title": self.page.title,
            "breadcrumbs": self.router.breadcrumbs,
            "loading": not self.dom.require("loading").hidden,
            "dirty": self.dirty,
            "project_id": project["id"] if project else None,
            "project_subtab": self._project_details.current_subtab if project else None,
            "selected_thread_id": self.selected_thread_id,
            "notifications": list(self.notifications),
            "sections": sections,
        }
