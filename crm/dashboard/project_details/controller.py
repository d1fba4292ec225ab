"""
Project detail view.

``show_project_details`` looks the project up in the caller's list, opens the
detail tab, fills the fields and lazily loads each sub-tab (messages, files,
milestones, invoices) the first time it is viewed.
"""
import logging
from typing import Any, Awaitable, Callable, List, Optional, Set

from crm.dashboard.api_client import parse_json_response
from crm.dashboard.context import ModuleContext
from crm.dashboard.project_details import files as project_files
from crm.dashboard.project_details import messages as project_messages
from crm.dashboard.project_details import milestones as project_milestones
from crm.dashboard.project_details.dom_cache import (
    SUBTABS, get_project_detail_dom, subtab_button_id, subtab_content_id
)
from crm.dashboard.project_details.invoices import ProjectInvoices
from crm.features import display_features

logger = logging.getLogger(__name__)


class NoProjectOpenError(LookupError):
    """A project action ran while no project detail view is open."""


PROJECT_STATUS_OPTIONS = ["pending", "active", "on_hold", "completed", "cancelled"]


def client_account_status(project: dict) -> str:
    invited = bool(project.get("client_invitation_sent_at")) or project.get("client_status") == "active"
    if invited and project.get("client_last_login_at"):
        return "Active"
    if invited:
        return "Pending"
    return "Not Invited"


class ProjectDetailsHandler:
    def __init__(self, ctx: ModuleContext):
        self.ctx = ctx.with_dom(get_project_detail_dom(ctx.page))
        self.current_project: Optional[dict] = None
        self.current_subtab: Optional[str] = None
        self.loaded_subtabs: Set[str] = set()
        self.invoices: Optional[ProjectInvoices] = None
        self._load_projects: Optional[Callable[[], Awaitable[Any]]] = None
        self._switch_tab: Optional[Callable[..., Awaitable[Any]]] = None
        self._format_project_type: Callable[[Optional[str]], str] = lambda value: value or "-"
        self._invite_lead: Optional[Callable[[Any], Awaitable[Any]]] = None

    @property
    def project_id(self):
        return self.current_project["id"] if self.current_project else None

    async def show_project_details(
        self,
        project_id,
        projects_data: List[dict],
        switch_tab: Callable[..., Awaitable[Any]],
        load_projects: Callable[[], Awaitable[Any]],
        format_project_type: Callable[[Optional[str]], str],
        invite_lead: Callable[[Any], Awaitable[Any]],
    ) -> Optional[dict]:
        project = next((p for p in projects_data if str(p.get("id")) == str(project_id)), None)
        if project is None:
            logger.warning("Project %s not in the loaded project list", project_id)
            self.ctx.notify("Project not found", "error")
            return None

        self.current_project = project
        self.loaded_subtabs = set()
        self.invoices = None
        self._switch_tab = switch_tab
        self._load_projects = load_projects
        self._format_project_type = format_project_type
        self._invite_lead = invite_lead

        async def resolve_label() -> str:
            return project.get("project_name") or "Project"

        await switch_tab("project-detail", detail_label=resolve_label())
        self.populate(project)
        await self.switch_subtab("messages")
        return project

    def populate(self, project: dict) -> None:
        ctx = self.ctx
        ctx.set_text("name", project.get("project_name"))
        ctx.set_text("client", project.get("client_name") or "No client")
        ctx.set_text("client_email", project.get("client_email") or "")
        ctx.set_text("company", project.get("company_name") or "")
        ctx.set_text("type", self._format_project_type(project.get("project_type")))
        ctx.set_text("status", (project.get("status") or "pending").replace("_", " ").title())
        ctx.set_text("budget", project.get("budget") or "-")
        ctx.set_text("timeline", project.get("timeline") or "-")
        ctx.set_text("start_date", project.get("start_date") or "-")
        ctx.set_text("end_date", project.get("end_date") or "-")
        ctx.set_text("description", project.get("description") or "")
        ctx.set_text("preview_url", project.get("preview_url") or "")
        project_milestones.render_progress(ctx, int(project.get("progress") or 0))

        ctx.render_into("features", "feature_tags.html", features=display_features(project.get("features")))

        account_status = client_account_status(project)
        ctx.set_text("account_status", account_status)
        ctx.render_into(
            "settings", "project_settings.html",
            project=project, status_options=PROJECT_STATUS_OPTIONS, account_status=account_status,
        )

    # =====================================================
    # SUB-TABS
    # =====================================================

    async def switch_subtab(self, name: str) -> None:
        if name not in SUBTABS:
            logger.warning("Unknown project sub-tab '%s'", name)
            return

        for subtab in SUBTABS:
            active = subtab == name
            for element_id in (subtab_button_id(subtab), subtab_content_id(subtab)):
                element = self.ctx.page.get_element_by_id(element_id)
                if element is not None:
                    element.toggle_class("active", active)
        self.current_subtab = name

        if name not in self.loaded_subtabs:
            self.loaded_subtabs.add(name)
            await self.load_subtab(name)

    async def load_subtab(self, name: str) -> None:
        project = self.current_project
        if project is None:
            return
        if name == "messages":
            await project_messages.load_project_messages(self.ctx, project)
        elif name == "files":
            await project_files.load_project_files(self.ctx, project["id"])
        elif name == "milestones":
            await project_milestones.load_project_milestones(self.ctx, project["id"])
        elif name == "invoices":
            self.invoices = ProjectInvoices(self.ctx, project["id"])
            await self.invoices.load()

    def _require_project(self) -> dict:
        if self.current_project is None:
            raise NoProjectOpenError("No project is open")
        return self.current_project

    def project_invoices(self) -> ProjectInvoices:
        project = self._require_project()
        if self.invoices is None:
            self.invoices = ProjectInvoices(self.ctx, project["id"])
        return self.invoices

    # =====================================================
    # PROJECT ACTIONS
    # =====================================================

    async def save_project(self, **changes) -> dict:
        project = self._require_project()
        result = parse_json_response(await self.ctx.api.put(f"/api/projects/{project['id']}", json=changes))
        self.current_project = result.get("project", dict(project, **changes))
        self._invalidate_projects()
        self.populate(self.current_project)
        self.ctx.notify("Project saved", "success")
        return self.current_project

    async def archive_project(self) -> dict:
        return await self.save_project(status="on_hold")

    async def delete_project(self) -> None:
        project = self._require_project()
        parse_json_response(await self.ctx.api.delete(f"/api/projects/{project['id']}"))
        self.ctx.notify("Project deleted", "success")
        self.current_project = None
        self._invalidate_projects()
        if self._switch_tab is not None:
            await self._switch_tab("projects")

    async def resend_invite(self) -> Any:
        project = self._require_project()
        if not project.get("lead_id") or self._invite_lead is None:
            self.ctx.notify("This project has no lead to invite", "error")
            return None
        return await self._invite_lead(project["lead_id"])

    def _invalidate_projects(self) -> None:
        projects = self.ctx.caches.get("projects_data")
        if projects is not None:
            projects.invalidate()

    # Milestones

    async def toggle_milestone(self, milestone_id, completed) -> List[dict]:
        project = self._require_project()
        return await project_milestones.toggle_milestone(self.ctx, project["id"], milestone_id, completed)

    async def add_milestone(self, title: str, **fields) -> List[dict]:
        project = self._require_project()
        return await project_milestones.add_milestone(self.ctx, project["id"], title, **fields)

    async def delete_milestone(self, milestone_id) -> List[dict]:
        project = self._require_project()
        return await project_milestones.delete_milestone(self.ctx, project["id"], milestone_id)

    # Messages

    async def send_message(self, message: str) -> List[dict]:
        return await project_messages.send_project_message(self.ctx, self._require_project(), message)

    # Files

    async def upload_file(self, filename: str, content: bytes, content_type: str = "application/octet-stream") -> List[dict]:
        project = self._require_project()
        return await project_files.upload_project_file(self.ctx, project["id"], filename, content, content_type)

    async def toggle_file_share(self, file_id, shared) -> List[dict]:
        project = self._require_project()
        return await project_files.toggle_file_share(self.ctx, project["id"], file_id, shared)

    async def delete_file(self, file_id) -> List[dict]:
        project = self._require_project()
        return await project_files.delete_project_file(self.ctx, project["id"], file_id)

    # Invoices

    def filter_invoices(self, invoice_filter: str) -> List[dict]:
        return self.project_invoices().apply_filter(invoice_filter)
