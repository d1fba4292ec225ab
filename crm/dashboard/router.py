"""
Tab and group router for the admin dashboard.

Sidebar groups (Work, CRM, Documents, Support) each own a handful of tabs and
open on a default child tab. Overview, analytics and system status are
standalone tabs.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Dict, List, NamedTuple, Optional

from crm.dashboard.dom import DOMCache, Page

logger = logging.getLogger(__name__)

TAB_GROUPS = {
    "work": {"label": "Work", "default": "projects", "tabs": ["projects", "tasks", "requests", "project-detail"]},
    "crm": {"label": "CRM", "default": "leads", "tabs": ["leads", "contacts", "clients", "client-detail"]},
    "documents": {"label": "Documents", "default": "invoices", "tabs": ["invoices", "contracts", "files"]},
    "support": {"label": "Support", "default": "messages", "tabs": ["messages"]},
}

STANDALONE_TABS = ["overview", "analytics", "system"]

TAB_TITLES = {
    "overview": "Dashboard",
    "analytics": "Analytics",
    "system": "System Status",
    "projects": "Projects",
    "tasks": "Tasks",
    "requests": "Ad Hoc Requests",
    "project-detail": "Project Details",
    "leads": "Leads",
    "contacts": "Contacts",
    "clients": "Clients",
    "client-detail": "Client Details",
    "invoices": "Invoices",
    "contracts": "Contracts",
    "files": "Files",
    "messages": "Messages",
}

# Detail views hang off a list tab in the breadcrumb trail
DETAIL_PARENTS = {
    "project-detail": "projects",
    "client-detail": "clients",
}

ALL_TABS = STANDALONE_TABS + [tab for group in TAB_GROUPS.values() for tab in group["tabs"]]


class TabTarget(NamedTuple):
    group: str
    tab: str


def resolve_tab(tab_name: str) -> Optional[TabTarget]:
    """Map a tab or group name to ``(group, tab)``; None when unknown."""
    if tab_name in TAB_GROUPS:
        return TabTarget(tab_name, TAB_GROUPS[tab_name]["default"])

    for group_name, group in TAB_GROUPS.items():
        if tab_name in group["tabs"]:
            return TabTarget(group_name, tab_name)

    if tab_name in STANDALONE_TABS:
        return TabTarget(tab_name, tab_name)

    return None


def crumb(label: str, tab: Optional[str] = None) -> Dict[str, Optional[str]]:
    return {"label": label, "tab": tab}


DEFAULT_BREADCRUMBS = [crumb("Dashboard")]


class TabRouter:
    def __init__(self, page: Page, dom: DOMCache, render: Callable[..., str],
                 load_tab_data: Callable[[str], Awaitable[None]]):
        self.page = page
        self.dom = dom
        self.render = render
        self.load_tab_data = load_tab_data
        self.current_tab = "overview"
        self.current_group = "overview"
        self.breadcrumbs: List[dict] = list(DEFAULT_BREADCRUMBS)

    async def build_breadcrumbs(self, target: TabTarget, detail_label: Optional[Awaitable[str]] = None) -> List[dict]:
        if target.tab == "overview":
            return list(DEFAULT_BREADCRUMBS)

        crumbs = [crumb("Dashboard", "overview")]
        if target.group in TAB_GROUPS:
            group = TAB_GROUPS[target.group]
            crumbs.append(crumb(group["label"], group["default"]))

        parent = DETAIL_PARENTS.get(target.tab)
        if parent is None:
            if asyncio.iscoroutine(detail_label):
                detail_label.close()
            crumbs.append(crumb(TAB_TITLES[target.tab]))
            return crumbs

        crumbs.append(crumb(TAB_TITLES[parent], parent))
        label = await detail_label if detail_label is not None else None
        crumbs.append(crumb(label or TAB_TITLES[target.tab]))
        return crumbs

    def set_breadcrumbs(self, crumbs: List[dict]) -> None:
        self.breadcrumbs = crumbs
        container = self.dom.get("breadcrumbs")
        if container is not None:
            container.set_html(self.render("breadcrumbs.html", crumbs=crumbs))

    async def switch_tab(self, tab_name: str, detail_label: Optional[Awaitable[str]] = None) -> Optional[TabTarget]:
        target = resolve_tab(tab_name)
        if target is None:
            # Previous tab stays visible
            logger.warning("Ignoring switch to unknown tab '%s'", tab_name)
            if asyncio.iscoroutine(detail_label):
                detail_label.close()
            self.set_breadcrumbs(list(DEFAULT_BREADCRUMBS))
            return None

        for button in self.page.query_all("tab-btn") + self.page.query_all("group-btn"):
            button.remove_class("active")
        for content in self.page.query_all("tab-content"):
            content.remove_class("active")

        for element_id in (f"tab-btn-{target.tab}", f"group-btn-{target.group}", f"tab-{target.tab}"):
            element = self.page.get_element_by_id(element_id)
            if element is not None:
                element.add_class("active")

        self.page.body.dataset["activeGroup"] = target.group
        self.page.body.dataset["activeTab"] = target.tab

        title = TAB_TITLES[target.tab]
        self.page.title = title
        title_element = self.dom.get("page_title")
        if title_element is not None:
            title_element.set_text(title)

        self.current_tab = target.tab
        self.current_group = target.group

        self.set_breadcrumbs(await self.build_breadcrumbs(target, detail_label))
        await self.load_tab_data(target.tab)
        return target
