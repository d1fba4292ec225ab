from crm.dashboard.dom import Page
from crm.dashboard.router import ALL_TABS, TAB_GROUPS, TAB_TITLES
from crm.dashboard.project_details.dom_cache import (
    PROJECT_DETAIL_SELECTORS, SUBTABS, subtab_button_id, subtab_content_id
)

# Container key -> (element id, owning tab)
CONTAINERS = {
    "overview_stats": ("overview-stats", "overview"),
    "analytics_content": ("analytics-content", "analytics"),
    "system_status": ("system-status", "system"),
    "projects_table": ("projects-table-body", "projects"),
    "tasks_table": ("tasks-table-body", "tasks"),
    "requests_table": ("requests-table-body", "requests"),
    "leads_stats": ("leads-stats", "leads"),
    "leads_table": ("leads-table-body", "leads"),
    "leads_contacts_table": ("leads-contacts-table-body", "leads"),
    "contacts_table": ("contacts-table-body", "contacts"),
    "clients_table": ("clients-table-body", "clients"),
    "client_detail": ("client-detail-content", "client-detail"),
    "invoices_stats": ("invoices-stats", "invoices"),
    "invoices_table": ("invoices-table-body", "invoices"),
    "contracts_table": ("contracts-table-body", "contracts"),
    "files_table": ("files-table-body", "files"),
    "threads_list": ("threads-list", "messages"),
    "thread_view": ("thread-messages", "messages"),
}

DASHBOARD_SELECTORS = {
    "auth_gate": "auth-gate",
    "dashboard": "admin-dashboard",
    "loading": "loading-indicator",
    "page_title": "page-title",
    "breadcrumbs": "breadcrumbs",
    "notification": "notification",
}
DASHBOARD_SELECTORS.update({key: element_id for key, (element_id, _) in CONTAINERS.items()})


def build_admin_page() -> Page:
    """Build the admin dashboard skeleton: gate, chrome, tabs and containers."""
    page = Page(title=TAB_TITLES["overview"])

    page.create("auth-gate")
    page.create("admin-dashboard", classes=["hidden"])
    page.create("loading-indicator", classes=["hidden"])
    page.create("page-title", tag="h1").set_text(TAB_TITLES["overview"])
    page.create("breadcrumbs", tag="nav")
    page.create("notification", classes=["hidden"])

    for group_name in TAB_GROUPS:
        page.create(f"group-btn-{group_name}", tag="button", classes=["group-btn"], dataset={"group": group_name})

    for tab in ALL_TABS:
        page.create(f"tab-btn-{tab}", tag="button", classes=["tab-btn"], dataset={"tab": tab})
        page.create(f"tab-{tab}", tag="section", classes=["tab-content"])

    for element_id, tab in CONTAINERS.values():
        page.create(element_id, parent=f"tab-{tab}")

    for element_id in PROJECT_DETAIL_SELECTORS.values():
        page.create(element_id, parent="tab-project-detail")

    for name in SUBTABS:
        page.create(subtab_button_id(name), tag="button", classes=["pd-subtab-btn"],
                    parent="tab-project-detail", dataset={"subtab": name})
        page.create(subtab_content_id(name), classes=["pd-subtab"], parent="tab-project-detail")

    return page
