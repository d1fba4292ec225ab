from crm.dashboard.dom import DOMCache, Page, create_dom_cache

SUBTABS = ["messages", "files", "milestones", "invoices"]

# Detail view fields, keyed the way the handler refers to them
PROJECT_DETAIL_SELECTORS = {
    "name": "pd-project-name",
    "client": "pd-client-name",
    "client_email": "pd-client-email",
    "company": "pd-company",
    "type": "pd-project-type",
    "status": "pd-status",
    "budget": "pd-budget",
    "timeline": "pd-timeline",
    "start_date": "pd-start-date",
    "end_date": "pd-end-date",
    "progress_bar": "pd-progress-bar",
    "progress_text": "pd-progress-text",
    "features": "pd-features",
    "description": "pd-description",
    "preview_url": "pd-preview-url",
    "settings": "pd-settings",
    "account_status": "pd-account-status",
    "messages": "pd-messages-list",
    "files": "pd-files-list",
    "milestones": "pd-milestones-list",
    "invoices": "pd-invoices-table",
    "invoice_totals": "pd-invoice-totals",
}


def subtab_button_id(name: str) -> str:
    return f"pd-subtab-btn-{name}"


def subtab_content_id(name: str) -> str:
    return f"pd-subtab-{name}"


def get_project_detail_dom(page: Page) -> DOMCache:
    return create_dom_cache(page, PROJECT_DETAIL_SELECTORS)
