import logging
from typing import List, Optional

import httpx

from crm.dashboard.api_client import APIRequestError
from crm.dashboard.context import ModuleContext
from crm.dashboard.store import ReadThroughCache

logger = logging.getLogger(__name__)

PROJECT_TYPE_LABELS = {
    "simple-site": "Simple Website",
    "business-site": "Business Website",
    "portfolio": "Portfolio",
    "e-commerce": "E-Commerce",
    "ecommerce": "E-Commerce",
    "web-app": "Web Application",
    "browser-extension": "Browser Extension",
    "other": "Other",
}


def format_project_type(value: Optional[str]) -> str:
    if not value:
        return "-"
    return PROJECT_TYPE_LABELS.get(value, value.replace("-", " ").replace("_", " ").title())


def projects_cache(ctx: ModuleContext) -> ReadThroughCache:
    """The ``projects_data`` read cache shared by the list and the detail view."""
    async def fetch() -> List[dict]:
        data = await ctx.api.get_json("/api/projects")
        return data.get("projects", [])

    return ctx.cache("projects_data", fetch)


async def load_projects(ctx: ModuleContext) -> List[dict]:
    try:
        projects = await projects_cache(ctx).get(refresh=True)
    except (APIRequestError, httpx.HTTPError) as e:
        logger.error("Error loading projects: %s", e)
        ctx.show_error("projects_table", "projects")
        return []

    ctx.render_into("projects_table", "projects.html", projects=projects, format_project_type=format_project_type)
    return projects
