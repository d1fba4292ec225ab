import logging

import httpx

from crm.dashboard.api_client import APIRequestError
from crm.dashboard.context import ModuleContext

logger = logging.getLogger(__name__)


async def load_analytics(ctx: ModuleContext) -> None:
    try:
        data = await ctx.api.get_json("/api/admin/analytics")
    except (APIRequestError, httpx.HTTPError) as e:
        logger.error("Error loading analytics: %s", e)
        ctx.show_error("analytics_content", "analytics")
        return

    ctx.render_into("analytics_content", "analytics.html", analytics=data.get("analytics", {}))


async def load_system_status(ctx: ModuleContext) -> None:
    """API health as seen from the dashboard."""
    try:
        health = await ctx.api.get_json("/health")
    except (APIRequestError, httpx.HTTPError) as e:
        logger.error("Error loading system status: %s", e)
        ctx.show_error("system_status", "system status")
        return

    ctx.render_into("system_status", "system.html", health=health)
