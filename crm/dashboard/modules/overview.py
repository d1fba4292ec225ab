import logging

import httpx

from crm.dashboard.api_client import APIRequestError
from crm.dashboard.context import ModuleContext

logger = logging.getLogger(__name__)


async def load_overview(ctx: ModuleContext) -> None:
    """Headline counters for the overview tab."""
    try:
        data = await ctx.api.get_json("/api/admin/dashboard/stats")
    except (APIRequestError, httpx.HTTPError) as e:
        logger.error("Error loading overview: %s", e)
        ctx.show_error("overview_stats", "overview")
        return

    ctx.render_into("overview_stats", "overview.html", stats=data.get("stats", {}))
