import logging
from typing import Optional

import httpx

from crm.dashboard.api_client import APIRequestError, parse_json_response
from crm.dashboard.context import ModuleContext

logger = logging.getLogger(__name__)

LEAD_STATUS_OPTIONS = [
    "new", "contacted", "qualified", "in-progress", "converted", "lost", "on-hold", "cancelled",
]


async def load_leads(ctx: ModuleContext) -> list:
    try:
        data = await ctx.api.get_json("/api/admin/leads")
    except (APIRequestError, httpx.HTTPError) as e:
        logger.error("Error loading leads: %s", e)
        ctx.show_error("leads_table", "leads")
        return []

    leads = data.get("leads", [])
    ctx.render_into("leads_stats", "lead_stats.html", stats=data.get("stats", {}))
    ctx.render_into("leads_table", "leads.html", leads=leads, status_options=LEAD_STATUS_OPTIONS)
    return leads


async def update_lead_status(ctx: ModuleContext, lead_id, status: str,
                             cancelled_by: Optional[str] = None, cancellation_reason: Optional[str] = None) -> dict:
    body = {"status": status}
    if cancelled_by:
        body["cancelled_by"] = cancelled_by
        body["cancellation_reason"] = cancellation_reason

    result = parse_json_response(await ctx.api.put(f"/api/admin/leads/{lead_id}/status", json=body))
    ctx.notify(f"Lead status updated to {status}", "success")
    await load_leads(ctx)
    return result


async def invite_lead(ctx: ModuleContext, lead_id) -> dict:
    result = parse_json_response(await ctx.api.post(f"/api/admin/leads/{lead_id}/invite"))
    ctx.notify(result.get("message", "Invitation sent"), "success")
    await load_leads(ctx)
    return result


async def activate_lead(ctx: ModuleContext, lead_id) -> dict:
    result = parse_json_response(await ctx.api.post(f"/api/admin/leads/{lead_id}/activate"))
    ctx.notify("Lead activated as project", "success")
    projects = ctx.caches.get("projects_data")
    if projects is not None:
        projects.invalidate()
    await load_leads(ctx)
    return result
