import logging

import httpx

from crm.dashboard.api_client import APIRequestError, parse_json_response
from crm.dashboard.context import ModuleContext

logger = logging.getLogger(__name__)

CONTACT_STATUS_OPTIONS = ["new", "read", "replied", "archived"]


async def load_contacts(ctx: ModuleContext, target: str = "contacts_table") -> list:
    """Contact form submissions; the leads tab renders them under its own table."""
    try:
        data = await ctx.api.get_json("/api/admin/contact-submissions")
    except (APIRequestError, httpx.HTTPError) as e:
        logger.error("Error loading contacts: %s", e)
        ctx.show_error(target, "contacts")
        return []

    submissions = data.get("submissions", [])
    ctx.render_into(
        target, "contacts.html",
        submissions=submissions, stats=data.get("stats", {}), status_options=CONTACT_STATUS_OPTIONS,
    )
    return submissions


async def update_contact_status(ctx: ModuleContext, contact_id, status: str) -> dict:
    result = parse_json_response(
        await ctx.api.put(f"/api/admin/contact-submissions/{contact_id}/status", json={"status": status})
    )
    await load_contacts(ctx)
    return result


async def convert_contact(ctx: ModuleContext, contact_id) -> dict:
    result = parse_json_response(
        await ctx.api.post(f"/api/admin/contact-submissions/{contact_id}/convert-to-client")
    )
    ctx.notify("Contact converted to client", "success")
    await load_contacts(ctx)
    return result
