"""
Ad hoc requests tab: client change requests, their quotes and status.
"""
import logging
from typing import List, Optional

import httpx

from crm.dashboard.actions import as_amount
from crm.dashboard.api_client import APIRequestError, parse_json_response
from crm.dashboard.context import ModuleContext

logger = logging.getLogger(__name__)

REQUEST_STATUS_OPTIONS = [
    "submitted", "reviewing", "quoted", "approved", "in_progress", "completed", "declined",
]


async def load_requests(ctx: ModuleContext) -> List[dict]:
    try:
        data = await ctx.api.get_json("/api/ad-hoc-requests")
    except (APIRequestError, httpx.HTTPError) as e:
        logger.error("Error loading ad hoc requests: %s", e)
        ctx.show_error("requests_table", "requests")
        return []

    requests = data.get("requests", [])
    ctx.render_into("requests_table", "requests.html", requests=requests, status_options=REQUEST_STATUS_OPTIONS)
    return requests


async def update_request_status(ctx: ModuleContext, request_id, status: str) -> dict:
    result = parse_json_response(
        await ctx.api.put(f"/api/ad-hoc-requests/{request_id}", json={"status": status})
    )
    ctx.notify("Request updated", "success")
    await load_requests(ctx)
    return result


async def quote_request(ctx: ModuleContext, request_id, quoted_price, estimated_hours: Optional[str] = None) -> dict:
    """Price the request and move it to ``quoted`` for the client to answer."""
    body = {"status": "quoted", "quoted_price": as_amount(quoted_price, "quoted_price")}
    if estimated_hours not in (None, ""):
        body["estimated_hours"] = as_amount(estimated_hours, "estimated_hours")

    result = parse_json_response(await ctx.api.put(f"/api/ad-hoc-requests/{request_id}", json=body))
    ctx.notify("Quote sent", "success")
    await load_requests(ctx)
    return result
