import logging
from typing import List, Optional

import httpx

from crm.dashboard.api_client import APIRequestError, parse_json_response
from crm.dashboard.context import ModuleContext

logger = logging.getLogger(__name__)

NO_CLIENT_MESSAGE = "Invite the client first to start a conversation."


async def find_project_thread(ctx: ModuleContext, project_id) -> Optional[dict]:
    data = await ctx.api.get_json("/api/messages/threads", params={"project_id": project_id})
    threads = data.get("threads", [])
    return threads[0] if threads else None


async def load_project_messages(ctx: ModuleContext, project: dict) -> List[dict]:
    """Show the project's thread and mark it read."""
    if not project.get("client_id"):
        ctx.set_text("messages", NO_CLIENT_MESSAGE)
        return []

    try:
        thread = await find_project_thread(ctx, project["id"])
        if thread is None:
            ctx.render_into("messages", "thread.html", thread=None, messages=[])
            return []

        data = await ctx.api.get_json(f"/api/messages/threads/{thread['id']}/messages")
    except (APIRequestError, httpx.HTTPError) as e:
        logger.error("Error loading messages for project %s: %s", project.get("id"), e)
        ctx.show_error("messages", "messages")
        return []

    messages = data.get("messages", [])
    ctx.render_into("messages", "thread.html", thread=data.get("thread"), messages=messages)
    await ctx.api.put(f"/api/messages/threads/{thread['id']}/read")
    return messages


async def send_project_message(ctx: ModuleContext, project: dict, message: str) -> List[dict]:
    """Send, then reload the whole thread; the first message opens the thread."""
    if not project.get("client_id"):
        ctx.notify(NO_CLIENT_MESSAGE, "error")
        return []

    thread = await find_project_thread(ctx, project["id"])
    if thread is None:
        parse_json_response(await ctx.api.post("/api/messages/threads", json={
            "client_id": project["client_id"],
            "project_id": project["id"],
            "subject": project.get("project_name") or "Project discussion",
            "thread_type": "project",
            "message": message,
        }))
    else:
        parse_json_response(await ctx.api.post(
            f"/api/messages/threads/{thread['id']}/messages", json={"message": message}
        ))

    return await load_project_messages(ctx, project)
