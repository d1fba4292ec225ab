"""
Support inbox: thread list, thread view, send and mark-read.

Messages are never appended locally. After the server acknowledges a send
the thread list and the open thread are reloaded in full.
"""
import logging
from typing import List, Optional

import httpx

from crm.dashboard.api_client import APIRequestError, parse_json_response
from crm.dashboard.context import ModuleContext

logger = logging.getLogger(__name__)


async def load_client_threads(ctx: ModuleContext, selected_thread_id=None) -> List[dict]:
    try:
        data = await ctx.api.get_json("/api/messages/threads")
    except (APIRequestError, httpx.HTTPError) as e:
        logger.error("Error loading threads: %s", e)
        ctx.show_error("threads_list", "messages")
        return []

    threads = data.get("threads", [])
    ctx.render_into(
        "threads_list", "threads.html",
        threads=threads, selected_thread_id=str(selected_thread_id) if selected_thread_id else None,
    )
    return threads


async def select_thread(ctx: ModuleContext, thread_id) -> Optional[dict]:
    """Render the thread's history and mark the client's messages read."""
    try:
        data = await ctx.api.get_json(f"/api/messages/threads/{thread_id}/messages")
    except (APIRequestError, httpx.HTTPError) as e:
        logger.error("Error loading thread %s: %s", thread_id, e)
        ctx.show_error("thread_view", "messages")
        return None

    ctx.render_into("thread_view", "thread.html", thread=data.get("thread"), messages=data.get("messages", []))

    response = await ctx.api.put(f"/api/messages/threads/{thread_id}/read")
    if not response.is_success:
        logger.error("Could not mark thread %s read", thread_id)
    return data


async def send_message(ctx: ModuleContext, thread_id, message: str) -> Optional[dict]:
    message = (message or "").strip()
    if not message:
        ctx.notify("Message cannot be empty", "error")
        return None

    parse_json_response(await ctx.api.post(f"/api/messages/threads/{thread_id}/messages", json={"message": message}))
    data = await select_thread(ctx, thread_id)
    await load_client_threads(ctx, selected_thread_id=thread_id)
    return data
