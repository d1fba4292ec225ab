import logging
from typing import Dict, List

import httpx

from crm.dashboard.api_client import APIRequestError, parse_json_response
from crm.dashboard.context import ModuleContext

logger = logging.getLogger(__name__)

TASK_STATUS_OPTIONS = ["pending", "in_progress", "blocked", "completed", "cancelled"]
OPEN_TASK_STATUSES = {"pending", "in_progress", "blocked"}


def count_tasks(tasks: List[dict]) -> Dict[str, int]:
    counts = {status: 0 for status in TASK_STATUS_OPTIONS}
    for task in tasks:
        status = task.get("status")
        counts[status] = counts.get(status, 0) + 1
    counts["open"] = sum(counts[status] for status in OPEN_TASK_STATUSES)
    return counts


async def load_tasks(ctx: ModuleContext) -> List[dict]:
    """Tasks across every project, soonest due first."""
    try:
        data = await ctx.api.get_json("/api/tasks")
    except (APIRequestError, httpx.HTTPError) as e:
        logger.error("Error loading tasks: %s", e)
        ctx.show_error("tasks_table", "tasks")
        return []

    tasks = data.get("tasks", [])
    ctx.render_into(
        "tasks_table", "tasks.html",
        tasks=tasks, counts=count_tasks(tasks), status_options=TASK_STATUS_OPTIONS,
    )
    return tasks


async def update_task_status(ctx: ModuleContext, task_id, status: str) -> dict:
    result = parse_json_response(await ctx.api.put(f"/api/tasks/{task_id}", json={"status": status}))
    ctx.notify("Task updated", "success")
    await load_tasks(ctx)
    return result
