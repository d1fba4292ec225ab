import logging
from typing import Iterable, List, Optional

import httpx

from crm.dashboard.api_client import APIRequestError, parse_json_response
from crm.dashboard.context import ModuleContext

logger = logging.getLogger(__name__)


def compute_progress(milestones: Iterable[dict]) -> int:
    """Percentage of completed milestones, 0 when there are none."""
    milestones = list(milestones)
    if not milestones:
        return 0
    completed = sum(1 for m in milestones if m.get("is_completed"))
    return round(completed / len(milestones) * 100)


def render_progress(ctx: ModuleContext, progress: int) -> None:
    bar = ctx.dom.get("progress_bar")
    if bar is not None and ctx.is_current():
        bar.style["width"] = f"{progress}%"
    ctx.set_text("progress_text", f"{progress}%")


async def load_project_milestones(ctx: ModuleContext, project_id) -> List[dict]:
    """Load milestones, then persist the recomputed progress onto the project."""
    try:
        data = await ctx.api.get_json(f"/api/projects/{project_id}/milestones")
    except (APIRequestError, httpx.HTTPError) as e:
        logger.error("Error loading milestones for project %s: %s", project_id, e)
        ctx.show_error("milestones", "milestones")
        return []

    milestones = data.get("milestones", [])
    ctx.render_into("milestones", "milestones.html", milestones=milestones)

    progress = compute_progress(milestones)
    render_progress(ctx, progress)

    response = await ctx.api.put(f"/api/projects/{project_id}", json={"progress": progress})
    if not response.is_success:
        logger.error("Could not persist progress %s for project %s", progress, project_id)
    else:
        projects = ctx.caches.get("projects_data")
        if projects is not None:
            projects.invalidate()
    return milestones


async def toggle_milestone(ctx: ModuleContext, project_id, milestone_id, completed: bool) -> List[dict]:
    parse_json_response(await ctx.api.put(
        f"/api/projects/{project_id}/milestones/{milestone_id}",
        json={"is_completed": bool(completed)},
    ))
    return await load_project_milestones(ctx, project_id)


async def add_milestone(ctx: ModuleContext, project_id, title: str, description: Optional[str] = None,
                        due_date: Optional[str] = None, deliverables: Optional[List[str]] = None) -> List[dict]:
    body = {"title": title}
    if description:
        body["description"] = description
    if due_date:
        body["due_date"] = due_date
    if deliverables:
        body["deliverables"] = deliverables

    parse_json_response(await ctx.api.post(f"/api/projects/{project_id}/milestones", json=body))
    ctx.notify("Milestone added", "success")
    return await load_project_milestones(ctx, project_id)


async def delete_milestone(ctx: ModuleContext, project_id, milestone_id) -> List[dict]:
    parse_json_response(await ctx.api.delete(f"/api/projects/{project_id}/milestones/{milestone_id}"))
    ctx.notify("Milestone deleted", "success")
    return await load_project_milestones(ctx, project_id)
