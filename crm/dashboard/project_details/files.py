import logging
from typing import List

import httpx

from crm.dashboard.api_client import APIRequestError, parse_json_response
from crm.dashboard.context import ModuleContext

logger = logging.getLogger(__name__)


async def load_project_files(ctx: ModuleContext, project_id) -> List[dict]:
    try:
        data = await ctx.api.get_json(f"/api/uploads/project/{project_id}")
    except (APIRequestError, httpx.HTTPError) as e:
        logger.error("Error loading files for project %s: %s", project_id, e)
        ctx.show_error("files", "files")
        return []

    files = data.get("files", [])
    ctx.render_into("files", "project_files.html", files=files)
    return files


async def upload_project_file(ctx: ModuleContext, project_id, filename: str, content: bytes,
                              content_type: str = "application/octet-stream") -> List[dict]:
    parse_json_response(await ctx.api.post(
        f"/api/uploads/project/{project_id}",
        files={"files": (filename, content, content_type)},
    ))
    ctx.notify(f"Uploaded {filename}", "success")
    return await load_project_files(ctx, project_id)


async def toggle_file_share(ctx: ModuleContext, project_id, file_id, shared: bool) -> List[dict]:
    parse_json_response(await ctx.api.put(f"/api/uploads/file/{file_id}/share", json={"shared": bool(shared)}))
    return await load_project_files(ctx, project_id)


async def delete_project_file(ctx: ModuleContext, project_id, file_id) -> List[dict]:
    parse_json_response(await ctx.api.delete(f"/api/uploads/file/{file_id}"))
    ctx.notify("File deleted", "success")
    return await load_project_files(ctx, project_id)
