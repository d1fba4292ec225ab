import logging
from typing import List

import httpx

from crm.dashboard.api_client import APIRequestError, parse_json_response
from crm.dashboard.context import ModuleContext

logger = logging.getLogger(__name__)


def format_file_size(size) -> str:
    size = float(size or 0)
    for unit in ("B", "KB", "MB"):
        if size < 1024:
            return f"{size:.0f} {unit}" if unit == "B" else f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} GB"


async def load_files(ctx: ModuleContext) -> List[dict]:
    """Every uploaded file across projects."""
    try:
        data = await ctx.api.get_json("/api/uploads")
    except (APIRequestError, httpx.HTTPError) as e:
        logger.error("Error loading files: %s", e)
        ctx.show_error("files_table", "files")
        return []

    files = data.get("files", [])
    ctx.render_into("files_table", "files.html", files=files, format_file_size=format_file_size)
    return files


async def toggle_file_share(ctx: ModuleContext, file_id, shared) -> List[dict]:
    parse_json_response(await ctx.api.put(f"/api/uploads/file/{file_id}/share", json={"shared": bool(shared)}))
    return await load_files(ctx)


async def delete_file(ctx: ModuleContext, file_id) -> List[dict]:
    parse_json_response(await ctx.api.delete(f"/api/uploads/file/{file_id}"))
    ctx.notify("File deleted", "success")
    return await load_files(ctx)
