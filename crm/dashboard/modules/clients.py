import logging

import httpx

from crm.dashboard.api_client import APIRequestError
from crm.dashboard.context import ModuleContext
from crm.dashboard.modules.projects import format_project_type

logger = logging.getLogger(__name__)


def client_display_name(client: dict) -> str:
    return client.get("company_name") or client.get("contact_name") or client.get("email") or "Client"


async def load_clients(ctx: ModuleContext) -> list:
    try:
        data = await ctx.api.get_json("/api/clients")
    except (APIRequestError, httpx.HTTPError) as e:
        logger.error("Error loading clients: %s", e)
        ctx.show_error("clients_table", "clients")
        return []

    clients = data.get("clients", [])
    ctx.render_into("clients_table", "clients.html", clients=clients)
    return clients


async def show_client_details(ctx: ModuleContext, client_id) -> None:
    """Open the client detail tab; its breadcrumb waits for the client's name."""
    async def resolve_label() -> str:
        try:
            data = await ctx.api.get_json(f"/api/clients/{client_id}")
        except (APIRequestError, httpx.HTTPError) as e:
            logger.error("Error loading client %s: %s", client_id, e)
            ctx.show_error("client_detail", "client")
            return "Client Details"

        client = data.get("client", {})
        ctx.render_into(
            "client_detail", "client_detail.html",
            client=client, projects=data.get("projects", []), format_project_type=format_project_type,
        )
        return client_display_name(client)

    await ctx.switch_tab("client-detail", detail_label=resolve_label())
