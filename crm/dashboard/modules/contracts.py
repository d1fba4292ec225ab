"""
Contracts tab: every contract with its signature state and lifecycle actions.
"""
import logging
from typing import List, Optional

import httpx

from crm.dashboard.api_client import APIRequestError, parse_json_response
from crm.dashboard.context import ModuleContext

logger = logging.getLogger(__name__)

CONTRACT_FILTERS = ["all", "draft", "sent", "viewed", "signed", "expired", "cancelled"]
AWAITING_SIGNATURE = {"sent", "viewed"}


def contract_actions(contract: dict) -> List[str]:
    status = contract.get("status")
    if status == "draft":
        return ["send-contract", "cancel-contract"]
    if status in AWAITING_SIGNATURE:
        return ["remind-contract", "expire-contract", "cancel-contract"]
    if status == "signed":
        return ["amend-contract"]
    return []


async def load_contracts(ctx: ModuleContext, status_filter: str = "all") -> List[dict]:
    params = {"status": status_filter} if status_filter in CONTRACT_FILTERS[1:] else None
    try:
        data = await ctx.api.get_json("/api/contracts", params=params)
    except (APIRequestError, httpx.HTTPError) as e:
        logger.error("Error loading contracts: %s", e)
        ctx.show_error("contracts_table", "contracts")
        return []

    contracts = data.get("contracts", [])
    ctx.render_into(
        "contracts_table", "contracts.html",
        contracts=[dict(c, actions=contract_actions(c)) for c in contracts],
        current_filter=status_filter if status_filter in CONTRACT_FILTERS else "all",
        filters=CONTRACT_FILTERS,
    )
    return contracts


async def _mutate(ctx: ModuleContext, method: str, url: str, message: str,
                  json: Optional[dict] = None, status_filter: str = "all") -> dict:
    result = parse_json_response(await ctx.api.request(method, url, json=json))
    ctx.notify(result.get("message") or message, "success")
    await load_contracts(ctx, status_filter)
    return result


async def send_contract(ctx: ModuleContext, contract_id, status_filter: str = "all") -> dict:
    return await _mutate(ctx, "POST", f"/api/contracts/{contract_id}/send", "Contract sent",
                         status_filter=status_filter)


async def remind_contract(ctx: ModuleContext, contract_id, status_filter: str = "all") -> dict:
    return await _mutate(ctx, "POST", f"/api/contracts/{contract_id}/remind", "Reminder sent",
                         status_filter=status_filter)


async def expire_contract(ctx: ModuleContext, contract_id, status_filter: str = "all") -> dict:
    return await _mutate(ctx, "POST", f"/api/contracts/{contract_id}/expire", "Contract expired",
                         status_filter=status_filter)


async def amend_contract(ctx: ModuleContext, contract_id, content: Optional[str] = None,
                         status_filter: str = "all") -> dict:
    return await _mutate(ctx, "POST", f"/api/contracts/{contract_id}/amendment", "Amendment created",
                         json={"content": content} if content else {}, status_filter=status_filter)


async def cancel_contract(ctx: ModuleContext, contract_id, status_filter: str = "all") -> dict:
    return await _mutate(ctx, "DELETE", f"/api/contracts/{contract_id}", "Contract cancelled",
                         status_filter=status_filter)
