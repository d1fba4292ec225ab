from typing import Any, AsyncIterator, Dict, Optional

from fastapi import APIRouter, Body, Depends, Request, status
import httpx
import logging

from crm.auth.dependencies import get_token, require_admin
from crm.auth.schemas import Principal
from crm.dashboard.actions import ActionPayloadError, as_bool
from crm.dashboard.api_client import APIClient, APIRequestError
from crm.dashboard.controller import DashboardController
from crm.dashboard.project_details.controller import NoProjectOpenError
from crm.errors import APIError, not_found, validation_error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/dashboard", tags=["Dashboard"])

# Base URL for in-process calls; the ASGI transport never resolves it
IN_PROCESS_BASE_URL = "http://crm.local"

# One controller per live admin session token
controllers: Dict[str, DashboardController] = {}


async def discard_controller(token: str) -> None:
    controller = controllers.pop(token, None)
    if controller is not None:
        await controller.close()


def evict_on_expiry(token: str):
    """Session-ended hook: drop the controller from the registry and close it."""
    async def evict(controller: DashboardController) -> None:
        if controllers.get(token) is controller:
            del controllers[token]
        logger.info("Dashboard session expired; closing its controller")
        await controller.close()
    return evict


async def get_controller(
    request: Request,
    token: str = Depends(get_token),
    current_user: Principal = Depends(require_admin())
) -> AsyncIterator[DashboardController]:
    controller = controllers.get(token)
    if controller is not None and controller.authenticated:
        yield controller
        return

    # A registered controller that lost its session is replaced
    await discard_controller(token)

    api = APIClient(
        base_url=IN_PROCESS_BASE_URL,
        token=token,
        transport=httpx.ASGITransport(app=request.app),
    )
    controller = DashboardController(api)
    controller.on_session_ended = evict_on_expiry(token)
    await controller.init()

    if not controller.authenticated:
        # Answer with the auth gate, keep nothing
        try:
            yield controller
        finally:
            await controller.close()
        return

    controllers[token] = controller
    logger.info("Started dashboard session for %s", current_user.email)
    yield controller


def _as_api_error(error: APIRequestError) -> APIError:
    return APIError(status_code=error.status_code, detail=error.message, code=error.code)


def _result_payload(result: Any) -> Any:
    if isinstance(result, (dict, list, str, int, float, bool)):
        return result
    return None


@router.get("/state")
async def get_state(controller: DashboardController = Depends(get_controller)):
    return {"state": controller.state()}


@router.post("/tabs/{tab}")
async def switch_tab(tab: str, controller: DashboardController = Depends(get_controller)):
    """Unknown tabs leave the current tab in place."""
    await controller.switch_tab(tab)
    return {"state": controller.state()}


@router.post("/actions/{action}")
async def dispatch_action(
    action: str,
    payload: Optional[Dict[str, Any]] = Body(None),
    controller: DashboardController = Depends(get_controller)
):
    """Run a ``data-action``; ``confirmed: true`` answers the confirm prompt."""
    if not controller.dispatcher.has(action):
        raise not_found("Action")

    payload = dict(payload or {})
    confirmed = as_bool(payload.pop("confirmed", False))

    try:
        result = await controller.dispatch(action, payload, confirm=lambda message: confirmed)
    except APIRequestError as e:
        raise _as_api_error(e)
    except ActionPayloadError as e:
        raise validation_error(str(e))
    except NoProjectOpenError as e:
        raise APIError(status_code=status.HTTP_409_CONFLICT, detail=str(e), code="NO_PROJECT_OPEN")

    return {
        "success": True,
        "confirmed": confirmed or not controller.dispatcher.requires_confirmation(action),
        "result": _result_payload(result),
        "state": controller.state(),
    }


@router.post("/projects/{project_id}")
async def open_project(project_id: int, controller: DashboardController = Depends(get_controller)):
    try:
        project = await controller.show_project_details(project_id)
    except APIRequestError as e:
        raise _as_api_error(e)

    if project is None:
        raise not_found("Project")
    return {"state": controller.state()}


@router.delete("/session")
async def end_session(
    token: str = Depends(get_token),
    current_user: Principal = Depends(require_admin())
):
    await discard_controller(token)
    return {"success": True, "message": "Dashboard session closed"}
