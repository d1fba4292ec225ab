"""
HTTP client the dashboard uses to reach the REST API.

Every request carries the admin auth cookie. A 401 carrying one of the token
error codes is treated as an expired session: cookies are dropped and the
``on_session_expired`` callback runs.
"""
import inspect
import logging
from pathlib import Path
from typing import Any, Callable, Optional, Union

import aiofiles
import httpx
from tenacity import AsyncRetrying, RetryError, retry_if_exception_type, stop_after_attempt, wait_fixed

from crm.auth.utils import TOKEN_EXPIRED, TOKEN_INVALID, TOKEN_MISSING
from crm.config import API_BASE_URL, AUTH_COOKIE_NAME, AUTH_PROBE_ATTEMPTS, AUTH_PROBE_DELAY

logger = logging.getLogger(__name__)

SESSION_ERROR_CODES = {TOKEN_EXPIRED, TOKEN_MISSING, TOKEN_INVALID}
SESSION_CLOSED = "SESSION_CLOSED"

# Endpoint the admin auth probe hits
AUTH_PROBE_PATH = "/api/admin/leads"


class APIRequestError(Exception):
    def __init__(self, status_code: int, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.code = code


class ServiceUnavailable(Exception):
    """Raised inside the auth probe so tenacity retries a 503."""


def _error_body(response: httpx.Response) -> dict:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def parse_json_response(response: httpx.Response) -> Any:
    if not response.is_success:
        body = _error_body(response)
        message = body.get("error") or body.get("detail") or response.reason_phrase
        raise APIRequestError(response.status_code, str(message), body.get("code"))
    return response.json()


def parse_api_response(response: httpx.Response) -> Any:
    """Unwrap ``{"success": true, "data": ...}`` envelopes; other bodies pass through."""
    body = parse_json_response(response)
    if isinstance(body, dict) and body.get("success") is True and "data" in body:
        return body["data"]
    return body


class APIClient:
    def __init__(
        self,
        base_url: str = API_BASE_URL,
        token: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        on_session_expired: Optional[Callable[[], Any]] = None,
        notify: Optional[Callable[[str, str], Any]] = None,
    ):
        cookies = {AUTH_COOKIE_NAME: token} if token else None
        self._client = httpx.AsyncClient(base_url=base_url, transport=transport, cookies=cookies)
        self.on_session_expired = on_session_expired
        self.notify = notify
        self.session_expired = False

    @property
    def closed(self) -> bool:
        return self._client.is_closed

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    async def _handle_session_expiry(self, response: httpx.Response) -> None:
        code = _error_body(response).get("code")
        if code not in SESSION_ERROR_CODES:
            return

        logger.warning("Session expired (%s) on %s", code, response.request.url.path)
        self._client.cookies.clear()
        self.session_expired = True

        if self.notify is not None:
            self.notify("Your session has expired. Please log in again.", "error")
        if self.on_session_expired is not None:
            result = self.on_session_expired()
            if inspect.isawaitable(result):
                await result

    async def request(self, method: str, url: str, **kwargs) -> httpx.Response:
        if self.closed:
            raise APIRequestError(401, "Dashboard session has ended", SESSION_CLOSED)
        response = await self._client.request(method, url, **kwargs)
        if response.status_code == 401:
            await self._handle_session_expiry(response)
        return response

    async def get(self, url: str, **kwargs) -> httpx.Response:
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str, json: Any = None, **kwargs) -> httpx.Response:
        return await self.request("POST", url, json=json, **kwargs)

    async def put(self, url: str, json: Any = None, **kwargs) -> httpx.Response:
        return await self.request("PUT", url, json=json, **kwargs)

    async def delete(self, url: str, **kwargs) -> httpx.Response:
        return await self.request("DELETE", url, **kwargs)

    async def get_json(self, url: str, **kwargs) -> Any:
        return parse_json_response(await self.get(url, **kwargs))

    async def download(self, url: str, destination: Union[str, Path]) -> Path:
        """Fetch a file and save it to ``destination``."""
        response = await self.get(url)
        if not response.is_success:
            parse_json_response(response)

        destination = Path(destination)
        async with aiofiles.open(destination, "wb") as f:
            await f.write(response.content)
        return destination

    async def probe_admin_session(self, attempts: int = AUTH_PROBE_ATTEMPTS, delay: float = AUTH_PROBE_DELAY) -> bool:
        """Check the admin session, retrying while the backend is still starting."""
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(attempts),
                wait=wait_fixed(delay),
                retry=retry_if_exception_type((httpx.TransportError, ServiceUnavailable)),
            ):
                with attempt:
                    response = await self.get(AUTH_PROBE_PATH)
                    if response.status_code == 503:
                        raise ServiceUnavailable()
        except RetryError:
            logger.warning("Admin auth probe gave up after %d attempts", attempts)
            return False

        return response.is_success
