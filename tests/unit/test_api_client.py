"""
Dashboard HTTP client: envelopes, session expiry, the auth probe and downloads
"""
import httpx
import pytest

from crm.config import AUTH_COOKIE_NAME
from crm.dashboard.api_client import APIClient, APIRequestError, parse_api_response


def make_client(handler, **kwargs) -> APIClient:
    return APIClient(base_url="http://crm.test", token="tok", transport=httpx.MockTransport(handler), **kwargs)


# =============================================================================
# RESPONSE PARSING
# =============================================================================

class TestParseResponse:
    def test_unwraps_success_envelope(self):
        response = httpx.Response(200, json={"success": True, "data": {"id": 1}})
        assert parse_api_response(response) == {"id": 1}

    def test_passes_plain_bodies_through(self):
        response = httpx.Response(200, json=[{"id": 1}])
        assert parse_api_response(response) == [{"id": 1}]

    def test_error_envelope_raises_with_code(self):
        response = httpx.Response(404, json={"success": False, "error": "Project not found", "code": "PROJECT_NOT_FOUND"})
        with pytest.raises(APIRequestError) as exc:
            parse_api_response(response)
        assert exc.value.status_code == 404
        assert exc.value.code == "PROJECT_NOT_FOUND"
        assert exc.value.message == "Project not found"


# =============================================================================
# SESSION EXPIRY
# =============================================================================

class TestSessionExpiry:
    async def test_token_expired_clears_cookies_and_notifies(self):
        notices = []
        expired = []

        def handler(request):
            assert request.headers["cookie"] == f"{AUTH_COOKIE_NAME}=tok"
            return httpx.Response(401, json={"success": False, "error": "Token expired", "code": "TOKEN_EXPIRED"})

        async def on_expired():
            expired.append(True)

        api = make_client(handler, on_session_expired=on_expired, notify=lambda m, k: notices.append((m, k)))
        response = await api.get("/api/admin/leads")

        assert response.status_code == 401
        assert api.session_expired
        assert expired == [True]
        assert notices[0][1] == "error"
        assert AUTH_COOKIE_NAME not in api._client.cookies
        await api.aclose()

    async def test_other_401_codes_do_not_expire_the_session(self):
        expired = []

        def handler(request):
            return httpx.Response(401, json={"success": False, "error": "Invalid credentials", "code": "INVALID_CREDENTIALS"})

        api = make_client(handler, on_session_expired=lambda: expired.append(True))
        await api.post("/api/auth/login", json={})

        assert not api.session_expired
        assert expired == []
        assert api._client.cookies.get(AUTH_COOKIE_NAME) == "tok"
        await api.aclose()


# =============================================================================
# AUTH PROBE
# =============================================================================

class TestAuthProbe:
    async def test_retries_while_service_unavailable(self):
        statuses = iter([503, 503, 200])
        calls = []

        def handler(request):
            calls.append(request.url.path)
            return httpx.Response(next(statuses), json=[])

        api = make_client(handler)
        assert await api.probe_admin_session(attempts=5, delay=0)
        assert len(calls) == 3
        await api.aclose()

    async def test_gives_up_after_attempts(self):
        calls = []

        def handler(request):
            calls.append(1)
            return httpx.Response(503, json={"success": False, "error": "starting"})

        api = make_client(handler)
        assert not await api.probe_admin_session(attempts=3, delay=0)
        assert len(calls) == 3
        await api.aclose()

    async def test_unauthorized_is_not_retried(self):
        calls = []

        def handler(request):
            calls.append(1)
            return httpx.Response(401, json={"success": False, "error": "Missing token", "code": "TOKEN_MISSING"})

        api = make_client(handler)
        assert not await api.probe_admin_session(attempts=5, delay=0)
        assert len(calls) == 1
        await api.aclose()

    async def test_connection_errors_are_retried(self):
        calls = []

        def handler(request):
            calls.append(1)
            if len(calls) == 1:
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(200, json=[])

        api = make_client(handler)
        assert await api.probe_admin_session(attempts=3, delay=0)
        assert len(calls) == 2
        await api.aclose()


# =============================================================================
# DOWNLOADS
# =============================================================================

class TestDownload:
    async def test_writes_response_body(self, tmp_path):
        def handler(request):
            return httpx.Response(200, content=b"%PDF-1.4 brief")

        api = make_client(handler)
        path = await api.download("/api/uploads/1/download", tmp_path / "brief.pdf")

        assert path.read_bytes() == b"%PDF-1.4 brief"
        await api.aclose()

    async def test_error_raises_without_writing(self, tmp_path):
        def handler(request):
            return httpx.Response(404, json={"success": False, "error": "File not found", "code": "FILE_NOT_FOUND"})

        api = make_client(handler)
        with pytest.raises(APIRequestError):
            await api.download("/api/uploads/9/download", tmp_path / "missing.pdf")
        assert not (tmp_path / "missing.pdf").exists()
        await api.aclose()
