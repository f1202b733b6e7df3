"""Tests for the BioTime HTTP client."""

import httpx
import pytest

from app.api.services.biotime_client import AUTH_ENDPOINT, BioTimeClient
from app.core.exceptions import AuthError, PermanentRequestError, TransientNetworkError

EMPLOYEES = "personnel/api/employees/"


class FakeBioTime:
    """Scriptable BioTime server for httpx.MockTransport."""

    def __init__(self, pages=None, auth_status=200):
        self.pages = list(pages or [])
        self.auth_status = auth_status
        self.auth_calls = 0
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith(AUTH_ENDPOINT):
            self.auth_calls += 1
            if self.auth_status != 200:
                return httpx.Response(self.auth_status, json={"detail": "bad credentials"})
            return httpx.Response(200, json={"token": f"token-{self.auth_calls}"})

        self.requests.append(request)
        response = self.pages.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def make_client(settings):
    def factory(server: FakeBioTime) -> BioTimeClient:
        return BioTimeClient(settings, transport=httpx.MockTransport(server))

    return factory


class TestAuthentication:
    """Tests for token acquisition."""

    @pytest.mark.asyncio
    async def test_authenticate_stores_token(self, make_client):
        server = FakeBioTime()
        client = make_client(server)

        token = await client.authenticate()

        assert token == "token-1"
        assert client.has_token is True
        await client.aclose()

    @pytest.mark.asyncio
    async def test_rejected_credentials(self, make_client):
        """Test a non-200 token answer raises AuthError."""
        client = make_client(FakeBioTime(auth_status=400))

        with pytest.raises(AuthError):
            await client.authenticate()
        assert client.has_token is False
        await client.aclose()

    @pytest.mark.asyncio
    async def test_missing_token(self, settings):
        """Test a 200 answer without a token raises AuthError."""
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json={}))
        client = BioTimeClient(settings, transport=transport)

        with pytest.raises(AuthError):
            await client.authenticate()
        await client.aclose()


class TestGetPage:
    """Tests for single-page requests and error mapping."""

    @pytest.mark.asyncio
    async def test_lazy_auth_and_header(self, make_client):
        """Test the first request authenticates and sends the token."""
        server = FakeBioTime(pages=[httpx.Response(200, json={"count": 0, "data": []})])
        client = make_client(server)

        body = await client.get_page(EMPLOYEES, params={"page": 1, "page_size": 50})

        assert body == {"count": 0, "data": []}
        assert server.auth_calls == 1
        request = server.requests[0]
        assert request.headers["Authorization"] == "JWT token-1"
        assert request.url.params["page_size"] == "50"
        await client.aclose()

    @pytest.mark.asyncio
    async def test_reauthenticates_once_on_401(self, make_client):
        """Test a 401 refreshes the token and replays the request."""
        server = FakeBioTime(pages=[
            httpx.Response(401),
            httpx.Response(200, json={"data": [{"id": 1}]}),
        ])
        client = make_client(server)
        await client.authenticate()

        body = await client.get_page(EMPLOYEES)

        assert body["data"] == [{"id": 1}]
        assert server.auth_calls == 2
        assert server.requests[1].headers["Authorization"] == "JWT token-2"
        await client.aclose()

    @pytest.mark.asyncio
    async def test_second_401_is_auth_error(self, make_client):
        server = FakeBioTime(pages=[httpx.Response(401), httpx.Response(401)])
        client = make_client(server)

        with pytest.raises(AuthError):
            await client.get_page(EMPLOYEES)
        assert client.has_token is False
        await client.aclose()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code", [429, 500, 502, 503])
    async def test_retryable_status_is_transient(self, make_client, status_code):
        client = make_client(FakeBioTime(pages=[httpx.Response(status_code)]))

        with pytest.raises(TransientNetworkError) as exc_info:
            await client.get_page(EMPLOYEES)
        assert exc_info.value.status_code == status_code
        await client.aclose()

    @pytest.mark.asyncio
    async def test_timeout_is_transient(self, make_client):
        client = make_client(FakeBioTime(pages=[httpx.ReadTimeout("slow")]))

        with pytest.raises(TransientNetworkError):
            await client.get_page(EMPLOYEES, timeout=1.0)
        await client.aclose()

    @pytest.mark.asyncio
    async def test_connection_reset_is_transient(self, make_client):
        client = make_client(FakeBioTime(pages=[httpx.ConnectError("reset by peer")]))

        with pytest.raises(TransientNetworkError):
            await client.get_page(EMPLOYEES)
        await client.aclose()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code", [400, 403, 404])
    async def test_client_error_is_permanent(self, make_client, status_code):
        client = make_client(FakeBioTime(pages=[httpx.Response(status_code)]))

        with pytest.raises(PermanentRequestError):
            await client.get_page(EMPLOYEES)
        await client.aclose()

    @pytest.mark.asyncio
    async def test_non_json_body_is_permanent(self, make_client):
        client = make_client(FakeBioTime(pages=[httpx.Response(200, text="<html>oops</html>")]))

        with pytest.raises(PermanentRequestError):
            await client.get_page(EMPLOYEES)
        await client.aclose()

    @pytest.mark.asyncio
    async def test_non_object_body_is_permanent(self, make_client):
        """Test a bare JSON list is not a page envelope."""
        client = make_client(FakeBioTime(pages=[httpx.Response(200, json=[{"id": 1}])]))

        with pytest.raises(PermanentRequestError):
            await client.get_page(EMPLOYEES)
        await client.aclose()


class TestConnectionTest:
    """Tests for the connectivity check."""

    @pytest.mark.asyncio
    async def test_success(self, make_client):
        client = make_client(FakeBioTime(pages=[httpx.Response(200, json={"data": []})]))

        result = await client.test_connection()

        assert result["success"] is True
        await client.aclose()

    @pytest.mark.asyncio
    async def test_failure_is_reported_not_raised(self, make_client):
        client = make_client(FakeBioTime(auth_status=401))

        result = await client.test_connection()

        assert result["success"] is False
        assert "401" in result["message"]
        await client.aclose()
