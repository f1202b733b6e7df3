"""HTTP client for the BioTime time-and-attendance API.

Handles token authentication, re-authentication on 401 and mapping of
transport/HTTP failures onto the sync error taxonomy. Paging and retry
policy live in the sync engine; this client performs exactly one request
per call (plus at most one re-authenticated replay).
"""

import logging
from typing import Any

import httpx

from app.core.config import Settings, get_settings
from app.core.exceptions import AuthError, PermanentRequestError, TransientNetworkError
from app.core.retry import is_retryable_status

logger = logging.getLogger(__name__)

AUTH_ENDPOINT = "jwt-api-token-auth/"
CONNECTION_TEST_ENDPOINT = "personnel/api/employees/"


class BioTimeClient:
    """Authenticated access to the BioTime REST endpoints.

    The bearer token is cached in memory only. It is fetched lazily on the
    first request and refreshed whenever the counterparty answers 401.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._token: str | None = None

    @property
    def base_url(self) -> str:
        return self._settings.biotime_base_url

    @property
    def has_token(self) -> bool:
        return self._token is not None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                verify=self._settings.biotime_verify_ssl,
                transport=self._transport,
                headers={"Content-Type": "application/json"},
            )
        return self._client

    async def aclose(self) -> None:
        """Close the underlying connection pool."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def invalidate_token(self) -> None:
        self._token = None

    async def authenticate(self) -> str:
        """Exchange the configured credentials for a token.

        Raises:
            AuthError: If the credentials are rejected or the token endpoint
                cannot be reached or returns no token
        """
        client = self._get_client()
        logger.info(f"Authenticating with BioTime API at {self.base_url}")

        try:
            response = await client.post(
                AUTH_ENDPOINT,
                json={
                    "username": self._settings.biotime_username,
                    "password": self._settings.biotime_password,
                },
                timeout=self._settings.biotime_auth_timeout_seconds,
            )
        except httpx.HTTPError as e:
            self._token = None
            raise AuthError(f"Authentication request failed: {e}") from e

        if response.status_code != 200:
            self._token = None
            raise AuthError(f"Authentication rejected with status {response.status_code}")

        try:
            token = response.json().get("token")
        except (ValueError, AttributeError) as e:
            self._token = None
            raise AuthError("Authentication response was not a JSON object") from e

        if not token:
            self._token = None
            raise AuthError("No token received from authentication")

        self._token = token
        logger.info("BioTime authentication successful")
        return token

    async def _send(
        self,
        endpoint: str,
        params: dict[str, Any] | None,
        timeout: float,
    ) -> httpx.Response:
        client = self._get_client()
        headers = {"Authorization": f"{self._settings.biotime_auth_scheme} {self._token}"}
        try:
            return await client.get(endpoint, params=params, headers=headers, timeout=timeout)
        except httpx.TimeoutException as e:
            raise TransientNetworkError(f"Timed out after {timeout}s requesting {endpoint}") from e
        except httpx.TransportError as e:
            raise TransientNetworkError(f"Connection error requesting {endpoint}: {e}") from e

    async def get_page(
        self,
        endpoint: str,
        params: dict[str, Any] | None = None,
        timeout: float = 30.0,
    ) -> dict[str, Any]:
        """Fetch one page from a list endpoint and return the decoded envelope.

        A 401 triggers one re-authentication and one replay of the request.

        Raises:
            AuthError: Re-authentication failed or the replay was also rejected
            TransientNetworkError: Timeout, connection failure, 429 or 5xx
            PermanentRequestError: Any other non-200 answer or a malformed body
        """
        if self._token is None:
            await self.authenticate()

        response = await self._send(endpoint, params, timeout)

        if response.status_code == 401:
            logger.warning(f"Token rejected on {endpoint}; re-authenticating")
            self.invalidate_token()
            await self.authenticate()
            response = await self._send(endpoint, params, timeout)
            if response.status_code == 401:
                self.invalidate_token()
                raise AuthError(f"Request to {endpoint} rejected after re-authentication")

        if response.status_code != 200:
            message = f"{endpoint} returned status {response.status_code}"
            if is_retryable_status(response.status_code):
                raise TransientNetworkError(message, status_code=response.status_code)
            raise PermanentRequestError(message, status_code=response.status_code)

        try:
            body = response.json()
        except ValueError as e:
            raise PermanentRequestError(f"{endpoint} returned a non-JSON body") from e

        if not isinstance(body, dict):
            raise PermanentRequestError(
                f"{endpoint} returned {type(body).__name__}, expected an object envelope"
            )
        return body

    async def test_connection(self) -> dict[str, Any]:
        """Authenticate and fetch a single record to prove connectivity."""
        try:
            await self.authenticate()
            await self.get_page(CONNECTION_TEST_ENDPOINT, params={"page": 1, "page_size": 1})
        except (AuthError, TransientNetworkError, PermanentRequestError) as e:
            logger.warning(f"BioTime connection test failed: {e}")
            return {"success": False, "message": str(e)}
        return {"success": True, "message": f"Connection successful - API endpoint: {CONNECTION_TEST_ENDPOINT}"}
