"""
OAuth 2.0 client-credentials authentication for the Agent API.

ClientCredentialsAuth plugs into httpx as an auth flow: every outgoing API
request gets a bearer token (fetched and cached here) and, for multi-tenant
agents, the X-Tenant-ID header.
"""
import asyncio
import logging
import time
from typing import AsyncGenerator, Optional

import httpx

logger = logging.getLogger(__name__)

AGENTS_AUDIENCE = "https://api.amaise.com/AGENTS"

# Refresh this many seconds before the token actually expires
TOKEN_EXPIRY_MARGIN = 60.0


class ClientCredentialsAuth(httpx.Auth):
    """
    httpx auth flow using the OAuth 2.0 client-credentials grant.

    Credentials are sent in a JSON body to ``{auth_url}/oauth/token``, which is
    what the amaise auth server expects.

    Attributes:
        auth_url: Token endpoint base URL
        client_id: OAuth client ID from the workspace settings
        tenant_id: Optional tenant sent as X-Tenant-ID
    """

    def __init__(
        self,
        auth_url: str,
        client_id: str,
        client_secret: str,
        tenant_id: Optional[str] = None,
        audience: str = AGENTS_AUDIENCE,
        timeout: float = 30.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.auth_url = auth_url.rstrip("/")
        self.client_id = client_id
        self._client_secret = client_secret
        self.tenant_id = tenant_id
        self.audience = audience
        self._timeout = timeout
        self._http_client = http_client

        self._access_token: Optional[str] = None
        self._expires_at = 0.0
        self._lock = asyncio.Lock()

    @property
    def token_url(self) -> str:
        return f"{self.auth_url}/oauth/token"

    def _token_valid(self) -> bool:
        return self._access_token is not None and time.monotonic() < self._expires_at - TOKEN_EXPIRY_MARGIN

    async def get_access_token(self) -> str:
        """
        Return a cached access token, fetching a new one when missing or about to expire.

        Raises:
            ConnectionError: If the token endpoint fails or returns no access_token
        """
        # Concurrent acknowledgments share one token fetch
        async with self._lock:
            if not self._token_valid():
                await self._fetch_token()
            return self._access_token

    async def _fetch_token(self) -> None:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._timeout)

        body = {
            "grant_type": "client_credentials",
            "client_id": self.client_id,
            "client_secret": self._client_secret,
            "audience": self.audience,
        }
        try:
            response = await self._http_client.post(self.token_url, json=body)
        except httpx.HTTPError as e:
            raise ConnectionError(f"Failed to obtain access token: {e}") from e

        if response.status_code != 200:
            raise ConnectionError(f"Failed to obtain access token: {response.status_code} - {response.text}")

        data = response.json()
        access_token = data.get("access_token")
        if not isinstance(access_token, str):
            raise ConnectionError("OAuth token response is missing access_token")

        self._access_token = access_token
        self._expires_at = time.monotonic() + float(data.get("expires_in", 3600))
        logger.debug(f"Fetched access token for client {self.client_id}")

    async def async_auth_flow(self, request: httpx.Request) -> AsyncGenerator[httpx.Request, httpx.Response]:
        token = await self.get_access_token()
        request.headers["Authorization"] = f"Bearer {token}"
        if self.tenant_id:
            request.headers["X-Tenant-ID"] = self.tenant_id
        yield request

    async def aclose(self) -> None:
        """Close the token HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None
