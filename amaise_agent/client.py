"""
Transport client for the amaise Agent API.

EventTransport is the contract the event system polls through; ApiClient is the
httpx-based implementation that talks to the Agent API with OAuth 2.0 auth and
tenant header injection.
"""
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import httpx

from .auth import ClientCredentialsAuth
from .config import Settings, check_required_settings
from .models import AcknowledgeEventRequest, DebugPingRequest, HeartbeatRequest, HeartbeatResponse

logger = logging.getLogger(__name__)

EVENTS_PATH = "/agents/v1/events"


class EventTransport(ABC):
    """
    Request/response channel the event system depends on.

    Implementations raise on failure; the event system decides what to log.
    """

    @abstractmethod
    async def heartbeat(self, sdk_version: str) -> HeartbeatResponse:
        """
        Poll for queued events.

        Args:
            sdk_version: Client version reported to the server

        Returns:
            HeartbeatResponse, whose ``events`` may be empty or absent

        Raises:
            ConnectionError: If the poll fails
        """
        pass

    @abstractmethod
    async def acknowledge_event(self, event_id: str) -> None:
        """
        Retire a delivered event so it is not redelivered.

        Raises:
            ConnectionError: If the acknowledgment fails
        """
        pass


class ApiClient(EventTransport):
    """
    Client for the Agent API events endpoints.

    All requests share one authenticated httpx.AsyncClient.

    Usage:
        async with ApiClient.from_settings(get_settings()) as client:
            response = await client.heartbeat("0.1.0")
    """

    def __init__(
        self,
        base_url: str,
        auth: Optional[httpx.Auth] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the API client.

        Args:
            base_url: Agent API base URL without the /agents/v1 suffix
            auth: httpx auth flow, normally a ClientCredentialsAuth
            timeout: HTTP request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._auth = auth
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            auth=auth,
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "ApiClient":
        """
        Build a client from agent settings.

        Raises:
            ValueError: If a required credential is not configured
        """
        check_required_settings(settings)
        auth = ClientCredentialsAuth(
            auth_url=settings.auth_url,
            client_id=settings.client_id,
            client_secret=settings.client_secret,
            tenant_id=settings.tenant_id,
            timeout=settings.http_timeout,
        )
        return cls(base_url=settings.api_url, auth=auth, timeout=settings.http_timeout)

    async def close(self):
        """Close the HTTP client."""
        await self._client.aclose()
        if isinstance(self._auth, ClientCredentialsAuth):
            await self._auth.aclose()

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def _post(self, path: str, body: Dict[str, Any]) -> httpx.Response:
        try:
            response = await self._client.post(f"{EVENTS_PATH}{path}", json=body)
        except httpx.HTTPError as e:
            raise ConnectionError(f"Request to {path} failed: {e}") from e

        if response.is_error:
            raise ConnectionError(f"Request to {path} failed: {response.status_code} - {response.text}")
        return response

    # Events

    async def heartbeat(self, sdk_version: str) -> HeartbeatResponse:
        request = HeartbeatRequest(agent_sdk_version=sdk_version)
        response = await self._post("/heartbeat", request.model_dump(by_alias=True))
        if not response.content:
            return HeartbeatResponse()
        return HeartbeatResponse.model_validate(response.json())

    async def acknowledge_event(self, event_id: str) -> None:
        request = AcknowledgeEventRequest(event_id=event_id)
        await self._post("/acknowledge", request.model_dump(by_alias=True))
        logger.debug(f"Acknowledged event {event_id}")

    async def debug_ping(self, message: str = "ping") -> None:
        """
        Ask the server to queue a PongEvent for this agent.

        Args:
            message: Text echoed back in the PongEvent
        """
        request = DebugPingRequest(message=message)
        await self._post("/debug/ping", request.model_dump(by_alias=True))
        logger.debug(f"Sent debug ping: {message}")
