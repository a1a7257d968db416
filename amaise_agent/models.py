"""
Wire DTOs for the amaise Agent API.

Field names are snake_case in Python and camelCase on the wire. Event envelopes
keep every type-specific payload field the server sends, so handlers can read
e.g. ``event.legalCaseId`` or ``event.model_extra["sourceFileId"]``.
"""
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class BaseDTO(BaseModel):
    """
    Base configuration for all DTOs.

    - Aliases are generated in camelCase for JSON serialization.
    - Allows population by field name (snake_case) in Python code.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class AgentEvent(BaseDTO):
    """
    A domain event delivered by heartbeat.

    Fields:
        type: Event class discriminator (wire key ``c``), e.g. "PongEvent".
              May arrive with a leading marker such as ".PongEvent".
        id: Token to acknowledge the event with. Informational events carry none.
        tenant_id: Tenant the event belongs to, if any.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
        frozen=True,
    )

    type: str = Field(..., alias="c", description="Event type discriminator")
    id: Optional[str] = Field(default=None, description="Acknowledgment token")
    tenant_id: Optional[str] = Field(default=None, description="Tenant ID for multi-tenant agents")

    @property
    def payload(self) -> dict:
        """Type-specific fields of the event."""
        return dict(self.model_extra or {})


class HeartbeatRequest(BaseDTO):
    """Body of a heartbeat poll."""
    agent_sdk_version: str = Field(..., description="Client version reported to the server")


class HeartbeatResponse(BaseDTO):
    """Heartbeat result. ``events`` may be absent when nothing is queued."""
    events: Optional[List[AgentEvent]] = Field(default=None, description="Queued events")


class AcknowledgeEventRequest(BaseDTO):
    """Body of an acknowledgment call."""
    event_id: str = Field(..., description="ID of the delivered event")


class DebugPingRequest(BaseDTO):
    """Body of a debug ping; the server answers with a PongEvent on a later heartbeat."""
    message: str = Field(default="ping", description="Echoed back in the PongEvent")
