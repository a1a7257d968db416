"""
amaise Agent - heartbeat-driven event delivery for the amaise Agent API.

Usage:
    from amaise_agent import ApiClient, EventSystem, get_settings

    settings = get_settings()
    client = ApiClient.from_settings(settings)

    async def on_pong(event):
        print(event.message)

    system = EventSystem(client, {"PongEvent": on_pong}, interval=settings.heartbeat_interval)
    system.start()
"""

__version__ = "0.1.0"

from .client import ApiClient, EventTransport
from .config import Settings, get_settings
from .events import CycleResult, EventSystem, HandlerRegistry, LoopState, normalize_event, normalize_event_type
from .models import AgentEvent, HeartbeatResponse

__all__ = [
    "__version__",
    "AgentEvent",
    "ApiClient",
    "CycleResult",
    "EventSystem",
    "EventTransport",
    "HandlerRegistry",
    "HeartbeatResponse",
    "LoopState",
    "Settings",
    "get_settings",
    "normalize_event",
    "normalize_event_type",
]
