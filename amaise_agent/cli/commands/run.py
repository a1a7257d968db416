"""
amaise-agent run - Poll for events and log them until interrupted.
"""
import asyncio
import logging
import signal
from typing import Any, Dict, Optional

import typer

from ...client import ApiClient
from ...config import Settings
from ...events import EventHandler, EventSystem
from ...models import AgentEvent
from ..common import configure_logging, load_settings

logger = logging.getLogger(__name__)


def _lookup(payload: Dict[str, Any], path: str) -> Any:
    value: Any = payload
    for key in path.split("."):
        if not isinstance(value, dict):
            return None
        value = value.get(key)
    return value


def log_event(label: str, *fields: str) -> EventHandler:
    """Build a handler that logs selected (dotted) payload fields of an event."""
    def handler(event: AgentEvent) -> None:
        details = ", ".join(f"{field}={_lookup(event.payload, field)}" for field in fields)
        logger.info(f"{label} [{event.tenant_id or '-'}] {details}")
    return handler


# All event types the agent subscribes to need a handler here; anything else
# is still acknowledged but reported as unhandled.
DEFAULT_HANDLERS: Dict[str, EventHandler] = {
    "PongEvent": log_event("🏓 PongEvent", "message"),

    # legalcase CRUD through frontend
    "LegalCaseCreatedEvent": log_event("LegalCaseCreatedEvent", "legalCase.legalCaseId"),
    "LegalCaseStatusChangedEvent": log_event("LegalCaseStatusChangedEvent", "legalCaseId", "status"),
    "LegalCaseUpdatedEvent": log_event("LegalCaseUpdatedEvent", "legalCase.legalCaseId"),
    "LegalCaseDeletedEvent": log_event("LegalCaseDeletedEvent", "legalCaseId"),
    "NotebookUpdatedEvent": log_event("📓 NotebookUpdatedEvent", "legalCaseId"),

    # all sourcefiles processed
    "LegalCaseReadyEvent": log_event("🗂  LegalCaseReadyEvent", "legalCaseId", "legalCaseUrl"),

    # sourcefiles
    "SourceFileCreatedEvent": log_event("SourceFileCreatedEvent", "sourceFile.sourceFileId"),
    "SourceFileUpdatedEvent": log_event("SourceFileUpdatedEvent", "sourceFile.sourceFileId", "sourceFile.folder"),
    "SourceFileReadyEvent": log_event("📄 SourceFileReadyEvent", "sourceFileId"),
    "SourceFileFailedEvent": log_event("🙅 SourceFileFailedEvent", "sourceFileId"),

    # annotations
    "AnnotationCreatedEvent": log_event("AnnotationCreatedEvent", "annotation.legalCaseId"),
    "AnnotationUpdatedEvent": log_event("AnnotationUpdatedEvent", "annotation.legalCaseId"),
    "AnnotationDeletedEvent": log_event("AnnotationDeletedEvent", "annotation.legalCaseId"),

    # export
    "ExportCreatedEvent": log_event("🍻 ExportCreatedEvent", "export.exportId", "export.recipient"),
    "ExportSharedEvent": log_event("✉️  ExportSharedEvent", "export.exportId", "method", "email"),
    "ExportViewedEvent": log_event("📖 ExportViewedEvent", "export.legalCaseId"),

    # messaging
    "ThreadCreatedEvent": log_event("🧵 ThreadCreatedEvent", "subject"),
    "ThreadClosedEvent": log_event("🧵 ThreadClosedEvent", "subject", "attachments"),
}


async def serve(settings: Settings, interval: float, ping: bool) -> None:
    """Run the event system until SIGINT or SIGTERM."""
    loop = asyncio.get_running_loop()
    stop_event = asyncio.Event()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)

    async with ApiClient.from_settings(settings) as client:
        if ping:
            logger.info("🏓 Requesting a pong event")
            try:
                await client.debug_ping("amaise-agent")
            except ConnectionError as e:
                logger.warning(f"Debug ping failed: {e}")

        system = EventSystem(
            client,
            DEFAULT_HANDLERS,
            interval=interval,
            sdk_version=settings.sdk_version,
            handler_timeout=settings.handler_timeout,
        )
        system.start()
        try:
            await stop_event.wait()
        finally:
            system.stop()
            await system.wait_stopped()
            logger.info("👋 Agent stopped")


def run_agent(
    interval_ms: Optional[int] = typer.Option(
        None,
        "--interval-ms", "-i",
        help="Heartbeat interval in milliseconds. Defaults to HEARTBEAT_INTERVAL_MS (10 minutes).",
    ),
    ping: bool = typer.Option(
        False,
        "--ping",
        help="Request a PongEvent on startup to check the round trip.",
    ),
):
    """
    Poll the Agent API for events and log them.

    Every received event is acknowledged. Stop with Ctrl+C.
    """
    settings = load_settings()
    configure_logging(settings.log_level)

    interval = interval_ms / 1000 if interval_ms else settings.heartbeat_interval
    typer.echo(f"🚀 Starting agent (heartbeat every {interval:g}s)")

    try:
        asyncio.run(serve(settings, interval, ping))
    except KeyboardInterrupt:
        pass
