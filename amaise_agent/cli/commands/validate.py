"""
amaise-agent validate - End-to-end connectivity smoke test.

Authenticates, sends a debug ping, and polls heartbeat until the PongEvent
arrives. Only the PongEvent is acknowledged: this probe may run next to the
production agent, and other events must stay queued for it. Production
integrations acknowledge every event (see EventSystem).

CI grep markers: "Pong received" and "Validation successful".
"""
import asyncio
from typing import Optional

import typer

from ...client import ApiClient
from ...config import Settings
from ...events import normalize_event_type
from ..common import configure_logging, load_settings

DEFAULT_ATTEMPTS = 10


async def wait_for_pong(client: ApiClient, sdk_version: str, attempts: int, interval: float) -> None:
    """
    Ping, then poll until a PongEvent is received and acknowledged.

    Raises:
        RuntimeError: If no PongEvent arrives, or it has no id
    """
    typer.echo("Sending debug ping...")
    await client.debug_ping("ci-validation")

    # Give the server time to make the PongEvent visible before the first poll
    await asyncio.sleep(min(1.0, interval))

    for attempt in range(1, attempts + 1):
        response = await client.heartbeat(sdk_version)
        events = response.events or []
        typer.echo(f"Heartbeat attempt {attempt}/{attempts}: {len(events)} event(s)")

        pong = next((e for e in events if normalize_event_type(e.type) == "PongEvent"), None)
        if pong is not None:
            if not pong.id:
                raise RuntimeError("PongEvent missing id")
            await client.acknowledge_event(pong.id)
            typer.echo("Pong received")
            return

        if attempt < attempts:
            await asyncio.sleep(interval)

    raise RuntimeError(f"No PongEvent after {attempts} attempts")


async def _validate(settings: Settings, attempts: int, interval: float) -> None:
    async with ApiClient.from_settings(settings) as client:
        await wait_for_pong(client, settings.sdk_version, attempts, interval)


def validate_connection(
    attempts: int = typer.Option(
        DEFAULT_ATTEMPTS,
        "--attempts", "-n",
        help="Number of heartbeat polls before giving up.",
    ),
    interval_ms: Optional[int] = typer.Option(
        None,
        "--interval-ms", "-i",
        help="Delay between polls in milliseconds. Defaults to HEARTBEAT_INTERVAL_MS.",
    ),
):
    """
    Check credentials and the event round trip (ping -> PongEvent -> ack).
    """
    settings = load_settings()
    configure_logging(settings.log_level)
    interval = interval_ms / 1000 if interval_ms else settings.heartbeat_interval

    try:
        asyncio.run(_validate(settings, attempts, interval))
    except (ConnectionError, RuntimeError) as e:
        typer.echo(f"Validation failed: {e}", err=True)
        raise typer.Exit(1)

    typer.echo("Validation successful")
