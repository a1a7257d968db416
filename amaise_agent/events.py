"""
Event system for the amaise agent.

Handles the heartbeat, event dispatch, and acknowledgement. Pass a handler map
keyed by event type name; unregistered events are logged and acknowledged
automatically.

Every event returned by heartbeat is acknowledged, including unregistered ones
and ones whose handler failed. Unacknowledged events accumulate server-side and
are redelivered after the server's redelivery timeout (about 5 minutes).

Usage:
    from amaise_agent import ApiClient, EventSystem, get_settings

    async def on_source_file_ready(event):
        print(f"SourceFile ready: {event.sourceFileId}")

    client = ApiClient.from_settings(get_settings())
    system = EventSystem(client, {"SourceFileReadyEvent": on_source_file_ready})
    system.start()      # first heartbeat runs immediately
    ...
    system.stop()       # in-flight cycle finishes, no new one starts
    await system.wait_stopped()
"""
import asyncio
import inspect
import logging
import re
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Set, Union

from . import __version__
from .client import EventTransport
from .config import DEFAULT_HEARTBEAT_INTERVAL_MS
from .models import AgentEvent, HeartbeatResponse

logger = logging.getLogger(__name__)

# Handlers may be plain functions or coroutines
EventHandler = Callable[[AgentEvent], Union[Awaitable[None], None]]

DEFAULT_HANDLER_TIMEOUT = 60.0

# The API serializes the discriminator in minimal-class form (".PongEvent")
_TYPE_MARKER = re.compile(r"^[^0-9A-Za-z]")


def normalize_event_type(event_type: str) -> str:
    """
    Strip one leading marker character from an event type name.

    ".PongEvent" becomes "PongEvent"; "PongEvent" is returned unchanged.
    """
    return _TYPE_MARKER.sub("", event_type, count=1)


def normalize_event(event: AgentEvent) -> AgentEvent:
    """Return the event with its type in canonical form. Other fields are untouched."""
    canonical = normalize_event_type(event.type)
    if canonical == event.type:
        return event
    return event.model_copy(update={"type": canonical})


class HandlerRegistry:
    """
    Read-only mapping of event type name to handler.

    Built once from the mapping given at construction. Keys are normalized, so
    ".PongEvent" and "PongEvent" register the same type.
    """

    def __init__(self, handlers: Optional[Mapping[str, EventHandler]] = None):
        normalized: Dict[str, EventHandler] = {}
        for event_type, handler in (handlers or {}).items():
            normalized[normalize_event_type(event_type)] = handler
        self._handlers = MappingProxyType(normalized)

    def lookup(self, event_type: str) -> Optional[EventHandler]:
        """Get the handler for an event type, or None if nothing is registered."""
        return self._handlers.get(event_type)

    @property
    def types(self) -> List[str]:
        return list(self._handlers)

    def __contains__(self, event_type: object) -> bool:
        return event_type in self._handlers

    def __len__(self) -> int:
        return len(self._handlers)


class LoopState(str, Enum):
    """Lifecycle state of an EventSystem."""
    IDLE = "idle"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"


@dataclass
class CycleResult:
    """Counters for one heartbeat cycle."""
    received: int = 0
    dispatched: int = 0
    unhandled: int = 0
    handler_failures: int = 0
    acknowledged: int = 0
    ack_failures: int = 0
    missing_ids: int = 0
    failed: bool = False


class EventSystem:
    """
    Heartbeat polling loop with sequential dispatch and concurrent acknowledgment.

    One cycle:
    1. Poll heartbeat with the client version
    2. Normalize each event type
    3. Call handlers one at a time in delivery order; a failing handler is logged
       and never blocks other events
    4. Acknowledge every event with an id, all at once
    5. Log events without an id (they cannot be acknowledged)

    The next cycle is armed on the event loop timer only after the current one
    finishes, so cycles never overlap. No failure inside a cycle stops the loop;
    only stop() does.

    Attributes:
        interval: Seconds between the end of one cycle and the start of the next
        sdk_version: Version string sent with every heartbeat
        handler_timeout: Seconds an async handler may run before it counts as failed
            (None disables the bound)
    """

    def __init__(
        self,
        transport: EventTransport,
        handlers: Union[Mapping[str, EventHandler], HandlerRegistry, None] = None,
        interval: Optional[float] = None,
        sdk_version: Optional[str] = None,
        handler_timeout: Optional[float] = DEFAULT_HANDLER_TIMEOUT,
    ):
        """
        Initialize the event system.

        Args:
            transport: Client providing heartbeat() and acknowledge_event()
            handlers: Event type name -> handler. Build the full map before start()
                so no early events are missed.
            interval: Heartbeat interval in seconds (default: 10 minutes)
            sdk_version: Version sent in each heartbeat (default: package version)
            handler_timeout: Bound for a single async handler call, in seconds
        """
        if isinstance(handlers, HandlerRegistry):
            self.registry = handlers
        else:
            self.registry = HandlerRegistry(handlers)

        self._transport = transport
        self.interval = interval if interval is not None else DEFAULT_HEARTBEAT_INTERVAL_MS / 1000
        self.sdk_version = sdk_version or __version__
        self.handler_timeout = handler_timeout

        # Runtime state
        self._started = False
        self._stopped = False
        self._generation = 0
        self._active_cycles = 0
        self._timer: Optional[asyncio.TimerHandle] = None
        self._event_loop: Optional[asyncio.AbstractEventLoop] = None
        self._tasks: Set[asyncio.Task] = set()

    # =========================================================================
    # Lifecycle
    # =========================================================================

    @property
    def state(self) -> LoopState:
        if self._stopped:
            return LoopState.STOPPING if self._active_cycles else LoopState.STOPPED
        if not self._started:
            return LoopState.IDLE
        return LoopState.RUNNING

    @property
    def is_running(self) -> bool:
        return self.state == LoopState.RUNNING

    def start(self) -> None:
        """
        Start the polling loop. Calls heartbeat immediately, then on interval.

        Must be called from a running asyncio event loop.

        Raises:
            RuntimeError: If there is no running event loop
        """
        self._event_loop = asyncio.get_running_loop()
        if self.is_running:
            logger.warning("Event system already running, call stop() before start()")

        self._started = True
        self._stopped = False
        # Only the newest chain keeps a pending timer
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._generation += 1
        logger.info(f"Starting event system (interval: {self.interval}s, handlers: {self.registry.types})")
        self._spawn_cycle(self._generation)

    def stop(self) -> None:
        """
        Stop the polling loop. In-flight cycles finish but no new ones start.

        Safe to call before start() and more than once.
        """
        if not self._stopped and self._started:
            logger.info("Stopping event system")
        self._stopped = True
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    async def wait_stopped(self) -> None:
        """Wait for any in-flight cycle to complete."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def __aenter__(self) -> "EventSystem":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()
        await self.wait_stopped()

    def _spawn_cycle(self, generation: int) -> None:
        self._timer = None
        task = self._event_loop.create_task(self._loop(generation))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _loop(self, generation: int) -> None:
        self._active_cycles += 1
        try:
            await self.process_heartbeat()
        finally:
            self._active_cycles -= 1

        # A restart in the meantime owns the schedule now
        if not self._stopped and generation == self._generation:
            self._timer = self._event_loop.call_later(self.interval, self._spawn_cycle, generation)

    # =========================================================================
    # Cycle
    # =========================================================================

    async def process_heartbeat(self) -> CycleResult:
        """
        Run one heartbeat cycle: poll, dispatch, acknowledge.

        Never raises; failures are logged and counted in the returned CycleResult.
        """
        result = CycleResult()
        try:
            response = await self._transport.heartbeat(self.sdk_version)
            events = self._events_from(response)
            result.received = len(events)

            if not events:
                return result

            logger.info(f"Received {len(events)} event(s)")

            normalized = [normalize_event(event) for event in events]

            # Dispatch handlers sequentially, then ack all in parallel
            for event in normalized:
                await self._dispatch(event, result)

            await self._acknowledge_all(normalized, result)

            for event in normalized:
                if not event.id:
                    result.missing_ids += 1
                    logger.error(f"Event missing id (type: {event.type}), cannot acknowledge")
        except Exception as e:
            result.failed = True
            if self._stopped:
                return result
            logger.error(f"Heartbeat error: {e}")

        return result

    @staticmethod
    def _events_from(response: Any) -> List[AgentEvent]:
        if response is None:
            return []
        if not isinstance(response, HeartbeatResponse):
            response = HeartbeatResponse.model_validate(response)
        return list(response.events or [])

    async def _dispatch(self, event: AgentEvent, result: CycleResult) -> None:
        handler = self.registry.lookup(event.type)
        if handler is None:
            result.unhandled += 1
            logger.info(f"Unhandled event type: {event.type}")
            return

        logger.debug(f"Dispatching {event.type} ({event.id})")
        try:
            outcome = handler(event)
            if inspect.isawaitable(outcome):
                await asyncio.wait_for(outcome, timeout=self.handler_timeout)
            result.dispatched += 1
        except asyncio.TimeoutError:
            result.handler_failures += 1
            logger.error(f"Handler error for {event.type}: timed out after {self.handler_timeout}s")
        except Exception as e:
            result.handler_failures += 1
            logger.error(f"Handler error for {event.type}: {e}")

    async def _acknowledge_all(self, events: List[AgentEvent], result: CycleResult) -> None:
        # Even if a handler failed, every event must be acknowledged to
        # prevent redelivery on a later heartbeat.
        ackable = [event for event in events if event.id]
        if not ackable:
            return

        outcomes = await asyncio.gather(
            *(self._transport.acknowledge_event(event.id) for event in ackable),
            return_exceptions=True,
        )
        for event, outcome in zip(ackable, outcomes):
            if isinstance(outcome, BaseException):
                result.ack_failures += 1
                logger.error(f"Failed to acknowledge event {event.id}: {outcome}")
            elif outcome is False:
                result.ack_failures += 1
                logger.error(f"Failed to acknowledge event {event.id}: rejected")
            else:
                result.acknowledged += 1
