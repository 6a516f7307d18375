"""Event system for search indexing notifications.

This module defines a compact eventing contract using Redis pub/sub.
Producers publish JSON payloads on namespaced channels derived from
``EventType``; consumers subscribe and register Python callbacks.

Key concepts
- ``EventType`` stable identifiers are versioned (``.v1`` suffix)
- ``EventPublisher`` composes channel names as ``{prefix}:{event_type}``
- ``EventSubscriber`` manages a map of event handlers and message dispatch
"""

import asyncio
import json
import time
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

import redis
import redis.asyncio as redis_async
import structlog

logger = structlog.get_logger("events")


class EventType(Enum):
    """Event types for search indexing."""
    ENTITIES_CHANGED = "search.entities.changed.v1"
    INDEX_SWAPPED = "search.index.swapped.v1"


@dataclass
class BaseEvent:
    """Base event class.

    Child events set their ``event_type`` in ``__post_init__`` and extend the
    payload with the fields relevant to them.
    """
    timestamp: int
    event_type: str

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary."""
        return asdict(self)

    def to_json(self) -> str:
        """Convert event to JSON string."""
        return json.dumps(self.to_dict())


@dataclass
class EntitiesChangedEvent(BaseEvent):
    """Event emitted when persisted entities were created, updated or deleted.

    Each change is a mapping with ``class_name``, ``ids`` and optionally
    ``changed_properties`` and ``deleted``.
    """
    changes: List[Dict[str, Any]] = field(default_factory=list)

    def __post_init__(self):
        self.event_type = EventType.ENTITIES_CHANGED.value
        if not self.timestamp:
            self.timestamp = int(time.time() * 1000)


@dataclass
class IndexSwappedEvent(BaseEvent):
    """Event emitted after live aliases were moved to freshly built indices."""
    aliases: List[Dict[str, str]] = field(default_factory=list)

    def __post_init__(self):
        self.event_type = EventType.INDEX_SWAPPED.value
        if not self.timestamp:
            self.timestamp = int(time.time() * 1000)


class EventPublisher:
    """Publishes events to Redis.

    Notes
    - Failures are retried with backoff, then logged and re-raised.
    - Messages are serialized as JSON to keep consumers language-agnostic.
    """

    def __init__(self, redis_url: str, channel_prefix: str = "search_events"):
        self.redis_client = redis.from_url(redis_url)
        self.channel_prefix = channel_prefix

    def publish(self, event: BaseEvent) -> None:
        """Publish an event with retry logic."""
        max_retries = 3
        base_delay = 0.5

        for attempt in range(max_retries):
            try:
                channel = f"{self.channel_prefix}:{event.event_type}"
                self.redis_client.publish(channel, event.to_json())
                logger.info(
                    "Event published",
                    event_type=event.event_type,
                    channel=channel
                )
                return
            except Exception as e:
                if attempt == max_retries - 1:
                    logger.error(
                        "Failed to publish event after all retries",
                        event_type=event.event_type,
                        error=str(e)
                    )
                    raise

                delay = base_delay * (2 ** attempt)
                logger.warning(
                    "Event publish failed, retrying",
                    event_type=event.event_type,
                    attempt=attempt + 1,
                    max_retries=max_retries,
                    delay=delay,
                    error=str(e)
                )
                time.sleep(delay)

    def publish_entities_changed(self, changes: List[Dict[str, Any]]) -> None:
        """Publish an entities changed event."""
        self.publish(EntitiesChangedEvent(
            timestamp=int(time.time() * 1000),
            event_type=EventType.ENTITIES_CHANGED.value,
            changes=changes
        ))

    def publish_index_swapped(self, aliases: List[Dict[str, str]]) -> None:
        """Publish an index swapped event."""
        self.publish(IndexSwappedEvent(
            timestamp=int(time.time() * 1000),
            event_type=EventType.INDEX_SWAPPED.value,
            aliases=aliases
        ))


class EventSubscriber:
    """Subscribes to events from Redis.

    Maintains a mapping of ``event_type -> List[callables]``. When a message
    arrives, ``_handle_message`` decodes JSON and invokes each registered
    handler with the raw dictionary payload.
    """

    def __init__(self, redis_url: str, channel_prefix: str = "search_events"):
        self.redis_client = redis_async.from_url(redis_url, decode_responses=False)
        self.channel_prefix = channel_prefix
        self.handlers: Dict[str, List[Callable]] = {}

    def subscribe(self, event_type: EventType, handler: Callable) -> None:
        """Subscribe to an event type."""
        self.handlers.setdefault(event_type.value, []).append(handler)
        logger.info(
            "Subscribed to event",
            event_type=event_type.value,
            handler=getattr(handler, "__name__", repr(handler))
        )

    async def start_listening(self, poll_timeout: float = 1.0) -> None:
        """Listen for events until cancelled.

        Meant to run as a background task; transient errors inside the loop
        are logged and listening continues.
        """
        pubsub = self.redis_client.pubsub()

        try:
            channels = [
                f"{self.channel_prefix}:{event_type.value}"
                for event_type in EventType
            ]
            await pubsub.subscribe(*channels)

            logger.info("Started listening for events", channels=channels)

            while True:
                try:
                    message = await pubsub.get_message(
                        ignore_subscribe_messages=True,
                        timeout=poll_timeout
                    )
                    if message and message.get("type") == "message":
                        await self._handle_message(message)

                    await asyncio.sleep(0.01)

                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    logger.error("Error in event listener loop", error=str(e))
                    await asyncio.sleep(1.0)

        except asyncio.CancelledError:
            logger.info("Event listener cancelled")
            raise
        finally:
            try:
                await pubsub.close()
                logger.info("Event listener stopped")
            except Exception as e:
                logger.warning("Error closing pubsub", error=str(e))

    async def _handle_message(self, message: Dict[str, Any]) -> None:
        """Handle incoming event message.

        Coroutine handlers are awaited; plain callables run in a worker thread
        so blocking I/O does not stall the listener. Dispatch errors from
        individual handlers are logged and do not prevent other handlers from
        executing.
        """
        try:
            channel_raw = message.get('channel')
            data_raw = message.get('data')

            if isinstance(channel_raw, (bytes, bytearray)):
                channel = channel_raw.decode('utf-8')
            else:
                channel = str(channel_raw)

            if isinstance(data_raw, (bytes, bytearray)):
                payload = json.loads(data_raw.decode('utf-8'))
            else:
                payload = json.loads(data_raw)
        except (ValueError, TypeError) as e:
            logger.error("Error decoding event message", error=str(e))
            return

        event_type = channel.split(':')[-1]

        handlers = self.handlers.get(event_type)
        if not handlers:
            logger.warning("No handlers for event type", event_type=event_type)
            return

        for handler in handlers:
            try:
                if asyncio.iscoroutinefunction(handler):
                    await handler(payload)
                else:
                    await asyncio.to_thread(handler, payload)
            except Exception as e:
                logger.error(
                    "Error handling event",
                    event_type=event_type,
                    handler=getattr(handler, "__name__", repr(handler)),
                    error=str(e)
                )

    async def close(self) -> None:
        """Close the Redis client used by the subscriber."""
        try:
            await self.redis_client.aclose()
        except Exception as e:
            logger.warning("Error closing redis client", error=str(e))


def create_event_publisher(redis_url: str, channel_prefix: Optional[str] = None) -> EventPublisher:
    """Create an event publisher."""
    if channel_prefix is None:
        return EventPublisher(redis_url)
    return EventPublisher(redis_url, channel_prefix)


def create_event_subscriber(redis_url: str, channel_prefix: Optional[str] = None) -> EventSubscriber:
    """Create an event subscriber."""
    if channel_prefix is None:
        return EventSubscriber(redis_url)
    return EventSubscriber(redis_url, channel_prefix)
