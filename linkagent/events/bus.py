"""linkagent EventBus - in-process typed observer for broadcast signals."""

import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from .models import Event, EventType

logger = logging.getLogger(__name__)

EventCallback = Callable[[Event], Union[None, Awaitable[None]]]


class EventBus:
    """
    In-process event bus. Each subscriber registers per EventType.

    Callbacks may be plain functions or coroutine functions. A failing
    callback is logged and never affects the emitter or other callbacks.

    Usage:
        bus = EventBus()
        bus.subscribe(EventType.READY, on_ready)
        await bus.emit(EventType.READY)
    """

    def __init__(self):
        self._subscriptions: Dict[EventType, List[EventCallback]] = {}

    def subscribe(self, event_type: EventType, callback: EventCallback) -> None:
        """Register ``callback`` for one event kind."""
        self._subscriptions.setdefault(event_type, []).append(callback)
        logger.debug(f"Subscribed to event: {event_type.value}")

    def subscribe_many(self, event_types: List[EventType], callback: EventCallback) -> None:
        for event_type in event_types:
            self.subscribe(event_type, callback)

    def unsubscribe(self, event_type: EventType, callback: Optional[EventCallback] = None) -> None:
        """Remove one callback, or every callback when ``callback`` is None."""
        if callback is None:
            self._subscriptions.pop(event_type, None)
            return
        callbacks = self._subscriptions.get(event_type, [])
        if callback in callbacks:
            callbacks.remove(callback)

    def subscriber_count(self, event_type: EventType) -> int:
        return len(self._subscriptions.get(event_type, []))

    async def emit(self, event_type: EventType, **data: Any) -> Event:
        """Build an Event and dispatch it to every subscriber of its kind."""
        event = Event(type=event_type, data=data)
        await self.dispatch(event)
        return event

    async def dispatch(self, event: Event) -> None:
        """Dispatch event to matching subscribers."""
        for callback in list(self._subscriptions.get(event.type, [])):
            try:
                result = callback(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Event callback error for {event.type.value}: {e}")
