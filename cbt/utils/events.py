from typing import Dict, List, Callable, Any
import asyncio
import logging

from cbt.core.constants import EventNameEnum

logger = logging.getLogger(__name__)

class EventBus:
    """In-process publish/subscribe. Handler failures are logged, never propagated to the publisher."""

    def __init__(self):
        self._handlers: Dict[EventNameEnum, List[Callable]] = {}

    def subscribe(self, event_type: EventNameEnum, handler: Callable):
        self._handlers.setdefault(event_type, [])
        if handler not in self._handlers[event_type]:
            self._handlers[event_type].append(handler)

    def unsubscribe(self, event_type: EventNameEnum, handler: Callable):
        if handler in self._handlers.get(event_type, []):
            self._handlers[event_type].remove(handler)

    async def publish(self, event_type: EventNameEnum, data: Dict[str, Any]):
        handlers = list(self._handlers.get(event_type, []))
        if not handlers:
            return

        for handler in handlers:
            try:
                if asyncio.iscoroutinefunction(handler):
                    await handler(data)
                else:
                    handler(data)
            except Exception as e:
                logger.error(f"Error in event handler {handler.__name__} for {event_type.value}: {e}")

    def clear(self):
        self._handlers.clear()

event_bus = EventBus()
