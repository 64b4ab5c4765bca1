import asyncio
import inspect
import logging
from typing import Callable, Dict, List, Any, Optional

logger = logging.getLogger(__name__)

# Topics published by the telemetry pipeline
TELEMETRY_SAMPLE = "telemetry_sample"
CONNECTION_OPENED = "connection_opened"
CONNECTION_CLOSED = "connection_closed"


class EventHub:
    """Topic based publish/subscribe bridge between the listener, sinks and the API."""

    def __init__(self):
        self._subscribers: Dict[str, List[Callable]] = {}
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def init(self, loop: Optional[asyncio.AbstractEventLoop]):
        self._loop = loop

    def subscribe(self, topic: str, handler: Callable):
        handlers = self._subscribers.setdefault(topic, [])
        if handler not in handlers:
            handlers.append(handler)
        logger.debug(f"Subscribed to {topic}")

    def unsubscribe(self, topic: str, handler: Callable):
        if handler in self._subscribers.get(topic, []):
            self._subscribers[topic].remove(handler)
            logger.debug(f"Unsubscribed from {topic}")

    def unsubscribe_all(self):
        self._subscribers.clear()

    def send_all_on_topic(self, topic: str, message: Any):
        # Copy so handlers may unsubscribe while we iterate
        for handler in self._subscribers.get(topic, [])[:]:
            try:
                self._dispatch(handler, topic, message)
            except Exception as e:
                logger.error(f"Error handling message on topic {topic}: {e}")

    def _dispatch(self, handler: Callable, topic: str, message: Any):
        is_async = inspect.iscoroutinefunction(handler)
        if self._loop is None or self._loop.is_closed():
            if is_async:
                logger.warning(f"EventHub loop not initialized. Cannot dispatch async handler for {topic}")
            else:
                handler(topic, message)
            return

        try:
            current_loop = asyncio.get_running_loop()
        except RuntimeError:
            current_loop = None

        if current_loop is self._loop:
            if is_async:
                self._loop.create_task(handler(topic, message))
            else:
                handler(topic, message)
        elif is_async:
            # Published from another thread
            asyncio.run_coroutine_threadsafe(handler(topic, message), self._loop)
        else:
            self._loop.call_soon_threadsafe(handler, topic, message)


# Global instance
event_hub = EventHub()


def init_event_hub(loop):
    """Initialize the global event hub with the given loop."""
    event_hub.init(loop)
