"""
In-process publish/subscribe channel.

Decouples panels that request work (e.g. an algorithm run) from the viewport
that executes it. Delivery is synchronous and in registration order; events
emitted with no registered handler are dropped.
"""

import logging
from collections import defaultdict
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)

RUN_ALGORITHM = "run-algorithm"

Handler = Callable[[Any], None]


class EventBus:
    """Synchronous fan-out event bus keyed by event name."""

    def __init__(self):
        self._handlers: Dict[str, List[Handler]] = defaultdict(list)

    def on(self, event_name: str, handler: Handler) -> None:
        self._handlers[event_name].append(handler)

    def off(self, event_name: str, handler: Handler) -> None:
        handlers = self._handlers.get(event_name)
        if not handlers:
            return
        try:
            handlers.remove(handler)
        except ValueError:
            return
        if not handlers:
            del self._handlers[event_name]

    def emit(self, event_name: str, payload: Any = None) -> None:
        handlers = list(self._handlers.get(event_name, ()))
        if not handlers:
            logger.debug(f"Dropped event '{event_name}': no handlers registered")
            return
        for handler in handlers:
            handler(payload)

    def handler_count(self, event_name: str) -> int:
        return len(self._handlers.get(event_name, ()))
