"""
EventBus used to wire the greenhouse selector, stores and loaders together.

Key invariants (enforced by call sites + tests):
  - Event topics come from enums in ghrules.enums.events.
  - Payloads are Pydantic models in ghrules.schemas.events.
  - Subscribers always receive a plain dict payload.
  - Delivery is synchronous, in subscription order, on the publishing thread;
    a failing subscriber is logged and does not stop delivery to the others.

Unlike a process-wide singleton, each container owns its bus instance.
"""
import logging
import threading
from collections import defaultdict
from dataclasses import asdict, is_dataclass
from enum import Enum
from typing import Any, Callable, Dict, Hashable, List

from pydantic import BaseModel

from ghrules.enums.events import EventType

logger = logging.getLogger(__name__)


class EventBus:
    """Handles event-driven communication across services."""

    def __init__(self) -> None:
        self.subscribers: Dict[Hashable, List[Callable[[Any], None]]] = defaultdict(list)
        self.lock = threading.Lock()
        self._published = 0
        self._callback_errors = 0
        self._errors_by_event: Dict[str, int] = defaultdict(int)

    def subscribe(self, event_name: EventType | str, callback: Callable[[Any], None]) -> Callable[[], None]:
        """
        Subscribes a callback function to an event.

        Args:
            event_name: The enum topic (preferred) or raw string.
            callback: Function to call when the event occurs.

        Returns:
            A callable removing this subscription.
        """
        name = event_name.value if isinstance(event_name, Enum) else event_name
        with self.lock:
            self.subscribers[name].append(callback)

        def unsubscribe() -> None:
            with self.lock:
                callbacks = self.subscribers.get(name, [])
                try:
                    callbacks.remove(callback)
                except ValueError:
                    return

        return unsubscribe

    def publish(self, event_name: EventType | str, data: Any | None = None) -> None:
        """
        Publishes an event, calling all subscribed callback functions.

        Args:
            event_name: The enum topic (preferred) or raw string.
            data: Payload object (Pydantic model, dataclass, or dict/primitive).
        """
        name = event_name.value if isinstance(event_name, Enum) else event_name

        # Normalize payload for subscribers: they always receive a dict or primitive.
        if isinstance(data, BaseModel):
            payload: Any = data.model_dump(mode="json")
        elif is_dataclass(data) and not isinstance(data, type):
            payload = asdict(data)
        else:
            payload = data

        with self.lock:
            callbacks = list(self.subscribers.get(name, []))
            self._published += 1

        for callback in callbacks:
            try:
                callback(payload)
            except Exception:
                self._callback_errors += 1
                self._errors_by_event[name] += 1
                logger.exception("Error in callback for event %s", name)

    def listener(self, event_name: EventType | str) -> Callable[[Callable[[Any], None]], Callable[[Any], None]]:
        """
        Decorator for subscribing a function to an event at definition time.

        Args:
            event_name: The enum topic (preferred) or raw string.
        """

        def decorator(func: Callable[[Any], None]) -> Callable[[Any], None]:
            self.subscribe(event_name, func)
            return func

        return decorator

    def get_metrics(self) -> Dict[str, Any]:
        """Return lightweight metrics for logging and diagnostics."""
        with self.lock:
            subscribers = sum(len(values) for values in self.subscribers.values())
        return {
            "published": self._published,
            "subscribers": subscribers,
            "callback_errors": self._callback_errors,
            "errors_by_event": dict(self._errors_by_event),
        }
