"""
Synchronous event bus for journal and import notifications.

The journal store publishes a StoreUpdatedEvent after every mutation; the
import pipeline publishes job lifecycle and progress events. Observers
subscribe by event type string or event class and receive events in
priority order (highest first, registration order within a priority).

A handler that raises is logged and skipped; the remaining handlers still
run and the publisher never sees the exception.
"""

import time
from collections import deque
from typing import Any, Callable, ContextManager, Dict, List, NamedTuple, Optional, Type, Union

from tradejournal.events.events import BaseEvent
from tradejournal.system import LoggerFactory

logger = LoggerFactory.get_logger()

Handler = Callable[[Any], None]


class _Subscription(NamedTuple):
    priority: int
    handler: Handler


def _handler_name(handler: Handler) -> str:
    return getattr(handler, "__name__", str(handler))


def _event_type_of(event_class: Type[BaseEvent]) -> str:
    field = event_class.model_fields.get("event_type")
    if field is None or not isinstance(field.default, str):
        raise ValueError(f"Event class {event_class} missing event_type")
    return field.default


class SubscriptionToken(ContextManager):
    """
    Handle returned by EventBus.subscribe().

    Calling it unsubscribes; repeated calls are no-ops. Leaving a
    `with` block unsubscribes too.
    """

    def __init__(self, bus: "EventBus", event_type: str, handler: Handler):
        self.bus = bus
        self.event_type = event_type
        self.handler = handler
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def __call__(self) -> None:
        if self._active:
            self.bus.unsubscribe(self.event_type, self.handler)
            self._active = False

    def __exit__(self, exc_type, exc_val, exc_tb):
        self()


class EventBus:
    """
    Publish/subscribe hub shared by one AppContext.

    Not thread-safe: the store and the pipeline publish from the event
    loop thread only.

    Example:
        >>> bus = EventBus(max_history=100)
        >>> token = bus.subscribe(StoreUpdatedEvent, lambda e: print(e.statistics.total_pnl))
        >>> store.add_trade(raw)  # handler runs before add_trade returns
        >>> token()
    """

    def __init__(self, max_history: int = 1_000):
        """
        Args:
            max_history: Events kept for get_history() (0 = unlimited). Store
                updates carry the whole trade tuple, so keep this small.
        """
        self._subscribers: Dict[str, List[_Subscription]] = {}
        self._history: deque[BaseEvent] = deque(maxlen=max_history or None)
        logger.debug("event_bus.initialized", max_history=max_history)

    def publish(self, event: BaseEvent) -> None:
        """Record the event, then call every handler for its type in order."""
        start = time.perf_counter()
        self._history.append(event)
        subscriptions = list(self._subscribers.get(event.event_type, ()))
        failed = 0
        for subscription in subscriptions:
            try:
                subscription.handler(event)
            except Exception as e:
                failed += 1
                logger.error(
                    "event_bus.handler_error",
                    event_type=event.event_type,
                    event_id=event.event_id,
                    handler=_handler_name(subscription.handler),
                    error=str(e),
                )
        logger.debug(
            "event_bus.published",
            event_type=event.event_type,
            event_id=event.event_id,
            subscriber_count=len(subscriptions),
            duration=time.perf_counter() - start,
            errors=failed,
        )

    def subscribe(
        self, event_type: Union[str, Type[BaseEvent]], handler: Handler, priority: int = 0
    ) -> SubscriptionToken:
        """
        Register a handler for an event type string or event class.

        Raises:
            ValueError: If an event class has no string event_type default
        """
        key = event_type if isinstance(event_type, str) else _event_type_of(event_type)
        subscriptions = self._subscribers.setdefault(key, [])
        # insert after every subscription of equal or higher priority
        position = len(subscriptions)
        while position > 0 and subscriptions[position - 1].priority < priority:
            position -= 1
        subscriptions.insert(position, _Subscription(priority, handler))
        logger.debug(
            "event_bus.subscribed",
            event_type=key,
            handler=_handler_name(handler),
            priority=priority,
            total_handlers=len(subscriptions),
        )
        return SubscriptionToken(self, key, handler)

    def unsubscribe(self, event_type: str, handler: Handler) -> None:
        """Remove a handler; no-op if it was never registered."""
        subscriptions = self._subscribers.get(event_type)
        if not subscriptions:
            return
        kept = [s for s in subscriptions if s.handler != handler]
        if len(kept) != len(subscriptions):
            self._subscribers[event_type] = kept
            logger.debug(
                "event_bus.unsubscribed",
                event_type=event_type,
                handler=_handler_name(handler),
                removed_count=len(subscriptions) - len(kept),
            )

    def get_history(self, event_type: Optional[str] = None) -> List[BaseEvent]:
        """Published events, oldest first, optionally of one type only."""
        if event_type is None:
            return list(self._history)
        return [e for e in self._history if e.event_type == event_type]

    def clear_history(self) -> None:
        """Forget published events. Subscriptions are kept."""
        self._history.clear()
        logger.debug("event_bus.history_cleared")

    def clear_subscribers(self) -> None:
        """Drop every subscription (used on context disposal)."""
        self._subscribers.clear()
        logger.debug("event_bus.subscribers_cleared")

    def get_subscriber_count(self, event_type: str) -> int:
        """Number of registered handlers for an event type."""
        return len(self._subscribers.get(event_type, ()))
