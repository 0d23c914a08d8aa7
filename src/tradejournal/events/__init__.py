"""
Event infrastructure for TradeJournal.

- Event classes: Immutable Pydantic events validated against JSON Schema contracts
  - BaseEvent: Provides envelope fields only
  - ValidatedEvent: Events with payload validation (import progress)
  - ControlEvent: In-process notifications (store updates, import lifecycle)
- EventBus: Publish/subscribe infrastructure; the journal store's observers
  subscribe through it
"""

from tradejournal.events.event_bus import EventBus, SubscriptionToken
from tradejournal.events.events import (
    BaseEvent,
    ControlEvent,
    ImportFinishedEvent,
    ImportProgressEvent,
    ImportStartedEvent,
    StoreUpdatedEvent,
    ValidatedEvent,
)

__all__ = [
    # Base classes
    "BaseEvent",
    "ValidatedEvent",
    "ControlEvent",
    # Journal
    "StoreUpdatedEvent",
    # Import lifecycle
    "ImportStartedEvent",
    "ImportProgressEvent",
    "ImportFinishedEvent",
    # EventBus
    "EventBus",
    "SubscriptionToken",
]
