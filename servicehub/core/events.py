# File: servicehub/core/events.py
"""
In-process domain events for ServiceHub.

Services publish events after their transaction commits; subscribers
(notifications, analytics, provider calendars) react without the
publishing service knowing about them.
"""

from typing import Dict, Any, Callable, List, Optional, Union, Type
from collections import defaultdict
from dataclasses import dataclass, field, asdict
from datetime import datetime, date
import uuid
import asyncio
import inspect
import logging

from fastapi import FastAPI

logger = logging.getLogger(__name__)

EventKey = Union[str, Type["DomainEvent"]]


@dataclass(eq=False)
class DomainEvent:
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        """Flatten the event for logging or queueing; dates become ISO strings."""
        data = {
            key: value.isoformat() if isinstance(value, (datetime, date)) else value
            for key, value in asdict(self).items()
        }
        data["event_type"] = type(self).__name__
        return data


@dataclass(eq=False)
class RecurringBookingCreated(DomainEvent):
    """A recurring series and all of its bookings were committed."""
    series_id: str = ""
    customer_id: str = ""
    provider_id: str = ""
    bookings_created: int = 0
    first_booking_date: Optional[date] = None


@dataclass(eq=False)
class RecurringBookingCancelled(DomainEvent):
    """A recurring series was deactivated and its upcoming pending bookings cancelled."""
    series_id: str = ""
    cancelled_bookings: int = 0
    user_id: Optional[str] = None


def _event_name(event_type: EventKey) -> str:
    return event_type.__name__ if isinstance(event_type, type) else str(event_type)


def _handler_name(handler: Callable) -> str:
    return getattr(handler, "__name__", repr(handler))


class EventBus:
    """
    Routes domain events to subscribers by event class name.

    A failing handler is logged and skipped; it never breaks the publisher
    or the other handlers.

    Usage:
        global_event_bus.subscribe(RecurringBookingCreated, notify_provider)
        global_event_bus.publish(RecurringBookingCreated(series_id=series.id))
    """

    def __init__(self):
        self.subscribers: Dict[str, List[Callable]] = defaultdict(list)

    def publish(self, event: DomainEvent) -> None:
        """Deliver an event to its synchronous handlers in subscription order."""
        name = type(event).__name__
        logger.debug(f"Dispatching {name} {event.event_id}")
        for handler in list(self.subscribers.get(name, [])):
            if inspect.iscoroutinefunction(handler):
                logger.warning(
                    f"Skipping coroutine handler {_handler_name(handler)} for {name}; use publish_async"
                )
                continue
            try:
                handler(event)
            except Exception as e:
                logger.error(
                    f"Handler {_handler_name(handler)} failed on {name} {event.event_id}: {e}",
                    exc_info=True,
                )

    async def publish_async(self, event: DomainEvent) -> None:
        """Deliver an event to every handler concurrently; sync handlers run in threads."""
        name = type(event).__name__
        handlers = list(self.subscribers.get(name, []))
        logger.debug(f"Dispatching {name} {event.event_id} to {len(handlers)} handlers")
        results = await asyncio.gather(
            *(
                handler(event) if inspect.iscoroutinefunction(handler)
                else asyncio.to_thread(handler, event)
                for handler in handlers
            ),
            return_exceptions=True,
        )
        for handler, outcome in zip(handlers, results):
            if isinstance(outcome, Exception):
                logger.error(
                    f"Handler {_handler_name(handler)} failed on {name} {event.event_id}: {outcome}",
                    exc_info=outcome,
                )

    def subscribe(self, event_type: EventKey, handler: Callable) -> None:
        """Register a handler for an event class (or its name)."""
        name = _event_name(event_type)
        self.subscribers[name].append(handler)
        logger.debug(f"{_handler_name(handler)} subscribed to {name}")

    def unsubscribe(self, event_type: EventKey, handler: Callable) -> bool:
        """Remove a handler; returns False if it was not subscribed."""
        name = _event_name(event_type)
        if handler not in self.subscribers.get(name, []):
            return False
        self.subscribers[name].remove(handler)
        return True

    def clear_subscriptions(self) -> None:
        self.subscribers.clear()


global_event_bus = EventBus()


def setup_event_handlers(app: FastAPI) -> None:
    """Attach startup/shutdown hooks that log the lifecycle and reset the bus."""

    @app.on_event("startup")
    async def log_startup():
        logger.info(f"{app.title} starting up")

    @app.on_event("shutdown")
    async def release_subscribers():
        logger.info(f"{app.title} shutting down; clearing event subscriptions")
        global_event_bus.clear_subscriptions()
