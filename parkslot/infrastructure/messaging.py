# File: parkslot/infrastructure/messaging.py
"""
Area change notifications

After a change to a parking area is persisted, the service calls
EventSink.notify so dashboards can refresh their counters. Notification is
fire-and-forget: a failing sink is logged and never undoes or fails the
operation that triggered it.

1. EventBus        - in-process publish/subscribe with EventHandler objects
2. RedisEventSink  - publishes JSON events on the `parkingArea:updated`
                     Redis channel for out-of-process listeners
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple
import json
import logging

import redis

from ..domain.models import AreaChangedEvent, ChangeKind

AREA_UPDATED_CHANNEL = "parkingArea:updated"


class EventSink(ABC):
    """Receives committed area changes"""

    @abstractmethod
    def notify(
        self,
        area_id: str,
        change_kind: ChangeKind,
        payload: Optional[Dict[str, Any]] = None
    ) -> None:
        pass


# ============================================================================
# EVENT HANDLERS
# ============================================================================

class EventHandler(ABC):
    """Abstract base class for event handlers"""

    @abstractmethod
    def handle(self, event: AreaChangedEvent) -> None:
        """Handle an area change event"""
        pass

    def can_handle(self, event: AreaChangedEvent) -> bool:
        """Check if this handler can handle the event"""
        return True


class LoggingEventHandler(EventHandler):
    """Writes every area change to the log"""

    def __init__(self, level: int = logging.INFO):
        self.level = level
        self._logger = logging.getLogger(self.__class__.__name__)

    def handle(self, event: AreaChangedEvent) -> None:
        area = event.payload.get("parkingArea") or {}
        self._logger.log(
            self.level,
            f"Parking area {event.area_id} {event.change_kind.value}: "
            f"{area.get('availableSlots')}/{area.get('totalSlots')} available",
        )


# ============================================================================
# EVENT BUS (In-memory)
# ============================================================================

class EventBus(EventSink):
    """
    In-memory event bus for intra-process notifications

    Handlers subscribe to one change kind, or to all of them with None.
    """

    def __init__(self):
        self._subscribers: List[Tuple[Optional[ChangeKind], EventHandler]] = []
        self._logger = logging.getLogger(self.__class__.__name__)

    def subscribe(self, handler: EventHandler, change_kind: Optional[ChangeKind] = None) -> None:
        if (change_kind, handler) not in self._subscribers:
            self._subscribers.append((change_kind, handler))
            self._logger.debug(f"Subscribed {handler.__class__.__name__} to {change_kind or 'all changes'}")

    def unsubscribe(self, handler: EventHandler) -> None:
        self._subscribers = [entry for entry in self._subscribers if entry[1] is not handler]

    def notify(
        self,
        area_id: str,
        change_kind: ChangeKind,
        payload: Optional[Dict[str, Any]] = None
    ) -> None:
        self.publish(AreaChangedEvent(area_id=area_id, change_kind=change_kind, payload=payload or {}))

    def publish(self, event: AreaChangedEvent) -> None:
        """Publish an event to all matching subscribers"""
        self._logger.debug(f"Publishing event: {event.change_kind.value} (ID: {event.event_id})")

        for change_kind, handler in list(self._subscribers):
            if change_kind is not None and change_kind != event.change_kind:
                continue
            if not handler.can_handle(event):
                continue
            try:
                handler.handle(event)
            except Exception as e:
                self._logger.error(
                    f"Error handling event {event.change_kind.value} with {handler.__class__.__name__}: {e}"
                )


# ============================================================================
# REDIS PUB/SUB
# ============================================================================

class RedisEventSink(EventSink):
    """Redis-based notifications using Pub/Sub"""

    def __init__(self, client: redis.Redis, channel: str = AREA_UPDATED_CHANNEL):
        self.client = client
        self.channel = channel
        self._logger = logging.getLogger(self.__class__.__name__)

    @classmethod
    def from_url(cls, redis_url: str, channel: str = AREA_UPDATED_CHANNEL) -> 'RedisEventSink':
        return cls(redis.Redis.from_url(redis_url), channel)

    def notify(
        self,
        area_id: str,
        change_kind: ChangeKind,
        payload: Optional[Dict[str, Any]] = None
    ) -> None:
        event = AreaChangedEvent(area_id=area_id, change_kind=change_kind, payload=payload or {})
        try:
            receivers = self.client.publish(self.channel, json.dumps(event.to_dict(), default=str))
            self._logger.debug(f"Published {change_kind.value} for {area_id} to {receivers} subscribers")
        except redis.RedisError as e:
            self._logger.error(f"Error publishing {change_kind.value} for parking area {area_id}: {e}")
