"""
Event System Module

Publish/subscribe dispatcher for domain events. Handlers run after a state
transition has been committed; a failing handler is logged and never undoes
or interrupts the transition that fired it.
"""

from enum import Enum
from typing import Callable, Dict, List, Any, Optional
from dataclasses import dataclass, field
from datetime import datetime, timezone
import uuid
import logging
from threading import RLock


class DomainEvent(Enum):
    """Domain events that can occur in the kiosk"""

    # Store events
    SNAPSHOT_COMMITTED = "snapshot.committed"

    # Exchange events
    EXCHANGE_COMPLETED = "exchange.completed"
    EXCHANGE_REJECTED = "exchange.rejected"

    # Catalog events
    PRIZE_CREATED = "prize.created"
    PRIZE_UPDATED = "prize.updated"
    PRIZE_DELETED = "prize.deleted"
    STUDENT_ADDED = "student.added"
    STUDENT_DELETED = "student.deleted"
    STUDENTS_IMPORTED = "students.imported"
    POINTS_ADJUSTED = "points.adjusted"
    LOG_CLEARED = "log.cleared"

    # Session events
    SESSION_STARTED = "session.started"
    SESSION_ENDED = "session.ended"
    ADMIN_ENTERED = "admin.entered"


@dataclass
class EventPayload:
    """Payload for domain events"""
    event_type: DomainEvent
    entity_type: str
    entity_id: str
    data: Dict[str, Any]
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization"""
        return {
            'event_type': self.event_type.value,
            'entity_type': self.entity_type,
            'entity_id': self.entity_id,
            'data': self.data,
            'timestamp': self.timestamp.isoformat(),
            'event_id': self.event_id
        }


class EventDispatcher:
    """Central event dispatcher, publish/subscribe pattern"""

    def __init__(self):
        self._handlers: Dict[DomainEvent, List[Callable]] = {}
        self._lock = RLock()
        self.logger = logging.getLogger("prize_house.events")

    def subscribe(self, event_type: DomainEvent, handler: Callable) -> None:
        """Subscribe to a specific event type"""
        with self._lock:
            self._handlers.setdefault(event_type, []).append(handler)
            self.logger.debug(f"Subscribed handler {_handler_name(handler)} to {event_type.value}")

    def publish(self, event: EventPayload) -> None:
        """Publish event to all subscribers"""
        with self._lock:
            handlers = list(self._handlers.get(event.event_type, []))

        self.logger.debug(f"Publishing event {event.event_type.value} for {event.entity_type}:{event.entity_id}")
        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                # Log but don't break the main operation
                self.logger.error(f"Error in event handler {_handler_name(handler)} for {event.event_type.value}: {e}")

    def emit(
        self,
        event_type: DomainEvent,
        entity_type: str,
        entity_id: Optional[str],
        data: Optional[Dict[str, Any]] = None
    ) -> EventPayload:
        """Build and publish an event in one call"""
        event = EventPayload(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id or "",
            data=data or {}
        )
        self.publish(event)
        return event

    def clear(self) -> None:
        """Clear all handlers"""
        with self._lock:
            self._handlers.clear()


def _handler_name(handler: Callable) -> str:
    return getattr(handler, "__name__", repr(handler))
