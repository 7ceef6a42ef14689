"""
Domain events system

Domain events represent important business events that can be published
and subscribed to by multiple parts of the system. Identity session changes
travel over the same bus so the context loader can react to them.
"""

from datetime import datetime
from typing import Any, Callable, Dict, List, Optional
import uuid
import structlog

logger = structlog.get_logger(__name__)


class DomainEvent:
    """Base class for domain events"""

    def __init__(self, event_id: uuid.UUID = None):
        self.event_id = event_id or uuid.uuid4()
        self.occurred_at = datetime.utcnow()

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary"""
        return {
            "event_id": str(self.event_id),
            "occurred_at": self.occurred_at.isoformat(),
            "event_type": self.__class__.__name__
        }


class SessionStarted(DomainEvent):
    """Event fired when the identity provider signs a principal in"""

    def __init__(self, principal: Any, event_id: uuid.UUID = None):
        super().__init__(event_id)
        self.principal = principal

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            "uid": self.principal.uid,
            "email": self.principal.email,
        })
        return data


class SessionEnded(DomainEvent):
    """Event fired when the identity provider signs a principal out"""

    def __init__(self, uid: Optional[str] = None, event_id: uuid.UUID = None):
        super().__init__(event_id)
        self.uid = uid

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["uid"] = self.uid
        return data


class OrganizationRegistered(DomainEvent):
    """Event fired when an organization completes self-registration"""

    def __init__(
        self,
        tenant_id: uuid.UUID,
        subscription_id: uuid.UUID,
        admin_uid: str,
        event_id: uuid.UUID = None
    ):
        super().__init__(event_id)
        self.tenant_id = tenant_id
        self.subscription_id = subscription_id
        self.admin_uid = admin_uid

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            "tenant_id": str(self.tenant_id),
            "subscription_id": str(self.subscription_id),
            "admin_uid": self.admin_uid,
        })
        return data


class EventBus:
    """Simple in-memory event bus for publishing domain events"""

    def __init__(self):
        self._subscribers: Dict[str, List[Callable]] = {}

    def subscribe(self, event_type: str, handler: Callable):
        """Subscribe to a specific event type"""
        if event_type not in self._subscribers:
            self._subscribers[event_type] = []
        self._subscribers[event_type].append(handler)
        logger.debug(f"Subscribed handler to event type: {event_type}")

    def unsubscribe(self, event_type: str, handler: Callable):
        """Unsubscribe from an event type"""
        if event_type in self._subscribers:
            self._subscribers[event_type].remove(handler)
            logger.debug(f"Unsubscribed handler from event type: {event_type}")

    async def publish(self, event: DomainEvent):
        """Publish an event to all subscribers, in subscription order"""
        event_type = event.__class__.__name__
        handlers = list(self._subscribers.get(event_type, []))

        if not handlers:
            logger.debug(f"No subscribers for event type: {event_type}")
            return

        logger.info(f"Publishing event {event_type}: {event.event_id}")

        for handler in handlers:
            try:
                await handler(event)
            except Exception as e:
                logger.error(f"Error in event handler for {event_type}: {e}", exc_info=True)

    def clear_subscribers(self):
        """Clear all subscribers (useful for testing)"""
        self._subscribers.clear()
        logger.debug("Cleared all event subscribers")


# Global event bus instance
event_bus = EventBus()
