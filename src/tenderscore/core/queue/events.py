"""
Evaluation event broadcasting.

Events go to the per-organization channel ``eval:<org_id>``: they are
written to the ``evaluation_events`` outbox and handed to in-process
subscribers. Delivery is best-effort; failures are logged, never raised.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime
from typing import Any, Callable

from tenderscore.core.config.models import EventType
from tenderscore.core.logging import get_logger
from tenderscore.persistence.db import SessionScope
from tenderscore.persistence.repo import EventRepository

logger = get_logger("events")

Listener = Callable[[dict[str, Any]], None]


def channel_for(organization_id: int) -> str:
    return f"eval:{organization_id}"


class EventBroadcaster:
    """Publishes evaluation lifecycle events."""
    
    def __init__(self, scope: SessionScope | None = None) -> None:
        self.scope = scope
        self._listeners: dict[str, list[Listener]] = defaultdict(list)
    
    def subscribe(self, organization_id: int, listener: Listener) -> Callable[[], None]:
        """Register a listener for an organization's channel.
        
        Returns:
            Callable that removes the listener
        """
        channel = channel_for(organization_id)
        self._listeners[channel].append(listener)
        
        def unsubscribe() -> None:
            if listener in self._listeners[channel]:
                self._listeners[channel].remove(listener)
        
        return unsubscribe
    
    def broadcast(
        self,
        organization_id: int,
        event_type: EventType | str,
        payload: dict[str, Any],
    ) -> bool:
        """Publish an event.
        
        Returns:
            True if the outbox write and every listener succeeded
        """
        event_type = EventType(event_type)
        channel = channel_for(organization_id)
        event = {
            "type": event_type.value,
            "organization_id": organization_id,
            **payload,
            "timestamp": datetime.utcnow().isoformat() + "Z",
        }
        delivered = True
        
        if self.scope is not None:
            try:
                with self.scope() as session:
                    EventRepository(session).record(
                        organization_id=organization_id,
                        channel=channel,
                        event_type=event_type.value,
                        payload=event,
                        job_id=payload.get("job_id"),
                    )
            except Exception:
                delivered = False
                logger.warning("Failed to persist %s event on %s", event_type.value, channel, exc_info=True)
        
        for listener in list(self._listeners.get(channel, ())):
            try:
                listener(event)
            except Exception:
                delivered = False
                logger.warning("Listener failed for %s event on %s", event_type.value, channel, exc_info=True)
        
        return delivered
