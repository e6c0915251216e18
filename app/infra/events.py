from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Callable

from sqlmodel import Session

from app.domain.models import EventEnvelope, EventRecord
from app.infra.db import engine

logger = logging.getLogger(__name__)

EventHandler = Callable[[EventEnvelope], None]

ORG_NODE_CREATED = "org_chart.node_created"
ORG_NODE_UPDATED = "org_chart.node_updated"
ORG_NODE_DELETED = "org_chart.node_deleted"


class EventBus:
    def __init__(self) -> None:
        self._subscribers: dict[str, list[EventHandler]] = defaultdict(list)

    def subscribe(self, event_type: str, handler: EventHandler) -> None:
        if handler not in self._subscribers[event_type]:
            self._subscribers[event_type].append(handler)

    def unsubscribe(self, event_type: str, handler: EventHandler) -> None:
        if event_type in self._subscribers and handler in self._subscribers[event_type]:
            self._subscribers[event_type].remove(handler)

    def record(self, event: EventEnvelope, session: Session) -> EventRecord:
        record = EventRecord(
            event_id=event.event_id,
            event_type=event.event_type,
            ts=event.ts,
            actor_id=event.actor_id,
            correlation_id=event.correlation_id,
            payload=event.payload,
        )
        session.add(record)
        return record

    def dispatch(self, event: EventEnvelope) -> None:
        handlers = [*self._subscribers.get(event.event_type, []), *self._subscribers.get("*", [])]
        for handler in handlers:
            handler(event)
        logger.debug("dispatched %s to %d handler(s)", event.event_type, len(handlers))

    def publish(self, event: EventEnvelope, session: Session | None = None) -> None:
        should_commit = session is None
        if session is None:
            session = Session(engine)
        try:
            self.record(event, session)
            if should_commit:
                session.commit()
        finally:
            if should_commit:
                session.close()
        self.dispatch(event)


event_bus = EventBus()
