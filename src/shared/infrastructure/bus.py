"""In-memory event bus implementation."""

from __future__ import annotations

from typing import Dict, Iterable, List, Type

import structlog

from shared.domain.bus import IEventBus, IEventHandler
from shared.domain.events import DomainEvent

logger = structlog.get_logger(__name__)


class InMemoryEventBus(IEventBus):
    """In-process event bus; handlers run synchronously in the publisher's thread."""

    def __init__(self) -> None:
        self._handlers: Dict[Type[DomainEvent], List[IEventHandler]] = {}

    def subscribe(self, event_class: Type[DomainEvent], handler: IEventHandler) -> None:
        handlers = self._handlers.setdefault(event_class, [])
        if handler not in handlers:
            handlers.append(handler)

    def publish(self, event: DomainEvent) -> None:
        for handler in self._handlers.get(type(event), []):
            handler.handle(event)

    def publish_all(self, events: Iterable[DomainEvent]) -> None:
        for event in events:
            logger.info(
                "event_bus.publish",
                event_name=event.event_name,
                aggregate_id=event.aggregate_id,
            )
            self.publish(event)


event_bus = InMemoryEventBus()
