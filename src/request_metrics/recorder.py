"""Hand-off of filtered events to a persistence backend.

``EventRecorder`` is a bus listener: it applies the payload filter registry
to each event and saves the resulting ``EventRecord``. The store is any
object with a ``save(record)`` method; ``InMemoryEventStore`` is provided for
development and tests.
"""

import threading
from collections import deque
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict, Field

from request_metrics.notifications.bus import NotificationBus
from request_metrics.notifications.events import Event, FailureInfo
from request_metrics.observability.constants import LogEvents
from request_metrics.observability.context import get_instrumentation_context
from request_metrics.observability.logger import get_logger
from request_metrics.payload.registry import PayloadFilterRegistry

logger = get_logger(__name__)


class EventRecord(BaseModel):
    """The record handed to persistence: filtered payload plus event metadata."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str = Field(..., description="Event name")
    payload: dict[str, Any] = Field(default_factory=dict, description="Filtered payload")
    start_time: datetime = Field(..., description="UTC start time")
    end_time: datetime = Field(..., description="UTC end time")
    duration_ms: float = Field(..., description="Duration in milliseconds")
    instrumenter_id: str = Field(..., description="Correlation token of the request")
    depth: int = Field(default=0, description="Number of enclosing instrumented calls")
    failure: FailureInfo | None = Field(default=None, description="Set when the body raised")

    @classmethod
    def from_event(cls, event: Event, payload: dict[str, Any]) -> "EventRecord":
        return cls(
            name=event.name,
            payload=payload,
            start_time=event.start_time,
            end_time=event.end_time,
            duration_ms=event.duration_ms,
            instrumenter_id=event.instrumenter_id,
            depth=event.depth,
            failure=event.failure,
        )


class EventStore(Protocol):
    """Persistence collaborator receiving filtered records."""

    def save(self, record: EventRecord) -> None: ...


class InMemoryEventStore:
    """Bounded in-process store, oldest records evicted first."""

    def __init__(self, max_records: int = 10_000) -> None:
        self._records: deque[EventRecord] = deque(maxlen=max_records)
        self._lock = threading.Lock()

    def save(self, record: EventRecord) -> None:
        with self._lock:
            self._records.append(record)

    def records(self) -> list[EventRecord]:
        """All stored records in the order they were saved."""
        with self._lock:
            return list(self._records)

    def for_instrumenter(self, instrumenter_id: str) -> list[EventRecord]:
        return [record for record in self.records() if record.instrumenter_id == instrumenter_id]

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    def __len__(self) -> int:
        return len(self._records)


class EventRecorder:
    """Bus listener that filters each event and saves it to a store.

    Args:
        registry: Filter policies applied to every payload.
        store: Destination for the filtered records.
        request_only: Ignore events published outside an instrumented HTTP request.
    """

    def __init__(
        self,
        registry: PayloadFilterRegistry,
        store: EventStore,
        request_only: bool = True,
    ) -> None:
        self.registry = registry
        self.store = store
        self.request_only = request_only

    def __call__(self, event: Event) -> None:
        if self.request_only:
            context = get_instrumentation_context()
            if context is None or not context.in_request:
                logger.debug(LogEvents.RECORD_SKIPPED, event_name=event.name)
                return

        payload = self.registry.filter(event.name, event.payload)
        self.store.save(EventRecord.from_event(event, payload))

    def attach(self, bus: NotificationBus) -> "EventRecorder":
        """Subscribe this recorder to every event on ``bus``."""
        bus.subscribe_all(self)
        return self

    def detach(self, bus: NotificationBus) -> None:
        bus.unsubscribe(self)


@dataclass
class EventNode:
    """A record and the records published while it was running."""

    record: EventRecord
    children: list["EventNode"] = field(default_factory=list)

    def walk(self, depth: int = 0) -> Iterator[tuple[int, EventRecord]]:
        """Yield ``(depth, record)`` pairs, parent before children."""
        yield depth, self.record
        for child in self.children:
            yield from child.walk(depth + 1)


def build_call_tree(records: Iterable[EventRecord]) -> list[EventNode]:
    """Rebuild event nesting from publish order and nesting depth.

    Records must share one InstrumenterId and be given in publish order.
    Children are published before their parent, so each record adopts the
    pending records exactly one level deeper than itself.

    Returns:
        Root nodes in publish order.
    """
    pending: list[EventNode] = []
    for record in records:
        node = EventNode(record)
        remaining: list[EventNode] = []
        for candidate in pending:
            if candidate.record.depth == record.depth + 1:
                node.children.append(candidate)
            else:
                remaining.append(candidate)
        pending = [*remaining, node]

    return pending
