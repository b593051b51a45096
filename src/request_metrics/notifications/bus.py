"""Synchronous in-process notification bus.

``instrument`` runs a body, times it and publishes exactly one ``Event``
describing it. Listeners subscribed to the event's name are then invoked in
registration order. Nested ``instrument`` calls publish child events before
their parent, so consumers rebuild call trees from the shared InstrumenterId
plus publish order.

Usage:
    bus = NotificationBus()
    bus.subscribe("sql.query", lambda event: print(event.duration_ms))

    rows = bus.instrument("sql.query", {"sql": sql}, lambda: cursor.execute(sql))
"""

import threading
import time
from collections.abc import Awaitable, Callable, Iterator, Mapping
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, TypeVar

from request_metrics.notifications.events import Event, FailureInfo
from request_metrics.observability.constants import LogEvents
from request_metrics.observability.context import (
    InstrumentationContext,
    get_instrumentation_context,
    instrument_depth_var,
    instrumentation_scope,
    new_instrumenter_id,
)
from request_metrics.observability.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

Listener = Callable[[Event], Any]


class NotificationBus:
    """In-process publish/subscribe with an ``instrument`` primitive.

    Listener registration is copy-on-write under a lock, so ``publish`` always
    iterates a consistent snapshot and never blocks on configuration changes.
    """

    def __init__(self) -> None:
        # (event name or None for every event, listener), in registration order
        self._subscriptions: tuple[tuple[str | None, Listener], ...] = ()
        self._lock = threading.Lock()

    def subscribe(self, name: str, listener: Listener) -> Listener:
        """Register ``listener`` for events named ``name``.

        Returns:
            The listener, unchanged.
        """
        with self._lock:
            self._subscriptions = (*self._subscriptions, (name, listener))
        return listener

    def subscribe_all(self, listener: Listener) -> Listener:
        """Register ``listener`` for every event published on this bus."""
        with self._lock:
            self._subscriptions = (*self._subscriptions, (None, listener))
        return listener

    def unsubscribe(self, listener: Listener) -> None:
        """Remove every registration of ``listener``. No-op if it is not subscribed."""
        with self._lock:
            self._subscriptions = tuple(
                (name, registered)
                for name, registered in self._subscriptions
                if registered != listener
            )

    def listeners_for(self, name: str) -> list[Listener]:
        """Listeners that ``publish`` would invoke for ``name``, in order."""
        return [
            listener
            for subscribed, listener in self._subscriptions
            if subscribed is None or subscribed == name
        ]

    def publish(self, event: Event) -> None:
        """Deliver ``event`` to every matching listener.

        A failing listener is logged and skipped; delivery continues with the
        next listener and nothing propagates to the caller.
        """
        for listener in self.listeners_for(event.name):
            try:
                listener(event)
            except Exception as exc:
                logger.exception(
                    LogEvents.NOTIFICATION_LISTENER_FAILED,
                    event_name=event.name,
                    listener=getattr(listener, "__qualname__", repr(listener)),
                    error_type=type(exc).__name__,
                    error=str(exc),
                )

    def instrument(
        self,
        name: str,
        payload: Mapping[str, Any] | None,
        body: Callable[[], T],
    ) -> T:
        """Run ``body`` and publish one ``Event`` describing it.

        Args:
            name: Event name.
            payload: Metadata recorded with the event.
            body: Zero-argument callable to execute.

        Returns:
            Whatever ``body`` returns. If ``body`` raises, the event is published
            with failure info and the exception propagates unchanged.
        """
        with self._scope() as (context, depth):
            started_at = datetime.now(timezone.utc)
            started = time.perf_counter()
            try:
                result = body()
            except BaseException as exc:
                self.publish(self._build(name, payload, context, depth, started_at, started, exc))
                raise
            self.publish(self._build(name, payload, context, depth, started_at, started))
            return result

    async def ainstrument(
        self,
        name: str,
        payload: Mapping[str, Any] | None,
        body: Callable[[], Awaitable[T]],
    ) -> T:
        """Async twin of :meth:`instrument`; ``body`` returns an awaitable."""
        with self._scope() as (context, depth):
            started_at = datetime.now(timezone.utc)
            started = time.perf_counter()
            try:
                result = await body()
            except BaseException as exc:
                self.publish(self._build(name, payload, context, depth, started_at, started, exc))
                raise
            self.publish(self._build(name, payload, context, depth, started_at, started))
            return result

    @contextmanager
    def _scope(self) -> Iterator[tuple[InstrumentationContext, int]]:
        """Enter one nesting level, reusing the active context or opening a top-level one."""
        depth = instrument_depth_var.get()
        token = instrument_depth_var.set(depth + 1)
        try:
            context = get_instrumentation_context()
            if context is not None:
                yield context, depth
                return
            with instrumentation_scope(InstrumentationContext(new_instrumenter_id())) as context:
                yield context, depth
        finally:
            instrument_depth_var.reset(token)

    @staticmethod
    def _build(
        name: str,
        payload: Mapping[str, Any] | None,
        context: InstrumentationContext,
        depth: int,
        started_at: datetime,
        started: float,
        exc: BaseException | None = None,
    ) -> Event:
        """Build the event for one instrumented call; never raises for a bad payload."""
        fields: dict[str, Any] = {
            "name": name,
            "start_time": started_at,
            "end_time": datetime.now(timezone.utc),
            "duration_ms": (time.perf_counter() - started) * 1000,
            "instrumenter_id": context.instrumenter_id,
            "depth": depth,
            "failure": FailureInfo.from_exception(exc) if exc is not None else None,
        }
        try:
            return Event(payload=payload or {}, **fields)
        except Exception as build_exc:
            logger.exception(
                LogEvents.NOTIFICATION_BUILD_FAILED,
                event_name=name,
                error_type=type(build_exc).__name__,
                error=str(build_exc),
            )
        return Event(payload=_coerce_payload(payload), **fields)


def _coerce_payload(payload: Any) -> dict[str, Any]:
    """Best-effort string-keyed copy of a payload the Event model rejected."""
    try:
        return {str(key): value for key, value in payload.items()}
    except Exception:
        return {}
