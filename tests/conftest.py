"""Shared pytest fixtures and configuration."""

from typing import Any

import pytest
from fastapi import FastAPI, Request

from request_metrics import (
    EventRecorder,
    InMemoryEventStore,
    NotificationBus,
    PayloadFilterRegistry,
    instrument_app,
)
from request_metrics.core.config import Settings
from request_metrics.notifications import Event


@pytest.fixture
def bus() -> NotificationBus:
    return NotificationBus()


@pytest.fixture
def registry() -> PayloadFilterRegistry:
    return PayloadFilterRegistry()


@pytest.fixture
def store() -> InMemoryEventStore:
    return InMemoryEventStore()


@pytest.fixture
def published(bus: NotificationBus) -> list[Event]:
    """Every event published on ``bus``, in publish order."""
    events: list[Event] = []
    bus.subscribe_all(events.append)
    return events


@pytest.fixture
def app(bus: NotificationBus, registry: PayloadFilterRegistry, store: InMemoryEventStore) -> FastAPI:
    """Minimal FastAPI app instrumented on ``bus`` and recording into ``store``."""
    registry.register("request")
    registry.register("sql.query", only=["sql"])
    EventRecorder(registry, store).attach(bus)

    test_app = FastAPI()
    instrument_app(test_app, bus, Settings(exclude_prefixes=["/request_metrics"]))

    @test_app.get("/orders")
    async def list_orders() -> dict[str, Any]:
        return {"orders": [1, 2]}

    @test_app.get("/nested")
    async def nested(request: Request) -> dict[str, Any]:
        rows = bus.instrument(
            "sql.query",
            {"sql": "SELECT 1", "binds": ["secret"]},
            lambda: [1],
        )
        return {"rows": rows, "instrumenter_id": request.state.instrumenter_id}

    @test_app.get("/boom")
    async def boom() -> dict[str, Any]:
        raise RuntimeError("boom")

    @test_app.get("/request_metrics/events")
    async def own_events() -> dict[str, Any]:
        return {"count": len(store)}

    return test_app
