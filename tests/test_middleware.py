"""Tests for InstrumentationMiddleware."""

from __future__ import annotations

from typing import Any

import pytest
import structlog.testing
from fastapi import FastAPI
from fastapi.responses import JSONResponse
from fastapi.testclient import TestClient

from request_metrics import InstrumentationMiddleware, NotificationBus
from request_metrics.notifications import Event
from request_metrics.observability.constants import LogEvents
from request_metrics.observability.context import get_instrumenter_id


def _names(events: list[Event]) -> list[str]:
    return [event.name for event in events]


def test_request_event_published(app: FastAPI, published: list[Event]) -> None:
    response = TestClient(app).get("/orders")

    assert response.status_code == 200
    assert _names(published) == ["request"]
    event = published[0]
    assert event.payload["path"] == "/orders"
    assert event.payload["method"] == "GET"
    assert event.payload["instrumenter_id"] == event.instrumenter_id
    assert event.failure is None


def test_each_request_gets_fresh_id(app: FastAPI, published: list[Event]) -> None:
    client = TestClient(app)
    client.get("/orders")
    client.get("/orders")

    assert len(published) == 2
    assert published[0].instrumenter_id != published[1].instrumenter_id


def test_nested_event_shares_request_id(app: FastAPI, published: list[Event]) -> None:
    response = TestClient(app).get("/nested")

    assert _names(published) == ["sql.query", "request"]
    request_id = response.json()["instrumenter_id"]
    assert {event.instrumenter_id for event in published} == {request_id}


def test_excluded_prefix_emits_nothing(app: FastAPI, published: list[Event]) -> None:
    with structlog.testing.capture_logs() as logs:
        response = TestClient(app).get("/request_metrics/events")

    assert response.status_code == 200
    assert response.json() == {"count": 0}
    assert published == []
    assert any(log["event"] == LogEvents.REQUEST_EXCLUDED for log in logs)


def test_handler_failure_published_then_reraised(app: FastAPI, published: list[Event]) -> None:
    client = TestClient(app)

    with pytest.raises(RuntimeError, match="boom"):
        client.get("/boom")

    assert _names(published) == ["request"]
    assert published[0].failure is not None
    assert published[0].failure.message == "boom"


def test_handler_failure_surfaces_as_500(app: FastAPI, published: list[Event]) -> None:
    response = TestClient(app, raise_server_exceptions=False).get("/boom")

    assert response.status_code == 500
    assert len(published) == 1


def test_response_passes_through_unchanged(bus: NotificationBus) -> None:
    test_app = FastAPI()
    test_app.add_middleware(InstrumentationMiddleware, bus=bus)

    @test_app.get("/teapot")
    async def teapot() -> JSONResponse:
        return JSONResponse({"brew": "tea"}, status_code=418, headers={"X-Pot": "short"})

    response = TestClient(test_app).get("/teapot")

    assert response.status_code == 418
    assert response.headers["x-pot"] == "short"
    assert response.json() == {"brew": "tea"}


def test_broken_listener_invisible_to_client(bus: NotificationBus) -> None:
    def broken(event: Event) -> None:
        raise ValueError("listener bug")

    bus.subscribe("request", broken)
    test_app = FastAPI()
    test_app.add_middleware(InstrumentationMiddleware, bus=bus)

    @test_app.get("/ok")
    async def ok() -> dict[str, Any]:
        return {"ok": True}

    response = TestClient(test_app).get("/ok")

    assert response.status_code == 200
    assert response.json() == {"ok": True}


def test_custom_event_name_and_prefixes(bus: NotificationBus, published: list[Event]) -> None:
    test_app = FastAPI()
    test_app.add_middleware(
        InstrumentationMiddleware,
        bus=bus,
        exclude_prefixes=("/health", "/metrics"),
        event_name="http.request",
    )

    @test_app.get("/health")
    async def health() -> dict[str, Any]:
        return {"status": "ok"}

    @test_app.get("/orders")
    async def orders() -> dict[str, Any]:
        return {"instrumenter_id": get_instrumenter_id()}

    client = TestClient(test_app)
    client.get("/health")
    response = client.get("/orders")

    assert _names(published) == ["http.request"]
    assert response.json()["instrumenter_id"] == published[0].instrumenter_id


def test_is_excluded_matches_prefix(bus: NotificationBus) -> None:
    middleware = InstrumentationMiddleware(FastAPI(), bus=bus)

    assert middleware.is_excluded("/request_metrics")
    assert middleware.is_excluded("/request_metrics/events/1")
    assert not middleware.is_excluded("/orders/request_metrics")
