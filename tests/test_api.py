import json
from collections.abc import Generator
from typing import Any
from unittest.mock import AsyncMock

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from expense_dashboard.api.routes.events import stream_events
from expense_dashboard.app import build_state, create_app
from expense_dashboard.models import InvalidationEvent, MonthScope
from expense_dashboard.services.broadcaster import InvalidationBroadcaster
from helpers import make_client, raw_row

SCOPE_BODY = {"month": 2, "year": 2025}


@pytest.fixture
def api_backend(scenario_rows: list[dict[str, Any]]) -> AsyncMock:
    return make_client(scenario_rows)


@pytest.fixture
def app_client(
    api_backend: AsyncMock,
    monkeypatch: pytest.MonkeyPatch,
) -> Generator[tuple[FastAPI, TestClient], None, None]:
    monkeypatch.setenv("REMOVAL_DELAY_MS", "0")
    monkeypatch.setenv("STRICT_TRANSITIONS", "true")
    app = create_app()
    with TestClient(app) as client:
        build_state(app, api_backend)
        yield app, client


def test_open_renders_projection(app_client: tuple[FastAPI, TestClient]) -> None:
    _, client = app_client

    response = client.post("/api/views/expense/open", json=SCOPE_BODY)

    assert response.status_code == 200
    data = response.json()
    assert data["heading"] == "Gastos de Março 2025"
    assert data["total"] == "80"
    assert [row["id"] for row in data["rows"]] == [1, 2]
    assert data["rows"][1]["deletable"] is False


def test_render_closed_view_conflicts(app_client: tuple[FastAPI, TestClient]) -> None:
    _, client = app_client
    assert client.get("/api/views/expense").status_code == 409
    assert client.get("/api/views/transfer").status_code == 422


def test_delete_imported_row_is_forbidden(
    app_client: tuple[FastAPI, TestClient],
    api_backend: AsyncMock,
) -> None:
    _, client = app_client
    client.post("/api/views/expense/open", json=SCOPE_BODY)

    response = client.delete("/api/views/expense/rows/2")

    assert response.status_code == 403
    api_backend.delete_transaction.assert_not_called()
    assert client.get("/api/views/expense").json()["total"] == "80"


def test_delete_unknown_row_is_not_found(app_client: tuple[FastAPI, TestClient]) -> None:
    _, client = app_client
    client.post("/api/views/expense/open", json=SCOPE_BODY)

    assert client.delete("/api/views/expense/rows/404").status_code == 404


def test_delete_and_wait_removes_row(app_client: tuple[FastAPI, TestClient]) -> None:
    app, client = app_client
    client.post("/api/views/expense/open", json=SCOPE_BODY)
    events: list[InvalidationEvent] = []
    app.state.broadcaster.subscribe(events.append)

    response = client.delete("/api/views/expense/rows/1", params={"wait": "true"})

    assert response.status_code == 202
    data = response.json()
    assert data["status"] == "removed"
    assert [row["id"] for row in data["view"]["rows"]] == [2]
    assert data["view"]["total"] == "30"
    assert events == [InvalidationEvent(item_id=1, month=2, year=2025)]


def test_delete_without_wait_returns_animating_row(
    app_client: tuple[FastAPI, TestClient],
) -> None:
    _, client = app_client
    client.post("/api/views/expense/open", json=SCOPE_BODY)

    response = client.delete("/api/views/expense/rows/1")

    assert response.status_code == 202
    data = response.json()
    assert data["status"] == "pending"
    first = data["view"]["rows"][0]
    assert first["is_animating"] is True
    assert first["is_pending"] is True
    # Animating rows still count toward the footer total
    assert data["view"]["total"] == "80"


def test_failed_delete_rolls_back_and_notifies(
    app_client: tuple[FastAPI, TestClient],
    api_backend: AsyncMock,
) -> None:
    _, client = app_client
    api_backend.delete_transaction.side_effect = httpx.ConnectError("offline")
    client.post("/api/views/expense/open", json=SCOPE_BODY)

    response = client.delete("/api/views/expense/rows/1", params={"wait": "true"})

    assert response.status_code == 502
    view = client.get("/api/views/expense").json()
    assert [row["id"] for row in view["rows"]] == [1, 2]
    assert view["rows"][0]["is_animating"] is False

    notifications = client.get("/api/notifications").json()
    assert len(notifications) == 1
    assert notifications[0]["item_id"] == 1

    dismissed = client.delete(f"/api/notifications/{notifications[0]['id']}")
    assert dismissed.status_code == 200
    assert client.get("/api/notifications").json() == []
    assert client.delete(f"/api/notifications/{notifications[0]['id']}").status_code == 404


def test_close_then_render_conflicts(app_client: tuple[FastAPI, TestClient]) -> None:
    _, client = app_client
    client.post("/api/views/expense/open", json=SCOPE_BODY)

    assert client.post("/api/views/expense/close").json() == {"status": "closed"}
    assert client.get("/api/views/expense").status_code == 409
    assert client.delete("/api/views/expense/rows/1").status_code == 409


def test_open_reports_backend_failure(
    app_client: tuple[FastAPI, TestClient],
    api_backend: AsyncMock,
) -> None:
    _, client = app_client
    api_backend.list_transactions.side_effect = httpx.ConnectError("offline")

    assert client.post("/api/views/expense/open", json=SCOPE_BODY).status_code == 502


def test_open_validates_month(app_client: tuple[FastAPI, TestClient]) -> None:
    _, client = app_client
    assert client.post("/api/views/expense/open", json={"month": 12, "year": 2025}).status_code == 422


def test_totals_follow_deletes(
    app_client: tuple[FastAPI, TestClient],
    api_backend: AsyncMock,
) -> None:
    _, client = app_client

    first = client.get("/api/totals/expense", params=SCOPE_BODY).json()
    assert first["total"] == "80"
    assert first["total_formatted"] == "R$ 80,00"

    client.post("/api/views/expense/open", json=SCOPE_BODY)
    api_backend.list_transactions.return_value = [raw_row(2, 30, "IMPORTED")]
    client.delete("/api/views/expense/rows/1", params={"wait": "true"})

    assert client.get("/api/totals/expense", params=SCOPE_BODY).json()["total"] == "30"


def test_quick_action_creates_and_invalidates(
    app_client: tuple[FastAPI, TestClient],
    api_backend: AsyncMock,
) -> None:
    app, client = app_client
    events: list[InvalidationEvent] = []
    app.state.broadcaster.subscribe(events.append)

    response = client.post(
        "/api/quick-actions/recurring-expense",
        json={"draft": {"amount": "89.90", "description": "Internet"}, **SCOPE_BODY},
    )

    assert response.status_code == 201
    assert response.json() == {"status": "created", "transaction": {"id": 99}}
    assert api_backend.create_transaction.await_args.kwargs == {"recurring": True}
    assert events[0].action == "created"


def test_quick_action_rejects_invalid_draft(app_client: tuple[FastAPI, TestClient]) -> None:
    _, client = app_client
    response = client.post(
        "/api/quick-actions/expense",
        json={"draft": {"amount": "-1", "description": "x"}, **SCOPE_BODY},
    )
    assert response.status_code == 422


def test_quick_action_reports_backend_failure(
    app_client: tuple[FastAPI, TestClient],
    api_backend: AsyncMock,
) -> None:
    _, client = app_client
    api_backend.create_transaction.side_effect = httpx.ConnectError("offline")
    response = client.post(
        "/api/quick-actions/income",
        json={"draft": {"amount": "10", "description": "Freela"}, **SCOPE_BODY},
    )
    assert response.status_code == 502


@pytest.mark.anyio
async def test_event_stream_delivers_and_releases_subscription() -> None:
    broadcaster = InvalidationBroadcaster()
    request = AsyncMock()
    request.is_disconnected = AsyncMock(return_value=True)
    stream = stream_events(request, broadcaster, MonthScope(month=2, year=2025), keepalive=0.01)

    assert await stream.__anext__() == ": connected\n\n"
    assert broadcaster.listener_count == 1

    broadcaster.publish(InvalidationEvent(item_id=4, month=5, year=2025))
    broadcaster.publish(InvalidationEvent(item_id=1, month=2, year=2025))
    chunk = await stream.__anext__()

    assert chunk.startswith("event: invalidate\n")
    payload = json.loads(chunk.split("data: ", 1)[1])
    assert payload["item_id"] == 1

    with pytest.raises(StopAsyncIteration):
        await stream.__anext__()
    assert broadcaster.listener_count == 0


@pytest.mark.anyio
async def test_event_stream_keeps_newest_events_for_slow_clients() -> None:
    broadcaster = InvalidationBroadcaster()
    request = AsyncMock()
    request.is_disconnected = AsyncMock(return_value=True)
    stream = stream_events(request, broadcaster, None, keepalive=0.01, queue_size=2)
    await stream.__anext__()

    for item_id in (1, 2, 3):
        broadcaster.publish(InvalidationEvent(item_id=item_id, month=2, year=2025))

    received = [json.loads((await stream.__anext__()).split("data: ", 1)[1])["item_id"] for _ in range(2)]

    assert received == [2, 3]
    with pytest.raises(StopAsyncIteration):
        await stream.__anext__()
