"""Tests for the HTTP client used by UI code."""

from __future__ import annotations

import json
from typing import Callable, Iterator

import httpx
import pytest
from fastapi.testclient import TestClient

from smart_tasks.client import ClientError, ClientResult, TaskSearchClient
from smart_tasks.config import SearchSettings
from smart_tasks.search import SearchResult
from smart_tasks.server import (
    app,
    get_embedder,
    get_search_settings,
    get_store,
    get_subtask_generator,
)
from smart_tasks.tasks import TaskService


def _mock_client(handler: Callable[[httpx.Request], httpx.Response]) -> TaskSearchClient:
    http = httpx.Client(base_url="http://testserver", transport=httpx.MockTransport(handler))
    return TaskSearchClient(session_token="tok", http_client=http)


@pytest.fixture()
def api(store, embedder) -> Iterator[TestClient]:
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_embedder] = lambda: embedder
    app.dependency_overrides[get_subtask_generator] = lambda: None
    app.dependency_overrides[get_search_settings] = lambda: SearchSettings()
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def test_client_result_holds_exactly_one_side() -> None:
    assert ClientResult(data=[]).ok
    assert not ClientResult(error=ClientError("boom")).ok
    with pytest.raises(ValueError):
        ClientResult()
    with pytest.raises(ValueError):
        ClientResult(data=[], error=ClientError("boom"))


def test_search_against_live_app(api, store, embedder, alice_token) -> None:
    service = TaskService(store, embedder)
    groceries = service.create_task("alice", "Buy groceries")
    service.create_task("alice", "Call John")

    with TaskSearchClient(session_token=alice_token, http_client=api) as client:
        result = client.search("  buy milk ")

    assert result.ok
    assert result.error is None
    assert [item.id for item in result.data] == [groceries.id]
    assert isinstance(result.data[0], SearchResult)
    assert result.data[0].similarity == pytest.approx(1.0)
    assert ("query", "buy milk") in embedder.calls


def test_empty_result_list_is_success(api, alice_token) -> None:
    client = TaskSearchClient(session_token=alice_token, http_client=api)

    result = client.search("anything")

    assert result.ok
    assert result.data == []


def test_server_rejection_becomes_generic_error(api) -> None:
    client = TaskSearchClient(session_token="not-a-session", http_client=api)

    result = client.search("buy milk")

    assert result.data is None
    assert result.error == ClientError("Failed to perform smart search")


@pytest.mark.parametrize("query", ["", "   ", None])
def test_empty_query_is_rejected_locally(query) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    result = _mock_client(handler).search(query)

    assert result.error == ClientError("Query is required")


def test_request_carries_bearer_token_and_json_body() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"results": []})

    _mock_client(handler).search("call john")

    request = seen[0]
    assert request.url.path == "/api/search"
    assert request.headers["Authorization"] == "Bearer tok"
    assert json.loads(request.content) == {"query": "call john"}


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, json={"error": "Failed to perform smart search"}),
        httpx.Response(200, text="<html>oops</html>"),
        httpx.Response(200, json={"results": [{"id": "x"}]}),
        httpx.Response(200, json=["not", "an", "object"]),
    ],
)
def test_bad_responses_become_generic_error(response: httpx.Response, caplog) -> None:
    result = _mock_client(lambda request: response).search("buy milk")

    assert result.data is None
    assert result.error == ClientError("Failed to perform smart search")
    assert caplog.records


def test_transport_error_becomes_generic_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    result = _mock_client(handler).search("buy milk")

    assert result.error == ClientError("Failed to perform smart search")


def test_generate_subtasks() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/subtasks/generate"
        return httpx.Response(200, json={"subtasks": ["Book venue", "Hire photographer"]})

    result = _mock_client(handler).generate_subtasks("Plan a wedding")

    assert result.data == ["Book venue", "Hire photographer"]


def test_generate_subtasks_failure() -> None:
    result = _mock_client(lambda request: httpx.Response(500, json={})).generate_subtasks(
        "Plan a wedding"
    )

    assert result.error == ClientError("Failed to generate subtasks")
    assert _mock_client(lambda request: httpx.Response(200)).generate_subtasks(" ").error == (
        ClientError("Task title is required")
    )
