"""Tests for the DuckDB and in-memory task stores."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest

from smart_tasks.errors import TaskNotFoundError
from smart_tasks.storage import DuckDBTaskStore, InMemoryTaskStore


@pytest.fixture(params=["duckdb", "memory"])
def any_store(request, tmp_path: Path):
    if request.param == "memory":
        yield InMemoryTaskStore()
        return
    store = DuckDBTaskStore(str(tmp_path / "tasks.duckdb"))
    yield store
    store.close()


def test_create_and_get_task(any_store) -> None:
    task = any_store.create_task(
        owner_id="alice", text="Buy groceries", priority="low", status="pending"
    )

    fetched = any_store.get_task(task.id)

    assert fetched == task
    assert fetched.owner_id == "alice"
    assert fetched.parent_task_id is None
    assert fetched.embedding is None
    assert fetched.created_at == fetched.updated_at


def test_get_unknown_task_returns_none(any_store) -> None:
    assert any_store.get_task("missing") is None


def test_list_top_level_tasks_is_owner_scoped_and_newest_first(any_store) -> None:
    first = any_store.create_task(owner_id="alice", text="One", priority="low", status="pending")
    any_store.create_task(owner_id="bob", text="Other", priority="low", status="pending")
    second = any_store.create_task(owner_id="alice", text="Two", priority="high", status="completed")
    any_store.create_task(
        owner_id="alice",
        text="Sub",
        priority="low",
        status="pending",
        parent_task_id=first.id,
    )

    tasks = any_store.list_top_level_tasks("alice")

    assert [task.id for task in tasks] == [second.id, first.id]


def test_list_subtasks_oldest_first(any_store) -> None:
    parent = any_store.create_task(owner_id="alice", text="Plan trip", priority="medium", status="pending")
    a = any_store.create_task(
        owner_id="alice", text="Book flights", priority="medium", status="pending", parent_task_id=parent.id
    )
    b = any_store.create_task(
        owner_id="alice", text="Pack bags", priority="medium", status="pending", parent_task_id=parent.id
    )

    assert [task.id for task in any_store.list_subtasks(parent.id)] == [a.id, b.id]


def test_nested_subtasks_are_rejected(any_store) -> None:
    parent = any_store.create_task(owner_id="alice", text="Plan trip", priority="medium", status="pending")
    child = any_store.create_task(
        owner_id="alice", text="Book flights", priority="medium", status="pending", parent_task_id=parent.id
    )

    with pytest.raises(ValueError):
        any_store.create_task(
            owner_id="alice", text="Compare prices", priority="low", status="pending", parent_task_id=child.id
        )


def test_unknown_parent_raises(any_store) -> None:
    with pytest.raises(TaskNotFoundError):
        any_store.create_task(
            owner_id="alice", text="Orphan", priority="low", status="pending", parent_task_id="nope"
        )


@pytest.mark.parametrize(
    "fields",
    [
        {"text": "   "},
        {"priority": "urgent"},
        {"status": "done"},
    ],
)
def test_invalid_fields_are_rejected(any_store, fields) -> None:
    values = {"text": "Valid", "priority": "low", "status": "pending"}
    values.update(fields)

    with pytest.raises(ValueError):
        any_store.create_task(owner_id="alice", **values)


def test_embedding_roundtrip_and_invalidation_on_text_change(any_store) -> None:
    task = any_store.create_task(owner_id="alice", text="Buy groceries", priority="low", status="pending")

    any_store.set_embedding(task.id, [0.25, -0.5, 1.0])
    assert any_store.get_task(task.id).embedding == [0.25, -0.5, 1.0]

    same_text = any_store.update_task(task.id, text="Buy groceries", status="completed")
    assert same_text.embedding == [0.25, -0.5, 1.0]
    assert same_text.status == "completed"

    edited = any_store.update_task(task.id, text="Buy vegetables")
    assert edited.text == "Buy vegetables"
    assert edited.embedding is None


def test_update_priority_and_status(any_store) -> None:
    task = any_store.create_task(owner_id="alice", text="Call John", priority="low", status="pending")

    updated = any_store.update_task(task.id, priority="high", status="in-progress")

    assert updated.priority == "high"
    assert updated.status == "in-progress"
    assert updated.text == "Call John"


def test_update_or_embed_unknown_task_raises(any_store) -> None:
    with pytest.raises(TaskNotFoundError):
        any_store.update_task("missing", status="completed")
    with pytest.raises(TaskNotFoundError):
        any_store.set_embedding("missing", [1.0])


def test_delete_task_removes_subtasks(any_store) -> None:
    parent = any_store.create_task(owner_id="alice", text="Plan trip", priority="medium", status="pending")
    any_store.create_task(
        owner_id="alice", text="Book flights", priority="medium", status="pending", parent_task_id=parent.id
    )
    keep = any_store.create_task(owner_id="alice", text="Other", priority="low", status="pending")

    removed = any_store.delete_task(parent.id)

    assert removed == 2
    assert any_store.get_task(parent.id) is None
    assert any_store.list_subtasks(parent.id) == []
    assert [task.id for task in any_store.list_top_level_tasks("alice")] == [keep.id]
    assert any_store.delete_task(parent.id) == 0


def test_sessions(any_store) -> None:
    token = any_store.create_session("alice")
    other = any_store.create_session("alice")

    assert token != other
    assert any_store.resolve_session(token) == "alice"
    assert any_store.resolve_session("bogus") is None
    assert any_store.revoke_session(token) is True
    assert any_store.resolve_session(token) is None
    assert any_store.revoke_session(token) is False


def test_duckdb_store_persists_across_connections(tmp_path: Path) -> None:
    db_path = str(tmp_path / "nested" / "tasks.duckdb")
    store = DuckDBTaskStore(db_path)
    task = store.create_task(owner_id="alice", text="Buy groceries", priority="low", status="pending")
    store.set_embedding(task.id, [0.1, 0.2])
    token = store.create_session("alice")
    store.close()

    reopened = DuckDBTaskStore(db_path, read_only=True, initialize=False)
    try:
        assert reopened.get_task(task.id).embedding == pytest.approx([0.1, 0.2])
        assert reopened.resolve_session(token) == "alice"
    finally:
        reopened.close()


def test_duckdb_store_is_safe_to_share_between_threads(tmp_path: Path) -> None:
    store = DuckDBTaskStore(str(tmp_path / "tasks.duckdb"))
    for index in range(20):
        store.create_task(owner_id="alice", text=f"Task {index}", priority="low", status="pending")
    store.create_task(owner_id="bob", text="Not alice's", priority="low", status="pending")
    token = store.create_session("alice")

    def worker(_: int) -> tuple[set[str], set[int]]:
        owners: set[str] = set()
        sizes: set[int] = set()
        for _ in range(200):
            owners.add(store.resolve_session(token))
            tasks = store.list_top_level_tasks("alice")
            sizes.add(len(tasks))
            owners.update(task.owner_id for task in tasks)
        return owners, sizes

    try:
        with ThreadPoolExecutor(max_workers=8) as pool:
            outcomes = list(pool.map(worker, range(8)))
    finally:
        store.close()

    for owners, sizes in outcomes:
        assert owners == {"alice"}
        assert sizes == {20}
