from __future__ import annotations

import pytest

from fakes import FakeEmbedder
from smart_tasks.storage import InMemoryTaskStore


@pytest.fixture()
def store() -> InMemoryTaskStore:
    return InMemoryTaskStore()


@pytest.fixture()
def embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture()
def alice_token(store: InMemoryTaskStore) -> str:
    return store.create_session("alice")
