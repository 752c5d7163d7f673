# tests/conftest.py
from collections import defaultdict
from unittest.mock import AsyncMock, MagicMock

import pytest


def pytest_configure(config):
    """Register custom markers"""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "slow: Slow tests")
    config.addinivalue_line("markers", "mocked: Tests with mocking")
    config.addinivalue_line("markers", "e2e: End-to-end tests")
    config.addinivalue_line("markers", "smoke: Smoke tests")


class FakeCursor:
    """Minimal stand-in for a Motor cursor: chaining, to_list and async iteration"""

    def __init__(self, docs):
        self.docs = list(docs)
        self.sort_args = None
        self.limit_value = None

    def sort(self, *args, **kwargs):
        self.sort_args = args
        return self

    def limit(self, value):
        self.limit_value = value
        self.docs = self.docs[:value]
        return self

    async def to_list(self, length=None):
        return self.docs if length is None else self.docs[:length]

    def __aiter__(self):
        self._iter = iter(self.docs)
        return self

    async def __anext__(self):
        try:
            return next(self._iter)
        except StopIteration:
            raise StopAsyncIteration


def make_collection(find_docs=None):
    collection = MagicMock()
    collection.find.return_value = FakeCursor(find_docs or [])
    collection.find_one = AsyncMock(return_value=None)
    collection.insert_one = AsyncMock()
    collection.update_one = AsyncMock()
    collection.update_many = AsyncMock(return_value=MagicMock(modified_count=0))
    collection.delete_one = AsyncMock(return_value=MagicMock(deleted_count=1))
    collection.delete_many = AsyncMock(return_value=MagicMock(deleted_count=0))
    collection.count_documents = AsyncMock(return_value=0)
    collection.create_index = AsyncMock()
    return collection


def make_db():
    """A db mock where db[name] hands out one collection mock per name"""
    collections = defaultdict(make_collection)
    db = MagicMock()
    db.__getitem__.side_effect = lambda name: collections[name]
    db.command = AsyncMock(return_value={"ok": 1})
    db.collections = collections
    return db


@pytest.fixture
def fake_db():
    return make_db()
