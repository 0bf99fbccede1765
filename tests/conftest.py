"""
Pytest configuration and fixtures for modgate tests.
"""

import asyncio
import copy
import sys
from pathlib import Path

import pytest

# Add src directory to path so imports work
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from modgate.database.doc_path import apply_ops  # noqa: E402
from modgate.errors import PersistenceError  # noqa: E402


class MemoryDocumentStore:
    """In-memory document store that records every call."""

    def __init__(self):
        self.documents = {}
        self.fetch_calls = []
        self.update_calls = []
        self.fail_updates = False
        self.fail_keys = set()
        self.fetch_delay = 0.0

    def seed(self, collection, key, body):
        self.documents[(collection, key)] = copy.deepcopy(body)

    def body(self, collection, key):
        return self.documents.get((collection, key))

    async def fetch(self, collection, key, fields):
        fields = tuple(fields)
        self.fetch_calls.append((collection, key, fields))
        if self.fetch_delay:
            await asyncio.sleep(self.fetch_delay)
        document = self.documents.get((collection, key))
        if document is None:
            return None
        return {f.value: copy.deepcopy(document[f.value]) for f in fields if f.value in document}

    async def apply_update(self, collection, key, ops):
        self.update_calls.append((collection, key, list(ops)))
        if self.fail_updates or (collection, key) in self.fail_keys:
            raise PersistenceError(f"Failed to update {collection}/{key}")
        document = self.documents.setdefault((collection, key), {})
        apply_ops(document, copy.deepcopy(list(ops)))

    async def delete(self, collection, key):
        return self.documents.pop((collection, key), None) is not None


class FakeClock:
    """Epoch-millisecond clock that only moves when told to."""

    def __init__(self, now: int = 1_700_000_000_000):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture()
def store() -> MemoryDocumentStore:
    return MemoryDocumentStore()


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()
