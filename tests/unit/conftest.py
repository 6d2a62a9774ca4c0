"""Unit test conftest: in-memory stand-ins for a document database driver."""

import asyncio
import os
from typing import Any, Dict, List, Optional, Set

import pytest

# Keep test runs independent of a developer's local .env / environment
os.environ.setdefault("MULTIBATCH_LOG_LEVEL", "DEBUG")
os.environ.pop("MULTIBATCH_BATCH_HARD_LIMIT", None)
os.environ.pop("MULTIBATCH_FAILURE_POLICY", None)
os.environ.pop("MULTIBATCH_MAX_COMMIT_CONCURRENCY", None)
os.environ.pop("MULTIBATCH_LOCAL_DEVELOPMENT", None)


class FakeBatch:
    """Records staged writes like a driver WriteBatch; commit() is a coroutine."""

    def __init__(self, connection: "FakeConnection", index: int):
        self.connection = connection
        self.index = index
        self.operations: List[tuple] = []
        self.commit_calls = 0

    def delete(self, reference):
        self.operations.append(("delete", reference))

    def set(self, reference, document_data, *args):
        self.operations.append(("set", reference, document_data, *args))

    def update(self, reference, field_updates):
        self.operations.append(("update", reference, field_updates))

    async def commit(self):
        self.commit_calls += 1
        conn = self.connection
        conn.in_flight += 1
        conn.max_in_flight = max(conn.max_in_flight, conn.in_flight)
        try:
            # Yield a few times so sibling commits can start
            for _ in range(3):
                await asyncio.sleep(0)
            if self.index in conn.fail_on:
                raise conn.failure_factory(self.index)
            conn.committed.append(self.index)
            return [f"write-result-{self.index}-{i}" for i in range(len(self.operations))]
        finally:
            conn.in_flight -= 1


class BlockingFakeBatch(FakeBatch):
    """Same as FakeBatch but with a blocking commit(), like a sync driver."""

    def commit(self):
        self.commit_calls += 1
        if self.index in self.connection.fail_on:
            raise self.connection.failure_factory(self.index)
        self.connection.committed.append(self.index)
        return [f"write-result-{self.index}-{i}" for i in range(len(self.operations))]


class FakeConnection:
    """Driver client stand-in handing out FakeBatch instances."""

    def __init__(
        self,
        fail_on: Optional[Set[int]] = None,
        blocking: bool = False,
        failure_factory=None,
    ):
        self.created: List[FakeBatch] = []
        self.committed: List[int] = []
        self.fail_on: Set[int] = set(fail_on or ())
        self.blocking = blocking
        self.failure_factory = failure_factory or (
            lambda index: RuntimeError(f"commit rejected for batch {index}")
        )
        self.in_flight = 0
        self.max_in_flight = 0

    def batch(self) -> FakeBatch:
        cls = BlockingFakeBatch if self.blocking else FakeBatch
        batch = cls(self, len(self.created))
        self.created.append(batch)
        return batch


class LimitedFakeConnection(FakeConnection):
    """Connection advertising its own hard maximum."""

    def __init__(self, max_batch_operations: Any, **kwargs):
        super().__init__(**kwargs)
        self.max_batch_operations = max_batch_operations


@pytest.fixture
def connection():
    """Create a fake connection with coroutine commits."""
    return FakeConnection()


@pytest.fixture
def refs() -> List[str]:
    """Document references for staging."""
    return [f"users/user-{i}" for i in range(1000)]


@pytest.fixture
def doc() -> Dict[str, Any]:
    """A small document body."""
    return {"name": "Ada", "active": True}


@pytest.fixture
def connection_factory():
    """Build fake connections with custom failure behaviour."""
    return FakeConnection


@pytest.fixture
def limited_connection_factory():
    """Build fake connections that advertise max_batch_operations."""
    return LimitedFakeConnection
