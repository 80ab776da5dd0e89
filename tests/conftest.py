import random

import pytest

from math_drill.db import init_db


@pytest.fixture
def tmp_db(tmp_path):
    """Provide a temporary SQLite database path for tests."""
    db_path = str(tmp_path / "test_drill.db")
    return db_path


@pytest.fixture
def ready_db(tmp_db):
    """Temporary database with the schema created."""
    init_db(tmp_db)
    return tmp_db


@pytest.fixture
def rng():
    return random.Random(1234)


class FakeClock:
    """Millisecond clock advanced by hand."""

    def __init__(self, now: int = 0):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def clock():
    return FakeClock()


class MemoryWeightStore:
    """In-memory persistence collaborator that counts saves."""

    def __init__(self, stored=None):
        self.stored = stored or {}
        self.saves = []

    def load_weights(self, family, profile):
        return dict(self.stored.get((family, profile), {}))

    def save_weights(self, family, profile, weights):
        self.saves.append(dict(weights))
        self.stored[(family, profile)] = dict(weights)


@pytest.fixture
def memory_store():
    return MemoryWeightStore()
