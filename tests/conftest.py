from datetime import datetime, timedelta, timezone

import pytest

from eventstore.db import Storage
from eventstore.store import EventStore

T0 = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)
EARLY = T0 - timedelta(days=1)
LATE = T0 + timedelta(days=1)


def at(minutes: int) -> datetime:
    return T0 + timedelta(minutes=minutes)


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite:///{tmp_path / 'events.db'}"


@pytest.fixture
def storage(db_url):
    s = Storage(db_url)
    yield s
    s.shutdown()


@pytest.fixture
def store(storage):
    return EventStore(storage)


@pytest.fixture
def writer(store):
    return store.writer


@pytest.fixture
def reader(store):
    return store.reader
