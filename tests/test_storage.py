"""
Tests for the connection manager.
"""

import pytest

from eventstore.db import Storage, build_url
from eventstore.errors import ConnectivityError
from eventstore.settings import Settings
from eventstore.store import EventStore

from conftest import EARLY, LATE, T0


class TestAcquire:
    """Test connection acquisition and lazy reopening."""

    def test_acquire_returns_open_connection(self, storage):
        conn = storage.acquire()
        assert not conn.closed
        assert storage.acquire() is conn

    def test_closed_connection_is_reopened(self, storage):
        first = storage.acquire()
        first.close()

        second = storage.acquire()
        assert second is not first
        assert not second.closed

    def test_data_survives_reconnect(self, storage):
        store = EventStore(storage)
        assert store.writer.insert_discrete_notification("d1", T0, "on", "state")

        storage.acquire().close()

        stream = store.reader.get_discrete_stream("d1", "state", EARLY, LATE)
        assert [p.value for p in stream.datapoints] == ["on"]

    def test_credentials_are_retained(self, db_url):
        s = Storage(db_url, user="gateway", password="secret")
        try:
            assert s.user == "gateway"
            assert s.password == "secret"
            # sqlite URLs cannot carry credentials
            assert s.engine.url.username is None
        finally:
            s.shutdown()

    def test_build_url_merges_credentials(self):
        url = build_url("postgresql://db:5432/events", "gateway", "secret")
        assert url.username == "gateway"
        assert url.password == "secret"
        assert url.host == "db"
        assert url.database == "events"

    def test_unknown_backend_raises_connectivity_error(self):
        with pytest.raises(ConnectivityError):
            Storage("nosuchdialect://host/db")

    def test_unreachable_database_raises_connectivity_error(self):
        with pytest.raises(ConnectivityError):
            Storage("sqlite:////nonexistent/dir/events.db")

    def test_from_settings(self, db_url):
        s = Storage.from_settings(Settings(database_url=db_url))
        try:
            assert s.dialect == "sqlite"
        finally:
            s.shutdown()


class TestShutdown:
    """Test the shutdown sequence."""

    def test_sqlite_compacts_with_vacuum(self, storage):
        assert storage.shutdown_statement == "VACUUM"

    def test_empty_statement_disables_compaction(self, db_url):
        s = Storage(db_url, shutdown_statement="")
        assert s.shutdown_statement is None
        s.shutdown()

    def test_shutdown_closes_connection(self, db_url):
        s = Storage(db_url)
        conn = s.acquire()
        s.shutdown()
        assert conn.closed

    def test_shutdown_twice_is_harmless(self, db_url):
        s = Storage(db_url)
        s.shutdown()
        s.shutdown()

    def test_failing_statement_still_closes(self, db_url):
        s = Storage(db_url, shutdown_statement="NOT VALID SQL")
        conn = s.acquire()
        s.shutdown()
        assert conn.closed
