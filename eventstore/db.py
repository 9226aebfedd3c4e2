import logging
import threading
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import event
from sqlalchemy.engine import URL, Connection, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, create_engine

from .errors import ConnectivityError
from .settings import settings

log = logging.getLogger("eventstore.db")

# compaction/shutdown command issued before the connection is closed
SHUTDOWN_STATEMENTS = {
    "sqlite": "VACUUM",
    "h2": "SHUTDOWN COMPACT",
}

def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # sqlite ignores ON DELETE CASCADE unless asked per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()

def build_url(url: str, user: str | None = None, password: str | None = None) -> URL:
    """Merge separately kept credentials into the database URL."""
    db_url = make_url(url)
    # file databases reject credentials in the URL
    if db_url.get_backend_name() == "sqlite":
        return db_url
    if user is not None:
        db_url = db_url.set(username=user)
    if password is not None:
        db_url = db_url.set(password=password)
    return db_url

class Storage:
    """Owns the single persistent connection to the notification database.

    The connection is reopened with the retained credentials whenever it is
    found closed. Every unit of work goes through ``session()``, which holds
    a re-entrant lock so reads, writes and reconnects never interleave on the
    shared connection.
    """

    def __init__(self, url: str, user: str | None = None, password: str | None = None,
                 shutdown_statement: str | None = None):
        self.url = url
        self.user = user
        self.password = password

        try:
            self.engine = create_engine(build_url(url, user, password))
        except (SQLAlchemyError, ImportError) as e:
            log.error("Unable to configure database engine for %s: %s", url, e)
            raise ConnectivityError(f"cannot configure database {url!r}") from e

        if self.engine.dialect.name == "sqlite":
            event.listen(self.engine, "connect", _enable_sqlite_foreign_keys)

        if shutdown_statement is None:
            shutdown_statement = SHUTDOWN_STATEMENTS.get(self.engine.dialect.name)
        self.shutdown_statement = shutdown_statement or None

        self._lock = threading.RLock()
        self._connection: Connection | None = None
        self.acquire()

    @classmethod
    def from_settings(cls, cfg=settings) -> "Storage":
        return cls(cfg.database_url, cfg.db_user, cfg.db_password,
                   shutdown_statement=cfg.shutdown_statement)

    @property
    def lock(self):
        return self._lock

    @property
    def dialect(self) -> str:
        return self.engine.dialect.name

    def _is_open(self) -> bool:
        conn = self._connection
        return conn is not None and not conn.closed and not conn.invalidated

    def acquire(self) -> Connection:
        """Return a live connection, reopening it if it was closed."""
        with self._lock:
            if not self._is_open():
                if self._connection is not None and not self._connection.closed:
                    self._connection.close()
                try:
                    self._connection = self.engine.connect()
                except SQLAlchemyError as e:
                    log.error("Unable to open database connection to %s: %s", self.url, e)
                    raise ConnectivityError(f"cannot connect to {self.url!r}") from e
                log.info("Opened database connection to %s", self.engine.url.render_as_string(hide_password=True))
            return self._connection

    @contextmanager
    def session(self) -> Iterator[Session]:
        with self._lock:
            conn = self.acquire()
            # 👇 prevent attribute expiration so reads after commit are safe
            with Session(bind=conn, expire_on_commit=False) as s:
                yield s

    def shutdown(self) -> None:
        """Compact the database, then close the connection if still open."""
        with self._lock:
            if self._is_open():
                conn = self._connection
                if self.shutdown_statement:
                    try:
                        conn.rollback()
                        conn.execution_options(isolation_level="AUTOCOMMIT")
                        conn.exec_driver_sql(self.shutdown_statement)
                    except SQLAlchemyError as e:
                        log.error("Shutdown statement %r failed: %s", self.shutdown_statement, e)
            if self._connection is not None and not self._connection.closed:
                self._connection.close()
            self._connection = None
            self.engine.dispose()
            log.info("Database storage shut down")
