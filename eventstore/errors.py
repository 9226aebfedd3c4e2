class EventStoreError(Exception):
    """Base class for event store failures."""

class ConnectivityError(EventStoreError):
    """The database connection could not be (re)opened."""

class SchemaError(EventStoreError):
    """Checking or creating the notification tables failed."""

class QueryError(EventStoreError):
    """A notification query failed to execute."""
