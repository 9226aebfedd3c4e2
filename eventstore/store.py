import logging
from typing import Any, Mapping

from .db import Storage
from .ingest import handle_notification
from .reader import NotificationReader
from .registry import DeviceRegistry, SqlDeviceRegistry
from .schema import ensure_schema
from .settings import Settings, settings
from .writer import NotificationWriter

log = logging.getLogger("eventstore")

def configure_logging(cfg: Settings = settings) -> None:
    logging.basicConfig(level=cfg.log_level.upper())


class EventStore:
    """Storage, schema, device registry, writer and reader wired together.

    ``close()`` shuts the storage down; the store also works as a context
    manager.
    """

    def __init__(self, storage: Storage | None = None, registry: DeviceRegistry | None = None):
        self.storage = storage or Storage.from_settings()
        self.schema_ready = ensure_schema(self.storage)
        if not self.schema_ready:
            log.error("Event store started without a complete schema; reads and writes will fail")
        self.registry = registry or SqlDeviceRegistry(self.storage)
        self.writer = NotificationWriter(self.storage, self.registry)
        self.reader = NotificationReader(self.storage)

    @classmethod
    def open(cls, url: str, user: str | None = None, password: str | None = None) -> "EventStore":
        return cls(Storage(url, user, password))

    def ingest(self, payload: Mapping[str, Any]) -> bool:
        return handle_notification(self.writer, payload)

    def close(self) -> None:
        self.storage.shutdown()

    def __enter__(self) -> "EventStore":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
