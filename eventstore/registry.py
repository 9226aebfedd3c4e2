import logging
from typing import Protocol

from sqlmodel import select

from .db import Storage
from .models import Device

log = logging.getLogger("eventstore.registry")

class DeviceRegistry(Protocol):
    def exists(self, uri: str) -> bool: ...
    def register(self, uri: str) -> None: ...


class SqlDeviceRegistry:
    """Device bookkeeping on the ``device`` table shared with the notifications."""

    def __init__(self, storage: Storage) -> None:
        self.storage = storage

    def exists(self, uri: str) -> bool:
        with self.storage.session() as s:
            return s.get(Device, uri) is not None

    def register(self, uri: str) -> None:
        with self.storage.session() as s:
            if s.get(Device, uri) is not None:
                return
            s.add(Device(uri=uri))
            s.commit()
        log.info("Registered device %s", uri)

    def delete(self, uri: str) -> bool:
        """Remove a device; the database cascades the delete to its notifications."""
        with self.storage.session() as s:
            d = s.get(Device, uri)
            if not d:
                return False
            s.delete(d)
            s.commit()
        log.info("Deleted device %s and its notification history", uri)
        return True

    def list_devices(self) -> list[str]:
        with self.storage.session() as s:
            return list(s.exec(select(Device.uri).order_by(Device.uri)).all())
