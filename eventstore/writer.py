import logging
from datetime import datetime
from typing import Any

from sqlalchemy import insert
from sqlalchemy.exc import SQLAlchemyError

from .db import Storage
from .measure import Measure
from .models import ContinuousNotification, DiscreteNotification, as_db_time
from .registry import DeviceRegistry

log = logging.getLogger("eventstore.writer")

# built once, bound per call; the constructs hold no per-execution state
INSERT_CONTINUOUS = insert(ContinuousNotification)
INSERT_DISCRETE = insert(DiscreteNotification)


class NotificationWriter:
    """Appends notifications, one committed transaction per row.

    Writes are serialised through the storage session lock; nothing is
    retried here, a ``False`` return leaves the decision to the caller.
    """

    def __init__(self, storage: Storage, registry: DeviceRegistry) -> None:
        self.storage = storage
        self.registry = registry

    def _ensure_device(self, device_uri: str) -> None:
        if not self.registry.exists(device_uri):
            self.registry.register(device_uri)

    def _store(self, device_uri: str, stmt, params: dict[str, Any]) -> bool:
        try:
            with self.storage.lock:
                self._ensure_device(device_uri)
                with self.storage.session() as s:
                    s.connection().execute(stmt, params)
                    s.commit()
        except SQLAlchemyError as e:
            log.error("Error while storing event data for %s: %s", device_uri, e, exc_info=True)
            return False
        return True

    def insert_continuous_notification(self, device_uri: str, timestamp: datetime, value: Measure,
                                       name: str, params: str = "") -> bool:
        return self._store(device_uri, INSERT_CONTINUOUS, {
            "timestamp": as_db_time(timestamp),
            "unit": value.unit,
            "value": value.magnitude,
            "name": name,
            "params": params,
            "deviceuri": device_uri,
        })

    def insert_discrete_notification(self, device_uri: str, timestamp: datetime, value: str,
                                     name: str) -> bool:
        return self._store(device_uri, INSERT_DISCRETE, {
            "timestamp": as_db_time(timestamp),
            "value": value,
            "name": name,
            "deviceuri": device_uri,
        })
