import logging

from sqlalchemy import Table, inspect
from sqlalchemy.exc import SQLAlchemyError

from .db import Storage
from .errors import SchemaError
from .models import ContinuousNotification, Device, DiscreteNotification

log = logging.getLogger("eventstore.schema")

# creation order matters: the notification tables reference device.uri
SCHEMA_TABLES: tuple[Table, ...] = (
    Device.__table__,
    DiscreteNotification.__table__,
    ContinuousNotification.__table__,
)

def ensure_table(storage: Storage, table: Table) -> bool:
    """Create ``table`` unless the catalog already lists it. Returns True if created."""
    try:
        with storage.session() as s:
            conn = s.connection()
            if inspect(conn).has_table(table.name):
                return False
            table.create(conn)
            s.commit()
    except SQLAlchemyError as e:
        raise SchemaError(f"unable to check / create table {table.name}") from e
    log.info("Schema creation has been successful for table %s", table.name)
    return True

def ensure_schema(storage: Storage, tables: tuple[Table, ...] = SCHEMA_TABLES) -> bool:
    """Idempotently create the missing tables.

    Failures are logged and do not stop the store from coming up; the return
    value tells whether every table is known to be in place.
    """
    complete = True
    for table in tables:
        try:
            ensure_table(storage, table)
        except SchemaError as e:
            log.error("%s: %s", e, e.__cause__)
            complete = False
    return complete
