import logging
from datetime import datetime
from typing import Callable, Iterable, Mapping, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import select

from .db import Storage
from .errors import QueryError
from .models import ContinuousNotification, DiscreteNotification, as_db_time, from_db_time
from .schemas import EventDataPoint, EventDataStream, EventDataStreamSet
from .settings import settings

log = logging.getLogger("eventstore.reader")

Row = TypeVar("Row")

AGGREGATED_STREAM_NAME = "events"


def compose_stream_set(rows: Iterable[Row], device_uri: str | None,
                       key: Callable[[Row], tuple[str, str]],
                       to_point: Callable[[Row], EventDataPoint]) -> EventDataStreamSet:
    """Fold ordered rows into streams.

    A new stream starts whenever the ``(name, params)`` key differs from the
    one of the immediately preceding row, so equal keys are only merged when
    they are contiguous. Callers rely on ORDER BY to make them so.
    """
    stream_set = EventDataStreamSet(device_uri=device_uri)
    current: EventDataStream | None = None
    previous: tuple[str, str] | None = None
    for row in rows:
        k = key(row)
        if current is None or k != previous:
            name, params = k
            current = EventDataStream(name=name, params=params, device_uri=device_uri or "")
            stream_set.add_stream(current)
            previous = k
        current.add_datapoint(to_point(row))
    return stream_set

def continuous_point(row: ContinuousNotification) -> EventDataPoint:
    # rendered with str(float): 3.5 -> "3.5", 1e20 -> "1e+20"
    return EventDataPoint(timestamp=from_db_time(row.timestamp), value=str(row.value), unit=row.unit or "")

def discrete_point(row: DiscreteNotification) -> EventDataPoint:
    return EventDataPoint(timestamp=from_db_time(row.timestamp), value=row.value, unit="")


class NotificationReader:
    """Paginated, time-windowed queries over the notification tables.

    All shapes take an inclusive ``[start, end]`` window and a row-level
    pagination window: ``n_results`` rows starting at ``start_count``. A page
    boundary may split a stream. Empty results give empty streams; failures
    raise ``QueryError``.
    """

    def __init__(self, storage: Storage) -> None:
        self.storage = storage

    def _fetch(self, stmt, what: str) -> list:
        try:
            with self.storage.session() as s:
                return list(s.exec(stmt).all())
        except SQLAlchemyError as e:
            log.error("Unable to retrieve %s: %s", what, e, exc_info=True)
            raise QueryError(f"unable to retrieve {what}") from e

    @staticmethod
    def _page(stmt, start_count: int, n_results: int | None):
        if n_results is None:
            n_results = settings.default_page_size
        if start_count < 0 or n_results < 0:
            raise ValueError("pagination values must be non-negative")
        return stmt.offset(start_count).limit(n_results)

    @staticmethod
    def _window(model, device_uri: str, start: datetime, end: datetime) -> tuple:
        return (
            model.deviceuri == device_uri,
            model.timestamp >= as_db_time(start),
            model.timestamp <= as_db_time(end),
        )

    def get_all_continuous_notifications(self, device_uri: str, start: datetime, end: datetime,
                                         start_count: int = 0, n_results: int | None = None) -> EventDataStreamSet:
        """All measurement streams of a device, one per contiguous (name, params)."""
        M = ContinuousNotification
        stmt = (
            select(M)
            .where(*self._window(M, device_uri, start, end))
            .order_by(M.name, M.params, M.timestamp, M.id)
        )
        rows = self._fetch(self._page(stmt, start_count, n_results), "sensor events carrying measures")
        return compose_stream_set(rows, device_uri, lambda r: (r.name, r.params or ""), continuous_point)

    def get_all_discrete_notifications(self, device_uri: str, start: datetime, end: datetime,
                                       start_count: int = 0, n_results: int | None = None,
                                       aggregated: bool = False) -> EventDataStreamSet:
        """All discrete notifications of a device.

        With ``aggregated`` every row lands in a single ``"events"`` stream in
        timestamp order; the per-row names are not kept on the points.
        """
        M = DiscreteNotification
        stmt = select(M).where(*self._window(M, device_uri, start, end))
        if aggregated:
            stmt = stmt.order_by(M.timestamp, M.id)
            key = lambda r: (AGGREGATED_STREAM_NAME, "")
        else:
            stmt = stmt.order_by(M.name, M.timestamp, M.id)
            key = lambda r: (r.name, "")
        rows = self._fetch(self._page(stmt, start_count, n_results), "sensor events")
        return compose_stream_set(rows, device_uri, key, discrete_point)

    def get_continuous_stream(self, device_uri: str, name: str, params: str, start: datetime, end: datetime,
                              start_count: int = 0, n_results: int | None = None) -> EventDataStream:
        """One measurement stream, matched on the literal params string (``k1=v1&k2=v2``)."""
        M = ContinuousNotification
        stmt = (
            select(M)
            .where(*self._window(M, device_uri, start, end), M.name == name, M.params == params)
            .order_by(M.timestamp, M.id)
        )
        rows = self._fetch(self._page(stmt, start_count, n_results), "sensor data")
        stream = EventDataStream(name=name, params=params, device_uri=device_uri)
        for r in rows:
            stream.add_datapoint(continuous_point(r))
        return stream

    def get_discrete_stream(self, device_uri: str, name: str, start: datetime, end: datetime,
                            start_count: int = 0, n_results: int | None = None) -> EventDataStream:
        M = DiscreteNotification
        stmt = (
            select(M)
            .where(*self._window(M, device_uri, start, end), M.name == name)
            .order_by(M.timestamp, M.id)
        )
        rows = self._fetch(self._page(stmt, start_count, n_results), "sensor data")
        stream = EventDataStream(name=name, device_uri=device_uri)
        for r in rows:
            stream.add_datapoint(discrete_point(r))
        return stream

    def get_merged_discrete_stream(self, device_uri: str, names: Iterable[str], stream_name: str,
                                   start: datetime, end: datetime,
                                   start_count: int = 0, n_results: int | None = None) -> EventDataStream:
        """Discrete notifications with any of ``names``, merged under ``stream_name``."""
        stream = EventDataStream(name=stream_name, device_uri=device_uri)
        # one IN placeholder per name, bound in iteration order
        names = list(names)
        if not names:
            return stream

        M = DiscreteNotification
        stmt = (
            select(M)
            .where(M.deviceuri == device_uri, M.name.in_(names),
                   M.timestamp >= as_db_time(start), M.timestamp <= as_db_time(end))
            .order_by(M.timestamp, M.id)
        )
        rows = self._fetch(self._page(stmt, start_count, n_results), "sensor data")
        for r in rows:
            stream.add_datapoint(discrete_point(r))
        return stream

    def get_discrete_stream_set(self, device_uri: str, streams: Mapping[str, Iterable[str]],
                                start: datetime, end: datetime,
                                start_count: int = 0, n_results: int | None = None) -> EventDataStreamSet:
        """Fan out to ``get_merged_discrete_stream``, one output stream per mapping key."""
        stream_set = EventDataStreamSet(device_uri=device_uri)
        for stream_name, names in streams.items():
            stream_set.add_stream(self.get_merged_discrete_stream(
                device_uri, names, stream_name, start, end, start_count, n_results))
        return stream_set
