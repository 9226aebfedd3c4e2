# eventstore/ingest.py
import json, logging
from datetime import datetime, timezone
from typing import Any, Mapping
from dateutil import parser as dtparser

from .measure import Measure
from .writer import NotificationWriter

log = logging.getLogger("eventstore.ingest")

def _parse_ts(ts: Any) -> datetime:
    if isinstance(ts, datetime):
        return ts
    if isinstance(ts, (int, float)) and not isinstance(ts, bool):
        # epoch milliseconds, as gateway buses usually send them
        return datetime.fromtimestamp(ts / 1000.0, tz=timezone.utc)
    if not ts:
        return datetime.now(timezone.utc)
    try:
        return dtparser.isoparse(ts)
    except (ValueError, TypeError):
        log.warning("Unparseable timestamp %r, using now", ts)
        return datetime.now(timezone.utc)

def encode_params(params: Any) -> str:
    """``{"phaseId": 1}`` -> ``phaseId=1``; strings pass through untouched."""
    if not params:
        return ""
    if isinstance(params, str):
        return params
    return "&".join(f"{k}={v}" for k, v in params.items())

def _as_measure(value: Any, unit: Any) -> Measure | None:
    if isinstance(value, Measure):
        return value
    if unit is not None:
        unit = str(unit)
        if isinstance(value, str):
            # "21.5 °C" with unit "°C" is the same measure spelled twice
            m = Measure.parse(value)
            if m.unit and m.unit != unit:
                raise ValueError(f"unit {unit!r} conflicts with {value!r}")
            return Measure(value=m.value, unit=unit)
        return Measure(value=value, unit=unit)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return Measure(value=value)
    if isinstance(value, str):
        try:
            m = Measure.parse(value)
        except ValueError:
            return None
        # a bare number stays a discrete value when it comes as text
        return m if m.unit else None
    return None

def handle_notification(writer: NotificationWriter, payload: Mapping[str, Any]) -> bool:
    """Store one raw notification, choosing the continuous or discrete table."""
    device = payload.get("device") or payload.get("deviceUri")
    name = payload.get("name") or payload.get("notification")
    if not device or not name:
        log.warning("Dropping notification without device/name: %r", payload)
        return False

    ts = _parse_ts(payload.get("ts") or payload.get("timestamp"))
    value = payload.get("value")

    try:
        measure = _as_measure(value, payload.get("unit"))
    except ValueError as e:
        log.warning("Dropping notification %s from %s with bad measure %r: %s", name, device, value, e)
        return False

    if measure is not None:
        return writer.insert_continuous_notification(
            device, ts, measure, name, encode_params(payload.get("params")))
    return writer.insert_discrete_notification(device, ts, "" if value is None else str(value), name)

def handle_message(writer: NotificationWriter, raw: bytes | str) -> bool:
    """JSON-encoded variant of ``handle_notification``."""
    try:
        payload = json.loads(raw.decode("utf-8") if isinstance(raw, bytes) else raw) if raw else {}
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        log.warning("Dropping undecodable notification: %s", e)
        return False
    if not isinstance(payload, Mapping):
        log.warning("Dropping notification that is not an object: %r", payload)
        return False
    return handle_notification(writer, payload)
