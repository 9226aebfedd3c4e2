from typing import Optional
from datetime import datetime, timezone
from sqlalchemy import Column, DateTime, ForeignKey, String
from sqlmodel import SQLModel, Field

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

def as_db_time(ts: datetime) -> datetime:
    """Timestamps are bound as aware UTC; naive values are taken to be UTC."""
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)

def from_db_time(ts: datetime) -> datetime:
    # sqlite hands back naive values even for timezone-aware columns
    return ts.replace(tzinfo=timezone.utc) if ts.tzinfo is None else ts.astimezone(timezone.utc)

def _timestamp(index: bool = True) -> Column:
    return Column(DateTime(timezone=True), index=index, nullable=False)

def _device_fk() -> Column:
    # deleting a device purges its notification history
    return Column(String(255), ForeignKey("device.uri", ondelete="CASCADE"), index=True, nullable=False)

class Device(SQLModel, table=True):
    uri: str = Field(sa_column=Column(String(255), primary_key=True))
    created_at: datetime = Field(default_factory=utcnow, sa_column=_timestamp(index=False))

class ContinuousNotification(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    timestamp: datetime = Field(sa_column=_timestamp())
    unit: str = Field(max_length=5)
    value: float
    name: str = Field(max_length=100)
    params: str = Field(default="", max_length=255)  # k1=v1&k2=v2
    deviceuri: str = Field(sa_column=_device_fk())

class DiscreteNotification(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    timestamp: datetime = Field(sa_column=_timestamp())
    value: str = Field(max_length=100)
    name: str = Field(max_length=100)
    deviceuri: str = Field(sa_column=_device_fk())
