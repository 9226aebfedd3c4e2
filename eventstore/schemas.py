from datetime import datetime
from pydantic import BaseModel, Field

class EventDataPoint(BaseModel):
    timestamp: datetime
    value: str
    unit: str = ""  # empty for discrete notifications

class EventDataStream(BaseModel):
    name: str
    params: str = ""
    device_uri: str
    datapoints: list[EventDataPoint] = Field(default_factory=list)

    def add_datapoint(self, point: EventDataPoint) -> None:
        self.datapoints.append(point)

class EventDataStreamSet(BaseModel):
    device_uri: str | None = None
    streams: list[EventDataStream] = Field(default_factory=list)

    def add_stream(self, stream: EventDataStream) -> None:
        self.streams.append(stream)
