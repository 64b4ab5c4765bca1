from typing import List, Optional
from pydantic import BaseModel
from core.models.connection_info import ConnectionInfo, ConnectionState
from core.models.telemetry_sample import TelemetrySample, is_undefined


class AppHealthOK(BaseModel):
    status: str
    app: str


class TelemetrySampleOut(BaseModel):
    """Sample as exposed over HTTP. Undefined fields are null."""
    speed: Optional[float] = None
    throttle: Optional[float] = None
    brake: Optional[float] = None
    steering: Optional[float] = None
    forward_distance: Optional[float] = None
    left_distance: Optional[float] = None
    right_distance: Optional[float] = None
    sweep_angle: Optional[float] = None
    sweep_distance: Optional[float] = None

    @classmethod
    def from_sample(cls, sample: TelemetrySample) -> "TelemetrySampleOut":
        return cls(**{
            name: None if is_undefined(value) else value
            for name, value in sample.as_dict().items()
        })


class LatestSampleResponse(BaseModel):
    received_at: float
    sample: TelemetrySampleOut


class ConnectionStatus(BaseModel):
    connection_id: int
    peer: str
    state: ConnectionState
    opened_at: float
    closed_at: Optional[float] = None
    samples: int
    error: Optional[str] = None

    @classmethod
    def from_info(cls, info: ConnectionInfo) -> "ConnectionStatus":
        return cls(
            connection_id=info.connection_id,
            peer=info.peer,
            state=info.state,
            opened_at=info.opened_at,
            closed_at=info.closed_at,
            samples=info.samples,
            error=info.error,
        )


class ConnectionsList(BaseModel):
    list: List[ConnectionStatus]


class ServerStatusResponse(BaseModel):
    listening: bool
    host: str
    port: int
    active_connections: int
    total_samples: int
