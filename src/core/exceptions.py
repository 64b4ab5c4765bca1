"""Error taxonomy for the telemetry ingest service."""
from typing import Optional


class TelemetryError(Exception):
    """Base class for telemetry service errors."""


class BindError(TelemetryError):
    """The listening endpoint could not be established."""

    def __init__(self, host: str, port: int, reason: Optional[BaseException] = None):
        self.host = host
        self.port = port
        self.reason = reason
        message = f"Cannot listen on {host}:{port}"
        if reason is not None:
            message += f": {reason}"
        super().__init__(message)


class AcceptError(TelemetryError):
    """The accept loop failed after the endpoint was established."""


class ConnectionReadError(TelemetryError):
    """A read fault on a single telemetry connection."""

    def __init__(self, peer: str, reason: Optional[BaseException] = None):
        self.peer = peer
        self.reason = reason
        message = f"Read error on connection {peer}"
        if reason is not None:
            message += f": {reason}"
        super().__init__(message)
