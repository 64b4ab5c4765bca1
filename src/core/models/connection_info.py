"""Connection bookkeeping shared between the handler and the monitor."""
import itertools
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

_connection_ids = itertools.count(1)


class ConnectionState(Enum):
    """Telemetry connection states."""
    OPEN = "open"
    CLOSED = "closed"   # Peer closed the stream
    FAILED = "failed"   # Read error ended the connection


@dataclass
class ConnectionInfo:
    """State of one accepted telemetry connection."""
    peer: str
    connection_id: int = field(default_factory=lambda: next(_connection_ids))
    opened_at: float = field(default_factory=time.time)
    closed_at: Optional[float] = None
    samples: int = 0
    state: ConnectionState = ConnectionState.OPEN
    error: Optional[str] = None

    def record_sample(self):
        self.samples += 1

    def mark_closed(self):
        self.state = ConnectionState.CLOSED
        self.closed_at = time.time()

    def mark_failed(self, error: BaseException):
        self.state = ConnectionState.FAILED
        self.error = str(error)
        self.closed_at = time.time()
