import logging
import time
from collections import deque
from typing import Deque, Dict, List, Optional

from core.event_hub import CONNECTION_CLOSED, CONNECTION_OPENED, TELEMETRY_SAMPLE, event_hub
from core.models.connection_info import ConnectionInfo
from core.models.telemetry_sample import TelemetrySample

logger = logging.getLogger(__name__)

CLOSED_HISTORY_SIZE = 50


class TelemetryMonitor:
    """Keeps the latest sample and connection states for the monitoring API."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(TelemetryMonitor, cls).__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return
        self._initialized = True
        self.latest_sample: Optional[TelemetrySample] = None
        self.latest_received_at: Optional[float] = None
        self.total_samples = 0
        self.open_connections: Dict[int, ConnectionInfo] = {}
        self.closed_connections: Deque[ConnectionInfo] = deque(maxlen=CLOSED_HISTORY_SIZE)
        self.subscribe()

    def subscribe(self):
        """(Re)attach to the event hub topics."""
        event_hub.subscribe(TELEMETRY_SAMPLE, self._on_sample)
        event_hub.subscribe(CONNECTION_OPENED, self._on_connection_opened)
        event_hub.subscribe(CONNECTION_CLOSED, self._on_connection_closed)

    def reset(self):
        self.latest_sample = None
        self.latest_received_at = None
        self.total_samples = 0
        self.open_connections.clear()
        self.closed_connections.clear()

    def _on_sample(self, topic: str, sample: TelemetrySample):
        self.latest_sample = sample
        self.latest_received_at = time.time()
        self.total_samples += 1

    def _on_connection_opened(self, topic: str, connection: ConnectionInfo):
        self.open_connections[connection.connection_id] = connection

    def _on_connection_closed(self, topic: str, connection: ConnectionInfo):
        self.open_connections.pop(connection.connection_id, None)
        self.closed_connections.append(connection)
        if connection.error:
            logger.debug(f"Connection #{connection.connection_id} ended with error: {connection.error}")

    def get_connections(self) -> List[ConnectionInfo]:
        """Open connections first, then recently closed ones, newest last."""
        return list(self.open_connections.values()) + list(self.closed_connections)


# Global singleton instance
telemetry_monitor = TelemetryMonitor()
