"""Pytest configuration and fixtures for test suite."""

import socket

import pytest
from core.event_hub import event_hub
from core.telemetry_monitor import telemetry_monitor


class RecordingSink:
    """Sink double collecting every sample it receives."""

    def __init__(self):
        self.samples = []

    def accept(self, sample) -> None:
        self.samples.append(sample)


@pytest.fixture(autouse=True)
def reset_telemetry_state():
    """Detach the event hub from any previous loop and clear the monitor before each test."""
    event_hub.init(None)
    telemetry_monitor.reset()
    telemetry_monitor.subscribe()
    
    yield
    
    event_hub.init(None)
    telemetry_monitor.reset()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def free_port() -> int:
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    return port
