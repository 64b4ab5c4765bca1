"""
Telemetry sinks: consumers of decoded samples.

A sink receives every sample of every connection. All connection handlers run
on the same event loop, so a single ``accept`` call is never interleaved with
another one, but calls from different connections arrive in no particular order.
"""
import logging
from typing import Optional, Protocol, runtime_checkable

from core.event_hub import TELEMETRY_SAMPLE, EventHub, event_hub
from core.models.telemetry_sample import TelemetrySample

SAMPLE_LOGGER_NAME = "telemetry.samples"

SAMPLE_FORMAT = (
    "speed=%.2f m/s throttle=%.2f steer=%.2f brake=%.2f "
    "rays[m]=%.2f,%.2f,%.2f sweep(angle=%.1f,d=%.2f)"
)


@runtime_checkable
class TelemetrySink(Protocol):
    def accept(self, sample: TelemetrySample) -> None:
        ...


def format_sample(sample: TelemetrySample) -> str:
    """Render a sample as a single console line. Undefined values print as nan."""
    return SAMPLE_FORMAT % (
        sample.speed,
        sample.throttle,
        sample.steering,
        sample.brake,
        sample.forward_distance,
        sample.left_distance,
        sample.right_distance,
        sample.sweep_angle,
        sample.sweep_distance,
    )


class LoggingSink:
    """Writes one formatted log record per sample."""

    def __init__(self, logger: Optional[logging.Logger] = None, level: int = logging.INFO):
        self.logger = logger or logging.getLogger(SAMPLE_LOGGER_NAME)
        self.level = level

    def accept(self, sample: TelemetrySample) -> None:
        if self.logger.isEnabledFor(self.level):
            self.logger.log(self.level, format_sample(sample))


class EventHubSink:
    """Publishes every sample on the event hub for in-process consumers."""

    def __init__(self, hub: EventHub = event_hub, topic: str = TELEMETRY_SAMPLE):
        self.hub = hub
        self.topic = topic

    def accept(self, sample: TelemetrySample) -> None:
        self.hub.send_all_on_topic(self.topic, sample)


class FanoutSink:
    """Forwards each sample to several sinks, in order."""

    def __init__(self, *sinks: TelemetrySink):
        self.sinks = list(sinks)

    def accept(self, sample: TelemetrySample) -> None:
        for sink in self.sinks:
            sink.accept(sample)
