# External libs
import asyncio
import logging
from typing import Optional

# Internal libs
from core.event_hub import init_event_hub
from core.exceptions import AcceptError
from core.services.sinks import TelemetrySink
from core.services.telemetry_listener import TelemetryListener
from core.config_loader import config_loader
from core.telemetry_monitor import telemetry_monitor

logger = logging.getLogger(__name__)


class ServiceManager:

    def __init__(self):
        self.listener: Optional[TelemetryListener] = None
        self._listener_task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self.listener is not None and self.listener.is_listening

    async def start_services(self, sink: TelemetrySink, host: Optional[str] = None, port: Optional[int] = None):
        """Start the telemetry listener in the background.
        Args:
            sink: Receives every decoded sample.
            host, port: Override the configured endpoint.
        Raises BindError if the endpoint cannot be established.
        """
        if self.listener is not None:
            return

        logger.info("Starting background services...")
        loop = asyncio.get_running_loop()

        # Init Event Hub
        init_event_hub(loop)
        telemetry_monitor.subscribe()

        listener = TelemetryListener(
            sink,
            host=host or config_loader.get_host(),
            port=config_loader.get_port() if port is None else port,
            read_limit=config_loader.get_read_limit(),
        )
        # Bind here so a BindError reaches the caller
        await listener.start()
        self.listener = listener
        self._listener_task = loop.create_task(listener.run())
        self._listener_task.add_done_callback(self._on_listener_done)

        logger.info("Background services started.")

    def _on_listener_done(self, task: asyncio.Task):
        if task.cancelled():
            return
        error = task.exception()
        if isinstance(error, AcceptError):
            logger.error(f"Telemetry listener stopped: {error}")
        elif error is not None:
            logger.error(f"Telemetry listener crashed: {error!r}")

    async def stop_services(self):
        """Stop background services."""
        listener, self.listener = self.listener, None
        task, self._listener_task = self._listener_task, None

        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        if listener is not None:
            await listener.stop()

        logger.info("Background services stopped.")


service_manager = ServiceManager()
