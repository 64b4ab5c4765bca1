"""TCP listener accepting telemetry connections from the driving simulation."""
import asyncio
import logging
from typing import Optional, Set

from core.exceptions import AcceptError, BindError
from core.models.config_data import DEFAULT_PORT
from core.services.connection_handler import handle_connection
from core.services.sinks import TelemetrySink

logger = logging.getLogger(__name__)


class TelemetryListener:
    """
    Accepts connections on one TCP endpoint and runs a handler task per connection.
    The accept loop never waits for a handler; there is no connection limit.
    """

    def __init__(
        self,
        sink: TelemetrySink,
        host: str = "0.0.0.0",
        port: int = DEFAULT_PORT,
        read_limit: int = 64 * 1024,
    ):
        self.sink = sink
        self.host = host
        self.port = port
        self.read_limit = read_limit
        self._server: Optional[asyncio.AbstractServer] = None
        self._connection_tasks: Set[asyncio.Task] = set()
        self._stopped: Optional[asyncio.Future] = None
        self._stopping = False

    @property
    def is_listening(self) -> bool:
        return self._server is not None and self._server.is_serving()

    @property
    def bound_port(self) -> Optional[int]:
        """Actual port once bound (differs from ``port`` when 0 was requested)."""
        if self._server is None or not self._server.sockets:
            return None
        return self._server.sockets[0].getsockname()[1]

    @property
    def active_connections(self) -> int:
        return len(self._connection_tasks)

    async def start(self):
        """Bind the endpoint. Raises BindError if it cannot be established."""
        if self._server is not None:
            return
        self._stopping = False
        try:
            self._server = await asyncio.start_server(
                self._on_connection, self.host, self.port, limit=self.read_limit
            )
        except OSError as e:
            raise BindError(self.host, self.port, e) from e
        logger.info(f"Telemetry server listening on {self.host}:{self.bound_port}")

    async def run(self):
        """
        Bind if needed and accept connections until cancelled or stopped.
        On cancellation the open connections are ended before CancelledError propagates.
        """
        self._stopped = asyncio.get_running_loop().create_future()
        await self.start()
        server = self._server
        if server is None:
            return
        try:
            await server.start_serving()
            await self._stopped
        except asyncio.CancelledError:
            await self.stop()
            raise
        except Exception as e:
            await self.stop()
            raise AcceptError(f"Telemetry accept loop failed: {e}") from e

    async def stop(self):
        """Close the listening socket and end all open connections."""
        self._stopping = True
        server, self._server = self._server, None
        if server is not None:
            server.close()
        tasks = list(self._connection_tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        if server is not None:
            # Since Python 3.12 this also waits for every accepted connection
            await server.wait_closed()
            logger.info("Telemetry server stopped")
        if self._stopped is not None and not self._stopped.done():
            self._stopped.set_result(None)

    async def _on_connection(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        # asyncio.start_server runs each callback in its own task
        if self._stopping:
            # Accepted just before the socket closed
            writer.close()
            return
        task = asyncio.current_task()
        self._connection_tasks.add(task)
        try:
            await handle_connection(reader, writer, self.sink, read_limit=self.read_limit)
        finally:
            self._connection_tasks.discard(task)


async def run_server(sink: TelemetrySink, host: str = "0.0.0.0", port: int = DEFAULT_PORT, read_limit: int = 64 * 1024):
    """Run a telemetry listener until cancelled, stopping it cleanly on the way out."""
    listener = TelemetryListener(sink, host=host, port=port, read_limit=read_limit)
    try:
        await listener.run()
    finally:
        await listener.stop()
