"""Per-connection telemetry reader."""
import asyncio
import logging
import re
from typing import Optional

from core.event_hub import CONNECTION_CLOSED, CONNECTION_OPENED, event_hub
from core.exceptions import ConnectionReadError
from core.models.connection_info import ConnectionInfo
from core.processing.telemetry_parser import decode
from core.services.sinks import TelemetrySink

logger = logging.getLogger(__name__)

ENCODING = "utf-8"
DEFAULT_READ_LIMIT = 64 * 1024
CHUNK_SIZE = 4096

_TERMINATOR_RE = re.compile(rb"\r\n|\r|\n")


def format_peer(writer: asyncio.StreamWriter) -> str:
    peer = writer.get_extra_info("peername")
    if isinstance(peer, tuple) and len(peer) >= 2:
        return f"{peer[0]}:{peer[1]}"
    return str(peer) if peer else "unknown"


class LineReader:
    """
    Splits a byte stream into lines ended by '\\n', '\\r\\n' or a bare '\\r'.
    StreamReader.readline() only stops at '\\n', which would hold back
    '\\r'-terminated lines until the peer closes the connection.
    """

    def __init__(self, reader: asyncio.StreamReader, limit: int = DEFAULT_READ_LIMIT):
        self._reader = reader
        self._limit = limit
        self._buffer = bytearray()
        self._eof = False
        # Last line ended in '\r' at the end of the buffer; a leading '\n' belongs to it
        self._skip_lf = False

    async def readline(self) -> Optional[bytes]:
        """Next line without its terminator, or None at end of stream.
        A final line without terminator is returned as is."""
        while True:
            line = self._take_line()
            if line is not None:
                return line
            if self._eof:
                if not self._buffer:
                    return None
                line = bytes(self._buffer)
                self._buffer.clear()
                return line
            if len(self._buffer) > self._limit:
                raise ValueError(f"Line exceeds {self._limit} bytes")
            chunk = await self._reader.read(CHUNK_SIZE)
            if not chunk:
                self._eof = True
                continue
            if self._skip_lf:
                self._skip_lf = False
                if chunk.startswith(b"\n"):
                    chunk = chunk[1:]
            self._buffer.extend(chunk)

    def _take_line(self) -> Optional[bytes]:
        match = _TERMINATOR_RE.search(self._buffer)
        if match is None:
            return None
        if match.start() > self._limit:
            raise ValueError(f"Line exceeds {self._limit} bytes")
        line = bytes(self._buffer[:match.start()])
        del self._buffer[:match.end()]
        if match.group() == b"\r" and not self._buffer:
            self._skip_lf = True
        return line


async def read_line(lines: LineReader, peer: str) -> Optional[bytes]:
    """Read the next line. Returns None at end of stream."""
    try:
        return await lines.readline()
    except OSError as e:
        raise ConnectionReadError(peer, e) from e
    except ValueError as e:
        # Line exceeded the read limit
        raise ConnectionReadError(peer, e) from e


def deliver(sink: TelemetrySink, line: str, connection: ConnectionInfo) -> bool:
    """Decode a non-blank line and hand it to the sink. Returns True if the sink took it."""
    sample = decode(line)
    try:
        sink.accept(sample)
    except Exception:
        logger.exception(f"Telemetry sink failed for connection {connection.peer}, sample dropped")
        return False
    connection.record_sample()
    return True


async def handle_connection(
    reader: asyncio.StreamReader,
    writer: asyncio.StreamWriter,
    sink: TelemetrySink,
    connection: Optional[ConnectionInfo] = None,
    read_limit: int = DEFAULT_READ_LIMIT,
) -> None:
    """
    Read newline-delimited telemetry from one connection until the peer closes it.

    Blank lines are skipped, every other line is decoded and passed to the sink
    in arrival order. Read faults end this connection only and are logged; the
    connection is always closed before returning.
    """
    if connection is None:
        connection = ConnectionInfo(peer=format_peer(writer))
    logger.info(f"Telemetry client connected: {connection.peer} (#{connection.connection_id})")
    event_hub.send_all_on_topic(CONNECTION_OPENED, connection)

    lines = LineReader(reader, read_limit)
    try:
        while True:
            raw = await read_line(lines, connection.peer)
            if raw is None:
                break
            line = raw.decode(ENCODING, errors="replace")
            if line.strip():
                deliver(sink, line, connection)
        connection.mark_closed()
    except ConnectionReadError as e:
        logger.warning(f"Telemetry client error: {e}")
        connection.mark_failed(e)
    except asyncio.CancelledError:
        connection.mark_closed()
        raise
    except Exception as e:
        logger.exception(f"Unexpected error on telemetry connection {connection.peer}")
        connection.mark_failed(e)
    finally:
        await close_writer(writer, connection.peer)
        logger.info(
            f"Telemetry client disconnected: {connection.peer} "
            f"({connection.samples} samples, {connection.state.value})"
        )
        event_hub.send_all_on_topic(CONNECTION_CLOSED, connection)


async def close_writer(writer: asyncio.StreamWriter, peer: str):
    writer.close()
    try:
        await writer.wait_closed()
    except OSError as e:
        # Transport already gone, nothing left to release
        logger.debug(f"Error while closing {peer}: {e}")
