"""
End-to-end tests for the TCP listener on a loopback port.
"""
import asyncio

import pytest
from core.exceptions import AcceptError, BindError
from core.services.telemetry_listener import TelemetryListener, run_server

HOST = "127.0.0.1"


async def wait_until(condition, timeout: float = 2.0) -> None:
    deadline = asyncio.get_running_loop().time() + timeout
    while not condition():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.01)


async def send(writer: asyncio.StreamWriter, data: bytes) -> None:
    writer.write(data)
    await writer.drain()


class TestTelemetryListener:

    @pytest.mark.asyncio
    async def test_receives_samples_over_tcp(self, sink) -> None:
        listener = TelemetryListener(sink, host=HOST, port=0)
        await listener.start()
        try:
            reader, writer = await asyncio.open_connection(HOST, listener.bound_port)
            await send(writer, b"speed_mps=12.5|throttle=0.8\n\nspeed_mps=13.0\n")
            await wait_until(lambda: len(sink.samples) == 2)

            assert [s.speed for s in sink.samples] == [12.5, 13.0]
            assert sink.samples[0].throttle == 0.8

            writer.close()
            await writer.wait_closed()
            await wait_until(lambda: listener.active_connections == 0)
        finally:
            await listener.stop()

    @pytest.mark.asyncio
    async def test_connections_keep_their_own_order(self, sink) -> None:
        """Interleaved writes from two clients keep per-connection order"""
        listener = TelemetryListener(sink, host=HOST, port=0)
        await listener.start()
        try:
            _, writer_a = await asyncio.open_connection(HOST, listener.bound_port)
            _, writer_b = await asyncio.open_connection(HOST, listener.bound_port)
            for i in range(1, 11):
                await send(writer_a, f"speed_mps={i}\n".encode())
                await send(writer_b, f"speed_mps={100 + i}\n".encode())
            await wait_until(lambda: len(sink.samples) == 20)

            values = [s.speed for s in sink.samples]
            assert [v for v in values if v < 100] == [float(i) for i in range(1, 11)]
            assert [v for v in values if v >= 100] == [float(100 + i) for i in range(1, 11)]

            for writer in (writer_a, writer_b):
                writer.close()
                await writer.wait_closed()
        finally:
            await listener.stop()

    @pytest.mark.asyncio
    async def test_idle_connection_does_not_block_others(self, sink) -> None:
        listener = TelemetryListener(sink, host=HOST, port=0)
        await listener.start()
        try:
            _, idle_writer = await asyncio.open_connection(HOST, listener.bound_port)
            _, writer = await asyncio.open_connection(HOST, listener.bound_port)
            await send(writer, b"brake=1.0\n")
            await wait_until(lambda: len(sink.samples) == 1)

            assert sink.samples[0].brake == 1.0
            await wait_until(lambda: listener.active_connections == 2)

            for w in (idle_writer, writer):
                w.close()
                await w.wait_closed()
        finally:
            await listener.stop()

    @pytest.mark.asyncio
    async def test_partial_last_line_then_close(self, sink) -> None:
        listener = TelemetryListener(sink, host=HOST, port=0)
        await listener.start()
        try:
            _, writer = await asyncio.open_connection(HOST, listener.bound_port)
            await send(writer, b"speed_mps=1\nspeed_mps=2\nspeed_mps=3\nspeed_mps=4")
            writer.close()
            await writer.wait_closed()

            await wait_until(lambda: len(sink.samples) == 4)
            await wait_until(lambda: listener.active_connections == 0)
        finally:
            await listener.stop()

    @pytest.mark.asyncio
    async def test_port_in_use_raises_bind_error(self, sink) -> None:
        first = TelemetryListener(sink, host=HOST, port=0)
        await first.start()
        try:
            second = TelemetryListener(sink, host=HOST, port=first.bound_port)
            with pytest.raises(BindError) as exc_info:
                await second.start()
            assert exc_info.value.port == first.bound_port
            assert not second.is_listening
        finally:
            await first.stop()

    @pytest.mark.asyncio
    async def test_stop_closes_open_connections(self, sink) -> None:
        listener = TelemetryListener(sink, host=HOST, port=0)
        await listener.start()
        reader, writer = await asyncio.open_connection(HOST, listener.bound_port)
        await wait_until(lambda: listener.active_connections == 1)

        await listener.stop()

        assert await asyncio.wait_for(reader.read(), timeout=2.0) == b""
        assert listener.active_connections == 0
        assert not listener.is_listening
        writer.close()

    @pytest.mark.asyncio
    async def test_run_until_cancelled(self, sink) -> None:
        listener = TelemetryListener(sink, host=HOST, port=0)
        task = asyncio.create_task(listener.run())
        await wait_until(lambda: listener.is_listening)

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        await listener.stop()

    @pytest.mark.asyncio
    async def test_accept_loop_failure_raises_accept_error(self, sink) -> None:
        listener = TelemetryListener(sink, host=HOST, port=0)
        await listener.start()

        async def broken_start_serving():
            raise OSError("listening socket failed")

        listener._server.start_serving = broken_start_serving
        try:
            with pytest.raises(AcceptError):
                await listener.run()
        finally:
            await listener.stop()

    @pytest.mark.asyncio
    async def test_cancel_run_with_client_connected(self, sink) -> None:
        """Cancelling run() ends open connections instead of waiting for them"""
        listener = TelemetryListener(sink, host=HOST, port=0)
        task = asyncio.create_task(listener.run())
        await wait_until(lambda: listener.is_listening)
        reader, writer = await asyncio.open_connection(HOST, listener.bound_port)
        await wait_until(lambda: listener.active_connections == 1)

        task.cancel()
        done, _ = await asyncio.wait({task}, timeout=3.0)

        assert task in done
        assert task.cancelled()
        assert listener.active_connections == 0
        assert await asyncio.wait_for(reader.read(), timeout=2.0) == b""
        writer.close()

    @pytest.mark.asyncio
    async def test_cancel_run_server_with_client_connected(self, sink, free_port) -> None:
        task = asyncio.create_task(run_server(sink, host=HOST, port=free_port))
        for _ in range(200):
            try:
                reader, writer = await asyncio.open_connection(HOST, free_port)
                break
            except OSError:
                await asyncio.sleep(0.01)
        writer.write(b"speed_mps=1\n")
        await writer.drain()
        await wait_until(lambda: len(sink.samples) == 1)

        task.cancel()
        done, _ = await asyncio.wait({task}, timeout=3.0)

        assert task in done
        assert await asyncio.wait_for(reader.read(), timeout=2.0) == b""
        writer.close()

    @pytest.mark.asyncio
    async def test_external_stop_ends_run(self, sink) -> None:
        listener = TelemetryListener(sink, host=HOST, port=0)
        task = asyncio.create_task(listener.run())
        await wait_until(lambda: listener.is_listening)
        _, writer = await asyncio.open_connection(HOST, listener.bound_port)
        await wait_until(lambda: listener.active_connections == 1)

        await asyncio.wait_for(listener.stop(), timeout=3.0)

        await asyncio.wait_for(task, timeout=1.0)
        assert not listener.is_listening
        writer.close()
