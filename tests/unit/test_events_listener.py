"""Tests for the Unix socket event listener."""

import asyncio
import json
from pathlib import Path

import pytest

from src.core.exceptions import EventChannelException
from src.events.listener import EventListener


async def send_lines(socket_path: Path, *lines: bytes) -> None:
    _, writer = await asyncio.open_unix_connection(str(socket_path))
    for line in lines:
        writer.write(line + b"\n")
    await writer.drain()
    writer.close()
    await writer.wait_closed()


@pytest.mark.asyncio
async def test_listener_delivers_lines_in_order(tmp_path: Path) -> None:
    """Test that each envelope line reaches the handler in arrival order."""
    received: list[bytes] = []
    done = asyncio.Event()

    async def handler(raw: bytes) -> None:
        received.append(raw)
        if len(received) == 3:
            done.set()

    listener = EventListener(tmp_path / "push.sock", handler)
    await listener.start()
    try:
        await send_lines(tmp_path / "push.sock", b'{"n": 1}', b"", b'{"n": 2}', b'{"n": 3}')
        await asyncio.wait_for(done.wait(), timeout=5)
    finally:
        await listener.stop()

    assert received == [b'{"n": 1}', b'{"n": 2}', b'{"n": 3}']
    assert not (tmp_path / "push.sock").exists()


@pytest.mark.asyncio
async def test_listener_survives_handler_error(tmp_path: Path) -> None:
    """Test that a failing handler does not close the connection."""
    received: list[bytes] = []
    done = asyncio.Event()

    async def handler(raw: bytes) -> None:
        if raw == b"bad":
            raise RuntimeError("boom")
        received.append(raw)
        done.set()

    listener = EventListener(tmp_path / "push.sock", handler)
    await listener.start()
    try:
        await send_lines(tmp_path / "push.sock", b"bad", b"good")
        await asyncio.wait_for(done.wait(), timeout=5)
    finally:
        await listener.stop()

    assert received == [b"good"]


@pytest.mark.asyncio
async def test_listener_replaces_stale_socket(tmp_path: Path) -> None:
    """Test that a leftover socket file does not block startup."""
    socket_path = tmp_path / "push.sock"
    socket_path.write_text("stale")

    async def handler(raw: bytes) -> None:
        pass

    listener = EventListener(socket_path, handler)
    await listener.start()
    await listener.stop()


@pytest.mark.asyncio
async def test_listener_registers_with_master(tmp_path: Path) -> None:
    """Test the registration envelope sent to the master socket."""
    registrations: list[dict] = []
    registered = asyncio.Event()

    async def master(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        registrations.append(json.loads(await reader.readline()))
        registered.set()
        writer.close()

    master_server = await asyncio.start_unix_server(master, path=str(tmp_path / "master.sock"))

    async def handler(raw: bytes) -> None:
        pass

    listener = EventListener(
        tmp_path / "push.sock", handler, master_socket_path=tmp_path / "master.sock"
    )
    try:
        await listener.start()
        await asyncio.wait_for(registered.wait(), timeout=5)
    finally:
        await listener.stop()
        master_server.close()
        await master_server.wait_closed()

    assert registrations[0]["type"] == "daemon_client_add"
    assert registrations[0]["data"]["path"] == str(tmp_path / "push.sock")


@pytest.mark.asyncio
async def test_listener_registration_failure(tmp_path: Path) -> None:
    """Test that an unreachable master socket is a startup error."""

    async def handler(raw: bytes) -> None:
        pass

    listener = EventListener(
        tmp_path / "push.sock", handler, master_socket_path=tmp_path / "missing.sock"
    )
    try:
        with pytest.raises(EventChannelException):
            await listener.start()
    finally:
        await listener.stop()


@pytest.mark.asyncio
async def test_serve_until_stop_event(tmp_path: Path) -> None:
    """Test that serve_until returns and cleans up once stopped."""

    async def handler(raw: bytes) -> None:
        pass

    stop_event = asyncio.Event()
    listener = EventListener(tmp_path / "push.sock", handler)
    task = asyncio.create_task(listener.serve_until(stop_event))
    await asyncio.sleep(0.05)

    stop_event.set()
    await asyncio.wait_for(task, timeout=5)

    assert not (tmp_path / "push.sock").exists()
