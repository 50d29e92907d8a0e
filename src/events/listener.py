"""Local event channel: a Unix socket carrying newline-delimited JSON envelopes."""

import asyncio
import os
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any, Optional

from src.core.exceptions import EventChannelException
from src.core.logging import get_logger
from src.events.models import Envelope, EnvelopeType

logger = get_logger(__name__)

EnvelopeHandler = Callable[[bytes], Awaitable[Any]]

# Upper bound for a single envelope line.
MAX_LINE_BYTES = 4 * 1024 * 1024


class EventListener:
    """Receives envelopes on a Unix socket and hands them to a handler.

    Lines from one connection are processed in arrival order, one at a time.
    """

    def __init__(
        self,
        socket_path: str | Path,
        handler: EnvelopeHandler,
        master_socket_path: Optional[str | Path] = None,
    ) -> None:
        """Initialize listener.

        Args:
            socket_path: Path of the socket this process listens on
            handler: Coroutine called with each raw envelope line
            master_socket_path: Event source socket to register with (optional)
        """
        self.socket_path = Path(socket_path)
        self.handler = handler
        self.master_socket_path = Path(master_socket_path) if master_socket_path else None
        self._server: Optional[asyncio.AbstractServer] = None

    async def start(self) -> None:
        """Open the socket and register with the event source.

        Raises:
            EventChannelException: If the socket cannot be created or
                registration fails
        """
        self._remove_socket_file()
        try:
            self._server = await asyncio.start_unix_server(
                self._handle_connection,
                path=str(self.socket_path),
                limit=MAX_LINE_BYTES,
            )
        except OSError as e:
            raise EventChannelException(
                f"Cannot listen on {self.socket_path}: {e}",
                details={"path": str(self.socket_path)},
            ) from e

        logger.info("event_listener_started", path=str(self.socket_path))

        if self.master_socket_path is not None:
            await self.register()

    async def register(self) -> None:
        """Announce this client's socket to the event source."""
        assert self.master_socket_path is not None

        envelope = Envelope(
            type=EnvelopeType.CLIENT_ADD.value,
            data={"path": str(self.socket_path), "pid": os.getpid()},
        )
        try:
            _, writer = await asyncio.open_unix_connection(str(self.master_socket_path))
            writer.write(envelope.to_json().encode("utf-8") + b"\n")
            await writer.drain()
            writer.close()
            await writer.wait_closed()
        except OSError as e:
            raise EventChannelException(
                f"Cannot register with {self.master_socket_path}: {e}",
                details={"path": str(self.master_socket_path)},
            ) from e

        logger.info("event_listener_registered", master=str(self.master_socket_path))

    async def stop(self) -> None:
        """Close the socket and remove the socket file."""
        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()
            self._server = None
        self._remove_socket_file()
        logger.info("event_listener_stopped", path=str(self.socket_path))

    async def serve_until(self, stop_event: asyncio.Event) -> None:
        """Run until the stop event is set."""
        await self.start()
        try:
            await stop_event.wait()
        finally:
            await self.stop()

    async def _handle_connection(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
    ) -> None:
        try:
            while True:
                try:
                    line = await reader.readline()
                except ValueError:
                    logger.error("envelope_too_large", limit=MAX_LINE_BYTES)
                    break
                if not line:
                    break

                line = line.strip()
                if not line:
                    continue

                try:
                    await self.handler(line)
                except Exception as e:
                    # Keep the connection alive for the next envelope.
                    logger.error("envelope_handler_error", error=str(e), exc_info=True)
        finally:
            writer.close()

    def _remove_socket_file(self) -> None:
        try:
            self.socket_path.unlink()
        except FileNotFoundError:
            pass
