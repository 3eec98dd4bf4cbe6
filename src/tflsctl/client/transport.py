"""JSON-RPC message stream over a child process's stdio.

Messages are framed with a ``Content-Length`` header as used by language
servers. The transport answers server-initiated requests with a null result
and forwards ``window/logMessage`` notifications to the logger; everything
else the server sends is ignored unless a notification handler is
registered for it.
"""

from __future__ import annotations

import asyncio
import itertools
import json
from typing import Any, Callable, Dict, Optional

from tflsctl.core.logging import get_logger

LOGGER = get_logger(__name__)

JSONRPC_VERSION = "2.0"
CONTENT_LENGTH = "content-length"

NotificationHandler = Callable[[Any], None]


class TransportClosedError(ConnectionError):
    """The stream ended while a request was outstanding."""


class JsonRpcError(Exception):
    """Error response from the server."""

    def __init__(self, code: int, message: str, data: Any = None):
        self.code = code
        self.data = data
        super().__init__(f"{message} (code {code})")


def encode_message(payload: Dict[str, Any]) -> bytes:
    """Frame one JSON-RPC payload."""
    body = json.dumps(payload, separators=(",", ":")).encode("utf-8")
    header = f"Content-Length: {len(body)}\r\n\r\n".encode("ascii")
    return header + body


async def read_message(reader: asyncio.StreamReader) -> Optional[Dict[str, Any]]:
    """Read one framed payload.

    Returns:
        The decoded message, or None at end of stream.

    Raises:
        ValueError: If the header or body is malformed.
    """
    length: Optional[int] = None
    while True:
        line = await reader.readline()
        if not line:
            return None
        line = line.strip()
        if not line:
            if length is None:
                raise ValueError("Message without Content-Length header")
            break
        name, _, value = line.decode("ascii").partition(":")
        if name.strip().lower() == CONTENT_LENGTH:
            length = int(value.strip())

    try:
        body = await reader.readexactly(length)
    except asyncio.IncompleteReadError:
        return None

    message = json.loads(body.decode("utf-8"))
    if not isinstance(message, dict):
        raise ValueError(f"Expected a JSON object, got {type(message).__name__}")
    return message


class JsonRpcTransport:
    """Request/notification channel to one language server process."""

    def __init__(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter, name: str = "terraform-ls"):
        self._reader = reader
        self._writer = writer
        self._name = name
        self._ids = itertools.count(1)
        self._pending: Dict[int, asyncio.Future] = {}
        self._handlers: Dict[str, NotificationHandler] = {
            "window/logMessage": self._log_message,
        }
        self._reader_task: Optional[asyncio.Task] = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def start(self) -> None:
        """Begin reading messages from the server."""
        if self._reader_task is None:
            self._reader_task = asyncio.ensure_future(self._read_loop())

    def on_notification(self, method: str, handler: NotificationHandler) -> None:
        self._handlers[method] = handler

    async def request(self, method: str, params: Any = None) -> Any:
        """Send a request and wait for its result.

        Raises:
            JsonRpcError: If the server answers with an error.
            TransportClosedError: If the stream closes first.
        """
        if self._closed:
            raise TransportClosedError(f"{self._name} transport is closed")

        request_id = next(self._ids)
        future = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future
        try:
            await self._send({"jsonrpc": JSONRPC_VERSION, "id": request_id, "method": method, "params": params})
            return await future
        finally:
            self._pending.pop(request_id, None)

    async def notify(self, method: str, params: Any = None) -> None:
        """Send a notification."""
        if self._closed:
            raise TransportClosedError(f"{self._name} transport is closed")
        await self._send({"jsonrpc": JSONRPC_VERSION, "method": method, "params": params})

    async def close(self) -> None:
        """Stop reading and close the write side."""
        self._closed = True
        if self._reader_task is not None and not self._reader_task.done():
            self._reader_task.cancel()
            try:
                await self._reader_task
            except asyncio.CancelledError:
                pass
        self._fail_pending(TransportClosedError(f"{self._name} transport closed"))
        if not self._writer.is_closing():
            self._writer.close()
        try:
            await self._writer.wait_closed()
        except (BrokenPipeError, ConnectionResetError):
            pass

    async def _send(self, payload: Dict[str, Any]) -> None:
        try:
            self._writer.write(encode_message(payload))
            await self._writer.drain()
        except (BrokenPipeError, ConnectionResetError) as e:
            raise TransportClosedError(f"{self._name} closed its input: {e}") from e

    async def _read_loop(self) -> None:
        try:
            while True:
                message = await read_message(self._reader)
                if message is None:
                    LOGGER.debug(f"{self._name} closed its output")
                    break
                await self._dispatch(message)
        except (ValueError, UnicodeDecodeError) as e:
            LOGGER.error(f"Malformed message from {self._name}: {e}")
        finally:
            self._closed = True
            self._fail_pending(TransportClosedError(f"{self._name} closed the connection"))

    async def _dispatch(self, message: Dict[str, Any]) -> None:
        method = message.get("method")
        if method is None:
            self._resolve(message)
            return

        if "id" in message:
            # Requests from the server get an empty answer
            LOGGER.debug(f"{self._name} request {method} answered with null")
            try:
                await self._send({"jsonrpc": JSONRPC_VERSION, "id": message["id"], "result": None})
            except TransportClosedError as e:
                LOGGER.debug(f"Could not answer {method}: {e}")
            return

        handler = self._handlers.get(method)
        if handler is not None:
            handler(message.get("params"))

    def _resolve(self, message: Dict[str, Any]) -> None:
        future = self._pending.get(message.get("id"))
        if future is None or future.done():
            LOGGER.debug(f"Dropping response for unknown request id {message.get('id')}")
            return
        error = message.get("error")
        if isinstance(error, dict):
            future.set_exception(JsonRpcError(
                int(error.get("code", 0)),
                str(error.get("message", "")),
                error.get("data"),
            ))
        else:
            future.set_result(message.get("result"))

    def _fail_pending(self, error: Exception) -> None:
        for future in list(self._pending.values()):
            if not future.done():
                future.set_exception(error)

    def _log_message(self, params: Any) -> None:
        if isinstance(params, dict):
            LOGGER.debug(f"[{self._name}] {params.get('message', '')}")
