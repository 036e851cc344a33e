"""MCP transports — in-process, stdio and HTTP communication layers.

Each transport satisfies the :class:`MCPTransport` protocol, providing
``connect``, ``send``, ``receive``, and ``close`` methods.  Frames always
travel as whole JSON-RPC objects, never partial ones.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import shlex
from collections import deque
from typing import Any, Protocol, runtime_checkable

import httpx

from aicommand.protocols.errors import TransportError

logger = logging.getLogger(__name__)

# Longest JSON line either side of a stdio session will buffer.
STREAM_LIMIT = 16 * 1024 * 1024


@runtime_checkable
class MCPTransport(Protocol):
    """Abstract transport for MCP JSON-RPC communication."""

    async def connect(self) -> None: ...
    async def send(self, data: dict[str, Any]) -> None: ...
    async def receive(self) -> dict[str, Any]: ...
    async def close(self) -> None: ...


@runtime_checkable
class MessageHandler(Protocol):
    """Server side of a session: turns one inbound frame into at most one reply."""

    async def handle_message(self, frame: Any) -> dict[str, Any] | None: ...


class InProcessTransport:
    """Calls a :class:`MessageHandler` living in the same process.

    Frames are passed through a JSON round-trip in both directions so that
    nothing relies on sharing live objects with the provider.
    """

    def __init__(self, handler: MessageHandler) -> None:
        self._handler = handler
        self._inbox: deque[dict[str, Any]] = deque()
        self._connected = False

    async def connect(self) -> None:
        self._connected = True

    async def send(self, data: dict[str, Any]) -> None:
        """Dispatch *data* to the handler and queue its reply, if any."""
        if not self._connected:
            msg = "Transport not connected"
            raise TransportError(msg)
        reply = await self._handler.handle_message(json.loads(json.dumps(data)))
        if reply is not None:
            self._inbox.append(json.loads(json.dumps(reply)))

    async def receive(self) -> dict[str, Any]:
        if not self._connected:
            msg = "Transport not connected"
            raise TransportError(msg)
        if not self._inbox:
            msg = "No pending frame from in-process provider"
            raise TransportError(msg)
        return self._inbox.popleft()

    async def close(self) -> None:
        self._inbox.clear()
        self._connected = False


class StdioTransport:
    """Runs a provider as a child process speaking JSON lines on its pipes.

    One frame per line on stdin/stdout.  Whatever the provider writes to
    stderr is forwarded to this module's logger at DEBUG level.
    """

    def __init__(
        self,
        command: str,
        args: list[str] | None = None,
        env: dict[str, str] | None = None,
    ) -> None:
        self.argv = [command, *(args or [])]
        self._env = env
        self._process: asyncio.subprocess.Process | None = None
        self._stderr_task: asyncio.Task[None] | None = None

    async def connect(self) -> None:
        try:
            process = await asyncio.create_subprocess_exec(
                *self.argv,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=self._env,
                limit=STREAM_LIMIT,
            )
        except OSError as exc:
            msg = f"Could not start {shlex.join(self.argv)}: {exc}"
            raise TransportError(msg) from exc
        logger.debug("Started provider process %s", shlex.join(self.argv))
        self._process = process
        if process.stderr is not None:
            self._stderr_task = asyncio.create_task(self._forward_stderr(process.stderr))

    async def _forward_stderr(self, stream: asyncio.StreamReader) -> None:
        label = os.path.basename(self.argv[0])
        while line := await stream.readline():
            logger.debug("[%s] %s", label, line.decode(errors="replace").rstrip())

    def _pipes(self) -> tuple[asyncio.StreamWriter, asyncio.StreamReader]:
        process = self._process
        if process is None or process.stdin is None or process.stdout is None:
            msg = "Transport not connected"
            raise TransportError(msg)
        return process.stdin, process.stdout

    async def send(self, data: dict[str, Any]) -> None:
        stdin, _ = self._pipes()
        try:
            stdin.write(json.dumps(data).encode() + b"\n")
            await stdin.drain()
        except (BrokenPipeError, ConnectionResetError) as exc:
            msg = f"Provider process closed its input: {exc}"
            raise TransportError(msg) from exc

    async def receive(self) -> dict[str, Any]:
        _, stdout = self._pipes()
        try:
            line = await stdout.readline()
        except ValueError as exc:
            # readline() reports an overlong line as ValueError.
            msg = f"Provider frame exceeds {STREAM_LIMIT} bytes: {exc}"
            raise TransportError(msg) from exc
        if not line:
            msg = "Transport closed: provider process exited"
            raise TransportError(msg)
        try:
            frame = json.loads(line)
        except json.JSONDecodeError as exc:
            msg = f"Provider wrote a non-JSON line: {line[:200]!r}"
            raise TransportError(msg) from exc
        if not isinstance(frame, dict):
            msg = f"Provider wrote a non-object frame: {line[:200]!r}"
            raise TransportError(msg)
        return frame

    async def close(self) -> None:
        """Close the provider's stdin, terminate it if still running and reap it."""
        process, self._process = self._process, None
        if process is None:
            return
        if process.stdin is not None:
            process.stdin.close()
        if process.returncode is None:
            process.terminate()
        await process.wait()
        if self._stderr_task is not None:
            self._stderr_task.cancel()
            await asyncio.gather(self._stderr_task, return_exceptions=True)
            self._stderr_task = None


class HttpTransport:
    """Forwards each frame as an HTTP POST body to a remote MCP endpoint.

    The response body holds the single reply frame.  Notifications are
    posted as well but do not expect a body.
    """

    def __init__(
        self,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        timeout: float = 60.0,
    ) -> None:
        self._url = url
        self._headers = headers or {}
        self._timeout = timeout
        self._client: httpx.AsyncClient | None = None
        self._inbox: deque[dict[str, Any]] = deque()

    async def connect(self) -> None:
        self._client = httpx.AsyncClient(
            headers={"Accept": "application/json", **self._headers},
            timeout=self._timeout,
        )

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            msg = "Transport not connected"
            raise TransportError(msg)
        return self._client

    async def send(self, data: dict[str, Any]) -> None:
        """POST *data* and queue the reply frame for requests.

        A JSON-RPC frame in the body is queued whatever the HTTP status, so
        an error envelope sent with a 4xx/5xx still reaches the caller.
        """
        try:
            response = await self._http().post(self._url, json=data)
        except httpx.HTTPError as exc:
            raise TransportError(f"HTTP request to {self._url} failed: {exc}") from exc

        frame = _json_rpc_frame(response) if "id" in data else None
        if frame is not None:
            self._inbox.append(frame)
            return
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise TransportError(f"HTTP request to {self._url} failed: {exc}") from exc
        if "id" in data:
            msg = f"Provider at {self._url} did not return a JSON-RPC frame"
            raise TransportError(msg)

    async def receive(self) -> dict[str, Any]:
        self._http()
        if not self._inbox:
            msg = "No pending frame from HTTP provider"
            raise TransportError(msg)
        return self._inbox.popleft()

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
        self._inbox.clear()


def _json_rpc_frame(response: httpx.Response) -> dict[str, Any] | None:
    try:
        frame = response.json()
    except ValueError:
        return None
    if isinstance(frame, dict) and frame.get("jsonrpc") == "2.0":
        return frame
    return None


def is_remote_address(address: str) -> bool:
    return address.startswith(("http://", "https://"))


def create_transport(address: str, env: dict[str, str] | None = None) -> MCPTransport:
    """Build the transport for a configured provider address.

    URLs use :class:`HttpTransport`; anything else is a command line for
    :class:`StdioTransport`.
    """
    if is_remote_address(address):
        return HttpTransport(address)
    parts = shlex.split(address)
    if not parts:
        msg = "Provider address is empty"
        raise ValueError(msg)
    logger.debug("Using stdio transport for %s", parts[0])
    return StdioTransport(parts[0], parts[1:], env=env)
