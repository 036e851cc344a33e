"""Tests for MCP transports (in-process, stdio and HTTP) with mocks."""

import asyncio
import json
import logging
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from aicommand.protocols.errors import TransportError
from aicommand.protocols.mcp.transport import (
    STREAM_LIMIT,
    HttpTransport,
    InProcessTransport,
    MCPTransport,
    StdioTransport,
    create_transport,
    is_remote_address,
)


class EchoHandler:
    def __init__(self) -> None:
        self.frames: list[Any] = []

    async def handle_message(self, frame: Any) -> dict[str, Any] | None:
        self.frames.append(frame)
        if "id" not in frame:
            return None
        return {"jsonrpc": "2.0", "id": frame["id"], "result": {"echo": frame["method"]}}


class TestMCPTransportProtocol:
    def test_stdio_satisfies_protocol(self) -> None:
        assert isinstance(StdioTransport(command="echo"), MCPTransport)

    def test_http_satisfies_protocol(self) -> None:
        assert isinstance(HttpTransport("http://localhost:8080/mcp"), MCPTransport)

    def test_in_process_satisfies_protocol(self) -> None:
        assert isinstance(InProcessTransport(EchoHandler()), MCPTransport)


class TestInProcessTransport:
    async def test_request_round_trip(self) -> None:
        transport = InProcessTransport(EchoHandler())
        await transport.connect()
        await transport.send({"jsonrpc": "2.0", "id": 1, "method": "ping"})
        assert await transport.receive() == {
            "jsonrpc": "2.0",
            "id": 1,
            "result": {"echo": "ping"},
        }

    async def test_notification_queues_nothing(self) -> None:
        transport = InProcessTransport(EchoHandler())
        await transport.connect()
        await transport.send({"jsonrpc": "2.0", "method": "notifications/initialized"})
        with pytest.raises(TransportError, match="No pending frame"):
            await transport.receive()

    async def test_frames_are_copied(self) -> None:
        handler = EchoHandler()
        transport = InProcessTransport(handler)
        await transport.connect()
        params = {"nested": {"value": 1}}
        await transport.send({"jsonrpc": "2.0", "id": 1, "method": "x", "params": params})
        handler.frames[0]["params"]["nested"]["value"] = 2
        assert params["nested"]["value"] == 1

    async def test_send_without_connect_raises(self) -> None:
        transport = InProcessTransport(EchoHandler())
        with pytest.raises(TransportError, match="not connected"):
            await transport.send({"jsonrpc": "2.0", "id": 1, "method": "ping"})


class TestStdioTransport:
    async def test_connect_launches_subprocess(self) -> None:
        mock_proc = MagicMock()
        mock_proc.stderr.readline = AsyncMock(return_value=b"")
        with patch("asyncio.create_subprocess_exec", return_value=mock_proc) as mock_exec:
            transport = StdioTransport("npx", ["-y", "@mcp/fs"])
            await transport.connect()
            mock_exec.assert_awaited_once()
            assert mock_exec.call_args.args[:3] == ("npx", "-y", "@mcp/fs")
            assert mock_exec.call_args.kwargs["limit"] == STREAM_LIMIT

    async def test_stderr_is_forwarded_to_log(self, caplog: pytest.LogCaptureFixture) -> None:
        mock_proc = MagicMock()
        mock_proc.returncode = 0
        mock_proc.wait = AsyncMock(return_value=0)
        mock_proc.stderr.readline = AsyncMock(side_effect=[b"listening on stdio\n", b""])

        caplog.set_level(logging.DEBUG, logger="aicommand.protocols.mcp.transport")
        with patch("asyncio.create_subprocess_exec", return_value=mock_proc):
            transport = StdioTransport("/usr/bin/fs-server")
            await transport.connect()
            await asyncio.sleep(0)
            await transport.close()

        assert "[fs-server] listening on stdio" in caplog.text
        mock_proc.terminate.assert_not_called()

    async def test_connect_failure_raises_transport_error(self) -> None:
        with patch("asyncio.create_subprocess_exec", side_effect=FileNotFoundError("nope")):
            transport = StdioTransport("missing-binary")
            with pytest.raises(TransportError, match="Could not start missing-binary"):
                await transport.connect()

    async def test_send_writes_json_line(self) -> None:
        mock_stdin = MagicMock()
        mock_stdin.drain = AsyncMock()
        mock_proc = MagicMock()
        mock_proc.stdin = mock_stdin

        transport = StdioTransport(command="echo")
        transport._process = mock_proc

        data = {"jsonrpc": "2.0", "method": "test"}
        await transport.send(data)

        written = mock_stdin.write.call_args[0][0]
        assert written.endswith(b"\n")
        assert json.loads(written.decode()) == data

    async def test_send_broken_pipe_raises(self) -> None:
        mock_stdin = MagicMock()
        mock_stdin.drain = AsyncMock(side_effect=BrokenPipeError("gone"))
        mock_proc = MagicMock()
        mock_proc.stdin = mock_stdin

        transport = StdioTransport(command="echo")
        transport._process = mock_proc

        with pytest.raises(TransportError, match="closed its input"):
            await transport.send({"jsonrpc": "2.0", "method": "test"})

    async def test_receive_reads_json_line(self) -> None:
        expected = {"jsonrpc": "2.0", "id": 1, "result": {"ok": True}}
        mock_proc = MagicMock()
        mock_proc.stdout.readline = AsyncMock(return_value=(json.dumps(expected) + "\n").encode())

        transport = StdioTransport(command="echo")
        transport._process = mock_proc

        assert await transport.receive() == expected

    async def test_receive_eof_raises(self) -> None:
        mock_proc = MagicMock()
        mock_proc.stdout.readline = AsyncMock(return_value=b"")

        transport = StdioTransport(command="echo")
        transport._process = mock_proc

        with pytest.raises(TransportError, match="closed"):
            await transport.receive()

    async def test_receive_non_json_raises(self) -> None:
        mock_proc = MagicMock()
        mock_proc.stdout.readline = AsyncMock(return_value=b"Starting server...\n")

        transport = StdioTransport(command="echo")
        transport._process = mock_proc

        with pytest.raises(TransportError, match="non-JSON"):
            await transport.receive()

    async def test_receive_oversized_line_raises(self) -> None:
        mock_proc = MagicMock()
        mock_proc.stdout.readline = AsyncMock(
            side_effect=ValueError("Separator is found, but chunk is longer than limit")
        )

        transport = StdioTransport(command="echo")
        transport._process = mock_proc

        with pytest.raises(TransportError, match="exceeds"):
            await transport.receive()

    async def test_send_without_connect_raises(self) -> None:
        transport = StdioTransport(command="echo")
        with pytest.raises(TransportError, match="not connected"):
            await transport.send({"test": True})

    async def test_close_terminates_running_process(self) -> None:
        mock_proc = MagicMock()
        mock_proc.returncode = None
        mock_proc.wait = AsyncMock(return_value=0)

        transport = StdioTransport(command="echo")
        transport._process = mock_proc
        await transport.close()

        mock_proc.stdin.close.assert_called_once()
        mock_proc.terminate.assert_called_once()
        assert transport._process is None


def _http_response(payload: Any, status: int = 200) -> httpx.Response:
    return httpx.Response(status, json=payload, request=httpx.Request("POST", "http://x/mcp"))


class TestHttpTransport:
    async def test_request_reply_is_queued(self) -> None:
        reply = {"jsonrpc": "2.0", "id": 1, "result": {}}
        transport = HttpTransport("http://x/mcp")
        await transport.connect()
        with patch.object(
            httpx.AsyncClient, "post", AsyncMock(return_value=_http_response(reply))
        ) as post:
            await transport.send({"jsonrpc": "2.0", "id": 1, "method": "ping"})
            post.assert_awaited_once()
            assert post.call_args.kwargs["json"]["method"] == "ping"
        assert await transport.receive() == reply
        await transport.close()

    async def test_notification_is_not_queued(self) -> None:
        transport = HttpTransport("http://x/mcp")
        await transport.connect()
        with patch.object(httpx.AsyncClient, "post", AsyncMock(return_value=_http_response({}))):
            await transport.send({"jsonrpc": "2.0", "method": "notifications/initialized"})
        with pytest.raises(TransportError, match="No pending frame"):
            await transport.receive()
        await transport.close()

    async def test_http_error_raises_transport_error(self) -> None:
        transport = HttpTransport("http://x/mcp")
        await transport.connect()
        with patch.object(
            httpx.AsyncClient, "post", AsyncMock(side_effect=httpx.ConnectError("refused"))
        ):
            with pytest.raises(TransportError, match="HTTP request to http://x/mcp failed"):
                await transport.send({"jsonrpc": "2.0", "id": 1, "method": "ping"})
        await transport.close()

    async def test_error_status_raises_transport_error(self) -> None:
        transport = HttpTransport("http://x/mcp")
        await transport.connect()
        with patch.object(
            httpx.AsyncClient, "post", AsyncMock(return_value=_http_response({}, status=502))
        ):
            with pytest.raises(TransportError):
                await transport.send({"jsonrpc": "2.0", "id": 1, "method": "ping"})
        await transport.close()

    async def test_error_envelope_with_error_status_is_queued(self) -> None:
        envelope = {
            "jsonrpc": "2.0",
            "id": 3,
            "error": {"code": -32602, "message": "Invalid params: path"},
        }
        transport = HttpTransport("http://x/mcp")
        await transport.connect()
        with patch.object(
            httpx.AsyncClient, "post", AsyncMock(return_value=_http_response(envelope, status=400))
        ):
            await transport.send({"jsonrpc": "2.0", "id": 3, "method": "tools/call"})
        assert await transport.receive() == envelope
        await transport.close()

    async def test_body_without_frame_raises(self) -> None:
        transport = HttpTransport("http://x/mcp")
        await transport.connect()
        with patch.object(
            httpx.AsyncClient, "post", AsyncMock(return_value=_http_response(["not", "a", "frame"]))
        ):
            with pytest.raises(TransportError, match="did not return a JSON-RPC frame"):
                await transport.send({"jsonrpc": "2.0", "id": 1, "method": "ping"})
        await transport.close()

    async def test_send_without_connect_raises(self) -> None:
        with pytest.raises(TransportError, match="not connected"):
            await HttpTransport("http://x/mcp").send({"jsonrpc": "2.0", "id": 1, "method": "ping"})


class TestCreateTransport:
    def test_url_uses_http(self) -> None:
        assert isinstance(create_transport("https://example.com/mcp"), HttpTransport)

    def test_command_line_uses_stdio(self) -> None:
        transport = create_transport("npx -y '@mcp/server fs' /tmp")
        assert isinstance(transport, StdioTransport)
        assert transport.argv == ["npx", "-y", "@mcp/server fs", "/tmp"]

    def test_empty_address_rejected(self) -> None:
        with pytest.raises(ValueError, match="empty"):
            create_transport("   ")

    def test_is_remote_address(self) -> None:
        assert is_remote_address("http://localhost:8000")
        assert not is_remote_address("python -m server")
