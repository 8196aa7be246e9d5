"""MCP transports — newline-delimited JSON over a subprocess or a WebSocket.

Both satisfy :class:`MCPTransport`; the client only ever sees whole decoded
JSON-RPC messages.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import shlex
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class MCPTransport(Protocol):
    """Bidirectional JSON message channel to one MCP server."""

    async def connect(self) -> None: ...
    async def send(self, data: dict[str, Any]) -> None: ...
    async def receive(self) -> dict[str, Any]: ...
    async def close(self) -> None: ...


class StdioTransport:
    """Runs the server as a child process and talks over its stdin/stdout.

    Configured environment variables are layered over the current process
    environment so the child still finds its interpreter on ``PATH``.
    """

    def __init__(self, command: str, env: dict[str, str] | None = None) -> None:
        self._argv = shlex.split(command)
        self._env = {**os.environ, **env} if env else None
        self._process: asyncio.subprocess.Process | None = None

    @property
    def connected(self) -> bool:
        return self._process is not None and self._process.returncode is None

    async def connect(self) -> None:
        if not self._argv:
            msg = "Empty MCP server command"
            raise ValueError(msg)
        self._process = await asyncio.create_subprocess_exec(
            *self._argv,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.DEVNULL,
            env=self._env,
        )
        logger.debug("Started MCP server %s (pid %s)", self._argv[0], self._process.pid)

    async def send(self, data: dict[str, Any]) -> None:
        process = self._require()
        assert process.stdin is not None
        process.stdin.write((json.dumps(data) + "\n").encode())
        await process.stdin.drain()

    async def receive(self) -> dict[str, Any]:
        process = self._require()
        assert process.stdout is not None
        while True:
            line = await process.stdout.readline()
            if not line:
                msg = "MCP server closed its output"
                raise RuntimeError(msg)
            if line.strip():
                return json.loads(line)  # type: ignore[no-any-return]

    async def close(self) -> None:
        process, self._process = self._process, None
        if process is None:
            return
        if process.stdin is not None:
            process.stdin.close()
        if process.returncode is None:
            process.terminate()
        await process.wait()

    def _require(self) -> asyncio.subprocess.Process:
        if self._process is None:
            msg = "Transport not connected"
            raise RuntimeError(msg)
        return self._process


class WebSocketTransport:
    """Talks to a remote MCP server over a WebSocket.

    Requires the ``websockets`` package (optional dependency ``mcp-ws``).
    """

    def __init__(self, url: str) -> None:
        self._url = url
        self._ws: Any = None

    @property
    def connected(self) -> bool:
        return self._ws is not None

    async def connect(self) -> None:
        try:
            import websockets
        except ImportError as exc:
            msg = "websockets package required: pip install streamagent[mcp-ws]"
            raise ImportError(msg) from exc
        self._ws = await websockets.connect(self._url)

    async def send(self, data: dict[str, Any]) -> None:
        if self._ws is None:
            msg = "Transport not connected"
            raise RuntimeError(msg)
        await self._ws.send(json.dumps(data))

    async def receive(self) -> dict[str, Any]:
        if self._ws is None:
            msg = "Transport not connected"
            raise RuntimeError(msg)
        return json.loads(await self._ws.recv())  # type: ignore[no-any-return]

    async def close(self) -> None:
        ws, self._ws = self._ws, None
        if ws is not None:
            await ws.close()
