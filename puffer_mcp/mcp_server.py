"""Newline-delimited JSON-RPC 2.0 MCP server over stdio."""

from __future__ import annotations

import asyncio
import json
import sys
from typing import Any, Awaitable, Callable, Dict, Optional, Set

from puffer_mcp.errors import UnknownToolError
from puffer_mcp.tools import ToolRegistry
from puffer_mcp.utils.logging import bind_context, clear_context, get_logger

logger = get_logger(__name__)

JSONRPC_VERSION = "2.0"
DEFAULT_PROTOCOL_VERSION = "2024-11-05"
SERVER_VERSION = "0.1.0"

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603

STREAM_LIMIT = 1_048_576  # 1 MiB per line is plenty for MCP JSON payloads.

Writer = Callable[[Dict[str, Any]], Awaitable[None]]


def _response(request_id: Any, result: Dict[str, Any]) -> Dict[str, Any]:
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "result": result}


def _error(request_id: Any, code: int, message: str) -> Dict[str, Any]:
    return {
        "jsonrpc": JSONRPC_VERSION,
        "id": request_id,
        "error": {"code": code, "message": message},
    }


class MCPServer:
    """Serve a :class:`ToolRegistry` to one MCP client."""

    def __init__(
        self,
        tools: ToolRegistry,
        name: str = "puffer-finance-mcp",
        version: str = SERVER_VERSION,
    ) -> None:
        self.tools = tools
        self.name = name
        self.version = version
        self._initialized = False
        self._write_lock = asyncio.Lock()
        self._tasks: Set[asyncio.Task[None]] = set()

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def handle_line(self, line: bytes | str) -> Optional[Dict[str, Any]]:
        """Decode one line and return the reply, if the message needs one."""
        if isinstance(line, bytes):
            line = line.decode("utf-8", errors="replace")
        text = line.strip()
        if not text:
            return None
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            logger.error("invalid_mcp_payload", error=str(exc), line=text[:200])
            return _error(None, PARSE_ERROR, f"Parse error: {exc}")
        return await self.handle_message(payload)

    async def handle_message(self, payload: Any) -> Optional[Dict[str, Any]]:
        if not isinstance(payload, dict) or not isinstance(payload.get("method"), str):
            request_id = payload.get("id") if isinstance(payload, dict) else None
            logger.warning("unexpected_mcp_message", payload=payload)
            return _error(request_id, INVALID_REQUEST, "Invalid request")

        method = payload["method"]
        params = payload.get("params")
        if params is None:
            params = {}
        is_request = "id" in payload
        request_id = payload.get("id")

        if not is_request:
            if isinstance(params, dict):
                await self._handle_notification(method, params)
            return None

        if not isinstance(params, dict):
            logger.info("mcp_params_not_object", method=method)
            return _error(request_id, INVALID_PARAMS, "Params must be an object")

        clear_context()
        bind_context(request_id=request_id, method=method)
        try:
            if method == "initialize":
                return _response(request_id, self._initialize(params))
            if method == "ping":
                return _response(request_id, {})
            if method == "tools/list":
                return _response(request_id, {"tools": self.tools.describe()})
            if method == "tools/call":
                return await self._call_tool(request_id, params)
        finally:
            clear_context()

        logger.info("mcp_method_not_found", method=method)
        return _error(
            request_id, METHOD_NOT_FOUND, f"Unsupported request method '{method}'."
        )

    def _initialize(self, params: Dict[str, Any]) -> Dict[str, Any]:
        version = params.get("protocolVersion") or DEFAULT_PROTOCOL_VERSION
        client = params.get("clientInfo") or {}
        logger.info(
            "mcp_client_initializing",
            client=client.get("name"),
            protocol_version=version,
        )
        return {
            "protocolVersion": version,
            "capabilities": {"tools": {"listChanged": False}},
            "serverInfo": {"name": self.name, "version": self.version},
        }

    async def _handle_notification(self, method: str, params: Dict[str, Any]) -> None:
        if method == "notifications/initialized":
            self._initialized = True
            logger.info("mcp_client_initialized")
            return
        logger.debug("mcp_notification_ignored", method=method)

    async def _call_tool(
        self, request_id: Any, params: Dict[str, Any]
    ) -> Dict[str, Any]:
        name = params.get("name")
        arguments = params.get("arguments") or {}
        if not isinstance(name, str) or not name:
            return _error(request_id, INVALID_PARAMS, "Tool name is required")
        if not isinstance(arguments, dict):
            return _error(request_id, INVALID_PARAMS, "Tool arguments must be an object")
        try:
            result = await self.tools.call(name, arguments)
        except UnknownToolError as exc:
            logger.info("mcp_unknown_tool", tool=name)
            return _error(request_id, INVALID_PARAMS, str(exc))
        return _response(request_id, result)

    async def serve(self, reader: asyncio.StreamReader, write: Writer) -> None:
        """Read requests until EOF, handling each one concurrently."""
        logger.info("mcp_server_started", name=self.name, tools=self.tools.names)
        try:
            while True:
                line = await reader.readline()
                if not line:
                    break
                task = asyncio.create_task(self._dispatch(line, write))
                self._tasks.add(task)
                task.add_done_callback(self._tasks.discard)
        finally:
            if self._tasks:
                await asyncio.gather(*self._tasks, return_exceptions=True)
            logger.info("mcp_server_stopped", name=self.name)

    async def _dispatch(self, line: bytes, write: Writer) -> None:
        try:
            reply = await self.handle_line(line)
        except Exception as exc:
            logger.error("mcp_message_handler_failed", error=str(exc), exc_info=True)
            reply = _error(None, INTERNAL_ERROR, "Internal error")
        if reply is not None:
            async with self._write_lock:
                await write(reply)


async def open_stdio() -> tuple[asyncio.StreamReader, Writer]:
    """Wrap process stdin/stdout as an async reader and a message writer."""
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader(limit=STREAM_LIMIT)
    protocol = asyncio.StreamReaderProtocol(reader)
    await loop.connect_read_pipe(lambda: protocol, sys.stdin)

    stdout = sys.stdout.buffer

    async def write(message: Dict[str, Any]) -> None:
        stdout.write((json.dumps(message) + "\n").encode("utf-8"))
        stdout.flush()

    return reader, write


__all__ = ["MCPServer", "open_stdio"]
