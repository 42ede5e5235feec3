"""Thin async boundary to a live MCP server.

Uses ``requests`` for a cheap reachability probe and the ``mcp`` SDK for the
session itself: Streamable HTTP is tried first, SSE second.  Every protocol
failure is converted into a coded diagnostic or an empty result here, so the
rest of the pipeline never sees transport exceptions.

Key behaviors:
- HEAD reachability check; any HTTP response counts as reachable
- Initialize handshake with a per-request read timeout
- ``tools/list`` and ``resources/list`` degrade to empty lists on failure
- ``resources/read`` returns the first content item's text, mime type and ``_meta``
- Latency of ``resources/list`` and of the first UI resource read, in ms
"""

import asyncio
import datetime
import time
from contextlib import AsyncExitStack
from typing import Any, Dict, List, Optional

import requests
from mcp import ClientSession
from mcp.client.sse import sse_client
from mcp.client.streamable_http import streamablehttp_client
from mcp.types import Implementation
from pydantic import AnyUrl

from . import __version__
from .diagnostics import (
    HANDSHAKE_FAILED,
    RESOURCES_LIST_FAILED,
    SERVER_UNREACHABLE,
    TOOLS_LIST_FAILED,
    TOOLS_LIST_INVALID,
    Diagnostic,
)
from .logger import get_logger


logger = get_logger(__name__)

CLIENT_NAME = "mcp-apps-sanity"


class ResourceRead:
    """Outcome of one ``resources/read`` call.

    ``ok`` is False when the call raised or returned no contents; the other
    fields then stay None.
    """

    def __init__(self, ok: bool, content: Any = None, mime_type: Any = None, meta: Any = None):
        self.ok = ok
        self.content = content
        self.mime_type = mime_type
        self.meta = meta

    def __repr__(self):
        return f"ResourceRead(ok={self.ok!r}, mime_type={self.mime_type!r})"


class MCPConnection:
    """An initialized MCP session plus the transport contexts that keep it open."""

    def __init__(
        self,
        session: ClientSession,
        stack: AsyncExitStack,
        server_info: Dict[str, Any],
        capabilities: Dict[str, Any],
        transport: str,
    ):
        self.session = session
        self.server_info = server_info
        self.capabilities = capabilities
        self.transport = transport
        self._stack = stack

    async def close(self):
        await self._stack.aclose()


class ConnectResult:
    def __init__(self, ok: bool, diagnostics: List[Diagnostic], connection: Optional[MCPConnection] = None):
        self.ok = ok
        self.diagnostics = diagnostics
        self.connection = connection


class Discovery:
    def __init__(
        self,
        diagnostics: List[Diagnostic],
        tools: List[Dict[str, Any]],
        resources: List[Dict[str, Any]],
        capabilities: Dict[str, Any],
    ):
        self.diagnostics = diagnostics
        self.tools = tools
        self.resources = resources
        self.capabilities = capabilities


def check_reachable(endpoint: str, timeout: float) -> bool:
    """True when the endpoint answers an HTTP HEAD request with any status."""
    try:
        requests.head(endpoint, timeout=timeout, allow_redirects=True)
    except requests.RequestException as exc:
        logger.info("HEAD %s failed: %s", endpoint, exc)
        return False
    return True


class MCPAppsConnector:
    """Connects to, discovers and reads from a live MCP server.

    Args:
        client_name: Name sent in the initialize handshake's ``clientInfo``.
    """

    def __init__(self, client_name: str = CLIENT_NAME):
        self.client_info = Implementation(name=client_name, version=__version__)

    # -- Public API ----------------------------------------------------------

    async def connect(self, endpoint: str, timeout: float) -> ConnectResult:
        """Check reachability, then open and initialize a session."""
        diagnostics: List[Diagnostic] = []

        reachable = await asyncio.to_thread(check_reachable, endpoint, timeout)
        if not reachable:
            diagnostics.append(SERVER_UNREACHABLE())
            return ConnectResult(False, diagnostics)

        error = "no transport attempted"
        for transport in ("streamable-http", "sse"):
            try:
                connection = await self._open(endpoint, timeout, transport)
            except Exception as exc:
                error = _describe(exc)
                logger.info("%s handshake with %s failed: %s", transport, endpoint, error)
                continue
            logger.info("Connected to %s over %s", endpoint, transport)
            return ConnectResult(True, diagnostics, connection)

        diagnostics.append(HANDSHAKE_FAILED(error=error))
        return ConnectResult(False, diagnostics)

    async def discover(self, connection: MCPConnection) -> Discovery:
        """List tools and resources.  Failures yield empty lists plus a CON diagnostic."""
        diagnostics: List[Diagnostic] = []

        tools: List[Dict[str, Any]] = []
        try:
            result = await connection.session.list_tools()
        except Exception as exc:
            logger.info("tools/list failed: %s", _describe(exc))
            diagnostics.append(TOOLS_LIST_FAILED())
        else:
            raw_tools = getattr(result, "tools", None)
            if isinstance(raw_tools, list):
                tools = [_dump(tool) for tool in raw_tools]
            else:
                diagnostics.append(TOOLS_LIST_INVALID())

        resources: List[Dict[str, Any]] = []
        try:
            result = await connection.session.list_resources()
        except Exception as exc:
            logger.info("resources/list failed: %s", _describe(exc))
            diagnostics.append(RESOURCES_LIST_FAILED())
        else:
            resources = [_dump(resource) for resource in (getattr(result, "resources", None) or [])]

        return Discovery(diagnostics, tools, resources, connection.capabilities)

    async def read_ui_resource(self, connection: MCPConnection, uri: str) -> ResourceRead:
        """Read one resource; any failure is reported as ``ok=False``."""
        try:
            result = await connection.session.read_resource(AnyUrl(uri))
        except Exception as exc:
            logger.info("resources/read %s failed: %s", uri, _describe(exc))
            return ResourceRead(False)

        contents = getattr(result, "contents", None) or []
        if not contents:
            return ResourceRead(False)

        first = _dump(contents[0])
        return ResourceRead(
            True,
            content=first.get("text"),
            mime_type=first.get("mimeType"),
            meta=first.get("_meta"),
        )

    async def measure_latency(self, connection: MCPConnection, ui_resources: List[Dict[str, Any]]) -> Dict[str, Optional[int]]:
        """Round-trip times in milliseconds; None when the call failed or was not possible."""
        list_ms = await _timed(connection.session.list_resources())

        read_ms = None
        if ui_resources:
            read_ms = await _timed(connection.session.read_resource(AnyUrl(ui_resources[0]["uri"])))

        return {"listResources": list_ms, "readResource": read_ms}

    async def disconnect(self, connection: Optional[MCPConnection]):
        """Close the session.  Errors while tearing down the transport are logged only."""
        if connection is None:
            return
        try:
            await connection.close()
        except Exception as exc:
            logger.debug("Ignoring error while closing MCP session: %s", _describe(exc))

    # -- Internals -----------------------------------------------------------

    async def _open(self, endpoint: str, timeout: float, transport: str) -> MCPConnection:
        stack = AsyncExitStack()
        try:
            if transport == "streamable-http":
                streams = await stack.enter_async_context(
                    streamablehttp_client(endpoint, timeout=datetime.timedelta(seconds=timeout))
                )
            else:
                streams = await stack.enter_async_context(sse_client(endpoint, timeout=timeout))

            session = await stack.enter_async_context(ClientSession(
                streams[0],
                streams[1],
                read_timeout_seconds=datetime.timedelta(seconds=timeout),
                client_info=self.client_info,
            ))
            init = await asyncio.wait_for(session.initialize(), timeout)
        except BaseException:
            try:
                await stack.aclose()
            except Exception as exc:
                logger.debug("Ignoring error while closing failed %s transport: %s", transport, exc)
            raise

        return MCPConnection(
            session,
            stack,
            server_info=_server_info(init),
            capabilities=_dump(init.capabilities) if init.capabilities is not None else {},
            transport=transport,
        )


def _server_info(init: Any) -> Dict[str, Any]:
    implementation = getattr(init, "serverInfo", None)
    return {
        "serverInfo": {
            "name": getattr(implementation, "name", None),
            "version": getattr(implementation, "version", None),
            "description": getattr(implementation, "description", None),
        },
        "protocolVersion": getattr(init, "protocolVersion", None),
        "instructions": getattr(init, "instructions", None),
    }


async def _timed(call) -> Optional[int]:
    start = time.perf_counter()
    try:
        await call
    except Exception as exc:
        logger.info("Latency probe failed: %s", _describe(exc))
        return None
    return round((time.perf_counter() - start) * 1000)


def _dump(model: Any) -> Dict[str, Any]:
    """Protocol model to a plain JSON-compatible dict, using wire field names (``_meta``, ``inputSchema``)."""
    if hasattr(model, "model_dump"):
        return model.model_dump(mode="json", by_alias=True, exclude_none=True)
    return dict(model)


def _describe(exc: BaseException) -> str:
    """Readable message for an exception, unwrapping task-group exception groups."""
    nested = getattr(exc, "exceptions", None)
    if nested:
        return _describe(nested[0])
    return str(exc) or type(exc).__name__
