"""In-memory stand-in for MCPAppsConnector, used by the runner and CLI tests.

Configurable behaviors:
- reachable / handshake outcome
- tools, resources and capabilities returned by discovery
- per-URI resource reads (content, mime type, _meta), failures and delays
- discovery failures (tools/list, resources/list)

Records the order in which reads complete and whether disconnect was called.
"""

import asyncio
import copy

from mcp_apps_sanity.connector import ConnectResult, Discovery, MCPConnection, ResourceRead
from mcp_apps_sanity.diagnostics import (
    HANDSHAKE_FAILED,
    RESOURCES_LIST_FAILED,
    SERVER_UNREACHABLE,
    TOOLS_LIST_FAILED,
)


GOOD_HTML = (
    "<!DOCTYPE html><html><head><style>:root { color-scheme: light dark; }</style></head>"
    "<body><noscript>Enable JavaScript to use this app.</noscript><div id='app'></div></body></html>"
)

GOOD_META = {
    "ui": {
        "csp": {
            "connectDomains": ["https://api.example.com"],
            "resourceDomains": ["https://cdn.example.com"],
        },
        "permissions": {"clipboardWrite": {}},
        "displayModes": ["inline", "fullscreen"],
    }
}

SERVER_INFO = {
    "serverInfo": {"name": "weather-app", "version": "1.2.0", "description": "Weather widgets"},
    "protocolVersion": "2025-06-18",
    "instructions": None,
}

CAPABILITIES = {
    "tools": {},
    "resources": {},
    "experimental": {"io.modelcontextprotocol/ui": {"version": "2026-01-26"}},
}


def ui_resource(uri, name=None):
    return {"uri": uri, "name": name or uri.rsplit("/", 1)[-1], "mimeType": "text/html;profile=mcp-app"}


def linked_tool(name, resource_uri, visibility=None):
    ui = {"resourceUri": resource_uri}
    if visibility is not None:
        ui["visibility"] = visibility
    return {"name": name, "inputSchema": {"type": "object"}, "_meta": {"ui": ui}}


def good_read(meta=None, content=GOOD_HTML, mime_type="text/html;profile=mcp-app"):
    return {"content": content, "mimeType": mime_type, "meta": copy.deepcopy(GOOD_META if meta is None else meta)}


class FakeConnector:
    """Mimics MCPAppsConnector without any network access."""

    def __init__(
        self,
        reachable=True,
        handshake_error=None,
        tools=None,
        resources=None,
        capabilities=None,
        reads=None,
        delays=None,
        tools_fail=False,
        resources_fail=False,
        latency=None,
    ):
        self.reachable = reachable
        self.handshake_error = handshake_error
        self.tools = tools if tools is not None else []
        self.resources = resources if resources is not None else []
        self.capabilities = capabilities if capabilities is not None else copy.deepcopy(CAPABILITIES)
        self.reads = reads or {}
        self.delays = delays or {}
        self.tools_fail = tools_fail
        self.resources_fail = resources_fail
        self.latency = latency or {"listResources": 12, "readResource": 34}

        self.completed_reads = []
        self.disconnected = False

    async def connect(self, endpoint, timeout):
        if not self.reachable:
            return ConnectResult(False, [SERVER_UNREACHABLE()])
        if self.handshake_error:
            return ConnectResult(False, [HANDSHAKE_FAILED(error=self.handshake_error)])
        connection = MCPConnection(
            session=None,
            stack=None,
            server_info=copy.deepcopy(SERVER_INFO),
            capabilities=self.capabilities,
            transport="fake",
        )
        return ConnectResult(True, [], connection)

    async def discover(self, connection):
        diagnostics = []
        tools = [] if self.tools_fail else copy.deepcopy(self.tools)
        if self.tools_fail:
            diagnostics.append(TOOLS_LIST_FAILED())
        resources = [] if self.resources_fail else copy.deepcopy(self.resources)
        if self.resources_fail:
            diagnostics.append(RESOURCES_LIST_FAILED())
        return Discovery(diagnostics, tools, resources, connection.capabilities)

    async def read_ui_resource(self, connection, uri):
        await asyncio.sleep(self.delays.get(uri, 0))
        self.completed_reads.append(uri)
        read = self.reads.get(uri)
        if read is None:
            return ResourceRead(False)
        return ResourceRead(True, content=read["content"], mime_type=read["mimeType"], meta=read["meta"])

    async def measure_latency(self, connection, ui_resources):
        return dict(self.latency)

    async def disconnect(self, connection):
        self.disconnected = True
