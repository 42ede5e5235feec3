"""Orchestrates a full MCP Apps validation run and snapshot comparison.

``run_validation()`` is the main entry point.  It validates its arguments,
connects to a live MCP server and runs the pipeline:

1. Discovery (``tools/list``, ``resources/list``, capabilities)
2. UI resource selection and tool linkage extraction
3. Content validation, one concurrent read-and-check task per UI resource
4. Linkage validation
5. Capability classification
6. Latency measurement
7. Snapshot assembly

An unreachable server short-circuits after step 0 (connect) with the empty
snapshot and a connectivity diagnostic.  ``compare_snapshots()`` diffs two
snapshots and only ever reports integrity warnings.
"""

import asyncio
from typing import Any, Dict, List, Optional, Tuple

from ..classifier import classify
from ..connector import MCPAppsConnector, MCPConnection
from ..diagnostics import Diagnostic
from ..differ import diff_snapshots
from ..linkage import select_ui_linked_tools, select_ui_resources, validate_linkage
from ..logger import get_logger
from ..params import validate_compare, validate_start
from ..snapshot import Snapshot, build_empty_snapshot, build_snapshot
from ..ui_validator import ValidatedResource, validate_ui_resource


logger = get_logger(__name__)

# Seconds; applies to the reachability check and to every MCP request
DEFAULT_TIMEOUT = 10.0


class ValidationResult:
    """Outcome of ``run_validation()``.

    Attributes:
        status:    True iff no diagnostics were produced.
        messages:  Diagnostics in pipeline order.
        snapshot:  The built ``Snapshot`` (empty snapshot when unreachable).
    """

    def __init__(self, messages: List[Diagnostic], snapshot: Snapshot):
        self.messages = list(messages)
        self.snapshot = snapshot
        self.status = len(self.messages) == 0

    @property
    def categories(self):
        return self.snapshot.categories

    @property
    def entries(self):
        return self.snapshot.entries

    def to_dict(self) -> Dict[str, Any]:
        data = self.snapshot.to_dict()
        return {
            "status": self.status,
            "messages": [str(m) for m in self.messages],
            "categories": data["categories"],
            "entries": data["entries"],
        }


class CompareResult:
    """Outcome of ``compare_snapshots()``.  ``status`` is always True."""

    def __init__(self, messages: List[Diagnostic], has_changes: bool, diff: Dict[str, Any]):
        self.status = True
        self.messages = list(messages)
        self.has_changes = has_changes
        self.diff = diff

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "messages": [str(m) for m in self.messages],
            "hasChanges": self.has_changes,
            "diff": self.diff,
        }


def run_validation(
    endpoint: str,
    timeout: float = DEFAULT_TIMEOUT,
    connector: Optional[MCPAppsConnector] = None,
) -> ValidationResult:
    """Validate the MCP Apps extension of a live server.

    Raises:
        InputValidationError: ``endpoint`` is not an http(s) URL or ``timeout``
            is not a positive number.  Raised before any network access.

    Args:
        endpoint:   URL of the MCP server (Streamable HTTP or SSE).
        timeout:    Per-request timeout in seconds.
        connector:  Connector implementation; defaults to ``MCPAppsConnector()``.
    """
    validate_start(endpoint, timeout)
    return asyncio.run(run_validation_async(endpoint.strip(), timeout, connector or MCPAppsConnector()))


async def run_validation_async(endpoint: str, timeout: float, connector: MCPAppsConnector) -> ValidationResult:
    """Async body of ``run_validation()`` for callers already inside an event loop.

    Arguments are assumed to be validated.
    """
    connected = await connector.connect(endpoint, timeout)
    if not connected.ok:
        logger.warning("Could not connect to %s; recording empty snapshot", endpoint)
        return ValidationResult(connected.diagnostics, build_empty_snapshot(endpoint))

    try:
        messages, snapshot = await _run_pipeline(endpoint, connector, connected.connection)
    finally:
        await connector.disconnect(connected.connection)

    return ValidationResult(connected.diagnostics + messages, snapshot)


def compare_snapshots(before: Any, after: Any) -> CompareResult:
    """Diff two snapshots (``Snapshot`` instances or their ``to_dict()`` form).

    Raises:
        InputValidationError: either argument is missing, not an object, or
            lacks ``categories`` / ``entries``.
    """
    validate_compare(before, after)
    messages, has_changes, diff = diff_snapshots(before, after)
    return CompareResult(messages, has_changes, diff)


async def _run_pipeline(
    endpoint: str,
    connector: MCPAppsConnector,
    connection: MCPConnection,
) -> Tuple[List[Diagnostic], Snapshot]:
    messages: List[Diagnostic] = []

    # Phase 1: Discovery
    discovery = await connector.discover(connection)
    messages.extend(discovery.diagnostics)

    # Phase 2: UI resources and linked tools
    ui_resources = select_ui_resources(discovery.resources)
    ui_linked_tools = select_ui_linked_tools(discovery.tools)
    logger.info(
        "Discovered %d tools, %d resources (%d UI), %d UI-linked tools",
        len(discovery.tools), len(discovery.resources), len(ui_resources), len(ui_linked_tools),
    )

    # Phase 3: Content validation
    validated_resources, content_messages = await _validate_resources(connector, connection, ui_resources)
    messages.extend(content_messages)

    # Phase 4: Linkage
    messages.extend(validate_linkage(ui_linked_tools, ui_resources, discovery.tools))

    # Phase 5: Classification
    flags, classifier_messages = classify(
        discovery.capabilities, ui_resources, ui_linked_tools, validated_resources, content_messages,
    )
    messages.extend(classifier_messages)

    # Phase 6: Latency
    latency = await connector.measure_latency(connection, ui_resources)

    snapshot = build_snapshot(
        endpoint=endpoint,
        server_info=connection.server_info,
        tools=discovery.tools,
        resources=discovery.resources,
        capabilities=discovery.capabilities,
        flags=flags,
        ui_resources=ui_resources,
        ui_linked_tools=ui_linked_tools,
        validated_resources=validated_resources,
        latency=latency,
    )
    return messages, snapshot


async def _validate_resources(
    connector: MCPAppsConnector,
    connection: MCPConnection,
    ui_resources: List[Dict[str, Any]],
) -> Tuple[List[ValidatedResource], List[Diagnostic]]:
    """Read and validate every UI resource concurrently.

    Each task fills its own diagnostic buffer; buffers are concatenated in
    discovery order once all tasks have finished, whatever order the reads
    completed in.
    """
    async def read_and_check(resource):
        uri = resource["uri"]
        read = await connector.read_ui_resource(connection, uri)
        return validate_ui_resource(
            uri,
            resource.get("name"),
            read.ok,
            content=read.content,
            mime_type=read.mime_type,
            meta=read.meta,
        )

    outcomes = await asyncio.gather(*(read_and_check(resource) for resource in ui_resources))

    validated_resources: List[ValidatedResource] = []
    messages: List[Diagnostic] = []
    for validated, diagnostics in outcomes:
        if validated is not None:
            validated_resources.append(validated)
        messages.extend(diagnostics)
    return validated_resources, messages
