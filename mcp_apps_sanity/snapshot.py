"""Snapshot model and builder.

A ``Snapshot`` is the immutable, JSON-serializable record of one validation
run: the 12 capability flags (``categories``) plus everything discovered
about the server (``entries``).  ``build_snapshot()`` assembles it from a
live discovery pass; ``build_empty_snapshot()`` produces the canonical
record for a server that could not be reached.
"""

import copy
import datetime
import threading
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, Dict, List, Optional

from .classifier import CLASSIFIER_KEYS, extract_extension_version
from .ui_validator import CSP_DOMAIN_FIELDS, ValidatedResource


CATEGORY_KEYS = ("isReachable", "supportsMcp") + CLASSIFIER_KEYS

ENTRY_KEYS = (
    "endpoint",
    "serverName",
    "serverVersion",
    "serverDescription",
    "protocolVersion",
    "extensionVersion",
    "capabilities",
    "uiResourceCount",
    "uiResources",
    "uiLinkedToolCount",
    "uiLinkedTools",
    "appOnlyToolCount",
    "cspSummary",
    "permissionsSummary",
    "displayModes",
    "tools",
    "resources",
    "latency",
    "timestamp",
)

LATENCY_FIELDS = ("listResources", "readResource")


class Snapshot:
    """Immutable point-in-time compliance record.

    ``categories`` and ``entries`` are read-only views; ``to_dict()`` returns a
    deep copy suitable for ``json.dumps``.
    """

    __slots__ = ("_categories", "_entries")

    def __init__(self, categories: Mapping, entries: Mapping):
        object.__setattr__(self, "_categories", copy.deepcopy(dict(categories)))
        object.__setattr__(self, "_entries", copy.deepcopy(dict(entries)))

    def __setattr__(self, name, value):
        raise AttributeError("Snapshot is immutable")

    @property
    def categories(self) -> Mapping:
        return MappingProxyType(self._categories)

    @property
    def entries(self) -> Mapping:
        return MappingProxyType(self._entries)

    @property
    def endpoint(self) -> Optional[str]:
        return self._entries.get("endpoint")

    @property
    def timestamp(self) -> Optional[str]:
        return self._entries.get("timestamp")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "categories": copy.deepcopy(self._categories),
            "entries": copy.deepcopy(self._entries),
        }

    @classmethod
    def from_dict(cls, data: Mapping) -> "Snapshot":
        """Rebuild a snapshot from ``to_dict()`` output (e.g. a saved JSON file)."""
        return cls(data["categories"], data["entries"])

    def __eq__(self, other):
        if not isinstance(other, Snapshot):
            return NotImplemented
        return self._categories == other._categories and self._entries == other._entries

    def __repr__(self):
        return f"Snapshot(endpoint={self.endpoint!r}, timestamp={self.timestamp!r})"


# -- Timestamps ----------------------------------------------------------------

_clock_lock = threading.Lock()
_last_timestamp = ""


def _now_iso() -> str:
    """Current UTC instant as ``YYYY-MM-DDTHH:MM:SS.mmmZ``, never earlier than the previous stamp."""
    global _last_timestamp
    stamp = (
        datetime.datetime.now(datetime.timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )
    with _clock_lock:
        if stamp < _last_timestamp:
            stamp = _last_timestamp
        _last_timestamp = stamp
    return stamp


# -- Builders ------------------------------------------------------------------

def build_snapshot(
    endpoint: str,
    server_info: Optional[Mapping],
    tools: List[Mapping],
    resources: List[Mapping],
    capabilities: Optional[Mapping],
    flags: Mapping,
    ui_resources: List[Mapping],
    ui_linked_tools: List[Mapping],
    validated_resources: List[ValidatedResource],
    latency: Optional[Mapping],
) -> Snapshot:
    """Assemble the snapshot of a live discovery pass.

    Args:
        endpoint:            The validated server URL.
        server_info:         ``{"serverInfo": {name, version, description}, "protocolVersion"}``
                             from the initialize handshake.
        tools:               Raw ``tools/list`` entries.
        resources:           Raw ``resources/list`` entries.
        capabilities:        Server capabilities.
        flags:               Classifier output (the ten ``CLASSIFIER_KEYS``).
        ui_resources:        ``ui://`` resources found during discovery.
        ui_linked_tools:     Tools linked to UI resources.
        validated_resources: Resources that passed the mime-type gate.
        latency:             ``{listResources, readResource}`` in milliseconds.
    """
    categories = {"isReachable": True, "supportsMcp": True}
    for key in CLASSIFIER_KEYS:
        categories[key] = bool(flags[key])

    validated_by_uri: Dict[str, ValidatedResource] = {}
    for validated in validated_resources:
        validated_by_uri.setdefault(validated.uri, validated)

    ui_resources_summary = []
    for resource in ui_resources:
        validated = validated_by_uri.get(resource.get("uri"))
        ui_resources_summary.append({
            "uri": resource.get("uri"),
            "name": resource.get("name"),
            "mimeType": resource.get("mimeType"),
            "hasCsp": validated.has_csp if validated else False,
            "hasPermissions": validated.has_permissions if validated else False,
            "displayModes": list(validated.display_modes) if validated else [],
        })

    latency = latency or {}
    entries = {
        "endpoint": endpoint,
        **_extract_server_info(server_info),
        "extensionVersion": extract_extension_version(capabilities),
        "capabilities": capabilities or {},
        "uiResourceCount": len(ui_resources),
        "uiResources": ui_resources_summary,
        "uiLinkedToolCount": len(ui_linked_tools),
        "uiLinkedTools": list(ui_linked_tools),
        "appOnlyToolCount": sum(1 for tool in ui_linked_tools if tool.get("visibility") == ["app"]),
        "cspSummary": _csp_summary(validated_resources),
        "permissionsSummary": _ordered_union(r.permission_names for r in validated_resources),
        "displayModes": _ordered_union(r.display_modes for r in validated_resources),
        "tools": list(tools),
        "resources": list(resources),
        "latency": {field: latency.get(field) for field in LATENCY_FIELDS},
        "timestamp": _now_iso(),
    }
    return Snapshot(categories, entries)


def build_empty_snapshot(endpoint: str) -> Snapshot:
    """Snapshot for a server where discovery never happened: every flag false."""
    categories = {key: False for key in CATEGORY_KEYS}
    entries = {
        "endpoint": endpoint,
        "serverName": None,
        "serverVersion": None,
        "serverDescription": None,
        "protocolVersion": None,
        "extensionVersion": None,
        "capabilities": {},
        "uiResourceCount": 0,
        "uiResources": [],
        "uiLinkedToolCount": 0,
        "uiLinkedTools": [],
        "appOnlyToolCount": 0,
        "cspSummary": {field: [] for field in CSP_DOMAIN_FIELDS},
        "permissionsSummary": [],
        "displayModes": [],
        "tools": [],
        "resources": [],
        "latency": {field: None for field in LATENCY_FIELDS},
        "timestamp": _now_iso(),
    }
    return Snapshot(categories, entries)


def _extract_server_info(server_info: Optional[Mapping]) -> Dict[str, Any]:
    if not isinstance(server_info, Mapping):
        return {
            "serverName": None,
            "serverVersion": None,
            "serverDescription": None,
            "protocolVersion": None,
        }
    inner = server_info.get("serverInfo") or {}
    return {
        "serverName": inner.get("name") or None,
        "serverVersion": inner.get("version") or None,
        "serverDescription": inner.get("description") or None,
        "protocolVersion": server_info.get("protocolVersion") or None,
    }


def _csp_summary(validated_resources: List[ValidatedResource]) -> Dict[str, List[Any]]:
    summary = {}
    for field in CSP_DOMAIN_FIELDS:
        summary[field] = _ordered_union(
            r.csp_domains.get(field, []) for r in validated_resources if r.has_csp
        )
    return summary


def _ordered_union(groups) -> List[Any]:
    """Flatten ``groups`` keeping the first appearance of each value."""
    seen: List[Any] = []
    for group in groups:
        for value in group:
            if value not in seen:
                seen.append(value)
    return seen
