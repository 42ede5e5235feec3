"""UI resource discovery filters and tool-to-resource linkage checks.

Tools opt into the UI extension by declaring ``_meta.ui.resourceUri``; the
referenced resource must be one of the server's ``ui://`` resources and the
optional ``_meta.ui.visibility`` list may only contain ``model`` and ``app``.
"""

from collections.abc import Mapping
from typing import Any, Dict, List, Optional

from .diagnostics import (
    INVALID_VISIBILITY,
    MISSING_LINKED_RESOURCE,
    NO_LINKED_TOOLS,
    UI_META_WITHOUT_RESOURCE,
    Diagnostic,
)


UI_RESOURCE_SCHEME = "ui://"

VISIBILITY_VALUES = ("model", "app")
DEFAULT_VISIBILITY = ["model", "app"]


def is_ui_resource(resource: Mapping) -> bool:
    uri = resource.get("uri") or ""
    return isinstance(uri, str) and uri.startswith(UI_RESOURCE_SCHEME)


def select_ui_resources(resources: List[Mapping]) -> List[Dict[str, Any]]:
    """Return the ``ui://`` resources in discovery order, trimmed to their listing fields.

    URIs are unique: a repeated URI keeps its first listing.
    """
    selected: List[Dict[str, Any]] = []
    seen = set()
    for resource in resources:
        if not isinstance(resource, Mapping) or not is_ui_resource(resource):
            continue
        if resource["uri"] in seen:
            continue
        seen.add(resource["uri"])
        selected.append({
            "uri": resource.get("uri"),
            "name": resource.get("name"),
            "mimeType": resource.get("mimeType"),
            "description": resource.get("description"),
        })
    return selected


def tool_ui_meta(tool: Mapping) -> Optional[Mapping]:
    """Return a tool's ``_meta.ui`` declaration, or None when it has none."""
    meta = tool.get("_meta")
    if not isinstance(meta, Mapping):
        return None
    ui = meta.get("ui")
    return ui if isinstance(ui, Mapping) and ui else None


def select_ui_linked_tools(tools: List[Mapping]) -> List[Dict[str, Any]]:
    """Return ``{name, resourceUri, visibility}`` for every tool declaring a resourceUri.

    A declared ``resourceUri`` of None still counts as a link (and is then
    reported as a reference to a non-existent resource).  Absent visibility
    defaults to ``["model", "app"]``.  Names are unique: the first
    declaration of a duplicated tool name wins.
    """
    linked: List[Dict[str, Any]] = []
    seen = set()
    for tool in tools:
        if not isinstance(tool, Mapping):
            continue
        ui = tool_ui_meta(tool)
        if ui is None or "resourceUri" not in ui:
            continue
        name = tool.get("name")
        if name in seen:
            continue
        seen.add(name)

        visibility = ui.get("visibility")
        if visibility is None:
            visibility = list(DEFAULT_VISIBILITY)
        elif isinstance(visibility, list):
            visibility = list(visibility)

        linked.append({"name": name, "resourceUri": ui.get("resourceUri"), "visibility": visibility})
    return linked


def validate_linkage(
    ui_linked_tools: List[Mapping],
    ui_resources: List[Mapping],
    tools: List[Mapping],
) -> List[Diagnostic]:
    """Check tool links against the discovered UI resources.

    Args:
        ui_linked_tools: Output of ``select_ui_linked_tools()``.
        ui_resources:    Output of ``select_ui_resources()``.
        tools:           Every tool from ``tools/list`` (for the resourceUri check).
    """
    errors: List[Diagnostic] = []

    if not ui_linked_tools:
        errors.append(NO_LINKED_TOOLS())
    else:
        # A list, not a set: servers may send unhashable resourceUri values
        ui_uris = [resource.get("uri") for resource in ui_resources]
        for link in ui_linked_tools:
            name = link.get("name")
            resource_uri = link.get("resourceUri")
            if resource_uri not in ui_uris:
                errors.append(MISSING_LINKED_RESOURCE(name=name, resource_uri=resource_uri))

            visibility = link.get("visibility")
            if isinstance(visibility, list):
                invalid = [value for value in visibility if value not in VISIBILITY_VALUES]
                if invalid:
                    errors.append(INVALID_VISIBILITY(
                        name=name, values=", ".join(str(v) for v in invalid),
                    ))

    errors.extend(_check_tool_ui_meta(tools))
    return errors


def _check_tool_ui_meta(tools: List[Mapping]) -> List[Diagnostic]:
    """Every tool carrying UI metadata must name the resource it renders into."""
    errors: List[Diagnostic] = []
    for tool in tools:
        if not isinstance(tool, Mapping):
            continue
        ui = tool_ui_meta(tool)
        if ui is not None and ui.get("resourceUri") is None:
            errors.append(UI_META_WITHOUT_RESOURCE(name=tool.get("name")))
    return errors
