"""Reduces discovery and validation results into boolean feature flags.

Pure, no I/O.  ``classify()`` returns the ten capability flags it owns;
``isReachable`` and ``supportsMcp`` are added by the snapshot builder once a
live discovery pass has happened.
"""

from collections.abc import Mapping
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .diagnostics import (
    EXTENSION_NOT_DECLARED,
    EXTENSION_VERSION_MISSING,
    UNKNOWN_PERMISSIONS,
    Diagnostic,
)
from .ui_validator import ValidatedResource


UI_EXTENSION_KEY = "io.modelcontextprotocol/ui"

CLASSIFIER_KEYS = (
    "supportsMcpApps",
    "hasUiResources",
    "hasUiToolLinkage",
    "hasValidUiHtml",
    "hasValidCsp",
    "supportsTheming",
    "supportsDisplayModes",
    "hasToolVisibility",
    "hasValidPermissions",
    "hasGracefulDegradation",
)


def find_ui_extension(capabilities: Any) -> Any:
    """Return the UI extension descriptor, top-level first, then under ``experimental``."""
    if not isinstance(capabilities, Mapping):
        return None
    extension = capabilities.get(UI_EXTENSION_KEY)
    # An empty mapping is a declaration; other falsy values defer to experimental
    if isinstance(extension, Mapping) or extension:
        return extension
    experimental = capabilities.get("experimental")
    if isinstance(experimental, Mapping):
        return experimental.get(UI_EXTENSION_KEY)
    return None


def extract_extension_version(capabilities: Any) -> Optional[str]:
    extension = find_ui_extension(capabilities)
    if not extension or not isinstance(extension, Mapping):
        return None
    return extension.get("version") or None


def classify(
    capabilities: Any,
    ui_resources: List[Mapping],
    ui_linked_tools: List[Mapping],
    validated_resources: List[ValidatedResource],
    diagnostics: Iterable[Diagnostic] = (),
) -> Tuple[Dict[str, bool], List[Diagnostic]]:
    """Derive the capability flags.

    Args:
        capabilities:        Server capabilities from the initialize handshake.
        ui_resources:        ``ui://`` resources found during discovery.
        ui_linked_tools:     Tools linked to UI resources.
        validated_resources: Resources that were read with an accepted mime type.
        diagnostics:         Content diagnostics; an unknown-permission finding
                             clears ``hasValidPermissions``.

    Returns:
        ``(flags, diagnostics)`` with exactly the keys in ``CLASSIFIER_KEYS``.
    """
    errors: List[Diagnostic] = []

    supports_mcp_apps = find_ui_extension(capabilities) is not None
    if not supports_mcp_apps:
        errors.append(EXTENSION_NOT_DECLARED())
    elif not extract_extension_version(capabilities):
        errors.append(EXTENSION_VERSION_MISSING())

    has_validated = len(validated_resources) > 0
    has_unknown_permissions = any(d.rule is UNKNOWN_PERMISSIONS for d in diagnostics)

    flags = {
        "supportsMcpApps": supports_mcp_apps,
        "hasUiResources": len(ui_resources) > 0,
        "hasUiToolLinkage": len(ui_linked_tools) > 0,
        "hasValidUiHtml": has_validated,
        # Vacuously false: no resources is not the same as valid resources
        "hasValidCsp": has_validated and all(r.has_csp for r in validated_resources),
        "supportsTheming": any(r.has_theming for r in validated_resources),
        "supportsDisplayModes": any(len(r.display_modes) > 0 for r in validated_resources),
        "hasToolVisibility": any(_declares_visibility(t) for t in ui_linked_tools),
        "hasValidPermissions": has_validated and not has_unknown_permissions,
        "hasGracefulDegradation": any(r.has_graceful_degradation for r in validated_resources),
    }
    return flags, errors


def _declares_visibility(tool: Mapping) -> bool:
    """A non-empty visibility list containing ``app``, or not exactly two entries, or lacking ``model``.

    Loose on purpose: the default pair contains ``app`` and so counts, and
    malformed lists with unknown entries count as well.
    """
    visibility = tool.get("visibility")
    if not isinstance(visibility, list) or not visibility:
        return False
    return "app" in visibility or len(visibility) != 2 or "model" not in visibility
