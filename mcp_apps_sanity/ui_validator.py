"""Validates the content and declared metadata of a single UI resource.

A UI resource is an MCP resource served under the ``ui://`` scheme whose
body is an HTML document rendered by the host as an interactive surface.
``validate_ui_resource()`` checks one resource read result against the
rule groups below and returns a ``ValidatedResource`` plus any diagnostics:

- Mime type (the only early exit: a non-HTML body is not validated further)
- HTML shape (doctype / ``<html`` / ``<body`` presence)
- CSP domain allowlists declared in ``_meta.ui.csp``
- Permissions declared in ``_meta.ui.permissions``
- Display modes declared in ``_meta.ui.displayModes``
- Theming acknowledgment and graceful degradation, sniffed from the HTML

Rule groups are independent: every applicable diagnostic is emitted.
"""

from collections.abc import Mapping
from typing import Any, Dict, List, Optional, Tuple

from .diagnostics import (
    CSP_INSECURE_DOMAIN,
    CSP_WILDCARD,
    HTML_EMPTY,
    HTML_INVALID,
    HTML_MISSING,
    HTML_NOT_STRING,
    NO_CSP,
    NO_DISPLAY_MODES,
    NO_GRACEFUL_DEGRADATION,
    NO_THEMING,
    RESOURCE_READ_FAILED,
    RESOURCE_WRONG_MIME_TYPE,
    SENSITIVE_PERMISSIONS,
    UNKNOWN_DISPLAY_MODES,
    UNKNOWN_PERMISSIONS,
    Diagnostic,
)


ACCEPTED_MIME_TYPES = ("text/html", "text/html;profile=mcp-app")

KNOWN_PERMISSIONS = ("camera", "microphone", "geolocation", "clipboardWrite")
SENSITIVE_PERMISSION_NAMES = ("camera", "microphone")
KNOWN_DISPLAY_MODES = ("inline", "fullscreen", "pip")

CSP_DOMAIN_FIELDS = ("connectDomains", "resourceDomains", "frameDomains")
ALLOWED_DOMAIN_SCHEMES = ("https://", "wss://")
WILDCARD_DOMAINS = ("*", "https://*")

# Lowercase markers; "var(--" is matched case-sensitively
_THEMING_MARKERS = ("color-scheme", "light-dark(", "data-theme")
_DEGRADATION_MARKERS = ("<noscript", "noscript", "fallback")
_HTML_MARKERS = ("<!doctype html", "<html", "<body")


class ValidatedResource:
    """Per-resource outcome of a successful read with an accepted mime type.

    Attributes:
        uri:                     ``ui://`` URI of the resource.
        name:                    Resource name from ``resources/list``.
        mime_type:               Mime type reported by ``resources/read``.
        has_csp:                 A CSP object was declared.
        has_permissions:         A permissions map was declared.
        display_modes:           Declared display modes, verbatim.
        has_theming:             The HTML acknowledges host theming.
        has_graceful_degradation: The HTML carries a no-script fallback.
        csp_domains:             Declared CSP domains per field (for snapshot summaries).
        permission_names:        Declared permission keys (for snapshot summaries).
    """

    def __init__(self, uri: str, name: Optional[str], mime_type: str):
        self.uri = uri
        self.name = name
        self.mime_type = mime_type
        self.has_csp = False
        self.has_permissions = False
        self.display_modes: List[Any] = []
        self.has_theming = False
        self.has_graceful_degradation = False
        self.csp_domains: Dict[str, List[Any]] = {field: [] for field in CSP_DOMAIN_FIELDS}
        self.permission_names: List[str] = []

    def to_dict(self) -> Dict[str, Any]:
        return {
            "uri": self.uri,
            "name": self.name,
            "mimeType": self.mime_type,
            "hasCsp": self.has_csp,
            "hasPermissions": self.has_permissions,
            "displayModes": list(self.display_modes),
            "hasTheming": self.has_theming,
            "hasGracefulDegradation": self.has_graceful_degradation,
        }

    def __repr__(self):
        return f"ValidatedResource({self.uri!r})"


def is_accepted_mime_type(mime_type: Any) -> bool:
    """True for ``text/html`` with or without the ``profile=mcp-app`` parameter."""
    if not isinstance(mime_type, str):
        return False
    normalized = ";".join(part.strip() for part in mime_type.split(";"))
    return normalized in ACCEPTED_MIME_TYPES


def validate_ui_resource(
    uri: str,
    name: Optional[str],
    read_ok: bool,
    content: Any = None,
    mime_type: Any = None,
    meta: Any = None,
) -> Tuple[Optional[ValidatedResource], List[Diagnostic]]:
    """Validate one UI resource read result.

    Args:
        uri:       URI of the UI resource.
        name:      Resource name as listed by the server.
        read_ok:   False when ``resources/read`` failed or returned no contents.
        content:   HTML body (``text`` of the first content item).
        mime_type: Mime type of the first content item.
        meta:      ``_meta`` of the first content item; ``meta["ui"]`` holds the
                   CSP, permissions and display mode declarations.

    Returns:
        ``(validated_resource_or_None, diagnostics)``
    """
    errors: List[Diagnostic] = []

    if not read_ok:
        errors.append(RESOURCE_READ_FAILED(uri=uri))
        return None, errors

    if not is_accepted_mime_type(mime_type):
        errors.append(RESOURCE_WRONG_MIME_TYPE(uri=uri, mime_type=mime_type))
        return None, errors

    ui_meta = meta.get("ui") if isinstance(meta, Mapping) else None
    if not isinstance(ui_meta, Mapping):
        ui_meta = {}

    validated = ValidatedResource(uri, name, mime_type)

    _check_html(uri, content, errors)
    _check_csp(uri, ui_meta, validated, errors)
    _check_permissions(uri, ui_meta, validated, errors)
    _check_display_modes(uri, ui_meta, validated, errors)
    _check_theming(uri, content, validated, errors)
    _check_graceful_degradation(uri, content, validated, errors)

    return validated, errors


# -- Rule groups ---------------------------------------------------------------

def _is_declared(value: Any) -> bool:
    """An empty mapping still declares the section; ``False``, ``""`` and None do not."""
    return isinstance(value, Mapping) or bool(value)


def _check_html(uri: str, content: Any, errors: List[Diagnostic]):
    """Distinguish missing / non-string / blank bodies, then sniff for HTML markers."""
    if content is None:
        errors.append(HTML_MISSING(uri=uri))
        return
    if not isinstance(content, str):
        errors.append(HTML_NOT_STRING(uri=uri))
        return
    if not content.strip():
        errors.append(HTML_EMPTY(uri=uri))
        return

    lower = content.lower()
    if not any(marker in lower for marker in _HTML_MARKERS):
        errors.append(HTML_INVALID(uri=uri))


def _check_csp(uri: str, ui_meta: Mapping, validated: ValidatedResource, errors: List[Diagnostic]):
    """Presence of ``csp`` sets ``has_csp`` regardless of how well-formed it is."""
    csp = ui_meta.get("csp")
    if not _is_declared(csp):
        errors.append(NO_CSP(uri=uri))
        return

    validated.has_csp = True
    if not isinstance(csp, Mapping):
        return

    all_domains = []
    for field in CSP_DOMAIN_FIELDS:
        domains = csp.get(field) or []
        if not isinstance(domains, list):
            domains = [domains]
        validated.csp_domains[field] = list(domains)
        all_domains.extend(domains)

    for domain in all_domains:
        if not isinstance(domain, str) or (
            not domain.startswith(ALLOWED_DOMAIN_SCHEMES) and domain != "self"
        ):
            errors.append(CSP_INSECURE_DOMAIN(uri=uri, domain=domain))

    # Reported once per resource, independently of the scheme check above
    if any(domain in WILDCARD_DOMAINS for domain in all_domains):
        errors.append(CSP_WILDCARD(uri=uri))


def _check_permissions(uri: str, ui_meta: Mapping, validated: ValidatedResource, errors: List[Diagnostic]):
    permissions = ui_meta.get("permissions")
    if not _is_declared(permissions):
        return

    validated.has_permissions = True
    declared = [str(key) for key in permissions] if isinstance(permissions, Mapping) else []
    validated.permission_names = declared

    unknown = [key for key in declared if key not in KNOWN_PERMISSIONS]
    if unknown:
        errors.append(UNKNOWN_PERMISSIONS(uri=uri, permissions=", ".join(unknown)))

    sensitive = [key for key in declared if key in SENSITIVE_PERMISSION_NAMES]
    if sensitive:
        errors.append(SENSITIVE_PERMISSIONS(uri=uri, permissions=", ".join(sensitive)))


def _check_display_modes(uri: str, ui_meta: Mapping, validated: ValidatedResource, errors: List[Diagnostic]):
    modes = ui_meta.get("displayModes")
    if not isinstance(modes, list) or not modes:
        errors.append(NO_DISPLAY_MODES(uri=uri))
        return

    validated.display_modes = list(modes)

    unknown = [mode for mode in modes if mode not in KNOWN_DISPLAY_MODES]
    if unknown:
        errors.append(UNKNOWN_DISPLAY_MODES(uri=uri, modes=", ".join(str(m) for m in unknown)))


def _check_theming(uri: str, content: Any, validated: ValidatedResource, errors: List[Diagnostic]):
    # Missing or non-string bodies were already reported by _check_html
    if not content or not isinstance(content, str):
        return

    lower = content.lower()
    if "var(--" in content or any(marker in lower for marker in _THEMING_MARKERS):
        validated.has_theming = True
    else:
        errors.append(NO_THEMING(uri=uri))


def _check_graceful_degradation(uri: str, content: Any, validated: ValidatedResource, errors: List[Diagnostic]):
    if not content or not isinstance(content, str):
        return

    lower = content.lower()
    if any(marker in lower for marker in _DEGRADATION_MARKERS):
        validated.has_graceful_degradation = True
    else:
        errors.append(NO_GRACEFUL_DEGRADATION(uri=uri))
