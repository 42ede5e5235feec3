"""Closed catalog of coded diagnostics.

Every finding the validator can produce is a ``Rule`` declared in this
module.  A ``Diagnostic`` pairs a rule with the context used to render its
message template.  Internal logic matches diagnostics by rule identity
(``diagnostic.rule is UNKNOWN_PERMISSIONS``); the string code (``UIV-030``)
is only the stable identifier shown to users and stored in reports.

Code families:

- ``VAL-0xx`` input validation failures (raised before any work starts)
- ``CON-0xx`` connectivity and protocol call failures
- ``UIR-0xx`` UI resource read failures
- ``UIV-0xx`` UI extension content and linkage rule violations
- ``CMP-0xx`` cross-snapshot integrity warnings
"""

import re
from typing import Any, Dict, Iterable, List


# Severity constants, mirrored by the report's status markers
FAIL = "fail"
WARN = "warn"

CODE_PATTERN = re.compile(r"^[A-Z]{3}-\d{3}$")


class Rule:
    """One catalog entry: a code, a message template and a severity.

    Attributes:
        code:      Stable external identifier (e.g. ``UIV-020``).
        template:  ``str.format`` template rendered with the diagnostic context.
        severity:  ``FAIL`` or ``WARN``.  Only affects rendering.
    """

    def __init__(self, code: str, template: str, severity: str = FAIL):
        if not CODE_PATTERN.match(code):
            raise ValueError(f"Invalid diagnostic code: {code!r}")
        self.code = code
        self.template = template
        self.severity = severity

    @property
    def family(self) -> str:
        return self.code.split("-", 1)[0]

    def __call__(self, **context: Any) -> "Diagnostic":
        return Diagnostic(self, **context)

    def __repr__(self):
        return f"Rule({self.code!r})"


class Diagnostic:
    """A single coded finding.

    Attributes:
        rule:     The catalog ``Rule`` this finding belongs to.
        context:  Values substituted into the rule's template (``uri``, ``name``...).
        message:  Rendered message, without the code prefix.
    """

    __slots__ = ("rule", "context", "message")

    def __init__(self, rule: Rule, **context: Any):
        object.__setattr__(self, "rule", rule)
        object.__setattr__(self, "context", dict(context))
        object.__setattr__(self, "message", rule.template.format(**context))

    def __setattr__(self, name, value):
        raise AttributeError("Diagnostic is immutable")

    @property
    def code(self) -> str:
        return self.rule.code

    @property
    def severity(self) -> str:
        return self.rule.severity

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "severity": self.severity}

    def __eq__(self, other):
        if not isinstance(other, Diagnostic):
            return NotImplemented
        return self.rule is other.rule and self.message == other.message

    def __hash__(self):
        return hash((self.rule.code, self.message))

    def __str__(self):
        return f"{self.code} {self.message}"

    def __repr__(self):
        return f"Diagnostic({self.code!r}, {self.message!r})"


class InputValidationError(ValueError):
    """Raised when caller-supplied parameters fail up-front validation.

    The exception message joins every VAL diagnostic with ``", "``; the
    diagnostics themselves are kept on ``.diagnostics``.
    """

    def __init__(self, diagnostics: Iterable[Diagnostic]):
        self.diagnostics: List[Diagnostic] = list(diagnostics)
        super().__init__(", ".join(str(d) for d in self.diagnostics))


# ---------------------------------------------------------------------------
# VAL: parameter validation
# ---------------------------------------------------------------------------

ENDPOINT_MISSING = Rule("VAL-001", "endpoint: Missing value")
ENDPOINT_NOT_STRING = Rule("VAL-002", "endpoint: Must be a string")
ENDPOINT_EMPTY = Rule("VAL-003", "endpoint: Must not be empty")
ENDPOINT_INVALID_URL = Rule("VAL-004", "endpoint: Must be a valid http(s) URL")
TIMEOUT_NOT_NUMBER = Rule("VAL-005", "timeout: Must be a number")
TIMEOUT_NOT_POSITIVE = Rule("VAL-006", "timeout: Must be greater than 0")
BEFORE_MISSING = Rule("VAL-010", "before: Missing value")
BEFORE_NOT_OBJECT = Rule("VAL-011", "before: Must be an object")
BEFORE_INCOMPLETE = Rule("VAL-012", "before: Must contain categories and entries")
AFTER_MISSING = Rule("VAL-013", "after: Missing value")
AFTER_NOT_OBJECT = Rule("VAL-014", "after: Must be an object")
AFTER_INCOMPLETE = Rule("VAL-015", "after: Must contain categories and entries")

# ---------------------------------------------------------------------------
# CON: connectivity
# ---------------------------------------------------------------------------

SERVER_UNREACHABLE = Rule("CON-001", "endpoint: Server is not reachable")
HANDSHAKE_FAILED = Rule("CON-004", "mcp: Initialize handshake failed: {error}")
TOOLS_LIST_FAILED = Rule("CON-008", "tools/list: Request failed")
TOOLS_LIST_INVALID = Rule("CON-009", "tools/list: Invalid response format")
RESOURCES_LIST_FAILED = Rule("CON-010", "resources/list: Request failed")

# ---------------------------------------------------------------------------
# UIR: UI resource reads
# ---------------------------------------------------------------------------

RESOURCE_READ_FAILED = Rule("UIR-001", "resources/read {uri}: Resource read failed")
RESOURCE_WRONG_MIME_TYPE = Rule(
    "UIR-002", 'resources/read {uri}: Expected text/html content, got "{mime_type}"'
)

# ---------------------------------------------------------------------------
# UIV: content, linkage and capability rules
# ---------------------------------------------------------------------------

HTML_MISSING = Rule("UIV-010", "{uri}: HTML content is missing")
HTML_NOT_STRING = Rule("UIV-011", "{uri}: HTML content is not a string")
HTML_EMPTY = Rule("UIV-012", "{uri}: HTML content is empty")
HTML_INVALID = Rule(
    "UIV-013", "{uri}: HTML content appears invalid (missing doctype, html, or body tag)"
)
NO_CSP = Rule("UIV-020", "{uri}: No CSP configuration declared")
CSP_INSECURE_DOMAIN = Rule("UIV-021", '{uri}: CSP domain "{domain}" should use https:// or wss://')
CSP_WILDCARD = Rule("UIV-022", "{uri}: CSP contains wildcard domain, allows unrestricted access")
UNKNOWN_PERMISSIONS = Rule("UIV-030", "{uri}: Unknown permissions declared: {permissions}")
SENSITIVE_PERMISSIONS = Rule(
    "UIV-031", "{uri}: Sensitive permissions requested: {permissions}", severity=WARN
)
UNKNOWN_DISPLAY_MODES = Rule("UIV-040", "{uri}: Unknown display modes: {modes}")
NO_DISPLAY_MODES = Rule("UIV-041", "{uri}: No display modes declared", severity=WARN)
NO_THEMING = Rule(
    "UIV-050",
    "{uri}: No theming acknowledgment found (no color-scheme, CSS variables, or data-theme)",
    severity=WARN,
)
MISSING_LINKED_RESOURCE = Rule(
    "UIV-060", 'tool {name}: References non-existent UI resource "{resource_uri}"'
)
INVALID_VISIBILITY = Rule("UIV-061", "tool {name}: Invalid visibility values: {values}")
NO_LINKED_TOOLS = Rule("UIV-062", "tools: No tools linked to UI resources")
UI_META_WITHOUT_RESOURCE = Rule("UIV-063", "{name}: Has UI metadata but no resourceUri")
NO_GRACEFUL_DEGRADATION = Rule(
    "UIV-070",
    "{uri}: No graceful degradation found (no <noscript> or text fallback)",
    severity=WARN,
)
EXTENSION_NOT_DECLARED = Rule(
    "UIV-080",
    "capabilities: MCP Apps extension not declared (missing io.modelcontextprotocol/ui)",
)
EXTENSION_VERSION_MISSING = Rule(
    "UIV-081", "capabilities: Extension version not specified", severity=WARN
)

# ---------------------------------------------------------------------------
# CMP: snapshot integrity
# ---------------------------------------------------------------------------

DIFFERENT_SERVERS = Rule("CMP-001", "compare: Snapshots are from different servers", severity=WARN)
BEFORE_NO_TIMESTAMP = Rule("CMP-002", "compare: Before snapshot has no timestamp", severity=WARN)
AFTER_OLDER = Rule("CMP-003", "compare: After snapshot is older than before", severity=WARN)


CATALOG: Dict[str, Rule] = {
    rule.code: rule
    for rule in globals().copy().values()
    if isinstance(rule, Rule)
}


def get_rule(code: str) -> Rule:
    """Look up a catalog rule by its code.  Raises ``KeyError`` for unknown codes."""
    return CATALOG[code]
