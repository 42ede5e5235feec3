"""Formats validation results and snapshot diffs for the terminal or as JSON.

Two output modes are supported:

- **Terminal**: ANSI-colored output with the capability flags, the coded
  diagnostics, a summary line and a prioritised fix summary when failures
  are present.
- **JSON**: the result's ``to_dict()`` plus ``summary`` and ``issues`` keys,
  suitable for CI pipelines and for saving as a snapshot.
"""

import json
import sys
from typing import Any, Dict, List, Tuple

from ..diagnostics import FAIL, WARN, Diagnostic
from .runner import CompareResult, ValidationResult


# ---------------------------------------------------------------------------
# Known issue patterns
# Each entry: (priority, title, codes, rationale, fix)
#
# codes:      diagnostic codes that belong to this root cause
# rationale:  one sentence explaining why this matters to a host integrator
# fix:        one sentence describing the corrective action
# ---------------------------------------------------------------------------
_KNOWN_ISSUES: List[Tuple[str, str, Tuple[str, ...], str, str]] = [
    (
        "P1",
        "Server not reachable or MCP handshake failed",
        ("CON-001", "CON-004"),
        "Nothing else can be validated until a session is established; every "
        "capability flag is recorded as false.",
        "Check the endpoint URL, transport (Streamable HTTP or SSE) and network access",
    ),
    (
        "P2",
        "MCP Apps extension not declared",
        ("UIV-080",),
        "Hosts only render UI resources for servers that advertise "
        "io.modelcontextprotocol/ui during initialize.",
        "Declare io.modelcontextprotocol/ui (with a version) in the server capabilities",
    ),
    (
        "P3",
        "UI resources cannot be read as HTML",
        ("UIR-001", "UIR-002", "UIV-010", "UIV-011", "UIV-012", "UIV-013"),
        "A host cannot render a ui:// resource whose read fails or whose body is "
        "not an HTML document.",
        "Serve ui:// resources as text/html;profile=mcp-app with a complete HTML document",
    ),
    (
        "P4",
        "Broken tool to UI resource links",
        ("UIV-060", "UIV-061", "UIV-062", "UIV-063"),
        "Tools pointing at missing resources or declaring invalid visibility render "
        "nothing, or render in the wrong context.",
        "Point _meta.ui.resourceUri at a listed ui:// resource and use only model/app visibility",
    ),
    (
        "P5",
        "Missing or unsafe content security policy",
        ("UIV-020", "UIV-021", "UIV-022"),
        "Without a CSP, or with wildcard and plain-http domains, the sandboxed UI "
        "can reach arbitrary origins.",
        "Declare _meta.ui.csp with explicit https:// or wss:// domains only",
    ),
    (
        "P6",
        "Unknown permissions or display modes",
        ("UIV-030", "UIV-040"),
        "Hosts ignore or reject declarations they do not understand.",
        "Restrict permissions to camera, microphone, geolocation, clipboardWrite "
        "and display modes to inline, fullscreen, pip",
    ),
    (
        "P7",
        "Tools or resources could not be listed",
        ("CON-008", "CON-009", "CON-010"),
        "Discovery gaps make every downstream flag unreliable.",
        "Make tools/list and resources/list succeed and return arrays",
    ),
]


def _colorize(text: str, color: str) -> str:
    """Apply ANSI color codes.  Returns plain text when stdout is not a TTY."""
    colors = {
        "red": "\033[91m",
        "green": "\033[92m",
        "yellow": "\033[93m",
        "cyan": "\033[96m",
        "bold": "\033[1m",
        "dim": "\033[2m",
        "reset": "\033[0m",
    }
    if not sys.stdout.isatty():
        return text
    return f"{colors.get(color, '')}{text}{colors['reset']}"


# Maps diagnostic severity to (display label, ANSI color)
_SEVERITY_SYMBOLS = {
    FAIL: ("FAIL", "red"),
    WARN: ("WARN", "dim"),
}


def _terminal_wrap_issue_list(message: str, indent: str = "         ") -> str:
    """Insert terminal-friendly line breaks between comma-delimited values."""
    return message.replace(", ", f",\n{indent}") if len(message) > 100 else message


def build_fix_summary(messages: List[Diagnostic]) -> List[Dict[str, Any]]:
    """Derive a prioritised list of distinct issues from FAIL diagnostics.

    Each entry contains priority label, title, rationale, fix hint and the
    number of diagnostics it accounts for.  WARN diagnostics never appear.
    """
    failures = [m for m in messages if m.severity == FAIL]
    issues = []
    matched_ids: set = set()
    for priority, title, codes, rationale, fix in _KNOWN_ISSUES:
        affected = [m for m in failures if m.code in codes]
        if affected:
            matched_ids.update(id(m) for m in affected)
            issues.append({
                "priority": priority,
                "title": title,
                "rationale": rationale,
                "fix": fix,
                "affected": len(affected),
            })

    # Catch-all: surface failures that didn't match any known pattern
    unmatched = [m for m in failures if id(m) not in matched_ids]
    if unmatched:
        issues.append({
            "priority": "?",
            "title": f"{len(unmatched)} finding(s) not matched to a known root cause",
            "rationale": "These findings did not match any known issue pattern and require individual investigation.",
            "fix": "Review the individual diagnostics above for specific error messages.",
            "affected": len(unmatched),
        })

    return issues


def _summary(messages: List[Diagnostic], categories) -> Dict[str, int]:
    return {
        "flagsPassed": sum(1 for value in categories.values() if value),
        "flagsTotal": len(categories),
        "failures": sum(1 for m in messages if m.severity == FAIL),
        "warnings": sum(1 for m in messages if m.severity == WARN),
    }


# -- Validation results --------------------------------------------------------

def print_results(result: ValidationResult, json_output: bool = False, version: str = ""):
    """Print a validation result in terminal or JSON format."""
    if json_output:
        _print_json(result, version=version)
    else:
        _print_terminal(result, version=version)


def _print_terminal(result: ValidationResult, version: str = ""):
    entries = result.entries
    categories = result.categories
    summary = _summary(result.messages, categories)

    print()
    print(_colorize("MCP Apps Conformance Probe", "bold"))
    print(_colorize("=" * 50, "dim"))
    meta_parts = []
    if version:
        meta_parts.append(f"mcp-apps-sanity {version}")
    meta_parts.append(str(entries.get("endpoint")))
    if entries.get("timestamp"):
        meta_parts.append(entries["timestamp"])
    print(_colorize("  " + "  |  ".join(meta_parts), "dim"))

    server_parts = [
        str(entries[key]) for key in ("serverName", "serverVersion", "protocolVersion") if entries.get(key)
    ]
    if server_parts:
        print(_colorize("  server: " + " ".join(server_parts), "dim"))

    print()
    print(_colorize("  Categories", "bold"))
    print(_colorize("  " + "-" * 40, "dim"))
    for key, value in categories.items():
        label, color = ("PASS", "bold") if value else ("FAIL", "red")
        print(f"  [{_colorize(label, color)}] {key}")

    if result.messages:
        print()
        print(_colorize("  Diagnostics", "bold"))
        print(_colorize("  " + "-" * 40, "dim"))
        for message in result.messages:
            symbol, color = _SEVERITY_SYMBOLS.get(message.severity, ("??? ", "dim"))
            print(f"  [{_colorize(symbol, color)}] {message.code}")
            print(f"         {_colorize(_terminal_wrap_issue_list(message.message), 'dim')}")

    latency = entries.get("latency") or {}
    latency_parts = [f"{key} {value} ms" for key, value in latency.items() if value is not None]
    if latency_parts:
        print()
        print(_colorize("  latency: " + ", ".join(latency_parts), "dim"))

    # Summary footer
    print()
    print(_colorize("=" * 50, "dim"))
    summary_parts = [_colorize(f"{summary['flagsPassed']}/{summary['flagsTotal']} capabilities", "bold")]
    if summary["failures"]:
        summary_parts.append(_colorize(f"{summary['failures']} failures", "red"))
    if summary["warnings"]:
        summary_parts.append(_colorize(f"{summary['warnings']} warnings", "dim"))
    print("  " + ", ".join(summary_parts))

    # Fix summary, only shown when there are failures
    issues = build_fix_summary(result.messages)
    if issues:
        print()
        print(_colorize("  Fix Summary", "bold"))
        print(_colorize("  " + "-" * 40, "dim"))
        for issue in issues:
            n = issue["affected"]
            label = "finding" if n == 1 else "findings"
            print(
                f"  [{_colorize(issue['priority'], 'red')}] "
                f"Trouble: {issue['title']} "
                f"{_colorize(f'({n} {label})', 'dim')}"
            )
            print(f"       Fix: {_colorize(issue['fix'], 'dim')}")
            print(f"       Rationale: {_colorize(issue['rationale'], 'dim')}")

    # Verdict
    print()
    print(_colorize("  " + "-" * 40, "dim"))
    if result.status:
        print(_colorize("  Result: No diagnostics.", "bold"))
    elif not summary["failures"]:
        print(_colorize(f"  Result: {summary['warnings']} warning(s), no failures.", "dim"))
    else:
        known = [i for i in issues if i["priority"] != "?"]
        first = known[0]["priority"] if known else None
        resolve = f" Resolve {first} first." if first else ""
        print(_colorize(f"  Result: {summary['failures']} failure(s).{resolve}", "dim"))

    print()


def _print_json(result: ValidationResult, version: str = ""):
    output = {
        "mcp_apps_sanity_version": version,
        **result.to_dict(),
        "summary": _summary(result.messages, result.categories),
        "issues": build_fix_summary(result.messages),
    }
    print(json.dumps(output, indent=2))


# -- Snapshot diffs ------------------------------------------------------------

def print_diff(result: CompareResult, json_output: bool = False):
    """Print a snapshot comparison in terminal or JSON format."""
    if json_output:
        print(json.dumps(result.to_dict(), indent=2))
        return

    print()
    print(_colorize("MCP Apps Snapshot Diff", "bold"))
    print(_colorize("=" * 50, "dim"))

    for message in result.messages:
        print(f"  [{_colorize('WARN', 'dim')}] {message}")

    for section, body in result.diff.items():
        lines = list(_diff_lines(body))
        if not lines:
            continue
        print()
        print(_colorize(f"  {section}", "bold"))
        print(_colorize("  " + "-" * 40, "dim"))
        for line in lines:
            print(f"    {line}")

    print()
    print(_colorize("  " + "-" * 40, "dim"))
    if result.has_changes:
        print(_colorize("  Result: Snapshots differ.", "bold"))
    else:
        print(_colorize("  Result: No changes.", "bold"))
    print()


def _diff_lines(body: Dict[str, Any]):
    for item in body.get("added", []):
        yield f"{_colorize('+', 'green')} {item}"
    for item in body.get("removed", []):
        yield f"{_colorize('-', 'red')} {item}"
    for item in body.get("modified", []):
        key = item.get("uri", item.get("name"))
        for change in item["changes"]:
            yield f"{_colorize('~', 'yellow')} {key} {change['field']}: {change['before']!r} -> {change['after']!r}"
    for field, change in body.get("changed", {}).items():
        delta = f" (delta {change['delta']:+})" if "delta" in change else ""
        yield f"{_colorize('~', 'yellow')} {field}: {change['before']!r} -> {change['after']!r}{delta}"
