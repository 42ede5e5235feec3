"""Structural diff between two snapshots.

``diff_snapshots()`` runs a non-fatal integrity check (same endpoint,
timestamps present and ordered) and then compares the snapshots section by
section:

- ``server``         scalar server metadata fields
- ``uiResources``    added / removed / modified, keyed by ``uri``
- ``uiLinkedTools``  added / removed / modified, keyed by ``name``
- ``csp``            domain lists, compared as ordered sequences
- ``permissions``    added / removed, set semantics
- ``latency``        changed values with ``delta = after - before``
- ``categories``     changed capability flags

Inputs are never mutated.
"""

from collections.abc import Mapping
from typing import Any, Dict, List, Tuple

from .diagnostics import AFTER_OLDER, BEFORE_NO_TIMESTAMP, DIFFERENT_SERVERS, Diagnostic
from .snapshot import LATENCY_FIELDS, Snapshot
from .ui_validator import CSP_DOMAIN_FIELDS


SERVER_FIELDS = ("serverName", "serverVersion", "serverDescription", "protocolVersion", "extensionVersion")
UI_RESOURCE_FIELDS = ("hasCsp", "hasPermissions", "displayModes")
UI_LINKED_TOOL_FIELDS = ("resourceUri", "visibility")

DIFF_SECTIONS = ("server", "uiResources", "uiLinkedTools", "csp", "permissions", "latency", "categories")


def diff_snapshots(before: Any, after: Any) -> Tuple[List[Diagnostic], bool, Dict[str, Any]]:
    """Compare two snapshots.

    Args:
        before: The earlier ``Snapshot`` (or its ``to_dict()`` form).
        after:  The later ``Snapshot`` (or its ``to_dict()`` form).

    Returns:
        ``(integrity_diagnostics, has_changes, diff)``
    """
    before = _as_mapping(before)
    after = _as_mapping(after)
    before_entries = before["entries"]
    after_entries = after["entries"]

    diagnostics = check_integrity(before_entries, after_entries)

    diff = {
        "server": _diff_server(before_entries, after_entries),
        "uiResources": _diff_keyed(
            _list_section(before_entries, "uiResources"),
            _list_section(after_entries, "uiResources"),
            key="uri",
            fields=UI_RESOURCE_FIELDS,
        ),
        "uiLinkedTools": _diff_keyed(
            _list_section(before_entries, "uiLinkedTools"),
            _list_section(after_entries, "uiLinkedTools"),
            key="name",
            fields=UI_LINKED_TOOL_FIELDS,
        ),
        "csp": _diff_csp(_mapping_section(before_entries, "cspSummary"), _mapping_section(after_entries, "cspSummary")),
        "permissions": _diff_set(
            _list_section(before_entries, "permissionsSummary"),
            _list_section(after_entries, "permissionsSummary"),
        ),
        "latency": _diff_latency(_mapping_section(before_entries, "latency"), _mapping_section(after_entries, "latency")),
        "categories": _diff_categories(before["categories"], after["categories"]),
    }
    return diagnostics, has_changes(diff), diff


def check_integrity(before_entries: Mapping, after_entries: Mapping) -> List[Diagnostic]:
    """Warn about snapshot pairs whose comparison may be meaningless.  Never fatal."""
    diagnostics: List[Diagnostic] = []

    if before_entries.get("endpoint") != after_entries.get("endpoint"):
        diagnostics.append(DIFFERENT_SERVERS())

    before_ts = before_entries.get("timestamp")
    after_ts = after_entries.get("timestamp")
    if not before_ts:
        diagnostics.append(BEFORE_NO_TIMESTAMP())
    # ISO-8601 UTC stamps order lexicographically
    if before_ts and after_ts and str(after_ts) < str(before_ts):
        diagnostics.append(AFTER_OLDER())

    return diagnostics


def has_changes(diff: Mapping) -> bool:
    """True iff any section of ``diff`` holds at least one entry."""
    for section in diff.values():
        for bucket in section.values():
            if bucket:
                return True
    return False


# -- Sections ------------------------------------------------------------------

def _diff_server(before: Mapping, after: Mapping) -> Dict[str, Any]:
    changed = {}
    for field in SERVER_FIELDS:
        before_val = before.get(field) or None
        after_val = after.get(field) or None
        if before_val != after_val:
            changed[field] = {"before": before_val, "after": after_val}
    return {"changed": changed}


def _diff_keyed(before: List[Mapping], after: List[Mapping], key: str, fields: Tuple[str, ...]) -> Dict[str, Any]:
    """Added / removed / modified items of two lists keyed by ``key``.

    Added keys follow ``after`` order, removed keys follow ``before`` order.
    When a key repeats, its first item is used.
    """
    before_index = _index_by(before, key)
    after_index = _index_by(after, key)

    added = [k for k in after_index if k not in before_index]
    removed = [k for k in before_index if k not in after_index]

    modified = []
    for k, after_item in after_index.items():
        if k not in before_index:
            continue
        before_item = before_index[k]
        changes = []
        for field in fields:
            before_val = before_item.get(field)
            after_val = after_item.get(field)
            if not _same_value(before_val, after_val):
                changes.append({"field": field, "before": before_val, "after": after_val})
        if changes:
            modified.append({key: k, "changes": changes})

    return {"added": added, "removed": removed, "modified": modified}


def _diff_csp(before: Mapping, after: Mapping) -> Dict[str, Any]:
    changed = {}
    for field in CSP_DOMAIN_FIELDS:
        before_val = _as_list(before.get(field))
        after_val = _as_list(after.get(field))
        if not _same_sequence(before_val, after_val):
            changed[field] = {"before": before_val, "after": after_val}
    return {"changed": changed}


def _diff_set(before: List[Any], after: List[Any]) -> Dict[str, Any]:
    return {
        "added": [item for item in after if item not in before],
        "removed": [item for item in before if item not in after],
    }


def _diff_latency(before: Mapping, after: Mapping) -> Dict[str, Any]:
    changed = {}
    for field in LATENCY_FIELDS:
        before_val = before.get(field)
        after_val = after.get(field)
        if not _is_number(before_val) or not _is_number(after_val):
            continue
        if before_val != after_val:
            changed[field] = {"before": before_val, "after": after_val, "delta": after_val - before_val}
    return {"changed": changed}


def _diff_categories(before: Mapping, after: Mapping) -> Dict[str, Any]:
    changed = {}
    for key in before:
        if before[key] != after.get(key):
            changed[key] = {"before": before[key], "after": after.get(key)}
    return {"changed": changed}


# -- Equality helpers ----------------------------------------------------------

def _same_sequence(a: Any, b: Any) -> bool:
    """Ordered element-wise equality for list fields (order matters)."""
    if not isinstance(a, (list, tuple)) or not isinstance(b, (list, tuple)):
        return _same_scalar(a, b)
    if len(a) != len(b):
        return False
    return all(_same_value(x, y) for x, y in zip(a, b))


def _same_scalar(a: Any, b: Any) -> bool:
    # True == 1 in Python; a flag flipping to a count is still a change
    if isinstance(a, bool) or isinstance(b, bool):
        return type(a) is type(b) and a == b
    return a == b


def _same_value(a: Any, b: Any) -> bool:
    if isinstance(a, (list, tuple)) or isinstance(b, (list, tuple)):
        return _same_sequence(a, b)
    return _same_scalar(a, b)


def _index_by(items: List[Mapping], key: str) -> Dict[Any, Mapping]:
    index: Dict[Any, Mapping] = {}
    for item in items:
        # Items without a string key cannot be matched across snapshots
        if isinstance(item, Mapping) and isinstance(item.get(key), str):
            index.setdefault(item[key], item)
    return index


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _as_list(value: Any) -> List[Any]:
    return list(value) if isinstance(value, (list, tuple)) else []


# Shape validation stops at categories / entries; malformed sections compare as empty
def _list_section(entries: Mapping, key: str) -> List[Any]:
    return _as_list(entries.get(key))


def _mapping_section(entries: Mapping, key: str) -> Mapping:
    value = entries.get(key)
    return value if isinstance(value, Mapping) else {}


def _as_mapping(snapshot: Any) -> Mapping:
    if isinstance(snapshot, Snapshot):
        return snapshot.to_dict()
    return snapshot
