"""Tests for the Snapshot model and builders."""

import json
import re

import pytest
from mcp_apps_sanity.classifier import CLASSIFIER_KEYS
from mcp_apps_sanity.snapshot import (
    CATEGORY_KEYS,
    ENTRY_KEYS,
    Snapshot,
    build_empty_snapshot,
    build_snapshot,
)
from mcp_apps_sanity.ui_validator import ValidatedResource


ENDPOINT = "https://example.com/mcp"
TIMESTAMP_RE = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$")


def _validated(uri, csp=None, permissions=(), modes=()):
    v = ValidatedResource(uri, uri.rsplit("/", 1)[-1], "text/html")
    if csp is not None:
        v.has_csp = True
        v.csp_domains.update(csp)
    if permissions:
        v.has_permissions = True
        v.permission_names = list(permissions)
    v.display_modes = list(modes)
    return v


@pytest.fixture
def snapshot():
    ui_resources = [
        {"uri": "ui://app/main", "name": "main", "mimeType": "text/html", "description": None},
        {"uri": "ui://app/chart", "name": "chart", "mimeType": "text/html", "description": None},
        {"uri": "ui://app/broken", "name": "broken", "mimeType": "text/html", "description": None},
    ]
    linked = [
        {"name": "forecast", "resourceUri": "ui://app/main", "visibility": ["model", "app"]},
        {"name": "refresh", "resourceUri": "ui://app/main", "visibility": ["app"]},
    ]
    validated = [
        _validated(
            "ui://app/main",
            csp={"connectDomains": ["https://api.example.com"]},
            permissions=["camera"],
            modes=["inline", "fullscreen"],
        ),
        _validated(
            "ui://app/chart",
            csp={"connectDomains": ["https://api.example.com", "https://charts.example.com"]},
            permissions=["camera", "clipboardWrite"],
            modes=["fullscreen", "pip"],
        ),
    ]
    flags = {key: True for key in CLASSIFIER_KEYS}
    return build_snapshot(
        endpoint=ENDPOINT,
        server_info={
            "serverInfo": {"name": "weather", "version": "1.0.0", "description": ""},
            "protocolVersion": "2025-06-18",
        },
        tools=[{"name": "forecast"}, {"name": "refresh"}],
        resources=ui_resources,
        capabilities={"experimental": {"io.modelcontextprotocol/ui": {"version": "2026-01-26"}}},
        flags=flags,
        ui_resources=ui_resources,
        ui_linked_tools=linked,
        validated_resources=validated,
        latency={"listResources": 80, "readResource": 40},
    )


class TestBuildSnapshot:

    def test_twelve_categories_in_order(self, snapshot):
        assert tuple(snapshot.categories) == CATEGORY_KEYS
        assert len(snapshot.categories) == 12
        assert snapshot.categories["isReachable"] is True
        assert snapshot.categories["supportsMcp"] is True

    def test_entry_keys(self, snapshot):
        assert set(snapshot.entries) == set(ENTRY_KEYS)

    def test_server_fields(self, snapshot):
        entries = snapshot.entries
        assert entries["endpoint"] == ENDPOINT
        assert entries["serverName"] == "weather"
        assert entries["serverVersion"] == "1.0.0"
        assert entries["serverDescription"] is None
        assert entries["protocolVersion"] == "2025-06-18"
        assert entries["extensionVersion"] == "2026-01-26"

    def test_ui_resource_summary_joins_validation(self, snapshot):
        summary = snapshot.entries["uiResources"]
        assert [r["uri"] for r in summary] == ["ui://app/main", "ui://app/chart", "ui://app/broken"]
        assert summary[0]["hasCsp"] is True
        assert summary[0]["hasPermissions"] is True
        assert summary[0]["displayModes"] == ["inline", "fullscreen"]
        assert summary[2] == {
            "uri": "ui://app/broken",
            "name": "broken",
            "mimeType": "text/html",
            "hasCsp": False,
            "hasPermissions": False,
            "displayModes": [],
        }

    def test_counts(self, snapshot):
        entries = snapshot.entries
        assert entries["uiResourceCount"] == 3
        assert entries["uiLinkedToolCount"] == 2
        assert entries["appOnlyToolCount"] == 1

    def test_summaries_are_ordered_unions(self, snapshot):
        entries = snapshot.entries
        assert entries["cspSummary"] == {
            "connectDomains": ["https://api.example.com", "https://charts.example.com"],
            "resourceDomains": [],
            "frameDomains": [],
        }
        assert entries["permissionsSummary"] == ["camera", "clipboardWrite"]
        assert entries["displayModes"] == ["inline", "fullscreen", "pip"]

    def test_latency(self, snapshot):
        assert snapshot.entries["latency"] == {"listResources": 80, "readResource": 40}

    def test_timestamp_format(self, snapshot):
        assert TIMESTAMP_RE.match(snapshot.timestamp)

    def test_json_serializable(self, snapshot):
        data = json.loads(json.dumps(snapshot.to_dict()))
        assert Snapshot.from_dict(data) == snapshot


class TestEmptySnapshot:

    def test_all_flags_false(self):
        snap = build_empty_snapshot(ENDPOINT)
        assert tuple(snap.categories) == CATEGORY_KEYS
        assert not any(snap.categories.values())

    def test_entries(self):
        entries = build_empty_snapshot(ENDPOINT).entries
        assert set(entries) == set(ENTRY_KEYS)
        assert entries["endpoint"] == ENDPOINT
        assert entries["uiResources"] == []
        assert entries["tools"] == []
        assert entries["serverName"] is None
        assert entries["latency"] == {"listResources": None, "readResource": None}
        assert TIMESTAMP_RE.match(entries["timestamp"])


class TestImmutability:

    def test_views_are_read_only(self, snapshot):
        with pytest.raises(TypeError):
            snapshot.categories["isReachable"] = False
        with pytest.raises(TypeError):
            snapshot.entries["endpoint"] = "elsewhere"

    def test_attributes_cannot_be_replaced(self, snapshot):
        with pytest.raises(AttributeError):
            snapshot.categories = {}

    def test_to_dict_is_a_copy(self, snapshot):
        data = snapshot.to_dict()
        data["entries"]["uiResources"].clear()
        data["categories"]["isReachable"] = False
        assert len(snapshot.entries["uiResources"]) == 3
        assert snapshot.categories["isReachable"] is True

    def test_inputs_are_copied(self):
        categories = {key: False for key in CATEGORY_KEYS}
        entries = {"endpoint": ENDPOINT, "tools": [{"name": "a"}]}
        snap = Snapshot(categories, entries)
        entries["tools"].append({"name": "b"})
        categories["isReachable"] = True
        assert snap.entries["tools"] == [{"name": "a"}]
        assert snap.categories["isReachable"] is False


class TestTimestamps:

    def test_non_decreasing(self):
        stamps = [build_empty_snapshot(ENDPOINT).timestamp for _ in range(50)]
        assert stamps == sorted(stamps)
