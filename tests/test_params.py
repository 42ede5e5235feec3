"""Tests for up-front parameter validation (VAL codes)."""

import pytest
from mcp_apps_sanity.diagnostics import InputValidationError
from mcp_apps_sanity.params import check_compare, check_start, validate_compare, validate_start
from mcp_apps_sanity.snapshot import build_empty_snapshot


def _codes(errors):
    return [e.code for e in errors]


class TestCheckStart:

    def test_valid(self):
        ok, errors = check_start("https://example.com/mcp", 10)
        assert ok
        assert errors == []

    def test_valid_float_timeout(self):
        ok, _ = check_start("http://localhost:3000/mcp", 0.5)
        assert ok

    @pytest.mark.parametrize("endpoint,code", [
        (None, "VAL-001"),
        (42, "VAL-002"),
        ("", "VAL-003"),
        ("   ", "VAL-003"),
        ("not a url", "VAL-004"),
        ("ftp://example.com", "VAL-004"),
        ("https://", "VAL-004"),
    ])
    def test_endpoint_errors(self, endpoint, code):
        ok, errors = check_start(endpoint, 10)
        assert not ok
        assert _codes(errors) == [code]

    @pytest.mark.parametrize("timeout,code", [
        ("10", "VAL-005"),
        (None, "VAL-005"),
        (True, "VAL-005"),
        (0, "VAL-006"),
        (-1, "VAL-006"),
        (float("nan"), "VAL-006"),
    ])
    def test_timeout_errors(self, timeout, code):
        ok, errors = check_start("https://example.com/mcp", timeout)
        assert not ok
        assert _codes(errors) == [code]

    def test_collects_all_errors(self):
        ok, errors = check_start(None, -5)
        assert not ok
        assert _codes(errors) == ["VAL-001", "VAL-006"]

    def test_validate_start_raises_with_joined_message(self):
        with pytest.raises(InputValidationError) as excinfo:
            validate_start("", "soon")
        assert str(excinfo.value) == "VAL-003 endpoint: Must not be empty, VAL-005 timeout: Must be a number"


class TestCheckCompare:

    def test_valid_dicts(self):
        snap = {"categories": {}, "entries": {}}
        ok, errors = check_compare(snap, snap)
        assert ok
        assert errors == []

    def test_valid_snapshot_objects(self):
        snap = build_empty_snapshot("https://example.com/mcp")
        ok, _ = check_compare(snap, snap)
        assert ok

    def test_missing_both(self):
        ok, errors = check_compare(None, None)
        assert not ok
        assert _codes(errors) == ["VAL-010", "VAL-013"]

    def test_not_objects(self):
        ok, errors = check_compare("before", [1, 2])
        assert _codes(errors) == ["VAL-011", "VAL-014"]

    def test_incomplete(self):
        ok, errors = check_compare({"categories": {}}, {"entries": {}, "categories": []})
        assert _codes(errors) == ["VAL-012", "VAL-015"]

    def test_validate_compare_raises(self):
        with pytest.raises(InputValidationError) as excinfo:
            validate_compare({"categories": {}, "entries": {}}, None)
        assert [d.code for d in excinfo.value.diagnostics] == ["VAL-013"]
