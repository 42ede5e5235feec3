"""Tests for the diagnostic catalog (Rule, Diagnostic, InputValidationError)."""

import pytest
from mcp_apps_sanity.diagnostics import (
    CATALOG,
    CODE_PATTERN,
    CSP_INSECURE_DOMAIN,
    ENDPOINT_MISSING,
    FAIL,
    NO_THEMING,
    TIMEOUT_NOT_NUMBER,
    UNKNOWN_PERMISSIONS,
    WARN,
    Diagnostic,
    InputValidationError,
    Rule,
    get_rule,
)


class TestCatalog:

    def test_every_code_is_well_formed(self):
        for code, rule in CATALOG.items():
            assert CODE_PATTERN.match(code)
            assert rule.code == code

    def test_families(self):
        families = {rule.family for rule in CATALOG.values()}
        assert families == {"VAL", "CON", "UIR", "UIV", "CMP"}

    def test_codes_are_unique(self):
        codes = [rule.code for rule in CATALOG.values()]
        assert len(codes) == len(set(codes))

    def test_get_rule(self):
        assert get_rule("UIV-030") is UNKNOWN_PERMISSIONS

    def test_get_rule_unknown(self):
        with pytest.raises(KeyError):
            get_rule("UIV-999")

    def test_warn_severities(self):
        warn_codes = {rule.code for rule in CATALOG.values() if rule.severity == WARN}
        assert warn_codes == {
            "UIV-031", "UIV-041", "UIV-050", "UIV-070", "UIV-081",
            "CMP-001", "CMP-002", "CMP-003",
        }

    def test_invalid_code_rejected(self):
        with pytest.raises(ValueError):
            Rule("uiv-1", "bad")


class TestDiagnostic:

    def test_message_rendering(self):
        d = CSP_INSECURE_DOMAIN(uri="ui://app/main", domain="http://cdn.example.com")
        assert d.code == "UIV-021"
        assert d.severity == FAIL
        assert d.message == 'ui://app/main: CSP domain "http://cdn.example.com" should use https:// or wss://'
        assert str(d) == f"UIV-021 {d.message}"

    def test_to_dict(self):
        d = NO_THEMING(uri="ui://app/main")
        assert d.to_dict() == {"code": "UIV-050", "message": d.message, "severity": WARN}

    def test_immutable(self):
        d = ENDPOINT_MISSING()
        with pytest.raises(AttributeError):
            d.message = "changed"

    def test_equality_by_rule_and_message(self):
        assert UNKNOWN_PERMISSIONS(uri="a", permissions="x") == UNKNOWN_PERMISSIONS(uri="a", permissions="x")
        assert UNKNOWN_PERMISSIONS(uri="a", permissions="x") != UNKNOWN_PERMISSIONS(uri="b", permissions="x")
        assert len({ENDPOINT_MISSING(), ENDPOINT_MISSING()}) == 1

    def test_rule_identity(self):
        d = UNKNOWN_PERMISSIONS(uri="a", permissions="bluetooth")
        assert isinstance(d, Diagnostic)
        assert d.rule is UNKNOWN_PERMISSIONS


class TestInputValidationError:

    def test_joins_messages(self):
        err = InputValidationError([ENDPOINT_MISSING(), TIMEOUT_NOT_NUMBER()])
        assert str(err) == "VAL-001 endpoint: Missing value, VAL-005 timeout: Must be a number"
        assert [d.code for d in err.diagnostics] == ["VAL-001", "VAL-005"]

    def test_is_value_error(self):
        assert issubclass(InputValidationError, ValueError)
