"""Up-front validation of caller-supplied parameters.

Each ``check_*`` function returns ``(is_valid, diagnostics)``; the
``validate_*`` wrappers raise ``InputValidationError`` so that no network
call or snapshot work starts with malformed input.
"""

import math
from collections.abc import Mapping
from typing import Any, List, Tuple
from urllib.parse import urlparse

from .diagnostics import (
    AFTER_INCOMPLETE,
    AFTER_MISSING,
    AFTER_NOT_OBJECT,
    BEFORE_INCOMPLETE,
    BEFORE_MISSING,
    BEFORE_NOT_OBJECT,
    ENDPOINT_EMPTY,
    ENDPOINT_INVALID_URL,
    ENDPOINT_MISSING,
    ENDPOINT_NOT_STRING,
    TIMEOUT_NOT_NUMBER,
    TIMEOUT_NOT_POSITIVE,
    Diagnostic,
    InputValidationError,
)
from .snapshot import Snapshot


def check_start(endpoint: Any, timeout: Any) -> Tuple[bool, List[Diagnostic]]:
    """Validate ``run_validation`` arguments (VAL-001 to VAL-006)."""
    errors: List[Diagnostic] = []

    if endpoint is None:
        errors.append(ENDPOINT_MISSING())
    elif not isinstance(endpoint, str):
        errors.append(ENDPOINT_NOT_STRING())
    elif not endpoint.strip():
        errors.append(ENDPOINT_EMPTY())
    elif not _is_http_url(endpoint.strip()):
        errors.append(ENDPOINT_INVALID_URL())

    # bool is an int subclass but never a meaningful timeout
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)):
        errors.append(TIMEOUT_NOT_NUMBER())
    elif math.isnan(timeout) or timeout <= 0:
        errors.append(TIMEOUT_NOT_POSITIVE())

    return len(errors) == 0, errors


def check_compare(before: Any, after: Any) -> Tuple[bool, List[Diagnostic]]:
    """Validate ``compare_snapshots`` arguments (VAL-010 to VAL-015)."""
    errors: List[Diagnostic] = []
    _check_snapshot_shape(before, errors, BEFORE_MISSING, BEFORE_NOT_OBJECT, BEFORE_INCOMPLETE)
    _check_snapshot_shape(after, errors, AFTER_MISSING, AFTER_NOT_OBJECT, AFTER_INCOMPLETE)
    return len(errors) == 0, errors


def validate_start(endpoint: Any, timeout: Any):
    ok, errors = check_start(endpoint, timeout)
    if not ok:
        raise InputValidationError(errors)


def validate_compare(before: Any, after: Any):
    ok, errors = check_compare(before, after)
    if not ok:
        raise InputValidationError(errors)


def _check_snapshot_shape(value, errors, missing, not_object, incomplete):
    if isinstance(value, Snapshot):
        value = value.to_dict()

    if value is None:
        errors.append(missing())
    elif not isinstance(value, Mapping):
        errors.append(not_object())
    elif not isinstance(value.get("categories"), Mapping) or not isinstance(value.get("entries"), Mapping):
        errors.append(incomplete())


def _is_http_url(value: str) -> bool:
    try:
        parsed = urlparse(value)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)
