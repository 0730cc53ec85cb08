"""Central error mapping for the consultant service.

Single source of truth for error codes and the HTTP status each one maps
to. Route and handler modules import from here instead of hardcoding
strings or numbers.
"""

from __future__ import annotations

from typing import Dict

VALIDATION_ERROR = "VALIDATION_ERROR"
INVALID_TEST_TYPE = "INVALID_TEST_TYPE"
INVALID_RESULT_FORMAT = "INVALID_RESULT_FORMAT"
INVALID_FORMAT = "INVALID_FORMAT"
APPOINTMENT_NOT_FOUND = "APPOINTMENT_NOT_FOUND"
USER_NOT_FOUND = "USER_NOT_FOUND"
APPOINTMENT_USER_MISMATCH = "APPOINTMENT_USER_MISMATCH"
DUPLICATE_TEST_RESULT = "DUPLICATE_TEST_RESULT"
TEST_RESULT_NOT_FOUND = "TEST_RESULT_NOT_FOUND"
CENTER_NOT_FOUND = "CENTER_NOT_FOUND"
UNAUTHORIZED = "UNAUTHORIZED"
INTERNAL_ERROR = "INTERNAL_ERROR"
NOT_FOUND = "NOT_FOUND"
HTTP_ERROR = "HTTP_ERROR"

ERROR_STATUS_MAP: Dict[str, int] = {
    VALIDATION_ERROR: 400,
    INVALID_TEST_TYPE: 400,
    INVALID_RESULT_FORMAT: 400,
    INVALID_FORMAT: 400,
    APPOINTMENT_NOT_FOUND: 404,
    USER_NOT_FOUND: 404,
    APPOINTMENT_USER_MISMATCH: 404,
    DUPLICATE_TEST_RESULT: 409,
    TEST_RESULT_NOT_FOUND: 404,
    CENTER_NOT_FOUND: 404,
    UNAUTHORIZED: 401,
    INTERNAL_ERROR: 500,
    # Routing errors; the handler keeps the status the router raised
    NOT_FOUND: 404,
    HTTP_ERROR: 400,
}

# Per-variant overrides; the envelope API reports ownership mismatch as 400
VARIANT_STATUS_OVERRIDES: Dict[str, Dict[str, int]] = {
    "snake": {},
    "envelope": {APPOINTMENT_USER_MISMATCH: 400},
}


def status_for(code: str, variant: str = "snake") -> int:
    overrides = VARIANT_STATUS_OVERRIDES.get(variant, {})
    if code in overrides:
        return overrides[code]
    return ERROR_STATUS_MAP.get(code, 500)


__all__ = [
    "ERROR_STATUS_MAP",
    "VARIANT_STATUS_OVERRIDES",
    "status_for",
    "VALIDATION_ERROR",
    "INVALID_TEST_TYPE",
    "INVALID_RESULT_FORMAT",
    "INVALID_FORMAT",
    "APPOINTMENT_NOT_FOUND",
    "USER_NOT_FOUND",
    "APPOINTMENT_USER_MISMATCH",
    "DUPLICATE_TEST_RESULT",
    "TEST_RESULT_NOT_FOUND",
    "CENTER_NOT_FOUND",
    "UNAUTHORIZED",
    "INTERNAL_ERROR",
    "NOT_FOUND",
    "HTTP_ERROR",
]
