"""Validation pipeline for test-result submissions.

`validate_submission` runs the ordered checks below and stops at the first
failure, returning exactly one `Rejection`:

1. required fields present and non-empty      -> VALIDATION_ERROR
2. test type in the enumerated set            -> INVALID_TEST_TYPE
3. result is a JSON object                    -> INVALID_RESULT_FORMAT
4. appointment exists                         -> APPOINTMENT_NOT_FOUND
5. user exists                                -> USER_NOT_FOUND
6. user belongs to the appointment            -> APPOINTMENT_USER_MISMATCH
7. no result yet for (appointment, test type) -> DUPLICATE_TEST_RESULT

When every check passes it returns a `WriteIntent`. The pipeline only reads
from the store; persisting the intent is the result writer's job.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union

from consultant_service.logic import error_mapping as codes
from consultant_service.logic.appointment_directory import AppointmentDirectory
from consultant_service.logic.document_store import TEST_RESULTS, DocumentStore
from consultant_service.logic.errors import Rejection
from consultant_service.models.submission import REQUIRED_FIELDS, Submission, present
from consultant_service.models.test_result import TestType


@dataclass(frozen=True)
class WriteIntent:
    """A submission that passed every check and may now be persisted."""

    user_id: str
    appointment_id: str
    test_type: TestType
    result: Dict[str, Any]
    notes: Optional[str] = None
    performed_at: Optional[str] = None
    extras: Dict[str, Any] = field(default_factory=dict)


Outcome = Union[WriteIntent, Rejection]


def json_type_name(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def check_required_fields(submission: Submission) -> Optional[Rejection]:
    missing = [name for name in REQUIRED_FIELDS if not present(submission.value_of(name))]
    if not missing:
        return None
    return Rejection(
        codes.VALIDATION_ERROR,
        "Faltan campos requeridos",
        {"missing_fields": missing, "required_fields": list(REQUIRED_FIELDS)},
    )


def check_test_type(submission: Submission) -> Optional[Rejection]:
    if isinstance(submission.test_type, str) and submission.test_type in TestType.values():
        return None
    return Rejection(
        codes.INVALID_TEST_TYPE,
        "El tipo de examen proporcionado no es válido",
        {"provided_test_type": submission.test_type, "allowed_types": TestType.values()},
    )


def check_result_shape(submission: Submission) -> Optional[Rejection]:
    if isinstance(submission.result, dict):
        return None
    return Rejection(
        codes.INVALID_RESULT_FORMAT,
        "El campo result debe ser un objeto",
        {"provided_type": json_type_name(submission.result)},
    )


def check_references(submission: Submission, directory: AppointmentDirectory) -> Optional[Rejection]:
    appointment_id = submission.appointment_id
    user_id = submission.user_id

    if not directory.appointment_exists(appointment_id):
        return Rejection(
            codes.APPOINTMENT_NOT_FOUND,
            "La cita con el appointment_id proporcionado no existe",
            {"appointment_id": appointment_id},
        )

    references = directory.user_references(user_id)
    if not references:
        return Rejection(
            codes.USER_NOT_FOUND,
            "El usuario con el user_id proporcionado no existe",
            {"user_id": user_id},
        )

    if not any(ref.appointment_id == appointment_id for ref in references):
        return Rejection(
            codes.APPOINTMENT_USER_MISMATCH,
            "La cita especificada no pertenece al usuario indicado",
            {
                "user_id": user_id,
                "appointment_id": appointment_id,
                "user_appointment_id": references[0].appointment_id,
                "appointment_owner": directory.owner_of(appointment_id),
            },
        )
    return None


def check_duplicate(submission: Submission, store: DocumentStore) -> Optional[Rejection]:
    existing = store.find_one(
        TEST_RESULTS,
        {"appointment_id": submission.appointment_id, "test_type": submission.test_type},
    )
    if existing is None:
        return None
    return duplicate_rejection(submission.appointment_id, submission.test_type, existing)


def duplicate_rejection(appointment_id: str, test_type: str, existing: Optional[Dict[str, Any]]) -> Rejection:
    existing = existing or {}
    return Rejection(
        codes.DUPLICATE_TEST_RESULT,
        "Ya existe un resultado de examen para esta cita y tipo de examen",
        {
            "appointment_id": appointment_id,
            "test_type": test_type,
            "existing_test_id": existing.get("test_result_id"),
            "created_at": existing.get("created_at"),
        },
    )


def validate_submission(
    submission: Submission,
    directory: AppointmentDirectory,
    store: DocumentStore,
) -> Outcome:
    for check in (check_required_fields, check_test_type, check_result_shape):
        rejection = check(submission)
        if rejection is not None:
            return rejection

    rejection = check_references(submission, directory)
    if rejection is not None:
        return rejection

    rejection = check_duplicate(submission, store)
    if rejection is not None:
        return rejection

    notes = str(submission.notes) if present(submission.notes) else None
    performed_at = str(submission.performed_at) if present(submission.performed_at) else None
    return WriteIntent(
        user_id=submission.user_id,
        appointment_id=submission.appointment_id,
        test_type=TestType(submission.test_type),
        result=dict(submission.result),
        notes=notes,
        performed_at=performed_at,
        extras=dict(submission.extras),
    )


__all__ = [
    "WriteIntent",
    "Outcome",
    "validate_submission",
    "duplicate_rejection",
    "json_type_name",
    "check_required_fields",
    "check_test_type",
    "check_result_shape",
    "check_references",
    "check_duplicate",
]
