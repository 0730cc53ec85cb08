"""Submission lifecycle: validate, then persist, one key at a time.

States: RECEIVED -> VALIDATING -> REJECTED | ACCEPTED -> PERSISTED.

Validation and the append run while holding the lock for the submission's
(appointment_id, test_type) pair, so two concurrent submissions for the
same pair cannot both pass the duplicate check. A store with a unique index
backs this up across processes; its violation is reported as a duplicate.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from consultant_service.logic.appointment_directory import AppointmentDirectory
from consultant_service.logic.document_store import RESULT_PAIR_INDEX, TEST_RESULTS, DocumentStore
from consultant_service.logic.errors import DuplicateKeyError, Rejection
from consultant_service.logic.events import TEST_RESULT_CREATED, TEST_RESULT_REJECTED, publish
from consultant_service.logic.keyed_locks import KeyedLocks
from consultant_service.logic.result_writer import ResultWriter
from consultant_service.logic.validation import WriteIntent, duplicate_rejection, validate_submission
from consultant_service.models.submission import Submission
from consultant_service.models.test_result import TestResult

logger = logging.getLogger(__name__)


class SubmissionState(str, Enum):
    RECEIVED = "RECEIVED"
    VALIDATING = "VALIDATING"
    REJECTED = "REJECTED"
    ACCEPTED = "ACCEPTED"
    PERSISTED = "PERSISTED"


@dataclass(frozen=True)
class SubmissionOutcome:
    state: SubmissionState
    test_result: Optional[TestResult] = None
    rejection: Optional[Rejection] = None

    @property
    def accepted(self) -> bool:
        return self.state is SubmissionState.PERSISTED


class SubmissionService:
    def __init__(
        self,
        store: DocumentStore,
        directory: AppointmentDirectory,
        writer: Optional[ResultWriter] = None,
        locks: Optional[KeyedLocks] = None,
    ) -> None:
        self.store = store
        self.directory = directory
        self.writer = writer or ResultWriter(store)
        self.locks = locks or KeyedLocks()

    def _transition(self, state: SubmissionState, request_id: Optional[str], **fields: object) -> None:
        logger.info("submission.state state=%s request_id=%s %s", state.value, request_id, fields or "")

    def _reject(self, rejection: Rejection, request_id: Optional[str]) -> SubmissionOutcome:
        self._transition(SubmissionState.REJECTED, request_id, code=rejection.code)
        publish(TEST_RESULT_REJECTED, {"code": rejection.code, "details": rejection.details})
        return SubmissionOutcome(SubmissionState.REJECTED, rejection=rejection)

    def submit(self, submission: Submission, request_id: Optional[str] = None) -> SubmissionOutcome:
        self._transition(SubmissionState.RECEIVED, request_id)
        key = (str(submission.appointment_id), str(submission.test_type))
        with self.locks.hold(key):
            self._transition(SubmissionState.VALIDATING, request_id)
            outcome: Union[WriteIntent, Rejection] = validate_submission(submission, self.directory, self.store)
            if isinstance(outcome, Rejection):
                return self._reject(outcome, request_id)

            self._transition(SubmissionState.ACCEPTED, request_id)
            try:
                test_result = self.writer.write(outcome)
            except DuplicateKeyError as exc:
                if exc.fields != RESULT_PAIR_INDEX:
                    raise
                existing = self.store.find_one(
                    TEST_RESULTS,
                    {"appointment_id": outcome.appointment_id, "test_type": outcome.test_type.value},
                )
                rejection = duplicate_rejection(outcome.appointment_id, outcome.test_type.value, existing)
                return self._reject(rejection, request_id)

        self._transition(SubmissionState.PERSISTED, request_id, test_result_id=test_result.test_result_id)
        publish(TEST_RESULT_CREATED, {"test_result_id": test_result.test_result_id})
        return SubmissionOutcome(SubmissionState.PERSISTED, test_result=test_result)


__all__ = ["SubmissionService", "SubmissionState", "SubmissionOutcome"]
