"""Persist validated submissions as TestResult records."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from consultant_service.logic.document_store import RESULT_ID_INDEX, TEST_RESULTS, DocumentStore
from consultant_service.logic.errors import DuplicateKeyError
from consultant_service.logic.id_minting import SequentialIdMinter
from consultant_service.logic.validation import WriteIntent
from consultant_service.models.test_result import STATUS_COMPLETED, TestResult

logger = logging.getLogger(__name__)

MAX_MINT_ATTEMPTS = 5


def utc_timestamp(moment: Optional[datetime] = None) -> str:
    """Return an RFC3339 UTC timestamp with millisecond precision and 'Z'."""
    moment = moment or datetime.now(timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class ResultWriter:
    def __init__(
        self,
        store: DocumentStore,
        minter: Optional[SequentialIdMinter] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.store = store
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self.minter = minter or SequentialIdMinter(store, clock=self._clock)

    def build(self, intent: WriteIntent) -> TestResult:
        timestamp = utc_timestamp(self._clock())
        test_result_id = self.minter.mint()
        return TestResult(
            id=test_result_id,
            test_result_id=test_result_id,
            user_id=intent.user_id,
            appointment_id=intent.appointment_id,
            test_type=intent.test_type,
            result=intent.result,
            status=STATUS_COMPLETED,
            notes=intent.notes,
            performed_at=intent.performed_at or timestamp,
            created_at=timestamp,
            updated_at=timestamp,
            **intent.extras,
        )

    def write(self, intent: WriteIntent) -> TestResult:
        """Mint an identifier and append exactly one record.

        Raises `DuplicateKeyError` when the store already holds a result for
        the same appointment and test type; nothing is written in that case.
        An identifier already taken by another writer on the same store is
        re-minted from the stored maximum, up to `MAX_MINT_ATTEMPTS` times.
        """
        attempt = 1
        while True:
            test_result = self.build(intent)
            try:
                self.store.append(TEST_RESULTS, test_result.to_record())
                break
            except DuplicateKeyError as exc:
                if exc.fields != RESULT_ID_INDEX or attempt >= MAX_MINT_ATTEMPTS:
                    raise
                logger.warning(
                    "result_writer.id_taken test_result_id=%s attempt=%d",
                    test_result.test_result_id,
                    attempt,
                )
                self.minter.resync()
                attempt += 1
        logger.info(
            "result_writer.appended test_result_id=%s appointment_id=%s test_type=%s",
            test_result.test_result_id,
            test_result.appointment_id,
            test_result.test_type.value,
        )
        return test_result


__all__ = ["ResultWriter", "MAX_MINT_ATTEMPTS", "utc_timestamp"]
