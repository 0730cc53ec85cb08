"""Test-result identifier minting.

Identifiers follow ``TST-<year>-<sequence>`` with the sequence zero-padded
to at least three digits. Each year's counter is seeded from the highest
sequence already stored for that year and then only incremented under a
lock, so two mints in one process never return the same identifier.

Another process sharing the store keeps its own counter. The store's unique
index on ``test_result_id`` rejects a reused identifier; the writer then
calls `resync` and mints again from the stored maximum.
"""

from __future__ import annotations

import re
import threading
from datetime import datetime, timezone
from typing import Callable, Dict, Optional, Set

from consultant_service.logic.document_store import TEST_RESULTS, DocumentStore

_ID_RE = re.compile(r"^TST-(\d{4})-(\d+)$")


def format_test_result_id(year: int, sequence: int) -> str:
    return f"TST-{year}-{sequence:03d}"


def parse_test_result_id(value: str) -> Optional[tuple[int, int]]:
    match = _ID_RE.fullmatch(value or "")
    if match is None:
        return None
    return int(match.group(1)), int(match.group(2))


class SequentialIdMinter:
    def __init__(
        self,
        store: DocumentStore,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.store = store
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._lock = threading.Lock()
        self._counters: Dict[int, int] = {}
        self._stale: Set[int] = set()

    def _highest_stored(self, year: int) -> int:
        highest = 0
        for record in self.store.find_many(TEST_RESULTS):
            parsed = parse_test_result_id(str(record.get("test_result_id", "")))
            if parsed and parsed[0] == year:
                highest = max(highest, parsed[1])
        return highest

    def mint(self) -> str:
        year = self._clock().year
        with self._lock:
            if year not in self._counters or year in self._stale:
                # Never step back below identifiers already handed out here
                self._counters[year] = max(self._counters.get(year, 0), self._highest_stored(year))
                self._stale.discard(year)
            self._counters[year] += 1
            return format_test_result_id(year, self._counters[year])

    def resync(self) -> None:
        """Re-read the stored maximum on the next mint of each cached year."""
        with self._lock:
            self._stale.update(self._counters)


__all__ = ["SequentialIdMinter", "format_test_result_id", "parse_test_result_id"]
