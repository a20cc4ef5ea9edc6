"""Collect check results into a per-document, source-ordered report.

Results arrive in completion order from many concurrent checks; ``record`` is
serialised by a lock, and ``finalize`` restores each document's source order
using the raw link index captured at extraction time.
"""

from __future__ import annotations

import logging
import threading

from linkprobe.models import CheckResult, Report, ReportStats, Status

logger = logging.getLogger(__name__)


class Aggregator:
    def __init__(self, count_skipped_as_checked: bool = False) -> None:
        self._count_skipped = count_skipped_as_checked
        self._lock = threading.Lock()
        self._results: dict[str, list[CheckResult]] = {}
        self._expected: dict[str, int] = {}

    def expect(self, document_id: str, count: int) -> None:
        """Register a document and how many results it will produce."""
        with self._lock:
            self._results.setdefault(document_id, [])
            self._expected[document_id] = self._expected.get(document_id, 0) + count

    def record(self, document_id: str, result: CheckResult) -> None:
        with self._lock:
            self._results.setdefault(document_id, []).append(result)

    def stats(self) -> ReportStats:
        with self._lock:
            results = [r for rs in self._results.values() for r in rs]
        stats = ReportStats(total=len(results))
        for result in results:
            if result.status is Status.SUCCESS:
                stats.succeeded += 1
                if result.redirected:
                    stats.redirected += 1
            elif result.status is Status.FAILURE:
                stats.failed += 1
                if result.is_timeout:
                    stats.timeouts += 1
            elif result.status is Status.EXCLUDED:
                stats.excluded += 1
            else:
                stats.skipped += 1
        stats.checked = stats.succeeded + stats.failed
        if self._count_skipped:
            stats.checked += stats.excluded + stats.skipped
        return stats

    def finalize(self) -> Report:
        stats = self.stats()
        with self._lock:
            ordered = {
                doc: sorted(results, key=lambda r: r.raw.index)
                for doc, results in self._results.items()
            }
            for doc, expected in self._expected.items():
                got = len(ordered.get(doc, []))
                if got != expected:
                    logger.warning("%s: expected %d result(s), recorded %d", doc, expected, got)
        return Report(results=ordered, stats=stats)
