"""Tests for linkprobe.aggregator.

Results are built by hand and recorded out of order (and from several
threads) to check that the finished report is complete and source-ordered.
"""

from __future__ import annotations

import random
import threading

from linkprobe.aggregator import Aggregator
from linkprobe.models import (
    CheckResult,
    FailureReason,
    LinkKind,
    RawLink,
    SkipReason,
    Status,
)


def _result(index: int, status: Status = Status.SUCCESS, **fields) -> CheckResult:
    raw = RawLink(text=f"l{index}", index=index, line=index + 1, column=1, offset=index, kind=LinkKind.BARE_URL)
    return CheckResult(uri=f"http://l{index}.test/", status=status, raw=raw, **fields)


class TestAggregator:
    def test_finalize_restores_source_order(self) -> None:
        agg = Aggregator()
        agg.expect("a.md", 4)
        for i in (3, 0, 2, 1):
            agg.record("a.md", _result(i))
        report = agg.finalize()
        assert [r.raw.index for r in report.results["a.md"]] == [0, 1, 2, 3]

    def test_documents_without_links_are_listed(self) -> None:
        agg = Aggregator()
        agg.expect("empty.md", 0)
        assert agg.finalize().results == {"empty.md": []}

    def test_stats(self) -> None:
        agg = Aggregator()
        agg.expect("a.md", 6)
        agg.record("a.md", _result(0))
        agg.record("a.md", _result(1, redirected=True))
        agg.record("a.md", _result(2, Status.FAILURE, reason=FailureReason.HTTP_STATUS, status_code=404))
        agg.record(
            "a.md",
            _result(3, Status.FAILURE, reason=FailureReason.EXHAUSTED_RETRIES, detail="timeout: read timed out", timed_out=True),
        )
        agg.record("a.md", _result(4, Status.EXCLUDED, reason=SkipReason.EXCLUDED_PATTERN))
        agg.record("a.md", _result(5, Status.SKIPPED, reason=SkipReason.UNSUPPORTED_SCHEME))
        report = agg.finalize()
        stats = report.stats
        assert (stats.total, stats.succeeded, stats.failed) == (6, 2, 2)
        assert (stats.excluded, stats.skipped) == (1, 1)
        assert stats.redirected == 1
        assert stats.timeouts == 1
        assert stats.checked == 4
        assert not report.is_success
        assert [r.raw.index for _, r in report.failures()] == [2, 3]

    def test_count_skipped_as_checked(self) -> None:
        agg = Aggregator(count_skipped_as_checked=True)
        agg.record("a.md", _result(0))
        agg.record("a.md", _result(1, Status.EXCLUDED, reason=SkipReason.PRIVATE_ADDRESS))
        agg.record("a.md", _result(2, Status.SKIPPED, reason=SkipReason.ANCHOR_ONLY))
        assert agg.stats().checked == 3

    def test_report_without_failures_is_success(self) -> None:
        agg = Aggregator()
        agg.record("a.md", _result(0))
        agg.record("a.md", _result(1, Status.SKIPPED, reason=SkipReason.UNSUPPORTED_PATH))
        assert agg.finalize().is_success

    def test_concurrent_records(self) -> None:
        agg = Aggregator()
        indices = list(range(400))
        random.Random(7).shuffle(indices)
        agg.expect("a.md", len(indices))

        def _worker(chunk: list[int]) -> None:
            for i in chunk:
                agg.record("a.md", _result(i))

        threads = [threading.Thread(target=_worker, args=(indices[n::4],)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        report = agg.finalize()
        assert [r.raw.index for r in report.results["a.md"]] == list(range(400))
        assert report.stats.total == 400

    def test_to_dict(self) -> None:
        agg = Aggregator()
        agg.record("a.md", _result(0, Status.FAILURE, reason=FailureReason.NOT_FOUND))
        data = agg.finalize().to_dict()
        assert data["stats"]["failed"] == 1
        entry = data["results"]["a.md"][0]
        assert entry["status"] == "failure"
        assert entry["reason"] == "not_found"
        assert entry["line"] == 1
