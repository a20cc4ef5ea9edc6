"""Bounded concurrent dispatch of targets to the checker.

A fixed number of asyncio workers pull jobs from a queue, so no more than
``max_concurrency`` checks are ever outstanding.  An optional per-host gate
narrows that further for individual hosts.  A global timeout cancels every
outstanding check; each job that did not finish is reported as a cancelled
failure so the report stays complete.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from linkprobe.checker import Checker
from linkprobe.models import CheckResult, FailureReason, Status, Target

logger = logging.getLogger(__name__)

ResultCallback = Callable[["Job", CheckResult], None]


@dataclass(frozen=True)
class Job:
    document_id: str
    target: Target


class Orchestrator:
    def __init__(
        self,
        checker: Checker,
        max_concurrency: int = 32,
        max_per_host: int = 0,
        total_timeout: Optional[float] = None,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self._checker = checker
        self._max_concurrency = max_concurrency
        self._max_per_host = max_per_host
        self._total_timeout = total_timeout
        self._host_gates: dict[str, asyncio.Semaphore] = {}
        self.in_flight = 0
        self.peak_in_flight = 0

    def _host_gate(self, host: str):
        if self._max_per_host <= 0 or not host:
            return contextlib.nullcontext()
        gate = self._host_gates.get(host)
        if gate is None:
            gate = self._host_gates[host] = asyncio.Semaphore(self._max_per_host)
        return gate

    async def _check_one(self, job: Job) -> CheckResult:
        async with self._host_gate(job.target.host):
            self.in_flight += 1
            self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
            try:
                return await self._checker.check(job.target)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                logger.exception("unexpected error while checking %s", job.target.uri)
                return CheckResult(
                    uri=job.target.uri,
                    status=Status.FAILURE,
                    raw=job.target.raw,
                    reason=FailureReason.TRANSPORT,
                    detail=f"internal error: {exc}",
                )
            finally:
                self.in_flight -= 1

    async def run(
        self, jobs: Sequence[Job], on_result: Optional[ResultCallback] = None
    ) -> list[CheckResult]:
        """Check every job; the returned list is aligned with *jobs*."""
        results: list[Optional[CheckResult]] = [None] * len(jobs)
        queue: asyncio.Queue[int] = asyncio.Queue()
        for i in range(len(jobs)):
            queue.put_nowait(i)

        def _deliver(i: int, result: CheckResult) -> None:
            results[i] = result
            if on_result is not None:
                on_result(jobs[i], result)

        async def _worker() -> None:
            while True:
                try:
                    i = queue.get_nowait()
                except asyncio.QueueEmpty:
                    return
                _deliver(i, await self._check_one(jobs[i]))

        workers = [
            asyncio.create_task(_worker())
            for _ in range(min(self._max_concurrency, len(jobs)))
        ]
        if workers:
            logger.info("checking %d target(s) with %d worker(s)", len(jobs), len(workers))
            done, pending = await asyncio.wait(workers, timeout=self._total_timeout)
            if pending:
                logger.warning(
                    "global timeout of %.1fs reached; cancelling outstanding checks",
                    self._total_timeout,
                )
                for task in pending:
                    task.cancel()
                await asyncio.gather(*pending, return_exceptions=True)
            for task in done:
                # surface bugs in the worker loop itself
                task.result()

        cancelled = 0
        for i, result in enumerate(results):
            if result is None:
                cancelled += 1
                _deliver(i, CheckResult.cancelled(jobs[i].target))
        if cancelled:
            logger.warning("%d check(s) cancelled before completion", cancelled)
        return [r for r in results if r is not None]
