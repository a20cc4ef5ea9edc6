"""Top-level pipeline: documents in, report out.

    documents → extract → resolve → (skip verdicts straight to the report)
                                  → targets → orchestrator → checker → report

Extraction and resolution run synchronously per document before any of its
targets is dispatched.  Configuration is validated first, so an invalid
pattern aborts the run before a single request is made.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable, Optional, Sequence, TextIO

import httpx

from linkprobe.aggregator import Aggregator
from linkprobe.checker import Checker
from linkprobe.checker.retry import Sleep
from linkprobe.checker.web import build_client
from linkprobe.config import Settings
from linkprobe.extractor import extract
from linkprobe.inputs import load_documents
from linkprobe.models import CheckResult, Document, Report, SkipVerdict
from linkprobe.orchestrator import Job, Orchestrator
from linkprobe.resolver import resolve_all

logger = logging.getLogger(__name__)


async def check_documents(
    documents: Sequence[Document],
    settings: Settings,
    client: Optional[httpx.AsyncClient] = None,
    sleep: Sleep = asyncio.sleep,
) -> Report:
    """Check every link of *documents* and return the finished report.

    Raises:
        ConfigError: If *settings* are invalid (raised before any check).
    """
    policy = settings.validate()
    aggregator = Aggregator(count_skipped_as_checked=settings.count_skipped_as_checked)
    jobs: list[Job] = []

    for document in documents:
        links = extract(document)
        aggregator.expect(document.id, len(links))
        for resolution in resolve_all(links, document, policy):
            if isinstance(resolution, SkipVerdict):
                aggregator.record(document.id, CheckResult.skipped(resolution))
            else:
                jobs.append(Job(document_id=document.id, target=resolution))

    logger.info(
        "%d document(s), %d target(s) to check", len(documents), len(jobs)
    )

    async with Checker(policy, client=client, sleep=sleep) as checker:
        orchestrator = Orchestrator(
            checker,
            max_concurrency=settings.max_concurrency,
            max_per_host=settings.max_per_host,
            total_timeout=settings.total_timeout,
        )
        await orchestrator.run(
            jobs, on_result=lambda job, result: aggregator.record(job.document_id, result)
        )
        logger.debug("peak in-flight checks: %d", orchestrator.peak_in_flight)

    return aggregator.finalize()


async def check_inputs(
    inputs: Iterable[str],
    settings: Settings,
    client: Optional[httpx.AsyncClient] = None,
    stdin: Optional[TextIO] = None,
    sleep: Sleep = asyncio.sleep,
) -> Report:
    """Load *inputs* (paths, globs, URLs, ``-``) and check them."""
    policy = settings.validate()
    owns_client = client is None
    client = client if client is not None else build_client(policy)
    try:
        documents = await load_documents(inputs, client, stdin=stdin)
        return await check_documents(documents, settings, client=client, sleep=sleep)
    finally:
        if owns_client:
            await client.aclose()


def run(inputs: Iterable[str], settings: Settings, stdin: Optional[TextIO] = None) -> Report:
    """Synchronous wrapper around :func:`check_inputs`."""
    return asyncio.run(check_inputs(list(inputs), settings, stdin=stdin))
