"""End-to-end tests for linkprobe.engine.

Documents are built in memory or under ``tmp_path``; every HTTP request is
answered by ``respx``.  Backoff sleeps are replaced by a no-op coroutine.
"""

from __future__ import annotations

import io
from pathlib import Path

import httpx
import pytest
import respx

from linkprobe.config import Settings
from linkprobe.engine import check_documents, check_inputs
from linkprobe.errors import ConfigError
from linkprobe.extractor import extract
from linkprobe.models import Document, DocumentFormat, FailureReason, SkipReason, Status


async def _no_sleep(_delay: float) -> None:
    return None


def _settings(**overrides) -> Settings:
    defaults = dict(
        retry_count=2,
        backoff_base=0.0,
        max_concurrency=4,
        total_timeout=None,
        include_patterns=[],
        exclude_patterns=[],
        skip_private=False,
        github_token=None,
        check_anchors=False,
        base_dir=None,
    )
    defaults.update(overrides)
    return Settings(**defaults)


def _md(content: str, id: str = "doc.md", base: str | None = "doc.md") -> Document:
    return Document(id=id, content=content, format=DocumentFormat.MARKDOWN, base=base)


class TestCheckDocuments:
    @respx.mock
    async def test_mixed_outcomes_in_source_order(self) -> None:
        respx.route(host="ok.test").mock(return_value=httpx.Response(200))
        respx.route(host="404.test").mock(return_value=httpx.Response(404))
        doc = _md("[a](http://ok.test) [b](http://404.test) [c](javascript:void(0))")

        report = await check_documents([doc], _settings(), sleep=_no_sleep)

        results = report.results["doc.md"]
        assert [r.status for r in results] == [Status.SUCCESS, Status.FAILURE, Status.SKIPPED]
        assert results[1].status_code == 404
        assert results[1].reason is FailureReason.HTTP_STATUS
        assert results[2].reason is SkipReason.UNSUPPORTED_SCHEME
        assert not report.is_success
        assert report.stats.total == 3

    async def test_excluded_links_make_no_requests(self, respx_mock) -> None:
        doc = _md("[a](https://example.com/a) and https://example.com/b")

        report = await check_documents([doc], _settings(exclude_patterns=[r"example\.com"]), sleep=_no_sleep)

        assert len(respx_mock.calls) == 0
        assert [r.status for r in report.results["doc.md"]] == [Status.EXCLUDED, Status.EXCLUDED]
        assert report.is_success

    @respx.mock
    async def test_one_result_per_extracted_link(self) -> None:
        respx.route(host="dup.test").mock(return_value=httpx.Response(200))
        doc = _md(
            "[a](http://dup.test/) [b](http://dup.test/)\n"
            "mail me: someone@example.com\n"
            "`http://code.test/` <http://dup.test/>\n"
        )
        report = await check_documents([doc], _settings(), sleep=_no_sleep)
        assert len(report.results["doc.md"]) == len(extract(doc)) == 4
        assert [r.raw.index for r in report.results["doc.md"]] == [0, 1, 2, 3]

    @respx.mock
    async def test_retries_then_reports_exhaustion(self) -> None:
        route = respx.route(host="busy.test").mock(return_value=httpx.Response(503))
        report = await check_documents([_md("http://busy.test/")], _settings(retry_count=3), sleep=_no_sleep)
        result = report.results["doc.md"][0]
        assert route.call_count == 3
        assert result.reason is FailureReason.EXHAUSTED_RETRIES
        assert result.attempts == 3

    async def test_local_files_and_anchors(self, tmp_path: Path) -> None:
        (tmp_path / "guide.md").write_text("# Install\n\ntext\n")
        index = tmp_path / "index.md"
        index.write_text("[ok](guide.md#install) [bad](guide.md#missing) [gone](nope.md)")
        doc = Document(id=str(index), content=index.read_text(), format=DocumentFormat.MARKDOWN, base=str(index))

        report = await check_documents([doc], _settings(check_anchors=True), sleep=_no_sleep)

        results = report.results[str(index)]
        assert [r.status for r in results] == [Status.SUCCESS, Status.FAILURE, Status.FAILURE]
        assert results[1].reason is FailureReason.ANCHOR_NOT_FOUND
        assert results[2].reason is FailureReason.NOT_FOUND

    async def test_invalid_settings_abort_before_any_check(self) -> None:
        with pytest.raises(ConfigError):
            await check_documents([_md("http://x.test/")], _settings(exclude_patterns=["("]))

    async def test_empty_input(self) -> None:
        report = await check_documents([], _settings())
        assert report.results == {}
        assert report.is_success

    @respx.mock
    async def test_several_documents(self) -> None:
        respx.route(host="ok.test").mock(return_value=httpx.Response(200))
        docs = [_md("http://ok.test/1", id="a.md"), _md("nothing here", id="b.md")]
        report = await check_documents(docs, _settings(), sleep=_no_sleep)
        assert list(report.results) == ["a.md", "b.md"]
        assert report.results["b.md"] == []


class TestCheckInputs:
    @respx.mock
    async def test_stdin_and_files(self, tmp_path: Path) -> None:
        respx.route(host="ok.test").mock(return_value=httpx.Response(200))
        page = tmp_path / "page.md"
        page.write_text("[rel](other.md)")
        report = await check_inputs(
            [str(page), "-"], _settings(), stdin=io.StringIO("visit http://ok.test/ now"), sleep=_no_sleep
        )
        assert report.results[str(page)][0].reason is FailureReason.NOT_FOUND
        assert report.results["<stdin>"][0].status is Status.SUCCESS

    @respx.mock
    async def test_remote_document_resolves_relative_links(self) -> None:
        respx.get("https://site.test/docs/index.html").mock(
            return_value=httpx.Response(
                200, text='<a href="../about.html">about</a>', headers={"Content-Type": "text/html"}
            )
        )
        about = respx.route(host="site.test", path="/about.html").mock(return_value=httpx.Response(200))
        report = await check_inputs(["https://site.test/docs/index.html"], _settings(), sleep=_no_sleep)
        result = report.results["https://site.test/docs/index.html"][0]
        assert result.uri == "https://site.test/about.html"
        assert result.status is Status.SUCCESS
        assert about.called
