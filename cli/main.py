"""linkprobe CLI: entry-point for checking links.

Usage:
    python cli/main.py --help

Commands:
    check    → extract, resolve and check every link of the inputs
    extract  → show the links found and how they resolve, without checking

Exit codes (``check``):
    0  every link succeeded, or was excluded / skipped
    1  configuration or input error, or an unexpected failure
    2  at least one link failed
"""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure the project root is on sys.path so that `from linkprobe.xxx import ...`
# works when the CLI is invoked as `python cli/main.py` from any directory.
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import asyncio
import logging
from typing import List, Optional

import typer

from cli.rendering import render_compact, render_json, render_resolution
from linkprobe.checker.web import build_client
from linkprobe.config import settings
from linkprobe.engine import run
from linkprobe.errors import ConfigError, LinkProbeError
from linkprobe.extractor import extract
from linkprobe.inputs import load_documents
from linkprobe.resolver import resolve_all

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_LINK_FAILURES = 2

app = typer.Typer(
    name="linkprobe",
    help="Check the links in Markdown, HTML and plain-text documents.",
    no_args_is_help=True,
)


def _configure_logging(verbose: int) -> None:
    if verbose >= 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    else:
        level = getattr(logging, settings.log_level.upper(), logging.WARNING)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _parse_headers(values: List[str]) -> dict[str, str]:
    headers: dict[str, str] = {}
    for value in values:
        name, sep, content = value.partition(":")
        if not sep or not name.strip():
            raise ConfigError(f"Invalid header {value!r}; expected 'Name: value'")
        headers[name.strip()] = content.strip()
    return headers


def _parse_basic_auth(value: Optional[str]) -> Optional[tuple[str, str]]:
    if value is None:
        return None
    user, sep, password = value.partition(":")
    if not sep:
        raise ConfigError("--basic-auth expects 'user:password'")
    return (user, password)


@app.callback()
def main(
    verbose: int = typer.Option(0, "--verbose", "-v", count=True, help="-v for info, -vv for debug logs."),
) -> None:
    """Check the links in Markdown, HTML and plain-text documents."""
    _configure_logging(verbose)


# ---------------------------------------------------------------------------
# check
# ---------------------------------------------------------------------------
@app.command("check")
def check(
    inputs: List[str] = typer.Argument(..., help="Files, directories, glob patterns, URLs or '-' for stdin."),
    max_concurrency: Optional[int] = typer.Option(None, "--max-concurrency", "-c", help="Maximum checks in flight."),
    max_per_host: Optional[int] = typer.Option(None, "--max-per-host", help="Maximum checks in flight per host (0 = no limit)."),
    timeout: Optional[float] = typer.Option(None, "--timeout", "-t", help="Per-request timeout in seconds."),
    total_timeout: Optional[float] = typer.Option(None, "--total-timeout", help="Cancel everything still running after this many seconds."),
    retries: Optional[int] = typer.Option(None, "--retries", help="Maximum attempts per link."),
    backoff_base: Optional[float] = typer.Option(None, "--backoff-base", help="Initial retry delay in seconds."),
    accept: Optional[str] = typer.Option(None, "--accept", "-a", help="Extra accepted status codes, e.g. '403,500..599'."),
    exclude: List[str] = typer.Option([], "--exclude", "-x", help="Regex of links to exclude (repeatable)."),
    include: List[str] = typer.Option([], "--include", "-i", help="Regex of links to check; everything else is excluded (repeatable)."),
    skip_private: Optional[bool] = typer.Option(None, "--skip-private/--no-skip-private", help="Skip private, link-local and loopback hosts."),
    exclude_mail: Optional[bool] = typer.Option(None, "--exclude-mail/--include-mail", help="Do not check mail addresses."),
    scheme: Optional[str] = typer.Option(None, "--scheme", help="Only check web links with this scheme."),
    user_agent: Optional[str] = typer.Option(None, "--user-agent", "-u", help="User-Agent header to send."),
    basic_auth: Optional[str] = typer.Option(None, "--basic-auth", help="Credentials as 'user:password'."),
    header: List[str] = typer.Option([], "--header", "-H", help="Extra header 'Name: value' (repeatable)."),
    github_token: Optional[str] = typer.Option(None, "--github-token", envvar="GITHUB_TOKEN", help="Token sent to GitHub hosts."),
    insecure: Optional[bool] = typer.Option(None, "--insecure/--secure", help="Do not verify TLS certificates."),
    check_anchors: Optional[bool] = typer.Option(None, "--check-anchors/--no-check-anchors", help="Verify '#fragment' anchors of local files."),
    max_redirects: Optional[int] = typer.Option(None, "--max-redirects", help="Redirects to follow before failing."),
    method: Optional[str] = typer.Option(None, "--method", "-m", help="First request method: head | get."),
    base_dir: Optional[Path] = typer.Option(None, "--base-dir", "-b", help="Directory for root-relative links like '/docs/x.md'."),
    count_skipped: bool = typer.Option(False, "--count-skipped", help="Count excluded and skipped links as checked."),
    output_format: str = typer.Option("compact", "--format", "-f", help="Output format: compact | json."),
    show_all: bool = typer.Option(False, "--all", help="List every link, not just failures."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the report to this file."),
) -> None:
    """Check every link found in INPUTS."""
    if output_format not in {"compact", "json"}:
        typer.echo(f"❌ Unknown format {output_format!r}. Use: compact | json")
        raise typer.Exit(EXIT_ERROR)

    try:
        run_settings = settings.replace(
            max_concurrency=max_concurrency,
            max_per_host=max_per_host,
            timeout=timeout,
            total_timeout=total_timeout,
            retry_count=retries,
            backoff_base=backoff_base,
            accepted_status_codes=accept,
            include_patterns=[*settings.include_patterns, *include] or None,
            exclude_patterns=[*settings.exclude_patterns, *exclude] or None,
            skip_private=skip_private,
            exclude_mail=exclude_mail,
            scheme=scheme,
            user_agent=user_agent,
            basic_auth=_parse_basic_auth(basic_auth),
            custom_headers={**settings.custom_headers, **_parse_headers(header)} or None,
            github_token=github_token,
            insecure_tls=insecure,
            check_anchors=check_anchors,
            max_redirects=max_redirects,
            method=method,
            base_dir=base_dir,
            count_skipped_as_checked=count_skipped or None,
        )
        report = run(inputs, run_settings)
    except LinkProbeError as e:
        typer.echo(f"❌ Error: {e}")
        raise typer.Exit(code=EXIT_ERROR)
    except Exception as e:
        logging.getLogger(__name__).debug("run aborted", exc_info=True)
        typer.echo(f"❌ Error: {e}")
        raise typer.Exit(code=EXIT_ERROR)

    rendered = render_json(report) if output_format == "json" else render_compact(report, show_all)
    if output is not None:
        output.write_text(rendered + "\n", encoding="utf-8")
        typer.echo(f"[check] Report written to {output}")
    else:
        typer.echo(rendered)

    raise typer.Exit(code=EXIT_OK if report.is_success else EXIT_LINK_FAILURES)


# ---------------------------------------------------------------------------
# extract
# ---------------------------------------------------------------------------
@app.command("extract")
def extract_cmd(
    inputs: List[str] = typer.Argument(..., help="Files, directories, glob patterns, URLs or '-' for stdin."),
    base_dir: Optional[Path] = typer.Option(None, "--base-dir", "-b", help="Directory for root-relative links."),
    check_anchors: Optional[bool] = typer.Option(None, "--check-anchors/--no-check-anchors", help="Resolve '#fragment' links."),
) -> None:
    """Print every link found in INPUTS and how it resolves, without checking."""
    run_settings = settings.replace(base_dir=base_dir, check_anchors=check_anchors)

    async def _load():
        client = build_client(policy)
        try:
            return await load_documents(inputs, client)
        finally:
            await client.aclose()

    try:
        policy = run_settings.validate()
        documents = asyncio.run(_load())
    except LinkProbeError as e:
        typer.echo(f"❌ Error: {e}")
        raise typer.Exit(code=EXIT_ERROR)

    for document in documents:
        links = extract(document)
        typer.echo(f"📄 {document.id}  ({document.format.value}, {len(links)} link(s))")
        for resolution in resolve_all(links, document, policy):
            typer.echo(f"   {render_resolution(resolution)}")


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    app()
