"""HTTP(S) link checking with ``httpx``.

Every request goes through one shared :class:`httpx.AsyncClient` configured
from the policy (user agent, custom headers, basic auth, TLS verification,
redirect limit, timeout).  A check sends ``HEAD`` first and falls back to
``GET`` when the server refuses the method.  Retryable outcomes (transport
errors and the configured status codes) are retried by a
:class:`~linkprobe.checker.retry.RetryMachine`.

Hosts listed in the credential table (the GitHub token expands onto the
GitHub hosts) get an ``Authorization`` header on every attempt, including the
first one.
"""

from __future__ import annotations

import asyncio
import logging
import re
import time
from typing import Optional
from urllib.parse import urlsplit

import httpx

from linkprobe.checker.retry import AttemptOutcome, BackoffPolicy, RetryMachine, Sleep
from linkprobe.config import CompiledPolicy
from linkprobe.models import CheckResult, FailureReason, Status, WebTarget

logger = logging.getLogger(__name__)

# Status codes that mean "this server does not do HEAD".
_HEAD_REJECTED = {405, 501}

# repository root only; deep links (blob/, issues/) are not vouched for by the API
_GITHUB_REPO_RE = re.compile(
    r"^https?://(?:www\.)?github\.com/(?P<owner>[^/?#]+)/(?P<repo>[^/?#]+?)(?:\.git)?/?(?:[?#].*)?$",
    re.IGNORECASE,
)
_GITHUB_API = "https://api.github.com"


def build_client(policy: CompiledPolicy) -> httpx.AsyncClient:
    """Create the shared async client for one run."""
    settings = policy.settings
    headers = {"User-Agent": settings.user_agent}
    headers.update(settings.custom_headers)
    auth = httpx.BasicAuth(*settings.basic_auth) if settings.basic_auth else None
    return httpx.AsyncClient(
        headers=headers,
        auth=auth,
        verify=not settings.insecure_tls,
        timeout=settings.timeout,
        follow_redirects=True,
        max_redirects=settings.max_redirects,
        limits=httpx.Limits(max_connections=settings.max_concurrency),
    )


def github_repo(url: str) -> Optional[tuple[str, str]]:
    """Return ``(owner, repo)`` for a github.com repository root URL, else ``None``."""
    m = _GITHUB_REPO_RE.match(url)
    if not m:
        return None
    return m.group("owner"), m.group("repo")


def _describe(exc: Exception) -> str:
    if isinstance(exc, httpx.TimeoutException):
        return f"timeout: {exc}" if str(exc) else "timeout"
    return f"{type(exc).__name__}: {exc}" if str(exc) else type(exc).__name__


class WebChecker:
    """Check :class:`WebTarget` values against the network."""

    def __init__(
        self,
        policy: CompiledPolicy,
        client: httpx.AsyncClient,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._policy = policy
        self._client = client
        self._sleep = sleep
        self._backoff = BackoffPolicy.from_settings(policy.settings)

    # ------------------------------------------------------------------
    # Request helpers
    # ------------------------------------------------------------------

    def _headers_for(self, url: str) -> dict[str, str]:
        host = urlsplit(url).hostname or ""
        token = self._policy.credential_for(host)
        return {"Authorization": f"Bearer {token}"} if token else {}

    async def _send(self, method: str, url: str) -> httpx.Response:
        """Send without reading the body; only the status line matters."""
        headers = self._headers_for(url)
        request = self._client.build_request(method, url, headers=headers)
        if headers:
            # the host token replaces client-wide basic auth
            response = await self._client.send(request, stream=True, auth=None)
        else:
            response = await self._client.send(request, stream=True)
        await response.aclose()
        return response

    async def _request(self, url: str) -> httpx.Response:
        if self._policy.method == "get":
            return await self._send("GET", url)
        try:
            response = await self._send("HEAD", url)
        except httpx.RemoteProtocolError as exc:
            logger.debug("HEAD %s rejected at protocol level (%s); retrying with GET", url, exc)
            return await self._send("GET", url)
        if response.status_code in _HEAD_REJECTED:
            logger.debug("HEAD %s → %d; retrying with GET", url, response.status_code)
            return await self._send("GET", url)
        return response

    def _classify(self, response: httpx.Response) -> AttemptOutcome:
        code = response.status_code
        redirected = bool(response.history)
        if 200 <= code < 400 or code in self._policy.accepted:
            return AttemptOutcome(success=True, status_code=code, redirected=redirected)
        return AttemptOutcome(
            success=False,
            retryable=code in self._policy.retryable,
            status_code=code,
            detail=response.reason_phrase or None,
            redirected=redirected,
            reason=FailureReason.HTTP_STATUS,
        )

    async def _attempt(self, url: str) -> AttemptOutcome:
        try:
            response = await self._request(url)
        except httpx.TooManyRedirects as exc:
            return AttemptOutcome(
                success=False, detail=str(exc) or "too many redirects",
                reason=FailureReason.TOO_MANY_REDIRECTS,
            )
        except (httpx.UnsupportedProtocol, httpx.InvalidURL) as exc:
            return AttemptOutcome(success=False, detail=_describe(exc), reason=FailureReason.TRANSPORT)
        except httpx.TransportError as exc:
            return AttemptOutcome(
                success=False, retryable=True, detail=_describe(exc),
                reason=FailureReason.TRANSPORT,
                timed_out=isinstance(exc, httpx.TimeoutException),
            )
        return self._classify(response)

    # ------------------------------------------------------------------
    # GitHub fallback
    # ------------------------------------------------------------------

    async def _github_fallback(self, url: str) -> bool:
        """Probe the repository through the GitHub API when a token is configured."""
        repo = github_repo(url)
        if repo is None or not self._policy.settings.github_token:
            return False
        api_url = f"{_GITHUB_API}/repos/{repo[0]}/{repo[1]}"
        try:
            response = await self._send("GET", api_url)
        except httpx.HTTPError as exc:
            logger.debug("GitHub API probe for %s failed: %s", url, exc)
            return False
        return response.status_code == 200

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def check(self, target: WebTarget) -> CheckResult:
        started = time.monotonic()
        machine = RetryMachine(self._backoff, sleep=self._sleep, label=target.url)
        outcome = await machine.run(lambda _n: self._attempt(target.url))

        if not outcome.success and await self._github_fallback(target.url):
            logger.debug("%s confirmed through the GitHub API", target.url)
            outcome = AttemptOutcome(success=True, status_code=200, detail="verified via GitHub API")

        if outcome.success:
            status, reason = Status.SUCCESS, None
        elif machine.exhausted:
            status, reason = Status.FAILURE, FailureReason.EXHAUSTED_RETRIES
        else:
            status, reason = Status.FAILURE, outcome.reason

        return CheckResult(
            uri=target.url,
            status=status,
            raw=target.raw,
            reason=reason,
            status_code=outcome.status_code,
            detail=outcome.detail,
            elapsed=time.monotonic() - started,
            attempts=machine.attempts,
            redirected=outcome.redirected,
            timed_out=outcome.timed_out,
        )
