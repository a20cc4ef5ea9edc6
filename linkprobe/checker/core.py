"""The checker facade: one entry point for every kind of target."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional

import httpx

from linkprobe.checker.files import FileChecker
from linkprobe.checker.mail import MailChecker
from linkprobe.checker.retry import Sleep
from linkprobe.checker.web import WebChecker, build_client
from linkprobe.config import CompiledPolicy
from linkprobe.models import CheckResult, FileTarget, MailTarget, Target, WebTarget


class Checker:
    """Dispatch targets to the web, file or mail checker.

    Use as an async context manager so the shared HTTP client is closed; a
    client passed in by the caller is left open.
    """

    def __init__(
        self,
        policy: CompiledPolicy,
        client: Optional[httpx.AsyncClient] = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._owns_client = client is None
        self._client = client if client is not None else build_client(policy)
        self.web = WebChecker(policy, self._client, sleep=sleep)
        self.files = FileChecker(policy)
        self.mail = MailChecker()
        self._dispatch: dict[type, Callable[..., Awaitable[CheckResult]]] = {
            WebTarget: self.web.check,
            FileTarget: self.files.check,
            MailTarget: self.mail.check,
        }

    async def check(self, target: Target) -> CheckResult:
        return await self._dispatch[type(target)](target)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> Checker:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
