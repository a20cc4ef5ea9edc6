"""Retry state machine with exponential backoff.

A target moves through::

    QUEUED → ATTEMPTING → SUCCEEDED
                        → FAILED
                        → BACKOFF → ATTEMPTING → …

The only suspension points are the attempt itself (network wait) and the
backoff sleep, so a target waiting out its backoff never blocks other checks.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional

from linkprobe.config import Settings
from linkprobe.models import FailureReason

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class CheckState(str, enum.Enum):
    QUEUED = "queued"
    ATTEMPTING = "attempting"
    BACKOFF = "backoff"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class BackoffPolicy:
    """``delay(n) = min(base * multiplier**n, maximum)`` for 0-based retry *n*."""

    base: float = 1.0
    multiplier: float = 2.0
    maximum: float = 30.0
    max_attempts: int = 3

    @classmethod
    def from_settings(cls, settings: Settings) -> BackoffPolicy:
        return cls(
            base=settings.backoff_base,
            multiplier=settings.backoff_multiplier,
            maximum=settings.backoff_max,
            max_attempts=settings.retry_count,
        )

    def delay(self, retry: int) -> float:
        return min(self.base * (self.multiplier ** retry), self.maximum)


@dataclass
class AttemptOutcome:
    """What one attempt observed.  ``retryable`` outcomes may be tried again."""

    success: bool
    retryable: bool = False
    status_code: Optional[int] = None
    detail: Optional[str] = None
    redirected: bool = False
    reason: Optional[FailureReason] = None
    timed_out: bool = False


@dataclass
class RetryMachine:
    policy: BackoffPolicy
    sleep: Sleep = asyncio.sleep
    label: str = ""
    state: CheckState = CheckState.QUEUED
    attempts: int = 0
    delays: list[float] = field(default_factory=list)
    exhausted: bool = False

    async def run(self, attempt: Callable[[int], Awaitable[AttemptOutcome]]) -> AttemptOutcome:
        """Drive *attempt* until it settles or the attempt budget is spent."""
        while True:
            self.state = CheckState.ATTEMPTING
            outcome = await attempt(self.attempts)
            self.attempts += 1

            if not outcome.retryable:
                self.state = CheckState.SUCCEEDED if outcome.success else CheckState.FAILED
                return outcome

            if self.attempts >= self.policy.max_attempts:
                self.state = CheckState.FAILED
                self.exhausted = True
                logger.debug(
                    "%s: giving up after %d attempt(s) (%s)",
                    self.label, self.attempts, outcome.detail or outcome.status_code,
                )
                return outcome

            delay = self.policy.delay(self.attempts - 1)
            self.delays.append(delay)
            self.state = CheckState.BACKOFF
            logger.debug(
                "%s: attempt %d/%d failed (%s); retrying in %.2fs",
                self.label, self.attempts, self.policy.max_attempts,
                outcome.detail or outcome.status_code, delay,
            )
            await self.sleep(delay)
