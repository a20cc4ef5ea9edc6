"""Local file checking: existence, plus fragment anchors when enabled.

No network I/O and no retries; a file either exists or it does not.
"""

from __future__ import annotations

import logging
import time
from urllib.parse import unquote

from linkprobe.checker.anchors import anchors_for
from linkprobe.config import CompiledPolicy
from linkprobe.models import CheckResult, FailureReason, FileTarget, Status

logger = logging.getLogger(__name__)


class FileChecker:
    def __init__(self, policy: CompiledPolicy) -> None:
        self._check_anchors = policy.settings.check_anchors

    def _result(self, target: FileTarget, started: float, **fields) -> CheckResult:
        return CheckResult(
            uri=target.uri,
            raw=target.raw,
            elapsed=time.monotonic() - started,
            attempts=1,
            **fields,
        )

    async def check(self, target: FileTarget) -> CheckResult:
        started = time.monotonic()
        path = target.path
        if not path.exists():
            return self._result(
                target, started, status=Status.FAILURE,
                reason=FailureReason.NOT_FOUND, detail=f"file not found: {path}",
            )

        if not (target.anchor and self._check_anchors) or path.is_dir():
            return self._result(target, started, status=Status.SUCCESS)

        try:
            content = path.read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            return self._result(
                target, started, status=Status.FAILURE,
                reason=FailureReason.NOT_FOUND, detail=f"cannot read {path}: {exc}",
            )

        anchor = unquote(target.anchor)
        anchors = anchors_for(str(path), content)
        if anchor in anchors or anchor.lower() in anchors:
            return self._result(target, started, status=Status.SUCCESS)
        logger.debug("anchor #%s not among %d anchor(s) of %s", anchor, len(anchors), path)
        return self._result(
            target, started, status=Status.FAILURE,
            reason=FailureReason.ANCHOR_NOT_FOUND, detail=f"anchor #{anchor} not found in {path}",
        )
