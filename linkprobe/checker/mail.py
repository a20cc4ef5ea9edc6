"""Mail address checking: syntax only, never a network lookup."""

from __future__ import annotations

import re
import time

from linkprobe.models import CheckResult, FailureReason, MailTarget, Status

_LOCAL_RE = re.compile(r"^[A-Za-z0-9!#$%&'*+/=?^_`{|}~-]+(?:\.[A-Za-z0-9!#$%&'*+/=?^_`{|}~-]+)*$")
_LABEL_RE = re.compile(r"^[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?$")


def is_valid_address(address: str) -> bool:
    """``local@domain.tld`` with RFC 5321 length limits and sane labels."""
    if len(address) > 254 or address.count("@") != 1:
        return False
    local, domain = address.split("@")
    if not local or len(local) > 64 or not _LOCAL_RE.match(local):
        return False
    labels = domain.split(".")
    if len(labels) < 2:
        return False
    return all(_LABEL_RE.match(label) for label in labels)


class MailChecker:
    async def check(self, target: MailTarget) -> CheckResult:
        started = time.monotonic()
        if is_valid_address(target.address):
            status, reason, detail = Status.SUCCESS, None, None
        else:
            status, reason = Status.FAILURE, FailureReason.INVALID_MAIL
            detail = f"invalid mail address: {target.address}"
        return CheckResult(
            uri=target.uri,
            status=status,
            raw=target.raw,
            reason=reason,
            detail=detail,
            elapsed=time.monotonic() - started,
            attempts=1,
        )
