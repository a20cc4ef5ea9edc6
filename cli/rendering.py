"""Utilities for rendering reports in the CLI."""

from __future__ import annotations

import json
from typing import List

from linkprobe.models import CheckResult, Report, SkipVerdict, Status, Target

_ICONS = {
    Status.SUCCESS: "✅",
    Status.FAILURE: "🚫",
    Status.EXCLUDED: "👻",
    Status.SKIPPED: "⏭️",
}


def _metadata(result: CheckResult) -> str:
    if result.status_code is not None and result.detail:
        return f" [{result.status_code}] ({result.detail})"
    if result.status_code is not None:
        return f" [{result.status_code}]"
    if result.detail:
        return f" ({result.detail})"
    if result.reason is not None:
        return f" ({result.reason.value})"
    return ""


def render_result(result: CheckResult) -> str:
    """One line per result, e.g. ``🚫 https://x.test [404] (Not Found)``."""
    icon = _ICONS.get(result.status, "❓")
    where = f"{result.raw.line}:{result.raw.column}"
    line = f"{icon} {result.uri}{_metadata(result)}  @{where}"
    if result.is_failure and result.reason is not None:
        line += f"  <{result.reason.value}>"
    return line


def render_summary(report: Report) -> str:
    stats = report.stats
    lines = [
        "📝 Summary",
        "-------------------",
        f"🔍 Total: {stats.total}",
        f"✅ Successful: {stats.succeeded}",
        f"⏳ Timeout: {stats.timeouts}",
        f"🔀 Redirected: {stats.redirected}",
        f"👻 Excluded: {stats.excluded}",
        f"⏭️  Skipped: {stats.skipped}",
        f"🚫 Errors: {stats.failed}",
    ]
    return "\n".join(lines)


def render_compact(report: Report, show_all: bool = False) -> str:
    """Group results by document; only failures unless *show_all*."""
    lines: List[str] = []
    for document_id, results in report.results.items():
        shown = results if show_all else [r for r in results if r.is_failure]
        if not shown:
            continue
        lines.append(f"📄 {document_id}")
        for result in shown:
            lines.append(f"   {render_result(result)}")
        lines.append("")
    lines.append(render_summary(report))
    return "\n".join(lines)


def render_json(report: Report) -> str:
    return json.dumps(report.to_dict(), indent=2, ensure_ascii=False)


def render_resolution(resolution: Target | SkipVerdict) -> str:
    """Describe what the resolver made of a raw link (used by ``extract``)."""
    raw = resolution.raw
    where = f"{raw.line}:{raw.column}"
    if isinstance(resolution, SkipVerdict):
        return f"{where}  {raw.text}  → skip ({resolution.reason.value})"
    kind = type(resolution).__name__.replace("Target", "").lower()
    return f"{where}  {raw.text}  → {kind} {resolution.uri}"
