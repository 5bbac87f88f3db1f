from __future__ import annotations
from typing import Dict, Any, List
import json

from article_refresher.ir import RunReport


def write_json(path: str, payload: Dict[str, Any]) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(payload, f, ensure_ascii=False, indent=2)


def write_report(path: str, report: RunReport) -> None:
    write_json(path, report.to_dict())


def write_summary(path: str, report: RunReport) -> None:
    with open(path, "w", encoding="utf-8") as f:
        f.write(render_summary(report.to_dict()))


def render_summary(payload: Dict[str, Any]) -> str:
    """Markdown summary of a run report, used as a pull request description."""
    lines: List[str] = []
    lines.append("## Content Refresh")
    lines.append("")
    lines.append(f"Run: {payload.get('timestamp')}")
    lines.append("")
    s = payload.get("summary", {})
    lines.append("| Total | Successful | Failed |")
    lines.append("|-------|------------|--------|")
    lines.append(f"| {s.get('total', 0)} | {s.get('successful', 0)} | {s.get('failed', 0)} |")
    lines.append("")

    by_platform = s.get("byPlatform") or {}
    if by_platform:
        lines.append("By platform")
        for platform, counts in sorted(by_platform.items()):
            lines.append(f"- {platform}: {counts.get('success', 0)} ok, {counts.get('error', 0)} failed")
        lines.append("")

    files = payload.get("files", []) or []
    updated = [f for f in files if f.get("status") == "success" and f.get("changes")]
    if updated:
        lines.append("### Updated articles")
        for f in updated:
            lines.append(f"- **{f.get('title') or f.get('fileName')}** (`{f.get('fileName')}`, {f.get('platform')}): {', '.join(f['changes'])}")
            for w in f.get("warnings", []) or []:
                lines.append(f"  - review: {w}")
        lines.append("")

    skipped = [f for f in files if f.get("status") == "success" and not f.get("changes")]
    if skipped:
        lines.append("### Skipped (nothing to rewrite)")
        for f in skipped:
            lines.append(f"- `{f.get('fileName')}`")
        lines.append("")

    failed = [f for f in files if f.get("status") == "error"]
    if failed:
        lines.append("### Failed (left unchanged)")
        for f in failed:
            lines.append(f"- `{f.get('fileName')}`: {f.get('error')}")
        lines.append("")
    return "\n".join(lines)
