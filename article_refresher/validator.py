"""
Post-Rewrite Validator

Compares a rewritten article against its original and reports structural
damage. Errors reject the rewrite (the pipeline rolls back); warnings are
surfaced for human review but never block a commit.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Literal, Optional, Sequence
import logging
import re

from article_refresher.adapters.markdown_adapter import (
    FRONT_MATTER_RE,
    parse_front_matter_fields,
    read_document_text,
)
from article_refresher.ir import ValidationReport, unquote
from article_refresher.spans import find_shortcodes

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("title", "productname", "productkey", "platformkey", "date", "lastmod", "type")
DATE_FIELDS = ("date", "lastmod")

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_HEADING_RE = re.compile(r"^#{1,6}\s+.+$", re.MULTILINE)
_HEADING_PREFIX_RE = re.compile(r"^#+\s+")
_LINK_RE = re.compile(r"\[[^\]]*\]\([^)]+\)")
_BASEURL_RE = re.compile(r"\{\{<\s*site/baseurl\s*>\}\}")
_LINK_TARGET_RE = re.compile(r"\]\(([^)\n]*)(\)?)")
_FENCE = "```"


@dataclass
class CheckResult:
    """A single finding."""
    name: str
    severity: Literal["warning", "error"]
    details: str


@dataclass
class ValidatorConfig:
    required_fields: Sequence[str] = field(default_factory=lambda: list(REQUIRED_FIELDS))
    date_fields: Sequence[str] = field(default_factory=lambda: list(DATE_FIELDS))
    min_length_ratio: float = 0.5
    max_length_ratio: float = 2.0


class DocumentValidator:
    """
    Enforces the structural invariants of a rewrite:

    - front matter present, required fields present, dates well formed
    - gist shortcodes identical in count and text, in order
    - internal `{{< site/baseurl >}}` references unchanged in count
    - code fences balanced

    Heading, link, bracket and length changes are reported as warnings.
    Holds no per-call state; every call returns a new ValidationReport.
    """

    def __init__(self, config: Optional[ValidatorConfig] = None):
        self.config = config or ValidatorConfig()

    def _check_front_matter(self, content: str) -> List[CheckResult]:
        m = FRONT_MATTER_RE.match(content)
        if not m:
            return [CheckResult("front_matter", "error", "Missing or malformed front matter")]

        fields = parse_front_matter_fields(m.group(2))
        results = [
            CheckResult("required_field", "error", f"Missing required field: {name}")
            for name in self.config.required_fields
            if name not in fields
        ]
        for name in self.config.date_fields:
            if name not in fields:
                continue
            value = unquote(fields[name])
            if not _DATE_RE.match(value):
                results.append(CheckResult(
                    "date_format", "error",
                    f"Invalid date format for {name}: {value} (should be YYYY-MM-DD)",
                ))
        return results

    def _check_shortcodes(self, original: str, candidate: str) -> List[CheckResult]:
        before = find_shortcodes(original)
        after = find_shortcodes(candidate)
        if len(before) != len(after):
            return [CheckResult(
                "gist_count", "error",
                f"Gist count mismatch: original {len(before)}, new {len(after)}",
            )]
        return [
            CheckResult("gist_modified", "error", f'Gist {i} was modified: "{b}" -> "{a}"')
            for i, (b, a) in enumerate(zip(before, after), start=1)
            if b != a
        ]

    def _check_headings(self, original: str, candidate: str) -> List[CheckResult]:
        before = [_HEADING_PREFIX_RE.sub("", h) for h in _HEADING_RE.findall(original)]
        after = [_HEADING_PREFIX_RE.sub("", h) for h in _HEADING_RE.findall(candidate)]
        results = []
        if len(before) != len(after):
            results.append(CheckResult(
                "heading_count", "warning",
                f"Heading count changed: original {len(before)}, new {len(after)}",
            ))
        for i, (b, a) in enumerate(zip(before, after), start=1):
            if b != a:
                results.append(CheckResult("heading_text", "warning", f'Heading {i} changed: "{b}" -> "{a}"'))
        return results

    def _check_links(self, original: str, candidate: str) -> List[CheckResult]:
        results = []
        links_before = len(_LINK_RE.findall(original))
        links_after = len(_LINK_RE.findall(candidate))
        if links_before != links_after:
            results.append(CheckResult(
                "link_count", "warning",
                f"Link count changed: original {links_before}, new {links_after}",
            ))

        internal_before = len(_BASEURL_RE.findall(original))
        internal_after = len(_BASEURL_RE.findall(candidate))
        if internal_before != internal_after:
            results.append(CheckResult(
                "internal_link_count", "error",
                f"Internal link count mismatch: original {internal_before}, new {internal_after}",
            ))
        return results

    def _check_markdown_structure(self, content: str) -> List[CheckResult]:
        results = []
        opened = content.count("[")
        closed = content.count("]")
        if opened != closed:
            results.append(CheckResult(
                "square_brackets", "warning",
                f"Unmatched square brackets: {opened} open, {closed} close",
            ))

        # heuristic: a link target should close on the line it opens
        unclosed = sum(1 for _, close in _LINK_TARGET_RE.findall(content) if not close)
        if unclosed:
            results.append(CheckResult(
                "link_parentheses", "warning",
                f"Potential unmatched parentheses in {unclosed} link(s)",
            ))

        if content.count(_FENCE) % 2 != 0:
            results.append(CheckResult("code_fences", "error", "Unmatched code block markers (```)"))
        return results

    def _check_length(self, original: str, candidate: str) -> List[CheckResult]:
        if not original:
            return []
        ratio = len(candidate) / len(original)
        if ratio < self.config.min_length_ratio:
            return [CheckResult(
                "length", "warning",
                f"Content significantly shortened: {round((1 - ratio) * 100)}% reduction",
            )]
        if ratio > self.config.max_length_ratio:
            return [CheckResult(
                "length", "warning",
                f"Content significantly lengthened: {round((ratio - 1) * 100)}% increase",
            )]
        return []

    def validate(self, original: str, candidate: str) -> ValidationReport:
        checks: List[CheckResult] = []
        checks += self._check_front_matter(candidate)
        checks += self._check_markdown_structure(candidate)
        checks += self._check_shortcodes(original, candidate)
        checks += self._check_headings(original, candidate)
        checks += self._check_links(original, candidate)
        checks += self._check_length(original, candidate)

        report = ValidationReport(
            errors=[c.details for c in checks if c.severity == "error"],
            warnings=[c.details for c in checks if c.severity == "warning"],
        )
        if report.errors:
            logger.warning(f"Validation rejected rewrite: {len(report.errors)} errors, {len(report.warnings)} warnings")
        return report

    def validate_file(self, path: str, original: str) -> ValidationReport:
        """Validate the document currently on disk at `path` against `original`."""
        try:
            content = read_document_text(path)
        except (OSError, UnicodeDecodeError) as e:
            return ValidationReport(errors=[f"Failed to validate file: {e}"])
        return self.validate(original, content)
