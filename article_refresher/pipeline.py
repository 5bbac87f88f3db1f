"""
Rewrite Pipeline

Runs one article, under an exclusive lease on its path, through:
1. Read and parse front matter
2. Extract opening / closing spans
3. Rewrite each span (sequential, rate limited)
4. Reassemble body and bump lastmod
5. Write, validate in place, and commit or roll back

and sequences many articles, one at a time, into a run report.
"""
from __future__ import annotations
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Iterable, List, Optional, Protocol
import logging

from article_refresher.adapters.markdown_adapter import (
    parse_document,
    render_document,
    update_lastmod,
)
from article_refresher.errors import MissingMetadata, RefreshError, ValidationFailed
from article_refresher.ir import (
    ProcessingResult,
    RewriteRequest,
    RewriteResult,
    RunReport,
    Span,
    ValidationReport,
)
from article_refresher.llm.client import delay
from article_refresher.snapshot import DocumentTransaction, document_transaction
from article_refresher.spans import extract_spans
from article_refresher.validator import DocumentValidator

logger = logging.getLogger(__name__)


class Rewriter(Protocol):
    def rewrite(self, request: RewriteRequest) -> RewriteResult: ...


def splice(body: str, results: List[RewriteResult]) -> str:
    """Replace each span by its rewrite, addressed by recorded offsets."""
    for result in sorted(results, key=lambda r: r.request.span.start, reverse=True):
        span = result.request.span
        body = body[:span.start] + result.rewritten + body[span.end:]
    return body


def describe_changes(spans: List[Span]) -> List[str]:
    changes = []
    if any(s.role == "opening" for s in spans):
        changes.append("opening paragraph")
    closing = sum(1 for s in spans if s.role == "closing")
    if closing:
        changes.append(f"{closing} closing paragraphs")
    return changes


class RewritePipeline:
    def __init__(
        self,
        client: Rewriter,
        validator: Optional[DocumentValidator] = None,
        call_delay: float = 2.0,
        document_delay: float = 3.0,
        today: Optional[date] = None,
    ):
        self.client = client
        self.validator = validator or DocumentValidator()
        self.call_delay = call_delay
        self.document_delay = document_delay
        self.today = today
        self.results: List[ProcessingResult] = []

    def _rewrite_spans(self, spans: List[Span], title: str, platform: str) -> List[RewriteResult]:
        results = []
        for i, span in enumerate(spans):
            logger.info(f"Rewriting {span.role} paragraph ({i + 1}/{len(spans)}, {len(span.text)} chars)")
            results.append(self.client.rewrite(RewriteRequest(span=span, title=title, platform=platform)))
            if i < len(spans) - 1:
                delay(self.call_delay)
        return results

    def _commit(self, txn: DocumentTransaction, original: str, candidate: str) -> ValidationReport:
        txn.ensure_unchanged()
        txn.write(candidate)
        report = self.validator.validate_file(str(txn.path), original)
        if not report.valid:
            raise ValidationFailed(report.errors)
        return report

    def process_document(self, path) -> ProcessingResult:
        path = Path(path).resolve()
        logger.info(f"Processing: {path.name}")
        title: Optional[str] = None
        platform: Optional[str] = None

        try:
            with document_transaction(path) as txn:
                original = txn.original_text()
                doc = parse_document(original)
                title, platform = doc.title or None, doc.platform or None
                missing = [name for name, value in (("title", title), ("platform", platform)) if not value]
                if missing:
                    raise MissingMetadata(missing)
                logger.info(f"Title: {title} | Platform: {platform}")

                spans = extract_spans(doc.body)
                if not spans:
                    logger.info(f"No content found to rewrite in {path.name}, skipping")
                    result = ProcessingResult(
                        file_path=str(path), file_name=path.name, status="success",
                        title=title, platform=platform,
                    )
                else:
                    closing = sum(1 for s in spans if s.role == "closing")
                    logger.info(f"Found {len(spans) - closing} opening and {closing} closing paragraphs to rewrite")

                    rewrites = self._rewrite_spans(spans, title, platform)
                    body = splice(doc.body, rewrites)
                    front_matter = update_lastmod(doc.raw_front_matter, self.today)
                    candidate = render_document(doc, body=body, raw_front_matter=front_matter)

                    report = self._commit(txn, original, candidate)
                    for w in report.warnings:
                        logger.warning(f"{path.name}: {w}")

                    changes = describe_changes(spans)
                    result = ProcessingResult(
                        file_path=str(path), file_name=path.name, status="success",
                        changes=changes, title=title, platform=platform,
                        warnings=list(report.warnings),
                    )
                    logger.info(f"Completed {path.name}: {', '.join(changes)}")

        except (RefreshError, OSError, UnicodeDecodeError) as e:
            logger.error(f"Error processing {path.name}: {e}")
            result = ProcessingResult(
                file_path=str(path), file_name=path.name, status="error",
                title=title, platform=platform, error=str(e),
            )

        self.results.append(result)
        return result

    def process_documents(self, paths: Iterable) -> List[ProcessingResult]:
        paths = list(paths)
        logger.info(f"Starting to process {len(paths)} articles")
        results = []
        for i, path in enumerate(paths):
            logger.info(f"Processing article {i + 1}/{len(paths)}")
            results.append(self.process_document(path))
            if i < len(paths) - 1:
                delay(self.document_delay)
        return results

    def build_report(self) -> RunReport:
        ts = datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
        report = RunReport(timestamp=ts, files=list(self.results))
        logger.info(
            f"Processing summary: {report.successful} successful, {report.failed} failed, {len(report.files)} total"
        )
        return report
