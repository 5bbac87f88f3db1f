from __future__ import annotations
import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from article_refresher.changelog import write_report, write_summary
from article_refresher.config import load_config
from article_refresher.errors import ConfigError, SelectionError
from article_refresher.llm.client import RewriteClient
from article_refresher.pipeline import RewritePipeline
from article_refresher.selection import (
    ArticleSelector,
    DAYS_THRESHOLD,
    DEFAULT_PLATFORMS,
    MAX_ARTICLES_PER_RUN,
    MIN_ARTICLES_PER_RUN,
    load_selection,
)
from article_refresher.validator import DocumentValidator
from article_refresher.adapters.markdown_adapter import read_document_text


def _run(args, ap: argparse.ArgumentParser) -> int:
    if not args.api_key:
        ap.error("an API key is required (--api-key or LLM_API_KEY environment variable)")
    if not args.selection:
        ap.error("a selection is required (--selection or SELECTED_ARTICLES environment variable)")

    try:
        articles = load_selection(args.selection)
        config = load_config(
            args.config,
            model=args.model,
            max_retries=args.max_retries,
            call_delay=args.call_delay,
            document_delay=args.document_delay,
            report_path=args.report,
        )
    except (SelectionError, ConfigError) as e:
        ap.error(str(e))

    root = Path(args.root) if args.root else None
    paths = [
        str(root / a.path) if root is not None and not os.path.isabs(a.path) else a.path
        for a in articles
    ]

    client = RewriteClient(config.llm_config(args.api_key))
    pipeline = RewritePipeline(
        client,
        validator=DocumentValidator(config.validator_config()),
        call_delay=config.call_delay,
        document_delay=config.document_delay,
    )
    try:
        pipeline.process_documents(paths)
    finally:
        client.close()

    report = pipeline.build_report()
    write_report(config.report_path, report)
    if args.summary:
        write_summary(args.summary, report)

    output = {
        "report": config.report_path,
        "total": len(report.files),
        "successful": report.successful,
        "failed": report.failed,
    }
    print(json.dumps(output, indent=2))
    return 1 if report.failed else 0


def _select(args, ap: argparse.ArgumentParser) -> int:
    selector = ArticleSelector(
        args.content_base,
        platforms=args.platforms,
        days_threshold=args.days,
        min_articles=args.min_articles,
        max_articles=args.max_articles,
    )
    selected = selector.select_articles()
    if not selected:
        print("No articles found matching criteria", file=sys.stderr)
        return 1
    payload = selector.export_selection(args.out)
    print("SELECTED_ARTICLES=" + json.dumps(payload["articles"]))
    return 0


def _validate(args, ap: argparse.ArgumentParser) -> int:
    try:
        original = read_document_text(args.original)
    except (OSError, UnicodeDecodeError) as e:
        ap.error(f"cannot read original: {e}")
    report = DocumentValidator().validate_file(args.candidate, original)
    print(json.dumps(report.to_dict(), indent=2))
    return 0 if report.valid else 1


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="article-refresh",
        description="Rewrite the opening and closing paragraphs of Hugo articles without touching their structure",
    )
    ap.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    sub = ap.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Rewrite the selected articles")
    run.add_argument(
        "--selection",
        default=os.environ.get("SELECTED_ARTICLES"),
        help="Selection JSON or path to a JSON file (or set SELECTED_ARTICLES env var)",
    )
    run.add_argument(
        "--api-key",
        default=os.environ.get("LLM_API_KEY"),
        help="Rewrite service API key (or set LLM_API_KEY env var)",
    )
    run.add_argument("--config", help="YAML config file")
    run.add_argument("--root", help="Directory that relative article paths are resolved against")
    run.add_argument("--model", help="Model name sent to the rewrite service")
    run.add_argument("--max-retries", type=int, help="Attempts per rewrite call")
    run.add_argument("--call-delay", type=float, help="Seconds between rewrite calls")
    run.add_argument("--document-delay", type=float, help="Seconds between articles")
    run.add_argument("--report", help="Where to write the JSON run report")
    run.add_argument("--summary", help="Also write a markdown summary (e.g. for a PR body)")
    run.set_defaults(func=_run)

    select = sub.add_parser("select", help="Pick stale articles to rewrite")
    select.add_argument("content_base", help="Directory containing one folder per platform")
    select.add_argument("--platforms", nargs="+", default=list(DEFAULT_PLATFORMS))
    select.add_argument("--days", type=int, default=DAYS_THRESHOLD, help="Minimum age in days since last change")
    select.add_argument("--min-articles", type=int, default=MIN_ARTICLES_PER_RUN)
    select.add_argument("--max-articles", type=int, default=MAX_ARTICLES_PER_RUN)
    select.add_argument("--out", default="selected-articles.json", help="Where to write the selection")
    select.set_defaults(func=_select)

    validate = sub.add_parser("validate", help="Compare a rewritten article against its original")
    validate.add_argument("original")
    validate.add_argument("candidate")
    validate.set_defaults(func=_validate)
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    ap = build_parser()
    args = ap.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return args.func(args, ap)


if __name__ == "__main__":
    sys.exit(main())
