"""
Article selection.

`load_selection` reads the list of articles to process (the JSON emitted by
the selector or by any other tool). `ArticleSelector` produces that list by
picking random articles that have not been touched for a while.
"""
from __future__ import annotations
from dataclasses import dataclass, asdict
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence
import json
import logging
import os
import random
import subprocess

from article_refresher.errors import SelectionError

logger = logging.getLogger(__name__)

DAYS_THRESHOLD = 30
MIN_ARTICLES_PER_RUN = 2
MAX_ARTICLES_PER_RUN = 5
DEFAULT_PLATFORMS = ("java", "net")


@dataclass
class SelectedArticle:
    path: str
    platform: Optional[str] = None
    filename: Optional[str] = None
    lastModified: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _parse_entry(entry: Any) -> SelectedArticle:
    if isinstance(entry, str) and entry:
        return SelectedArticle(path=entry, filename=os.path.basename(entry))
    if isinstance(entry, dict) and isinstance(entry.get("path"), str) and entry["path"]:
        return SelectedArticle(
            path=entry["path"],
            platform=entry.get("platform"),
            filename=entry.get("filename") or os.path.basename(entry["path"]),
            lastModified=entry.get("lastModified"),
        )
    raise SelectionError(f"Invalid selection entry: {entry!r}")


def load_selection(source: str) -> List[SelectedArticle]:
    """
    Accepts a JSON string or a path to a JSON file holding either a list of
    articles or an object with an `articles` list.
    """
    if not source or not source.strip():
        raise SelectionError("Selection input is empty")

    text = source
    if not source.lstrip().startswith(("[", "{")):
        try:
            with open(source, "r", encoding="utf-8") as f:
                text = f.read()
        except OSError as e:
            raise SelectionError(f"Cannot read selection file {source}: {e}") from e

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise SelectionError(f"Invalid selection JSON: {e}") from e

    if isinstance(data, dict):
        data = data.get("articles")
    if not isinstance(data, list):
        raise SelectionError("Selection must be a list of articles")
    return [_parse_entry(e) for e in data]


def last_modified_date(path: str) -> date:
    """Date of the last commit touching `path`, or the file mtime outside git."""
    abspath = os.path.abspath(path)
    try:
        out = subprocess.run(
            ["git", "log", "-1", "--format=%cd", "--date=short", "--", abspath],
            capture_output=True,
            text=True,
            timeout=30,
            cwd=os.path.dirname(abspath),
        )
        stamp = out.stdout.strip() if out.returncode == 0 else ""
        if stamp:
            return date.fromisoformat(stamp)
        if out.returncode != 0:
            logger.warning(f"Could not get git history for {path}")
    except (OSError, subprocess.SubprocessError, ValueError) as e:
        logger.warning(f"Could not get git history for {path}: {e}")
    return datetime.fromtimestamp(os.stat(path).st_mtime).date()


class ArticleSelector:
    def __init__(
        self,
        content_base: str,
        platforms: Sequence[str] = DEFAULT_PLATFORMS,
        days_threshold: int = DAYS_THRESHOLD,
        min_articles: int = MIN_ARTICLES_PER_RUN,
        max_articles: int = MAX_ARTICLES_PER_RUN,
        rng: Optional[random.Random] = None,
        today: Optional[date] = None,
    ):
        self.content_base = Path(content_base)
        self.platforms = list(platforms)
        self.days_threshold = days_threshold
        self.min_articles = min_articles
        self.max_articles = max_articles
        self.rng = rng or random.Random()
        self.today = today or date.today()
        self.selected: List[SelectedArticle] = []
        self._dates: Dict[str, date] = {}

    def _modified(self, path: str) -> date:
        if path not in self._dates:
            self._dates[path] = last_modified_date(path)
        return self._dates[path]

    def is_old_enough(self, path: str) -> bool:
        return self._modified(path) < self.today - timedelta(days=self.days_threshold)

    def markdown_files(self, platform: str) -> List[str]:
        directory = self.content_base / platform
        if not directory.is_dir():
            logger.warning(f"Could not read directory {directory}")
            return []
        files = sorted(
            str(p) for p in directory.iterdir()
            if p.is_file() and p.suffix == ".md" and not p.name.startswith("_index")
        )
        return [f for f in files if self.is_old_enough(f)]

    def select_articles(self) -> List[SelectedArticle]:
        count = self.rng.randint(self.min_articles, self.max_articles)
        logger.info(f"Randomly selected to process {count} articles this run")

        available = {p: self.markdown_files(p) for p in self.platforms}
        for p, files in available.items():
            logger.info(f"Found {len(files)} eligible {p} articles")

        selected: List[SelectedArticle] = []
        for i in range(count):
            platform = self.rng.choice(self.platforms)
            taken = {s.path for s in selected}
            pool = [f for f in available[platform] if f not in taken]
            if not pool:
                logger.info(f"No unselected {platform} articles left, skipping iteration {i + 1}")
                continue
            path = self.rng.choice(pool)
            selected.append(SelectedArticle(
                path=path,
                platform=platform,
                filename=os.path.basename(path),
                lastModified=self._modified(path).isoformat(),
            ))
            logger.info(f"Selected: {platform}/{os.path.basename(path)}")

        self.selected = selected
        return selected

    def selection_payload(self) -> Dict[str, Any]:
        summary: Dict[str, int] = {"total": len(self.selected)}
        for p in self.platforms:
            summary[p] = sum(1 for s in self.selected if s.platform == p)
        return {
            "timestamp": datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "articles": [s.to_dict() for s in self.selected],
            "summary": summary,
        }

    def export_selection(self, path: str) -> Dict[str, Any]:
        payload = self.selection_payload()
        with open(path, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2)
        return payload
