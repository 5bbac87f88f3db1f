"""
Span Extraction

Finds the editable prose in an article body: the opening paragraph (everything
before the first section heading or gist embed) and the closing paragraphs
(everything after the last gist embed).

The body is first tokenized into headings and shortcodes with plain string
scanning, then spans are computed from the token offsets.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import List, Literal, Optional
import re

from article_refresher.ir import Span

TokenKind = Literal["heading", "shortcode", "shortcode_open"]

HEADING_MARKER = "## "
SHORTCODE_START = "{{<"
SHORTCODE_END = ">}}"
SHORTCODE_NAME = "gist"

_PARAGRAPH_BREAK_RE = re.compile(r"\n\s*\n")
_HEADING_PARAGRAPH_RE = re.compile(r"^#+\s")


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    start: int
    end: int
    text: str


def _heading_tokens(body: str) -> List[Token]:
    tokens: List[Token] = []
    line_start = 0
    n = len(body)
    while line_start < n:
        line_end = body.find("\n", line_start)
        if line_end == -1:
            line_end = n
        if body.startswith(HEADING_MARKER, line_start):
            tokens.append(Token("heading", line_start, line_end, body[line_start:line_end]))
        line_start = line_end + 1
    return tokens


def _shortcode_tokens(body: str) -> List[Token]:
    """
    Gist shortcodes, `{{<` + optional whitespace + `gist` up to the nearest `>}}`.

    An opener with no terminator is still reported (as `shortcode_open`) since
    it bounds the opening paragraph.
    """
    tokens: List[Token] = []
    pos = 0
    while True:
        start = body.find(SHORTCODE_START, pos)
        if start == -1:
            break
        name_at = start + len(SHORTCODE_START)
        while name_at < len(body) and body[name_at].isspace():
            name_at += 1
        if not body.startswith(SHORTCODE_NAME, name_at):
            pos = start + len(SHORTCODE_START)
            continue
        after_name = name_at + len(SHORTCODE_NAME)
        close = body.find(SHORTCODE_END, after_name)
        if close == -1:
            tokens.append(Token("shortcode_open", start, after_name, body[start:after_name]))
            pos = after_name
            continue
        end = close + len(SHORTCODE_END)
        tokens.append(Token("shortcode", start, end, body[start:end]))
        pos = end
    return tokens


def tokenize(body: str) -> List[Token]:
    """Structural tokens of the body, ordered by offset."""
    tokens = _heading_tokens(body) + _shortcode_tokens(body)
    tokens.sort(key=lambda t: (t.start, t.end))
    return tokens


def find_shortcodes(text: str) -> List[str]:
    """Literal text of every complete gist shortcode, in document order."""
    return [t.text for t in _shortcode_tokens(text) if t.kind == "shortcode"]


def _trimmed_span(body: str, start: int, end: int, role) -> Optional[Span]:
    segment = body[start:end]
    stripped = segment.strip()
    if not stripped:
        return None
    lead = len(segment) - len(segment.lstrip())
    s = start + lead
    return Span(start=s, end=s + len(stripped), text=stripped, role=role)


def opening_span(body: str) -> Optional[Span]:
    """
    The opening paragraph runs up to the first heading or shortcode opener,
    whichever comes first, or the whole body when neither exists.
    """
    if not body:
        return None
    tokens = tokenize(body)
    end = tokens[0].start if tokens else len(body)
    return _trimmed_span(body, 0, end, "opening")


def closing_spans(body: str) -> List[Span]:
    """Paragraphs after the last complete shortcode, headings excluded."""
    shortcodes = [t for t in _shortcode_tokens(body) if t.kind == "shortcode"]
    if not shortcodes:
        return []

    tail_start = shortcodes[-1].end
    spans: List[Span] = []
    seg_start = tail_start
    for m in _PARAGRAPH_BREAK_RE.finditer(body, tail_start):
        spans.append(_trimmed_span(body, seg_start, m.start(), "closing"))
        seg_start = m.end()
    spans.append(_trimmed_span(body, seg_start, len(body), "closing"))

    return [s for s in spans if s is not None and not _HEADING_PARAGRAPH_RE.match(s.text)]


def extract_opening(body: str) -> str:
    span = opening_span(body)
    return span.text if span else ""


def extract_closing(body: str) -> List[str]:
    return [s.text for s in closing_spans(body)]


def extract_spans(body: str) -> List[Span]:
    """Opening span (if any) followed by closing spans, in rewrite order."""
    spans: List[Span] = []
    opening = opening_span(body)
    if opening is not None:
        spans.append(opening)
    spans.extend(closing_spans(body))
    return spans
