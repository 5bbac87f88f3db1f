from __future__ import annotations
from typing import Dict, Optional
from datetime import date
import re

from article_refresher.errors import MalformedDocument
from article_refresher.ir import Document

# ---\n<front matter>\n---\n<body>, LF or CRLF
FRONT_MATTER_RE = re.compile(r"\A(---\r?\n)([\s\S]*?)(\r?\n---\r?\n)([\s\S]*)\Z")
_FIELD_RE = re.compile(r"^([A-Za-z0-9_.-]+):[ \t]*(.*?)\r?$", re.MULTILINE)
_LASTMOD_RE = re.compile(r"^(lastmod:[ \t]*).*?(\r?)$", re.MULTILINE)
_DATE_LINE_RE = re.compile(r"^(date:[ \t]*\S.*?)(\r?)$", re.MULTILINE)


def parse_front_matter_fields(raw: str) -> Dict[str, str]:
    """Top-level `key: value` lines in file order. Indented lines are ignored."""
    fields: Dict[str, str] = {}
    for m in _FIELD_RE.finditer(raw):
        fields.setdefault(m.group(1), m.group(2).strip())
    return fields


def parse_document(text: str) -> Document:
    m = FRONT_MATTER_RE.match(text)
    if not m:
        raise MalformedDocument()
    opening, raw, closing, body = m.groups()
    return Document(
        front_matter=parse_front_matter_fields(raw),
        raw_front_matter=raw,
        opening_delimiter=opening,
        closing_delimiter=closing,
        body=body,
    )


def render_document(doc: Document, body: Optional[str] = None, raw_front_matter: Optional[str] = None) -> str:
    fm = doc.raw_front_matter if raw_front_matter is None else raw_front_matter
    return f"{doc.opening_delimiter}{fm}{doc.closing_delimiter}{doc.body if body is None else body}"


def update_lastmod(raw_front_matter: str, today: Optional[date] = None) -> str:
    """
    Set `lastmod` to today's date.

    An existing lastmod line is rewritten in place; otherwise a new line is
    inserted directly after the `date` line. Without either line the front
    matter is returned unchanged (the validator reports the missing fields).
    """
    stamp = (today or date.today()).isoformat()
    if _LASTMOD_RE.search(raw_front_matter):
        return _LASTMOD_RE.sub(lambda m: f"{m.group(1)}{stamp}{m.group(2)}", raw_front_matter, count=1)
    newline = "\r\n" if "\r\n" in raw_front_matter else "\n"
    return _DATE_LINE_RE.sub(
        lambda m: f"{m.group(1)}{newline}lastmod: {stamp}{m.group(2)}",
        raw_front_matter,
        count=1,
    )


def read_document_text(path: str) -> str:
    # newline="" keeps CRLF intact so rollback comparisons stay byte-exact
    with open(path, "r", encoding="utf-8", newline="") as f:
        return f.read()


def write_document_text(path: str, text: str) -> None:
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(text)
