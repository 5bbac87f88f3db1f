import pytest

from article_refresher.ir import RewriteResult

FRONT_MATTER = """---
title: "Convert DOCX to PDF in Java"
productname: "Words"
productkey: "words"
platformkey: "java"
date: 2023-01-10
lastmod: 2023-01-10
type: docs
---
"""

BODY = """Learn how to convert DOCX files to PDF. See the [installation guide]({{< site/baseurl >}}/java/install/) first.

## Convert a document
{{< gist "aspose-com-gists" "0a1b2c3d" "ConvertDocxToPdf.java" >}}

That is all it takes to convert a document.

Check the [API reference]({{< site/baseurl >}}/java/api/) for more options.
"""


@pytest.fixture
def make_article():
    def _make(body=BODY, front_matter=FRONT_MATTER):
        return front_matter + body
    return _make


@pytest.fixture
def article_path(tmp_path, make_article):
    path = tmp_path / "convert-docx-to-pdf.md"
    path.write_text(make_article(), encoding="utf-8")
    return path


class FakeRewriter:
    """Appends a marker to every span; optional per-role overrides."""

    def __init__(self, transform=None, fail_with=None):
        self.transform = transform or (lambda text, role: f"{text} Updated.")
        self.fail_with = fail_with
        self.requests = []

    def rewrite(self, request):
        self.requests.append(request)
        if self.fail_with is not None:
            raise self.fail_with
        return RewriteResult(request=request, rewritten=self.transform(request.span.text, request.role))


@pytest.fixture
def fake_rewriter():
    return FakeRewriter


@pytest.fixture
def sleeps(monkeypatch):
    """Record time.sleep calls instead of sleeping."""
    import time
    calls = []
    monkeypatch.setattr(time, "sleep", lambda s: calls.append(s))
    return calls
