import json
import random
from datetime import date

import pytest

from article_refresher import selection
from article_refresher.errors import SelectionError
from article_refresher.selection import ArticleSelector, load_selection

TODAY = date(2024, 5, 1)


@pytest.fixture
def content_tree(tmp_path, monkeypatch):
    dates = {}
    for platform, names in (("java", ["a.md", "b.md", "c.md", "fresh.md", "_index.md"]), ("net", ["x.md"])):
        d = tmp_path / platform
        d.mkdir()
        for name in names:
            p = d / name
            p.write_text("---\ntitle: t\n---\n", encoding="utf-8")
            dates[str(p)] = date(2024, 4, 25) if name == "fresh.md" else date(2023, 1, 1)
    (tmp_path / "java" / "notes.txt").write_text("x", encoding="utf-8")
    monkeypatch.setattr(selection, "last_modified_date", lambda path: dates[path])
    return tmp_path


def test_load_selection_from_json_list():
    articles = load_selection('[{"path": "content/java/a.md", "platform": "java"}, "content/net/b.md"]')
    assert [a.path for a in articles] == ["content/java/a.md", "content/net/b.md"]
    assert articles[0].filename == "a.md"
    assert articles[1].platform is None


def test_load_selection_from_file_with_articles_key(tmp_path):
    path = tmp_path / "selected.json"
    path.write_text(json.dumps({"articles": [{"path": "a.md", "lastModified": "2023-01-01"}]}), encoding="utf-8")
    (article,) = load_selection(str(path))
    assert article.lastModified == "2023-01-01"


@pytest.mark.parametrize("source", ["", "[1, 2]", "{not json", '{"articles": 3}', '[{"platform": "java"}]'])
def test_load_selection_rejects_bad_input(source):
    with pytest.raises(SelectionError):
        load_selection(source)


def test_load_selection_missing_file(tmp_path):
    with pytest.raises(SelectionError):
        load_selection(str(tmp_path / "nope.json"))


def test_only_old_markdown_articles_are_eligible(content_tree):
    selector = ArticleSelector(str(content_tree), today=TODAY)
    assert [p.rsplit("/", 1)[-1] for p in selector.markdown_files("java")] == ["a.md", "b.md", "c.md"]
    assert selector.markdown_files("python") == []


def test_selection_never_repeats_an_article(content_tree):
    selector = ArticleSelector(
        str(content_tree), platforms=["java"], min_articles=3, max_articles=3,
        rng=random.Random(7), today=TODAY,
    )
    picked = selector.select_articles()
    assert sorted(a.filename for a in picked) == ["a.md", "b.md", "c.md"]
    assert all(a.platform == "java" and a.lastModified == "2023-01-01" for a in picked)


def test_exhausted_platform_skips_iterations(content_tree):
    selector = ArticleSelector(
        str(content_tree), platforms=["net"], min_articles=4, max_articles=4,
        rng=random.Random(1), today=TODAY,
    )
    assert [a.filename for a in selector.select_articles()] == ["x.md"]


def test_export_selection(content_tree, tmp_path):
    selector = ArticleSelector(
        str(content_tree), min_articles=2, max_articles=5, rng=random.Random(3), today=TODAY,
    )
    picked = selector.select_articles()
    out = tmp_path / "selected-articles.json"
    payload = selector.export_selection(str(out))

    assert json.loads(out.read_text(encoding="utf-8")) == payload
    assert payload["summary"]["total"] == len(picked)
    assert payload["summary"]["java"] + payload["summary"]["net"] == len(picked)
    assert payload["timestamp"].endswith("Z")
    assert [a.path for a in load_selection(str(out))] == [a.path for a in picked]
