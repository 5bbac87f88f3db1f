import json

import pytest

from article_refresher import cli
from article_refresher.ir import RewriteResult


class StubClient:
    """Stands in for RewriteClient; appends a marker to every paragraph."""
    instances = []

    def __init__(self, config):
        self.config = config
        self.closed = False
        StubClient.instances.append(self)

    def rewrite(self, request):
        return RewriteResult(request=request, rewritten=request.span.text + " Refreshed.")

    def close(self):
        self.closed = True


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.delenv("LLM_API_KEY", raising=False)
    monkeypatch.delenv("SELECTED_ARTICLES", raising=False)
    monkeypatch.setattr(cli, "RewriteClient", StubClient)
    StubClient.instances = []


def test_run_requires_api_key(tmp_path):
    with pytest.raises(SystemExit) as exc:
        cli.main(["run", "--selection", "[]"])
    assert exc.value.code == 2


def test_run_requires_selection():
    with pytest.raises(SystemExit):
        cli.main(["run", "--api-key", "k"])


def test_run_rejects_bad_selection():
    with pytest.raises(SystemExit):
        cli.main(["run", "--api-key", "k", "--selection", "{broken"])


def test_run_processes_selection_from_env(tmp_path, article_path, monkeypatch, capsys, sleeps):
    monkeypatch.setenv("LLM_API_KEY", "secret")
    monkeypatch.setenv("SELECTED_ARTICLES", json.dumps([{"path": article_path.name, "platform": "java"}]))
    report_path = tmp_path / "report.json"
    summary_path = tmp_path / "summary.md"

    code = cli.main([
        "run", "--root", str(tmp_path), "--report", str(report_path),
        "--summary", str(summary_path), "--call-delay", "0",
    ])

    assert code == 0
    out = json.loads(capsys.readouterr().out)
    assert out == {"report": str(report_path), "total": 1, "successful": 1, "failed": 0}
    assert StubClient.instances[0].config.api_key == "secret"
    assert StubClient.instances[0].closed

    report = json.loads(report_path.read_text(encoding="utf-8"))
    assert report["files"][0]["changes"] == ["opening paragraph", "2 closing paragraphs"]
    assert "first. Refreshed.\n" in article_path.read_text(encoding="utf-8")
    assert "### Updated articles" in summary_path.read_text(encoding="utf-8")
    assert sleeps == []


def test_run_exit_code_reflects_failures(tmp_path, capsys, sleeps):
    missing = tmp_path / "missing.md"
    code = cli.main([
        "run", "--api-key", "k", "--selection", json.dumps([str(missing)]),
        "--report", str(tmp_path / "report.json"),
    ])
    assert code == 1
    assert json.loads(capsys.readouterr().out)["failed"] == 1


def test_validate_command(tmp_path, make_article, capsys):
    original = tmp_path / "original.md"
    candidate = tmp_path / "candidate.md"
    original.write_text(make_article(), encoding="utf-8")
    candidate.write_text(make_article().replace("0a1b2c3d", "deadbeef"), encoding="utf-8")

    assert cli.main(["validate", str(original), str(original)]) == 0
    capsys.readouterr()
    assert cli.main(["validate", str(original), str(candidate)]) == 1
    report = json.loads(capsys.readouterr().out)
    assert report["valid"] is False
    assert report["errors"][0].startswith("Gist 1 was modified")


def test_select_command(tmp_path, monkeypatch, capsys):
    from datetime import date
    from article_refresher import selection

    (tmp_path / "java").mkdir()
    (tmp_path / "java" / "old.md").write_text("---\ntitle: t\n---\n", encoding="utf-8")
    monkeypatch.setattr(selection, "last_modified_date", lambda path: date(2000, 1, 1))
    out = tmp_path / "selected.json"

    code = cli.main([
        "select", str(tmp_path), "--platforms", "java",
        "--min-articles", "1", "--max-articles", "1", "--out", str(out),
    ])

    assert code == 0
    line = capsys.readouterr().out.strip()
    assert line.startswith("SELECTED_ARTICLES=")
    assert json.loads(line.split("=", 1)[1])[0]["filename"] == "old.md"
    assert json.loads(out.read_text(encoding="utf-8"))["summary"] == {"total": 1, "java": 1}


def test_select_with_nothing_eligible(tmp_path, capsys):
    code = cli.main(["select", str(tmp_path), "--platforms", "java", "--out", str(tmp_path / "s.json")])
    assert code == 1
