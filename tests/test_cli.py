"""CLI tests through typer's CliRunner."""
import pytest
from typer.testing import CliRunner

from symbolranges.config import __version__, reset_config
from symbolranges.emitter.facts import DECLARED_LOCAL_VARIABLE
from symbolranges.emitter.jsonl import read_jsonl
from symbolranges.emitter.store import SqliteFactStore
from symbolranges.main import app

runner = CliRunner()

GOOD = """
package demo;

class Good {
    int add(int a, int b) {
        int sum = a + b;
        // Fork start
        int extra = sum;
        // Fork end
        return extra;
    }
}
"""

BAD = """
class Bad {
    void f() {
        int x = ghost;
    }
}
"""


@pytest.fixture(autouse=True)
def clean_config(monkeypatch):
    for name in ("SYMBOLRANGES_ADDED_INDEX_OFFSET", "SYMBOLRANGES_FAIL_POLICY",
                 "SYMBOLRANGES_OUTPUT", "SYMBOLRANGES_EXCLUDED_DIRS"):
        monkeypatch.delenv(name, raising=False)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def project(tmp_path):
    src = tmp_path / "src"
    src.mkdir()
    (src / "Good.java").write_text(GOOD)
    return tmp_path


def test_version():
    """--version prints the package version."""
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_scan_writes_jsonl(project):
    """Marked-region locals start at the default offset in the JSONL output."""
    output = project / "facts.jsonl"
    result = runner.invoke(app, ["scan", str(project / "src"), "-o", str(output), "--no-progress"])

    assert result.exit_code == 0, result.output
    assert "Scan Summary" in result.output

    facts = [r for r in read_jsonl(output) if r["record"] == "fact"]
    declared = {r["text"]: r["attributes"]["index"] for r in facts if r["kind"] == DECLARED_LOCAL_VARIABLE}
    assert declared == {"sum": 0, "extra": 100}


def test_scan_offset_option(project):
    """--offset moves the first added-code index."""
    output = project / "facts.jsonl"
    runner.invoke(app, ["scan", str(project / "src"), "-o", str(output), "--offset", "500", "--no-progress"])

    indices = [r["attributes"]["index"] for r in read_jsonl(output) if r.get("kind") == DECLARED_LOCAL_VARIABLE]
    assert indices == [0, 500]


def test_scan_sqlite_then_stats(project):
    """A SQLite scan can be read back by the stats command."""
    db_path = project / "facts.db"
    result = runner.invoke(app, ["scan", str(project / "src"), "-o", str(db_path), "-f", "sqlite", "--no-progress"])
    assert result.exit_code == 0, result.output

    store = SqliteFactStore(db_path)
    try:
        assert store.stats()["files"] == 1
    finally:
        store.close()

    result = runner.invoke(app, ["stats", str(db_path)])
    assert result.exit_code == 0
    assert "Fact Statistics" in result.output


def test_scan_reports_unresolved_symbols(project):
    """Unresolved names are listed and the scan exits 1."""
    (project / "src" / "Bad.java").write_text(BAD)
    output = project / "facts.jsonl"

    result = runner.invoke(app, ["scan", str(project / "src"), "-o", str(output), "--no-progress"])

    assert result.exit_code == 1
    assert "Unresolved References" in result.output
    assert "ghost" in result.output


def test_scan_rejects_bad_format(project):
    """An unknown --format is rejected."""
    result = runner.invoke(app, ["scan", str(project / "src"), "-f", "xml", "--no-progress"])
    assert result.exit_code == 1
    assert "Unknown format" in result.output


def test_scan_missing_path(tmp_path):
    """A missing input path is reported."""
    result = runner.invoke(app, ["scan", str(tmp_path / "nowhere"), "--no-progress"])
    assert result.exit_code == 1
    assert "does not exist" in result.output


def test_scan_bad_policy(project):
    """An unknown --fail-policy is rejected."""
    result = runner.invoke(app, ["scan", str(project / "src"), "-o", str(project / "f.jsonl"),
                                 "--fail-policy", "file", "--no-progress"])
    assert result.exit_code == 1


@pytest.mark.parametrize("option", [["--fail-policy", "bogus"], ["--offset", "0"]])
def test_scan_bad_settings_leave_output_untouched(project, option):
    """Settings are rejected before the previous output is truncated."""
    output = project / "facts.jsonl"
    output.write_text('{"record": "fact"}\n', encoding="utf-8")

    result = runner.invoke(app, ["scan", str(project / "src"), "-o", str(output), "--no-progress", *option])

    assert result.exit_code == 1
    assert output.read_text(encoding="utf-8") == '{"record": "fact"}\n'


def test_scan_reports_deeply_nested_file(project, deeply_nested_source):
    """A file too deep to convert fails the scan without stopping it."""
    (project / "src" / "Deep.java").write_text(deeply_nested_source)
    output = project / "facts.jsonl"

    result = runner.invoke(app, ["scan", str(project / "src"), "-o", str(output), "--no-progress"])

    assert result.exit_code == 1
    assert "nested too deeply" in result.output
    declared = [r["text"] for r in read_jsonl(output) if r.get("kind") == DECLARED_LOCAL_VARIABLE]
    assert declared == ["sum", "extra"]


def test_invalid_environment_is_reported(project, monkeypatch):
    """Bad SYMBOLRANGES_* values surface as a configuration error."""
    monkeypatch.setenv("SYMBOLRANGES_ADDED_INDEX_OFFSET", "zero")
    result = runner.invoke(app, ["scan", str(project / "src"), "--no-progress"])
    assert result.exit_code == 1
    assert "Configuration error" in result.output


def test_show_filters_by_kind_and_method(project):
    """show narrows the table by fact kind and method."""
    result = runner.invoke(app, ["show", str(project / "src" / "Good.java"),
                                 "-k", DECLARED_LOCAL_VARIABLE, "-m", "add"])

    assert result.exit_code == 0, result.output
    assert "2 fact(s)" in result.output
    assert "add #100" in result.output


def test_show_unknown_kind(project):
    """show rejects an unknown fact kind."""
    result = runner.invoke(app, ["show", str(project / "src" / "Good.java"), "-k", "bogus"])
    assert result.exit_code == 1
    assert "Unknown fact kind" in result.output


def test_show_failure_exit_code(project):
    """show exits 1 when a reference cannot be resolved."""
    bad = project / "src" / "Bad.java"
    bad.write_text(BAD)

    result = runner.invoke(app, ["show", str(bad), "--show-diagnostics"])

    assert result.exit_code == 1
    assert "ghost" in result.output


def test_stats_missing_database(tmp_path):
    """stats on a missing database exits 1."""
    result = runner.invoke(app, ["stats", str(tmp_path / "none.db")])
    assert result.exit_code == 1
