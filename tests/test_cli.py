"""Tests for the textsweep command line."""

import pytest
from typer.testing import CliRunner

from textsweep import __version__
from textsweep.cli import app

runner = CliRunner()


@pytest.fixture
def project(tmp_path):
    root = tmp_path / "project"
    (root / "docs").mkdir(parents=True)
    (root / "docs" / "a.md").write_text("fox one\nfox two\n")
    (root / "notes.txt").write_text("a fox\n")
    return root


def test_version():
    """Test the --version flag."""
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert f"textsweep version {__version__}" in result.output


def test_search(project):
    """Test a plain search over the project."""
    result = runner.invoke(app, ["search", "fox", str(project)])
    assert result.exit_code == 0
    assert "Found 3 matches in 2 documents" in result.output


def test_search_with_extension_filter(project):
    """Test that --ext restricts the scanned documents."""
    result = runner.invoke(app, ["search", "fox", str(project), "--ext", "txt"])
    assert result.exit_code == 0
    assert "Found 1 matches in 1 documents" in result.output


def test_search_without_matches(project):
    """Test the message for a query with no matches."""
    result = runner.invoke(app, ["search", "wolf", str(project)])
    assert result.exit_code == 0
    assert "No matches found" in result.output


def test_search_invalid_regex(project):
    """Test that a broken regular expression exits with an error."""
    result = runner.invoke(app, ["search", "fox(", str(project), "--regex"])
    assert result.exit_code == 1
    assert "Invalid regular expression" in result.output


def test_search_max_results(project):
    """Test that --max caps the listing and says so."""
    result = runner.invoke(app, ["search", "fox", str(project), "--max", "1"])
    assert result.exit_code == 0
    assert "Found 1 matches" in result.output
    assert "truncated" in result.output


def test_replace_all(project):
    """Test replacing every match in the project."""
    result = runner.invoke(app, ["replace", "fox", "dog", str(project), "--yes"])

    assert result.exit_code == 0
    assert "All matches replaced" in result.output
    assert (project / "docs" / "a.md").read_text() == "dog one\ndog two\n"
    assert (project / "notes.txt").read_text() == "a dog\n"


def test_replace_all_ignores_result_cap(tmp_path, monkeypatch):
    """Test that replacing everything is not limited by max_results."""
    monkeypatch.setenv("TEXTSWEEP_MAX_RESULTS", "2")
    root = tmp_path / "capped"
    root.mkdir()
    for name in ("a.txt", "b.txt", "c.txt"):
        (root / name).write_text("foo\n")

    result = runner.invoke(app, ["replace", "foo", "bar", str(root), "--yes"])

    assert result.exit_code == 0
    assert "Replaced 3 matches in 3 documents" in result.output
    assert "All matches replaced" in result.output
    for name in ("a.txt", "b.txt", "c.txt"):
        assert (root / name).read_text() == "bar\n"


def test_replace_selected(project):
    """Test replacing one match picked by its listing number."""
    result = runner.invoke(app, ["replace", "fox", "dog", str(project), "--select", "1", "--yes"])

    assert result.exit_code == 0
    assert "1 match replaced" in result.output
    assert (project / "docs" / "a.md").read_text() == "fox one\ndog two\n"


def test_replace_document(project):
    """Test that --document leaves other documents alone."""
    result = runner.invoke(app, ["replace", "fox", "dog", str(project), "--document", "notes.txt", "--yes"])

    assert result.exit_code == 0
    assert (project / "notes.txt").read_text() == "a dog\n"
    assert (project / "docs" / "a.md").read_text() == "fox one\nfox two\n"


def test_replace_with_capture_groups(project):
    """Test $N expansion in regex mode."""
    (project / "dates.txt").write_text("due 2025-01-15\n")
    result = runner.invoke(app, [
        "replace", r"(\d{4})-(\d{2})-(\d{2})", "$2/$3/$1", str(project), "--regex", "--yes"
    ])

    assert result.exit_code == 0
    assert (project / "dates.txt").read_text() == "due 01/15/2025\n"


def test_replace_asks_for_confirmation(project):
    """Test that declining the prompt changes nothing."""
    result = runner.invoke(app, ["replace", "fox", "dog", str(project)], input="n\n")

    assert result.exit_code == 0
    assert "Replacement cancelled" in result.output
    assert (project / "notes.txt").read_text() == "a fox\n"


def test_replace_rejects_conflicting_targets(project):
    """Test that --select and --document cannot be combined."""
    result = runner.invoke(app, [
        "replace", "fox", "dog", str(project), "--select", "0", "--document", "notes.txt"
    ])
    assert result.exit_code == 1


def test_validate():
    """Test pattern validation for regex and literal queries."""
    assert runner.invoke(app, ["validate", "[a-z]+", "--regex"]).exit_code == 0
    assert runner.invoke(app, ["validate", "[a-z", "--regex"]).exit_code == 1
    assert runner.invoke(app, ["validate", "[a-z"]).exit_code == 0


def test_init(isolated_home):
    """Test writing the default configuration file."""
    result = runner.invoke(app, ["init"])

    assert result.exit_code == 0
    assert (isolated_home / ".textsweeprc").exists()
