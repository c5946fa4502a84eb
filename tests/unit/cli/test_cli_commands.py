"""
Tests for the psearch command line.

Commands run through typer's CliRunner against a temporary text tree;
the working directory is switched to that tree so document names stay
short in the rendered tables.

Organization
------------
- TestMainApp: version flag and help
- TestParseCommand: tree display and parse errors
- TestSearchCommand: ranked pages and path errors
- TestSearchHelp: documented query syntax parses
- TestMarkCommand: highlighting
- TestSafeCliCommand: last-resort error handling
- TestErrorRenderer: error panels
"""

import io
import re

import pytest
import typer
from rich.console import Console
from typer.testing import CliRunner

from psearch import __version__
from psearch.cli.commands.search import command as search_command
from psearch.cli.console import ErrorRenderer
from psearch.cli.main import app, safe_cli_command
from psearch.core.exceptions import ParseError, SourceFailure
from psearch.query.parser import QueryParser

runner = CliRunner()


@pytest.fixture
def in_tree(text_tree, monkeypatch):
    monkeypatch.chdir(text_tree)
    for name in ("PSEARCH_LOG_LEVEL", "PSEARCH_PAGE_SIZE", "PSEARCH_QUERY_IMPORTANCE"):
        monkeypatch.delenv(name, raising=False)
    return text_tree


def recording_console() -> Console:
    return Console(file=io.StringIO(), width=100, record=True)


class TestMainApp:
    """Tests for the top-level callback."""

    def test_version(self):
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert f"psearch {__version__}" in result.output

    def test_help_without_command(self):
        result = runner.invoke(app, [])

        assert result.exit_code == 0
        assert "search" in result.output
        assert "parse" in result.output


class TestParseCommand:
    """Tests for `psearch parse`."""

    def test_prints_canonical_form(self, in_tree):
        result = runner.invoke(app, ["parse", "+foo"])

        assert result.exit_code == 0
        assert "Query tree" in result.output
        assert "Canonical: +foo" in result.output

    def test_parse_error(self, in_tree):
        result = runner.invoke(app, ["parse", "a AND b"])

        assert result.exit_code == 1
        assert "PS-QRY-001" in result.output


class TestSearchCommand:
    """Tests for `psearch search`."""

    def test_ranks_matching_file_first(self, in_tree):
        result = runner.invoke(app, ["search", "parseQuery", "."])

        assert result.exit_code == 0
        assert "Page 1 of 1" in result.output
        assert result.output.index("parser.py") < result.output.index("notes.txt")

    def test_no_match_warning(self, in_tree):
        result = runner.invoke(app, ["search", "zebra", "."])

        assert result.exit_code == 0
        assert "No document matched the query" in result.output

    def test_paging_beyond_results(self, in_tree):
        result = runner.invoke(app, ["search", "fox", ".", "--page", "5"])

        assert result.exit_code == 0
        assert "No results on page 5" in result.output

    def test_page_size_tip(self, in_tree):
        result = runner.invoke(app, ["search", "fox", ".", "-n", "1"])

        assert result.exit_code == 0
        assert "Page 1 of 3" in result.output
        assert "--page 1" in result.output

    def test_negative_page(self, in_tree):
        result = runner.invoke(app, ["search", "fox", ".", "--page=-1"])

        assert result.exit_code == 1
        assert "PS-ARG-001" in result.output

    def test_missing_path(self, in_tree):
        result = runner.invoke(app, ["search", "fox", "does-not-exist"])

        assert result.exit_code == 1
        assert "Path not found, skipping: does-not-exist" in result.output
        assert "PS-FILE-001" in result.output

    def test_invalid_query(self, in_tree):
        result = runner.invoke(app, ["search", "(fox", "."])

        assert result.exit_code == 1
        assert "PS-QRY-001" in result.output


def documented_queries(doc: str) -> list:
    """Queries in the syntax table and example lines of a command docstring."""
    syntax = doc.split("Query syntax:", 1)[1].split("\n\n", 1)[0]
    queries = []
    for line in syntax.strip().splitlines():
        queries.extend(re.split(r"\s{2,}", line.strip())[:-1])
    queries.extend(re.findall(r'psearch search "([^"]+)"', doc))
    return queries


class TestSearchHelp:
    """Tests for the query syntax shown by `psearch search --help`."""

    def test_documented_queries_parse(self):
        queries = documented_queries(search_command.__doc__)

        assert "#fo+" in queries
        assert "foo^2" in queries
        parser = QueryParser()
        for query in queries:
            parser.parse(query)

    def test_help_shows_postfix_syntax(self):
        result = runner.invoke(app, ["search", "--help"])

        assert result.exit_code == 0
        assert "#fo+" in result.output
        assert "/fo+/" not in result.output
        assert "^2foo" not in result.output


class TestMarkCommand:
    """Tests for `psearch mark`."""

    def test_marks_matches(self, in_tree):
        result = runner.invoke(app, ["mark", "fox bear", "notes.txt"])

        assert result.exit_code == 0
        assert "the fox ran" in result.output
        assert "2 match range(s) in notes.txt" in result.output

    def test_missing_file(self, in_tree):
        result = runner.invoke(app, ["mark", "fox", "nope.txt"])

        assert result.exit_code == 1
        assert "PS-FILE-001" in result.output


class TestSafeCliCommand:
    """Tests for safe_cli_command()."""

    def test_exit_passes_through(self):
        @safe_cli_command("exit")
        def exits():
            raise typer.Exit(code=3)

        with pytest.raises(typer.Exit) as exc_info:
            exits()
        assert exc_info.value.exit_code == 3

    def test_exception_becomes_exit_code_one(self):
        @safe_cli_command("boom")
        def fails(debug=False):
            raise RuntimeError("boom")

        with pytest.raises(typer.Exit) as exc_info:
            fails(debug=False)
        assert exc_info.value.exit_code == 1

    def test_return_value_kept(self):
        @safe_cli_command("ok")
        def succeeds():
            return 42

        assert succeeds() == 42
        assert succeeds.__name__ == "succeeds"


class TestErrorRenderer:
    """Tests for ErrorRenderer panels."""

    def test_psearch_error_panel(self):
        console = recording_console()
        ErrorRenderer.render(
            ParseError("Unexpected token 'AND'"), "Parse failed", console=console
        )
        text = console.export_text()

        assert "Error: PS-QRY-001" in text
        assert "Unexpected token 'AND'" in text
        assert "Parse failed" in text
        assert "How to fix:" in text

    def test_root_cause_shown(self):
        console = recording_console()
        try:
            try:
                raise OSError("disk unplugged")
            except OSError as e:
                raise SourceFailure("filesystem", "read failed") from e
        except SourceFailure as failure:
            ErrorRenderer.render(failure, console=console, show_traceback=False)

        text = console.export_text()
        assert "Root cause: disk unplugged" in text
        assert "PS-SRC-002" in text

    def test_traceback_on_request(self):
        console = recording_console()
        try:
            raise ValueError("bad value")
        except ValueError as e:
            ErrorRenderer.render(e, console=console, show_traceback=True)

        text = console.export_text()
        assert "Traceback (--debug mode)" in text
        assert "PS-ARG-001" in text

    def test_warning_panel(self):
        console = recording_console()
        ErrorRenderer.render_warning("Source failed", "Retry", console=console)

        text = console.export_text()
        assert "Warning" in text
        assert "Suggestion: Retry" in text
