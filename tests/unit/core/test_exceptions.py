"""
Tests for the psearch exception hierarchy.

Organization
------------
- TestPSearchError: base class attributes and overrides
- TestErrorInfo: get_error_info() lookups
- TestRootCause: get_root_cause() chain walking
"""

import pytest

from psearch.core.exceptions import (
    ConfigurationError,
    MissingArgumentError,
    ParseError,
    PSearchError,
    QueryError,
    SourceError,
    SourceFailure,
    StaleGenerationError,
    get_error_info,
    get_root_cause,
)


class TestPSearchError:
    """Tests for PSearchError and subclasses."""

    def test_class_defaults(self):
        error = ParseError("bad", token="AND", position=4)

        assert error.error_code == "PS-QRY-001"
        assert error.token == "AND"
        assert error.position == 4
        assert error.user_message == "bad"
        assert isinstance(error, QueryError)

    def test_instance_overrides(self):
        error = PSearchError(
            "custom", error_code="PS-X-1", how_to_fix=["do this"]
        )
        assert error.error_code == "PS-X-1"
        assert error.how_to_fix == ["do this"]
        assert PSearchError.error_code == "PS-ERR-000"

    def test_source_errors(self):
        failure = SourceFailure("ripgrep", "exit code 2")
        missing = MissingArgumentError("filesystem", "paths")

        assert str(failure) == "Source 'ripgrep' failed: exit code 2"
        assert "paths" in str(missing)
        assert isinstance(failure, SourceError)
        assert isinstance(missing, SourceError)

    def test_stale_generation(self):
        error = StaleGenerationError(2, 3)
        assert error.generation == 2
        assert error.current == 3
        assert "discarded" in str(error)


class TestErrorInfo:
    """Tests for get_error_info()."""

    @pytest.mark.parametrize(
        "exc,code",
        [
            (ParseError("x"), "PS-QRY-001"),
            (ConfigurationError("x"), "PS-CFG-001"),
            (FileNotFoundError("x"), "PS-FILE-001"),
            (PermissionError("x"), "PS-FILE-002"),
            (ValueError("x"), "PS-ARG-001"),
            (KeyError("x"), "PS-ERR-999"),
        ],
    )
    def test_error_codes(self, exc, code):
        info = get_error_info(exc)

        assert info["error_code"] == code
        assert info["why_it_happened"]
        assert info["how_to_fix"]


class TestRootCause:
    """Tests for get_root_cause()."""

    def test_follows_cause_chain(self):
        root = OSError("disk")
        try:
            try:
                raise root
            except OSError as e:
                raise SourceFailure("filesystem", "read failed") from e
        except SourceFailure as failure:
            assert get_root_cause(failure) is root
            assert failure.get_root_cause() is root

    def test_single_exception(self):
        error = ValueError("alone")
        assert get_root_cause(error) is error
