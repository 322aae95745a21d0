"""
Unit tests for resource identifier parsing and scope resolution.
"""

import pytest

from shared.errors import InvalidIdentifier
from service_security.app.rules.identifiers import (
    canonicalize, iter_scopes, join_identifier, narrow_scope, split_identifier
)


class TestSplitIdentifier:
    """Test cases for split_identifier."""

    def test_bare_path_has_no_claims(self):
        """Test splitting an identifier without a query."""
        base_path, claims = split_identifier("/reports")

        assert base_path == "/reports"
        assert dict(claims) == {}

    def test_claims_are_parsed_in_order(self):
        """Test claims are inserted left to right."""
        base_path, claims = split_identifier("/reports?dept=eng&year=2024")

        assert base_path == "/reports"
        assert list(claims.items()) == [("dept", "eng"), ("year", "2024")]

    def test_last_duplicate_wins(self):
        """Test a repeated claim name keeps the last value."""
        _, claims = split_identifier("/reports?dept=eng&dept=ops")

        assert dict(claims) == {"dept": "ops"}

    def test_value_may_contain_equals(self):
        """Test only the first '=' separates name from value."""
        _, claims = split_identifier("/q?filter=a=b")

        assert claims["filter"] == "a=b"

    def test_empty_value_is_allowed(self):
        """Test a claim with an empty value."""
        _, claims = split_identifier("/q?flag=")

        assert claims["flag"] == ""

    def test_claims_are_read_only(self):
        """Test the returned claim set cannot be mutated."""
        _, claims = split_identifier("/reports?dept=eng")

        with pytest.raises(TypeError):
            claims["dept"] = "ops"

    @pytest.mark.parametrize("identifier", [None, "", "   ", 42])
    def test_empty_identifier_rejected(self, identifier):
        """Test empty or non-string input is rejected before parsing."""
        with pytest.raises(InvalidIdentifier):
            split_identifier(identifier)

    @pytest.mark.parametrize("identifier", ["/reports?dept", "/reports?dept=eng&year", "/r?=eng"])
    def test_segment_without_name_value_rejected(self, identifier):
        """Test malformed claim segments raise instead of being dropped."""
        with pytest.raises(InvalidIdentifier) as exc_info:
            split_identifier(identifier)

        assert exc_info.value.code == "INVALID_IDENTIFIER"

    def test_empty_base_path_rejected(self):
        """Test an identifier that starts with '?' is rejected."""
        with pytest.raises(InvalidIdentifier):
            split_identifier("?dept=eng")

    @pytest.mark.parametrize("identifier", [
        "/reports",
        "/reports?dept=eng",
        "/reports?dept=eng&year=2024&dept=ops",
        "/q?filter=a=b&x=?y",
    ])
    def test_split_is_idempotent_through_join(self, identifier):
        """Test splitting, rejoining and splitting again gives the same result."""
        base_path, claims = split_identifier(identifier)

        again_base, again_claims = split_identifier(join_identifier(base_path, claims))

        assert again_base == base_path
        assert dict(again_claims) == dict(claims)


class TestCanonicalize:
    """Test cases for canonicalize."""

    def test_strips_whitespace_and_empty_segments(self):
        """Test noise around and inside the query is removed."""
        assert canonicalize("  /reports?&dept=eng&&year=2024&  ") == "/reports?dept=eng&year=2024"

    def test_dangling_question_mark_removed(self):
        """Test a '?' with nothing after it is dropped."""
        assert canonicalize("/reports?") == "/reports"

    def test_duplicates_collapse_in_first_position(self):
        """Test duplicate claims keep their first position and last value."""
        assert canonicalize("/r?a=1&b=2&a=3") == "/r?a=3&b=2"

    def test_canonicalize_is_idempotent(self):
        """Test canonicalizing twice changes nothing."""
        once = canonicalize("/r?a=1&&b=2&a=3")

        assert canonicalize(once) == once


class TestScopes:
    """Test cases for narrow_scope and iter_scopes."""

    def test_narrow_drops_last_claim(self):
        """Test the last '&' suffix is removed first."""
        assert narrow_scope("/reports?dept=eng&year=2024") == "/reports?dept=eng"

    def test_narrow_drops_query(self):
        """Test the query is removed once no '&' is left."""
        assert narrow_scope("/reports?dept=eng") == "/reports"

    def test_narrow_bare_path_has_no_scope(self):
        """Test a bare path cannot be narrowed."""
        assert narrow_scope("/reports") is None

    def test_iter_scopes_most_specific_first(self):
        """Test the full walk order."""
        assert list(iter_scopes("/reports?dept=eng&year=2024")) == [
            "/reports?dept=eng&year=2024",
            "/reports?dept=eng",
            "/reports",
        ]

    def test_ampersand_without_query(self):
        """Test '&' is stripped even when no '?' is present."""
        assert list(iter_scopes("/a&b")) == ["/a&b", "/a"]

    @pytest.mark.parametrize("identifier", [
        "/a",
        "?",
        "&&&&",
        "/a?b&c?d&e",
        "?&?&?&x=1",
        "/a?" + "&".join(f"k{i}=v" for i in range(50)),
    ])
    def test_walk_terminates_with_shrinking_scopes(self, identifier):
        """Test every step shortens the candidate and the walk is bounded."""
        scopes = list(iter_scopes(identifier))

        assert len(scopes) <= len(identifier) + 1
        for longer, shorter in zip(scopes, scopes[1:]):
            assert len(shorter) < len(longer)
        assert narrow_scope(scopes[-1]) is None
