"""
Tests for the query tokenizer.

Organization
------------
- TestWords: bare word-runs and terminators
- TestOperators: prefix operators, boosts, groups
- TestLiterals: quoting and escapes
- TestErrors: malformed input
"""

import pytest

from psearch.core.exceptions import ParseError
from psearch.query.tokenizer import TokenType, tokenize


def types(query):
    return [token.type for token in tokenize(query)]


def values(query):
    return [token.value for token in tokenize(query)]


class TestWords:
    """Tests for bare word-runs."""

    def test_whitespace_separates_words(self):
        assert values("foo  bar\tbaz") == ["foo", "bar", "baz"]

    def test_inner_dash_and_plus_stay_in_word(self):
        """Prefix characters inside a word are ordinary characters."""
        assert values("foo-bar a+b c#d") == ["foo-bar", "a+b", "c#d"]

    def test_terminators_end_word(self):
        tokens = tokenize("foo~bar")
        assert [t.type for t in tokens] == [
            TokenType.TERM,
            TokenType.TILDE,
            TokenType.TERM,
        ]

    def test_and_keyword_is_own_token(self):
        assert types("foo AND bar")[1] is TokenType.AND

    def test_lowercase_and_is_a_term(self):
        assert types("and") == [TokenType.TERM]

    def test_positions_recorded(self):
        tokens = tokenize("ab  cd")
        assert [t.position for t in tokens] == [0, 4]

    def test_punctuation_tokens(self):
        assert types("a:b") == [TokenType.TERM, TokenType.PUNCT, TokenType.TERM]
        assert types("@") == [TokenType.PUNCT]


class TestOperators:
    """Tests for operator tokens."""

    def test_prefix_operators(self):
        assert types("!a +b -c #d") == [
            TokenType.NOT,
            TokenType.TERM,
            TokenType.MUST,
            TokenType.TERM,
            TokenType.MUST_NOT,
            TokenType.TERM,
            TokenType.REGEX,
            TokenType.TERM,
        ]

    def test_bare_boost(self):
        tokens = tokenize("foo^")
        assert tokens[1].type is TokenType.BOOST
        assert tokens[1].value is None

    def test_numeric_boost(self):
        tokens = tokenize("foo^2.5 bar^3")
        assert tokens[1].value == 2.5
        assert tokens[3].value == 3.0

    def test_group_tokens(self):
        assert types("(a b)~") == [
            TokenType.OPEN_PAREN,
            TokenType.TERM,
            TokenType.TERM,
            TokenType.CLOSE_PAREN,
            TokenType.TILDE,
        ]


class TestLiterals:
    """Tests for double-quoted literals."""

    def test_literal_keeps_spaces(self):
        tokens = tokenize('"int main ()"')
        assert len(tokens) == 1
        assert tokens[0].type is TokenType.LITERAL
        assert tokens[0].value == "int main ()"

    def test_escapes(self):
        assert values(r'"a\"b\nc\td"') == ['a"b\nc\td']

    def test_unknown_escape_kept_verbatim(self):
        assert values(r'"a\.b"') == [r"a\.b"]

    def test_literal_after_prefix(self):
        assert types('+"Foo"') == [TokenType.MUST, TokenType.LITERAL]


class TestErrors:
    """Tests for tokenizer errors."""

    def test_unmatched_quote_reports_opening_position(self):
        with pytest.raises(ParseError) as exc_info:
            tokenize('foo "bar')
        assert exc_info.value.position == 4

    def test_malformed_boost_number(self):
        with pytest.raises(ParseError) as exc_info:
            tokenize("foo^1.2.3")
        assert exc_info.value.position == 3
