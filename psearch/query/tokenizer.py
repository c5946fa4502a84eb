"""Query tokenizer.

Splits a query string into tokens for the parser.

Rules:
- whitespace and tabs separate tokens
- ``: \\t ~ @ ! ^ / " ( )`` end a bare word-run without being part of it
- ``+``, ``-`` and ``#`` are prefix operators only at the start of a token;
  inside a word they are ordinary characters (``foo-bar`` is one word)
- ``"..."`` is a literal; ``\\"``, ``\\n`` and ``\\t`` are unescaped, any
  other backslash pair is kept verbatim
- ``^`` may be followed directly by a number (``^3``, ``^0.5``)
- the word ``AND`` becomes its own token
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple, Union

from psearch.core.exceptions import ParseError

WORD_TERMINATORS = frozenset(':\t~@!^/"()')
PUNCTUATION = frozenset(":@/")
LITERAL_ESCAPES = {'"': '"', "n": "\n", "t": "\t"}


class TokenType(Enum):
    """Token kinds produced by tokenize()."""

    TERM = "term"
    LITERAL = "literal"
    NOT = "not"
    MUST = "must"
    MUST_NOT = "must-not"
    REGEX = "regex"
    OPEN_PAREN = "open-paren"
    CLOSE_PAREN = "close-paren"
    TILDE = "tilde"
    BOOST = "boost"
    AND = "and"
    PUNCT = "punct"


_SINGLE_CHAR_TOKENS = {
    "(": TokenType.OPEN_PAREN,
    ")": TokenType.CLOSE_PAREN,
    "~": TokenType.TILDE,
    "!": TokenType.NOT,
}

_PREFIX_TOKENS = {
    "+": TokenType.MUST,
    "-": TokenType.MUST_NOT,
    "#": TokenType.REGEX,
}


@dataclass(frozen=True)
class Token:
    """A single query token.

    ``value`` holds the text for TERM/LITERAL/PUNCT tokens and the numeric
    factor for BOOST tokens (None for a bare ``^``).
    """

    type: TokenType
    position: int
    value: Union[str, float, None] = None
    raw: str = ""

    def __str__(self) -> str:
        return self.raw or str(self.value)


def tokenize(query: str) -> List[Token]:
    """
    Convert a query string into a token list.

    Rule #2: Single pass, position strictly increases each iteration.

    Args:
        query: Raw query string

    Returns:
        Tokens in source order

    Raises:
        ParseError: On an unmatched quote or a malformed boost number
    """
    tokens: List[Token] = []
    i = 0
    length = len(query)

    while i < length:
        ch = query[i]

        if ch.isspace():
            i += 1
            continue

        if ch == '"':
            text, end = _read_literal(query, i)
            tokens.append(Token(TokenType.LITERAL, i, text, query[i:end]))
            i = end
            continue

        if ch in _SINGLE_CHAR_TOKENS:
            tokens.append(Token(_SINGLE_CHAR_TOKENS[ch], i, None, ch))
            i += 1
            continue

        if ch in _PREFIX_TOKENS:
            tokens.append(Token(_PREFIX_TOKENS[ch], i, None, ch))
            i += 1
            continue

        if ch == "^":
            factor, end = _read_boost(query, i)
            tokens.append(Token(TokenType.BOOST, i, factor, query[i:end]))
            i = end
            continue

        if ch in PUNCTUATION:
            tokens.append(Token(TokenType.PUNCT, i, ch, ch))
            i += 1
            continue

        word, end = _read_word(query, i)
        kind = TokenType.AND if word == "AND" else TokenType.TERM
        tokens.append(Token(kind, i, word, word))
        i = end

    return tokens


def _read_word(query: str, start: int) -> Tuple[str, int]:
    """Read a bare word-run starting at ``start``."""
    end = start
    while end < len(query):
        ch = query[end]
        if ch.isspace() or ch in WORD_TERMINATORS:
            break
        end += 1
    return query[start:end], end


def _read_literal(query: str, start: int) -> Tuple[str, int]:
    """
    Read a double-quoted literal whose opening quote is at ``start``.

    Returns:
        Tuple of (unescaped text, index just past the closing quote)
    """
    chars: List[str] = []
    i = start + 1
    while i < len(query):
        ch = query[i]
        if ch == "\\" and i + 1 < len(query):
            nxt = query[i + 1]
            chars.append(LITERAL_ESCAPES.get(nxt, "\\" + nxt))
            i += 2
            continue
        if ch == '"':
            return "".join(chars), i + 1
        chars.append(ch)
        i += 1

    raise ParseError(
        f"Unmatched quote starting at position {start}",
        token='"',
        position=start,
    )


def _read_boost(query: str, start: int) -> Tuple[Optional[float], int]:
    """Read ``^`` and an optional number directly after it."""
    end = start + 1
    while end < len(query) and (query[end].isdigit() or query[end] == "."):
        end += 1

    number = query[start + 1 : end]
    if not number:
        return None, end

    try:
        return float(number), end
    except ValueError:
        raise ParseError(
            f"Invalid boost factor '{number}' at position {start}",
            token=query[start:end],
            position=start,
        ) from None
