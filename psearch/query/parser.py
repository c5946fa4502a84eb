"""Query parser for boolean, proximity and boost operators.

Grammar (one token of lookahead, no backtracking):

    query      := statement*
    statement  := [prefix] atom postfix*
    prefix     := "!" | "+" | "-" | "#"
    atom       := TERM | LITERAL | "(" (TERM | LITERAL)+ ")"
    postfix    := "~" | "^" [number]

Examples:
    foo^3           Boost(Term("foo"), 3.0)
    (fox bear)~     Near((Term("fox"), Term("bear")))
    +"int main ()"  Must(Term("int main ()", literal=True))
    #get.*Name      RegexTerm("get.*Name")

The ``AND`` keyword is tokenized but not part of the grammar; it is
reported as an unexpected token.
"""

from __future__ import annotations

from typing import List, Optional, Tuple

from psearch.core.exceptions import ParseError
from psearch.core.logging import get_logger
from psearch.query.ast import (
    And,
    Boost,
    Must,
    MustNot,
    Near,
    Node,
    Not,
    RegexTerm,
    Subtract,
    Term,
    Terms,
)
from psearch.query.tokenizer import Token, TokenType, tokenize

logger = get_logger(__name__)

DEFAULT_BOOST = 1.3

PREFIX_OPERATORS = frozenset(
    [TokenType.NOT, TokenType.MUST, TokenType.MUST_NOT, TokenType.REGEX]
)
GROUP_ELEMENTS = frozenset([TokenType.TERM, TokenType.LITERAL])


class _TokenStream:
    """Token cursor with a single token of lookahead."""

    def __init__(self, tokens: List[Token]) -> None:
        self._tokens = tokens
        self._index = 0

    def peek(self) -> Optional[Token]:
        if self._index < len(self._tokens):
            return self._tokens[self._index]
        return None

    def next(self) -> Optional[Token]:
        token = self.peek()
        if token is not None:
            self._index += 1
        return token

    def at_end(self) -> bool:
        return self._index >= len(self._tokens)


class QueryParser:
    """Parse query strings into immutable AST nodes."""

    def __init__(self, default_boost: float = DEFAULT_BOOST) -> None:
        """Initialize parser.

        Args:
            default_boost: Factor used for a bare ``^`` postfix
        """
        assert default_boost > 0, "default_boost must be positive"
        self.default_boost = default_boost

    def parse(self, query: str) -> Node:
        """
        Parse a query string.

        Rule #1: Single left-to-right pass
        Rule #7: Parameter validation

        Args:
            query: Raw query string

        Returns:
            Root node: the single statement, or Terms over all statements

        Raises:
            ParseError: On any grammar violation or an empty query
        """
        stream = _TokenStream(tokenize(query))
        statements: List[Node] = []
        while not stream.at_end():
            statements.append(self._parse_statement(stream))

        if not statements:
            raise ParseError("Empty query", position=0)

        logger.debug("Parsed query", query=query, statements=len(statements))
        if len(statements) == 1:
            return statements[0]
        return Terms(tuple(statements))

    def _parse_statement(self, stream: _TokenStream) -> Node:
        """Parse ``[prefix] atom postfix*``."""
        prefix = None
        token = stream.peek()
        if token is not None and token.type in PREFIX_OPERATORS:
            prefix = stream.next()

        node = self._parse_modified_atom(stream, after=prefix)
        if prefix is None:
            return node
        return self._apply_prefix(prefix, node)

    def _apply_prefix(self, prefix: Token, node: Node) -> Node:
        """Wrap a node in the operator named by its prefix token."""
        if prefix.type is TokenType.NOT:
            return Not(node)
        if prefix.type is TokenType.MUST:
            return Must(node)
        if prefix.type is TokenType.MUST_NOT:
            return MustNot(node)

        # '#': only a plain term may be reinterpreted as a regex
        if not isinstance(node, Term) or node.literal:
            raise ParseError(
                f"Regex tag '#' at position {prefix.position} must directly "
                "precede a single term",
                token="#",
                position=prefix.position,
            )
        return RegexTerm(node.text)

    def _parse_modified_atom(
        self, stream: _TokenStream, after: Optional[Token]
    ) -> Node:
        """Parse an atom followed by any number of ``~`` / ``^`` postfixes."""
        node, group = self._parse_atom(stream, after)

        while True:
            token = stream.peek()
            if token is None:
                break
            if token.type is TokenType.TILDE:
                stream.next()
                node = Near(group) if group else Near((node,))
                group = None
            elif token.type is TokenType.BOOST:
                stream.next()
                factor = token.value if token.value is not None else self.default_boost
                node = Boost(node, float(factor))
                group = None
            else:
                break

        return node

    def _parse_atom(
        self, stream: _TokenStream, after: Optional[Token]
    ) -> Tuple[Node, Optional[Tuple[Node, ...]]]:
        """
        Parse a single atom.

        Returns:
            Tuple of (node, group children if the atom was a group)
        """
        token = stream.next()
        if token is None:
            where = f" after '{after}'" if after is not None else ""
            raise ParseError(f"Unexpected end of query{where}")

        if token.type in GROUP_ELEMENTS:
            return self._element(token), None

        if token.type is TokenType.OPEN_PAREN:
            children = self._parse_group(stream, token)
            node = children[0] if len(children) == 1 else And(children)
            return node, children

        raise _unexpected(token)

    def _parse_group(self, stream: _TokenStream, opening: Token) -> Tuple[Node, ...]:
        """Parse bare words and literals up to the closing parenthesis."""
        children: List[Node] = []
        while True:
            token = stream.next()
            if token is None:
                raise ParseError(
                    f"Unclosed parenthesis at position {opening.position}",
                    token="(",
                    position=opening.position,
                )
            if token.type is TokenType.CLOSE_PAREN:
                break
            if token.type not in GROUP_ELEMENTS:
                raise _unexpected(token)
            children.append(self._element(token))

        if not children:
            raise ParseError(
                f"Empty group at position {opening.position}",
                token="()",
                position=opening.position,
            )
        return tuple(children)

    @staticmethod
    def _element(token: Token) -> Term:
        if token.type is TokenType.LITERAL and not token.value:
            raise ParseError(
                f"Empty literal at position {token.position}",
                token='""',
                position=token.position,
            )
        return Term(str(token.value), literal=token.type is TokenType.LITERAL)

    def to_query_string(self, node: Node) -> str:
        """
        Render a parsed tree back into query syntax.

        Only nodes the grammar can produce are supported.

        Raises:
            ValueError: For Subtract nodes or flagged regex leaves
        """
        if isinstance(node, Term):
            return _quote(node.text) if node.literal else node.text
        if isinstance(node, RegexTerm):
            if node.case_insensitive or node.word_bounded:
                raise ValueError("Regex leaf flags have no query syntax")
            return "#" + _regex_text(node.pattern)
        if isinstance(node, Terms):
            return " ".join(self.to_query_string(c) for c in node.children)
        if isinstance(node, And):
            return "(" + " ".join(self.to_query_string(c) for c in node.children) + ")"
        if isinstance(node, Near):
            if len(node.children) == 1:
                return self.to_query_string(node.children[0]) + "~"
            return "(" + " ".join(self.to_query_string(c) for c in node.children) + ")~"
        if isinstance(node, Not):
            return "!" + self.to_query_string(node.child)
        if isinstance(node, Must):
            return "+" + self.to_query_string(node.child)
        if isinstance(node, MustNot):
            return "-" + self.to_query_string(node.child)
        if isinstance(node, Boost):
            return self.to_query_string(node.child) + "^" + _format_factor(node.factor)
        if isinstance(node, Subtract):
            raise ValueError("Subtract nodes have no query syntax")
        raise TypeError(f"Not a query node: {node!r}")


def _unexpected(token: Token) -> ParseError:
    return ParseError(
        f"Unexpected token '{token}' at position {token.position}",
        token=str(token),
        position=token.position,
    )


def _quote(text: str) -> str:
    escaped = text.replace('"', '\\"')
    return '"' + escaped.replace("\n", "\\n").replace("\t", "\\t") + '"'


def _regex_text(pattern: str) -> str:
    if any(ch.isspace() or ch in ':~@!^/"()' for ch in pattern):
        return _quote(pattern)
    return pattern


def _format_factor(factor: float) -> str:
    if factor == int(factor):
        return str(int(factor))
    return repr(factor)


def parse_query(query: str, default_boost: float = DEFAULT_BOOST) -> Node:
    """Convenience wrapper around QueryParser.parse()."""
    return QueryParser(default_boost).parse(query)
