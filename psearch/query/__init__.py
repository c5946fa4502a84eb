"""
Query layer: tokenizer, parser, AST and term expansion.

    from psearch.query import QueryParser, expand_term

    node = QueryParser().parse("(fox bear)~ +den^2")
"""

from psearch.query.ast import (
    And,
    Boost,
    Leaf,
    Must,
    MustNot,
    Near,
    Node,
    Not,
    RegexTerm,
    Subtract,
    Term,
    Terms,
    escape_literal,
    leaves,
    positive_leaves,
    walk,
)
from psearch.query.context import QueryContext
from psearch.query.expander import expand_term, split_term
from psearch.query.parser import DEFAULT_BOOST, QueryParser, parse_query
from psearch.query.tokenizer import Token, TokenType, tokenize

__all__ = [
    "And",
    "Boost",
    "Leaf",
    "Must",
    "MustNot",
    "Near",
    "Node",
    "Not",
    "RegexTerm",
    "Subtract",
    "Term",
    "Terms",
    "escape_literal",
    "leaves",
    "positive_leaves",
    "walk",
    "QueryContext",
    "expand_term",
    "split_term",
    "DEFAULT_BOOST",
    "QueryParser",
    "parse_query",
    "Token",
    "TokenType",
    "tokenize",
]
