from __future__ import annotations

import threading
from functools import lru_cache

import tree_sitter_go
from tree_sitter import Language, Parser, Tree


class TreeSitterError(RuntimeError):
    """Raised when the Go grammar cannot be loaded or source cannot be parsed."""


@lru_cache(maxsize=1)
def go_language() -> Language:
    try:
        return Language(tree_sitter_go.language())
    except (TypeError, ValueError) as exc:  # pragma: no cover (depends on installed grammar)
        raise TreeSitterError("tree-sitter Go grammar is not compatible with the installed tree-sitter") from exc


_PARSER_LOCAL = threading.local()


def _get_parser() -> Parser:
    """
    Return the calling thread's Go parser.

    tree-sitter Parser objects are not thread-safe; sharing a single cached
    Parser across threads can lead to crashes or corrupted parse output.
    """

    parser: Parser | None = getattr(_PARSER_LOCAL, "parser", None)
    if parser is None:
        parser = Parser(go_language())
        _PARSER_LOCAL.parser = parser
    return parser


def parse_go(source: bytes) -> Tree:
    """
    Parse Go source with tree-sitter.

    Syntax errors do not raise: tree-sitter recovers and marks the damaged
    region with ERROR nodes.
    """

    try:
        return _get_parser().parse(source)
    except (ValueError, TypeError) as exc:
        raise TreeSitterError(f"failed to parse Go source: {exc}") from exc
