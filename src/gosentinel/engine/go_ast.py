from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass

from tree_sitter import Node

# tree-sitter Go node types that spell a name.
IDENTIFIER_TYPES = frozenset({"identifier", "type_identifier", "field_identifier", "package_identifier"})

Visitor = Callable[[Node], bool]


@dataclass(frozen=True, slots=True)
class Comment:
    text: str
    start_line: int  # 1-based
    end_line: int  # 1-based
    node: Node


@dataclass(frozen=True, slots=True)
class CommentGroup:
    """A run of adjacent comments, grouped the way the Go parser groups them."""

    comments: tuple[Comment, ...]

    @property
    def start_line(self) -> int:
        return self.comments[0].start_line


def node_text(node: Node, source: bytes) -> str:
    return source[node.start_byte : node.end_byte].decode("utf-8", errors="replace")


def is_ident(node: Node | None, name: str, source: bytes) -> bool:
    if node is None or node.type not in IDENTIFIER_TYPES:
        return False
    return node_text(node, source) == name


def walk(node: Node, visit: Visitor) -> None:
    """
    Depth-first, pre-order traversal.

    `visit` returns True to descend into the node's children and False to skip
    the subtree.
    """

    stack = [node]
    while stack:
        current = stack.pop()
        if not visit(current):
            continue
        stack.extend(reversed(current.children))


def iter_nodes(node: Node) -> Iterator[Node]:
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children))


def expression_list(node: Node | None) -> list[Node]:
    """Return the expressions of an `expression_list` (or a lone expression)."""

    if node is None:
        return []
    if node.type == "expression_list":
        return [c for c in node.named_children if c.type != "comment"]
    return [node]


def collect_comment_groups(root: Node, source: bytes) -> tuple[CommentGroup, ...]:
    """
    Group every comment in the file.

    A comment joins the current group when nothing but whitespace separates it
    from the previous comment and it starts at most one line after the previous
    comment ends. A group that starts after code on the same line (a trailing
    comment) only extends along that same line.
    """

    nodes = sorted((n for n in iter_nodes(root) if n.type == "comment"), key=lambda n: n.start_byte)

    groups: list[CommentGroup] = []
    current: list[Comment] = []
    line_gap = 1
    prev: Node | None = None
    for node in nodes:
        comment = Comment(
            text=node_text(node, source).rstrip("\r"),
            start_line=node.start_point[0] + 1,
            end_line=node.end_point[0] + 1,
            node=node,
        )
        joins = (
            prev is not None
            and not source[prev.end_byte : node.start_byte].strip()
            and comment.start_line <= current[-1].end_line + line_gap
        )
        if not joins:
            if current:
                groups.append(CommentGroup(comments=tuple(current)))
            current = []
            line_gap = 0 if _follows_code(node, source) else 1
        current.append(comment)
        prev = node

    if current:
        groups.append(CommentGroup(comments=tuple(current)))
    return tuple(groups)


def _follows_code(node: Node, source: bytes) -> bool:
    line_start = source.rfind(b"\n", 0, node.start_byte) + 1
    return bool(source[line_start : node.start_byte].strip())
