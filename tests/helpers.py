from __future__ import annotations

from pathlib import Path

from tree_sitter import Node

from gosentinel.engine.context import SourceFile
from gosentinel.engine.go_ast import expression_list, iter_nodes
from gosentinel.engine.types import Failure
from gosentinel.rules.arguments import RuleArguments
from gosentinel.rules.base import Rule


def make_source(text: str, *, relpath: str = "main.go") -> SourceFile:
    return SourceFile.from_text(text, path=Path(relpath), relative_path=relpath)


def apply_rule(rule: Rule, text: str, *arguments: object) -> list[Failure]:
    return rule.apply(make_source(text), RuleArguments.of(arguments))


def var_spec_nodes(file: SourceFile, name: str) -> tuple[Node, Node]:
    """Return the (type, value) nodes of the single-name var spec declaring `name`."""

    for node in iter_nodes(file.root):
        if node.type != "var_spec":
            continue
        names = node.children_by_field_name("name")
        if len(names) == 1 and file.render(names[0]) == name:
            type_node = node.child_by_field_name("type")
            values = expression_list(node.child_by_field_name("value"))
            assert type_node is not None and len(values) == 1
            return type_node, values[0]
    raise AssertionError(f"no var spec for {name!r}")


def write_go(root: Path, relpath: str, content: str) -> Path:
    path = root / relpath
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path
