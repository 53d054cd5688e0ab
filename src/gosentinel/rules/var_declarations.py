from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType

from tree_sitter import Node

from gosentinel.engine.context import SourceFile
from gosentinel.engine.go_ast import expression_list, is_ident, walk
from gosentinel.engine.types import Failure
from gosentinel.rules.arguments import RuleArguments
from gosentinel.rules.base import Rule, RuleMeta

CATEGORY_ZERO_VALUE = "zero-value"
CATEGORY_TYPE_INFERENCE = "type-inference"

# Literal spellings of the zero value, by tree-sitter literal node type.
ZERO_LITERALS: Mapping[str, frozenset[str]] = MappingProxyType(
    {
        "false": frozenset({"false"}),
        "rune_literal": frozenset({"'\\x00'", "'\\000'"}),
        "interpreted_string_literal": frozenset({'""'}),
        "raw_string_literal": frozenset({"``"}),
        "int_literal": frozenset({"0"}),
        "float_literal": frozenset({"0.", "0.0"}),
        "imaginary_literal": frozenset({"0i"}),
    }
)


# Kind of the declaration group enclosing each value spec.
_GROUP_KINDS: Mapping[str, str] = MappingProxyType({"var_declaration": "var", "const_declaration": "const"})


@dataclass(frozen=True, slots=True)
class DeclarationCandidate:
    name: str
    type_node: Node
    value: Node
    group: str


class VarDeclarationsRule(Rule):
    """
    Flags `var` declarations that spell out what Go would infer anyway.

    `var x T = <zero>` should drop the initializer; `var x T = expr` where
    `expr` already has type T should drop the type.
    """

    meta = RuleMeta(
        name="var-declaration",
        title="Redundant var declaration",
        description="var declarations should not restate the zero value or a type the initializer already has.",
        default_severity="warn",
    )

    def apply(self, file: SourceFile, arguments: RuleArguments) -> list[Failure]:
        # Shared by every file of the package; only the first caller pays.
        if file.package is not None:
            file.package.type_check()

        failures: list[Failure] = []

        def visit(node: Node) -> bool:
            group = _GROUP_KINDS.get(node.type)
            if group is None:
                return True
            for spec in _value_specs(node):
                candidate = _candidate(file, spec, group=group)
                if candidate is None:
                    continue
                failure = self._check(file, candidate)
                if failure is not None:
                    failures.append(failure)
            # Initializers are not searched for nested declarations.
            return False

        walk(file.root, visit)
        return failures

    def _check(self, file: SourceFile, candidate: DeclarationCandidate) -> Failure | None:
        if candidate.group != "var":
            return None
        if is_zero_value(file, candidate.value):
            return self._failure(
                file,
                candidate.value,
                message=(
                    f"should drop = {file.render(candidate.value)} from declaration of var {candidate.name}; "
                    "it is the zero value"
                ),
                confidence=0.9,
                category=CATEGORY_ZERO_VALUE,
            )

        declared = file.type_of(candidate.type_node)
        actual = file.type_of(candidate.value)
        if declared is None or actual is None or declared != actual:
            return None
        if candidate.type_node.type == "interface_type":
            # The interface literal documents the required method set.
            return None
        default = file.is_untyped_const(candidate.value)
        if default is not None and not is_ident(candidate.type_node, default, file.source):
            # `var x int64 = 5` would become int without the type.
            return None

        return self._failure(
            file,
            candidate.type_node,
            message=(
                f"should omit type {file.render(candidate.type_node)} from declaration of var {candidate.name}; "
                "it will be inferred from the right-hand side"
            ),
            confidence=0.8,
            category=CATEGORY_TYPE_INFERENCE,
        )


def is_zero_value(file: SourceFile, node: Node) -> bool:
    if node.type == "nil":
        return True
    literals = ZERO_LITERALS.get(node.type)
    return literals is not None and file.render(node) in literals


def _value_specs(decl: Node) -> list[Node]:
    specs: list[Node] = []
    for child in decl.named_children:
        if child.type in {"var_spec", "const_spec"}:
            specs.append(child)
        elif child.type == "var_spec_list":
            specs.extend(c for c in child.named_children if c.type == "var_spec")
    return specs


def _candidate(file: SourceFile, spec: Node, *, group: str) -> DeclarationCandidate | None:
    names = spec.children_by_field_name("name")
    type_node = spec.child_by_field_name("type")
    values = expression_list(spec.child_by_field_name("value"))
    if len(names) != 1 or type_node is None or len(values) != 1:
        return None
    name = file.render(names[0])
    if name == "_":
        return None
    return DeclarationCandidate(name=name, type_node=type_node, value=values[0], group=group)
