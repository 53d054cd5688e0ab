from __future__ import annotations

from gosentinel.rules.base import Rule
from gosentinel.rules.file_header import FileHeaderRule
from gosentinel.rules.var_declarations import VarDeclarationsRule


def builtin_rules() -> tuple[Rule, ...]:
    """
    Return fresh instances of every built-in rule, sorted by name.

    Rules remember their configuration once it is resolved, so each lint run
    gets its own instances.
    """

    rules: list[Rule] = [FileHeaderRule(), VarDeclarationsRule()]
    by_name: dict[str, Rule] = {}
    for rule in rules:
        if rule.name in by_name:  # pragma: no cover
            raise RuntimeError(f"Duplicate rule name: {rule.name}")
        by_name[rule.name] = rule
    return tuple(by_name[k] for k in sorted(by_name))
