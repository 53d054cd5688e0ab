from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path

from tree_sitter import Node, Tree

from gosentinel.engine.go_ast import CommentGroup, collect_comment_groups, node_text
from gosentinel.engine.tree_sitter import parse_go
from gosentinel.engine.typecheck import Checker, GoType, TypeInfo
from gosentinel.suppressions import Suppressions, parse_suppressions

logger = logging.getLogger(__name__)


@dataclass(slots=True, eq=False)
class Package:
    """
    All files of one Go package: same directory and same package clause.

    The type check runs lazily, at most once, the first time a rule asks for
    type information. Concurrent callers block until it has finished.
    """

    name: str
    directory: Path
    files: list[SourceFile] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)
    _info: TypeInfo | None = field(default=None, repr=False)

    def add(self, file: SourceFile) -> None:
        file.package = self
        self.files.append(file)

    def type_check(self) -> TypeInfo:
        info = self._info
        if info is not None:
            return info
        with self._lock:
            if self._info is None:
                self._info = self._run_checker()
            return self._info

    def _run_checker(self) -> TypeInfo:
        checker = Checker(self.name, [(f.key, f.root, f.source) for f in self.files])
        try:
            return checker.check()
        except RecursionError:
            logger.warning("type check of package %s in %s was too deeply nested; types unavailable", self.name, self.directory)
            return TypeInfo()

    def type_of(self, file: SourceFile, node: Node) -> GoType | None:
        return self.type_check().type_of(file.key, node)

    def is_untyped_const(self, file: SourceFile, node: Node) -> str | None:
        return self.type_check().untyped_default(file.key, node)


@dataclass(slots=True, eq=False)
class SourceFile:
    """
    One parsed Go compilation unit, shared read-only by every rule.
    """

    path: Path
    relative_path: str
    text: str
    source: bytes
    tree: Tree
    comments: tuple[CommentGroup, ...]
    suppressions: Suppressions
    package: Package | None = None

    @classmethod
    def from_text(cls, text: str, *, path: Path, relative_path: str | None = None) -> SourceFile:
        source = text.encode("utf-8")
        tree = parse_go(source)
        return cls(
            path=path,
            relative_path=relative_path if relative_path is not None else path.as_posix(),
            text=text,
            source=source,
            tree=tree,
            comments=collect_comment_groups(tree.root_node, source),
            suppressions=parse_suppressions(text.splitlines()),
        )

    @property
    def key(self) -> str:
        return self.relative_path

    @property
    def root(self) -> Node:
        return self.tree.root_node

    @property
    def package_name(self) -> str:
        for child in self.root.named_children:
            if child.type == "package_clause":
                for ident in child.named_children:
                    if ident.type == "package_identifier":
                        return self.render(ident)
        return ""

    def render(self, node: Node) -> str:
        return node_text(node, self.source)

    def type_of(self, node: Node) -> GoType | None:
        return self._package().type_of(self, node)

    def is_untyped_const(self, node: Node) -> str | None:
        return self._package().is_untyped_const(self, node)

    def _package(self) -> Package:
        if self.package is not None:
            return self.package
        # Files built on their own form a single-file package.
        package = Package(name=self.package_name, directory=self.path.parent)
        package.add(self)
        return package
