from __future__ import annotations

import logging
import re

from gosentinel.engine.context import SourceFile
from gosentinel.engine.go_ast import CommentGroup
from gosentinel.engine.types import Failure
from gosentinel.rules.arguments import ConfigurationError, RuleArguments
from gosentinel.rules.base import ConfigureOnce, Rule, RuleMeta, internal_failure

logger = logging.getLogger(__name__)

MISSING_HEADER_MESSAGE = "the file doesn't have an appropriate header"


class FileHeaderRule(Rule):
    """
    Requires the first comment group of every file to match a pattern.

    Argument 0 is a regular expression searched (unanchored) in the text of
    the file's first comment group. Without it the rule does nothing.
    """

    meta = RuleMeta(
        name="file-header",
        title="File header",
        description="The first comment of the file must match the configured header pattern.",
        default_severity="warn",
    )

    def __init__(self) -> None:
        self._once = ConfigureOnce()
        self._pattern: re.Pattern[str] | None = None

    def _configure(self, arguments: RuleArguments) -> None:
        header = arguments.string_at(0, rule=self.name)
        if not header:
            return
        try:
            self._pattern = re.compile(header)
        except re.error as exc:
            raise ConfigurationError(f'invalid argument for "{self.name}" rule: cannot compile {header!r}: {exc}') from exc
        logger.debug("%s: using header pattern %r", self.name, header)

    def apply(self, file: SourceFile, arguments: RuleArguments) -> list[Failure]:
        try:
            self._once.run(lambda: self._configure(arguments))
        except ConfigurationError as exc:
            return [internal_failure(file, exc)]

        if self._pattern is None:
            return []

        if not file.comments or not file.comments[0].comments:
            return [self._missing(file)]

        if self._pattern.search(header_text(file.comments[0])) is None:
            return [self._missing(file)]
        return []

    def _missing(self, file: SourceFile) -> Failure:
        return self._failure(file, file.root, message=MISSING_HEADER_MESSAGE, confidence=1.0)


def header_text(group: CommentGroup) -> str:
    """
    Concatenate the comments of `group` with their comment markers removed.

    Line comments keep the space after `//`, so `// a` + `// b` reads
    `a b`. Only the space opening a line-comment header is dropped, which
    lets `^Copyright` match `// Copyright ...`.
    """

    parts: list[str] = []
    for comment in group.comments:
        text = comment.text
        if text.startswith("/*"):
            text = text[2:]
            if text.endswith("*/"):
                text = text[:-2]
        elif text.startswith("//"):
            text = text[2:]
        parts.append(text)
    joined = "".join(parts)
    if group.comments and group.comments[0].text.startswith("// "):
        joined = joined[1:]
    return joined
