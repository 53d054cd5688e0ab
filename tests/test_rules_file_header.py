from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor

from helpers import apply_rule, make_source

from gosentinel.rules.arguments import RuleArguments
from gosentinel.rules.file_header import MISSING_HEADER_MESSAGE, FileHeaderRule, header_text


def test_no_pattern_never_fails() -> None:
    assert apply_rule(FileHeaderRule(), "package main\n") == []


def test_empty_pattern_is_treated_as_unset() -> None:
    assert apply_rule(FileHeaderRule(), "package main\n", "") == []


def test_gofmt_line_comment_matches_anchored_pattern() -> None:
    src = "// Copyright 2020 Example\n\npackage main\n"
    assert apply_rule(FileHeaderRule(), src, "^Copyright") == []


def test_missing_comments_reports_at_file_root() -> None:
    failures = apply_rule(FileHeaderRule(), "package main\n", "^Copyright")

    assert len(failures) == 1
    failure = failures[0]
    assert failure.message == MISSING_HEADER_MESSAGE
    assert failure.confidence == 1.0
    assert failure.category is None
    assert failure.location is not None
    assert failure.location.start_line == 1


def test_non_matching_header_fails() -> None:
    src = "// Package main does things.\npackage main\n"
    failures = apply_rule(FileHeaderRule(), src, "^Copyright")
    assert [f.message for f in failures] == [MISSING_HEADER_MESSAGE]


def test_only_first_group_is_considered() -> None:
    src = "// Package main does things.\n\n// Copyright 2020 Example\n\npackage main\n"
    failures = apply_rule(FileHeaderRule(), src, "Copyright")
    assert len(failures) == 1


def test_adjacent_line_comments_keep_their_separator() -> None:
    src = "// Copyright 2020\n// Example Authors\npackage main\n"
    file = make_source(src)

    assert header_text(file.comments[0]) == "Copyright 2020 Example Authors"
    assert apply_rule(FileHeaderRule(), src, "^Copyright 2020 Example") == []
    assert apply_rule(FileHeaderRule(), src, "2020 Example") == []


def test_line_comment_without_space_is_kept_verbatim() -> None:
    file = make_source("//Copyright 2020\n// Example\npackage main\n")
    assert header_text(file.comments[0]) == "Copyright 2020 Example"


def test_block_comment_markers_are_stripped() -> None:
    src = "/* Copyright 2021 Example */\npackage main\n"
    file = make_source(src)
    assert header_text(file.comments[0]) == " Copyright 2021 Example "
    assert apply_rule(FileHeaderRule(), src, "Copyright 2021") == []
    assert len(apply_rule(FileHeaderRule(), src, r"\*/")) == 1


def test_search_is_unanchored() -> None:
    src = "// SPDX: MIT, Copyright Example\npackage main\n"
    assert apply_rule(FileHeaderRule(), src, "Copyright") == []


def test_non_string_argument_is_internal_failure() -> None:
    failures = apply_rule(FileHeaderRule(), "package main\n", 42)

    assert len(failures) == 1
    failure = failures[0]
    assert failure.is_internal
    assert failure.message == 'invalid argument for "file-header" rule: argument should be a string, got int'


def test_invalid_regex_is_internal_failure() -> None:
    failures = apply_rule(FileHeaderRule(), "// hi\npackage main\n", "(")
    assert len(failures) == 1
    assert failures[0].is_internal
    assert "file-header" in failures[0].message


def test_configuration_error_is_cached_across_files() -> None:
    rule = FileHeaderRule()
    args = RuleArguments.of([["not", "a", "string"]])

    first = rule.apply(make_source("package a\n"), args)
    second = rule.apply(make_source("package b\n"), RuleArguments.of(["^Copyright"]))

    assert first[0].is_internal
    assert second[0].is_internal
    assert "got array" in second[0].message


def test_configures_once_and_is_deterministic() -> None:
    rule = FileHeaderRule()
    calls = {"count": 0}
    original = rule._configure

    def counting(arguments: RuleArguments) -> None:
        calls["count"] += 1
        original(arguments)

    rule._configure = counting  # type: ignore[method-assign]
    file = make_source("package main\n")
    args = RuleArguments.of(["^Copyright"])

    assert rule.apply(file, args) == rule.apply(file, args)
    assert calls["count"] == 1


def test_concurrent_first_use_configures_once() -> None:
    rule = FileHeaderRule()
    calls = {"count": 0}
    original = rule._configure
    lock = threading.Lock()

    def counting(arguments: RuleArguments) -> None:
        with lock:
            calls["count"] += 1
        original(arguments)

    rule._configure = counting  # type: ignore[method-assign]
    barrier = threading.Barrier(8)
    args = RuleArguments.of(["^Copyright"])

    def worker(i: int) -> int:
        barrier.wait()
        return len(rule.apply(make_source(f"package p{i}\n"), args))

    with ThreadPoolExecutor(max_workers=8) as executor:
        results = list(executor.map(worker, range(8)))

    assert results == [1] * 8
    assert calls["count"] == 1
