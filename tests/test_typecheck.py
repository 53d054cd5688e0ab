from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest
from helpers import make_source, var_spec_nodes

from gosentinel.engine.context import Package
from gosentinel.engine.typecheck import (
    Checker,
    Array,
    Basic,
    Interface,
    Map,
    Named,
    Pointer,
    Signature,
    Slice,
    Untyped,
    default_type,
)
from gosentinel.scanner import group_packages


def test_untyped_defaults() -> None:
    assert Untyped("int").default_name == "int"
    assert Untyped("rune").default_name == "rune"
    assert Untyped("float").default_name == "float64"
    assert Untyped("complex").default_name == "complex128"
    assert Untyped("nil").default_name is None
    assert default_type(Untyped("rune")) == Basic("int32")
    assert default_type(Untyped("nil")) is None


def test_string_forms() -> None:
    assert str(Pointer(Named("T", "p"))) == "*p.T"
    assert str(Map(Basic("string"), Slice(Basic("int")))) == "map[string][]int"
    assert str(Signature(params=(Basic("int"),), results=(Basic("bool"),))) == "func(int) bool"
    assert str(Interface()) == "interface{}"


def test_untyped_constant_takes_declared_type_in_context() -> None:
    file = make_source("package p\n\nvar x int64 = 5\n")
    type_node, value = var_spec_nodes(file, "x")

    assert file.type_of(type_node) == Basic("int64")
    assert file.type_of(value) == Basic("int64")
    assert file.is_untyped_const(value) == "int"


def test_unrepresentable_untyped_constant_has_no_type() -> None:
    file = make_source('package p\n\nvar x int = "s"\n')
    _, value = var_spec_nodes(file, "x")
    assert file.type_of(value) is None


def test_byte_and_rune_are_aliases() -> None:
    file = make_source("package p\n\nvar a byte = b\nvar b uint8 = 1\n")
    type_node, value = var_spec_nodes(file, "a")
    assert file.type_of(type_node) == Basic("uint8")
    assert file.type_of(value) == Basic("uint8")


def test_package_declarations_resolve_out_of_order() -> None:
    src = """package p

var a = b * 2
var b = Size(3)

type Size int
"""
    file = make_source(src)
    (package,) = group_packages([file])
    assert file.package is package
    info = package.type_check()
    assert info is package.type_check()

    src_check = make_source(src + "\nvar c Size = a\n")
    type_node, value = var_spec_nodes(src_check, "c")
    assert src_check.type_of(value) == Named("Size", "p")
    assert src_check.type_of(type_node) == Named("Size", "p")


def test_composite_and_index_expressions() -> None:
    src = """package p

var table = map[string][]int{"a": {1, 2}}
var row []int = table["a"]
var cell int = row[0]
var arr [2]string = [...]string{"x", "y"}
var part []string = arr[:]
"""
    file = make_source(src)
    assert file.type_of(var_spec_nodes(file, "row")[1]) == Slice(Basic("int"))
    assert file.type_of(var_spec_nodes(file, "cell")[1]) == Basic("int")
    assert file.type_of(var_spec_nodes(file, "arr")[1]) == Array(2, Basic("string"))
    assert file.type_of(var_spec_nodes(file, "part")[1]) == Slice(Basic("string"))


def test_builtins() -> None:
    src = """package p

var xs = []int{1}
var n int = len(xs)
var p *int = new(int)
var m map[string]int = make(map[string]int)
var ys []int = append(xs, 2)
"""
    file = make_source(src)
    assert file.type_of(var_spec_nodes(file, "n")[1]) == Basic("int")
    assert file.type_of(var_spec_nodes(file, "p")[1]) == Pointer(Basic("int"))
    assert file.type_of(var_spec_nodes(file, "m")[1]) == Map(Basic("string"), Basic("int"))
    assert file.type_of(var_spec_nodes(file, "ys")[1]) == Slice(Basic("int"))


def test_comparisons_are_untyped_bool() -> None:
    file = make_source("package p\n\nvar n = 3\nvar ok bool = n > 2\n")
    _, value = var_spec_nodes(file, "ok")
    assert file.type_of(value) == Basic("bool")
    assert file.is_untyped_const(value) == "bool"


def test_local_scopes_shadow_outer_names() -> None:
    src = """package p

var v = "outer"

func f() {
\tv := 1
\tif v := 2.5; v > 0 {
\t\tvar inner float64 = v
\t\t_ = inner
\t}
\tvar outer int = v
\t_ = outer
}
"""
    file = make_source(src)
    assert file.type_of(var_spec_nodes(file, "inner")[1]) == Basic("float64")
    assert file.type_of(var_spec_nodes(file, "outer")[1]) == Basic("int")


def test_multi_value_calls_and_comma_ok() -> None:
    src = """package p

func pair() (string, error) { return "", nil }

func f(m map[string]bool) {
\ts, err := pair()
\tok1, ok2 := m["k"]
\tvar a string = s
\tvar b error = err
\tvar c bool = ok2
\t_, _, _, _ = a, b, c, ok1
}
"""
    file = make_source(src)
    assert file.type_of(var_spec_nodes(file, "a")[1]) == Basic("string")
    assert file.type_of(var_spec_nodes(file, "b")[1]) == Named("error", "")
    assert file.type_of(var_spec_nodes(file, "c")[1]) == Basic("bool")


def test_imports_and_unknown_identifiers_are_unknown() -> None:
    src = """package p

import "strings"

var s string = strings.TrimSpace(" x ")
var u string = undefined
"""
    file = make_source(src)
    assert file.type_of(var_spec_nodes(file, "s")[1]) is None
    assert file.type_of(var_spec_nodes(file, "u")[1]) is None


def test_cyclic_declarations_do_not_hang() -> None:
    file = make_source("package p\n\nvar a int = b\nvar b = a\n")
    type_node, value = var_spec_nodes(file, "a")
    assert file.type_of(type_node) == Basic("int")
    # b is inferred from a, whose declared type is known.
    assert file.type_of(value) == Basic("int")


def test_package_spans_files() -> None:
    first = make_source("package p\n\ntype ID string\n", relpath="a.go")
    second = make_source('package p\n\nvar id ID = ID("x")\n', relpath="b.go")
    package = Package(name="p", directory=first.path.parent)
    package.add(first)
    package.add(second)

    type_node, value = var_spec_nodes(second, "id")
    assert second.type_of(type_node) == Named("ID", "p")
    assert second.type_of(value) == Named("ID", "p")


def test_concurrent_type_checks_run_the_checker_once(monkeypatch: pytest.MonkeyPatch) -> None:
    files = [
        make_source("package p\n\nvar a int = b\n", relpath="a.go"),
        make_source("package p\n\nvar b = 1\n", relpath="b.go"),
    ]
    (package,) = group_packages(files)

    calls = {"count": 0}
    lock = threading.Lock()
    original = Checker.check

    def counting(self: Checker):
        with lock:
            calls["count"] += 1
        time.sleep(0.05)
        return original(self)

    monkeypatch.setattr(Checker, "check", counting)
    barrier = threading.Barrier(8)
    type_node, value = var_spec_nodes(files[0], "a")

    def worker(_: int):
        barrier.wait()
        return package.type_check(), files[0].type_of(value)

    with ThreadPoolExecutor(max_workers=8) as executor:
        results = list(executor.map(worker, range(8)))

    assert calls["count"] == 1
    infos = {id(info) for info, _ in results}
    assert len(infos) == 1
    assert {t for _, t in results} == {Basic("int")}
    assert files[0].type_of(type_node) == Basic("int")


def test_standalone_file_forms_single_file_package() -> None:
    file = make_source("package solo\n\nvar n int = 1\n")
    assert file.package is None

    type_node, _ = var_spec_nodes(file, "n")
    assert file.type_of(type_node) == Basic("int")

    package = file.package
    assert package is not None
    assert package.name == "solo"
    assert package.files == [file]
    file.is_untyped_const(type_node)
    assert file.package is package
