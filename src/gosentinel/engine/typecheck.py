from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Mapping, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, field
from types import MappingProxyType

from tree_sitter import Node

from gosentinel.engine.go_ast import expression_list, node_text

logger = logging.getLogger(__name__)


class GoType:
    __slots__ = ()


@dataclass(frozen=True, slots=True)
class Basic(GoType):
    name: str

    def __str__(self) -> str:
        return self.name


_UNTYPED_DEFAULTS: Mapping[str, str] = MappingProxyType(
    {
        "bool": "bool",
        "int": "int",
        "rune": "rune",
        "float": "float64",
        "complex": "complex128",
        "string": "string",
    }
)


@dataclass(frozen=True, slots=True)
class Untyped(GoType):
    kind: str  # bool | int | rune | float | complex | string | nil

    @property
    def default_name(self) -> str | None:
        return _UNTYPED_DEFAULTS.get(self.kind)

    def __str__(self) -> str:
        return f"untyped {self.kind}"


@dataclass(frozen=True, slots=True)
class Named(GoType):
    name: str
    package: str
    origin: str = ""  # set for types declared inside function bodies

    def __str__(self) -> str:
        return f"{self.package}.{self.name}" if self.package else self.name


@dataclass(frozen=True, slots=True)
class Pointer(GoType):
    elem: GoType

    def __str__(self) -> str:
        return f"*{self.elem}"


@dataclass(frozen=True, slots=True)
class Slice(GoType):
    elem: GoType

    def __str__(self) -> str:
        return f"[]{self.elem}"


@dataclass(frozen=True, slots=True)
class Array(GoType):
    length: int
    elem: GoType

    def __str__(self) -> str:
        return f"[{self.length}]{self.elem}"


@dataclass(frozen=True, slots=True)
class Map(GoType):
    key: GoType
    value: GoType

    def __str__(self) -> str:
        return f"map[{self.key}]{self.value}"


@dataclass(frozen=True, slots=True)
class Chan(GoType):
    elem: GoType
    direction: str = "both"  # both | send | recv

    def __str__(self) -> str:
        prefix = {"send": "chan<- ", "recv": "<-chan "}.get(self.direction, "chan ")
        return f"{prefix}{self.elem}"


@dataclass(frozen=True, slots=True)
class Signature(GoType):
    params: tuple[GoType, ...] = ()
    results: tuple[GoType, ...] = ()
    variadic: bool = False

    def __str__(self) -> str:
        params = ", ".join(str(p) for p in self.params)
        if len(self.results) == 1:
            return f"func({params}) {self.results[0]}"
        if self.results:
            return f"func({params}) ({', '.join(str(r) for r in self.results)})"
        return f"func({params})"


@dataclass(frozen=True, slots=True)
class Struct(GoType):
    fields: tuple[tuple[str, GoType, bool], ...] = ()  # (name, type, embedded)

    def __str__(self) -> str:
        return "struct{" + "; ".join(f"{n} {t}" for n, t, _ in self.fields) + "}"


@dataclass(frozen=True, slots=True)
class Interface(GoType):
    methods: tuple[tuple[str, Signature], ...] = ()
    embeds: tuple[str, ...] = ()

    def __str__(self) -> str:
        if not self.methods and not self.embeds:
            return "interface{}"
        parts = [*self.embeds, *(name for name, _ in self.methods)]
        return "interface{" + "; ".join(parts) + "}"


@dataclass(frozen=True, slots=True)
class Tuple(GoType):
    types: tuple[GoType, ...]


INVALID = Basic("invalid type")

INTEGER_TYPES = frozenset(
    {"int", "int8", "int16", "int32", "int64", "uint", "uint8", "uint16", "uint32", "uint64", "uintptr"}
)
FLOAT_TYPES = frozenset({"float32", "float64"})
COMPLEX_TYPES = frozenset({"complex64", "complex128"})
NUMERIC_TYPES = INTEGER_TYPES | FLOAT_TYPES | COMPLEX_TYPES
_BASIC_ALIASES: Mapping[str, str] = MappingProxyType({"byte": "uint8", "rune": "int32"})

BOOL = Basic("bool")
INT = Basic("int")
STRING = Basic("string")
ERROR = Named("error", "")
ANY = Interface()
_ERROR_UNDERLYING = Interface(methods=(("Error", Signature(results=(STRING,))),))

_BUILTIN_FUNCS = frozenset(
    {
        "append",
        "cap",
        "clear",
        "close",
        "complex",
        "copy",
        "delete",
        "imag",
        "len",
        "make",
        "max",
        "min",
        "new",
        "panic",
        "print",
        "println",
        "real",
        "recover",
    }
)
_UNTYPED_RANK: Mapping[str, int] = MappingProxyType({"int": 0, "rune": 1, "float": 2, "complex": 3})
_COMPARISON_OPS = frozenset({"==", "!=", "<", "<=", ">", ">="})
_LOGICAL_OPS = frozenset({"&&", "||"})
_SHIFT_OPS = frozenset({"<<", ">>"})
_NIL_ASSIGNABLE = (Pointer, Slice, Map, Chan, Signature, Interface)


def basic(name: str) -> Basic:
    return Basic(_BASIC_ALIASES.get(name, name))


def default_type(t: GoType | None) -> GoType | None:
    """Return the type an untyped constant takes when nothing else decides it."""

    if not isinstance(t, Untyped):
        return t
    name = t.default_name
    if name is None:
        return None
    return basic(name)


NodeKey = tuple[str, int, int, str]


def node_key(file_key: str, node: Node) -> NodeKey:
    return (file_key, node.start_byte, node.end_byte, node.type)


@dataclass(frozen=True, slots=True)
class TypeInfo:
    """
    Result of checking one package.

    `types` holds the type each expression takes in its context (an untyped
    constant initialising a typed variable takes the variable's type). `raw`
    holds the type an expression has on its own.
    """

    types: Mapping[NodeKey, GoType] = field(default_factory=lambda: MappingProxyType({}))
    raw: Mapping[NodeKey, GoType] = field(default_factory=lambda: MappingProxyType({}))

    def type_of(self, file_key: str, node: Node) -> GoType | None:
        key = node_key(file_key, node)
        t = self.types.get(key)
        if t is None:
            t = self.raw.get(key)
        if t is None or t == INVALID:
            return None
        return t

    def untyped_default(self, file_key: str, node: Node) -> str | None:
        t = self.raw.get(node_key(file_key, node))
        if isinstance(t, Untyped):
            return t.default_name
        return None


@dataclass(slots=True, eq=False)
class _Object:
    kind: str  # var | const | type | func | package | builtin | nil
    name: str
    type: GoType | None = None
    resolver: Callable[[], GoType | None] | None = None
    resolving: bool = False


class _Scope:
    __slots__ = ("objects", "parent")

    def __init__(self, parent: _Scope | None = None) -> None:
        self.parent = parent
        self.objects: dict[str, _Object] = {}

    def lookup(self, name: str) -> _Object | None:
        scope: _Scope | None = self
        while scope is not None:
            obj = scope.objects.get(name)
            if obj is not None:
                return obj
            scope = scope.parent
        return None

    def insert(self, obj: _Object) -> None:
        if obj.name != "_":
            self.objects[obj.name] = obj


@dataclass(frozen=True, slots=True)
class _TypeDecl:
    node: Node
    scope: _Scope
    file_key: str
    source: bytes


def _universe() -> _Scope:
    scope = _Scope()
    for name in (*INTEGER_TYPES, *FLOAT_TYPES, *COMPLEX_TYPES, "bool", "string"):
        scope.insert(_Object("type", name, Basic(name)))
    for alias, target in _BASIC_ALIASES.items():
        scope.insert(_Object("type", alias, Basic(target)))
    scope.insert(_Object("type", "error", ERROR))
    scope.insert(_Object("type", "any", ANY))
    scope.insert(_Object("type", "comparable", None))
    scope.insert(_Object("const", "true", Untyped("bool")))
    scope.insert(_Object("const", "false", Untyped("bool")))
    scope.insert(_Object("const", "iota", Untyped("int")))
    scope.insert(_Object("nil", "nil", Untyped("nil")))
    for name in _BUILTIN_FUNCS:
        scope.insert(_Object("builtin", name))
    return scope


class Checker:
    """
    Best-effort type checker for one Go package.

    It understands the package's own declarations and the predeclared
    universe. Members of imported packages, generic instantiations and
    anything else it cannot follow resolve to no type at all; callers treat
    that as "unknown" rather than as an error.
    """

    def __init__(self, package_name: str, files: Sequence[tuple[str, Node, bytes]]) -> None:
        self._package_name = package_name
        self._files = tuple(files)
        self._universe = _universe()
        self._package_scope = _Scope(self._universe)
        self._types: dict[NodeKey, GoType] = {}
        self._raw: dict[NodeKey, GoType] = {}
        self._type_decls: dict[Named, _TypeDecl] = {}
        self._underlying_cache: dict[Named, GoType | None] = {}
        self._underlying_resolving: set[Named] = set()
        self._methods: dict[str, dict[str, _Object]] = {}
        self._file_key = ""
        self._source = b""

    def check(self) -> TypeInfo:
        file_scopes: list[_Scope] = []
        for file_key, root, source in self._files:
            with self._using_file(file_key, source):
                file_scopes.append(self._collect(root))

        for (file_key, root, source), scope in zip(self._files, file_scopes, strict=True):
            with self._using_file(file_key, source):
                self._check_file(root, scope)

        logger.debug(
            "type-checked package %s: %d file(s), %d typed node(s)",
            self._package_name or "<unnamed>",
            len(self._files),
            len(self._raw),
        )
        return TypeInfo(types=MappingProxyType(dict(self._types)), raw=MappingProxyType(dict(self._raw)))

    @contextmanager
    def _using_file(self, file_key: str, source: bytes) -> Iterator[None]:
        previous = (self._file_key, self._source)
        self._file_key, self._source = file_key, source
        try:
            yield
        finally:
            self._file_key, self._source = previous

    def _text(self, node: Node) -> str:
        return node_text(node, self._source)

    def _record(self, node: Node, t: GoType | None) -> GoType | None:
        if t is not None:
            self._raw[node_key(self._file_key, node)] = t
        return t

    def _record_context(self, node: Node, t: GoType) -> None:
        self._types[node_key(self._file_key, node)] = t

    # -- package-level declarations ------------------------------------

    def _collect(self, root: Node) -> _Scope:
        file_scope = _Scope(self._package_scope)
        for decl in root.named_children:
            if decl.type == "import_declaration":
                self._collect_imports(decl, file_scope)
            elif decl.type == "type_declaration":
                self._declare_types(decl, file_scope, self._package_scope, local=False)
            elif decl.type == "function_declaration":
                self._declare_func(decl, file_scope)
            elif decl.type == "method_declaration":
                self._declare_method(decl, file_scope)
            elif decl.type == "var_declaration":
                self._declare_vars(decl, file_scope, self._package_scope)
            elif decl.type == "const_declaration":
                self._declare_consts(decl, file_scope, self._package_scope)
        return file_scope

    def _collect_imports(self, decl: Node, file_scope: _Scope) -> None:
        for spec in _descendants_of_type(decl, "import_spec"):
            name_node = spec.child_by_field_name("name")
            path_node = spec.child_by_field_name("path")
            if name_node is not None:
                if name_node.type in {"dot", "blank_identifier"}:
                    continue
                name = self._text(name_node)
            elif path_node is not None:
                name = self._text(path_node).strip("\"`").rsplit("/", 1)[-1]
            else:
                continue
            file_scope.insert(_Object("package", name))

    def _declare_types(self, decl: Node, scope: _Scope, target: _Scope, *, local: bool) -> None:
        for spec in decl.named_children:
            name_node = spec.child_by_field_name("name")
            type_node = spec.child_by_field_name("type")
            if name_node is None or type_node is None:
                continue
            name = self._text(name_node)
            if spec.type == "type_alias":
                target.insert(self._lazy("type", name, lambda n=type_node: self._resolve_type(n, scope)))
                continue
            if spec.type != "type_spec":
                continue
            origin = f"{self._file_key}:{spec.start_byte}" if local else ""
            named = Named(name, self._package_name, origin)
            self._type_decls[named] = _TypeDecl(type_node, scope, self._file_key, self._source)
            target.insert(_Object("type", name, named))

    def _declare_func(self, decl: Node, file_scope: _Scope) -> None:
        name_node = decl.child_by_field_name("name")
        if name_node is None:
            return
        name = self._text(name_node)
        if name == "init" or decl.child_by_field_name("type_parameters") is not None:
            # Generic functions need instantiation; calls to them stay unknown.
            self._package_scope.insert(_Object("func", name, None))
            return
        self._package_scope.insert(self._lazy("func", name, lambda: self._signature(decl, file_scope)))

    def _declare_method(self, decl: Node, file_scope: _Scope) -> None:
        name_node = decl.child_by_field_name("name")
        receiver = decl.child_by_field_name("receiver")
        if name_node is None or receiver is None:
            return
        base = _receiver_base_name(receiver, self._source)
        if base is None:
            return
        generic = _receiver_is_generic(receiver)
        resolver: Callable[[], GoType | None] = (lambda: None) if generic else (lambda: self._signature(decl, file_scope))
        self._methods.setdefault(base, {})[self._text(name_node)] = self._lazy("func", self._text(name_node), resolver)

    def _declare_vars(self, decl: Node, scope: _Scope, target: _Scope) -> None:
        for spec in _descendants_of_type(decl, "var_spec"):
            names = spec.children_by_field_name("name")
            type_node = spec.child_by_field_name("type")
            values = expression_list(spec.child_by_field_name("value"))
            for index, name_node in enumerate(names):
                target.insert(
                    self._lazy(
                        "var",
                        self._text(name_node),
                        lambda i=index, n=len(names), t=type_node, v=values: self._spec_var_type(t, v, i, n, scope),
                    )
                )

    def _declare_consts(self, decl: Node, scope: _Scope, target: _Scope) -> None:
        for spec, type_node, values in self._const_specs(decl):
            for index, name_node in enumerate(spec.children_by_field_name("name")):
                target.insert(
                    self._lazy(
                        "const",
                        self._text(name_node),
                        lambda i=index, t=type_node, v=values: self._spec_const_type(t, v, i, scope),
                    )
                )

    def _const_specs(self, decl: Node) -> list[tuple[Node, Node | None, list[Node]]]:
        """Pair each const spec with its effective type and values (implicit repetition)."""

        out: list[tuple[Node, Node | None, list[Node]]] = []
        last_type: Node | None = None
        last_values: list[Node] = []
        for spec in _descendants_of_type(decl, "const_spec"):
            values = expression_list(spec.child_by_field_name("value"))
            if values:
                last_type, last_values = spec.child_by_field_name("type"), values
            out.append((spec, last_type, last_values))
        return out

    def _lazy(self, kind: str, name: str, resolver: Callable[[], GoType | None]) -> _Object:
        file_key, source = self._file_key, self._source

        def resolve() -> GoType | None:
            with self._using_file(file_key, source):
                return resolver()

        return _Object(kind, name, resolver=resolve)

    def _object_type(self, obj: _Object) -> GoType | None:
        if obj.resolver is None:
            return obj.type
        if obj.resolving:
            return None
        obj.resolving = True
        try:
            obj.type = obj.resolver()
        finally:
            obj.resolving = False
            obj.resolver = None
        return obj.type

    def _spec_var_type(
        self, type_node: Node | None, values: list[Node], index: int, count: int, scope: _Scope
    ) -> GoType | None:
        if type_node is not None:
            return self._resolve_type(type_node, scope)
        if len(values) == 1 and count > 1:
            t = self._expr(values[0], scope)
            if isinstance(t, Tuple) and index < len(t.types):
                return t.types[index]
            return None
        if index < len(values):
            return default_type(self._expr(values[index], scope))
        return None

    def _spec_const_type(self, type_node: Node | None, values: list[Node], index: int, scope: _Scope) -> GoType | None:
        if type_node is not None:
            return self._resolve_type(type_node, scope)
        if index < len(values):
            return self._expr(values[index], scope)
        return None

    # -- checking bodies -------------------------------------------------

    def _check_file(self, root: Node, file_scope: _Scope) -> None:
        for decl in root.named_children:
            if decl.type in {"function_declaration", "method_declaration"}:
                self._check_function(decl, file_scope)
            elif decl.type == "var_declaration":
                self._check_var_decl(decl, file_scope, declare=False)
            elif decl.type == "const_declaration":
                self._check_const_decl(decl, file_scope, declare=False)
            elif decl.type == "type_declaration":
                for spec in decl.named_children:
                    type_node = spec.child_by_field_name("type")
                    if type_node is not None:
                        self._resolve_type(type_node, file_scope)

    def _check_function(self, node: Node, parent: _Scope) -> GoType | None:
        scope = _Scope(parent)
        type_params = node.child_by_field_name("type_parameters")
        if type_params is not None:
            for param in _descendants_of_type(type_params, "type_parameter_declaration"):
                for name_node in param.children_by_field_name("name"):
                    scope.insert(_Object("type", self._text(name_node), None))

        receiver = node.child_by_field_name("receiver")
        if receiver is not None:
            self._declare_params(receiver, scope)
        params = node.child_by_field_name("parameters")
        if params is not None:
            self._declare_params(params, scope)
        result = node.child_by_field_name("result")
        if result is not None and result.type == "parameter_list":
            self._declare_params(result, scope)

        signature = None if type_params is not None else self._signature(node, scope)
        body = node.child_by_field_name("body")
        if body is not None:
            self._check_statements(body, _Scope(scope))
        return signature

    def _declare_params(self, plist: Node, scope: _Scope) -> None:
        for param in plist.named_children:
            if param.type not in {"parameter_declaration", "variadic_parameter_declaration"}:
                continue
            type_node = param.child_by_field_name("type")
            t = self._resolve_type(type_node, scope) if type_node is not None else None
            if t is not None and param.type == "variadic_parameter_declaration":
                t = Slice(t)
            for name_node in param.children_by_field_name("name"):
                scope.insert(_Object("var", self._text(name_node), t))

    def _check_statements(self, node: Node, scope: _Scope) -> None:
        for stmt in node.named_children:
            if stmt.type == "statement_list":
                self._check_statements(stmt, scope)
            else:
                self._check_stmt(stmt, scope)

    def _check_stmt(self, stmt: Node, scope: _Scope) -> None:
        kind = stmt.type
        if kind == "var_declaration":
            self._check_var_decl(stmt, scope, declare=True)
        elif kind == "const_declaration":
            self._check_const_decl(stmt, scope, declare=True)
        elif kind == "type_declaration":
            self._declare_types(stmt, scope, scope, local=True)
        elif kind == "short_var_declaration":
            self._check_short_var_decl(stmt, scope)
        elif kind == "block":
            self._check_statements(stmt, _Scope(scope))
        elif kind == "if_statement":
            self._check_if(stmt, scope)
        elif kind == "for_statement":
            self._check_for(stmt, scope)
        elif kind in {"expression_switch_statement", "type_switch_statement", "select_statement"}:
            self._check_switch(stmt, scope)
        elif kind == "labeled_statement":
            for child in stmt.named_children:
                if child.type not in {"label_name", "comment"}:
                    self._check_stmt(child, scope)
        else:
            for child in stmt.named_children:
                if child.type == "expression_list":
                    for expr in expression_list(child):
                        self._expr(expr, scope)
                elif child.type not in {"comment", "label_name"}:
                    self._expr(child, scope)

    def _check_var_decl(self, decl: Node, scope: _Scope, *, declare: bool) -> None:
        for spec in _descendants_of_type(decl, "var_spec"):
            names = spec.children_by_field_name("name")
            type_node = spec.child_by_field_name("type")
            values = expression_list(spec.child_by_field_name("value"))
            declared = self._resolve_type(type_node, scope) if type_node is not None else None
            value_types = [self._expr(value, scope) for value in values]
            if declared is not None:
                for value, value_type in zip(values, value_types, strict=True):
                    self._record_assignment(value, value_type, declared)
            if not declare:
                continue
            for index, name_node in enumerate(names):
                t = declared
                if t is None:
                    t = _nth_value_type(value_types, index, len(names))
                scope.insert(_Object("var", self._text(name_node), default_type(t)))

    def _check_const_decl(self, decl: Node, scope: _Scope, *, declare: bool) -> None:
        for spec, type_node, values in self._const_specs(decl):
            declared = self._resolve_type(type_node, scope) if type_node is not None else None
            value_types = [self._expr(value, scope) for value in values]
            explicit = spec.child_by_field_name("value") is not None
            if declared is not None and explicit:
                for value, value_type in zip(values, value_types, strict=True):
                    self._record_assignment(value, value_type, declared)
            if not declare:
                continue
            for index, name_node in enumerate(spec.children_by_field_name("name")):
                t = declared if declared is not None else (value_types[index] if index < len(value_types) else None)
                scope.insert(_Object("const", self._text(name_node), t))

    def _record_assignment(self, value: Node, value_type: GoType | None, target: GoType) -> None:
        if not isinstance(value_type, Untyped):
            return
        converted = self._convert_untyped(value_type, target)
        self._record_context(value, converted if converted is not None else INVALID)

    def _convert_untyped(self, value: Untyped, target: GoType) -> GoType | None:
        under = self._underlying(target)
        if under is None:
            return None
        if value.kind == "nil":
            return target if isinstance(under, _NIL_ASSIGNABLE) else None
        if isinstance(under, Interface):
            return default_type(value)
        if not isinstance(under, Basic):
            return None
        name = under.name
        if value.kind == "bool":
            ok = name == "bool"
        elif value.kind == "string":
            ok = name == "string"
        elif value.kind in {"int", "rune"}:
            ok = name in NUMERIC_TYPES
        elif value.kind == "float":
            ok = name in FLOAT_TYPES or name in COMPLEX_TYPES
        else:
            ok = name in COMPLEX_TYPES
        return target if ok else None

    def _check_short_var_decl(self, stmt: Node, scope: _Scope) -> None:
        left = expression_list(stmt.child_by_field_name("left"))
        right = expression_list(stmt.child_by_field_name("right"))
        value_types = [self._expr(value, scope) for value in right]
        if len(left) == 2 and len(right) == 1 and _is_comma_ok(right[0], self._source):
            value_types = [value_types[0], BOOL]
        for index, name_node in enumerate(left):
            if name_node.type != "identifier":
                continue
            name = self._text(name_node)
            if name in scope.objects:
                continue
            t = value_types[index] if len(value_types) == len(left) else _nth_value_type(value_types, index, len(left))
            scope.insert(_Object("var", name, default_type(t)))

    def _check_if(self, stmt: Node, parent: _Scope) -> None:
        scope = _Scope(parent)
        init = stmt.child_by_field_name("initializer")
        if init is not None:
            self._check_stmt(init, scope)
        condition = stmt.child_by_field_name("condition")
        if condition is not None:
            self._expr(condition, scope)
        consequence = stmt.child_by_field_name("consequence")
        if consequence is not None:
            self._check_statements(consequence, _Scope(scope))
        alternative = stmt.child_by_field_name("alternative")
        if alternative is not None:
            self._check_stmt(alternative, scope)

    def _check_for(self, stmt: Node, parent: _Scope) -> None:
        scope = _Scope(parent)
        for child in stmt.named_children:
            if child.type == "for_clause":
                initializer = child.child_by_field_name("initializer")
                if initializer is not None:
                    self._check_stmt(initializer, scope)
                condition = child.child_by_field_name("condition")
                if condition is not None:
                    self._expr(condition, scope)
                update = child.child_by_field_name("update")
                if update is not None:
                    self._check_stmt(update, scope)
            elif child.type == "range_clause":
                self._check_range(child, scope)
            elif child.type == "block":
                self._check_statements(child, _Scope(scope))
            elif child.type != "comment":
                self._expr(child, scope)

    def _check_range(self, clause: Node, scope: _Scope) -> None:
        right = clause.child_by_field_name("right")
        ranged = self._expr(right, scope) if right is not None else None
        left = expression_list(clause.child_by_field_name("left"))
        if not any(child.type == ":=" for child in clause.children):
            for expr in left:
                self._expr(expr, scope)
            return
        key_type, value_type = self._range_types(ranged)
        for name_node, t in zip(left, (key_type, value_type), strict=False):
            if name_node.type == "identifier":
                scope.insert(_Object("var", self._text(name_node), t))

    def _range_types(self, ranged: GoType | None) -> tuple[GoType | None, GoType | None]:
        if ranged is None:
            return None, None
        under = self._underlying(ranged)
        if isinstance(under, Pointer):
            under = self._underlying(under.elem)
        if isinstance(under, (Slice, Array)):
            return INT, under.elem
        if isinstance(under, Map):
            return under.key, under.value
        if isinstance(under, Chan):
            return under.elem, None
        if under == STRING or ranged == Untyped("string"):
            return INT, basic("rune")
        if isinstance(under, Basic) and under.name in INTEGER_TYPES:
            return ranged, None
        if isinstance(ranged, Untyped) and ranged.kind in {"int", "rune"}:
            return INT, None
        return None, None

    def _check_switch(self, stmt: Node, parent: _Scope) -> None:
        scope = _Scope(parent)
        init = stmt.child_by_field_name("initializer")
        if init is not None:
            self._check_stmt(init, scope)
        value = stmt.child_by_field_name("value")
        value_type = self._expr(value, scope) if value is not None else None
        alias = expression_list(stmt.child_by_field_name("alias"))

        for clause in stmt.named_children:
            if clause.type not in {"expression_case", "type_case", "default_case", "communication_case"}:
                continue
            clause_scope = _Scope(scope)
            if clause.type == "expression_case":
                for expr in expression_list(clause.child_by_field_name("value")):
                    self._expr(expr, clause_scope)
            elif clause.type == "communication_case":
                communication = clause.child_by_field_name("communication")
                if communication is not None:
                    self._check_communication(communication, clause_scope)
            if alias and alias[0].type == "identifier":
                case_types = clause.children_by_field_name("type") if clause.type == "type_case" else []
                t = value_type
                if len(case_types) == 1 and case_types[0].type != "nil":
                    t = self._resolve_type(case_types[0], clause_scope)
                clause_scope.insert(_Object("var", self._text(alias[0]), t))
            body_start = {"value", "type", "communication"}
            for index, child in enumerate(clause.children):
                if not child.is_named or child.type == "comment":
                    continue
                if clause.field_name_for_child(index) in body_start:
                    continue
                if child.type == "statement_list":
                    self._check_statements(child, clause_scope)
                else:
                    self._check_stmt(child, clause_scope)

    def _check_communication(self, node: Node, scope: _Scope) -> None:
        if node.type != "receive_statement":
            self._check_stmt(node, scope)
            return
        right = node.child_by_field_name("right")
        received = self._expr(right, scope) if right is not None else None
        left = expression_list(node.child_by_field_name("left"))
        if not any(child.type == ":=" for child in node.children):
            for expr in left:
                self._expr(expr, scope)
            return
        types = (received, BOOL)
        for name_node, t in zip(left, types, strict=False):
            if name_node.type == "identifier":
                scope.insert(_Object("var", self._text(name_node), default_type(t)))

    # -- types -----------------------------------------------------------

    def _underlying(self, t: GoType | None) -> GoType | None:
        if not isinstance(t, Named):
            return t
        if t == ERROR:
            return _ERROR_UNDERLYING
        if t in self._underlying_cache:
            return self._underlying_cache[t]
        decl = self._type_decls.get(t)
        if decl is None or t in self._underlying_resolving:
            return None
        self._underlying_resolving.add(t)
        try:
            with self._using_file(decl.file_key, decl.source):
                resolved = self._resolve_type(decl.node, decl.scope)
            under = self._underlying(resolved) if isinstance(resolved, Named) else resolved
        finally:
            self._underlying_resolving.discard(t)
        self._underlying_cache[t] = under
        return under

    def _resolve_type(self, node: Node, scope: _Scope) -> GoType | None:
        kind = node.type
        t: GoType | None = None
        if kind in {"type_identifier", "identifier"}:
            obj = scope.lookup(self._text(node))
            if obj is not None and obj.kind == "type":
                t = self._object_type(obj)
        elif kind in {"parenthesized_type", "parenthesized_expression"}:
            inner = _first_named(node)
            t = self._resolve_type(inner, scope) if inner is not None else None
        elif kind == "pointer_type":
            inner = _first_named(node)
            elem = self._resolve_type(inner, scope) if inner is not None else None
            t = Pointer(elem) if elem is not None else None
        elif kind == "slice_type":
            elem = self._resolve_field_type(node, "element", scope)
            t = Slice(elem) if elem is not None else None
        elif kind == "array_type":
            elem = self._resolve_field_type(node, "element", scope)
            length_node = node.child_by_field_name("length")
            length = _int_literal_value(self._text(length_node)) if length_node is not None else None
            if length_node is not None and length_node.type != "int_literal":
                length = None
            t = Array(length, elem) if elem is not None and length is not None else None
        elif kind == "map_type":
            key = self._resolve_field_type(node, "key", scope)
            value = self._resolve_field_type(node, "value", scope)
            t = Map(key, value) if key is not None and value is not None else None
        elif kind == "channel_type":
            elem = self._resolve_field_type(node, "value", scope)
            t = Chan(elem, _chan_direction(node)) if elem is not None else None
        elif kind == "function_type":
            t = self._signature(node, scope)
        elif kind == "struct_type":
            t = self._struct(node, scope)
        elif kind == "interface_type":
            t = self._interface(node, scope)
        # qualified_type, generic_type, negated_type: imported or instantiated,
        # never resolved.
        return self._record(node, t)

    def _resolve_field_type(self, node: Node, field_name: str, scope: _Scope) -> GoType | None:
        child = node.child_by_field_name(field_name)
        if child is None:
            return None
        return self._resolve_type(child, scope)

    def _signature(self, node: Node, scope: _Scope) -> Signature | None:
        params_node = node.child_by_field_name("parameters")
        params: list[GoType] = []
        variadic = False
        if params_node is not None:
            parsed = self._param_types(params_node, scope)
            if parsed is None:
                return None
            params, variadic = parsed

        results: list[GoType] = []
        result_node = node.child_by_field_name("result")
        if result_node is not None:
            if result_node.type == "parameter_list":
                parsed = self._param_types(result_node, scope)
                if parsed is None:
                    return None
                results = parsed[0]
            else:
                result = self._resolve_type(result_node, scope)
                if result is None:
                    return None
                results = [result]
        return Signature(params=tuple(params), results=tuple(results), variadic=variadic)

    def _param_types(self, plist: Node, scope: _Scope) -> tuple[list[GoType], bool] | None:
        types: list[GoType] = []
        variadic = False
        for param in plist.named_children:
            if param.type not in {"parameter_declaration", "variadic_parameter_declaration"}:
                continue
            type_node = param.child_by_field_name("type")
            t = self._resolve_type(type_node, scope) if type_node is not None else None
            if t is None:
                return None
            if param.type == "variadic_parameter_declaration":
                t = Slice(t)
                variadic = True
            types.extend([t] * max(1, len(param.children_by_field_name("name"))))
        return types, variadic

    def _struct(self, node: Node, scope: _Scope) -> Struct | None:
        fields: list[tuple[str, GoType, bool]] = []
        for decl in _descendants_of_type(node, "field_declaration"):
            type_node = decl.child_by_field_name("type")
            if type_node is None:
                return None
            t = self._resolve_type(type_node, scope)
            if t is None:
                return None
            names = decl.children_by_field_name("name")
            if names:
                fields.extend((self._text(n), t, False) for n in names)
                continue
            if any(child.type == "*" for child in decl.children):
                t = Pointer(t)
            fields.append((self._text(type_node).rsplit(".", 1)[-1].split("[", 1)[0], t, True))
        return Struct(fields=tuple(fields))

    def _interface(self, node: Node, scope: _Scope) -> Interface | None:
        methods: list[tuple[str, Signature]] = []
        embeds: list[str] = []
        for elem in node.named_children:
            if elem.type in {"method_elem", "method_spec"}:
                name_node = elem.child_by_field_name("name")
                sig = self._signature(elem, scope)
                if name_node is None or sig is None:
                    return None
                methods.append((self._text(name_node), sig))
            elif elem.type != "comment":
                embeds.append(" ".join(self._text(elem).split()))
        return Interface(methods=tuple(sorted(methods, key=lambda m: m[0])), embeds=tuple(sorted(embeds)))

    def _as_type(self, node: Node, scope: _Scope) -> GoType | None:
        """Return the type `node` denotes when it is used as a type, e.g. as a conversion callee."""

        kind = node.type
        if kind == "identifier":
            obj = scope.lookup(self._text(node))
            if obj is None or obj.kind != "type":
                return None
            return self._record(node, self._object_type(obj))
        if kind == "parenthesized_expression":
            inner = _first_named(node)
            return self._as_type(inner, scope) if inner is not None else None
        if kind == "unary_expression" and self._operator(node) == "*":
            operand = node.child_by_field_name("operand")
            elem = self._as_type(operand, scope) if operand is not None else None
            return Pointer(elem) if elem is not None else None
        if kind in {
            "type_identifier",
            "pointer_type",
            "slice_type",
            "array_type",
            "map_type",
            "channel_type",
            "function_type",
            "struct_type",
            "interface_type",
            "parenthesized_type",
        }:
            return self._resolve_type(node, scope)
        return None

    # -- expressions -----------------------------------------------------

    def _expr(self, node: Node, scope: _Scope) -> GoType | None:
        return self._record(node, self._eval(node, scope))

    def _eval(self, node: Node, scope: _Scope) -> GoType | None:
        kind = node.type
        if kind == "int_literal":
            return Untyped("int")
        if kind == "float_literal":
            return Untyped("float")
        if kind == "imaginary_literal":
            return Untyped("complex")
        if kind == "rune_literal":
            return Untyped("rune")
        if kind in {"interpreted_string_literal", "raw_string_literal"}:
            return Untyped("string")
        if kind in {"true", "false"}:
            return Untyped("bool")
        if kind == "nil":
            return Untyped("nil")
        if kind == "iota":
            return Untyped("int")
        if kind == "identifier":
            return self._ident(node, scope)
        if kind == "parenthesized_expression":
            inner = _first_named(node)
            return self._expr(inner, scope) if inner is not None else None
        if kind == "unary_expression":
            return self._unary(node, scope)
        if kind == "binary_expression":
            return self._binary(node, scope)
        if kind == "call_expression":
            return self._call(node, scope)
        if kind == "type_conversion_expression":
            operand = node.child_by_field_name("operand")
            if operand is not None:
                self._expr(operand, scope)
            return self._resolve_field_type(node, "type", scope)
        if kind == "selector_expression":
            return self._selector(node, scope)
        if kind == "composite_literal":
            return self._composite(node, scope)
        if kind == "func_literal":
            return self._check_function(node, scope)
        if kind == "index_expression":
            return self._index(node, scope)
        if kind == "slice_expression":
            return self._slice(node, scope)
        if kind == "type_assertion_expression":
            operand = node.child_by_field_name("operand")
            if operand is not None:
                self._expr(operand, scope)
            return self._resolve_field_type(node, "type", scope)
        self._scan_func_literals(node, scope)
        return None

    def _scan_func_literals(self, node: Node, scope: _Scope) -> None:
        # Function literals nested in constructs the checker does not type
        # still get their bodies checked.
        for child in node.named_children:
            if child.type == "func_literal":
                self._expr(child, scope)
            else:
                self._scan_func_literals(child, scope)

    def _ident(self, node: Node, scope: _Scope) -> GoType | None:
        name = self._text(node)
        if name == "_":
            return None
        obj = scope.lookup(name)
        if obj is None or obj.kind in {"type", "package", "builtin"}:
            return None
        return self._object_type(obj)

    def _operator(self, node: Node) -> str:
        op = node.child_by_field_name("operator")
        return self._text(op) if op is not None else ""

    def _unary(self, node: Node, scope: _Scope) -> GoType | None:
        operand = node.child_by_field_name("operand")
        if operand is None:
            return None
        op = self._operator(node)
        t = self._expr(operand, scope)
        if op == "&":
            return Pointer(t) if t is not None and not isinstance(t, Untyped) else None
        if op == "*":
            under = self._underlying(t)
            return under.elem if isinstance(under, Pointer) else None
        if op == "<-":
            under = self._underlying(t)
            return under.elem if isinstance(under, Chan) else None
        if op == "!":
            return t if t is not None and (t == Untyped("bool") or self._underlying(t) == BOOL) else None
        if isinstance(t, Untyped) and t.kind in {"bool", "string", "nil"}:
            return None
        return t

    def _binary(self, node: Node, scope: _Scope) -> GoType | None:
        left_node = node.child_by_field_name("left")
        right_node = node.child_by_field_name("right")
        if left_node is None or right_node is None:
            return None
        left = self._expr(left_node, scope)
        right = self._expr(right_node, scope)
        op = self._operator(node)
        if op in _COMPARISON_OPS:
            return Untyped("bool")
        if op in _SHIFT_OPS:
            return left
        if left is None or right is None:
            return None
        if op in _LOGICAL_OPS:
            if isinstance(left, Untyped) and isinstance(right, Untyped):
                return Untyped("bool")
            return right if isinstance(left, Untyped) else left
        return self._combine(left, right)

    def _combine(self, left: GoType, right: GoType) -> GoType | None:
        if isinstance(left, Untyped) and isinstance(right, Untyped):
            if left.kind == right.kind:
                return left
            if left.kind in _UNTYPED_RANK and right.kind in _UNTYPED_RANK:
                return left if _UNTYPED_RANK[left.kind] > _UNTYPED_RANK[right.kind] else right
            return None
        if isinstance(left, Untyped):
            return right
        if isinstance(right, Untyped):
            return left
        return left if left == right else None

    def _call(self, node: Node, scope: _Scope) -> GoType | None:
        fn = node.child_by_field_name("function")
        arguments = node.child_by_field_name("arguments")
        args = [a for a in arguments.named_children if a.type != "comment"] if arguments is not None else []
        if fn is None:
            return None
        if node.child_by_field_name("type_arguments") is not None:
            for arg in args:
                self._expr(arg, scope)
            return None

        target = self._as_type(fn, scope)
        if target is not None:
            for arg in args:
                self._expr(arg, scope)
            return target

        if fn.type == "identifier":
            obj = scope.lookup(self._text(fn))
            if obj is not None and obj.kind == "builtin":
                return self._builtin(obj.name, args, scope)

        fn_type = self._expr(fn, scope)
        for arg in args:
            self._expr(arg, scope)
        if not isinstance(fn_type, Signature):
            return None
        if not fn_type.results:
            return None
        if len(fn_type.results) == 1:
            return fn_type.results[0]
        return Tuple(fn_type.results)

    def _builtin(self, name: str, args: list[Node], scope: _Scope) -> GoType | None:
        if name in {"new", "make"}:
            target = self._as_type(args[0], scope) if args else None
            for arg in args[1:]:
                self._expr(arg, scope)
            if target is None:
                return None
            return Pointer(target) if name == "new" else target

        types = [self._expr(arg, scope) for arg in args]
        if name in {"len", "cap", "copy"}:
            return INT
        if name == "append":
            first = types[0] if types else None
            return None if isinstance(first, Untyped) else first
        if name in {"min", "max"}:
            if not types or any(t is None for t in types):
                return None
            result: GoType | None = types[0]
            for t in types[1:]:
                result = self._combine(result, t) if result is not None and t is not None else None
            return result
        if name == "complex":
            if len(types) == 2 and all(isinstance(t, Untyped) for t in types):
                return Untyped("complex")
            typed = next((t for t in types if t is not None and not isinstance(t, Untyped)), None)
            if typed == Basic("float32"):
                return Basic("complex64")
            if typed == Basic("float64"):
                return Basic("complex128")
            return None
        if name in {"real", "imag"}:
            arg = types[0] if types else None
            if isinstance(arg, Untyped):
                return Untyped("float")
            if arg == Basic("complex64"):
                return Basic("float32")
            if arg == Basic("complex128"):
                return Basic("float64")
            return None
        if name == "recover":
            return ANY
        return None

    def _selector(self, node: Node, scope: _Scope) -> GoType | None:
        operand = node.child_by_field_name("operand")
        field_node = node.child_by_field_name("field")
        if operand is None or field_node is None:
            return None
        if operand.type == "identifier":
            obj = scope.lookup(self._text(operand))
            if obj is not None and obj.kind == "package":
                return None
        base = self._expr(operand, scope)
        if base is None:
            return None
        return self._member(base, self._text(field_node), depth=0)

    def _member(self, t: GoType, name: str, *, depth: int) -> GoType | None:
        if depth > 4:
            return None
        target = t.elem if isinstance(t, Pointer) else t
        if isinstance(target, Named) and not target.origin:
            method = self._methods.get(target.name, {}).get(name)
            if method is not None:
                return self._object_type(method)
        under = self._underlying(target)
        if isinstance(under, Interface):
            return dict(under.methods).get(name)
        if not isinstance(under, Struct):
            return None
        for field_name, field_type, _embedded in under.fields:
            if field_name == name:
                return field_type
        for _field_name, field_type, embedded in under.fields:
            if embedded:
                found = self._member(field_type, name, depth=depth + 1)
                if found is not None:
                    return found
        return None

    def _composite(self, node: Node, scope: _Scope) -> GoType | None:
        type_node = node.child_by_field_name("type")
        body = node.child_by_field_name("body")
        if body is not None:
            self._literal_elements(body, scope)
        if type_node is None:
            return None
        if type_node.type == "implicit_length_array_type":
            elem = self._resolve_field_type(type_node, "element", scope)
            elements = [c for c in body.named_children if c.type != "comment"] if body is not None else []
            if elem is None or any(e.type == "keyed_element" for e in elements):
                return None
            return self._record(type_node, Array(len(elements), elem))
        return self._resolve_type(type_node, scope)

    def _literal_elements(self, body: Node, scope: _Scope) -> None:
        for element in body.named_children:
            if element.type == "literal_value":
                self._literal_elements(element, scope)
            elif element.type in {"literal_element", "keyed_element"}:
                # Keys may be struct field names; only the value side is typed.
                value = element.named_children[-1] if element.named_children else None
                if value is None:
                    continue
                if value.type == "literal_element":
                    value = _first_named(value)
                if value is None:
                    continue
                if value.type == "literal_value":
                    self._literal_elements(value, scope)
                else:
                    self._expr(value, scope)
            elif element.type != "comment":
                self._expr(element, scope)

    def _index(self, node: Node, scope: _Scope) -> GoType | None:
        operand = node.child_by_field_name("operand")
        index = node.child_by_field_name("index")
        if index is not None:
            self._expr(index, scope)
        if operand is None:
            return None
        t = self._expr(operand, scope)
        if t == Untyped("string"):
            return basic("byte")
        under = self._underlying(t)
        if isinstance(under, Pointer):
            under = self._underlying(under.elem)
            if not isinstance(under, Array):
                return None
        if isinstance(under, (Slice, Array)):
            return under.elem
        if isinstance(under, Map):
            return under.value
        if under == STRING:
            return basic("byte")
        return None

    def _slice(self, node: Node, scope: _Scope) -> GoType | None:
        operand = node.child_by_field_name("operand")
        for name in ("start", "end", "capacity"):
            part = node.child_by_field_name(name)
            if part is not None:
                self._expr(part, scope)
        if operand is None:
            return None
        t = self._expr(operand, scope)
        if t == Untyped("string"):
            return STRING
        under = self._underlying(t)
        if isinstance(under, Pointer):
            elem = self._underlying(under.elem)
            return Slice(elem.elem) if isinstance(elem, Array) else None
        if isinstance(under, Array):
            return Slice(under.elem)
        if isinstance(under, Slice) or under == STRING:
            return t
        return None


def _descendants_of_type(node: Node, node_type: str) -> Iterator[Node]:
    """Yield matching descendants in document order without entering matches."""

    for child in node.named_children:
        if child.type == node_type:
            yield child
        else:
            yield from _descendants_of_type(child, node_type)


def _first_named(node: Node) -> Node | None:
    for child in node.named_children:
        if child.type != "comment":
            return child
    return None


def _nth_value_type(value_types: list[GoType | None], index: int, count: int) -> GoType | None:
    if len(value_types) == 1 and count > 1:
        t = value_types[0]
        if isinstance(t, Tuple) and index < len(t.types):
            return t.types[index]
        return None
    if index < len(value_types):
        return value_types[index]
    return None


def _is_comma_ok(node: Node, source: bytes) -> bool:
    if node.type in {"index_expression", "type_assertion_expression"}:
        return True
    if node.type == "unary_expression":
        op = node.child_by_field_name("operator")
        return op is not None and node_text(op, source) == "<-"
    return False


def _chan_direction(node: Node) -> str:
    tokens = [child.type for child in node.children if not child.is_named]
    if tokens[:1] == ["<-"]:
        return "recv"
    if tokens[:2] == ["chan", "<-"]:
        return "send"
    return "both"


def _receiver_base_name(receiver: Node, source: bytes) -> str | None:
    for param in receiver.named_children:
        if param.type != "parameter_declaration":
            continue
        type_node = param.child_by_field_name("type")
        while type_node is not None and type_node.type in {"pointer_type", "parenthesized_type"}:
            type_node = _first_named(type_node)
        if type_node is not None and type_node.type == "generic_type":
            type_node = type_node.child_by_field_name("type")
        if type_node is not None and type_node.type == "type_identifier":
            return node_text(type_node, source)
    return None


def _receiver_is_generic(receiver: Node) -> bool:
    return next(_descendants_of_type(receiver, "generic_type"), None) is not None


def _int_literal_value(text: str) -> int | None:
    digits = text.replace("_", "").lower()
    try:
        if digits.startswith(("0x", "0o", "0b")):
            return int(digits, 0)
        if len(digits) > 1 and digits.startswith("0"):
            return int(digits, 8)
        return int(digits, 10)
    except ValueError:
        return None
