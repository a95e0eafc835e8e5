"""
Canonical form of a descriptor tree.

`canonicalize` validates one `ProtoFile` and returns a new tree in which every
sibling list is sorted, implicit values are explicit, and annotations are gone.
Validation walks the tree in canonical order so the first reported defect is a
function of content alone.
"""

from __future__ import annotations

import math
import re
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import TypeVar

from . import descriptor as D
from .errors import Location, ValidationError, ValidationErrorKind as K


_NAME = r"[A-Za-z_][A-Za-z0-9_]*"
_DOTTED = rf"{_NAME}(?:\.{_NAME})*"

_IDENT_RE = re.compile(rf"{_NAME}\Z")
_NAMESPACE_RE = re.compile(rf"{_DOTTED}\Z")
_TYPE_REF_RE = re.compile(rf"\.?{_DOTTED}\Z")
_OPTION_PART = rf"(?:{_NAME}|\(\.?{_DOTTED}\))"
_OPTION_NAME_RE = re.compile(rf"{_OPTION_PART}(?:\.{_OPTION_PART})*\Z")
_AGGREGATE_KEY_RE = re.compile(rf"(?:{_NAME}|\[{_DOTTED}\])\Z")

_IMPORT_MODIFIERS = (None, "public", "weak")

# Numbers protoc keeps for its own use.
_IMPLEMENTATION_RESERVED = D.NumberRange(19000, 19999)

T = TypeVar("T")


def _join(scope: str, name: str) -> str:
    return f"{scope}.{name}" if scope else name


def _groups(fields: Iterable[D.FieldDecl]) -> list[tuple[str, str, object]]:
    return [(f.type.name, "group", f) for f in fields if isinstance(f.type, D.GroupType)]


def _fail(kind: K, path: str, node: object, message: str) -> ValidationError:
    ann = getattr(node, "annotation", None)
    span = ann.span if ann is not None else None
    return ValidationError(kind=kind, location=Location(path=path, span=span), message=message)


def normalize_value(value: object) -> object:
    """Normal form of one option value; unknown value types pass through untouched."""
    if isinstance(value, bool):
        return value
    if isinstance(value, bytes):
        try:
            return value.decode("utf-8")
        except UnicodeDecodeError:
            return value
    if isinstance(value, float) and not math.isfinite(value):
        if math.isnan(value):
            return D.Identifier("nan")
        return D.Identifier("inf" if value > 0 else "-inf")
    if isinstance(value, D.Aggregate):
        items = [(k, normalize_value(v)) for k, v in value.fields]
        # Stable: repeated keys keep their relative order.
        items.sort(key=lambda kv: kv[0])
        return D.Aggregate(fields=tuple(items))
    return value


def coalesce(ranges: Iterable[D.NumberRange]) -> tuple[D.NumberRange, ...]:
    """Sort ranges and merge the ones that overlap or touch."""
    out: list[D.NumberRange] = []
    for r in sorted(ranges, key=lambda r: (r.start, r.end)):
        if out and r.start <= out[-1].end + 1:
            last = out[-1]
            out[-1] = D.NumberRange(last.start, max(last.end, r.end))
        else:
            out.append(r)
    return tuple(out)


@dataclass(slots=True)
class _TypeIndex:
    """Fully qualified type names of one tree, for enum/message resolution."""

    kinds: dict[str, D.DeclKind] = field(default_factory=dict)
    packages: set[str] = field(default_factory=set)
    # Declared extension ranges of each local message, as written.
    extension_ranges: dict[str, tuple[D.NumberRange, ...]] = field(default_factory=dict)

    @classmethod
    def build(cls, package: str | None, tree: D.ProtoFile) -> _TypeIndex:
        idx = cls()
        if package:
            parts = package.split(".")
            for i in range(1, len(parts) + 1):
                idx.packages.add(".".join(parts[:i]))
        scope = package or ""
        for m in tree.messages:
            idx._add_message(scope, m)
        for e in tree.enums:
            idx.kinds[_join(scope, e.name)] = D.DeclKind.ENUM
        idx._add_groups(scope, (f for x in tree.extends for f in x.fields))
        return idx

    def _add_message(self, scope: str, msg: D.MessageDecl) -> None:
        path = _join(scope, msg.name)
        self.kinds[path] = D.DeclKind.MESSAGE
        self.extension_ranges[path] = msg.extension_ranges
        for m in msg.messages:
            self._add_message(path, m)
        for e in msg.enums:
            self.kinds[_join(path, e.name)] = D.DeclKind.ENUM
        self._add_groups(path, msg.all_fields() + tuple(f for x in msg.extends for f in x.fields))

    def _add_groups(self, scope: str, fields: Iterable[D.FieldDecl]) -> None:
        # A group's body is a message declared in the group field's scope.
        for f in fields:
            if isinstance(f.type, D.GroupType):
                self._add_message(scope, f.type.body)

    def lookup(self, name: str, scope: str) -> str | None:
        """Fully qualified name of a local type, or None if it is not declared here."""
        if name.startswith("."):
            return name[1:] if name[1:] in self.kinds else None
        first = name.split(".", 1)[0]
        parts = scope.split(".") if scope else []
        # Innermost scope outward; the first scope that knows the leading
        # component decides, as in protobuf name lookup.
        for i in range(len(parts), -1, -1):
            prefix = ".".join(parts[:i])
            head = _join(prefix, first)
            if head in self.kinds or head in self.packages:
                full = _join(prefix, name)
                return full if full in self.kinds else None
        return None

    def resolve(self, name: str, scope: str) -> D.DeclKind | None:
        full = self.lookup(name, scope)
        return self.kinds[full] if full is not None else None


@dataclass(slots=True)
class _Canonicalizer:
    syntax: D.Syntax
    types: _TypeIndex

    # -----------------------------------------------------------------------
    # Shared checks
    # -----------------------------------------------------------------------

    def ident(self, name: str, path: str, node: object) -> None:
        if not _IDENT_RE.match(name):
            raise _fail(K.MALFORMED_IDENTIFIER, path, node, f"{name!r} is not a valid identifier")

    def unique_by_name(self, items: Sequence[T], path: str, what: str, name_of: Callable[[T], str]) -> list[T]:
        ordered = sorted(items, key=name_of)
        for prev, cur in zip(ordered, ordered[1:]):
            if name_of(prev) == name_of(cur):
                name = name_of(cur)
                raise _fail(K.DUPLICATE_NAME, _join(path, name), cur, f"{what} {name!r} is declared more than once")
        return ordered

    def unique_across_kinds(self, entries: Sequence[tuple[str, str, object]], path: str) -> None:
        """Names declared in one scope must be distinct whatever their kind; the later entry is reported."""
        first: dict[str, str] = {}
        for name, what, node in sorted(entries, key=lambda e: e[0]):
            if name in first:
                raise _fail(
                    K.DUPLICATE_NAME,
                    _join(path, name),
                    node,
                    f"{what} {name!r} has the same name as {first[name]} {name!r}",
                )
            first[name] = what

    def options(self, opts: D.Options, path: str, node: object) -> D.Options:
        ordered = sorted(opts, key=lambda kv: kv[0])
        for key, _ in ordered:
            if not _OPTION_NAME_RE.match(key):
                raise _fail(K.MALFORMED_IDENTIFIER, f"{path}.option({key})", node, f"malformed option name {key!r}")
        for (prev, _), (key, _) in zip(ordered, ordered[1:]):
            if prev == key:
                raise _fail(K.DUPLICATE_OPTION, f"{path}.option({key})", node, f"option {key!r} is set more than once")
        return tuple((key, self.value(value, f"{path}.option({key})", node)) for key, value in ordered)

    def value(self, value: object, path: str, node: object) -> object:
        if isinstance(value, D.Aggregate):
            for key, inner in value.fields:
                if not _AGGREGATE_KEY_RE.match(key):
                    raise _fail(K.MALFORMED_IDENTIFIER, path, node, f"malformed aggregate field name {key!r}")
                self.value(inner, path, node)
        return normalize_value(value)

    def ranges(
        self,
        ranges: Sequence[D.NumberRange],
        path: str,
        node: object,
        *,
        lo: int,
        hi: int,
        what: str,
    ) -> tuple[D.NumberRange, ...]:
        for r in sorted(ranges, key=lambda r: (r.start, r.end)):
            if r.start > r.end:
                raise _fail(K.INVALID_NUMBER, path, node, f"{what} range {r.start} to {r.end} is empty")
            if r.start < lo or r.end > hi:
                raise _fail(K.INVALID_NUMBER, path, node, f"{what} range {r.start} to {r.end} is outside {lo}..{hi}")
        return coalesce(ranges)

    def reserved_names(self, names: Sequence[str], path: str, node: object) -> tuple[str, ...]:
        out = sorted(set(names))
        for name in out:
            if not _IDENT_RE.match(name):
                raise _fail(K.MALFORMED_IDENTIFIER, path, node, f"reserved name {name!r} is not a valid identifier")
        return tuple(out)

    def type_ref(self, name: str, path: str, node: object) -> None:
        if not _TYPE_REF_RE.match(name):
            raise _fail(K.MALFORMED_IDENTIFIER, path, node, f"malformed type reference {name!r}")

    # -----------------------------------------------------------------------
    # File
    # -----------------------------------------------------------------------

    def imports(self, imports: Sequence[D.Import], package: str) -> tuple[D.Import, ...]:
        ordered = sorted(imports, key=lambda i: i.path)
        for imp in ordered:
            if not imp.path:
                raise _fail(K.MALFORMED_IMPORT, package, imp, "import path is empty")
            if imp.modifier not in _IMPORT_MODIFIERS:
                raise _fail(K.MALFORMED_IMPORT, package, imp, f"unknown import modifier {imp.modifier!r}")
        for prev, cur in zip(ordered, ordered[1:]):
            if prev.path == cur.path:
                raise _fail(K.DUPLICATE_IMPORT, package, cur, f"{cur.path!r} is imported more than once")
        return tuple(D.Import(path=i.path, modifier=i.modifier) for i in ordered)

    # -----------------------------------------------------------------------
    # Messages
    # -----------------------------------------------------------------------

    def message(self, msg: D.MessageDecl, scope: str) -> D.MessageDecl:
        path = _join(scope, msg.name)
        self.ident(msg.name, path, msg)
        options = self.options(msg.options, path, msg)

        messages = tuple(
            self.message(m, path) for m in self.unique_by_name(msg.messages, path, "message", lambda m: m.name)
        )
        enums = tuple(self.enum(e, path) for e in self.unique_by_name(msg.enums, path, "enum", lambda e: e.name))

        reserved_numbers = self.ranges(
            msg.reserved_numbers, path, msg, lo=1, hi=D.FIELD_NUMBER_MAX, what="reserved"
        )
        extension_ranges = self.ranges(
            msg.extension_ranges, path, msg, lo=1, hi=D.FIELD_NUMBER_MAX, what="extension"
        )
        for r in reserved_numbers:
            for x in extension_ranges:
                if r.overlaps(x):
                    raise _fail(
                        K.RESERVED_NUMBER_COLLISION,
                        path,
                        msg,
                        f"reserved range {r.start} to {r.end} overlaps extension range {x.start} to {x.end}",
                    )
        reserved_names = self.reserved_names(msg.reserved_names, path, msg)

        oneofs = tuple(self.oneof(o, path) for o in self.unique_by_name(msg.oneofs, path, "oneof", lambda o: o.name))
        fields = tuple(self.field(f, path) for f in sorted(msg.fields, key=lambda f: (f.number, f.name)))

        # Collision checks run on the source fields so errors keep their spans.
        all_fields = sorted(msg.all_fields(), key=lambda f: (f.number, f.name))
        for prev, cur in zip(all_fields, all_fields[1:]):
            if prev.number == cur.number:
                raise _fail(
                    K.DUPLICATE_FIELD_NUMBER,
                    _join(path, cur.name),
                    cur,
                    f"field number {cur.number} is used by both {prev.name!r} and {cur.name!r}",
                )
        self.unique_by_name(all_fields, path, "field", lambda f: f.name)
        extends = self.extends(msg.extends, path)
        ext_fields = [f for x in msg.extends for f in x.fields]
        self.unique_across_kinds(
            [(m.name, "message", m) for m in msg.messages]
            + [(e.name, "enum", e) for e in msg.enums]
            + [(f.name, "field", f) for f in all_fields]
            + [(o.name, "oneof", o) for o in msg.oneofs]
            + [(f.name, "extension", f) for f in ext_fields]
            + _groups(all_fields + ext_fields),
            path,
        )
        for f in all_fields:
            where = _join(path, f.name)
            for r in reserved_numbers:
                if f.number in r:
                    raise _fail(K.RESERVED_NUMBER_COLLISION, where, f, f"field number {f.number} is reserved")
            for x in extension_ranges:
                if f.number in x:
                    raise _fail(
                        K.RESERVED_NUMBER_COLLISION, where, f, f"field number {f.number} is inside an extension range"
                    )
            if f.name in reserved_names:
                raise _fail(K.RESERVED_NAME_COLLISION, where, f, f"field name {f.name!r} is reserved")

        return D.MessageDecl(
            name=msg.name,
            fields=fields,
            messages=messages,
            enums=enums,
            oneofs=oneofs,
            reserved_numbers=reserved_numbers,
            reserved_names=reserved_names,
            extension_ranges=extension_ranges,
            extends=extends,
            options=options,
        )

    def oneof(self, oneof: D.OneofDecl, scope: str) -> D.OneofDecl:
        path = _join(scope, oneof.name)
        self.ident(oneof.name, path, oneof)
        options = self.options(oneof.options, path, oneof)
        fields = tuple(
            self.field(f, scope, in_oneof=True) for f in sorted(oneof.fields, key=lambda f: (f.number, f.name))
        )
        return D.OneofDecl(name=oneof.name, fields=fields, options=options)

    def field(self, f: D.FieldDecl, scope: str, *, in_oneof: bool = False, extension: bool = False) -> D.FieldDecl:
        path = _join(scope, f.name)
        self.ident(f.name, path, f)
        if not 1 <= f.number <= D.FIELD_NUMBER_MAX:
            raise _fail(K.INVALID_NUMBER, path, f, f"field number {f.number} is outside 1..{D.FIELD_NUMBER_MAX}")
        if f.number in _IMPLEMENTATION_RESERVED:
            raise _fail(K.INVALID_NUMBER, path, f, f"field number {f.number} is reserved for the protobuf implementation")

        ftype, target = self.field_type(f.type, scope, path, f)
        is_map = isinstance(ftype, D.MapType)
        if is_map and in_oneof:
            raise _fail(K.INVALID_TYPE, path, f, "map fields are not allowed in a oneof")
        if is_map and extension:
            raise _fail(K.INVALID_TYPE, path, f, "map fields cannot be extensions")

        cardinality = self.cardinality(f, path, is_map=is_map, in_oneof=in_oneof)
        if extension and cardinality is D.Cardinality.REQUIRED:
            raise _fail(K.INVALID_CARDINALITY, path, f, "extensions cannot be required")

        default = f.default_value
        if default is not None:
            if self.syntax is D.Syntax.MODERN:
                raise _fail(K.INVALID_DEFAULT, path, f, "explicit default values are not allowed in proto3")
            if cardinality is D.Cardinality.REPEATED:
                raise _fail(K.INVALID_DEFAULT, path, f, "repeated fields cannot have default values")
            if target is D.DeclKind.MESSAGE:
                raise _fail(K.INVALID_DEFAULT, path, f, "message fields cannot have default values")
            default = self.value(default, f"{path}.option(default)", f)

        json_name = f.json_name if f.json_name is not None else D.default_json_name(f.name)

        return D.FieldDecl(
            name=f.name,
            number=f.number,
            type=ftype,
            cardinality=cardinality,
            default_value=default,
            json_name=json_name,
            options=self.options(f.options, path, f),
        )

    def field_type(
        self, ftype: D.FieldType, scope: str, path: str, node: D.FieldDecl
    ) -> tuple[D.FieldType, D.DeclKind | None]:
        if isinstance(ftype, D.MapType):
            key = ftype.key
            if not isinstance(key, D.ScalarType) or key.name not in D.MAP_KEY_TYPES:
                raise _fail(K.INVALID_TYPE, path, node, f"{key} is not a valid map key type")
            if isinstance(ftype.value, D.MapType):
                raise _fail(K.INVALID_TYPE, path, node, "map values cannot be maps")
            value, _ = self.field_type(ftype.value, scope, path, node)
            return D.MapType(key=key, value=value), None
        if isinstance(ftype, D.ScalarType):
            if ftype.name not in D.SCALAR_TYPES:
                raise _fail(K.INVALID_TYPE, path, node, f"unknown scalar type {ftype.name!r}")
            return ftype, None
        if isinstance(ftype, (D.MessageRef, D.EnumRef)):
            self.type_ref(ftype.name, path, node)
            kind = self.types.resolve(ftype.name, scope)
            if kind is D.DeclKind.ENUM:
                return D.EnumRef(ftype.name), kind
            return D.MessageRef(ftype.name), kind
        if isinstance(ftype, D.GroupType):
            if self.syntax is D.Syntax.MODERN:
                raise _fail(K.INVALID_TYPE, path, node, "groups are not allowed in proto3")
            name = ftype.body.name
            if not "A" <= name[:1] <= "Z":
                raise _fail(K.MALFORMED_IDENTIFIER, path, node, f"group name {name!r} must start with a capital letter")
            if node.name != name.lower():
                raise _fail(K.MALFORMED_IDENTIFIER, path, node, f"the field of group {name!r} must be named {name.lower()!r}")
            return D.GroupType(self.message(ftype.body, scope)), D.DeclKind.MESSAGE
        raise TypeError(f"not a field type: {type(ftype)!r}")

    def cardinality(self, f: D.FieldDecl, path: str, *, is_map: bool, in_oneof: bool) -> D.Cardinality:
        c = f.cardinality
        if is_map:
            if c not in (None, D.Cardinality.REPEATED):
                raise _fail(K.INVALID_CARDINALITY, path, f, f"map fields cannot be {c.value}")
            return D.Cardinality.REPEATED
        if in_oneof:
            if c not in (None, D.Cardinality.SINGULAR):
                raise _fail(K.INVALID_CARDINALITY, path, f, f"oneof members cannot be {c.value}")
            return D.Cardinality.SINGULAR
        if self.syntax is D.Syntax.MODERN:
            if c is D.Cardinality.REQUIRED:
                raise _fail(K.INVALID_CARDINALITY, path, f, "required fields are not allowed in proto3")
            return c or D.Cardinality.SINGULAR
        if c is None or c is D.Cardinality.SINGULAR:
            return D.Cardinality.OPTIONAL
        return c

    def extends(self, blocks: Sequence[D.ExtendDecl], scope: str) -> tuple[D.ExtendDecl, ...]:
        """One block per extendee, sorted by extendee; fields sorted by number."""
        grouped: dict[str, list[D.FieldDecl]] = {}
        for block in sorted(blocks, key=lambda b: b.extendee.name):
            name = block.extendee.name
            where = _join(scope, f"extend({name})")
            self.type_ref(name, where, block)
            if self.types.resolve(name, scope) is D.DeclKind.ENUM:
                raise _fail(K.INVALID_TYPE, where, block, f"{name!r} is an enum and cannot be extended")
            grouped.setdefault(name, []).extend(block.fields)

        out: list[D.ExtendDecl] = []
        for name in sorted(grouped):
            raw = sorted(grouped[name], key=lambda f: (f.number, f.name))
            fields = tuple(self.field(f, scope, extension=True) for f in raw)
            for prev, cur in zip(raw, raw[1:]):
                if prev.number == cur.number:
                    raise _fail(
                        K.DUPLICATE_FIELD_NUMBER,
                        _join(scope, cur.name),
                        cur,
                        f"extension number {cur.number} of {name!r} is used by both {prev.name!r} and {cur.name!r}",
                    )
            target = self.types.lookup(name, scope)
            ranges = self.types.extension_ranges.get(target, ()) if target is not None else None
            if ranges is not None:
                for f in raw:
                    if not any(f.number in r for r in ranges):
                        raise _fail(
                            K.INVALID_NUMBER,
                            _join(scope, f.name),
                            f,
                            f"{f.number} is not in an extension range of {name!r}",
                        )
            # An empty block declares nothing.
            if fields:
                out.append(D.ExtendDecl(extendee=D.MessageRef(name), fields=fields))
        return tuple(out)

    # -----------------------------------------------------------------------
    # Enums and services
    # -----------------------------------------------------------------------

    def enum(self, en: D.EnumDecl, scope: str) -> D.EnumDecl:
        path = _join(scope, en.name)
        self.ident(en.name, path, en)
        options = self.options(en.options, path, en)
        reserved_numbers = self.ranges(
            en.reserved_numbers, path, en, lo=D.ENUM_NUMBER_MIN, hi=D.ENUM_NUMBER_MAX, what="reserved"
        )
        reserved_names = self.reserved_names(en.reserved_names, path, en)

        self.unique_by_name(en.values, path, "enum value", lambda v: v.name)
        values: list[D.EnumValueDecl] = []
        for v in sorted(en.values, key=lambda v: (v.number, v.name)):
            where = _join(path, v.name)
            self.ident(v.name, where, v)
            if not D.ENUM_NUMBER_MIN <= v.number <= D.ENUM_NUMBER_MAX:
                raise _fail(K.INVALID_NUMBER, where, v, f"enum value {v.number} does not fit in int32")
            if values and values[-1].number == v.number and not en.allow_alias:
                raise _fail(
                    K.DUPLICATE_ENUM_VALUE,
                    where,
                    v,
                    f"{v.name!r} reuses value {v.number} of {values[-1].name!r}; set allow_alias to permit this",
                )
            for r in reserved_numbers:
                if v.number in r:
                    raise _fail(K.RESERVED_NUMBER_COLLISION, where, v, f"enum value {v.number} is reserved")
            if v.name in reserved_names:
                raise _fail(K.RESERVED_NAME_COLLISION, where, v, f"enum value name {v.name!r} is reserved")
            values.append(D.EnumValueDecl(name=v.name, number=v.number, options=self.options(v.options, where, v)))

        return D.EnumDecl(
            name=en.name,
            values=tuple(values),
            allow_alias=en.allow_alias,
            reserved_numbers=reserved_numbers,
            reserved_names=reserved_names,
            options=options,
        )

    def service(self, svc: D.ServiceDecl, scope: str) -> D.ServiceDecl:
        path = _join(scope, svc.name)
        self.ident(svc.name, path, svc)
        options = self.options(svc.options, path, svc)
        methods: list[D.MethodDecl] = []
        for m in self.unique_by_name(svc.methods, path, "method", lambda m: m.name):
            where = _join(path, m.name)
            self.ident(m.name, where, m)
            self.type_ref(m.input_type.name, where, m)
            self.type_ref(m.output_type.name, where, m)
            methods.append(
                D.MethodDecl(
                    name=m.name,
                    input_type=D.MessageRef(m.input_type.name),
                    output_type=D.MessageRef(m.output_type.name),
                    client_streaming=m.client_streaming,
                    server_streaming=m.server_streaming,
                    options=self.options(m.options, where, m),
                )
            )
        return D.ServiceDecl(name=svc.name, methods=tuple(methods), options=options)


def canonicalize(tree: D.ProtoFile) -> D.ProtoFile:
    """Validate `tree` and return its canonical form.

    Raises `ValidationError` on the first defect found. The result carries no
    annotations and `canonicalize(canonicalize(t)) == canonicalize(t)`.
    """
    package = tree.package or None
    if package is not None and not _NAMESPACE_RE.match(package):
        raise _fail(K.MALFORMED_NAMESPACE, package, tree, f"{package!r} is not a dotted identifier path")
    scope = package or ""

    c = _Canonicalizer(syntax=tree.syntax, types=_TypeIndex.build(package, tree))
    imports = c.imports(tree.imports, scope)
    options = c.options(tree.options, scope, tree)
    messages = tuple(c.message(m, scope) for m in c.unique_by_name(tree.messages, scope, "message", lambda m: m.name))
    enums = tuple(c.enum(e, scope) for e in c.unique_by_name(tree.enums, scope, "enum", lambda e: e.name))
    services = tuple(
        c.service(s, scope) for s in c.unique_by_name(tree.services, scope, "service", lambda s: s.name)
    )
    extends = c.extends(tree.extends, scope)
    ext_fields = [f for x in tree.extends for f in x.fields]
    c.unique_across_kinds(
        [(m.name, "message", m) for m in tree.messages]
        + [(e.name, "enum", e) for e in tree.enums]
        + [(s.name, "service", s) for s in tree.services]
        + [(f.name, "extension", f) for f in ext_fields]
        + _groups(ext_fields),
        scope,
    )

    return D.ProtoFile(
        package=package,
        syntax=tree.syntax,
        imports=imports,
        messages=messages,
        enums=enums,
        services=services,
        extends=extends,
        options=options,
    )
