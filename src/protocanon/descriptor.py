"""
Descriptor tree: the structured form of one schema file.

Every node is an immutable value. Source positions and comments ride along in
`annotation`, which is excluded from equality and dropped by canonicalization.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from .spans import Annotation


class Syntax(str, Enum):
    LEGACY = "proto2"
    MODERN = "proto3"


class Cardinality(str, Enum):
    SINGULAR = "singular"
    OPTIONAL = "optional"
    REPEATED = "repeated"
    REQUIRED = "required"


class DeclKind(Enum):
    """What a type name resolves to."""

    MESSAGE = "message"
    ENUM = "enum"


# Largest field number; `max` in message reserved/extension ranges.
FIELD_NUMBER_MAX = 536870911
# `max` in enum reserved ranges.
ENUM_NUMBER_MAX = 2**31 - 1
ENUM_NUMBER_MIN = -(2**31)

SCALAR_TYPES: frozenset[str] = frozenset(
    {
        "double",
        "float",
        "int32",
        "int64",
        "uint32",
        "uint64",
        "sint32",
        "sint64",
        "fixed32",
        "fixed64",
        "sfixed32",
        "sfixed64",
        "bool",
        "string",
        "bytes",
    }
)

MAP_KEY_TYPES: frozenset[str] = SCALAR_TYPES - {"double", "float", "bytes"}


# ---------------------------------------------------------------------------
# Option values
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Identifier:
    """A bare identifier constant, e.g. `SPEED`, `inf` or `my.pkg.ENUM_VALUE`."""

    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True, slots=True)
class Aggregate:
    """A text-format message literal: `{ a: 1 b { c: "x" } }`.

    Repeated keys are kept as separate entries in source order.
    """

    fields: tuple[tuple[str, "OptionValue"], ...] = ()


# `bytes` holds string literals that are not valid UTF-8.
OptionValue = bool | int | float | str | bytes | Identifier | Aggregate
Options = tuple[tuple[str, OptionValue], ...]


# ---------------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ScalarType:
    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True, slots=True)
class MessageRef:
    """A reference to a message type by (possibly dotted, possibly absolute) name."""

    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True, slots=True)
class EnumRef:
    name: str

    def __str__(self) -> str:
        return self.name


ValueType = ScalarType | MessageRef | EnumRef


@dataclass(frozen=True, slots=True)
class MapType:
    key: ScalarType
    value: ValueType

    def __str__(self) -> str:
        return f"map<{self.key}, {self.value}>"


@dataclass(frozen=True, slots=True)
class GroupType:
    """A proto2 group: a field whose message type is declared inline.

    The field is named after the group, lowercased; `body` is the message.
    """

    body: "MessageDecl"

    @property
    def name(self) -> str:
        return self.body.name

    def __str__(self) -> str:
        return f"group {self.body.name}"


FieldType = ScalarType | MessageRef | EnumRef | MapType | GroupType


@dataclass(frozen=True, slots=True)
class NumberRange:
    """Inclusive range of field or enum numbers; a single number has start == end."""

    start: int
    end: int

    def __contains__(self, number: int) -> bool:
        return self.start <= number <= self.end

    def overlaps(self, other: "NumberRange") -> bool:
        return self.start <= other.end and other.start <= self.end


# ---------------------------------------------------------------------------
# Declarations
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class FieldDecl:
    name: str
    number: int
    type: FieldType
    cardinality: Cardinality | None = None  # None: no label in source
    default_value: OptionValue | None = None
    json_name: str | None = None
    options: Options = ()
    annotation: Annotation | None = field(default=None, compare=False)


@dataclass(frozen=True, slots=True)
class OneofDecl:
    name: str
    fields: tuple[FieldDecl, ...] = ()
    options: Options = ()
    annotation: Annotation | None = field(default=None, compare=False)


@dataclass(frozen=True, slots=True)
class EnumValueDecl:
    name: str
    number: int
    options: Options = ()
    annotation: Annotation | None = field(default=None, compare=False)


@dataclass(frozen=True, slots=True)
class EnumDecl:
    name: str
    values: tuple[EnumValueDecl, ...] = ()
    allow_alias: bool = False
    reserved_numbers: tuple[NumberRange, ...] = ()
    reserved_names: tuple[str, ...] = ()
    options: Options = ()
    annotation: Annotation | None = field(default=None, compare=False)


@dataclass(frozen=True, slots=True)
class ExtendDecl:
    """`extend Foo { ... }`: fields declared here, numbered in Foo's extension ranges."""

    extendee: MessageRef
    fields: tuple[FieldDecl, ...] = ()
    annotation: Annotation | None = field(default=None, compare=False)


@dataclass(frozen=True, slots=True)
class MessageDecl:
    name: str
    fields: tuple[FieldDecl, ...] = ()  # fields outside any oneof
    messages: tuple["MessageDecl", ...] = ()
    enums: tuple[EnumDecl, ...] = ()
    oneofs: tuple[OneofDecl, ...] = ()
    reserved_numbers: tuple[NumberRange, ...] = ()
    reserved_names: tuple[str, ...] = ()
    extension_ranges: tuple[NumberRange, ...] = ()
    extends: tuple[ExtendDecl, ...] = ()
    options: Options = ()
    annotation: Annotation | None = field(default=None, compare=False)

    def all_fields(self) -> tuple[FieldDecl, ...]:
        return self.fields + tuple(f for o in self.oneofs for f in o.fields)


@dataclass(frozen=True, slots=True)
class MethodDecl:
    name: str
    input_type: MessageRef
    output_type: MessageRef
    client_streaming: bool = False
    server_streaming: bool = False
    options: Options = ()
    annotation: Annotation | None = field(default=None, compare=False)


@dataclass(frozen=True, slots=True)
class ServiceDecl:
    name: str
    methods: tuple[MethodDecl, ...] = ()
    options: Options = ()
    annotation: Annotation | None = field(default=None, compare=False)


Declaration = MessageDecl | EnumDecl | ServiceDecl


@dataclass(frozen=True, slots=True)
class Import:
    path: str
    modifier: str | None = None  # "weak" | "public" | None
    annotation: Annotation | None = field(default=None, compare=False)


@dataclass(frozen=True, slots=True)
class ProtoFile:
    package: str | None = None
    syntax: Syntax = Syntax.LEGACY
    imports: tuple[Import, ...] = ()
    messages: tuple[MessageDecl, ...] = ()
    enums: tuple[EnumDecl, ...] = ()
    services: tuple[ServiceDecl, ...] = ()
    extends: tuple[ExtendDecl, ...] = ()
    options: Options = ()
    annotation: Annotation | None = field(default=None, compare=False)

    def declarations(self) -> tuple[Declaration, ...]:
        """Top-level declarations in kind order (messages, enums, services)."""
        return self.messages + self.enums + self.services


def default_json_name(field_name: str) -> str:
    """Derive the JSON name protoc would assign: `foo_bar_baz` -> `fooBarBaz`."""
    out: list[str] = []
    upper_next = False
    for ch in field_name:
        if ch == "_":
            upper_next = True
        elif upper_next:
            out.append(ch.upper())
            upper_next = False
        else:
            out.append(ch)
    return "".join(out)
