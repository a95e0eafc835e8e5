"""
Content fingerprints for canonical descriptor trees.

The digest is SHA-256 over a tagged, length-prefixed byte encoding of the tree
structure. Rendered text plays no part, so formatting changes never move a
fingerprint. The encoding is unambiguous: every variable-length item carries
its length and every node starts with a one-byte tag.
"""

from __future__ import annotations

import hashlib
import struct
from dataclasses import dataclass, field

from . import descriptor as D


# Bump whenever `encode_file` changes its output for some input.
FINGERPRINT_VERSION = "2"

_MAGIC = b"protocanon-fp\x00"

# Node tags.
_FILE = b"F"
_IMPORT = b"I"
_MESSAGE = b"M"
_FIELD = b"f"
_ONEOF = b"o"
_ENUM = b"E"
_ENUM_VALUE = b"v"
_SERVICE = b"S"
_METHOD = b"m"
_RANGE = b"r"
_OPTION = b"O"
_EXTEND = b"X"

# Type tags.
_SCALAR = b"s"
_MESSAGE_REF = b"M"
_ENUM_REF = b"E"
_NAMED_REF = b"N"  # message or enum, when ref kinds are ignored
_MAP = b"P"
_GROUP = b"G"

# Value tags.
_NONE = b"0"
_BOOL = b"b"
_INT = b"i"
_FLOAT = b"d"
_STR = b"s"
_IDENT = b"n"
_AGGREGATE = b"a"
_OTHER = b"x"


@dataclass(slots=True)
class _Encoder:
    ref_kinds: bool = True
    buf: bytearray = field(default_factory=bytearray)

    # -----------------------------------------------------------------------
    # Primitives
    # -----------------------------------------------------------------------

    def tag(self, t: bytes) -> None:
        self.buf += t

    def count(self, n: int) -> None:
        self.buf += struct.pack(">I", n)

    def bytes_(self, b: bytes) -> None:
        self.count(len(b))
        self.buf += b

    def str_(self, s: str) -> None:
        self.bytes_(s.encode("utf-8"))

    def int_(self, n: int) -> None:
        # Arbitrary precision: decimal text, length-prefixed.
        self.str_(str(n))

    def bool_(self, b: bool) -> None:
        self.buf += b"\x01" if b else b"\x00"

    def opt_str(self, s: str | None) -> None:
        if s is None:
            self.tag(_NONE)
        else:
            self.tag(_STR)
            self.str_(s)

    # -----------------------------------------------------------------------
    # Values
    # -----------------------------------------------------------------------

    def value(self, v: object) -> None:
        if v is None:
            self.tag(_NONE)
        elif isinstance(v, bool):
            self.tag(_BOOL)
            self.bool_(v)
        elif isinstance(v, int):
            self.tag(_INT)
            self.int_(v)
        elif isinstance(v, float):
            self.tag(_FLOAT)
            self.buf += struct.pack(">d", v)
        elif isinstance(v, str):
            self.tag(_STR)
            self.str_(v)
        elif isinstance(v, bytes):
            # Same tag as str: a literal is its bytes, however it was spelled.
            self.tag(_STR)
            self.bytes_(v)
        elif isinstance(v, D.Identifier):
            self.tag(_IDENT)
            self.str_(v.name)
        elif isinstance(v, D.Aggregate):
            self.tag(_AGGREGATE)
            self.count(len(v.fields))
            for key, inner in v.fields:
                self.str_(key)
                self.value(inner)
        else:
            # Values the renderer rejects still hash: type name plus repr.
            self.tag(_OTHER)
            self.str_(type(v).__qualname__)
            self.str_(repr(v))

    def options(self, opts: D.Options) -> None:
        self.count(len(opts))
        for key, v in opts:
            self.tag(_OPTION)
            self.str_(key)
            self.value(v)

    def ranges(self, ranges: tuple[D.NumberRange, ...]) -> None:
        self.count(len(ranges))
        for r in ranges:
            self.tag(_RANGE)
            self.int_(r.start)
            self.int_(r.end)

    def names(self, names: tuple[str, ...]) -> None:
        self.count(len(names))
        for n in names:
            self.str_(n)

    # -----------------------------------------------------------------------
    # Nodes
    # -----------------------------------------------------------------------

    def file(self, tree: D.ProtoFile) -> None:
        self.tag(_FILE)
        self.opt_str(tree.package)
        self.str_(tree.syntax.value)
        self.count(len(tree.imports))
        for imp in tree.imports:
            self.tag(_IMPORT)
            self.str_(imp.path)
            self.opt_str(imp.modifier)
        self.options(tree.options)
        self.count(len(tree.messages))
        for m in tree.messages:
            self.message(m)
        self.count(len(tree.enums))
        for e in tree.enums:
            self.enum(e)
        self.count(len(tree.services))
        for s in tree.services:
            self.service(s)
        self.extends(tree.extends)

    def declaration(self, decl: D.Declaration | D.ExtendDecl) -> None:
        if isinstance(decl, D.MessageDecl):
            self.message(decl)
        elif isinstance(decl, D.EnumDecl):
            self.enum(decl)
        elif isinstance(decl, D.ServiceDecl):
            self.service(decl)
        elif isinstance(decl, D.ExtendDecl):
            self.extends((decl,))
        else:
            raise TypeError(f"not a declaration: {type(decl)!r}")

    def message(self, msg: D.MessageDecl) -> None:
        self.tag(_MESSAGE)
        self.str_(msg.name)
        self.options(msg.options)
        self.count(len(msg.messages))
        for m in msg.messages:
            self.message(m)
        self.count(len(msg.enums))
        for e in msg.enums:
            self.enum(e)
        self.count(len(msg.fields))
        for f in msg.fields:
            self.field(f)
        self.count(len(msg.oneofs))
        for o in msg.oneofs:
            self.tag(_ONEOF)
            self.str_(o.name)
            self.options(o.options)
            self.count(len(o.fields))
            for f in o.fields:
                self.field(f)
        self.extends(msg.extends)
        self.ranges(msg.extension_ranges)
        self.ranges(msg.reserved_numbers)
        self.names(msg.reserved_names)

    def extends(self, blocks: tuple[D.ExtendDecl, ...]) -> None:
        self.count(len(blocks))
        for x in blocks:
            self.tag(_EXTEND)
            self.str_(x.extendee.name)
            self.count(len(x.fields))
            for f in x.fields:
                self.field(f)

    def field(self, f: D.FieldDecl) -> None:
        self.tag(_FIELD)
        self.str_(f.name)
        self.int_(f.number)
        self.type(f.type)
        self.opt_str(f.cardinality.value if f.cardinality is not None else None)
        self.value(f.default_value)
        self.opt_str(f.json_name)
        self.options(f.options)

    def type(self, t: D.FieldType) -> None:
        if isinstance(t, D.MapType):
            self.tag(_MAP)
            self.type(t.key)
            self.type(t.value)
        elif isinstance(t, D.ScalarType):
            self.tag(_SCALAR)
            self.str_(t.name)
        elif isinstance(t, (D.MessageRef, D.EnumRef)):
            if not self.ref_kinds:
                self.tag(_NAMED_REF)
            elif isinstance(t, D.EnumRef):
                self.tag(_ENUM_REF)
            else:
                self.tag(_MESSAGE_REF)
            self.str_(t.name)
        elif isinstance(t, D.GroupType):
            self.tag(_GROUP)
            self.message(t.body)
        else:
            raise TypeError(f"not a field type: {type(t)!r}")

    def enum(self, en: D.EnumDecl) -> None:
        self.tag(_ENUM)
        self.str_(en.name)
        self.bool_(en.allow_alias)
        self.options(en.options)
        self.count(len(en.values))
        for v in en.values:
            self.tag(_ENUM_VALUE)
            self.str_(v.name)
            self.int_(v.number)
            self.options(v.options)
        self.ranges(en.reserved_numbers)
        self.names(en.reserved_names)

    def service(self, svc: D.ServiceDecl) -> None:
        self.tag(_SERVICE)
        self.str_(svc.name)
        self.options(svc.options)
        self.count(len(svc.methods))
        for m in svc.methods:
            self.tag(_METHOD)
            self.str_(m.name)
            self.str_(m.input_type.name)
            self.str_(m.output_type.name)
            self.bool_(m.client_streaming)
            self.bool_(m.server_streaming)
            self.options(m.options)


def _header(enc: _Encoder) -> None:
    enc.buf += _MAGIC
    enc.str_(FINGERPRINT_VERSION)


def encode_file(tree: D.ProtoFile) -> bytes:
    enc = _Encoder()
    _header(enc)
    enc.file(tree)
    return bytes(enc.buf)


def encode_declaration(decl: D.Declaration | D.ExtendDecl, *, ref_kinds: bool = True) -> bytes:
    """Byte encoding of one top-level declaration.

    With `ref_kinds=False` message and enum references encode identically, so
    two copies of a declaration compare equal even when only one of their
    files could see the referenced enum.
    """
    enc = _Encoder(ref_kinds=ref_kinds)
    _header(enc)
    enc.declaration(decl)
    return bytes(enc.buf)


def encode_value(value: object) -> bytes:
    """Byte encoding of one option value; `True` and `1` encode differently."""
    enc = _Encoder()
    enc.value(value)
    return bytes(enc.buf)


def fingerprint(tree: D.ProtoFile) -> str:
    """SHA-256 hex digest of a canonical tree; 64 lowercase hex characters."""
    return hashlib.sha256(encode_file(tree)).hexdigest()
