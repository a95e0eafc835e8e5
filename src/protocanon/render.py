from __future__ import annotations

import math

from . import descriptor as D
from .errors import Unrepresentable


# Bump whenever the output of `render` changes for some input.
RENDER_STYLE_VERSION = "1.1.0"

_INDENT = 2

_LABELS = {
    D.Cardinality.OPTIONAL: "optional ",
    D.Cardinality.REQUIRED: "required ",
    D.Cardinality.REPEATED: "repeated ",
}

_ESCAPES = {ord("\\"): "\\\\", ord('"'): '\\"', ord("\n"): "\\n", ord("\r"): "\\r", ord("\t"): "\\t"}


def render(tree: D.ProtoFile) -> str:
    """Render a canonical tree as proto source text.

    Declarations are printed in the order they appear in `tree`, so the
    output is only canonical if the tree is.
    """
    out: list[str] = [f'syntax = "{tree.syntax.value}";', ""]

    if tree.package:
        out.append(f"package {tree.package};")
        out.append("")

    for imp in tree.imports:
        if imp.modifier:
            out.append(f"import {imp.modifier} {_quote(imp.path)};")
        else:
            out.append(f"import {_quote(imp.path)};")
    if tree.imports:
        out.append("")

    where = tree.package or "<file>"
    for key, value in tree.options:
        out.append(f"option {key} = {_value(value, where)};")
    if tree.options:
        out.append("")

    for decl in tree.declarations():
        out.extend(_render_decl(decl, indent=0, scope=tree.package or ""))
        out.append("")

    for x in tree.extends:
        out.extend(_render_extend(x, indent=0, scope=tree.package or ""))
        out.append("")

    while out and out[-1] == "":
        out.pop()
    return "\n".join(out) + "\n"


def _render_decl(decl: D.Declaration, *, indent: int, scope: str) -> list[str]:
    if isinstance(decl, D.MessageDecl):
        return _render_message(decl, indent=indent, scope=scope)
    if isinstance(decl, D.EnumDecl):
        return _render_enum(decl, indent=indent, scope=scope)
    if isinstance(decl, D.ServiceDecl):
        return _render_service(decl, indent=indent, scope=scope)
    raise TypeError(f"not a declaration: {type(decl)!r}")


def _render_message(msg: D.MessageDecl, *, indent: int, scope: str) -> list[str]:
    out = [_indent(f"message {msg.name} {{", indent)]
    out.extend(_message_body(msg, indent=indent + _INDENT, scope=scope))
    out.append(_indent("}", indent))
    return out


def _message_body(msg: D.MessageDecl, *, indent: int, scope: str) -> list[str]:
    path = _join(scope, msg.name)
    out = _option_lines(msg.options, indent=indent, where=path)
    for m in msg.messages:
        out.extend(_render_message(m, indent=indent, scope=path))
    for e in msg.enums:
        out.extend(_render_enum(e, indent=indent, scope=path))
    for f in msg.fields:
        out.extend(_render_field(f, indent=indent, scope=path))
    for o in msg.oneofs:
        out.append(_indent(f"oneof {o.name} {{", indent))
        out.extend(_option_lines(o.options, indent=indent + _INDENT, where=_join(path, o.name)))
        for f in o.fields:
            out.extend(_render_field(f, indent=indent + _INDENT, scope=path))
        out.append(_indent("}", indent))
    for x in msg.extends:
        out.extend(_render_extend(x, indent=indent, scope=path))
    if msg.extension_ranges:
        out.append(_indent(f"extensions {_ranges(msg.extension_ranges, D.FIELD_NUMBER_MAX)};", indent))
    if msg.reserved_numbers:
        out.append(_indent(f"reserved {_ranges(msg.reserved_numbers, D.FIELD_NUMBER_MAX)};", indent))
    if msg.reserved_names:
        out.append(_indent(f"reserved {', '.join(_quote(n) for n in msg.reserved_names)};", indent))
    return out


def _render_extend(x: D.ExtendDecl, *, indent: int, scope: str) -> list[str]:
    out = [_indent(f"extend {x.extendee} {{", indent)]
    for f in x.fields:
        out.extend(_render_field(f, indent=indent + _INDENT, scope=scope))
    out.append(_indent("}", indent))
    return out


def _render_field(f: D.FieldDecl, *, indent: int, scope: str) -> list[str]:
    where = _join(scope, f.name)
    if isinstance(f.type, D.MapType):
        label = ""
    else:
        label = _LABELS.get(f.cardinality, "") if f.cardinality is not None else ""

    opts: list[str] = []
    if f.default_value is not None:
        opts.append(f"default = {_value(f.default_value, where)}")
    if f.json_name is not None and f.json_name != D.default_json_name(f.name):
        opts.append(f"json_name = {_quote(f.json_name)}")
    opts.extend(f"{k} = {_value(v, where)}" for k, v in f.options)
    suffix = " [" + ", ".join(opts) + "]" if opts else ""

    if isinstance(f.type, D.GroupType):
        # The field name is implied by the group name.
        body = f.type.body
        out = [_indent(f"{label}group {body.name} = {f.number}{suffix} {{", indent)]
        out.extend(_message_body(body, indent=indent + _INDENT, scope=scope))
        out.append(_indent("}", indent))
        return out
    return [_indent(f"{label}{f.type} {f.name} = {f.number}{suffix};", indent)]


def _render_enum(en: D.EnumDecl, *, indent: int, scope: str) -> list[str]:
    path = _join(scope, en.name)
    inner = indent + _INDENT
    out = [_indent(f"enum {en.name} {{", indent)]
    if en.allow_alias:
        out.append(_indent("option allow_alias = true;", inner))
    out.extend(_option_lines(en.options, indent=inner, where=path))
    for v in en.values:
        s = f"{v.name} = {v.number}"
        if v.options:
            where = _join(path, v.name)
            s += " [" + ", ".join(f"{k} = {_value(x, where)}" for k, x in v.options) + "]"
        out.append(_indent(s + ";", inner))
    if en.reserved_numbers:
        out.append(_indent(f"reserved {_ranges(en.reserved_numbers, D.ENUM_NUMBER_MAX)};", inner))
    if en.reserved_names:
        out.append(_indent(f"reserved {', '.join(_quote(n) for n in en.reserved_names)};", inner))
    out.append(_indent("}", indent))
    return out


def _render_service(svc: D.ServiceDecl, *, indent: int, scope: str) -> list[str]:
    path = _join(scope, svc.name)
    inner = indent + _INDENT
    out = [_indent(f"service {svc.name} {{", indent)]
    out.extend(_option_lines(svc.options, indent=inner, where=path))
    for m in svc.methods:
        req = f"stream {m.input_type}" if m.client_streaming else str(m.input_type)
        resp = f"stream {m.output_type}" if m.server_streaming else str(m.output_type)
        head = _indent(f"rpc {m.name} ({req}) returns ({resp})", inner)
        if not m.options:
            out.append(head + ";")
            continue
        out.append(head + " {")
        out.extend(_option_lines(m.options, indent=inner + _INDENT, where=_join(path, m.name)))
        out.append(_indent("}", inner))
    out.append(_indent("}", indent))
    return out


def _option_lines(opts: D.Options, *, indent: int, where: str) -> list[str]:
    return [_indent(f"option {k} = {_value(v, where)};", indent) for k, v in opts]


def _ranges(ranges: tuple[D.NumberRange, ...], max_value: int) -> str:
    parts: list[str] = []
    for r in ranges:
        if r.start == r.end:
            parts.append(str(r.start))
        elif r.end == max_value:
            parts.append(f"{r.start} to max")
        else:
            parts.append(f"{r.start} to {r.end}")
    return ", ".join(parts)


def _value(v: object, where: str) -> str:
    # bool before int: bool is an int subclass.
    if isinstance(v, bool):
        return "true" if v else "false"
    if isinstance(v, int):
        return str(v)
    if isinstance(v, float):
        if math.isnan(v):
            return "nan"
        if math.isinf(v):
            return "inf" if v > 0 else "-inf"
        return repr(v)
    if isinstance(v, (str, bytes)):
        return _quote(v)
    if isinstance(v, D.Identifier):
        return v.name
    if isinstance(v, D.Aggregate):
        if not v.fields:
            return "{}"
        return "{ " + ", ".join(f"{k}: {_value(x, where)}" for k, x in v.fields) + " }"
    raise Unrepresentable(construct=f"option value of type {type(v).__name__} in {where}")


def _quote(s: str | bytes) -> str:
    # Non-ASCII goes out as octal escapes of its UTF-8 bytes, so any literal survives.
    data = s.encode("utf-8") if isinstance(s, str) else s
    out: list[str] = []
    for b in data:
        esc = _ESCAPES.get(b)
        if esc is not None:
            out.append(esc)
        elif b < 0x20 or b >= 0x7F:
            out.append(f"\\{b:03o}")
        else:
            out.append(chr(b))
    return '"' + "".join(out) + '"'


def _join(scope: str, name: str) -> str:
    return f"{scope}.{name}" if scope else name


def _indent(s: str, n: int) -> str:
    return (" " * n) + s
