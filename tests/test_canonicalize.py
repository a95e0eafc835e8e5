from __future__ import annotations

import pytest

from protocanon import ValidationError, ValidationErrorKind as K, canonicalize, parse_source
from protocanon import descriptor as D


def _canon(src: str) -> D.ProtoFile:
    return canonicalize(parse_source(src, file="c.proto"))


def test_fields_sorted_by_number_and_implicit_values_explicit() -> None:
    pf = _canon(
        """syntax = "proto3";
message A {
  string user_name = 2;
  int32 id = 1;
  optional bool flag = 3;
  map<string, int32> counts = 4;
  oneof choice { string x = 6; bytes y = 5; }
}
"""
    )
    a = pf.messages[0]
    assert [(f.name, f.cardinality) for f in a.fields] == [
        ("id", D.Cardinality.SINGULAR),
        ("user_name", D.Cardinality.SINGULAR),
        ("flag", D.Cardinality.OPTIONAL),
        ("counts", D.Cardinality.REPEATED),
    ]
    assert a.fields[1].json_name == "userName"
    assert [(f.name, f.cardinality) for f in a.oneofs[0].fields] == [
        ("y", D.Cardinality.SINGULAR),
        ("x", D.Cardinality.SINGULAR),
    ]


def test_proto2_unlabeled_fields_become_optional() -> None:
    pf = _canon("message A { int32 a = 1; required int32 b = 2; repeated int32 c = 3; }")
    assert [f.cardinality for f in pf.messages[0].fields] == [
        D.Cardinality.OPTIONAL,
        D.Cardinality.REQUIRED,
        D.Cardinality.REPEATED,
    ]


def test_explicit_json_name_is_kept() -> None:
    pf = _canon('syntax = "proto3"; message A { int32 a_b = 1 [json_name = "custom"]; }')
    assert pf.messages[0].fields[0].json_name == "custom"


def test_declarations_sorted_by_name() -> None:
    pf = _canon(
        """syntax = "proto3";
service Zed { rpc B (M) returns (M); rpc A (M) returns (M); }
enum Color { RED = 0; }
message N { message Z {} message Y {} enum Q { Q0 = 0; } enum P { P0 = 0; } }
message M {}
"""
    )
    assert [m.name for m in pf.messages] == ["M", "N"]
    assert [m.name for m in pf.messages[1].messages] == ["Y", "Z"]
    assert [e.name for e in pf.messages[1].enums] == ["P", "Q"]
    assert [m.name for m in pf.services[0].methods] == ["A", "B"]
    assert [d.name for d in pf.declarations()] == ["M", "N", "Color", "Zed"]


def test_enum_values_sorted_by_number_then_name() -> None:
    pf = _canon(
        """syntax = "proto3";
enum E {
  option allow_alias = true;
  TWO = 2;
  ZERO = 0;
  DOS = 2;
  ONE = 1;
}
"""
    )
    assert [(v.name, v.number) for v in pf.enums[0].values] == [
        ("ZERO", 0),
        ("ONE", 1),
        ("DOS", 2),
        ("TWO", 2),
    ]


def test_enum_references_are_resolved() -> None:
    pf = _canon(
        """syntax = "proto3";
package p.q;
enum Top { T0 = 0; }
message M {
  enum Inner { I0 = 0; }
  message N { Inner x = 1; }
  Inner a = 1;
  Top b = 2;
  p.q.Top c = 3;
  .p.q.Top d = 4;
  N e = 5;
  Unknown f = 6;
  map<string, Top> g = 7;
}
"""
    )
    m = pf.messages[0]
    assert [f.type for f in m.fields] == [
        D.EnumRef("Inner"),
        D.EnumRef("Top"),
        D.EnumRef("p.q.Top"),
        D.EnumRef(".p.q.Top"),
        D.MessageRef("N"),
        D.MessageRef("Unknown"),
        D.MapType(D.ScalarType("string"), D.EnumRef("Top")),
    ]
    assert m.messages[0].fields[0].type == D.EnumRef("Inner")


def test_ranges_coalesced_and_names_sorted() -> None:
    pf = _canon('message A { reserved 5, 1 to 3, 4, 10 to 12, 11 to 20; reserved "b", "a", "b"; }')
    a = pf.messages[0]
    assert a.reserved_numbers == (D.NumberRange(1, 5), D.NumberRange(10, 20))
    assert a.reserved_names == ("a", "b")


def test_options_sorted_and_values_normalized() -> None:
    tree = D.ProtoFile(
        package="",
        options=(
            ("z", float("inf")),
            ("a", float("-inf")),
            ("(m).n", float("nan")),
            ("agg", D.Aggregate((("b", 1), ("a", 2), ("b", 0)))),
        ),
    )
    pf = canonicalize(tree)
    assert pf.package is None
    assert pf.options == (
        ("(m).n", D.Identifier("nan")),
        ("a", D.Identifier("-inf")),
        ("agg", D.Aggregate((("a", 2), ("b", 1), ("b", 0)))),
        ("z", D.Identifier("inf")),
    )


def test_imports_sorted() -> None:
    pf = _canon('import "b.proto"; import public "a.proto";')
    assert pf.imports == (D.Import("a.proto", "public"), D.Import("b.proto"))


def test_annotations_are_stripped() -> None:
    pf = _canon("// c\nmessage A { int32 a = 1; }")
    assert pf.annotation is None
    assert pf.messages[0].annotation is None
    assert pf.messages[0].fields[0].annotation is None


def test_canonicalize_is_idempotent() -> None:
    pf = _canon(
        """syntax = "proto2";
package x.y;
import "b.proto";
option java_package = "j";
message B {
  extensions 100 to max;
  reserved 9 to 11;
  optional E e = 2 [default = E1];
  optional string s = 1 [default = "d\\n", json_name = "S"];
  map<int32, B> children = 3;
  oneof o { int32 n = 4; }
  enum E { E1 = 1; E0 = 0; }
}
service S { rpc Get (B) returns (stream B); }
"""
    )
    assert canonicalize(pf) == pf


@pytest.mark.parametrize(
    "src, kind",
    [
        ("message A { int32 a = 1; int32 b = 1; }", K.DUPLICATE_FIELD_NUMBER),
        ("message A { int32 a = 1; oneof o { int32 b = 1; } }", K.DUPLICATE_FIELD_NUMBER),
        ("message A { int32 a = 1; string a = 2; }", K.DUPLICATE_NAME),
        ("message A {} message A {}", K.DUPLICATE_NAME),
        ("message A { oneof o { int32 a = 1; } oneof o { int32 b = 2; } }", K.DUPLICATE_NAME),
        ("message M {} service S { rpc A (M) returns (M); rpc A (M) returns (M); }", K.DUPLICATE_NAME),
        ("enum E { A = 0; A = 1; }", K.DUPLICATE_NAME),
        ("enum E { A = 0; B = 0; }", K.DUPLICATE_ENUM_VALUE),
        ("message A { reserved 1 to 5; int32 a = 3; }", K.RESERVED_NUMBER_COLLISION),
        ("message A { extensions 100 to 200; optional int32 a = 150; }", K.RESERVED_NUMBER_COLLISION),
        ("message A { reserved 150; extensions 100 to 200; }", K.RESERVED_NUMBER_COLLISION),
        ("enum E { A = 0; reserved 0; }", K.RESERVED_NUMBER_COLLISION),
        ('message A { reserved "a"; int32 a = 1; }', K.RESERVED_NAME_COLLISION),
        ('enum E { reserved "A"; A = 0; }', K.RESERVED_NAME_COLLISION),
        ("message A { int32 a = 0; }", K.INVALID_NUMBER),
        ("message A { int32 a = 19500; }", K.INVALID_NUMBER),
        ("message A { int32 a = 536870912; }", K.INVALID_NUMBER),
        ("message A { reserved 5 to 3; }", K.INVALID_NUMBER),
        ("enum E { A = 2147483648; }", K.INVALID_NUMBER),
        ("message A { map<double, int32> m = 1; }", K.INVALID_TYPE),
        ('syntax = "proto3"; message A { required int32 a = 1; }', K.INVALID_CARDINALITY),
        ('syntax = "proto3"; message A { int32 a = 1 [default = 1]; }', K.INVALID_DEFAULT),
        ("message A { repeated int32 a = 1 [default = 1]; }", K.INVALID_DEFAULT),
        ("message B {} message A { optional B b = 1 [default = 1]; }", K.INVALID_DEFAULT),
        ('option java_package = "a"; option java_package = "b";', K.DUPLICATE_OPTION),
        ("message A { int32 a = 1 [deprecated = true, deprecated = false]; }", K.DUPLICATE_OPTION),
        ('import "a.proto"; import "a.proto";', K.DUPLICATE_IMPORT),
        ('import "";', K.MALFORMED_IMPORT),
        ('syntax = "proto3"; message A { group G = 1 {} }', K.INVALID_TYPE),
        ("message A { optional group g = 1 {} }", K.MALFORMED_IDENTIFIER),
        ("message A { optional group G = 1 [default = 1] {} }", K.INVALID_DEFAULT),
        ("message A { optional group G = 1 { int32 a = 1; int32 b = 1; } }", K.DUPLICATE_FIELD_NUMBER),
        ("message A { extensions 10 to 20; } extend A { optional int32 x = 30; }", K.INVALID_NUMBER),
        ("message A { extensions 10 to 20; } extend A { required int32 x = 10; }", K.INVALID_CARDINALITY),
        ("message A { extensions 10 to 20; } extend A { map<string, int32> m = 10; }", K.INVALID_TYPE),
        ("enum E { Z = 0; } extend E { optional int32 x = 10; }", K.INVALID_TYPE),
        ("message A { extensions 10 to 20; } extend A { optional int32 x = 10; } extend A { optional int32 y = 10; }", K.DUPLICATE_FIELD_NUMBER),
        ("message A { extensions 10 to 20; } extend A { optional int32 x = 10; optional int32 x = 11; }", K.DUPLICATE_NAME),
    ],
)
def test_validation_errors(src: str, kind: K) -> None:
    with pytest.raises(ValidationError) as e:
        _canon(src)
    assert e.value.kind is kind


@pytest.mark.parametrize(
    "tree, kind",
    [
        (D.ProtoFile(messages=(D.MessageDecl(name="1bad"),)), K.MALFORMED_IDENTIFIER),
        (
            D.ProtoFile(messages=(D.MessageDecl(name="A", fields=(D.FieldDecl("a", 1, D.MessageRef("a..b")),)),)),
            K.MALFORMED_IDENTIFIER,
        ),
        (D.ProtoFile(options=(("bad name", 1),)), K.MALFORMED_IDENTIFIER),
        (D.ProtoFile(package="foo..bar"), K.MALFORMED_NAMESPACE),
        (D.ProtoFile(package="foo.1bar"), K.MALFORMED_NAMESPACE),
        (
            D.ProtoFile(messages=(D.MessageDecl(name="A", fields=(D.FieldDecl("a", 1, D.ScalarType("int33")),)),)),
            K.INVALID_TYPE,
        ),
        (
            D.ProtoFile(
                messages=(
                    D.MessageDecl(
                        name="A",
                        oneofs=(
                            D.OneofDecl(
                                "o", (D.FieldDecl("m", 1, D.MapType(D.ScalarType("string"), D.ScalarType("int32"))),)
                            ),
                        ),
                    ),
                )
            ),
            K.INVALID_TYPE,
        ),
        (D.ProtoFile(imports=(D.Import("a.proto", "private"),)), K.MALFORMED_IMPORT),
    ],
)
def test_validation_errors_on_constructed_trees(tree: D.ProtoFile, kind: K) -> None:
    with pytest.raises(ValidationError) as e:
        canonicalize(tree)
    assert e.value.kind is kind


def test_enum_alias_allowed_with_option() -> None:
    pf = _canon("enum E { option allow_alias = true; A = 0; B = 0; }")
    assert pf.enums[0].allow_alias is True
    assert len(pf.enums[0].values) == 2


def test_validation_error_location() -> None:
    with pytest.raises(ValidationError) as e:
        _canon('syntax = "proto3";\npackage p;\nmessage A {\n  int32 a = 1;\n  int32 b = 1;\n}\n')
    err = e.value
    assert err.kind is K.DUPLICATE_FIELD_NUMBER
    assert err.location.path == "p.A.b"
    assert err.location.span is not None
    assert err.location.span.start.line == 5
    assert str(err).startswith("c.proto:5:3: p.A.b: duplicate field number")


@pytest.mark.parametrize(
    "body, path, line",
    [
        ("  int32 a = 1;\n  string a = 2;\n", "p.A.a", 5),
        ("  reserved 3;\n  int32 a = 3;\n", "p.A.a", 5),
        ('  reserved "a";\n  int32 a = 3;\n', "p.A.a", 5),
        ("  extensions 100 to 200;\n  optional int32 a = 150;\n", "p.A.a", 5),
        ("  int32 a = 1;\n  oneof o {\n    int32 b = 1;\n  }\n", "p.A.b", 6),
    ],
)
def test_field_collisions_point_at_the_field(body: str, path: str, line: int) -> None:
    with pytest.raises(ValidationError) as e:
        _canon(f'syntax = "proto2";\npackage p;\nmessage A {{\n{body}}}\n')
    err = e.value
    assert err.location.path == path
    assert err.location.span is not None
    assert err.location.span.start.line == line
    assert str(err).startswith(f"c.proto:{line}:")


@pytest.mark.parametrize(
    "src, path",
    [
        ("message X {} enum X { A = 0; }", "X"),
        ("enum X { A = 0; } service X {}", "X"),
        ("message X {} service X {}", "X"),
        ("message M { message X {} enum X { A = 0; } }", "M.X"),
        ("message M { message x {} int32 x = 1; }", "M.x"),
        ("message M { int32 o = 1; oneof o { int32 b = 2; } }", "M.o"),
        ("message A { extensions 1 to 9; } message x {} extend A { optional int32 x = 1; }", "x"),
        ("message M { optional group G = 1 {} message G {} }", "M.G"),
        ("message M { extensions 5; extend M { optional int32 a = 5; } optional int32 a = 1; }", "M.a"),
    ],
)
def test_names_are_unique_across_kinds(src: str, path: str) -> None:
    with pytest.raises(ValidationError) as e:
        _canon(src)
    assert e.value.kind is K.DUPLICATE_NAME
    assert e.value.location.path == path
    assert e.value.location.span is not None


def test_first_error_does_not_depend_on_declaration_order() -> None:
    a = "message A { int32 x = 1; int32 x = 2; }"
    b = "message B { int32 x = 1; int32 y = 1; }"
    errors = []
    for src in (a + "\n" + b, b + "\n" + a):
        with pytest.raises(ValidationError) as e:
            _canon(src)
        errors.append((e.value.kind, e.value.location.path))
    assert errors[0] == errors[1] == (K.DUPLICATE_NAME, "A.x")


EXTENSIONS = """syntax = "proto2";
package p;
message Base {
  extensions 100 to 199;
  optional group Result = 1 {
    required string url = 2;
    optional int32 rank = 1;
  }
  oneof pick {
    group Choice = 3 { int32 x = 1; }
  }
  extend Base { int32 inner = 150; }
}
extend Base {
  optional string tag = 101;
  repeated group Extra = 100 { optional bool on = 1; }
}
extend .p.Base { optional int32 other = 120; }
extend Base {}
"""


def test_extensions_and_groups_are_canonicalized() -> None:
    pf = _canon(EXTENSIONS)
    assert [(x.extendee.name, [f.name for f in x.fields]) for x in pf.extends] == [
        (".p.Base", ["other"]),
        ("Base", ["extra", "tag"]),
    ]
    extra = pf.extends[1].fields[0]
    assert extra.cardinality is D.Cardinality.REPEATED
    assert isinstance(extra.type, D.GroupType)
    assert extra.type.body.fields[0].cardinality is D.Cardinality.OPTIONAL

    base = pf.messages[0]
    (result,) = base.fields
    assert isinstance(result.type, D.GroupType)
    assert [f.name for f in result.type.body.fields] == ["rank", "url"]
    (choice,) = base.oneofs[0].fields
    assert (choice.name, choice.cardinality) == ("choice", D.Cardinality.SINGULAR)
    assert choice.type.body.fields[0].cardinality is D.Cardinality.OPTIONAL
    assert base.extends == (
        D.ExtendDecl(
            D.MessageRef("Base"),
            (D.FieldDecl("inner", 150, D.ScalarType("int32"), D.Cardinality.OPTIONAL, json_name="inner"),),
        ),
    )
    assert canonicalize(pf) == pf


def test_extensions_of_imported_messages_skip_range_check() -> None:
    pf = _canon('syntax = "proto3"; extend google.protobuf.FieldOptions { string label = 50000; }')
    (x,) = pf.extends
    assert x.fields[0].cardinality is D.Cardinality.SINGULAR


def test_extension_errors_point_at_the_extension() -> None:
    with pytest.raises(ValidationError) as e:
        _canon('syntax = "proto2";\npackage p;\nmessage A { extensions 10 to 20; }\nextend A {\n  optional int32 x = 30;\n}\n')
    assert e.value.location.path == "p.x"
    assert str(e.value).startswith("c.proto:5:3: p.x: invalid number")
