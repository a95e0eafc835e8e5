from __future__ import annotations

import itertools

import pytest

from protocanon import (
    EditionConflict,
    ExtensionConflict,
    MergeOptions,
    OptionConflict,
    ParseError,
    TypeConflict,
    ValidationError,
    canonicalize,
    merge_by_namespace,
    merge_groups,
    merge_sources,
    parse_source,
)
from protocanon import descriptor as D
from protocanon.merge import MERGE_ALGORITHM_VERSION


USER = 'syntax = "proto3"; package foo.bar; message User { string name = 1; }'
PROFILE = 'syntax = "proto3"; package foo.bar; message Profile { int32 age = 1; }'


def test_end_to_end_two_files_one_package() -> None:
    (res,) = merge_by_namespace([USER, PROFILE])
    assert res.namespace == "foo.bar"
    assert res.members == (0, 1)
    assert res.content.index("message Profile") < res.content.index("message User")
    assert res.content == (
        'syntax = "proto3";\n'
        "\n"
        "package foo.bar;\n"
        "\n"
        "message Profile {\n"
        "  int32 age = 1;\n"
        "}\n"
        "\n"
        "message User {\n"
        "  string name = 1;\n"
        "}\n"
    )
    (rev,) = merge_by_namespace([PROFILE, USER])
    assert rev.fingerprint == res.fingerprint
    assert rev.content == res.content


def test_identical_declarations_dedupe() -> None:
    (res,) = merge_by_namespace([USER, USER])
    assert res.content.count("message User") == 1
    assert res.members == (0, 1)


def test_identical_declarations_with_different_comments_dedupe() -> None:
    other = "// copy\n" + USER.replace("string name = 1;", "string name = 1; /* the name */")
    (res,) = merge_by_namespace([USER, other])
    assert res.content.count("message User") == 1


@pytest.mark.parametrize("order", [(0, 1), (1, 0)])
def test_type_conflict_names_user_and_both_members(order: tuple[int, int]) -> None:
    a = USER
    b = 'syntax = "proto3"; package foo.bar; message User { string name = 1; int32 age = 2; }'
    texts = [(a, b)[i] for i in order]
    with pytest.raises(TypeConflict) as e:
        merge_by_namespace(texts)
    assert e.value.name == "User"
    assert e.value.namespace == "foo.bar"
    assert e.value.members == (0, 1)
    assert "'User'" in str(e.value)


def test_type_conflict_reported_by_name_order_not_input_order() -> None:
    a = 'syntax = "proto3"; package p; message B { int32 x = 1; } message A { int32 x = 1; }'
    b = 'syntax = "proto3"; package p; message B { int32 y = 1; } message A { int32 y = 1; }'
    for texts in ([a, b], [b, a]):
        with pytest.raises(TypeConflict) as e:
            merge_by_namespace(texts)
        assert e.value.name == "A"


def test_conflict_members_only_name_declaring_inputs() -> None:
    a = USER
    b = PROFILE
    c = 'syntax = "proto3"; package foo.bar; message User { bytes name = 1; }'
    with pytest.raises(TypeConflict) as e:
        merge_by_namespace([a, b, c])
    assert e.value.members == (0, 2)


def test_merge_is_commutative_over_permutations() -> None:
    texts = [
        USER,
        PROFILE,
        'syntax = "proto3"; package foo.bar; import "b.proto"; enum Kind { K0 = 0; }',
        'syntax = "proto3"; package foo.bar; import "a.proto"; option java_package = "x";',
        'syntax = "proto3"; package other; message User { bool ok = 1; }',
    ]
    outputs = set()
    for perm in itertools.permutations(texts):
        results = merge_by_namespace(list(perm))
        outputs.add(tuple((r.namespace, r.content, r.fingerprint) for r in results))
    assert len(outputs) == 1
    (results,) = outputs
    assert [ns for ns, _, _ in results] == ["foo.bar", "other"]


def test_enum_reference_resolved_after_union() -> None:
    a = 'syntax = "proto3"; package p; message M { Kind kind = 1; }'
    b = 'syntax = "proto3"; package p; enum Kind { K0 = 0; }'
    # Same message, but here Kind resolves locally to an enum.
    c = 'syntax = "proto3"; package p; message M { Kind kind = 1; } enum Kind { K0 = 0; }'
    (res,) = merge_by_namespace([a, b, c])
    assert "message M" in res.content
    assert res.content.count("enum Kind") == 1


def test_packageless_files_group_under_empty_namespace() -> None:
    a = 'syntax = "proto3"; message A {}'
    b = 'syntax = "proto3"; message B {}'
    results = merge_by_namespace([a, b, USER])
    assert [r.namespace for r in results] == ["", "foo.bar"]
    assert "package" not in results[0].content
    assert results[0].members == (0, 1)
    assert results[1].members == (2,)


def test_imports_union_with_modifiers() -> None:
    a = 'syntax = "proto3"; package p; import "x.proto"; import weak "w.proto"; import "q.proto";'
    b = 'syntax = "proto3"; package p; import public "x.proto"; import weak "w.proto"; import weak "q.proto";'
    (res,) = merge_by_namespace([a, b])
    tree = canonicalize(parse_source(res.content))
    assert tree.imports == (
        D.Import("q.proto"),
        D.Import("w.proto", "weak"),
        D.Import("x.proto", "public"),
    )


def test_equal_file_options_merge() -> None:
    a = 'syntax = "proto3"; package p; option java_package = "x"; option go_package = "g";'
    b = 'syntax = "proto3"; package p; option java_package = "x";'
    (res,) = merge_by_namespace([a, b])
    assert 'option go_package = "g";' in res.content
    assert res.content.count("option java_package") == 1


def test_option_conflict() -> None:
    a = 'syntax = "proto3"; package p; option java_package = "x";'
    b = 'syntax = "proto3"; package p; option java_package = "y";'
    for texts in ([a, b], [b, a]):
        with pytest.raises(OptionConflict) as e:
            merge_by_namespace(texts)
        assert e.value.key == "java_package"
        assert e.value.members == (0, 1)


def test_option_conflict_distinguishes_value_types() -> None:
    a = 'syntax = "proto3"; package p; option (o) = 1;'
    b = 'syntax = "proto3"; package p; option (o) = true;'
    with pytest.raises(OptionConflict):
        merge_by_namespace([a, b])


def test_edition_conflict() -> None:
    a = 'syntax = "proto2"; package p; message A { optional int32 x = 1; }'
    b = 'syntax = "proto3"; package p; message B { int32 x = 1; }'
    with pytest.raises(EditionConflict) as e:
        merge_by_namespace([a, b])
    assert e.value.syntaxes == ("proto2", "proto3")
    assert e.value.members == (0, 1)


def test_partial_success_across_namespaces() -> None:
    bad_a = 'syntax = "proto3"; package bad; message X { int32 a = 1; }'
    bad_b = 'syntax = "proto3"; package bad; message X { int32 b = 1; }'
    report = merge_sources([bad_a, USER, bad_b, PROFILE])
    assert not report.ok
    assert [r.namespace for r in report.results] == ["foo.bar"]
    assert [f.namespace for f in report.errors] == ["bad"]
    failure = report.errors[0]
    assert isinstance(failure.error, TypeConflict)
    assert failure.members == (0, 2)
    with pytest.raises(TypeConflict):
        report.raise_first()


def test_first_failure_by_namespace_is_raised() -> None:
    texts = [
        'syntax = "proto3"; package zeta; option o = 1;',
        'syntax = "proto3"; package zeta; option o = 2;',
        'syntax = "proto3"; package alpha; message X { int32 a = 1; }',
        'syntax = "proto3"; package alpha; message X { int32 b = 1; }',
    ]
    with pytest.raises(TypeConflict) as e:
        merge_by_namespace(texts)
    assert e.value.namespace == "alpha"


def test_validation_error_is_tagged_with_input_index() -> None:
    bad = 'syntax = "proto3"; package p; message A { int32 a = 1; int32 b = 1; }'
    with pytest.raises(ValidationError) as e:
        merge_by_namespace([USER, PROFILE, bad])
    assert e.value.input_index == 2
    assert str(e.value).startswith("input #2: <input #2>:1:56: p.A.b:")


def test_same_name_different_kinds() -> None:
    # Within one file it is invalid input; across files it is a conflict.
    with pytest.raises(ValidationError) as e:
        merge_by_namespace([USER, 'syntax = "proto3"; package foo.bar; message X {} enum X { X0 = 0; }'])
    assert e.value.input_index == 1

    a = 'syntax = "proto3"; package foo.bar; message X {}'
    b = 'syntax = "proto3"; package foo.bar; enum X { X0 = 0; }'
    with pytest.raises(TypeConflict) as c:
        merge_by_namespace([a, b])
    assert c.value.name == "X"
    assert c.value.members == (0, 1)


def test_parse_error_propagates_unchanged() -> None:
    with pytest.raises(ParseError) as e:
        merge_by_namespace([USER, "message {"])
    assert "<input #1>" in str(e.value)


def test_parallel_merge_matches_sequential() -> None:
    texts = []
    for i in range(12):
        pkg = f"pkg{i % 5}"
        texts.append(f'syntax = "proto3"; package {pkg}; message M{i} {{ int32 f{i} = {i + 1}; }}')
    texts.append('syntax = "proto3"; package pkg3; message M3 { int32 other = 1; }')
    sequential = merge_sources(texts)
    parallel = merge_sources(texts, options=MergeOptions(workers=4))
    assert parallel.results == sequential.results
    assert [(f.namespace, f.members, str(f.error)) for f in parallel.errors] == [
        (f.namespace, f.members, str(f.error)) for f in sequential.errors
    ]
    assert [f.namespace for f in sequential.errors] == ["pkg3"]


def test_merge_groups_on_trees() -> None:
    trees = [parse_source(USER), parse_source(PROFILE)]
    report = merge_groups(trees)
    assert report.ok
    assert report.results[0].namespace == "foo.bar"


def test_merge_algorithm_version_tracks_render_style() -> None:
    assert MERGE_ALGORITHM_VERSION.startswith("1.1.0+")


BASE = 'syntax = "proto2"; package p; message Base { extensions 100 to 199; }'


def test_extensions_union_and_dedupe() -> None:
    a = BASE + " extend Base { optional string tag = 100; }"
    b = 'syntax = "proto2"; package p; extend Base { optional string tag = 100; optional int32 rank = 101; }'
    (res,) = merge_by_namespace([a, b])
    assert res.content.count("extend Base {") == 1
    assert res.content.endswith(
        "extend Base {\n"
        "  optional string tag = 100;\n"
        "  optional int32 rank = 101;\n"
        "}\n"
    )
    (rev,) = merge_by_namespace([b, a])
    assert rev.fingerprint == res.fingerprint


def test_extension_conflict() -> None:
    a = BASE + " extend Base { optional string tag = 100; }"
    b = 'syntax = "proto2"; package p; extend Base { optional bytes tag = 100; }'
    for texts in ([a, b], [b, a]):
        with pytest.raises(ExtensionConflict) as e:
            merge_by_namespace(texts)
        assert (e.value.extendee, e.value.number) == ("Base", 100)
        assert e.value.members == (0, 1)
        assert "conflicting extensions of 'Base' with number 100" in str(e.value)
