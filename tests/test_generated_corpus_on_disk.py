from __future__ import annotations

from pathlib import Path

from protocanon import (
    canonicalize,
    canonicalize_to_text,
    fingerprint,
    merge_by_namespace,
    merge_groups,
    parse_file,
    parse_source,
)
from protocanon.testing import generate_corpus_files


def _write_corpus(root: Path, *, seed: int, count: int) -> list[Path]:
    root.mkdir(parents=True, exist_ok=True)
    paths = []
    for rel, src in generate_corpus_files(seed=seed, count=count):
        p = root / rel
        p.write_text(src, encoding="utf-8")
        paths.append(p)
    return paths


def test_generated_corpus_on_disk_normalizes(tmp_path: Path) -> None:
    corpus_dir = tmp_path / "corpus"
    paths = _write_corpus(corpus_dir, seed=1, count=200)
    assert paths[0].name == "case_000000.proto"

    for p in paths:
        tree = canonicalize(parse_file(p))
        text = canonicalize_to_text(tree)
        formatted = corpus_dir / (p.name + ".fmt")
        formatted.write_text(text, encoding="utf-8")
        again = canonicalize(parse_file(formatted))
        assert again == tree, p.name
        assert fingerprint(again) == fingerprint(tree)


def test_generated_corpus_merges_per_package(tmp_path: Path) -> None:
    paths = _write_corpus(tmp_path / "corpus", seed=3, count=60)
    trees = [parse_file(p) for p in paths]
    report = merge_groups(trees)

    namespaces = [r.namespace for r in report.results] + [f.namespace for f in report.errors]
    assert sorted(namespaces) == sorted({t.package or "" for t in trees})
    members = sorted(i for r in report.results for i in r.members) + sorted(i for f in report.errors for i in f.members)
    assert sorted(members) == list(range(len(trees)))

    for res in report.results:
        # Every merged output is itself canonical.
        assert canonicalize_to_text(parse_source(res.content)) == res.content


def test_merging_a_file_with_itself_is_a_no_op(tmp_path: Path) -> None:
    paths = _write_corpus(tmp_path / "corpus", seed=5, count=30)
    for p in paths:
        src = p.read_text(encoding="utf-8")
        (single,) = merge_by_namespace([src])
        (double,) = merge_by_namespace([src, src])
        assert double.content == single.content
        assert double.fingerprint == single.fingerprint
        assert single.content == canonicalize_to_text(parse_source(src))
