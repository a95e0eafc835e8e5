from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

from .canonical import canonicalize
from .descriptor import ProtoFile
from .fingerprint import fingerprint
from .lexer import tokenize
from .merge import MergeOptions, MergeReport, MergeResult, merge_groups
from .parser import Parser
from .render import render


logger = logging.getLogger(__name__)


def parse_source(src: str, *, file: str = "<memory>") -> ProtoFile:
    toks = tokenize(src, file=file)
    return Parser(toks).parse_file()


def parse_file(path: str | Path) -> ProtoFile:
    p = Path(path).expanduser().resolve()
    src = p.read_text(encoding="utf-8")
    return parse_source(src, file=str(p))


def canonicalize_to_text(tree: ProtoFile) -> str:
    return render(canonicalize(tree))


def normalize_source(src: str, *, file: str = "<memory>") -> str:
    """Parse, canonicalize and render one source text."""
    return canonicalize_to_text(parse_source(src, file=file))


def fingerprint_source(src: str, *, file: str = "<memory>") -> str:
    return fingerprint(canonicalize(parse_source(src, file=file)))


def _parse_all(texts: Sequence[str]) -> list[ProtoFile]:
    trees = [parse_source(text, file=f"<input #{i}>") for i, text in enumerate(texts)]
    logger.debug("parsed %d inputs", len(trees))
    return trees


def merge_sources(texts: Sequence[str], *, options: MergeOptions = MergeOptions()) -> MergeReport:
    """Merge source texts by package, keeping the groups that succeed.

    Parse and validation errors still abort the whole call; merge and render
    errors are reported per package in `MergeReport.errors`.
    """
    return merge_groups(_parse_all(texts), options=options)


def merge_by_namespace(texts: Sequence[str]) -> list[MergeResult]:
    """Merge source texts by package; raise the first failure in package order."""
    report = merge_sources(texts)
    report.raise_first()
    return list(report.results)
