"""
Merging descriptor trees by package.

Inputs are canonicalized, grouped by package, and each group is unioned into
one fresh tree which is canonicalized again, rendered and fingerprinted.
Conflicts are detected in a fixed scan order (syntax, option keys, declaration
names, extension numbers) so the reported error does not depend on input order.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass

from . import descriptor as D
from .canonical import canonicalize
from .errors import (
    EditionConflict,
    ExtensionConflict,
    MergeError,
    OptionConflict,
    RenderError,
    TypeConflict,
    ValidationError,
)
from .fingerprint import encode_declaration, encode_value, fingerprint
from .render import RENDER_STYLE_VERSION, render


logger = logging.getLogger(__name__)

MERGE_ALGORITHM_VERSION = f"1.1.0+{RENDER_STYLE_VERSION}"


@dataclass(frozen=True, slots=True)
class MergeResult:
    namespace: str
    content: str
    fingerprint: str
    members: tuple[int, ...]  # input indices of the group


@dataclass(frozen=True, slots=True)
class MergeFailure:
    namespace: str
    members: tuple[int, ...]
    error: MergeError | RenderError | ValidationError


@dataclass(frozen=True, slots=True)
class MergeReport:
    """Outcome of merging every group; each namespace appears in exactly one list."""

    results: tuple[MergeResult, ...]
    errors: tuple[MergeFailure, ...]

    @property
    def ok(self) -> bool:
        return not self.errors

    def raise_first(self) -> None:
        if self.errors:
            raise self.errors[0].error


@dataclass(frozen=True, slots=True)
class MergeOptions:
    # Thread pool size for independent groups; None or 1 merges sequentially.
    workers: int | None = None


@dataclass(frozen=True, slots=True)
class _Group:
    namespace: str
    members: tuple[tuple[int, D.ProtoFile], ...]

    @property
    def indices(self) -> tuple[int, ...]:
        return tuple(i for i, _ in self.members)


def _canonicalize_inputs(trees: Sequence[D.ProtoFile]) -> list[D.ProtoFile]:
    out: list[D.ProtoFile] = []
    for idx, tree in enumerate(trees):
        try:
            out.append(canonicalize(tree))
        except ValidationError as exc:
            exc.input_index = idx
            raise
    return out


def _group(trees: Sequence[D.ProtoFile]) -> list[_Group]:
    by_ns: dict[str, list[tuple[int, D.ProtoFile]]] = {}
    for idx, tree in enumerate(trees):
        by_ns.setdefault(tree.package or "", []).append((idx, tree))
    return [_Group(ns, tuple(by_ns[ns])) for ns in sorted(by_ns)]


def _merge_imports(group: _Group) -> tuple[D.Import, ...]:
    modifiers: dict[str, list[str | None]] = {}
    for _, tree in group.members:
        for imp in tree.imports:
            modifiers.setdefault(imp.path, []).append(imp.modifier)
    out: list[D.Import] = []
    for path in sorted(modifiers):
        mods = modifiers[path]
        if "public" in mods:
            modifier = "public"
        elif all(m == "weak" for m in mods):
            modifier = "weak"
        else:
            modifier = None
        out.append(D.Import(path=path, modifier=modifier))
    return tuple(out)


def _merge_options(group: _Group) -> D.Options:
    seen: dict[str, list[tuple[int, object]]] = {}
    for idx, tree in group.members:
        for key, value in tree.options:
            seen.setdefault(key, []).append((idx, value))
    out: list[tuple[str, D.OptionValue]] = []
    for key in sorted(seen):
        entries = seen[key]
        if len({encode_value(v) for _, v in entries}) > 1:
            raise OptionConflict(
                namespace=group.namespace,
                members=tuple(sorted({i for i, _ in entries})),
                key=key,
            )
        out.append((key, entries[0][1]))
    return tuple(out)


def _merge_declarations(group: _Group) -> list[D.Declaration]:
    by_name: dict[str, list[tuple[int, D.Declaration]]] = {}
    for idx, tree in group.members:
        for decl in tree.declarations():
            by_name.setdefault(decl.name, []).append((idx, decl))
    out: list[D.Declaration] = []
    for name in sorted(by_name):
        entries = by_name[name]
        encodings = {encode_declaration(decl, ref_kinds=False) for _, decl in entries}
        if len(encodings) > 1:
            raise TypeConflict(
                namespace=group.namespace,
                members=tuple(sorted({i for i, _ in entries})),
                name=name,
            )
        if len(entries) > 1:
            logger.debug("package %r: %r is identical in inputs %s", group.namespace, name, [i for i, _ in entries])
        # Members are in input order, so this keeps the lowest-index copy.
        out.append(entries[0][1])
    return out


def _merge_extensions(group: _Group) -> tuple[D.ExtendDecl, ...]:
    """Union of top-level extensions, keyed by extendee and number."""
    by_key: dict[tuple[str, int], list[tuple[int, D.FieldDecl]]] = {}
    for idx, tree in group.members:
        for x in tree.extends:
            for f in x.fields:
                by_key.setdefault((x.extendee.name, f.number), []).append((idx, f))
    blocks: dict[str, list[D.FieldDecl]] = {}
    for extendee, number in sorted(by_key):
        entries = by_key[extendee, number]
        ref = D.MessageRef(extendee)
        encodings = {encode_declaration(D.ExtendDecl(ref, (f,)), ref_kinds=False) for _, f in entries}
        if len(encodings) > 1:
            raise ExtensionConflict(
                namespace=group.namespace,
                members=tuple(sorted({i for i, _ in entries})),
                extendee=extendee,
                number=number,
            )
        blocks.setdefault(extendee, []).append(entries[0][1])
    return tuple(D.ExtendDecl(D.MessageRef(e), tuple(fields)) for e, fields in blocks.items())


def _merge_group(group: _Group) -> MergeResult:
    syntaxes = sorted({tree.syntax.value for _, tree in group.members})
    if len(syntaxes) > 1:
        raise EditionConflict(namespace=group.namespace, members=group.indices, syntaxes=tuple(syntaxes))

    imports = _merge_imports(group)
    options = _merge_options(group)
    decls = _merge_declarations(group)
    extends = _merge_extensions(group)

    union = D.ProtoFile(
        package=group.namespace or None,
        syntax=group.members[0][1].syntax,
        imports=imports,
        messages=tuple(d for d in decls if isinstance(d, D.MessageDecl)),
        enums=tuple(d for d in decls if isinstance(d, D.EnumDecl)),
        services=tuple(d for d in decls if isinstance(d, D.ServiceDecl)),
        extends=extends,
        options=options,
    )
    merged = canonicalize(union)
    content = render(merged)
    digest = fingerprint(merged)
    logger.debug(
        "package %r: merged %d inputs %s into %d declarations, fingerprint %s",
        group.namespace,
        len(group.members),
        list(group.indices),
        len(decls),
        digest,
    )
    return MergeResult(namespace=group.namespace, content=content, fingerprint=digest, members=group.indices)


def _run_group(group: _Group) -> MergeResult | MergeFailure:
    try:
        return _merge_group(group)
    except (MergeError, RenderError, ValidationError) as exc:
        logger.debug("package %r: merge failed: %s", group.namespace, exc)
        return MergeFailure(namespace=group.namespace, members=group.indices, error=exc)


def merge_groups(trees: Sequence[D.ProtoFile], *, options: MergeOptions = MergeOptions()) -> MergeReport:
    """Merge `trees` by package, reporting every group's outcome.

    A `ValidationError` in any input is raised immediately with `input_index`
    set. Conflicts only fail their own group.
    """
    canonical = _canonicalize_inputs(trees)
    groups = _group(canonical)
    logger.debug("merging %d inputs in %d packages", len(canonical), len(groups))

    outcomes: dict[str, MergeResult | MergeFailure] = {}
    if options.workers is not None and options.workers > 1 and len(groups) > 1:
        with ThreadPoolExecutor(max_workers=options.workers) as exe:
            futures = {exe.submit(_run_group, g): g.namespace for g in groups}
            for fut in as_completed(futures):
                outcomes[futures[fut]] = fut.result()
    else:
        for g in groups:
            outcomes[g.namespace] = _run_group(g)

    results: list[MergeResult] = []
    errors: list[MergeFailure] = []
    for ns in sorted(outcomes):
        outcome = outcomes[ns]
        if isinstance(outcome, MergeFailure):
            errors.append(outcome)
        else:
            results.append(outcome)
    return MergeReport(results=tuple(results), errors=tuple(errors))


def merge_by_namespace(trees: Sequence[D.ProtoFile]) -> list[MergeResult]:
    """Merge `trees` by package; raise the first failure in package order."""
    report = merge_groups(trees)
    report.raise_first()
    return list(report.results)
