from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict, is_dataclass
from enum import Enum
from pathlib import Path

from .api import parse_file
from .canonical import canonicalize
from .errors import MergeError, ParseError, RenderError, ValidationError
from .fingerprint import fingerprint
from .merge import merge_groups
from .render import render


logger = logging.getLogger("protocanon.cli")

_LIBRARY_ERRORS = (ParseError, ValidationError, MergeError, RenderError, OSError)


def _to_jsonable(obj):
    if is_dataclass(obj):
        return {k: _to_jsonable(v) for k, v in asdict(obj).items()}
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, tuple):
        return [_to_jsonable(x) for x in obj]
    if isinstance(obj, list):
        return [_to_jsonable(x) for x in obj]
    if isinstance(obj, dict):
        return {str(k): _to_jsonable(v) for k, v in obj.items()}
    if isinstance(obj, bytes):
        return obj.decode("utf-8", errors="backslashreplace")
    return obj


def _write(text: str, output: str | None) -> None:
    if output is None:
        sys.stdout.write(text)
        return
    Path(output).write_text(text, encoding="utf-8")
    logger.debug("wrote %s", output)


def _normalize_file(path: Path, output: str | None) -> int:
    tree = canonicalize(parse_file(path))
    _write(render(tree), output)
    return 0


def _normalize_directory(path: Path, output: str | None) -> int:
    if output is None:
        print("error: normalizing a directory requires -o/--output", file=sys.stderr)
        return 1
    files = sorted(p for p in path.iterdir() if p.is_file() and p.suffix == ".proto")
    if not files:
        logger.warning("no .proto files found in %s", path)
        return 0
    logger.debug("merging %d files from %s", len(files), path)

    report = merge_groups([parse_file(p) for p in files])

    out_dir = Path(output)
    out_dir.mkdir(parents=True, exist_ok=True)
    for res in report.results:
        name = (res.namespace or "default").replace(".", "_")
        target = out_dir / f"{name}.proto"
        target.write_text(res.content, encoding="utf-8")
        logger.debug("package %r -> %s (fingerprint %s)", res.namespace, target, res.fingerprint)
    for failure in report.errors:
        members = ", ".join(str(files[i]) for i in failure.members)
        print(f"error: {failure.error} [{members}]", file=sys.stderr)
    return 0 if report.ok else 1


def _cmd_normalize(args: argparse.Namespace) -> int:
    path = Path(args.path)
    if path.is_dir():
        return _normalize_directory(path, args.output)
    return _normalize_file(path, args.output)


def _cmd_fingerprint(args: argparse.Namespace) -> int:
    for f in args.files:
        digest = fingerprint(canonicalize(parse_file(f)))
        print(f"{digest}  {f}")
    return 0


def _cmd_inspect(args: argparse.Namespace) -> int:
    tree = parse_file(args.file)
    if not args.raw:
        tree = canonicalize(tree)
    print(json.dumps(_to_jsonable(tree), indent=2, sort_keys=True))
    return 0


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(prog="protocanon", description="Normalize, merge and fingerprint .proto files")
    ap.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = ap.add_subparsers(dest="command", required=True)

    p = sub.add_parser("normalize", help="Normalize a file, or merge a directory by package")
    p.add_argument("path", help="A .proto file or a directory of .proto files")
    p.add_argument("-o", "--output", help="Output file (file mode) or directory (directory mode)")
    p.set_defaults(func=_cmd_normalize)

    p = sub.add_parser("fingerprint", help="Print the content fingerprint of each file")
    p.add_argument("files", nargs="+", help=".proto files")
    p.set_defaults(func=_cmd_fingerprint)

    p = sub.add_parser("inspect", help="Print the descriptor tree as JSON")
    p.add_argument("file", help=".proto file")
    p.add_argument("--raw", action="store_true", help="Print the tree as parsed, before canonicalization")
    p.set_defaults(func=_cmd_inspect)

    args = ap.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        return args.func(args)
    except _LIBRARY_ERRORS as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
