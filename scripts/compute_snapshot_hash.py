from __future__ import annotations

import argparse
import hashlib

from protocanon import fingerprint_source, normalize_source
from protocanon.testing import generate_proto_sources


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(prog="compute_snapshot_hash")
    ap.add_argument("--seed", type=int, default=1)
    ap.add_argument("--count", type=int, default=1000)
    ap.add_argument("--fingerprints", action="store_true", help="Hash content fingerprints instead of rendered text")
    args = ap.parse_args(argv)

    h = hashlib.sha256()
    for i, src in enumerate(generate_proto_sources(seed=args.seed, count=args.count)):
        name = f"snapshot:{args.seed}:{i}.proto"
        out1 = normalize_source(src, file=name)
        out2 = normalize_source(out1, file=name)
        if out2 != out1:
            raise SystemExit(f"non-idempotent normalization at case {i}")
        if args.fingerprints:
            h.update(fingerprint_source(src, file=name).encode("ascii"))
        else:
            h.update(out2.encode("utf-8"))
        h.update(b"\n---\n")

    print(h.hexdigest())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
