#!/usr/bin/env python3
from __future__ import annotations

from pathlib import Path
import sys

from lark import UnexpectedInput

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from optchain import CheckOptions, verify_source


def main(argv: list[str]) -> int:
    roots = [Path(arg) for arg in argv] or [ROOT / "optchain" / "tests" / "programs"]
    files = sorted(path for root in roots for path in ([root] if root.is_file() else root.glob("*.chain")))
    if not files:
        print("no .chain files found", file=sys.stderr)
        return 1

    options = CheckOptions.from_env()
    failed = False
    for path in files:
        try:
            result = verify_source(path.read_text(), options)
        except UnexpectedInput as exc:
            failed = True
            print(f"[parse error] {path}: {exc}", file=sys.stderr)
            continue
        if result.ok:
            print(f"[ok] {path}")
            continue
        failed = True
        print(f"[mismatch] {path}", file=sys.stderr)
        for line in result.describe():
            print(f"  {line}", file=sys.stderr)

    return 1 if failed else 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
