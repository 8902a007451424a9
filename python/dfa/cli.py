from __future__ import annotations
from pathlib import Path
import argparse
import sys

from simplec.parser import parse_file
from cfa.builder import CFGBuilder
from cfa.simplify import simplify_program

from .liveness import analyze_program, render_liveness


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(
        prog="simplec-dfa",
        description="Liveness analysis (IN/OUT per basic block) for a simpleC file",
    )
    ap.add_argument("input", help="Input simpleC source file")
    ap.add_argument("-o", "--output", default="liveness.out", help="Output file (default: liveness.out)")
    args = ap.parse_args(argv)

    try:
        res = parse_file(args.input)
    except (OSError, UnicodeDecodeError) as e:
        print(f"[dfa] ERROR: cannot read {args.input}: {e}", file=sys.stderr)
        return 2

    if res.errors:
        for e in res.errors:
            print(f"[parse error] line={e.line} col={e.column}: {e.message}", file=sys.stderr)
        return 2

    prog = simplify_program(CFGBuilder().build_program(res.program))
    results = analyze_program(prog)

    out_path = Path(args.output)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(render_liveness(prog, results), encoding="utf-8")

    iterations = sum(r.iterations for r in results.values())
    print(f"OK. liveness_written={out_path.resolve()}")
    print(f"Functions: {len(results)}; block updates: {iterations}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
