from __future__ import annotations
from pathlib import Path
import argparse
import sys

from simplec.parser import parse_file

from .builder import CFGBuilder
from .render import render_cfg_text, cfg_to_dot, call_graph_edges, call_graph_to_dot, run_dot
from .simplify import simplify_program


def write_dot(prog, out_dir: Path, png: bool = False, svg: bool = False) -> None:
    out_graph = out_dir / "graph"
    out_graph.mkdir(parents=True, exist_ok=True)

    for name, fn in prog.functions.items():
        dot_path = out_graph / f"{name}.dot"
        dot_path.write_text(cfg_to_dot(fn), encoding="utf-8")
        if png:
            run_dot(dot_path, out_graph / f"{name}.png")
        if svg:
            run_dot(dot_path, out_graph / f"{name}.svg")

    cg_dot_path = out_dir / "call_graph.dot"
    cg_dot_path.write_text(
        call_graph_to_dot(call_graph_edges(prog), set(prog.functions)),
        encoding="utf-8",
    )
    if png:
        run_dot(cg_dot_path, out_dir / "call_graph.png")
    if svg:
        run_dot(cg_dot_path, out_dir / "call_graph.svg")


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(
        prog="simplec-cfa",
        description="Build and print the control flow graph of every function in a simpleC file",
    )
    ap.add_argument("input", help="Input simpleC source file")
    ap.add_argument("--dot", metavar="OUT_DIR", help="also write per-function CFG and call graph DOT files")
    ap.add_argument("--png", action="store_true", help="render DOT files to PNG (needs --dot)")
    ap.add_argument("--svg", action="store_true", help="render DOT files to SVG (needs --dot)")
    args = ap.parse_args(argv)

    if (args.png or args.svg) and not args.dot:
        ap.error("--png/--svg need --dot OUT_DIR")

    try:
        res = parse_file(args.input)
    except (OSError, UnicodeDecodeError) as e:
        print(f"[cfa] ERROR: cannot read {args.input}: {e}", file=sys.stderr)
        return 2

    if res.errors:
        for e in res.errors:
            print(f"[parse error] line={e.line} col={e.column}: {e.message}", file=sys.stderr)
        return 2

    prog = simplify_program(CFGBuilder().build_program(res.program))
    sys.stdout.write(render_cfg_text(prog))

    if args.dot:
        write_dot(prog, Path(args.dot), png=args.png, svg=args.svg)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
