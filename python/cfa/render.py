from __future__ import annotations
from pathlib import Path
from typing import Dict, Iterable, List, Set, Tuple
import subprocess

from .cfg import BasicBlock, Function, ProgramCFG


def _names(ids: List[str]) -> str:
    return ", ".join(ids) if ids else "-"


def _block_to_text(fn: Function, b: BasicBlock) -> List[str]:
    lines = [f"@{b.id}", "{"]
    for text in b.texts:
        lines.append("    " + text.replace("\n", "\n    "))
    lines.append("}")
    lines.append(f"Predecessors: {_names(fn.ids(b.preds))}")
    lines.append(f"Successors: {_names(fn.ids(b.succs))}")
    return lines


def _entry_to_text(fn: Function) -> List[str]:
    entry = fn.block(fn.entry)
    succ = fn.block(entry.succs[0]).id if entry.succs else "-"
    return [
        f"@{entry.id} {{",
        f"    name: {fn.name}",
        f"    ret_type: {fn.ret_type}",
        f"    args: {fn.args}",
        "}",
        "Predecessors: -",
        f"Successors: {succ}",
    ]


def render_cfg_text(prog: ProgramCFG) -> str:
    """Canonical CFG listing: globals, then every function's blocks in order."""
    lines = ["# Control Flow Graph", ""]
    lines.append("@globals {")
    for g in prog.globals:
        lines.append(f"    {g}")
    lines.append("}")
    lines.append("Predecessors: -")
    lines.append("Successors: -")
    lines.append("")

    for fn in prog.functions.values():
        for b in fn.ordered_blocks():
            if b.key == fn.entry:
                lines.extend(_entry_to_text(fn))
            else:
                lines.extend(_block_to_text(fn, b))
            lines.append("")
    return "\n".join(lines) + "\n"


def _esc(s: str) -> str:
    return s.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\l")


def _edge_labels(fn: Function) -> Dict[Tuple[int, int], str]:
    labels: Dict[Tuple[int, int], str] = {}
    for owner, roles in fn.targets.items():
        for role, target in roles.items():
            labels[(owner, target)] = role.value
    return labels


def cfg_to_dot(fn: Function) -> str:
    lines = []
    lines.append(f'digraph "{_esc(fn.name)}" {{')
    lines.append("  node [shape=box];")

    blocks = fn.ordered_blocks()
    for b in blocks:
        body = "\n".join([b.id] + b.texts) + "\n"
        lines.append(f'  n{b.key} [label="{_esc(body)}"];')

    edge_labels = _edge_labels(fn)
    for b in blocks:
        for to in b.succs:
            lab = edge_labels.get((b.key, to))
            if lab is None:
                lines.append(f"  n{b.key} -> n{to};")
            else:
                lines.append(f'  n{b.key} -> n{to} [label="{lab}"];')

    lines.append("}")
    return "\n".join(lines)


def call_graph_edges(prog: ProgramCFG) -> List[Tuple[str, str]]:
    return [(name, callee) for name, fn in prog.functions.items() for callee in fn.calls]


def call_graph_to_dot(edges: Iterable[Tuple[str, str]], defined: Set[str]) -> str:
    edges = list(edges)
    lines = []
    lines.append('digraph "call_graph" {')
    lines.append("  rankdir=LR;")
    lines.append("  node [shape=box];")

    all_nodes: Set[str] = set(defined)
    for a, b in edges:
        all_nodes.add(a)
        all_nodes.add(b)

    for n in sorted(all_nodes):
        label = n if n in defined else f"{n}\\n(UNDEF)"
        lines.append(f'  "{_esc(n)}" [label="{label}"];')

    for a, b in edges:
        lines.append(f'  "{_esc(a)}" -> "{_esc(b)}";')

    lines.append("}")
    return "\n".join(lines)


def run_dot(dot_path: Path, out_path: Path) -> None:
    out_path.parent.mkdir(parents=True, exist_ok=True)
    fmt = out_path.suffix.lstrip(".")
    subprocess.run(["dot", f"-T{fmt}", str(dot_path), "-o", str(out_path)], check=True)
