from __future__ import annotations

import heapq
from dataclasses import dataclass
from typing import Dict, List, Set, Tuple

from cfa.cfg import Function, ProgramCFG


@dataclass
class LivenessResult:
    """IN/OUT live-variable sets per block, keyed by arena key."""

    live_in: Dict[int, Set[str]]
    live_out: Dict[int, Set[str]]
    iterations: int = 0


def postorder(fn: Function) -> List[int]:
    """Depth-first postorder over successors, starting at entry.

    Iterative, but visits in the same order as the recursive walk would.
    """
    order: List[int] = []
    visited: Set[int] = set()

    def walk(start: int) -> None:
        if start in visited or start not in fn.blocks:
            return
        visited.add(start)
        stack: List[Tuple[int, int]] = [(start, 0)]
        while stack:
            key, i = stack[-1]
            succs = fn.blocks[key].succs
            if i < len(succs):
                stack[-1] = (key, i + 1)
                nxt = succs[i]
                if nxt not in visited:
                    visited.add(nxt)
                    stack.append((nxt, 0))
            else:
                stack.pop()
                order.append(key)

    walk(fn.entry)
    walk(fn.exit)
    return order


def analyze_function(fn: Function) -> LivenessResult:
    live_in: Dict[int, Set[str]] = {k: set() for k in fn.blocks}
    live_out: Dict[int, Set[str]] = {k: set() for k in fn.blocks}

    # worklist ordered by postorder index; the fixed point does not depend on it
    index = {k: i for i, k in enumerate(postorder(fn))}
    heap: List[Tuple[int, int]] = []
    queued: Set[int] = set()

    def push(key: int) -> None:
        heapq.heappush(heap, (index.get(key, -1), key))
        queued.add(key)

    for key in fn.blocks:
        if not fn.is_sentinel(key):
            push(key)

    iterations = 0
    while heap:
        _, key = heapq.heappop(heap)
        queued.discard(key)
        b = fn.blocks[key]
        iterations += 1

        # OUT[B] = U IN[S];  IN[B] = USE[B] | (OUT[B] - DEF[B])
        out = set().union(*(live_in[s] for s in b.succs))
        live_out[key] = out
        new_in = b.uses | (out - b.defs)

        if new_in != live_in[key]:
            live_in[key] = new_in
            for p in b.preds:
                if p != fn.entry and p not in queued:
                    push(p)

    return LivenessResult(live_in=live_in, live_out=live_out, iterations=iterations)


def analyze_program(prog: ProgramCFG) -> Dict[str, LivenessResult]:
    return {name: analyze_function(fn) for name, fn in prog.functions.items()}


def _format_set(names: Set[str]) -> str:
    return ", ".join(sorted(names)) if names else ";"


def render_liveness(prog: ProgramCFG, results: Dict[str, LivenessResult]) -> str:
    lines = []
    for name, fn in prog.functions.items():
        res = results[name]
        for b in fn.ordered_blocks():
            if fn.is_sentinel(b.key):
                continue
            short = b.id[len(fn.name) + 1:]
            lines.append(f"{short}-IN: {_format_set(res.live_in[b.key])}")
            lines.append(f"{short}-OUT: {_format_set(res.live_out[b.key])}")
    return "".join(line + "\n" for line in lines)
