from __future__ import annotations

from collections import deque
from typing import Set

from .cfg import Function, ProgramCFG


def merge_empty_blocks(fn: Function) -> None:
    """Fold statement-less single-successor blocks into their successor, to a fixed point."""
    changed = True
    while changed:
        changed = False
        doomed = []
        for b in list(fn.blocks.values()):
            if fn.is_sentinel(b.key):
                continue
            if b.statements or not b.preds or len(b.succs) != 1:
                continue
            succ = b.succs[0]
            if succ == b.key:
                continue
            for p in list(b.preds):
                fn.remove_edge(p, b.key)
                fn.add_edge(p, succ)
            fn.remove_edge(b.key, succ)
            fn.merged[b.key] = succ
            doomed.append(b.key)
            changed = True
        for key in doomed:
            del fn.blocks[key]


def _actual_target(fn: Function, key: int) -> int:
    seen: Set[int] = set()
    while key not in seen:
        seen.add(key)
        if key in fn.merged:
            key = fn.merged[key]
            continue
        b = fn.blocks.get(key)
        if b is None or fn.is_sentinel(key) or b.statements or len(b.succs) != 1:
            return key
        key = b.succs[0]
    return key


def retarget_pending(fn: Function) -> None:
    for roles in fn.targets.values():
        for role, target in roles.items():
            roles[role] = _actual_target(fn, target)


def remove_dead_blocks(fn: Function) -> None:
    reachable = {fn.entry}
    work = deque([fn.entry])
    while work:
        cur = work.popleft()
        for s in fn.blocks[cur].succs:
            if s not in reachable:
                reachable.add(s)
                work.append(s)

    ex = fn.blocks.get(fn.exit)
    if ex is not None and any(p in reachable for p in ex.preds):
        reachable.add(fn.exit)

    for key in list(fn.blocks):
        if key not in reachable:
            del fn.blocks[key]
    for b in fn.blocks.values():
        b.preds = [p for p in b.preds if p in reachable]
    fn.targets = {k: v for k, v in fn.targets.items() if k in reachable}


def renumber_blocks(fn: Function) -> None:
    ordered = fn.ordered_blocks()
    c = 0
    for b in ordered:
        if not fn.is_sentinel(b.key):
            b.id = f"{fn.name}_B{c}"
            c += 1
    fn.blocks = {b.key: b for b in ordered}


def resolve_labels(fn: Function) -> None:
    for owner, roles in fn.targets.items():
        for stmt in fn.blocks[owner].statements:
            for label in stmt.labels:
                label.target = fn.blocks[roles[label.role]].id


def simplify(fn: Function) -> Function:
    # order matters: re-targeting needs the merge map, labels need final ids
    merge_empty_blocks(fn)
    retarget_pending(fn)
    remove_dead_blocks(fn)
    renumber_blocks(fn)
    resolve_labels(fn)
    return fn


def simplify_program(prog: ProgramCFG) -> ProgramCFG:
    for fn in prog.functions.values():
        simplify(fn)
    return prog
