from __future__ import annotations

from collections import deque

import pytest

from simplec.parser import parse_text
from cfa.builder import CFGBuilder
from cfa.cfg import Function
from cfa.simplify import simplify_program


def _parse_ok(src: str):
    res = parse_text(src)
    assert not res.errors, res.errors
    return res.program


@pytest.fixture
def parse():
    return _parse_ok


@pytest.fixture
def draft():
    """Source text -> ProgramCFG straight out of the builder."""
    def _draft(src: str):
        return CFGBuilder().build_program(_parse_ok(src))
    return _draft


@pytest.fixture
def cfg():
    """Source text -> simplified ProgramCFG."""
    def _cfg(src: str):
        return simplify_program(CFGBuilder().build_program(_parse_ok(src)))
    return _cfg


def by_id(fn: Function, bid: str):
    for b in fn.blocks.values():
        if b.id == bid:
            return b
    raise KeyError(bid)


def assert_symmetric(fn: Function) -> None:
    for a in fn.blocks.values():
        for s in a.succs:
            assert s in fn.blocks, f"{a.id} -> dangling {s}"
            assert a.key in fn.blocks[s].preds, f"{a.id} -> {fn.blocks[s].id} not mirrored"
        for p in a.preds:
            assert p in fn.blocks, f"dangling {p} -> {a.id}"
            assert a.key in fn.blocks[p].succs, f"{fn.blocks[p].id} -> {a.id} not mirrored"


def reachable(fn: Function):
    seen = {fn.entry}
    work = deque([fn.entry])
    while work:
        for s in fn.blocks[work.popleft()].succs:
            if s not in seen:
                seen.add(s)
                work.append(s)
    return seen


@pytest.fixture
def helpers():
    class _H:
        pass
    h = _H()
    h.by_id = by_id
    h.assert_symmetric = assert_symmetric
    h.reachable = reachable
    return h


COMPREHENSIVE = """
// globals
int global_result;
float PI;

int calculate_offset(int input) {
    int offset;
    offset = (input * 2) - 1;
    return offset;
}

int nesting(int a, int b) {
    int result;
    result = 0;
    if (a > b) {
        if (a >= 10) {
            result = 1;
        } else {
            result = 2;
        }
    } else {
        if (a < b) {
            if (b <= 0) {
                result = -1;
            }
        } else {
            if (a != 0) {
                result = 0;
            }
        }
    }
    result = result + (a * b);
    result = -result;
    return result;
}

float loops(int limit) {
    int i;
    float sum;
    sum = 0.0;
    for (i = 0; i < limit; i = i + 1) {
        sum = sum + calculate_offset(i);
    }
    while (limit > 0) {
        limit = limit - 1;
        sum = sum - 1.0;
    }
    return sum;
}

int edge_cases() {
    int local_var;
    local_var = 10;
    update_status(1);
    if (local_var > 5) {
        ;
    } else {
        update_status(-1);
    }
    return local_var;
    local_var = 99;
}

int no_value() {
    return;
}

int main() {
    int x;
    int y;
    int code;
    x = 20;
    y = 10;
    code = nesting(x, y);
    code = loops(5) + edge_cases();
    while (x) {
        if (y) {
            return code;
        }
        x = x - 1;
    }
    update_status(code);
    return 0;
}
"""


@pytest.fixture
def comprehensive_src():
    return COMPREHENSIVE
