from __future__ import annotations

from typing import List, Optional, Set

from simplec.ast import (
    Program, FuncDef,
    Stmt, VarDecl, Assign, CallStmt, Return, If, While, For, Compound, Empty,
    Expr, Name, Literal, Unary, Binary, Call,
)

from .cfg import Function, Label, ProgramCFG, Role


def expr_vars(e: Optional[Expr]) -> Set[str]:
    """Variables read by an expression; callee names are not variables."""
    if e is None or isinstance(e, Literal):
        return set()
    if isinstance(e, Name):
        return {e.name}
    if isinstance(e, Unary):
        return expr_vars(e.rhs)
    if isinstance(e, Binary):
        return expr_vars(e.lhs) | expr_vars(e.rhs)
    if isinstance(e, Call):
        out: Set[str] = set()
        for a in e.args:
            out |= expr_vars(a)
        return out
    raise TypeError(f"unhandled expr type: {type(e).__name__}")


def expr_callees(e: Optional[Expr]) -> List[str]:
    """Callees of every call inside `e`, outer call first."""
    if e is None or isinstance(e, (Name, Literal)):
        return []
    if isinstance(e, Unary):
        return expr_callees(e.rhs)
    if isinstance(e, Binary):
        return expr_callees(e.lhs) + expr_callees(e.rhs)
    if isinstance(e, Call):
        out = [e.callee]
        for a in e.args:
            out.extend(expr_callees(a))
        return out
    raise TypeError(f"unhandled expr type: {type(e).__name__}")


def _call_notes(callees: List[str], kind: str) -> str:
    return "".join(f" # {kind}: {c} -> {c}_entry" for c in callees)


class CFGBuilder:
    """Builds draft CFGs; see cfa.simplify for the clean-up passes.

    The block that receives the next statement is passed into `_build_stmt` and
    handed back to the caller. `None` means the path ended in a return, and the
    next statement (dead code) opens a fresh block with no predecessors.
    """

    def build_program(self, prog: Program) -> ProgramCFG:
        out = ProgramCFG()
        for item in prog.items:
            if isinstance(item, VarDecl):
                out.globals.append(item.text)
            elif isinstance(item, FuncDef):
                out.functions[item.name] = self.build_for_func(item)
            else:
                raise TypeError(f"unhandled top-level item: {type(item).__name__}")
        return out

    def build_for_func(self, f: FuncDef) -> Function:
        fn = Function(name=f.name, ret_type=f.ret_type, args=f.args_text)

        first = fn.new_block()
        fn.add_edge(fn.entry, first)
        fn.block(fn.entry).defs.update(p.name for p in f.params)

        self._build_stmt(fn, f.body, first)

        # fall-through off the end of the function
        for b in list(fn.blocks.values()):
            if b.key != fn.exit and b.preds and not b.succs:
                fn.add_edge(b.key, fn.exit)
        return fn

    def _ensure(self, fn: Function, cur: Optional[int]) -> int:
        return cur if cur is not None else fn.new_block()

    def _build_stmt(self, fn: Function, st: Stmt, cur: Optional[int]) -> Optional[int]:
        if isinstance(st, Compound):
            for s in st.body:
                cur = self._build_stmt(fn, s, cur)
            return cur

        if isinstance(st, Empty):
            return cur

        if isinstance(st, VarDecl):
            cur = self._ensure(fn, cur)
            b = fn.block(cur)
            b.add_statement(st.text)
            b.defs.update(st.names)
            return cur

        if isinstance(st, Assign):
            cur = self._ensure(fn, cur)
            callees = self._collect_calls(fn, st.value)
            self._assign(fn, cur, st, st.text + _call_notes(callees, "call in expr"))
            return cur

        if isinstance(st, CallStmt):
            cur = self._ensure(fn, cur)
            b = fn.block(cur)
            callee = st.call.callee
            self._collect_calls(fn, st.call)
            b.add_statement(st.text + _call_notes([callee], "call"))
            b.uses |= expr_vars(st.call)
            return cur

        if isinstance(st, Return):
            cur = self._ensure(fn, cur)
            b = fn.block(cur)
            b.uses |= expr_vars(st.value)
            callees = self._collect_calls(fn, st.value)
            b.add_statement(st.text + _call_notes(callees, "call in return"))
            fn.add_edge(cur, fn.exit)
            return None

        if isinstance(st, If):
            return self._build_if(fn, st, cur)

        if isinstance(st, While):
            return self._build_while(fn, st, cur)

        if isinstance(st, For):
            return self._build_for(fn, st, cur)

        raise TypeError(f"unhandled stmt type: {type(st).__name__}")

    def _assign(self, fn: Function, key: int, st: Assign, text: str) -> None:
        b = fn.block(key)
        b.add_statement(text)
        b.defs.add(st.target)
        b.uses |= expr_vars(st.value)

    def _build_if(self, fn: Function, st: If, cur: Optional[int]) -> int:
        cond_id = self._ensure(fn, cur)
        cond = fn.block(cond_id)
        cond.uses |= expr_vars(st.cond.expr)
        self._collect_calls(fn, st.cond.expr)

        head = f"if ({st.cond.text})"
        parts = [head, " # then: ", Label(Role.THEN)]
        if st.else_body is not None:
            parts += ["\n" + " " * len(head), " # else: ", Label(Role.ELSE)]
        cond.add_branch(*parts)

        then_id = fn.new_block()
        fn.add_edge(cond_id, then_id)
        fn.set_target(cond_id, Role.THEN, then_id)
        join_id = fn.new_block()

        then_end = self._build_stmt(fn, st.then_body, then_id)
        if then_end is not None:
            fn.add_edge(then_end, join_id)

        if st.else_body is not None:
            else_id = fn.new_block()
            fn.add_edge(cond_id, else_id)
            fn.set_target(cond_id, Role.ELSE, else_id)
            else_end = self._build_stmt(fn, st.else_body, else_id)
            if else_end is not None:
                fn.add_edge(else_end, join_id)
        else:
            fn.add_edge(cond_id, join_id)

        return join_id

    def _loop_head(self, fn: Function, keyword: str, st) -> int:
        cond_id = fn.new_block()
        cond = fn.block(cond_id)
        cond.uses |= expr_vars(st.cond.expr)
        self._collect_calls(fn, st.cond.expr)
        cond.add_branch(f"{keyword} ({st.cond.text}) # loop_end: ", Label(Role.FOLLOW))
        return cond_id

    def _build_while(self, fn: Function, st: While, cur: Optional[int]) -> int:
        cond_id = self._loop_head(fn, "while", st)
        if cur is not None:
            fn.add_edge(cur, cond_id)

        body_id = fn.new_block()
        follow_id = fn.new_block()
        fn.add_edge(cond_id, body_id)
        fn.add_edge(cond_id, follow_id)
        fn.set_target(cond_id, Role.FOLLOW, follow_id)

        body_end = self._build_stmt(fn, st.body, body_id)
        if body_end is not None:
            fn.add_edge(body_end, cond_id)
        return follow_id

    def _build_for(self, fn: Function, st: For, cur: Optional[int]) -> int:
        cur = self._ensure(fn, cur)
        self._collect_calls(fn, st.init.value)
        self._assign(fn, cur, st.init, f"{st.init.text};")

        cond_id = self._loop_head(fn, "for", st)
        fn.add_edge(cur, cond_id)

        body_id = fn.new_block()
        follow_id = fn.new_block()
        fn.add_edge(cond_id, body_id)
        fn.add_edge(cond_id, follow_id)
        fn.set_target(cond_id, Role.FOLLOW, follow_id)

        body_end = self._build_stmt(fn, st.body, body_id)
        if body_end is not None:
            self._collect_calls(fn, st.step.value)
            self._assign(fn, body_end, st.step, f"{st.step.text};")
            fn.add_edge(body_end, cond_id)
        return follow_id

    def _collect_calls(self, fn: Function, e: Optional[Expr]) -> List[str]:
        callees = expr_callees(e)
        for c in callees:
            fn.note_call(c)
        return callees
