from __future__ import annotations

from dataclasses import dataclass, replace
from functools import partial
from pathlib import Path
from typing import List, Optional
from lark import Lark, Transformer, exceptions, v_args

from .ast import *


@dataclass
class ParseResult:
    program: Optional[Program]
    errors: List[ParseError]


@v_args(meta=True)
class AstBuilder(Transformer):
    """Turns the lark tree into simplec.ast nodes.

    Statement-like nodes keep the raw source span they were parsed from, so the
    CFG shows the program text exactly as it was written.
    """

    def __init__(self, text: str):
        super().__init__()
        self._text = text

    def _span(self, meta) -> str:
        if meta.empty:
            return ""
        return self._text[meta.start_pos:meta.end_pos]

    def start(self, meta, items):
        return Program(items=list(items))

    # --- declarations / functions ---
    def type_name(self, meta, items):
        return str(items[0])

    def ident(self, meta, items):
        return str(items[0])

    def ident_list(self, meta, items):
        return list(items)

    def declaration(self, meta, items):
        return VarDecl(type_name=items[0], names=items[1], text=self._span(meta))

    def param(self, meta, items):
        return Param(type_name=items[0], name=str(items[1]))

    def param_list(self, meta, items):
        # (params, raw text) -- the text is printed as-is in the entry block
        return list(items), self._span(meta)

    def function(self, meta, items):
        ret_type, name = items[0], str(items[1])
        params, args_text = [], ""
        if len(items) == 4:
            params, args_text = items[2]
        return FuncDef(
            name=name,
            ret_type=ret_type,
            params=params,
            args_text=args_text,
            body=items[-1],
        )

    # --- statements ---
    def compound(self, meta, items):
        return Compound(body=[x for x in items if isinstance(x, Stmt)])

    def assign(self, meta, items):
        return Assign(target=str(items[0]), value=items[1], text=self._span(meta))

    def assign_stmt(self, meta, items):
        # same node, but the span now includes the trailing ';'
        return replace(items[0], text=self._span(meta))

    def call_stmt(self, meta, items):
        return CallStmt(call=items[0], text=self._span(meta))

    def ret_stmt(self, meta, items):
        value = items[0] if items else None
        return Return(value=value, text=self._span(meta))

    def empty_stmt(self, meta, items):
        return Empty()

    def cond(self, meta, items):
        return Cond(expr=items[0], text=self._span(meta))

    def if_stmt(self, meta, items):
        cond, then_body = items[0], items[1]
        else_body = items[2] if len(items) > 2 else None
        return If(cond=cond, then_body=then_body, else_body=else_body)

    def while_stmt(self, meta, items):
        return While(cond=items[0], body=items[1])

    def for_stmt(self, meta, items):
        init, cond, step, body = items
        return For(init=init, cond=cond, step=step, body=body)

    # --- expressions ---
    def name(self, meta, items):
        return Name(name=str(items[0]))

    def number(self, meta, items):
        return Literal(value=str(items[0]))

    def unary(self, meta, items):
        return Unary(op=str(items[0]), rhs=items[1])

    def bin(self, meta, items):
        # items: lhs, OP, rhs, OP, rhs ... (left-assoc)
        expr = items[0]
        i = 1
        while i + 1 < len(items):
            expr = Binary(op=str(items[i]), lhs=expr, rhs=items[i + 1])
            i += 2
        return expr

    def arg_list(self, meta, items):
        return list(items)

    def call(self, meta, items):
        args = items[1] if len(items) > 1 else []
        return Call(callee=str(items[0]), args=args)


def make_parser() -> Lark:
    grammar_path = Path(__file__).with_name("simplec.lark")
    with open(grammar_path, "r", encoding="utf-8") as f:
        grammar = f.read()
    return Lark(grammar, start="start", parser="lalr", propagate_positions=True)


_PARSER: Optional[Lark] = None


def parse_text(text: str) -> ParseResult:
    global _PARSER
    if _PARSER is None:
        _PARSER = make_parser()
    try:
        tree = _PARSER.parse(text)
    except exceptions.UnexpectedInput as e:
        return ParseResult(
            program=None,
            errors=[ParseError(message=str(e), line=e.line, column=e.column)]
        )
    return ParseResult(program=AstBuilder(text).transform(tree), errors=[])


def read_text_blocked(path: str, buf_size: int = 64 * 1024) -> str:
    chunks = []
    with open(path, "r", encoding="utf-8") as f:
        for part in iter(partial(f.read, buf_size), ""):
            chunks.append(part)
    return "".join(chunks)


def parse_file(path: str) -> ParseResult:
    """Read and parse a UTF-8 source file; read and decode errors are left to the caller."""
    return parse_text(read_text_blocked(path))
