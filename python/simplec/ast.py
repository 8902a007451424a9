from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Optional, Union


@dataclass
class ParseError:
    message: str
    line: int
    column: int

# ---- Expressions ----
class Expr: pass

@dataclass
class Name(Expr):
    name: str

@dataclass
class Literal(Expr):
    value: str

@dataclass
class Unary(Expr):
    op: str
    rhs: Expr

@dataclass
class Binary(Expr):
    op: str
    lhs: Expr
    rhs: Expr

@dataclass
class Call(Expr):
    callee: str
    args: List[Expr] = field(default_factory=list)

@dataclass
class Cond:
    expr: Expr
    text: str  # source span of the controlling expression

# ---- Statements ----
# `text` is always the raw source span of the node.
class Stmt: pass

@dataclass
class VarDecl(Stmt):
    type_name: str
    names: List[str]
    text: str = ""

@dataclass
class Assign(Stmt):
    target: str
    value: Expr
    text: str = ""

@dataclass
class CallStmt(Stmt):
    call: Call
    text: str = ""

@dataclass
class Return(Stmt):
    value: Optional[Expr]
    text: str = ""

@dataclass
class If(Stmt):
    cond: Cond
    then_body: Stmt
    else_body: Optional[Stmt] = None

@dataclass
class While(Stmt):
    cond: Cond
    body: Stmt

@dataclass
class For(Stmt):
    init: Assign
    cond: Cond
    step: Assign
    body: Stmt

@dataclass
class Compound(Stmt):
    body: List[Stmt] = field(default_factory=list)

@dataclass
class Empty(Stmt): pass

# ---- Program ----
@dataclass
class Param:
    type_name: str
    name: str

@dataclass
class FuncDef:
    name: str
    ret_type: str
    params: List[Param]
    args_text: str  # raw parameter list, "" when there is none
    body: Compound

@dataclass
class Program:
    items: List[Union[FuncDef, VarDecl]]
