from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Set, Union


class Role(Enum):
    THEN = "then"
    ELSE = "else"
    FOLLOW = "loop_end"


@dataclass
class Label:
    """Branch target inside a statement; `target` is the final block id once resolved."""
    role: Role
    target: Optional[str] = None

    @property
    def resolved(self) -> bool:
        return self.target is not None

    def __str__(self) -> str:
        return self.target if self.target is not None else f"<{self.role.value}?>"


@dataclass
class Statement:
    parts: List[Union[str, Label]]

    @property
    def text(self) -> str:
        return "".join(str(p) for p in self.parts)

    @property
    def labels(self) -> List[Label]:
        return [p for p in self.parts if isinstance(p, Label)]


@dataclass
class BasicBlock:
    key: int  # arena index, stable for the life of the block
    id: str
    statements: List[Statement] = field(default_factory=list)
    preds: List[int] = field(default_factory=list)
    succs: List[int] = field(default_factory=list)
    defs: Set[str] = field(default_factory=set)
    uses: Set[str] = field(default_factory=set)

    def add_statement(self, text: str) -> None:
        self.statements.append(Statement([text.strip()]))

    def add_branch(self, *parts: Union[str, Label]) -> None:
        self.statements.append(Statement(list(parts)))

    @property
    def texts(self) -> List[str]:
        return [s.text for s in self.statements]


@dataclass
class Function:
    name: str
    ret_type: str = ""
    args: str = ""
    blocks: Dict[int, BasicBlock] = field(default_factory=dict)
    next_key: int = 0
    counter: int = 0

    entry: int = -1
    exit: int = -1

    # owner block -> role -> target block (deferred until simplification)
    targets: Dict[int, Dict[Role, int]] = field(default_factory=dict)
    # merged-away block -> the block it was folded into
    merged: Dict[int, int] = field(default_factory=dict)
    calls: List[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.entry < 0:
            self.entry = self._add_block(f"{self.name}_entry")
            self.exit = self._add_block(f"{self.name}_exit")

    def _add_block(self, bid: str) -> int:
        key = self.next_key
        self.next_key += 1
        self.blocks[key] = BasicBlock(key=key, id=bid)
        return key

    def new_block(self) -> int:
        bid = f"{self.name}_B{self.counter}"
        self.counter += 1
        return self._add_block(bid)

    def block(self, key: int) -> BasicBlock:
        return self.blocks[key]

    def is_sentinel(self, key: int) -> bool:
        return key == self.entry or key == self.exit

    def add_edge(self, src: int, dst: int) -> None:
        if src not in self.blocks or dst not in self.blocks:
            raise KeyError("CFG edge endpoints must exist in blocks.")
        s, d = self.blocks[src], self.blocks[dst]
        if dst not in s.succs:
            s.succs.append(dst)
        if src not in d.preds:
            d.preds.append(src)

    def remove_edge(self, src: int, dst: int) -> None:
        s, d = self.blocks.get(src), self.blocks.get(dst)
        if s is not None and dst in s.succs:
            s.succs.remove(dst)
        if d is not None and src in d.preds:
            d.preds.remove(src)

    def set_target(self, owner: int, role: Role, target: int) -> None:
        self.targets.setdefault(owner, {})[role] = target

    def note_call(self, callee: str) -> None:
        if callee not in self.calls:
            self.calls.append(callee)

    def block_number(self, b: BasicBlock) -> int:
        _, _, digits = b.id.rpartition("_B")
        return int(digits) if digits.isdigit() else 999999

    def ordered_blocks(self) -> List[BasicBlock]:
        """entry first, exit last, everything else by numeric suffix."""
        out = [self.blocks[self.entry]]
        rest = [b for k, b in self.blocks.items() if not self.is_sentinel(k)]
        out.extend(sorted(rest, key=self.block_number))
        if self.exit in self.blocks:
            out.append(self.blocks[self.exit])
        return out

    def ids(self, keys: List[int]) -> List[str]:
        return sorted(self.blocks[k].id for k in keys)


@dataclass
class ProgramCFG:
    functions: Dict[str, Function] = field(default_factory=dict)
    globals: List[str] = field(default_factory=list)
