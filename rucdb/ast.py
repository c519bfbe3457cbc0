"""Syntax tree of SQL statements and a printer for it."""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Iterable, Iterator, TextIO


class JoinType(IntEnum):
    INNER = 0
    LEFT = 1
    RIGHT = 2
    FULL = 3


class SvType(IntEnum):
    INT = 0
    FLOAT = 1
    STRING = 2
    BOOL = 3


class SvCompOp(IntEnum):
    EQ = 0
    NE = 1
    LT = 2
    GT = 3
    LE = 4
    GE = 5


class OrderByDir(IntEnum):
    DEFAULT = 0
    ASC = 1
    DESC = 2


class SetKnobType(IntEnum):
    ENABLE_NEST_LOOP = 0
    ENABLE_SORT_MERGE = 1


class TreeNode:
    """Base class of every syntax tree node."""


@dataclass
class Help(TreeNode):
    pass


@dataclass
class ShowTables(TreeNode):
    pass


@dataclass
class TxnBegin(TreeNode):
    pass


@dataclass
class TxnCommit(TreeNode):
    pass


@dataclass
class TxnAbort(TreeNode):
    pass


@dataclass
class TxnRollback(TreeNode):
    pass


@dataclass
class TypeLen(TreeNode):
    type: SvType
    len: int


class Field(TreeNode):
    """A field in a table definition."""


@dataclass
class ColDef(Field):
    col_name: str
    type_len: TypeLen


@dataclass
class CreateTable(TreeNode):
    tab_name: str
    fields: list[Field]


@dataclass
class DropTable(TreeNode):
    tab_name: str


@dataclass
class DescTable(TreeNode):
    tab_name: str


@dataclass
class CreateIndex(TreeNode):
    tab_name: str
    col_names: list[str]


@dataclass
class DropIndex(TreeNode):
    tab_name: str
    col_names: list[str]


class Expr(TreeNode):
    """An expression."""


class Value(Expr):
    """A literal value."""


@dataclass
class IntLit(Value):
    val: int


@dataclass
class FloatLit(Value):
    val: float


@dataclass
class StringLit(Value):
    val: str


@dataclass
class BoolLit(Value):
    val: bool


@dataclass
class Col(Expr):
    tab_name: str
    col_name: str


@dataclass
class SetClause(TreeNode):
    col_name: str
    val: Value


@dataclass
class BinaryExpr(TreeNode):
    lhs: Col
    op: SvCompOp
    rhs: Expr


@dataclass
class OrderBy(TreeNode):
    cols: Col
    orderby_dir: OrderByDir


@dataclass
class InsertStmt(TreeNode):
    tab_name: str
    vals: list[Value]


@dataclass
class DeleteStmt(TreeNode):
    tab_name: str
    conds: list[BinaryExpr]


@dataclass
class UpdateStmt(TreeNode):
    tab_name: str
    set_clauses: list[SetClause]
    conds: list[BinaryExpr]


@dataclass
class JoinExpr(TreeNode):
    left: str
    right: str
    conds: list[BinaryExpr]
    type: JoinType


@dataclass
class SelectStmt(TreeNode):
    cols: list[Col]
    tabs: list[str]
    conds: list[BinaryExpr]
    order: OrderBy | None = None
    jointree: list[JoinExpr] = field(default_factory=list)

    @property
    def has_sort(self) -> bool:
        return self.order is not None


@dataclass
class SetStmt(TreeNode):
    set_knob_type: SetKnobType
    bool_val: bool


_TYPE_NAMES = {
    SvType.INT: "INT",
    SvType.FLOAT: "FLOAT",
    SvType.STRING: "STRING",
}

_OP_SYMBOLS = {
    SvCompOp.EQ: "==",
    SvCompOp.NE: "!=",
    SvCompOp.LT: "<",
    SvCompOp.GT: ">",
    SvCompOp.LE: "<=",
    SvCompOp.GE: ">=",
}


def _type_name(sv_type: SvType) -> str:
    try:
        return _TYPE_NAMES[sv_type]
    except KeyError:
        raise ValueError(f"type {sv_type!r} has no printable name") from None


def _val(value: object, offset: int) -> str:
    text = f"{value:g}" if isinstance(value, float) else str(value)
    return " " * offset + text


def _val_list(values: Iterable[object], offset: int) -> Iterator[str]:
    yield " " * offset + "LIST"
    for value in values:
        yield _val(value, offset + 2)


def _node_list(nodes: Iterable[TreeNode], offset: int) -> Iterator[str]:
    yield " " * offset + "LIST"
    for node in nodes:
        yield from _lines(node, offset + 2)


def _lines(node: TreeNode, offset: int) -> Iterator[str]:
    pad = " " * offset
    inner = offset + 2
    match node:
        case Help():
            yield pad + "HELP"
        case ShowTables():
            yield pad + "SHOW_TABLES"
        case CreateTable():
            yield pad + "CREATE_TABLE"
            yield _val(node.tab_name, inner)
            yield from _node_list(node.fields, inner)
        case DropTable():
            yield pad + "DROP_TABLE"
            yield _val(node.tab_name, inner)
        case DescTable():
            yield pad + "DESC_TABLE"
            yield _val(node.tab_name, inner)
        case CreateIndex():
            yield pad + "CREATE_INDEX"
            yield _val(node.tab_name, inner)
            for col_name in node.col_names:
                yield _val(col_name, inner)
        case DropIndex():
            yield pad + "DROP_INDEX"
            yield _val(node.tab_name, inner)
            for col_name in node.col_names:
                yield _val(col_name, inner)
        case ColDef():
            yield pad + "COL_DEF"
            yield _val(node.col_name, inner)
            yield from _lines(node.type_len, inner)
        case Col():
            yield pad + "COL"
            yield _val(node.tab_name, inner)
            yield _val(node.col_name, inner)
        case TypeLen():
            yield pad + "TYPE_LEN"
            yield _val(_type_name(node.type), inner)
            yield _val(node.len, inner)
        case IntLit():
            yield pad + "INT_LIT"
            yield _val(node.val, inner)
        case FloatLit():
            yield pad + "FLOAT_LIT"
            yield _val(float(node.val), inner)
        case StringLit():
            yield pad + "STRING_LIT"
            yield _val(node.val, inner)
        case SetClause():
            yield pad + "SET_CLAUSE"
            yield _val(node.col_name, inner)
            yield from _lines(node.val, inner)
        case BinaryExpr():
            yield pad + "BINARY_EXPR"
            yield from _lines(node.lhs, inner)
            yield _val(_OP_SYMBOLS[SvCompOp(node.op)], inner)
            yield from _lines(node.rhs, inner)
        case InsertStmt():
            yield pad + "INSERT"
            yield _val(node.tab_name, inner)
            yield from _node_list(node.vals, inner)
        case DeleteStmt():
            yield pad + "DELETE"
            yield _val(node.tab_name, inner)
            yield from _node_list(node.conds, inner)
        case UpdateStmt():
            yield pad + "UPDATE"
            yield _val(node.tab_name, inner)
            yield from _node_list(node.set_clauses, inner)
            yield from _node_list(node.conds, inner)
        case SelectStmt():
            yield pad + "SELECT"
            yield from _node_list(node.cols, inner)
            yield from _val_list(node.tabs, inner)
            yield from _node_list(node.conds, inner)
        case TxnBegin():
            yield pad + "BEGIN"
        case TxnCommit():
            yield pad + "COMMIT"
        case TxnAbort():
            yield pad + "ABORT"
        case TxnRollback():
            yield pad + "ROLLBACK"
        case _:
            raise TypeError(f"cannot print node of type {type(node).__name__}")


def format_tree(node: TreeNode) -> str:
    """Return the indented text form of a syntax tree, one item per line."""
    return "".join(line + "\n" for line in _lines(node, 0))


def print_tree(node: TreeNode, file: TextIO | None = None) -> None:
    """Write the text form of a syntax tree to ``file`` (standard output by default)."""
    (file if file is not None else sys.stdout).write(format_tree(node))