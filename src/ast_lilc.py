from __future__ import annotations
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, ClassVar, Iterator, List, Optional, Union

from tokens import IdToken, IntLitToken, StrLitToken


# Use this value for VarDeclNode.size if the declared type is not a struct
NOT_STRUCT: int = -1


class NodeKind(Enum):
    PROGRAM = "program"

    DECL_LIST = "decl_list"
    FORMALS_LIST = "formals_list"
    STMT_LIST = "stmt_list"
    EXP_LIST = "exp_list"
    FN_BODY = "fn_body"

    VAR_DECL = "var_decl"
    FN_DECL = "fn_decl"
    FORMAL_DECL = "formal_decl"
    STRUCT_DECL = "struct_decl"

    INT = "int"
    BOOL = "bool"
    VOID = "void"
    STRUCT = "struct"

    ASSIGN_STMT = "assign_stmt"
    POST_INC_STMT = "post_inc_stmt"
    POST_DEC_STMT = "post_dec_stmt"
    READ_STMT = "read_stmt"
    WRITE_STMT = "write_stmt"
    IF_STMT = "if_stmt"
    IF_ELSE_STMT = "if_else_stmt"
    WHILE_STMT = "while_stmt"
    CALL_STMT = "call_stmt"
    RETURN_STMT = "return_stmt"

    INT_LIT = "int_lit"
    STR_LIT = "str_lit"
    TRUE = "true"
    FALSE = "false"
    ID = "id"
    DOT_ACCESS = "dot_access"
    ASSIGN = "assign"
    CALL_EXP = "call_exp"
    UNARY_EXP = "unary_exp"
    BINARY_EXP = "binary_exp"


class UnaryOp(Enum):
    """Unary operators; the value is the source spelling."""

    MINUS = "-"
    NOT = "!"


class BinaryOp(Enum):
    """Binary operators; the value is the source spelling."""

    # Arithmetic
    PLUS = "+"
    MINUS = "-"
    TIMES = "*"
    DIVIDE = "/"

    # Logical
    AND = "&&"
    OR = "||"

    # Comparison
    EQUALS = "=="
    NOT_EQUALS = "!="
    LESS = "<"
    GREATER = ">"
    LESS_EQ = "<="
    GREATER_EQ = ">="


# -----------------------------------------------
# Base nodes
# -----------------------------------------------

@dataclass
class ASTNode:
    kind: ClassVar[NodeKind]


@dataclass
class DeclNode(ASTNode):
    pass


@dataclass
class TypeNode(ASTNode):
    pass


@dataclass
class StmtNode(ASTNode):
    pass


@dataclass
class ExpNode(ASTNode):
    pass


# -----------------------------------------------
# Types
# -----------------------------------------------

@dataclass
class IntNode(TypeNode):
    kind: ClassVar[NodeKind] = NodeKind.INT


@dataclass
class BoolNode(TypeNode):
    kind: ClassVar[NodeKind] = NodeKind.BOOL


@dataclass
class VoidNode(TypeNode):
    kind: ClassVar[NodeKind] = NodeKind.VOID


@dataclass
class StructNode(TypeNode):
    kind: ClassVar[NodeKind] = NodeKind.STRUCT

    id: IdNode


# -----------------------------------------------
# Expressions
# -----------------------------------------------

@dataclass
class IntLitNode(ExpNode):
    kind: ClassVar[NodeKind] = NodeKind.INT_LIT

    # Never negative; a leading minus is a UnaryExpNode
    value: int

    @classmethod
    def from_token(cls, token: IntLitToken) -> IntLitNode:
        return cls(token.value)


@dataclass
class StrLitNode(ExpNode):
    kind: ClassVar[NodeKind] = NodeKind.STR_LIT

    # Raw literal text, quotes included
    value: str

    @classmethod
    def from_token(cls, token: StrLitToken) -> StrLitNode:
        return cls(token.value)


@dataclass
class TrueNode(ExpNode):
    kind: ClassVar[NodeKind] = NodeKind.TRUE


@dataclass
class FalseNode(ExpNode):
    kind: ClassVar[NodeKind] = NodeKind.FALSE


@dataclass
class IdNode(ExpNode):
    kind: ClassVar[NodeKind] = NodeKind.ID

    name: str

    # Slot for a later name-resolution pass; not part of the tree's structure
    symbol: Optional[Any] = field(
        default=None, compare=False, repr=False, metadata={"annotation": True}
    )

    @classmethod
    def from_token(cls, token: IdToken) -> IdNode:
        return cls(token.value)


@dataclass
class DotAccessNode(ExpNode):
    kind: ClassVar[NodeKind] = NodeKind.DOT_ACCESS

    exp: ExpNode
    id: IdNode


@dataclass
class AssignNode(ExpNode):
    kind: ClassVar[NodeKind] = NodeKind.ASSIGN

    target: ExpNode
    value: ExpNode


@dataclass
class ExpListNode(ASTNode):
    kind: ClassVar[NodeKind] = NodeKind.EXP_LIST

    exps: List[ExpNode] = field(default_factory=list)


@dataclass
class CallExpNode(ExpNode):
    kind: ClassVar[NodeKind] = NodeKind.CALL_EXP

    id: IdNode
    args: ExpListNode


@dataclass
class UnaryExpNode(ExpNode):
    kind: ClassVar[NodeKind] = NodeKind.UNARY_EXP

    op: UnaryOp
    exp: ExpNode


@dataclass
class BinaryExpNode(ExpNode):
    kind: ClassVar[NodeKind] = NodeKind.BINARY_EXP

    op: BinaryOp
    exp1: ExpNode
    exp2: ExpNode


# -----------------------------------------------
# Statements
# -----------------------------------------------

@dataclass
class StmtListNode(ASTNode):
    kind: ClassVar[NodeKind] = NodeKind.STMT_LIST

    stmts: List[StmtNode] = field(default_factory=list)


@dataclass
class AssignStmtNode(StmtNode):
    kind: ClassVar[NodeKind] = NodeKind.ASSIGN_STMT

    assign: AssignNode


@dataclass
class PostIncStmtNode(StmtNode):
    kind: ClassVar[NodeKind] = NodeKind.POST_INC_STMT

    exp: ExpNode


@dataclass
class PostDecStmtNode(StmtNode):
    kind: ClassVar[NodeKind] = NodeKind.POST_DEC_STMT

    exp: ExpNode


@dataclass
class ReadStmtNode(StmtNode):
    kind: ClassVar[NodeKind] = NodeKind.READ_STMT

    exp: ExpNode


@dataclass
class WriteStmtNode(StmtNode):
    kind: ClassVar[NodeKind] = NodeKind.WRITE_STMT

    exp: ExpNode


@dataclass
class IfStmtNode(StmtNode):
    kind: ClassVar[NodeKind] = NodeKind.IF_STMT

    exp: ExpNode
    decls: DeclListNode
    stmts: StmtListNode


@dataclass
class IfElseStmtNode(StmtNode):
    kind: ClassVar[NodeKind] = NodeKind.IF_ELSE_STMT

    exp: ExpNode
    then_decls: DeclListNode
    then_stmts: StmtListNode
    else_decls: DeclListNode
    else_stmts: StmtListNode


@dataclass
class WhileStmtNode(StmtNode):
    kind: ClassVar[NodeKind] = NodeKind.WHILE_STMT

    exp: ExpNode
    decls: DeclListNode
    stmts: StmtListNode


@dataclass
class CallStmtNode(StmtNode):
    kind: ClassVar[NodeKind] = NodeKind.CALL_STMT

    call: CallExpNode


@dataclass
class ReturnStmtNode(StmtNode):
    kind: ClassVar[NodeKind] = NodeKind.RETURN_STMT

    # None for a value-less return
    exp: Optional[ExpNode] = None


# -----------------------------------------------
# Declarations
# -----------------------------------------------

@dataclass
class DeclListNode(ASTNode):
    kind: ClassVar[NodeKind] = NodeKind.DECL_LIST

    decls: List[DeclNode] = field(default_factory=list)


@dataclass
class VarDeclNode(DeclNode):
    kind: ClassVar[NodeKind] = NodeKind.VAR_DECL

    type: TypeNode
    id: IdNode
    # NOT_STRUCT for plain types; left out, it follows the declared type
    size: Optional[int] = None

    def __post_init__(self) -> None:
        if self.size is None:
            self.size = 0 if isinstance(self.type, StructNode) else NOT_STRUCT

    @property
    def is_struct(self) -> bool:
        return self.size != NOT_STRUCT


@dataclass
class FormalDeclNode(DeclNode):
    kind: ClassVar[NodeKind] = NodeKind.FORMAL_DECL

    type: TypeNode
    id: IdNode


@dataclass
class FormalsListNode(ASTNode):
    kind: ClassVar[NodeKind] = NodeKind.FORMALS_LIST

    formals: List[FormalDeclNode] = field(default_factory=list)


@dataclass
class FnBodyNode(ASTNode):
    kind: ClassVar[NodeKind] = NodeKind.FN_BODY

    decls: DeclListNode
    stmts: StmtListNode


@dataclass
class FnDeclNode(DeclNode):
    kind: ClassVar[NodeKind] = NodeKind.FN_DECL

    type: TypeNode
    id: IdNode
    formals: FormalsListNode
    body: FnBodyNode


@dataclass
class StructDeclNode(DeclNode):
    kind: ClassVar[NodeKind] = NodeKind.STRUCT_DECL

    id: IdNode
    fields: DeclListNode


# -----------------------------------------------
# Program root
# -----------------------------------------------

@dataclass
class ProgramNode(ASTNode):
    kind: ClassVar[NodeKind] = NodeKind.PROGRAM

    decls: DeclListNode


Type = Union[IntNode, BoolNode, VoidNode, StructNode]
Decl = Union[VarDeclNode, FnDeclNode, FormalDeclNode, StructDeclNode]
Stmt = Union[
    AssignStmtNode,
    PostIncStmtNode,
    PostDecStmtNode,
    ReadStmtNode,
    WriteStmtNode,
    IfStmtNode,
    IfElseStmtNode,
    WhileStmtNode,
    CallStmtNode,
    ReturnStmtNode,
]
Exp = Union[
    IntLitNode,
    StrLitNode,
    TrueNode,
    FalseNode,
    IdNode,
    DotAccessNode,
    AssignNode,
    CallExpNode,
    UnaryExpNode,
    BinaryExpNode,
]


# -----------------------------------------------
# Generic traversal
# -----------------------------------------------

def iter_children(node: ASTNode) -> Iterator[ASTNode]:
    """
    Yield the direct children of a node in declaration order.
    List payloads are flattened; annotation slots are skipped.
    """
    for f in fields(node):
        if f.metadata.get("annotation"):
            continue
        value = getattr(node, f.name)
        if isinstance(value, ASTNode):
            yield value
        elif isinstance(value, list):
            for item in value:
                if isinstance(item, ASTNode):
                    yield item


def walk(root: ASTNode) -> Iterator[ASTNode]:
    """Pre-order traversal that does not grow the call stack."""
    stack: List[ASTNode] = [root]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(list(iter_children(node))))
