from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import List, Any, Optional

from lark import Lark, Token
from lark.visitors import Transformer_NonRecursive
from lark.exceptions import UnexpectedInput

from tokens import IdToken, IntLitToken, StrLitToken
from ast_lilc import (
    NOT_STRUCT,
    BinaryOp,
    UnaryOp,
    ProgramNode,
    DeclListNode,
    FormalsListNode,
    StmtListNode,
    ExpListNode,
    FnBodyNode,
    DeclNode,
    VarDeclNode,
    FnDeclNode,
    FormalDeclNode,
    StructDeclNode,
    TypeNode,
    IntNode,
    BoolNode,
    VoidNode,
    StructNode,
    StmtNode,
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
    ExpNode,
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
)


# ---------------------------------------
# Config
# ---------------------------------------
GRAMMAR_PATH: Path = Path(__file__).with_name("lilc.lark")


@dataclass(eq=False)
class ParseError(Exception):
    """Source text that the grammar does not accept."""
    message: str
    line: int
    column: int

    def __str__(self) -> str:
        return f"line {self.line}, column {self.column}: {self.message}"


class CST2AST(Transformer_NonRecursive):
    """
    Turns the Lark CST into LIL'C nodes.

    Works bottom-up without recursion, so every node receives
    children that are already built.
    """

    # ---------------------------------------------------------
    # Tokens base
    # ---------------------------------------------------------
    def ID(self, token: Token) -> IdToken:
        return IdToken(token.line, token.column, str(token))

    def INTLITERAL(self, token: Token) -> IntLitToken:
        return IntLitToken(token.line, token.column, int(token))

    def STRINGLITERAL(self, token: Token) -> StrLitToken:
        return StrLitToken(token.line, token.column, str(token))

    def id(self, children: List[Any]) -> IdNode:
        return IdNode.from_token(children[0])

    # ---------------------------------------------------------
    # Types
    # ---------------------------------------------------------
    def int_type(self, children: List[Any]) -> IntNode:
        return IntNode()

    def bool_type(self, children: List[Any]) -> BoolNode:
        return BoolNode()

    def void_type(self, children: List[Any]) -> VoidNode:
        return VoidNode()

    def struct_type(self, children: List[Any]) -> StructNode:
        return StructNode(children[0])

    # ---------------------------------------------------------
    # Expressions
    # ---------------------------------------------------------
    def int_lit(self, children: List[Any]) -> IntLitNode:
        return IntLitNode.from_token(children[0])

    def str_lit(self, children: List[Any]) -> StrLitNode:
        return StrLitNode.from_token(children[0])

    def true_lit(self, children: List[Any]) -> TrueNode:
        return TrueNode()

    def false_lit(self, children: List[Any]) -> FalseNode:
        return FalseNode()

    def dot_access(self, children: List[Any]) -> DotAccessNode:
        exp: ExpNode = children[0]
        field: IdNode = children[1]
        return DotAccessNode(exp, field)

    def assign(self, children: List[Any]) -> AssignNode:
        return AssignNode(children[0], children[1])

    def exp_list(self, children: List[Any]) -> ExpListNode:
        exps: List[ExpNode] = []
        for c in children:
            if not isinstance(c, ExpNode):
                raise TypeError(f"Expected ExpNode in argument list, got {type(c).__name__}")
            exps.append(c)
        return ExpListNode(exps)

    def call_exp(self, children: List[Any]) -> CallExpNode:
        return CallExpNode(children[0], children[1])

    def negate(self, children: List[Any]) -> UnaryExpNode:
        return UnaryExpNode(UnaryOp.MINUS, children[0])

    def not_op(self, children: List[Any]) -> UnaryExpNode:
        return UnaryExpNode(UnaryOp.NOT, children[0])

    def _binary(self, op: BinaryOp, children: List[Any]) -> BinaryExpNode:
        return BinaryExpNode(op, children[0], children[1])

    def plus(self, children: List[Any]) -> BinaryExpNode:
        return self._binary(BinaryOp.PLUS, children)

    def minus(self, children: List[Any]) -> BinaryExpNode:
        return self._binary(BinaryOp.MINUS, children)

    def times(self, children: List[Any]) -> BinaryExpNode:
        return self._binary(BinaryOp.TIMES, children)

    def divide(self, children: List[Any]) -> BinaryExpNode:
        return self._binary(BinaryOp.DIVIDE, children)

    def and_op(self, children: List[Any]) -> BinaryExpNode:
        return self._binary(BinaryOp.AND, children)

    def or_op(self, children: List[Any]) -> BinaryExpNode:
        return self._binary(BinaryOp.OR, children)

    def equals(self, children: List[Any]) -> BinaryExpNode:
        return self._binary(BinaryOp.EQUALS, children)

    def not_equals(self, children: List[Any]) -> BinaryExpNode:
        return self._binary(BinaryOp.NOT_EQUALS, children)

    def less(self, children: List[Any]) -> BinaryExpNode:
        return self._binary(BinaryOp.LESS, children)

    def greater(self, children: List[Any]) -> BinaryExpNode:
        return self._binary(BinaryOp.GREATER, children)

    def less_eq(self, children: List[Any]) -> BinaryExpNode:
        return self._binary(BinaryOp.LESS_EQ, children)

    def greater_eq(self, children: List[Any]) -> BinaryExpNode:
        return self._binary(BinaryOp.GREATER_EQ, children)

    # ---------------------------------------------------------
    # Statements
    # ---------------------------------------------------------
    def stmt_list(self, children: List[Any]) -> StmtListNode:
        stmts: List[StmtNode] = []
        for c in children:
            if not isinstance(c, StmtNode):
                raise TypeError(f"Expected StmtNode in statement list, got {type(c).__name__}")
            stmts.append(c)
        return StmtListNode(stmts)

    def assign_stmt(self, children: List[Any]) -> AssignStmtNode:
        return AssignStmtNode(AssignNode(children[0], children[1]))

    def post_inc_stmt(self, children: List[Any]) -> PostIncStmtNode:
        return PostIncStmtNode(children[0])

    def post_dec_stmt(self, children: List[Any]) -> PostDecStmtNode:
        return PostDecStmtNode(children[0])

    def read_stmt(self, children: List[Any]) -> ReadStmtNode:
        return ReadStmtNode(children[0])

    def write_stmt(self, children: List[Any]) -> WriteStmtNode:
        return WriteStmtNode(children[0])

    def if_stmt(self, children: List[Any]) -> IfStmtNode:
        """
        children:
        0 → ExpNode (condition)
        1 → DeclListNode
        2 → StmtListNode
        """
        return IfStmtNode(children[0], children[1], children[2])

    def if_else_stmt(self, children: List[Any]) -> IfElseStmtNode:
        """
        children:
        0 → ExpNode (condition)
        1, 2 → DeclListNode, StmtListNode of the then-branch
        3, 4 → DeclListNode, StmtListNode of the else-branch
        """
        return IfElseStmtNode(children[0], children[1], children[2], children[3], children[4])

    def while_stmt(self, children: List[Any]) -> WhileStmtNode:
        return WhileStmtNode(children[0], children[1], children[2])

    def call_stmt(self, children: List[Any]) -> CallStmtNode:
        return CallStmtNode(children[0])

    def return_stmt(self, children: List[Any]) -> ReturnStmtNode:
        # "return;" carries no expression
        value: Optional[ExpNode] = children[0] if children else None
        return ReturnStmtNode(value)

    # ---------------------------------------------------------
    # Declarations
    # ---------------------------------------------------------
    def decl_list(self, children: List[Any]) -> DeclListNode:
        decls: List[DeclNode] = []
        for c in children:
            if not isinstance(c, DeclNode):
                raise TypeError(f"Expected DeclNode in declaration list, got {type(c).__name__}")
            decls.append(c)
        return DeclListNode(decls)

    def var_decl(self, children: List[Any]) -> VarDeclNode:
        type_: TypeNode = children[0]
        name: IdNode = children[1]
        # Struct sizes are only known after name resolution
        size = 0 if isinstance(type_, StructNode) else NOT_STRUCT
        return VarDeclNode(type_, name, size)

    def formal_decl(self, children: List[Any]) -> FormalDeclNode:
        return FormalDeclNode(children[0], children[1])

    def formals_list(self, children: List[Any]) -> FormalsListNode:
        formals: List[FormalDeclNode] = []
        for c in children:
            if not isinstance(c, FormalDeclNode):
                raise TypeError(f"Expected FormalDeclNode in parameter list, got {type(c).__name__}")
            formals.append(c)
        return FormalsListNode(formals)

    def fn_body(self, children: List[Any]) -> FnBodyNode:
        return FnBodyNode(children[0], children[1])

    def fn_decl(self, children: List[Any]) -> FnDeclNode:
        """
        children:
        0 → TypeNode (return type)
        1 → IdNode
        2 → FormalsListNode
        3 → FnBodyNode
        """
        body = children[3]
        if not isinstance(body, FnBodyNode):
            raise TypeError(
                f"Expected FnBodyNode as function body, got {type(body).__name__}"
            )
        return FnDeclNode(children[0], children[1], children[2], body)

    def struct_decl(self, children: List[Any]) -> StructDeclNode:
        return StructDeclNode(children[0], children[1])

    # ---------------------------------------------------------
    # Root Program
    # ---------------------------------------------------------
    def start(self, children: List[Any]) -> ProgramNode:
        return ProgramNode(children[0])


# ---------------------------------------
# Entrypoints
# ---------------------------------------

def build_parser() -> Lark:
    grammar = GRAMMAR_PATH.read_text(encoding="utf-8")
    # The basic lexer keeps keywords out of identifier positions
    return Lark(grammar, parser="lalr", lexer="basic", start="start", debug=False)


@lru_cache(maxsize=1)
def _default_parser() -> Lark:
    return build_parser()


def parse_source(src: str, parser: Optional[Lark] = None) -> ProgramNode:
    """Parse LIL'C text and build its tree."""
    if parser is None:
        parser = _default_parser()

    try:
        cst = parser.parse(src)
    except UnexpectedInput as e:
        raise ParseError(str(e).strip().splitlines()[0], e.line, e.column) from e

    return CST2AST().transform(cst)
