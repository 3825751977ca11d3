from __future__ import annotations

import io
from typing import List, Optional, TextIO, Tuple, Type, Union

import ast_lilc as ast


# ---------------------------------------
# Config
# ---------------------------------------
INDENT_STEP: int = 4


class UnparseError(Exception):
    """The tree handed to the typewriter does not have the expected shape."""
    pass


# A piece of pending work: literal text, or a node to expand at a level
Piece = Union[str, Tuple[ast.ASTNode, int]]

# One node class, or a tuple of the classes allowed in a position
Kinds = Union[Type[ast.ASTNode], Tuple[Type[ast.ASTNode], ...]]

# Formal parameters are declarations too, but only live in formals lists
LISTED_DECLS: Tuple[Type[ast.ASTNode], ...] = (ast.VarDeclNode, ast.FnDeclNode, ast.StructDeclNode)


class Typewriter:
    """
    Turns a tree back into canonical source text.

    Nodes are expanded into pieces on an explicit work stack instead of
    through recursive calls, so arbitrarily deep nesting renders without
    hitting the interpreter's recursion limit.
    """

    def __init__(self, step: int = INDENT_STEP):
        self._step = step

    def _indent(self, level: int) -> str:
        return " " * self._step * level

    def _need(self, node: object, cls: Kinds, owner: ast.ASTNode, level: int) -> Piece:
        if not isinstance(node, cls):
            got = "nothing" if node is None else type(node).__name__
            wanted = " or ".join(c.__name__ for c in (cls if isinstance(cls, tuple) else (cls,)))
            raise UnparseError(
                f"{type(owner).__name__} expects a {wanted}, got {got}"
            )
        return (node, level)

    # ---------------------------------------
    # Lists
    # ---------------------------------------

    def _lines(self, n: ast.ASTNode, items: List, cls: Kinds, level: int) -> List[Piece]:
        return [self._need(item, cls, n, level) for item in items]

    def _commas(self, n: ast.ASTNode, items: List, cls: Kinds, level: int) -> List[Piece]:
        pieces: List[Piece] = []
        for i, item in enumerate(items):
            if i:
                pieces.append(", ")
            pieces.append(self._need(item, cls, n, level))
        return pieces

    def _parenthesized(self, owner: ast.ASTNode, lst: object, cls: Kinds, level: int) -> List[Piece]:
        self._need(lst, cls, owner, level)
        if isinstance(lst, ast.FormalsListNode):
            empty = not lst.formals
        else:
            empty = not lst.exps
        if empty:
            return ["( )"]
        return ["( ", (lst, level), " )"]

    # ---------------------------------------
    # Declarations
    # ---------------------------------------

    def _type_var_decl(self, d: ast.VarDeclNode, level: int) -> List[Piece]:
        return [
            self._indent(level),
            self._need(d.type, ast.TypeNode, d, level),
            " ",
            self._need(d.id, ast.IdNode, d, level),
            ";\n",
        ]

    def _type_formal_decl(self, d: ast.FormalDeclNode, level: int) -> List[Piece]:
        return [
            self._need(d.type, ast.TypeNode, d, level),
            " ",
            self._need(d.id, ast.IdNode, d, level),
        ]

    def _type_fn_decl(self, f: ast.FnDeclNode, level: int) -> List[Piece]:
        return [
            self._indent(level),
            self._need(f.type, ast.TypeNode, f, level),
            " ",
            self._need(f.id, ast.IdNode, f, level),
            " ",
            *self._parenthesized(f, f.formals, ast.FormalsListNode, level),
            " {\n",
            self._need(f.body, ast.FnBodyNode, f, level + 1),
            self._indent(level) + "}\n",
        ]

    def _type_fn_body(self, b: ast.FnBodyNode, level: int) -> List[Piece]:
        return [
            self._need(b.decls, ast.DeclListNode, b, level),
            self._need(b.stmts, ast.StmtListNode, b, level),
        ]

    def _type_struct_decl(self, s: ast.StructDeclNode, level: int) -> List[Piece]:
        return [
            self._indent(level) + "struct ",
            self._need(s.id, ast.IdNode, s, level),
            " {\n",
            self._need(s.fields, ast.DeclListNode, s, level + 1),
            self._indent(level) + "};\n",
        ]

    # ---------------------------------------
    # Statements
    # ---------------------------------------

    def _type_simple(self, s: ast.StmtNode, prefix: str, exp: object, suffix: str, level: int) -> List[Piece]:
        return [
            self._indent(level) + prefix,
            self._need(exp, ast.ExpNode, s, level),
            suffix + ";\n",
        ]

    def _type_block(self, owner: ast.StmtNode, decls: object, stmts: object, level: int) -> List[Piece]:
        return [
            self._need(decls, ast.DeclListNode, owner, level + 1),
            self._need(stmts, ast.StmtListNode, owner, level + 1),
        ]

    def _type_if(self, s: ast.IfStmtNode, level: int) -> List[Piece]:
        return [
            self._indent(level) + "if ( ",
            self._need(s.exp, ast.ExpNode, s, level),
            " ) {\n",
            *self._type_block(s, s.decls, s.stmts, level),
            self._indent(level) + "}\n",
        ]

    def _type_if_else(self, s: ast.IfElseStmtNode, level: int) -> List[Piece]:
        return [
            self._indent(level) + "if ( ",
            self._need(s.exp, ast.ExpNode, s, level),
            " ) {\n",
            *self._type_block(s, s.then_decls, s.then_stmts, level),
            self._indent(level) + "} else {\n",
            *self._type_block(s, s.else_decls, s.else_stmts, level),
            self._indent(level) + "}\n",
        ]

    def _type_while(self, s: ast.WhileStmtNode, level: int) -> List[Piece]:
        return [
            self._indent(level) + "while ( ",
            self._need(s.exp, ast.ExpNode, s, level),
            " ) {\n",
            *self._type_block(s, s.decls, s.stmts, level),
            self._indent(level) + "}\n",
        ]

    def _type_return(self, s: ast.ReturnStmtNode, level: int) -> List[Piece]:
        if s.exp is None:
            return [self._indent(level) + "return;\n"]
        return self._type_simple(s, "return ", s.exp, "", level)

    # ---------------------------------------
    # Expressions
    # ---------------------------------------

    def _operand(self, owner: ast.ExpNode, e: object, level: int) -> List[Piece]:
        # Unary and binary expressions already carry their own parentheses
        if isinstance(e, (ast.UnaryExpNode, ast.BinaryExpNode)):
            return [(e, level)]
        return ["(", self._need(e, ast.ExpNode, owner, level), ")"]

    def _type_unary(self, e: ast.UnaryExpNode, level: int) -> List[Piece]:
        if not isinstance(e.op, ast.UnaryOp):
            raise UnparseError(f"UnaryExpNode has unknown operator {e.op!r}")
        return ["(" + e.op.value, *self._operand(e, e.exp, level), ")"]

    def _type_binary(self, e: ast.BinaryExpNode, level: int) -> List[Piece]:
        if not isinstance(e.op, ast.BinaryOp):
            raise UnparseError(f"BinaryExpNode has unknown operator {e.op!r}")
        return [
            "(",
            *self._operand(e, e.exp1, level),
            f" {e.op.value} ",
            *self._operand(e, e.exp2, level),
            ")",
        ]

    def _type_call(self, c: ast.CallExpNode, level: int) -> List[Piece]:
        return [
            self._need(c.id, ast.IdNode, c, level),
            " ",
            *self._parenthesized(c, c.args, ast.ExpListNode, level),
        ]

    # ---------------------------------------
    # Dispatch
    # ---------------------------------------

    def _expand(self, n: ast.ASTNode, level: int) -> List[Piece]:
        match n:
            case ast.ProgramNode():
                return [self._need(n.decls, ast.DeclListNode, n, level)]
            case ast.DeclListNode():
                return self._lines(n, n.decls, LISTED_DECLS, level)
            case ast.StmtListNode():
                return self._lines(n, n.stmts, ast.StmtNode, level)
            case ast.FormalsListNode():
                return self._commas(n, n.formals, ast.FormalDeclNode, level)
            case ast.ExpListNode():
                return self._commas(n, n.exps, ast.ExpNode, level)
            case ast.VarDeclNode():
                return self._type_var_decl(n, level)
            case ast.FormalDeclNode():
                return self._type_formal_decl(n, level)
            case ast.FnDeclNode():
                return self._type_fn_decl(n, level)
            case ast.FnBodyNode():
                return self._type_fn_body(n, level)
            case ast.StructDeclNode():
                return self._type_struct_decl(n, level)
            case ast.IntNode():
                return ["int"]
            case ast.BoolNode():
                return ["bool"]
            case ast.VoidNode():
                return ["void"]
            case ast.StructNode():
                return ["struct ", self._need(n.id, ast.IdNode, n, level)]
            case ast.AssignStmtNode():
                return [
                    self._indent(level),
                    self._need(n.assign, ast.AssignNode, n, level),
                    ";\n",
                ]
            case ast.PostIncStmtNode():
                return self._type_simple(n, "", n.exp, "++", level)
            case ast.PostDecStmtNode():
                return self._type_simple(n, "", n.exp, "--", level)
            case ast.ReadStmtNode():
                return self._type_simple(n, "read ", n.exp, "", level)
            case ast.WriteStmtNode():
                return self._type_simple(n, "write ", n.exp, "", level)
            case ast.IfStmtNode():
                return self._type_if(n, level)
            case ast.IfElseStmtNode():
                return self._type_if_else(n, level)
            case ast.WhileStmtNode():
                return self._type_while(n, level)
            case ast.CallStmtNode():
                return [
                    self._indent(level),
                    self._need(n.call, ast.CallExpNode, n, level),
                    ";\n",
                ]
            case ast.ReturnStmtNode():
                return self._type_return(n, level)
            case ast.IntLitNode():
                # The lexer only yields digits; a sign is a UnaryExpNode
                if not isinstance(n.value, int) or n.value < 0:
                    raise UnparseError(f"IntLitNode needs a non-negative int, got {n.value!r}")
                return [str(n.value)]
            case ast.StrLitNode():
                return [n.value]
            case ast.TrueNode():
                return ["true"]
            case ast.FalseNode():
                return ["false"]
            case ast.IdNode():
                return [n.name]
            case ast.DotAccessNode():
                return [
                    self._need(n.exp, ast.ExpNode, n, level),
                    ".",
                    self._need(n.id, ast.IdNode, n, level),
                ]
            case ast.AssignNode():
                return [
                    self._need(n.target, ast.ExpNode, n, level),
                    " = ",
                    self._need(n.value, ast.ExpNode, n, level),
                ]
            case ast.CallExpNode():
                return self._type_call(n, level)
            case ast.UnaryExpNode():
                return self._type_unary(n, level)
            case ast.BinaryExpNode():
                return self._type_binary(n, level)
            case _:
                raise UnparseError(f"Unhandled node for Typewriter: {type(n).__name__}")

    def render(self, node: ast.ASTNode, level: int = 0, out: Optional[TextIO] = None) -> str:
        """
        Render `node` at indentation `level` and return the text.
        When `out` is given the text is also written to it, in one piece
        and only once the whole subtree has rendered.
        """
        chunks: List[str] = []
        work: List[Piece] = [(node, level)]

        while work:
            piece = work.pop()
            if isinstance(piece, str):
                chunks.append(piece)
                continue
            n, lvl = piece
            work.extend(reversed(self._expand(n, lvl)))

        text = "".join(chunks)
        if out is not None:
            out.write(text)
        return text


# ---------------------------------------
# Entrypoints
# ---------------------------------------

def unparse(root: ast.ProgramNode, out: TextIO) -> None:
    """
    Write the whole program to `out`.
    Nothing is written if the tree turns out to be malformed.
    """
    if not isinstance(root, ast.ProgramNode):
        got = "nothing" if root is None else type(root).__name__
        raise UnparseError(f"unparse expects a ProgramNode, got {got}")
    Typewriter().render(root, 0, out)


def unparse_to_string(root: ast.ProgramNode) -> str:
    buf = io.StringIO()
    unparse(root, buf)
    return buf.getvalue()
