import io

import pytest

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
    VarDeclNode,
    FnDeclNode,
    FormalDeclNode,
    StructDeclNode,
    IntNode,
    BoolNode,
    VoidNode,
    StructNode,
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
from typewriter import INDENT_STEP, Typewriter, UnparseError, unparse, unparse_to_string


def program(*decls):
    return ProgramNode(DeclListNode(list(decls)))


def void_fn(name, *stmts, decls=()):
    return FnDeclNode(
        VoidNode(),
        IdNode(name),
        FormalsListNode(),
        FnBodyNode(DeclListNode(list(decls)), StmtListNode(list(stmts))),
    )


def var(type_node, name):
    return VarDeclNode(type_node, IdNode(name), NOT_STRUCT)


def render(node, level=0):
    return Typewriter().render(node, level)


# ---------------------------------------
# Scenarios
# ---------------------------------------

def test_empty_program_renders_nothing():
    assert unparse_to_string(program()) == ""


def test_single_var_decl():
    assert unparse_to_string(program(var(IntNode(), "x"))) == "int x;\n"


def test_if_else_inside_function():
    stmt = IfElseStmtNode(
        TrueNode(),
        DeclListNode([var(IntNode(), "y")]),
        StmtListNode(),
        DeclListNode([var(IntNode(), "z")]),
        StmtListNode(),
    )

    assert unparse_to_string(program(void_fn("f", stmt))) == (
        "void f ( ) {\n"
        "    if ( true ) {\n"
        "        int y;\n"
        "    } else {\n"
        "        int z;\n"
        "    }\n"
        "}\n"
    )


def test_binary_expressions_are_fully_parenthesized():
    exp = BinaryExpNode(
        BinaryOp.PLUS,
        IdNode("a"),
        BinaryExpNode(BinaryOp.TIMES, IdNode("b"), IdNode("c")),
    )

    assert render(WriteStmtNode(exp)) == "write ((a) + ((b) * (c)));\n"
    assert unparse_to_string(program(void_fn("main", WriteStmtNode(exp)))) == (
        "void main ( ) {\n"
        "    write ((a) + ((b) * (c)));\n"
        "}\n"
    )


# ---------------------------------------
# Declarations
# ---------------------------------------

def test_types():
    assert render(IntNode()) == "int"
    assert render(BoolNode()) == "bool"
    assert render(VoidNode()) == "void"
    assert render(StructNode(IdNode("point"))) == "struct point"


def test_struct_decl_and_struct_typed_var():
    point = StructDeclNode(
        IdNode("point"),
        DeclListNode([var(IntNode(), "x"), var(IntNode(), "y")]),
    )
    p = VarDeclNode(StructNode(IdNode("point")), IdNode("p"), 0)

    assert unparse_to_string(program(point, p)) == (
        "struct point {\n"
        "    int x;\n"
        "    int y;\n"
        "};\n"
        "struct point p;\n"
    )


def test_function_with_formals():
    fn = FnDeclNode(
        IntNode(),
        IdNode("add"),
        FormalsListNode([
            FormalDeclNode(IntNode(), IdNode("a")),
            FormalDeclNode(IntNode(), IdNode("b")),
        ]),
        FnBodyNode(
            DeclListNode(),
            StmtListNode([
                ReturnStmtNode(BinaryExpNode(BinaryOp.PLUS, IdNode("a"), IdNode("b"))),
            ]),
        ),
    )

    assert unparse_to_string(program(fn)) == (
        "int add ( int a, int b ) {\n"
        "    return ((a) + (b));\n"
        "}\n"
    )


def test_function_body_declarations_come_before_statements():
    fn = void_fn(
        "main",
        AssignStmtNode(AssignNode(IdNode("i"), IntLitNode(0))),
        decls=[var(IntNode(), "i"), var(BoolNode(), "done")],
    )

    assert unparse_to_string(program(fn)) == (
        "void main ( ) {\n"
        "    int i;\n"
        "    bool done;\n"
        "    i = 0;\n"
        "}\n"
    )


# ---------------------------------------
# Statements
# ---------------------------------------

@pytest.mark.parametrize(
    "stmt, text",
    [
        (AssignStmtNode(AssignNode(DotAccessNode(IdNode("p"), IdNode("x")), IntLitNode(3))), "p.x = 3;\n"),
        (PostIncStmtNode(IdNode("i")), "i++;\n"),
        (PostDecStmtNode(IdNode("i")), "i--;\n"),
        (ReadStmtNode(IdNode("x")), "read x;\n"),
        (WriteStmtNode(StrLitNode('"hello\\n"')), 'write "hello\\n";\n'),
        (ReturnStmtNode(), "return;\n"),
        (ReturnStmtNode(FalseNode()), "return false;\n"),
        (CallStmtNode(CallExpNode(IdNode("g"), ExpListNode())), "g ( );\n"),
        (
            CallStmtNode(CallExpNode(IdNode("f"), ExpListNode([IntLitNode(1), StrLitNode('"hi"')]))),
            'f ( 1, "hi" );\n',
        ),
    ],
)
def test_simple_statements(stmt, text):
    assert render(stmt) == text


def test_simple_statement_is_indented_at_its_level():
    assert render(PostIncStmtNode(IdNode("i")), 2) == "        i++;\n"


def test_while_statement():
    loop = WhileStmtNode(
        BinaryExpNode(BinaryOp.LESS, IdNode("i"), IntLitNode(10)),
        DeclListNode(),
        StmtListNode([PostIncStmtNode(IdNode("i"))]),
    )

    assert render(loop, 1) == (
        "    while ( ((i) < (10)) ) {\n"
        "        i++;\n"
        "    }\n"
    )


def test_if_statement_with_declarations_and_statements():
    stmt = IfStmtNode(
        IdNode("flag"),
        DeclListNode([var(BoolNode(), "seen")]),
        StmtListNode([AssignStmtNode(AssignNode(IdNode("seen"), TrueNode()))]),
    )

    assert render(stmt) == (
        "if ( flag ) {\n"
        "    bool seen;\n"
        "    seen = true;\n"
        "}\n"
    )


# ---------------------------------------
# Expressions
# ---------------------------------------

@pytest.mark.parametrize(
    "exp, text",
    [
        (IntLitNode(7), "7"),
        (StrLitNode('"x"'), '"x"'),
        (TrueNode(), "true"),
        (FalseNode(), "false"),
        (IdNode("count"), "count"),
        (UnaryExpNode(UnaryOp.NOT, IdNode("done")), "(!(done))"),
        (UnaryExpNode(UnaryOp.MINUS, UnaryExpNode(UnaryOp.MINUS, IdNode("a"))), "(-(-(a)))"),
        (
            UnaryExpNode(UnaryOp.MINUS, BinaryExpNode(BinaryOp.MINUS, IdNode("a"), IntLitNode(1))),
            "(-((a) - (1)))",
        ),
        (
            BinaryExpNode(BinaryOp.PLUS, AssignNode(IdNode("x"), IntLitNode(1)), IntLitNode(2)),
            "((x = 1) + (2))",
        ),
        (
            BinaryExpNode(BinaryOp.TIMES, CallExpNode(IdNode("f"), ExpListNode()), IntLitNode(2)),
            "((f ( )) * (2))",
        ),
        (
            BinaryExpNode(
                BinaryOp.AND,
                BinaryExpNode(BinaryOp.LESS_EQ, IdNode("a"), IdNode("b")),
                BinaryExpNode(BinaryOp.NOT_EQUALS, IdNode("c"), FalseNode()),
            ),
            "(((a) <= (b)) && ((c) != (false)))",
        ),
        (
            DotAccessNode(DotAccessNode(IdNode("a"), IdNode("b")), IdNode("c")),
            "a.b.c",
        ),
        (AssignNode(IdNode("x"), AssignNode(IdNode("y"), IntLitNode(3))), "x = y = 3"),
    ],
)
def test_expressions(exp, text):
    assert render(exp) == text


@pytest.mark.parametrize("op", list(BinaryOp))
def test_every_binary_operator(op):
    exp = BinaryExpNode(op, IdNode("l"), IdNode("r"))

    assert render(exp) == f"((l) {op.value} (r))"


# ---------------------------------------
# Lists and indentation
# ---------------------------------------

def test_empty_lists_leave_no_artifacts():
    stmt = IfElseStmtNode(
        FalseNode(),
        DeclListNode(),
        StmtListNode(),
        DeclListNode(),
        StmtListNode(),
    )
    text = unparse_to_string(program(void_fn("f", stmt), StructDeclNode(IdNode("empty"), DeclListNode())))

    assert text == (
        "void f ( ) {\n"
        "    if ( false ) {\n"
        "    } else {\n"
        "    }\n"
        "}\n"
        "struct empty {\n"
        "};\n"
    )
    assert "\n\n" not in text
    assert ",," not in text


def test_indentation_tracks_nesting_depth():
    depth = 6
    stmt = WriteStmtNode(IdNode("x"))
    for _ in range(depth):
        stmt = WhileStmtNode(TrueNode(), DeclListNode(), StmtListNode([stmt]))

    lines = render(stmt).splitlines()

    for i in range(depth):
        assert lines[i] == " " * INDENT_STEP * i + "while ( true ) {"
        assert lines[-1 - i] == " " * INDENT_STEP * i + "}"
    assert lines[depth] == " " * INDENT_STEP * depth + "write x;"


def test_indentation_is_restored_after_nested_body():
    first = IfStmtNode(TrueNode(), DeclListNode(), StmtListNode([PostIncStmtNode(IdNode("a"))]))
    second = PostDecStmtNode(IdNode("b"))

    assert render(StmtListNode([first, second]), 1) == (
        "    if ( true ) {\n"
        "        a++;\n"
        "    }\n"
        "    b--;\n"
    )


def test_indent_step_can_be_changed():
    fn = void_fn("f", ReturnStmtNode())

    assert Typewriter(step=2).render(fn) == "void f ( ) {\n  return;\n}\n"


# ---------------------------------------
# Deep trees
# ---------------------------------------

def test_deep_unary_chain():
    n = 5000
    exp = IdNode("a")
    for _ in range(n):
        exp = UnaryExpNode(UnaryOp.MINUS, exp)

    assert render(exp) == "(-" * n + "(a)" + ")" * n


def test_deep_dot_access_chain():
    n = 5000
    exp = IdNode("a")
    for _ in range(n):
        exp = DotAccessNode(exp, IdNode("f"))

    assert render(exp) == "a" + ".f" * n


def test_deep_statement_nesting():
    n = 1500
    stmt = ReturnStmtNode()
    for _ in range(n):
        stmt = IfStmtNode(TrueNode(), DeclListNode(), StmtListNode([stmt]))

    lines = render(stmt).splitlines()

    assert len(lines) == 2 * n + 1
    assert lines[n] == " " * INDENT_STEP * n + "return;"


# ---------------------------------------
# Contract violations
# ---------------------------------------

def test_missing_child_fails_and_leaves_sink_untouched():
    broken = program(var(IntNode(), "ok"), VarDeclNode(IntNode(), None))
    sink = io.StringIO()

    with pytest.raises(UnparseError, match="VarDeclNode expects a IdNode, got nothing"):
        unparse(broken, sink)
    assert sink.getvalue() == ""


def test_wrong_kind_in_list_fails():
    broken = program(WriteStmtNode(IdNode("x")))

    with pytest.raises(UnparseError, match="DeclListNode"):
        unparse_to_string(broken)


def test_formal_in_declaration_list_fails_and_leaves_sink_untouched():
    broken = ProgramNode(DeclListNode([
        FormalDeclNode(IntNode(), IdNode("a")),
        FormalDeclNode(IntNode(), IdNode("b")),
    ]))
    sink = io.StringIO()

    with pytest.raises(UnparseError, match="VarDeclNode or FnDeclNode or StructDeclNode, got FormalDeclNode"):
        unparse(broken, sink)
    assert sink.getvalue() == ""


def test_negative_int_literal_fails():
    with pytest.raises(UnparseError, match="non-negative"):
        render(WriteStmtNode(IntLitNode(-5)))


def test_render_writes_to_a_sink():
    sink = io.StringIO()

    text = Typewriter().render(PostIncStmtNode(IdNode("i")), 1, sink)

    assert text == "    i++;\n"
    assert sink.getvalue() == text


def test_render_writes_nothing_when_the_tree_is_malformed():
    sink = io.StringIO()

    with pytest.raises(UnparseError):
        Typewriter().render(StmtListNode([PostIncStmtNode(IdNode("i")), PostDecStmtNode(None)]), 0, sink)
    assert sink.getvalue() == ""


def test_missing_if_condition_fails():
    broken = IfStmtNode(None, DeclListNode(), StmtListNode())

    with pytest.raises(UnparseError):
        render(broken)


def test_unknown_operator_fails():
    with pytest.raises(UnparseError, match="unknown operator"):
        render(BinaryExpNode("+", IdNode("a"), IdNode("b")))


def test_unparse_requires_a_program():
    with pytest.raises(UnparseError, match="ProgramNode"):
        unparse(DeclListNode(), io.StringIO())


def test_unhandled_object_fails():
    with pytest.raises(UnparseError, match="Unhandled node"):
        render(object())
